"""Tests for hint parsing, the pattern registry and step matching."""

import pytest

from journey_warden.ir import REQUIRED_FIELDS, LocatorStrategy, PrimitiveKind, PrimitiveType, ValueKind
from journey_warden.mapping import (
    DEFAULT_GLOSSARY,
    MatchOptions,
    StepMatch,
    Unmatched,
    get_mapping_stats,
    load_glossary,
    match_step,
    match_steps,
    suggest_fix,
)
from journey_warden.mapping.fuzzy import FUZZY_EXAMPLES, fuzzy_match
from journey_warden.mapping.hints import build_locator_from_hints, parse_hints, parse_module_hint
from journey_warden.mapping.matcher import MISSING_HINT_REASON, MatchSource
from journey_warden.mapping.patterns import (
    ALL_PATTERNS,
    find_matching_patterns,
    match_pattern,
    pattern_metadata,
    value_from_text,
)

STEP_TEXTS = [
    "User navigates to /login",
    "User sees 'Sign in'",
    "Click the 'Submit' button",
    "Click Submit `(role=button, name=Submit)`",
    "Enter 'qa@example.com' in the email field (label=Email)",
    "The url should contain /dashboard",
    "User goes back",
    "Visit /settings",
    "Perform the quarterly reconciliation",
    "Log in as admin (module=auth.login)",
    "",
]


class TestHints:
    """Machine hints embedded in step text."""

    def test_role_and_name(self):
        hints = parse_hints("Click Submit `(role=button, name=Submit)`")
        assert hints.has_hints
        assert hints.clean_text == "Click Submit"
        assert hints.locator.role == "button"
        assert hints.locator.name == "Submit"
        assert hints.warnings == ()

    def test_quoted_values_and_behavior(self):
        hints = parse_hints('User sees the dashboard (text="Welcome back") (timeout=10000)')
        assert hints.locator.text == "Welcome back"
        assert hints.behavior.timeout == 10000
        assert hints.clean_text == "User sees the dashboard"

    def test_invalid_role_becomes_warning(self):
        hints = parse_hints("Click Save (role=buton)")
        assert hints.locator.role is None
        assert "Invalid ARIA role: buton" in hints.warnings

    def test_unknown_key_becomes_warning(self):
        hints = parse_hints("Click Save (colour=blue)")
        assert "Unknown hint type: colour" in hints.warnings

    def test_conflicting_locators_warn(self):
        hints = parse_hints("Click Save (role=button, testid=save)")
        assert "Multiple conflicting locator hints specified" in hints.warnings

    def test_role_wins_over_testid(self):
        hints = parse_hints("Click Save (role=button, name=Save, testid=save)")
        loc = build_locator_from_hints(hints.locator)
        assert loc.strategy is LocatorStrategy.ROLE
        assert loc.name == "Save"

    def test_plain_text_has_no_hints(self):
        assert not parse_hints("Click the Save button").has_hints

    @pytest.mark.parametrize("value,expected", [
        ("auth.login", ("auth", "login")),
        ("auth", None),
        ("a.b.c", None),
        ("auth.", None),
    ])
    def test_module_hint(self, value, expected):
        assert parse_module_hint(value) == expected


class TestPatternRegistry:
    def test_every_pattern_targets_a_known_primitive(self):
        for pattern in ALL_PATTERNS:
            assert pattern.primitive_type in REQUIRED_FIELDS

    def test_pattern_names_are_unique(self):
        names = [p.name for p in ALL_PATTERNS]
        assert len(names) == len(set(names))

    def test_go_back_shadows_go_to(self):
        """Both patterns match; the earlier one must win."""
        assert {"go-back", "navigate-to-url"} <= set(find_matching_patterns("User goes back"))
        assert match_pattern("User goes back").primitive.type is PrimitiveType.GO_BACK

    def test_navigate_to_page_builds_slug(self):
        found = match_pattern("Navigate to the account settings page")
        assert found.primitive.url == "/account-settings"
        assert found.primitive.wait_for_load

    def test_metadata(self):
        assert pattern_metadata("go-back").version == "1.0.0"
        assert pattern_metadata("hover-over-element").version != "1.0.0"
        assert pattern_metadata("no-such-pattern") is None

    @pytest.mark.parametrize("text,kind,value", [
        ("{{user.email}}", ValueKind.ACTOR, "user.email"),
        ("$orderId", ValueKind.TEST_DATA, "orderId"),
        ("order-${runId}", ValueKind.GENERATED, "order-${runId}"),
        ("hello", ValueKind.LITERAL, "hello"),
    ])
    def test_value_from_text(self, text, kind, value):
        spec = value_from_text(text)
        assert spec.kind is kind
        assert spec.value == value


class TestPrimitiveTotality:
    def test_every_primitive_type_has_required_fields(self):
        assert set(REQUIRED_FIELDS) == set(PrimitiveType)

    def test_every_primitive_is_action_or_assertion(self):
        for ptype in PrimitiveType:
            assert ptype.kind in (PrimitiveKind.ACTION, PrimitiveKind.ASSERTION)
            assert (ptype.kind is PrimitiveKind.ASSERTION) == ptype.is_assertion

    def test_interactions_are_actions(self):
        for ptype in PrimitiveType:
            if ptype.is_interaction:
                assert ptype.kind is PrimitiveKind.ACTION


class TestMatchStep:
    def test_interaction_without_hint_is_unmatched(self):
        result = match_step("Click the 'Submit' button")
        assert isinstance(result, Unmatched)
        assert result.reason == MISSING_HINT_REASON
        assert result.source_text == "Click the 'Submit' button"

    def test_interaction_maps_when_hints_not_required(self):
        result = match_step("Click the 'Submit' button", options=MatchOptions(require_locator_hints=False))
        assert isinstance(result, StepMatch)
        assert result.primitive.locator.strategy is LocatorStrategy.ROLE
        assert result.primitive.locator.name == "Submit"

    def test_explicit_hint_maps_to_role_click(self):
        result = match_step("Click Submit `(role=button, name=Submit)`")
        assert isinstance(result, StepMatch)
        assert result.source is MatchSource.HINTS
        assert result.primitive.type is PrimitiveType.CLICK
        assert result.primitive.locator.strategy is LocatorStrategy.ROLE
        assert result.primitive.locator.value == "button"
        assert result.primitive.to_dict()["locator"] == {
            "strategy": "role", "value": "button", "options": {"name": "Submit"},
        }

    def test_hint_locator_replaces_inferred_one(self):
        result = match_step("Enter 'qa@example.com' in the email field (label=Email)")
        assert isinstance(result, StepMatch)
        assert result.primitive.type is PrimitiveType.FILL
        assert result.primitive.locator.strategy is LocatorStrategy.LABEL
        assert result.primitive.locator.value == "Email"

    def test_behavior_hints_apply(self):
        result = match_step('User sees the dashboard (text="Welcome back") (timeout=10000)')
        assert result.primitive.type is PrimitiveType.EXPECT_VISIBLE
        assert result.primitive.timeout == 10000
        assert result.is_assertion

    def test_module_hint(self):
        result = match_step("Log in as admin (module=auth.login)")
        assert result.primitive.type is PrimitiveType.CALL_MODULE
        assert (result.primitive.module, result.primitive.method) == ("auth", "login")

    def test_invalid_module_hint_warns(self):
        result = match_step("Log in as admin (module=auth)")
        assert any("Invalid module hint" in w for w in result.warnings)

    def test_navigation_needs_no_hint(self):
        result = match_step("User navigates to /login")
        assert isinstance(result, StepMatch)
        assert result.primitive.type is PrimitiveType.GOTO
        assert result.primitive.url == "/login"
        assert result.source is MatchSource.PATTERN

    def test_glossary_fallback(self):
        result = match_step("Visit /settings")
        assert isinstance(result, StepMatch)
        assert result.source is MatchSource.GLOSSARY
        assert result.primitive.url == "/settings"

    def test_glossary_fallback_can_be_disabled(self):
        result = match_step("Visit /settings", options=MatchOptions(use_glossary_fallback=False))
        assert isinstance(result, Unmatched)

    def test_empty_text(self):
        result = match_step("   ")
        assert isinstance(result, Unmatched)
        assert result.reason == "Empty step text"

    def test_unmatched_keeps_text_and_converts_to_blocked(self):
        result = match_step("Perform the quarterly reconciliation")
        assert isinstance(result, Unmatched)
        blocked = result.to_blocked()
        assert blocked.is_blocked
        assert blocked.source_text == "Perform the quarterly reconciliation"

    def test_matching_is_deterministic(self):
        first = match_steps(STEP_TEXTS)
        second = match_steps(STEP_TEXTS)
        assert first == second

    def test_mapping_stats(self):
        stats = get_mapping_stats(match_steps(STEP_TEXTS))
        assert stats.total == len(STEP_TEXTS)
        assert stats.mapped + stats.blocked == stats.total
        assert stats.actions + stats.assertions == stats.mapped
        assert 0 < stats.mapping_rate < 1


class TestFuzzyMatch:
    def test_near_miss_maps(self):
        result = match_step("Refesh the page")
        assert isinstance(result, StepMatch)
        assert result.source is MatchSource.FUZZY
        assert result.pattern_name == "refresh-page"
        assert result.primitive.type is PrimitiveType.RELOAD

    def test_below_threshold_stays_blocked(self):
        assert fuzzy_match("Refrsh teh pge") is None
        assert isinstance(match_step("Refrsh teh pge"), Unmatched)

    def test_can_be_disabled(self):
        assert isinstance(match_step("Refesh the page", options=MatchOptions(use_fuzzy=False)), Unmatched)

    def test_interaction_still_needs_a_hint(self):
        assert match_step("Clik the submit button").reason == MISSING_HINT_REASON

        result = match_step("Clik the submit button", options=MatchOptions(require_locator_hints=False))
        assert result.source is MatchSource.FUZZY
        assert result.primitive.type is PrimitiveType.CLICK
        assert result.primitive.locator.value == "submit"

    def test_wait_keeps_its_duration(self):
        near = fuzzy_match("wiat 3 seconds")
        assert near.pattern.name == "wait-seconds"
        assert near.primitive.ms == 3000

    def test_examples_name_registry_patterns(self):
        names = {p.name for p in ALL_PATTERNS}
        assert set(FUZZY_EXAMPLES) <= names


class TestGlossary:
    def test_normalize_keeps_quoted_text(self):
        assert DEFAULT_GLOSSARY.normalize_step_text("Tap 'Press Me'") == "click 'Press Me'"

    def test_find_module_method_prefers_longest_phrase(self):
        assert DEFAULT_GLOSSARY.find_module_method("User submit form now") == ("forms", "submitForm")

    def test_load_glossary_merges_over_default(self, tmp_path):
        path = tmp_path / "glossary.yaml"
        path.write_text(
            "glossary:\n"
            "  entries:\n"
            "    - canonical: navigate\n"
            "      synonyms: [jump]\n"
            "  moduleMethods:\n"
            "    - phrase: checkout\n"
            "      module: cart\n"
            "      method: checkout\n"
        )
        glossary = load_glossary(path)
        assert glossary.canonical_term("jump") == "navigate"
        assert glossary.canonical_term("visit") == "navigate"
        assert glossary.module_methods["checkout"] == "cart.checkout"
        result = match_step("Jump /home", glossary)
        assert result.primitive.url == "/home"

    def test_missing_file_returns_base(self, tmp_path):
        assert load_glossary(tmp_path / "missing.yaml") is DEFAULT_GLOSSARY
        assert load_glossary(None) is DEFAULT_GLOSSARY


class TestSuggestFix:
    def test_click_on_named_button(self):
        suggestion = suggest_fix("Click the 'Submit' button")
        assert "role=button" in suggestion.fixed_text
        assert suggestion.confidence > 0.8
        assert isinstance(match_step(suggestion.fixed_text), StepMatch)

    def test_fill_names_the_field(self):
        suggestion = suggest_fix("Enter 'qa@example.com' in the email field")
        assert "role=textbox" in suggestion.fixed_text
        assert "name=email" in suggestion.fixed_text

    def test_visibility(self):
        suggestion = suggest_fix("User should see 'Order placed' displayed")
        assert 'text="Order placed"' in suggestion.fixed_text

    def test_nothing_to_suggest(self):
        assert suggest_fix("Click Submit `(role=button, name=Submit)`") is None
        assert suggest_fix("Click the submit button") is None
