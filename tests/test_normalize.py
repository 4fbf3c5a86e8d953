"""Tests for journey normalization and the hint linter."""

from journey_warden.ir import LocatorStrategy, PrimitiveType
from journey_warden.journey import (
    NormalizeOptions,
    apply_auto_fixes,
    normalize_journey,
    validate_journey_for_codegen,
    validate_journey_format,
)
from journey_warden.journey.normalize import parse_locator_from_selector
from journey_warden.journey.validator import extract_steps, format_validation_result
from journey_warden.models import ParsedJourney

JOURNEY_MARKDOWN = """# Sign in

## Steps

- User navigates to /login
- Click the 'Submit' button
- Click Save `(role=button, name=Save)`
"""


class TestNormalizeJourney:
    def test_blocked_bullet_is_reported_and_kept(self, parsed_journey):
        result = normalize_journey(parsed_journey)

        assert result.stats.total_steps == 3
        assert result.stats.mapped_steps == 3
        assert result.stats.blocked_steps == 1
        blocked = result.blocked_steps[0]
        assert blocked.step_id == "AC-2"
        assert blocked.source_text == "Perform the quarterly reconciliation"
        assert blocked.suggestion is None

        ac2 = result.journey.steps[1]
        assert ac2.has_blocked
        assert [p.type for p in ac2.actions] == [PrimitiveType.CLICK, PrimitiveType.BLOCKED]
        assert ac2.actions[1].source_text == "Perform the quarterly reconciliation"

    def test_actions_and_assertions_are_split(self, parsed_journey):
        ac1 = normalize_journey(parsed_journey).journey.steps[0]
        assert [p.type for p in ac1.actions] == [PrimitiveType.GOTO]
        assert [p.type for p in ac1.assertions] == [PrimitiveType.EXPECT_VISIBLE]

    def test_blocked_placeholders_can_be_left_out(self, parsed_journey):
        result = normalize_journey(parsed_journey, NormalizeOptions(include_blocked=False))
        ac2 = result.journey.steps[1]
        assert [p.type for p in ac2.actions] == [PrimitiveType.CLICK]
        assert result.stats.blocked_steps == 1

    def test_strict_mode_drops_steps_with_blocked_bullets(self, parsed_journey):
        result = normalize_journey(parsed_journey, NormalizeOptions(strict=True))

        assert [s.id for s in result.journey.steps] == ["AC-1", "AC-3"]
        assert result.stats.dropped_steps == 1
        assert any("Strict mode dropped" in w for w in result.warnings)

    def test_step_counts_are_conserved(self, parsed_journey):
        for strict in (False, True):
            stats = normalize_journey(parsed_journey, NormalizeOptions(strict=strict)).stats
            assert stats.mapped_steps + stats.dropped_steps == stats.total_steps

    def test_completion_becomes_final_assertion(self, parsed_journey):
        last = normalize_journey(parsed_journey).journey.steps[-1]
        assert [p.type for p in last.assertions] == [PrimitiveType.EXPECT_URL, PrimitiveType.EXPECT_URL]
        assert last.assertions[-1].pattern == "/dashboard"

    def test_missing_assertion_is_noted(self, parsed_journey):
        ac2 = normalize_journey(parsed_journey).journey.steps[1]
        assert "No assertion mapped for: Credentials are submitted" in ac2.notes

    def test_tags_are_derived(self, parsed_journey):
        journey = normalize_journey(parsed_journey).journey
        assert journey.tags == ("@auth", "@JRN-0001", "@tier-smoke", "@scope-auth")

    def test_output_is_deterministic(self, parsed_journey):
        assert normalize_journey(parsed_journey) == normalize_journey(parsed_journey)
        assert normalize_journey(parsed_journey).journey.to_dict()["steps"][0]["actions"] == [
            {"type": "goto", "url": "/login", "waitForLoad": True}
        ]

    def test_procedural_steps_without_acceptance_criteria(self):
        parsed = ParsedJourney.from_dict({
            "frontmatter": {"id": "JRN-0002", "title": "Browse"},
            "proceduralSteps": [
                {"number": 1, "text": "User navigates to /home"},
                {"number": 2, "text": "User goes back"},
            ],
        })
        result = normalize_journey(parsed)
        assert [s.id for s in result.journey.steps] == ["PS-1", "PS-2"]

    def test_procedural_steps_join_their_criterion(self, journey_data):
        journey_data["proceduralSteps"] = [{"number": 1, "text": "User goes back", "linkedAC": "AC-1"}]
        ac1 = normalize_journey(ParsedJourney.from_dict(journey_data)).journey.steps[0]
        assert PrimitiveType.GO_BACK in [p.type for p in ac1.actions]

    def test_completion_signal_kinds(self, journey_data):
        journey_data["frontmatter"]["completion"] = [
            {"type": "element", "value": "[data-testid=spinner]", "options": {"state": "hidden"}},
            {"type": "api", "value": "/api/session"},
            {"type": "sound", "value": "ding"},
        ]
        result = normalize_journey(ParsedJourney.from_dict(journey_data))
        last = result.journey.steps[-1]

        hidden = last.assertions[-1]
        assert hidden.type is PrimitiveType.EXPECT_NOT_VISIBLE
        assert hidden.locator.strategy is LocatorStrategy.TESTID
        assert last.actions[-1].type is PrimitiveType.WAIT_FOR_RESPONSE
        assert "Unknown completion signal type: sound" in result.warnings


class TestCodegenValidation:
    def test_valid_journey(self, parsed_journey):
        validation = validate_journey_for_codegen(normalize_journey(parsed_journey))
        assert validation.valid
        assert validation.errors == ()

    def test_journey_without_completion_or_assertions(self):
        parsed = ParsedJourney.from_dict({
            "frontmatter": {"id": "JRN-0003", "title": "Nothing to check"},
            "acceptanceCriteria": [{"id": "AC-1", "title": "Open", "steps": ["User navigates to /"]}],
        })
        validation = validate_journey_for_codegen(normalize_journey(parsed))
        assert not validation.valid
        assert "Journey has no completion signals" in validation.errors
        assert "Journey has no assertions" in validation.errors


class TestSelectorParsing:
    def test_testid(self):
        loc = parse_locator_from_selector("[data-testid='save']")
        assert (loc.strategy, loc.value) == (LocatorStrategy.TESTID, "save")

    def test_prefixed(self):
        loc = parse_locator_from_selector("text=Welcome")
        assert (loc.strategy, loc.value) == (LocatorStrategy.TEXT, "Welcome")

    def test_falls_back_to_css(self):
        assert parse_locator_from_selector(".toast").strategy is LocatorStrategy.CSS


class TestFormatValidator:
    def test_extract_steps(self):
        assert [line for line, _ in extract_steps(JOURNEY_MARKDOWN)] == [5, 6, 7]

    def test_interaction_without_hint_is_an_error(self):
        result = validate_journey_format(JOURNEY_MARKDOWN)

        assert not result.valid
        assert [issue.line for issue in result.errors] == [6]
        assert "click" in result.errors[0].message
        assert [issue.line for issue in result.warnings] == [5]
        assert [fix.line for fix in result.auto_fixable] == [6]

    def test_list_input(self):
        result = validate_journey_format(["Click Save `(role=button, name=Save)`"])
        assert result.valid
        assert format_validation_result(result) == "All steps carry machine hints."

    def test_report_mentions_fix_flag(self):
        text = format_validation_result(validate_journey_format(JOURNEY_MARKDOWN))
        assert text.startswith("Errors (1):")
        assert "--fix" in text

    def test_apply_auto_fixes(self):
        fixed, applied = apply_auto_fixes(JOURNEY_MARKDOWN)

        assert len(applied) == 1
        assert "- Click the 'Submit' button `(role=button, name=Submit)`" in fixed.splitlines()
        assert fixed.endswith("\n")
        assert validate_journey_format(fixed).valid
