"""Tests for confidence scoring of generated test code."""

import pytest
from pydantic import ValidationError

from conftest import CSS_TEST_CODE, GOOD_TEST_CODE
from journey_warden.mapping.glossary import DEFAULT_GLOSSARY
from journey_warden.uncertainty import (
    Dimension,
    DimensionScore,
    ScoringContext,
    SelectorStrategy,
    Verdict,
    analyze_selectors,
    calculate_agreement,
    get_blocking_issues,
    match_code_patterns,
    passes_minimum_confidence,
    quick_confidence_check,
    score_confidence,
    validate_syntax,
)
from journey_warden.uncertainty.agreement import agreement_dimension
from journey_warden.uncertainty.patterns import PatternSource, RiskLevel, glossary_patterns
from journey_warden.uncertainty.scorer import (
    DimensionWeights,
    ScoringThresholds,
    blocked_dimensions,
    determine_verdict,
    overall_score,
)
from journey_warden.uncertainty.syntax import parse_errors, quick_syntax_check

WEIGHTS = {Dimension.SYNTAX: 0.25, Dimension.PATTERN: 0.25, Dimension.SELECTOR: 0.30, Dimension.AGREEMENT: 0.20}


def dimensions(**scores: float) -> tuple[DimensionScore, ...]:
    return tuple(
        DimensionScore(d, scores.get(d.value, 1.0), WEIGHTS[d], "") for d in Dimension
    )


def verdict_for(dims: tuple[DimensionScore, ...]) -> Verdict:
    thresholds = ScoringThresholds()
    return determine_verdict(overall_score(dims), blocked_dimensions(dims, thresholds), thresholds)


class TestVerdict:
    def test_low_dimension_rejects_despite_high_average(self):
        dims = dimensions(selector=0.3)
        assert overall_score(dims) == pytest.approx(0.79)
        assert blocked_dimensions(dims, ScoringThresholds()) == (Dimension.SELECTOR,)
        assert verdict_for(dims) is Verdict.REJECT

    def test_syntax_has_its_own_floor(self):
        dims = dimensions(syntax=0.85)
        assert overall_score(dims) > 0.9
        assert verdict_for(dims) is Verdict.REJECT

    def test_review_band(self):
        dims = dimensions(syntax=0.95, pattern=0.5, selector=0.5, agreement=0.5)
        assert verdict_for(dims) is Verdict.REVIEW

    def test_accept(self):
        assert verdict_for(dimensions(pattern=0.8, selector=0.8, agreement=0.7)) is Verdict.ACCEPT

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            DimensionWeights(syntax=0.5)
        assert DimensionWeights(syntax=0.4, pattern=0.2, selector=0.2, agreement=0.2)


class TestScoreConfidence:
    def test_semantic_locators_accepted(self):
        score = score_confidence(GOOD_TEST_CODE)
        assert score.verdict is Verdict.ACCEPT
        assert score.blocked_dimensions == ()
        assert score.dimension(Dimension.SYNTAX).score == 1.0
        assert score.dimension(Dimension.AGREEMENT).reasoning == "Multi-sampling not used"

    def test_css_locators_rejected(self):
        score = score_confidence(CSS_TEST_CODE)
        assert score.verdict is Verdict.REJECT
        assert Dimension.SELECTOR in score.blocked_dimensions
        assert score.to_dict()["blockedDimensions"] == ["selector"]
        assert "Use data-testid attributes for stability" in score.diagnostics.suggestions
        assert score.diagnostics.lowest[0] is Dimension.SELECTOR

    def test_samples_feed_agreement(self):
        same = score_confidence(GOOD_TEST_CODE, ScoringContext(samples=(GOOD_TEST_CODE,)))
        assert same.dimension(Dimension.AGREEMENT).score == 1.0

        mixed = score_confidence(GOOD_TEST_CODE, ScoringContext(samples=(CSS_TEST_CODE,)))
        assert mixed.dimension(Dimension.AGREEMENT).score < 1.0
        assert "disagreements" in mixed.to_dict()

    def test_scoring_is_deterministic(self):
        assert score_confidence(CSS_TEST_CODE) == score_confidence(CSS_TEST_CODE)

    def test_blocking_issues(self):
        issues = get_blocking_issues(CSS_TEST_CODE)
        assert any(issue.startswith("selector score") for issue in issues)
        assert get_blocking_issues(GOOD_TEST_CODE) == []

    def test_quick_checks(self):
        assert quick_confidence_check(GOOD_TEST_CODE, Dimension.SYNTAX) == 1.0
        assert quick_confidence_check(GOOD_TEST_CODE, Dimension.AGREEMENT) == 0.7
        assert passes_minimum_confidence(GOOD_TEST_CODE)
        assert not passes_minimum_confidence(CSS_TEST_CODE)


class TestSyntax:
    def test_valid_code(self):
        result = validate_syntax(GOOD_TEST_CODE)
        assert result.valid
        assert result.compiles
        assert result.playwright.has_valid_imports
        assert result.playwright.uses_test_fixtures

    def test_unclosed_test_block(self):
        code = "import { test } from '@playwright/test';\ntest('x', async ({ page }) => {\n  await page.goto('/');\n"
        result = validate_syntax(code)
        assert not result.compiles
        assert result.errors
        assert {e.code for e in result.errors} <= {"TS_MISSING", "TS_PARSE_ERROR"}
        assert result.score < 0.9

    def test_brackets_inside_strings_and_comments(self):
        assert parse_errors("const a = ')'; // (\n/* { */ const b = `]`;") == []

    def test_regex_literal_with_quote(self):
        code = GOOD_TEST_CODE.replace(
            "await page.getByTestId('sign-in').click();",
            "await page.getByTestId('sign-in').click();\n"
            "  await expect(page.getByTestId('greeting')).toHaveText(/Welcome, user's dashboard/);",
        )
        result = validate_syntax(code)
        assert result.compiles
        assert result.valid
        assert score_confidence(code).verdict is not Verdict.REJECT

    @pytest.mark.parametrize("code", ["foo(]", "const s = 'oops", "expect(page).", "const total ="])
    def test_parse_failures(self, code):
        assert parse_errors(code)
        assert not validate_syntax(code).compiles

    def test_deprecated_apis_and_warnings(self):
        code = GOOD_TEST_CODE.replace(
            "await page.getByTestId('sign-in').click();",
            "await page.click('#sign-in');\n  console.log('clicked');",
        )
        result = validate_syntax(code)
        assert "page.click()" in result.playwright.deprecated_apis
        assert any("console.log" in w.message for w in result.warnings)
        assert result.score < 1.0

    def test_fixture_params_are_not_untyped(self):
        assert validate_syntax(GOOD_TEST_CODE).type_inference_score == 1.0
        assert validate_syntax("const f = (a, b) => a;").type_inference_score == pytest.approx(0.8)

    def test_quick_syntax_check(self):
        assert quick_syntax_check(GOOD_TEST_CODE)
        assert not quick_syntax_check("const a = 1;")


class TestCodePatterns:
    def test_builtin_matches(self):
        result = match_code_patterns(GOOD_TEST_CODE)
        ids = [m.pattern_id for m in result.matched]
        assert ids == ["nav-goto", "click-locator", "fill-locator", "expect-url", "test-step"]
        assert result.unmatched == ()

    def test_glossary_module_calls(self):
        code = "await auth.login(page);\nawait authModule.logout(page);"
        result = match_code_patterns(code, glossary_patterns(DEFAULT_GLOSSARY))
        assert {m.pattern_id for m in result.matched} == {"module-auth-login", "module-auth-logout"}
        assert all(m.source is PatternSource.GLOSSARY for m in result.matched)
        assert result.novelty_score == 1.0

    def test_high_risk_unmatched_call(self):
        result = match_code_patterns("await page.evaluate(() => window.scrollTo(0, 0));")
        assert [(u.element, u.risk) for u in result.unmatched] == [("page method: evaluate", RiskLevel.HIGH)]


class TestSelectors:
    def test_no_selectors_is_neutral(self):
        analysis = analyze_selectors("await page.goto('/');")
        assert analysis.score == 0.5
        assert analysis.recommendations == ()

    def test_semantic_selectors(self):
        analysis = analyze_selectors(GOOD_TEST_CODE)
        assert [s.strategy for s in analysis.selectors] == [SelectorStrategy.LABEL, SelectorStrategy.TEST_ID]
        assert analysis.test_id_ratio == 0.5
        assert not any(s.is_fragile for s in analysis.selectors)

    def test_framework_class_is_fragile(self):
        analysis = analyze_selectors("await page.locator('.btn-primary').click();")
        selector = analysis.selectors[0]
        assert selector.strategy is SelectorStrategy.CSS
        assert "Framework-specific class (may change)" in selector.fragility_reasons
        assert analysis.recommendations[0].priority == "high"
        assert analysis.recommendations[0].suggested is SelectorStrategy.TEST_ID

    def test_testid_attribute_is_not_css(self):
        analysis = analyze_selectors("await page.locator('[data-testid=save]').click();")
        assert [s.strategy for s in analysis.selectors] == [SelectorStrategy.TEST_ID]

    def test_position_modifier(self):
        analysis = analyze_selectors("await page.getByRole('listitem').nth(2).click();")
        assert [s.strategy for s in analysis.selectors] == [SelectorStrategy.ROLE, SelectorStrategy.NTH]
        assert any(r.priority == "medium" for r in analysis.recommendations)

    def test_text_content_is_not_judged_as_css(self):
        """Spaces in visible text are not descendant combinators."""
        analysis = analyze_selectors("await page.getByText('Order placed successfully').click();")
        assert not analysis.selectors[0].is_fragile


class TestAgreement:
    def test_single_sample_is_neutral(self):
        result = calculate_agreement([GOOD_TEST_CODE])
        assert result.score == 0.7
        assert result.consensus_index == 0
        assert agreement_dimension(result).reasoning == "Multi-sampling not used"

    def test_identical_samples(self):
        result = calculate_agreement([GOOD_TEST_CODE, GOOD_TEST_CODE, GOOD_TEST_CODE])
        assert result.score == 1.0
        assert result.disagreements == ()

    def test_disagreement_areas(self):
        result = calculate_agreement([GOOD_TEST_CODE, CSS_TEST_CODE, GOOD_TEST_CODE])
        areas = {a.area: a for a in result.disagreements}
        assert "Selector Strategies" in areas
        assert areas["Test Flow"].confidence == pytest.approx(2 / 3)
        assert result.consensus_index == 0
        assert result.score < 1.0
