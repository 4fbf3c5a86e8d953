"""Tests for the markdown reports."""

from conftest import CSS_TEST_CODE, GOOD_TEST_CODE, SELECTOR_FAILURE
from journey_warden.journey import normalize_journey
from journey_warden.reports import (
    format_classification_report,
    format_confidence_report,
    format_normalization_report,
    format_selector_report,
)
from journey_warden.uncertainty import ScoringContext, analyze_selectors, score_confidence
from journey_warden.verify import classify


def test_classification_report():
    report = format_classification_report({
        "login.spec.ts > signs in": classify(SELECTOR_FAILURE, "    at /repo/tests/login.spec.ts:5:20"),
        "login.spec.ts > loads": classify("connect ECONNREFUSED 127.0.0.1:3000"),
    })

    assert report.startswith("# Failure Classification Report\n\n## Summary")
    assert "- selector: 1" in report
    assert "- env: 1" in report
    assert "- auth:" not in report
    assert "### login.spec.ts > signs in" in report
    assert "- **Selector**: `.submit-btn`" in report
    assert "- **Location**: /repo/tests/login.spec.ts:5" in report
    assert "- **Is Test Issue**: No" in report


def test_selector_report():
    report = format_selector_report(analyze_selectors(CSS_TEST_CODE))
    assert report.startswith("# Selector Stability Report")
    assert "| 5 | css | `locator('.submit-btn')` | 50% | no |" in report
    assert "## Recommendations" in report
    assert "- **high** `locator('.submit-btn')`: css -> testId." in report


def test_empty_selector_report():
    assert "No selectors found." in format_selector_report(analyze_selectors(""))


def test_confidence_report():
    report = format_confidence_report(score_confidence(CSS_TEST_CODE))
    assert "**Verdict**: ❌ REJECT" in report
    assert "| selector ❌ |" in report
    assert "## Suggestions" in report


def test_confidence_report_lists_disagreements():
    score = score_confidence(GOOD_TEST_CODE, ScoringContext(samples=(CSS_TEST_CODE,)))
    report = format_confidence_report(score)
    assert "## Disagreements" in report
    assert "**Test Flow**" in report


def test_normalization_report(parsed_journey):
    report = format_normalization_report(normalize_journey(parsed_journey))
    assert report.startswith("# Normalization Report: JRN-0001")
    assert "**Steps**: 3/3 kept (0 dropped)" in report
    assert "- ❌ **AC-2**" in report
    assert "## Blocked Steps" in report
    assert '"Perform the quarterly reconciliation"' in report
