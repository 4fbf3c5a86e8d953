"""Classify Playwright failures into healing categories."""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from ..models import FailureCategory, FailureClassification
from .errors import (
    compute_fingerprint,
    detect_error_kind,
    extract_expected_actual,
    extract_location,
    extract_selector,
    first_line,
    split_error_blocks,
    strip_ansi,
)
from .report import TestResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryRule:
    category: FailureCategory
    keywords: tuple[re.Pattern, ...]
    explanation: str
    suggestion: str
    is_test_issue: bool
    extracts_selector: bool = False
    extracts_values: bool = False


def _keywords(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Tried in order; the first category with any matching keyword wins.
CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        FailureCategory.SELECTOR,
        _keywords(
            r"locator\s+resolved\s+to\s+\d+\s+elements",
            r"locator\.click:\s+Error",
            r"waiting\s+for\s+locator",
            r"element\s+is\s+not\s+visible",
            r"element\s+is\s+not\s+attached",
            r"element\s+is\s+not\s+enabled",
            r"getBy\w+\s*\([^)]+\)",
            r"strict\s+mode\s+violation",
            r"No\s+element\s+matches\s+selector",
            r"Target\s+closed",
            r"element\s+is\s+outside\s+of\s+the\s+viewport",
        ),
        "Element locator failed to find or interact with element",
        "Update selector to use more stable locator strategy (role, label, testid)",
        is_test_issue=True,
        extracts_selector=True,
    ),
    CategoryRule(
        FailureCategory.TIMING,
        _keywords(
            r"timeout\s+\d+ms\s+exceeded",
            r"exceeded\s+while\s+waiting",
            r"timed?\s*out",
            r"waiting\s+for\s+navigation",
            r"waiting\s+for\s+load\s+state",
            r"response\s+took\s+too\s+long",
            r"expect\.\w+:\s+Timeout",
            r"navigation\s+was\s+interrupted",
        ),
        "Operation timed out waiting for element or network",
        "Add an explicit wait for the expected state or use a web-first assertion",
        is_test_issue=True,
    ),
    CategoryRule(
        FailureCategory.NAVIGATION,
        _keywords(
            r"expected\s+url.*to.*match",
            r"expected.*toHaveURL",
            r"page\s+has\s+been\s+closed",
            r"navigation\s+failed",
            r"net::ERR_",
            r"ERR_CONNECTION",
            r"ERR_NAME_NOT_RESOLVED",
            r"redirect",
            r"page\.goto:\s+Error",
            r"URL\s+is\s+not\s+valid",
        ),
        "Navigation to URL failed or URL mismatch",
        "Check URL configuration and network connectivity",
        is_test_issue=False,
    ),
    CategoryRule(
        FailureCategory.DATA,
        _keywords(
            r"expected.*to\s+(?:be|equal|match|contain|have)",
            r"received.*but\s+expected",
            r"toEqual",
            r"toBe\(",
            r"toContain",
            r"toHaveText",
            r"toHaveValue",
            r"assertion\s+failed",
            r"expected\s+value",
            r"does\s+not\s+match",
        ),
        "Assertion failed due to unexpected data",
        "Verify test data matches expected application state",
        is_test_issue=False,
        extracts_values=True,
    ),
    CategoryRule(
        FailureCategory.AUTH,
        _keywords(
            r"401\s+Unauthorized",
            r"403\s+Forbidden",
            r"authentication\s+failed",
            r"login\s+failed",
            r"session\s+expired",
            r"token\s+invalid",
            r"access\s+denied",
            r"not\s+authenticated",
            r"sign\s*in\s+required",
            r"invalid\s+credentials",
        ),
        "Authentication or authorization failed",
        "Check authentication state and credentials",
        is_test_issue=False,
    ),
    CategoryRule(
        FailureCategory.ENV,
        _keywords(
            r"ECONNREFUSED",
            r"ENOTFOUND",
            r"ETIMEDOUT",
            r"connection\s+refused",
            r"network\s+error",
            r"502\s+Bad\s+Gateway",
            r"503\s+Service\s+Unavailable",
            r"504\s+Gateway\s+Timeout",
            r"server\s+error",
            r"browser\s+has\s+been\s+closed",
            r"browser\s+crash",
            r"context\s+closed",
        ),
        "Environment or infrastructure issue",
        "Check application availability and environment configuration",
        is_test_issue=False,
    ),
    CategoryRule(
        FailureCategory.SCRIPT,
        _keywords(
            r"SyntaxError",
            r"TypeError",
            r"ReferenceError",
            r"undefined\s+is\s+not",
            r"is\s+not\s+a\s+function",
            r"Cannot\s+read\s+propert",
            r"null\s+is\s+not",
            r"is\s+not\s+defined",
            r"Unexpected\s+token",
        ),
        "Test script has a code error",
        "Fix the JavaScript/TypeScript error in the test",
        is_test_issue=True,
    ),
)


def classify(error_text: str, stack: str | None = None) -> FailureClassification:
    """Classify one error. Never raises; unmatched text is ``unknown``."""
    message_text = strip_ansi(error_text)
    text = f"{message_text}\n{strip_ansi(stack)}" if stack else message_text
    message = first_line(message_text)
    location = extract_location(stack) if stack else None
    location = location or extract_location(message_text)
    kind = detect_error_kind(text)
    selector = extract_selector(text)

    for rule in CATEGORY_RULES:
        matched = tuple(k.pattern for k in rule.keywords if k.search(text))
        if matched:
            break
    else:
        return FailureClassification(
            category=FailureCategory.UNKNOWN,
            confidence=0.0,
            explanation="Unable to classify failure",
            suggestion="Review error details manually",
            is_test_issue=False,
            message=message,
            fingerprint=compute_fingerprint(FailureCategory.UNKNOWN, message, selector or "", location),
            location=location,
            error_kind=kind.value,
        )

    expected, actual = extract_expected_actual(text) if rule.extracts_values else (None, None)
    return FailureClassification(
        category=rule.category,
        confidence=min(len(matched) / 3, 1.0),
        explanation=rule.explanation,
        suggestion=rule.suggestion,
        is_test_issue=rule.is_test_issue,
        message=message,
        fingerprint=compute_fingerprint(rule.category, message, selector or "", location),
        matched_keywords=matched,
        selector=selector if rule.extracts_selector else None,
        expected_value=expected,
        actual_value=actual,
        location=location,
        error_kind=kind.value,
    )


def dedupe(classifications: Iterable[FailureClassification]) -> list[FailureClassification]:
    seen: set[str] = set()
    unique = []
    for c in classifications:
        if c.fingerprint not in seen:
            seen.add(c.fingerprint)
            unique.append(c)
    return unique


def classify_all(output: str | list[str]) -> list[FailureClassification]:
    """Classify every error in runner output, one entry per distinct fingerprint."""
    texts = [output] if isinstance(output, str) else list(output)
    blocks = []
    for text in texts:
        found = split_error_blocks(text)
        if not found and text.strip():
            found = [text.strip()]
        blocks.extend(found)
    return dedupe(classify(block) for block in blocks)


def _no_detail(message: str) -> FailureClassification:
    return FailureClassification(
        category=FailureCategory.UNKNOWN,
        confidence=0.0,
        explanation="Test failed without error details",
        suggestion="Review error details manually",
        is_test_issue=False,
        message=message,
        fingerprint=compute_fingerprint(FailureCategory.UNKNOWN, message),
    )


def classify_test_result(result: TestResult) -> FailureClassification:
    """Primary classification of one failed test: its first distinct error."""
    found = dedupe(classify(e.message, e.stack) for e in result.errors)
    return found[0] if found else _no_detail(f"{result.title} {result.status}")


def classify_batch(results: Iterable[TestResult]) -> dict[str, FailureClassification]:
    """Classify failed and timed-out tests, keyed by title path joined with ' > '."""
    classified = {}
    for result in results:
        if result.status not in ("failed", "timedOut"):
            continue
        classified[result.test_id] = classify_test_result(result)
    logger.debug("Classified %d failing tests", len(classified))
    return classified


@dataclass
class ClassificationSummary:
    total: int = 0
    by_category: dict[str, int] = field(default_factory=dict)
    unique_fingerprints: int = 0
    test_issues: int = 0


def summarize_classifications(classifications: Iterable[FailureClassification]) -> ClassificationSummary:
    items = list(classifications)
    counts = Counter(c.category.value for c in items)
    return ClassificationSummary(
        total=len(items),
        by_category={cat.value: counts.get(cat.value, 0) for cat in FailureCategory},
        unique_fingerprints=len({c.fingerprint for c in items}),
        test_issues=sum(1 for c in items if c.is_test_issue),
    )
