"""Match generated code against known Playwright code patterns."""

import re
from dataclasses import dataclass
from enum import Enum

from ..mapping.glossary import Glossary
from .base import Dimension, DimensionScore, SubScore, clamp, line_of, percent


class PatternCategory(Enum):
    NAVIGATION = "navigation"
    INTERACTION = "interaction"
    ASSERTION = "assertion"
    WAIT = "wait"
    FORM = "form"
    AUTHENTICATION = "authentication"
    DATA = "data"
    UTILITY = "utility"


class PatternSource(Enum):
    BUILTIN = "builtin"
    GLOSSARY = "glossary"
    LEARNED = "learned"


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class CodePattern:
    id: str
    name: str
    category: PatternCategory
    patterns: tuple[re.Pattern, ...]
    confidence: float
    source: PatternSource = PatternSource.BUILTIN


def _builtin(id: str, name: str, category: PatternCategory, confidence: float, *regexes: str,
             flags: int = 0) -> CodePattern:
    return CodePattern(id, name, category, tuple(re.compile(r, flags) for r in regexes), confidence)


C = PatternCategory

BUILTIN_CODE_PATTERNS: tuple[CodePattern, ...] = (
    _builtin("nav-goto", "Page Navigation", C.NAVIGATION, 0.95, r"page\.goto\s*\("),
    _builtin("nav-reload", "Page Reload", C.NAVIGATION, 0.95, r"page\.reload\s*\("),
    _builtin("nav-back", "Navigate Back", C.NAVIGATION, 0.95,
             r"page\.goBack\s*\(", r"page\.goForward\s*\("),
    _builtin("click-locator", "Locator Click", C.INTERACTION, 0.9,
             r"\.click\s*\(\s*\)", r"locator\([^)]+\)\.click"),
    _builtin("fill-locator", "Locator Fill", C.INTERACTION, 0.9,
             r"\.fill\s*\([^)]+\)", r"locator\([^)]+\)\.fill"),
    _builtin("type-locator", "Locator Type", C.INTERACTION, 0.85,
             r"\.pressSequentially\s*\(", r"\.type\s*\("),
    _builtin("select-option", "Select Option", C.INTERACTION, 0.9, r"\.selectOption\s*\("),
    _builtin("check-uncheck", "Checkbox Toggle", C.INTERACTION, 0.9,
             r"\.check\s*\(\s*\)", r"\.uncheck\s*\(\s*\)", r"\.setChecked\s*\("),
    _builtin("hover", "Hover Action", C.INTERACTION, 0.9, r"\.hover\s*\(\s*\)"),
    _builtin("focus", "Focus Element", C.INTERACTION, 0.9, r"\.focus\s*\(\s*\)"),
    _builtin("keyboard", "Keyboard Action", C.INTERACTION, 0.85,
             r"\.press\s*\(['\"]", r"keyboard\.press\s*\("),
    _builtin("upload", "File Upload", C.INTERACTION, 0.85, r"\.setInputFiles\s*\("),
    _builtin("expect-visible", "Visibility Assertion", C.ASSERTION, 0.95,
             r"expect\([^)]+\)\.toBeVisible", r"expect\([^)]+\)\.toBeHidden"),
    _builtin("expect-text", "Text Assertion", C.ASSERTION, 0.9,
             r"expect\([^)]+\)\.toHaveText", r"expect\([^)]+\)\.toContainText"),
    _builtin("expect-value", "Value Assertion", C.ASSERTION, 0.9, r"expect\([^)]+\)\.toHaveValue"),
    _builtin("expect-url", "URL Assertion", C.ASSERTION, 0.95, r"expect\(page\)\.toHaveURL"),
    _builtin("expect-title", "Title Assertion", C.ASSERTION, 0.95, r"expect\(page\)\.toHaveTitle"),
    _builtin("expect-count", "Count Assertion", C.ASSERTION, 0.9, r"expect\([^)]+\)\.toHaveCount"),
    _builtin("expect-enabled", "Enabled State Assertion", C.ASSERTION, 0.9,
             r"expect\([^)]+\)\.toBeEnabled", r"expect\([^)]+\)\.toBeDisabled"),
    _builtin("expect-checked", "Checked State Assertion", C.ASSERTION, 0.9,
             r"expect\([^)]+\)\.toBeChecked"),
    _builtin("expect-attribute", "Attribute Assertion", C.ASSERTION, 0.85,
             r"expect\([^)]+\)\.toHaveAttribute"),
    _builtin("wait-locator", "Wait for Locator", C.WAIT, 0.85,
             r"\.waitFor\s*\(\s*\{", r"locator\.waitFor"),
    _builtin("wait-load-state", "Wait for Load State", C.WAIT, 0.9, r"page\.waitForLoadState\s*\("),
    _builtin("wait-url", "Wait for URL", C.WAIT, 0.9, r"page\.waitForURL\s*\("),
    _builtin("wait-response", "Wait for Response", C.WAIT, 0.9, r"page\.waitForResponse\s*\("),
    _builtin("wait-request", "Wait for Request", C.WAIT, 0.9, r"page\.waitForRequest\s*\("),
    _builtin("form-submit", "Form Submit", C.FORM, 0.85,
             r"getByRole\(['\"]button['\"].*submit", r"type=['\"]submit['\"]", flags=re.I),
    _builtin("table-row", "Table Row Access", C.DATA, 0.85,
             r"getByRole\(['\"]row['\"]", r"locator\(['\"]tr['\"]\)"),
    _builtin("table-cell", "Table Cell Access", C.DATA, 0.85,
             r"getByRole\(['\"]cell['\"]", r"locator\(['\"]td['\"]\)"),
    _builtin("screenshot", "Screenshot", C.UTILITY, 0.95, r"page\.screenshot\s*\("),
    _builtin("test-step", "Test Step", C.UTILITY, 0.95, r"test\.step\s*\("),
)

del C

MODULE_CATEGORIES = {
    "auth": PatternCategory.AUTHENTICATION,
    "navigation": PatternCategory.NAVIGATION,
    "forms": PatternCategory.FORM,
    "waits": PatternCategory.WAIT,
    "data": PatternCategory.DATA,
}

HIGH_RISK_METHODS = frozenset({"evaluate", "evaluateHandle", "addScriptTag", "setContent"})
MEDIUM_RISK_METHODS = frozenset({"waitForTimeout", "waitForFunction", "route", "unroute"})

ACTION_CALLS = (
    (re.compile(r"page\.(\w+)\s*\("), "page method"),
    (re.compile(r"locator\([^)]+\)\.(\w+)\s*\("), "locator method"),
    (re.compile(r"getBy\w+\([^)]+\)\.(\w+)\s*\("), "locator method"),
    (re.compile(r"expect\([^)]+\)\.(\w+)"), "assertion"),
)


@dataclass(frozen=True)
class MatchedPattern:
    pattern_id: str
    name: str
    category: PatternCategory
    confidence: float
    line: int
    source: PatternSource


@dataclass(frozen=True)
class UnmatchedCall:
    element: str
    reason: str
    suggested_patterns: tuple[str, ...]
    risk: RiskLevel


@dataclass(frozen=True)
class PatternMatchResult:
    score: float
    matched: tuple[MatchedPattern, ...]
    unmatched: tuple[UnmatchedCall, ...]
    novelty_score: float
    consistency_score: float


def glossary_patterns(glossary: Glossary) -> tuple[CodePattern, ...]:
    """Code patterns for the module methods a glossary maps steps onto.

    ``auth.login`` matches calls such as ``auth.login(page)`` and
    ``authModule.login(page, user)``.
    """
    out = []
    for target in sorted(set(glossary.module_methods.values())):
        module, _, method = target.partition(".")
        if not method:
            continue
        regex = re.compile(rf"\b{re.escape(module)}\w*\.{re.escape(method)}\s*\(", re.I)
        out.append(CodePattern(
            id=f"module-{module}-{method}",
            name=f"{module}.{method}",
            category=MODULE_CATEGORIES.get(module.lower(), PatternCategory.UTILITY),
            patterns=(regex,),
            confidence=0.9,
            source=PatternSource.GLOSSARY,
        ))
    return tuple(out)


def risk_level(method: str) -> RiskLevel:
    if method in HIGH_RISK_METHODS:
        return RiskLevel.HIGH
    if method in MEDIUM_RISK_METHODS:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _suggest_patterns(method: str, patterns: list[CodePattern]) -> tuple[str, ...]:
    lowered = method.lower()
    hits = [
        p.name for p in patterns
        if any(lowered in regex.pattern.lower() for regex in p.patterns)
    ]
    return tuple(hits[:3])


def find_unmatched_calls(
    code: str, matched: list[MatchedPattern], patterns: list[CodePattern]
) -> list[UnmatchedCall]:
    """Calls on lines that no known pattern covers, one entry per distinct call."""
    covered = {m.line for m in matched}
    seen: set[str] = set()
    out = []
    for regex, kind in ACTION_CALLS:
        for m in regex.finditer(code):
            if line_of(code, m.start()) in covered:
                continue
            method = m.group(1)
            element = f"{kind}: {method}"
            if element in seen:
                continue
            seen.add(element)
            out.append(UnmatchedCall(
                element=element,
                reason="No matching pattern found",
                suggested_patterns=_suggest_patterns(method, patterns),
                risk=risk_level(method),
            ))
    return out


def novelty_score(matched: list[MatchedPattern]) -> float:
    """0.5 plus half the share of matches that came from learned or glossary patterns."""
    if not matched:
        return 0.5
    learned = sum(1 for m in matched if m.source is not PatternSource.BUILTIN)
    return 0.5 + 0.5 * learned / len(matched)


def consistency_score(matched: list[MatchedPattern]) -> float:
    if len(matched) < 2:
        return 1.0
    transitions = sum(1 for a, b in zip(matched, matched[1:]) if a.category is not b.category)
    return max(0.6, 1 - 0.4 * transitions / (len(matched) - 1))


def _pattern_score(
    matched: list[MatchedPattern], unmatched: list[UnmatchedCall], novelty: float, consistency: float
) -> float:
    avg_confidence = sum(m.confidence for m in matched) / len(matched) if matched else 0.5
    high = sum(1 for u in unmatched if u.risk is RiskLevel.HIGH)
    medium = sum(1 for u in unmatched if u.risk is RiskLevel.MEDIUM)
    risk_penalty = 0.15 * high + 0.05 * medium

    score = 0.4 * avg_confidence + 0.2 * novelty + 0.2 * consistency + 0.2 * (1 - risk_penalty)
    if len(matched) < 3:
        score *= 0.8
    return clamp(score)


def match_code_patterns(
    code: str,
    extra_patterns: tuple[CodePattern, ...] = (),
    include_builtins: bool = True,
) -> PatternMatchResult:
    """Match code against the builtin registry plus any extra patterns.

    Each pattern counts at most once per line. Matches are kept in
    registry order.
    """
    patterns = [*(BUILTIN_CODE_PATTERNS if include_builtins else ()), *extra_patterns]
    matched: list[MatchedPattern] = []
    seen: set[tuple[str, int]] = set()

    for pattern in patterns:
        for regex in pattern.patterns:
            for m in regex.finditer(code):
                line = line_of(code, m.start())
                if (pattern.id, line) in seen:
                    continue
                seen.add((pattern.id, line))
                matched.append(MatchedPattern(
                    pattern.id, pattern.name, pattern.category, pattern.confidence, line, pattern.source
                ))

    unmatched = find_unmatched_calls(code, matched, patterns)
    novelty = novelty_score(matched)
    consistency = consistency_score(matched)
    return PatternMatchResult(
        score=_pattern_score(matched, unmatched, novelty, consistency),
        matched=tuple(matched),
        unmatched=tuple(unmatched),
        novelty_score=novelty,
        consistency_score=consistency,
    )


def category_counts(matched: tuple[MatchedPattern, ...]) -> dict[PatternCategory, int]:
    counts = {category: 0 for category in PatternCategory}
    for m in matched:
        counts[m.category] += 1
    return counts


def has_minimum_patterns(
    matched: tuple[MatchedPattern, ...], requirements: dict[PatternCategory, int]
) -> bool:
    counts = category_counts(matched)
    return all(counts[category] >= n for category, n in requirements.items())


def _reasoning(result: PatternMatchResult) -> str:
    count = len(result.matched)
    if count == 0:
        reasons = ["No recognized patterns found"]
    elif count < 5:
        reasons = [f"{count} patterns matched (low coverage)"]
    else:
        reasons = [f"{count} patterns matched"]

    learned = sum(1 for m in result.matched if m.source is not PatternSource.BUILTIN)
    if learned:
        reasons.append(f"{learned} glossary or learned patterns used")
    high = sum(1 for u in result.unmatched if u.risk is RiskLevel.HIGH)
    if high:
        reasons.append(f"{high} high-risk unmatched calls")
    if result.consistency_score < 0.7:
        reasons.append("Pattern usage inconsistent")
    return "; ".join(reasons)


def pattern_dimension(result: PatternMatchResult, weight: float = 0.25) -> DimensionScore:
    return DimensionScore(
        dimension=Dimension.PATTERN,
        score=result.score,
        weight=weight,
        reasoning=_reasoning(result),
        sub_scores=(
            SubScore("Pattern Coverage", min(1.0, len(result.matched) / 10),
                     f"{len(result.matched)} patterns matched"),
            SubScore("Novelty", result.novelty_score, f"Novelty score: {percent(result.novelty_score)}"),
            SubScore("Consistency", result.consistency_score,
                     f"Consistency score: {percent(result.consistency_score)}"),
            SubScore("Unmatched Risk", max(0.0, 1 - 0.2 * len(result.unmatched)),
                     f"{len(result.unmatched)} unmatched calls"),
        ),
    )
