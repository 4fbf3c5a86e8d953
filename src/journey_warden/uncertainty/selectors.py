"""Stability analysis of the locators present in generated code."""

import re
from collections import Counter
from dataclasses import dataclass, replace
from enum import Enum

from ..ir import LocatorStrategy
from .base import Dimension, DimensionScore, SubScore, clamp, line_of, percent


class SelectorStrategy(Enum):
    TEST_ID = "testId"
    ROLE = "role"
    LABEL = "label"
    PLACEHOLDER = "placeholder"
    TEXT = "text"
    TITLE = "title"
    ALT_TEXT = "altText"
    CSS = "css"
    XPATH = "xpath"
    NTH = "nth"
    CHAIN = "chain"

    @property
    def locator_strategy(self) -> LocatorStrategy | None:
        """The IR strategy this corresponds to, where there is one."""
        return _IR_STRATEGIES.get(self)


S = SelectorStrategy

_IR_STRATEGIES = {
    S.TEST_ID: LocatorStrategy.TESTID,
    S.ROLE: LocatorStrategy.ROLE,
    S.LABEL: LocatorStrategy.LABEL,
    S.PLACEHOLDER: LocatorStrategy.PLACEHOLDER,
    S.TEXT: LocatorStrategy.TEXT,
    S.CSS: LocatorStrategy.CSS,
}

FRAGILE_STRATEGIES = frozenset({S.CSS, S.XPATH, S.NTH})
ACCESSIBLE_STRATEGIES = frozenset({S.ROLE, S.LABEL, S.ALT_TEXT, S.TITLE})
CSS_LIKE = frozenset({S.CSS, S.XPATH, S.CHAIN})


@dataclass(frozen=True)
class SelectorPattern:
    strategy: SelectorStrategy
    pattern: re.Pattern
    stability: float
    modifier: bool = False


def _sp(strategy, regex, stability, modifier=False) -> SelectorPattern:
    return SelectorPattern(strategy, re.compile(regex), stability, modifier=modifier)


# Order matters: the first pattern that claims a span wins, so the specific
# locator() forms come before the generic CSS one. Modifiers never claim.
SELECTOR_PATTERNS: tuple[SelectorPattern, ...] = (
    _sp(S.TEST_ID, r"getByTestId\s*\(\s*['\"]([^'\"]+)['\"]\s*\)", 1.0),
    _sp(S.TEST_ID, r"locator\s*\(\s*['\"]\[data-testid=['\"]?([^'\"\]]+)['\"]?\]['\"]\s*\)", 0.95),
    _sp(S.ROLE, r"getByRole\s*\(\s*['\"]([^'\"]+)['\"](?:\s*,\s*\{[^}]*\})?\s*\)", 0.9),
    _sp(S.LABEL, r"getByLabel\s*\(\s*['\"]([^'\"]+)['\"](?:\s*,\s*\{[^}]*\})?\s*\)", 0.85),
    _sp(S.PLACEHOLDER, r"getByPlaceholder\s*\(\s*['\"]([^'\"]+)['\"](?:\s*,\s*\{[^}]*\})?\s*\)", 0.75),
    _sp(S.TEXT, r"getByText\s*\(\s*['\"]([^'\"]+)['\"](?:\s*,\s*\{[^}]*\})?\s*\)", 0.65),
    _sp(S.TEXT, r"getByText\s*\(\s*/([^/]+)/[a-z]*\s*\)", 0.6),
    _sp(S.TITLE, r"getByTitle\s*\(\s*['\"]([^'\"]+)['\"]\s*\)", 0.7),
    _sp(S.ALT_TEXT, r"getByAltText\s*\(\s*['\"]([^'\"]+)['\"]\s*\)", 0.75),
    _sp(S.XPATH, r"locator\s*\(\s*['\"]xpath=([^'\"]+)['\"]\s*\)", 0.3),
    _sp(S.XPATH, r"locator\s*\(\s*['\"](//[^'\"]+)['\"]\s*\)", 0.3),
    _sp(S.CSS, r"locator\s*\(\s*['\"]([^'\"]+)['\"]\s*\)", 0.5),
    _sp(S.NTH, r"\.nth\s*\(\s*(\d+)\s*\)", 0.4, modifier=True),
    _sp(S.NTH, r"\.(first|last)\s*\(\s*\)", 0.45, modifier=True),
    _sp(S.CHAIN, r"locator\(([^)]+)\)\s*\.\s*locator\s*\(", 0.55, modifier=True),
)

FRAGILITY_INDICATORS = (
    (re.compile(r"\[class[*^$~|]?=", re.I), "Class-based selector (may change)"),
    (re.compile(r"\[id[*^$~|]?=", re.I), "ID-based selector (may be dynamic)"),
    (re.compile(r":nth-child\(\d+\)", re.I), "Position-based selector"),
    (re.compile(r":nth-of-type\(\d+\)", re.I), "Position-based selector"),
    (re.compile(r"\s>\s"), "Direct child combinator (structure-sensitive)"),
    (re.compile(r"\S\s+\S"), "Descendant combinator (structure-sensitive)"),
    (re.compile(r"\[style[*^$~|]?=", re.I), "Style-based selector (highly volatile)"),
    (re.compile(r"\.btn-[a-z]+", re.I), "Framework-specific class (may change)"),
    (re.compile(r"\.col-[a-z0-9-]+", re.I), "Grid class (layout-dependent)"),
)
GENERATED_ID = re.compile(r"auto-generated|generated-id|uuid|guid|[0-9a-f]{8}-[0-9a-f]{4}", re.I)

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
MAX_RECOMMENDATIONS = 10


@dataclass(frozen=True)
class SelectorInfo:
    selector: str
    value: str
    strategy: SelectorStrategy
    stability: float
    specificity: float
    line: int
    fragility_reasons: tuple[str, ...] = ()

    @property
    def is_fragile(self) -> bool:
        return bool(self.fragility_reasons)


@dataclass(frozen=True)
class SelectorRecommendation:
    selector: str
    current: SelectorStrategy
    suggested: SelectorStrategy
    reason: str
    priority: str


@dataclass(frozen=True)
class SelectorAnalysis:
    score: float
    selectors: tuple[SelectorInfo, ...]
    distribution: dict[SelectorStrategy, int]
    stability_score: float
    accessibility_score: float
    recommendations: tuple[SelectorRecommendation, ...]

    @property
    def test_id_ratio(self) -> float:
        total = sum(self.distribution.values())
        return self.distribution[SelectorStrategy.TEST_ID] / total if total else 0.0

    @property
    def fragility_score(self) -> float:
        if not self.selectors:
            return 1.0
        return 1 - sum(1 for s in self.selectors if s.is_fragile) / len(self.selectors)

    @property
    def fragile_strategy_ratio(self) -> float:
        total = sum(self.distribution.values())
        if not total:
            return 0.0
        return sum(self.distribution[s] for s in FRAGILE_STRATEGIES) / total


def fragility_reasons(value: str, strategy: SelectorStrategy) -> list[str]:
    """Why a selector value is likely to break when the page changes."""
    reasons = []
    if strategy in CSS_LIKE:
        reasons += [reason for pattern, reason in FRAGILITY_INDICATORS if pattern.search(value)]
        if len(re.findall(r"[>\s+~]", value)) > 3:
            reasons.append("Too many combinators (deep nesting)")
    if GENERATED_ID.search(value):
        reasons.append("Contains generated ID pattern")
    if len(value) > 100:
        reasons.append("Very long selector (likely over-specified)")
    return list(dict.fromkeys(reasons))


def specificity(value: str, strategy: SelectorStrategy) -> float:
    if strategy is S.CSS:
        return min(1.0, 0.3 + 0.3 * value.count("#") + 0.1 * value.count("."))
    return {
        S.TEST_ID: 1.0,
        S.ROLE: 0.9,
        S.LABEL: 0.85,
        S.ALT_TEXT: 0.85,
        S.PLACEHOLDER: 0.8,
        S.TITLE: 0.8,
        S.TEXT: 0.7,
        S.XPATH: 0.4,
        S.NTH: 0.3,
        S.CHAIN: 0.5,
    }[strategy]


def extract_selectors(code: str) -> list[SelectorInfo]:
    found: list[tuple[int, SelectorInfo]] = []
    claimed: list[tuple[int, int]] = []

    for sp in SELECTOR_PATTERNS:
        for m in sp.pattern.finditer(code):
            if not sp.modifier:
                if any(m.start() < end and start < m.end() for start, end in claimed):
                    continue
                claimed.append(m.span())
            value = m.group(1)
            reasons = fragility_reasons(value, sp.strategy)
            stability = sp.stability * (1 - 0.1 * len(reasons))
            found.append((m.start(), SelectorInfo(
                selector=m.group(0),
                value=value,
                strategy=sp.strategy,
                stability=max(0.0, stability),
                specificity=specificity(value, sp.strategy),
                line=line_of(code, m.start()),
                fragility_reasons=tuple(reasons),
            )))

    found.sort(key=lambda item: item[0])
    return [info for _, info in found]


def recommend(selectors: list[SelectorInfo]) -> list[SelectorRecommendation]:
    out = []
    for s in selectors:
        if s.strategy in (S.CSS, S.XPATH):
            out.append(SelectorRecommendation(
                s.selector, s.strategy, S.TEST_ID,
                "CSS/XPath selectors are fragile. Add data-testid to the element.", "high",
            ))
        if s.strategy is S.NTH:
            out.append(SelectorRecommendation(
                s.selector, s.strategy, S.ROLE,
                "Position-based selectors break when order changes. Use role with name.", "medium",
            ))
        if s.is_fragile and s.strategy is not S.TEST_ID:
            out.append(SelectorRecommendation(
                s.selector, s.strategy, S.TEST_ID,
                f"Fragile selector: {', '.join(s.fragility_reasons)}", "high",
            ))
        if s.strategy is S.TEXT:
            out.append(SelectorRecommendation(
                s.selector, s.strategy, S.ROLE,
                "Text selectors break on content changes. Use role for stability.", "low",
            ))
    out.sort(key=lambda r: PRIORITY_ORDER[r.priority])
    return out[:MAX_RECOMMENDATIONS]


def analyze_selectors(code: str) -> SelectorAnalysis:
    """Score every locator that appears literally in the code.

    With no locators at all the score is a neutral 0.5.
    """
    selectors = extract_selectors(code)
    counts = Counter(s.strategy for s in selectors)
    distribution = {strategy: counts.get(strategy, 0) for strategy in SelectorStrategy}

    if selectors:
        stability = sum(s.stability for s in selectors) / len(selectors)
        accessibility = sum(1 for s in selectors if s.strategy in ACCESSIBLE_STRATEGIES) / len(selectors)
    else:
        stability = accessibility = 0.5

    analysis = SelectorAnalysis(
        score=0.5,
        selectors=tuple(selectors),
        distribution=distribution,
        stability_score=stability,
        accessibility_score=accessibility,
        recommendations=tuple(recommend(selectors)),
    )
    if not selectors:
        return analysis

    score = (
        0.4 * stability
        + 0.2 * accessibility
        + 0.25 * analysis.test_id_ratio
        + 0.15 * analysis.fragility_score
    )
    if analysis.fragile_strategy_ratio > 0.5:
        score *= 0.8
    return replace(analysis, score=clamp(score))


def uses_recommended_selectors(code: str) -> bool:
    return bool(re.search(r"getByTestId|data-testid|getByRole", code))


def identify_strategy(selector_code: str) -> SelectorStrategy:
    for sp in SELECTOR_PATTERNS:
        if sp.pattern.search(selector_code):
            return sp.strategy
    return S.CSS


def is_selector_fragile(selector: str) -> bool:
    return bool(fragility_reasons(selector, S.CSS))


def _reasoning(result: SelectorAnalysis) -> str:
    total = len(result.selectors)
    if not total:
        return "No selectors found in code"

    reasons = []
    test_ids = result.distribution[S.TEST_ID]
    roles = result.distribution[S.ROLE]
    fragile_strategies = sum(result.distribution[s] for s in FRAGILE_STRATEGIES)
    if test_ids > total * 0.5:
        reasons.append("Good test-id coverage")
    elif test_ids < total * 0.2:
        reasons.append("Low test-id usage")
    if roles:
        reasons.append(f"{roles} role-based selectors (accessible)")
    if fragile_strategies > total * 0.3:
        reasons.append(f"{fragile_strategies} fragile selectors (CSS/XPath/nth)")
    fragile = sum(1 for s in result.selectors if s.is_fragile)
    if fragile:
        reasons.append(f"{fragile} selectors with fragility issues")
    if result.stability_score > 0.8:
        reasons.append("High stability")
    elif result.stability_score < 0.5:
        reasons.append("Low stability")
    return "; ".join(reasons)


def selector_dimension(result: SelectorAnalysis, weight: float = 0.30) -> DimensionScore:
    fragile = sum(1 for s in result.selectors if s.is_fragile)
    return DimensionScore(
        dimension=Dimension.SELECTOR,
        score=result.score,
        weight=weight,
        reasoning=_reasoning(result),
        sub_scores=(
            SubScore("Stability", result.stability_score, f"Stability: {percent(result.stability_score)}"),
            SubScore("Accessibility", result.accessibility_score,
                     f"A11y: {percent(result.accessibility_score)}"),
            SubScore("TestId Usage", result.test_id_ratio,
                     f"TestId: {result.distribution[S.TEST_ID]} selectors"),
            SubScore("Fragility", result.fragility_score, f"{fragile} fragile selectors"),
        ),
    )
