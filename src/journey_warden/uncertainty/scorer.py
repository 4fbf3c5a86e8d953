"""Multi-dimensional confidence scoring for generated test code."""

import logging
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from ..mapping.glossary import DEFAULT_GLOSSARY, Glossary
from .agreement import AgreementResult, agreement_dimension, calculate_agreement
from .base import Dimension, DimensionScore, percent
from .patterns import CodePattern, glossary_patterns, match_code_patterns, pattern_dimension
from .selectors import analyze_selectors, selector_dimension
from .syntax import syntax_dimension, validate_syntax

logger = logging.getLogger(__name__)

SUGGESTION_BELOW = 0.7
RISK_BELOW = 0.5
MAX_SUGGESTIONS = 5

SUGGESTIONS = {
    Dimension.SYNTAX: (
        "Fix parse errors in the generated code",
        "Use proper Playwright imports",
        "Ensure all brackets are balanced",
    ),
    Dimension.PATTERN: (
        "Use recognized Playwright patterns",
        "Follow established test structure",
        "Add test.step() for better organization",
    ),
    Dimension.SELECTOR: (
        "Use data-testid attributes for stability",
        "Prefer getByRole for accessibility",
        "Avoid CSS selectors with class names",
    ),
    Dimension.AGREEMENT: (
        "Increase sample count for better consensus",
        "Review disagreement areas manually",
    ),
}


class Verdict(Enum):
    ACCEPT = "ACCEPT"
    REVIEW = "REVIEW"
    REJECT = "REJECT"


class DimensionWeights(BaseModel):
    syntax: float = Field(0.25, ge=0)
    pattern: float = Field(0.25, ge=0)
    selector: float = Field(0.30, ge=0)
    agreement: float = Field(0.20, ge=0)

    @model_validator(mode="after")
    def _sum_to_one(self):
        total = self.syntax + self.pattern + self.selector + self.agreement
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Dimension weights must sum to 1.0, got {total:.3f}")
        return self


class ScoringThresholds(BaseModel):
    overall: float = Field(0.7, ge=0, le=1)
    block_on_any_below: float = Field(0.4, ge=0, le=1)
    syntax_floor: float = Field(0.9, ge=0, le=1)


class ScoringOptions(BaseModel):
    """Weights and thresholds for the confidence verdict."""

    weights: DimensionWeights = Field(default_factory=DimensionWeights)
    thresholds: ScoringThresholds = Field(default_factory=ScoringThresholds)


@dataclass(frozen=True)
class ScoringContext:
    """Optional inputs beyond the code itself.

    ``samples`` are alternative candidates for the same journey; when given,
    agreement is measured across the scored code and the samples.
    """

    samples: tuple[str, ...] = ()
    glossary: Glossary = DEFAULT_GLOSSARY
    extra_patterns: tuple[CodePattern, ...] = ()


@dataclass(frozen=True)
class Diagnostics:
    lowest: tuple[Dimension, float]
    highest: tuple[Dimension, float]
    suggestions: tuple[str, ...] = ()
    risk_areas: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConfidenceScore:
    overall: float
    dimensions: tuple[DimensionScore, ...]
    threshold: ScoringThresholds
    verdict: Verdict
    blocked_dimensions: tuple[Dimension, ...]
    diagnostics: Diagnostics
    agreement: AgreementResult | None = field(default=None, compare=False)

    def dimension(self, dimension: Dimension) -> DimensionScore:
        return next(d for d in self.dimensions if d.dimension is dimension)

    def to_dict(self) -> dict:
        data = {
            "overall": round(self.overall, 4),
            "verdict": self.verdict.value,
            "threshold": self.threshold.model_dump(),
            "blockedDimensions": [d.value for d in self.blocked_dimensions],
            "dimensions": [d.to_dict() for d in self.dimensions],
            "diagnostics": {
                "lowest": {"name": self.diagnostics.lowest[0].value,
                           "score": round(self.diagnostics.lowest[1], 4)},
                "highest": {"name": self.diagnostics.highest[0].value,
                            "score": round(self.diagnostics.highest[1], 4)},
                "suggestions": list(self.diagnostics.suggestions),
                "riskAreas": list(self.diagnostics.risk_areas),
            },
        }
        if self.agreement and self.agreement.disagreements:
            data["disagreements"] = [
                {"area": a.area, "votes": a.votes, "confidence": round(a.confidence, 4)}
                for a in self.agreement.disagreements
            ]
        return data


def overall_score(dimensions: tuple[DimensionScore, ...]) -> float:
    total_weight = sum(d.weight for d in dimensions)
    if not total_weight:
        return 0.0
    return sum(d.score * d.weight for d in dimensions) / total_weight


def blocked_dimensions(
    dimensions: tuple[DimensionScore, ...], thresholds: ScoringThresholds
) -> tuple[Dimension, ...]:
    """Dimensions that force a rejection whatever the weighted average says."""
    blocked = []
    for d in dimensions:
        if d.score < thresholds.block_on_any_below:
            blocked.append(d.dimension)
        elif d.dimension is Dimension.SYNTAX and d.score < thresholds.syntax_floor:
            blocked.append(d.dimension)
    return tuple(blocked)


def determine_verdict(overall: float, blocked: tuple[Dimension, ...], thresholds: ScoringThresholds) -> Verdict:
    if blocked:
        return Verdict.REJECT
    if overall >= thresholds.overall:
        return Verdict.ACCEPT
    return Verdict.REVIEW


def build_diagnostics(dimensions: tuple[DimensionScore, ...]) -> Diagnostics:
    ranked = sorted(dimensions, key=lambda d: d.score)
    suggestions = [s for d in dimensions if d.score < SUGGESTION_BELOW for s in SUGGESTIONS[d.dimension]]
    risks = [
        f"Low {d.dimension.value} score ({percent(d.score)})"
        for d in dimensions
        if d.score < RISK_BELOW
    ]
    return Diagnostics(
        lowest=(ranked[0].dimension, ranked[0].score),
        highest=(ranked[-1].dimension, ranked[-1].score),
        suggestions=tuple(suggestions[:MAX_SUGGESTIONS]),
        risk_areas=tuple(risks),
    )


def score_confidence(
    code: str,
    context: ScoringContext | None = None,
    options: ScoringOptions | None = None,
) -> ConfidenceScore:
    """Score generated code on syntax, patterns, selectors and agreement.

    A dimension below ``block_on_any_below``, or syntax below its own
    floor, rejects the code regardless of the weighted overall score.
    """
    context = context or ScoringContext()
    options = options or ScoringOptions()
    weights = options.weights

    extra = glossary_patterns(context.glossary) + context.extra_patterns
    agreement = calculate_agreement([code, *context.samples])

    dimensions = (
        syntax_dimension(validate_syntax(code), weights.syntax),
        pattern_dimension(match_code_patterns(code, extra), weights.pattern),
        selector_dimension(analyze_selectors(code), weights.selector),
        agreement_dimension(agreement, weights.agreement),
    )
    overall = overall_score(dimensions)
    blocked = blocked_dimensions(dimensions, options.thresholds)
    verdict = determine_verdict(overall, blocked, options.thresholds)
    logger.debug(
        "Confidence %.3f (%s): %s", overall, verdict.value,
        ", ".join(f"{d.dimension.value}={d.score:.2f}" for d in dimensions),
    )

    return ConfidenceScore(
        overall=overall,
        dimensions=dimensions,
        threshold=options.thresholds,
        verdict=verdict,
        blocked_dimensions=blocked,
        diagnostics=build_diagnostics(dimensions),
        agreement=agreement,
    )


def quick_confidence_check(code: str, dimension: Dimension) -> float:
    """Score one dimension on its own."""
    if dimension is Dimension.SYNTAX:
        return validate_syntax(code).score
    if dimension is Dimension.PATTERN:
        return match_code_patterns(code).score
    if dimension is Dimension.SELECTOR:
        return analyze_selectors(code).score
    return calculate_agreement([code]).score


def passes_minimum_confidence(code: str, min_overall: float = 0.7, min_per_dimension: float = 0.4) -> bool:
    scores = [
        validate_syntax(code).score,
        match_code_patterns(code).score,
        analyze_selectors(code).score,
    ]
    if any(s < min_per_dimension for s in scores):
        return False
    return sum(scores) / len(scores) >= min_overall


def get_blocking_issues(code: str, options: ScoringOptions | None = None) -> list[str]:
    """Human-readable reasons this code would be rejected."""
    options = options or ScoringOptions()
    issues = []

    syntax = validate_syntax(code)
    if syntax.errors:
        issues.append(f"{len(syntax.errors)} syntax error(s)")
    selectors = analyze_selectors(code)
    fragile = sum(1 for s in selectors.selectors if s.is_fragile)
    if fragile > len(selectors.selectors) * 0.5:
        issues.append(f"{fragile} fragile selector(s)")

    score = score_confidence(code, options=options)
    for dimension in score.blocked_dimensions:
        d = score.dimension(dimension)
        floor = options.thresholds.block_on_any_below
        if dimension is Dimension.SYNTAX and d.score >= floor:
            floor = options.thresholds.syntax_floor
        issues.append(f"{dimension.value} score {percent(d.score)} is below {percent(floor)}")
    return issues
