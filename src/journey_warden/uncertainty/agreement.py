"""Agreement between independently generated candidates for the same journey."""

import re
from collections import Counter
from dataclasses import dataclass, field

from .base import Dimension, DimensionScore, SubScore

NEUTRAL_AGREEMENT = 0.7

STRATEGY_MARKERS = (
    ("testId", re.compile(r"getByTestId")),
    ("role", re.compile(r"getByRole")),
    ("text", re.compile(r"getByText")),
    ("label", re.compile(r"getByLabel")),
    ("css", re.compile(r"locator\(")),
)

FLOW_MARKERS = (
    ("navigate", re.compile(r"page\.goto")),
    ("click", re.compile(r"\.click")),
    ("fill", re.compile(r"\.fill")),
    ("select", re.compile(r"\.selectOption")),
    ("wait", re.compile(r"waitFor")),
    ("assert", re.compile(r"expect\(")),
)

ASSERTION = re.compile(r"expect\([^)]+\)\.(\w+)")


@dataclass(frozen=True)
class CodeFeatures:
    test_count: int
    step_count: int
    strategies: tuple[str, ...]
    assertions: tuple[str, ...]
    flow: str

    @property
    def shape(self) -> tuple[int, int, str]:
        return self.test_count, self.step_count, self.flow


@dataclass(frozen=True)
class DisagreementArea:
    area: str
    variants: tuple[str, ...]
    votes: dict[str, int]
    confidence: float


@dataclass(frozen=True)
class AgreementResult:
    score: float
    sample_count: int
    structural: float
    selector: float
    flow: float
    assertion: float
    consensus_index: int | None = None
    consensus_code: str | None = None
    disagreements: tuple[DisagreementArea, ...] = field(default_factory=tuple)


def extract_features(code: str) -> CodeFeatures:
    return CodeFeatures(
        test_count=len(re.findall(r"test\s*\(", code)),
        step_count=len(re.findall(r"test\.step\s*\(", code)),
        strategies=tuple(name for name, marker in STRATEGY_MARKERS if marker.search(code)),
        assertions=tuple(ASSERTION.findall(code)),
        flow="->".join(name for name, marker in FLOW_MARKERS if marker.search(code)),
    )


def jaccard(a: set[str], b: set[str]) -> float:
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def value_agreement(values: list[int]) -> float:
    top = max(values)
    return 1.0 if top == 0 else min(values) / top


def _pairwise(features: list[CodeFeatures], key) -> float:
    pairs = [
        jaccard(set(key(a)), set(key(b)))
        for i, a in enumerate(features)
        for b in features[i + 1:]
    ]
    return sum(pairs) / len(pairs)


def _majority(values: list[str]) -> float:
    return Counter(values).most_common(1)[0][1] / len(values)


def _area(name: str, values: list[str], total: int) -> DisagreementArea | None:
    votes = Counter(values)
    if len(votes) < 2:
        return None
    return DisagreementArea(
        area=name,
        variants=tuple(votes),
        votes=dict(votes),
        confidence=max(votes.values()) / total,
    )


def find_disagreements(features: list[CodeFeatures]) -> list[DisagreementArea]:
    total = len(features)
    areas = [
        _area("Selector Strategies", [",".join(f.strategies) for f in features], total),
        _area("Test Flow", [f.flow for f in features], total),
        _area("Assertions", [",".join(sorted(set(f.assertions))) for f in features], total),
    ]
    return [a for a in areas if a is not None]


def select_consensus(features: list[CodeFeatures]) -> int:
    """Index of the first sample whose shape is the most common one."""
    shapes = [f.shape for f in features]
    winner, _ = Counter(shapes).most_common(1)[0]
    return shapes.index(winner)


def calculate_agreement(samples: list[str]) -> AgreementResult:
    """Compare candidate programs for structural, selector, flow and assertion agreement.

    Fewer than two samples cannot disagree with anything, so the score is
    the neutral value rather than a perfect one.
    """
    if len(samples) < 2:
        return AgreementResult(
            score=NEUTRAL_AGREEMENT,
            sample_count=len(samples),
            structural=NEUTRAL_AGREEMENT,
            selector=NEUTRAL_AGREEMENT,
            flow=NEUTRAL_AGREEMENT,
            assertion=NEUTRAL_AGREEMENT,
            consensus_index=0 if samples else None,
            consensus_code=samples[0] if samples else None,
        )

    features = [extract_features(code) for code in samples]
    structural = (
        value_agreement([f.test_count for f in features])
        + value_agreement([f.step_count for f in features])
    ) / 2
    selector = _pairwise(features, lambda f: f.strategies)
    flow = _majority([f.flow for f in features])
    assertion = _pairwise(features, lambda f: f.assertions)
    consensus = select_consensus(features)

    return AgreementResult(
        score=0.3 * structural + 0.3 * selector + 0.2 * flow + 0.2 * assertion,
        sample_count=len(samples),
        structural=structural,
        selector=selector,
        flow=flow,
        assertion=assertion,
        consensus_index=consensus,
        consensus_code=samples[consensus],
        disagreements=tuple(find_disagreements(features)),
    )


def agreement_dimension(result: AgreementResult, weight: float = 0.20) -> DimensionScore:
    if result.sample_count < 2:
        return DimensionScore(Dimension.AGREEMENT, result.score, weight, "Multi-sampling not used")
    return DimensionScore(
        dimension=Dimension.AGREEMENT,
        score=result.score,
        weight=weight,
        reasoning=f"Agreement across {result.sample_count} samples",
        sub_scores=(
            SubScore("Structural", result.structural),
            SubScore("Selector", result.selector),
            SubScore("Flow", result.flow),
            SubScore("Assertion", result.assertion),
        ),
    )
