"""Shared types for confidence scoring."""

from dataclasses import dataclass
from enum import Enum


class Dimension(Enum):
    SYNTAX = "syntax"
    PATTERN = "pattern"
    SELECTOR = "selector"
    AGREEMENT = "agreement"


@dataclass(frozen=True)
class SubScore:
    name: str
    score: float
    details: str = ""


@dataclass(frozen=True)
class DimensionScore:
    """One scored dimension together with the evidence behind it."""

    dimension: Dimension
    score: float
    weight: float
    reasoning: str
    sub_scores: tuple[SubScore, ...] = ()

    def to_dict(self) -> dict:
        return {
            "dimension": self.dimension.value,
            "score": round(self.score, 4),
            "weight": self.weight,
            "reasoning": self.reasoning,
            "subScores": [
                {"name": s.name, "score": round(s.score, 4), "details": s.details}
                for s in self.sub_scores
            ],
        }


def clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def line_of(text: str, index: int) -> int:
    """1-based line number of a character offset."""
    return text.count("\n", 0, index) + 1


def percent(value: float) -> str:
    return f"{round(value * 100)}%"
