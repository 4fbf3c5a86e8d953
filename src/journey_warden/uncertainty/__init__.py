"""Confidence scoring for generated Playwright tests."""

from .agreement import AgreementResult, calculate_agreement
from .base import Dimension, DimensionScore
from .patterns import BUILTIN_CODE_PATTERNS, CodePattern, match_code_patterns
from .scorer import (
    ConfidenceScore,
    ScoringContext,
    ScoringOptions,
    Verdict,
    get_blocking_issues,
    passes_minimum_confidence,
    quick_confidence_check,
    score_confidence,
)
from .selectors import SelectorStrategy, analyze_selectors
from .syntax import validate_syntax

__all__ = [
    "BUILTIN_CODE_PATTERNS",
    "AgreementResult",
    "CodePattern",
    "ConfidenceScore",
    "Dimension",
    "DimensionScore",
    "ScoringContext",
    "ScoringOptions",
    "SelectorStrategy",
    "Verdict",
    "analyze_selectors",
    "calculate_agreement",
    "get_blocking_issues",
    "match_code_patterns",
    "passes_minimum_confidence",
    "quick_confidence_check",
    "score_confidence",
    "validate_syntax",
]
