"""Journey normalization and format checks."""

from .normalize import (
    BlockedStep,
    NormalizationResult,
    NormalizeOptions,
    normalize_journey,
    validate_journey_for_codegen,
)
from .validator import apply_auto_fixes, validate_journey_format

__all__ = [
    "BlockedStep",
    "NormalizationResult",
    "NormalizeOptions",
    "apply_auto_fixes",
    "normalize_journey",
    "validate_journey_for_codegen",
    "validate_journey_format",
]
