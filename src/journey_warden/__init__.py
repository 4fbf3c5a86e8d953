"""Journey Warden - compile journey steps to Playwright primitives and heal the tests."""

from .healing import evaluate_healing, get_next_fix, run_healing_loop
from .journey import normalize_journey, validate_journey_for_codegen
from .mapping import match_step, suggest_fix
from .uncertainty import score_confidence
from .verify import classify, classify_batch

__version__ = "0.1.0"

__all__ = [
    "classify",
    "classify_batch",
    "evaluate_healing",
    "get_next_fix",
    "match_step",
    "normalize_journey",
    "run_healing_loop",
    "score_confidence",
    "suggest_fix",
    "validate_journey_for_codegen",
]
