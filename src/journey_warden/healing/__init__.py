"""Failure healing: policy, fix strategies and the bounded loop."""

from .fixes import FixContext, FixResult, apply_fix, apply_fix_for
from .log import HealingStatus
from .loop import (
    CancellationToken,
    HealingLoopResult,
    VerifyResult,
    VerifyStatus,
    run_healing_loop,
)
from .rules import (
    DEFAULT_HEALING_RULES,
    HealingConfig,
    evaluate_healing,
    get_next_fix,
)

__all__ = [
    "DEFAULT_HEALING_RULES",
    "CancellationToken",
    "FixContext",
    "FixResult",
    "HealingConfig",
    "HealingLoopResult",
    "HealingStatus",
    "VerifyResult",
    "VerifyStatus",
    "apply_fix",
    "apply_fix_for",
    "evaluate_healing",
    "get_next_fix",
    "run_healing_loop",
]
