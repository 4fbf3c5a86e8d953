"""Fix strategies, keyed by fix type."""

from typing import Callable

from ...errors import ForbiddenFixError, UnhealableFailureError
from ...models import FORBIDDEN_FIXES, FailureClassification, FixType
from ..rules import UNHEALABLE_CATEGORIES
from .base import FixContext, FixResult, render_locator
from .data import apply_data_fix
from .navigation import apply_navigation_fix
from .selector import add_exact_to_locator, apply_selector_fix
from .timing import apply_timing_fix, convert_to_web_first_assertion, fix_missing_await

FixStrategy = Callable[[str, FixContext], FixResult]

FIX_STRATEGIES: dict[FixType, FixStrategy] = {
    FixType.SELECTOR_REFINE: apply_selector_fix,
    FixType.ADD_EXACT: add_exact_to_locator,
    FixType.MISSING_AWAIT: fix_missing_await,
    FixType.NAVIGATION_WAIT: apply_navigation_fix,
    FixType.WEB_FIRST_ASSERTION: convert_to_web_first_assertion,
    FixType.TIMEOUT_INCREASE: apply_timing_fix,
    FixType.DATA_ISOLATION: apply_data_fix,
}


def apply_fix(fix_type: FixType, code: str, context: FixContext | None = None) -> FixResult:
    """Run one fix strategy. Forbidden fix types raise before anything runs."""
    if fix_type in FORBIDDEN_FIXES:
        raise ForbiddenFixError(fix_type)
    return FIX_STRATEGIES[fix_type](code, context or FixContext())


def apply_fix_for(
    classification: FailureClassification,
    fix_type: FixType,
    code: str,
    context: FixContext | None = None,
) -> FixResult:
    if classification.category in UNHEALABLE_CATEGORIES:
        raise UnhealableFailureError(classification.category)
    return apply_fix(fix_type, code, context)


__all__ = [
    "FIX_STRATEGIES",
    "FixContext",
    "FixResult",
    "apply_fix",
    "apply_fix_for",
    "render_locator",
]
