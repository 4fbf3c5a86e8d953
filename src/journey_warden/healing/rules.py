"""Healing policy: which fixes may run for which failure category."""

from dataclasses import dataclass

from pydantic import BaseModel, Field, model_validator

from ..errors import ForbiddenFixError
from ..models import FORBIDDEN_FIXES, FailureCategory, FailureClassification, FixType


@dataclass(frozen=True)
class HealingRule:
    fix_type: FixType
    applies_to: frozenset[FailureCategory]
    priority: int
    description: str
    enabled_by_default: bool = True


DEFAULT_HEALING_RULES: tuple[HealingRule, ...] = (
    HealingRule(
        FixType.MISSING_AWAIT,
        frozenset({FailureCategory.SELECTOR, FailureCategory.TIMING, FailureCategory.SCRIPT}),
        1,
        "Add missing await to async operations",
    ),
    HealingRule(
        FixType.SELECTOR_REFINE,
        frozenset({FailureCategory.SELECTOR}),
        2,
        "Replace CSS selector with role/label/testid",
    ),
    HealingRule(
        FixType.ADD_EXACT,
        frozenset({FailureCategory.SELECTOR}),
        3,
        "Add exact: true to resolve ambiguous locators",
    ),
    HealingRule(
        FixType.NAVIGATION_WAIT,
        frozenset({FailureCategory.NAVIGATION, FailureCategory.TIMING}),
        4,
        "Add waitForURL or toHaveURL assertion",
    ),
    HealingRule(
        FixType.WEB_FIRST_ASSERTION,
        frozenset({FailureCategory.TIMING, FailureCategory.DATA}),
        5,
        "Convert to auto-retrying web-first assertion",
    ),
    HealingRule(
        FixType.TIMEOUT_INCREASE,
        frozenset({FailureCategory.TIMING}),
        6,
        "Increase operation timeout (bounded)",
        enabled_by_default=False,
    ),
    HealingRule(
        FixType.DATA_ISOLATION,
        frozenset({FailureCategory.DATA}),
        7,
        "Namespace hardcoded test data with a per-run id",
        enabled_by_default=False,
    ),
)

UNHEALABLE_CATEGORIES = frozenset({FailureCategory.AUTH, FailureCategory.ENV, FailureCategory.UNKNOWN})


def _default_allowed() -> list[FixType]:
    return [r.fix_type for r in DEFAULT_HEALING_RULES if r.enabled_by_default]


class HealingConfig(BaseModel):
    """Healing policy settings.

    The forbidden list always contains the permanent forbidden fixes, whatever
    the configuration says, and no fix may be both allowed and forbidden.
    """

    enabled: bool = True
    max_attempts: int = Field(default=3, ge=1)
    allowed_fixes: list[FixType] = Field(default_factory=_default_allowed)
    forbidden_fixes: list[FixType] = Field(default_factory=lambda: sorted(FORBIDDEN_FIXES, key=lambda f: f.value))
    max_timeout_increase: int = Field(default=30_000, gt=0)

    @model_validator(mode="after")
    def _enforce_forbidden(self) -> "HealingConfig":
        forbidden = set(self.forbidden_fixes) | FORBIDDEN_FIXES
        self.forbidden_fixes = sorted(forbidden, key=lambda f: f.value)
        if overlap := forbidden.intersection(self.allowed_fixes):
            names = ", ".join(sorted(f.value for f in overlap))
            raise ValueError(f"Fixes cannot be both allowed and forbidden: {names}")
        return self


@dataclass(frozen=True)
class HealingEvaluation:
    can_heal: bool
    applicable_fixes: tuple[FixType, ...]
    reason: str | None = None


def is_fix_forbidden(fix: FixType, config: HealingConfig) -> bool:
    return fix in FORBIDDEN_FIXES or fix in config.forbidden_fixes


def is_fix_allowed(fix: FixType, config: HealingConfig) -> bool:
    return not is_fix_forbidden(fix, config) and fix in config.allowed_fixes


def assert_fix_permitted(fix: FixType, config: HealingConfig | None = None) -> None:
    if fix in FORBIDDEN_FIXES or (config is not None and fix in config.forbidden_fixes):
        raise ForbiddenFixError(fix)


def is_category_healable(category: FailureCategory) -> bool:
    return category not in UNHEALABLE_CATEGORIES


def get_applicable_rules(
    category: FailureCategory,
    config: HealingConfig,
    rules: tuple[HealingRule, ...] = DEFAULT_HEALING_RULES,
) -> list[HealingRule]:
    """Rules for a category, allowed by the config, in priority order."""
    if not config.enabled or not is_category_healable(category):
        return []
    applicable = [
        r for r in rules
        if category in r.applies_to and is_fix_allowed(r.fix_type, config)
    ]
    return sorted(applicable, key=lambda r: r.priority)


def evaluate_healing(
    classification: FailureClassification,
    config: HealingConfig,
    rules: tuple[HealingRule, ...] = DEFAULT_HEALING_RULES,
) -> HealingEvaluation:
    if not config.enabled:
        return HealingEvaluation(False, (), "Healing is disabled")
    if not is_category_healable(classification.category):
        return HealingEvaluation(
            False, (), f"Category '{classification.category.value}' cannot be healed automatically"
        )
    applicable = get_applicable_rules(classification.category, config, rules)
    if not applicable:
        return HealingEvaluation(False, (), "No applicable healing rules for this failure")
    return HealingEvaluation(True, tuple(r.fix_type for r in applicable))


def get_next_fix(
    classification: FailureClassification,
    attempted: list[FixType] | tuple[FixType, ...],
    config: HealingConfig,
    rules: tuple[HealingRule, ...] = DEFAULT_HEALING_RULES,
) -> FixType | None:
    """Highest-priority fix not yet tried. Never a forbidden one."""
    for rule in get_applicable_rules(classification.category, config, rules):
        if rule.fix_type not in attempted and rule.fix_type not in FORBIDDEN_FIXES:
            return rule.fix_type
    return None


_RECOMMENDATIONS = {
    FailureCategory.SELECTOR: "Refine selector to use role, label, or testid locator strategy",
    FailureCategory.TIMING: "Add explicit wait for expected state or use web-first assertion",
    FailureCategory.NAVIGATION: "Add waitForURL or toHaveURL assertion after navigation",
    FailureCategory.DATA: "Verify test data and consider using expect.poll for dynamic values",
    FailureCategory.AUTH: "Check authentication state; may need to refresh session",
    FailureCategory.ENV: "Verify environment connectivity and application availability",
    FailureCategory.SCRIPT: "Fix the JavaScript/TypeScript error in the test code",
}

_POST_HEALING = {
    FailureCategory.SELECTOR: "Consider adding data-testid to the target element or quarantining the test.",
    FailureCategory.TIMING: "The application may have a genuine performance issue. Consider quarantining.",
    FailureCategory.NAVIGATION: "The navigation flow may have changed. Review Journey steps.",
}


def get_healing_recommendation(classification: FailureClassification) -> str:
    return _RECOMMENDATIONS.get(
        classification.category, "Review error details manually to determine appropriate fix"
    )


def get_post_healing_recommendation(classification: FailureClassification, attempts: int) -> str:
    advice = _POST_HEALING.get(
        classification.category, "Consider quarantining the test and filing a bug report."
    )
    return f"Healing exhausted after {attempts} attempts. {advice}"
