"""Assemble matched steps into an IR journey."""

import logging
import re
from dataclasses import dataclass, field, replace

from ..ir import (
    CompletionSignal,
    CompletionType,
    IRJourney,
    IRStep,
    JourneyData,
    LocatorSpec,
    LocatorStrategy,
    ModuleDependencies,
    Primitive,
    PrimitiveType,
    ToastType,
)
from ..mapping.glossary import DEFAULT_GLOSSARY, Glossary
from ..mapping.matcher import FixSuggestion, MatchOptions, StepMatch, match_step, suggest_fix
from ..models import ParsedJourney

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizeOptions:
    """include_blocked keeps blocked placeholders in step actions.
    strict drops any step that has a blocked bullet."""

    include_blocked: bool = True
    strict: bool = False
    match_options: MatchOptions = field(default_factory=MatchOptions)


@dataclass(frozen=True)
class BlockedStep:
    step_id: str
    source_text: str
    reason: str
    suggestion: FixSuggestion | None = None


@dataclass(frozen=True)
class NormalizationStats:
    total_steps: int
    mapped_steps: int
    dropped_steps: int
    blocked_steps: int
    total_actions: int
    total_assertions: int


@dataclass(frozen=True)
class NormalizationResult:
    journey: IRJourney
    blocked_steps: tuple[BlockedStep, ...]
    warnings: tuple[str, ...]
    stats: NormalizationStats


@dataclass(frozen=True)
class CodegenValidation:
    valid: bool
    errors: tuple[str, ...]


def _escape_regex(value: str) -> str:
    return re.sub(r"[.*+?^${}()|\[\]\\]", lambda m: "\\" + m.group(0), value)


def infer_toast_type(value: str) -> ToastType:
    lowered = value.lower()
    if "error" in lowered or "fail" in lowered:
        return ToastType.ERROR
    if "warn" in lowered:
        return ToastType.WARNING
    if "info" in lowered:
        return ToastType.INFO
    return ToastType.SUCCESS


def parse_locator_from_selector(selector: str) -> LocatorSpec:
    """Selector string from front matter to a locator."""
    selector = selector.strip()
    if match := re.match(r"""^\[data-testid=["']?([^"'\]]+)["']?\]$""", selector):
        return LocatorSpec(LocatorStrategy.TESTID, match.group(1))
    for prefix, strategy in (
        ("role=", LocatorStrategy.ROLE),
        ("text=", LocatorStrategy.TEXT),
        ("label=", LocatorStrategy.LABEL),
        ("placeholder=", LocatorStrategy.PLACEHOLDER),
    ):
        if selector.startswith(prefix):
            return LocatorSpec(strategy, selector[len(prefix):])
    return LocatorSpec(LocatorStrategy.CSS, selector)


def completion_signals_to_primitives(signals: tuple[CompletionSignal, ...]) -> list[Primitive]:
    primitives = []
    for signal in signals:
        if signal.type is CompletionType.URL:
            pattern = signal.value if signal.exact else _escape_regex(signal.value)
            primitives.append(Primitive(PrimitiveType.EXPECT_URL, pattern=pattern, timeout=signal.timeout))
        elif signal.type is CompletionType.TOAST:
            primitives.append(Primitive(
                PrimitiveType.EXPECT_TOAST,
                toast_type=infer_toast_type(signal.value),
                message=signal.value,
                timeout=signal.timeout,
            ))
        elif signal.type is CompletionType.ELEMENT:
            hidden = signal.state in ("hidden", "detached")
            primitives.append(Primitive(
                PrimitiveType.EXPECT_NOT_VISIBLE if hidden else PrimitiveType.EXPECT_VISIBLE,
                locator=parse_locator_from_selector(signal.value),
                timeout=signal.timeout,
            ))
        elif signal.type is CompletionType.TITLE:
            primitives.append(Primitive(PrimitiveType.EXPECT_TITLE, title=signal.value, timeout=signal.timeout))
        elif signal.type is CompletionType.API:
            primitives.append(Primitive(PrimitiveType.WAIT_FOR_RESPONSE, pattern=signal.value, timeout=signal.timeout))
    return primitives


def _parse_completion(raw: list[dict], warnings: list[str]) -> tuple[CompletionSignal, ...]:
    signals = []
    for item in raw:
        kind = str(item.get("type", ""))
        try:
            signal_type = CompletionType(kind)
        except ValueError:
            warnings.append(f"Unknown completion signal type: {kind}")
            continue
        options = item.get("options") or {}
        signals.append(CompletionSignal(
            type=signal_type,
            value=str(item.get("value", "")),
            exact=bool(options.get("exact", False)),
            state=options.get("state"),
            timeout=options.get("timeout"),
        ))
    return tuple(signals)


def _build_tags(parsed: ParsedJourney) -> tuple[str, ...]:
    fm = parsed.frontmatter
    tags = [*fm.tags, f"@{fm.id}", f"@tier-{fm.tier}", f"@scope-{fm.scope}"]
    return tuple(dict.fromkeys(tags))


class _StepBuilder:
    def __init__(self, glossary: Glossary, options: NormalizeOptions):
        self.glossary = glossary
        self.options = options
        self.blocked: list[BlockedStep] = []
        self.warnings: list[str] = []

    def build(self, step_id: str, description: str, bullets: list[str]) -> tuple[IRStep, bool]:
        """Build one step. The flag says whether any bullet was blocked."""
        actions: list[Primitive] = []
        assertions: list[Primitive] = []
        notes: list[str] = []
        has_blocked = False

        for bullet in bullets:
            result = match_step(bullet, self.glossary, self.options.match_options)
            if isinstance(result, StepMatch):
                (assertions if result.is_assertion else actions).append(result.primitive)
                notes.extend(result.warnings)
                continue
            has_blocked = True
            self.blocked.append(BlockedStep(step_id, result.source_text, result.reason, suggest_fix(bullet)))
            if self.options.include_blocked:
                actions.append(result.to_blocked())

        if not assertions:
            notes.append(f"No assertion mapped for: {description}")

        step = IRStep(
            id=step_id,
            description=description,
            actions=tuple(actions),
            assertions=tuple(assertions),
            source_text="\n".join(bullets),
            notes=tuple(notes),
        )
        return step, has_blocked


def normalize_journey(
    parsed: ParsedJourney,
    options: NormalizeOptions | None = None,
    glossary: Glossary = DEFAULT_GLOSSARY,
) -> NormalizationResult:
    """Turn a parsed journey into an IR journey plus blocked-step diagnostics."""
    options = options or NormalizeOptions()
    fm = parsed.frontmatter
    builder = _StepBuilder(glossary, options)

    built: list[tuple[IRStep, bool]] = []
    if parsed.acceptance_criteria:
        for ac in parsed.acceptance_criteria:
            bullets = list(ac.steps)
            bullets.extend(ps.text for ps in parsed.procedural_steps if ps.linked_ac == ac.id)
            built.append(builder.build(ac.id, ac.title, bullets))
    else:
        for ps in parsed.procedural_steps:
            built.append(builder.build(f"PS-{ps.number}", ps.text, [ps.text]))

    if not built:
        builder.warnings.append("Journey has no acceptance criteria or procedural steps")

    if options.strict:
        steps = [step for step, has_blocked in built if not has_blocked]
    else:
        steps = [step for step, _ in built]
    dropped = len(built) - len(steps)
    if dropped:
        builder.warnings.append(f"Strict mode dropped {dropped} step(s) with blocked bullets")

    completion = _parse_completion(fm.completion, builder.warnings)
    if steps and completion:
        extra = completion_signals_to_primitives(completion)
        checks = tuple(p for p in extra if p.is_assertion)
        last = steps[-1]
        notes = last.notes
        if checks:
            notes = tuple(n for n in notes if not n.startswith("No assertion mapped"))
        steps[-1] = replace(
            last,
            actions=last.actions + tuple(p for p in extra if not p.is_assertion),
            assertions=last.assertions + checks,
            notes=notes,
        )

    modules = fm.modules or {}
    journey = IRJourney(
        id=fm.id,
        title=fm.title,
        tier=fm.tier,
        scope=fm.scope,
        actor=fm.actor,
        tags=_build_tags(parsed),
        module_dependencies=ModuleDependencies(
            foundation=tuple(modules.get("foundation", [])),
            feature=tuple(modules.get("feature", [])),
        ),
        data=JourneyData(
            strategy=fm.data.get("strategy", "create"),
            cleanup=fm.data.get("cleanup", "required"),
        ) if fm.data else None,
        completion=completion,
        steps=tuple(steps),
        source_path=parsed.source_path,
        revision=fm.revision,
        prerequisites=tuple(fm.prerequisites),
    )

    stats = NormalizationStats(
        total_steps=len(built),
        mapped_steps=len(journey.steps),
        dropped_steps=dropped,
        blocked_steps=len(builder.blocked),
        total_actions=sum(len(s.actions) for s in journey.steps),
        total_assertions=sum(len(s.assertions) for s in journey.steps),
    )
    logger.info(
        "Normalized %s: %d/%d steps mapped, %d blocked bullets",
        fm.id, stats.mapped_steps, stats.total_steps, stats.blocked_steps,
    )
    return NormalizationResult(
        journey=journey,
        blocked_steps=tuple(builder.blocked),
        warnings=tuple(builder.warnings),
        stats=stats,
    )


def validate_journey_for_codegen(result: NormalizationResult) -> CodegenValidation:
    """Hard gates that must pass before any code is generated."""
    errors = []
    journey = result.journey
    if not journey.steps:
        errors.append("Journey has no steps")
    if not journey.completion:
        errors.append("Journey has no completion signals")
    if result.stats.blocked_steps > result.stats.mapped_steps:
        errors.append(
            f"Too many blocked steps: {result.stats.blocked_steps} blocked vs "
            f"{result.stats.mapped_steps} mapped"
        )
    if journey.assertion_count == 0:
        errors.append("Journey has no assertions")
    return CodegenValidation(valid=not errors, errors=tuple(errors))
