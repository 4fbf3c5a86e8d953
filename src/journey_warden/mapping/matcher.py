"""Map one step of prose to a primitive, or explain why it could not."""

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum

from ..ir import REQUIRED_FIELDS, LocatorSpec, Primitive, PrimitiveType, ValueKind, ValueSpec, blocked
from .fuzzy import DEFAULT_MIN_SIMILARITY, fuzzy_match
from .glossary import DEFAULT_GLOSSARY, Glossary
from .hints import ParsedHints, build_locator_from_hints, has_hints, parse_hints, parse_module_hint
from .patterns import PatternMatch, match_pattern

logger = logging.getLogger(__name__)

MISSING_HINT_REASON = "Interaction step missing locator hint"


@dataclass(frozen=True)
class MatchOptions:
    """Matcher switches.

    With require_locator_hints set, an interaction (click, fill, select, ...)
    only maps when the step names its target with a machine hint. Inferred
    interaction locators are too unreliable to generate code from.
    """

    require_locator_hints: bool = True
    use_glossary_fallback: bool = True
    use_fuzzy: bool = True
    fuzzy_min_similarity: float = DEFAULT_MIN_SIMILARITY


class MatchSource(Enum):
    HINTS = "hints"
    PATTERN = "pattern"
    GLOSSARY = "glossary"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class StepMatch:
    primitive: Primitive
    source_text: str
    source: MatchSource
    pattern_name: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def is_assertion(self) -> bool:
        return self.primitive.is_assertion


@dataclass(frozen=True)
class Unmatched:
    """A step that could not be mapped. The original text is always kept."""

    source_text: str
    reason: str
    warnings: tuple[str, ...] = ()

    def to_blocked(self) -> Primitive:
        return blocked(self.reason, self.source_text)


MatchResult = StepMatch | Unmatched


@dataclass(frozen=True)
class FixSuggestion:
    fixed_text: str
    confidence: float


@dataclass(frozen=True)
class MappingStats:
    total: int
    mapped: int
    blocked: int
    actions: int
    assertions: int

    @property
    def mapping_rate(self) -> float:
        return self.mapped / self.total if self.total else 0.0


_DEFAULT_OPTIONS = MatchOptions()


def _lookup(text: str, glossary: Glossary, options: MatchOptions) -> tuple[PatternMatch | None, MatchSource]:
    if found := match_pattern(text):
        return found, MatchSource.PATTERN
    if options.use_glossary_fallback:
        normalized = glossary.normalize_step_text(text)
        if normalized != text.strip().lower() and (found := match_pattern(normalized)):
            return found, MatchSource.GLOSSARY
    if options.use_fuzzy and (near := fuzzy_match(text, options.fuzzy_min_similarity)):
        return PatternMatch(near.pattern, near.primitive), MatchSource.FUZZY
    return None, MatchSource.PATTERN


def _first_quoted(text: str) -> str | None:
    if match := re.search(r"['\"]([^'\"]+)['\"]", text):
        return match.group(1)
    return None


def _primitive_from_keywords(text: str, loc: LocatorSpec) -> Primitive:
    lowered = text.lower()
    if re.search(r"\b(?:click|press|tap)", lowered):
        return Primitive(PrimitiveType.CLICK, locator=loc)
    if re.search(r"\b(?:enter|type|fill)", lowered):
        return Primitive(
            PrimitiveType.FILL, locator=loc, value=ValueSpec(ValueKind.LITERAL, _first_quoted(text) or "")
        )
    if re.search(r"\b(?:see|visible|display|shown)", lowered):
        return Primitive(PrimitiveType.EXPECT_VISIBLE, locator=loc)
    if re.search(r"\b(?:check|select)", lowered):
        return Primitive(PrimitiveType.CHECK, locator=loc)
    return Primitive(PrimitiveType.CLICK, locator=loc)


def _apply_behavior(primitive: Primitive, hints: ParsedHints) -> Primitive:
    behavior = hints.behavior
    changes = {}
    if behavior.timeout is not None:
        changes["timeout"] = behavior.timeout
    if behavior.signal:
        changes["signal"] = behavior.signal
    return replace(primitive, **changes) if changes else primitive


def _match_with_hints(
    text: str, hints: ParsedHints, glossary: Glossary, options: MatchOptions
) -> MatchResult:
    warnings = list(hints.warnings)

    if hints.behavior.module:
        if parsed := parse_module_hint(hints.behavior.module):
            module, method = parsed
            primitive = Primitive(PrimitiveType.CALL_MODULE, module=module, method=method)
            return StepMatch(_apply_behavior(primitive, hints), text, MatchSource.HINTS, warnings=tuple(warnings))
        warnings.append(f"Invalid module hint: {hints.behavior.module}")

    loc = build_locator_from_hints(hints.locator)
    found, _ = _lookup(hints.clean_text, glossary, options) if hints.clean_text else (None, None)

    if found is not None:
        primitive = found.primitive
        if loc is not None and "locator" in REQUIRED_FIELDS[primitive.type]:
            primitive = replace(primitive, locator=loc)
    elif loc is not None:
        primitive = _primitive_from_keywords(hints.clean_text, loc)
    else:
        return Unmatched(text, f'Could not map step: "{text}"', tuple(warnings))

    if primitive.type.is_interaction and loc is None and options.require_locator_hints:
        return Unmatched(text, MISSING_HINT_REASON, tuple(warnings))

    return StepMatch(
        _apply_behavior(primitive, hints),
        text,
        MatchSource.HINTS,
        pattern_name=found.pattern.name if found else None,
        warnings=tuple(warnings),
    )


def match_step(
    text: str,
    glossary: Glossary = DEFAULT_GLOSSARY,
    options: MatchOptions | None = None,
) -> MatchResult:
    """Map a step to a primitive.

    Hints are authoritative when present. Otherwise registry patterns are
    tried in order on the raw text, then on the glossary-normalized text,
    then against example phrasings by edit distance.
    The result never depends on anything but the arguments.
    """
    options = options or _DEFAULT_OPTIONS
    stripped = text.strip()
    if not stripped:
        return Unmatched(text, "Empty step text")

    hints = parse_hints(stripped)
    if hints.has_hints:
        result = _match_with_hints(stripped, hints, glossary, options)
    else:
        found, source = _lookup(stripped, glossary, options)
        if found is None:
            result = Unmatched(stripped, f'Could not map step: "{stripped}"')
        elif found.primitive.type.is_interaction and options.require_locator_hints:
            result = Unmatched(stripped, MISSING_HINT_REASON)
        else:
            result = StepMatch(found.primitive, stripped, source, pattern_name=found.pattern.name)

    if isinstance(result, Unmatched):
        logger.debug("Unmatched step %r: %s", stripped, result.reason)
    else:
        logger.debug("Matched step %r -> %s (%s)", stripped, result.primitive.type.value, result.source.value)
    return result


def match_steps(
    texts: list[str],
    glossary: Glossary = DEFAULT_GLOSSARY,
    options: MatchOptions | None = None,
) -> list[MatchResult]:
    return [match_step(t, glossary, options) for t in texts]


def get_mapping_stats(results: list[MatchResult]) -> MappingStats:
    matched = [r for r in results if isinstance(r, StepMatch)]
    assertions = sum(1 for r in matched if r.is_assertion)
    return MappingStats(
        total=len(results),
        mapped=len(matched),
        blocked=len(results) - len(matched),
        actions=len(matched) - assertions,
        assertions=assertions,
    )


def _hint_value(value: str) -> str:
    if re.search(r"[,()=\s]", value) and '"' not in value:
        return f'"{value}"'
    return value


def suggest_fix(text: str) -> FixSuggestion | None:
    """Propose the hint syntax that would make a step mappable.

    Returns None when the step already carries hints or names nothing in
    quotes to build a hint from.
    """
    if has_hints(text):
        return None
    quoted = re.findall(r"['\"]([^'\"]+)['\"]", text)
    if not quoted:
        return None

    lowered = text.lower()
    if re.search(r"\b(?:click|press|tap)", lowered):
        name = quoted[0]
        target = re.search(
            r"(['\"]" + re.escape(name) + r"['\"]\s+(button|link)\b)", text, re.IGNORECASE
        )
        if target:
            role = target.group(2).lower()
            hint = f"`(role={role}, name={_hint_value(name)})`"
            fixed = text[: target.end(1)] + " " + hint + text[target.end(1):]
            return FixSuggestion(fixed.strip(), 0.9)
        return FixSuggestion(f"{text.rstrip()} `(role=button, name={_hint_value(name)})`", 0.7)

    if re.search(r"\b(?:enter|fill|type)", lowered):
        field = re.search(r"\b(?:in|into)\s+(?:the\s+)?['\"]?([^'\"]+?)['\"]?(?:\s+(?:field|input|box))?\s*$", text, re.IGNORECASE)
        name = field.group(1).strip() if field else quoted[-1]
        return FixSuggestion(f"{text.rstrip()} `(role=textbox, name={_hint_value(name)})`", 0.8)

    if re.search(r"\b(?:see|visible|displayed|shown)", lowered):
        return FixSuggestion(f"{text.rstrip()} `(text={_hint_value(quoted[0])})`", 0.75)

    return None
