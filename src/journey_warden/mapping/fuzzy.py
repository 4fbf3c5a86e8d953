"""Near-miss matching of step text against canonical phrasings.

Runs after the registry and glossary tiers have failed. Each registry
pattern listed here carries a few example phrasings. A step whose
normalized Levenshtein similarity to an example reaches the threshold maps
to a generic primitive of that pattern's type. Ties keep registry order.
"""

import re
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

from ..ir import LocatorSpec, LocatorStrategy, Primitive, PrimitiveType, ValueKind, ValueSpec
from .patterns import ALL_PATTERNS, StepPattern

DEFAULT_MIN_SIMILARITY = 0.85

FUZZY_EXAMPLES: dict[str, tuple[str, ...]] = {
    "refresh-page": ("refresh the page", "reload the page"),
    "go-back": ("go back", "navigate back"),
    "go-forward": ("go forward", "navigate forward"),
    "navigate-to-url": ("navigate to /home", "go to /login", "open /dashboard"),
    "navigate-to-page": ("navigate to the settings page", "go to the login page"),
    "press-enter-key": ("press enter", "press the enter key"),
    "press-tab-key": ("press tab", "press the tab key"),
    "press-escape-key": ("press escape", "press the escape key"),
    "click-element-generic": ("click the submit button", "click on save", "click cancel button"),
    "fill-field-generic": ("enter username in the username field", "type hello in the search box"),
    "check-checkbox": ("check the checkbox", "check remember me"),
    "uncheck-checkbox": ("uncheck the checkbox", "uncheck the newsletter option"),
    "should-see-element": ("see the welcome message", "should see the login button"),
    "wait-until-loaded": ("wait until the page is loaded", "wait for the page to load"),
    "wait-seconds": ("wait 3 seconds", "wait for 2 seconds"),
    "wait-for-network": ("wait for network idle", "wait for the network to be idle"),
    "hover-over-element": ("hover over the menu", "hover on the button"),
}

_KEYS = {"press-enter-key": "Enter", "press-tab-key": "Tab", "press-escape-key": "Escape"}
_BARE = frozenset({
    PrimitiveType.RELOAD,
    PrimitiveType.GO_BACK,
    PrimitiveType.GO_FORWARD,
    PrimitiveType.WAIT_FOR_NETWORK_IDLE,
    PrimitiveType.WAIT_FOR_LOADING_COMPLETE,
})
_TARGETS = (
    re.compile(r"\b(?:the|a)\s+(\w+(?:\s+\w+)?)\s+(?:button|field|input|link|element|checkbox|menu)\b", re.I),
    re.compile(r"\b(?:on|click|tap|hover|check|see)\s+(?:over\s+|on\s+)?(?:the\s+)?(\w+(?:\s+\w+)?)", re.I),
)
_QUOTED = re.compile(r"['\"]([^'\"]+)['\"]")


@dataclass(frozen=True)
class FuzzyMatch:
    pattern: StepPattern
    primitive: Primitive
    similarity: float
    example: str


def canonical_form(text: str) -> str:
    """Lowercase, drop quote marks and collapse whitespace."""
    return " ".join(re.sub(r"[\"'`]", "", text).lower().split())


def _examples() -> list[tuple[StepPattern, str, str]]:
    return [
        (pattern, example, canonical_form(example))
        for pattern in ALL_PATTERNS
        for example in FUZZY_EXAMPLES.get(pattern.name, ())
    ]


_EXAMPLE_INDEX = _examples()


def _target(text: str) -> str | None:
    if quoted := _QUOTED.findall(text):
        return quoted[0]
    for pattern in _TARGETS:
        if match := pattern.search(text):
            return match.group(1)
    return None


def generic_primitive(pattern: StepPattern, text: str) -> Primitive | None:
    """Build a primitive of the pattern's type from loosely phrased text."""
    ptype = pattern.primitive_type
    if ptype in _BARE:
        return Primitive(ptype)
    if ptype is PrimitiveType.PRESS:
        return Primitive(ptype, key=_KEYS.get(pattern.name, "Enter"))
    if ptype is PrimitiveType.WAIT_FOR_TIMEOUT:
        if match := re.search(r"(\d+)\s*(?:seconds?|secs?)\b", text, re.I):
            return Primitive(ptype, ms=int(match.group(1)) * 1000)
        return None
    if ptype is PrimitiveType.GOTO:
        if match := re.search(r"(/[\w./-]*)", text):
            return Primitive(ptype, url=match.group(1), wait_for_load=True)
        if match := re.search(r"\b(?:the\s+)?([\w-]+)\s+page\b", text, re.I):
            return Primitive(ptype, url="/" + match.group(1).lower(), wait_for_load=True)
        return None
    if ptype is PrimitiveType.FILL:
        quoted = _QUOTED.findall(text)
        if len(quoted) < 2:
            return None
        return Primitive(
            ptype,
            locator=LocatorSpec(LocatorStrategy.LABEL, quoted[1]),
            value=ValueSpec(ValueKind.LITERAL, quoted[0]),
        )
    target = _target(text)
    if target is None:
        return None
    return Primitive(ptype, locator=LocatorSpec(LocatorStrategy.TEXT, target))


def fuzzy_match(text: str, min_similarity: float = DEFAULT_MIN_SIMILARITY) -> FuzzyMatch | None:
    """Closest example at or above ``min_similarity`` that yields a primitive."""
    query = canonical_form(text)
    if not query:
        return None

    best: tuple[StepPattern, str, float] | None = None
    for pattern, example, canonical in _EXAMPLE_INDEX:
        similarity = Levenshtein.normalized_similarity(query, canonical)
        if similarity >= min_similarity and (best is None or similarity > best[2]):
            best = (pattern, example, similarity)

    if best is None:
        return None
    pattern, example, similarity = best
    primitive = generic_primitive(pattern, text.strip())
    if primitive is None:
        return None
    return FuzzyMatch(pattern, primitive, similarity, example)
