"""Machine hints embedded in step text.

A step may carry an explicit locator in a parenthesised fragment, optionally
wrapped in backticks:

    Click Submit `(role=button, name=Submit)`
    Enter "a@b.c" in the email field (testid=email-input)
    User sees the dashboard (text="Welcome back") (timeout=10000)
"""

import re
from dataclasses import dataclass, field

from ..ir import LocatorSpec, LocatorStrategy, choose_locator

VALID_ROLES = frozenset({
    "alert", "alertdialog", "application", "article", "banner", "blockquote",
    "button", "caption", "cell", "checkbox", "code", "columnheader", "combobox",
    "complementary", "contentinfo", "definition", "deletion", "dialog",
    "directory", "document", "emphasis", "feed", "figure", "form", "generic",
    "grid", "gridcell", "group", "heading", "img", "insertion", "link", "list",
    "listbox", "listitem", "log", "main", "marquee", "math", "menu", "menubar",
    "menuitem", "menuitemcheckbox", "menuitemradio", "meter", "navigation",
    "none", "note", "option", "paragraph", "presentation", "progressbar",
    "radio", "radiogroup", "region", "row", "rowgroup", "rowheader", "scrollbar",
    "search", "searchbox", "separator", "slider", "spinbutton", "status",
    "strong", "subscript", "superscript", "switch", "tab", "table", "tablist",
    "tabpanel", "term", "textbox", "time", "timer", "toolbar", "tooltip", "tree",
    "treegrid", "treeitem",
})

LOCATOR_KEYS = frozenset({"role", "name", "testid", "label", "text", "placeholder", "exact", "level"})
BEHAVIOR_KEYS = frozenset({"signal", "module", "wait", "timeout"})
WAIT_STATES = frozenset({"networkidle", "domcontentloaded", "load", "commit"})

_VALUE_PATTERNS = {
    "role": re.compile(r"^[a-z]+$"),
    "testid": re.compile(r"^[A-Za-z0-9_-]+$"),
    "exact": re.compile(r"^(?:true|false)$"),
    "level": re.compile(r"^[1-6]$"),
    "signal": re.compile(r"^[A-Za-z0-9_.-]+$"),
    "module": re.compile(r"^[A-Za-z0-9_.]+$"),
    "timeout": re.compile(r"^\d+$"),
}

# A parenthesised fragment whose body starts with key=
HINT_SECTION = re.compile(r"`?\(\s*([a-z]+\s*=[^()]*)\)`?")
HINT_PAIR = re.compile(
    r"""([a-z]+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^,]*?))\s*(?:,|$)"""
)


@dataclass(frozen=True)
class LocatorHints:
    role: str | None = None
    name: str | None = None
    testid: str | None = None
    label: str | None = None
    text: str | None = None
    placeholder: str | None = None
    exact: bool | None = None
    level: int | None = None

    @property
    def is_empty(self) -> bool:
        return not any((self.role, self.testid, self.label, self.text, self.placeholder))


@dataclass(frozen=True)
class BehaviorHints:
    signal: str | None = None
    module: str | None = None
    wait: str | None = None
    timeout: int | None = None

    @property
    def is_empty(self) -> bool:
        return not any((self.signal, self.module, self.wait, self.timeout))


@dataclass(frozen=True)
class ParsedHints:
    """Hints pulled out of a step, plus the step text without them."""

    clean_text: str
    locator: LocatorHints = field(default_factory=LocatorHints)
    behavior: BehaviorHints = field(default_factory=BehaviorHints)
    warnings: tuple[str, ...] = ()
    raw: tuple[tuple[str, str], ...] = ()

    @property
    def has_hints(self) -> bool:
        return bool(self.raw)


def _iter_pairs(body: str):
    for match in HINT_PAIR.finditer(body):
        key = match.group(1)
        value = next((g for g in match.groups()[1:] if g is not None), "")
        yield key, value.strip()


def parse_hints(text: str) -> ParsedHints:
    """Extract hints from step text. Invalid hints become warnings."""
    sections = list(HINT_SECTION.finditer(text))
    if not sections:
        return ParsedHints(clean_text=text.strip())

    warnings: list[str] = []
    raw: list[tuple[str, str]] = []
    values: dict[str, str] = {}

    for section in sections:
        for key, value in _iter_pairs(section.group(1)):
            raw.append((key, value))
            if not value:
                warnings.append(f"Empty value for hint: {key}")
                continue
            if key not in LOCATOR_KEYS and key not in BEHAVIOR_KEYS:
                warnings.append(f"Unknown hint type: {key}")
                continue
            if key == "role" and value not in VALID_ROLES:
                warnings.append(f"Invalid ARIA role: {value}")
                continue
            if key == "wait" and value not in WAIT_STATES:
                warnings.append(f"Invalid value for hint {key}: {value}")
                continue
            if (pattern := _VALUE_PATTERNS.get(key)) and not pattern.match(value):
                warnings.append(f"Invalid value for hint {key}: {value}")
                continue
            values[key] = value

    clean_text = HINT_SECTION.sub("", text)
    clean_text = re.sub(r"\s{2,}", " ", clean_text).strip()

    locator = LocatorHints(
        role=values.get("role"),
        name=values.get("name"),
        testid=values.get("testid"),
        label=values.get("label"),
        text=values.get("text"),
        placeholder=values.get("placeholder"),
        exact=values["exact"] == "true" if "exact" in values else None,
        level=int(values["level"]) if "level" in values else None,
    )
    behavior = BehaviorHints(
        signal=values.get("signal"),
        module=values.get("module"),
        wait=values.get("wait"),
        timeout=int(values["timeout"]) if "timeout" in values else None,
    )

    primary = [v for v in (locator.role, locator.testid, locator.text, locator.placeholder) if v]
    if locator.label and not locator.role:
        primary.append(locator.label)
    if len(primary) > 1:
        warnings.append("Multiple conflicting locator hints specified")

    return ParsedHints(
        clean_text=clean_text,
        locator=locator,
        behavior=behavior,
        warnings=tuple(warnings),
        raw=tuple(raw),
    )


def has_hints(text: str) -> bool:
    return HINT_SECTION.search(text) is not None


def build_locator_from_hints(hints: LocatorHints) -> LocatorSpec | None:
    """Turn locator hints into a single locator, highest priority first."""
    candidates: list[LocatorSpec] = []
    if hints.role:
        candidates.append(LocatorSpec(
            LocatorStrategy.ROLE,
            hints.role,
            name=hints.name or hints.label,
            exact=hints.exact,
            level=hints.level,
        ))
    if hints.label:
        candidates.append(LocatorSpec(LocatorStrategy.LABEL, hints.label, exact=hints.exact))
    if hints.placeholder:
        candidates.append(LocatorSpec(LocatorStrategy.PLACEHOLDER, hints.placeholder, exact=hints.exact))
    if hints.text:
        candidates.append(LocatorSpec(LocatorStrategy.TEXT, hints.text, exact=hints.exact))
    if hints.testid:
        candidates.append(LocatorSpec(LocatorStrategy.TESTID, hints.testid))
    return choose_locator(candidates)


def parse_module_hint(value: str) -> tuple[str, str] | None:
    """Split `module.method`. Anything other than two parts is rejected."""
    parts = value.split(".")
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]
