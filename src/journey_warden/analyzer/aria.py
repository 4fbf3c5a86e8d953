"""ARIA metadata for the element a failing selector pointed at."""

import logging
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

_IMPLICIT_ROLES = {
    "button": "button",
    "select": "combobox",
    "textarea": "textbox",
    "img": "img",
    "nav": "navigation",
    "main": "main",
    "header": "banner",
    "footer": "contentinfo",
    "aside": "complementary",
    "ul": "list",
    "ol": "list",
    "li": "listitem",
    "table": "table",
    "tr": "row",
    "td": "cell",
    "th": "columnheader",
    "dialog": "dialog",
    "form": "form",
    "option": "option",
    "progress": "progressbar",
}

_INPUT_ROLES = {
    "checkbox": "checkbox",
    "radio": "radio",
    "button": "button",
    "submit": "button",
    "reset": "button",
    "search": "searchbox",
    "range": "slider",
    "number": "spinbutton",
}

_NAME_FROM_CONTENT = {"button", "link", "heading", "tab", "menuitem", "option", "cell", "listitem"}


@dataclass(frozen=True)
class AriaInfo:
    role: str | None = None
    name: str | None = None
    level: int | None = None
    test_id: str | None = None
    label: str | None = None
    placeholder: str | None = None

    @property
    def is_empty(self) -> bool:
        return not any((self.role, self.name, self.test_id, self.label, self.placeholder))


@dataclass
class AriaNode:
    """One line of a Playwright aria snapshot."""

    role: str
    name: str | None = None
    depth: int = 0
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def level(self) -> int | None:
        value = self.attributes.get("level")
        return int(value) if value and value.isdigit() else None


def _text(tag: Tag) -> str | None:
    text = " ".join(tag.get_text(" ", strip=True).split())
    return text or None


def implicit_role(tag: Tag) -> str | None:
    name = tag.name
    if re.fullmatch(r"h[1-6]", name):
        return "heading"
    if name == "a":
        return "link" if tag.get("href") is not None else None
    if name == "input":
        kind = str(tag.get("type", "text")).lower()
        if kind == "hidden":
            return None
        return _INPUT_ROLES.get(kind, "textbox")
    return _IMPLICIT_ROLES.get(name)


def _label_for(soup: BeautifulSoup, tag: Tag) -> str | None:
    if element_id := tag.get("id"):
        label = soup.find("label", attrs={"for": element_id})
        if isinstance(label, Tag):
            return _text(label)
    parent = tag.find_parent("label")
    if isinstance(parent, Tag):
        return _text(parent)
    return None


def _accessible_name(soup: BeautifulSoup, tag: Tag, role: str | None, label: str | None) -> str | None:
    if value := tag.get("aria-label"):
        return str(value).strip()
    if ids := tag.get("aria-labelledby"):
        parts = []
        for ref in str(ids).split():
            target = soup.find(id=ref)
            if isinstance(target, Tag) and (text := _text(target)):
                parts.append(text)
        if parts:
            return " ".join(parts)
    if label:
        return label
    for attr in ("alt", "title"):
        if value := tag.get(attr):
            return str(value).strip()
    if tag.name == "input" and tag.get("type") in ("submit", "button", "reset") and tag.get("value"):
        return str(tag["value"])
    if role in _NAME_FROM_CONTENT:
        return _text(tag)
    return None


def extract_aria_info(html: str, css_selector: str) -> AriaInfo | None:
    """Role, name, label and test id of the first element matching the selector.

    Returns None when the selector is invalid or matches nothing.
    """
    soup = BeautifulSoup(html, "lxml")
    try:
        tag = soup.select_one(css_selector)
    except Exception as e:
        logger.debug("Invalid CSS selector %r: %s", css_selector, e)
        return None
    if not isinstance(tag, Tag):
        return None

    role = str(tag["role"]) if tag.get("role") else implicit_role(tag)
    label = _label_for(soup, tag)
    level = None
    if role == "heading":
        if tag.get("aria-level"):
            level = int(tag["aria-level"])
        elif re.fullmatch(r"h[1-6]", tag.name):
            level = int(tag.name[1])

    return AriaInfo(
        role=role,
        name=_accessible_name(soup, tag, role, label),
        level=level,
        test_id=tag.get("data-testid"),
        label=label,
        placeholder=tag.get("placeholder"),
    )


_SNAPSHOT_LINE = re.compile(r'^(\s*)-\s+([a-z]+)(?:\s+"((?:[^"\\]|\\.)*)")?((?:\s*\[[^\]]+\])*)\s*:?')
_SNAPSHOT_ATTR = re.compile(r"\[([a-z-]+)(?:=([^\]]+))?\]")


def parse_aria_snapshot(text: str) -> list[AriaNode]:
    """Parse ``locator.ariaSnapshot()`` output into a flat node list."""
    nodes = []
    for line in text.splitlines():
        match = _SNAPSHOT_LINE.match(line)
        if not match or match.group(2) == "text":
            continue
        attributes = {
            k: v or "true"
            for k, v in _SNAPSHOT_ATTR.findall(match.group(4) or "")
        }
        nodes.append(AriaNode(
            role=match.group(2),
            name=match.group(3).replace('\\"', '"') if match.group(3) is not None else None,
            depth=len(match.group(1)) // 2,
            attributes=attributes,
        ))
    return nodes


def find_aria_node(nodes: list[AriaNode], role: str | None = None, name: str | None = None) -> AriaNode | None:
    for node in nodes:
        if role and node.role != role:
            continue
        if name and (node.name or "").lower() != name.lower():
            continue
        return node
    return None


def aria_info_from_node(node: AriaNode) -> AriaInfo:
    return AriaInfo(role=node.role, name=node.name, level=node.level)
