"""Selector fixes: replace CSS locators with semantic ones, add exact matching."""

import re

from ...analyzer.aria import AriaInfo
from ...ir import LocatorSpec, LocatorStrategy, choose_locator
from ...models import FixType
from .base import FixContext, FixResult, js_string, not_applied, render_locator

CSS_LOCATOR_PATTERNS = (
    re.compile(r"""page\.locator\s*\(\s*['"`]([.#][^'"`]+)['"`]\s*\)"""),
    re.compile(r"""page\.locator\s*\(\s*['"`](\[[^\]]+\])['"`]\s*\)"""),
    re.compile(r"""page\.locator\s*\(\s*['"`]([a-z]+[.#][^'"`]+)['"`]\s*\)"""),
)

# class/id token -> ARIA role
UI_ROLE_LEXICON = {
    "button": "button",
    "btn": "button",
    "submit": "button",
    "input": "textbox",
    "textbox": "textbox",
    "field": "textbox",
    "checkbox": "checkbox",
    "radio": "radio",
    "select": "combobox",
    "dropdown": "combobox",
    "link": "link",
    "heading": "heading",
    "title": "heading",
    "h1": "heading",
    "h2": "heading",
    "h3": "heading",
    "dialog": "dialog",
    "modal": "dialog",
    "alert": "alert",
    "tab": "tab",
    "menu": "menu",
    "menuitem": "menuitem",
    "table": "table",
    "row": "row",
    "cell": "cell",
    "grid": "grid",
    "list": "list",
    "listitem": "listitem",
    "img": "img",
    "image": "img",
    "nav": "navigation",
    "navigation": "navigation",
    "search": "search",
    "main": "main",
    "banner": "banner",
    "footer": "contentinfo",
}

# Confidence per strategy when ARIA data was captured from the page.
ARIA_CONFIDENCE = {
    LocatorStrategy.TESTID: 1.0,
    LocatorStrategy.LABEL: 0.85,
    LocatorStrategy.PLACEHOLDER: 0.8,
}
ROLE_WITH_NAME_CONFIDENCE = 0.9
ROLE_ONLY_CONFIDENCE = 0.6


def _find_css_locator(code: str, selector: str | None = None) -> re.Match | None:
    found = sorted(
        (m for pattern in CSS_LOCATOR_PATTERNS for m in pattern.finditer(code)),
        key=lambda m: m.start(),
    )
    if selector:
        for m in found:
            if m.group(1) == selector:
                return m
    return found[0] if found else None


def extract_css_selector(code: str) -> str | None:
    found = _find_css_locator(code)
    return found.group(1) if found else None


def contains_css_selector(code: str) -> bool:
    return _find_css_locator(code) is not None


def _tokens(selector: str) -> list[str]:
    return [t for t in re.split(r"[^a-zA-Z0-9]+", selector.lower()) if t]


def infer_role_from_selector(selector: str) -> str | None:
    for token in _tokens(selector):
        if role := UI_ROLE_LEXICON.get(token):
            return role
    return None


def extract_name_from_selector(selector: str) -> str | None:
    if attr := re.search(r"""\[(?:aria-label|title|alt|name)=['"]([^'"]+)['"]\]""", selector):
        return attr.group(1)
    if cls := re.search(r"\.([a-zA-Z][-a-zA-Z0-9_]*)", selector):
        words = [w for w in re.split(r"[-_]", cls.group(1)) if w]
        if words and len(words[0]) > 2:
            return " ".join(words)
    return None


def candidates_from_aria(info: AriaInfo) -> dict[LocatorSpec, float]:
    """Every locator the ARIA data supports, with its confidence."""
    found: dict[LocatorSpec, float] = {}
    if info.test_id:
        found[LocatorSpec(LocatorStrategy.TESTID, info.test_id)] = ARIA_CONFIDENCE[LocatorStrategy.TESTID]
    if info.role and info.name:
        spec = LocatorSpec(LocatorStrategy.ROLE, info.role, name=info.name, exact=True, level=info.level)
        found[spec] = ROLE_WITH_NAME_CONFIDENCE
    elif info.role:
        found[LocatorSpec(LocatorStrategy.ROLE, info.role, level=info.level)] = ROLE_ONLY_CONFIDENCE
    if info.label:
        found[LocatorSpec(LocatorStrategy.LABEL, info.label, exact=True)] = ARIA_CONFIDENCE[LocatorStrategy.LABEL]
    if info.placeholder:
        spec = LocatorSpec(LocatorStrategy.PLACEHOLDER, info.placeholder)
        found[spec] = ARIA_CONFIDENCE[LocatorStrategy.PLACEHOLDER]
    return found


def infer_locator_from_css(selector: str) -> tuple[LocatorSpec, float] | None:
    role = infer_role_from_selector(selector)
    name = extract_name_from_selector(selector)
    if role and name:
        return LocatorSpec(LocatorStrategy.ROLE, role, name=name), 0.6
    if role:
        return LocatorSpec(LocatorStrategy.ROLE, role), 0.4
    if name:
        return LocatorSpec(LocatorStrategy.TEXT, name), 0.3
    return None


def apply_selector_fix(code: str, context: FixContext) -> FixResult:
    """Swap the failing CSS locator for the best semantic locator available.

    Only the one locator call is rewritten. Without ARIA data the role and
    name are guessed from class and id tokens, at low confidence.
    """
    found = _find_css_locator(code, context.selector)
    if found is None:
        return not_applied(code, "No CSS selector found to refine", FixType.SELECTOR_REFINE)

    if context.aria_info and not context.aria_info.is_empty:
        candidates = candidates_from_aria(context.aria_info)
        best = choose_locator(list(candidates))
        if best is None:
            return not_applied(code, "Unable to generate locator from ARIA info", FixType.SELECTOR_REFINE)
        confidence = candidates[best]
        origin = "ARIA snapshot"
    else:
        inferred = infer_locator_from_css(found.group(1))
        if inferred is None:
            return not_applied(
                code, "Unable to infer semantic locator from CSS selector", FixType.SELECTOR_REFINE
            )
        best, confidence = inferred
        origin = "CSS selector pattern"

    new_locator = render_locator(best)
    fixed = code[: found.start()] + new_locator + code[found.end():]
    method = new_locator.split("(")[0]
    return FixResult(
        applied=fixed != code,
        code=fixed,
        description=f"Replaced {found.group(1)!r} with {method} inferred from {origin}",
        confidence=confidence,
        fix_type=FixType.SELECTOR_REFINE,
        new_locator=new_locator,
    )


_ROLE_WITH_NAME = re.compile(
    r"""page\.getByRole\s*\(\s*['"](\w+)['"]\s*,\s*\{\s*name:\s*['"]([^'"]+)['"]\s*\}\s*\)"""
)
_LABEL_OR_TEXT = re.compile(r"""page\.(getByLabel|getByText)\s*\(\s*['"]([^'"]+)['"]\s*\)""")


def add_exact_to_locator(code: str, context: FixContext | None = None) -> FixResult:
    """Add ``exact: true`` to name-based locators that lack it."""
    fixed = _ROLE_WITH_NAME.sub(
        lambda m: f"page.getByRole({js_string(m.group(1))}, {{ name: {js_string(m.group(2))}, exact: true }})",
        code,
    )
    fixed = _LABEL_OR_TEXT.sub(
        lambda m: f"page.{m.group(1)}({js_string(m.group(2))}, {{ exact: true }})",
        fixed,
    )
    if fixed == code:
        return not_applied(code, "No locator found to add exact option", FixType.ADD_EXACT)
    return FixResult(
        applied=True,
        code=fixed,
        description="Added exact: true to locator",
        confidence=0.8,
        fix_type=FixType.ADD_EXACT,
    )
