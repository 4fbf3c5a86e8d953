"""Ordered registry of step-text patterns.

Order is significant: the first pattern that matches wins. Groups that must
shadow looser ones ("go back" before "go to", "click on" before "click",
"not visible" before "visible") are listed first.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ..ir import LocatorSpec, LocatorStrategy, Primitive, PrimitiveType, ToastType, ValueKind, ValueSpec

PATTERN_VERSION = "1.1.0"


class PatternGroup(Enum):
    STRUCTURED = "structured"
    AUTH = "auth"
    TOAST = "toast"
    MODAL_ALERT = "modal-alert"
    EXTENDED_NAVIGATION = "extended-navigation"
    NAVIGATION = "navigation"
    EXTENDED_CLICK = "extended-click"
    CLICK = "click"
    EXTENDED_FILL = "extended-fill"
    FILL = "fill"
    EXTENDED_SELECT = "extended-select"
    SELECT = "select"
    CHECK = "check"
    EXTENDED_ASSERTION = "extended-assertion"
    VISIBILITY = "visibility"
    URL = "url"
    EXTENDED_WAIT = "extended-wait"
    WAIT = "wait"
    HOVER = "hover"
    FOCUS = "focus"


@dataclass(frozen=True)
class StepPattern:
    name: str
    group: PatternGroup
    regex: re.Pattern
    primitive_type: PrimitiveType
    extract: Callable[[re.Match], Primitive]
    confidence: float = 0.9


@dataclass(frozen=True)
class PatternMatch:
    pattern: StepPattern
    primitive: Primitive


@dataclass(frozen=True)
class PatternMetadata:
    name: str
    version: str
    category: str
    source: str = "core"


def locator(strategy: LocatorStrategy, value: str, name: str | None = None) -> LocatorSpec:
    return LocatorSpec(strategy, value, name=name)


def value_from_text(text: str) -> ValueSpec:
    """`{{path}}` is an actor field, `$key` test data, `${...}` generated, anything else literal."""
    if re.match(r"^\{\{.+\}\}$", text):
        return ValueSpec(ValueKind.ACTOR, text[2:-2].strip())
    if re.match(r"^\$.+", text) and not text.startswith("${"):
        return ValueSpec(ValueKind.TEST_DATA, text[1:])
    if re.search(r"\$\{.+\}", text):
        return ValueSpec(ValueKind.GENERATED, text)
    return ValueSpec(ValueKind.LITERAL, text)


def selector_to_locator(selector: str) -> LocatorSpec:
    """Natural-language target to a locator: "Save button", "email field", "Welcome"."""
    clean = re.sub(r"^the\s+", "", selector, flags=re.IGNORECASE).strip()
    if re.search(r"button$", clean, re.IGNORECASE):
        return locator(LocatorStrategy.ROLE, "button", re.sub(r"\s*button$", "", clean, flags=re.IGNORECASE).strip())
    if re.search(r"link$", clean, re.IGNORECASE):
        return locator(LocatorStrategy.ROLE, "link", re.sub(r"\s*link$", "", clean, flags=re.IGNORECASE).strip())
    if re.search(r"(?:input|field)$", clean, re.IGNORECASE):
        return locator(LocatorStrategy.LABEL, re.sub(r"\s*(?:input|field)$", "", clean, flags=re.IGNORECASE).strip())
    return locator(LocatorStrategy.TEXT, clean)


def _unquote(text: str) -> str:
    return re.sub(r"[\"']", "", text)


def _role(role: str, group: int = 1):
    return lambda m: locator(LocatorStrategy.ROLE, role, m.group(group))


def _click(make_locator):
    return lambda m: Primitive(PrimitiveType.CLICK, locator=make_locator(m))


def _on(ptype: PrimitiveType, strategy: LocatorStrategy, group: int = 1, unquote: bool = False):
    def extract(m: re.Match) -> Primitive:
        target = m.group(group)
        return Primitive(ptype, locator=locator(strategy, _unquote(target) if unquote else target))
    return extract


def _bare(ptype: PrimitiveType, **kwargs):
    return lambda m: Primitive(ptype, **kwargs)


def _fill(strategy: LocatorStrategy, target: int, value: int, unquote: bool = False):
    def extract(m: re.Match) -> Primitive:
        field, raw = m.group(target), m.group(value)
        if unquote:
            field, raw = _unquote(field), _unquote(raw)
        return Primitive(PrimitiveType.FILL, locator=locator(strategy, field), value=value_from_text(raw))
    return extract


def _toast(toast_type: ToastType):
    return lambda m: Primitive(PrimitiveType.EXPECT_TOAST, toast_type=toast_type, message=m.group(1))


def _pattern(name, group, regex, ptype, extract, confidence=0.9) -> StepPattern:
    return StepPattern(name, group, re.compile(regex, re.IGNORECASE), ptype, extract, confidence)


_U = r"^(?:user\s+)?"
_VERIFY = r"^(?:verify|confirm|check)\s+(?:that\s+)?(?:the\s+)?"

STRUCTURED_PATTERNS = (
    _pattern(
        "structured-action-click", PatternGroup.STRUCTURED,
        r"^\*\*Action\*\*:\s*click\s+(?:the\s+)?['\"]?(.+?)['\"]?\s*(?:button|link)?$",
        PrimitiveType.CLICK, lambda m: Primitive(PrimitiveType.CLICK, locator=selector_to_locator(m.group(1) + " button")),
    ),
    _pattern(
        "structured-action-fill", PatternGroup.STRUCTURED,
        r"^\*\*Action\*\*:\s*fill\s+(?:in\s+)?['\"]?(.+?)['\"]?\s+with\s+['\"]?(.+?)['\"]?$",
        PrimitiveType.FILL,
        lambda m: Primitive(PrimitiveType.FILL, locator=selector_to_locator(m.group(1)), value=value_from_text(m.group(2))),
    ),
    _pattern(
        "structured-action-navigate", PatternGroup.STRUCTURED,
        r"^\*\*Action\*\*:\s*navigate\s+to\s+['\"]?(.+?)['\"]?$",
        PrimitiveType.GOTO, lambda m: Primitive(PrimitiveType.GOTO, url=m.group(1), wait_for_load=True),
    ),
    _pattern(
        "structured-wait-for-visible", PatternGroup.STRUCTURED,
        r"^\*\*Wait for\*\*:\s*(.+?)\s+(?:to\s+)?(?:be\s+)?(?:visible|appear|load)",
        PrimitiveType.EXPECT_VISIBLE, lambda m: Primitive(PrimitiveType.EXPECT_VISIBLE, locator=selector_to_locator(m.group(1))),
    ),
    _pattern(
        "structured-assert-visible", PatternGroup.STRUCTURED,
        r"^\*\*Assert\*\*:\s*(.+?)\s+(?:is\s+)?visible$",
        PrimitiveType.EXPECT_VISIBLE, lambda m: Primitive(PrimitiveType.EXPECT_VISIBLE, locator=selector_to_locator(m.group(1))),
    ),
    _pattern(
        "structured-assert-text", PatternGroup.STRUCTURED,
        r"^\*\*Assert\*\*:\s*(.+?)\s+(?:contains|has text)\s+['\"]?(.+?)['\"]?$",
        PrimitiveType.EXPECT_TEXT,
        lambda m: Primitive(PrimitiveType.EXPECT_TEXT, locator=selector_to_locator(m.group(1)), text=m.group(2)),
    ),
)

AUTH_PATTERNS = (
    _pattern(
        "user-login", PatternGroup.AUTH,
        _U + r"(?:logs?\s*in|login\s+is\s+performed|authenticates?)$",
        PrimitiveType.CALL_MODULE, _bare(PrimitiveType.CALL_MODULE, module="auth", method="login"),
    ),
    _pattern(
        "user-logout", PatternGroup.AUTH,
        _U + r"(?:logs?\s*out|logout\s+is\s+performed|signs?\s*out)$",
        PrimitiveType.CALL_MODULE, _bare(PrimitiveType.CALL_MODULE, module="auth", method="logout"),
    ),
    _pattern(
        "login-as-role", PatternGroup.AUTH,
        _U + r"logs?\s*in\s+as\s+(?:an?\s+)?(.+?)(?:\s+user)?$",
        PrimitiveType.CALL_MODULE,
        lambda m: Primitive(PrimitiveType.CALL_MODULE, module="auth", method="loginAs", args=(m.group(1).lower(),)),
    ),
)

_APPEARS = r"(?:appears?|is\s+shown|displays?)"

TOAST_PATTERNS = (
    _pattern(
        "success-toast-message", PatternGroup.TOAST,
        r"^(?:a\s+)?success\s+toast\s+(?:with\s+)?[\"']([^\"']+)[\"']\s*(?:message\s+)?" + _APPEARS + "$",
        PrimitiveType.EXPECT_TOAST, _toast(ToastType.SUCCESS),
    ),
    _pattern(
        "success-toast-appears-with", PatternGroup.TOAST,
        r"^(?:a\s+)?success\s+toast\s+" + _APPEARS + r"\s+(?:with\s+)?(?:(?:message|text)\s+)?[\"']?(.+?)[\"']?$",
        PrimitiveType.EXPECT_TOAST, _toast(ToastType.SUCCESS),
    ),
    _pattern(
        "error-toast-message", PatternGroup.TOAST,
        r"^(?:an?\s+)?error\s+toast\s+(?:with\s+)?[\"']([^\"']+)[\"']\s*(?:message\s+)?" + _APPEARS + "$",
        PrimitiveType.EXPECT_TOAST, _toast(ToastType.ERROR),
    ),
    _pattern(
        "error-toast-appears-with", PatternGroup.TOAST,
        r"^(?:an?\s+)?error\s+toast\s+" + _APPEARS + r"\s+(?:with\s+)?(?:(?:message|text)\s+)?[\"']?(.+?)[\"']?$",
        PrimitiveType.EXPECT_TOAST, _toast(ToastType.ERROR),
    ),
    _pattern(
        "toast-appears", PatternGroup.TOAST,
        r"^(?:a\s+)?(?:(success|error|info|warning)\s+)?toast\s+(?:notification\s+)?" + _APPEARS + "$",
        PrimitiveType.EXPECT_TOAST,
        lambda m: Primitive(PrimitiveType.EXPECT_TOAST, toast_type=ToastType((m.group(1) or "info").lower())),
    ),
    _pattern(
        "toast-with-text", PatternGroup.TOAST,
        r"^(?:a\s+)?(?:toast|notification)\s+(?:with\s+)?(?:(?:text|message)\s+)?[\"']?(.+?)[\"']?\s+" + _APPEARS + "$",
        PrimitiveType.EXPECT_TOAST, _toast(ToastType.INFO),
    ),
    _pattern(
        "status-message-visible", PatternGroup.TOAST,
        r"^(?:a\s+)?status\s+(?:message\s+)?[\"']([^\"']+)[\"']\s+(?:is\s+)?(?:visible|shown|displayed)$",
        PrimitiveType.EXPECT_VISIBLE, lambda m: Primitive(PrimitiveType.EXPECT_VISIBLE, locator=_role("status")(m)),
    ),
    _pattern(
        "verify-status-message", PatternGroup.TOAST,
        r"^(?:verify|check)\s+(?:that\s+)?(?:the\s+)?status\s+(?:message\s+)?(?:shows?|displays?|contains?)\s+[\"']([^\"']+)[\"']$",
        PrimitiveType.EXPECT_VISIBLE, lambda m: Primitive(PrimitiveType.EXPECT_VISIBLE, locator=_role("status")(m)),
    ),
)

MODAL_ALERT_PATTERNS = (
    _pattern(
        "dismiss-modal", PatternGroup.MODAL_ALERT,
        r"^(?:dismiss|close)\s+(?:the\s+)?(?:modal|dialog)(?:\s+dialog)?$",
        PrimitiveType.DISMISS_MODAL, _bare(PrimitiveType.DISMISS_MODAL),
    ),
    _pattern(
        "accept-alert", PatternGroup.MODAL_ALERT,
        r"^(?:accept|confirm|ok)\s+(?:the\s+)?alert$",
        PrimitiveType.ACCEPT_ALERT, _bare(PrimitiveType.ACCEPT_ALERT),
    ),
    _pattern(
        "dismiss-alert", PatternGroup.MODAL_ALERT,
        r"^(?:dismiss|cancel|close)\s+(?:the\s+)?alert$",
        PrimitiveType.DISMISS_ALERT, _bare(PrimitiveType.DISMISS_ALERT),
    ),
)

EXTENDED_NAVIGATION_PATTERNS = (
    _pattern(
        "refresh-page", PatternGroup.EXTENDED_NAVIGATION,
        _U + r"(?:refresh(?:es)?|reloads?)\s+(?:the\s+)?page$",
        PrimitiveType.RELOAD, _bare(PrimitiveType.RELOAD),
    ),
    _pattern(
        "go-back", PatternGroup.EXTENDED_NAVIGATION,
        _U + r"(?:go(?:es)?|navigates?)\s+back$",
        PrimitiveType.GO_BACK, _bare(PrimitiveType.GO_BACK),
    ),
    _pattern(
        "go-forward", PatternGroup.EXTENDED_NAVIGATION,
        _U + r"(?:go(?:es)?|navigates?)\s+forward$",
        PrimitiveType.GO_FORWARD, _bare(PrimitiveType.GO_FORWARD),
    ),
)

NAVIGATION_PATTERNS = (
    _pattern(
        "navigate-to-url", PatternGroup.NAVIGATION,
        _U + r"(?:navigates?|go(?:es)?|opens?)\s+(?:to\s+)?(?:the\s+)?[\"']?([^\"'\s]+)[\"']?$",
        PrimitiveType.GOTO, lambda m: Primitive(PrimitiveType.GOTO, url=m.group(1), wait_for_load=True),
    ),
    _pattern(
        "navigate-to-page", PatternGroup.NAVIGATION,
        _U + r"(?:navigates?|go(?:es)?|opens?)\s+(?:to\s+)?(?:the\s+)?(.+?)\s+page$",
        PrimitiveType.GOTO,
        lambda m: Primitive(
            PrimitiveType.GOTO, url="/" + re.sub(r"\s+", "-", m.group(1).lower()), wait_for_load=True
        ),
    ),
    _pattern(
        "wait-for-url-change", PatternGroup.NAVIGATION,
        _U + r"waits?\s+(?:for\s+)?(?:the\s+)?url\s+(?:to\s+)?(?:change\s+to|contain|include)\s+[\"']?([^\"']+)[\"']?$",
        PrimitiveType.WAIT_FOR_URL, lambda m: Primitive(PrimitiveType.WAIT_FOR_URL, pattern=m.group(1)),
    ),
)

_CLICK_VERB = r"(?:clicks?|presses?|taps?|selects?)\s+(?:on\s+)?(?:the\s+)?"

EXTENDED_CLICK_PATTERNS = (
    _pattern(
        "click-on-element", PatternGroup.EXTENDED_CLICK,
        _U + r"(?:clicks?|selects?)\s+on\s+(?:the\s+)?(.+?)(?:\s+button|\s+link)?$",
        PrimitiveType.CLICK, _on(PrimitiveType.CLICK, LocatorStrategy.TEXT, unquote=True), 0.7,
    ),
    _pattern(
        "press-enter-key", PatternGroup.EXTENDED_CLICK,
        _U + r"(?:press(?:es)?|hits?)\s+(?:the\s+)?(?:enter|return)(?:\s+key)?$",
        PrimitiveType.PRESS, _bare(PrimitiveType.PRESS, key="Enter"),
    ),
    _pattern(
        "press-tab-key", PatternGroup.EXTENDED_CLICK,
        _U + r"(?:press(?:es)?|hits?)\s+(?:the\s+)?tab(?:\s+key)?$",
        PrimitiveType.PRESS, _bare(PrimitiveType.PRESS, key="Tab"),
    ),
    _pattern(
        "press-escape-key", PatternGroup.EXTENDED_CLICK,
        _U + r"(?:press(?:es)?|hits?)\s+(?:the\s+)?(?:escape|esc)(?:\s+key)?$",
        PrimitiveType.PRESS, _bare(PrimitiveType.PRESS, key="Escape"),
    ),
    _pattern(
        "double-click", PatternGroup.EXTENDED_CLICK,
        _U + r"double[-\s]?clicks?\s+(?:on\s+)?(?:the\s+)?[\"']?(.+?)[\"']?$",
        PrimitiveType.DBLCLICK, _on(PrimitiveType.DBLCLICK, LocatorStrategy.TEXT, unquote=True),
    ),
    _pattern(
        "right-click", PatternGroup.EXTENDED_CLICK,
        _U + r"right[-\s]?clicks?\s+(?:on\s+)?(?:the\s+)?[\"']?(.+?)[\"']?$",
        PrimitiveType.RIGHT_CLICK, _on(PrimitiveType.RIGHT_CLICK, LocatorStrategy.TEXT, unquote=True),
    ),
    _pattern(
        "submit-form", PatternGroup.EXTENDED_CLICK,
        _U + r"submits?\s+(?:the\s+)?form$",
        PrimitiveType.CLICK, _bare(PrimitiveType.CLICK, locator=locator(LocatorStrategy.ROLE, "button", "Submit")),
    ),
)

CLICK_PATTERNS = (
    _pattern(
        "click-button-quoted", PatternGroup.CLICK,
        _U + _CLICK_VERB + r"[\"']([^\"']+)[\"']\s+button$",
        PrimitiveType.CLICK, _click(_role("button")),
    ),
    _pattern(
        "click-link-quoted", PatternGroup.CLICK,
        _U + _CLICK_VERB + r"[\"']([^\"']+)[\"']\s+link$",
        PrimitiveType.CLICK, _click(_role("link")),
    ),
    _pattern(
        "click-menuitem-quoted", PatternGroup.CLICK,
        _U + r"(?:clicks?|selects?)\s+(?:on\s+)?(?:the\s+)?[\"']([^\"']+)[\"']\s+menu\s*item$",
        PrimitiveType.CLICK, _click(_role("menuitem")),
    ),
    _pattern(
        "click-tab-quoted", PatternGroup.CLICK,
        _U + r"(?:clicks?|selects?)\s+(?:on\s+)?(?:the\s+)?[\"']([^\"']+)[\"']\s+tab$",
        PrimitiveType.CLICK, _click(_role("tab")),
    ),
    _pattern(
        "click-element-quoted", PatternGroup.CLICK,
        _U + _CLICK_VERB + r"[\"']([^\"']+)[\"']$",
        PrimitiveType.CLICK, _on(PrimitiveType.CLICK, LocatorStrategy.TEXT),
    ),
    _pattern(
        "click-element-generic", PatternGroup.CLICK,
        _U + _CLICK_VERB + r"(.+?)\s+(?:button|link|icon|menu|tab)$",
        PrimitiveType.CLICK, _on(PrimitiveType.CLICK, LocatorStrategy.TEXT), 0.7,
    ),
)

_FILL_VERB = r"(?:enters?|types?|fills?\s+in?|inputs?)"

EXTENDED_FILL_PATTERNS = (
    _pattern(
        "fill-field-with-value", PatternGroup.EXTENDED_FILL,
        _U + r"(?:fills?|enters?|types?|inputs?)(?:\s+in)?\s+(?:the\s+)?[\"']?(.+?)[\"']?\s+(?:field|input)\s+with\s+[\"']?(.+?)[\"']?$",
        PrimitiveType.FILL, _fill(LocatorStrategy.LABEL, 1, 2, unquote=True),
    ),
    _pattern(
        "type-into-field", PatternGroup.EXTENDED_FILL,
        _U + r"types?\s+['\"](.+?)['\"]\s+into\s+(?:the\s+)?[\"']?(.+?)[\"']?\s*(?:field|input)?$",
        PrimitiveType.FILL, _fill(LocatorStrategy.LABEL, 2, 1),
    ),
    _pattern(
        "fill-in-field-no-value", PatternGroup.EXTENDED_FILL,
        _U + r"fills?\s+in\s+(?:the\s+)?[\"']?(.+?)[\"']?\s*(?:field|input)?$",
        PrimitiveType.FILL,
        lambda m: Primitive(
            PrimitiveType.FILL,
            locator=locator(LocatorStrategy.LABEL, _unquote(m.group(1))),
            value=ValueSpec(ValueKind.ACTOR, re.sub(r"\s+", "_", _unquote(m.group(1)).lower())),
        ),
        0.7,
    ),
    _pattern(
        "clear-field", PatternGroup.EXTENDED_FILL,
        _U + r"clears?\s+(?:the\s+)?[\"']?(.+?)[\"']?\s*(?:field|input)?$",
        PrimitiveType.CLEAR, _on(PrimitiveType.CLEAR, LocatorStrategy.LABEL, unquote=True),
    ),
    _pattern(
        "set-value", PatternGroup.EXTENDED_FILL,
        _U + r"sets?\s+(?:the\s+)?(?:value\s+)?(?:of\s+)?[\"']?(.+?)[\"']?\s+to\s+['\"](.+?)['\"]$",
        PrimitiveType.FILL, _fill(LocatorStrategy.LABEL, 1, 2),
    ),
)

FILL_PATTERNS = (
    _pattern(
        "fill-field-quoted-value", PatternGroup.FILL,
        _U + _FILL_VERB + r"\s+[\"']([^\"']+)[\"']\s+(?:in|into)\s+(?:the\s+)?[\"']([^\"']+)[\"']\s*(?:field|input)?$",
        PrimitiveType.FILL, _fill(LocatorStrategy.LABEL, 2, 1),
    ),
    _pattern(
        "fill-field-actor-value", PatternGroup.FILL,
        _U + _FILL_VERB + r"\s+(\{\{[^}]+\}\})\s+(?:in|into)\s+(?:the\s+)?[\"']([^\"']+)[\"']\s*(?:field|input)?$",
        PrimitiveType.FILL, _fill(LocatorStrategy.LABEL, 2, 1),
    ),
    _pattern(
        "fill-placeholder-field", PatternGroup.FILL,
        _U + r"(?:enters?|types?|fills?)\s+[\"']([^\"']+)[\"']\s+(?:in|into)\s+(?:the\s+)?(?:field|input)\s+with\s+placeholder\s+[\"']([^\"']+)[\"']$",
        PrimitiveType.FILL, _fill(LocatorStrategy.PLACEHOLDER, 2, 1),
    ),
    _pattern(
        "fill-field-generic", PatternGroup.FILL,
        _U + _FILL_VERB + r"\s+(.+?)\s+(?:in|into)\s+(?:the\s+)?(.+?)\s*(?:field|input)?$",
        PrimitiveType.FILL, _fill(LocatorStrategy.LABEL, 2, 1, unquote=True), 0.7,
    ),
)


def _select(make_locator):
    return lambda m: Primitive(PrimitiveType.SELECT, locator=make_locator(m), option=m.group(1))


def _combobox(m: re.Match) -> LocatorSpec:
    return locator(LocatorStrategy.ROLE, "combobox")

EXTENDED_SELECT_PATTERNS = (
    _pattern(
        "select-from-named-dropdown", PatternGroup.EXTENDED_SELECT,
        _U + r"(?:selects?|chooses?)\s+[\"'](.+?)[\"']\s+from\s+(?:the\s+)?(.+?)\s*(?:dropdown|select|selector|menu|list)$",
        PrimitiveType.SELECT, _select(lambda m: locator(LocatorStrategy.LABEL, m.group(2).strip())),
    ),
    _pattern(
        "select-from-dropdown", PatternGroup.EXTENDED_SELECT,
        _U + r"(?:selects?|chooses?)\s+['\"](.+?)['\"]\s+from\s+(?:the\s+)?dropdown$",
        PrimitiveType.SELECT, _select(_combobox),
    ),
    _pattern(
        "select-option-named", PatternGroup.EXTENDED_SELECT,
        _U + r"(?:selects?|chooses?)\s+(?:the\s+)?(?:option\s+)?(?:named\s+)?[\"'](.+?)[\"'](?:\s+option)?$",
        PrimitiveType.SELECT, _select(_combobox),
    ),
)

SELECT_PATTERNS = (
    _pattern(
        "select-option", PatternGroup.SELECT,
        _U + r"(?:selects?|chooses?)\s+[\"']([^\"']+)[\"']\s+(?:from|in)\s+(?:the\s+)?[\"']([^\"']+)[\"']\s*(?:dropdown|select|menu)?$",
        PrimitiveType.SELECT, _select(lambda m: locator(LocatorStrategy.LABEL, m.group(2))),
    ),
)

CHECK_PATTERNS = (
    _pattern(
        "check-checkbox", PatternGroup.CHECK,
        _U + r"(?:checks?|enables?|ticks?)\s+(?:the\s+)?[\"']([^\"']+)[\"']\s*(?:checkbox|option)?$",
        PrimitiveType.CHECK, _on(PrimitiveType.CHECK, LocatorStrategy.LABEL),
    ),
    _pattern(
        "check-checkbox-unquoted", PatternGroup.CHECK,
        _U + r"(?:checks?|enables?|ticks?)\s+(?:the\s+)?(\w+(?:\s+\w+)*)\s+checkbox$",
        PrimitiveType.CHECK, _on(PrimitiveType.CHECK, LocatorStrategy.LABEL),
    ),
    _pattern(
        "uncheck-checkbox", PatternGroup.CHECK,
        _U + r"(?:unchecks?|disables?|unticks?)\s+(?:the\s+)?[\"']([^\"']+)[\"']\s*(?:checkbox|option)?$",
        PrimitiveType.UNCHECK, _on(PrimitiveType.UNCHECK, LocatorStrategy.LABEL),
    ),
    _pattern(
        "uncheck-checkbox-unquoted", PatternGroup.CHECK,
        _U + r"(?:unchecks?|disables?|unticks?)\s+(?:the\s+)?(\w+(?:\s+\w+)*)\s+checkbox$",
        PrimitiveType.UNCHECK, _on(PrimitiveType.UNCHECK, LocatorStrategy.LABEL),
    ),
)

EXTENDED_ASSERTION_PATTERNS = (
    _pattern(
        "verify-not-visible", PatternGroup.EXTENDED_ASSERTION,
        _VERIFY + r"[\"']?(.+?)[\"']?\s+is\s+not\s+visible$",
        PrimitiveType.EXPECT_HIDDEN, _on(PrimitiveType.EXPECT_HIDDEN, LocatorStrategy.TEXT),
    ),
    _pattern(
        "element-should-not-be-visible", PatternGroup.EXTENDED_ASSERTION,
        r"^(?:the\s+)?[\"']?(.+?)[\"']?\s+(?:should\s+)?(?:not\s+be|is\s+not)\s+(?:visible|displayed|shown)$",
        PrimitiveType.EXPECT_HIDDEN, _on(PrimitiveType.EXPECT_HIDDEN, LocatorStrategy.TEXT),
    ),
    _pattern(
        "verify-url-contains", PatternGroup.EXTENDED_ASSERTION,
        _VERIFY + r"url\s+contains?\s+[\"']([^\"']+)[\"']$",
        PrimitiveType.EXPECT_URL, lambda m: Primitive(PrimitiveType.EXPECT_URL, pattern=m.group(1)),
    ),
    _pattern(
        "verify-title-is", PatternGroup.EXTENDED_ASSERTION,
        _VERIFY + r"(?:page\s+)?title\s+(?:is|equals?)\s+[\"']([^\"']+)[\"']$",
        PrimitiveType.EXPECT_TITLE, lambda m: Primitive(PrimitiveType.EXPECT_TITLE, title=m.group(1)),
    ),
    _pattern(
        "verify-field-value", PatternGroup.EXTENDED_ASSERTION,
        _VERIFY + r"[\"']?(\w+)[\"']?\s+(?:field\s+)?has\s+value\s+[\"']([^\"']+)[\"']$",
        PrimitiveType.EXPECT_VALUE,
        lambda m: Primitive(
            PrimitiveType.EXPECT_VALUE, locator=locator(LocatorStrategy.LABEL, m.group(1)), text=m.group(2)
        ),
    ),
    _pattern(
        "verify-element-enabled", PatternGroup.EXTENDED_ASSERTION,
        _VERIFY + r"[\"']?(.+?)[\"']?\s+(?:button\s+)?is\s+enabled$",
        PrimitiveType.EXPECT_ENABLED, _on(PrimitiveType.EXPECT_ENABLED, LocatorStrategy.LABEL),
    ),
    _pattern(
        "verify-element-disabled", PatternGroup.EXTENDED_ASSERTION,
        _VERIFY + r"[\"']?(.+?)[\"']?\s+(?:input\s+)?is\s+disabled$",
        PrimitiveType.EXPECT_DISABLED, _on(PrimitiveType.EXPECT_DISABLED, LocatorStrategy.LABEL),
    ),
    _pattern(
        "verify-checkbox-checked", PatternGroup.EXTENDED_ASSERTION,
        _VERIFY + r"[\"']?(.+?)[\"']?\s+(?:checkbox\s+)?is\s+checked$",
        PrimitiveType.EXPECT_CHECKED, _on(PrimitiveType.EXPECT_CHECKED, LocatorStrategy.LABEL),
    ),
    _pattern(
        "verify-count", PatternGroup.EXTENDED_ASSERTION,
        r"^(?:verify|confirm|check)\s+(?:that\s+)?(\d+)\s+(?:items?|elements?|rows?)\s+(?:are\s+)?(?:shown|displayed|exist|visible)$",
        PrimitiveType.EXPECT_COUNT,
        lambda m: Primitive(
            PrimitiveType.EXPECT_COUNT, locator=locator(LocatorStrategy.TEXT, "item"), count=int(m.group(1))
        ),
    ),
    _pattern(
        "verify-element-showing", PatternGroup.EXTENDED_ASSERTION,
        r"^(?:verify|confirm|ensure)\s+(?:that\s+)?(?:the\s+)?[\"']?(.+?)[\"']?\s+(?:is\s+)?(?:showing|displayed|visible)$",
        PrimitiveType.EXPECT_VISIBLE, _on(PrimitiveType.EXPECT_VISIBLE, LocatorStrategy.TEXT),
    ),
    _pattern(
        "page-should-show", PatternGroup.EXTENDED_ASSERTION,
        r"^(?:the\s+)?page\s+should\s+(?:show|display|contain)\s+['\"](.+?)['\"]$",
        PrimitiveType.EXPECT_TEXT,
        lambda m: Primitive(PrimitiveType.EXPECT_TEXT, locator=locator(LocatorStrategy.ROLE, "main"), text=m.group(1)),
    ),
    _pattern(
        "make-sure-assertion", PatternGroup.EXTENDED_ASSERTION,
        r"^make\s+sure\s+(?:that\s+)?(?:the\s+)?(.+?)\s+(?:is\s+)?(?:visible|displayed|shown)$",
        PrimitiveType.EXPECT_VISIBLE, _on(PrimitiveType.EXPECT_VISIBLE, LocatorStrategy.TEXT), 0.7,
    ),
    _pattern(
        "confirm-that-assertion", PatternGroup.EXTENDED_ASSERTION,
        r"^(?:verify|confirm)\s+(?:that\s+)?(?:the\s+)?[\"']?(.+?)[\"']?\s+(?:appears?|is\s+shown|displays?)$",
        PrimitiveType.EXPECT_VISIBLE, _on(PrimitiveType.EXPECT_VISIBLE, LocatorStrategy.TEXT), 0.7,
    ),
    _pattern(
        "check-element-exists", PatternGroup.EXTENDED_ASSERTION,
        r"^check\s+(?:that\s+)?(?:the\s+)?[\"']?(.+?)[\"']?\s+(?:exists?|is\s+present)$",
        PrimitiveType.EXPECT_VISIBLE, _on(PrimitiveType.EXPECT_VISIBLE, LocatorStrategy.TEXT), 0.7,
    ),
    _pattern(
        "element-contains-text", PatternGroup.EXTENDED_ASSERTION,
        r"^(?:the\s+)?[\"']?(.+?)[\"']?\s+(?:should\s+)?contains?\s+['\"](.+?)['\"]$",
        PrimitiveType.EXPECT_TEXT,
        lambda m: Primitive(PrimitiveType.EXPECT_TEXT, locator=locator(LocatorStrategy.TEXT, m.group(1)), text=m.group(2)),
    ),
)

VISIBILITY_PATTERNS = (
    _pattern(
        "should-see-text", PatternGroup.VISIBILITY,
        _U + r"(?:should\s+)?(?:sees?|views?)\s+(?:the\s+)?[\"']([^\"']+)[\"']$",
        PrimitiveType.EXPECT_VISIBLE, _on(PrimitiveType.EXPECT_VISIBLE, LocatorStrategy.TEXT),
    ),
    _pattern(
        "is-visible", PatternGroup.VISIBILITY,
        r"^[\"']?([^\"']+)[\"']?\s+(?:is\s+)?(?:visible|displayed|shown)$",
        PrimitiveType.EXPECT_VISIBLE, _on(PrimitiveType.EXPECT_VISIBLE, LocatorStrategy.TEXT),
    ),
    _pattern(
        "should-see-element", PatternGroup.VISIBILITY,
        _U + r"(?:should\s+)?(?:sees?|views?)\s+(?:the\s+)?(.+?)\s+(?:heading|button|link|form|page|element)$",
        PrimitiveType.EXPECT_VISIBLE, _on(PrimitiveType.EXPECT_VISIBLE, LocatorStrategy.TEXT), 0.7,
    ),
    _pattern(
        "page-displayed", PatternGroup.VISIBILITY,
        r"^(?:the\s+)?(.+?)\s+(?:page|screen|view)\s+(?:is\s+)?(?:displayed|shown|visible)$",
        PrimitiveType.EXPECT_VISIBLE, _on(PrimitiveType.EXPECT_VISIBLE, LocatorStrategy.TEXT), 0.7,
    ),
)

URL_PATTERNS = (
    _pattern(
        "url-contains", PatternGroup.URL,
        r"^(?:the\s+)?url\s+(?:should\s+)?(?:contains?|includes?)\s+[\"']?([^\"'\s]+)[\"']?$",
        PrimitiveType.EXPECT_URL, lambda m: Primitive(PrimitiveType.EXPECT_URL, pattern=m.group(1)),
    ),
    _pattern(
        "url-is", PatternGroup.URL,
        r"^(?:the\s+)?url\s+(?:should\s+)?(?:is|equals?|be)\s+[\"']?([^\"'\s]+)[\"']?$",
        PrimitiveType.EXPECT_URL, lambda m: Primitive(PrimitiveType.EXPECT_URL, pattern=m.group(1)),
    ),
    _pattern(
        "redirected-to", PatternGroup.URL,
        _U + r"(?:is\s+)?redirected\s+to\s+[\"']?([^\"'\s]+)[\"']?$",
        PrimitiveType.EXPECT_URL, lambda m: Primitive(PrimitiveType.EXPECT_URL, pattern=m.group(1)),
    ),
)

EXTENDED_WAIT_PATTERNS = (
    _pattern(
        "wait-for-element-hidden", PatternGroup.EXTENDED_WAIT,
        _U + r"waits?\s+(?:for\s+)?(?:the\s+)?[\"']?(.+?)[\"']?\s+to\s+(?:disappear|be\s+hidden)$",
        PrimitiveType.WAIT_FOR_HIDDEN, _on(PrimitiveType.WAIT_FOR_HIDDEN, LocatorStrategy.TEXT),
    ),
    _pattern(
        "wait-for-element-appear", PatternGroup.EXTENDED_WAIT,
        _U + r"waits?\s+(?:for\s+)?(?:the\s+)?[\"']?(.+?)[\"']?\s+to\s+(?:appear|show|be\s+visible)$",
        PrimitiveType.WAIT_FOR_VISIBLE, _on(PrimitiveType.WAIT_FOR_VISIBLE, LocatorStrategy.TEXT),
    ),
    _pattern(
        "wait-until-loaded", PatternGroup.EXTENDED_WAIT,
        _U + r"waits?\s+until\s+(?:the\s+)?(?:page|content|data)\s+(?:is\s+)?loaded$",
        PrimitiveType.WAIT_FOR_LOADING_COMPLETE, _bare(PrimitiveType.WAIT_FOR_LOADING_COMPLETE),
    ),
    _pattern(
        "wait-seconds", PatternGroup.EXTENDED_WAIT,
        _U + r"waits?\s+(?:for\s+)?(\d+)\s+seconds?$",
        PrimitiveType.WAIT_FOR_TIMEOUT,
        lambda m: Primitive(PrimitiveType.WAIT_FOR_TIMEOUT, ms=int(m.group(1)) * 1000),
    ),
    _pattern(
        "wait-for-network", PatternGroup.EXTENDED_WAIT,
        _U + r"waits?\s+(?:for\s+)?(?:the\s+)?network\s+(?:to\s+be\s+)?idle$",
        PrimitiveType.WAIT_FOR_NETWORK_IDLE, _bare(PrimitiveType.WAIT_FOR_NETWORK_IDLE),
    ),
)

WAIT_PATTERNS = (
    _pattern(
        "wait-for-navigation", PatternGroup.WAIT,
        _U + r"(?:waits?\s+)?(?:for\s+)?navigation\s+to\s+[\"']?([^\"'\s]+)[\"']?$",
        PrimitiveType.WAIT_FOR_URL, lambda m: Primitive(PrimitiveType.WAIT_FOR_URL, pattern=m.group(1)),
    ),
    _pattern(
        "wait-for-page", PatternGroup.WAIT,
        _U + r"(?:waits?\s+)?(?:for\s+)?(?:the\s+)?(.+?)\s+(?:page|screen)\s+to\s+load$",
        PrimitiveType.WAIT_FOR_LOADING_COMPLETE, _bare(PrimitiveType.WAIT_FOR_LOADING_COMPLETE),
    ),
)

HOVER_PATTERNS = (
    _pattern(
        "hover-over-element", PatternGroup.HOVER,
        _U + r"hovers?\s+(?:over|on)\s+(?:the\s+)?[\"']?(.+?)[\"']?$",
        PrimitiveType.HOVER, _on(PrimitiveType.HOVER, LocatorStrategy.TEXT, unquote=True),
    ),
    _pattern(
        "mouse-over", PatternGroup.HOVER,
        _U + r"mouse\s*over\s+(?:the\s+)?[\"']?(.+?)[\"']?$",
        PrimitiveType.HOVER, _on(PrimitiveType.HOVER, LocatorStrategy.TEXT, unquote=True),
    ),
)

FOCUS_PATTERNS = (
    _pattern(
        "focus-on-element", PatternGroup.FOCUS,
        _U + r"focus(?:es)?\s+(?:on\s+)?(?:the\s+)?[\"']?(.+?)[\"']?$",
        PrimitiveType.FOCUS, _on(PrimitiveType.FOCUS, LocatorStrategy.LABEL, unquote=True),
    ),
)

ALL_PATTERNS: tuple[StepPattern, ...] = (
    *STRUCTURED_PATTERNS,
    *AUTH_PATTERNS,
    *TOAST_PATTERNS,
    *MODAL_ALERT_PATTERNS,
    *EXTENDED_NAVIGATION_PATTERNS,
    *NAVIGATION_PATTERNS,
    *EXTENDED_CLICK_PATTERNS,
    *CLICK_PATTERNS,
    *EXTENDED_FILL_PATTERNS,
    *FILL_PATTERNS,
    *EXTENDED_SELECT_PATTERNS,
    *SELECT_PATTERNS,
    *CHECK_PATTERNS,
    *EXTENDED_ASSERTION_PATTERNS,
    *VISIBILITY_PATTERNS,
    *URL_PATTERNS,
    *EXTENDED_WAIT_PATTERNS,
    *WAIT_PATTERNS,
    *HOVER_PATTERNS,
    *FOCUS_PATTERNS,
)

_EXTENDED_PREFIXES = ("hover", "focus", "press-", "double-", "right-")


def match_pattern(text: str, patterns: tuple[StepPattern, ...] = ALL_PATTERNS) -> PatternMatch | None:
    """First registry entry that matches, in registry order."""
    trimmed = text.strip()
    for pattern in patterns:
        if match := pattern.regex.match(trimmed):
            return PatternMatch(pattern, pattern.extract(match))
    return None


def find_matching_patterns(text: str, patterns: tuple[StepPattern, ...] = ALL_PATTERNS) -> list[str]:
    """Names of every pattern that matches, for diagnosing overlaps."""
    trimmed = text.strip()
    return [p.name for p in patterns if p.regex.match(trimmed)]


def pattern_names() -> list[str]:
    return [p.name for p in ALL_PATTERNS]


def pattern_counts_by_group() -> dict[str, int]:
    counts: dict[str, int] = {}
    for pattern in ALL_PATTERNS:
        counts[pattern.group.value] = counts.get(pattern.group.value, 0) + 1
    return counts


def pattern_metadata(name: str) -> PatternMetadata | None:
    pattern = next((p for p in ALL_PATTERNS if p.name == name), None)
    if pattern is None:
        return None
    extended = "extended" in name or name.startswith(_EXTENDED_PREFIXES)
    return PatternMetadata(
        name=name,
        version=PATTERN_VERSION if extended else "1.0.0",
        category=name.split("-")[0],
    )
