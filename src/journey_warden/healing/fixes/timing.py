"""Timing fixes: missing awaits, web-first assertions, bounded timeout increase.

None of these ever insert ``waitForTimeout``; fixed sleeps are a forbidden fix.
"""

import re

from ...models import FixType
from .base import FixContext, FixResult, not_applied

DEFAULT_TIMEOUT = 5_000
TIMEOUT_FACTOR = 1.5

_ASYNC_PAGE_CALL = re.compile(
    r"^page\.(?:goto|reload|goBack|goForward|waitFor\w*|click|dblclick|fill|type|press|check|uncheck"
    r"|hover|focus|selectOption|setInputFiles|screenshot|evaluate)\("
    r"|^page\..*\.(?:click|dblclick|fill|type|press|pressSequentially|check|uncheck|hover|focus|clear"
    r"|selectOption|setInputFiles|waitFor|textContent|innerText|inputValue|isVisible|isHidden)\("
)
_WEB_FIRST_MATCHER = re.compile(
    r"\.(?:not\.)?to(?:BeVisible|BeHidden|HaveText|ContainText|HaveValue|HaveURL|HaveTitle|HaveCount"
    r"|BeChecked|BeEnabled|BeDisabled|BeEditable|BeFocused|HaveAttribute|HaveClass)\("
)

# (pattern, replacement) pairs. Each rewrite keeps the assertion's meaning.
_WEB_FIRST_REWRITES = (
    (re.compile(r"expect\(\s*await\s+(.+?)\.(?:textContent|innerText)\(\)\s*\)\.toBe\((.+?)\)"),
     r"await expect(\1).toHaveText(\2)"),
    (re.compile(r"expect\(\s*await\s+(.+?)\.(?:textContent|innerText)\(\)\s*\)\.toContain\((.+?)\)"),
     r"await expect(\1).toContainText(\2)"),
    (re.compile(r"expect\(\s*await\s+(.+?)\.inputValue\(\)\s*\)\.toBe\((.+?)\)"),
     r"await expect(\1).toHaveValue(\2)"),
    (re.compile(r"expect\(\s*await\s+(.+?)\.isVisible\(\)\s*\)\.(?:toBe\(true\)|toBeTruthy\(\))"),
     r"await expect(\1).toBeVisible()"),
    (re.compile(r"expect\(\s*await\s+(.+?)\.isHidden\(\)\s*\)\.(?:toBe\(true\)|toBeTruthy\(\))"),
     r"await expect(\1).toBeHidden()"),
    (re.compile(r"expect\(\s*await\s+(.+?)\.isVisible\(\)\s*\)\.(?:toBe\(false\)|toBeFalsy\(\))"),
     r"await expect(\1).toBeHidden()"),
    (re.compile(r"expect\(\s*await\s+(.+?)\.isChecked\(\)\s*\)\.(?:toBe\(true\)|toBeTruthy\(\))"),
     r"await expect(\1).toBeChecked()"),
)
_TIMEOUT_OPTION = re.compile(r"timeout:\s*(\d+)")
_MATCHER_CALL = re.compile(r"(\.(?:not\.)?to\w+\()(\))")
_POLLABLE = re.compile(r"^(\s*)(?:await\s+)?expect\(\s*await\s+(page\..+?)\)\.((?:not\.)?to\w+\(.*\));?\s*$")
POLL_TIMEOUT = 10_000


def _needs_await(stripped: str) -> bool:
    if stripped.startswith(("await ", "return ", "const ", "let ", "var ")):
        return False
    if _ASYNC_PAGE_CALL.search(stripped):
        return True
    return stripped.startswith("expect(") and bool(_WEB_FIRST_MATCHER.search(stripped))


def fix_missing_await(code: str, context: FixContext | None = None) -> FixResult:
    """Prefix ``await`` to page actions and web-first assertions that lack it."""
    lines = code.split("\n")
    count = 0
    for i, line in enumerate(lines):
        stripped = line.lstrip()
        if _needs_await(stripped):
            lines[i] = line[: len(line) - len(stripped)] + "await " + stripped
            count += 1
    if not count:
        return not_applied(code, "No missing await found", FixType.MISSING_AWAIT)
    return FixResult(True, "\n".join(lines), f"Added await to {count} async call(s)", 0.9, FixType.MISSING_AWAIT)


def convert_to_web_first_assertion(code: str, context: FixContext | None = None) -> FixResult:
    """Turn one-shot value assertions into auto-retrying ones."""
    fixed = code
    for pattern, replacement in _WEB_FIRST_REWRITES:
        fixed = pattern.sub(replacement, fixed)
    # The rewrites start with "await"; drop a doubled one left from the original line.
    fixed = fixed.replace("await await expect(", "await expect(")
    fixed = "\n".join(_poll_value_assertion(line) for line in fixed.split("\n"))
    if fixed == code:
        return not_applied(code, "No value assertion to convert", FixType.WEB_FIRST_ASSERTION)
    return FixResult(
        True, fixed, "Converted value assertion to web-first assertion", 0.85, FixType.WEB_FIRST_ASSERTION
    )


def extract_timeout_from_error(message: str) -> int | None:
    if match := re.search(r"Timeout (\d+)ms exceeded", message, re.IGNORECASE):
        return int(match.group(1))
    return None


def suggest_timeout_increase(current: int, maximum: int) -> int:
    return min(round(current * TIMEOUT_FACTOR), maximum)


def add_timeout(line: str, timeout: int) -> str:
    """Give a bare matcher call on the line an explicit timeout."""
    return _MATCHER_CALL.sub(lambda m: f"{m.group(1)}{{ timeout: {timeout} }}{m.group(2)}", line, count=1)


def apply_timing_fix(code: str, context: FixContext) -> FixResult:
    """Raise a timeout by half, never beyond ``max_timeout_increase``."""
    cap = context.max_timeout_increase
    lines = code.split("\n")
    if context.line_number and 1 <= context.line_number <= len(lines):
        order = [context.line_number - 1] + [i for i in range(len(lines)) if i != context.line_number - 1]
    else:
        order = list(range(len(lines)))

    for i in order:
        if match := _TIMEOUT_OPTION.search(lines[i]):
            current = int(match.group(1))
            new = suggest_timeout_increase(current, cap)
            if new <= current:
                return not_applied(code, f"Timeout already at limit ({current}ms)", FixType.TIMEOUT_INCREASE)
            lines[i] = lines[i][: match.start(1)] + str(new) + lines[i][match.end(1):]
            return FixResult(
                True, "\n".join(lines), f"Increased timeout from {current}ms to {new}ms", 0.6,
                FixType.TIMEOUT_INCREASE,
            )

    current = extract_timeout_from_error(context.error_message) or DEFAULT_TIMEOUT
    new = suggest_timeout_increase(current, cap)
    if new <= current:
        return not_applied(code, f"Timeout already at limit ({current}ms)", FixType.TIMEOUT_INCREASE)
    for i in order:
        if _MATCHER_CALL.search(lines[i]) and "expect(" in lines[i]:
            lines[i] = add_timeout(lines[i], new)
            return FixResult(
                True, "\n".join(lines), f"Added timeout of {new}ms to assertion", 0.6, FixType.TIMEOUT_INCREASE
            )
    return not_applied(code, "No assertion or timeout option to adjust", FixType.TIMEOUT_INCREASE)


def wrap_with_expect_poll(expression: str, matcher: str, timeout: int = 10_000) -> str:
    return f"await expect.poll(async () => {expression}, {{ timeout: {timeout} }}).{matcher};"


def _poll_value_assertion(line: str) -> str:
    """Retry a one-shot page value assertion with ``expect.poll``."""
    match = _POLLABLE.match(line)
    if not match:
        return line
    indent, expression, matcher = match.groups()
    return indent + wrap_with_expect_poll(f"await {expression}", matcher, POLL_TIMEOUT)
