"""Navigation fixes: wait for the URL after a navigation, await page.goto."""

import re
from urllib.parse import urlparse

from ...models import FixType
from .base import FixContext, FixResult, js_string, line_indent, not_applied

NAVIGATION_WAIT = re.compile(r"waitForURL|toHaveURL|waitForNavigation|waitForLoadState")
WAIT_WINDOW = 2

_URL_IN_ERROR = (
    re.compile(r"""waiting for (?:navigation to |URL )["']?([^"'\s]+)["']?""", re.IGNORECASE),
    re.compile(r"""Expected (?:pattern|string|url)?:?\s*["']?([^"'\s]+?)["']?(?:\s|$)"""),
    re.compile(r"""navigating to ["']([^"']+)["']""", re.IGNORECASE),
)
_GOTO = re.compile(r"""page\.goto\(\s*['"`]([^'"`]+)['"`]""")
_UNAWAITED_GOTO = re.compile(r"^(\s*)(page\.goto\()")
_CLICK = re.compile(r"\.click\(")


def has_navigation_wait(lines: list[str], index: int, window: int = WAIT_WINDOW) -> bool:
    """Whether a URL or load wait sits within ``window`` lines of ``index``."""
    start = max(0, index - window)
    return any(NAVIGATION_WAIT.search(line) for line in lines[start: index + window + 1])


def extract_url_from_error(message: str) -> str | None:
    for pattern in _URL_IN_ERROR:
        for match in pattern.finditer(message):
            if "/" in match.group(1) or "." in match.group(1):
                return match.group(1)
    return None


def extract_url_from_goto(code: str) -> str | None:
    found = _GOTO.findall(code)
    return found[-1] if found else None


def infer_url_pattern(url: str) -> str:
    """JS regex literal matching the URL path, whatever the host."""
    path = urlparse(url).path if "://" in url else url.split("?")[0]
    path = path or "/"
    escaped = re.sub(r"[.*+?^${}()|\[\]\\/]", lambda m: "\\" + m.group(0), path)
    return f"/{escaped}/"


def generate_wait_for_url(url: str) -> str:
    return f"await page.waitForURL({infer_url_pattern(url)});"


def generate_to_have_url(url: str) -> str:
    return f"await expect(page).toHaveURL({infer_url_pattern(url)});"


def insert_navigation_wait(code: str, line_number: int, statement: str) -> str:
    """Insert ``statement`` after 1-based ``line_number`` at the same indentation."""
    lines = code.split("\n")
    index = min(max(line_number, 1), len(lines)) - 1
    lines.insert(index + 1, line_indent(lines[index]) + statement)
    return "\n".join(lines)


def fix_missing_goto_await(code: str, context: FixContext | None = None) -> FixResult:
    fixed, count = _await_gotos(code)
    if not count:
        return not_applied(code, "All page.goto calls are awaited", FixType.NAVIGATION_WAIT)
    return FixResult(True, fixed, f"Added await to {count} page.goto call(s)", 0.9, FixType.NAVIGATION_WAIT)


def _await_gotos(code: str) -> tuple[str, int]:
    lines = code.split("\n")
    count = 0
    for i, line in enumerate(lines):
        if _UNAWAITED_GOTO.match(line):
            lines[i] = _UNAWAITED_GOTO.sub(r"\1await \2", line)
            count += 1
    return "\n".join(lines), count


def _navigation_line(lines: list[str], context: FixContext) -> int | None:
    if context.line_number and 1 <= context.line_number <= len(lines):
        return context.line_number
    for pattern in (_GOTO, _CLICK):
        hits = [i for i, line in enumerate(lines, start=1) if pattern.search(line)]
        if hits:
            return hits[-1]
    return None


def add_navigation_wait_after_click(code: str, url: str) -> FixResult:
    """Wait for the URL after the last click when none follows it."""
    lines = code.split("\n")
    clicks = [i for i, line in enumerate(lines) if _CLICK.search(line)]
    if not clicks:
        return not_applied(code, "No click found to wait after", FixType.NAVIGATION_WAIT)
    index = clicks[-1]
    if has_navigation_wait(lines, index):
        return not_applied(code, "Navigation wait already present", FixType.NAVIGATION_WAIT)
    fixed = insert_navigation_wait(code, index + 1, generate_wait_for_url(url))
    return FixResult(True, fixed, f"Added waitForURL after click for {url}", 0.7, FixType.NAVIGATION_WAIT)


def apply_navigation_fix(code: str, context: FixContext) -> FixResult:
    """Make the test wait for navigation to finish.

    An unawaited goto is fixed first. Otherwise a URL wait is inserted after
    the failing line, or after the last goto or click. The URL comes from the
    error, then from the goto. With no URL a load-state wait is used.
    """
    awaited = fix_missing_goto_await(code)
    if awaited.applied:
        return awaited

    lines = code.split("\n")
    line_number = _navigation_line(lines, context)
    if line_number is None:
        return not_applied(code, "No navigation call found", FixType.NAVIGATION_WAIT)
    if has_navigation_wait(lines, line_number - 1):
        return not_applied(code, "Navigation wait already present", FixType.NAVIGATION_WAIT)

    url = extract_url_from_error(context.error_message) or extract_url_from_goto(code)
    if url:
        after_goto = _GOTO.search(lines[line_number - 1]) is not None
        statement = generate_to_have_url(url) if after_goto else generate_wait_for_url(url)
        return FixResult(
            True,
            insert_navigation_wait(code, line_number, statement),
            f"Added URL wait for {url} after line {line_number}",
            0.7,
            FixType.NAVIGATION_WAIT,
        )
    statement = f"await page.waitForLoadState({js_string('load')});"
    return FixResult(
        True,
        insert_navigation_wait(code, line_number, statement),
        f"Added load-state wait after line {line_number}",
        0.5,
        FixType.NAVIGATION_WAIT,
    )
