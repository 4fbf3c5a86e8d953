"""Parse raw Playwright error text: error kind, location, selector and fingerprint."""

import hashlib
import re
from dataclasses import dataclass
from enum import Enum

from ..models import ErrorLocation, FailureCategory

MAX_MESSAGE_LENGTH = 200
FINGERPRINT_MESSAGE_LENGTH = 100
FINGERPRINT_LENGTH = 12


class ErrorKind(Enum):
    """Fine-grained error kinds. FailureCategory stays the one used for decisions."""

    SELECTOR_NOT_FOUND = "SELECTOR_NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    ASSERTION_FAILED = "ASSERTION_FAILED"
    NAVIGATION_ERROR = "NAVIGATION_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    TYPE_ERROR = "TYPE_ERROR"
    SYNTAX_ERROR = "SYNTAX_ERROR"
    RUNTIME_ERROR = "RUNTIME_ERROR"
    UNKNOWN = "UNKNOWN"

    @property
    def category(self) -> FailureCategory:
        return _KIND_CATEGORY[self]


_KIND_CATEGORY = {
    ErrorKind.SELECTOR_NOT_FOUND: FailureCategory.SELECTOR,
    ErrorKind.TIMEOUT: FailureCategory.TIMING,
    ErrorKind.ASSERTION_FAILED: FailureCategory.DATA,
    ErrorKind.NAVIGATION_ERROR: FailureCategory.NAVIGATION,
    ErrorKind.NETWORK_ERROR: FailureCategory.ENV,
    ErrorKind.AUTHENTICATION_ERROR: FailureCategory.AUTH,
    ErrorKind.PERMISSION_ERROR: FailureCategory.AUTH,
    ErrorKind.TYPE_ERROR: FailureCategory.SCRIPT,
    ErrorKind.SYNTAX_ERROR: FailureCategory.SCRIPT,
    ErrorKind.RUNTIME_ERROR: FailureCategory.SCRIPT,
    ErrorKind.UNKNOWN: FailureCategory.UNKNOWN,
}


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Order matters: the first kind with a matching pattern wins.
ERROR_KIND_PATTERNS: tuple[tuple[ErrorKind, tuple[re.Pattern, ...]], ...] = (
    (ErrorKind.SELECTOR_NOT_FOUND, _compile(
        r"locator\..*: Timeout \d+ms exceeded",
        r"waiting for (?:locator|selector)",
        r"No element matches selector",
        r"Element is not attached to the DOM",
        r"Element is outside of the viewport",
        r"page\.\$\(.*\) resolved to (?:null|undefined)",
        r"getBy(?:Role|TestId|Text).*resolved to \d+ element",
        r"locator resolved to \d+ elements",
    )),
    (ErrorKind.TIMEOUT, _compile(
        r"Timeout \d+ms exceeded",
        r"page\.waitFor.*exceeded",
        r"Test timeout of \d+ms exceeded",
        r"Navigation timeout of \d+ms exceeded",
        r"exceeded .*timeout",
    )),
    (ErrorKind.ASSERTION_FAILED, _compile(
        r"expect\(.*\)\.to",
        r"Expected.*to (?:be|have|contain|match|equal)",
        r"AssertionError",
        r"Received.*Expected",
        r"toBeVisible.*but.*hidden",
        r"toHaveText|toHaveValue.*but.*received",
        r"toBeChecked.*but.*unchecked",
    )),
    (ErrorKind.NAVIGATION_ERROR, _compile(
        r"net::ERR_",
        r"Navigation failed",
        r"page\.goto.*failed",
        r"Frame was detached",
        r"Target page.*closed",
        r"browser has disconnected",
        r"Protocol error.*Target closed",
    )),
    (ErrorKind.NETWORK_ERROR, _compile(
        r"ECONNREFUSED",
        r"ENOTFOUND",
        r"ETIMEDOUT",
        r"fetch failed",
        r"Request failed",
        r"Status code: [45]\d{2}",
    )),
    (ErrorKind.AUTHENTICATION_ERROR, _compile(
        r"401 Unauthorized",
        r"403 Forbidden",
        r"Authentication failed",
        r"Login failed",
        r"Invalid credentials",
        r"Session expired",
        r"Token expired",
    )),
    (ErrorKind.PERMISSION_ERROR, _compile(
        r"Permission denied",
        r"Access denied",
        r"not authorized",
        r"insufficient permissions",
    )),
    (ErrorKind.TYPE_ERROR, _compile(
        r"TypeError:",
        r"Cannot read propert",
        r"is not a function",
        r"is not defined",
        r"undefined is not",
        r"null is not",
    )),
    (ErrorKind.SYNTAX_ERROR, _compile(
        r"SyntaxError:",
        r"Unexpected token",
        r"Unexpected identifier",
        r"Invalid or unexpected token",
    )),
    (ErrorKind.RUNTIME_ERROR, _compile(
        r"ReferenceError:",
        r"RangeError:",
        r"Error:",
    )),
)

_SELECTOR = re.compile(r"""locator\(['"]([^'"]+)['"]\)|getBy\w+\(['"]([^'"]+)['"]\)""")
_EXPECTED = re.compile(r"Expected(?: string| value| pattern)?:?\s*(.+?)(?:\n|$)")
_RECEIVED = re.compile(r"Received(?: string| value)?:?\s*(.+?)(?:\n|$)")
_LOCATIONS = (
    re.compile(r"at\s+.*\s+\(([^:()]+):(\d+):(\d+)\)"),
    re.compile(r"([^:\s()]+\.ts):(\d+):(\d+)"),
    re.compile(r"([^:\s()]+\.(?:ts|js)):(\d+)"),
)
_BLOCK_SPLIT = re.compile(r"(?=\b(?:Error:|AssertionError:|TypeError:|TimeoutError:))", re.IGNORECASE)
_BLOCK_SIGNAL = re.compile(r"error|failed|timeout|assert", re.IGNORECASE)
_ANSI = re.compile(r"\x1b\[[0-9;]*m")


@dataclass(frozen=True)
class ParsedError:
    kind: ErrorKind
    message: str
    raw: str
    selector: str | None = None
    expected: str | None = None
    actual: str | None = None
    location: ErrorLocation | None = None


def strip_ansi(text: str) -> str:
    return _ANSI.sub("", text)


def detect_error_kind(text: str) -> ErrorKind:
    for kind, patterns in ERROR_KIND_PATTERNS:
        if any(p.search(text) for p in patterns):
            return kind
    return ErrorKind.UNKNOWN


def first_line(text: str) -> str:
    line = next((ln.strip() for ln in text.splitlines() if ln.strip()), "")
    if len(line) > MAX_MESSAGE_LENGTH:
        return line[:MAX_MESSAGE_LENGTH] + "..."
    return line


def extract_selector(text: str) -> str | None:
    if match := _SELECTOR.search(text):
        return match.group(1) or match.group(2)
    return None


def extract_expected_actual(text: str) -> tuple[str | None, str | None]:
    expected = _EXPECTED.search(text)
    received = _RECEIVED.search(text)
    return (
        expected.group(1).strip() if expected else None,
        received.group(1).strip() if received else None,
    )


def extract_location(text: str) -> ErrorLocation | None:
    for index, pattern in enumerate(_LOCATIONS):
        if match := pattern.search(text):
            column = int(match.group(3)) if index < 2 else None
            return ErrorLocation(file=match.group(1), line=int(match.group(2)), column=column)
    return None


def normalize_message(message: str) -> str:
    """Replace run-specific tokens with placeholders so reruns compare equal."""
    text = strip_ansi(message)
    text = re.sub(r"\d+\s*ms\b", "Xms", text)
    text = re.sub(r"\b\d+\s+elements?\b", "X element", text)
    text = re.sub(r"timeout of \d+", "timeout of X", text, flags=re.IGNORECASE)
    text = re.sub(r"'[^']*'", "'X'", text)
    text = re.sub(r'"[^"]*"', '"X"', text)
    text = re.sub(r"`[^`]*`", "`X`", text)
    text = re.sub(r"\b\d+\b", "N", text)
    text = re.sub(r"\s+", " ", text).strip().lower()
    return text[:FINGERPRINT_MESSAGE_LENGTH]


def compute_fingerprint(
    category: FailureCategory,
    message: str,
    selector: str = "",
    location: ErrorLocation | None = None,
) -> str:
    parts = [
        category.value,
        normalize_message(message),
        selector,
        location.file if location else "",
        str(location.line) if location else "",
    ]
    return hashlib.md5("|".join(parts).encode()).hexdigest()[:FINGERPRINT_LENGTH]


def parse_error(text: str) -> ParsedError:
    text = strip_ansi(text)
    expected, actual = extract_expected_actual(text)
    return ParsedError(
        kind=detect_error_kind(text),
        message=first_line(text),
        raw=text,
        selector=extract_selector(text),
        expected=expected,
        actual=actual,
        location=extract_location(text),
    )


def split_error_blocks(output: str) -> list[str]:
    """Cut combined runner output into individual error blocks."""
    output = strip_ansi(output)
    blocks = []
    for block in _BLOCK_SPLIT.split(output):
        block = block.strip()
        if len(block) > 10 and _BLOCK_SIGNAL.search(block):
            blocks.append(block)
    return blocks
