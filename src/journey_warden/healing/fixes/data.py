"""Data isolation: namespace hardcoded test data with a per-run id."""

import re

from ...models import FixType
from .base import FixContext, FixResult, line_indent, not_applied

ISOLATION_MARKERS = re.compile(r"\brunId\b|testInfo\.testId|Date\.now\(\)|Math\.random\(\)|\bcrypto\.|\buuid")
RUN_ID_DECLARATION = "const runId = `${Date.now()}-${Math.random().toString(36).slice(2, 8)}`;"

_TEST_BODY = re.compile(r"^(\s*)test(?:\.\w+)?\(.*=>\s*\{\s*$")
_FILL_EMAIL = re.compile(r"""\.fill\(\s*(['"])([^'"@\s]+)@([^'"\s]+)\1\s*\)""")
_FILL_TEST_NAME = re.compile(r"""\.fill\(\s*(['"])((?:[Tt]est[ _][^'"]*|test_[^'"]*))\1\s*\)""")


def has_data_isolation(code: str) -> bool:
    return ISOLATION_MARKERS.search(code) is not None


def namespace_email(email: str) -> str:
    local, _, domain = email.partition("@")
    return f"`{local}+${{runId}}@{domain}`"


def namespace_name(name: str) -> str:
    return f"`{name}-${{runId}}`"


def add_run_id_variable(code: str) -> str:
    """Declare ``runId`` at the top of the first test body."""
    lines = code.split("\n")
    for i, line in enumerate(lines):
        if match := _TEST_BODY.match(line):
            lines.insert(i + 1, match.group(1) + "  " + RUN_ID_DECLARATION)
            return "\n".join(lines)
    indent = line_indent(lines[0]) if lines else ""
    return indent + RUN_ID_DECLARATION + "\n" + code


def replace_hardcoded_email(code: str) -> tuple[str, int]:
    return _FILL_EMAIL.subn(lambda m: f".fill({namespace_email(m.group(2) + '@' + m.group(3))})", code)


def replace_hardcoded_test_data(code: str) -> tuple[str, int]:
    return _FILL_TEST_NAME.subn(lambda m: f".fill({namespace_name(m.group(2))})", code)


def extract_test_data_patterns(code: str) -> list[str]:
    emails = [f"{m.group(2)}@{m.group(3)}" for m in _FILL_EMAIL.finditer(code)]
    names = [m.group(2) for m in _FILL_TEST_NAME.finditer(code)]
    return emails + names


def apply_data_fix(code: str, context: FixContext | None = None) -> FixResult:
    if has_data_isolation(code):
        return not_applied(code, "Test data is already isolated", FixType.DATA_ISOLATION)
    fixed, emails = replace_hardcoded_email(code)
    fixed, names = replace_hardcoded_test_data(fixed)
    if not emails and not names:
        return not_applied(code, "No hardcoded test data found", FixType.DATA_ISOLATION)
    return FixResult(
        True,
        add_run_id_variable(fixed),
        f"Namespaced {emails} email(s) and {names} name(s) with runId",
        0.7,
        FixType.DATA_ISOLATION,
    )
