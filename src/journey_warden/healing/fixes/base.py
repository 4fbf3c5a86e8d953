"""Shared fix types and locator rendering."""

from dataclasses import dataclass

from ...analyzer.aria import AriaInfo
from ...ir import LocatorSpec, LocatorStrategy
from ...models import FixType


@dataclass(frozen=True)
class FixContext:
    """What a fix strategy knows about the failure it is repairing."""

    line_number: int | None = None
    error_message: str = ""
    selector: str | None = None
    aria_info: AriaInfo | None = None
    max_timeout_increase: int = 30_000


@dataclass(frozen=True)
class FixResult:
    applied: bool
    code: str
    description: str
    confidence: float = 0.0
    fix_type: FixType | None = None
    new_locator: str | None = None


def not_applied(code: str, description: str, fix_type: FixType | None = None) -> FixResult:
    return FixResult(applied=False, code=code, description=description, fix_type=fix_type)


def js_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def render_locator(spec: LocatorSpec) -> str:
    """Playwright TypeScript expression for a locator."""
    options = []
    if spec.strategy is LocatorStrategy.ROLE:
        if spec.name:
            options.append(f"name: {js_string(spec.name)}")
        if spec.exact and spec.name:
            options.append("exact: true")
        if spec.level is not None and spec.value == "heading":
            options.append(f"level: {spec.level}")
        suffix = f", {{ {', '.join(options)} }}" if options else ""
        return f"page.getByRole({js_string(spec.value)}{suffix})"

    method = {
        LocatorStrategy.LABEL: "getByLabel",
        LocatorStrategy.PLACEHOLDER: "getByPlaceholder",
        LocatorStrategy.TEXT: "getByText",
        LocatorStrategy.TESTID: "getByTestId",
        LocatorStrategy.CSS: "locator",
    }[spec.strategy]
    exact = ", { exact: true }" if spec.exact and spec.strategy in (
        LocatorStrategy.LABEL, LocatorStrategy.TEXT, LocatorStrategy.PLACEHOLDER
    ) else ""
    return f"page.{method}({js_string(spec.value)}{exact})"


def line_indent(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]
