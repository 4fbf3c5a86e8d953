"""Read Playwright JSON reporter output."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import RunnerError


@dataclass(frozen=True)
class TestError:
    message: str
    stack: str | None = None


@dataclass
class TestResult:
    """One test from the report, reduced to its final attempt."""

    title: str
    title_path: list[str]
    file: str
    line: int | None
    status: str
    duration: int = 0
    retry: int = 0
    flaky: bool = False
    errors: list[TestError] = field(default_factory=list)

    @property
    def test_id(self) -> str:
        return " > ".join(self.title_path)

    @property
    def error_texts(self) -> list[str]:
        return [f"{e.message}\n{e.stack}" if e.stack else e.message for e in self.errors]


@dataclass
class ReportSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    flaky: int = 0
    files: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0


def _errors(result: dict) -> list[TestError]:
    raw = list(result.get("errors") or [])
    if not raw and result.get("error"):
        raw = [result["error"]]
    return [TestError(message=e.get("message", ""), stack=e.get("stack")) for e in raw]


def _walk(suite: dict, parents: list[str], out: list[TestResult]) -> None:
    path = parents + ([suite["title"]] if suite.get("title") else [])
    for spec in suite.get("specs", []):
        for test in spec.get("tests", []):
            results = test.get("results") or []
            last = results[-1] if results else {}
            out.append(TestResult(
                title=spec.get("title", ""),
                title_path=path + [spec.get("title", "")],
                file=spec.get("file") or suite.get("file", ""),
                line=spec.get("line"),
                status=last.get("status", "skipped"),
                duration=last.get("duration", 0),
                retry=last.get("retry", 0),
                flaky=test.get("status") == "flaky",
                errors=[err for r in results[-1:] for err in _errors(r)],
            ))
    for child in suite.get("suites", []):
        _walk(child, path, out)


def extract_test_results(report: dict) -> list[TestResult]:
    """Flatten nested suites and specs into one list of test results."""
    results: list[TestResult] = []
    for suite in report.get("suites", []):
        _walk(suite, [], results)
    return results


def get_summary(results: list[TestResult]) -> ReportSummary:
    summary = ReportSummary(total=len(results))
    for result in results:
        if result.flaky:
            summary.flaky += 1
        if result.status == "passed":
            summary.passed += 1
        elif result.status in ("failed", "timedOut", "interrupted"):
            summary.failed += 1
        else:
            summary.skipped += 1
        if result.file and result.file not in summary.files:
            summary.files.append(result.file)
    return summary


def load_report(path: Path) -> dict:
    if not path.exists():
        raise RunnerError(f"Report not found: {path}")
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise RunnerError(f"Report is not valid JSON: {path}: {e}") from e
