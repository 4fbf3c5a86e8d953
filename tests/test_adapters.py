"""Tests for the Playwright verification runner."""

import json
import subprocess
from pathlib import Path

import pytest

from conftest import SELECTOR_FAILURE
from journey_warden.adapters import PlaywrightRunner
from journey_warden.adapters.runner import parse_json_output, result_from_report
from journey_warden.config import RunnerConfig
from journey_warden.healing.loop import VerifyStatus


def report_with(status: str, message: str | None = None) -> dict:
    result = {"status": status}
    if message:
        result["errors"] = [{"message": message}]
    return {"suites": [{
        "title": "login.spec.ts",
        "specs": [{"title": "signs in", "file": "login.spec.ts", "tests": [{"results": [result]}]}],
    }]}


@pytest.fixture
def fake_run(monkeypatch):
    """Replace subprocess.run with a function returning a prepared process."""
    calls = []

    def install(stdout="", stderr="", returncode=0, raises=None):
        def run(cmd, **kwargs):
            calls.append((cmd, kwargs))
            if raises is not None:
                raise raises
            return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)

        monkeypatch.setattr(subprocess, "run", run)
        return calls

    return install


class TestParseJsonOutput:
    def test_ignores_preamble(self):
        assert parse_json_output('Running 1 test\n{"suites": []}') == {"suites": []}

    @pytest.mark.parametrize("output", ["", "no report here", "{broken"])
    def test_no_report(self, output):
        assert parse_json_output(output) is None


class TestResultFromReport:
    def test_passed(self):
        result = result_from_report(report_with("passed"), "reports/login.report.json")
        assert result.passed
        assert result.report_path == "reports/login.report.json"

    def test_failed_collects_error_texts(self):
        result = result_from_report(report_with("failed", SELECTOR_FAILURE))
        assert result.status is VerifyStatus.FAILED
        assert result.error_texts == (SELECTOR_FAILURE,)

    def test_top_level_errors_fail_the_run(self):
        """A file that does not load reports no tests, only top-level errors."""
        report = {"suites": [], "errors": [{"message": "SyntaxError: Unexpected token '}'"}]}
        result = result_from_report(report)
        assert result.status is VerifyStatus.FAILED
        assert result.error_texts == ("SyntaxError: Unexpected token '}'",)


class TestPlaywrightRunner:
    def test_build_command(self):
        runner = PlaywrightRunner(RunnerConfig())
        assert runner.build_command(Path("a.spec.ts")) == [
            "npx", "playwright", "test", "--reporter=json", "a.spec.ts",
        ]

    def test_reporter_is_not_repeated(self):
        runner = PlaywrightRunner(RunnerConfig(command="pnpm exec playwright test --reporter=json"))
        assert runner.build_command(Path("a.spec.ts")).count("--reporter=json") == 1

    def test_passing_run(self, fake_run, tmp_path):
        calls = fake_run(stdout=json.dumps(report_with("passed")))
        runner = PlaywrightRunner(RunnerConfig(cwd=tmp_path, timeout=60))

        result = runner.verify(Path("tests/login.spec.ts"))

        assert result.passed
        cmd, kwargs = calls[0]
        assert cmd[-1] == "tests/login.spec.ts"
        assert kwargs["cwd"] == tmp_path
        assert kwargs["timeout"] == 60
        assert kwargs["env"]["FORCE_COLOR"] == "0"

    def test_failing_run_saves_report(self, fake_run, tmp_path):
        fake_run(stdout=json.dumps(report_with("failed", SELECTOR_FAILURE)), returncode=1)
        runner = PlaywrightRunner(RunnerConfig(), report_dir=tmp_path / "reports")

        result = runner.verify(Path("tests/login.spec.ts"))

        assert result.status is VerifyStatus.FAILED
        assert result.report_path == str(tmp_path / "reports" / "login.report.json")
        assert json.loads(Path(result.report_path).read_text()) == report_with("failed", SELECTOR_FAILURE)

    def test_missing_runner(self, fake_run):
        fake_run(raises=FileNotFoundError(2, "No such file or directory", "npx"))
        result = PlaywrightRunner(RunnerConfig()).verify(Path("a.spec.ts"))
        assert result.status is VerifyStatus.ERROR
        assert result.error_texts == ("Error: test runner not found: npx",)

    def test_runner_timeout(self, fake_run):
        fake_run(raises=subprocess.TimeoutExpired("npx", 5))
        result = PlaywrightRunner(RunnerConfig(timeout=5)).verify(Path("a.spec.ts"))
        assert result.status is VerifyStatus.ERROR
        assert "killed after 5s" in result.error_texts[0]

    def test_output_without_report(self, fake_run):
        fake_run(stdout="", stderr="Error: No tests found", returncode=1)
        result = PlaywrightRunner(RunnerConfig()).verify(Path("a.spec.ts"))
        assert result.status is VerifyStatus.ERROR
        assert result.error_texts == ("Error: No tests found",)

    def test_clean_exit_without_report_passes(self, fake_run):
        fake_run(stdout="ok", returncode=0)
        assert PlaywrightRunner(RunnerConfig()).verify(Path("a.spec.ts")).passed

    def test_verify_fn_for(self, fake_run):
        calls = fake_run(stdout=json.dumps(report_with("passed")))
        verify = PlaywrightRunner(RunnerConfig()).verify_fn_for("tests/login.spec.ts")

        assert verify().passed
        assert calls[0][0][-1] == "tests/login.spec.ts"
