"""Playwright runner that wraps the configured test command."""

import json
import logging
import os
import shlex
import subprocess
from pathlib import Path

from ..config import RunnerConfig
from ..healing.log import log_slug
from ..healing.loop import VerifyResult, VerifyStatus
from ..verify.report import extract_test_results, get_summary
from .base import VerificationRunner

logger = logging.getLogger(__name__)

FAILED_STATUSES = ("failed", "timedOut", "interrupted")


def parse_json_output(output: str) -> dict | None:
    """The JSON report from reporter output, ignoring anything printed before it."""
    start = output.find("{")
    if start < 0:
        return None
    try:
        return json.loads(output[start:])
    except json.JSONDecodeError:
        return None


def result_from_report(report: dict, report_path: str | None = None) -> VerifyResult:
    """Reduce a Playwright JSON report to a VerifyResult.

    Errors raised while loading the test file appear at the top level of the
    report and fail the run even when no test executed.
    """
    results = extract_test_results(report)
    summary = get_summary(results)
    texts = [
        text
        for result in results
        if result.status in FAILED_STATUSES
        for text in result.error_texts
    ]
    texts += [e.get("message", "") for e in report.get("errors") or [] if e.get("message")]

    if summary.success and not texts:
        return VerifyResult(VerifyStatus.PASSED, report_path=report_path)
    return VerifyResult(VerifyStatus.FAILED, tuple(texts), report_path)


class PlaywrightRunner(VerificationRunner):
    """Run a Playwright test file with the JSON reporter."""

    def __init__(self, config: RunnerConfig, report_dir: Path | None = None):
        self.config = config
        self.report_dir = report_dir

    def build_command(self, test_file: Path) -> list[str]:
        cmd = shlex.split(self.config.command)
        cmd += [arg for arg in self.config.reporter_args if arg not in cmd]
        cmd.append(str(test_file))
        return cmd

    def _save_report(self, test_file: Path, output: str) -> str | None:
        if self.report_dir is None:
            return None
        self.report_dir.mkdir(parents=True, exist_ok=True)
        path = self.report_dir / f"{log_slug(str(test_file))}.report.json"
        path.write_text(output)
        return str(path)

    def verify(self, test_file: Path) -> VerifyResult:
        cmd = self.build_command(test_file)
        logger.debug("Running %s", " ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=self.config.cwd or Path.cwd(),
                timeout=self.config.timeout,
                env={**os.environ, "FORCE_COLOR": "0"},
            )
        except FileNotFoundError as e:
            return VerifyResult(VerifyStatus.ERROR, (f"Error: test runner not found: {e.filename}",))
        except subprocess.TimeoutExpired:
            return VerifyResult(
                VerifyStatus.ERROR,
                (f"Error: test runner killed after {self.config.timeout}s without a result",),
            )

        report = parse_json_output(result.stdout)
        if report is None:
            output = (result.stdout + "\n" + result.stderr).strip()
            if result.returncode == 0:
                return VerifyResult(VerifyStatus.PASSED)
            logger.warning("No JSON report from %s (exit code %d)", test_file, result.returncode)
            return VerifyResult(VerifyStatus.ERROR, (output[-2000:] or f"Error: exit code {result.returncode}",))

        return result_from_report(report, self._save_report(test_file, result.stdout))
