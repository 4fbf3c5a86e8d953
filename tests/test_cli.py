"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from conftest import CSS_TEST_CODE, GOOD_TEST_CODE, PASSED, SELECTOR_FAILURE, ScriptedVerify, failed
from journey_warden.adapters.runner import PlaywrightRunner
from journey_warden.cli import main


@pytest.fixture
def runner(monkeypatch, tmp_path):
    """A CLI runner in a project directory whose config keeps info logs off the output."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "journey_warden.yaml").write_text("journey_warden:\n  log_level: WARNING\n")
    return CliRunner()


@pytest.fixture
def journey_file(tmp_path, journey_data):
    path = tmp_path / "JRN-0001.json"
    path.write_text(json.dumps(journey_data))
    return path


class TestStepCommands:
    def test_match(self, runner):
        result = runner.invoke(main, ["match", "Click Save `(role=button, name=Save)`"])
        assert result.exit_code == 0
        assert "click" in result.output

    def test_match_blocked(self, runner):
        result = runner.invoke(main, ["match", "Click the 'Submit' button"])
        assert result.exit_code == 1
        assert "blocked" in result.output
        assert "role=button, name=Submit" in result.output

    def test_suggest(self, runner):
        result = runner.invoke(main, ["suggest", "Click the 'Submit' button"])
        assert result.exit_code == 0
        assert "`(role=button, name=Submit)`" in result.output

    def test_suggest_nothing(self, runner):
        result = runner.invoke(main, ["suggest", "Wait a bit"])
        assert result.exit_code == 0
        assert "No suggestion" in result.output

    def test_patterns(self, runner):
        assert "Step patterns" in runner.invoke(main, ["patterns"]).output
        assert "nav-goto" in runner.invoke(main, ["patterns", "--code"]).output


class TestJourneyCommands:
    def test_normalize_json(self, runner, journey_file):
        result = runner.invoke(main, ["normalize", str(journey_file), "--json"])
        assert result.exit_code == 0
        ir = json.loads(result.output)
        assert ir["id"] == "JRN-0001"
        assert [s["id"] for s in ir["steps"]] == ["AC-1", "AC-2", "AC-3"]

    def test_normalize_strict_with_report(self, runner, journey_file, tmp_path):
        report = tmp_path / "report.md"
        result = runner.invoke(main, ["normalize", str(journey_file), "--strict", "--json", "--report", str(report)])
        assert [s["id"] for s in json.loads(result.output)["steps"]] == ["AC-1", "AC-3"]
        assert report.read_text().startswith("# Normalization Report: JRN-0001")

    def test_normalize_table(self, runner, journey_file):
        result = runner.invoke(main, ["normalize", str(journey_file)])
        assert result.exit_code == 0
        assert "Summary:" in result.output

    def test_normalize_bad_input(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")
        result = runner.invoke(main, ["normalize", str(path)])
        assert result.exit_code == 2

    def test_validate(self, runner, journey_file):
        result = runner.invoke(main, ["validate", str(journey_file)])
        assert result.exit_code == 0
        assert "ready for code generation" in result.output

    def test_lint_and_fix(self, runner, tmp_path):
        path = tmp_path / "journey.md"
        path.write_text("## Steps\n\n- Click the 'Submit' button\n")

        assert runner.invoke(main, ["lint", str(path)]).exit_code == 1

        result = runner.invoke(main, ["lint", "--fix", str(path)])
        assert result.exit_code == 0
        assert "Applied 1 fixes" in result.output
        assert "`(role=button, name=Submit)`" in path.read_text()


class TestClassifyCommand:
    def test_error_text(self, runner, tmp_path):
        markdown = tmp_path / "failures.md"
        result = runner.invoke(main, ["classify", "--error", SELECTOR_FAILURE, "--markdown", str(markdown)])
        assert result.exit_code == 0
        assert "selector" in result.output
        assert "### error 1" in markdown.read_text()

    def test_needs_exactly_one_source(self, runner):
        assert runner.invoke(main, ["classify"]).exit_code == 2

    def test_missing_report(self, runner, tmp_path):
        result = runner.invoke(main, ["classify", "--report", str(tmp_path / "missing.json")])
        assert result.exit_code == 2

    def test_passing_report(self, runner, tmp_path):
        path = tmp_path / "results.json"
        path.write_text(json.dumps({"suites": []}))
        result = runner.invoke(main, ["classify", "--report", str(path)])
        assert result.exit_code == 0
        assert "No failures to classify" in result.output


class TestScoreCommand:
    def test_accepts_semantic_locators(self, runner, tmp_path):
        path = tmp_path / "good.spec.ts"
        path.write_text(GOOD_TEST_CODE)
        result = runner.invoke(main, ["score", str(path)])
        assert result.exit_code == 0
        assert "ACCEPT" in result.output

    def test_rejects_css_locators(self, runner, tmp_path):
        path = tmp_path / "css.spec.ts"
        path.write_text(CSS_TEST_CODE)
        result = runner.invoke(main, ["score", str(path), "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["verdict"] == "REJECT"


class TestHealCommand:
    @pytest.fixture
    def test_file(self, tmp_path):
        path = tmp_path / "login.spec.ts"
        path.write_text(CSS_TEST_CODE)
        return path

    def test_heals_and_logs(self, runner, monkeypatch, test_file, tmp_path):
        verify = ScriptedVerify(failed(SELECTOR_FAILURE), PASSED)
        monkeypatch.setattr(PlaywrightRunner, "verify", lambda self, path: verify())
        log_dir = tmp_path / "logs"

        result = runner.invoke(main, ["heal", str(test_file), "--log-dir", str(log_dir)])

        assert result.exit_code == 0, result.output
        assert "healed" in result.output
        assert "getByRole('button'" in test_file.read_text()
        assert (log_dir / "login.heal-log.json").exists()

        summary = runner.invoke(main, ["logs", str(log_dir)])
        assert summary.exit_code == 0
        assert "selector-refine" in summary.output

        shown = runner.invoke(main, ["logs", str(log_dir), "--show", "login"])
        assert shown.output.startswith("# Healing Log:")

    def test_unhealable_exits_nonzero(self, runner, monkeypatch, test_file, tmp_path):
        verify = ScriptedVerify(failed("connect ECONNREFUSED 127.0.0.1:3000"))
        monkeypatch.setattr(PlaywrightRunner, "verify", lambda self, path: verify())

        result = runner.invoke(main, ["heal", str(test_file), "--log-dir", str(tmp_path / "logs")])

        assert result.exit_code == 1
        assert "unhealable" in result.output
        assert test_file.read_text() == CSS_TEST_CODE

    def test_forbidden_fix_is_not_offered(self, runner, test_file):
        result = runner.invoke(main, ["heal", str(test_file), "--allow", "add-sleep"])
        assert result.exit_code == 2
