"""Tests for configuration loading, logging setup and tracing."""

import logging
import os
from pathlib import Path

import pytest
from pydantic import ValidationError
from rich.logging import RichHandler

from journey_warden.config import Config, load_config
from journey_warden.logs import configure_logging
from journey_warden.models import FixType
from journey_warden.tracing import TracingClient


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run every test from an empty directory with no JOURNEY_WARDEN_ variables set."""
    for name in list(os.environ):
        if name.startswith("JOURNEY_WARDEN_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


class TestLoadConfig:
    def test_defaults(self):
        config = load_config()
        assert config.log_level == "INFO"
        assert config.matcher.require_locator_hints
        assert config.healing.max_attempts == 3
        assert config.runner.command == "npx playwright test"
        assert not config.langfuse.enabled

    def test_yaml_under_package_key(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "journey_warden:\n"
            "  log_level: DEBUG\n"
            "  healing:\n"
            "    max_attempts: 2\n"
            "    allowed_fixes: [selector-refine, add-exact]\n"
            "  scoring:\n"
            "    thresholds:\n"
            "      overall: 0.8\n"
        )
        config = load_config(path)
        assert config.log_level == "DEBUG"
        assert config.healing.max_attempts == 2
        assert config.healing.allowed_fixes == [FixType.SELECTOR_REFINE, FixType.ADD_EXACT]
        assert config.scoring.thresholds.overall == 0.8

    def test_bare_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("report_dir: out/reports\n")
        assert load_config(path).report_dir == Path("out/reports")

    def test_discovers_default_filename(self, tmp_path):
        (tmp_path / "journey_warden.yaml").write_text("journey_warden:\n  normalizer:\n    strict: true\n")
        assert load_config().normalizer.strict

    def test_missing_file_falls_back_to_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.yaml").log_level == "INFO"

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("JOURNEY_WARDEN_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("JOURNEY_WARDEN_RUNNER__TIMEOUT", "90")
        config = Config()
        assert config.log_level == "WARNING"
        assert config.runner.timeout == 90

    def test_forbidden_fix_in_file_is_rejected(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("healing:\n  allowed_fixes: [add-sleep]\n")
        with pytest.raises(ValidationError):
            load_config(path)


class TestLogging:
    def test_handler_is_attached_once(self):
        logger = configure_logging("DEBUG")
        configure_logging("WARNING")

        assert sum(isinstance(h, RichHandler) for h in logger.handlers) == 1
        assert logger.level == logging.WARNING
        assert not logger.propagate

    def test_unknown_level_defaults_to_info(self):
        assert configure_logging("chatty").level == logging.INFO


class TestTracing:
    def test_disabled_client_is_a_no_op(self):
        tracing = TracingClient(Config())
        assert not tracing.enabled
        with tracing.trace("healing-loop") as trace:
            assert trace is None
            with tracing.span("verify", input_data={"file": "a.spec.ts"}) as span:
                assert span is None
        tracing.flush()
