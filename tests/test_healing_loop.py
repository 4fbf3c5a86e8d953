"""Tests for the bounded healing loop, convergence tracking and healing logs."""

from contextlib import contextmanager

import pytest

from conftest import CSS_TEST_CODE, PASSED, SELECTOR_FAILURE, MemoryFiles, ScriptedVerify, failed
from journey_warden.errors import RunnerError
from journey_warden.healing import CancellationToken, HealingConfig, HealingStatus, run_healing_loop
from journey_warden.healing.convergence import BreakerReason, CircuitBreaker, ConvergenceTracker, Trend
from journey_warden.healing.log import (
    LOG_SUFFIX,
    AttemptResult,
    aggregate_healing_logs,
    format_healing_log,
    load_healing_log,
    log_slug,
)
from journey_warden.models import FORBIDDEN_FIXES, FailureCategory, FixType

TEST_FILE = "tests/login.spec.ts"


def heal(memory_files: MemoryFiles, verify, config: HealingConfig | None = None, **kwargs):
    return run_healing_loop(
        TEST_FILE,
        config or HealingConfig(),
        verify,
        read_fn=memory_files.read,
        write_fn=memory_files.write,
        **kwargs,
    )


def distinct_failures(count: int):
    """Selector failures that never share a fingerprint."""
    words = ["alpha", "bravo", "charlie", "delta", "echo", "foxtrot", "golf", "hotel"]
    return [failed(f"Error: waiting for locator {word} to be visible") for word in words[:count]]


class _Span:
    def __init__(self, name: str):
        self.name = name
        self.output = None

    def update(self, output=None, **kwargs):
        self.output = output


class RecordingTracing:
    def __init__(self):
        self.spans: list[_Span] = []
        self.traces: list[str] = []
        self.flushed = False

    @contextmanager
    def trace(self, name, metadata=None):
        self.traces.append(name)
        yield None

    @contextmanager
    def span(self, name, input_data=None, metadata=None):
        span = _Span(name)
        self.spans.append(span)
        yield span

    def flush(self):
        self.flushed = True


class TestHealingLoop:
    def test_passing_test_needs_no_healing(self, memory_files):
        verify = ScriptedVerify(PASSED)
        result = heal(memory_files, verify)

        assert result.success
        assert result.status is HealingStatus.PASSED
        assert result.attempts == 0
        assert verify.calls == 1
        assert memory_files.writes == []

    def test_heals_selector_failure(self, memory_files):
        verify = ScriptedVerify(failed(SELECTOR_FAILURE), PASSED)
        result = heal(memory_files, verify)

        assert result.success
        assert result.status is HealingStatus.HEALED
        assert result.applied_fix is FixType.SELECTOR_REFINE
        assert result.error_count_history == [1, 0]
        assert [r.fix_type for r in result.attempt_history] == [FixType.MISSING_AWAIT, FixType.SELECTOR_REFINE]
        assert result.attempt_history[0].result is AttemptResult.SKIPPED
        assert result.attempt_history[1].result is AttemptResult.PASS
        assert result.attempt_history[1].error_count == 0

        path, code = memory_files.writes[-1]
        assert path == TEST_FILE
        assert "page.getByRole('button', { name: 'submit btn' })" in code
        assert result.code == code

    def test_same_failure_after_fix_trips_breaker(self, memory_files):
        """A fix that leaves the same fingerprint ends the session early."""
        config = HealingConfig(allowed_fixes=[FixType.SELECTOR_REFINE])
        verify = ScriptedVerify(failed(SELECTOR_FAILURE))
        result = heal(memory_files, verify, config)

        assert not result.success
        assert result.status is HealingStatus.EXHAUSTED
        assert result.attempts == 1
        assert verify.calls == 2
        assert [r.fix_type for r in result.attempt_history] == [FixType.SELECTOR_REFINE]
        assert "Fix had no effect" in result.recommendation

    def test_default_rules_stop_on_repeated_failure(self, memory_files):
        result = heal(memory_files, ScriptedVerify(failed(SELECTOR_FAILURE)))

        assert result.status is HealingStatus.EXHAUSTED
        assert result.attempts == 2
        assert len(memory_files.writes) == 1
        assert result.final_classification.category is FailureCategory.SELECTOR

    @pytest.mark.parametrize("max_attempts", [1, 2, 3, 5])
    def test_attempts_are_bounded(self, memory_files, max_attempts):
        verify = ScriptedVerify(*distinct_failures(8))
        result = heal(memory_files, verify, HealingConfig(max_attempts=max_attempts))

        assert not result.success
        assert result.status is HealingStatus.EXHAUSTED
        assert result.attempts <= max_attempts
        assert verify.calls <= result.attempts + 1
        assert len(result.attempt_history) <= max_attempts

    def test_forbidden_fixes_never_attempted(self, memory_files):
        verify = ScriptedVerify(*distinct_failures(8))
        result = heal(memory_files, verify, HealingConfig(max_attempts=5))
        assert not {r.fix_type for r in result.attempt_history} & FORBIDDEN_FIXES

    def test_unhealable_failure(self, memory_files):
        result = heal(memory_files, ScriptedVerify(failed("connect ECONNREFUSED 127.0.0.1:3000")))

        assert result.status is HealingStatus.UNHEALABLE
        assert result.attempts == 0
        assert result.final_classification.category is FailureCategory.ENV
        assert memory_files.writes == []

    def test_no_applicable_rules(self, memory_files):
        config = HealingConfig(allowed_fixes=[FixType.DATA_ISOLATION])
        result = heal(memory_files, ScriptedVerify(failed(SELECTOR_FAILURE)), config)

        assert result.status is HealingStatus.FAILING
        assert result.recommendation == "No applicable healing rules for this failure"

    def test_cancelled_before_first_attempt(self, memory_files):
        token = CancellationToken()
        token.cancel()
        result = heal(memory_files, ScriptedVerify(failed(SELECTOR_FAILURE)), cancel=token)

        assert result.cancelled
        assert result.status is HealingStatus.FAILING
        assert result.attempts == 0

    def test_missing_test_file(self):
        verify = ScriptedVerify(PASSED)
        result = heal(MemoryFiles({}), verify)

        assert result.status is HealingStatus.FAILING
        assert result.attempts == 0
        assert result.recommendation == "Test file not found"
        assert verify.calls == 0

    def test_runner_error_is_not_healed(self, memory_files):
        def verify():
            raise RunnerError("playwright exited with code 3")

        result = heal(memory_files, verify)
        assert result.status is HealingStatus.UNHEALABLE
        assert result.final_classification.category is FailureCategory.UNKNOWN

    def test_writes_healing_log(self, memory_files, tmp_path):
        result = heal(memory_files, ScriptedVerify(failed(SELECTOR_FAILURE), PASSED), log_dir=tmp_path)

        assert result.log_path == tmp_path / f"login{LOG_SUFFIX}"
        log = load_healing_log(result.log_path)
        assert log.status is HealingStatus.HEALED
        assert log.test_file == TEST_FILE
        assert len(log.attempts) == 2
        assert log.session_end is not None

    def test_tracing_spans(self, memory_files):
        tracing = RecordingTracing()
        heal(memory_files, ScriptedVerify(failed(SELECTOR_FAILURE), PASSED), tracing=tracing)

        assert tracing.traces == ["healing-loop"]
        assert [s.name for s in tracing.spans] == ["verify", "apply-fix", "apply-fix", "verify"]
        assert tracing.spans[-1].output["status"] == "passed"
        assert tracing.flushed

    def test_reads_and_writes_real_files(self, tmp_path):
        test_file = tmp_path / "checkout.spec.ts"
        test_file.write_text(CSS_TEST_CODE)
        config = HealingConfig(allowed_fixes=[FixType.SELECTOR_REFINE])

        result = run_healing_loop(test_file, config, ScriptedVerify(failed(SELECTOR_FAILURE), PASSED))

        assert result.status is HealingStatus.HEALED
        assert "getByRole" in test_file.read_text()


class TestConvergence:
    def test_improving(self):
        tracker = ConvergenceTracker()
        for fingerprints in (["a", "b"], ["a"], []):
            tracker.record(fingerprints)
        assert tracker.converged
        assert tracker.trend() is Trend.IMPROVING
        assert tracker.improvement_percentage() == 100
        assert tracker.fixed_errors() == {"a"}

    def test_stagnating(self):
        tracker = ConvergenceTracker()
        for _ in range(3):
            tracker.record(["a"])
        assert tracker.trend() is Trend.STAGNATING
        assert tracker.info().stagnation_count == 2

    def test_oscillating(self):
        tracker = ConvergenceTracker()
        for fingerprints in (["a", "b"], ["a"], ["a", "c"], ["c"]):
            tracker.record(fingerprints)
        assert tracker.is_oscillating()
        assert tracker.trend() is Trend.OSCILLATING

    def test_new_errors(self):
        tracker = ConvergenceTracker()
        tracker.record(["a"])
        tracker.record(["b"])
        assert tracker.new_errors() == {"b"}


class TestCircuitBreaker:
    def test_same_error(self):
        breaker = CircuitBreaker()
        assert not breaker.record(["a"])
        assert breaker.record(["a"])
        assert breaker.reason is BreakerReason.SAME_ERROR
        assert breaker.record(["b"])

    def test_persisting_secondary_error_is_ignored(self):
        breaker = CircuitBreaker()
        assert not breaker.record(["a", "z"])
        assert not breaker.record(["b", "z"])
        assert not breaker.record([])
        assert breaker.history == ["a", "b"]

    def test_oscillation(self):
        breaker = CircuitBreaker(same_error_threshold=3)
        for fingerprint in ("a", "b", "a"):
            assert not breaker.record([fingerprint])
        assert breaker.record(["b"])
        assert breaker.reason is BreakerReason.OSCILLATION


class TestHealingLogs:
    @pytest.mark.parametrize("path,slug", [
        ("tests/login.spec.ts", "login"),
        ("e2e/Checkout Flow.test.js", "checkout-flow"),
        ("odd.py", "odd-py"),
    ])
    def test_slug(self, path, slug):
        assert log_slug(path) == slug

    def test_format_and_aggregate(self, memory_files, tmp_path):
        heal(memory_files, ScriptedVerify(failed(SELECTOR_FAILURE), PASSED), log_dir=tmp_path)
        other = MemoryFiles({"tests/settings.spec.ts": CSS_TEST_CODE})
        run_healing_loop(
            "tests/settings.spec.ts", HealingConfig(), ScriptedVerify(failed("connect ECONNREFUSED")),
            read_fn=other.read, write_fn=other.write, log_dir=tmp_path,
        )

        logs = [load_healing_log(p) for p in sorted(tmp_path.glob(f"*{LOG_SUFFIX}"))]
        aggregate = aggregate_healing_logs(logs)
        assert aggregate.total_logs == 2
        assert aggregate.healed == 1
        assert aggregate.unhealable == 1
        assert aggregate.total_attempts == 2
        assert ("selector", 2) in aggregate.most_common_failures

        text = format_healing_log(logs[0])
        assert text.startswith("# Healing Log: tests/login.spec.ts")
        assert "- **Fix**: selector-refine" in text
        assert "No fixes were attempted." in format_healing_log(logs[1])
