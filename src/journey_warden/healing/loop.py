"""Bounded healing loop: verify, classify, pick a fix, apply, verify again."""

import logging
import threading
from contextlib import nullcontext
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, TypedDict

from langgraph.graph import END, StateGraph

from ..errors import RunnerError
from ..models import FailureClassification, FixType
from ..verify.classifier import classify, classify_all
from .convergence import CircuitBreaker, ConvergenceTracker, Trend
from .fixes import FixContext, apply_fix
from .log import AttemptResult, HealingAttemptRecord, HealingLogger, HealingStatus
from .rules import (
    DEFAULT_HEALING_RULES,
    UNHEALABLE_CATEGORIES,
    HealingConfig,
    HealingRule,
    assert_fix_permitted,
    evaluate_healing,
    get_healing_recommendation,
    get_next_fix,
    get_post_healing_recommendation,
)

if TYPE_CHECKING:
    from ..tracing import TracingClient

logger = logging.getLogger(__name__)


class VerifyStatus(Enum):
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of one verification run."""

    status: VerifyStatus
    error_texts: tuple[str, ...] = ()
    report_path: str | None = None

    @property
    def passed(self) -> bool:
        return self.status is VerifyStatus.PASSED


VerifyFn = Callable[[], VerifyResult]


class CancellationToken:
    """Cooperative cancellation, checked between attempts only."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class HealingLoopResult:
    success: bool
    status: HealingStatus
    attempts: int
    applied_fix: FixType | None = None
    error_count_history: list[int] = field(default_factory=list)
    attempt_history: list[HealingAttemptRecord] = field(default_factory=list)
    final_classification: FailureClassification | None = None
    recommendation: str | None = None
    cancelled: bool = False
    trend: Trend | None = None
    code: str | None = None
    log_path: Path | None = None


class LoopState(TypedDict, total=False):
    code: str
    attempt: int
    attempted: list[FixType]
    verify_result: VerifyResult | None
    classification: FailureClassification | None
    pending_fix: FixType | None
    applied_fix: FixType | None
    status: HealingStatus | None
    recommendation: str | None
    cancelled: bool
    route: str


def _read(path: str) -> str:
    return Path(path).read_text()


def _write(path: str, code: str) -> None:
    Path(path).write_text(code)


class _HealingSession:
    """Collaborators and per-run trackers shared by the graph nodes."""

    def __init__(
        self,
        test_file: str,
        config: HealingConfig,
        verify_fn: VerifyFn,
        write_fn: Callable[[str, str], None],
        cancel: CancellationToken,
        context: FixContext,
        tracing: "TracingClient | None",
        rules: tuple[HealingRule, ...],
        log_dir: Path | None,
    ):
        self.test_file = test_file
        self.config = config
        self.verify_fn = verify_fn
        self.write_fn = write_fn
        self.cancel = cancel
        self.context = context
        self.tracing = tracing
        self.rules = rules
        self.tracker = ConvergenceTracker()
        self.breaker = CircuitBreaker()
        self.logger = HealingLogger(test_file, log_dir, config.max_attempts)

    def _span(self, name: str, data: dict | None = None):
        if self.tracing is None:
            return nullcontext()
        return self.tracing.span(name, input_data=data)

    def _stop(self, status: HealingStatus, recommendation: str | None = None, **extra) -> LoopState:
        logger.info("Healing %s: %s", self.test_file, status.value)
        return {"status": status, "recommendation": recommendation, "route": "end", **extra}

    def _close_attempt(self, error_count: int, passed: bool) -> None:
        records = self.logger.log.attempts
        if records and records[-1].applied and records[-1].error_count is None:
            records[-1].error_count = error_count
            records[-1].result = AttemptResult.PASS if passed else AttemptResult.FAIL

    # nodes

    def verify(self, state: LoopState) -> LoopState:
        with self._span("verify", {"attempt": state["attempt"]}) as span:
            try:
                result = self.verify_fn()
            except RunnerError as e:
                result = VerifyResult(VerifyStatus.ERROR, (f"Error: {e}",))
            if span is not None:
                span.update(output={"status": result.status.value, "errors": len(result.error_texts)})
        return {"verify_result": result}

    def classify(self, state: LoopState) -> LoopState:
        result = state["verify_result"]
        attempt = state["attempt"]

        if result.passed:
            self.tracker.record([])
            self._close_attempt(0, passed=True)
            status = HealingStatus.HEALED if state.get("applied_fix") else HealingStatus.PASSED
            return self._stop(status)

        found = classify_all(list(result.error_texts))
        if not found:
            found = [classify(f"Verification {result.status.value} without error output")]
        fingerprints = [c.fingerprint for c in found]
        self.tracker.record(fingerprints)
        self._close_attempt(len(found), passed=False)
        tripped = self.breaker.record(fingerprints)
        primary = found[0]
        update: LoopState = {"classification": primary}

        if primary.category in UNHEALABLE_CATEGORIES:
            return self._stop(HealingStatus.UNHEALABLE, get_healing_recommendation(primary), **update)
        if attempt == 0:
            evaluation = evaluate_healing(primary, self.config, self.rules)
            if not evaluation.can_heal:
                return self._stop(HealingStatus.FAILING, evaluation.reason, **update)
        if attempt > 0 and tripped:
            note = f"Fix had no effect on failure {primary.fingerprint}. "
            return self._stop(
                HealingStatus.EXHAUSTED, note + get_post_healing_recommendation(primary, attempt), **update
            )
        if attempt >= self.config.max_attempts:
            return self._stop(
                HealingStatus.EXHAUSTED, get_post_healing_recommendation(primary, attempt), **update
            )
        if self.cancel.cancelled:
            return self._stop(HealingStatus.FAILING, "Healing cancelled", cancelled=True, **update)
        return {**update, "route": "select"}

    def select(self, state: LoopState) -> LoopState:
        classification = state["classification"]
        fix = get_next_fix(classification, state["attempted"], self.config, self.rules)
        if fix is None:
            return self._stop(
                HealingStatus.EXHAUSTED, get_post_healing_recommendation(classification, state["attempt"])
            )
        assert_fix_permitted(fix, self.config)
        logger.info("Attempt %d on %s: trying %s", state["attempt"] + 1, self.test_file, fix.value)
        return {
            "pending_fix": fix,
            "attempted": [*state["attempted"], fix],
            "attempt": state["attempt"] + 1,
            "route": "apply",
        }

    def apply(self, state: LoopState) -> LoopState:
        fix = state["pending_fix"]
        classification = state["classification"]
        attempt = state["attempt"]
        location = classification.location
        line = None
        if location and Path(location.file).name == Path(self.test_file).name:
            line = location.line
        context = replace(
            self.context,
            line_number=line,
            error_message=classification.message,
            selector=classification.selector,
            max_timeout_increase=self.config.max_timeout_increase,
        )

        with self._span("apply-fix", {"fix": fix.value, "attempt": attempt}) as span:
            result = apply_fix(fix, state["code"], context)
            if span is not None:
                span.update(output={"applied": result.applied, "description": result.description})

        self.logger.log_attempt(HealingAttemptRecord(
            attempt=attempt,
            fix_type=fix,
            applied=result.applied,
            confidence=result.confidence,
            category=classification.category,
            fingerprint=classification.fingerprint,
            description=result.description,
            result=AttemptResult.FAIL if result.applied else AttemptResult.SKIPPED,
        ))

        if result.applied:
            self.write_fn(self.test_file, result.code)
            return {"code": result.code, "applied_fix": fix, "route": "verify"}

        logger.debug("Fix %s not applied: %s", fix.value, result.description)
        if attempt >= self.config.max_attempts:
            return self._stop(
                HealingStatus.EXHAUSTED, get_post_healing_recommendation(classification, attempt)
            )
        if self.cancel.cancelled:
            return self._stop(HealingStatus.FAILING, "Healing cancelled", cancelled=True)
        return {"route": "select"}


def _route(state: LoopState) -> str:
    return state["route"]


def build_healing_graph(session: _HealingSession):
    """Build the LangGraph state machine for one healing session."""
    graph = StateGraph(LoopState)

    graph.add_node("verify", session.verify)
    graph.add_node("classify", session.classify)
    graph.add_node("select", session.select)
    graph.add_node("apply", session.apply)

    graph.set_entry_point("verify")
    graph.add_edge("verify", "classify")
    graph.add_conditional_edges("classify", _route, {"select": "select", "end": END})
    graph.add_conditional_edges("select", _route, {"apply": "apply", "end": END})
    graph.add_conditional_edges("apply", _route, {
        "verify": "verify",
        "select": "select",
        "end": END,
    })

    return graph.compile()


def run_healing_loop(
    test_file: str | Path,
    config: HealingConfig,
    verify_fn: VerifyFn,
    *,
    read_fn: Callable[[str], str] = _read,
    write_fn: Callable[[str, str], None] = _write,
    cancel: CancellationToken | None = None,
    context: FixContext | None = None,
    tracing: "TracingClient | None" = None,
    rules: tuple[HealingRule, ...] = DEFAULT_HEALING_RULES,
    log_dir: Path | None = None,
) -> HealingLoopResult:
    """Heal one test file.

    The loop stops after ``config.max_attempts`` fix attempts at the most.
    Verification is delegated to ``verify_fn``; this function never starts
    processes itself.
    """
    test_file = str(test_file)
    session = _HealingSession(
        test_file, config, verify_fn, write_fn, cancel or CancellationToken(),
        context or FixContext(), tracing, rules, log_dir,
    )

    try:
        code = read_fn(test_file)
    except FileNotFoundError:
        log = session.logger.finish(HealingStatus.FAILING, "Test file not found")
        return HealingLoopResult(
            success=False,
            status=log.status,
            attempts=0,
            recommendation=log.summary,
            log_path=session.logger.output_path,
        )

    initial: LoopState = {
        "code": code,
        "attempt": 0,
        "attempted": [],
        "verify_result": None,
        "classification": None,
        "pending_fix": None,
        "applied_fix": None,
        "status": None,
        "recommendation": None,
        "cancelled": False,
        "route": "verify",
    }
    graph = build_healing_graph(session)
    recursion_limit = 4 * (config.max_attempts + len(rules)) + 10

    trace = tracing.trace("healing-loop", {"test_file": test_file}) if tracing else nullcontext()
    with trace:
        final = graph.invoke(initial, config={"recursion_limit": recursion_limit})
    if tracing:
        tracing.flush()

    status = final["status"] or HealingStatus.FAILING
    log = session.logger.finish(status, final.get("recommendation"))
    return HealingLoopResult(
        success=status in (HealingStatus.PASSED, HealingStatus.HEALED),
        status=status,
        attempts=final["attempt"],
        applied_fix=final.get("applied_fix"),
        error_count_history=list(session.tracker.error_count_history),
        attempt_history=list(log.attempts),
        final_classification=final.get("classification"),
        recommendation=final.get("recommendation"),
        cancelled=final.get("cancelled", False),
        trend=session.tracker.trend(),
        code=final["code"],
        log_path=session.logger.output_path,
    )
