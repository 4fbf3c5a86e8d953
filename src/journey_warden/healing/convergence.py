"""Convergence tracking and the circuit breaker for the healing loop."""

from dataclasses import dataclass, field
from enum import Enum


class Trend(Enum):
    IMPROVING = "improving"
    DEGRADING = "degrading"
    STAGNATING = "stagnating"
    OSCILLATING = "oscillating"


class BreakerReason(Enum):
    SAME_ERROR = "same-error"
    OSCILLATION = "oscillation"


@dataclass
class ConvergenceInfo:
    converged: bool
    attempts: int
    error_count_history: list[int]
    stagnation_count: int
    last_improvement: int | None
    trend: Trend


class ConvergenceTracker:
    """Error counts per verification run, and what they say about progress."""

    def __init__(self):
        self.error_count_history: list[int] = []
        self.unique_errors_history: list[set[str]] = []
        self.last_improvement: int | None = None
        self.stagnation_count = 0

    def record(self, fingerprints: list[str]) -> None:
        self.error_count_history.append(len(fingerprints))
        self.unique_errors_history.append(set(fingerprints))
        if len(self.error_count_history) >= 2:
            prev, curr = self.error_count_history[-2:]
            if curr < prev:
                self.last_improvement = len(self.error_count_history) - 1
                self.stagnation_count = 0
            else:
                self.stagnation_count += 1

    @property
    def converged(self) -> bool:
        return bool(self.error_count_history) and self.error_count_history[-1] == 0

    def is_oscillating(self) -> bool:
        if len(self.error_count_history) < 4:
            return False
        a, b, c, d = self.error_count_history[-4:]
        signs = [_sign(b - a), _sign(c - b), _sign(d - c)]
        return signs[0] != 0 and signs[0] == -signs[1] and signs[1] == -signs[2]

    def trend(self) -> Trend:
        history = self.error_count_history
        if len(history) < 2:
            return Trend.STAGNATING
        if self.is_oscillating():
            return Trend.OSCILLATING
        recent = history[-3:]
        pairs = list(zip(recent, recent[1:]))
        if all(v == recent[0] for v in recent) or self.stagnation_count >= 2:
            return Trend.STAGNATING
        if all(b <= a for a, b in pairs):
            return Trend.IMPROVING
        if all(b >= a for a, b in pairs):
            return Trend.DEGRADING
        return Trend.STAGNATING

    def improvement_percentage(self) -> int:
        if len(self.error_count_history) < 2:
            return 0
        first, last = self.error_count_history[0], self.error_count_history[-1]
        if first == 0:
            return 100 if last == 0 else 0
        return round((first - last) / first * 100)

    def new_errors(self) -> set[str]:
        if len(self.unique_errors_history) < 2:
            return set(self.unique_errors_history[0]) if self.unique_errors_history else set()
        prev, curr = self.unique_errors_history[-2:]
        return curr - prev

    def fixed_errors(self) -> set[str]:
        if len(self.unique_errors_history) < 2:
            return set()
        prev, curr = self.unique_errors_history[-2:]
        return prev - curr

    def info(self) -> ConvergenceInfo:
        return ConvergenceInfo(
            converged=self.converged,
            attempts=len(self.error_count_history),
            error_count_history=list(self.error_count_history),
            stagnation_count=self.stagnation_count,
            last_improvement=self.last_improvement,
            trend=self.trend(),
        )


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


@dataclass
class CircuitBreaker:
    """Opens when a failure fingerprint repeats or fingerprints alternate A-B-A-B."""

    same_error_threshold: int = 2
    oscillation_window: int = 4
    detect_oscillation: bool = True
    history: list[str] = field(default_factory=list)
    is_open: bool = False
    reason: BreakerReason | None = None

    def record(self, fingerprints: list[str]) -> bool:
        """Add one verification run's fingerprints. Returns True when open.

        Only the first fingerprint of a run, the failure being healed, is kept.
        Secondary errors that persist while the primary one changes never trip it.
        """
        if self.is_open:
            return True
        if not fingerprints:
            return False
        primary = fingerprints[0]
        self.history.append(primary)
        if self.history.count(primary) >= self.same_error_threshold:
            self._open(BreakerReason.SAME_ERROR)
        elif self.detect_oscillation and self._oscillating():
            self._open(BreakerReason.OSCILLATION)
        return self.is_open

    def _oscillating(self) -> bool:
        if len(self.history) < self.oscillation_window:
            return False
        recent = self.history[-self.oscillation_window:]
        if len(set(recent)) != 2:
            return False
        return all(recent[i] == recent[i - 2] for i in range(2, len(recent)))

    def _open(self, reason: BreakerReason) -> None:
        self.is_open = True
        self.reason = reason
