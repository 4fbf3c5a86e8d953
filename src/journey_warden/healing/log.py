"""Persisted record of a healing session."""

import logging
import re
from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from ..models import FailureCategory, FixType

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".heal-log.json"


class HealingStatus(Enum):
    PASSED = "passed"
    HEALED = "healed"
    EXHAUSTED = "exhausted"
    UNHEALABLE = "unhealable"
    FAILING = "failing"


class AttemptResult(Enum):
    PASS = "pass"
    FAIL = "fail"
    SKIPPED = "skipped"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HealingAttemptRecord(BaseModel):
    attempt: int
    fix_type: FixType
    applied: bool
    confidence: float = 0.0
    category: FailureCategory
    fingerprint: str
    error_count: int | None = None
    description: str = ""
    result: AttemptResult = AttemptResult.FAIL
    timestamp: datetime = Field(default_factory=_now)


class HealingLog(BaseModel):
    test_file: str
    session_start: datetime = Field(default_factory=_now)
    session_end: datetime | None = None
    max_attempts: int
    status: HealingStatus = HealingStatus.FAILING
    attempts: list[HealingAttemptRecord] = Field(default_factory=list)
    summary: str | None = None


def log_slug(test_file: str) -> str:
    name = Path(test_file).name
    for suffix in (".spec.ts", ".test.ts", ".spec.js", ".test.js", ".ts", ".js"):
        if name.endswith(suffix):
            name = name[: -len(suffix)]
            break
    return re.sub(r"[^a-zA-Z0-9]+", "-", name).strip("-").lower() or "test"


class HealingLogger:
    """Collect attempts for one test file and write them as JSON."""

    def __init__(self, test_file: str, output_dir: Path | None, max_attempts: int):
        self.output_dir = output_dir
        self.log = HealingLog(test_file=test_file, max_attempts=max_attempts)

    @property
    def output_path(self) -> Path | None:
        if self.output_dir is None:
            return None
        return self.output_dir / f"{log_slug(self.log.test_file)}{LOG_SUFFIX}"

    def log_attempt(self, record: HealingAttemptRecord) -> None:
        self.log.attempts.append(record)

    def finish(self, status: HealingStatus, summary: str | None = None) -> HealingLog:
        self.log.status = status
        self.log.summary = summary
        self.log.session_end = _now()
        self.save()
        return self.log

    def save(self) -> Path | None:
        path = self.output_path
        if path is None:
            return None
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.log.model_dump_json(indent=2))
        logger.debug("Wrote healing log %s", path)
        return path


def load_healing_log(path: Path) -> HealingLog:
    return HealingLog.model_validate_json(path.read_text())


def format_healing_log(log: HealingLog) -> str:
    lines = [
        f"# Healing Log: {log.test_file}",
        "",
        f"**Status**: {log.status.value}",
        f"**Started**: {log.session_start.isoformat()}",
    ]
    if log.session_end:
        lines.append(f"**Ended**: {log.session_end.isoformat()}")
    lines += ["", "## Attempts", ""]

    if not log.attempts:
        lines += ["No fixes were attempted.", ""]
    for record in log.attempts:
        mark = "✅" if record.result is AttemptResult.PASS else "❌"
        lines += [
            f"### Attempt {record.attempt} {mark}",
            "",
            f"- **Fix**: {record.fix_type.value}",
            f"- **Category**: {record.category.value}",
            f"- **Applied**: {'yes' if record.applied else 'no'}",
            f"- **Confidence**: {round(record.confidence * 100)}%",
            f"- **Change**: {record.description}",
        ]
        if record.error_count is not None:
            lines.append(f"- **Errors after**: {record.error_count}")
        lines.append("")

    lines += [
        "## Summary",
        "",
        f"- **Total attempts**: {len(log.attempts)}",
        f"- **Result**: {log.status.value}",
    ]
    if log.summary:
        lines.append(f"- **Recommendation**: {log.summary}")
    return "\n".join(lines) + "\n"


class HealingAggregate(BaseModel):
    total_logs: int = 0
    healed: int = 0
    failed: int = 0
    exhausted: int = 0
    unhealable: int = 0
    total_attempts: int = 0
    most_common_fixes: list[tuple[str, int]] = Field(default_factory=list)
    most_common_failures: list[tuple[str, int]] = Field(default_factory=list)


def aggregate_healing_logs(logs: list[HealingLog], top: int = 5) -> HealingAggregate:
    statuses = Counter(log.status for log in logs)
    fixes = Counter(r.fix_type.value for log in logs for r in log.attempts)
    failures = Counter(r.category.value for log in logs for r in log.attempts)
    return HealingAggregate(
        total_logs=len(logs),
        healed=statuses[HealingStatus.HEALED] + statuses[HealingStatus.PASSED],
        failed=statuses[HealingStatus.FAILING],
        exhausted=statuses[HealingStatus.EXHAUSTED],
        unhealable=statuses[HealingStatus.UNHEALABLE],
        total_attempts=sum(len(log.attempts) for log in logs),
        most_common_fixes=fixes.most_common(top),
        most_common_failures=failures.most_common(top),
    )
