"""Markdown reports for classifications, selectors, confidence and normalization."""

from .journey.normalize import NormalizationResult
from .models import FailureClassification
from .uncertainty.base import percent
from .uncertainty.scorer import ConfidenceScore, Verdict
from .uncertainty.selectors import SelectorAnalysis
from .verify.classifier import summarize_classifications

VERDICT_MARKS = {Verdict.ACCEPT: "✅", Verdict.REVIEW: "⚠️", Verdict.REJECT: "❌"}


def _truncate(text: str, limit: int = 60) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def format_classification_report(classifications: dict[str, FailureClassification]) -> str:
    """Summary counts per category followed by one section per test."""
    summary = summarize_classifications(classifications.values())
    lines = ["# Failure Classification Report", "", "## Summary", ""]
    for category, count in summary.by_category.items():
        if count:
            lines.append(f"- {category}: {count}")
    lines += [
        f"- unique failures: {summary.unique_fingerprints}",
        f"- test issues: {summary.test_issues}",
        "",
        "## Detailed Classifications",
        "",
    ]

    for test_id, c in classifications.items():
        lines += [
            f"### {test_id}",
            "",
            f"- **Category**: {c.category.value}",
            f"- **Confidence**: {percent(c.confidence)}",
            f"- **Fingerprint**: `{c.fingerprint}`",
            f"- **Explanation**: {c.explanation}",
            f"- **Suggestion**: {c.suggestion}",
            f"- **Is Test Issue**: {'Yes' if c.is_test_issue else 'No'}",
        ]
        if c.selector:
            lines.append(f"- **Selector**: `{c.selector}`")
        if c.location:
            lines.append(f"- **Location**: {c.location.file}:{c.location.line}")
        lines.append("")
    return "\n".join(lines)


def format_selector_report(analysis: SelectorAnalysis) -> str:
    lines = [
        "# Selector Stability Report",
        "",
        f"**Score**: {percent(analysis.score)}",
        f"**Stability**: {percent(analysis.stability_score)}",
        f"**Accessibility**: {percent(analysis.accessibility_score)}",
        "",
    ]
    if not analysis.selectors:
        lines.append("No selectors found.")
        return "\n".join(lines) + "\n"

    lines += ["## Selectors", "", "| Line | Strategy | Selector | Stability | Fragile |",
              "|------|----------|----------|-----------|---------|"]
    for s in analysis.selectors:
        selector = _truncate(s.selector).replace("|", "\\|")
        lines.append(
            f"| {s.line} | {s.strategy.value} | `{selector}` | {percent(s.stability)} "
            f"| {'yes' if s.is_fragile else 'no'} |"
        )

    if analysis.recommendations:
        lines += ["", "## Recommendations", ""]
        for r in analysis.recommendations:
            lines.append(
                f"- **{r.priority}** `{_truncate(r.selector)}`: {r.current.value} -> "
                f"{r.suggested.value}. {r.reason}"
            )
    return "\n".join(lines) + "\n"


def format_confidence_report(score: ConfidenceScore) -> str:
    lines = [
        "# Confidence Report",
        "",
        f"**Verdict**: {VERDICT_MARKS[score.verdict]} {score.verdict.value}",
        f"**Overall**: {percent(score.overall)} (accept at {percent(score.threshold.overall)})",
        "",
        "| Dimension | Score | Weight | Reasoning |",
        "|-----------|-------|--------|-----------|",
    ]
    for d in score.dimensions:
        flag = " ❌" if d.dimension in score.blocked_dimensions else ""
        lines.append(f"| {d.dimension.value}{flag} | {percent(d.score)} | {d.weight:.2f} | {d.reasoning} |")

    if score.diagnostics.suggestions:
        lines += ["", "## Suggestions", ""]
        lines += [f"- {s}" for s in score.diagnostics.suggestions]
    if score.diagnostics.risk_areas:
        lines += ["", "## Risk Areas", ""]
        lines += [f"- {r}" for r in score.diagnostics.risk_areas]
    if score.agreement and score.agreement.disagreements:
        lines += ["", "## Disagreements", ""]
        for area in score.agreement.disagreements:
            votes = ", ".join(f"`{v or '(none)'}` x{n}" for v, n in area.votes.items())
            lines.append(f"- **{area.area}** ({percent(area.confidence)} majority): {votes}")
    return "\n".join(lines) + "\n"


def format_normalization_report(result: NormalizationResult) -> str:
    journey = result.journey
    stats = result.stats
    lines = [
        f"# Normalization Report: {journey.id}",
        "",
        f"**Title**: {journey.title}",
        f"**Steps**: {stats.mapped_steps}/{stats.total_steps} kept ({stats.dropped_steps} dropped)",
        f"**Actions**: {stats.total_actions}",
        f"**Assertions**: {stats.total_assertions}",
        f"**Blocked**: {stats.blocked_steps}",
        "",
        "## Steps",
        "",
    ]
    for step in journey.steps:
        mark = "❌" if step.has_blocked else "✅"
        lines.append(
            f"- {mark} **{step.id}** {step.description}: "
            f"{len(step.actions)} action(s), {len(step.assertions)} assertion(s)"
        )

    if result.blocked_steps:
        lines += ["", "## Blocked Steps", ""]
        for b in result.blocked_steps:
            lines.append(f"- **{b.step_id}** \"{b.source_text}\": {b.reason}")
            if b.suggestion:
                lines.append(f"  - Try: `{b.suggestion.fixed_text}` ({percent(b.suggestion.confidence)})")
    if result.warnings:
        lines += ["", "## Warnings", ""]
        lines += [f"- {w}" for w in result.warnings]
    return "\n".join(lines) + "\n"
