"""Lint journey step text for machine hints before normalization."""

import re
from dataclasses import dataclass, field

from ..mapping.hints import has_hints
from ..mapping.matcher import suggest_fix

AUTO_FIX_THRESHOLD = 0.7
MAX_LISTED_WARNINGS = 5

_STEP_LINE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(.+?)\s*$")
_INTERACTION_VERB = re.compile(r"\b(click|press|tap|fill|enter|type|select|check|uncheck)\b", re.IGNORECASE)
_HINT_MARKERS = [
    re.compile(r"\brole\s*="),
    re.compile(r"\btestid\s*="),
    re.compile(r"\bdata-testid\b"),
    re.compile(r"\blabel\s*="),
    re.compile(r"\bsignal\s*="),
    re.compile(r"\bmodule\s*="),
]


@dataclass(frozen=True)
class FormatIssue:
    line: int
    step: str
    message: str
    suggestion: str | None = None


@dataclass(frozen=True)
class AutoFix:
    line: int
    original: str
    fixed: str
    confidence: float


@dataclass
class FormatValidation:
    valid: bool
    errors: list[FormatIssue] = field(default_factory=list)
    warnings: list[FormatIssue] = field(default_factory=list)
    auto_fixable: list[AutoFix] = field(default_factory=list)


def has_machine_hints(text: str) -> bool:
    if has_hints(text):
        return True
    return any(marker.search(text) for marker in _HINT_MARKERS)


def extract_steps(content: str) -> list[tuple[int, str]]:
    """(line number, text) for every bullet or numbered line."""
    steps = []
    for number, line in enumerate(content.splitlines(), start=1):
        if match := _STEP_LINE.match(line):
            steps.append((number, match.group(1)))
    return steps


def get_suggestion_for_step(step: str) -> str | None:
    lowered = step.lower()
    if re.search(r"\b(?:click|press|tap)\b", lowered):
        return "Add a locator hint, e.g. `(role=button, name=Save)`"
    if re.search(r"\b(?:fill|enter|type)\b", lowered):
        return 'Add a field hint, e.g. `(role=textbox, name=Email)` or `(label="Email")`'
    if re.search(r"\b(?:select|check|uncheck)\b", lowered):
        return "Add a control hint, e.g. `(role=checkbox, name=Remember me)`"
    if re.search(r"\b(?:see|visible|displayed|shown)\b", lowered):
        return 'Add a target hint, e.g. `(text="Welcome")` or `(role=heading, name=Dashboard)`'
    return None


def attempt_auto_fix(step: str, line: int = 0) -> AutoFix | None:
    suggestion = suggest_fix(step)
    if suggestion is None:
        return None
    return AutoFix(line=line, original=step, fixed=suggestion.fixed_text, confidence=suggestion.confidence)


def validate_journey_format(content: str | list[str]) -> FormatValidation:
    """Check every step for machine hints.

    A string is read as markdown and its bullet lines are checked. A list is
    taken as step texts, numbered from 1.
    """
    if isinstance(content, str):
        steps = extract_steps(content)
    else:
        steps = list(enumerate(content, start=1))

    result = FormatValidation(valid=True)
    for line, step in steps:
        if has_machine_hints(step):
            continue
        suggestion = get_suggestion_for_step(step)
        if verb := _INTERACTION_VERB.search(step):
            result.errors.append(FormatIssue(
                line, step, f"Interaction '{verb.group(1).lower()}' has no locator hint", suggestion
            ))
        else:
            result.warnings.append(FormatIssue(line, step, "Step has no machine hints", suggestion))
        fix = attempt_auto_fix(step, line)
        if fix and fix.confidence > AUTO_FIX_THRESHOLD:
            result.auto_fixable.append(fix)

    result.valid = not result.errors
    return result


def apply_auto_fixes(content: str, min_confidence: float = AUTO_FIX_THRESHOLD) -> tuple[str, list[AutoFix]]:
    """Rewrite fixable step lines in place. Returns the new text and the fixes applied."""
    lines = content.splitlines()
    applied = []
    for line, step in extract_steps(content):
        if has_machine_hints(step):
            continue
        fix = attempt_auto_fix(step, line)
        if fix is None or fix.confidence <= min_confidence:
            continue
        lines[line - 1] = lines[line - 1].replace(step, fix.fixed, 1)
        applied.append(fix)
    text = "\n".join(lines)
    if content.endswith("\n"):
        text += "\n"
    return text, applied


def format_validation_result(result: FormatValidation) -> str:
    if result.valid and not result.warnings:
        return "All steps carry machine hints."

    out = []
    if result.errors:
        out.append(f"Errors ({len(result.errors)}):")
        for issue in result.errors:
            out.append(f"  line {issue.line}: {issue.message}")
            out.append(f"    {issue.step}")
            if issue.suggestion:
                out.append(f"    hint: {issue.suggestion}")
    if result.warnings:
        out.append(f"Warnings ({len(result.warnings)}):")
        for issue in result.warnings[:MAX_LISTED_WARNINGS]:
            out.append(f"  line {issue.line}: {issue.message}")
        if len(result.warnings) > MAX_LISTED_WARNINGS:
            out.append(f"  ... and {len(result.warnings) - MAX_LISTED_WARNINGS} more")
    if result.auto_fixable:
        out.append(f"{len(result.auto_fixable)} step(s) can be fixed automatically with --fix")
    return "\n".join(out)
