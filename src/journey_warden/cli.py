"""CLI entry point for Journey Warden."""

import json
import sys
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .adapters.runner import PlaywrightRunner
from .config import Config, load_config
from .errors import JourneyInputError, RunnerError
from .healing.log import LOG_SUFFIX, aggregate_healing_logs, format_healing_log, load_healing_log
from .healing.loop import run_healing_loop
from .healing.rules import HealingConfig
from .journey.normalize import NormalizeOptions, normalize_journey, validate_journey_for_codegen
from .journey.validator import apply_auto_fixes, format_validation_result, validate_journey_format
from .logs import configure_logging
from .mapping.glossary import Glossary, load_glossary
from .mapping.matcher import MatchOptions, StepMatch, match_step, suggest_fix
from .mapping.patterns import ALL_PATTERNS
from .models import FixType, ParsedJourney
from .reports import (
    format_classification_report,
    format_confidence_report,
    format_normalization_report,
)
from .tracing import TracingClient
from .uncertainty.patterns import BUILTIN_CODE_PATTERNS
from .uncertainty.scorer import ScoringContext, Verdict, score_confidence
from .verify.classifier import classify_all, classify_batch
from .verify.report import extract_test_results, load_report

console = Console()

VERDICT_STYLES = {Verdict.ACCEPT: "green", Verdict.REVIEW: "yellow", Verdict.REJECT: "red"}


def _glossary(config: Config) -> Glossary:
    return load_glossary(config.matcher.glossary_path)


def _match_options(config: Config) -> MatchOptions:
    return MatchOptions(
        require_locator_hints=config.matcher.require_locator_hints,
        use_glossary_fallback=config.matcher.use_glossary_fallback,
        use_fuzzy=config.matcher.use_fuzzy,
        fuzzy_min_similarity=config.matcher.fuzzy_min_similarity,
    )


def _load_journey(path: str) -> ParsedJourney:
    """Read a parsed journey from YAML or JSON."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise JourneyInputError(f"{path} is not valid YAML or JSON: {e}") from e
    if not isinstance(data, dict):
        raise JourneyInputError(f"{path} does not contain a journey object")
    try:
        return ParsedJourney.from_dict(data)
    except ValidationError as e:
        raise JourneyInputError(f"{path} is not a valid parsed journey:\n{e}") from e


def _fail(message: str, code: int = 1) -> None:
    console.print(f"[bold red]✗ {message}[/]")
    sys.exit(code)


@click.group()
@click.version_option()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Journey Warden - journey normalization and bounded test healing."""
    ctx.ensure_object(dict)

    config = load_config(Path(config_path) if config_path else None)
    configure_logging("DEBUG" if verbose else config.log_level)
    ctx.obj["config"] = config


@main.command()
@click.argument("text")
@click.pass_context
def match(ctx: click.Context, text: str) -> None:
    """Map one step to a primitive."""
    config: Config = ctx.obj["config"]
    result = match_step(text, _glossary(config), _match_options(config))

    if isinstance(result, StepMatch):
        body = json.dumps(result.primitive.to_dict(), indent=2)
        console.print(Panel(body, title=f"[green]{result.primitive.type.value}[/] via {result.source.value}"))
        for warning in result.warnings:
            console.print(f"[yellow]⚠ {warning}[/]")
        return

    console.print(Panel(result.reason, title="[red]blocked[/]"))
    if suggestion := suggest_fix(text):
        console.print(f"[dim]Try:[/] {suggestion.fixed_text} [dim]({suggestion.confidence:.0%})[/]")
    sys.exit(1)


@main.command()
@click.argument("text")
def suggest(text: str) -> None:
    """Propose machine hint syntax for a step."""
    suggestion = suggest_fix(text)
    if suggestion is None:
        console.print("[yellow]No suggestion: the step already has hints or names no quoted target.[/]")
        return
    console.print(f"{suggestion.fixed_text}\n[dim]confidence {suggestion.confidence:.0%}[/]")


def _normalize(ctx: click.Context, path: str, strict: bool | None = None, include_blocked: bool | None = None):
    config: Config = ctx.obj["config"]
    try:
        parsed = _load_journey(path)
    except JourneyInputError as e:
        _fail(str(e), code=2)
    options = NormalizeOptions(
        include_blocked=config.normalizer.include_blocked if include_blocked is None else include_blocked,
        strict=config.normalizer.strict if strict is None else strict,
        match_options=_match_options(config),
    )
    return normalize_journey(parsed, options, _glossary(config))


@main.command()
@click.argument("journey", type=click.Path(exists=True))
@click.option("--strict", is_flag=True, help="Drop steps with blocked bullets")
@click.option("--no-blocked", is_flag=True, help="Leave blocked placeholders out of step actions")
@click.option("--json", "as_json", is_flag=True, help="Print the IR as JSON")
@click.option("--report", "report_path", type=click.Path(), help="Write a markdown report")
@click.pass_context
def normalize(
    ctx: click.Context,
    journey: str,
    strict: bool,
    no_blocked: bool,
    as_json: bool,
    report_path: str | None,
) -> None:
    """Normalize a parsed journey into IR."""
    result = _normalize(ctx, journey, strict or None, False if no_blocked else None)

    if report_path:
        Path(report_path).write_text(format_normalization_report(result))
    if as_json:
        click.echo(json.dumps(result.journey.to_dict(), indent=2))
        return

    table = Table(title=f"{result.journey.id}: {result.journey.title}")
    table.add_column("Step", style="cyan")
    table.add_column("Description", max_width=50)
    table.add_column("Actions", justify="right")
    table.add_column("Assertions", justify="right")
    table.add_column("Blocked", style="red")
    for step in result.journey.steps:
        table.add_row(
            step.id, step.description, str(len(step.actions)), str(len(step.assertions)),
            "yes" if step.has_blocked else "",
        )
    console.print(table)

    stats = result.stats
    console.print(
        f"\n[bold]Summary:[/] {stats.mapped_steps}/{stats.total_steps} steps kept, "
        f"{stats.total_actions} actions, {stats.total_assertions} assertions, "
        f"[red]{stats.blocked_steps} blocked[/]"
    )
    for warning in result.warnings:
        console.print(f"[yellow]⚠ {warning}[/]")


@main.command()
@click.argument("journey", type=click.Path(exists=True))
@click.pass_context
def validate(ctx: click.Context, journey: str) -> None:
    """Check whether a journey is ready for code generation."""
    result = _normalize(ctx, journey)
    validation = validate_journey_for_codegen(result)
    if validation.valid:
        console.print(f"[bold green]✓ {result.journey.id} is ready for code generation[/]")
        return
    for error in validation.errors:
        console.print(f"[red]✗ {error}[/]")
    sys.exit(1)


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--fix", is_flag=True, help="Rewrite steps that can be fixed with confidence")
def lint(file: str, fix: bool) -> None:
    """Check that journey steps carry machine hints."""
    path = Path(file)
    content = path.read_text()

    if fix:
        content, applied = apply_auto_fixes(content)
        if applied:
            path.write_text(content)
            console.print(f"[green]✓ Applied {len(applied)} fixes[/]")

    result = validate_journey_format(content)
    console.print(format_validation_result(result))
    if not result.valid:
        sys.exit(1)


@main.command()
@click.option("--error", "error_text", help="Error text to classify")
@click.option("--report", "report_file", type=click.Path(), help="Playwright JSON report")
@click.option("--markdown", "markdown_path", type=click.Path(), help="Write a markdown report")
def classify(error_text: str | None, report_file: str | None, markdown_path: str | None) -> None:
    """Classify test failures."""
    if bool(error_text) == bool(report_file):
        raise click.UsageError("Pass exactly one of --error or --report")

    if error_text:
        classifications = {f"error {i + 1}": c for i, c in enumerate(classify_all(error_text))}
    else:
        try:
            report = load_report(Path(report_file))
        except RunnerError as e:
            _fail(str(e), code=2)
        classifications = classify_batch(extract_test_results(report))

    if not classifications:
        console.print("[bold green]✓ No failures to classify[/]")
        return

    table = Table(title="Failure Classification")
    table.add_column("Test", style="cyan", max_width=40)
    table.add_column("Category", style="yellow")
    table.add_column("Confidence", justify="right")
    table.add_column("Fingerprint", style="dim")
    table.add_column("Suggestion", style="magenta", max_width=50)
    for test_id, c in classifications.items():
        table.add_row(test_id, c.category.value, f"{c.confidence:.0%}", c.fingerprint, c.suggestion)
    console.print(table)

    if markdown_path:
        Path(markdown_path).write_text(format_classification_report(classifications))


@main.command()
@click.argument("test_file", type=click.Path(exists=True))
@click.option("--max-attempts", type=int, help="Override the maximum number of fix attempts")
@click.option("--allow", "allowed", multiple=True, type=click.Choice([f.value for f in FixType]),
              help="Allowed fix type (repeatable)")
@click.option("--log-dir", type=click.Path(), help="Directory for the healing log")
@click.pass_context
def heal(ctx: click.Context, test_file: str, max_attempts: int | None, allowed: tuple[str, ...],
         log_dir: str | None) -> None:
    """Run the bounded healing loop on one test file."""
    config: Config = ctx.obj["config"]

    overrides = {}
    if max_attempts is not None:
        overrides["max_attempts"] = max_attempts
    if allowed:
        overrides["allowed_fixes"] = list(allowed)
    try:
        healing = HealingConfig(**{**config.healing.model_dump(), **overrides})
    except ValidationError as e:
        _fail(f"Invalid healing configuration:\n{e}", code=2)

    runner = PlaywrightRunner(config.runner, config.report_dir)
    tracing = TracingClient(config)
    if config.langfuse.enabled:
        console.print("[dim]Langfuse tracing enabled[/]")

    console.print(f"\n[bold blue]🔧 Healing:[/] {test_file}")
    console.print(f"[dim]Max attempts: {healing.max_attempts} | "
                  f"Fixes: {', '.join(f.value for f in healing.allowed_fixes)}[/]\n")

    with console.status("[yellow]Healing...[/]"):
        result = run_healing_loop(
            test_file,
            healing,
            runner.verify_fn_for(test_file),
            tracing=tracing,
            log_dir=Path(log_dir) if log_dir else config.heal_log_dir,
        )

    style = "green" if result.success else "red"
    lines = [f"Status: [{style}]{result.status.value}[/]", f"Attempts: {result.attempts}"]
    if result.applied_fix:
        lines.append(f"Last applied fix: {result.applied_fix.value}")
    if result.final_classification and not result.success:
        lines.append(f"Failure: {result.final_classification.category.value} "
                     f"({result.final_classification.fingerprint})")
    if result.recommendation:
        lines.append(f"Recommendation: {result.recommendation}")
    if result.log_path:
        lines.append(f"[dim]Log: {result.log_path}[/]")
    console.print(Panel("\n".join(lines), title="Healing result"))

    if not result.success:
        sys.exit(1)


@main.command()
@click.argument("log_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--show", "show_file", help="Print one log in full, by test file slug")
def logs(log_dir: str, show_file: str | None) -> None:
    """Summarize stored healing logs."""
    paths = sorted(Path(log_dir).glob(f"*{LOG_SUFFIX}"))
    if show_file:
        matching = [p for p in paths if p.name.startswith(show_file)]
        if not matching:
            _fail(f"No healing log for {show_file}")
        click.echo(format_healing_log(load_healing_log(matching[0])))
        return

    aggregate = aggregate_healing_logs([load_healing_log(p) for p in paths])
    table = Table(title=f"Healing logs in {log_dir}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Logs", str(aggregate.total_logs))
    table.add_row("Healed or passing", f"[green]{aggregate.healed}[/]")
    table.add_row("Exhausted", str(aggregate.exhausted))
    table.add_row("Unhealable", str(aggregate.unhealable))
    table.add_row("Failing", f"[red]{aggregate.failed}[/]")
    table.add_row("Fix attempts", str(aggregate.total_attempts))
    console.print(table)
    for fix, count in aggregate.most_common_fixes:
        console.print(f"  • {fix}: {count}")


@main.command()
@click.argument("code_file", type=click.Path(exists=True))
@click.option("--sample", "samples", multiple=True, type=click.Path(exists=True),
              help="Alternative candidate for agreement scoring (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Print the score as JSON")
@click.option("--markdown", "markdown_path", type=click.Path(), help="Write a markdown report")
@click.pass_context
def score(ctx: click.Context, code_file: str, samples: tuple[str, ...], as_json: bool,
          markdown_path: str | None) -> None:
    """Score generated test code and print the verdict."""
    config: Config = ctx.obj["config"]
    context = ScoringContext(
        samples=tuple(Path(s).read_text() for s in samples),
        glossary=_glossary(config),
    )
    result = score_confidence(Path(code_file).read_text(), context, config.scoring)

    if markdown_path:
        Path(markdown_path).write_text(format_confidence_report(result))
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        table = Table(title=f"Confidence: {code_file}")
        table.add_column("Dimension", style="cyan")
        table.add_column("Score", justify="right")
        table.add_column("Weight", justify="right")
        table.add_column("Reasoning", max_width=60)
        for d in result.dimensions:
            name = d.dimension.value
            if d.dimension in result.blocked_dimensions:
                name = f"[red]{name} ✗[/]"
            table.add_row(name, f"{d.score:.0%}", f"{d.weight:.2f}", d.reasoning)
        console.print(table)
        style = VERDICT_STYLES[result.verdict]
        console.print(f"\n[bold {style}]{result.verdict.value}[/] overall {result.overall:.0%}")
        for suggestion in result.diagnostics.suggestions:
            console.print(f"  • {suggestion}")

    if result.verdict is Verdict.REJECT:
        sys.exit(1)


@main.command()
@click.option("--code", "code_patterns", is_flag=True, help="List generated-code patterns instead")
def patterns(code_patterns: bool) -> None:
    """List the pattern registry."""
    if code_patterns:
        table = Table(title="Code patterns")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Category", style="yellow")
        table.add_column("Confidence", justify="right")
        for p in BUILTIN_CODE_PATTERNS:
            table.add_row(p.id, p.name, p.category.value, f"{p.confidence:.0%}")
    else:
        table = Table(title="Step patterns (in match order)")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Group", style="yellow")
        table.add_column("Primitive")
        for i, p in enumerate(ALL_PATTERNS, start=1):
            table.add_row(str(i), p.name, p.group.value, p.primitive_type.value)
    console.print(table)


if __name__ == "__main__":
    main()
