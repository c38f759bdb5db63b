from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Annotated, Any

import click
import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from stylesentinel import __version__
from stylesentinel.audit import AuditCallbacks, AuditResult, audit_files, audit_path
from stylesentinel.autofix import autofix_path
from stylesentinel.baseline import BaselineError, build_baseline, save_baseline
from stylesentinel.cache import CacheError
from stylesentinel.config import ConfigError, FailOn, StyleSentinelConfig, compute_enabled_rule_ids, parse_fail_on
from stylesentinel.engine.scoring import SCORING_PROFILES, SEVERITY_ORDER
from stylesentinel.engine.tree_sitter import TreeSitterError
from stylesentinel.engine.types import ScanSummary
from stylesentinel.logging_utils import configure_logging
from stylesentinel.reporters.github import render_github_annotations
from stylesentinel.reporters.json_reporter import parse_json_report, render_json
from stylesentinel.reporters.markdown import render_markdown
from stylesentinel.reporters.sarif import render_sarif
from stylesentinel.reporters.terminal import render_terminal
from stylesentinel.rules.base import BaseRule, RuleMeta
from stylesentinel.rules.examples import EXAMPLES
from stylesentinel.rules.plugins import PluginLoadError, load_plugin_rules
from stylesentinel.rules.registry import all_rules, rule_by_id, set_extra_rules
from stylesentinel.scanner import ScanTarget, discover_files, prepare_target
from stylesentinel.utils import resolve_project_file

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="StyleSentinel: naming and style linter for JavaScript and TypeScript.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

DEFAULT_BASELINE_FILENAME = ".stylesentinel-baseline.json"

ScanPath = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=True,
        dir_okay=True,
        resolve_path=True,
        help="File or directory to lint (default: current directory).",
    ),
]
ProjectDir = Annotated[
    Path,
    typer.Argument(exists=True, file_okay=False, dir_okay=True, resolve_path=True, help="Project directory."),
]
ReportFormat = Annotated[
    str,
    typer.Option("--format", help="Output format: terminal, json, sarif, markdown, github.", show_default=True),
]
ListingFormat = Annotated[str, typer.Option("--format", help="Output format: terminal, json.", show_default=True)]


@dataclass(frozen=True, slots=True)
class CliSettings:
    verbose: bool = False
    quiet: bool = False
    progress: bool = True


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit."),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logs on stderr.")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Only print findings and errors.")] = False,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar while linting.", show_default=True),
    ] = True,
) -> None:
    """StyleSentinel CLI."""

    if verbose and quiet:
        raise typer.BadParameter("--verbose and --quiet are mutually exclusive.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = CliSettings(verbose=verbose, quiet=quiet, progress=progress)


def _settings() -> CliSettings:
    ctx = click.get_current_context(silent=True)
    root = ctx.find_root() if ctx is not None else None
    obj = root.obj if root is not None else None
    return obj if isinstance(obj, CliSettings) else CliSettings()


@contextmanager
def _domain_errors() -> Iterator[None]:
    """Report configuration, plugin, parser and file errors on stderr and exit 2."""

    try:
        yield
    except ConfigError as exc:
        err_console.print(f"Invalid configuration: {exc}")
        raise typer.Exit(code=2) from exc
    except PluginLoadError as exc:
        err_console.print(f"Failed to load plugins: {exc}")
        raise typer.Exit(code=2) from exc
    except TreeSitterError as exc:
        err_console.print(f"Parser unavailable: {exc}")
        raise typer.Exit(code=2) from exc
    except (BaselineError, CacheError) as exc:
        err_console.print(str(exc))
        raise typer.Exit(code=2) from exc


def _print_terminal(summary: ScanSummary, project_root: Path, quiet: bool) -> None:
    render_terminal(summary, project_root=project_root, console=console, show_details=not quiet)


_RENDERERS: dict[str, Callable[[ScanSummary, Path], str]] = {
    "json": lambda summary, root: render_json(summary, project_root=root),
    "sarif": lambda summary, root: render_sarif(list(summary.violations), project_root=root),
    "markdown": lambda summary, root: render_markdown(summary, project_root=root),
    "github": lambda summary, root: render_github_annotations(list(summary.violations), project_root=root),
}


def _normalize_format(fmt: str, allowed: tuple[str, ...]) -> str:
    normalized = fmt.strip().lower()
    if normalized not in allowed:
        raise typer.BadParameter(f"Unsupported format {fmt!r}. Use: {', '.join(allowed)}.")
    return normalized


def _emit(summary: ScanSummary, *, fmt: str, project_root: Path) -> None:
    if fmt == "terminal":
        _print_terminal(summary, project_root, _settings().quiet)
    else:
        typer.echo(_RENDERERS[fmt](summary, project_root))


def _load_plugins(target: ScanTarget) -> None:
    set_extra_rules(load_plugin_rules(target.config.plugins))


@contextmanager
def _progress_callbacks(total_files: int) -> Iterator[AuditCallbacks]:
    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
    )
    parse_task = progress.add_task("Parse", total=total_files)
    lint_task = progress.add_task("Lint", total=total_files)
    with progress:
        yield AuditCallbacks(
            on_context_built=lambda _path: progress.advance(parse_task),
            on_file_contexts_ready=lambda total: progress.update(lint_task, total=total, completed=0),
            on_file_scanned=lambda _path: progress.advance(lint_task),
        )


def _run_audit(path: Path, *, show_progress: bool, scoring_profile: str | None, use_cache: bool) -> AuditResult:
    target = prepare_target(path)
    if scoring_profile is not None:
        scoring = replace(target.config.scoring, profile=scoring_profile)
        target = replace(target, config=replace(target.config, scoring=scoring))
    files = discover_files(target)
    logger.debug("discovered %d candidate file(s)", len(files))

    progress = _progress_callbacks(len(files)) if show_progress else nullcontext(None)
    with progress as callbacks:
        return audit_files(target, files=files, use_cache=use_cache, callbacks=callbacks)


def _has_blocking_finding(summary: ScanSummary, fail_on: FailOn) -> bool:
    if fail_on == "none":
        return False
    limit = SEVERITY_ORDER[fail_on]
    return any(SEVERITY_ORDER.get(v.severity, len(SEVERITY_ORDER)) <= limit for v in summary.violations)


def _scan_exit_code(
    summary: ScanSummary,
    config: StyleSentinelConfig,
    *,
    fail_on: FailOn | None,
    threshold: int | None,
    fail_on_low_score: bool | None,
    fail_under: int | None,
) -> int:
    if _has_blocking_finding(summary, fail_on if fail_on is not None else config.fail_on):
        return 1
    if fail_under is not None:
        threshold, fail_on_low_score = fail_under, True
    if threshold is None:
        threshold = config.threshold
    if fail_on_low_score is None:
        fail_on_low_score = config.fail_on_low_score
    return 1 if fail_on_low_score and summary.score < threshold else 0


@app.command()
def scan(
    path: ScanPath = Path("."),
    output_format: ReportFormat = "terminal",
    threshold: Annotated[
        int | None,
        typer.Option("--threshold", min=0, max=100, help="Minimum acceptable score (0-100)."),
    ] = None,
    fail_under: Annotated[
        int | None,
        typer.Option("--fail-under", min=0, max=100, help="Same as --threshold N --fail-on-low-score."),
    ] = None,
    fail_on_low_score: Annotated[
        bool | None,
        typer.Option(
            "--fail-on-low-score/--no-fail-on-low-score",
            help="Exit 1 when the score is below the threshold (default: from config).",
            show_default=False,
        ),
    ] = None,
    fail_on: Annotated[
        str | None,
        typer.Option("--fail-on", help="Exit 1 on findings at or above: info, warn, error, none (default: from config)."),
    ] = None,
    scoring_profile: Annotated[
        str | None,
        typer.Option("--profile", "--scoring-profile", help="Scoring profile for this run: default, strict, lenient."),
    ] = None,
    no_cache: Annotated[bool, typer.Option("--no-cache", help="Ignore the findings cache for this run.")] = False,
) -> None:
    """
    Lint JavaScript/TypeScript files and report naming and style findings.
    """

    settings = _settings()
    fmt = _normalize_format(output_format, ("terminal", *_RENDERERS))
    profile = scoring_profile.strip().lower() if scoring_profile else None
    if profile is not None and profile not in SCORING_PROFILES:
        raise typer.BadParameter(f"Unsupported scoring profile. Use: {', '.join(SCORING_PROFILES)}.")
    try:
        cli_fail_on = parse_fail_on(fail_on, field_name="--fail-on") if fail_on is not None else None
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc

    with _domain_errors():
        result = _run_audit(
            path,
            show_progress=settings.progress and not settings.quiet and fmt == "terminal",
            scoring_profile=profile,
            use_cache=not no_cache,
        )

    _emit(result.summary, fmt=fmt, project_root=result.target.project_root)
    code = _scan_exit_code(
        result.summary,
        result.target.config,
        fail_on=cli_fail_on,
        threshold=threshold,
        fail_on_low_score=fail_on_low_score,
        fail_under=fail_under,
    )
    if code:
        raise typer.Exit(code=code)


def _rule_row(meta: RuleMeta, *, enabled: bool) -> dict[str, Any]:
    return {
        "rule_id": meta.rule_id,
        "enabled": enabled,
        "title": meta.title,
        "description": meta.description,
        "dimension": meta.score_dimension,
        "default_severity": meta.default_severity,
        "fixable": meta.fixable,
    }


@app.command()
def rules(
    path: ProjectDir = Path("."),
    output_format: ListingFormat = "terminal",
    enabled_only: Annotated[
        bool,
        typer.Option("--enabled-only", help="Only list rules enabled by the project config."),
    ] = False,
) -> None:
    """
    List built-in and plugin rules with their metadata.
    """

    fmt = _normalize_format(output_format, ("terminal", "json"))
    with _domain_errors():
        target = prepare_target(path)
        _load_plugins(target)

    available: list[BaseRule] = sorted(all_rules(), key=lambda r: r.meta.rule_id)
    enabled_ids = compute_enabled_rule_ids(target.config, available_rule_ids=[r.meta.rule_id for r in available])
    rows = [_rule_row(r.meta, enabled=r.meta.rule_id in enabled_ids) for r in available]
    if enabled_only:
        rows = [row for row in rows if row["enabled"]]

    if fmt == "json":
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return

    table = Table(title="StyleSentinel rules")
    for column, justify in (("ID", "left"), ("Enabled", "center"), ("Severity", "left"), ("Dimension", "left"), ("Fix", "center"), ("Title", "left")):
        table.add_column(column, justify=justify, style="bold" if column == "ID" else None)  # type: ignore[arg-type]
    for row in rows:
        table.add_row(
            row["rule_id"],
            "yes" if row["enabled"] else "no",
            row["default_severity"],
            row["dimension"],
            "yes" if row["fixable"] else "-",
            row["title"],
        )
    console.print(table)


def _suppression_snippet(rule_id: str) -> str:
    return "\n".join(
        [
            f"// style: disable-file={rule_id}",
            f"const value = 1; // style: disable={rule_id}",
            f"// style: disable-next-line={rule_id}",
            "const other = 2;",
            "",
        ]
    )


def _print_explanation(meta: RuleMeta) -> None:
    title = Text.assemble((meta.rule_id, "bold"), (": ", "dim"), meta.title)
    facts = [
        meta.description,
        "",
        f"Default severity: {meta.default_severity}",
        f"Dimension: {meta.score_dimension}",
        f"Auto-fixable: {'yes' if meta.fixable else 'no'}",
    ]
    console.print(Panel("\n".join(facts), title=title, border_style="cyan"))

    console.print(Text("Config override (.stylesentinel.toml):", style="bold"))
    console.print(Syntax(f'[rules.{meta.rule_id}]\nseverity = "info"  # or warn/error\n', "toml", word_wrap=True))
    console.print(Text("Suppressions (in-file):", style="bold"))
    console.print(Syntax(_suppression_snippet(meta.rule_id), "javascript", word_wrap=True))

    example = EXAMPLES.get(meta.rule_id)
    if example is None:
        return
    console.print(Text("Example:", style="bold"))
    if example.notes:
        console.print(Text(example.notes, style="dim"))
    for label, code in (("Bad:", example.bad), ("Good:", example.good)):
        if code is not None:
            console.print(Text(label, style="bold"))
            console.print(Syntax(code, example.language, word_wrap=True))


@app.command()
def explain(
    rule_id: Annotated[str, typer.Argument(help="Rule id to explain (e.g. N01, S02).")],
    path: Annotated[
        Path,
        typer.Option(
            "--path",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Project directory whose config and plugins are loaded.",
        ),
    ] = Path("."),
    output_format: ListingFormat = "terminal",
) -> None:
    """
    Explain one rule: metadata, configuration and suppression hints, example.
    """

    fmt = _normalize_format(output_format, ("terminal", "json"))
    with _domain_errors():
        _load_plugins(prepare_target(path))

    rule = rule_by_id(rule_id.strip().upper())
    if rule is None:
        raise typer.BadParameter(f"Unknown rule id {rule_id!r}; run `stylesentinel rules` for the list.")
    meta = rule.meta

    if fmt == "terminal":
        _print_explanation(meta)
        return

    example = EXAMPLES.get(meta.rule_id)
    payload = _rule_row(meta, enabled=True)
    del payload["enabled"]
    payload["example"] = (
        None
        if example is None
        else {"language": example.language, "bad": example.bad, "good": example.good, "notes": example.notes}
    )
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


@app.command()
def report(
    input_json: Annotated[str, typer.Argument(help="Saved JSON report, or '-' for stdin.")],
    output_format: ReportFormat = "terminal",
    project_root: Annotated[
        Path,
        typer.Option(
            "--project-root",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Directory that relative paths in the report are resolved against.",
        ),
    ] = Path("."),
) -> None:
    """
    Re-render a saved JSON report in another format.
    """

    fmt = _normalize_format(output_format, ("terminal", *_RENDERERS))
    try:
        raw = sys.stdin.read() if input_json.strip() == "-" else Path(input_json).read_text(encoding="utf-8", errors="replace")
        summary = parse_json_report(raw, project_root=project_root)
    except (OSError, ValueError) as exc:
        err_console.print(f"Invalid JSON report: {exc}")
        raise typer.Exit(code=2) from exc

    _emit(summary, fmt=fmt, project_root=project_root)


@app.command()
def fix(
    path: ScanPath = Path("."),
    backup: Annotated[bool, typer.Option("--backup", help="Keep a .stylesentinel.bak copy of each rewritten file.")] = False,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Print a unified diff instead of writing.")] = False,
    check: Annotated[bool, typer.Option("--check", help="Write nothing; exit 1 if any file would change.")] = False,
) -> None:
    """
    Apply safe auto-fixes.

    Redundant boolean returns (S02) become `return <condition>;`.
    """

    with _domain_errors():
        result = autofix_path(path, backup=backup, dry_run=dry_run or check)

    if not result.changed_files:
        console.print("No changes needed.")
    elif check:
        for changed in result.changed_files:
            err_console.print(f"Would fix: {changed}")
        raise typer.Exit(code=1)
    elif dry_run:
        typer.echo(result.diff)
    else:
        console.print(f"Fixed {len(result.changed_files)} file(s).")


@app.command()
def baseline(
    path: ScanPath = Path("."),
    output: Annotated[
        Path | None,
        typer.Option("--output", help=f"Where to write the baseline (default: config `baseline` or {DEFAULT_BASELINE_FILENAME})."),
    ] = None,
) -> None:
    """
    Record current findings so later scans only report new ones.
    """

    with _domain_errors():
        result = audit_path(path, apply_baseline=False)
    project_root = result.target.project_root
    snapshot = build_baseline(list(result.summary.violations), project_root=project_root)

    spec = str(output) if output is not None else (result.target.config.baseline or DEFAULT_BASELINE_FILENAME)
    baseline_path = resolve_project_file(project_root, spec)
    if baseline_path is None:
        raise typer.BadParameter("Baseline output must be within the project root.")

    with _domain_errors():
        save_baseline(snapshot, baseline_path)
    console.print(f"Wrote baseline with {len(snapshot)} entries: {baseline_path}")
