from __future__ import annotations

from itertools import groupby
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from stylesentinel import __version__
from stylesentinel.engine.scoring import DIMENSION_MAX, DIMENSION_ORDER
from stylesentinel.engine.types import ScanSummary, Violation
from stylesentinel.utils import safe_relpath

_SEVERITY_MARK = {"error": ("✖", "bold red"), "warn": ("⚠", "yellow"), "info": ("ℹ", "dim")}


def render_terminal(summary: ScanSummary, *, project_root: Path, console: Console, show_details: bool = True) -> None:
    title = Text.assemble(("StyleSentinel ", "bold"), (f"v{__version__}", "dim"), ("  naming & style audit", "dim"))
    console.print(Panel(title, subtitle=f"Scanned {summary.files_scanned} files", border_style="cyan"))

    if show_details:
        _print_findings(summary.violations, project_root=project_root, console=console)
    _print_scorecard(summary, console=console)


def _print_findings(violations: tuple[Violation, ...], *, project_root: Path, console: Console) -> None:
    def file_key(v: Violation) -> str:
        if v.location is None or v.location.path is None:
            return ""
        return safe_relpath(v.location.path, project_root)

    def position(v: Violation) -> tuple[int, int]:
        loc = v.location
        if loc is None:
            return (0, 0)
        return (loc.start_line or 0, loc.start_col or 0)

    ordered = sorted(violations, key=lambda v: (file_key(v), position(v), v.rule_id))
    for rel, group in groupby(ordered, key=file_key):
        console.print(Text(rel or "Project findings", style="bold"))
        source_lines = _read_lines(project_root / rel) if rel else []
        for v in group:
            _print_violation(v, source_lines=source_lines, console=console)
        console.print()


def _print_violation(v: Violation, *, source_lines: list[str], console: Console) -> None:
    icon, style = _SEVERITY_MARK.get(v.severity, ("•", ""))
    row = Text.assemble((f"  {icon} ", style), (v.rule_id, "bold"))
    lineno = v.location.start_line if v.location is not None else None
    if lineno is not None:
        col = v.location.start_col if v.location is not None else None
        row.append(f"  ({lineno}:{col})" if col is not None else f"  ({lineno})", style="dim")
    row.append(f"  {v.message}")
    console.print(row)

    if lineno is not None and 0 < lineno <= len(source_lines):
        console.print(Text(f"     {lineno:>4} │ {source_lines[lineno - 1]}", style="dim"))
    if v.suggestion:
        console.print(Text(f"     → {v.suggestion}", style="dim"))


def _print_scorecard(summary: ScanSummary, *, console: Console) -> None:
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Dimension")
    table.add_column("Points", justify="right")
    for dim in DIMENSION_ORDER:
        table.add_row(dim.title(), f"{getattr(summary.breakdown, dim)}/{DIMENSION_MAX[dim]}")
    console.print(table)

    counts = summary.count_by_severity()
    console.print(Text(f"Score: {summary.score}/100", style="bold"))
    console.print(
        Text(
            f"Findings: {counts['error']} error, {counts['warn']} warn, {counts['info']} info "
            f"(density={summary.violation_density:.3f}, profile={summary.scoring_profile})",
            style="dim",
        )
    )


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []
