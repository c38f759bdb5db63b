from __future__ import annotations

from collections import Counter
from pathlib import Path

from stylesentinel.engine.scoring import DIMENSION_MAX, DIMENSION_ORDER
from stylesentinel.engine.types import ScanSummary, Violation
from stylesentinel.rules.registry import rule_meta_by_id
from stylesentinel.utils import safe_relpath


def render_markdown(summary: ScanSummary, *, project_root: Path) -> str:
    """Render a scan as a Markdown document (PR comments, job summaries)."""

    counts = summary.count_by_severity()
    breakdown = ", ".join(f"{dim} {getattr(summary.breakdown, dim)}/{DIMENSION_MAX[dim]}" for dim in DIMENSION_ORDER)
    out = [
        "# StyleSentinel report",
        "",
        f"- Score: **{summary.score}/100**",
        f"- Scoring profile: `{summary.scoring_profile}`",
        f"- Files scanned: {summary.files_scanned}",
        f"- Findings: {len(summary.violations)} "
        f"({counts['error']} error, {counts['warn']} warn, {counts['info']} info)",
        f"- Breakdown: {breakdown}",
        "",
    ]

    if summary.violations:
        out += _rule_counts(summary.violations)

    out += ["## Violations", ""]
    if not summary.violations:
        out += ["No violations found.", ""]
        return "\n".join(out)

    out += [
        "| File | Line | Rule | Severity | Dimension | Message |",
        "| --- | ---: | --- | --- | --- | --- |",
    ]
    out += [_violation_row(v, project_root=project_root) for v in summary.violations]
    out.append("")
    return "\n".join(out)


def _rule_counts(violations: tuple[Violation, ...]) -> list[str]:
    meta = rule_meta_by_id()
    rows = ["## Findings by rule", "", "| Rule | Title | Count |", "| --- | --- | ---: |"]
    for rule_id, count in sorted(Counter(v.rule_id for v in violations).items()):
        title = meta[rule_id].title if rule_id in meta else ""
        rows.append(f"| `{rule_id}` | {_cell(title)} | {count} |")
    rows.append("")
    return rows


def _violation_row(v: Violation, *, project_root: Path) -> str:
    loc = v.location
    if loc is None or loc.path is None or loc.start_line is None:
        file_cell, line_cell = "-", "-"
    else:
        file_cell, line_cell = _cell(safe_relpath(loc.path, project_root)), str(loc.start_line)
    message = _cell(v.message)
    if v.suggestion:
        message += f"<br/><em>{_cell(v.suggestion)}</em>"
    return f"| {file_cell} | {line_cell} | `{v.rule_id}` | {v.severity} | {v.dimension} | {message} |"


def _cell(text: str) -> str:
    return text.replace("\\", "\\\\").replace("|", "\\|").replace("\n", " ").strip()
