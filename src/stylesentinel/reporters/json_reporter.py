from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict
from pathlib import Path
from typing import Any, cast

from stylesentinel import __version__
from stylesentinel.engine.types import (
    DIMENSIONS,
    SEVERITIES,
    Dimension,
    DimensionBreakdown,
    Location,
    ScanSummary,
    Severity,
    Violation,
)
from stylesentinel.utils import safe_relpath

REPORT_SCHEMA_VERSION = 1


def render_json(summary: ScanSummary, *, project_root: Path) -> str:
    payload = {
        "schema_version": REPORT_SCHEMA_VERSION,
        "tool": {"name": "StyleSentinel", "version": __version__},
        "score": summary.score,
        "files_scanned": summary.files_scanned,
        "scoring_profile": summary.scoring_profile,
        "violation_density": summary.violation_density,
        "breakdown": asdict(summary.breakdown),
        "counts": summary.count_by_severity(),
        "violations": [violation_to_dict(v, project_root=project_root) for v in summary.violations],
    }
    return json.dumps(payload, indent=2, sort_keys=False)


def violation_to_dict(v: Violation, *, project_root: Path) -> dict[str, Any]:
    loc = None
    if v.location is not None and v.location.path is not None:
        loc = {
            "path": safe_relpath(v.location.path, project_root),
            "start_line": v.location.start_line,
            "start_col": v.location.start_col,
            "end_line": v.location.end_line,
            "end_col": v.location.end_col,
        }

    return {
        "rule_id": v.rule_id,
        "severity": v.severity,
        "dimension": v.dimension,
        "message": v.message,
        "suggestion": v.suggestion,
        "location": loc,
    }


def parse_json_report(text: str, *, project_root: Path) -> ScanSummary:
    """
    Read a report written by `render_json()` back into a `ScanSummary`.

    Used by `stylesentinel report` to re-render saved results. Unknown
    severities and dimensions are coerced; structural problems raise
    ValueError.
    """

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("JSON report must be an object.")

    score, files_scanned = data.get("score"), data.get("files_scanned")
    if not _is_int(score) or not _is_int(files_scanned):
        raise ValueError("JSON report missing required fields: score/files_scanned.")

    items = data.get("violations", [])
    if not isinstance(items, list):
        raise ValueError("JSON report `violations` must be a list.")

    breakdown = data.get("breakdown")
    breakdown = breakdown if isinstance(breakdown, dict) else {}
    density = data.get("violation_density")
    profile = data.get("scoring_profile")

    return ScanSummary(
        files_scanned=files_scanned,
        violations=tuple(violation_from_dict(i, project_root=project_root) for i in items if isinstance(i, dict)),
        score=score,
        breakdown=DimensionBreakdown(**{dim: _as_int(breakdown.get(dim)) for dim in DIMENSIONS}),
        violation_density=float(density) if isinstance(density, int | float) and not isinstance(density, bool) else 0.0,
        scoring_profile=profile if isinstance(profile, str) else "default",
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_int(value: Any) -> int:
    return int(value) if isinstance(value, int | float) and not isinstance(value, bool) else 0


_SEVERITY_ALIASES = {"warning": "warn"}


def violation_from_dict(item: Mapping[str, Any], *, project_root: Path) -> Violation:
    """Inverse of `violation_to_dict`; relative paths are joined onto `project_root`."""

    severity = str(item.get("severity", "info")).strip().lower()
    severity = _SEVERITY_ALIASES.get(severity, severity)
    dimension = str(item.get("dimension", "readability")).strip().lower()
    suggestion = item.get("suggestion")

    return Violation(
        rule_id=str(item.get("rule_id", "")).strip().upper(),
        severity=cast(Severity, severity if severity in SEVERITIES else "info"),
        dimension=cast(Dimension, dimension if dimension in DIMENSIONS else "readability"),
        message=str(item.get("message", "")),
        suggestion=suggestion if isinstance(suggestion, str) else None,
        location=_location_from_dict(item.get("location"), project_root=project_root),
    )


def _location_from_dict(raw: Any, *, project_root: Path) -> Location | None:
    if not isinstance(raw, dict):
        return None
    path = raw.get("path")
    fields = {key: raw.get(key) for key in ("start_line", "start_col", "end_line", "end_col")}
    lines = {key: value if _is_int(value) and value > 0 else None for key, value in fields.items()}
    if not isinstance(path, str) or not path or lines["start_line"] is None:
        return None
    return Location(path=project_root / path, **lines)
