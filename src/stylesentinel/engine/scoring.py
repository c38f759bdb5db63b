from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from stylesentinel.config import ScoringConfig
from stylesentinel.engine.types import SEVERITIES, DimensionBreakdown, ScanSummary, Severity, Violation

# Dimension budgets (max points) sum to 100.
DIMENSION_MAX = {
    "naming": 40,
    "readability": 35,
    "maintainability": 25,
}

DIMENSION_ORDER = ("naming", "readability", "maintainability")

SEVERITY_ORDER: dict[Severity, int] = {"error": 0, "warn": 1, "info": 2}

PenaltyTable = dict[str, dict[Severity, int]]


def _table(naming: tuple[int, int, int], other: tuple[int, int, int]) -> PenaltyTable:
    """Build a table from (info, warn, error) penalties for naming and for the other dimensions."""

    return {
        dim: dict(zip(SEVERITIES, naming if dim == "naming" else other, strict=True)) for dim in DIMENSION_ORDER
    }


SCORING_PROFILES: dict[str, PenaltyTable] = {
    "default": _table((1, 2, 4), (1, 3, 5)),
    "strict": _table((1, 3, 6), (2, 4, 7)),
    # Gradual adoption: informational findings are free.
    "lenient": _table((0, 1, 3), (0, 2, 4)),
}

SEVERITY_PENALTY: PenaltyTable = SCORING_PROFILES["default"]


def resolve_severity_penalty(scoring: ScoringConfig | None) -> PenaltyTable:
    """
    Return the effective severity penalty mapping for a run.

    The profile provides the base table; `scoring.penalties` overrides
    individual (dimension, severity) cells.
    """

    if scoring is None:
        return _copy(SEVERITY_PENALTY)

    profile = scoring.profile.strip().lower() or "default"
    table = _copy(SCORING_PROFILES.get(profile, SEVERITY_PENALTY))
    for dim, cells in scoring.penalties.items():
        row = table.get(dim.strip().lower())
        if row is None:
            continue
        for sev, value in cells.items():
            key = sev.strip().lower()
            if key in row:
                row[key] = int(value)  # type: ignore[index]
    return table


def _copy(table: PenaltyTable) -> PenaltyTable:
    return {dim: dict(row) for dim, row in table.items()}


def violation_sort_key(v: Violation) -> tuple[int, str, int, int, str]:
    loc = v.location
    return (
        SEVERITY_ORDER.get(v.severity, len(SEVERITY_ORDER)),
        str(loc.path) if loc is not None and loc.path is not None else "",
        (loc.start_line or 0) if loc is not None else 0,
        (loc.start_col or 0) if loc is not None else 0,
        v.rule_id,
    )


def rank_violations(violations: Iterable[Violation]) -> list[Violation]:
    """Order findings by severity (error first), then path, line, column and rule id."""

    return sorted(violations, key=violation_sort_key)


def compute_breakdown(
    violations: Iterable[Violation],
    *,
    severity_penalty: PenaltyTable = SEVERITY_PENALTY,
) -> DimensionBreakdown:
    """Subtract each finding's penalty from its dimension budget; a dimension never drops below 0."""

    lost: dict[str, int] = defaultdict(int)
    for v in violations:
        row = severity_penalty.get(v.dimension)
        if row is not None:
            lost[v.dimension] += row[v.severity]

    points = {dim: cap - min(cap, lost[dim]) for dim, cap in DIMENSION_MAX.items()}
    return DimensionBreakdown(**points)


def summarize(files_scanned: int, violations: list[Violation], *, scoring: ScoringConfig | None = None) -> ScanSummary:
    ranked = rank_violations(violations)
    breakdown = compute_breakdown(ranked, severity_penalty=resolve_severity_penalty(scoring))
    return ScanSummary(
        files_scanned=files_scanned,
        violations=tuple(ranked),
        score=breakdown.total,
        breakdown=breakdown,
        violation_density=round(len(ranked) / max(1, files_scanned), 3),
        scoring_profile=scoring.profile if scoring is not None else "default",
    )
