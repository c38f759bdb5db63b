from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

Severity = Literal["info", "warn", "error"]
Dimension = Literal["naming", "readability", "maintainability"]

SEVERITIES: tuple[Severity, ...] = ("info", "warn", "error")
DIMENSIONS: tuple[Dimension, ...] = ("naming", "readability", "maintainability")


@dataclass(frozen=True, slots=True)
class Location:
    """Where a finding sits. Lines and columns are 1-based; any part may be unknown."""

    path: Path | None = None
    start_line: int | None = None
    start_col: int | None = None
    end_line: int | None = None
    end_col: int | None = None


@dataclass(frozen=True, slots=True)
class Violation:
    rule_id: str
    severity: Severity
    message: str
    dimension: Dimension
    suggestion: str | None = None
    location: Location | None = None

    @property
    def is_file_level(self) -> bool:
        """True when the finding points at a line of a file (not the project as a whole)."""

        loc = self.location
        return loc is not None and loc.path is not None and loc.start_line is not None


@dataclass(frozen=True, slots=True)
class DimensionBreakdown:
    naming: int
    readability: int
    maintainability: int

    @property
    def total(self) -> int:
        return self.naming + self.readability + self.maintainability


@dataclass(frozen=True, slots=True)
class ScanSummary:
    files_scanned: int
    violations: tuple[Violation, ...]
    score: int
    breakdown: DimensionBreakdown
    violation_density: float = 0.0
    scoring_profile: str = "default"

    def count_by_severity(self) -> dict[Severity, int]:
        counts = Counter(v.severity for v in self.violations)
        return {sev: counts[sev] for sev in SEVERITIES}
