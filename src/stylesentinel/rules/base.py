from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from typing import ClassVar

from tree_sitter import Node

from stylesentinel.engine.context import FileContext, ProjectContext
from stylesentinel.engine.types import Dimension, Location, Severity, Violation


@dataclass(frozen=True, slots=True)
class RuleMeta:
    rule_id: str
    title: str
    description: str
    default_severity: Severity
    score_dimension: Dimension
    fixable: bool = False


class BaseRule(ABC):
    """
    A lint rule.

    Subclasses set `meta` and override `check_file`, `check_project` or both.
    Findings are built with `_violation` so they carry the rule's id, default
    severity and score dimension.
    """

    meta: ClassVar[RuleMeta]

    def check_project(self, ctx: ProjectContext) -> list[Violation]:
        return []

    def check_file(self, ctx: FileContext) -> list[Violation]:
        return []

    def _violation(
        self,
        *,
        message: str,
        suggestion: str | None = None,
        location: Location | None = None,
        severity: Severity | None = None,
    ) -> Violation:
        meta = self.meta
        return Violation(
            rule_id=meta.rule_id,
            severity=severity if severity is not None else meta.default_severity,
            message=message,
            dimension=meta.score_dimension,
            suggestion=suggestion,
            location=location,
        )


def loc_from_line(
    ctx: FileContext, *, line: int, col: int | None = 1, end_line: int | None = None, end_col: int | None = None
) -> Location:
    return Location(path=ctx.path, start_line=line, start_col=col, end_line=end_line, end_col=end_col)


def loc_from_node(ctx: FileContext, node: Node) -> Location:
    """Location spanning `node`; tree-sitter points are 0-based, locations 1-based."""

    (row, col), (end_row, end_col) = node.start_point, node.end_point
    return Location(path=ctx.path, start_line=row + 1, start_col=col + 1, end_line=end_row + 1, end_col=end_col + 1)
