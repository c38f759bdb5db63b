from __future__ import annotations

import difflib
import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from stylesentinel.audit import AuditResult, audit_path
from stylesentinel.engine.context import FileContext, ProjectContext
from stylesentinel.engine.types import Violation
from stylesentinel.rules.structure import find_redundant_boolean_returns
from stylesentinel.scanner import build_file_context_from_text, build_project_context

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".stylesentinel.bak"


@dataclass(frozen=True, slots=True)
class SourceEdit:
    """Replace the UTF-8 byte range [start_byte, end_byte) with `replacement`."""

    rule_id: str
    line: int
    start_byte: int
    end_byte: int
    replacement: str


def _redundant_boolean_edits(ctx: FileContext) -> Iterator[SourceEdit]:
    for match in find_redundant_boolean_returns(ctx):
        yield SourceEdit("S02", match.node.start_point[0] + 1, match.start_byte, match.end_byte, match.replacement)


_FIXERS: Mapping[str, Callable[[FileContext], Iterable[SourceEdit]]] = MappingProxyType(
    {"S02": _redundant_boolean_edits}
)


@dataclass(frozen=True, slots=True)
class FileFix:
    path: Path
    edits: tuple[SourceEdit, ...]
    diff: str

    @property
    def changed(self) -> bool:
        return bool(self.diff)


@dataclass(frozen=True, slots=True)
class AutoFixResult:
    project_root: Path
    fixes: tuple[FileFix, ...]

    @property
    def changed_files(self) -> tuple[Path, ...]:
        return tuple(fix.path for fix in self.fixes if fix.changed)

    @property
    def diff(self) -> str:
        return "\n".join(fix.diff for fix in self.fixes if fix.diff)


def supported_rule_ids() -> frozenset[str]:
    return frozenset(_FIXERS)


def autofix_path(scan_path: Path, *, dry_run: bool, backup: bool) -> AutoFixResult:
    """Lint `scan_path` without baseline or cache and fix what the fixers support."""

    return autofix_audit_result(audit_path(scan_path, apply_baseline=False, use_cache=False), dry_run=dry_run, backup=backup)


def autofix_audit_result(audit: AuditResult, *, dry_run: bool, backup: bool) -> AutoFixResult:
    by_path: dict[Path, list[Violation]] = defaultdict(list)
    for v in audit.summary.violations:
        if v.rule_id in _FIXERS and v.is_file_level:
            assert v.location is not None and v.location.path is not None
            by_path[Path(v.location.path)].append(v)

    project = build_project_context(audit.target, list(audit.files))
    fixes = tuple(_fix_file(project, path, by_path[path], dry_run=dry_run, backup=backup) for path in sorted(by_path))
    return AutoFixResult(project_root=audit.target.project_root, fixes=fixes)


def _fix_file(project: ProjectContext, path: Path, violations: list[Violation], *, dry_run: bool, backup: bool) -> FileFix:
    with path.open(encoding="utf-8", errors="replace", newline="") as fh:
        original = fh.read()
    edits = plan_edits(project, path, original, violations)
    updated = apply_edits(original, edits)
    fix = FileFix(path=path, edits=edits, diff=_unified_diff(original, updated, path=path))
    if not fix.changed or dry_run:
        return fix

    if backup:
        backup_path = path.with_name(path.name + BACKUP_SUFFIX)
        if not backup_path.exists():
            backup_path.write_text(original, encoding="utf-8", newline="")
    path.write_text(updated, encoding="utf-8", newline="")
    logger.info("Fixed %d finding(s) in %s", len(edits), path)
    return fix


def plan_edits(project: ProjectContext, path: Path, text: str, violations: list[Violation]) -> tuple[SourceEdit, ...]:
    """
    Plan edits for the reported findings in `text`.

    Only lines that carry a reported (enabled, unsuppressed) finding are
    touched. When edits overlap the earliest one wins.
    """

    wanted: dict[str, set[int]] = defaultdict(set)
    for v in violations:
        if v.rule_id in _FIXERS and v.location is not None and v.location.start_line is not None:
            wanted[v.rule_id].add(v.location.start_line)
    if not wanted:
        return ()

    ctx = build_file_context_from_text(project, path, text)
    if ctx is None or ctx.syntax_tree is None:
        return ()

    candidates = [
        edit for rule_id, lines in wanted.items() for edit in _FIXERS[rule_id](ctx) if edit.line in lines
    ]
    planned: list[SourceEdit] = []
    for edit in sorted(candidates, key=lambda e: (e.start_byte, e.end_byte)):
        if planned and edit.start_byte < planned[-1].end_byte:
            continue
        planned.append(edit)
    return tuple(planned)


def apply_edits(text: str, edits: tuple[SourceEdit, ...]) -> str:
    if not edits:
        return text
    source = text.encode("utf-8", errors="replace")
    chunks: list[bytes] = []
    cursor = 0
    for edit in sorted(edits, key=lambda e: e.start_byte):
        chunks += [source[cursor : edit.start_byte], edit.replacement.encode("utf-8")]
        cursor = edit.end_byte
    chunks.append(source[cursor:])
    return b"".join(chunks).decode("utf-8", errors="replace")


def _unified_diff(before: str, after: str, *, path: Path) -> str:
    if before == after:
        return ""
    lines = difflib.unified_diff(
        before.splitlines(),
        after.splitlines(),
        fromfile=str(path),
        tofile=str(path),
        lineterm="",
    )
    return "\n".join(lines)
