from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from hashlib import sha256
from pathlib import Path
from typing import Any

from stylesentinel.engine.types import Violation
from stylesentinel.utils import safe_relpath

BASELINE_VERSION = 1

logger = logging.getLogger(__name__)


class BaselineError(RuntimeError):
    """Raised when a baseline file is invalid or cannot be processed."""


@dataclass(frozen=True, slots=True)
class BaselineEntry:
    """
    One accepted finding.

    File findings carry `path`, `line` and a `fingerprint` of the surrounding
    source; project-level findings carry only their `message`.
    """

    rule_id: str
    path: str | None = None
    line: int | None = None
    fingerprint: str = ""
    message: str | None = None

    def sort_key(self) -> tuple[str, str, int, str]:
        return (self.rule_id, self.path or "", self.line or 0, self.message or "")

    def to_json(self) -> dict[str, Any]:
        if self.path is None:
            return {"rule_id": self.rule_id, "message": self.message}
        out: dict[str, Any] = {"rule_id": self.rule_id, "path": self.path, "line": self.line}
        if self.fingerprint:
            out["fingerprint"] = self.fingerprint
        return out

    @classmethod
    def from_json(cls, item: object) -> BaselineEntry | None:
        if not isinstance(item, dict):
            return None
        rule_id = item.get("rule_id")
        if not isinstance(rule_id, str) or not rule_id.strip():
            return None
        rule_id = rule_id.strip().upper()
        path, line = item.get("path"), item.get("line")
        if isinstance(path, str) and isinstance(line, int) and not isinstance(line, bool):
            fingerprint = item.get("fingerprint")
            return cls(rule_id, path=path, line=line, fingerprint=fingerprint.strip() if isinstance(fingerprint, str) else "")
        message = item.get("message")
        if isinstance(message, str):
            return cls(rule_id, message=message)
        return None


@dataclass(frozen=True, slots=True)
class Baseline:
    entries: frozenset[BaselineEntry] = frozenset()
    _by_fingerprint: frozenset[tuple[str, str, str]] = field(init=False, repr=False, compare=False)
    _by_line: frozenset[tuple[str, str, int]] = field(init=False, repr=False, compare=False)
    _by_message: frozenset[tuple[str, str]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        files = [e for e in self.entries if e.path is not None]
        object.__setattr__(self, "_by_fingerprint", frozenset((e.rule_id, e.path, e.fingerprint) for e in files if e.fingerprint))
        # Entries without a fingerprint (source unreadable at baseline time) match by line.
        object.__setattr__(self, "_by_line", frozenset((e.rule_id, e.path, e.line) for e in files if not e.fingerprint))
        object.__setattr__(
            self, "_by_message", frozenset((e.rule_id, e.message) for e in self.entries if e.path is None)
        )

    def __len__(self) -> int:
        return len(self.entries)

    def covers(self, entry: BaselineEntry) -> bool:
        if entry.path is None:
            return (entry.rule_id, entry.message) in self._by_message
        if entry.fingerprint and (entry.rule_id, entry.path, entry.fingerprint) in self._by_fingerprint:
            return True
        return (entry.rule_id, entry.path, entry.line) in self._by_line


class _SourceLines:
    """Per-call cache of file lines used for fingerprinting."""

    def __init__(self) -> None:
        self._lines: dict[Path, tuple[str, ...]] = {}

    def get(self, path: Path) -> tuple[str, ...]:
        if path not in self._lines:
            try:
                self._lines[path] = tuple(path.read_text(encoding="utf-8", errors="replace").splitlines())
            except OSError:
                self._lines[path] = ()
        return self._lines[path]


def _entry_for(v: Violation, *, project_root: Path, sources: _SourceLines) -> BaselineEntry:
    rule_id = v.rule_id.strip().upper()
    loc = v.location
    if loc is None or loc.path is None or loc.start_line is None:
        return BaselineEntry(rule_id, message=v.message)

    rel = safe_relpath(loc.path, project_root)
    return BaselineEntry(
        rule_id,
        path=rel,
        line=loc.start_line,
        fingerprint=_fingerprint(rule_id, rel, sources.get(Path(loc.path)), loc.start_line),
    )


def _fingerprint(rule_id: str, rel: str, lines: tuple[str, ...], line_no: int) -> str:
    """
    Hash the rule id, relative path and the whitespace-normalized lines around a finding.

    Messages are left out so rewording a rule keeps existing baselines valid.
    Returns "" when the line is not available.
    """

    idx = line_no - 1
    if not 0 <= idx < len(lines):
        return ""
    window = "\n".join(" ".join(text.split()) for text in lines[max(0, idx - 1) : idx + 2])
    payload = json.dumps({"rule_id": rule_id, "path": rel, "snippet": window}, separators=(",", ":"), sort_keys=True)
    return sha256(payload.encode("utf-8")).hexdigest()


def build_baseline(violations: list[Violation], *, project_root: Path) -> Baseline:
    sources = _SourceLines()
    return Baseline(frozenset(_entry_for(v, project_root=project_root, sources=sources) for v in violations))


def filter_violations(violations: list[Violation], baseline: Baseline, *, project_root: Path) -> list[Violation]:
    """Drop findings recorded in `baseline`, matching by fingerprint first and line second."""

    sources = _SourceLines()
    kept = [v for v in violations if not baseline.covers(_entry_for(v, project_root=project_root, sources=sources))]
    logger.debug("Baseline filtered %d of %d finding(s)", len(violations) - len(kept), len(violations))
    return kept


def load_baseline(path: Path) -> Baseline:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise BaselineError(f"Failed to read baseline: {path}") from exc

    if not isinstance(data, dict):
        raise BaselineError("Baseline must be a JSON object.")
    if data.get("version") != BASELINE_VERSION:
        raise BaselineError(f"Unsupported baseline version: {data.get('version')!r}")
    items = data.get("entries", [])
    if not isinstance(items, list):
        raise BaselineError("Baseline `entries` must be a list.")

    entries = (BaselineEntry.from_json(item) for item in items)
    return Baseline(frozenset(e for e in entries if e is not None))


def save_baseline(baseline: Baseline, path: Path) -> None:
    payload = {
        "version": BASELINE_VERSION,
        "generated_at": datetime.now(UTC).isoformat(),
        "entries": [e.to_json() for e in sorted(baseline.entries, key=BaselineEntry.sort_key)],
    }
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    except OSError as exc:
        raise BaselineError(f"Failed to write baseline: {path}") from exc
