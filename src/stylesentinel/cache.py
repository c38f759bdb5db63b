from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass, field, replace
from hashlib import sha256
from pathlib import Path
from typing import Any

from stylesentinel import __version__
from stylesentinel.config import NamingConfig, StructureConfig
from stylesentinel.engine.types import Violation
from stylesentinel.reporters.json_reporter import violation_from_dict, violation_to_dict
from stylesentinel.utils import resolve_project_file

CACHE_VERSION = 1

logger = logging.getLogger(__name__)


class CacheError(RuntimeError):
    """Raised when the cache cannot be read or written safely."""


def file_content_hash(text: str) -> str:
    # Hash the decoded text produced by the scanner (read with errors="replace").
    return sha256(text.encode("utf-8", errors="replace")).hexdigest()


def config_fingerprint(
    *,
    enabled_rule_ids: set[str],
    overrides: dict[str, str],
    plugins: tuple[str, ...],
    naming: NamingConfig | None = None,
    structure: StructureConfig | None = None,
) -> str:
    """
    Hash everything that changes per-file findings.

    Ignore patterns, thresholds and scoring are left out; they act after
    detection.
    """

    payload = {
        "tool_version": __version__,
        "enabled_rule_ids": sorted(enabled_rule_ids),
        "overrides": dict(sorted(overrides.items())),
        "plugins": list(plugins),
        "naming": asdict(naming or NamingConfig()),
        "structure": asdict(structure or StructureConfig()),
    }
    return sha256(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")).hexdigest()


@dataclass
class _Entry:
    content_hash: str
    raw: list[dict[str, Any]]
    parsed: list[Violation] | None = None


@dataclass
class _Counters:
    hits: int = 0
    misses: int = 0


@dataclass
class FileViolationCache:
    """
    Per-file findings keyed by relative path and content hash, persisted as JSON.

    A cache written under a different config fingerprint (or tool version) is
    discarded on load. Safe to use from the detection thread pool.
    """

    path: Path
    fingerprint: str
    project_root: Path
    _entries: dict[str, _Entry] = field(default_factory=dict, repr=False)
    _counters: _Counters = field(default_factory=_Counters, repr=False)
    _dirty: bool = field(default=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def load(cls, path: Path, *, fingerprint: str, project_root: Path) -> FileViolationCache:
        cache = cls(path=path, fingerprint=fingerprint, project_root=project_root)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return cache
        except (OSError, json.JSONDecodeError) as exc:
            logger.debug("ignoring unreadable cache %s: %s", path, exc)
            return cache

        if not isinstance(data, dict) or data.get("version") != CACHE_VERSION or data.get("fingerprint") != fingerprint:
            logger.debug("cache %s is stale; starting fresh", path)
            return cache
        files = data.get("files")
        if isinstance(files, dict):
            for rel, item in files.items():
                entry = _entry_from_json(item)
                if isinstance(rel, str) and entry is not None:
                    cache._entries[rel] = entry
        return cache

    def get(self, *, relative_path: str, content_hash: str) -> list[Violation] | None:
        with self._lock:
            entry = self._entries.get(relative_path)
            if entry is None or entry.content_hash != content_hash:
                self._counters.misses += 1
                return None
            self._counters.hits += 1
            if entry.parsed is None:
                entry.parsed = [self._restore(item) for item in entry.raw]
            return list(entry.parsed)

    def put(self, *, relative_path: str, content_hash: str, violations: list[Violation]) -> None:
        raw = [violation_to_dict(v, project_root=self.project_root) for v in violations]
        with self._lock:
            self._entries[relative_path] = _Entry(content_hash, raw, parsed=list(violations))
            self._dirty = True

    def stats(self) -> tuple[int, int]:
        """Return (hits, misses) observed during this process run."""

        with self._lock:
            return self._counters.hits, self._counters.misses

    def save(self) -> None:
        with self._lock:
            if not self._dirty:
                return
            payload = {
                "version": CACHE_VERSION,
                "fingerprint": self.fingerprint,
                "files": {
                    rel: {"hash": entry.content_hash, "violations": entry.raw}
                    for rel, entry in sorted(self._entries.items())
                },
            }
            tmp = self.path.with_name(self.path.name + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(json.dumps(payload, separators=(",", ":"), sort_keys=True) + "\n", encoding="utf-8")
                tmp.replace(self.path)
            except OSError as exc:
                raise CacheError(f"Failed to write cache: {self.path}") from exc
            self._dirty = False

    def _restore(self, item: dict[str, Any]) -> Violation:
        v = violation_from_dict(item, project_root=self.project_root)
        if v.location is None or v.location.path is None:
            return v
        # Cached paths must stay inside the project root.
        resolved = resolve_project_file(self.project_root, item["location"]["path"])
        return replace(v, location=replace(v.location, path=resolved) if resolved is not None else None)


def _entry_from_json(item: object) -> _Entry | None:
    if not isinstance(item, dict):
        return None
    content_hash = item.get("hash")
    raw = item.get("violations", [])
    if not isinstance(content_hash, str) or not isinstance(raw, list):
        return None
    return _Entry(content_hash, [v for v in raw if isinstance(v, dict)])
