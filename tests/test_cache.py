from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest
from helpers import make_project

from stylesentinel.audit import audit_path
from stylesentinel.cache import CacheError, FileViolationCache, config_fingerprint, file_content_hash
from stylesentinel.config import NamingConfig
from stylesentinel.engine.types import Location, Violation


def _violation(path: Path) -> Violation:
    return Violation(
        rule_id="N04",
        severity="warn",
        message="Name `d` is shorter than 2 characters.",
        dimension="naming",
        suggestion="Use a descriptive name that says what the value holds.",
        location=Location(path=path, start_line=1, start_col=7, end_line=1, end_col=8),
    )


def test_cache_roundtrip_put_get(tmp_path: Path) -> None:
    cache_path = tmp_path / ".stylesentinel" / "cache.json"
    fingerprint = config_fingerprint(enabled_rule_ids={"N04"}, overrides={}, plugins=())

    cache = FileViolationCache.load(cache_path, fingerprint=fingerprint, project_root=tmp_path)
    h = file_content_hash("const d = 1;\n")
    cache.put(relative_path="src/app.js", content_hash=h, violations=[_violation(tmp_path / "src" / "app.js")])
    cache.save()

    reloaded = FileViolationCache.load(cache_path, fingerprint=fingerprint, project_root=tmp_path)
    got = reloaded.get(relative_path="src/app.js", content_hash=h)
    assert got is not None
    assert got[0].rule_id == "N04"
    assert got[0].location is not None
    assert got[0].location.path == (tmp_path / "src" / "app.js").resolve()
    assert reloaded.get(relative_path="src/app.js", content_hash=file_content_hash("changed\n")) is None
    assert reloaded.stats() == (1, 1)


def test_cache_fingerprint_mismatch_ignores_entries(tmp_path: Path) -> None:
    cache_path = tmp_path / ".stylesentinel" / "cache.json"
    fp1 = config_fingerprint(enabled_rule_ids={"N04"}, overrides={}, plugins=())
    fp2 = config_fingerprint(enabled_rule_ids={"N04", "N06"}, overrides={}, plugins=())

    cache = FileViolationCache.load(cache_path, fingerprint=fp1, project_root=tmp_path)
    h = file_content_hash("const d = 1;\n")
    cache.put(relative_path="src/app.js", content_hash=h, violations=[_violation(tmp_path / "src" / "app.js")])
    cache.save()

    reloaded = FileViolationCache.load(cache_path, fingerprint=fp2, project_root=tmp_path)
    assert reloaded.get(relative_path="src/app.js", content_hash=h) is None


def test_config_fingerprint_tracks_naming_config() -> None:
    base = config_fingerprint(enabled_rule_ids={"N04"}, overrides={}, plugins=())
    same = config_fingerprint(enabled_rule_ids={"N04"}, overrides={}, plugins=(), naming=NamingConfig())
    changed = config_fingerprint(
        enabled_rule_ids={"N04"},
        overrides={},
        plugins=(),
        naming=replace(NamingConfig(), min_length=3),
    )
    assert base == same
    assert base != changed


def test_corrupt_cache_starts_fresh(tmp_path: Path) -> None:
    cache_path = tmp_path / "cache.json"
    cache_path.write_text("{not json", encoding="utf-8")
    cache = FileViolationCache.load(cache_path, fingerprint="x", project_root=tmp_path)
    assert cache.get(relative_path="a.js", content_hash="h") is None


def test_cache_save_failure_raises_cache_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    cache = FileViolationCache.load(blocker / "cache.json", fingerprint="x", project_root=tmp_path)
    cache.put(relative_path="a.js", content_hash="h", violations=[])
    with pytest.raises(CacheError):
        cache.save()


def test_audit_uses_and_refreshes_cache(tmp_path: Path) -> None:
    make_project(
        tmp_path,
        {"src/app.js": "const d = 1;\n"},
        config="[cache]\nenabled = true\n",
    )

    first = audit_path(tmp_path)
    cache_file = tmp_path / ".stylesentinel" / "cache.json"
    assert cache_file.exists()
    payload = json.loads(cache_file.read_text(encoding="utf-8"))
    assert "src/app.js" in payload["files"]

    second = audit_path(tmp_path)
    assert second.summary.violations == first.summary.violations

    uncached = audit_path(tmp_path, use_cache=False)
    assert uncached.summary.violations == first.summary.violations
