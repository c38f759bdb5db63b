from __future__ import annotations

import json
from pathlib import Path

import pytest
from helpers import make_project

from stylesentinel.audit import audit_path
from stylesentinel.baseline import (
    BASELINE_VERSION,
    BaselineEntry,
    BaselineError,
    build_baseline,
    filter_violations,
    load_baseline,
    save_baseline,
)
from stylesentinel.engine.types import Violation


def test_baseline_roundtrip_and_filter(tmp_path: Path) -> None:
    make_project(tmp_path, {"src/app.js": "const d = 1;\nlet open = true;\n"})
    result = audit_path(tmp_path, apply_baseline=False)
    violations = list(result.summary.violations)
    assert violations

    baseline = build_baseline(violations, project_root=tmp_path)
    path = tmp_path / ".stylesentinel-baseline.json"
    save_baseline(baseline, path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["version"] == BASELINE_VERSION
    assert all("fingerprint" in entry for entry in data["entries"])

    loaded = load_baseline(path)
    assert len(loaded) == len(baseline)
    assert filter_violations(violations, loaded, project_root=tmp_path) == []


def test_baseline_survives_line_drift(tmp_path: Path) -> None:
    make_project(tmp_path, {"src/app.js": "// config\nconst d = 1;\nexport default d;\n"})
    before = audit_path(tmp_path, apply_baseline=False)
    baseline = build_baseline(list(before.summary.violations), project_root=tmp_path)

    (tmp_path / "src" / "app.js").write_text("// banner\n\n// config\nconst d = 1;\nexport default d;\n", encoding="utf-8")
    after = audit_path(tmp_path, apply_baseline=False)
    moved = [v for v in after.summary.violations if v.rule_id == "N04"]
    assert moved and moved[0].location is not None and moved[0].location.start_line == 4

    assert filter_violations(moved, baseline, project_root=tmp_path) == []


def test_repo_level_entries_match_by_message(tmp_path: Path) -> None:
    v = Violation(rule_id="X01", severity="info", message="project finding", dimension="maintainability")
    baseline = build_baseline([v], project_root=tmp_path)
    assert baseline.entries == frozenset({BaselineEntry("X01", message="project finding")})
    assert filter_violations([v], baseline, project_root=tmp_path) == []


def test_configured_baseline_is_applied_by_audit(tmp_path: Path) -> None:
    make_project(
        tmp_path,
        {"src/app.js": "const d = 1;\n"},
        config='baseline = ".stylesentinel-baseline.json"\n',
    )
    first = audit_path(tmp_path)
    assert first.summary.violations
    save_baseline(build_baseline(list(first.summary.violations), project_root=tmp_path), tmp_path / ".stylesentinel-baseline.json")

    second = audit_path(tmp_path)
    assert second.summary.violations == ()
    assert second.summary.score == 100


def test_invalid_baseline_is_ignored_by_audit(tmp_path: Path) -> None:
    make_project(
        tmp_path,
        {"src/app.js": "const d = 1;\n"},
        config='baseline = "baseline.json"\n',
    )
    (tmp_path / "baseline.json").write_text('{"version": 99}', encoding="utf-8")
    result = audit_path(tmp_path)
    assert result.summary.violations


@pytest.mark.parametrize("content", ["{", "[]", '{"version": 99}', '{"version": 1, "entries": {}}'])
def test_load_baseline_rejects_invalid_files(tmp_path: Path, content: str) -> None:
    path = tmp_path / "baseline.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(BaselineError):
        load_baseline(path)
