from __future__ import annotations

from pathlib import Path

import pytest
from helpers import make_project

from stylesentinel.scanner import (
    build_file_contexts,
    build_project_context,
    detect_project_root,
    discover_files,
    prepare_target,
    resolve_worker_count,
)


def _relpaths(paths: list[Path], root: Path) -> list[str]:
    return [p.relative_to(root).as_posix() for p in paths]


def test_discover_files_filters_languages_and_skip_dirs(tmp_path: Path) -> None:
    make_project(
        tmp_path,
        {
            "src/app.js": "",
            "src/view.tsx": "",
            "src/types.d.ts": "",
            "src/readme.md": "",
            "src/legacy.py": "",
            "node_modules/lib/index.js": "",
            "dist/bundle.js": "",
        },
    )
    target = prepare_target(tmp_path)
    assert _relpaths(discover_files(target), target.project_root) == ["src/app.js", "src/view.tsx"]


def test_discover_files_honors_config(tmp_path: Path) -> None:
    make_project(
        tmp_path,
        {"src/app.js": "", "src/app.min.js": "", "src/view.ts": "", "generated/api.js": ""},
        config='languages = ["javascript"]\n\n[ignore]\npaths = ["generated/", "*.min.js"]\n',
    )
    target = prepare_target(tmp_path)
    assert _relpaths(discover_files(target), target.project_root) == ["src/app.js"]


def test_discover_single_file(tmp_path: Path) -> None:
    make_project(tmp_path, {"src/app.js": "", "src/notes.txt": ""})
    assert discover_files(prepare_target(tmp_path / "src" / "app.js")) == [(tmp_path / "src" / "app.js").resolve()]
    assert discover_files(prepare_target(tmp_path / "src" / "notes.txt")) == []


def test_detect_project_root_uses_nearest_marker(tmp_path: Path) -> None:
    make_project(tmp_path, {"packages/web/src/app.js": ""})
    (tmp_path / "packages" / "web" / "package.json").write_text("{}", encoding="utf-8")

    assert detect_project_root(tmp_path / "packages" / "web" / "src" / "app.js") == tmp_path / "packages" / "web"
    assert detect_project_root(tmp_path / "packages") == tmp_path


def test_detect_project_root_falls_back_to_scan_dir(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("stylesentinel.scanner.git_root", lambda cwd: None)
    scan_dir = tmp_path / "loose"
    scan_dir.mkdir()
    # Parents of tmp_path hold no project markers in a clean test environment.
    root = detect_project_root(scan_dir)
    assert root in {scan_dir, *scan_dir.parents}


def test_build_file_contexts_preserves_order_in_parallel(tmp_path: Path) -> None:
    files = {f"src/mod{i}.js": f"export const value{i} = {i};\n" for i in range(8)}
    make_project(tmp_path, files)
    target = prepare_target(tmp_path)
    paths = discover_files(target)
    project = build_project_context(target, paths)

    seen: list[Path] = []
    contexts = build_file_contexts(project, paths, workers=4, on_path_done=seen.append)
    assert [c.path for c in contexts] == paths
    assert sorted(seen) == sorted(paths)
    assert all(c.syntax_tree is not None for c in contexts)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("3", 3),
        ("0", 5),
        ("-2", 5),
        ("auto", 5),
        ("", 5),
        ("many", 5),
        ("500", 32),
    ],
)
def test_resolve_worker_count(raw: str, expected: int) -> None:
    assert resolve_worker_count(raw, default=5) == expected
