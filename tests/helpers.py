from __future__ import annotations

from pathlib import Path

from stylesentinel.engine.context import ProjectContext
from stylesentinel.scanner import build_file_context


def make_file_ctx(project_ctx: ProjectContext, *, relpath: str, content: str):
    path = project_ctx.project_root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    ctx = build_file_context(project_ctx, path)
    assert ctx is not None
    return ctx


def make_project(root: Path, files: dict[str, str], *, config: str | None = None) -> Path:
    """Write a small JS/TS project under `root` (with a `package.json` root marker)."""

    (root / "package.json").write_text('{"name": "fixture"}\n', encoding="utf-8")
    if config is not None:
        (root / ".stylesentinel.toml").write_text(config, encoding="utf-8")
    for relpath, content in files.items():
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def rule_ids(violations) -> list[str]:
    return [v.rule_id for v in violations]
