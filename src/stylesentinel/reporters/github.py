from __future__ import annotations

from pathlib import Path

from stylesentinel.engine.types import Violation
from stylesentinel.rules.registry import rule_meta_by_id
from stylesentinel.utils import safe_relpath

_COMMAND = {"error": "error", "warn": "warning", "info": "notice"}


def render_github_annotations(violations: list[Violation], *, project_root: Path) -> str:
    """Render findings as GitHub Actions workflow commands (`::warning file=...::msg`)."""

    meta = rule_meta_by_id()
    commands: list[str] = []
    for v in violations:
        title = f"{v.rule_id} {meta[v.rule_id].title}" if v.rule_id in meta else v.rule_id
        props = {"title": title}
        if v.is_file_level:
            assert v.location is not None and v.location.path is not None
            props = {
                "file": safe_relpath(v.location.path, project_root),
                "line": str(v.location.start_line),
                "col": str(v.location.start_col or 1),
                **props,
            }
        rendered = ",".join(f"{key}={_escape_property(value)}" for key, value in props.items())
        commands.append(f"::{_COMMAND.get(v.severity, 'notice')} {rendered}::{_escape_data(f'{v.rule_id} {v.message}')}")
    return "\n".join(commands)


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")
