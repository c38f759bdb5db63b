from __future__ import annotations

from pathlib import Path


def _resolved(path: Path) -> Path:
    try:
        return path.resolve()
    except OSError:
        return path


def safe_relpath(path: Path, root: Path) -> str:
    """
    POSIX-style path used in reports.

    Relative to `root` when `path` lies under it, otherwise `path` as given.
    """

    try:
        return _resolved(path).relative_to(_resolved(root)).as_posix()
    except ValueError:
        return path.as_posix()


def resolve_project_file(project_root: Path, spec: str) -> Path | None:
    """Resolve a configured path against `project_root`; None if it escapes the root."""

    raw = Path(spec)
    try:
        root = project_root.resolve()
        resolved = (raw if raw.is_absolute() else root / raw).resolve()
    except (OSError, RuntimeError):
        return None
    return resolved if resolved.is_relative_to(root) else None
