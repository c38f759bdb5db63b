from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from stylesentinel.config import CONFIG_FILENAME, PYPROJECT_FILENAME, StyleSentinelConfig, load_config, path_is_ignored
from stylesentinel.engine.context import FileContext, ProjectContext
from stylesentinel.engine.tree_sitter import parse as ts_parse
from stylesentinel.git import git_root
from stylesentinel.languages.registry import is_lintable, source_kind
from stylesentinel.suppressions import parse_suppressions
from stylesentinel.utils import safe_relpath

logger = logging.getLogger(__name__)

# Dependency, build output and tool directories never hold hand-written sources.
DEFAULT_SKIP_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".idea",
        ".vscode",
        ".next",
        ".nuxt",
        ".cache",
        ".stylesentinel",
        "node_modules",
        "bower_components",
        "dist",
        "build",
        "coverage",
        "out",
        "vendor",
    }
)

PROJECT_ROOT_MARKERS = (CONFIG_FILENAME, PYPROJECT_FILENAME, "package.json")

STYLESENTINEL_WORKERS_ENV = "STYLESENTINEL_WORKERS"
DEFAULT_MAX_WORKERS = 32


@dataclass(frozen=True, slots=True)
class ScanTarget:
    project_root: Path
    scan_path: Path
    config: StyleSentinelConfig


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Turn a `STYLESENTINEL_WORKERS`-style value into a thread count.

    Empty, `auto`, non-numeric and non-positive values select the default
    (twice the CPU count unless given); everything is capped at `max_workers`.
    """

    fallback = default if default is not None else 2 * (os.cpu_count() or 1)
    requested = fallback
    text = (raw_value or "").strip().lower()
    if text and text not in {"auto", "default"}:
        try:
            requested = int(text)
        except ValueError:
            logger.warning("ignoring invalid %s=%r", STYLESENTINEL_WORKERS_ENV, raw_value)
        if requested <= 0:
            requested = fallback
    return max(1, min(requested, max_workers))


def worker_count_from_env(*, default: int | None = None) -> int:
    return resolve_worker_count(os.environ.get(STYLESENTINEL_WORKERS_ENV), default=default)


def prepare_target(scan_path: Path) -> ScanTarget:
    """Resolve the project root for `scan_path` and load its configuration."""

    scan_path = scan_path.resolve()
    project_root = detect_project_root(scan_path)
    logger.debug("Project root: %s", project_root)
    return ScanTarget(project_root=project_root, scan_path=scan_path, config=load_config(project_root))


def discover_files(target: ScanTarget) -> list[Path]:
    """Return the sorted JS/TS sources under the scan path that the config allows."""

    config = target.config
    candidates = [target.scan_path] if target.scan_path.is_file() else _walk_sources(target.scan_path)
    return sorted(
        {
            path
            for path in candidates
            if is_lintable(path, languages=config.languages)
            and not path_is_ignored(path, project_root=target.project_root, ignore_patterns=config.ignore.paths)
        }
    )


def _walk_sources(directory: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(directory, topdown=True):
        dirnames[:] = sorted(name for name in dirnames if name not in DEFAULT_SKIP_DIRS)
        base = Path(dirpath)
        for filename in filenames:
            yield base / filename


def build_project_context(target: ScanTarget, files: list[Path]) -> ProjectContext:
    return ProjectContext(
        project_root=target.project_root,
        scan_path=target.scan_path,
        files=tuple(files),
        config=target.config,
    )


def build_file_context(project: ProjectContext, path: Path) -> FileContext | None:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("skipping unreadable file %s: %s", path, exc)
        return None
    return build_file_context_from_text(project, path, text)


def build_file_context_from_text(project: ProjectContext, path: Path, text: str) -> FileContext | None:
    """Parse `text` as the contents of `path`; None when `path` is not a JS/TS source."""

    kind = source_kind(path)
    if kind is None:
        return None

    syntax_tree = ts_parse(kind.grammar, text)
    if syntax_tree is None:
        logger.debug("no syntax tree for %s (%s)", path, kind.grammar)

    lines = tuple(text.splitlines())
    return FileContext(
        project_root=project.project_root,
        path=path,
        relative_path=safe_relpath(path, project.project_root),
        language=kind.language,
        text=text,
        lines=lines,
        suppressions=parse_suppressions(lines),
        source=text.encode("utf-8", errors="replace"),
        syntax_tree=syntax_tree,
        tree_sitter_language=kind.grammar,
        naming=project.config.naming,
        structure=project.config.structure,
    )


def build_file_contexts(
    project: ProjectContext,
    paths: list[Path],
    *,
    workers: int = 1,
    on_path_done: Callable[[Path], None] | None = None,
) -> list[FileContext]:
    """
    Read and parse `paths`, on a thread pool when `workers > 1`.

    Contexts come back in `paths` order; unreadable and unsupported files are
    dropped. `on_path_done` fires once per input path.
    """

    def _build(path: Path) -> FileContext | None:
        return build_file_context(project, path)

    if workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=min(workers, len(paths))) as executor:
            built = executor.map(_build, paths)
            results = _collect(paths, built, on_path_done)
    else:
        results = _collect(paths, map(_build, paths), on_path_done)
    return [ctx for ctx in results if ctx is not None]


def _collect(
    paths: list[Path],
    built: Iterator[FileContext | None],
    on_path_done: Callable[[Path], None] | None,
) -> list[FileContext | None]:
    out: list[FileContext | None] = []
    for path, ctx in zip(paths, built, strict=True):
        if on_path_done is not None:
            on_path_done(path)
        out.append(ctx)
    return out


def detect_project_root(start: Path) -> Path:
    """
    Return the nearest directory holding a project marker.

    Markers are `.stylesentinel.toml`, `pyproject.toml` and `package.json`;
    without one the git root is used, then the scan directory itself.
    """

    start_dir = start if start.is_dir() else start.parent
    for candidate in (start_dir, *start_dir.parents):
        if any((candidate / marker).is_file() for marker in PROJECT_ROOT_MARKERS):
            return candidate
    return git_root(cwd=start_dir) or start_dir
