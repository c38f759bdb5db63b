from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from tree_sitter import Node, Tree

from stylesentinel.config import NamingConfig, StructureConfig, StyleSentinelConfig
from stylesentinel.suppressions import Suppressions


@dataclass(frozen=True, slots=True)
class ProjectContext:
    """The scan as a whole: where it is rooted, which files it covers, and the loaded config."""

    project_root: Path
    scan_path: Path
    files: tuple[Path, ...]
    config: StyleSentinelConfig


@dataclass(frozen=True, slots=True)
class FileContext:
    """
    One JS/TS source file prepared for the rules.

    `naming` and `structure` carry the thresholds and word lists in effect for
    this file; `syntax_tree` is None when no grammar could parse it.
    """

    project_root: Path
    path: Path
    relative_path: str
    language: str
    text: str
    lines: tuple[str, ...]
    suppressions: Suppressions
    source: bytes = b""
    syntax_tree: Tree | None = None
    tree_sitter_language: str | None = None
    naming: NamingConfig = field(default_factory=NamingConfig)
    structure: StructureConfig = field(default_factory=StructureConfig)

    @property
    def root_node(self) -> Node | None:
        return self.syntax_tree.root_node if self.syntax_tree is not None else None
