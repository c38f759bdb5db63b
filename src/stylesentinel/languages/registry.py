from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType


@dataclass(frozen=True, slots=True)
class SourceKind:
    """How a file extension is linted: its config language and tree-sitter grammar."""

    language: str
    grammar: str


_JS = SourceKind(language="javascript", grammar="javascript")
_TS = SourceKind(language="typescript", grammar="typescript")
_TSX = SourceKind(language="typescript", grammar="tsx")

SOURCE_KINDS: Mapping[str, SourceKind] = MappingProxyType(
    {
        ".js": _JS,
        ".jsx": _JS,
        ".mjs": _JS,
        ".cjs": _JS,
        ".ts": _TS,
        ".mts": _TS,
        ".cts": _TS,
        ".tsx": _TSX,
    }
)

# Ambient declarations only restate names owned by other code.
_DECLARATION_SUFFIXES = (".d.ts", ".d.mts", ".d.cts")


def source_kind(path: Path) -> SourceKind | None:
    name = path.name.lower()
    if name.endswith(_DECLARATION_SUFFIXES):
        return None
    return SOURCE_KINDS.get(path.suffix.lower())


def is_lintable(path: Path, *, languages: Iterable[str]) -> bool:
    """True when `path` is a JS/TS source whose language is enabled in `languages`."""

    kind = source_kind(path)
    if kind is None:
        return False
    return kind.language in {lang.strip().lower() for lang in languages}
