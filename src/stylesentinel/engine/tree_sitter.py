from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from functools import lru_cache

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Parser, Tree

logger = logging.getLogger(__name__)

# Grammar name -> factory returning the grammar capsule. Keys match
# `SourceKind.grammar` in `languages.registry`.
_GRAMMARS: dict[str, Callable[[], object]] = {
    "javascript": tree_sitter_javascript.language,
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}


class TreeSitterError(RuntimeError):
    """Raised when tree-sitter cannot load a language or parse source."""


def supported_grammars() -> tuple[str, ...]:
    return tuple(sorted(_GRAMMARS))


@lru_cache(maxsize=8)
def _get_language(language: str) -> Language:
    factory = _GRAMMARS.get(language)
    if factory is None:
        raise TreeSitterError(f"tree-sitter language not available: {language!r}")
    try:
        return Language(factory())
    except (TypeError, ValueError) as exc:  # pragma: no cover (depends on installed grammars)
        raise TreeSitterError(f"failed to load tree-sitter grammar {language!r}: {exc}") from exc


_THREAD_STATE = threading.local()


def _get_parser(language: str) -> Parser:
    """Return this thread's Parser for `language`; Parser objects must not cross threads."""

    parsers: dict[str, Parser] = _THREAD_STATE.__dict__.setdefault("parsers", {})
    parser = parsers.get(language)
    if parser is None:
        parser = parsers[language] = Parser(_get_language(language))
    return parser


def parse(language: str, source: str) -> Tree | None:
    """
    Parse source code with tree-sitter.

    Returns a Tree, or None when the grammar is unknown or parsing fails
    unexpectedly. Syntax errors do not fail the parse; tree-sitter recovers and
    marks ERROR nodes instead.
    """

    try:
        parser = _get_parser(language)
        tree = parser.parse(source.encode("utf-8", errors="replace"))
    except (TreeSitterError, ValueError, TypeError, RuntimeError) as exc:
        logger.debug("tree-sitter parse failed for %s: %s", language, exc)
        return None
    return tree
