from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

WILDCARD = "ALL"

# `disable-next-line` and `disable-file` must be tried before plain `disable`.
_DIRECTIVE_RE = re.compile(
    r"style:\s*(?P<kind>disable-next-line|disable[-_]?file|disable)\s*=\s*(?P<ids>[a-z0-9_,\s]+)",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class Suppressions:
    """
    Rule ids silenced by `style:` comment directives.

    - `style: disable-file=N01,S01` silences the ids for the whole file.
    - `style: disable=N01` silences the ids on the directive's own line.
    - `style: disable-next-line=S01` silences the ids on the following line.

    Directive names and ids are case-insensitive; `all` matches every rule.
    """

    file_wide: frozenset[str] = frozenset()
    by_line: Mapping[int, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))

    def is_suppressed(self, rule_id: str, *, line: int | None) -> bool:
        wanted = rule_id.upper()
        if _covers(self.file_wide, wanted):
            return True
        return line is not None and _covers(self.by_line.get(line, frozenset()), wanted)


def _covers(ids: frozenset[str], rule_id: str) -> bool:
    return WILDCARD in ids or rule_id in ids


def parse_suppressions(lines: Sequence[str]) -> Suppressions:
    file_wide: set[str] = set()
    by_line: dict[int, set[str]] = {}

    for lineno, line in enumerate(lines, start=1):
        if "style:" not in line.lower():
            continue
        for match in _DIRECTIVE_RE.finditer(line):
            ids = {token.upper() for token in re.split(r"[,\s]+", match.group("ids")) if token}
            kind = match.group("kind").lower()
            if kind == "disable":
                by_line.setdefault(lineno, set()).update(ids)
            elif kind == "disable-next-line":
                by_line.setdefault(lineno + 1, set()).update(ids)
            else:
                file_wide.update(ids)

    return Suppressions(
        file_wide=frozenset(file_wide),
        by_line=MappingProxyType({lineno: frozenset(ids) for lineno, ids in by_line.items()}),
    )
