from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType

from stylesentinel.rules.base import BaseRule, RuleMeta
from stylesentinel.rules.naming import builtin_naming_rules
from stylesentinel.rules.plugins import PluginLoadError
from stylesentinel.rules.structure import builtin_structure_rules

_RULE_ID_RE = re.compile(r"^[A-Z][0-9]{2,}$")


@dataclass(frozen=True, slots=True)
class _RuleTable:
    rules: tuple[BaseRule, ...]
    by_id: Mapping[str, BaseRule]
    meta: Mapping[str, RuleMeta]

    @classmethod
    def of(cls, rules: Iterable[BaseRule]) -> _RuleTable:
        ordered = tuple(sorted(rules, key=lambda r: r.meta.rule_id))
        return cls(
            rules=ordered,
            by_id=MappingProxyType({r.meta.rule_id: r for r in ordered}),
            meta=MappingProxyType({r.meta.rule_id: r.meta for r in ordered}),
        )


def _validated(rules: Iterable[BaseRule], *, reserved: frozenset[str], origin: str) -> list[BaseRule]:
    error = PluginLoadError if origin == "Plugin" else RuntimeError
    seen: set[str] = set()
    out: list[BaseRule] = []
    for rule in rules:
        rule_id = rule.meta.rule_id
        if not _RULE_ID_RE.match(rule_id):
            raise error(f"{origin} rule id must be uppercase like `N01` (pattern {_RULE_ID_RE.pattern}): {rule_id!r}")
        if rule_id in reserved:
            raise error(f"{origin} rule id conflicts with built-in rule id: {rule_id}")
        if rule_id in seen:
            raise error(f"Duplicate {origin.lower()} rule id: {rule_id}")
        seen.add(rule_id)
        out.append(rule)
    return out


@lru_cache(maxsize=1)
def builtin_rules() -> tuple[BaseRule, ...]:
    rules = _validated([*builtin_naming_rules(), *builtin_structure_rules()], reserved=frozenset(), origin="Built-in")
    return _RuleTable.of(rules).rules


_lock = threading.Lock()
_table: _RuleTable | None = None


def _current() -> _RuleTable:
    global _table  # noqa: PLW0603
    table = _table
    if table is None:
        with _lock:
            if _table is None:
                _table = _RuleTable.of(builtin_rules())
            table = _table
    return table


def set_extra_rules(rules: Iterable[BaseRule]) -> None:
    """
    Register plugin rules for this process, replacing any registered before.

    The registry is process-wide so scoring and reporters can look up plugin
    rule metadata without the plugin list being passed around.
    """

    global _table  # noqa: PLW0603
    builtins = builtin_rules()
    extra = _validated(rules, reserved=frozenset(r.meta.rule_id for r in builtins), origin="Plugin")
    with _lock:
        _table = _RuleTable.of([*builtins, *extra])


def all_rules() -> tuple[BaseRule, ...]:
    return _current().rules


def rule_meta_by_id() -> Mapping[str, RuleMeta]:
    return _current().meta


def rule_by_id(rule_id: str) -> BaseRule | None:
    return _current().by_id.get(rule_id)
