from __future__ import annotations

from dataclasses import dataclass

import pytest

from stylesentinel.config import DEFAULT_RULE_GROUPS
from stylesentinel.rules.base import BaseRule, RuleMeta
from stylesentinel.rules.examples import EXAMPLES
from stylesentinel.rules.registry import (
    all_rules,
    builtin_rules,
    rule_by_id,
    rule_meta_by_id,
    set_extra_rules,
)


@dataclass(frozen=True, slots=True)
class _PluginRule(BaseRule):
    meta = RuleMeta(
        rule_id="X01",
        title="Plugin rule",
        description="Test-only plugin rule.",
        default_severity="info",
        score_dimension="maintainability",
    )


@dataclass(frozen=True, slots=True)
class _ConflictingRule(BaseRule):
    meta = RuleMeta(
        rule_id="N01",
        title="Conflict",
        description="Reuses a built-in id.",
        default_severity="info",
        score_dimension="naming",
    )


def test_builtin_rules_match_default_groups() -> None:
    ids = [r.meta.rule_id for r in builtin_rules()]
    assert ids == sorted(ids)
    assert tuple(ids) == DEFAULT_RULE_GROUPS["all"]


def test_every_builtin_rule_has_an_example() -> None:
    for rule in builtin_rules():
        example = EXAMPLES.get(rule.meta.rule_id)
        assert example is not None, rule.meta.rule_id
        assert example.bad.strip()
        assert example.good


def test_only_s02_is_fixable() -> None:
    assert {r.meta.rule_id for r in builtin_rules() if r.meta.fixable} == {"S02"}


def test_extra_rules_are_registered_and_reset() -> None:
    set_extra_rules([_PluginRule()])
    assert "X01" in rule_meta_by_id()
    assert rule_meta_by_id()["X01"].title == "Plugin rule"
    assert isinstance(rule_by_id("X01"), _PluginRule)
    assert [r.meta.rule_id for r in all_rules()][-1] == "X01"

    set_extra_rules([])
    assert rule_by_id("X01") is None


def test_extra_rules_cannot_shadow_builtins() -> None:
    with pytest.raises(RuntimeError, match="conflicts"):
        set_extra_rules([_ConflictingRule()])
