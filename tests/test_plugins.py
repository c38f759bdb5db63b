from __future__ import annotations

from pathlib import Path

import pytest
from helpers import make_project

from stylesentinel.audit import audit_path
from stylesentinel.reporters.sarif import render_sarif
from stylesentinel.rules.plugins import PluginLoadError, load_plugin_rules

_PLUGIN_SOURCE = '''
from __future__ import annotations

from dataclasses import dataclass

from stylesentinel.engine.context import FileContext
from stylesentinel.engine.types import Violation
from stylesentinel.rules.base import BaseRule, RuleMeta, loc_from_line


@dataclass(frozen=True, slots=True)
class X99NoConsole(BaseRule):
    meta = RuleMeta(
        rule_id="X99",
        title="No console",
        description="Flags console calls.",
        default_severity="warn",
        score_dimension="maintainability",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        return [
            self._violation(message="console call", location=loc_from_line(ctx, line=idx))
            for idx, line in enumerate(ctx.lines, start=1)
            if "console." in line
        ]


def stylesentinel_rules() -> list[BaseRule]:
    return [X99NoConsole()]


NOT_RULES = ["oops"]
'''


def _write_plugin(tmp_path: Path, monkeypatch, name: str) -> None:
    plugins_dir = tmp_path / "plugins"
    plugins_dir.mkdir(exist_ok=True)
    (plugins_dir / f"{name}.py").write_text(_PLUGIN_SOURCE.lstrip(), encoding="utf-8")
    monkeypatch.syspath_prepend(str(plugins_dir))


def test_plugin_rules_are_loaded_and_reported(tmp_path: Path, monkeypatch) -> None:
    _write_plugin(tmp_path, monkeypatch, "style_plugin_report")
    make_project(
        tmp_path,
        {"src/app.js": "console.log('hi');\n"},
        config='plugins = ["style_plugin_report"]\n',
    )

    result = audit_path(tmp_path)
    hits = [v for v in result.summary.violations if v.rule_id == "X99"]
    assert len(hits) == 1
    assert hits[0].location is not None and hits[0].location.start_line == 1

    sarif = render_sarif(list(result.summary.violations), project_root=result.target.project_root)
    assert '"id": "X99"' in sarif


def test_plugin_attr_spec(tmp_path: Path, monkeypatch) -> None:
    _write_plugin(tmp_path, monkeypatch, "style_plugin_attr")
    rules = load_plugin_rules(("style_plugin_attr:stylesentinel_rules",))
    assert [r.meta.rule_id for r in rules] == ["X99"]


def test_plugin_errors(tmp_path: Path, monkeypatch) -> None:
    _write_plugin(tmp_path, monkeypatch, "style_plugin_errors")

    with pytest.raises(PluginLoadError, match="Failed to import"):
        load_plugin_rules(("style_plugin_does_not_exist",))
    with pytest.raises(PluginLoadError, match="no attribute"):
        load_plugin_rules(("style_plugin_errors:missing",))
    with pytest.raises(PluginLoadError, match="BaseRule instances"):
        load_plugin_rules(("style_plugin_errors:NOT_RULES",))
    assert load_plugin_rules(("", "  ")) == []
