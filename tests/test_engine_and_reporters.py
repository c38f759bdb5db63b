from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType

import pytest
from helpers import make_file_ctx

from stylesentinel.config import RuleOverride, RulesConfig, ScoringConfig
from stylesentinel.engine.detection import detect, rules_config_for_relative_path
from stylesentinel.engine.scoring import (
    DIMENSION_MAX,
    compute_breakdown,
    rank_violations,
    resolve_severity_penalty,
    summarize,
)
from stylesentinel.engine.types import Location, Violation
from stylesentinel.reporters.github import render_github_annotations
from stylesentinel.reporters.json_reporter import REPORT_SCHEMA_VERSION, parse_json_report, render_json
from stylesentinel.reporters.markdown import render_markdown
from stylesentinel.reporters.sarif import render_sarif


def _violation(tmp_path: Path, *, rule_id: str = "N01", severity: str = "warn", line: int = 1, dimension: str = "naming"):
    return Violation(
        rule_id=rule_id,
        severity=severity,  # type: ignore[arg-type]
        message=f"{rule_id} message",
        dimension=dimension,  # type: ignore[arg-type]
        suggestion="do better",
        location=Location(path=tmp_path / "src" / "app.js", start_line=line, start_col=3, end_line=line, end_col=8),
    )


def test_summarize_clean_project_scores_100() -> None:
    summary = summarize(files_scanned=3, violations=[])
    assert summary.score == 100
    assert summary.violation_density == 0.0
    assert summary.breakdown.naming == DIMENSION_MAX["naming"]


def test_summarize_applies_penalties_and_density(tmp_path: Path) -> None:
    violations = [
        _violation(tmp_path, rule_id="N01", severity="warn"),
        _violation(tmp_path, rule_id="S01", severity="warn", dimension="readability"),
        _violation(tmp_path, rule_id="S04", severity="error", dimension="maintainability"),
    ]
    summary = summarize(files_scanned=2, violations=violations)
    assert summary.breakdown.naming == 40 - 2
    assert summary.breakdown.readability == 35 - 3
    assert summary.breakdown.maintainability == 25 - 5
    assert summary.score == 100 - 10
    assert summary.violation_density == 1.5
    assert summary.violations[0].rule_id == "S04"


def test_dimension_penalty_is_capped(tmp_path: Path) -> None:
    violations = [_violation(tmp_path, rule_id="N04", severity="error", line=i) for i in range(1, 30)]
    breakdown = compute_breakdown(violations)
    assert breakdown.naming == 0
    assert breakdown.readability == 35


def test_scoring_profiles_and_penalty_overrides() -> None:
    strict = resolve_severity_penalty(ScoringConfig(profile="strict"))
    lenient = resolve_severity_penalty(ScoringConfig(profile="lenient"))
    assert strict["naming"]["warn"] > lenient["naming"]["warn"]
    assert lenient["readability"]["info"] == 0

    custom = resolve_severity_penalty(
        ScoringConfig(profile="default", penalties=MappingProxyType({"naming": MappingProxyType({"warn": 7})}))
    )
    assert custom["naming"]["warn"] == 7
    assert custom["naming"]["error"] == 4


def test_rank_violations_orders_by_severity_then_location(tmp_path: Path) -> None:
    ranked = rank_violations(
        [
            _violation(tmp_path, rule_id="N06", severity="info", line=1),
            _violation(tmp_path, rule_id="N01", severity="warn", line=9),
            _violation(tmp_path, rule_id="N08", severity="warn", line=2),
        ]
    )
    assert [v.rule_id for v in ranked] == ["N08", "N01", "N06"]


def test_detect_applies_severity_overrides_and_disable(project_ctx) -> None:
    rules = RulesConfig(
        disable=("N06",),
        overrides=MappingProxyType({"N04": RuleOverride(severity="error")}),
    )
    project = replace(project_ctx, config=replace(project_ctx.config, rules=rules))
    ctx = make_file_ctx(project, relpath="src/app.js", content="const d = btn;\nconst btn = 1;\n")

    violations = detect(project, [ctx])
    by_rule = {v.rule_id: v for v in violations}
    assert by_rule["N04"].severity == "error"
    assert "N06" not in by_rule


def test_directory_overrides_pick_longest_prefix(project_ctx) -> None:
    base = RulesConfig()
    tests_rules = RulesConfig(disable=("N04",))
    fixtures_rules = RulesConfig(disable=("N04", "S01"))
    config = replace(
        project_ctx.config,
        rules=base,
        directory_overrides=MappingProxyType({"tests/": tests_rules, "tests/fixtures/": fixtures_rules}),
    )
    assert rules_config_for_relative_path(config, relative_path="src/app.js") is base
    assert rules_config_for_relative_path(config, relative_path="tests/app.test.js") is tests_rules
    assert rules_config_for_relative_path(config, relative_path="tests/fixtures/data.js") is fixtures_rules

    project = replace(project_ctx, config=config)
    src_ctx = make_file_ctx(project, relpath="src/app.js", content="const d = 1;\n")
    test_ctx = make_file_ctx(project, relpath="tests/app.test.js", content="const d = 1;\n")
    violations = detect(project, [src_ctx, test_ctx])
    assert [(v.rule_id, v.location.path.name) for v in violations if v.rule_id == "N04"] == [("N04", "app.js")]


def test_detect_parallel_matches_sequential(project_ctx) -> None:
    contexts = [
        make_file_ctx(project_ctx, relpath=f"src/mod{i}.js", content=f"const d{i} = {i + 10};\nlet open = true;\n")
        for i in range(6)
    ]
    sequential = detect(project_ctx, contexts, workers=1)
    parallel = detect(project_ctx, contexts, workers=4)
    assert sequential == parallel


def test_detect_changed_lines_filters_findings(project_ctx) -> None:
    ctx = make_file_ctx(project_ctx, relpath="src/app.js", content="let open = true;\nlet shut = false;\n")
    changed = {ctx.path.resolve(): {2}}
    violations = detect(project_ctx, [ctx], changed_lines=changed)
    assert violations
    assert {v.location.start_line for v in violations} == {2}


def test_json_report_roundtrip(tmp_path: Path) -> None:
    summary = summarize(files_scanned=1, violations=[_violation(tmp_path), _violation(tmp_path, rule_id="S01", dimension="readability")])
    payload = render_json(summary, project_root=tmp_path)
    data = json.loads(payload)
    assert data["schema_version"] == REPORT_SCHEMA_VERSION
    assert data["tool"]["name"] == "StyleSentinel"
    assert data["violations"][0]["location"]["path"] == "src/app.js"

    parsed = parse_json_report(payload, project_root=tmp_path)
    assert parsed.score == summary.score
    assert parsed.breakdown == summary.breakdown
    assert [v.rule_id for v in parsed.violations] == [v.rule_id for v in summary.violations]
    assert parsed.violations[0].location is not None
    assert parsed.violations[0].location.path == tmp_path / "src" / "app.js"


@pytest.mark.parametrize("raw", ["{", "[]", '{"violations": "nope"}'])
def test_parse_json_report_rejects_malformed_input(tmp_path: Path, raw: str) -> None:
    with pytest.raises(ValueError):
        parse_json_report(raw, project_root=tmp_path)


def test_sarif_output_has_rules_and_results(tmp_path: Path) -> None:
    sarif = json.loads(render_sarif([_violation(tmp_path, rule_id="S02", dimension="readability")], project_root=tmp_path))
    assert sarif["version"] == "2.1.0"
    run = sarif["runs"][0]
    assert run["tool"]["driver"]["name"] == "StyleSentinel"
    rules = {r["id"]: r for r in run["tool"]["driver"]["rules"]}
    assert rules["S02"]["properties"]["fixable"] is True
    assert "Good:" in rules["S02"]["help"]["text"]
    result = run["results"][0]
    assert run["tool"]["driver"]["rules"][result["ruleIndex"]]["id"] == "S02"
    assert result["ruleId"] == "S02"
    assert result["level"] == "warning"
    location = result["locations"][0]["physicalLocation"]
    assert location["artifactLocation"]["uri"] == "src/app.js"
    assert location["region"]["startLine"] == 1


def test_markdown_report(tmp_path: Path) -> None:
    summary = summarize(files_scanned=1, violations=[_violation(tmp_path)])
    md = render_markdown(summary, project_root=tmp_path)
    assert md.startswith("# StyleSentinel report")
    assert "| src/app.js | 1 | `N01` | warn | naming |" in md

    empty = render_markdown(summarize(files_scanned=1, violations=[]), project_root=tmp_path)
    assert "No violations found." in empty


def test_github_annotations_escape_properties(tmp_path: Path) -> None:
    v = replace(_violation(tmp_path, rule_id="N01"), message="first line\nsecond 100%")
    out = render_github_annotations([v], project_root=tmp_path)
    assert out.startswith("::warning file=src/app.js,line=1,col=3,title=N01 Boolean name without prefix::")
    assert "first line%0Asecond 100%25" in out

    project_level = replace(v, location=None, severity="info")
    assert render_github_annotations([project_level], project_root=tmp_path).startswith("::notice title=")
