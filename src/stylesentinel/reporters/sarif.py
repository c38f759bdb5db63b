from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from stylesentinel import __version__
from stylesentinel.engine.types import Violation
from stylesentinel.rules.base import RuleMeta
from stylesentinel.rules.examples import EXAMPLES
from stylesentinel.rules.registry import rule_meta_by_id
from stylesentinel.utils import safe_relpath

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
SARIF_VERSION = "2.1.0"

_LEVEL = {"error": "error", "warn": "warning", "info": "note"}


def render_sarif(violations: list[Violation], *, project_root: Path) -> str:
    """
    Render findings as a SARIF 2.1.0 log for code-scanning uploads.

    The driver lists every registered rule; results without a file location
    are left out because code scanning requires one.
    """

    meta = rule_meta_by_id()
    rule_ids = sorted(meta)
    rule_index = {rule_id: idx for idx, rule_id in enumerate(rule_ids)}

    log = {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "StyleSentinel",
                        "version": __version__,
                        "rules": [_descriptor(meta[rule_id]) for rule_id in rule_ids],
                    }
                },
                "results": [
                    _result(v, project_root=project_root, rule_index=rule_index) for v in violations if v.is_file_level
                ],
            }
        ],
    }
    return json.dumps(log, indent=2)


def _descriptor(m: RuleMeta) -> dict[str, Any]:
    return {
        "id": m.rule_id,
        "name": m.title,
        "shortDescription": {"text": m.title},
        "fullDescription": {"text": m.description},
        "help": {"text": _help_text(m)},
        "defaultConfiguration": {"level": _LEVEL.get(m.default_severity, "note")},
        "properties": {
            "defaultSeverity": m.default_severity,
            "dimension": m.score_dimension,
            "fixable": m.fixable,
        },
    }


def _help_text(m: RuleMeta) -> str:
    example = EXAMPLES.get(m.rule_id)
    if example is None:
        return m.description
    parts = [m.description, "", "Bad:", example.bad.rstrip()]
    if example.good:
        parts += ["", "Good:", example.good.rstrip()]
    return "\n".join(parts)


def _result(v: Violation, *, project_root: Path, rule_index: Mapping[str, int]) -> dict[str, Any]:
    loc = v.location
    assert loc is not None and loc.path is not None and loc.start_line is not None

    region: dict[str, Any] = {"startLine": loc.start_line, "startColumn": loc.start_col or 1}
    if loc.end_line is not None:
        region["endLine"] = loc.end_line
    if loc.end_col is not None:
        region["endColumn"] = loc.end_col

    result: dict[str, Any] = {
        "ruleId": v.rule_id,
        "level": _LEVEL.get(v.severity, "note"),
        "message": {"text": v.message},
        "locations": [
            {
                "physicalLocation": {
                    "artifactLocation": {"uri": safe_relpath(loc.path, project_root)},
                    "region": region,
                }
            }
        ],
        "properties": {"dimension": v.dimension, **({"suggestion": v.suggestion} if v.suggestion else {})},
    }
    if v.rule_id in rule_index:
        result["ruleIndex"] = rule_index[v.rule_id]
    return result
