from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path

from stylesentinel.cache import FileViolationCache, file_content_hash
from stylesentinel.config import RulesConfig, StyleSentinelConfig, compute_enabled_rule_ids
from stylesentinel.engine.context import FileContext, ProjectContext
from stylesentinel.engine.types import Severity, Violation
from stylesentinel.rules.base import BaseRule
from stylesentinel.rules.registry import all_rules

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RuleSet:
    """The rules that run on a file, plus configured severity replacements."""

    rules: tuple[BaseRule, ...]
    severities: Mapping[str, Severity]

    @property
    def rule_ids(self) -> frozenset[str]:
        return frozenset(r.meta.rule_id for r in self.rules)


def build_rule_set(config: StyleSentinelConfig, rules_cfg: RulesConfig, available: Iterable[BaseRule]) -> RuleSet:
    available_list = list(available)
    scoped = config if rules_cfg is config.rules else replace(config, rules=rules_cfg)
    enabled = compute_enabled_rule_ids(scoped, available_rule_ids=[r.meta.rule_id for r in available_list])

    severities: dict[str, Severity] = dict(rules_cfg.severity_overrides)
    for rule_id, override in rules_cfg.overrides.items():
        if override.severity is not None:
            severities[rule_id] = override.severity

    return RuleSet(
        rules=tuple(r for r in available_list if r.meta.rule_id in enabled),
        severities=severities,
    )


def rules_config_for_relative_path(config: StyleSentinelConfig, *, relative_path: str) -> RulesConfig:
    """Return the rules config of the longest directory override matching `relative_path`."""

    prefix = _override_prefix(config, relative_path)
    return config.rules if prefix is None else config.directory_overrides[prefix]


def _override_prefix(config: StyleSentinelConfig, relative_path: str) -> str | None:
    rel = relative_path.replace("\\", "/")
    matching = [prefix for prefix in config.directory_overrides if rel.startswith(prefix)]
    return max(matching, key=len) if matching else None


def detect(
    project: ProjectContext,
    files: Iterable[FileContext],
    *,
    changed_lines: dict[Path, set[int]] | None = None,
    workers: int | None = None,
    cache: FileViolationCache | None = None,
    on_file_done: Callable[[Path], None] | None = None,
) -> list[Violation]:
    """
    Run the enabled rules over the project and each file.

    Directory overrides pick the rule set per file. With `changed_lines`, only
    findings on those lines are kept and project-level checks are skipped.
    Findings come back in file order whatever `workers` is.
    """

    config = project.config
    available = list(all_rules())
    base = build_rule_set(config, config.rules, available)
    scoped = {prefix: build_rule_set(config, cfg, available) for prefix, cfg in config.directory_overrides.items()}
    logger.debug("Enabled rules: %s", ", ".join(sorted(base.rule_ids)) or "(none)")

    def _rule_set_for(file_ctx: FileContext) -> RuleSet:
        prefix = _override_prefix(config, file_ctx.relative_path)
        return base if prefix is None else scoped[prefix]

    def _lint(file_ctx: FileContext) -> list[Violation]:
        found = _lint_file_cached(_rule_set_for(file_ctx), file_ctx, cache=cache)
        if changed_lines is None:
            return found
        return [v for v in found if _is_on_changed_line(v, changed_lines)]

    violations: list[Violation] = []
    if changed_lines is None:
        for rule in base.rules:
            violations.extend(_with_severity(base, rule.check_project(project)))

    file_list = list(files)
    pool_size = min(workers or 1, len(file_list))
    if pool_size > 1:
        with ThreadPoolExecutor(max_workers=pool_size) as executor:
            violations.extend(_drain(file_list, executor.map(_lint, file_list), on_file_done))
    else:
        violations.extend(_drain(file_list, map(_lint, file_list), on_file_done))
    return violations


def _drain(
    file_list: list[FileContext],
    results: Iterator[list[Violation]],
    on_file_done: Callable[[Path], None] | None,
) -> Iterator[Violation]:
    for file_ctx, found in zip(file_list, results, strict=True):
        yield from found
        if on_file_done is not None:
            on_file_done(file_ctx.path)


def _lint_file_cached(rule_set: RuleSet, file_ctx: FileContext, *, cache: FileViolationCache | None) -> list[Violation]:
    if cache is None:
        return lint_file(rule_set, file_ctx)

    content_hash = file_content_hash(file_ctx.text)
    cached = cache.get(relative_path=file_ctx.relative_path, content_hash=content_hash)
    if cached is not None:
        return cached
    found = lint_file(rule_set, file_ctx)
    cache.put(relative_path=file_ctx.relative_path, content_hash=content_hash, violations=found)
    return found


def lint_file(rule_set: RuleSet, file_ctx: FileContext) -> list[Violation]:
    """Run `rule_set` on one file, applying severity overrides and in-file suppressions."""

    found: list[Violation] = []
    for rule in rule_set.rules:
        for violation in _with_severity(rule_set, rule.check_file(file_ctx)):
            line = violation.location.start_line if violation.location is not None else None
            if not file_ctx.suppressions.is_suppressed(violation.rule_id, line=line):
                found.append(violation)
    return found


def _with_severity(rule_set: RuleSet, violations: list[Violation]) -> list[Violation]:
    return [
        replace(v, severity=rule_set.severities[v.rule_id]) if v.rule_id in rule_set.severities else v
        for v in violations
    ]


def _is_on_changed_line(violation: Violation, changed_lines: dict[Path, set[int]]) -> bool:
    location = violation.location
    if location is None or location.path is None or location.start_line is None:
        return True
    return location.start_line in changed_lines.get(Path(location.path).resolve(), ())
