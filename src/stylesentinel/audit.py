from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from stylesentinel.baseline import BaselineError, filter_violations, load_baseline
from stylesentinel.cache import CacheError, FileViolationCache, config_fingerprint
from stylesentinel.config import StyleSentinelConfig
from stylesentinel.engine.detection import build_rule_set, detect
from stylesentinel.engine.scoring import summarize
from stylesentinel.engine.types import ScanSummary, Violation
from stylesentinel.rules.plugins import load_plugin_rules
from stylesentinel.rules.registry import all_rules, set_extra_rules
from stylesentinel.scanner import (
    ScanTarget,
    build_file_contexts,
    build_project_context,
    discover_files,
    prepare_target,
    worker_count_from_env,
)
from stylesentinel.utils import resolve_project_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuditResult:
    target: ScanTarget
    files: tuple[Path, ...]
    summary: ScanSummary


@dataclass(frozen=True, slots=True)
class AuditCallbacks:
    on_context_built: Callable[[Path], None] | None = None
    on_file_contexts_ready: Callable[[int], None] | None = None
    on_file_scanned: Callable[[Path], None] | None = None


def audit_path(
    scan_path: Path,
    *,
    apply_baseline: bool = True,
    use_cache: bool = True,
    scoring_profile: str | None = None,
    callbacks: AuditCallbacks | None = None,
) -> AuditResult:
    """Lint everything under `scan_path` and score the findings."""

    target = prepare_target(scan_path)
    if scoring_profile is not None:
        scoring = replace(target.config.scoring, profile=scoring_profile)
        target = replace(target, config=replace(target.config, scoring=scoring))
    files = discover_files(target)
    logger.info("Scanning %d file(s) under %s", len(files), target.scan_path)
    return audit_files(target, files=files, apply_baseline=apply_baseline, use_cache=use_cache, callbacks=callbacks)


def audit_files(
    target: ScanTarget,
    *,
    files: list[Path],
    changed_lines: dict[Path, set[int]] | None = None,
    apply_baseline: bool = True,
    use_cache: bool = True,
    callbacks: AuditCallbacks | None = None,
) -> AuditResult:
    """
    Lint an explicit list of files of `target`.

    With `changed_lines`, only findings on those lines are reported and the
    baseline is not applied.
    """

    callbacks = callbacks or AuditCallbacks()
    workers = worker_count_from_env()
    project = build_project_context(target, files)
    file_contexts = build_file_contexts(project, files, workers=workers, on_path_done=callbacks.on_context_built)
    if callbacks.on_file_contexts_ready is not None:
        callbacks.on_file_contexts_ready(len(file_contexts))

    # PluginLoadError propagates; the CLI reports it as a configuration error.
    set_extra_rules(load_plugin_rules(target.config.plugins))
    _warn_unknown_override_ids(target.config, {r.meta.rule_id for r in all_rules()})

    cache = _load_cache(target) if use_cache else None
    violations = detect(
        project,
        file_contexts,
        changed_lines=changed_lines,
        workers=workers,
        cache=cache,
        on_file_done=callbacks.on_file_scanned,
    )
    if cache is not None:
        _save_cache(cache)
    if apply_baseline and changed_lines is None:
        violations = _apply_baseline(target, violations)

    summary = summarize(files_scanned=len(file_contexts), violations=violations, scoring=target.config.scoring)
    return AuditResult(target=target, files=tuple(files), summary=summary)


def _save_cache(cache: FileViolationCache) -> None:
    hits, misses = cache.stats()
    logger.debug("cache: %d hits, %d misses", hits, misses)
    try:
        cache.save()
    except CacheError as exc:
        logger.warning("%s", exc)


def _apply_baseline(target: ScanTarget, violations: list[Violation]) -> list[Violation]:
    spec = target.config.baseline
    if not spec:
        return violations
    path = resolve_project_file(target.project_root, spec)
    if path is None:
        logger.warning("refusing baseline path outside project root: %r", spec)
        return violations
    if not path.exists():
        return violations
    try:
        baseline = load_baseline(path)
    except BaselineError as exc:
        logger.warning("failed to load baseline (%s): %s", path, exc)
        return violations
    return filter_violations(violations, baseline, project_root=target.project_root)


def _warn_unknown_override_ids(config: StyleSentinelConfig, available_ids: set[str]) -> None:
    unknown = set(config.rules.overrides).union(config.rules.severity_overrides)
    for rules_cfg in config.directory_overrides.values():
        unknown.update(rules_cfg.overrides)
        unknown.update(rules_cfg.severity_overrides)
    for rule_id in sorted(unknown - available_ids):
        logger.warning("unknown rule id in rules overrides: %s", rule_id)


def _load_cache(target: ScanTarget) -> FileViolationCache | None:
    config = target.config
    if not config.cache.enabled:
        return None
    cache_path = resolve_project_file(target.project_root, config.cache.path)
    if cache_path is None:
        logger.warning("refusing cache path outside project root: %r", config.cache.path)
        return None

    available = list(all_rules())
    scopes = {"": config.rules, **{f"dir:{prefix}": cfg for prefix, cfg in config.directory_overrides.items()}}
    enabled_ids: set[str] = set()
    overrides: dict[str, str] = {}
    for scope, rules_cfg in sorted(scopes.items()):
        rule_set = build_rule_set(config, rules_cfg, available)
        enabled_ids.update(rule_set.rule_ids)
        if scope:
            overrides[f"{scope}:enabled"] = ",".join(sorted(rule_set.rule_ids))
        for rule_id, severity in sorted(rule_set.severities.items()):
            overrides[f"{scope}:{rule_id}" if scope else rule_id] = severity

    fingerprint = config_fingerprint(
        enabled_rule_ids=enabled_ids,
        overrides=overrides,
        plugins=config.plugins,
        naming=config.naming,
        structure=config.structure,
    )
    return FileViolationCache.load(cache_path, fingerprint=fingerprint, project_root=target.project_root)
