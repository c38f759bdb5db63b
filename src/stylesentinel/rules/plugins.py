from __future__ import annotations

import logging
import pkgutil
from collections.abc import Iterable
from types import ModuleType
from typing import Any

from stylesentinel.rules.base import BaseRule

logger = logging.getLogger(__name__)

# Module attributes looked up, in order, when a spec names a bare module.
PLUGIN_EXPORTS = ("stylesentinel_rules", "RULES")


class PluginLoadError(RuntimeError):
    """Raised when a configured plugin cannot be imported or doesn't expose rules."""


def load_plugin_rules(plugin_specs: Iterable[str]) -> list[BaseRule]:
    """
    Load rules from `module` or `module:attr` specs.

    The target may be a module exposing `stylesentinel_rules` / `RULES`, a list
    or tuple of `BaseRule` instances, or a callable returning one.
    """

    rules: list[BaseRule] = []
    for spec in (raw.strip() for raw in plugin_specs):
        if not spec:
            continue
        loaded = _rules_from(_resolve(spec), spec=spec)
        logger.debug("plugin %s: %d rule(s)", spec, len(loaded))
        rules.extend(loaded)
    return rules


def _resolve(spec: str) -> Any:
    try:
        return pkgutil.resolve_name(spec)
    except AttributeError as exc:
        raise PluginLoadError(f"Plugin {spec!r} has no attribute to load: {exc}") from exc
    except Exception as exc:  # noqa: BLE001
        raise PluginLoadError(f"Failed to import plugin {spec!r}: {exc}") from exc


def _rules_from(obj: Any, *, spec: str) -> list[BaseRule]:
    if isinstance(obj, ModuleType):
        name = next((n for n in PLUGIN_EXPORTS if hasattr(obj, n)), None)
        if name is None:
            raise PluginLoadError(f"Plugin module {spec!r} must define `stylesentinel_rules()` or `RULES`.")
        obj = getattr(obj, name)

    if callable(obj):
        obj = obj()
    if not isinstance(obj, list | tuple):
        raise PluginLoadError(f"Plugin {spec!r} must provide a list of rules, got: {type(obj).__name__}")

    wrong = sorted({type(item).__name__ for item in obj if not isinstance(item, BaseRule)})
    if wrong:
        raise PluginLoadError(f"Plugin rules must be BaseRule instances, got: {', '.join(wrong)}")
    return list(obj)
