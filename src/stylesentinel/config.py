from __future__ import annotations

import fnmatch
import re
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, NoReturn, cast

from stylesentinel.engine.types import DIMENSIONS, SEVERITIES, Severity


class ConfigError(ValueError):
    """Raised when a StyleSentinel configuration file is invalid."""


RuleId = str
RuleGroup = str
FailOn = Literal["info", "warn", "error", "none"]


_RULE_ID_RE = re.compile(r"^[A-Z][0-9]{2,}$")

CONFIG_FILENAME = ".stylesentinel.toml"
PYPROJECT_FILENAME = "pyproject.toml"

DEFAULT_THRESHOLD = 70
DEFAULT_FAIL_ON_LOW_SCORE = False
DEFAULT_FAIL_ON: FailOn = "error"
DEFAULT_LANGUAGES: tuple[str, ...] = ("javascript", "typescript")
DEFAULT_CACHE_PATH = ".stylesentinel/cache.json"


# Mirrors the built-in registry; config resolves groups without importing the rules.
DEFAULT_RULE_GROUPS: dict[RuleGroup, tuple[RuleId, ...]] = {
    "naming": ("N01", "N02", "N03", "N04", "N05", "N06", "N07", "N08"),
    "structure": ("S01", "S02", "S03", "S04", "S05", "S06", "S07"),
}
DEFAULT_RULE_GROUPS["all"] = tuple(
    rule_id for group in ("naming", "structure") for rule_id in DEFAULT_RULE_GROUPS[group]
)

DEFAULT_BOOLEAN_PREFIXES: tuple[str, ...] = (
    "is",
    "has",
    "should",
    "can",
    "will",
    "did",
    "was",
    "are",
    "does",
    "needs",
    "allow",
    "allows",
)

DEFAULT_VERBS: tuple[str, ...] = (
    "add",
    "apply",
    "assert",
    "attach",
    "bind",
    "build",
    "calculate",
    "cancel",
    "check",
    "clear",
    "clone",
    "close",
    "collect",
    "compare",
    "compose",
    "compute",
    "connect",
    "convert",
    "copy",
    "count",
    "create",
    "decode",
    "delete",
    "detach",
    "disable",
    "disconnect",
    "dispatch",
    "emit",
    "enable",
    "encode",
    "ensure",
    "extract",
    "fetch",
    "filter",
    "find",
    "format",
    "generate",
    "get",
    "handle",
    "hide",
    "init",
    "initialize",
    "insert",
    "invoke",
    "is",
    "has",
    "should",
    "can",
    "join",
    "load",
    "log",
    "make",
    "map",
    "merge",
    "mount",
    "normalize",
    "notify",
    "open",
    "parse",
    "prepare",
    "print",
    "process",
    "push",
    "read",
    "receive",
    "reduce",
    "refresh",
    "register",
    "reject",
    "remove",
    "render",
    "replace",
    "request",
    "reset",
    "resolve",
    "restore",
    "retry",
    "run",
    "save",
    "schedule",
    "select",
    "send",
    "serialize",
    "set",
    "setup",
    "show",
    "sort",
    "split",
    "start",
    "stop",
    "store",
    "submit",
    "subscribe",
    "sync",
    "to",
    "toggle",
    "track",
    "transform",
    "trigger",
    "unmount",
    "unregister",
    "unsubscribe",
    "update",
    "upload",
    "use",
    "validate",
    "verify",
    "wait",
    "watch",
    "wrap",
    "write",
)

DEFAULT_ALLOWED_FUNCTION_NAMES: tuple[str, ...] = (
    "main",
    "constructor",
    "toString",
    "toJSON",
    "valueOf",
    "then",
    "catch",
    "finally",
    "next",
    "describe",
    "it",
    "test",
    "beforeEach",
    "afterEach",
    "beforeAll",
    "afterAll",
    "componentDidMount",
    "componentDidUpdate",
    "componentWillUnmount",
    "shouldComponentUpdate",
    "getDerivedStateFromProps",
)

DEFAULT_ALLOWED_SHORT_NAMES: tuple[str, ...] = ("i", "j", "k", "x", "y", "z", "_", "$", "e", "t")

DEFAULT_ALLOWED_ABBREVIATIONS: tuple[str, ...] = (
    "api",
    "cdn",
    "cli",
    "css",
    "csv",
    "db",
    "dns",
    "dom",
    "fps",
    "gmt",
    "hsl",
    "html",
    "http",
    "https",
    "id",
    "ids",
    "jpg",
    "js",
    "jsx",
    "jwt",
    "md",
    "mdx",
    "pdf",
    "png",
    "px",
    "rgb",
    "rgba",
    "sdk",
    "src",
    "sql",
    "ssh",
    "ssl",
    "svg",
    "tcp",
    "tls",
    "ts",
    "tsx",
    "udp",
    "url",
    "urls",
    "utc",
    "www",
    "xml",
    "xhr",
)

DEFAULT_MAGIC_NUMBERS_ALLOWED: tuple[float, ...] = (-1.0, 0.0, 1.0, 2.0)


@dataclass(frozen=True, slots=True)
class RuleOverride:
    severity: Severity | None = None


@dataclass(frozen=True, slots=True)
class RulesConfig:
    enable: str | tuple[str, ...] = "all"
    disable: tuple[str, ...] = ()
    overrides: Mapping[RuleId, RuleOverride] = field(default_factory=lambda: MappingProxyType({}))
    severity_overrides: Mapping[RuleId, Severity] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class NamingConfig:
    """
    Vocabulary used by the naming rules.

    Word lists configured by users are appended to the built-in defaults.
    """

    boolean_prefixes: tuple[str, ...] = DEFAULT_BOOLEAN_PREFIXES
    verbs: tuple[str, ...] = DEFAULT_VERBS
    allowed_function_names: tuple[str, ...] = DEFAULT_ALLOWED_FUNCTION_NAMES
    allowed_short_names: tuple[str, ...] = DEFAULT_ALLOWED_SHORT_NAMES
    allowed_abbreviations: tuple[str, ...] = DEFAULT_ALLOWED_ABBREVIATIONS
    min_length: int = 2
    max_length: int = 30
    max_words: int = 5


@dataclass(frozen=True, slots=True)
class StructureConfig:
    max_depth: int = 3
    min_cases: int = 3
    max_ternary_depth: int = 1
    magic_numbers_allowed: tuple[float, ...] = DEFAULT_MAGIC_NUMBERS_ALLOWED


@dataclass(frozen=True, slots=True)
class CacheConfig:
    enabled: bool = False
    path: str = DEFAULT_CACHE_PATH


SCORING_PROFILE_NAMES: tuple[str, ...] = ("default", "strict", "lenient")


@dataclass(frozen=True, slots=True)
class ScoringConfig:
    """
    Scoring configuration.

    `profile` picks a built-in penalty table; `penalties` replaces single
    (dimension, severity) cells of it.
    """

    profile: str = "default"
    penalties: Mapping[str, Mapping[str, int]] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class StyleSentinelConfig:
    threshold: int = DEFAULT_THRESHOLD
    fail_on_low_score: bool = DEFAULT_FAIL_ON_LOW_SCORE
    fail_on: FailOn = DEFAULT_FAIL_ON
    languages: tuple[str, ...] = DEFAULT_LANGUAGES
    rules: RulesConfig = field(default_factory=RulesConfig)
    directory_overrides: Mapping[str, RulesConfig] = field(default_factory=lambda: MappingProxyType({}))
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)
    baseline: str | None = None
    cache: CacheConfig = field(default_factory=CacheConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    naming: NamingConfig = field(default_factory=NamingConfig)
    structure: StructureConfig = field(default_factory=StructureConfig)
    plugins: tuple[str, ...] = ()


_SEVERITY_ALIASES = {"warning": "warn"}
_FAIL_ON_ALIASES = {"warning": "warn", "never": "none", "off": "none"}


def _choice(value: Any, *, field_name: str, allowed: tuple[str, ...], aliases: Mapping[str, str]) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"`{field_name}` must be a string.")
    normalized = value.strip().lower()
    normalized = aliases.get(normalized, normalized)
    if normalized not in allowed:
        raise ConfigError(f"`{field_name}` must be one of: {', '.join(allowed)}.")
    return normalized


def parse_severity(value: Any, *, field_name: str) -> Severity:
    return cast(Severity, _choice(value, field_name=field_name, allowed=SEVERITIES, aliases=_SEVERITY_ALIASES))


def parse_fail_on(value: Any, *, field_name: str = "fail-on") -> FailOn:
    allowed = (*SEVERITIES, "none")
    return cast(FailOn, _choice(value, field_name=field_name, allowed=allowed, aliases=_FAIL_ON_ALIASES))


@dataclass(frozen=True, slots=True)
class _Section:
    """A TOML table together with its dotted location, used in error messages."""

    data: Mapping[str, Any]
    path: str = ""

    def name(self, key: str) -> str:
        return f"{self.path}{key}"

    def fail(self, key: str, problem: str) -> NoReturn:
        raise ConfigError(f"`{self.name(key)}` {problem}")

    def has(self, key: str) -> bool:
        return key in self.data or key.replace("-", "_") in self.data

    def raw(self, key: str) -> Any:
        # Dashed and underscored spellings are both accepted.
        return self.data.get(key, self.data.get(key.replace("-", "_")))

    def section(self, key: str) -> _Section | None:
        value = self.raw(key)
        if value is None:
            return None
        if not isinstance(value, dict):
            self.fail(key, "must be a table.")
        return _Section(value, f"{self.name(key)}.")

    def integer(self, key: str, default: int, *, low: int | None = None, high: int | None = None) -> int:
        value = self.raw(key)
        if value is None:
            return default
        if not isinstance(value, int) or isinstance(value, bool):
            self.fail(key, "must be an integer.")
        if low is not None and high is not None and not low <= value <= high:
            self.fail(key, f"must be between {low} and {high}.")
        if low is not None and value < low:
            self.fail(key, f"must be an integer >= {low}.")
        return value

    def boolean(self, key: str, default: bool) -> bool:
        value = self.raw(key)
        if value is None:
            return default
        if not isinstance(value, bool):
            self.fail(key, "must be a boolean.")
        return value

    def string(self, key: str) -> str | None:
        value = self.raw(key)
        if value is None:
            return None
        if not isinstance(value, str):
            self.fail(key, "must be a string.")
        return value.strip()

    def strings(self, key: str) -> tuple[str, ...]:
        value = self.raw(key)
        if value is None:
            return ()
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            self.fail(key, "must be a list of strings.")
        return tuple(v.strip() for v in value if v.strip())


def config_file_for(project_dir: Path) -> Path | None:
    """Return the file configuration would be loaded from, if any."""

    for candidate in (project_dir / CONFIG_FILENAME, project_dir / PYPROJECT_FILENAME):
        if candidate.is_file():
            return candidate
    return None


def load_config(project_dir: Path | str = ".") -> StyleSentinelConfig:
    """
    Load configuration for `project_dir`.

    `.stylesentinel.toml` wins when present; its top-level table is the
    configuration. Otherwise `[tool.stylesentinel]` in `pyproject.toml` is
    used. A missing file or table yields the defaults.
    """

    config_path = config_file_for(Path(project_dir))
    if config_path is None:
        return StyleSentinelConfig()

    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {config_path}: {exc}") from exc

    if config_path.name == CONFIG_FILENAME:
        return _parse_config(_Section(data))

    tool = data.get("tool")
    table = tool.get("stylesentinel") if isinstance(tool, dict) else None
    if not isinstance(table, dict) or not table:
        return StyleSentinelConfig()
    return _parse_config(_Section(table, "tool.stylesentinel."))


def _parse_fail_on_field(root: _Section) -> FailOn:
    value = root.raw("fail-on")
    return DEFAULT_FAIL_ON if value is None else parse_fail_on(value, field_name=root.name("fail-on"))


def _parse_config(root: _Section) -> StyleSentinelConfig:
    rules = _parse_rules(root.section("rules"), base=RulesConfig())
    return StyleSentinelConfig(
        threshold=root.integer("threshold", DEFAULT_THRESHOLD, low=0, high=100),
        fail_on_low_score=root.boolean("fail-on-low-score", DEFAULT_FAIL_ON_LOW_SCORE),
        fail_on=_parse_fail_on_field(root),
        languages=tuple(v.lower() for v in root.strings("languages")) or DEFAULT_LANGUAGES,
        rules=rules,
        directory_overrides=_parse_directory_overrides(root.section("overrides"), base=rules),
        ignore=IgnoreConfig(paths=_parse_ignore_paths(root.section("ignore"))),
        baseline=root.string("baseline") or None,
        cache=_parse_cache(root.section("cache")),
        scoring=_parse_scoring(root.section("scoring")),
        naming=_parse_naming(root.section("naming")),
        structure=_parse_structure(root.section("structure")),
        plugins=root.strings("plugins"),
    )


_RULES_RESERVED_KEYS = frozenset({"enable", "disable", "severity_overrides", "severity-overrides"})


def _split_tokens(values: Iterable[str]) -> tuple[str, ...]:
    """Split comma/semicolon separated entries into individual rule tokens."""

    return tuple(token.strip() for raw in values for token in raw.replace(";", ",").split(",") if token.strip())


def _is_group(token: str) -> bool:
    return _normalize_group(token) in DEFAULT_RULE_GROUPS


def _normalize_group(value: str) -> str:
    return value.strip().lower().replace("-", "_")


def _rule_tokens(section: _Section, key: str) -> tuple[str, ...]:
    value = section.raw(key)
    if isinstance(value, str):
        tokens = _split_tokens([value])
    elif isinstance(value, list) and all(isinstance(v, str) for v in value):
        tokens = _split_tokens(value)
    else:
        section.fail(key, "must be a string or a list of strings.")
    for token in tokens:
        if not (_is_group(token) or _RULE_ID_RE.match(token.upper())):
            section.fail(
                key,
                f"contains unknown rule group or invalid rule id: {token!r}. "
                f"Valid groups: {', '.join(sorted(DEFAULT_RULE_GROUPS))}. Valid ids look like N01/S02.",
            )
    return tokens


def _rule_id_key(section: _Section, key: str) -> RuleId:
    rule_id = str(key).strip().upper()
    if not _RULE_ID_RE.match(rule_id):
        section.fail(key, "is invalid; expected a rule id like N01.")
    return rule_id


def _parse_rules(section: _Section | None, *, base: RulesConfig) -> RulesConfig:
    """Parse a rules table; keys it leaves out are inherited from `base`."""

    if section is None:
        return base

    enable: str | tuple[str, ...] = base.enable
    if section.has("enable"):
        tokens = _rule_tokens(section, "enable")
        enable = tokens[0] if len(tokens) == 1 and not isinstance(section.raw("enable"), list) else tokens
        enable = enable or "all"
    disable = _rule_tokens(section, "disable") if section.has("disable") else base.disable

    severity_overrides = dict(base.severity_overrides)
    table = section.section("severity-overrides")
    for key, value in table.data.items() if table is not None else ():
        severity_overrides[_rule_id_key(table, key)] = parse_severity(value, field_name=table.name(key))

    overrides = dict(base.overrides)
    for key, value in section.data.items():
        if key in _RULES_RESERVED_KEYS or not isinstance(value, dict):
            continue
        rule_id = _rule_id_key(section, key)
        severity = value.get("severity")
        overrides[rule_id] = RuleOverride(
            severity=None if severity is None else parse_severity(severity, field_name=f"{section.name(key)}.severity")
        )

    return RulesConfig(
        enable=enable,
        disable=disable,
        overrides=MappingProxyType(overrides),
        severity_overrides=MappingProxyType(severity_overrides),
    )


def _override_prefix(section: _Section, key: str) -> str:
    prefix = key.strip().replace("\\", "/").removeprefix("./")
    if not prefix:
        section.fail(key, "must not be empty.")
    if prefix.startswith("/"):
        section.fail(key, "must be a relative path prefix (no leading '/').")
    if ".." in Path(prefix).parts:
        section.fail(key, "must not contain '..' segments.")
    return prefix if prefix.endswith("/") else prefix + "/"


def _parse_directory_overrides(section: _Section | None, *, base: RulesConfig) -> Mapping[str, RulesConfig]:
    out: dict[str, RulesConfig] = {}
    if section is None:
        return MappingProxyType(out)
    for key in section.data:
        entry = section.section(key)
        rules = entry.section("rules") if entry is not None else None
        if rules is None:
            continue
        prefix = _override_prefix(section, key)
        if prefix in out:
            section.fail(key, f"duplicates another override prefix after normalization: {prefix!r}.")
        out[prefix] = _parse_rules(rules, base=base)
    return MappingProxyType(out)


def _parse_ignore_paths(section: _Section | None) -> tuple[str, ...]:
    return section.strings("paths") if section is not None else ()


def _parse_cache(section: _Section | None) -> CacheConfig:
    if section is None:
        return CacheConfig()
    return CacheConfig(
        enabled=section.boolean("enabled", False),
        path=section.string("path") or DEFAULT_CACHE_PATH,
    )


def _parse_scoring(section: _Section | None) -> ScoringConfig:
    if section is None:
        return ScoringConfig()

    profile = _choice(
        section.raw("profile") or "default",
        field_name=section.name("profile"),
        allowed=SCORING_PROFILE_NAMES,
        aliases={},
    )

    penalties: dict[str, Mapping[str, int]] = {}
    table = section.section("penalties")
    for dim_key in table.data if table is not None else ():
        dim = str(dim_key).strip().lower()
        if dim not in DIMENSIONS:
            table.fail(dim_key, f"is not a scoring dimension ({', '.join(DIMENSIONS)}).")
        cells = table.section(dim_key)
        assert cells is not None
        row: dict[str, int] = {}
        for sev_key in cells.data:
            sev = str(sev_key).strip().lower()
            if sev not in SEVERITIES:
                cells.fail(sev_key, f"is not a severity ({', '.join(SEVERITIES)}).")
            row[sev] = cells.integer(sev_key, 0, low=0)
        penalties[dim] = MappingProxyType(row)

    return ScoringConfig(profile=profile, penalties=MappingProxyType(penalties))


def _merge(base: tuple[str, ...], section: _Section, key: str, *, lower: bool = False) -> tuple[str, ...]:
    """
    Combine a configured word list with the built-in one.

    Configured words are appended to the defaults unless the table sets
    `extend-defaults = false`, in which case they replace them.
    """

    if not section.has(key):
        return base
    words = tuple(w.lower() for w in section.strings(key)) if lower else section.strings(key)
    if section.boolean("extend-defaults", True):
        words = (*base, *words)
    return tuple(dict.fromkeys(words))


def _parse_naming(section: _Section | None) -> NamingConfig:
    base = NamingConfig()
    if section is None:
        return base

    min_length = section.integer("min-length", base.min_length, low=1)
    max_length = section.integer("max-length", base.max_length, low=1)
    if min_length > max_length:
        section.fail("min-length", f"must not exceed `{section.name('max-length')}`.")

    return NamingConfig(
        boolean_prefixes=_merge(base.boolean_prefixes, section, "boolean-prefixes", lower=True),
        verbs=_merge(base.verbs, section, "verbs", lower=True),
        allowed_function_names=_merge(base.allowed_function_names, section, "allowed-function-names"),
        allowed_short_names=_merge(base.allowed_short_names, section, "allowed-short-names"),
        allowed_abbreviations=_merge(base.allowed_abbreviations, section, "allowed-abbreviations", lower=True),
        min_length=min_length,
        max_length=max_length,
        max_words=section.integer("max-words", base.max_words, low=1),
    )


def _parse_structure(section: _Section | None) -> StructureConfig:
    base = StructureConfig()
    if section is None:
        return base

    allowed = base.magic_numbers_allowed
    extra = section.raw("magic-numbers-allowed")
    if extra is not None:
        if not isinstance(extra, list) or not all(isinstance(v, int | float) and not isinstance(v, bool) for v in extra):
            section.fail("magic-numbers-allowed", "must be a list of numbers.")
        configured = {float(v) for v in extra}
        if section.boolean("extend-defaults", True):
            configured.update(allowed)
        allowed = tuple(sorted(configured))

    return StructureConfig(
        max_depth=section.integer("max-depth", base.max_depth, low=1),
        min_cases=section.integer("min-cases", base.min_cases, low=1),
        max_ternary_depth=section.integer("max-ternary-depth", base.max_ternary_depth, low=1),
        magic_numbers_allowed=allowed,
    )


def _expand_rule_tokens(tokens: Iterable[str], available: set[RuleId] | None) -> set[RuleId]:
    out: set[RuleId] = set()
    for token in tokens:
        group = _normalize_group(token)
        if group == "all":
            out.update(available if available is not None else DEFAULT_RULE_GROUPS["all"])
        elif group in DEFAULT_RULE_GROUPS:
            out.update(DEFAULT_RULE_GROUPS[group])
        else:
            out.add(token.strip().upper())
    return out


def compute_enabled_rule_ids(
    config: StyleSentinelConfig,
    *,
    available_rule_ids: Iterable[RuleId] | None = None,
) -> set[RuleId]:
    """
    Resolve `rules.enable` minus `rules.disable` into a set of rule ids.

    Both accept group names ("all", "naming", "structure") and explicit ids.
    When `available_rule_ids` is given the result is limited to it.
    """

    available = set(available_rule_ids) if available_rule_ids is not None else None
    enable = config.rules.enable
    enabled = _expand_rule_tokens((enable,) if isinstance(enable, str) else enable, available)
    enabled -= _expand_rule_tokens(config.rules.disable, available)
    return enabled if available is None else enabled & available


def _pattern_matches(pattern: str, rel_posix: str, basename: str) -> bool:
    if pattern.endswith("/"):
        return rel_posix.startswith(pattern)
    if "/" in pattern:
        return fnmatch.fnmatch(rel_posix, pattern)
    return fnmatch.fnmatch(basename, pattern) or fnmatch.fnmatch(rel_posix, pattern)


def path_is_ignored(path: Path, *, project_root: Path, ignore_patterns: Iterable[str]) -> bool:
    """
    Return True if `path` matches one of `ignore_patterns`.

    Patterns apply to the POSIX path relative to `project_root`:
    "vendor/" matches a directory prefix, "*.min.js" matches basenames and
    "src/**/generated/*.ts" matches the full relative path. Paths outside
    the root are never ignored.
    """

    try:
        relative = path.resolve().relative_to(project_root.resolve())
    except (ValueError, OSError, RuntimeError):
        return False

    rel_posix = relative.as_posix()
    patterns = (p.strip().replace("\\", "/").removeprefix("./") for p in ignore_patterns)
    return any(_pattern_matches(p, rel_posix, relative.name) for p in patterns if p)
