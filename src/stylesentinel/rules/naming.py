from __future__ import annotations

from dataclasses import dataclass

from stylesentinel.engine.context import FileContext
from stylesentinel.engine.types import Violation
from stylesentinel.rules.base import BaseRule, RuleMeta, loc_from_node
from stylesentinel.rules.utils import (
    Declaration,
    is_boolean_annotation,
    is_boolean_expression,
    is_camel_case,
    is_pascal_case,
    is_screaming_snake_case,
    iter_declarations,
    split_words,
    strip_sigils,
)

_NEGATION_WORDS = frozenset({"not", "no", "non"})
_VOWELS = frozenset("aeiouy")


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def _to_camel(words: list[str]) -> str:
    if not words:
        return ""
    return words[0].lower() + "".join(_capitalize(w.lower()) for w in words[1:])


def _to_pascal(words: list[str]) -> str:
    return "".join(_capitalize(w.lower()) for w in words)


def _has_prefix(words: list[str], prefixes: tuple[str, ...]) -> bool:
    return bool(words) and words[0].lower() in prefixes


@dataclass(frozen=True, slots=True)
class N01BooleanPrefix(BaseRule):
    meta = RuleMeta(
        rule_id="N01",
        title="Boolean name without prefix",
        description="Boolean variables should read as a question: `isVisible`, `hasItems`, `shouldRetry`.",
        default_severity="warn",
        score_dimension="naming",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        prefixes = ctx.naming.boolean_prefixes
        violations: list[Violation] = []
        for decl in iter_declarations(ctx):
            if decl.kind not in {"variable", "field", "parameter"}:
                continue
            if decl.binding == "const" and is_screaming_snake_case(decl.name) and "_" in decl.name:
                # Environment-style flags (`DEBUG_MODE = true`) follow constant naming instead.
                continue
            if not (is_boolean_expression(decl.value) or is_boolean_annotation(ctx, decl.type_annotation)):
                continue
            words = split_words(decl.name)
            if _has_prefix(words, prefixes):
                continue
            violations.append(
                self._violation(
                    message=f"Boolean `{decl.name}` does not start with a boolean prefix.",
                    suggestion=f"Rename to `is{_capitalize(strip_sigils(decl.name))}` (or has/should/can...).",
                    location=loc_from_node(ctx, decl.node),
                )
            )
        return violations


@dataclass(frozen=True, slots=True)
class N02NegatedBoolean(BaseRule):
    meta = RuleMeta(
        rule_id="N02",
        title="Negated boolean name",
        description="Negated boolean names (`isNotActive`) produce double negatives like `!isNotActive`.",
        default_severity="info",
        score_dimension="naming",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        prefixes = ctx.naming.boolean_prefixes
        violations: list[Violation] = []
        for decl in iter_declarations(ctx):
            if decl.kind == "class":
                continue
            words = split_words(decl.name)
            if len(words) < 2 or not _has_prefix(words, prefixes):
                continue
            if words[1].lower() not in _NEGATION_WORDS:
                continue
            positive = _to_camel([words[0], *words[2:]]) if len(words) > 2 else None
            suggestion = "Use the positive form and negate at the call site."
            if positive:
                suggestion = f"Use the positive form (`{positive}`) and negate at the call site."
            violations.append(
                self._violation(
                    message=f"`{decl.name}` is a negated boolean name.",
                    suggestion=suggestion,
                    location=loc_from_node(ctx, decl.node),
                )
            )
        return violations


@dataclass(frozen=True, slots=True)
class N03VerbFirstFunction(BaseRule):
    meta = RuleMeta(
        rule_id="N03",
        title="Function name does not start with a verb",
        description="Functions do things; their names should start with a verb (`getUser`, `handleClick`).",
        default_severity="warn",
        score_dimension="naming",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        naming = ctx.naming
        violations: list[Violation] = []
        for decl in iter_declarations(ctx):
            if decl.kind not in {"function", "method"}:
                continue
            if self._is_exempt(decl, allowed=naming.allowed_function_names):
                continue
            words = split_words(decl.name)
            if not words or words[0].lower() in naming.verbs:
                continue
            violations.append(
                self._violation(
                    message=f"Function `{decl.name}` does not start with a verb.",
                    suggestion=f"Say what it does, e.g. `get{_to_pascal(words)}` or `compute{_to_pascal(words)}`.",
                    location=loc_from_node(ctx, decl.node),
                )
            )
        return violations

    @staticmethod
    def _is_exempt(decl: Declaration, *, allowed: tuple[str, ...]) -> bool:
        if decl.is_accessor or decl.name == "constructor" or decl.name in allowed:
            return True
        if is_pascal_case(decl.name):
            return True
        words = split_words(decl.name)
        return len(words) > 1 and words[0] == "on"


@dataclass(frozen=True, slots=True)
class N04NameTooShort(BaseRule):
    meta = RuleMeta(
        rule_id="N04",
        title="Name too short",
        description="Single-letter names outside loop counters hide intent.",
        default_severity="warn",
        score_dimension="naming",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        naming = ctx.naming
        violations: list[Violation] = []
        for decl in iter_declarations(ctx):
            if decl.name in naming.allowed_short_names:
                continue
            if decl.is_loop_counter:
                continue
            bare = strip_sigils(decl.name) or decl.name
            if len(bare) >= naming.min_length:
                continue
            violations.append(
                self._violation(
                    message=f"Name `{decl.name}` is shorter than {naming.min_length} characters.",
                    suggestion="Use a descriptive name that says what the value holds.",
                    location=loc_from_node(ctx, decl.node),
                )
            )
        return violations


@dataclass(frozen=True, slots=True)
class N05NameTooLong(BaseRule):
    meta = RuleMeta(
        rule_id="N05",
        title="Name too long",
        description="Very long names are hard to scan; they usually encode context the code already provides.",
        default_severity="info",
        score_dimension="naming",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        naming = ctx.naming
        violations: list[Violation] = []
        for decl in iter_declarations(ctx):
            word_count = len(split_words(decl.name))
            if len(decl.name) > naming.max_length:
                message = f"Name `{decl.name}` is {len(decl.name)} characters long (>{naming.max_length})."
            elif word_count > naming.max_words:
                message = f"Name `{decl.name}` has {word_count} words (>{naming.max_words})."
            else:
                continue
            violations.append(
                self._violation(
                    message=message,
                    suggestion="Drop words that repeat the surrounding module, class or function context.",
                    location=loc_from_node(ctx, decl.node),
                )
            )
        return violations


@dataclass(frozen=True, slots=True)
class N06AbbreviatedName(BaseRule):
    meta = RuleMeta(
        rule_id="N06",
        title="Abbreviated name",
        description="Vowel-less abbreviations (`usr`, `btn`, `msg`) save keystrokes at the reader's expense.",
        default_severity="info",
        score_dimension="naming",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        allowed = {w.lower() for w in ctx.naming.allowed_abbreviations}
        violations: list[Violation] = []
        for decl in iter_declarations(ctx):
            abbreviation = self._find_abbreviation(decl.name, allowed)
            if abbreviation is None:
                continue
            violations.append(
                self._violation(
                    message=f"`{decl.name}` contains the abbreviation `{abbreviation}`.",
                    suggestion="Spell the word out, or add it to `naming.allowed-abbreviations`.",
                    location=loc_from_node(ctx, decl.node),
                )
            )
        return violations

    @staticmethod
    def _find_abbreviation(name: str, allowed: set[str]) -> str | None:
        for word in split_words(name):
            # All-caps words are acronyms (`URL`, `SVG`), not abbreviations.
            if len(word) > 1 and word.isupper():
                continue
            lowered = word.lower()
            if len(lowered) < 3 or not lowered.isalpha() or lowered in allowed:
                continue
            if not any(ch in _VOWELS for ch in lowered):
                return word
        return None


@dataclass(frozen=True, slots=True)
class N07ContextDuplication(BaseRule):
    meta = RuleMeta(
        rule_id="N07",
        title="Name repeats its context",
        description="Members should not repeat their class name: `menuItem.handleClick()`, not `menuItem.handleMenuItemClick()`.",
        default_severity="info",
        score_dimension="naming",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        violations: list[Violation] = []
        for decl in iter_declarations(ctx):
            if decl.kind not in {"method", "field"} or not decl.owner:
                continue
            owner_words = [w.lower() for w in split_words(decl.owner)]
            words = split_words(decl.name)
            start = _find_run([w.lower() for w in words], owner_words)
            if start is None:
                continue
            remaining = words[:start] + words[start + len(owner_words) :]
            suggestion = f"Drop `{decl.owner}` from the member name."
            if remaining:
                suggestion = f"Rename to `{_to_camel(remaining)}`; the class already provides `{decl.owner}`."
            violations.append(
                self._violation(
                    message=f"`{decl.owner}.{decl.name}` repeats the class name.",
                    suggestion=suggestion,
                    location=loc_from_node(ctx, decl.node),
                )
            )
        return violations


def _find_run(words: list[str], run: list[str]) -> int | None:
    if not run or len(run) > len(words):
        return None
    for start in range(len(words) - len(run) + 1):
        if words[start : start + len(run)] == run:
            return start
    return None


@dataclass(frozen=True, slots=True)
class N08IdentifierCasing(BaseRule):
    meta = RuleMeta(
        rule_id="N08",
        title="Inconsistent identifier casing",
        description="Classes use PascalCase, values and functions camelCase, constants SCREAMING_SNAKE_CASE.",
        default_severity="warn",
        score_dimension="naming",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        violations: list[Violation] = []
        for decl in iter_declarations(ctx):
            if not strip_sigils(decl.name):
                continue
            expected = self._expected_casing(decl)
            if expected is None:
                continue
            words = split_words(decl.name)
            replacement = _to_pascal(words) if expected == "PascalCase" else _to_camel(words)
            violations.append(
                self._violation(
                    message=f"`{decl.name}` should be {expected}.",
                    suggestion=f"Rename to `{replacement}`." if replacement else None,
                    location=loc_from_node(ctx, decl.node),
                )
            )
        return violations

    @staticmethod
    def _expected_casing(decl: Declaration) -> str | None:
        """Return the expected casing when `decl` violates it, else None."""

        name = decl.name
        if decl.kind == "class":
            return None if is_pascal_case(name) else "PascalCase"
        if decl.kind in {"function", "parameter"}:
            return None if is_camel_case(name) or is_pascal_case(name) else "camelCase"
        if decl.kind == "method":
            # Object-literal members may hold components.
            if is_camel_case(name) or (decl.owner is None and is_pascal_case(name)):
                return None
            return "camelCase"
        if decl.kind == "field":
            if is_camel_case(name) or (decl.is_static and is_screaming_snake_case(name)):
                return None
            return "camelCase"
        if decl.binding == "const":
            if is_camel_case(name) or is_pascal_case(name) or is_screaming_snake_case(name):
                return None
            return "camelCase"
        return None if is_camel_case(name) else "camelCase"


def builtin_naming_rules() -> list[BaseRule]:
    return [
        N01BooleanPrefix(),
        N02NegatedBoolean(),
        N03VerbFirstFunction(),
        N04NameTooShort(),
        N05NameTooLong(),
        N06AbbreviatedName(),
        N07ContextDuplication(),
        N08IdentifierCasing(),
    ]
