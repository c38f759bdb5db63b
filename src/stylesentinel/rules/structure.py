from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from stylesentinel.engine.context import FileContext
from stylesentinel.engine.types import Violation
from stylesentinel.rules.base import BaseRule, RuleMeta, loc_from_node
from stylesentinel.rules.utils import (
    CLASS_NODE_TYPES,
    FUNCTION_NODE_TYPES,
    FUNCTION_VALUE_TYPES,
    ancestors,
    binding_kind,
    field,
    first_named_child,
    is_boolean_expression,
    is_screaming_snake_case,
    iter_tree,
    node_text,
    operator_of,
    statements,
    unwrap_parens,
)

_LITERAL_TYPES = frozenset({"string", "number", "true", "false", "null", "undefined"})
_SIMPLE_OPERAND_TYPES = frozenset(
    {"identifier", "member_expression", "subscript_expression", "call_expression", "this", "true", "false"}
)
_TYPE_CONTEXT_TYPES = frozenset({"literal_type", "type_annotation", "type_alias_declaration", "type_arguments"})


def _same_node(a: Any | None, b: Any | None) -> bool:
    if a is None or b is None:
        return False
    return (a.start_byte, a.end_byte, a.type) == (b.start_byte, b.end_byte, b.type)


def parse_number(text: str) -> float | None:
    """Parse a JS numeric literal (`0x1F`, `1_000`, `10n`, `1e3`)."""

    cleaned = text.replace("_", "").lower()
    if cleaned.endswith("n"):
        cleaned = cleaned[:-1]
    try:
        if cleaned.startswith("0x"):
            return float(int(cleaned[2:], 16))
        if cleaned.startswith("0o"):
            return float(int(cleaned[2:], 8))
        if cleaned.startswith("0b"):
            return float(int(cleaned[2:], 2))
        return float(cleaned)
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class S01MagicNumber(BaseRule):
    meta = RuleMeta(
        rule_id="S01",
        title="Magic number",
        description="Unexplained numeric literals should be extracted into named constants (`MS_PER_DAY`).",
        default_severity="warn",
        score_dimension="readability",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        allowed = set(ctx.structure.magic_numbers_allowed)
        violations: list[Violation] = []
        for node in iter_tree(ctx):
            if node.type != "number":
                continue
            value = parse_number(node_text(ctx, node))
            if value is None:
                continue
            target = node
            parent = getattr(node, "parent", None)
            if parent is not None and parent.type == "unary_expression" and operator_of(parent) == "-":
                value = -value
                target = parent
            if value in allowed or self._is_named(ctx, target):
                continue
            literal = node_text(ctx, target)
            violations.append(
                self._violation(
                    message=f"Magic number `{literal}`.",
                    suggestion="Extract it into a named constant, e.g. `const MAX_RETRIES = ...`.",
                    location=loc_from_node(ctx, target),
                )
            )
        return violations

    @staticmethod
    def _is_named(ctx: FileContext, target: Any) -> bool:
        for ancestor in ancestors(target):
            if ancestor.type in _TYPE_CONTEXT_TYPES:
                return True
            if ancestor.type in FUNCTION_NODE_TYPES or ancestor.type.endswith("statement"):
                break

        current = target
        parent = getattr(target, "parent", None)
        through_arithmetic = False
        while parent is not None and parent.type in {
            "unary_expression",
            "parenthesized_expression",
            "binary_expression",
            "array",
            "object",
            "pair",
        }:
            through_arithmetic = through_arithmetic or parent.type == "binary_expression"
            current = parent
            parent = getattr(parent, "parent", None)
        if parent is None:
            return False

        if parent.type in {"enum_assignment", "enum_body"}:
            return True
        if parent.type in {"assignment_pattern", "required_parameter", "optional_parameter"}:
            return True
        if parent.type in {"field_definition", "public_field_definition"}:
            name_node = field(parent, "property") or field(parent, "name")
            return name_node is not None and is_screaming_snake_case(node_text(ctx, name_node))
        if parent.type != "variable_declarator" or not _same_node(field(parent, "value"), current):
            return False

        declaration = getattr(parent, "parent", None)
        if binding_kind(declaration) != "const":
            return False
        if not through_arithmetic:
            return True
        # `60 * 1000` is a named constant only when declared as one.
        name_node = field(parent, "name")
        if name_node is not None and is_screaming_snake_case(node_text(ctx, name_node)):
            return True
        scope = getattr(declaration, "parent", None)
        return getattr(scope, "type", None) in {"program", "export_statement"}


@dataclass(frozen=True, slots=True)
class BooleanReturnMatch:
    """An `if` that returns boolean literals, with the byte span a fix replaces."""

    node: Any
    start_byte: int
    end_byte: int
    replacement: str


def _boolean_literal_return(node: Any | None) -> str | None:
    stmts = statements(node)
    if len(stmts) != 1 or stmts[0].type != "return_statement":
        return None
    value = first_named_child(stmts[0])
    if value is None or value.type not in {"true", "false"}:
        return None
    return value.type


def _returned_condition(ctx: FileContext, condition: Any, *, negate: bool) -> str:
    inner = unwrap_parens(condition)
    text = node_text(ctx, inner)
    if negate:
        if inner.type in _SIMPLE_OPERAND_TYPES:
            return f"return !{text};"
        return f"return !({text});"
    if is_boolean_expression(inner):
        return f"return {text};"
    return f"return Boolean({text});"


def find_redundant_boolean_returns(ctx: FileContext) -> list[BooleanReturnMatch]:
    """
    Find `if (c) return true; else return false;` and its variants.

    Matched forms:
    - `if (c) { return true; } else { return false; }` (and the inverted literals)
    - `if (c) { return true; } return false;` where the `return` directly follows
    """

    matches: list[BooleanReturnMatch] = []
    for node in iter_tree(ctx):
        if node.type != "if_statement":
            continue
        condition = field(node, "condition")
        then_literal = _boolean_literal_return(field(node, "consequence"))
        if condition is None or then_literal is None:
            continue

        alternative = field(node, "alternative")
        end_node = node
        if alternative is not None:
            else_body = first_named_child(alternative) if alternative.type == "else_clause" else alternative
            else_literal = _boolean_literal_return(else_body)
        else:
            following = getattr(node, "next_named_sibling", None)
            if following is None or following.type != "return_statement":
                continue
            else_literal = _boolean_literal_return(following)
            end_node = following
        if else_literal is None or else_literal == then_literal:
            continue

        matches.append(
            BooleanReturnMatch(
                node=node,
                start_byte=node.start_byte,
                end_byte=end_node.end_byte,
                replacement=_returned_condition(ctx, condition, negate=then_literal == "false"),
            )
        )
    return matches


@dataclass(frozen=True, slots=True)
class S02RedundantBooleanReturn(BaseRule):
    meta = RuleMeta(
        rule_id="S02",
        title="Redundant boolean return",
        description="`if (c) return true; else return false;` is just `return c;`.",
        default_severity="warn",
        score_dimension="readability",
        fixable=True,
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        return [
            self._violation(
                message="`if` only returns boolean literals.",
                suggestion=f"Return the condition directly: `{match.replacement}`",
                location=loc_from_node(ctx, match.node),
            )
            for match in find_redundant_boolean_returns(ctx)
        ]


@dataclass(frozen=True, slots=True)
class S03ElseAfterReturn(BaseRule):
    meta = RuleMeta(
        rule_id="S03",
        title="Else after return",
        description="When the `if` branch returns or throws, the `else` only adds indentation; return early instead.",
        default_severity="info",
        score_dimension="readability",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        boolean_returns = {m.start_byte for m in find_redundant_boolean_returns(ctx)}
        violations: list[Violation] = []
        for node in iter_tree(ctx):
            if node.type != "if_statement" or node.start_byte in boolean_returns:
                continue
            parent = getattr(node, "parent", None)
            if parent is not None and parent.type == "else_clause":
                continue
            alternative = field(node, "alternative")
            if alternative is None:
                continue
            body = statements(field(node, "consequence"))
            if not body or body[-1].type not in {"return_statement", "throw_statement"}:
                continue
            exit_word = "return" if body[-1].type == "return_statement" else "throw"
            violations.append(
                self._violation(
                    message=f"`else` follows a branch that ends with `{exit_word}`.",
                    suggestion="Drop the `else` and dedent its body (early return).",
                    location=loc_from_node(ctx, alternative),
                )
            )
        return violations


def _max_if_nesting(node: Any, depth: int) -> tuple[int, Any | None]:
    best_depth, best_node = depth, None
    for child in getattr(node, "children", []):
        if child.type in FUNCTION_NODE_TYPES or child.type in CLASS_NODE_TYPES:
            continue
        child_depth = depth
        if child.type == "if_statement" and node.type != "else_clause":
            child_depth += 1
            if child_depth > best_depth:
                best_depth, best_node = child_depth, child
        deepest, deepest_node = _max_if_nesting(child, child_depth)
        if deepest > best_depth:
            best_depth, best_node = deepest, deepest_node
    return best_depth, best_node


@dataclass(frozen=True, slots=True)
class S04DeepNesting(BaseRule):
    meta = RuleMeta(
        rule_id="S04",
        title="Deeply nested conditionals",
        description="Deeply nested `if` statements are hard to follow; flatten them with guard clauses.",
        default_severity="warn",
        score_dimension="maintainability",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        limit = ctx.structure.max_depth
        violations: list[Violation] = []
        for node in iter_tree(ctx):
            if node.type == "program":
                body = node
            elif node.type in FUNCTION_NODE_TYPES:
                body = field(node, "body")
            else:
                continue
            if body is None:
                continue
            depth, deepest = _max_if_nesting(body, 0)
            if depth <= limit or deepest is None:
                continue
            violations.append(
                self._violation(
                    message=f"Conditionals are nested {depth} levels deep (>{limit}).",
                    suggestion="Invert conditions and return early, or extract the inner block into a function.",
                    location=loc_from_node(ctx, deepest),
                )
            )
        return violations


def _case_statements(case: Any) -> list[Any]:
    value = field(case, "value")
    return [
        c
        for c in getattr(case, "children", [])
        if getattr(c, "is_named", True) and c.type != "comment" and not _same_node(c, value)
    ]


def _assignment_target(ctx: FileContext, stmt: Any) -> str | None:
    if stmt.type != "expression_statement":
        return None
    expr = first_named_child(stmt)
    if expr is None or expr.type != "assignment_expression":
        return None
    left = field(expr, "left")
    return None if left is None else node_text(ctx, left)


def _is_simple_case(ctx: FileContext, stmts: list[Any], targets: set[str]) -> bool:
    if len(stmts) == 1 and stmts[0].type == "return_statement":
        return True
    if len(stmts) in {1, 2}:
        target = _assignment_target(ctx, stmts[0])
        if target is None:
            return False
        if len(stmts) == 2 and stmts[1].type != "break_statement":
            return False
        targets.add(target)
        return True
    return False


def _equality_subject(ctx: FileContext, condition: Any | None) -> str | None:
    if condition is None:
        return None
    expr = unwrap_parens(condition)
    if expr.type != "binary_expression" or operator_of(expr) not in {"===", "=="}:
        return None
    left, right = field(expr, "left"), field(expr, "right")
    if left is None or right is None:
        return None
    if right.type in _LITERAL_TYPES and left.type in {"identifier", "member_expression"}:
        return node_text(ctx, left)
    if left.type in _LITERAL_TYPES and right.type in {"identifier", "member_expression"}:
        return node_text(ctx, right)
    return None


@dataclass(frozen=True, slots=True)
class S05LookupTableDispatch(BaseRule):
    meta = RuleMeta(
        rule_id="S05",
        title="Conditional dispatch could be a lookup table",
        description="A `switch` or `if/else if` chain that maps values to values reads better as an object or Map.",
        default_severity="info",
        score_dimension="maintainability",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        min_cases = ctx.structure.min_cases
        violations: list[Violation] = []
        for node in iter_tree(ctx):
            if node.type == "switch_statement":
                count = self._switch_case_count(ctx, node)
                kind = "`switch`"
            elif node.type == "if_statement":
                parent = getattr(node, "parent", None)
                if parent is not None and parent.type == "else_clause":
                    continue
                count = self._if_chain_length(ctx, node)
                kind = "`if/else if` chain"
            else:
                continue
            if count < min_cases:
                continue
            violations.append(
                self._violation(
                    message=f"{kind} with {count} branches only maps values.",
                    suggestion="Replace it with an object or Map lookup (dictionary dispatch).",
                    location=loc_from_node(ctx, node),
                )
            )
        return violations

    @staticmethod
    def _switch_case_count(ctx: FileContext, node: Any) -> int:
        body = field(node, "body")
        if body is None:
            return 0
        count = 0
        targets: set[str] = set()
        for case in getattr(body, "children", []):
            if case.type not in {"switch_case", "switch_default"}:
                continue
            stmts = _case_statements(case)
            if stmts and not _is_simple_case(ctx, stmts, targets):
                return 0
            if case.type == "switch_case":
                count += 1
        if len(targets) > 1:
            return 0
        return count

    @staticmethod
    def _if_chain_length(ctx: FileContext, node: Any) -> int:
        subject: str | None = None
        count = 0
        current: Any | None = node
        while current is not None and current.type == "if_statement":
            branch_subject = _equality_subject(ctx, field(current, "condition"))
            if branch_subject is None or (subject is not None and branch_subject != subject):
                return 0
            subject = branch_subject
            if len(statements(field(current, "consequence"))) != 1:
                return 0
            count += 1
            alternative = field(current, "alternative")
            current = first_named_child(alternative) if alternative is not None else None
        if current is not None and len(statements(current)) != 1:
            return 0
        return count


def _accumulation_kind(ctx: FileContext, stmt: Any) -> str | None:
    expr = first_named_child(stmt) if stmt.type == "expression_statement" else stmt
    if expr is None:
        return None
    if expr.type == "augmented_assignment_expression" and operator_of(expr) == "+=":
        return "reduce"
    if expr.type == "call_expression":
        callee = field(expr, "function")
        if callee is not None and callee.type == "member_expression":
            prop = field(callee, "property")
            if prop is not None and node_text(ctx, prop) == "push":
                return "push"
    return None


def _loop_body(ctx: FileContext, node: Any) -> Any | None:
    if node.type in {"for_statement", "for_in_statement"}:
        return field(node, "body")
    if node.type != "call_expression":
        return None
    callee = field(node, "function")
    if callee is None or callee.type != "member_expression":
        return None
    prop = field(callee, "property")
    if prop is None or node_text(ctx, prop) != "forEach":
        return None
    args = field(node, "arguments")
    callback = first_named_child(args) if args is not None else None
    if callback is None or callback.type not in FUNCTION_VALUE_TYPES:
        return None
    return field(callback, "body")


@dataclass(frozen=True, slots=True)
class S06ImperativeAccumulation(BaseRule):
    meta = RuleMeta(
        rule_id="S06",
        title="Imperative loop builds a collection",
        description="Loops that only push or sum say *how*; `map`/`filter`/`reduce` say *what*.",
        default_severity="info",
        score_dimension="readability",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        violations: list[Violation] = []
        for node in iter_tree(ctx):
            body = _loop_body(ctx, node)
            if body is None:
                continue
            stmts = statements(body)
            filtered = False
            if len(stmts) == 1 and stmts[0].type == "if_statement" and field(stmts[0], "alternative") is None:
                stmts = statements(field(stmts[0], "consequence"))
                filtered = True
            kinds = {_accumulation_kind(ctx, stmt) for stmt in stmts}
            if not stmts or None in kinds or len(kinds) != 1:
                continue
            (kind,) = kinds
            if kind == "reduce":
                replacement = "`filter()` + `reduce()`" if filtered else "`reduce()`"
            else:
                replacement = "`filter()` (+ `map()`)" if filtered else "`map()`"
            violations.append(
                self._violation(
                    message="Loop only accumulates into a collection or total.",
                    suggestion=f"Use {replacement} to express the result declaratively.",
                    location=loc_from_node(ctx, node),
                )
            )
        return violations


def _ternary_depth(node: Any) -> int:
    deepest = 0
    for child in getattr(node, "children", []):
        if child.type in FUNCTION_NODE_TYPES:
            continue
        deepest = max(deepest, _ternary_depth(child))
    return deepest + (1 if node.type == "ternary_expression" else 0)


def _is_outermost_ternary(node: Any) -> bool:
    for ancestor in ancestors(node):
        if ancestor.type == "ternary_expression":
            return False
        if ancestor.type in FUNCTION_NODE_TYPES:
            return True
    return True


@dataclass(frozen=True, slots=True)
class S07NestedTernary(BaseRule):
    meta = RuleMeta(
        rule_id="S07",
        title="Nested ternary expression",
        description="Nested `a ? b : c ? d : e` expressions are hard to read; use `if` or a lookup.",
        default_severity="warn",
        score_dimension="readability",
    )

    def check_file(self, ctx: FileContext) -> list[Violation]:
        limit = ctx.structure.max_ternary_depth
        violations: list[Violation] = []
        for node in iter_tree(ctx):
            if node.type != "ternary_expression" or not _is_outermost_ternary(node):
                continue
            depth = _ternary_depth(node)
            if depth <= limit:
                continue
            violations.append(
                self._violation(
                    message=f"Ternary expressions nested {depth} levels deep (>{limit}).",
                    suggestion="Use early returns, an `if` chain or a lookup object instead.",
                    location=loc_from_node(ctx, node),
                )
            )
        return violations


def builtin_structure_rules() -> list[BaseRule]:
    return [
        S01MagicNumber(),
        S02RedundantBooleanReturn(),
        S03ElseAfterReturn(),
        S04DeepNesting(),
        S05LookupTableDispatch(),
        S06ImperativeAccumulation(),
        S07NestedTernary(),
    ]
