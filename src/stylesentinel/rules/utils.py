from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Literal

from stylesentinel.engine.context import FileContext

DeclarationKind = Literal["variable", "function", "parameter", "class", "method", "field"]

FUNCTION_VALUE_TYPES = frozenset({"arrow_function", "function_expression", "function", "generator_function"})
FUNCTION_NODE_TYPES = FUNCTION_VALUE_TYPES | {
    "function_declaration",
    "generator_function_declaration",
    "method_definition",
}
CLASS_NODE_TYPES = frozenset({"class_declaration", "class", "abstract_class_declaration"})
COMPARISON_OPERATORS = frozenset({"===", "!==", "==", "!=", "<", ">", "<=", ">=", "in", "instanceof"})

_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+")
CAMEL_CASE_RE = re.compile(r"^[a-z][a-zA-Z0-9]*$")
PASCAL_CASE_RE = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
SCREAMING_SNAKE_RE = re.compile(r"^[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*$")


@dataclass(frozen=True, slots=True)
class Declaration:
    """A name introduced by the source file, with the context the naming rules need."""

    name: str
    kind: DeclarationKind
    node: Any
    value: Any | None = None
    binding: str | None = None  # "const" | "let" | "var" for variables
    type_annotation: Any | None = None
    owner: str | None = None  # enclosing class name for methods/fields
    is_accessor: bool = False
    is_static: bool = False
    is_loop_counter: bool = False


def iter_nodes(node: Any) -> Iterator[Any]:
    stack = [node]
    while stack:
        n = stack.pop()
        yield n
        stack.extend(reversed(getattr(n, "children", [])))


def iter_tree(ctx: FileContext) -> Iterator[Any]:
    root = ctx.root_node
    if root is not None:
        yield from iter_nodes(root)


def field(node: Any, name: str) -> Any | None:
    getter = getattr(node, "child_by_field_name", None)
    if getter is None:
        return None
    return getter(name)


def statements(node: Any | None) -> list[Any]:
    """
    Return the named, non-comment statements of a block.

    A single statement (e.g. the body of a brace-less `if`) yields itself.
    """

    if node is None:
        return []
    if getattr(node, "type", None) != "statement_block":
        return [node]
    return [c for c in getattr(node, "children", []) if getattr(c, "is_named", True) and c.type != "comment"]


def first_named_child(node: Any) -> Any | None:
    for child in getattr(node, "children", []):
        if getattr(child, "is_named", True) and child.type != "comment":
            return child
    return None


def node_text(ctx: FileContext, node: Any) -> str:
    source = ctx.source or ctx.text.encode("utf-8", errors="replace")
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def unwrap_parens(node: Any) -> Any:
    while getattr(node, "type", None) == "parenthesized_expression":
        inner = first_named_child(node)
        if inner is None:
            return node
        node = inner
    return node


def strip_sigils(name: str) -> str:
    return name.lstrip("_$#")


def split_words(name: str) -> list[str]:
    """Split camelCase / PascalCase / snake_case names into words."""

    words: list[str] = []
    for part in strip_sigils(name).split("_"):
        words.extend(_WORD_RE.findall(part))
    return words


def is_camel_case(name: str) -> bool:
    return bool(CAMEL_CASE_RE.match(strip_sigils(name)))


def is_pascal_case(name: str) -> bool:
    return bool(PASCAL_CASE_RE.match(strip_sigils(name)))


def is_screaming_snake_case(name: str) -> bool:
    return bool(SCREAMING_SNAKE_RE.match(strip_sigils(name)))


def operator_of(node: Any) -> str | None:
    op = field(node, "operator")
    return None if op is None else op.type


def is_boolean_expression(node: Any | None) -> bool:
    """Return True for expressions that always evaluate to a boolean."""

    if node is None:
        return False
    node = unwrap_parens(node)
    node_type = node.type
    if node_type in {"true", "false"}:
        return True
    if node_type == "unary_expression":
        return operator_of(node) == "!"
    if node_type == "binary_expression":
        op = operator_of(node)
        if op in COMPARISON_OPERATORS:
            return True
        if op in {"&&", "||"}:
            return is_boolean_expression(field(node, "left")) and is_boolean_expression(field(node, "right"))
    return False


def is_boolean_annotation(ctx: FileContext, type_node: Any | None) -> bool:
    if type_node is None:
        return False
    return node_text(ctx, type_node).lstrip(":").strip() == "boolean"


def enclosing_class_name(ctx: FileContext, node: Any) -> str | None:
    current = getattr(node, "parent", None)
    while current is not None:
        if current.type in CLASS_NODE_TYPES:
            name_node = field(current, "name")
            return node_text(ctx, name_node) if name_node is not None else None
        if current.type in {"object", "program"}:
            return None
        current = getattr(current, "parent", None)
    return None


def iter_declarations(ctx: FileContext) -> Iterator[Declaration]:
    """
    Yield the names a file declares.

    Destructuring patterns and catch-clause parameters are skipped; their names
    are dictated by the destructured object or the language.
    """

    for node in iter_tree(ctx):
        node_type = node.type
        if node_type == "variable_declarator":
            decl = _variable_declaration(ctx, node)
            if decl is not None:
                yield decl
        elif node_type in {"function_declaration", "generator_function_declaration"}:
            name_node = field(node, "name")
            if name_node is not None:
                yield Declaration(name=node_text(ctx, name_node), kind="function", node=name_node, value=node)
        elif node_type in CLASS_NODE_TYPES:
            name_node = field(node, "name")
            if name_node is not None:
                yield Declaration(name=node_text(ctx, name_node), kind="class", node=name_node, value=node)
        elif node_type == "method_definition":
            name_node = field(node, "name")
            if name_node is None or name_node.type not in {"property_identifier", "private_property_identifier"}:
                continue
            child_types = {c.type for c in getattr(node, "children", [])}
            yield Declaration(
                name=node_text(ctx, name_node),
                kind="method",
                node=name_node,
                value=node,
                owner=enclosing_class_name(ctx, node),
                is_accessor=bool(child_types & {"get", "set"}),
                is_static="static" in child_types,
            )
        elif node_type in {"field_definition", "public_field_definition"}:
            name_node = field(node, "property") or field(node, "name")
            if name_node is None or name_node.type not in {"property_identifier", "private_property_identifier"}:
                continue
            value = field(node, "value")
            kind: DeclarationKind = "method" if value is not None and value.type in FUNCTION_VALUE_TYPES else "field"
            child_types = {c.type for c in getattr(node, "children", [])}
            yield Declaration(
                name=node_text(ctx, name_node),
                kind=kind,
                node=name_node,
                value=value,
                type_annotation=field(node, "type"),
                owner=enclosing_class_name(ctx, node),
                is_static="static" in child_types,
            )
        elif node_type == "pair":
            name_node = field(node, "key")
            value = field(node, "value")
            if name_node is None or name_node.type != "property_identifier":
                continue
            if value is None or value.type not in FUNCTION_VALUE_TYPES:
                continue
            yield Declaration(name=node_text(ctx, name_node), kind="method", node=name_node, value=value)
        elif node_type == "formal_parameters":
            for child in getattr(node, "children", []):
                decl = _parameter_declaration(ctx, child)
                if decl is not None:
                    yield decl
        elif node_type == "arrow_function":
            param = field(node, "parameter")
            if param is not None and param.type == "identifier":
                yield Declaration(name=node_text(ctx, param), kind="parameter", node=param)


def binding_kind(declaration: Any | None) -> str | None:
    if declaration is None:
        return None
    if declaration.type == "variable_declaration":
        return "var"
    if declaration.type == "lexical_declaration":
        kind = field(declaration, "kind")
        if kind is not None:
            return kind.type
        for child in getattr(declaration, "children", []):
            if child.type in {"const", "let"}:
                return child.type
    return None


def _variable_declaration(ctx: FileContext, node: Any) -> Declaration | None:
    name_node = field(node, "name")
    if name_node is None or name_node.type != "identifier":
        return None
    value = field(node, "value")
    declaration = getattr(node, "parent", None)
    kind: DeclarationKind = "function" if value is not None and value.type in FUNCTION_VALUE_TYPES else "variable"
    loop_parent = getattr(declaration, "parent", None)
    return Declaration(
        name=node_text(ctx, name_node),
        kind=kind,
        node=name_node,
        value=value,
        binding=binding_kind(declaration),
        type_annotation=field(node, "type"),
        is_loop_counter=getattr(loop_parent, "type", None) == "for_statement",
    )


def _parameter_declaration(ctx: FileContext, node: Any) -> Declaration | None:
    node_type = getattr(node, "type", None)
    name_node: Any | None = None
    value: Any | None = None
    type_annotation: Any | None = None

    if node_type == "identifier":
        name_node = node
    elif node_type == "assignment_pattern":
        name_node = field(node, "left")
        value = field(node, "right")
    elif node_type in {"required_parameter", "optional_parameter"}:
        name_node = field(node, "pattern")
        value = field(node, "value")
        type_annotation = field(node, "type")
        if name_node is not None and name_node.type == "rest_pattern":
            name_node = first_named_child(name_node)
    elif node_type == "rest_pattern":
        name_node = first_named_child(node)

    if name_node is None or name_node.type != "identifier":
        return None
    return Declaration(
        name=node_text(ctx, name_node),
        kind="parameter",
        node=name_node,
        value=value,
        type_annotation=type_annotation,
    )


def ancestors(node: Any) -> Iterator[Any]:
    current = getattr(node, "parent", None)
    while current is not None:
        yield current
        current = getattr(current, "parent", None)
