"""
AST to cfnscript source rendering.

The inverse of the parser: ``parse_source(render_source(t))`` rebuilds ``t``.
Objects are written on one line; ``cfnscript.core.pretty`` reflows them.
Operator sugar recorded on FunctionCall nodes is written back as operators,
with parentheses wherever the precedence ladder needs them:

    OR (1) < AND (2) < EQ/NE (3) < NOT (4) < everything else (5)
"""

from __future__ import annotations

import re
from decimal import Decimal

from .ir import (
    PSEUDO_BASE,
    PSEUDO_PREFIX,
    ArrayLiteral,
    Assignment,
    BracketAccess,
    ConditionDecl,
    DescriptionSection,
    FormatVersionSection,
    FunctionCall,
    GlobalsSection,
    Identifier,
    Literal,
    MappingDecl,
    MemberAccess,
    MetadataSection,
    Node,
    ObjectLiteral,
    Operator,
    OutputDecl,
    ParameterDecl,
    ResourceDecl,
    RuleDecl,
    Template,
    TransformSection,
)
from .parser import DECLARATION_KEYWORDS

IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
RESOURCE_TYPE_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(::[A-Za-z_][A-Za-z0-9_]*)*")

# Names that parse as something other than a reference when written bare
RESERVED_NAMES = frozenset({"true", "false", "null", PSEUDO_BASE, *DECLARATION_KEYWORDS})

PREC_OR = 1
PREC_AND = 2
PREC_EQ = 3
PREC_UNARY = 4
PREC_ATOM = 5

_STRING_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
}

_SECTION_KEYWORDS: dict[type, str] = {
    FormatVersionSection: "AWSTemplateFormatVersion",
    DescriptionSection: "Description",
    TransformSection: "Transform",
    MetadataSection: "Metadata",
    GlobalsSection: "Globals",
}

_OBJECT_DECL_KEYWORDS: dict[type, str] = {
    ParameterDecl: "Parameter",
    OutputDecl: "Output",
    MappingDecl: "Mapping",
    RuleDecl: "Rule",
}


def quote_string(value: str) -> str:
    """Single-quote a string, escaping exactly what the lexer decodes."""
    return "'" + "".join(_STRING_ESCAPES.get(ch, ch) for ch in value) + "'"


def format_key(key: str) -> str:
    """Object keys and assignment names: bare when they lex as one identifier."""
    if IDENTIFIER_RE.fullmatch(key):
        return key
    return quote_string(key)


def is_bare_name(name: str) -> bool:
    """True when ``name`` written bare parses back as a reference to ``name``."""
    return IDENTIFIER_RE.fullmatch(name) is not None and name not in RESERVED_NAMES


def format_number(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    if "." not in text:
        text += ".0"
    return text


def precedence(node: Node) -> int:
    """Binding power of a node when written as source."""
    if isinstance(node, FunctionCall):
        if node.operator == Operator.OR:
            return PREC_OR
        if node.operator == Operator.AND:
            return PREC_AND
        if node.operator in (Operator.EQ, Operator.NE):
            return PREC_EQ
        if node.operator == Operator.NOT:
            return PREC_UNARY
    return PREC_ATOM


def render_source(node: Node | Assignment | Template) -> str:
    """Render a node, statement or whole template back to source text."""
    if isinstance(node, Template):
        return "\n\n".join(render_source(stmt) for stmt in node.statements)

    if isinstance(node, Assignment):
        return f"{format_key(node.name)} = {render_source(node.value)}"

    if type(node) in _SECTION_KEYWORDS:
        keyword = _SECTION_KEYWORDS[type(node)]
        return f"{keyword} {render_source(node.value)}"  # type: ignore[union-attr]

    if isinstance(node, Literal):
        return _render_literal(node)

    if isinstance(node, Identifier):
        if node.is_pseudo:
            return f"{PSEUDO_BASE}.{node.name[len(PSEUDO_PREFIX):]}"
        return node.name

    if isinstance(node, ObjectLiteral):
        if not node.properties:
            return "{}"
        body = ", ".join(f"{format_key(k)}: {render_source(v)}" for k, v in node.properties)
        return f"{{ {body} }}"

    if isinstance(node, ArrayLiteral):
        return "[" + ", ".join(render_source(e) for e in node.elements) + "]"

    if isinstance(node, MemberAccess):
        return f"{_operand(node.object, PREC_ATOM)}.{'.'.join(node.path)}"

    if isinstance(node, BracketAccess):
        path = ", ".join(quote_string(segment) for segment in node.path)
        return f"{_operand(node.object, PREC_ATOM)}[{path}]"

    if isinstance(node, FunctionCall):
        return _render_call(node)

    if isinstance(node, ResourceDecl):
        return _render_resource(node)

    if type(node) in _OBJECT_DECL_KEYWORDS:
        keyword = _OBJECT_DECL_KEYWORDS[type(node)]
        return f"{keyword} {render_source(node.body)}"  # type: ignore[union-attr]

    if isinstance(node, ConditionDecl):
        return f"Condition {render_source(node.expression)}"

    raise TypeError(f"Cannot render {type(node).__name__} as source")


def _render_literal(node: Literal) -> str:
    value = node.value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return quote_string(value)
    return format_number(value)


def _operand(node: Node, minimum: int) -> str:
    """Render ``node``, parenthesised unless it binds at least as tight as ``minimum``."""
    text = render_source(node)
    if precedence(node) < minimum:
        return f"({text})"
    return text


def _render_call(call: FunctionCall) -> str:
    op = call.operator

    if op == Operator.NOT:
        return "!" + _operand(call.args[0], PREC_UNARY)

    if op == Operator.NE:
        left, right = call.args[0].args  # type: ignore[union-attr]
        return f"{_operand(left, PREC_EQ + 1)} != {_operand(right, PREC_EQ + 1)}"

    if op == Operator.EQ:
        left, right = call.args
        return f"{_operand(left, PREC_EQ + 1)} == {_operand(right, PREC_EQ + 1)}"

    if op == Operator.AND:
        return " && ".join(_operand(arg, PREC_AND + 1) for arg in call.args)

    if op == Operator.OR:
        return " || ".join(_operand(arg, PREC_OR + 1) for arg in call.args)

    return f"{call.name}(" + ", ".join(render_source(arg) for arg in call.args) + ")"


def _render_resource(decl: ResourceDecl) -> str:
    if RESOURCE_TYPE_RE.fullmatch(decl.type):
        parts = [f"Resource {decl.type}"]
    else:
        parts = [f"Resource {quote_string(decl.type)}"]
    if decl.properties is not None:
        parts.append(render_source(decl.properties))
    for attr in decl.attributes:
        parts.append(f"{attr.name}({render_source(attr.value)})")
    return " ".join(parts)
