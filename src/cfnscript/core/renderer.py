"""
AST to CloudFormation template rendering (compile direction).

Renders nodes to plain Python values (dicts, lists, scalars) ready for the
document codec. Identifier resolution needs the whole template, so every
call takes the read-only SymbolTable built before rendering starts.
"""

from __future__ import annotations

import logging
from typing import Any

from .errors import RenderError, make_render_error
from .ir import (
    POLICY_VALUES,
    REFERENCE_ATTRIBUTES,
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
    OutputDecl,
    ParameterDecl,
    ResourceDecl,
    RuleDecl,
    SymbolKind,
    SymbolTable,
    Template,
    TransformSection,
)

logger = logging.getLogger(__name__)

# Functions whose arguments are always a list, even with a single argument
ALWAYS_ARRAY_FUNCTIONS = frozenset(
    {"Not", "And", "Or", "Equals", "Join", "Split", "Select", "FindInMap", "Cidr"}
)

TEMPLATE_KEY_ORDER = (
    "AWSTemplateFormatVersion",
    "Description",
    "Transform",
    "Metadata",
    "Globals",
    SymbolKind.PARAMETER,
    SymbolKind.RULE,
    SymbolKind.MAPPING,
    SymbolKind.CONDITION,
    SymbolKind.RESOURCE,
    SymbolKind.OUTPUT,
)

_SECTION_KEYS: dict[type, str] = {
    FormatVersionSection: "AWSTemplateFormatVersion",
    DescriptionSection: "Description",
    TransformSection: "Transform",
    MetadataSection: "Metadata",
    GlobalsSection: "Globals",
}

_DECLARATION_KINDS: dict[type, str] = {
    ParameterDecl: SymbolKind.PARAMETER,
    ConditionDecl: SymbolKind.CONDITION,
    ResourceDecl: SymbolKind.RESOURCE,
    MappingDecl: SymbolKind.MAPPING,
    OutputDecl: SymbolKind.OUTPUT,
    RuleDecl: SymbolKind.RULE,
}


def render_template(template: Template, symbols: SymbolTable | None = None) -> dict[str, Any]:
    """Render a parsed template to a CloudFormation template tree.

    Args:
        template: Parsed template.
        symbols: Symbol table; built from ``template`` when omitted.

    Returns:
        Template dict with sections in canonical order. ``Resources`` is
        always present, other declaration sections only when non-empty.

    Raises:
        RenderError: On undeclared names or misplaced declarations.
    """
    if symbols is None:
        symbols = SymbolTable.from_template(template)

    top: dict[str, Any] = {}
    sections: dict[str, dict[str, Any]] = {kind: {} for kind in _DECLARATION_KINDS.values()}

    for stmt in template.statements:
        if isinstance(stmt, Assignment):
            kind = _DECLARATION_KINDS[type(stmt.value)]
            try:
                sections[kind][stmt.name] = render_declaration(stmt.value, symbols)
            except RenderError as e:
                if e.context is not None:
                    raise
                raise make_render_error(f"In '{stmt.name}': {e.message}", stmt.line) from e
        else:
            top[_SECTION_KEYS[type(stmt)]] = render_document(stmt.value, symbols)

    for kind, entries in sections.items():
        if entries or kind == SymbolKind.RESOURCE:
            top[kind] = entries

    logger.debug(
        "Rendered %d parameters, %d conditions, %d resources, %d outputs",
        len(sections[SymbolKind.PARAMETER]),
        len(sections[SymbolKind.CONDITION]),
        len(sections[SymbolKind.RESOURCE]),
        len(sections[SymbolKind.OUTPUT]),
    )
    return {key: top[key] for key in TEMPLATE_KEY_ORDER if key in top}


def render_declaration(decl: Node, symbols: SymbolTable) -> Any:
    """Render the right-hand side of an assignment."""
    if isinstance(decl, ResourceDecl):
        return _render_resource(decl, symbols)
    if isinstance(decl, ConditionDecl):
        return render_document(decl.expression, symbols)
    if isinstance(decl, ParameterDecl | OutputDecl | MappingDecl | RuleDecl):
        return render_document(decl.body, symbols)
    raise RenderError(f"Expected a declaration, got {type(decl).__name__}")


def render_document(node: Node, symbols: SymbolTable) -> Any:
    """Render one expression node to a template subtree."""
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, Identifier):
        return _render_identifier(node, symbols)

    if isinstance(node, ObjectLiteral):
        return {key: render_document(value, symbols) for key, value in node.properties}

    if isinstance(node, ArrayLiteral):
        return [render_document(element, symbols) for element in node.elements]

    if isinstance(node, MemberAccess):
        base = _attribute_base(node.object, symbols)
        return {"Fn::GetAtt": [base, ".".join(node.path)]}

    if isinstance(node, BracketAccess):
        base = _attribute_base(node.object, symbols)
        return {"Fn::GetAtt": [base, *node.path]}

    if isinstance(node, FunctionCall):
        return _render_call(node, symbols)

    if isinstance(node, ResourceDecl | ParameterDecl | OutputDecl | MappingDecl | RuleDecl):
        keyword = type(node).__name__.removesuffix("Decl")
        raise RenderError(f"{keyword} declarations are only allowed on the right of 'Name ='")

    if isinstance(node, ConditionDecl):
        raise RenderError("Condition declarations are only allowed on the right of 'Name ='")

    raise RenderError(f"Unknown node type: {type(node).__name__}")


def _render_identifier(node: Identifier, symbols: SymbolTable) -> dict[str, str]:
    name = node.name
    if node.is_pseudo:
        return {"Ref": name}
    if symbols.is_condition_reference(name):
        return {"Condition": name}
    if symbols.is_referenceable(name):
        return {"Ref": name}
    raise RenderError(f"Undeclared identifier '{name}'")


def _attribute_base(node: Node, symbols: SymbolTable) -> str:
    """Attribute access must start at a declared resource name."""
    if not isinstance(node, Identifier):
        raise RenderError(
            f"Attribute access needs a resource name on the left, got {type(node).__name__}"
        )
    if node.name not in symbols.resources:
        raise RenderError(f"Undeclared resource '{node.name}' in attribute access")
    return node.name


def _render_call(call: FunctionCall, symbols: SymbolTable) -> dict[str, Any]:
    name = call.name

    if name == "Ref":
        if len(call.args) != 1 or not isinstance(call.args[0], Literal):
            raise RenderError("Ref() takes exactly one string name")
        return {"Ref": call.args[0].value}

    # Names in these positions are plain strings, not references
    head = call.args[0] if call.args else None
    if name == "If" and isinstance(head, Identifier):
        first = _declared_name(head, symbols.conditions, "condition")
        args = [first, *(render_document(arg, symbols) for arg in call.args[1:])]
    elif name == "FindInMap" and isinstance(head, Identifier):
        first = _declared_name(head, symbols.mappings, "mapping")
        args = [first, *(render_document(arg, symbols) for arg in call.args[1:])]
    else:
        args = [render_document(arg, symbols) for arg in call.args]

    key = f"Fn::{name}"
    if name in ALWAYS_ARRAY_FUNCTIONS:
        return {key: args}
    if len(args) == 1:
        return {key: args[0]}
    return {key: args}


def _declared_name(node: Identifier, declared: frozenset[str], kind: str) -> str:
    if node.name not in declared:
        raise RenderError(f"Undeclared {kind} '{node.name}'")
    return node.name


def _render_resource(decl: ResourceDecl, symbols: SymbolTable) -> dict[str, Any]:
    resource: dict[str, Any] = {"Type": decl.type}
    if decl.properties is not None:
        resource["Properties"] = render_document(decl.properties, symbols)

    for attr in decl.attributes:
        if attr.name in POLICY_VALUES and isinstance(attr.value, Identifier):
            resource[attr.name] = attr.value.name
        elif attr.name in REFERENCE_ATTRIBUTES:
            resource[attr.name] = _unwrap_reference(render_document(attr.value, symbols))
        else:
            resource[attr.name] = render_document(attr.value, symbols)
    return resource


def _unwrap_reference(value: Any) -> Any:
    """{"Ref": X} and {"Condition": X} become "X", also inside lists."""
    if isinstance(value, list):
        return [_unwrap_reference(item) for item in value]
    if isinstance(value, dict) and len(value) == 1:
        key, name = next(iter(value.items()))
        if key in ("Ref", "Condition") and isinstance(name, str):
            return name
    return value
