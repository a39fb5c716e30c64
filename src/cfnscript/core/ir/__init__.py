"""
cfnscript intermediate representation: AST nodes and the symbol table.
"""

from .nodes import (
    POLICY_VALUES,
    PSEUDO_BASE,
    PSEUDO_PREFIX,
    REFERENCE_ATTRIBUTES,
    RESOURCE_ATTRIBUTES,
    ArrayLiteral,
    Assignment,
    BracketAccess,
    ConditionDecl,
    Declaration,
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
    ResourceAttribute,
    ResourceDecl,
    RuleDecl,
    Section,
    Statement,
    Template,
    TransformSection,
)
from .symbols import SymbolKind, SymbolTable

__all__ = [
    "POLICY_VALUES",
    "PSEUDO_BASE",
    "PSEUDO_PREFIX",
    "REFERENCE_ATTRIBUTES",
    "RESOURCE_ATTRIBUTES",
    "ArrayLiteral",
    "Assignment",
    "BracketAccess",
    "ConditionDecl",
    "Declaration",
    "DescriptionSection",
    "FormatVersionSection",
    "FunctionCall",
    "GlobalsSection",
    "Identifier",
    "Literal",
    "MappingDecl",
    "MemberAccess",
    "MetadataSection",
    "Node",
    "ObjectLiteral",
    "Operator",
    "OutputDecl",
    "ParameterDecl",
    "ResourceAttribute",
    "ResourceDecl",
    "RuleDecl",
    "Section",
    "Statement",
    "SymbolKind",
    "SymbolTable",
    "Template",
    "TransformSection",
]
