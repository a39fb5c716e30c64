"""
AST node types for cfnscript.

The node set is closed: every node renders to a CloudFormation subtree
(``cfnscript.core.renderer.render_document``) and back to source text
(``cfnscript.core.source.render_source``). Nodes are frozen once built.

Supports:
- Literals: 'text', 42, 1.5, true, false, null
- Names: MyBucket, AWS.Region
- Objects and arrays: { Key: value }, [a, b]
- Attribute access: MyBucket.Arn, MyBucket.Endpoint.Address, MyBucket['A', 'B']
- Intrinsic calls: Join('-', [a, b]), Sub('${X}')
- Operators: ==, !=, &&, ||, !
- Declarations: Resource, Parameter, Output, Mapping, Condition, Rule
- Sections: AWSTemplateFormatVersion, Description, Transform, Metadata, Globals
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

PSEUDO_PREFIX = "AWS::"
PSEUDO_BASE = "AWS"

# Resource modifiers, in the order they are written back out
RESOURCE_ATTRIBUTES = (
    "DependsOn",
    "Condition",
    "DeletionPolicy",
    "UpdateReplacePolicy",
    "CreationPolicy",
    "UpdatePolicy",
    "Metadata",
    "Version",
)

# Modifiers whose values name other declarations
REFERENCE_ATTRIBUTES = ("DependsOn", "Condition")

POLICY_VALUES: dict[str, tuple[str, ...]] = {
    "DeletionPolicy": ("Delete", "Retain", "RetainExceptOnCreate", "Snapshot"),
    "UpdateReplacePolicy": ("Delete", "Retain", "Snapshot"),
}


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class Operator(StrEnum):
    """Surface operators that are sugar for intrinsic function calls."""

    EQ = "=="
    NE = "!="
    AND = "&&"
    OR = "||"
    NOT = "!"


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


class Literal(BaseModel):
    """A literal value: str, int, float, bool, or None (null)."""

    value: str | int | float | bool | None = Field(description="The literal value")

    model_config = ConfigDict(frozen=True)


class Identifier(BaseModel):
    """
    A bare name. Whether it denotes a parameter, resource, condition or
    pseudo parameter is decided at render time from the symbol table.

    Pseudo parameters keep their full spelling: ``AWS.Region`` is
    ``Identifier(name="AWS::Region")``.
    """

    name: str

    model_config = ConfigDict(frozen=True)

    @property
    def is_pseudo(self) -> bool:
        return self.name.startswith(PSEUDO_PREFIX)


class ObjectLiteral(BaseModel):
    """Ordered mapping of keys to nodes: { Key: value, ... }."""

    properties: list[tuple[str, Node]] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def keys(self) -> list[str]:
        return [key for key, _ in self.properties]

    def get(self, key: str) -> Node | None:
        for name, value in self.properties:
            if name == key:
                return value
        return None


class ArrayLiteral(BaseModel):
    """Ordered sequence of nodes: [a, b, c]."""

    elements: list[Node] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class MemberAccess(BaseModel):
    """
    Dotted attribute access. Chains are stored flat:

        MyDB.Endpoint.Address -> MemberAccess(object=Identifier("MyDB"),
                                              path=["Endpoint", "Address"])
    """

    object: Node
    path: list[str] = Field(min_length=1)

    model_config = ConfigDict(frozen=True)


class BracketAccess(BaseModel):
    """
    Bracketed attribute access, one path segment per element:

        MyRule['Compliance', 'Type']
    """

    object: Node
    path: list[str] = Field(min_length=1)

    model_config = ConfigDict(frozen=True)


class FunctionCall(BaseModel):
    """
    Intrinsic function call: Name(arg1, arg2, ...).

    ``operator`` records the sugar the call was written with, so
    ``a == b`` and ``Equals(a, b)`` render the same template but keep
    their own source spelling. ``a != b`` is ``Not`` over an ``Equals``
    call with ``operator=NE``.
    """

    name: str = Field(description="Function name without the Fn:: prefix")
    args: list[Node] = Field(default_factory=list)
    operator: Operator | None = None

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


class ResourceAttribute(BaseModel):
    """A chained resource modifier such as DependsOn(X) or DeletionPolicy(Retain)."""

    name: str
    value: Node

    model_config = ConfigDict(frozen=True)


class ResourceDecl(BaseModel):
    """
    Resource AWS::S3::Bucket { ... } DependsOn(X) ...

    ``properties`` is None when no object was written, which renders
    without a Properties key; ``{}`` renders an explicit empty one.
    """

    type: str
    properties: ObjectLiteral | None = None
    attributes: list[ResourceAttribute] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class ParameterDecl(BaseModel):
    body: ObjectLiteral

    model_config = ConfigDict(frozen=True)


class OutputDecl(BaseModel):
    body: ObjectLiteral

    model_config = ConfigDict(frozen=True)


class MappingDecl(BaseModel):
    body: ObjectLiteral

    model_config = ConfigDict(frozen=True)


class RuleDecl(BaseModel):
    body: ObjectLiteral

    model_config = ConfigDict(frozen=True)


class ConditionDecl(BaseModel):
    """Condition <expression>: the operator grammar, not a call."""

    expression: Node

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Sections and statements
# ---------------------------------------------------------------------------


class FormatVersionSection(BaseModel):
    value: Node

    model_config = ConfigDict(frozen=True)


class DescriptionSection(BaseModel):
    value: Node

    model_config = ConfigDict(frozen=True)


class TransformSection(BaseModel):
    value: Node

    model_config = ConfigDict(frozen=True)


class MetadataSection(BaseModel):
    value: Node

    model_config = ConfigDict(frozen=True)


class GlobalsSection(BaseModel):
    value: Node

    model_config = ConfigDict(frozen=True)


class Assignment(BaseModel):
    """name = declaration, binding a declaration to a template key."""

    name: str
    value: Node
    line: int = 0

    model_config = ConfigDict(frozen=True)


class Template(BaseModel):
    """Document root: top-level statements in source order."""

    statements: list[Statement] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def assignments(self) -> list[Assignment]:
        return [s for s in self.statements if isinstance(s, Assignment)]


# ---------------------------------------------------------------------------
# Union types
# ---------------------------------------------------------------------------

Declaration = ResourceDecl | ParameterDecl | OutputDecl | MappingDecl | RuleDecl | ConditionDecl

Node = (
    Literal
    | Identifier
    | ObjectLiteral
    | ArrayLiteral
    | MemberAccess
    | BracketAccess
    | FunctionCall
    | ResourceDecl
    | ParameterDecl
    | OutputDecl
    | MappingDecl
    | RuleDecl
    | ConditionDecl
)

Section = (
    FormatVersionSection | DescriptionSection | TransformSection | MetadataSection | GlobalsSection
)

Statement = Assignment | Section

# Rebuild models for recursive forward references
ObjectLiteral.model_rebuild()
ArrayLiteral.model_rebuild()
MemberAccess.model_rebuild()
BracketAccess.model_rebuild()
FunctionCall.model_rebuild()
ResourceAttribute.model_rebuild()
ResourceDecl.model_rebuild()
ParameterDecl.model_rebuild()
OutputDecl.model_rebuild()
MappingDecl.model_rebuild()
RuleDecl.model_rebuild()
ConditionDecl.model_rebuild()
FormatVersionSection.model_rebuild()
DescriptionSection.model_rebuild()
TransformSection.model_rebuild()
MetadataSection.model_rebuild()
GlobalsSection.model_rebuild()
Assignment.model_rebuild()
Template.model_rebuild()
