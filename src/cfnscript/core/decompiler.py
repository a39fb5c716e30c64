"""
CloudFormation template tree to cfnscript source (decompile direction).

The tree is external data: its shape is checked as it is walked and
anything the source syntax cannot express raises DecodeError. Each value
is mapped to the AST node that compiles back to it, then the AST is
rendered with ``render_source`` and reflowed by the pretty-printer.

Sugar chosen on the way out:
    {"Ref": "AWS::Region"}                 -> AWS.Region
    {"Ref": "Env"} (declared)              -> Env
    {"Ref": "Elsewhere"} (undeclared)      -> Ref('Elsewhere')
    {"Condition": "X"} (X not a condition) -> { Condition: 'X' }
    {"Fn::GetAtt": ["Db", "Endpoint.Port"]} -> Db.Endpoint.Port
    {"Fn::GetAtt": ["W", "A", "B"]}        -> W['A', 'B']
    {"Fn::Not": [{"Fn::Equals": [a, b]}]}  -> a != b
"""

from __future__ import annotations

import logging
import math
from typing import Any

from .errors import DecodeError
from .ir import (
    POLICY_VALUES,
    PSEUDO_PREFIX,
    REFERENCE_ATTRIBUTES,
    RESOURCE_ATTRIBUTES,
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
    ResourceAttribute,
    ResourceDecl,
    RuleDecl,
    Statement,
    SymbolKind,
    SymbolTable,
    Template,
    TransformSection,
)
from .pretty import PrettyPrinter
from .renderer import ALWAYS_ARRAY_FUNCTIONS
from .settings import DEFAULT_SETTINGS, Settings
from .source import IDENTIFIER_RE, RESERVED_NAMES, is_bare_name, render_source

logger = logging.getLogger(__name__)

KNOWN_SECTIONS = (
    "AWSTemplateFormatVersion",
    "Description",
    "Transform",
    "Metadata",
    "Globals",
    SymbolKind.PARAMETER,
    SymbolKind.MAPPING,
    SymbolKind.CONDITION,
    SymbolKind.RULE,
    SymbolKind.RESOURCE,
    SymbolKind.OUTPUT,
)

_RESOURCE_KEYS = frozenset({"Type", "Properties", *RESOURCE_ATTRIBUTES})


class Decompiler:
    """Maps one template tree to a cfnscript AST."""

    def __init__(self, document: dict[str, Any], settings: Settings | None = None):
        if not isinstance(document, dict):
            raise DecodeError(
                f"Template must be a mapping at the top level, got {type(document).__name__}"
            )
        self.document = document
        self.settings = settings or DEFAULT_SETTINGS
        self.symbols = SymbolTable.from_document(document)
        self.depth = 0

    # -- Template level --

    def to_template(self) -> Template:
        """Build the Template, one statement per section entry, in stored order."""
        doc = self.document
        for key in doc:
            if key not in KNOWN_SECTIONS:
                logger.warning("Skipping unknown template section '%s'", key)

        statements: list[Statement] = []

        if "AWSTemplateFormatVersion" in doc:
            statements.append(
                FormatVersionSection(value=self._string_section(doc, "AWSTemplateFormatVersion"))
            )
        if "Description" in doc:
            statements.append(DescriptionSection(value=self._string_section(doc, "Description")))
        if "Transform" in doc:
            statements.append(TransformSection(value=self._transform(doc["Transform"])))
        if "Metadata" in doc:
            statements.append(MetadataSection(value=self._object_section(doc, "Metadata")))
        if "Globals" in doc:
            statements.append(GlobalsSection(value=self._object_section(doc, "Globals")))

        for section in (
            SymbolKind.PARAMETER,
            SymbolKind.MAPPING,
            SymbolKind.CONDITION,
            SymbolKind.RULE,
            SymbolKind.RESOURCE,
            SymbolKind.OUTPUT,
        ):
            for name, entry in self._entries(section):
                decl = self.declaration(section, name, entry)
                statements.append(Assignment(name=name, value=decl))

        logger.debug("Decompiled %d statements", len(statements))
        return Template(statements=statements)

    def declaration(self, section: str, name: str, entry: Any) -> Node:
        """Right-hand side for one entry of a declaration section."""
        if section == SymbolKind.RESOURCE:
            return self.resource(name, entry)
        if section == SymbolKind.CONDITION:
            return ConditionDecl(expression=self.value(entry))
        body = self._body(name, entry)
        if section == SymbolKind.PARAMETER:
            return ParameterDecl(body=body)
        if section == SymbolKind.MAPPING:
            return MappingDecl(body=body)
        if section == SymbolKind.RULE:
            return RuleDecl(body=body)
        return OutputDecl(body=body)

    def _entries(self, section: str) -> list[tuple[str, Any]]:
        entries = self.document.get(section)
        if entries is None:
            return []
        if not isinstance(entries, dict):
            raise DecodeError(f"{section} must be a mapping, got {type(entries).__name__}")
        return [(str(name), value) for name, value in entries.items()]

    def _string_section(self, doc: dict[str, Any], key: str) -> Literal:
        value = doc[key]
        if not isinstance(value, str):
            raise DecodeError(f"{key} must be a string, got {type(value).__name__}")
        return Literal(value=value)

    def _object_section(self, doc: dict[str, Any], key: str) -> ObjectLiteral:
        value = doc[key]
        if not isinstance(value, dict):
            raise DecodeError(f"{key} must be a mapping, got {type(value).__name__}")
        return self._object(value)

    def _transform(self, value: Any) -> Node:
        if isinstance(value, str):
            return Literal(value=value)
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return ArrayLiteral(elements=[Literal(value=v) for v in value])
        if isinstance(value, dict):
            return self._object(value)
        raise DecodeError("Transform must be a string, a list of strings or a mapping")

    def _body(self, name: str, body: Any) -> ObjectLiteral:
        if not isinstance(body, dict):
            raise DecodeError(f"'{name}' must be a mapping, got {type(body).__name__}")
        return self._object(body)

    def resource(self, name: str, resource: Any) -> ResourceDecl:
        """Decompile one Resources entry, modifiers in their fixed order."""
        if not isinstance(resource, dict):
            raise DecodeError(f"Resource '{name}' must be a mapping, got {type(resource).__name__}")
        resource_type = resource.get("Type")
        if not isinstance(resource_type, str) or not resource_type:
            raise DecodeError(f"Resource '{name}' has no Type")

        for key in resource:
            if key not in _RESOURCE_KEYS:
                logger.warning("Skipping unknown key '%s' on resource '%s'", key, name)

        properties = None
        if "Properties" in resource:
            properties = self._body(f"{name}.Properties", resource["Properties"])

        attributes = [
            ResourceAttribute(name=attr, value=self._attribute(attr, resource[attr]))
            for attr in RESOURCE_ATTRIBUTES
            if attr in resource
        ]
        return ResourceDecl(type=resource_type, properties=properties, attributes=attributes)

    def _attribute(self, attr: str, value: Any) -> Node:
        if attr in POLICY_VALUES and isinstance(value, str) and value in POLICY_VALUES[attr]:
            return Identifier(name=value)
        if attr in REFERENCE_ATTRIBUTES:
            if isinstance(value, str):
                return self._declared_name(value)
            if isinstance(value, list) and all(isinstance(v, str) for v in value):
                return ArrayLiteral(elements=[self._declared_name(v) for v in value])
        return self.value(value)

    def _declared_name(self, name: str) -> Node:
        if self.symbols.is_referenceable(name) and is_bare_name(name):
            return Identifier(name=name)
        return Literal(value=name)

    # -- Values --

    def value(self, value: Any) -> Node:
        """Map one tree value to the node that compiles back to it."""
        self.depth += 1
        if self.depth > self.settings.max_depth:
            raise DecodeError(
                f"Template nesting exceeds maximum depth of {self.settings.max_depth}"
            )
        try:
            return self._value(value)
        finally:
            self.depth -= 1

    def _value(self, value: Any) -> Node:
        if isinstance(value, float) and not math.isfinite(value):
            raise DecodeError(f"Number {value!r} has no source spelling")
        if value is None or isinstance(value, bool | int | float | str):
            return Literal(value=value)
        if isinstance(value, list):
            return ArrayLiteral(elements=[self.value(v) for v in value])
        if isinstance(value, dict):
            if len(value) == 1:
                key, arg = next(iter(value.items()))
                node = self._intrinsic(key, arg)
                if node is not None:
                    return node
            return self._object(value)
        raise DecodeError(f"Unsupported value of type {type(value).__name__}")

    def _object(self, value: dict[Any, Any]) -> ObjectLiteral:
        return ObjectLiteral(properties=[(str(k), self.value(v)) for k, v in value.items()])

    def _intrinsic(self, key: Any, arg: Any) -> Node | None:
        """Node for a single-key intrinsic mapping, or None to keep it a plain object."""
        if key == "Ref" and isinstance(arg, str):
            return self._ref(arg)
        if key == "Condition" and isinstance(arg, str):
            return self._condition_ref(arg)
        if not isinstance(key, str) or not key.startswith("Fn::"):
            return None

        name = key[len("Fn::") :]
        if not IDENTIFIER_RE.fullmatch(name) or name in RESERVED_NAMES or name == "Ref":
            return None

        if name == "GetAtt":
            return self._get_att(arg)
        if name in ALWAYS_ARRAY_FUNCTIONS:
            if not isinstance(arg, list):
                raise DecodeError(f"{key} expects a list, got {type(arg).__name__}")
            return self._array_function(name, arg)
        if name == "If" and isinstance(arg, list) and len(arg) >= 2:
            return FunctionCall(name="If", args=self._leading_name(arg, self.symbols.conditions))
        return self._generic_function(name, arg)

    def _ref(self, name: str) -> Node:
        if name.startswith(PSEUDO_PREFIX) and IDENTIFIER_RE.fullmatch(name[len(PSEUDO_PREFIX) :]):
            return Identifier(name=name)
        if (
            self.symbols.is_referenceable(name)
            and not self.symbols.is_condition_reference(name)
            and is_bare_name(name)
        ):
            return Identifier(name=name)
        return FunctionCall(name="Ref", args=[Literal(value=name)])

    def _condition_ref(self, name: str) -> Node:
        """Bare name when it compiles back to a condition reference, else the literal object."""
        if self.symbols.is_condition_reference(name) and is_bare_name(name):
            return Identifier(name=name)
        return ObjectLiteral(properties=[("Condition", Literal(value=name))])

    def _get_att(self, arg: Any) -> Node:
        if isinstance(arg, str):
            base, sep, attribute = arg.partition(".")
            if not sep:
                raise DecodeError(
                    f"Fn::GetAtt string '{arg}' must have the form Resource.Attribute"
                )
            parts: list[Any] = [base, attribute]
        elif isinstance(arg, list):
            parts = arg
        else:
            raise DecodeError(f"Fn::GetAtt expects a list or a string, got {type(arg).__name__}")
        if len(parts) < 2:
            raise DecodeError(f"Fn::GetAtt needs a resource and an attribute, got {parts!r}")

        base, attributes = parts[0], parts[1:]
        if (
            isinstance(base, str)
            and base in self.symbols.resources
            and is_bare_name(base)
            and all(isinstance(a, str) for a in attributes)
        ):
            resource = Identifier(name=base)
            if len(attributes) == 1:
                segments = attributes[0].split(".")
                if all(IDENTIFIER_RE.fullmatch(s) for s in segments):
                    return MemberAccess(object=resource, path=segments)
            return BracketAccess(object=resource, path=attributes)

        return FunctionCall(name="GetAtt", args=[self.value(p) for p in parts])

    def _array_function(self, name: str, args: list[Any]) -> Node:
        if name == "Equals" and len(args) == 2:
            return FunctionCall(name=name, args=self._values(args), operator=Operator.EQ)
        if name == "And" and len(args) >= 2:
            return FunctionCall(name=name, args=self._values(args), operator=Operator.AND)
        if name == "Or" and len(args) >= 2:
            return FunctionCall(name=name, args=self._values(args), operator=Operator.OR)
        if name == "Not" and len(args) == 1:
            inner = self.value(args[0])
            if isinstance(inner, FunctionCall) and inner.operator == Operator.EQ:
                equals = FunctionCall(name="Equals", args=inner.args)
                return FunctionCall(name="Not", args=[equals], operator=Operator.NE)
            return FunctionCall(name="Not", args=[inner], operator=Operator.NOT)
        if name == "FindInMap" and args:
            return FunctionCall(name=name, args=self._leading_name(args, self.symbols.mappings))
        return FunctionCall(name=name, args=self._values(args))

    def _values(self, values: list[Any]) -> list[Node]:
        return [self.value(v) for v in values]

    def _leading_name(self, args: list[Any], declared: frozenset[str]) -> list[Node]:
        """First argument is a plain name string; bare when it names a declaration."""
        first = args[0]
        if isinstance(first, str) and first in declared and is_bare_name(first):
            head: Node = Identifier(name=first)
        else:
            head = self.value(first)
        return [head, *(self.value(a) for a in args[1:])]

    def _generic_function(self, name: str, arg: Any) -> Node:
        # Lists of two or more spread into arguments; shorter lists stay one array argument
        if isinstance(arg, list) and len(arg) >= 2:
            return FunctionCall(name=name, args=[self.value(a) for a in arg])
        return FunctionCall(name=name, args=[self.value(arg)])


def decompile(document: dict[str, Any], settings: Settings | None = None) -> str:
    """Decompile a template tree to formatted cfnscript source.

    Args:
        document: Template tree, as returned by ``load_document``
        settings: Runtime settings (nesting limit, indent width)

    Returns:
        Source text ending in a newline.

    Raises:
        DecodeError: If the tree has a shape the source syntax cannot express.
    """
    settings = settings or DEFAULT_SETTINGS
    template = Decompiler(document, settings).to_template()
    raw = render_source(template)
    if not raw:
        return ""
    return PrettyPrinter(settings.indent).format(raw) + "\n"
