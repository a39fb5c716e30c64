"""
Symbol table for context-sensitive name resolution.

Built once, before rendering, from the top-level declarations of a
template (compile direction) or from the sections of a template tree
(decompile direction). Render functions receive it read-only.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .nodes import (
    PSEUDO_PREFIX,
    Assignment,
    ConditionDecl,
    MappingDecl,
    OutputDecl,
    ParameterDecl,
    ResourceDecl,
    RuleDecl,
    Template,
)


class SymbolKind:
    """Declaration kinds, also the template section each kind lands in."""

    PARAMETER = "Parameters"
    CONDITION = "Conditions"
    RESOURCE = "Resources"
    MAPPING = "Mappings"
    OUTPUT = "Outputs"
    RULE = "Rules"


_DECL_KINDS: dict[type, str] = {
    ParameterDecl: SymbolKind.PARAMETER,
    ConditionDecl: SymbolKind.CONDITION,
    ResourceDecl: SymbolKind.RESOURCE,
    MappingDecl: SymbolKind.MAPPING,
    OutputDecl: SymbolKind.OUTPUT,
    RuleDecl: SymbolKind.RULE,
}


class SymbolTable(BaseModel):
    """Declared names, grouped by declaration kind."""

    parameters: frozenset[str] = Field(default_factory=frozenset)
    conditions: frozenset[str] = Field(default_factory=frozenset)
    resources: frozenset[str] = Field(default_factory=frozenset)
    mappings: frozenset[str] = Field(default_factory=frozenset)
    outputs: frozenset[str] = Field(default_factory=frozenset)
    rules: frozenset[str] = Field(default_factory=frozenset)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_template(cls, template: Template) -> SymbolTable:
        """Collect declared names from a parsed template's assignments."""
        groups: dict[str, set[str]] = {kind: set() for kind in _DECL_KINDS.values()}
        for stmt in template.statements:
            if not isinstance(stmt, Assignment):
                continue
            kind = _DECL_KINDS.get(type(stmt.value))
            if kind is not None:
                groups[kind].add(stmt.name)
        return cls._from_groups(groups)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> SymbolTable:
        """Collect declared names from the sections of a template tree."""
        groups: dict[str, set[str]] = {}
        for kind in _DECL_KINDS.values():
            section = document.get(kind)
            groups[kind] = set(section) if isinstance(section, dict) else set()
        return cls._from_groups(groups)

    @classmethod
    def _from_groups(cls, groups: dict[str, set[str]]) -> SymbolTable:
        return cls(
            parameters=frozenset(groups[SymbolKind.PARAMETER]),
            conditions=frozenset(groups[SymbolKind.CONDITION]),
            resources=frozenset(groups[SymbolKind.RESOURCE]),
            mappings=frozenset(groups[SymbolKind.MAPPING]),
            outputs=frozenset(groups[SymbolKind.OUTPUT]),
            rules=frozenset(groups[SymbolKind.RULE]),
        )

    def is_referenceable(self, name: str) -> bool:
        """True for names a bare identifier may point at."""
        return (
            name in self.parameters
            or name in self.conditions
            or name in self.resources
            or name in self.mappings
        )

    def is_condition_reference(self, name: str) -> bool:
        """Conditions win only when no parameter shares the name."""
        return name in self.conditions and name not in self.parameters

    @staticmethod
    def is_pseudo(name: str) -> bool:
        return name.startswith(PSEUDO_PREFIX)
