"""
CloudFormation template documents: YAML/JSON text <-> Python trees.

Loading understands the CloudFormation short-form tags (``!Ref``,
``!GetAtt``, ``!Sub`` ...) and expands each one to the long form the rest
of cfnscript works with, e.g. ``!Ref Env`` -> ``{"Ref": "Env"}``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import yaml

from .errors import DecodeError
from .settings import OutputFormat

logger = logging.getLogger(__name__)

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"

# Short-form tags that map directly to Fn::<Name>
FUNCTION_TAGS = (
    "Equals",
    "If",
    "Join",
    "Sub",
    "Select",
    "Split",
    "And",
    "Or",
    "Not",
    "FindInMap",
    "Base64",
    "Cidr",
    "ImportValue",
)


class TemplateLoader(yaml.SafeLoader):
    """SafeLoader with CloudFormation tags; timestamps stay plain strings."""


TemplateLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class TemplateDumper(yaml.SafeDumper):
    """SafeDumper that never emits anchors or aliases."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def _construct_node(loader: yaml.SafeLoader, node: yaml.Node) -> Any:
    if isinstance(node, yaml.ScalarNode):
        return loader.construct_scalar(node)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_mapping(node, deep=True)  # type: ignore[arg-type]


def _function_constructor(name: str):
    key = f"Fn::{name}"

    def construct(loader: yaml.SafeLoader, node: yaml.Node) -> dict[str, Any]:
        return {key: _construct_node(loader, node)}

    return construct


def _construct_ref(loader: yaml.SafeLoader, node: yaml.Node) -> dict[str, Any]:
    return {"Ref": _construct_node(loader, node)}


def _construct_condition(loader: yaml.SafeLoader, node: yaml.Node) -> dict[str, Any]:
    return {"Condition": _construct_node(loader, node)}


def _construct_get_att(loader: yaml.SafeLoader, node: yaml.Node) -> dict[str, Any]:
    value = _construct_node(loader, node)
    if isinstance(value, str):
        base, sep, attribute = value.partition(".")
        if sep:
            value = [base, attribute]
    return {"Fn::GetAtt": value}


def _construct_get_azs(loader: yaml.SafeLoader, node: yaml.Node) -> dict[str, Any]:
    value = _construct_node(loader, node)
    if isinstance(value, list):
        value = value[0] if value else ""
    return {"Fn::GetAZs": value}


for _name in FUNCTION_TAGS:
    TemplateLoader.add_constructor(f"!{_name}", _function_constructor(_name))
TemplateLoader.add_constructor("!Ref", _construct_ref)
TemplateLoader.add_constructor("!Condition", _construct_condition)
TemplateLoader.add_constructor("!GetAtt", _construct_get_att)
TemplateLoader.add_constructor("!GetAZs", _construct_get_azs)


def load_document(text: str) -> dict[str, Any]:
    """Parse YAML or JSON template text into a tree.

    Raises:
        DecodeError: If the text is not valid YAML/JSON or its top level
            is not a mapping.
    """
    try:
        data = yaml.load(text, Loader=TemplateLoader)  # noqa: S506
    except yaml.YAMLError as e:
        raise DecodeError(f"Invalid template document: {e}") from e

    if data is None:
        raise DecodeError("Template document is empty")
    if not isinstance(data, dict):
        raise DecodeError(
            f"Template document must be a mapping at the top level, got {type(data).__name__}"
        )
    logger.debug("Loaded template document with sections: %s", ", ".join(map(str, data)))
    return data


def dump_document(tree: dict[str, Any], fmt: OutputFormat | str = OutputFormat.YAML) -> str:
    """Serialize a template tree as JSON (2-space indent) or block-style YAML."""
    fmt = OutputFormat(fmt)
    if fmt == OutputFormat.JSON:
        return json.dumps(tree, indent=2, ensure_ascii=False) + "\n"
    return yaml.dump(
        tree,
        Dumper=TemplateDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    )
