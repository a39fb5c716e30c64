"""Round trips between templates and cfnscript source.

Covers:
- compile(decompile(template)) reproduces the template
- decompiled source is stable when compiled and decompiled again
- condition references that have no bare-name spelling
- the known lossy spellings
"""

from __future__ import annotations

from typing import Any

import pytest

from cfnscript.core.compiler import compile_source
from cfnscript.core.decompiler import decompile

ROUND_TRIP_DOCUMENTS: list[tuple[str, dict[str, Any]]] = [
    (
        "empty_properties",
        {"Resources": {"A": {"Type": "AWS::SNS::Topic"}, "B": {"Type": "T", "Properties": {}}}},
    ),
    (
        "three_segment_get_att",
        {
            "Resources": {"W": {"Type": "Custom::Widget"}},
            "Outputs": {"O": {"Value": {"Fn::GetAtt": ["W", "Compliance", "Type"]}}},
        },
    ),
    (
        "nested_logic",
        {
            "Conditions": {
                "A": True,
                "B": {
                    "Fn::And": [
                        {"Fn::And": [{"Condition": "A"}, {"Condition": "A"}]},
                        {"Fn::Or": [{"Condition": "A"}, False]},
                    ]
                },
                "C": {"Fn::Not": [{"Fn::Not": [{"Fn::Equals": [1, 2]}]}]},
                "D": {"Fn::Equals": [{"Fn::Equals": [1, 2]}, True]},
                "E": {"Fn::Not": [{"Fn::Equals": ["a", "b", "c"]}]},
                "F": {"Fn::Not": [{"Fn::Not": [{"Condition": "A"}]}]},
            },
            "Resources": {},
        },
    ),
    (
        "undeclared_references",
        {
            "Resources": {
                "B": {
                    "Type": "T",
                    "Properties": {
                        "X": {"Ref": "Elsewhere"},
                        "Y": {"Fn::GetAtt": ["Other", "Arn"]},
                    },
                }
            }
        },
    ),
    (
        "string_escapes",
        {"Description": "it's a \"test\"\n\tdone\\", "Resources": {}},
    ),
    (
        "numbers",
        {
            "Mappings": {
                "M": {"K": {"I": 1, "F": 1.5, "Neg": -3, "Small": 1e-07, "Zero": 0.0}}
            },
            "Resources": {},
        },
    ),
    (
        "quoted_keys_and_names",
        {
            "Mappings": {"RegionMap": {"us-east-1": {"AMI": "x"}, "3az": {"AMI": "y"}}},
            "Resources": {"my-bucket": {"Type": "Custom::my-bucket"}},
        },
    ),
    (
        "sub_forms",
        {
            "Resources": {
                "B": {
                    "Type": "T",
                    "Properties": {
                        "A": {"Fn::Sub": "x"},
                        "B": {"Fn::Sub": ["${X}", {"X": 1}]},
                        "C": {"Fn::Sub": ["only"]},
                    },
                }
            }
        },
    ),
    (
        "generic_functions",
        {
            "Resources": {
                "B": {
                    "Type": "T",
                    "Properties": {
                        "Zones": {"Fn::GetAZs": ""},
                        "Zone": {"Fn::Select": [0, {"Fn::GetAZs": {"Ref": "AWS::Region"}}]},
                        "Blocks": {"Fn::Cidr": ["10.0.0.0/16", 4, 8]},
                        "Parts": {"Fn::Split": [",", "a,b"]},
                        "Empty": {"Fn::Join": ["", []]},
                        "Vpc": {"Fn::ImportValue": {"Fn::Sub": "${AWS::StackName}-vpc"}},
                        "NoZones": {"Fn::GetAZs": []},
                        "Pair": {"Fn::Base64": ["a", "b"]},
                    },
                }
            }
        },
    ),
    (
        "resource_modifiers",
        {
            "Conditions": {"C": True},
            "Resources": {
                "A": {"Type": "T"},
                "B": {
                    "Type": "T",
                    "DependsOn": ["A"],
                    "Condition": "C",
                    "DeletionPolicy": "Snapshot",
                    "UpdateReplacePolicy": "Custom",
                    "UpdatePolicy": {"AutoScalingRollingUpdate": {"MinInstancesInService": 1}},
                    "CreationPolicy": {"ResourceSignal": {"Timeout": "PT5M"}},
                    "Metadata": {"k": "v"},
                    "Version": "1.0",
                },
            },
        },
    ),
    (
        "top_level_sections",
        {
            "AWSTemplateFormatVersion": "2010-09-09",
            "Transform": ["AWS::Serverless-2016-10-31"],
            "Metadata": {"Owner": "ops"},
            "Globals": {"Function": {"Timeout": 3}},
            "Resources": {},
        },
    ),
    (
        "rules",
        {
            "Parameters": {"Env": {"Type": "String"}},
            "Rules": {
                "ProdOnly": {
                    "RuleCondition": {"Fn::Equals": [{"Ref": "Env"}, "prod"]},
                    "Assertions": [{"Assert": {"Fn::Not": [{"Fn::Equals": [{"Ref": "Env"}, ""]}]}}],
                }
            },
            "Resources": {},
        },
    ),
    (
        "reserved_parameter_name",
        {
            "Parameters": {"Condition": {"Type": "String"}},
            "Resources": {"B": {"Type": "T", "Properties": {"X": {"Ref": "Condition"}}}},
        },
    ),
    (
        "plain_objects_that_look_like_intrinsics",
        {
            "Resources": {
                "B": {
                    "Type": "T",
                    "Properties": {
                        "Odd": {"Fn::Foo-Bar": 1},
                        "NotRef": {"Ref": 5},
                        "Tags": [{"Key": "Ref", "Value": "x"}],
                    },
                }
            }
        },
    ),
    (
        "condition_references_without_sugar",
        {
            "Parameters": {"X": {"Type": "String"}},
            "Conditions": {
                "X": True,
                "Both": {"Fn::And": [{"Condition": "X"}, {"Condition": "X"}]},
                "is-east": False,
                "Either": {"Fn::Or": [{"Condition": "is-east"}, {"Condition": "Elsewhere"}]},
            },
            "Resources": {
                "B": {"Type": "T", "Properties": {"X": {"Condition": "Elsewhere"}}},
            },
        },
    ),
]


class TestTemplateRoundTrip:
    @pytest.mark.parametrize(
        "document",
        [doc for _, doc in ROUND_TRIP_DOCUMENTS],
        ids=[name for name, _ in ROUND_TRIP_DOCUMENTS],
    )
    def test_compile_of_decompile(self, document: dict[str, Any]) -> None:
        assert compile_source(decompile(document)) == document

    @pytest.mark.parametrize(
        "document",
        [doc for _, doc in ROUND_TRIP_DOCUMENTS],
        ids=[name for name, _ in ROUND_TRIP_DOCUMENTS],
    )
    def test_decompiled_source_is_stable(self, document: dict[str, Any]) -> None:
        source = decompile(document)
        assert decompile(compile_source(source)) == source

    def test_example_template(self, example_document: dict[str, Any]) -> None:
        assert compile_source(decompile(example_document)) == example_document


class TestSourceRoundTrip:
    def test_example_source(self, example_source: str) -> None:
        template = compile_source(example_source)
        assert compile_source(decompile(template)) == template


class TestConditionReferences:
    def test_condition_shadowed_by_parameter(self) -> None:
        document = {
            "Parameters": {"Env": {"Type": "String"}},
            "Conditions": {"Env": True, "C": {"Fn::Not": [{"Condition": "Env"}]}},
            "Resources": {},
        }
        assert compile_source(decompile(document)) == document

    def test_undeclared_condition(self) -> None:
        document = {
            "Resources": {
                "B": {"Type": "T", "Properties": {"X": {"Condition": "Elsewhere"}}},
            }
        }
        assert compile_source(decompile(document)) == document


class TestLossySpellings:
    def test_get_att_string_becomes_list(self) -> None:
        document = {
            "Resources": {"W": {"Type": "T"}},
            "Outputs": {"O": {"Value": {"Fn::GetAtt": "W.Arn"}}},
        }
        result = compile_source(decompile(document))
        assert result["Outputs"]["O"]["Value"] == {"Fn::GetAtt": ["W", "Arn"]}

    def test_resource_key_order_is_canonical(self) -> None:
        document = {"Resources": {"A": {"DeletionPolicy": "Retain", "Type": "T"}}}
        result = compile_source(decompile(document))
        assert list(result["Resources"]["A"]) == ["Type", "DeletionPolicy"]

    def test_missing_resources_section_is_added(self) -> None:
        document = {"Description": "empty", "Parameters": {"Env": {"Type": "String"}}}
        result = compile_source(decompile(document))
        assert result == {**document, "Resources": {}}
        assert list(result) == ["Description", "Parameters", "Resources"]
