"""Shared pytest fixtures for cfnscript tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from cfnscript.core.codec import load_document


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def example_source(fixtures_dir: Path) -> str:
    """cfnscript source of a small stack."""
    return (fixtures_dir / "example.cfn").read_text(encoding="utf-8")


@pytest.fixture
def example_template_text(fixtures_dir: Path) -> str:
    """YAML template using CloudFormation short-form tags."""
    return (fixtures_dir / "example.yaml").read_text(encoding="utf-8")


@pytest.fixture
def example_document(example_template_text: str) -> dict[str, Any]:
    """The YAML fixture loaded into a template tree."""
    return load_document(example_template_text)
