"""
cfnscript - a small scripting syntax for AWS CloudFormation templates.

Compiles cfnscript source to CloudFormation template trees (YAML/JSON) and
decompiles existing templates back to source.
"""

from __future__ import annotations

import re
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

from .core.compiler import (
    compile_source,
    compile_to_json,
    compile_to_text,
    compile_to_yaml,
    decompile_text,
)
from .core.decompiler import decompile
from .core.errors import CfnScriptError, DecodeError, LexError, ParseError, RenderError


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    try:
        return _metadata_version("cfnscript")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "compile_source",
    "compile_to_text",
    "compile_to_yaml",
    "compile_to_json",
    "decompile",
    "decompile_text",
    "CfnScriptError",
    "LexError",
    "ParseError",
    "RenderError",
    "DecodeError",
]
