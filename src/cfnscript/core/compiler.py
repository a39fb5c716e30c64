"""
Compile and decompile entry points.

    source text -> Lexer -> Parser -> Template -> SymbolTable -> template tree
    template tree -> Decompiler -> Template -> source text -> PrettyPrinter

Each call builds its own lexer, parser, symbol table and decompiler; nothing
is shared between calls.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .codec import dump_document, load_document
from .decompiler import decompile
from .ir import SymbolTable
from .parser import parse_source
from .renderer import render_template
from .settings import DEFAULT_SETTINGS, OutputFormat, Settings

logger = logging.getLogger(__name__)


def compile_source(
    text: str, file: Path | None = None, settings: Settings | None = None
) -> dict[str, Any]:
    """Compile cfnscript source to a CloudFormation template tree.

    Args:
        text: cfnscript source
        file: Optional path of the source, used in error locations
        settings: Runtime settings

    Returns:
        Template tree with sections in canonical order.

    Raises:
        LexError, ParseError: If the source is malformed.
        RenderError: If the source refers to undeclared names.
    """
    template = parse_source(text, file, settings)
    symbols = SymbolTable.from_template(template)
    logger.debug(
        "Symbols: %d parameters, %d conditions, %d resources, %d mappings",
        len(symbols.parameters),
        len(symbols.conditions),
        len(symbols.resources),
        len(symbols.mappings),
    )
    return render_template(template, symbols)


def compile_to_text(
    text: str,
    fmt: OutputFormat | str | None = None,
    file: Path | None = None,
    settings: Settings | None = None,
) -> str:
    """Compile source and serialize the template as YAML or JSON."""
    settings = settings or DEFAULT_SETTINGS
    return dump_document(compile_source(text, file, settings), fmt or settings.default_format)


def compile_to_yaml(text: str, file: Path | None = None, settings: Settings | None = None) -> str:
    return compile_to_text(text, OutputFormat.YAML, file, settings)


def compile_to_json(text: str, file: Path | None = None, settings: Settings | None = None) -> str:
    return compile_to_text(text, OutputFormat.JSON, file, settings)


def decompile_text(text: str, settings: Settings | None = None) -> str:
    """Decompile YAML or JSON template text to formatted cfnscript source."""
    return decompile(load_document(text), settings)
