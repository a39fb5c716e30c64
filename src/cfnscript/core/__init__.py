"""
cfnscript core: lexer, parser, AST, renderers, decompiler and codec.
"""

from .codec import dump_document, load_document
from .compiler import compile_source, compile_to_text, decompile_text
from .decompiler import Decompiler, decompile
from .errors import CfnScriptError, DecodeError, ErrorContext, LexError, ParseError, RenderError
from .lexer import Lexer, Token, TokenType, tokenize
from .parser import Parser, parse_source
from .pretty import PrettyPrinter, pretty_print
from .renderer import render_document, render_template
from .settings import DEFAULT_SETTINGS, OutputFormat, Settings, load_settings
from .source import render_source

__all__ = [
    "CfnScriptError",
    "DEFAULT_SETTINGS",
    "DecodeError",
    "Decompiler",
    "ErrorContext",
    "LexError",
    "Lexer",
    "OutputFormat",
    "ParseError",
    "Parser",
    "PrettyPrinter",
    "RenderError",
    "Settings",
    "Token",
    "TokenType",
    "compile_source",
    "compile_to_text",
    "decompile",
    "decompile_text",
    "dump_document",
    "load_document",
    "load_settings",
    "parse_source",
    "pretty_print",
    "render_document",
    "render_source",
    "render_template",
    "tokenize",
]
