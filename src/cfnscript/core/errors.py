"""
Error types for cfnscript lexing, parsing, rendering and decoding.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class CfnScriptError(Exception):
    """Base exception for all cfnscript errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class LexError(CfnScriptError):
    """
    Raised when source text cannot be split into tokens.

    Examples:
    - Unexpected characters
    - Unterminated string literals
    - Malformed numbers
    """

    pass


class ParseError(CfnScriptError):
    """
    Raised when a token stream does not match the grammar.

    Examples:
    - Unexpected tokens
    - Wrong token kind where a specific one is expected
    - Ref() called on a bare name
    - Malformed resource type paths
    """

    pass


class RenderError(CfnScriptError):
    """
    Raised when a syntactically valid AST cannot be rendered to a template.

    Examples:
    - Reference to an undeclared identifier
    - Member access on something other than a name
    - Declaration used outside an assignment
    """

    pass


class DecodeError(CfnScriptError):
    """
    Raised when a template tree does not have the shape the decompiler expects.

    Examples:
    - Fn::GetAtt value that is neither a list nor a dotted string
    - Fn::And given a scalar instead of a list
    - Template root that is not a mapping
    """

    pass


@dataclass
class ErrorContext:
    """Where an error happened, with the offending source line when known."""

    line: int
    column: int
    file: Path | None = None
    source_line: str | None = None

    @property
    def location(self) -> str:
        if self.file:
            return f"{self.file}:{self.line}:{self.column}"
        return f"line {self.line}, column {self.column}"

    def format(self) -> str:
        """Location, then the source line with a caret under the column."""
        if self.source_line is None:
            return self.location
        gutter = str(self.line)
        # Tabs are kept so the caret lines up in a terminal
        pad = "".join(ch if ch == "\t" else " " for ch in self.source_line[: self.column - 1])
        return (
            f"{self.location}\n"
            f" {gutter} | {self.source_line}\n"
            f" {' ' * len(gutter)} | {pad}^"
        )


def line_at(text: str, line: int) -> str | None:
    """Line ``line`` (1-indexed) of ``text``, or None past the end."""
    lines = text.split("\n")
    if 1 <= line <= len(lines):
        return lines[line - 1]
    return None


def make_lex_error(
    message: str,
    line: int,
    column: int,
    file: Path | None = None,
    source_line: str | None = None,
) -> LexError:
    """
    Helper to create a LexError with context.

    Args:
        message: Error description
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        file: Optional source file path
        source_line: Optional text of the offending line

    Returns:
        LexError with context attached
    """
    context = ErrorContext(line=line, column=column, file=file, source_line=source_line)
    return LexError(message, context)


def make_parse_error(
    message: str,
    line: int,
    column: int,
    file: Path | None = None,
    source_line: str | None = None,
) -> ParseError:
    """
    Helper to create a ParseError with context.

    Args:
        message: Error description
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        file: Optional source file path
        source_line: Optional text of the offending line

    Returns:
        ParseError with context attached
    """
    context = ErrorContext(line=line, column=column, file=file, source_line=source_line)
    return ParseError(message, context)


def make_render_error(message: str, line: int | None = None) -> RenderError:
    """
    Helper to create a RenderError, located at a statement line when known.

    Args:
        message: Error description
        line: Optional line of the statement being rendered

    Returns:
        RenderError with context if a line is provided
    """
    if line:
        return RenderError(message, ErrorContext(line=line, column=1))
    return RenderError(message)
