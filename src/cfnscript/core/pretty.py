"""
Text-level pretty-printer for decompiled cfnscript.

Reflows brace-delimited object literals found outside string literals:
small objects stay on one line, anything else becomes an indented block.
It only moves whitespace around; it never re-parses into the AST, and
formatting its own output again changes nothing.
"""

from __future__ import annotations

from collections.abc import Iterator

MAX_INLINE_PROPERTIES = 3
MAX_INLINE_VALUE_LENGTH = 60
MAX_INLINE_BODY_LENGTH = 80

_OPENERS = {"{": "}", "[": "]", "(": ")"}
_CLOSERS = frozenset(_OPENERS.values())


def iter_code(text: str) -> Iterator[tuple[int, str, bool]]:
    """
    Yield ``(index, char, quoted)`` for each character of ``text``.

    ``quoted`` is True for quote characters and everything between them,
    honouring backslash escapes inside strings.
    """
    quote: str | None = None
    escaped = False
    for i, ch in enumerate(text):
        if quote is not None:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            yield i, ch, True
        elif ch in ("'", '"'):
            quote = ch
            yield i, ch, True
        else:
            yield i, ch, False


def object_spans(text: str) -> list[tuple[int, int]]:
    """Start/end offsets of the outermost ``{...}`` literals in ``text``."""
    spans: list[tuple[int, int]] = []
    depth = 0
    start = 0
    for i, ch, quoted in iter_code(text):
        if quoted:
            continue
        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                spans.append((start, i + 1))
    return spans


def split_properties(content: str) -> list[tuple[str, str]] | None:
    """
    Split an object body into ``(key, value)`` pairs at top-level commas.

    Returns None when a property has no top-level ``:``.
    """
    properties: list[tuple[str, str]] = []
    depth = 0
    key: str | None = None
    chunk_start = 0

    def close_chunk(end: int) -> bool:
        value = content[chunk_start:end].strip()
        if key is None:
            return not value
        properties.append((key, value))
        return True

    for i, ch, quoted in iter_code(content):
        if quoted:
            continue
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif depth == 0 and ch == ":" and key is None:
            key = content[chunk_start:i].strip()
            chunk_start = i + 1
        elif depth == 0 and ch == ",":
            if not close_chunk(i):
                return None
            key = None
            chunk_start = i + 1

    if not close_chunk(len(content)):
        return None
    return properties


class PrettyPrinter:
    """
    Reflow object literals in decompiled source.

    An object stays on one line when it has at most three properties, no
    value contains ``{`` or ``[`` or is longer than 60 characters, and the
    whole body is shorter than 80 characters. Objects with an escaped
    newline in any value are left exactly as they are.
    """

    def __init__(self, indent: int = 2):
        self.indent = indent

    def format(self, code: str) -> str:
        """Format every blank-line separated statement of ``code``."""
        return "\n\n".join(self.format_objects(stmt.strip(), 0) for stmt in code.split("\n\n"))

    def format_objects(self, text: str, depth: int) -> str:
        """Format every outermost object literal in ``text`` at ``depth``."""
        pieces: list[str] = []
        last = 0
        for start, end in object_spans(text):
            pieces.append(text[last:start])
            pieces.append(self.format_object(text[start:end], depth))
            last = end
        pieces.append(text[last:])
        return "".join(pieces)

    def format_object(self, obj: str, depth: int) -> str:
        content = obj[1:-1].strip()
        if not content:
            return "{}"

        properties = split_properties(content)
        if properties is None:
            return obj
        if any("\\n" in value for _, value in properties):
            return obj

        one_line = ", ".join(f"{key}: {value}" for key, value in properties)
        inline = (
            len(properties) <= MAX_INLINE_PROPERTIES
            and len(one_line) < MAX_INLINE_BODY_LENGTH
            and not any(
                "{" in value or "[" in value or len(value) > MAX_INLINE_VALUE_LENGTH
                for _, value in properties
            )
        )
        if inline:
            return f"{{ {one_line} }}"

        indent = " " * (self.indent * (depth + 1))
        close_indent = " " * (self.indent * depth)
        lines = [
            f"{indent}{key}: {self.format_objects(value, depth + 1)}" for key, value in properties
        ]
        return "{\n" + ",\n".join(lines) + "\n" + close_indent + "}"


def pretty_print(code: str, indent: int = 2) -> str:
    return PrettyPrinter(indent).format(code)
