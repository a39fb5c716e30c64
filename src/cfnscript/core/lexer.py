"""
Lexer/Tokenizer for cfnscript source.

Converts raw source text into tokens on demand, with line/column tracking.
The parser pulls one token at a time via ``next_token``; ``peek`` looks one
token ahead without moving the lexer.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import line_at, make_lex_error


class TokenType(Enum):
    """Token types in cfnscript source."""

    # Literals
    IDENTIFIER = "identifier"
    STRING = "string"
    NUMBER = "number"

    # Punctuation
    EQUALS = "="
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"
    COMMA = ","
    DOT = "."
    COLON = ":"
    DOUBLE_COLON = "::"

    # Operators
    DOUBLE_EQUALS = "=="
    NOT_EQUALS = "!="
    DOUBLE_AMPERSAND = "&&"
    DOUBLE_PIPE = "||"
    BANG = "!"

    EOF = "end of input"


# Greedy longest-match: two-character operators are tried first
TWO_CHAR_TOKENS = {
    "==": TokenType.DOUBLE_EQUALS,
    "!=": TokenType.NOT_EQUALS,
    "&&": TokenType.DOUBLE_AMPERSAND,
    "||": TokenType.DOUBLE_PIPE,
    "::": TokenType.DOUBLE_COLON,
}

SINGLE_CHAR_TOKENS = {
    "=": TokenType.EQUALS,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ":": TokenType.COLON,
    "!": TokenType.BANG,
}

ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


def is_identifier_start(ch: str | None) -> bool:
    return ch is not None and (("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch == "_")


def is_identifier_part(ch: str | None) -> bool:
    return is_identifier_start(ch) or is_digit(ch)


def is_digit(ch: str | None) -> bool:
    return ch is not None and "0" <= ch <= "9"


@dataclass(frozen=True)
class Token:
    """
    A single token of cfnscript source.

    Attributes:
        type: Type of token
        value: Token text (decoded contents for strings)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """

    type: TokenType
    value: str
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"

    def describe(self) -> str:
        """Human-readable name used in error messages."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.STRING:
            return f"string {self.value!r}"
        if self.type in (TokenType.IDENTIFIER, TokenType.NUMBER):
            return f"{self.type.value} '{self.value}'"
        return f"'{self.type.value}'"


class Lexer:
    """
    Pull-based lexer for cfnscript.

    Numeric-leading names: a run of digits (no sign, no fraction) directly
    followed by identifier characters is one IDENTIFIER, so ``3RouteTable``
    names a declaration. Signed or fractional numbers followed by identifier
    characters are rejected.
    """

    def __init__(self, text: str, file: Path | None = None):
        """
        Initialize lexer.

        Args:
            text: Source text to tokenize
            file: Optional source file path (for error reporting)
        """
        self.text = text
        self.file = file
        self.pos = 0
        self.line = 1
        self.column = 1

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def advance(self) -> None:
        """Move to next character, updating line/column."""
        if self.pos < len(self.text):
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def skip_whitespace_and_comments(self) -> None:
        """Skip whitespace, ``# ...`` and ``// ...`` comments."""
        while True:
            ch = self.current_char()
            if ch is not None and ch.isspace():
                self.advance()
                continue
            if ch == "#" or (ch == "/" and self.peek_char() == "/"):
                while self.current_char() is not None and self.current_char() != "\n":
                    self.advance()
                continue
            break

    def _error(self, message: str, line: int, column: int) -> Exception:
        return make_lex_error(
            message, line, column, file=self.file, source_line=line_at(self.text, line)
        )

    def read_string(self, line: int, column: int) -> str:
        """Read a quoted string; the current character is the opening quote."""
        quote = self.current_char()
        self.advance()

        chars: list[str] = []
        while True:
            current = self.current_char()
            if current is None:
                raise self._error("Unterminated string literal", line, column)
            if current == quote:
                break
            if current == "\\":
                self.advance()
                escape_char = self.current_char()
                if escape_char is None:
                    raise self._error("Unterminated string literal", line, column)
                chars.append(ESCAPES.get(escape_char, escape_char))
                self.advance()
            else:
                chars.append(current)
                self.advance()

        self.advance()  # closing quote
        return "".join(chars)

    def read_number(self, line: int, column: int) -> Token:
        """
        Read a number, or a numeric-leading identifier such as ``2ndSubnet``.
        """
        chars: list[str] = []
        signed = self.current_char() == "-"
        if signed:
            chars.append("-")
            self.advance()

        while is_digit(self.current_char()):
            chars.append(self.current_char())  # type: ignore[arg-type]
            self.advance()

        fractional = False
        if self.current_char() == "." and is_digit(self.peek_char()):
            fractional = True
            chars.append(".")
            self.advance()
            while is_digit(self.current_char()):
                chars.append(self.current_char())  # type: ignore[arg-type]
                self.advance()

        if is_identifier_start(self.current_char()):
            if signed or fractional:
                raise self._error(
                    f"Malformed number '{''.join(chars)}{self.current_char()}'", line, column
                )
            while is_identifier_part(self.current_char()):
                chars.append(self.current_char())  # type: ignore[arg-type]
                self.advance()
            return Token(TokenType.IDENTIFIER, "".join(chars), line, column)

        return Token(TokenType.NUMBER, "".join(chars), line, column)

    def read_identifier(self) -> str:
        """Read an identifier or keyword."""
        chars = []
        while is_identifier_part(self.current_char()):
            chars.append(self.current_char())
            self.advance()
        return "".join(chars)  # type: ignore[arg-type]

    def next_token(self) -> Token:
        """
        Return the next token and advance past it.

        Raises:
            LexError: On unexpected characters or unterminated strings
        """
        self.skip_whitespace_and_comments()

        ch = self.current_char()
        line = self.line
        column = self.column

        if ch is None:
            return Token(TokenType.EOF, "", line, column)

        two = self.text[self.pos : self.pos + 2]
        if two in TWO_CHAR_TOKENS:
            self.advance()
            self.advance()
            return Token(TWO_CHAR_TOKENS[two], two, line, column)

        if ch in SINGLE_CHAR_TOKENS:
            self.advance()
            return Token(SINGLE_CHAR_TOKENS[ch], ch, line, column)

        if ch in ('"', "'"):
            value = self.read_string(line, column)
            return Token(TokenType.STRING, value, line, column)

        if is_digit(ch) or (ch == "-" and is_digit(self.peek_char())):
            return self.read_number(line, column)

        if is_identifier_start(ch):
            return Token(TokenType.IDENTIFIER, self.read_identifier(), line, column)

        if ch == "&":
            raise self._error("Unexpected character '&' (did you mean '&&'?)", line, column)
        if ch == "|":
            raise self._error("Unexpected character '|' (did you mean '||'?)", line, column)

        raise self._error(f"Unexpected character {ch!r}", line, column)

    def peek(self) -> Token:
        """Return the next token without consuming it."""
        saved = (self.pos, self.line, self.column)
        try:
            return self.next_token()
        finally:
            self.pos, self.line, self.column = saved


def tokenize(text: str, file: Path | None = None) -> list[Token]:
    """
    Convenience function to tokenize text into a complete list.

    Args:
        text: Source text
        file: Optional source file path

    Returns:
        List of tokens, ending with EOF
    """
    lexer = Lexer(text, file)
    tokens: list[Token] = []
    while True:
        token = lexer.next_token()
        tokens.append(token)
        if token.type == TokenType.EOF:
            return tokens
