"""Tests for the cfnscript lexer.

Covers:
- Greedy operator matching and the lone & / | errors
- String escapes and unterminated strings
- Numbers, including the numeric-leading identifier boundary
- Comments, positions, and non-destructive peek
"""

from __future__ import annotations

import pytest

from cfnscript.core.errors import LexError
from cfnscript.core.lexer import Lexer, TokenType, tokenize


def kinds(text: str) -> list[TokenType]:
    return [t.type for t in tokenize(text)]


# ============================================================================
# Punctuation and operators
# ============================================================================


class TestOperators:
    """Multi-character operators win over their one-character prefixes."""

    def test_greedy_operators(self) -> None:
        assert kinds("= == ! != : :: && ||") == [
            TokenType.EQUALS,
            TokenType.DOUBLE_EQUALS,
            TokenType.BANG,
            TokenType.NOT_EQUALS,
            TokenType.COLON,
            TokenType.DOUBLE_COLON,
            TokenType.DOUBLE_AMPERSAND,
            TokenType.DOUBLE_PIPE,
            TokenType.EOF,
        ]

    def test_punctuation(self) -> None:
        assert kinds("(){}[],.") == [
            TokenType.LPAREN,
            TokenType.RPAREN,
            TokenType.LBRACE,
            TokenType.RBRACE,
            TokenType.LBRACKET,
            TokenType.RBRACKET,
            TokenType.COMMA,
            TokenType.DOT,
            TokenType.EOF,
        ]

    def test_resource_type_path(self) -> None:
        tokens = tokenize("AWS::S3::Bucket")
        assert [t.value for t in tokens[:-1]] == ["AWS", "::", "S3", "::", "Bucket"]

    def test_lone_ampersand_is_error(self) -> None:
        with pytest.raises(LexError, match="did you mean '&&'"):
            tokenize("a & b")

    def test_lone_pipe_is_error(self) -> None:
        with pytest.raises(LexError, match="did you mean '\\|\\|'"):
            tokenize("a | b")

    def test_unexpected_character(self) -> None:
        with pytest.raises(LexError, match="Unexpected character '/'"):
            tokenize("a / b")


# ============================================================================
# Strings
# ============================================================================


class TestStrings:
    def test_single_and_double_quotes(self) -> None:
        tokens = tokenize("'one' \"two\"")
        assert [(t.type, t.value) for t in tokens[:-1]] == [
            (TokenType.STRING, "one"),
            (TokenType.STRING, "two"),
        ]

    def test_escapes(self) -> None:
        tokens = tokenize(r"'a\nb\tc\rd\\e\'f\"g'")
        assert tokens[0].value == "a\nb\tc\rd\\e'f\"g"

    def test_unknown_escape_stands_for_itself(self) -> None:
        assert tokenize(r"'\q'")[0].value == "q"

    def test_other_quote_needs_no_escape(self) -> None:
        assert tokenize("'say \"hi\"'")[0].value == 'say "hi"'

    def test_unterminated_string(self) -> None:
        with pytest.raises(LexError, match="Unterminated string") as exc_info:
            tokenize("x = 'abc")
        assert exc_info.value.context is not None
        assert exc_info.value.context.line == 1
        assert exc_info.value.context.column == 5

    def test_unterminated_string_reports_opening_quote(self) -> None:
        with pytest.raises(LexError) as exc_info:
            tokenize("a\n\n    'never closed\nmore")
        assert exc_info.value.context.line == 3
        assert exc_info.value.context.column == 5


# ============================================================================
# Numbers and numeric-leading names
# ============================================================================


class TestNumbers:
    def test_integer(self) -> None:
        token = tokenize("42")[0]
        assert token.type == TokenType.NUMBER
        assert token.value == "42"

    def test_negative_fraction(self) -> None:
        token = tokenize("-3.25")[0]
        assert token.type == TokenType.NUMBER
        assert token.value == "-3.25"

    def test_digits_then_letters_is_identifier(self) -> None:
        token = tokenize("3RouteTable")[0]
        assert token.type == TokenType.IDENTIFIER
        assert token.value == "3RouteTable"

    def test_exponent_spelling_is_identifier(self) -> None:
        token = tokenize("1e5")[0]
        assert token.type == TokenType.IDENTIFIER
        assert token.value == "1e5"

    def test_signed_number_then_letters_is_error(self) -> None:
        with pytest.raises(LexError, match="Malformed number '-1a'"):
            tokenize("-1abc")

    def test_fraction_then_letters_is_error(self) -> None:
        with pytest.raises(LexError, match="Malformed number"):
            tokenize("1.5x")

    def test_number_then_member_access(self) -> None:
        assert kinds("1.x") == [
            TokenType.NUMBER,
            TokenType.DOT,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]

    def test_minus_without_digit(self) -> None:
        with pytest.raises(LexError, match="Unexpected character '-'"):
            tokenize("-x")


# ============================================================================
# Comments, positions, peek
# ============================================================================


class TestLayout:
    def test_comments_are_skipped(self) -> None:
        tokens = tokenize("# heading\na // trailing\n  b # end")
        assert [t.value for t in tokens[:-1]] == ["a", "b"]

    def test_positions_are_one_indexed(self) -> None:
        tokens = tokenize("a\n  bb")
        assert (tokens[0].line, tokens[0].column) == (1, 1)
        assert (tokens[1].line, tokens[1].column) == (2, 3)

    def test_eof_repeats(self) -> None:
        lexer = Lexer("")
        assert lexer.next_token().type == TokenType.EOF
        assert lexer.next_token().type == TokenType.EOF


class TestPeek:
    def test_peek_does_not_consume(self) -> None:
        lexer = Lexer("alpha\nbeta")
        assert lexer.peek().value == "alpha"
        assert lexer.peek().value == "alpha"
        first = lexer.next_token()
        assert first.value == "alpha"

        peeked = lexer.peek()
        second = lexer.next_token()
        assert peeked == second
        assert (second.line, second.column) == (2, 1)
        assert lexer.next_token().type == TokenType.EOF

    def test_token_describe(self) -> None:
        tokens = tokenize("name 'text' 7 ==")
        assert tokens[0].describe() == "identifier 'name'"
        assert tokens[1].describe() == "string 'text'"
        assert tokens[2].describe() == "number '7'"
        assert tokens[3].describe() == "'=='"
        assert tokens[4].describe() == "end of input"
