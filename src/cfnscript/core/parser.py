"""
Recursive descent parser for cfnscript.

Grammar (precedence low to high):
    template     → statement*
    statement    → section | name "=" expr
    section      → ("AWSTemplateFormatVersion" | "Description" | "Transform"
                    | "Metadata" | "Globals") expr
    name         → IDENT | STRING
    expr         → or_expr
    or_expr      → and_expr ("||" and_expr)*          (flattened: one Or)
    and_expr     → equality ("&&" equality)*          (flattened: one And)
    equality     → unary (("==" | "!=") unary)?       (does not chain)
    unary        → "!" unary | postfix
    postfix      → primary ("." IDENT | "[" STRING ("," STRING)* "]")*
    primary      → literal | "(" expr ")" | object | array | declaration
                 | IDENT "(" args? ")" | IDENT
    declaration  → "Resource" type object? attribute*
                 | "Condition" expr
                 | ("Parameter" | "Output" | "Mapping" | "Rule") object
    type         → IDENT ("::" IDENT)* | STRING
    attribute    → ("DependsOn" | "Condition" | ... | "Version") "(" expr ")"
                   on the line the resource or previous attribute ends on
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .errors import ParseError, line_at, make_parse_error
from .ir import (
    POLICY_VALUES,
    PSEUDO_BASE,
    PSEUDO_PREFIX,
    RESOURCE_ATTRIBUTES,
    ArrayLiteral,
    Assignment,
    BracketAccess,
    ConditionDecl,
    DescriptionSection,
    FormatVersionSection,
    FunctionCall,
    GlobalsSection,
    Identifier,
    Literal,
    MappingDecl,
    MemberAccess,
    MetadataSection,
    Node,
    ObjectLiteral,
    Operator,
    OutputDecl,
    ParameterDecl,
    ResourceAttribute,
    ResourceDecl,
    RuleDecl,
    Section,
    Statement,
    Template,
    TransformSection,
)
from .lexer import Lexer, Token, TokenType
from .settings import DEFAULT_SETTINGS, Settings

logger = logging.getLogger(__name__)

SECTION_KEYWORDS = (
    "AWSTemplateFormatVersion",
    "Description",
    "Transform",
    "Metadata",
    "Globals",
)

DECLARATION_KEYWORDS = ("Resource", "Parameter", "Output", "Mapping", "Condition", "Rule")

_KEYWORD_LITERALS: dict[str, bool | None] = {"true": True, "false": False, "null": None}

_OBJECT_DECLS: dict[str, type[ParameterDecl | OutputDecl | MappingDecl | RuleDecl]] = {
    "Parameter": ParameterDecl,
    "Output": OutputDecl,
    "Mapping": MappingDecl,
    "Rule": RuleDecl,
}

_DECLARATION_TYPES = (ResourceDecl, ConditionDecl, *_OBJECT_DECLS.values())


class Parser:
    """
    Recursive descent parser over a pull-based Lexer.

    Holds one token of lookahead (``current``) and uses ``Lexer.peek`` for a
    second one where the grammar needs it.
    """

    def __init__(self, text: str, file: Path | None = None, settings: Settings | None = None):
        """
        Initialize parser.

        Args:
            text: Source text
            file: Optional source file path (for error reporting)
            settings: Runtime settings (nesting limit)
        """
        self.text = text
        self.file = file
        self.settings = settings or DEFAULT_SETTINGS
        self.lexer = Lexer(text, file)
        self.current = self.lexer.next_token()
        self.previous = self.current
        self.depth = 0

    # -- Token handling --

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current
        if token.type != TokenType.EOF:
            self.current = self.lexer.next_token()
        self.previous = token
        return token

    def peek(self) -> Token:
        """The token after ``current``."""
        return self.lexer.peek()

    def match(self, *token_types: TokenType) -> Token | None:
        if self.current.type in token_types:
            return self.advance()
        return None

    def expect(self, token_type: TokenType) -> Token:
        """
        Expect a specific token type and consume it.

        Raises:
            ParseError: If token doesn't match
        """
        token = self.current
        if token.type != token_type:
            raise self.error(f"Expected '{token_type.value}', got {token.describe()}", token)
        return self.advance()

    def error(self, message: str, token: Token | None = None) -> ParseError:
        token = token or self.current
        return make_parse_error(
            message,
            token.line,
            token.column,
            file=self.file,
            source_line=line_at(self.text, token.line),
        )

    @contextmanager
    def nested(self) -> Iterator[None]:
        """Bound recursion depth so deeply nested input fails cleanly."""
        self.depth += 1
        if self.depth > self.settings.max_depth:
            raise self.error(
                f"Expression nesting exceeds maximum depth of {self.settings.max_depth}"
            )
        try:
            yield
        finally:
            self.depth -= 1

    # -- Statements --

    def parse(self) -> Template:
        """Parse the whole source into a Template."""
        statements: list[Statement] = []
        seen_sections: set[type] = set()
        declared: dict[type, set[str]] = {}

        while self.current.type != TokenType.EOF:
            token = self.current
            stmt = self.parse_statement()

            if isinstance(stmt, Assignment):
                names = declared.setdefault(type(stmt.value), set())
                if stmt.name in names:
                    raise self.error(f"Duplicate declaration '{stmt.name}'", token)
                names.add(stmt.name)
            else:
                if type(stmt) in seen_sections:
                    raise self.error(f"Duplicate {token.value} section", token)
                seen_sections.add(type(stmt))

            statements.append(stmt)

        logger.debug("Parsed %d statements", len(statements))
        return Template(statements=statements)

    def parse_statement(self) -> Statement:
        token = self.current
        if (
            token.type == TokenType.IDENTIFIER
            and token.value in SECTION_KEYWORDS
            and self.peek().type != TokenType.EQUALS
        ):
            return self.parse_section()
        if token.type in (TokenType.IDENTIFIER, TokenType.STRING):
            return self.parse_assignment()
        raise self.error(f"Expected a section or an assignment, got {token.describe()}")

    def parse_section(self) -> Section:
        keyword = self.advance()
        value_token = self.current
        value = self.parse_expression()
        name = keyword.value

        if name in ("AWSTemplateFormatVersion", "Description"):
            if not _is_string(value):
                raise self.error(f"{name} expects a string", value_token)
            if name == "Description":
                return DescriptionSection(value=value)
            return FormatVersionSection(value=value)

        if name == "Transform":
            ok = (
                _is_string(value)
                or isinstance(value, ObjectLiteral)
                or (isinstance(value, ArrayLiteral) and all(_is_string(e) for e in value.elements))
            )
            if not ok:
                raise self.error(
                    "Transform expects a string, a list of strings or an object", value_token
                )
            return TransformSection(value=value)

        if not isinstance(value, ObjectLiteral):
            raise self.error(f"{name} expects an object literal", value_token)
        if name == "Metadata":
            return MetadataSection(value=value)
        return GlobalsSection(value=value)

    def parse_assignment(self) -> Assignment:
        name_token = self.advance()
        self.expect(TokenType.EQUALS)
        value_token = self.current
        value = self.parse_expression()
        if not isinstance(value, _DECLARATION_TYPES):
            raise self.error(
                f"Expected a declaration ({', '.join(DECLARATION_KEYWORDS)}) "
                f"after '{name_token.value} =', got {value_token.describe()}",
                value_token,
            )
        return Assignment(name=name_token.value, value=value, line=name_token.line)

    # -- Expressions --

    def parse_expression(self) -> Node:
        with self.nested():
            return self.parse_or()

    def parse_or(self) -> Node:
        """and_expr ('||' and_expr)*"""
        operands = [self.parse_and()]
        while self.match(TokenType.DOUBLE_PIPE):
            operands.append(self.parse_and())
        if len(operands) == 1:
            return operands[0]
        return FunctionCall(name="Or", args=operands, operator=Operator.OR)

    def parse_and(self) -> Node:
        """equality ('&&' equality)*"""
        operands = [self.parse_equality()]
        while self.match(TokenType.DOUBLE_AMPERSAND):
            operands.append(self.parse_equality())
        if len(operands) == 1:
            return operands[0]
        return FunctionCall(name="And", args=operands, operator=Operator.AND)

    def parse_equality(self) -> Node:
        """unary (('==' | '!=') unary)?"""
        left = self.parse_unary()
        op = self.match(TokenType.DOUBLE_EQUALS, TokenType.NOT_EQUALS)
        if op is None:
            return left

        right = self.parse_unary()
        if self.current.type in (TokenType.DOUBLE_EQUALS, TokenType.NOT_EQUALS):
            raise self.error("Comparisons do not chain; use parentheses to group them")

        if op.type == TokenType.DOUBLE_EQUALS:
            return FunctionCall(name="Equals", args=[left, right], operator=Operator.EQ)
        equals = FunctionCall(name="Equals", args=[left, right])
        return FunctionCall(name="Not", args=[equals], operator=Operator.NE)

    def parse_unary(self) -> Node:
        """'!' unary | postfix"""
        if self.match(TokenType.BANG):
            with self.nested():
                operand = self.parse_unary()
            return FunctionCall(name="Not", args=[operand], operator=Operator.NOT)
        return self.parse_postfix()

    def parse_postfix(self) -> Node:
        """primary ('.' IDENT | '[' STRING (',' STRING)* ']')*"""
        node = self.parse_primary()

        while self.current.type in (TokenType.DOT, TokenType.LBRACKET):
            if self.current.type == TokenType.DOT:
                dot = self.advance()
                prop = self.expect(TokenType.IDENTIFIER).value

                if isinstance(node, Identifier) and node.name == PSEUDO_BASE:
                    node = Identifier(name=f"{PSEUDO_PREFIX}{prop}")
                    continue
                if isinstance(node, Identifier) and node.is_pseudo:
                    raise self.error(
                        f"Pseudo parameter {PSEUDO_BASE}.{node.name[len(PSEUDO_PREFIX):]} "
                        "has no attributes",
                        dot,
                    )
                if isinstance(node, MemberAccess):
                    node = MemberAccess(object=node.object, path=[*node.path, prop])
                else:
                    node = MemberAccess(object=node, path=[prop])
            else:
                node = BracketAccess(object=node, path=self._parse_bracket_path())

        return node

    def _parse_bracket_path(self) -> list[str]:
        self.expect(TokenType.LBRACKET)
        path: list[str] = []
        while True:
            token = self.current
            if token.type != TokenType.STRING:
                raise self.error(
                    f"Attribute path segments must be strings, got {token.describe()}", token
                )
            path.append(self.advance().value)
            if not self.match(TokenType.COMMA):
                break
        self.expect(TokenType.RBRACKET)
        return path

    def parse_primary(self) -> Node:
        """literal | '(' expr ')' | object | array | declaration | call | IDENT"""
        tok = self.current

        if tok.type == TokenType.STRING:
            self.advance()
            return Literal(value=tok.value)

        if tok.type == TokenType.NUMBER:
            self.advance()
            if "." in tok.value:
                return Literal(value=float(tok.value))
            return Literal(value=int(tok.value))

        if tok.type == TokenType.LBRACE:
            return self.parse_object()

        if tok.type == TokenType.LBRACKET:
            return self.parse_array()

        if tok.type == TokenType.LPAREN:
            self.advance()
            expr = self.parse_expression()
            self.expect(TokenType.RPAREN)
            return expr

        if tok.type == TokenType.IDENTIFIER:
            if tok.value in _KEYWORD_LITERALS:
                self.advance()
                return Literal(value=_KEYWORD_LITERALS[tok.value])
            if tok.value == "Resource":
                return self.parse_resource()
            if tok.value == "Condition":
                self.advance()
                return ConditionDecl(expression=self.parse_expression())
            if tok.value in _OBJECT_DECLS:
                self.advance()
                return _OBJECT_DECLS[tok.value](body=self._parse_declaration_body(tok))
            if self.peek().type == TokenType.LPAREN:
                return self.parse_call()
            self.advance()
            return Identifier(name=tok.value)

        raise self.error(f"Unexpected {tok.describe()}", tok)

    def parse_call(self) -> FunctionCall:
        """IDENT '(' (expr (',' expr)*)? ')'"""
        name_tok = self.expect(TokenType.IDENTIFIER)
        self.expect(TokenType.LPAREN)

        args: list[Node] = []
        if self.current.type != TokenType.RPAREN:
            args.append(self.parse_expression())
            while self.match(TokenType.COMMA):
                args.append(self.parse_expression())
        self.expect(TokenType.RPAREN)

        if name_tok.value == "Ref":
            self._check_ref_call(name_tok, args)
        return FunctionCall(name=name_tok.value, args=args)

    def _check_ref_call(self, name_tok: Token, args: list[Node]) -> None:
        """Ref() is only for names that cannot be written bare."""
        if len(args) == 1 and isinstance(args[0], Identifier):
            ident = args[0]
            if ident.is_pseudo:
                spelled = f"{PSEUDO_BASE}.{ident.name[len(PSEUDO_PREFIX):]}"
            else:
                spelled = ident.name
            raise self.error(f"Use '{spelled}' directly instead of Ref({spelled})", name_tok)
        if len(args) != 1 or not _is_string(args[0]):
            raise self.error("Ref() takes exactly one string name", name_tok)

    def parse_object(self) -> ObjectLiteral:
        """'{' (key ':' expr (',' key ':' expr)* ','?)? '}'"""
        self.expect(TokenType.LBRACE)
        properties: list[tuple[str, Node]] = []
        seen: set[str] = set()

        while self.current.type != TokenType.RBRACE:
            key_tok = self.current
            if key_tok.type not in (TokenType.IDENTIFIER, TokenType.STRING, TokenType.NUMBER):
                raise self.error(f"Expected a property name, got {key_tok.describe()}", key_tok)
            self.advance()
            if key_tok.value in seen:
                raise self.error(f"Duplicate key '{key_tok.value}'", key_tok)
            seen.add(key_tok.value)

            self.expect(TokenType.COLON)
            properties.append((key_tok.value, self.parse_expression()))
            if not self.match(TokenType.COMMA):
                break

        self.expect(TokenType.RBRACE)
        return ObjectLiteral(properties=properties)

    def parse_array(self) -> ArrayLiteral:
        """'[' (expr (',' expr)* ','?)? ']'"""
        self.expect(TokenType.LBRACKET)
        elements: list[Node] = []
        while self.current.type != TokenType.RBRACKET:
            elements.append(self.parse_expression())
            if not self.match(TokenType.COMMA):
                break
        self.expect(TokenType.RBRACKET)
        return ArrayLiteral(elements=elements)

    # -- Declarations --

    def _parse_declaration_body(self, keyword: Token) -> ObjectLiteral:
        """Object body of Parameter/Output/Mapping/Rule; Parameter({..}) also accepted."""
        if self.current.type == TokenType.LBRACE:
            return self.parse_object()
        if self.current.type == TokenType.LPAREN and self.peek().type == TokenType.LBRACE:
            self.advance()
            body = self.parse_object()
            self.expect(TokenType.RPAREN)
            return body
        raise self.error(
            f"{keyword.value} expects an object literal, got {self.current.describe()}"
        )

    def parse_resource(self) -> ResourceDecl:
        """'Resource' type object? attribute*"""
        self.expect(TokenType.IDENTIFIER)  # Resource
        resource_type = self.parse_resource_type()

        properties = None
        if self.current.type == TokenType.LBRACE:
            properties = self.parse_object()

        attributes: list[ResourceAttribute] = []
        seen: set[str] = set()
        # Modifiers continue the line the resource ends on
        while (
            self.current.type == TokenType.IDENTIFIER
            and self.current.value in RESOURCE_ATTRIBUTES
            and self.current.line == self.previous.line
            and self.peek().type == TokenType.LPAREN
        ):
            attr_tok = self.advance()
            if attr_tok.value in seen:
                raise self.error(f"Duplicate resource attribute {attr_tok.value}", attr_tok)
            seen.add(attr_tok.value)

            self.expect(TokenType.LPAREN)
            value = self.parse_expression()
            self.expect(TokenType.RPAREN)
            self._check_policy(attr_tok, value)
            attributes.append(ResourceAttribute(name=attr_tok.value, value=value))

        return ResourceDecl(type=resource_type, properties=properties, attributes=attributes)

    def parse_resource_type(self) -> str:
        """IDENT ('::' IDENT)* | STRING"""
        tok = self.current
        if tok.type == TokenType.STRING:
            self.advance()
            if not tok.value:
                raise self.error("Resource type must not be empty", tok)
            return tok.value
        if tok.type != TokenType.IDENTIFIER:
            raise self.error(
                f"Expected a resource type such as AWS::S3::Bucket, got {tok.describe()}", tok
            )

        segments = [self.advance().value]
        while self.match(TokenType.DOUBLE_COLON):
            seg = self.current
            if seg.type != TokenType.IDENTIFIER:
                raise self.error(
                    f"Malformed resource type '{'::'.join(segments)}::': "
                    f"expected a name after '::', got {seg.describe()}",
                    seg,
                )
            segments.append(self.advance().value)
        return "::".join(segments)

    def _check_policy(self, attr_tok: Token, value: Node) -> None:
        allowed = POLICY_VALUES.get(attr_tok.value)
        if allowed is None or not isinstance(value, Identifier):
            return
        if value.name not in allowed:
            raise self.error(
                f"Invalid {attr_tok.value} value '{value.name}'. "
                f"Must be one of: {', '.join(allowed)}",
                attr_tok,
            )


def _is_string(node: Node) -> bool:
    return isinstance(node, Literal) and isinstance(node.value, str)


def parse_source(text: str, file: Path | None = None, settings: Settings | None = None) -> Template:
    """Parse cfnscript source into a Template.

    Args:
        text: Source text
        file: Optional path for error messages
        settings: Runtime settings

    Returns:
        Parsed Template.

    Raises:
        LexError: If tokenization fails.
        ParseError: If the source does not match the grammar.
    """
    return Parser(text, file, settings).parse()
