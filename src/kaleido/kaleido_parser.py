"""
Kaleido Language Parser

Resumable recursive-descent parser with precedence climbing for binary
expressions.

Grammar
-------
    program    ::= (definition | external | ';' | expression)*
    definition ::= 'def' prototype expression
    external   ::= 'extern' prototype
    prototype  ::= IDENT '(' [IDENT (',' IDENT)*] ')'
    primary    ::= IDENT | IDENT '(' [expression (',' expression)*] ')'
                 | NUMBER | '(' expression ')' | 'let' IDENT '=' expression
    expression ::= primary (BINOP primary)*

A bare top-level expression is wrapped as an anonymous zero-parameter function.

Parse Results
-------------
Every parse routine returns one of three results instead of raising:

- `Good(value, consumed)`: the construct was parsed; `consumed` tokens were used.
- `NotComplete()`: the tokens ran out in the middle of the construct. The routine
  rewinds the cursor to where it started, so the same attempt can be retried in
  full once more tokens are available.
- `Bad(message)`: the construct is malformed and cannot be completed.

The top-level entry point `parse()` fills `NotComplete.rest` with the verbatim
leftover tokens (comments included, EOF markers dropped) and `value` with the
AST extended by every construct that did complete, so a session driver can
carry the leftover into its next turn.

An expression that ends exactly where the available tokens end is complete.

Entry Points
------------
- `parse(tokens, ast, settings)`: Parse a token sequence on top of an existing AST.
- `Parser.parse_program(ast)`: Same, on a constructed Parser.
- `Parser.parse_expression()`: Parse one expression.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Generic, TypeVar, Union

from kaleido.kaleido_ast import (
    Assignment,
    ASTNode,
    Binary,
    Call,
    Expression,
    ExternDecl,
    FunctionDecl,
    Literal,
    Prototype,
    Variable,
)
from kaleido.kaleido_constants import DEFAULT_PRECEDENCE, operator_tokens
from kaleido.kaleido_lexer import Token

T = TypeVar("T")

TRIVIA = ("EOF", "COMMENT")


@dataclass(frozen=True)
class Good(Generic[T]):
    value: T
    consumed: int = 0
    rest: tuple[Token, ...] = ()


@dataclass(frozen=True)
class NotComplete:
    value: tuple[ASTNode, ...] = ()
    rest: tuple[Token, ...] = ()


@dataclass(frozen=True)
class Bad:
    message: str
    value: tuple[ASTNode, ...] = ()


ParseResult = Union[Good[T], NotComplete, Bad]


def _frozen_default_precedence() -> Mapping[str, int]:
    return MappingProxyType(dict(DEFAULT_PRECEDENCE))


@dataclass(frozen=True)
class ParserSettings:
    """Immutable operator-precedence configuration passed into every parse.

    Attributes:
        precedence (Mapping[str, int]): Canonical operator name to binding strength.
            An operator missing from this table is reported as unknown. Values must
            be non-negative: expression parsing starts climbing from zero.

    Raises:
        ValueError: If a precedence value is negative.
    """

    precedence: Mapping[str, int] = field(default_factory=_frozen_default_precedence)

    def __post_init__(self) -> None:
        negative = sorted(op for op, prec in self.precedence.items() if prec < 0)
        if negative:
            raise ValueError(f"Negative precedence for operator(s): {', '.join(negative)}")
        object.__setattr__(self, "precedence", MappingProxyType(dict(self.precedence)))

    @classmethod
    def default(cls) -> ParserSettings:
        return cls()


def describe(tok: Token) -> str:
    """Renders a token for error messages, e.g. `')' at line 1, col 7`."""
    if tok.type == "UNKNOWN":
        return f"unknown character {tok.value!r} at line {tok.line}, col {tok.col}"
    if tok.type == "NUMBER":
        return f"number {tok.value} at line {tok.line}, col {tok.col}"
    return f"{tok.value!r} at line {tok.line}, col {tok.col}"


class Parser:
    """
    Kaleido Parser Class

    Holds an exclusively owned token list and a cursor. Routines advance the
    cursor as they absorb tokens and move it back to their own starting point
    whenever they return `NotComplete`.

    Attributes
    ----------
    tokens : list[Token]
        The token stream with trivia (EOF markers and comments) removed.
    source : list[Token]
        The tokens as given, trivia included.
    position : int
        Current index into the token stream.
    settings : ParserSettings
        Operator precedence table.
    """

    def __init__(
        self, tokens: Iterable[Token], settings: ParserSettings | None = None
    ) -> None:
        self.source: list[Token] = list(tokens)
        self._origin: list[int] = [
            i for i, t in enumerate(self.source) if t.type not in TRIVIA
        ]
        self.tokens: list[Token] = [self.source[i] for i in self._origin]
        self.position: int = 0
        self.settings: ParserSettings = settings or ParserSettings.default()

    def current(self) -> Token | None:
        return self.tokens[self.position] if self.position < len(self.tokens) else None

    def peek(self, offset: int = 1) -> Token | None:
        index = self.position + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def advance(self) -> Token:
        tok = self.current()
        if tok is None:
            raise AssertionError("advance() past the end of the token stream")
        self.position += 1
        return tok

    def at_end(self) -> bool:
        return self.position >= len(self.tokens)

    def expect(self, type_: str, what: str) -> Token | NotComplete | Bad:
        """Consumes a token of `type_`, or reports why it cannot."""
        tok = self.current()
        if tok is None:
            return NotComplete()
        if tok.type != type_:
            return Bad(f"Expected {what}, got {describe(tok)}")
        self.position += 1
        return tok

    def fail(self, result: NotComplete | Bad, start: int) -> NotComplete | Bad:
        """Propagates a non-Good result, rewinding to `start` when incomplete."""
        if isinstance(result, NotComplete):
            self.position = start
        return result

    def leftover(self, start: int) -> tuple[Token, ...]:
        """Source tokens from token `start` on, comments kept and EOF markers dropped."""
        return tuple(t for t in self.source[self._origin[start] :] if t.type != "EOF")

    def parse_program(self, ast: Iterable[ASTNode] = ()) -> ParseResult[tuple[ASTNode, ...]]:
        """Parse every top-level construct, appending to `ast`."""
        nodes: list[ASTNode] = list(ast)
        while not self.at_end():
            start = self.position
            if self.tokens[start].type == "DELIM":
                self.advance()
                continue

            result = self.parse_toplevel()
            if isinstance(result, NotComplete):
                return NotComplete(tuple(nodes), self.leftover(start))
            if isinstance(result, Bad):
                return Bad(result.message, tuple(nodes))
            nodes.append(result.value)

        return Good(tuple(nodes), self.position)

    def parse_toplevel(self) -> ParseResult[ASTNode]:
        tok = self.current()
        assert tok is not None
        if tok.type == "DEF":
            return self.parse_function()
        if tok.type == "EXTERN":
            return self.parse_extern()

        start = self.position
        result = self.parse_expression()
        if not isinstance(result, Good):
            return self.fail(result, start)
        return Good(FunctionDecl.anonymous(result.value), result.consumed)

    def parse_function(self) -> ParseResult[ASTNode]:
        """Parse `def prototype expression`."""
        start = self.position
        def_tok = self.advance()
        assert def_tok.type == "DEF"

        proto = self.parse_prototype()
        if not isinstance(proto, Good):
            return self.fail(proto, start)

        body = self.parse_expression()
        if not isinstance(body, Good):
            return self.fail(body, start)

        return Good(FunctionDecl(proto.value, body.value), self.position - start)

    def parse_extern(self) -> ParseResult[ASTNode]:
        """Parse `extern prototype`."""
        start = self.position
        extern_tok = self.advance()
        assert extern_tok.type == "EXTERN"

        proto = self.parse_prototype()
        if not isinstance(proto, Good):
            return self.fail(proto, start)

        return Good(ExternDecl(proto.value), self.position - start)

    def parse_prototype(self) -> ParseResult[Prototype]:
        """Parse `name(param, ...)`."""
        start = self.position

        name = self.expect("IDENT", "function name in prototype")
        if not isinstance(name, Token):
            return self.fail(name, start)

        lparen = self.expect("LPAREN", f"'(' after {name.value!r} in prototype")
        if not isinstance(lparen, Token):
            return self.fail(lparen, start)

        params: list[str] = []
        tok = self.current()
        if tok is None:
            return self.fail(NotComplete(), start)
        if tok.type == "RPAREN":
            self.advance()
            return Good(Prototype(str(name.value), ()), self.position - start)

        while True:
            param = self.expect("IDENT", "parameter name in prototype")
            if not isinstance(param, Token):
                return self.fail(param, start)
            params.append(str(param.value))

            tok = self.current()
            if tok is None:
                return self.fail(NotComplete(), start)
            if tok.type == "RPAREN":
                self.advance()
                break
            if tok.type != "COMMA":
                return Bad(f"Expected ',' or ')' in prototype, got {describe(tok)}")
            self.advance()

        return Good(Prototype(str(name.value), tuple(params)), self.position - start)

    def parse_expression(self) -> ParseResult[Expression]:
        """Parse a primary expression followed by any binary operator chain."""
        start = self.position

        lhs = self.parse_primary()
        if not isinstance(lhs, Good):
            return self.fail(lhs, start)

        expr = self.parse_binary_expr(0, lhs.value)
        if not isinstance(expr, Good):
            return self.fail(expr, start)

        return Good(expr.value, self.position - start)

    def parse_primary(self) -> ParseResult[Expression]:
        tok = self.current()
        if tok is None:
            return NotComplete()
        if tok.type == "IDENT":
            return self.parse_identifier_expr()
        if tok.type == "NUMBER":
            self.advance()
            return Good(Literal(float(tok.value)), 1)
        if tok.type == "LPAREN":
            return self.parse_paren_expr()
        if tok.type == "LET":
            return self.parse_let_expr()
        return Bad(f"Unexpected {describe(tok)} where an expression was expected")

    def parse_identifier_expr(self) -> ParseResult[Expression]:
        """Parse a variable reference or, when followed by '(', a call."""
        start = self.position
        name = self.advance()

        nxt = self.current()
        if nxt is None or nxt.type != "LPAREN":
            return Good(Variable(str(name.value)), 1)
        self.advance()

        args: list[Expression] = []
        tok = self.current()
        if tok is None:
            return self.fail(NotComplete(), start)
        if tok.type == "RPAREN":
            self.advance()
            return Good(Call(str(name.value), ()), self.position - start)

        while True:
            arg = self.parse_expression()
            if not isinstance(arg, Good):
                return self.fail(arg, start)
            args.append(arg.value)

            tok = self.current()
            if tok is None:
                return self.fail(NotComplete(), start)
            if tok.type == "RPAREN":
                self.advance()
                break
            if tok.type != "COMMA":
                return Bad(f"Expected ',' or ')' in argument list, got {describe(tok)}")
            self.advance()

        return Good(Call(str(name.value), tuple(args)), self.position - start)

    def parse_paren_expr(self) -> ParseResult[Expression]:
        """Parse `( expression )`."""
        start = self.position
        self.advance()

        inner = self.parse_expression()
        if not isinstance(inner, Good):
            return self.fail(inner, start)

        rparen = self.expect("RPAREN", "')' to close parenthesized expression")
        if not isinstance(rparen, Token):
            return self.fail(rparen, start)

        return Good(inner.value, self.position - start)

    def parse_let_expr(self) -> ParseResult[Expression]:
        """Parse `let name = expression`."""
        start = self.position
        self.advance()

        name = self.expect("IDENT", "variable name after 'let'")
        if not isinstance(name, Token):
            return self.fail(name, start)

        eq = self.expect("ASSIGN", f"'=' after 'let {name.value}'")
        if not isinstance(eq, Token):
            return self.fail(eq, start)

        value = self.parse_expression()
        if not isinstance(value, Good):
            return self.fail(value, start)

        return Good(Assignment(str(name.value), value.value), self.position - start)

    def operator_precedence(self, tok: Token) -> int | Bad:
        op = operator_tokens.get(str(tok.value))
        prec = self.settings.precedence.get(op) if op is not None else None
        if prec is None:
            return Bad(f"Unknown operator {describe(tok)}")
        return prec

    def parse_binary_expr(self, min_prec: int, lhs: Expression) -> ParseResult[Expression]:
        """Precedence climbing over `lhs (BINOP primary)*`.

        Operators binding at least as tightly as `min_prec` are folded into `lhs`
        left to right; a strictly tighter operator after a right-hand side is
        absorbed into that right-hand side first.
        """
        start = self.position
        result = lhs

        while True:
            op_tok = self.current()
            if op_tok is None or op_tok.type != "BINOP":
                break
            prec = self.operator_precedence(op_tok)
            if isinstance(prec, Bad):
                return prec
            if prec < min_prec:
                break
            self.advance()

            rhs_result = self.parse_primary()
            if not isinstance(rhs_result, Good):
                return self.fail(rhs_result, start)
            rhs = rhs_result.value

            while True:
                nxt = self.current()
                if nxt is None or nxt.type != "BINOP":
                    break
                nxt_prec = self.operator_precedence(nxt)
                if isinstance(nxt_prec, Bad):
                    return nxt_prec
                if nxt_prec <= prec:
                    break
                absorbed = self.parse_binary_expr(nxt_prec, rhs)
                if not isinstance(absorbed, Good):
                    return self.fail(absorbed, start)
                rhs = absorbed.value

            result = Binary(operator_tokens[str(op_tok.value)], result, rhs)

        return Good(result, self.position - start)


def parse(
    tokens: Iterable[Token],
    ast: Iterable[ASTNode] = (),
    settings: ParserSettings | None = None,
) -> ParseResult[tuple[ASTNode, ...]]:
    """Parse `tokens` on top of the already accumulated `ast`.

    Args:
        tokens: Leftover tokens from a previous attempt followed by new tokens.
        ast: Nodes completed so far; never mutated.
        settings: Precedence configuration. Defaults to `ParserSettings.default()`.

    Returns:
        Good: every token was absorbed; `value` is the extended AST.
        NotComplete: `value` is the extended AST, `rest` the leftover tokens from
            the start of the unfinished construct, comments kept and EOF markers
            dropped.
        Bad: a construct is malformed; `value` is the AST extended by the
            constructs completed before it.
    """
    return Parser(tokens, settings).parse_program(ast)


__all__ = [
    "Bad",
    "Good",
    "NotComplete",
    "ParseResult",
    "Parser",
    "ParserSettings",
    "describe",
    "parse",
]
