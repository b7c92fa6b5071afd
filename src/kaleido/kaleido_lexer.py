"""
Lexical analyzer for the Kaleido language.

This module converts raw source text into an ordered, finite token stream:

Classes:
    CharacterStream: Stream abstraction for reading characters with line/column tracking.
    Token: Immutable lexical token with type, value, and source location.
    Lexer: Converts a CharacterStream into tokens, with one-token lookahead.
    LexicalError: Raised for malformed numerals.

Features:
    - Skips whitespace; keeps `#` comments as COMMENT tokens
    - Recognizes:
        * Identifiers and the keywords `def`, `extern`, `let`, `if`, `then`, `else`
        * Numbers (ASCII digits and dots, converted to float)
        * Punctuation `( ) , = ;` and binary operators `+ - * / <<`
    - Any other character becomes an UNKNOWN token; it is never an error

Raises:
    LexicalError: If a numeral cannot be converted (e.g. `1.2.3` or a lone `.`).

Example:
    >>> tokenize("def f(x) x")[:2]
    [Token(DEF, def), Token(IDENT, f)]

Exports:
    - CharacterStream
    - LexicalError
    - Token
    - Lexer
    - tokenize
"""

import string
from collections.abc import Iterator
from dataclasses import dataclass

from kaleido.kaleido_constants import KEYWORDS, token_hashmap


class LexicalError(ValueError):
    """Raised when the lexer meets a malformed numeral.

    Attributes:
        text (str): The offending source text.
        line (int): Line where the numeral starts.
        col (int): Column where the numeral starts.
    """

    def __init__(self, text: str, line: int, col: int):
        super().__init__(f"Invalid number format {text!r} at line {line}, col {col}")
        self.text = text
        self.line = line
        self.col = col


class CharacterStream:
    """
    A utility for reading characters from a string source with line and column tracking.

    Attributes:
        source (str): The input source string.
        position (int): Current index in the source.
        line (int): Current line number (1-indexed).
        column (int): Current column number (1-indexed).
    """

    def __init__(self, source: str, position: int = 0, line: int = 1, column: int = 1):
        self.source = source
        self.position = position
        self.line = line
        self.column = column

    def next(self) -> str:
        """
        Consumes and returns the next character in the stream.

        Raises:
            EOFError: If reading past the end of the source.
        """
        if self.position >= len(self.source):
            raise EOFError(
                f"CharacterStreamError: Attempted to read past end of source at position=<{self.position}>, line=<{self.line}>"
            )
        char = self.source[self.position]
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.position += 1
        return char

    def peek(self, offset: int = 0) -> str:
        """Returns the character at `offset` without advancing, or "" when out of bounds."""
        index = self.position + offset
        if index < 0 or index >= len(self.source):
            return ""
        return self.source[index]

    def current(self) -> str | None:
        return self.source[self.position] if self.position < len(self.source) else None

    def end_of_file(self) -> bool:
        return self.position >= len(self.source)


@dataclass(frozen=True)
class Token:
    """A single lexical token of the Kaleido language.

    Attributes:
        type (str): The token type (e.g. 'IDENT', 'NUMBER', 'BINOP', 'EOF').
        value (str | float): The identifier name, numeric value, symbol, or comment text.
        line (int): The 1-based line number where the token appears.
        col (int): The 1-based column number where the token starts.
    """

    type: str
    value: str | float
    line: int = 0
    col: int = 0

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value})"


class Lexer:
    """Lexical analyzer for the Kaleido language.

    The Lexer reads a CharacterStream forward-only. `peek_token()` gives one
    token of lookahead without consuming it.

    Attributes:
        stream (CharacterStream): The source stream to tokenize.
    """

    def __init__(self, stream: CharacterStream) -> None:
        self.stream = stream
        self._lookahead: Token | None = None

    def __iter__(self) -> Iterator[Token]:
        while True:
            tok = self.next_token()
            if tok.type == "EOF":
                return
            yield tok

    def peek(self) -> str:
        return self.stream.peek()

    def advance(self) -> str:
        return self.stream.next()

    def skip_whitespace(self) -> None:
        while not self.stream.end_of_file() and self.peek().isspace():
            self.advance()

    def read_comment(self) -> str:
        """Consumes a `#` comment up to (not including) the end of the line."""
        text = ""
        while not self.stream.end_of_file() and self.peek() not in "\r\n":
            text += self.advance()
        return text

    def match_operator(self) -> Token | None:
        """Attempts to match the longest punctuation or operator symbol at the cursor.

        Returns:
            Token | None: A Token if a match is found, otherwise None.
        """
        line, col = self.stream.line, self.stream.column
        max_token = None
        match_len = 0
        candidate = ""

        for i in range(max(len(sym) for sym in token_hashmap)):
            ch = self.stream.peek(i)
            if ch == "":
                break
            candidate += ch
            if candidate in token_hashmap:
                max_token = candidate
                match_len = i + 1

        if max_token:
            for _ in range(match_len):
                self.advance()
            return Token(token_hashmap[max_token], max_token, line, col)

        return None

    def peek_token(self) -> Token:
        """Returns the next Token without consuming it."""
        if self._lookahead is None:
            self._lookahead = self._scan()
        return self._lookahead

    def next_token(self) -> Token:
        """Consumes and returns the next Token from the stream.

        Raises:
            LexicalError: If a malformed numeral is encountered.
        """
        if self._lookahead is not None:
            tok, self._lookahead = self._lookahead, None
            return tok
        return self._scan()

    def _scan(self) -> Token:
        self.skip_whitespace()

        if self.stream.end_of_file():
            return Token("EOF", "EOF", self.stream.line, self.stream.column)

        ch = self.peek()
        line, col = self.stream.line, self.stream.column

        # 1. Identifier or keyword
        if ch.isalpha():
            ident = ""
            while not self.stream.end_of_file() and (
                self.peek().isalnum() or self.peek() == "_"
            ):
                ident += self.advance()
            if ident in KEYWORDS:
                return Token(KEYWORDS[ident], ident, line, col)
            return Token("IDENT", ident, line, col)

        # 2. Number
        if ch in string.digits or ch == ".":
            num = ""
            while not self.stream.end_of_file() and (
                self.peek() in string.digits + "."
            ):
                num += self.advance()
            try:
                return Token("NUMBER", float(num), line, col)
            except ValueError:
                raise LexicalError(num, line, col) from None

        # 3. Comment
        if ch == "#":
            return Token("COMMENT", self.read_comment(), line, col)

        # 4. Punctuation or operator
        token = self.match_operator()
        if token:
            return token

        # 5. Anything else
        return Token("UNKNOWN", self.advance(), line, col)


def tokenize(source: str, line: int = 1) -> list[Token]:
    """Tokenizes `source` completely.

    Args:
        source (str): The text to tokenize.
        line (int, optional): Line number stamped on the first line of `source`. Defaults to 1.

    Returns:
        list[Token]: Every token in input order, terminated by a single EOF token.

    Raises:
        LexicalError: If a malformed numeral is encountered.
    """
    lexer = Lexer(CharacterStream(source, 0, line, 1))
    tokens = list(lexer)
    tokens.append(lexer.next_token())
    return tokens


__all__ = ["CharacterStream", "LexicalError", "Lexer", "Token", "tokenize"]
