"""
Shared lexical and grammatical tables for the Kaleido language.

Exports:
    KEYWORDS: Reserved words mapped to their token types.
    token_hashmap: Punctuation and operator symbols mapped to token types.
    operator_tokens: Binary operator symbols mapped to canonical operator names.
    DEFAULT_PRECEDENCE: Canonical operator names mapped to binding strength.
    STAGES: Output stages the session driver can display.
"""

ADD = "ADD"
SUB = "SUB"
MUL = "MUL"
DIV = "DIV"
SHIFT = "SHIFT"

BINARY_OPS: tuple[str, ...] = (ADD, SUB, MUL, DIV, SHIFT)

KEYWORDS: dict[str, str] = {
    "def": "DEF",
    "extern": "EXTERN",
    "let": "LET",
    "if": "IF",
    "then": "THEN",
    "else": "ELSE",
}

token_hashmap: dict[str, str] = {
    "(": "LPAREN",
    ")": "RPAREN",
    ",": "COMMA",
    "=": "ASSIGN",
    ";": "DELIM",
    "+": "BINOP",
    "-": "BINOP",
    "*": "BINOP",
    "/": "BINOP",
    "<<": "BINOP",
}

operator_tokens: dict[str, str] = {
    "+": ADD,
    "-": SUB,
    "*": MUL,
    "/": DIV,
    "<<": SHIFT,
}

# higher binds tighter
DEFAULT_PRECEDENCE: dict[str, int] = {
    MUL: 40,
    DIV: 40,
    ADD: 20,
    SUB: 20,
    SHIFT: 10,
}

STAGES: tuple[str, ...] = ("tokens", "ast", "asm")

QUIT_COMMANDS: tuple[str, ...] = (".quit",)

__all__ = [
    "ADD",
    "BINARY_OPS",
    "DEFAULT_PRECEDENCE",
    "DIV",
    "KEYWORDS",
    "MUL",
    "QUIT_COMMANDS",
    "SHIFT",
    "STAGES",
    "SUB",
    "operator_tokens",
    "token_hashmap",
]
