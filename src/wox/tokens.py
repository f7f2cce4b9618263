"""
Token types for the wox lexer.

Token type categories follow the error code ranges used in errors.py:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the wox lexer."""

    # --- Delimiters ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COMMA = auto()              # ,
    DOT = auto()                # .
    SEMICOLON = auto()          # ;

    # --- Arithmetic operators ---
    MINUS = auto()              # -
    PLUS = auto()               # +
    PLUS_PLUS = auto()          # ++ (string append)
    SLASH = auto()              # /
    STAR = auto()               # *

    # --- One or two character operators ---
    BANG = auto()               # !
    BANG_EQUAL = auto()         # !=
    EQUAL = auto()              # =
    EQUAL_EQUAL = auto()        # ==
    GREATER = auto()            # >
    GREATER_EQUAL = auto()      # >=
    LESS = auto()               # <
    LESS_EQUAL = auto()         # <=

    # --- Literals ---
    IDENTIFIER = auto()         # user-defined names
    STRING = auto()             # "hello"
    NUMBER = auto()             # 42, 3.14
    UNDERSCORE = auto()         # _ (wildcard in patterns)

    # --- Keywords ---
    CLASS = auto()
    THIS = auto()
    SUPER = auto()
    FN = auto()
    IF = auto()
    THEN = auto()
    ELSE = auto()
    DO = auto()
    LOOP = auto()
    FOR = auto()
    WHILE = auto()
    CASE = auto()
    OF = auto()
    LET = auto()
    IN = auto()
    VAR = auto()
    FALSE = auto()
    TRUE = auto()
    NIL = auto()
    AND = auto()
    OR = auto()
    PRINT = auto()
    RETURN = auto()

    # --- Special ---
    EOF = auto()                # end of input


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # Decoded literal (float, str, bool) or None
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    @property
    def line(self) -> int:
        return self.span.start.line

    @property
    def column(self) -> int:
        return self.span.start.column

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.STRING, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Reserved words, in declaration order. KEYWORDS is derived from this
# tuple once and never modified afterwards.
RESERVED: tuple = (
    TokenType.CLASS, TokenType.THIS, TokenType.SUPER,
    TokenType.FN, TokenType.IF, TokenType.THEN, TokenType.ELSE,
    TokenType.DO, TokenType.LOOP,
    TokenType.FOR, TokenType.WHILE, TokenType.CASE, TokenType.OF,
    TokenType.LET, TokenType.IN, TokenType.VAR,
    TokenType.FALSE, TokenType.TRUE, TokenType.NIL,
    TokenType.AND, TokenType.OR,
    TokenType.PRINT,
    TokenType.RETURN,
)

# Keyword mapping - maps source text to token type
KEYWORDS: dict[str, TokenType] = {tt.name.lower(): tt for tt in RESERVED}

# Fixed spellings for punctuation, used in error messages
PUNCTUATION: dict[TokenType, str] = {
    TokenType.LPAREN: "(",
    TokenType.RPAREN: ")",
    TokenType.LBRACE: "{",
    TokenType.RBRACE: "}",
    TokenType.LBRACKET: "[",
    TokenType.RBRACKET: "]",
    TokenType.COMMA: ",",
    TokenType.DOT: ".",
    TokenType.SEMICOLON: ";",
    TokenType.MINUS: "-",
    TokenType.PLUS: "+",
    TokenType.PLUS_PLUS: "++",
    TokenType.SLASH: "/",
    TokenType.STAR: "*",
    TokenType.BANG: "!",
    TokenType.BANG_EQUAL: "!=",
    TokenType.EQUAL: "=",
    TokenType.EQUAL_EQUAL: "==",
    TokenType.GREATER: ">",
    TokenType.GREATER_EQUAL: ">=",
    TokenType.LESS: "<",
    TokenType.LESS_EQUAL: "<=",
    TokenType.UNDERSCORE: "_",
}

_DECLARATION_STARTS = frozenset({
    TokenType.CLASS, TokenType.FN, TokenType.VAR,
    TokenType.FOR, TokenType.LOOP, TokenType.WHILE,
    TokenType.PRINT, TokenType.RETURN,
})

_EXPRESSION_STARTS = frozenset({
    TokenType.LPAREN, TokenType.LBRACKET,
    TokenType.IDENTIFIER, TokenType.STRING, TokenType.NUMBER,
    TokenType.TRUE, TokenType.FALSE, TokenType.NIL,
    TokenType.DO, TokenType.LET, TokenType.CASE, TokenType.IF,
    TokenType.BANG, TokenType.MINUS,
    TokenType.THIS, TokenType.SUPER,
})


def is_keyword(token_type: TokenType) -> bool:
    """Check if a token type is a reserved word."""
    return token_type in RESERVED


def is_literal(token_type: TokenType) -> bool:
    """Check if a token type carries source-dependent text."""
    return token_type in (TokenType.IDENTIFIER, TokenType.STRING, TokenType.NUMBER)


def begins_declaration(token_type: TokenType) -> bool:
    """Check if a token type starts a declaration (parser sync point)."""
    return token_type in _DECLARATION_STARTS


def begins_expression(token_type: TokenType) -> bool:
    """Check if a token type can start an expression."""
    return token_type in _EXPRESSION_STARTS


def describe(token_type: TokenType) -> str:
    """Human-readable spelling of a token type for error messages."""
    if token_type in PUNCTUATION:
        return f"'{PUNCTUATION[token_type]}'"
    if is_keyword(token_type):
        return f"'{token_type.name.lower()}'"
    if token_type == TokenType.EOF:
        return "end of input"
    return token_type.name.lower()
