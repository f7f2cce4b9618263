"""
Lexer for wox.

Converts source text into a list of tokens for the parser.
Supports:
- Line comments (// to end of line)
- String literals delimited by '"' (no escape sequences, may span lines)
- Number literals (digits with an optional fractional part), decoded to float
- Identifiers and keywords
- One and two character operators, longest match first

Lexical errors never stop the scan: each one is recorded in the
DiagnosticCollector and scanning resumes at the next character.
"""

import logging
from typing import List, Optional, Iterator
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    LexerError,
    DiagnosticCollector,
    error_unexpected_character,
    error_unterminated_string,
)

logger = logging.getLogger(__name__)


# Operators that may be followed by a second character forming a longer token
_TWO_CHAR_TOKENS = {
    ('!', '='): TokenType.BANG_EQUAL,
    ('=', '='): TokenType.EQUAL_EQUAL,
    ('<', '='): TokenType.LESS_EQUAL,
    ('>', '='): TokenType.GREATER_EQUAL,
    ('+', '+'): TokenType.PLUS_PLUS,
}

_SINGLE_CHAR_TOKENS = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    ';': TokenType.SEMICOLON,
    '-': TokenType.MINUS,
    '+': TokenType.PLUS,
    '/': TokenType.SLASH,
    '*': TokenType.STAR,
    '!': TokenType.BANG,
    '=': TokenType.EQUAL,
    '<': TokenType.LESS,
    '>': TokenType.GREATER,
}


def _is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


def _is_alpha(ch: str) -> bool:
    return ('a' <= ch <= 'z') or ('A' <= ch <= 'Z') or ch == '_'


def _is_alphanumeric(ch: str) -> bool:
    return _is_alpha(ch) or _is_digit(ch)


class Lexer:
    """
    Tokenizer for wox.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()
        if lexer.diagnostics.had_syntax_error:
            ...

    Or for streaming:
        for token in Lexer(source_code):
            process(token)

    The token list always ends with exactly one EOF token.
    """

    def __init__(self, source: str, filename: Optional[str] = None,
                 diagnostics: Optional[DiagnosticCollector] = None):
        self.source = source
        self.filename = filename
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume character if it matches expected."""
        if not self._is_at_end() and self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        """Check if we've reached end of source."""
        return self.pos >= len(self.source)

    def _skip_comment(self) -> None:
        """Skip a line comment (// to end of line)."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_whitespace_and_comments(self) -> None:
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r\n':
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                self._skip_comment()
            else:
                return

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        """Create a token."""
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a string literal. The value is the raw text between the quotes."""
        start = self._location()
        self._advance()  # consume opening quote

        while not self._is_at_end() and self._peek() != '"':
            self._advance()

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        value = self.source[start.offset + 1:self.pos - 1]
        return self._make_token(TokenType.STRING, value, start)

    def _scan_number(self) -> Token:
        """Scan a numeric literal; a trailing '.' without digits is left alone."""
        start = self._location()

        while _is_digit(self._peek()):
            self._advance()

        if self._peek() == '.' and _is_digit(self._peek(1)):
            self._advance()  # consume '.'
            while _is_digit(self._peek()):
                self._advance()

        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.NUMBER, float(lexeme), start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier, keyword or the '_' wildcard."""
        start = self._location()

        while _is_alphanumeric(self._peek()):
            self._advance()

        lexeme = self.source[start.offset:self.pos]

        if lexeme == '_':
            return self._make_token(TokenType.UNDERSCORE, None, start, lexeme)

        token_type = KEYWORDS.get(lexeme)
        if token_type is None:
            return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

        value = None
        if token_type == TokenType.TRUE:
            value = True
        elif token_type == TokenType.FALSE:
            value = False
        return self._make_token(token_type, value, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_whitespace_and_comments()

        if self._is_at_end():
            start = self._location()
            return self._make_token(TokenType.EOF, None, start, "")

        start = self._location()
        ch = self._peek()

        if ch == '"':
            return self._scan_string()

        if _is_digit(ch):
            return self._scan_number()

        if _is_alpha(ch):
            return self._scan_identifier_or_keyword()

        self._advance()

        # Two-character operators win over their one-character prefix
        two_char = _TWO_CHAR_TOKENS.get((ch, self._peek()))
        if two_char is not None:
            self._advance()
            return self._make_token(two_char, None, start)

        if ch in _SINGLE_CHAR_TOKENS:
            return self._make_token(_SINGLE_CHAR_TOKENS[ch], None, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens, recording lexical errors and skipping past them."""
        while True:
            try:
                token = self._scan_token()
            except LexerError as e:
                logger.debug("lexical error: %s", e.diagnostic.message)
                self.diagnostics.add_error(e)
                continue
            yield token
            if token.type == TokenType.EOF:
                break

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        tokens = list(self)
        logger.debug("scanned %d token(s)", len(tokens))
        return tokens


def tokenize(source: str, filename: Optional[str] = None,
             diagnostics: Optional[DiagnosticCollector] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages
        diagnostics: Optional collector receiving lexical errors

    Returns:
        List of tokens, always terminated by a single EOF token
    """
    lexer = Lexer(source, filename, diagnostics)
    return lexer.tokenize()
