"""
wox exceptions and diagnostic collection.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: SourceSpan
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    @property
    def is_syntax_error(self) -> bool:
        return self.severity == ErrorSeverity.ERROR and self.code[:2] in ("E0", "E1")

    @property
    def is_runtime_error(self) -> bool:
        return self.severity == ErrorSeverity.ERROR and self.code.startswith("E4")

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        loc = f"{self.span.start}"
        parts.append(f"{loc}: {self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            },
            "hints": self.hints,
        }


class WoxError(Exception):
    """Base exception for wox errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(WoxError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(WoxError):
    """Error during parsing (E1xx)."""
    pass


class WoxRuntimeError(WoxError):
    """Error during evaluation (E4xx)."""
    pass


def _where(found: str) -> str:
    return "at end" if found == "end of input" else f"at '{found}'"


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=['string literals must be closed with a matching \'"\''],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return ParserError(diag)


def error_expected_expression(found: str, span: SourceSpan,
                              source_line: str = None) -> ParserError:
    """E103: Expected an expression."""
    diag = Diagnostic(
        code="E103",
        message=f"expected expression {_where(found)}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unsupported_statement(keyword: str, span: SourceSpan,
                                source_line: str = None) -> ParserError:
    """E104: Statement form without a grammar."""
    diag = Diagnostic(
        code="E104",
        message=f"'{keyword}' loops are not supported",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["use 'while CONDITION { ... }' or 'loop { ... }' instead"],
    )
    return ParserError(diag)


def error_invalid_assignment_target(span: SourceSpan, source_line: str = None) -> ParserError:
    """E105: Left side of '=' is not a variable or property."""
    diag = Diagnostic(
        code="E105",
        message="invalid assignment target",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["only variables and properties (obj.name) can be assigned"],
    )
    return ParserError(diag)


def error_too_many(what: str, limit: int, span: SourceSpan,
                   source_line: str = None) -> ParserError:
    """E106: Parameter, argument or tuple element limit exceeded."""
    diag = Diagnostic(
        code="E106",
        message=f"cannot have more than {limit} {what}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_duplicate_binding(name: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E107: A pattern binds the same name twice."""
    diag = Diagnostic(
        code="E107",
        message=f"'{name}' is bound more than once in this pattern",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


# --- Runtime error codes ---

def _runtime(code: str, message: str, span: SourceSpan,
             source_line: str = None, hints: List[str] = None) -> WoxRuntimeError:
    diag = Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )
    return WoxRuntimeError(diag)


def error_unbound_variable(name: str, span: SourceSpan, source_line: str = None) -> WoxRuntimeError:
    """E401: Unbound variable."""
    return _runtime("E401", f"unbound variable '{name}' is not in scope", span, source_line)


def error_operands_must_be_numbers(operator: str, span: SourceSpan,
                                   source_line: str = None) -> WoxRuntimeError:
    """E402: Non-numeric operand to arithmetic or comparison."""
    return _runtime("E402", f"operands of '{operator}' must be numbers", span, source_line)


def error_operand_must_be_boolean(operator: str, span: SourceSpan,
                                  source_line: str = None) -> WoxRuntimeError:
    """E403: Non-boolean operand to '!'."""
    return _runtime("E403", f"operand of '{operator}' must be a boolean", span, source_line)


def error_append_needs_strings(span: SourceSpan, source_line: str = None) -> WoxRuntimeError:
    """E404: '++' applied to something other than two strings."""
    return _runtime("E404", "append '++' is only defined for two strings", span, source_line)


def error_not_callable(type_name: str, span: SourceSpan, source_line: str = None) -> WoxRuntimeError:
    """E405: Calling a value that is not a function or class."""
    return _runtime("E405", f"can only call functions and classes, not {type_name}",
                    span, source_line)


def error_arity_mismatch(expected: int, found: int, span: SourceSpan,
                         source_line: str = None) -> WoxRuntimeError:
    """E406: Call with the wrong number of arguments."""
    return _runtime("E406", f"expected {expected} argument(s) but got {found}", span, source_line)


def error_non_exhaustive_match(value: str, span: SourceSpan, source_line: str = None) -> WoxRuntimeError:
    """E407: No case arm matched."""
    return _runtime("E407", f"non-exhaustive match: no arm matches {value}", span, source_line,
                    hints=["add a final '_ then ...' arm to handle every value"])


def error_bad_property_access(message: str, span: SourceSpan, source_line: str = None) -> WoxRuntimeError:
    """E408: Property access on a non-instance, or unknown property."""
    return _runtime("E408", message, span, source_line)


def error_superclass_not_class(name: str, span: SourceSpan, source_line: str = None) -> WoxRuntimeError:
    """E409: Superclass expression is not a class."""
    return _runtime("E409", f"superclass '{name}' must be a class", span, source_line)


def error_return_outside_function(span: SourceSpan, source_line: str = None) -> WoxRuntimeError:
    """E410: Top-level return."""
    return _runtime("E410", "cannot return from top-level code", span, source_line)


def error_outside_method(keyword: str, span: SourceSpan, source_line: str = None) -> WoxRuntimeError:
    """E411: 'this' or 'super' used outside a method."""
    return _runtime("E411", f"cannot use '{keyword}' outside of a class method", span, source_line)


class DiagnosticCollector:
    """
    Collects diagnostics during scanning, parsing and evaluation.

    `had_syntax_error` and `had_runtime_error` are sticky: once set they
    stay set until `reset()` is called (an interactive loop resets after
    every line).
    """

    def __init__(self, max_errors: int = 20):
        self.diagnostics: List[Diagnostic] = []
        self.max_errors = max_errors
        self._error_count = 0
        self.had_syntax_error = False
        self.had_runtime_error = False

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1
        if diagnostic.is_syntax_error:
            self.had_syntax_error = True
        elif diagnostic.is_runtime_error:
            self.had_runtime_error = True

    def add_error(self, error: WoxError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    def reset(self) -> None:
        """Forget all diagnostics and clear both error flags."""
        self.diagnostics.clear()
        self._error_count = 0
        self.had_syntax_error = False
        self.had_runtime_error = False

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def should_stop(self) -> bool:
        """Check if we've hit the max error limit."""
        return self._error_count >= self.max_errors

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"{self._error_count} error(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "had_syntax_error": self.had_syntax_error,
            "had_runtime_error": self.had_runtime_error,
        }
