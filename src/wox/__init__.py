"""
wox - a small expression-oriented scripting language.

This module provides:
- Lexer: Tokenizes wox source code
- Parser: Builds the AST from tokens
- Interpreter: Tree-walking evaluation with closures, classes and
  pattern matching
- Printers: canonical source and s-expression renderings of the AST

Usage:
    from wox import scan_and_parse, Interpreter

    statements, diagnostics = scan_and_parse('''
        class Point {
            init(x, y) { this.x = x; this.y = y; }
            sum() { return this.x + this.y; }
        }
        print Point(1, 2).sum();
    ''')
    if diagnostics.had_syntax_error:
        print(diagnostics.format_all())
    else:
        Interpreter().interpret(statements)
"""

__version__ = "0.3.0"

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
    is_keyword,
    begins_declaration,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
    scan_and_parse,
)

from .errors import (
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
    WoxError,
    LexerError,
    ParserError,
    WoxRuntimeError,
)

from .printer import (
    format_source,
    to_sexpr,
)

from .config import (
    WoxConfig,
    ConfigError,
    load_config,
)

from .runtime import (
    Environment,
    Interpreter,
    run_source,
    stringify,
)

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',
    'is_keyword',
    'begins_declaration',

    # Lexer / Parser
    'Lexer',
    'tokenize',
    'Parser',
    'parse',
    'scan_and_parse',

    # Errors
    'Diagnostic',
    'DiagnosticCollector',
    'ErrorSeverity',
    'WoxError',
    'LexerError',
    'ParserError',
    'WoxRuntimeError',

    # Printers
    'format_source',
    'to_sexpr',

    # Config
    'WoxConfig',
    'ConfigError',
    'load_config',

    # Runtime
    'Environment',
    'Interpreter',
    'run_source',
    'stringify',
]
