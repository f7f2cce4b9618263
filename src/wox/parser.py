"""
Recursive descent parser for wox.

Converts a token list into a list of statements (a program).

Errors inside one top-level declaration are recorded in the
DiagnosticCollector; the parser then synchronizes to the next
declaration keyword or past the next ';' and keeps going, leaving a
None placeholder where the failed declaration would have been.
"""

import logging
from typing import List, Optional, Callable, Tuple, TypeVar
from .tokens import Token, TokenType, SourceSpan, begins_declaration, begins_expression, describe
from .ast import (
    # Expressions
    Expression, Literal, Grouping, Unary, Binary, Variable, Assign,
    Call, Get, Set, This, Super, Let, Do, If, TupleExpr, VectorExpr,
    Case, CaseArm,
    # Patterns
    Pattern, UnitPattern, VariablePattern, LiteralPattern, WildcardPattern,
    AsPattern, TuplePattern, VectorPattern,
    # Statements
    Statement, ExpressionStatement, PrintStatement, VarDecl, Block,
    FunctionDecl, ClassDecl, ReturnStatement, WhileStatement, LoopStatement,
)
from .errors import (
    ParserError,
    DiagnosticCollector,
    error_unexpected_token,
    error_unexpected_eof,
    error_expected_expression,
    error_unsupported_statement,
    error_invalid_assignment_target,
    error_too_many,
    error_duplicate_binding,
)
from .lexer import tokenize

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Parser:
    """
    Recursive descent parser for wox.

    Usage:
        parser = Parser(tokens)
        statements = parser.parse()

    Expressions use precedence climbing over binary operators:
        Lowest:  = (assignment, right-associative, handled separately)
                 or
                 and
                 == !=
                 < > <= >=
                 + - ++
                 * /
        Highest: unary (! -), then calls and property access
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQUAL_EQUAL: 3,
        TokenType.BANG_EQUAL: 3,
        TokenType.LESS: 4,
        TokenType.GREATER: 4,
        TokenType.LESS_EQUAL: 4,
        TokenType.GREATER_EQUAL: 4,
        TokenType.PLUS: 5,
        TokenType.MINUS: 5,
        TokenType.PLUS_PLUS: 5,
        TokenType.STAR: 6,
        TokenType.SLASH: 6,
    }

    # Maximum number of parameters, call arguments and tuple elements
    MAX_ITEMS = 255

    def __init__(self, tokens: List[Token], filename: Optional[str] = None,
                 source: Optional[str] = None,
                 diagnostics: Optional[DiagnosticCollector] = None):
        self.tokens = tokens
        self.filename = filename
        self.source = source  # Original source code for error excerpts
        self.pos = 0
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
        self._lines = source.splitlines() if source else []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _previous(self) -> Token:
        return self.tokens[max(0, self.pos - 1)]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: Optional[str] = None) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected or describe(token_type))

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _source_line(self, line_num: int) -> Optional[str]:
        if 1 <= line_num <= len(self._lines):
            return self._lines[line_num - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error at the current token."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(expected, f"'{token.lexeme}'", token.span,
                                     self._source_line(token.line))

    def _report(self, error: ParserError) -> None:
        """Record an error without abandoning the current production."""
        logger.debug("parse error (continuing): %s", error.diagnostic.message)
        self.diagnostics.add_error(error)

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        end_token = self._previous()
        return SourceSpan(start.span.start, end_token.span.end)

    def _synchronize(self) -> None:
        """Discard tokens until a likely declaration boundary."""
        self._advance()
        while not self._is_at_end():
            if self._previous().type == TokenType.SEMICOLON:
                return
            if begins_declaration(self._current().type):
                return
            self._advance()

    def _delimited(self, start: TokenType, separator: TokenType, end: TokenType,
                   parse_item: Callable[[], T]) -> List[T]:
        """Parse `start item (separator item)* separator? end`, possibly empty."""
        items = []
        self._consume(start)
        first = True
        while not self._is_at_end():
            if self._check(end):
                break
            if first:
                first = False
            else:
                self._consume(separator)
            if self._check(end):
                break
            items.append(parse_item())
        self._consume(end)
        return items

    # =========================================================================
    # Declarations
    # =========================================================================

    def _parse_declaration(self) -> Optional[Statement]:
        """Parse one declaration, recovering from errors inside it."""
        try:
            start = self._current()
            if self._match(TokenType.CLASS):
                return self._parse_class_declaration(start)
            if self._match(TokenType.FN):
                return self._parse_function("function", start)
            if self._match(TokenType.VAR):
                return self._parse_var_declaration(start)
            return self._parse_statement()
        except ParserError as e:
            logger.debug("parse error (synchronizing): %s", e.diagnostic.message)
            self.diagnostics.add_error(e)
            self._synchronize()
            return None

    def _parse_class_declaration(self, start: Token) -> ClassDecl:
        """Parse `class Name [< Super] { methods }` after the 'class' keyword."""
        name = self._consume(TokenType.IDENTIFIER, "class name").value

        superclass = None
        if self._match(TokenType.LESS):
            parent = self._consume(TokenType.IDENTIFIER, "superclass name")
            superclass = Variable(span=parent.span, name=parent.value)

        self._consume(TokenType.LBRACE, "'{' before class body")
        methods = []
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            methods.append(self._parse_function("method", self._current()))
        self._consume(TokenType.RBRACE, "'}' after class body")

        return ClassDecl(
            span=self._span_from(start),
            name=name,
            superclass=superclass,
            methods=tuple(methods),
        )

    def _parse_function(self, kind: str, start: Token) -> FunctionDecl:
        """Parse `name(params) { body }`; the 'fn' keyword, if any, is already consumed."""
        name = self._consume(TokenType.IDENTIFIER, f"{kind} name").value
        self._consume(TokenType.LPAREN, f"'(' after {kind} name")

        params = []
        if not self._check(TokenType.RPAREN):
            while True:
                if len(params) == self.MAX_ITEMS:
                    self._report(error_too_many("parameters", self.MAX_ITEMS, self._current().span,
                                                self._source_line(self._current().line)))
                params.append(self._consume(TokenType.IDENTIFIER, "parameter name").value)
                if not self._match(TokenType.COMMA):
                    break
        self._consume(TokenType.RPAREN, "')' after parameters")

        self._consume(TokenType.LBRACE, f"'{{' before {kind} body")
        body = self._parse_block()
        return FunctionDecl(
            span=self._span_from(start),
            name=name,
            params=tuple(params),
            body=tuple(body),
        )

    def _parse_var_declaration(self, start: Token) -> VarDecl:
        """Parse `var name [= expr];` after the 'var' keyword."""
        name = self._consume(TokenType.IDENTIFIER, "variable name").value

        initializer = None
        if self._match(TokenType.EQUAL):
            initializer = self._parse_expression()

        self._consume(TokenType.SEMICOLON, "';' after variable declaration")
        return VarDecl(span=self._span_from(start), name=name, initializer=initializer)

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a statement."""
        token = self._current()

        # For loop - no grammar, give helpful error
        if token.type == TokenType.FOR:
            raise error_unsupported_statement("for", token.span, self._source_line(token.line))

        if self._match(TokenType.PRINT):
            expr = self._parse_expression()
            self._match(TokenType.SEMICOLON)
            return PrintStatement(span=self._span_from(token), expression=expr)

        if self._match(TokenType.RETURN):
            value = None
            if begins_expression(self._current().type):
                value = self._parse_expression()
            self._match(TokenType.SEMICOLON)
            return ReturnStatement(span=self._span_from(token), value=value)

        if self._match(TokenType.WHILE):
            condition = self._parse_expression()
            body = self._parse_statement()
            return WhileStatement(span=self._span_from(token), condition=condition, body=body)

        if self._match(TokenType.LOOP):
            self._consume(TokenType.LBRACE, "'{' after 'loop'")
            statements = self._parse_block()
            return LoopStatement(span=self._span_from(token), statements=tuple(statements))

        if self._match(TokenType.LBRACE):
            statements = self._parse_block()
            return Block(span=self._span_from(token), statements=tuple(statements))

        # Expression statement; the trailing ';' is optional
        expr = self._parse_expression()
        self._match(TokenType.SEMICOLON)
        return ExpressionStatement(span=expr.span, expression=expr)

    def _parse_block(self) -> List[Optional[Statement]]:
        """Parse declarations up to the closing '}' (the '{' is already consumed)."""
        statements = []
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            statements.append(self._parse_declaration())
        self._consume(TokenType.RBRACE, "'}' after block")
        return statements

    # =========================================================================
    # Expression Parsing (Precedence Climbing)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse an expression."""
        return self._parse_assignment()

    def _parse_assignment(self) -> Expression:
        """Parse assignment (right-associative, lowest precedence).

        The target is parsed as an ordinary expression first; only a
        Variable or a Get may stand on the left of '='.
        """
        expr = self._parse_binary_expr(1)

        if self._check(TokenType.EQUAL):
            equals = self._advance()
            value = self._parse_assignment()

            if isinstance(expr, Variable):
                return Assign(
                    span=SourceSpan(expr.span.start, value.span.end),
                    name=expr.name,
                    value=value,
                )
            if isinstance(expr, Get):
                return Set(
                    span=SourceSpan(expr.span.start, value.span.end),
                    object=expr.object,
                    name=expr.name,
                    value=value,
                )

            self._report(error_invalid_assignment_target(equals.span, self._source_line(equals.line)))

        return expr

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing (all left-associative)."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)

            left = Binary(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right,
                operator_span=op_token.span,
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (! -)."""
        if self._check_any(TokenType.BANG, TokenType.MINUS):
            op = self._advance()
            operand = self._parse_unary_expr()
            return Unary(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand,
                operator_span=op.span,
            )

        return self._parse_postfix_expr()

    def _parse_postfix_expr(self) -> Expression:
        """Parse calls and property access, left to right."""
        expr = self._parse_primary_expr()

        while True:
            if self._match(TokenType.LPAREN):
                expr = self._finish_call(expr)
            elif self._match(TokenType.DOT):
                name = self._consume(TokenType.IDENTIFIER, "property name after '.'")
                expr = Get(
                    span=SourceSpan(expr.span.start, name.span.end),
                    object=expr,
                    name=name.value,
                )
            else:
                break

        return expr

    def _finish_call(self, callee: Expression) -> Call:
        """Parse call arguments after the '('."""
        args = []
        if not self._check(TokenType.RPAREN):
            while True:
                if len(args) == self.MAX_ITEMS:
                    self._report(error_too_many("arguments", self.MAX_ITEMS, self._current().span,
                                                self._source_line(self._current().line)))
                args.append(self._parse_expression())
                if not self._match(TokenType.COMMA) or self._check(TokenType.RPAREN):
                    break
        paren = self._consume(TokenType.RPAREN, "')' after arguments")
        return Call(
            span=SourceSpan(callee.span.start, paren.span.end),
            callee=callee,
            arguments=tuple(args),
        )

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, names, scoping forms, grouped, etc.)."""
        token = self._current()

        if token.type in (TokenType.TRUE, TokenType.FALSE, TokenType.NUMBER, TokenType.STRING):
            self._advance()
            return Literal(span=token.span, value=token.value)

        if token.type == TokenType.NIL:
            self._advance()
            return Literal(span=token.span, value=None)

        if token.type == TokenType.LET:
            return self._parse_let_expr()

        if token.type == TokenType.DO:
            return self._parse_do_expr()

        if token.type == TokenType.IF:
            return self._parse_if_expr()

        if token.type == TokenType.CASE:
            return self._parse_case_expr()

        if token.type == TokenType.SUPER:
            self._advance()
            self._consume(TokenType.DOT, "'.' after 'super'")
            method = self._consume(TokenType.IDENTIFIER, "superclass method name")
            return Super(span=self._span_from(token), method=method.value)

        if token.type == TokenType.THIS:
            self._advance()
            return This(span=token.span)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Variable(span=token.span, name=token.value)

        if token.type == TokenType.LBRACKET:
            elements = self._delimited(TokenType.LBRACKET, TokenType.COMMA, TokenType.RBRACKET,
                                       self._parse_expression)
            return VectorExpr(span=self._span_from(token), elements=tuple(elements))

        if token.type == TokenType.LPAREN:
            return self._parse_grouped_or_tuple()

        found = "end of input" if token.type == TokenType.EOF else token.lexeme
        raise error_expected_expression(found, token.span, self._source_line(token.line))

    def _parse_grouped_or_tuple(self) -> Expression:
        """Parse `()`, `(expr)` or `(expr, expr, ...)`."""
        start = self._advance()  # consume '('

        # () is the unit value
        if self._match(TokenType.RPAREN):
            return Literal(span=self._span_from(start), value=None)

        first = self._parse_expression()

        if not self._match(TokenType.COMMA):
            self._consume(TokenType.RPAREN, "')' after expression")
            return Grouping(span=self._span_from(start), expression=first)

        elements = [first]
        while True:
            if len(elements) == self.MAX_ITEMS:
                self._report(error_too_many("tuple elements", self.MAX_ITEMS, self._current().span,
                                            self._source_line(self._current().line)))
            elements.append(self._parse_expression())
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN, "')' after tuple elements")
        return TupleExpr(span=self._span_from(start), elements=tuple(elements))

    def _parse_let_expr(self) -> Let:
        """Parse `let name = definition in body`."""
        start = self._advance()  # consume 'let'
        name = self._consume(TokenType.IDENTIFIER, "identifier after 'let'").value
        self._consume(TokenType.EQUAL, "'=' after let-bound name")
        definition = self._parse_expression()
        self._consume(TokenType.IN, "'in' after let definition")
        body = self._parse_expression()
        return Let(span=self._span_from(start), name=name, definition=definition, body=body)

    def _parse_do_expr(self) -> Do:
        """Parse `do { e1; e2; ... }`."""
        start = self._advance()  # consume 'do'
        body = self._delimited(TokenType.LBRACE, TokenType.SEMICOLON, TokenType.RBRACE,
                               self._parse_expression)
        return Do(span=self._span_from(start), body=tuple(body))

    def _parse_if_expr(self) -> If:
        """Parse `if condition then a [else b]`."""
        start = self._advance()  # consume 'if'
        condition = self._parse_expression()
        self._consume(TokenType.THEN, "'then' after if condition")
        then_branch = self._parse_expression()

        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_expression()

        return If(
            span=self._span_from(start),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_case_expr(self) -> Case:
        """Parse `case subject of { arm; arm; ... }`."""
        start = self._advance()  # consume 'case'
        subject = self._parse_expression()
        self._consume(TokenType.OF, "'of' after case subject")
        arms = self._delimited(TokenType.LBRACE, TokenType.SEMICOLON, TokenType.RBRACE,
                               self._parse_case_arm)
        return Case(span=self._span_from(start), subject=subject, arms=tuple(arms))

    def _parse_case_arm(self) -> CaseArm:
        """Parse `pattern [if guard] then body`."""
        start = self._current()
        pattern = self._parse_pattern()
        self._check_bindings(pattern, set())

        guard = None
        if self._match(TokenType.IF):
            guard = self._parse_expression()

        self._consume(TokenType.THEN, "'then' after pattern")
        body = self._parse_expression()
        return CaseArm(span=self._span_from(start), pattern=pattern, guard=guard, body=body)

    # =========================================================================
    # Patterns
    # =========================================================================

    def _check_bindings(self, pattern: Pattern, seen: set) -> None:
        """Report each name a pattern binds more than once."""
        if isinstance(pattern, (VariablePattern, AsPattern)):
            if pattern.name in seen:
                self._report(error_duplicate_binding(pattern.name, pattern.span,
                                                     self._source_line(pattern.span.start.line)))
            seen.add(pattern.name)
        if isinstance(pattern, AsPattern):
            self._check_bindings(pattern.pattern, seen)
        elif isinstance(pattern, (TuplePattern, VectorPattern)):
            for element in pattern.elements:
                self._check_bindings(element, seen)

    def _parse_pattern(self) -> Pattern:
        """Parse a case-arm pattern."""
        token = self._current()

        # Wildcard
        if token.type == TokenType.UNDERSCORE:
            self._advance()
            return WildcardPattern(span=token.span)

        # Binding, or as-binding: name = pattern
        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._match(TokenType.EQUAL):
                inner = self._parse_pattern()
                return AsPattern(span=self._span_from(token), name=token.value, pattern=inner)
            return VariablePattern(span=token.span, name=token.value)

        if token.type == TokenType.NIL:
            self._advance()
            return UnitPattern(span=token.span)

        if token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return LiteralPattern(span=token.span, value=token.value)

        # Negative number literal
        if token.type == TokenType.MINUS and self._peek(1).type == TokenType.NUMBER:
            self._advance()
            number = self._advance()
            return LiteralPattern(span=self._span_from(token), value=-number.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            if self._match(TokenType.RPAREN):
                return UnitPattern(span=self._span_from(token))
            first = self._parse_pattern()
            if not self._match(TokenType.COMMA):
                self._consume(TokenType.RPAREN, "')' after pattern")
                return first
            elements = [first]
            while True:
                elements.append(self._parse_pattern())
                if not self._match(TokenType.COMMA):
                    break
            self._consume(TokenType.RPAREN, "')' after tuple pattern")
            return TuplePattern(span=self._span_from(token), elements=tuple(elements))

        if token.type == TokenType.LBRACKET:
            elements = self._delimited(TokenType.LBRACKET, TokenType.COMMA, TokenType.RBRACKET,
                                       self._parse_pattern)
            return VectorPattern(span=self._span_from(token), elements=tuple(elements))

        self._error("pattern")

    # =========================================================================
    # Program
    # =========================================================================

    def parse(self) -> List[Optional[Statement]]:
        """Parse a complete program.

        Returns one entry per top-level declaration; declarations that
        failed to parse are represented by None.
        """
        statements = []
        while not self._is_at_end():
            if self.diagnostics.should_stop:
                logger.debug("too many errors, giving up at %s", self._current().span.start)
                break
            statements.append(self._parse_declaration())
        logger.debug("parsed %d top-level declaration(s)", len(statements))
        return statements


def parse(tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None,
          diagnostics: Optional[DiagnosticCollector] = None) -> List[Optional[Statement]]:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: List of tokens from the lexer
        filename: Optional filename for error messages
        source: Optional original source code for error excerpts
        diagnostics: Optional collector receiving parse errors

    Returns:
        List of statements (None for declarations that failed to parse)
    """
    parser = Parser(tokens, filename, source, diagnostics)
    return parser.parse()


def scan_and_parse(source: str, filename: Optional[str] = None,
                   diagnostics: Optional[DiagnosticCollector] = None
                   ) -> Tuple[List[Optional[Statement]], DiagnosticCollector]:
    """
    Tokenize and parse one unit of source (a whole file or one REPL line).

    Returns:
        (statements, diagnostics); check `diagnostics.had_syntax_error`
        before evaluating the statements.
    """
    if diagnostics is None:
        diagnostics = DiagnosticCollector()
    tokens = tokenize(source, filename, diagnostics)
    statements = Parser(tokens, filename, source, diagnostics).parse()
    return statements, diagnostics
