"""
Tree-walking interpreter for wox.

Executes statements and evaluates expressions by dispatching on the
node type. Statement execution returns a Completion instead of raising
for `return`; runtime errors raise WoxRuntimeError, which `interpret`
records in the DiagnosticCollector before abandoning the rest of the
program it was given.
"""

import logging
import math
import sys
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, TextIO

from .environment import Environment
from .values import (
    Completion, NORMAL, return_completion,
    WoxCallable, WoxFunction, WoxClass, WoxInstance,
    is_truthy, is_equal, stringify, type_name,
)
from ..ast import (
    Statement, ExpressionStatement, PrintStatement, VarDecl, Block,
    FunctionDecl, ClassDecl, ReturnStatement, WhileStatement, LoopStatement,
    Expression, Literal, Grouping, Unary, Binary, Variable, Assign,
    Call, Get, Set, This, Super, Let, Do, If, TupleExpr, VectorExpr, Case,
    Pattern, UnitPattern, VariablePattern, LiteralPattern, WildcardPattern,
    AsPattern, TuplePattern, VectorPattern,
)
from ..errors import (
    DiagnosticCollector,
    WoxRuntimeError,
    error_operands_must_be_numbers,
    error_operand_must_be_boolean,
    error_append_needs_strings,
    error_not_callable,
    error_arity_mismatch,
    error_non_exhaustive_match,
    error_bad_property_access,
    error_superclass_not_class,
    error_return_outside_function,
    error_outside_method,
)
from ..tokens import SourceSpan, TokenType, PUNCTUATION

logger = logging.getLogger(__name__)


_ARITHMETIC = (TokenType.MINUS, TokenType.PLUS, TokenType.STAR, TokenType.SLASH)
_COMPARISON = (TokenType.GREATER, TokenType.GREATER_EQUAL, TokenType.LESS, TokenType.LESS_EQUAL)


def _symbol(operator: TokenType) -> str:
    return PUNCTUATION.get(operator, operator.name.lower())


def _divide(left: float, right: float) -> float:
    """IEEE-754 division: x/0 is a signed infinity and 0/0 is NaN."""
    if right == 0.0:
        if left == 0.0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


class Interpreter:
    """
    Tree-walking interpreter for wox.

    One instance owns one global environment, which persists across
    `interpret` calls (so an interactive loop keeps its definitions).

    Usage:
        interpreter = Interpreter()
        statements, diagnostics = scan_and_parse(source)
        if not diagnostics.had_syntax_error:
            interpreter.interpret(statements)
    """

    def __init__(self, output: Optional[TextIO] = None,
                 diagnostics: Optional[DiagnosticCollector] = None):
        """
        Initialize the interpreter.

        Args:
            output: Stream receiving `print` output (sys.stdout when None,
                looked up at print time)
            diagnostics: Collector receiving runtime errors
        """
        self.output = output
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
        self.globals = Environment(name="global")
        self.environment = self.globals
        self.source_lines: List[str] = []

    # =========================================================================
    # Entry Points
    # =========================================================================

    def interpret(self, statements: Sequence[Optional[Statement]],
                  environment: Optional[Environment] = None,
                  source: Optional[str] = None) -> DiagnosticCollector:
        """
        Execute a program.

        Args:
            statements: Parsed statements; None placeholders are skipped
            environment: Frame to run in (the global frame by default)
            source: Source text, used to quote lines in runtime errors

        Returns:
            The diagnostic collector. A runtime error stops the remaining
            statements and sets `had_runtime_error`.
        """
        if source is not None:
            self.source_lines = source.splitlines()
        target = environment if environment is not None else self.globals

        try:
            with self._scope(target):
                for stmt in statements:
                    if stmt is None:
                        continue
                    completion = self.execute(stmt)
                    if completion.is_return:
                        raise error_return_outside_function(
                            completion.span or stmt.span, self._source_line(completion.span or stmt.span)
                        )
        except WoxRuntimeError as e:
            logger.debug("runtime error: %s", e.diagnostic.message)
            self.diagnostics.add_error(e)

        return self.diagnostics

    @contextmanager
    def _scope(self, environment: Environment):
        """
        Run the body with `environment` as the current frame.

        The previous frame is restored on the way out, error or not.
        """
        previous = self.environment
        self.environment = environment
        try:
            yield environment
        finally:
            self.environment = previous

    def execute_block(self, statements: Sequence[Optional[Statement]],
                      environment: Environment) -> Completion:
        """Execute statements in `environment`, stopping at the first return."""
        with self._scope(environment):
            for stmt in statements:
                if stmt is None:
                    continue
                completion = self.execute(stmt)
                if completion.is_return:
                    return completion
        return NORMAL

    def _source_line(self, span: SourceSpan) -> Optional[str]:
        line_num = span.start.line
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None

    def _write(self, text: str) -> None:
        stream = self.output if self.output is not None else sys.stdout
        stream.write(text + "\n")

    # =========================================================================
    # Statements
    # =========================================================================

    def execute(self, stmt: Statement) -> Completion:
        """Execute a statement."""
        if isinstance(stmt, ExpressionStatement):
            self.evaluate(stmt.expression)
            return NORMAL
        elif isinstance(stmt, PrintStatement):
            self._write(stringify(self.evaluate(stmt.expression)))
            return NORMAL
        elif isinstance(stmt, VarDecl):
            return self._execute_var(stmt)
        elif isinstance(stmt, Block):
            return self.execute_block(stmt.statements, self.environment.extend("block"))
        elif isinstance(stmt, FunctionDecl):
            self.environment.define(stmt.name, WoxFunction(stmt, self.environment))
            return NORMAL
        elif isinstance(stmt, ClassDecl):
            return self._execute_class(stmt)
        elif isinstance(stmt, ReturnStatement):
            value = self.evaluate(stmt.value) if stmt.value is not None else None
            return return_completion(value, stmt.span)
        elif isinstance(stmt, WhileStatement):
            return self._execute_while(stmt)
        elif isinstance(stmt, LoopStatement):
            return self._execute_loop(stmt)
        else:
            raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _execute_var(self, stmt: VarDecl) -> Completion:
        """Execute a var declaration; without an initializer the variable is nil."""
        value = None
        if stmt.initializer is not None:
            value = self.evaluate(stmt.initializer)
        self.environment.define(stmt.name, value)
        return NORMAL

    def _execute_class(self, stmt: ClassDecl) -> Completion:
        """Execute a class declaration."""
        superclass = None
        if stmt.superclass is not None:
            superclass = self.evaluate(stmt.superclass)
            if not isinstance(superclass, WoxClass):
                raise error_superclass_not_class(
                    stmt.superclass.name, stmt.superclass.span, self._source_line(stmt.superclass.span)
                )

        # Methods of a subclass close over a frame that binds `super`
        method_env = self.environment
        if superclass is not None:
            method_env = self.environment.extend("super")
            method_env.define("super", superclass)

        methods: Dict[str, WoxFunction] = {}
        for method in stmt.methods:
            methods[method.name] = WoxFunction(method, method_env, is_initializer=(method.name == "init"))

        self.environment.define(stmt.name, WoxClass(stmt.name, superclass, methods))
        return NORMAL

    def _execute_while(self, stmt: WhileStatement) -> Completion:
        """Execute a while loop."""
        while is_truthy(self.evaluate(stmt.condition)):
            completion = self.execute(stmt.body)
            if completion.is_return:
                return completion
        return NORMAL

    def _execute_loop(self, stmt: LoopStatement) -> Completion:
        """Repeat the body, each pass in a fresh frame, until it returns."""
        while True:
            completion = self.execute_block(stmt.statements, self.environment.extend("loop"))
            if completion.is_return:
                return completion

    # =========================================================================
    # Expressions
    # =========================================================================

    def evaluate(self, expr: Expression) -> Any:
        """Evaluate an expression to a wox value."""
        if isinstance(expr, Literal):
            return expr.value
        elif isinstance(expr, Grouping):
            return self.evaluate(expr.expression)
        elif isinstance(expr, Variable):
            return self.environment.get(expr.name, expr.span, self._source_line(expr.span))
        elif isinstance(expr, Assign):
            value = self.evaluate(expr.value)
            self.environment.assign(expr.name, value, expr.span, self._source_line(expr.span))
            return value
        elif isinstance(expr, Unary):
            return self._eval_unary(expr)
        elif isinstance(expr, Binary):
            return self._eval_binary(expr)
        elif isinstance(expr, Call):
            return self._eval_call(expr)
        elif isinstance(expr, Get):
            return self._eval_get(expr)
        elif isinstance(expr, Set):
            return self._eval_set(expr)
        elif isinstance(expr, This):
            return self._lookup_method_name("this", expr.span)
        elif isinstance(expr, Super):
            return self._eval_super(expr)
        elif isinstance(expr, Let):
            return self._eval_let(expr)
        elif isinstance(expr, Do):
            return self._eval_do(expr)
        elif isinstance(expr, If):
            return self._eval_if(expr)
        elif isinstance(expr, TupleExpr):
            return tuple(self.evaluate(element) for element in expr.elements)
        elif isinstance(expr, VectorExpr):
            return [self.evaluate(element) for element in expr.elements]
        elif isinstance(expr, Case):
            return self._eval_case(expr)
        else:
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_unary(self, expr: Unary) -> Any:
        """Evaluate a unary operation."""
        operand = self.evaluate(expr.operand)

        if expr.operator == TokenType.MINUS:
            if not isinstance(operand, float):
                raise error_operands_must_be_numbers(
                    "-", expr.operator_span, self._source_line(expr.operator_span)
                )
            return -operand
        elif expr.operator == TokenType.BANG:
            if not isinstance(operand, bool):
                raise error_operand_must_be_boolean(
                    "!", expr.operator_span, self._source_line(expr.operator_span)
                )
            return not operand
        else:
            raise TypeError(f"Unknown unary operator: {expr.operator}")

    def _eval_binary(self, expr: Binary) -> Any:
        """Evaluate a binary operation."""
        # Short-circuit for logical operators; they yield the deciding operand
        if expr.operator == TokenType.OR:
            left = self.evaluate(expr.left)
            if is_truthy(left):
                return left
            return self.evaluate(expr.right)
        if expr.operator == TokenType.AND:
            left = self.evaluate(expr.left)
            if not is_truthy(left):
                return left
            return self.evaluate(expr.right)

        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)
        op = expr.operator

        if op == TokenType.EQUAL_EQUAL:
            return is_equal(left, right)
        if op == TokenType.BANG_EQUAL:
            return not is_equal(left, right)

        if op == TokenType.PLUS_PLUS:
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            raise error_append_needs_strings(expr.operator_span, self._source_line(expr.operator_span))

        if op in _ARITHMETIC or op in _COMPARISON:
            if not (isinstance(left, float) and isinstance(right, float)):
                raise error_operands_must_be_numbers(
                    _symbol(op), expr.operator_span, self._source_line(expr.operator_span)
                )

        # Arithmetic operators
        if op == TokenType.PLUS:
            return left + right
        elif op == TokenType.MINUS:
            return left - right
        elif op == TokenType.STAR:
            return left * right
        elif op == TokenType.SLASH:
            return _divide(left, right)

        # Comparison operators
        elif op == TokenType.GREATER:
            return left > right
        elif op == TokenType.GREATER_EQUAL:
            return left >= right
        elif op == TokenType.LESS:
            return left < right
        elif op == TokenType.LESS_EQUAL:
            return left <= right

        else:
            raise TypeError(f"Unknown binary operator: {op}")

    def _eval_call(self, call: Call) -> Any:
        """Evaluate a call of a function, bound method or class."""
        callee = self.evaluate(call.callee)
        arguments = [self.evaluate(argument) for argument in call.arguments]

        if not isinstance(callee, WoxCallable):
            raise error_not_callable(type_name(callee), call.span, self._source_line(call.span))

        if len(arguments) != callee.arity():
            raise error_arity_mismatch(callee.arity(), len(arguments), call.span,
                                       self._source_line(call.span))

        return callee.call(self, arguments)

    def _eval_get(self, expr: Get) -> Any:
        """Evaluate property access."""
        obj = self.evaluate(expr.object)
        if not isinstance(obj, WoxInstance):
            raise error_bad_property_access(
                f"only instances have properties, not {type_name(obj)}",
                expr.span, self._source_line(expr.span),
            )
        return obj.get(expr.name, expr.span, self._source_line(expr.span))

    def _eval_set(self, expr: Set) -> Any:
        """Evaluate property assignment; yields the assigned value."""
        obj = self.evaluate(expr.object)
        if not isinstance(obj, WoxInstance):
            raise error_bad_property_access(
                f"only instances have fields, not {type_name(obj)}",
                expr.span, self._source_line(expr.span),
            )
        value = self.evaluate(expr.value)
        obj.set(expr.name, value)
        return value

    def _lookup_method_name(self, keyword: str, span: SourceSpan) -> Any:
        """Resolve `this` or `super`, which only exist inside method bodies."""
        if not self.environment.contains(keyword):
            raise error_outside_method(keyword, span, self._source_line(span))
        return self.environment.get(keyword, span)

    def _eval_super(self, expr: Super) -> Any:
        """Look up a method starting at the defining class's superclass."""
        superclass = self._lookup_method_name("super", expr.span)
        receiver = self._lookup_method_name("this", expr.span)

        method = superclass.find_method(expr.method)
        if method is None:
            raise error_bad_property_access(
                f"undefined superclass method '{expr.method}'",
                expr.span, self._source_line(expr.span),
            )
        return method.bind(receiver)

    def _eval_let(self, expr: Let) -> Any:
        """Evaluate `let name = definition in body` in one new frame."""
        value = self.evaluate(expr.definition)
        env = self.environment.extend("let")
        env.define(expr.name, value)
        with self._scope(env):
            return self.evaluate(expr.body)

    def _eval_do(self, expr: Do) -> Any:
        """Evaluate a do block; yields the last value, or nil when empty."""
        result = None
        with self._scope(self.environment.extend("do")):
            for element in expr.body:
                result = self.evaluate(element)
        return result

    def _eval_if(self, expr: If) -> Any:
        """Evaluate an if expression."""
        if is_truthy(self.evaluate(expr.condition)):
            return self.evaluate(expr.then_branch)
        elif expr.else_branch is not None:
            return self.evaluate(expr.else_branch)
        return None

    def _eval_case(self, expr: Case) -> Any:
        """Evaluate a case expression: the first matching arm whose guard holds wins."""
        subject = self.evaluate(expr.subject)

        for arm in expr.arms:
            bindings: Dict[str, Any] = {}
            if not self._match_pattern(arm.pattern, subject, bindings):
                continue

            env = self.environment.extend("case arm")
            for name, value in bindings.items():
                env.define(name, value)

            with self._scope(env):
                if arm.guard is not None and not is_truthy(self.evaluate(arm.guard)):
                    continue
                return self.evaluate(arm.body)

        raise error_non_exhaustive_match(stringify(subject), expr.span, self._source_line(expr.span))

    def _match_pattern(self, pattern: Pattern, value: Any, bindings: Dict[str, Any]) -> bool:
        """
        Check if a pattern matches a value.

        Names bound by the pattern are added to `bindings`, left to right;
        the caller discards them when the match fails.
        """
        if isinstance(pattern, WildcardPattern):
            return True
        elif isinstance(pattern, VariablePattern):
            bindings[pattern.name] = value
            return True
        elif isinstance(pattern, UnitPattern):
            return value is None
        elif isinstance(pattern, LiteralPattern):
            return is_equal(pattern.value, value)
        elif isinstance(pattern, AsPattern):
            if not self._match_pattern(pattern.pattern, value, bindings):
                return False
            bindings[pattern.name] = value
            return True
        elif isinstance(pattern, TuplePattern):
            return isinstance(value, tuple) and self._match_elements(pattern.elements, value, bindings)
        elif isinstance(pattern, VectorPattern):
            return isinstance(value, list) and self._match_elements(pattern.elements, value, bindings)
        else:
            raise TypeError(f"Unknown pattern type: {type(pattern).__name__}")

    def _match_elements(self, patterns: Sequence[Pattern], values: Sequence[Any],
                        bindings: Dict[str, Any]) -> bool:
        if len(patterns) != len(values):
            return False
        return all(self._match_pattern(p, v, bindings) for p, v in zip(patterns, values))


def run_source(source: str, output: Optional[TextIO] = None, filename: Optional[str] = None,
               interpreter: Optional[Interpreter] = None) -> DiagnosticCollector:
    """
    Scan, parse and run wox source in one call.

    This is the simplest way to execute wox code:

        from wox import run_source

        diagnostics = run_source('print 1 + 2;')
        if diagnostics.has_errors:
            print(diagnostics.format_all())

    Nothing is executed when the source has a syntax error.

    Args:
        source: wox source code as a string
        output: Stream receiving `print` output (defaults to sys.stdout)
        filename: Optional filename for error messages
        interpreter: Existing interpreter to reuse (keeps its globals)

    Returns:
        The DiagnosticCollector holding any syntax or runtime errors
    """
    from ..parser import scan_and_parse

    if interpreter is None:
        interpreter = Interpreter(output=output)

    statements, diagnostics = scan_and_parse(source, filename, interpreter.diagnostics)
    if diagnostics.had_syntax_error:
        logger.debug("not running %s: syntax errors", filename or "<source>")
        return diagnostics

    return interpreter.interpret(statements, source=source)
