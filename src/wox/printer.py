"""
AST printers for wox.

- `format_source` renders a tree back to canonical wox source. Binary
  operators are printed without added parentheses (Grouping nodes carry
  every parenthesis the source had), so formatting a re-parsed program
  gives back the same text.
- `to_sexpr` renders a Lisp-style debug form, e.g.
  `(* (- 123) (grouping 45.67))`.
"""

from decimal import Decimal
from typing import Any, List, Optional, Sequence, Union

from .ast import (
    AstNode,
    Expression, Literal, Grouping, Unary, Binary, Variable, Assign,
    Call, Get, Set, This, Super, Let, Do, If, TupleExpr, VectorExpr,
    Case, CaseArm,
    Pattern, UnitPattern, VariablePattern, LiteralPattern, WildcardPattern,
    AsPattern, TuplePattern, VectorPattern,
    Statement, ExpressionStatement, PrintStatement, VarDecl, Block,
    FunctionDecl, ClassDecl, ReturnStatement, WhileStatement, LoopStatement,
)
from .tokens import TokenType, PUNCTUATION

INDENT = "    "


def _operator(op: TokenType) -> str:
    return PUNCTUATION.get(op, op.name.lower())


def format_number(value: float) -> str:
    """Positional decimal text for a finite number; integral values drop '.0'."""
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def _format_literal(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format_number(value)
    return f'"{value}"'


# =============================================================================
# Canonical Source
# =============================================================================

class SourceFormatter:
    """Renders AST nodes as canonical wox source text."""

    def format_program(self, statements: Sequence[Optional[Statement]]) -> str:
        return "\n".join(self.statement(s, 0) for s in statements if s is not None)

    def statement(self, stmt: Statement, level: int) -> str:
        pad = INDENT * level

        if isinstance(stmt, ExpressionStatement):
            return f"{pad}{self.expression(stmt.expression)};"
        elif isinstance(stmt, PrintStatement):
            return f"{pad}print {self.expression(stmt.expression)};"
        elif isinstance(stmt, VarDecl):
            if stmt.initializer is None:
                return f"{pad}var {stmt.name};"
            return f"{pad}var {stmt.name} = {self.expression(stmt.initializer)};"
        elif isinstance(stmt, Block):
            return pad + self._body(stmt.statements, level)
        elif isinstance(stmt, FunctionDecl):
            return f"{pad}fn {self._signature(stmt, level)}"
        elif isinstance(stmt, ClassDecl):
            header = f"{pad}class {stmt.name}"
            if stmt.superclass is not None:
                header += f" < {stmt.superclass.name}"
            if not stmt.methods:
                return header + " {}"
            methods = [INDENT * (level + 1) + self._signature(m, level + 1) for m in stmt.methods]
            return header + " {\n" + "\n".join(methods) + "\n" + pad + "}"
        elif isinstance(stmt, ReturnStatement):
            if stmt.value is None:
                return f"{pad}return;"
            return f"{pad}return {self.expression(stmt.value)};"
        elif isinstance(stmt, WhileStatement):
            body = self.statement(stmt.body, level).lstrip()
            return f"{pad}while {self.expression(stmt.condition)} {body}"
        elif isinstance(stmt, LoopStatement):
            return f"{pad}loop " + self._body(stmt.statements, level)
        else:
            raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _signature(self, fn: FunctionDecl, level: int) -> str:
        return f"{fn.name}({', '.join(fn.params)}) " + self._body(fn.body, level)

    def _body(self, statements: Sequence[Optional[Statement]], level: int) -> str:
        lines = [self.statement(s, level + 1) for s in statements if s is not None]
        if not lines:
            return "{}"
        return "{\n" + "\n".join(lines) + "\n" + INDENT * level + "}"

    def expression(self, expr: Expression) -> str:
        if isinstance(expr, Literal):
            return _format_literal(expr.value)
        elif isinstance(expr, Grouping):
            return f"({self.expression(expr.expression)})"
        elif isinstance(expr, Unary):
            return f"{_operator(expr.operator)}{self.expression(expr.operand)}"
        elif isinstance(expr, Binary):
            return f"{self.expression(expr.left)} {_operator(expr.operator)} {self.expression(expr.right)}"
        elif isinstance(expr, Variable):
            return expr.name
        elif isinstance(expr, Assign):
            return f"{expr.name} = {self.expression(expr.value)}"
        elif isinstance(expr, Call):
            return f"{self.expression(expr.callee)}({self._list(expr.arguments)})"
        elif isinstance(expr, Get):
            return f"{self.expression(expr.object)}.{expr.name}"
        elif isinstance(expr, Set):
            return f"{self.expression(expr.object)}.{expr.name} = {self.expression(expr.value)}"
        elif isinstance(expr, This):
            return "this"
        elif isinstance(expr, Super):
            return f"super.{expr.method}"
        elif isinstance(expr, Let):
            return f"let {expr.name} = {self.expression(expr.definition)} in {self.expression(expr.body)}"
        elif isinstance(expr, Do):
            if not expr.body:
                return "do {}"
            return "do { " + "; ".join(self.expression(e) for e in expr.body) + " }"
        elif isinstance(expr, If):
            text = f"if {self.expression(expr.condition)} then {self.expression(expr.then_branch)}"
            if expr.else_branch is not None:
                text += f" else {self.expression(expr.else_branch)}"
            return text
        elif isinstance(expr, TupleExpr):
            return f"({self._list(expr.elements)})"
        elif isinstance(expr, VectorExpr):
            return f"[{self._list(expr.elements)}]"
        elif isinstance(expr, Case):
            if not expr.arms:
                return f"case {self.expression(expr.subject)} of {{}}"
            arms = "; ".join(self._arm(arm) for arm in expr.arms)
            return f"case {self.expression(expr.subject)} of {{ {arms} }}"
        else:
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")

    def _list(self, expressions: Sequence[Expression]) -> str:
        return ", ".join(self.expression(e) for e in expressions)

    def _arm(self, arm: CaseArm) -> str:
        text = self.pattern(arm.pattern)
        if arm.guard is not None:
            text += f" if {self.expression(arm.guard)}"
        return f"{text} then {self.expression(arm.body)}"

    def pattern(self, pattern: Pattern) -> str:
        if isinstance(pattern, WildcardPattern):
            return "_"
        elif isinstance(pattern, VariablePattern):
            return pattern.name
        elif isinstance(pattern, UnitPattern):
            return "()"
        elif isinstance(pattern, LiteralPattern):
            if isinstance(pattern.value, float) and pattern.value < 0:
                return "-" + format_number(-pattern.value)
            return _format_literal(pattern.value)
        elif isinstance(pattern, AsPattern):
            return f"{pattern.name} = {self.pattern(pattern.pattern)}"
        elif isinstance(pattern, TuplePattern):
            return "(" + ", ".join(self.pattern(p) for p in pattern.elements) + ")"
        elif isinstance(pattern, VectorPattern):
            return "[" + ", ".join(self.pattern(p) for p in pattern.elements) + "]"
        else:
            raise TypeError(f"Unknown pattern type: {type(pattern).__name__}")


def format_source(node: Union[AstNode, Sequence[Optional[Statement]]]) -> str:
    """
    Render a program, statement, expression or pattern as wox source.

    Args:
        node: A list of statements (a parsed program) or a single node

    Returns:
        Canonical source text
    """
    formatter = SourceFormatter()
    if isinstance(node, Statement):
        return formatter.statement(node, 0)
    if isinstance(node, Expression):
        return formatter.expression(node)
    if isinstance(node, Pattern):
        return formatter.pattern(node)
    return formatter.format_program(node)


# =============================================================================
# S-expressions
# =============================================================================

def _parens(name: str, *parts: str) -> str:
    return "(" + " ".join((name,) + parts) + ")"


def to_sexpr(node: Union[AstNode, Sequence[Optional[Statement]]]) -> str:
    """Render a node (or a list of statements, one per line) as an s-expression."""
    if isinstance(node, (list, tuple)):
        return "\n".join(to_sexpr(s) for s in node if s is not None)

    # Expressions
    if isinstance(node, Literal):
        if isinstance(node.value, str):
            return f'"{node.value}"'
        return _format_literal(node.value)
    if isinstance(node, Grouping):
        return _parens("grouping", to_sexpr(node.expression))
    if isinstance(node, Unary):
        return _parens(_operator(node.operator), to_sexpr(node.operand))
    if isinstance(node, Binary):
        return _parens(_operator(node.operator), to_sexpr(node.left), to_sexpr(node.right))
    if isinstance(node, Variable):
        return _parens("variable", node.name)
    if isinstance(node, Assign):
        return _parens("assign", node.name, to_sexpr(node.value))
    if isinstance(node, Call):
        return _parens("call", to_sexpr(node.callee), *[to_sexpr(a) for a in node.arguments])
    if isinstance(node, Get):
        return _parens("get", to_sexpr(node.object), node.name)
    if isinstance(node, Set):
        return _parens("set", node.name, to_sexpr(node.object), to_sexpr(node.value))
    if isinstance(node, This):
        return "this"
    if isinstance(node, Super):
        return _parens("super", node.method)
    if isinstance(node, Let):
        return _parens("let", node.name, to_sexpr(node.definition), to_sexpr(node.body))
    if isinstance(node, Do):
        return _parens("do", *[to_sexpr(e) for e in node.body])
    if isinstance(node, If):
        parts = [to_sexpr(node.condition), to_sexpr(node.then_branch)]
        if node.else_branch is not None:
            parts.append(to_sexpr(node.else_branch))
        return _parens("if", *parts)
    if isinstance(node, TupleExpr):
        return _parens("tuple", *[to_sexpr(e) for e in node.elements])
    if isinstance(node, VectorExpr):
        return _parens("vector", *[to_sexpr(e) for e in node.elements])
    if isinstance(node, Case):
        return _parens("case", to_sexpr(node.subject), *[to_sexpr(arm) for arm in node.arms])
    if isinstance(node, CaseArm):
        parts = [_parens("pat", to_sexpr(node.pattern))]
        if node.guard is not None:
            parts.append(_parens("if", to_sexpr(node.guard)))
        parts.append(to_sexpr(node.body))
        return _parens("arm", *parts)

    # Patterns
    if isinstance(node, WildcardPattern):
        return "_"
    if isinstance(node, VariablePattern):
        return node.name
    if isinstance(node, UnitPattern):
        return "()"
    if isinstance(node, LiteralPattern):
        return SourceFormatter().pattern(node)
    if isinstance(node, AsPattern):
        return _parens("as", node.name, to_sexpr(node.pattern))
    if isinstance(node, TuplePattern):
        return _parens("tuple", *[to_sexpr(p) for p in node.elements])
    if isinstance(node, VectorPattern):
        return _parens("vector", *[to_sexpr(p) for p in node.elements])

    # Statements
    if isinstance(node, ExpressionStatement):
        return _parens(";", to_sexpr(node.expression))
    if isinstance(node, PrintStatement):
        return _parens("print", to_sexpr(node.expression))
    if isinstance(node, VarDecl):
        if node.initializer is None:
            return _parens("var", node.name)
        return _parens("var", node.name, "=", to_sexpr(node.initializer))
    if isinstance(node, Block):
        return _parens("block", *_statements(node.statements))
    if isinstance(node, FunctionDecl):
        return _parens("fn", node.name, "(" + " ".join(node.params) + ")", *_statements(node.body))
    if isinstance(node, ClassDecl):
        parts: List[str] = []
        if node.superclass is not None:
            parts += ["<", node.superclass.name]
        return _parens("class", node.name, *parts, *[to_sexpr(m) for m in node.methods])
    if isinstance(node, ReturnStatement):
        if node.value is None:
            return "(return)"
        return _parens("return", to_sexpr(node.value))
    if isinstance(node, WhileStatement):
        return _parens("while", to_sexpr(node.condition), to_sexpr(node.body))
    if isinstance(node, LoopStatement):
        return _parens("loop", *_statements(node.statements))

    raise TypeError(f"Unknown node type: {type(node).__name__}")


def _statements(statements: Sequence[Optional[Statement]]) -> List[str]:
    return [to_sexpr(s) for s in statements if s is not None]
