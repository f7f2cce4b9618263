"""
Abstract Syntax Tree (AST) node definitions for wox.

Three closed families of frozen dataclasses:
- Expression nodes (everything that produces a value)
- Statement nodes (declarations and effects)
- Pattern nodes (the left-hand side of a `case` arm)

Nodes are built once by the parser and never modified. Every node
carries a `span` for error reporting; spans are excluded from equality
so two trees parsed from differently formatted source compare equal.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass(frozen=True)
class AstNode:
    """Base class for all AST nodes."""
    span: SourceSpan = field(compare=False, repr=False)


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass(frozen=True)
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass(frozen=True)
class Literal(Expression):
    """A literal value: number (float), string, boolean or nil (None)."""
    value: Union[float, str, bool, None]


@dataclass(frozen=True)
class Grouping(Expression):
    """A parenthesized expression, e.g. (1 + 2)."""
    expression: Expression


@dataclass(frozen=True)
class Unary(Expression):
    """A prefix operation: -x or !flag."""
    operator: TokenType         # MINUS or BANG
    operand: Expression
    operator_span: SourceSpan = field(compare=False, repr=False)


@dataclass(frozen=True)
class Binary(Expression):
    """An infix operation, including the short-circuiting 'and' / 'or'."""
    left: Expression
    operator: TokenType
    right: Expression
    operator_span: SourceSpan = field(compare=False, repr=False)


@dataclass(frozen=True)
class Variable(Expression):
    """A variable reference."""
    name: str


@dataclass(frozen=True)
class Assign(Expression):
    """Assignment to an existing variable: name = value."""
    name: str
    value: Expression


@dataclass(frozen=True)
class Call(Expression):
    """A call of a function, method or class: callee(arg, ...)."""
    callee: Expression
    arguments: Tuple[Expression, ...]


@dataclass(frozen=True)
class Get(Expression):
    """Property access: object.name."""
    object: Expression
    name: str


@dataclass(frozen=True)
class Set(Expression):
    """Property assignment: object.name = value."""
    object: Expression
    name: str
    value: Expression


@dataclass(frozen=True)
class This(Expression):
    """The receiver inside a method body."""
    pass


@dataclass(frozen=True)
class Super(Expression):
    """Superclass method lookup: super.method."""
    method: str


@dataclass(frozen=True)
class Let(Expression):
    """let name = definition in body."""
    name: str
    definition: Expression
    body: Expression


@dataclass(frozen=True)
class Do(Expression):
    """do { e1; e2; ... } - yields the last expression's value, or nil when empty."""
    body: Tuple[Expression, ...]


@dataclass(frozen=True)
class If(Expression):
    """if condition then a else b. A missing else branch yields nil."""
    condition: Expression
    then_branch: Expression
    else_branch: Optional[Expression] = None


@dataclass(frozen=True)
class TupleExpr(Expression):
    """A tuple literal (a, b, ...) with at least two elements."""
    elements: Tuple[Expression, ...]


@dataclass(frozen=True)
class VectorExpr(Expression):
    """A vector literal [a, b, ...] with any number of elements."""
    elements: Tuple[Expression, ...]


# =============================================================================
# Pattern Nodes
# =============================================================================

@dataclass(frozen=True)
class Pattern(AstNode):
    """Base class for case-arm patterns."""
    pass


@dataclass(frozen=True)
class UnitPattern(Pattern):
    """Matches nil / () only."""
    pass


@dataclass(frozen=True)
class VariablePattern(Pattern):
    """Matches anything and binds it to a name."""
    name: str


@dataclass(frozen=True)
class LiteralPattern(Pattern):
    """Matches a value equal (as by '==') to a literal."""
    value: Union[float, str, bool]


@dataclass(frozen=True)
class WildcardPattern(Pattern):
    """Matches anything, binds nothing: _"""
    pass


@dataclass(frozen=True)
class AsPattern(Pattern):
    """name = pattern: binds the whole value when the inner pattern matches."""
    name: str
    pattern: Pattern


@dataclass(frozen=True)
class TuplePattern(Pattern):
    """Matches a tuple of the same arity element-wise."""
    elements: Tuple[Pattern, ...]


@dataclass(frozen=True)
class VectorPattern(Pattern):
    """Matches a vector of the same length element-wise."""
    elements: Tuple[Pattern, ...]


@dataclass(frozen=True)
class CaseArm(AstNode):
    """pattern [if guard] then body"""
    pattern: Pattern
    guard: Optional[Expression]
    body: Expression


@dataclass(frozen=True)
class Case(Expression):
    """case subject of { arm; arm; ... }"""
    subject: Expression
    arms: Tuple[CaseArm, ...]


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass(frozen=True)
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    """An expression evaluated for its side effects."""
    expression: Expression


@dataclass(frozen=True)
class PrintStatement(Statement):
    """print expression"""
    expression: Expression


@dataclass(frozen=True)
class VarDecl(Statement):
    """var name [= initializer];"""
    name: str
    initializer: Optional[Expression] = None


@dataclass(frozen=True)
class Block(Statement):
    """{ statements } - runs in its own scope."""
    statements: Tuple[Optional[Statement], ...]


@dataclass(frozen=True)
class FunctionDecl(Statement):
    """fn name(params) { body } (also used for class methods)."""
    name: str
    params: Tuple[str, ...]
    body: Tuple[Optional[Statement], ...]


@dataclass(frozen=True)
class ClassDecl(Statement):
    """class Name [< Super] { methods }"""
    name: str
    superclass: Optional[Variable]
    methods: Tuple[FunctionDecl, ...]


@dataclass(frozen=True)
class ReturnStatement(Statement):
    """return [value]"""
    value: Optional[Expression] = None


@dataclass(frozen=True)
class WhileStatement(Statement):
    """while condition body"""
    condition: Expression
    body: Statement


@dataclass(frozen=True)
class LoopStatement(Statement):
    """loop { statements } - repeats until a return leaves the function."""
    statements: Tuple[Optional[Statement], ...]
