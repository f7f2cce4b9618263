"""
Runtime values for the wox interpreter.

Primitive wox values are plain Python objects:

    nil     -> None
    boolean -> bool
    number  -> float
    string  -> str
    tuple   -> tuple
    vector  -> list

Functions, classes and instances are the classes defined here. This
module also holds the value-level rules shared by the evaluator:
truthiness, equality, stringification and statement completions.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..ast import FunctionDecl
from ..printer import format_number
from ..errors import error_bad_property_access
from ..tokens import SourceSpan
from .environment import Environment


# =============================================================================
# Statement Completions
# =============================================================================

class CompletionKind(Enum):
    """How a statement finished executing."""
    NORMAL = "normal"
    RETURN = "return"


@dataclass(frozen=True)
class Completion:
    """
    The result of executing a statement.

    A RETURN completion carries the returned value outward through
    blocks and loops until the enclosing function call consumes it.
    """
    kind: CompletionKind
    value: Any = None
    span: Optional[SourceSpan] = field(default=None, compare=False)

    @property
    def is_return(self) -> bool:
        return self.kind == CompletionKind.RETURN


NORMAL = Completion(CompletionKind.NORMAL)


def return_completion(value: Any, span: Optional[SourceSpan] = None) -> Completion:
    """Create a RETURN completion carrying `value`."""
    return Completion(CompletionKind.RETURN, value, span)


# =============================================================================
# Callables
# =============================================================================

class WoxCallable:
    """Base class for values that can appear as the callee of a call."""

    def arity(self) -> int:
        raise NotImplementedError

    def call(self, interpreter, arguments: List[Any]) -> Any:
        raise NotImplementedError


@dataclass(eq=False)
class WoxFunction(WoxCallable):
    """
    A user-defined function or method.

    `closure` is the environment active where the function was declared;
    each call runs the body in a fresh child frame of it.
    """
    declaration: FunctionDecl
    closure: Environment
    is_initializer: bool = False

    @property
    def name(self) -> str:
        return self.declaration.name

    def arity(self) -> int:
        return len(self.declaration.params)

    def bind(self, instance: "WoxInstance") -> "WoxFunction":
        """Return a copy of this method whose closure defines `this` as `instance`."""
        env = self.closure.extend(f"bound {self.name}")
        env.define("this", instance)
        return WoxFunction(self.declaration, env, self.is_initializer)

    def call(self, interpreter, arguments: List[Any]) -> Any:
        env = self.closure.extend(f"fn {self.name}")
        for param, argument in zip(self.declaration.params, arguments):
            env.define(param, argument)

        completion = interpreter.execute_block(self.declaration.body, env)

        # An initializer always hands back the instance it initialized
        if self.is_initializer:
            return self.closure.values.get("this")
        return completion.value if completion.is_return else None

    def __str__(self) -> str:
        return f"<fn {self.name}>"


@dataclass(eq=False)
class WoxClass(WoxCallable):
    """A class: a name, an optional superclass and a method table."""
    name: str
    superclass: Optional["WoxClass"] = None
    methods: Dict[str, WoxFunction] = field(default_factory=dict)

    def find_method(self, name: str) -> Optional[WoxFunction]:
        """Find a method on this class or the nearest superclass defining it."""
        klass = self
        while klass is not None:
            if name in klass.methods:
                return klass.methods[name]
            klass = klass.superclass
        return None

    def arity(self) -> int:
        initializer = self.find_method("init")
        return initializer.arity() if initializer is not None else 0

    def call(self, interpreter, arguments: List[Any]) -> Any:
        instance = WoxInstance(self)
        initializer = self.find_method("init")
        if initializer is not None:
            initializer.bind(instance).call(interpreter, arguments)
        return instance

    def __str__(self) -> str:
        return self.name


@dataclass(eq=False)
class WoxInstance:
    """An instance of a WoxClass with its own mutable fields."""
    klass: WoxClass
    fields: Dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, span: SourceSpan, source_line: str = None) -> Any:
        """Look up a field, then a method (bound to this instance)."""
        if name in self.fields:
            return self.fields[name]

        method = self.klass.find_method(name)
        if method is not None:
            return method.bind(self)

        raise error_bad_property_access(f"undefined property '{name}' on {self}", span, source_line)

    def set(self, name: str, value: Any) -> None:
        self.fields[name] = value

    def __str__(self) -> str:
        return f"{self.klass.name} instance"


# =============================================================================
# Value Rules
# =============================================================================

def is_truthy(value: Any) -> bool:
    """nil and false are falsy; everything else (0, "", empty vectors) is truthy."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return True


def is_equal(a: Any, b: Any) -> bool:
    """
    wox equality, as used by '==', '!=' and literal patterns.

    Type-strict: booleans never equal numbers, tuples never equal vectors.
    Numbers follow IEEE-754, so NaN is unequal to everything including
    itself, also when nested inside tuples and vectors. Functions,
    classes and instances compare by identity.
    """
    if a is None or b is None:
        return a is None and b is None

    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b

    if isinstance(a, float) and isinstance(b, float):
        return a == b

    if isinstance(a, str) and isinstance(b, str):
        return a == b

    if (isinstance(a, tuple) and isinstance(b, tuple)) or (isinstance(a, list) and isinstance(b, list)):
        return len(a) == len(b) and all(is_equal(x, y) for x, y in zip(a, b))

    return a is b


def _format_number(value: float) -> str:
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return format_number(value)


def stringify(value: Any) -> str:
    """Render a value the way `print` shows it."""
    if value is None:
        return "()"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, tuple):
        return "(" + ", ".join(stringify(v) for v in value) + ")"
    if isinstance(value, list):
        return "[" + ", ".join(stringify(v) for v in value) + "]"
    return str(value)


def type_name(value: Any) -> str:
    """The wox type name of a value, for error messages."""
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, tuple):
        return "tuple"
    if isinstance(value, list):
        return "vector"
    if isinstance(value, WoxClass):
        return "class"
    if isinstance(value, WoxCallable):
        return "function"
    if isinstance(value, WoxInstance):
        return "instance"
    return type(value).__name__
