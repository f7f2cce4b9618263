"""
wox runtime - tree-walking evaluation.

This module provides:
- Interpreter: Executes parsed wox programs
- Environment: Lexical scope frames
- Runtime values: functions, classes, instances and the value rules
"""

from .environment import Environment

from .values import (
    Completion,
    CompletionKind,
    WoxCallable,
    WoxFunction,
    WoxClass,
    WoxInstance,
    is_truthy,
    is_equal,
    stringify,
    type_name,
)

from .interpreter import (
    Interpreter,
    run_source,
)

__all__ = [
    # Environment
    'Environment',

    # Values
    'Completion',
    'CompletionKind',
    'WoxCallable',
    'WoxFunction',
    'WoxClass',
    'WoxInstance',
    'is_truthy',
    'is_equal',
    'stringify',
    'type_name',

    # Interpreter
    'Interpreter',
    'run_source',
]
