"""
Lexical environments for the wox interpreter.

An Environment is one frame of name -> value bindings plus a link to its
enclosing frame. Blocks, `let`, `do`, case arms and function calls each
create a child frame with `extend()`; closures keep their defining frame
alive simply by holding a reference to it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..errors import error_unbound_variable
from ..tokens import SourceSpan


@dataclass(eq=False)
class Environment:
    """
    A single scope containing variable bindings.

    Frames form a chain via the `parent` field for lexical scoping.
    `nil` is a legitimate value, so lookups test for the key rather than
    for a None result.
    """
    values: Dict[str, Any] = field(default_factory=dict)
    parent: Optional["Environment"] = None
    name: str = "anonymous"  # For debugging

    def define(self, name: str, value: Any) -> None:
        """Bind a name in this frame, replacing any existing binding here."""
        self.values[name] = value

    def _frame_of(self, name: str) -> Optional["Environment"]:
        env = self
        while env is not None:
            if name in env.values:
                return env
            env = env.parent
        return None

    def get(self, name: str, span: SourceSpan, source_line: str = None) -> Any:
        """
        Look up a variable in this frame or enclosing frames.

        Raises:
            WoxRuntimeError: E401 at `span` if no frame binds the name.
        """
        frame = self._frame_of(name)
        if frame is None:
            raise error_unbound_variable(name, span, source_line)
        return frame.values[name]

    def assign(self, name: str, value: Any, span: SourceSpan, source_line: str = None) -> None:
        """
        Update the nearest existing binding of a name.

        Never creates a binding; raises E401 at `span` when the name is unbound.
        """
        frame = self._frame_of(name)
        if frame is None:
            raise error_unbound_variable(name, span, source_line)
        frame.values[name] = value

    def contains(self, name: str) -> bool:
        """Check if a variable exists in this frame or enclosing frames."""
        return self._frame_of(name) is not None

    def extend(self, name: str = "block") -> "Environment":
        """Create a new child frame whose parent is this one."""
        return Environment(parent=self, name=name)

    @property
    def depth(self) -> int:
        """Number of frames between this one and the root."""
        depth = 0
        env = self.parent
        while env is not None:
            depth += 1
            env = env.parent
        return depth

    def __repr__(self) -> str:
        return f"Environment({self.name!r}, names={sorted(self.values)!r}, depth={self.depth})"
