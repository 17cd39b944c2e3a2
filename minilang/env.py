"""Lexical scope chain used while lowering statements.

An `Environment` maps user-level names to lowered values. Each block gets a
fresh child whose `enclosing` points back at the scope that was current when
the block was entered; the child is dropped when the block's lowering returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Optional

from .ast import Located
from .errors import UnboundNameError

if TYPE_CHECKING:
    from .lower import LoweredValue


@dataclass
class Environment:
    enclosing: Optional["Environment"] = None
    values: Dict[str, "LoweredValue"] = field(default_factory=dict)

    def define(self, name: str, value: "LoweredValue") -> None:
        """Bind `name` in this scope only; enclosing scopes are never touched."""
        self.values[name] = value

    def lookup(self, name: str) -> Optional["LoweredValue"]:
        scope: Optional[Environment] = self
        while scope is not None:
            if name in scope.values:
                return scope.values[name]
            scope = scope.enclosing
        return None

    def get(self, name: str, loc: Optional[Located] = None) -> "LoweredValue":
        value = self.lookup(name)
        if value is None:
            raise UnboundNameError(name, loc)
        return value

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None

    def child(self) -> "Environment":
        return Environment(enclosing=self)

    @property
    def depth(self) -> int:
        depth = 0
        scope = self.enclosing
        while scope is not None:
            depth += 1
            scope = scope.enclosing
        return depth
