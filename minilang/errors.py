from __future__ import annotations

from typing import Optional

from .ast import Located


class CompileError(Exception):
    """Base class for every failure that aborts a compilation unit."""

    def __init__(self, message: str, loc: Optional[Located] = None) -> None:
        super().__init__(message)
        self.message = message
        self.loc = loc

    def __str__(self) -> str:
        if self.loc is None:
            return self.message
        return f"{self.loc.line}:{self.loc.column}: {self.message}"


class ParseError(CompileError):
    pass


class UnboundNameError(CompileError):
    def __init__(self, name: str, loc: Optional[Located] = None) -> None:
        super().__init__(f"unbound name '{name}'", loc)
        self.name = name


class UnknownTypeError(CompileError):
    def __init__(self, type_name: str, loc: Optional[Located] = None) -> None:
        super().__init__(f"unknown type '{type_name}'", loc)
        self.type_name = type_name


class TypeMismatchError(CompileError):
    pass


class BackendEmissionError(CompileError):
    pass
