from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union


@dataclass(frozen=True)
class Located:
    line: int
    column: int


NOWHERE = Located(0, 0)

ARITHMETIC_OPS = ("+", "-", "*", "/")
COMPARISON_OPS = ("==", "!=", "<", "<=", ">", ">=")
BINARY_OPS = ARITHMETIC_OPS + COMPARISON_OPS


@dataclass(frozen=True)
class IntLiteral:
    value: int
    loc: Located = NOWHERE


@dataclass(frozen=True)
class Variable:
    name: str
    loc: Located = NOWHERE


@dataclass(frozen=True)
class Binary:
    op: str
    left: "Expr"
    right: "Expr"
    loc: Located = NOWHERE


Expr = Union[IntLiteral, Variable, Binary]


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr
    loc: Located = NOWHERE


@dataclass(frozen=True)
class PrintStmt:
    expr: Expr
    loc: Located = NOWHERE


@dataclass(frozen=True)
class LetStmt:
    name: str
    type_name: str
    expr: Expr
    loc: Located = NOWHERE


@dataclass(frozen=True)
class BlockStmt:
    statements: List["Stmt"]
    loc: Located = NOWHERE


@dataclass(frozen=True)
class IfStmt:
    condition: Expr
    then_branch: "Stmt"
    else_branch: Optional["Stmt"] = None
    loc: Located = NOWHERE


Stmt = Union[ExprStmt, PrintStmt, LetStmt, BlockStmt, IfStmt]
