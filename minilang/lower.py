from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from . import ast
from .backend import Backend, EmittedUnit
from .env import Environment
from .errors import TypeMismatchError
from .types import BOOL, DEFAULT_REGISTRY, I64, U64, IntType, TypeRegistry

log = logging.getLogger(__name__)

ENTRY_PROCEDURE = "main"

_ARITHMETIC = {"+": "add", "-": "sub", "*": "mul", "/": "sdiv"}
_COMPARISON = {"==": "eq", "!=": "ne", "<": "slt", "<=": "sle", ">": "sgt", ">=": "sge"}


@dataclass(frozen=True)
class LoweredValue:
    handle: Any
    type: IntType


class Lowerer:
    """
    Walks statements depth-first and drives a backend:
    - expressions produce typed values,
    - `let` casts to the declared width and binds in the current scope,
    - blocks push a child scope for the duration of their statements,
    - `if` builds a then/else/merge diamond.
    """

    def __init__(self, backend: Backend, registry: TypeRegistry = DEFAULT_REGISTRY) -> None:
        self.backend = backend
        self.registry = registry
        self.display: Any = None
        self.display_unsigned: Any = None

    # --- expressions ---------------------------------------------------

    def lower_expr(self, expr: ast.Expr, env: Environment) -> LoweredValue:
        if isinstance(expr, ast.IntLiteral):
            return LoweredValue(self.backend.create_constant(expr.value, I64.bit_width), I64)
        if isinstance(expr, ast.Variable):
            return env.get(expr.name, expr.loc)
        if isinstance(expr, ast.Binary):
            return self._lower_binary(expr, env)
        raise TypeError(f"unsupported expression node: {expr!r}")

    def _lower_binary(self, expr: ast.Binary, env: Environment) -> LoweredValue:
        lhs = self.lower_expr(expr.left, env)
        rhs = self.lower_expr(expr.right, env)
        if lhs.type != rhs.type:
            if isinstance(expr.right, ast.IntLiteral):
                rhs = self._adapt_literal(rhs, expr.right, lhs.type, expr)
            elif isinstance(expr.left, ast.IntLiteral):
                lhs = self._adapt_literal(lhs, expr.left, rhs.type, expr)
            else:
                raise TypeMismatchError(
                    f"operands of '{expr.op}' have different types: {lhs.type} and {rhs.type}",
                    expr.loc,
                )
        kind = _ARITHMETIC.get(expr.op)
        if kind is not None:
            return LoweredValue(self.backend.create_binary_op(kind, lhs.handle, rhs.handle), lhs.type)
        kind = _COMPARISON.get(expr.op)
        if kind is not None:
            return LoweredValue(self.backend.create_comparison(kind, lhs.handle, rhs.handle), BOOL)
        raise TypeError(f"unsupported binary operator: {expr.op!r}")

    def _adapt_literal(
        self, value: LoweredValue, literal: ast.IntLiteral, target: IntType, expr: ast.Binary
    ) -> LoweredValue:
        if not target.fits(literal.value):
            raise TypeMismatchError(
                f"literal {literal.value} does not fit in {target} operand of '{expr.op}'",
                expr.loc,
            )
        return self._cast(value, target)

    def _cast(self, value: LoweredValue, target: IntType) -> LoweredValue:
        # Extension follows the signedness of the source value.
        handle = self.backend.create_cast(value.handle, target.bit_width, value.type.signed)
        return LoweredValue(handle, target)

    # --- statements ----------------------------------------------------

    def lower_stmt(self, stmt: ast.Stmt, env: Environment) -> Environment:
        if isinstance(stmt, ast.ExprStmt):
            self.lower_expr(stmt.expr, env)
            return env
        if isinstance(stmt, ast.PrintStmt):
            value = self.lower_expr(stmt.expr, env)
            callee = self.display_unsigned if value.type == U64 else self.display
            self.backend.create_call(callee, [self._cast(value, I64).handle])
            return env
        if isinstance(stmt, ast.LetStmt):
            ty = self.registry.resolve(stmt.type_name, stmt.loc)
            value = self._cast(self.lower_expr(stmt.expr, env), ty)
            env.define(stmt.name, value)
            log.debug("let %s: %s at scope depth %d", stmt.name, ty, env.depth)
            return env
        if isinstance(stmt, ast.BlockStmt):
            self._lower_block(stmt, env)
            return env
        if isinstance(stmt, ast.IfStmt):
            self._lower_if(stmt, env)
            return env
        raise TypeError(f"unsupported statement node: {stmt!r}")

    def _lower_block(self, stmt: ast.BlockStmt, env: Environment) -> None:
        scope = env.child()
        log.debug("enter scope depth %d", scope.depth)
        for child in stmt.statements:
            scope = self.lower_stmt(child, scope)
        log.debug("leave scope depth %d", scope.depth)

    def _lower_if(self, stmt: ast.IfStmt, env: Environment) -> None:
        cond = self.lower_expr(stmt.condition, env)
        if cond.type != BOOL:
            raise TypeMismatchError(f"if condition must be a comparison, got {cond.type}", stmt.condition.loc)

        then_block = self.backend.create_basic_block("then")
        else_block = self.backend.create_basic_block("else")
        merge_block = self.backend.create_basic_block("merge")
        log.debug("if at %s:%s: then/else/merge blocks created", stmt.loc.line, stmt.loc.column)

        self.backend.create_conditional_branch(cond.handle, then_block, else_block)

        self.backend.set_insertion_point(then_block)
        self.lower_stmt(stmt.then_branch, env.child())
        self.backend.create_unconditional_branch(merge_block)

        self.backend.set_insertion_point(else_block)
        if stmt.else_branch is not None:
            self.lower_stmt(stmt.else_branch, env.child())
        self.backend.create_unconditional_branch(merge_block)

        self.backend.set_insertion_point(merge_block)

    # --- program -------------------------------------------------------

    def declare_primitives(self) -> None:
        self.display = self.backend.declare_display()
        self.display_unsigned = self.backend.declare_display(unsigned=True)

    def lower_program(self, statements: Sequence[ast.Stmt]) -> EmittedUnit:
        env = Environment()
        self.declare_primitives()
        self.backend.begin_procedure(ENTRY_PROCEDURE)
        for stmt in statements:
            env = self.lower_stmt(stmt, env)
        self.backend.create_return()
        return self.backend.finalize()


def compile_program(
    statements: Sequence[ast.Stmt],
    backend: Optional[Backend] = None,
    registry: TypeRegistry = DEFAULT_REGISTRY,
) -> EmittedUnit:
    """Lower a whole program into one entry procedure and materialize it."""
    if backend is None:
        from .llvm_backend import LLVMBackend

        backend = LLVMBackend()
    log.debug("compiling %d top-level statements", len(statements))
    return Lowerer(backend, registry).lower_program(statements)
