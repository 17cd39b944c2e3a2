from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken

from .ast import (
    Binary,
    BlockStmt,
    Expr,
    ExprStmt,
    IfStmt,
    IntLiteral,
    LetStmt,
    Located,
    PrintStmt,
    Stmt,
    Variable,
)
from .errors import ParseError

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_I64_MAX = 2**63 - 1

_PARSER = Lark(
    _GRAMMAR_SRC,
    parser="lalr",
    start="program",
    propagate_positions=True,
    maybe_placeholders=False,
)


def parse_program(source: str) -> List[Stmt]:
    try:
        tree = _PARSER.parse(source)
    except UnexpectedInput as exc:
        line = getattr(exc, "line", -1)
        loc = Located(line=line, column=exc.column) if line and line > 0 else None
        raise ParseError(_describe(exc), loc) from exc
    return [_build_stmt(child) for child in tree.children if isinstance(child, Tree)]


def _build_stmt(tree: Tree) -> Stmt:
    kind = _name(tree)
    loc = _loc(tree)
    if kind == "let_stmt":
        name_tok, type_tok = [c for c in tree.children if isinstance(c, Token)]
        expr_node = next(c for c in tree.children if isinstance(c, Tree))
        return LetStmt(name=name_tok.value, type_name=type_tok.value, expr=_build_expr(expr_node), loc=loc)
    if kind == "print_stmt":
        return PrintStmt(expr=_build_expr(tree.children[0]), loc=loc)
    if kind == "expr_stmt":
        return ExprStmt(expr=_build_expr(tree.children[0]), loc=loc)
    if kind == "block":
        return BlockStmt(statements=[_build_stmt(c) for c in tree.children if isinstance(c, Tree)], loc=loc)
    if kind == "if_stmt":
        children = [c for c in tree.children if isinstance(c, Tree)]
        else_branch: Optional[Stmt] = _build_stmt(children[2]) if len(children) > 2 else None
        return IfStmt(
            condition=_build_expr(children[0]),
            then_branch=_build_stmt(children[1]),
            else_branch=else_branch,
            loc=loc,
        )
    raise ParseError(f"unexpected statement node '{kind}'", loc)


def _build_expr(node: Tree | Token) -> Expr:
    if isinstance(node, Token):
        raise ParseError(f"unexpected token '{node.value}'", _loc_from_token(node))
    kind = _name(node)
    loc = _loc(node)
    if kind == "int_lit":
        value = int(node.children[0])
        if value > _I64_MAX:
            raise ParseError(f"integer literal {value} does not fit in 64 bits", loc)
        return IntLiteral(value=value, loc=loc)
    if kind == "var":
        return Variable(name=node.children[0].value, loc=loc)
    if kind == "binary":
        left, op_tok, right = node.children
        return Binary(op=op_tok.value, left=_build_expr(left), right=_build_expr(right), loc=_loc_from_token(op_tok))
    raise ParseError(f"unexpected expression node '{kind}'", loc)


def _describe(exc: UnexpectedInput) -> str:
    if isinstance(exc, UnexpectedToken):
        if exc.token.type == "$END":
            return "unexpected end of input"
        return f"unexpected token '{exc.token}'"
    if isinstance(exc, UnexpectedCharacters):
        return f"unexpected character '{exc.char}'"
    return "unexpected end of input"


def _loc(tree: Tree) -> Located:
    meta = tree.meta
    if meta.empty:
        return Located(line=0, column=0)
    return Located(line=meta.line, column=meta.column)


def _loc_from_token(token: Token) -> Located:
    return Located(line=token.line, column=token.column)


def _name(node: Tree | Token) -> str:
    if isinstance(node, Tree):
        data = node.data
        if isinstance(data, Token):
            return data.value
        return data
    return node.type
