from __future__ import annotations

import pytest

from minilang import ast
from minilang.errors import ParseError
from minilang.parser import parse_program


def test_let_and_print() -> None:
    stmts = parse_program("let x: i32 = 2;\nlet y: i32 = 3;\nprint x + y;\n")
    assert [type(s) for s in stmts] == [ast.LetStmt, ast.LetStmt, ast.PrintStmt]
    let_x = stmts[0]
    assert (let_x.name, let_x.type_name, let_x.expr.value) == ("x", "i32", 2)
    assert stmts[1].loc.line == 2
    printed = stmts[2].expr
    assert isinstance(printed, ast.Binary)
    assert printed.op == "+"
    assert (printed.left.name, printed.right.name) == ("x", "y")


def test_multiplicative_binds_tighter_than_additive() -> None:
    (stmt,) = parse_program("1 + 2 * 3;")
    expr = stmt.expr
    assert isinstance(stmt, ast.ExprStmt)
    assert expr.op == "+"
    assert isinstance(expr.left, ast.IntLiteral)
    assert expr.right.op == "*"


def test_comparison_is_lowest_and_left_associative() -> None:
    (stmt,) = parse_program("print 1 - 2 - 3 < 4;")
    expr = stmt.expr
    assert expr.op == "<"
    assert expr.left.op == "-"
    assert expr.left.left.op == "-"
    assert expr.left.right.value == 3


def test_parentheses_group() -> None:
    (stmt,) = parse_program("print (1 + 2) * 3;")
    assert stmt.expr.op == "*"
    assert stmt.expr.left.op == "+"


@pytest.mark.parametrize("op", ["==", "!=", "<", "<=", ">", ">=", "+", "-", "*", "/"])
def test_every_binary_operator_parses(op: str) -> None:
    (stmt,) = parse_program(f"print a {op} b;")
    assert stmt.expr.op == op


def test_if_else_if_chain() -> None:
    source = """
if x < 10 {
    print 1;
} else if x < 20 {
    print 2;
} else {
    print 0;
}
"""
    (stmt,) = parse_program(source)
    assert isinstance(stmt, ast.IfStmt)
    assert isinstance(stmt.then_branch, ast.BlockStmt)
    nested = stmt.else_branch
    assert isinstance(nested, ast.IfStmt)
    assert isinstance(nested.else_branch, ast.BlockStmt)
    assert nested.else_branch.statements[0].expr.value == 0


def test_if_without_else() -> None:
    (stmt,) = parse_program("if a == b { print a; }")
    assert stmt.else_branch is None


def test_nested_blocks_and_comments() -> None:
    source = """
// outer scope
let x: u8 = 1;
{
    let x: u8 = 2; // shadows
    { print x; }
}
"""
    stmts = parse_program(source)
    block = stmts[1]
    assert isinstance(block, ast.BlockStmt)
    assert isinstance(block.statements[1], ast.BlockStmt)
    assert block.statements[0].loc.line == 5


def test_unknown_type_name_is_left_to_lowering() -> None:
    (stmt,) = parse_program("let x: i128 = 1;")
    assert stmt.type_name == "i128"


def test_empty_program() -> None:
    assert parse_program("") == []


def test_syntax_error_has_location() -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_program("let x: i32 = ;\n")
    assert excinfo.value.loc is not None
    assert excinfo.value.loc.line == 1


def test_missing_semicolon_at_end() -> None:
    with pytest.raises(ParseError, match="end of input"):
        parse_program("print 1")


def test_unary_minus_is_not_supported() -> None:
    with pytest.raises(ParseError):
        parse_program("print -1;")


def test_literal_out_of_range() -> None:
    with pytest.raises(ParseError, match="64 bits"):
        parse_program("print 9223372036854775808;")
    (stmt,) = parse_program("print 9223372036854775807;")
    assert stmt.expr.value == 2**63 - 1
