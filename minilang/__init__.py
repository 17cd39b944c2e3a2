"""minilang: lowers a small imperative language to LLVM object code."""

from .lower import LoweredValue, Lowerer, compile_program
from .parser import parse_program

__all__ = ["LoweredValue", "Lowerer", "compile_program", "parse_program"]
