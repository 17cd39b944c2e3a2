"""Instruction emission interface consumed by the lowering core.

Handles returned by a backend (values, blocks, callees) are opaque to the
lowering code; it only passes them back into the same backend.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any, Optional, Sequence

ARITHMETIC_KINDS = frozenset({"add", "sub", "mul", "sdiv"})
COMPARISON_KINDS = frozenset({"eq", "ne", "slt", "sle", "sgt", "sge"})


@dataclass(frozen=True)
class EmittedUnit:
    listing: str
    object_code: Optional[bytes] = None


class Backend(abc.ABC):
    @abc.abstractmethod
    def declare_display(self, unsigned: bool = False) -> Any:
        """Register the external display primitive and return its callee handle.

        The primitive takes one 64-bit value; `unsigned` selects the variant
        that prints it as an unsigned number.
        """

    @abc.abstractmethod
    def begin_procedure(self, name: str) -> Any:
        """Create the entry procedure, point insertion at its entry block and return it."""

    @abc.abstractmethod
    def create_constant(self, value: int, bit_width: int) -> Any: ...

    @abc.abstractmethod
    def create_binary_op(self, kind: str, lhs: Any, rhs: Any) -> Any: ...

    @abc.abstractmethod
    def create_comparison(self, kind: str, lhs: Any, rhs: Any) -> Any: ...

    @abc.abstractmethod
    def create_cast(self, value: Any, bit_width: int, signed: bool) -> Any:
        """Resize `value`; `signed` selects sign rather than zero extension."""

    @abc.abstractmethod
    def create_basic_block(self, label: str) -> Any: ...

    @abc.abstractmethod
    def create_conditional_branch(self, cond: Any, then_block: Any, else_block: Any) -> None: ...

    @abc.abstractmethod
    def create_unconditional_branch(self, target: Any) -> None: ...

    @abc.abstractmethod
    def set_insertion_point(self, block: Any) -> None: ...

    @abc.abstractmethod
    def create_call(self, callee: Any, args: Sequence[Any]) -> Any: ...

    @abc.abstractmethod
    def create_return(self) -> None: ...

    @abc.abstractmethod
    def finalize(self) -> EmittedUnit: ...
