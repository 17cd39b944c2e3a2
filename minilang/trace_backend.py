from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .backend import ARITHMETIC_KINDS, COMPARISON_KINDS, Backend, EmittedUnit
from .errors import BackendEmissionError

TERMINATORS = frozenset({"br", "condbr", "ret"})


@dataclass(frozen=True)
class TraceValue:
    name: str
    bit_width: int

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class TraceOp:
    kind: str
    dest: Optional[TraceValue] = None
    operands: Tuple[object, ...] = ()


@dataclass
class TraceBlock:
    label: str
    ops: List[TraceOp] = field(default_factory=list)

    @property
    def terminator(self) -> Optional[TraceOp]:
        if self.ops and self.ops[-1].kind in TERMINATORS:
            return self.ops[-1]
        return None

    def successors(self) -> Tuple[str, ...]:
        term = self.terminator
        if term is None or term.kind == "ret":
            return ()
        return tuple(str(o) for o in term.operands if isinstance(o, str))

    def __str__(self) -> str:
        return self.label


class TraceBackend(Backend):
    """Records emission requests as a block-structured listing.

    No machine code is produced; `finalize` returns the listing only.
    """

    def __init__(self) -> None:
        self.blocks: Dict[str, TraceBlock] = {}
        self.procedure: Optional[str] = None
        self.primitives: List[str] = []
        self._current: Optional[TraceBlock] = None
        self._counter = 0
        self._finalized = False

    def declare_display(self, unsigned: bool = False) -> str:
        callee = "@display_u" if unsigned else "@display"
        if callee not in self.primitives:
            self.primitives.append(callee)
        return callee

    def begin_procedure(self, name: str) -> TraceBlock:
        if self.procedure is not None:
            raise BackendEmissionError(f"procedure '{self.procedure}' already started")
        self.procedure = name
        entry = self.create_basic_block("entry")
        self._current = entry
        return entry

    def create_constant(self, value: int, bit_width: int) -> TraceValue:
        return self._emit("const", bit_width, value)

    def create_binary_op(self, kind: str, lhs: TraceValue, rhs: TraceValue) -> TraceValue:
        if kind not in ARITHMETIC_KINDS:
            raise BackendEmissionError(f"unsupported binary op '{kind}'")
        self._check_widths(lhs, rhs)
        return self._emit(kind, lhs.bit_width, lhs, rhs)

    def create_comparison(self, kind: str, lhs: TraceValue, rhs: TraceValue) -> TraceValue:
        if kind not in COMPARISON_KINDS:
            raise BackendEmissionError(f"unsupported comparison '{kind}'")
        self._check_widths(lhs, rhs)
        return self._emit(f"icmp_{kind}", 1, lhs, rhs)

    def create_cast(self, value: TraceValue, bit_width: int, signed: bool) -> TraceValue:
        return self._emit("cast", bit_width, value, "signed" if signed else "unsigned")

    def create_basic_block(self, label: str) -> TraceBlock:
        unique = label
        suffix = 0
        while unique in self.blocks:
            suffix += 1
            unique = f"{label}.{suffix}"
        block = TraceBlock(unique)
        self.blocks[unique] = block
        return block

    def create_conditional_branch(self, cond: TraceValue, then_block: TraceBlock, else_block: TraceBlock) -> None:
        self._append(TraceOp("condbr", None, (cond, then_block.label, else_block.label)))

    def create_unconditional_branch(self, target: TraceBlock) -> None:
        self._append(TraceOp("br", None, (target.label,)))

    def set_insertion_point(self, block: TraceBlock) -> None:
        self._current = block

    def create_call(self, callee: str, args: Sequence[TraceValue]) -> None:
        self._append(TraceOp("call", None, (callee, *args)))

    def create_return(self) -> None:
        self._append(TraceOp("ret"))

    def finalize(self) -> EmittedUnit:
        if self._finalized:
            raise BackendEmissionError("finalize: backend already finalized")
        self._finalized = True
        return EmittedUnit(listing=format_blocks(self.procedure or "<none>", self.blocks.values()))

    def ops(self) -> List[TraceOp]:
        """All recorded ops, block by block in creation order."""
        return [op for block in self.blocks.values() for op in block.ops]

    @property
    def current_block(self) -> Optional[TraceBlock]:
        return self._current

    def _emit(self, kind: str, bit_width: int, *operands: object) -> TraceValue:
        self._counter += 1
        dest = TraceValue(f"%t{self._counter}", bit_width)
        self._append(TraceOp(kind, dest, tuple(operands)))
        return dest

    def _append(self, op: TraceOp) -> None:
        if self._finalized:
            raise BackendEmissionError(f"{op.kind}: backend already finalized")
        if self._current is None:
            raise BackendEmissionError(f"{op.kind}: no insertion point")
        if self._current.terminator is not None:
            raise BackendEmissionError(f"{op.kind}: block '{self._current.label}' is already terminated")
        self._current.ops.append(op)

    @staticmethod
    def _check_widths(lhs: TraceValue, rhs: TraceValue) -> None:
        if lhs.bit_width != rhs.bit_width:
            raise BackendEmissionError(f"operand widths differ: i{lhs.bit_width} vs i{rhs.bit_width}")


def format_op(op: TraceOp) -> str:
    if op.kind == "const":
        return f"  {op.dest} = const i{op.dest.bit_width} {op.operands[0]}"
    if op.kind == "cast":
        value, how = op.operands
        return f"  {op.dest} = cast {how} {value} to i{op.dest.bit_width}"
    if op.kind == "condbr":
        cond, then_label, else_label = op.operands
        return f"  condbr {cond}, then {then_label}, else {else_label}"
    if op.kind == "br":
        return f"  br {op.operands[0]}"
    if op.kind == "ret":
        return "  ret"
    if op.kind == "call":
        callee, *args = op.operands
        return f"  call {callee}({', '.join(str(a) for a in args)})"
    lhs, rhs = op.operands
    return f"  {op.dest} = {op.kind} {lhs}, {rhs}"


def format_block(block: TraceBlock) -> str:
    lines = [f"{block.label}:"]
    lines.extend(format_op(op) for op in block.ops)
    return "\n".join(lines)


def format_blocks(procedure: str, blocks: Iterable[TraceBlock]) -> str:
    body = "\n".join(format_block(b) for b in blocks)
    return f"proc {procedure}\n{body}\n"
