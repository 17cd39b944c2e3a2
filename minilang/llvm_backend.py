from __future__ import annotations

import functools
import logging
from typing import Callable, Optional, Sequence, TypeVar

from llvmlite import binding as llvm  # type: ignore
from llvmlite import ir  # type: ignore

from .backend import ARITHMETIC_KINDS, COMPARISON_KINDS, Backend, EmittedUnit
from .errors import BackendEmissionError

log = logging.getLogger(__name__)

DISPLAY_FN = "minilang_print"
DISPLAY_UNSIGNED_FN = "minilang_print_u"

_DISPLAY_FORMATS = {DISPLAY_FN: b"%lld\n\0", DISPLAY_UNSIGNED_FN: b"%llu\n\0"}

_ICMP_SYMBOLS = {
    "eq": "==",
    "ne": "!=",
    "slt": "<",
    "sle": "<=",
    "sgt": ">",
    "sge": ">=",
}

F = TypeVar("F", bound=Callable)


def _emission(fn: F) -> F:
    """Re-raise llvmlite rejections as BackendEmissionError."""

    @functools.wraps(fn)
    def wrapper(self: "LLVMBackend", *args, **kwargs):
        if self._finalized:
            raise BackendEmissionError(f"{fn.__name__}: backend already finalized")
        try:
            return fn(self, *args, **kwargs)
        except (ValueError, TypeError, RuntimeError) as exc:
            raise BackendEmissionError(f"{fn.__name__}: {exc}") from exc

    return wrapper  # type: ignore[return-value]


class LLVMBackend(Backend):
    """Builds one llvmlite module holding a single void procedure.

    `triple` defaults to the host; any other triple needs its target linked
    into the installed LLVM.
    """

    def __init__(self, module_name: str = "minilang", triple: Optional[str] = None) -> None:
        self.module = ir.Module(name=module_name)
        self.triple = triple
        self.function: Optional[ir.Function] = None
        self.builder: Optional[ir.IRBuilder] = None
        self._finalized = False

    # --- declarations --------------------------------------------------

    @_emission
    def declare_display(self, unsigned: bool = False) -> ir.Function:
        name = DISPLAY_UNSIGNED_FN if unsigned else DISPLAY_FN
        fn = self.module.globals.get(name)
        if isinstance(fn, ir.Function):
            return fn
        i8p = ir.IntType(8).as_pointer()
        printf = self.module.globals.get("printf")
        if not isinstance(printf, ir.Function):
            printf_ty = ir.FunctionType(ir.IntType(32), [i8p], var_arg=True)
            printf = ir.Function(self.module, printf_ty, name="printf")

        data = bytearray(_DISPLAY_FORMATS[name])
        fmt = ir.GlobalVariable(self.module, ir.ArrayType(ir.IntType(8), len(data)), name=f".fmt.{name}")
        fmt.linkage = "internal"
        fmt.global_constant = True
        fmt.initializer = ir.Constant(fmt.value_type, data)

        fn_ty = ir.FunctionType(ir.VoidType(), [ir.IntType(64)])
        fn = ir.Function(self.module, fn_ty, name=name)
        fn.linkage = "internal"
        builder = ir.IRBuilder(fn.append_basic_block(name="entry"))
        zero = ir.Constant(ir.IntType(32), 0)
        ptr = builder.gep(fmt, [zero, zero], inbounds=True)
        builder.call(printf, [ptr, fn.args[0]])
        builder.ret_void()
        return fn

    @_emission
    def begin_procedure(self, name: str) -> ir.Block:
        if self.function is not None:
            raise BackendEmissionError(f"procedure '{self.function.name}' already started")
        fn_ty = ir.FunctionType(ir.VoidType(), [])
        self.function = ir.Function(self.module, fn_ty, name=name)
        entry = self.function.append_basic_block(name="entry")
        self.builder = ir.IRBuilder(entry)
        return entry

    # --- instructions --------------------------------------------------

    @_emission
    def create_constant(self, value: int, bit_width: int) -> ir.Constant:
        return ir.Constant(ir.IntType(bit_width), value)

    @_emission
    def create_binary_op(self, kind: str, lhs: ir.Value, rhs: ir.Value) -> ir.Value:
        builder = self._builder()
        if kind == "add":
            return builder.add(lhs, rhs, name="addtmp")
        if kind == "sub":
            return builder.sub(lhs, rhs, name="subtmp")
        if kind == "mul":
            return builder.mul(lhs, rhs, name="multmp")
        if kind == "sdiv":
            return builder.sdiv(lhs, rhs, name="divtmp")
        raise BackendEmissionError(f"unsupported binary op '{kind}' (expected one of {sorted(ARITHMETIC_KINDS)})")

    @_emission
    def create_comparison(self, kind: str, lhs: ir.Value, rhs: ir.Value) -> ir.Value:
        symbol = _ICMP_SYMBOLS.get(kind)
        if symbol is None:
            raise BackendEmissionError(f"unsupported comparison '{kind}' (expected one of {sorted(COMPARISON_KINDS)})")
        return self._builder().icmp_signed(symbol, lhs, rhs, name=f"{kind}tmp")

    @_emission
    def create_cast(self, value: ir.Value, bit_width: int, signed: bool) -> ir.Value:
        src_width = value.type.width
        target = ir.IntType(bit_width)
        if bit_width == src_width:
            return value
        builder = self._builder()
        if bit_width < src_width:
            return builder.trunc(value, target, name="casttmp")
        if signed:
            return builder.sext(value, target, name="casttmp")
        return builder.zext(value, target, name="casttmp")

    # --- control flow --------------------------------------------------

    @_emission
    def create_basic_block(self, label: str) -> ir.Block:
        if self.function is None:
            raise BackendEmissionError("no procedure to hold basic block")
        return self.function.append_basic_block(name=label)

    @_emission
    def create_conditional_branch(self, cond: ir.Value, then_block: ir.Block, else_block: ir.Block) -> None:
        self._builder().cbranch(cond, then_block, else_block)

    @_emission
    def create_unconditional_branch(self, target: ir.Block) -> None:
        self._builder().branch(target)

    @_emission
    def set_insertion_point(self, block: ir.Block) -> None:
        self._builder().position_at_end(block)

    @_emission
    def create_call(self, callee: ir.Function, args: Sequence[ir.Value]) -> ir.Value:
        return self._builder().call(callee, list(args))

    @_emission
    def create_return(self) -> None:
        self._builder().ret_void()

    # --- materialization -----------------------------------------------

    def finalize(self) -> EmittedUnit:
        if self._finalized:
            raise BackendEmissionError("finalize: backend already finalized")
        self._finalized = True
        try:
            tm = _target_machine(self.triple)
            self.module.triple = tm.triple
            self.module.data_layout = str(tm.target_data)
            text = str(self.module)
            llvm_mod = llvm.parse_assembly(text)
            llvm_mod.verify()
            obj = tm.emit_object(llvm_mod)
        except RuntimeError as exc:
            raise BackendEmissionError(f"finalize: {exc}") from exc
        log.debug("emitted %d object bytes for %s", len(obj), self.module.triple)
        return EmittedUnit(listing=text, object_code=obj)

    def _builder(self) -> ir.IRBuilder:
        if self.builder is None:
            raise BackendEmissionError("no insertion point (begin_procedure was not called)")
        return self.builder


def _target_machine(triple: Optional[str]) -> llvm.TargetMachine:
    if triple is None:
        llvm.initialize_native_target()
        llvm.initialize_native_asmprinter()
        target = llvm.Target.from_default_triple()
    else:
        llvm.initialize_all_targets()
        llvm.initialize_all_asmprinters()
        target = llvm.Target.from_triple(triple)
    log.debug("target %s", target.triple)
    return target.create_target_machine(reloc="pic", codemodel="small")
