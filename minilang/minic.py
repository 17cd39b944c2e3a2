from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import parser
from .backend import Backend
from .errors import BackendEmissionError, CompileError
from .llvm_backend import LLVMBackend
from .lower import compile_program
from .trace_backend import TraceBackend

log = logging.getLogger(__name__)


def write_object(data: bytes, output_path: Path) -> None:
    try:
        output_path.write_bytes(data)
    except OSError as exc:
        raise BackendEmissionError(f"could not write {output_path}: {exc.strerror or exc}") from exc


def compile_file(
    source_path: Path,
    output_path: Path,
    emit_ir: bool = False,
    emit_trace: bool = False,
    triple: Optional[str] = None,
) -> int:
    source = source_path.read_text(encoding="utf-8")
    statements = parser.parse_program(source)
    backend: Backend = TraceBackend() if emit_trace else LLVMBackend(module_name=source_path.stem, triple=triple)
    unit = compile_program(statements, backend=backend)
    if emit_trace or emit_ir:
        sys.stdout.write(unit.listing)
    if unit.object_code is not None:
        write_object(unit.object_code, output_path)
        log.info("wrote %s (%d bytes)", output_path, len(unit.object_code))
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="minic: minilang -> LLVM object compiler")
    ap.add_argument("source", type=Path, help="minilang source file")
    ap.add_argument("-o", "--output", type=Path, default=Path("output.o"), help="Output object file (default: output.o)")
    ap.add_argument("--emit-ir", action="store_true", help="Print the generated LLVM IR to stdout")
    ap.add_argument(
        "--emit-trace",
        action="store_true",
        help="Print the backend-neutral lowering trace instead of producing an object file",
    )
    ap.add_argument("--target", metavar="TRIPLE", help="Target triple (default: host)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log lowering steps to stderr")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return compile_file(args.source, args.output, args.emit_ir, args.emit_trace, args.target)
    except OSError as exc:
        print(f"{args.source}:?:?: error: {exc.strerror or exc}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as exc:
        print(f"{args.source}:?:?: error: source is not valid UTF-8 (byte {exc.start})", file=sys.stderr)
        return 1
    except CompileError as exc:
        loc = f"{exc.loc.line}:{exc.loc.column}" if exc.loc is not None else "?:?"
        print(f"{args.source}:{loc}: error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
