from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .bf_interpreter import BrainfuckInterpreter, StepLimitExceeded
from .errors import CompileError
from .layout import DEFAULT_CAPACITY, MemoryLayout
from .toolchain import Stage, build

PROG = "tinybfc"


def _parse_size(value: str) -> int:
    try:
        size = int(value, 0)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid size: {value!r}") from exc
    if size <= 0:
        raise argparse.ArgumentTypeError(f"size must be positive: {value!r}")
    return size


def _read_source(path: str) -> bytes:
    source_path = Path(path)
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    return source_path.read_bytes()


def _write_stdout(data: bytes) -> None:
    buffer = getattr(sys.stdout, "buffer", None)
    if buffer is None:
        # Text-only stream, e.g. redirected in tests
        sys.stdout.write(data.decode("latin-1"))
    else:
        sys.stdout.flush()
        buffer.write(data)
        buffer.flush()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=PROG, description="Compile Brainfuck to IA-32 executables")
    parser.add_argument("source", help="Path to the Brainfuck source file")
    parser.add_argument("-S", dest="compile_only", action="store_true", help="Compile only; do not assemble or link")
    parser.add_argument("-c", dest="no_link", action="store_true", help="Compile and assemble, but do not link")
    parser.add_argument("-o", dest="output", help="Write output to file")
    parser.add_argument(
        "-s",
        dest="size",
        type=_parse_size,
        default=DEFAULT_CAPACITY,
        help=f"Allocate specified number of bytes (default: {DEFAULT_CAPACITY})",
    )
    parser.add_argument(
        "--run",
        action="store_true",
        help="Interpret the program instead of building an executable",
    )
    parser.add_argument(
        "--input",
        default="",
        help="Input string supplied to the program when running",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log compiler and toolchain activity")
    return parser


def _stage(args: argparse.Namespace) -> Stage:
    if args.compile_only:
        return Stage.COMPILE
    if args.no_link:
        return Stage.ASSEMBLE
    return Stage.LINK


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    layout = MemoryLayout(args.size)

    if args.run:
        try:
            source = _read_source(args.source)
        except FileNotFoundError as exc:
            print(f"{PROG}: {exc}", file=sys.stderr)
            return 1
        interpreter = BrainfuckInterpreter(layout)
        try:
            output = interpreter.run(source, input_data=args.input.encode("utf-8"))
        except (CompileError, StepLimitExceeded, IndexError) as exc:
            print(f"{PROG}: {exc}", file=sys.stderr)
            return 1
        _write_stdout(output)
        return 0

    if not Path(args.source).exists():
        print(f"{PROG}: Source file not found: {args.source}", file=sys.stderr)
        return 1
    try:
        build(args.source, _stage(args), args.output, layout)
    except CompileError as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
