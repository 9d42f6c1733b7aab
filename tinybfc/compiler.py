from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, List, Optional, Union

from .emitter import CodeEmitter, Command
from .errors import CompilerIOError, UnbalancedBracket
from .layout import MemoryLayout
from .loop_stack import LoopFrame, LoopStack

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class CompilerState(Enum):
    SCANNING = "scanning"
    DONE = "done"


class Compiler:
    """Single-pass translator from source symbols to an assembly listing.

    Each call to one of the ``compile*`` methods is an independent
    compilation: loop ids restart at 1 and a fresh loop stack is used.
    """

    def __init__(
        self,
        layout: Optional[MemoryLayout] = None,
        *,
        stack_factory: Callable[[], LoopStack] = LoopStack,
    ) -> None:
        self.layout = layout or MemoryLayout()
        self.emitter = CodeEmitter(self.layout)
        self.stack_factory = stack_factory
        # DONE between passes; each pass starts in SCANNING
        self.state = CompilerState.DONE
        self.loops = 0
        self.max_depth = 0

    def compile(self, source: Union[bytes, str]) -> str:
        if isinstance(source, str):
            source = source.encode("utf-8")
        return self._run([source])

    def compile_stream(self, stream: BinaryIO) -> str:
        return self._run(self._read_chunks(stream))

    def compile_file(self, path: Union[str, Path]) -> str:
        source_path = Path(path)
        try:
            with source_path.open("rb") as stream:
                return self.compile_stream(stream)
        except CompilerIOError as exc:
            exc.path = str(source_path)
            raise
        except OSError as exc:
            raise CompilerIOError(f"Could not read file {source_path}: {exc}", str(source_path)) from exc

    # --- Pass ---

    def _read_chunks(self, stream: BinaryIO) -> Iterable[bytes]:
        while True:
            try:
                chunk = stream.read(READ_CHUNK_SIZE)
            except OSError as exc:
                raise CompilerIOError(f"Could not read source stream: {exc}") from exc
            if not chunk:
                return
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            yield chunk

    def _run(self, chunks: Iterable[bytes]) -> str:
        stack = self.stack_factory()
        self.loops = 0
        self.max_depth = 0
        output: List[str] = self.emitter.prologue()
        position = 0

        self.state = CompilerState.SCANNING
        logger.debug("Compiling with %d bytes of cell memory", self.layout.capacity)
        try:
            for chunk in chunks:
                for symbol in chunk:
                    self._dispatch(Command.from_symbol(symbol), position, stack, output)
                    position += 1
        finally:
            self.state = CompilerState.DONE

        if stack:
            frame = stack.peek()
            raise UnbalancedBracket(
                f"Unmatched '[' at position {frame.position} ({len(stack)} loop(s) left open)",
                position=frame.position,
                symbol="[",
            )

        output.extend(self.emitter.epilogue())
        logger.debug("Compiled %d symbols, %d loops, max depth %d", position, self.loops, self.max_depth)
        return "\n".join(output) + "\n"

    def _dispatch(self, command: Command, position: int, stack: LoopStack, output: List[str]) -> None:
        if command is Command.LOOP_OPEN:
            self.loops += 1
            frame = LoopFrame(self.loops, position)
            stack.push(frame)
            self.max_depth = max(self.max_depth, len(stack))
            output.extend(self.emitter.emit(command, frame))
        elif command is Command.LOOP_CLOSE:
            try:
                frame = stack.pop()
            except UnbalancedBracket as exc:
                raise UnbalancedBracket(
                    f"Unmatched ']' at position {position}",
                    position=position,
                    symbol="]",
                ) from exc
            output.extend(self.emitter.emit(command, frame))
        elif command is not Command.COMMENT:
            output.extend(self.emitter.emit(command))


def compile_source(source: Union[bytes, str], capacity: Optional[int] = None) -> str:
    layout = MemoryLayout() if capacity is None else MemoryLayout(capacity)
    return Compiler(layout).compile(source)


__all__ = ["Compiler", "CompilerState", "compile_source"]
