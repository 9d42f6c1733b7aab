from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Union

from .emitter import Command
from .errors import UnbalancedBracket
from .layout import MemoryLayout
from .loop_stack import LoopFrame, LoopStack


class StepLimitExceeded(RuntimeError):
    """Raised when execution exceeds the configured step budget."""


@dataclass
class BrainfuckInterpreter:
    """Runs source under the memory model of a compiled program.

    Cells are ``cell_width`` byte words that wrap on overflow. Output writes
    the low byte of the current cell; input replaces the low byte and leaves
    the cell unchanged once the input is exhausted.
    """

    layout: MemoryLayout = field(default_factory=MemoryLayout)

    tape: List[int] = field(init=False, repr=False)
    pointer: int = field(init=False, repr=False)
    output_buffer: bytearray = field(init=False, repr=False)
    steps: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.tape = [0] * self.layout.cell_count
        self.pointer = 0
        self.output_buffer = bytearray()
        self.steps = 0

    def run(
        self,
        code: Union[bytes, str],
        input_data: Optional[Iterable[int]] = None,
        max_steps: Optional[int] = None,
    ) -> bytes:
        self.reset()
        commands = self._decode(code)
        jump_map = self._build_jump_map(commands)
        if not self.tape and any(command is not Command.COMMENT for command in commands):
            raise IndexError(
                f"Cell memory of {self.layout.capacity} bytes holds no {self.layout.cell_width}-byte cells."
            )
        input_iter: Iterator[int] = iter(list(input_data or []))
        pc = 0
        code_length = len(commands)

        while pc < code_length:
            if max_steps is not None and self.steps >= max_steps:
                raise StepLimitExceeded("Program exceeded allowed step count")
            pc = self._execute_instruction(commands[pc], pc, jump_map, input_iter)
            self.steps += 1
        return bytes(self.output_buffer)

    def _decode(self, code: Union[bytes, str]) -> List[Command]:
        if isinstance(code, str):
            code = code.encode("utf-8")
        return [Command.from_symbol(symbol) for symbol in code]

    def _execute_instruction(
        self,
        command: Command,
        pc: int,
        jump_map: Dict[int, int],
        input_iter: Iterator[int],
    ) -> int:
        new_pc = pc + 1
        mask = self.layout.cell_mask
        if command is Command.MOVE_RIGHT:
            self.pointer += 1
            if self.pointer >= len(self.tape):
                raise IndexError("Pointer moved beyond the end of cell memory.")
        elif command is Command.MOVE_LEFT:
            self.pointer -= 1
            if self.pointer < 0:
                raise IndexError("Pointer moved before start of cell memory.")
        elif command is Command.INCREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] + 1) & mask
        elif command is Command.DECREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] - 1) & mask
        elif command is Command.OUTPUT:
            self.output_buffer.append(self.tape[self.pointer] & 0xFF)
        elif command is Command.INPUT:
            value = next(input_iter, None)
            if value is not None:
                self.tape[self.pointer] = (self.tape[self.pointer] & ~0xFF & mask) | (value & 0xFF)
        elif command is Command.LOOP_OPEN:
            if self.tape[self.pointer] == 0:
                new_pc = jump_map[pc] + 1
        elif command is Command.LOOP_CLOSE:
            if self.tape[self.pointer] != 0:
                new_pc = jump_map[pc] + 1
        return new_pc

    def _build_jump_map(self, commands: List[Command]) -> Dict[int, int]:
        jump_map: Dict[int, int] = {}
        stack = LoopStack()
        for index, command in enumerate(commands):
            if command is Command.LOOP_OPEN:
                stack.push(LoopFrame(index, index))
            elif command is Command.LOOP_CLOSE:
                if not stack:
                    raise UnbalancedBracket(f"Unmatched ']' at position {index}", position=index, symbol="]")
                start = stack.pop().position
                jump_map[start] = index
                jump_map[index] = start
        if stack:
            start = stack.peek().position
            raise UnbalancedBracket(f"Unmatched '[' at position {start}", position=start, symbol="[")
        return jump_map


__all__ = [
    "BrainfuckInterpreter",
    "StepLimitExceeded",
]
