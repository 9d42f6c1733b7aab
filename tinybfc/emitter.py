from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .layout import MemoryLayout
from .loop_stack import LoopFrame


class Command(str, Enum):
    MOVE_RIGHT = ">"
    MOVE_LEFT = "<"
    INCREMENT = "+"
    DECREMENT = "-"
    INPUT = ","
    OUTPUT = "."
    LOOP_OPEN = "["
    LOOP_CLOSE = "]"
    COMMENT = ""

    @classmethod
    def from_symbol(cls, symbol: Union[int, str]) -> "Command":
        if isinstance(symbol, int):
            return _BY_BYTE.get(symbol, cls.COMMENT)
        return _BY_CHAR.get(symbol, cls.COMMENT)


_BY_CHAR: Dict[str, Command] = {command.value: command for command in Command if command.value}
_BY_BYTE: Dict[int, Command] = {ord(char): command for char, command in _BY_CHAR.items()}

# Linux int 0x80 system call numbers
SYS_EXIT = 1
SYS_READ = 3
SYS_WRITE = 4
STDIN_FILENO = 0
STDOUT_FILENO = 1


def _syscall(number: int, fd: int) -> Tuple[str, ...]:
    return (
        f"mov eax, {number}",
        f"mov ebx, {fd}",
        "mov ecx, edi",
        "mov edx, 1",
        "int 0x80",
    )


class CodeEmitter:
    """Maps one command to the IA-32 instructions (Intel syntax) it stands for."""

    def __init__(self, layout: Optional[MemoryLayout] = None) -> None:
        self.layout = layout or MemoryLayout()
        operand = self.layout.operand
        width = self.layout.cell_width
        self._fixed: Dict[Command, Tuple[str, ...]] = {
            Command.MOVE_RIGHT: (f"add edi, {width}",),
            Command.MOVE_LEFT: (f"sub edi, {width}",),
            Command.INCREMENT: (f"inc {operand}",),
            Command.DECREMENT: (f"dec {operand}",),
            Command.INPUT: _syscall(SYS_READ, STDIN_FILENO),
            Command.OUTPUT: _syscall(SYS_WRITE, STDOUT_FILENO),
            Command.COMMENT: (),
        }

    def prologue(self) -> List[str]:
        return [
            ".intel_syntax noprefix",
            ".section .bss",
            f"\t.lcomm cells, {self.layout.capacity}",
            ".section .text",
            ".globl _start",
            "_start:",
            "\tmov edi, OFFSET cells",
        ]

    def epilogue(self) -> List[str]:
        return self._indent(_syscall_exit())

    def emit(self, command: Command, frame: Optional[LoopFrame] = None) -> List[str]:
        if command is Command.LOOP_OPEN:
            frame = self._require_frame(command, frame)
            return self._indent((f"cmp {self.layout.operand}, 0", f"jz {frame.close_label}")) + [
                f"{frame.open_label}:"
            ]
        if command is Command.LOOP_CLOSE:
            frame = self._require_frame(command, frame)
            return self._indent((f"cmp {self.layout.operand}, 0", f"jnz {frame.open_label}")) + [
                f"{frame.close_label}:"
            ]
        try:
            return self._indent(self._fixed[command])
        except KeyError as exc:
            raise ValueError(f"No translation for command {command!r}") from exc

    @staticmethod
    def _require_frame(command: Command, frame: Optional[LoopFrame]) -> LoopFrame:
        if frame is None:
            raise ValueError(f"{command.name} requires a loop frame")
        return frame

    @staticmethod
    def _indent(lines: Tuple[str, ...]) -> List[str]:
        return [f"\t{line}" for line in lines]


def _syscall_exit() -> Tuple[str, ...]:
    return (f"mov eax, {SYS_EXIT}", "mov ebx, 0", "int 0x80")


__all__ = ["CodeEmitter", "Command"]
