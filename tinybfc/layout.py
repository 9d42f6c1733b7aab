from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigError

DEFAULT_CAPACITY = 4096
CELL_WIDTH = 4

_OPERAND_SIZES = {1: "BYTE", 2: "WORD", 4: "DWORD"}


@dataclass(frozen=True)
class MemoryLayout:
    """Size of the zeroed cell region reserved by a generated program."""

    capacity: int = DEFAULT_CAPACITY

    def __post_init__(self) -> None:
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int):
            raise ConfigError(f"Memory capacity must be an integer, got {self.capacity!r}")
        if self.capacity <= 0:
            raise ConfigError(f"Memory capacity must be positive, got {self.capacity}")

    @property
    def cell_width(self) -> int:
        return CELL_WIDTH

    @property
    def cell_count(self) -> int:
        return self.capacity // self.cell_width

    @property
    def cell_mask(self) -> int:
        return (1 << (8 * self.cell_width)) - 1

    @property
    def operand(self) -> str:
        return f"{_OPERAND_SIZES[self.cell_width]} PTR [edi]"


__all__ = ["CELL_WIDTH", "DEFAULT_CAPACITY", "MemoryLayout"]
