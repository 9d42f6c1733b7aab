from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, cast

from .errors import ResourceExhausted, UnbalancedBracket

DEFAULT_STACK_SIZE = 1024
GROWTH_FACTOR = 1.1


@dataclass(frozen=True)
class Label:
    prefix: str
    ident: int

    def __str__(self) -> str:
        return f".{self.prefix}{self.ident}"


@dataclass(frozen=True)
class LoopFrame:
    """One '[' occurrence; owns the label pair that brackets its body."""

    ident: int
    position: int = 0

    @property
    def open_label(self) -> Label:
        return Label("LB", self.ident)

    @property
    def close_label(self) -> Label:
        return Label("LE", self.ident)


class LoopStack:
    """LIFO stack of open loops backed by storage that grows by GROWTH_FACTOR."""

    def __init__(self, capacity: int = DEFAULT_STACK_SIZE, limit: Optional[int] = None) -> None:
        if capacity <= 0:
            raise ValueError(f"Loop stack capacity must be positive, got {capacity}")
        self._slots: List[Optional[LoopFrame]] = [None] * capacity
        self._top = 0
        self.limit = limit

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def __len__(self) -> int:
        return self._top

    def __bool__(self) -> bool:
        return self._top > 0

    def __iter__(self) -> Iterator[LoopFrame]:
        return iter(cast(List[LoopFrame], self._slots[: self._top]))

    def push(self, frame: LoopFrame) -> None:
        if self.limit is not None and self._top >= self.limit:
            raise ResourceExhausted(
                f"Loop stack limit of {self.limit} entries reached at nesting depth {self._top + 1}"
            )
        if self._top == len(self._slots):
            self._grow()
        self._slots[self._top] = frame
        self._top += 1

    def pop(self) -> LoopFrame:
        frame = self.peek()
        self._top -= 1
        self._slots[self._top] = None
        return frame

    def peek(self) -> LoopFrame:
        if self._top == 0:
            raise UnbalancedBracket("Loop stack is empty")
        return cast(LoopFrame, self._slots[self._top - 1])

    def clear(self) -> None:
        for index in range(self._top):
            self._slots[index] = None
        self._top = 0

    def _grow(self) -> None:
        current = len(self._slots)
        new_size = max(int(current * GROWTH_FACTOR), current + 1)
        try:
            self._slots.extend([None] * (new_size - current))
        except MemoryError as exc:
            raise ResourceExhausted(
                f"Out of memory while increasing loop stack to size {new_size}"
            ) from exc


__all__ = [
    "DEFAULT_STACK_SIZE",
    "GROWTH_FACTOR",
    "Label",
    "LoopFrame",
    "LoopStack",
]
