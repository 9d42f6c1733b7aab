from __future__ import annotations

from typing import Optional


class CompileError(Exception):
    """Base class for every failure that aborts a compile pass."""


class ConfigError(CompileError, ValueError):
    pass


class CompilerIOError(CompileError):
    """Raised when the source cannot be read or the listing cannot be written."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class ResourceExhausted(CompileError):
    pass


class UnbalancedBracket(CompileError):
    """Raised for a ']' with no open loop or a '[' that is never closed."""

    def __init__(self, message: str, position: Optional[int] = None, symbol: str = "") -> None:
        super().__init__(message)
        self.position = position
        self.symbol = symbol


class ToolchainError(CompileError):
    pass


__all__ = [
    "CompileError",
    "CompilerIOError",
    "ConfigError",
    "ResourceExhausted",
    "ToolchainError",
    "UnbalancedBracket",
]
