from .bf_interpreter import BrainfuckInterpreter, StepLimitExceeded
from .compiler import Compiler, CompilerState, compile_source
from .emitter import CodeEmitter, Command
from .errors import (
    CompileError,
    CompilerIOError,
    ConfigError,
    ResourceExhausted,
    ToolchainError,
    UnbalancedBracket,
)
from .layout import MemoryLayout
from .loop_stack import Label, LoopFrame, LoopStack

__all__ = [
    "BrainfuckInterpreter",
    "CodeEmitter",
    "Command",
    "CompileError",
    "Compiler",
    "CompilerIOError",
    "CompilerState",
    "ConfigError",
    "Label",
    "LoopFrame",
    "LoopStack",
    "MemoryLayout",
    "ResourceExhausted",
    "StepLimitExceeded",
    "ToolchainError",
    "UnbalancedBracket",
    "compile_source",
]
