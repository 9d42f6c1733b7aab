from __future__ import annotations

import logging
import subprocess
from enum import IntEnum
from pathlib import Path
from typing import List, Optional, Union

from .compiler import Compiler
from .errors import CompilerIOError, ToolchainError
from .layout import MemoryLayout

logger = logging.getLogger(__name__)

DEFAULT_BINARY = "a.out"
ASSEMBLER = "as"
LINKER = "ld"


class Stage(IntEnum):
    """Last stage to run; lower values stop earlier."""

    COMPILE = 0
    ASSEMBLE = 1
    LINK = 2


def replace_extension(name: Union[str, Path], ext: str) -> Path:
    path = Path(name)
    if path.suffix:
        return path.with_suffix(f".{ext}")
    return path.with_name(f"{path.name}.{ext}")


def write_listing(path: Union[str, Path], listing: str) -> None:
    try:
        Path(path).write_text(listing, encoding="utf-8")
    except OSError as exc:
        raise CompilerIOError(f"Could not write file {path}: {exc}", str(path)) from exc


def _run_tool(command: List[str]) -> None:
    logger.debug("Running %s", " ".join(command))
    try:
        result = subprocess.run(command, capture_output=True, text=True)
    except OSError as exc:
        raise ToolchainError(f"Could not run {command[0]}: {exc}") from exc
    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        raise ToolchainError(f"{command[0]} failed: {detail}")


def assemble(asm_path: Union[str, Path], obj_path: Union[str, Path]) -> None:
    _run_tool([ASSEMBLER, "-o", str(obj_path), str(asm_path)])


def link(obj_path: Union[str, Path], binary_path: Union[str, Path]) -> None:
    _run_tool([LINKER, "-o", str(binary_path), str(obj_path)])


def _remove_intermediate(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def build(
    source: Union[str, Path],
    stage: Stage = Stage.LINK,
    output: Optional[Union[str, Path]] = None,
    layout: Optional[MemoryLayout] = None,
) -> Path:
    """Compile ``source`` and run the external tools up to ``stage``.

    Returns the path of the final artifact. Intermediate files are removed
    once the next stage has consumed them.
    """
    source_path = Path(source)
    if stage is Stage.COMPILE and output is not None:
        asm_path = Path(output)
    else:
        asm_path = replace_extension(source_path, "s")

    listing = Compiler(layout).compile_file(source_path)
    write_listing(asm_path, listing)
    if stage is Stage.COMPILE:
        return asm_path

    if stage is Stage.ASSEMBLE and output is not None:
        obj_path = Path(output)
    else:
        obj_path = replace_extension(source_path, "o")
    try:
        assemble(asm_path, obj_path)
    finally:
        _remove_intermediate(asm_path)
    if stage is Stage.ASSEMBLE:
        return obj_path

    binary_path = Path(output) if output is not None else Path(DEFAULT_BINARY)
    try:
        link(obj_path, binary_path)
    finally:
        _remove_intermediate(obj_path)
    return binary_path


__all__ = [
    "Stage",
    "assemble",
    "build",
    "link",
    "replace_extension",
    "write_listing",
]
