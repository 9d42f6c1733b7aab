from __future__ import annotations

from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel, Field

from tinybfc.bf_interpreter import BrainfuckInterpreter, StepLimitExceeded
from tinybfc.compiler import Compiler
from tinybfc.errors import ResourceExhausted, UnbalancedBracket
from tinybfc.layout import DEFAULT_CAPACITY, MemoryLayout


class CompileRequest(BaseModel):
    source: str
    capacity: int = Field(default=DEFAULT_CAPACITY, ge=1)


class CompileResponse(BaseModel):
    listing: str
    capacity: int
    cell_count: int
    loops: int
    max_depth: int


class RunRequest(BaseModel):
    source: str
    input: str = ""
    capacity: int = Field(default=DEFAULT_CAPACITY, ge=1)
    max_steps: int = Field(default=100_000, ge=1)


class RunResponse(BaseModel):
    output: str
    steps: int


def _unbalanced(exc: UnbalancedBracket) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": str(exc), "position": exc.position, "symbol": exc.symbol},
    )


def create_app() -> FastAPI:
    app = FastAPI(title="TinyBFC API", version="0.1.0")

    @app.post("/api/compile", response_model=CompileResponse)
    def compile_source(payload: CompileRequest) -> CompileResponse:
        layout = MemoryLayout(payload.capacity)
        compiler = Compiler(layout)
        try:
            listing = compiler.compile(payload.source)
        except UnbalancedBracket as exc:
            raise _unbalanced(exc) from exc
        except ResourceExhausted as exc:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=str(exc),
            ) from exc
        return CompileResponse(
            listing=listing,
            capacity=layout.capacity,
            cell_count=layout.cell_count,
            loops=compiler.loops,
            max_depth=compiler.max_depth,
        )

    @app.post("/api/run", response_model=RunResponse)
    def run_source(payload: RunRequest) -> RunResponse:
        interpreter = BrainfuckInterpreter(MemoryLayout(payload.capacity))
        try:
            output = interpreter.run(
                payload.source,
                input_data=payload.input.encode("utf-8"),
                max_steps=payload.max_steps,
            )
        except UnbalancedBracket as exc:
            raise _unbalanced(exc) from exc
        except StepLimitExceeded as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except IndexError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return RunResponse(output=output.decode("latin-1"), steps=interpreter.steps)

    return app


__all__ = ["create_app"]
