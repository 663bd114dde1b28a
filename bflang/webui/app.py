from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Response, status
from pydantic import BaseModel, Field, field_validator

from bflang.errors import BFLangError, ExecutionError, ParseError, StepLimitExceeded
from bflang.parser import Parser, Program
from bflang.presets import DIALECTS, get_dialect
from bflang.runtime import EofPolicy, ExecutionState, Runtime
from bflang.visualizer import VisualizerSession

from .session import SessionRecord, SessionStore

logger = logging.getLogger(__name__)


def _string_to_input_bytes(data: str) -> bytes:
    return data.encode("utf-8")


def _decode_output(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _state_to_dict(state: ExecutionState) -> dict:
    return {
        "step": state.step,
        "pc": state.pc,
        "instruction": state.instruction.value if state.instruction is not None else None,
        "symbol": state.instruction.symbol if state.instruction is not None else None,
        "pointer": state.pointer,
        "tape_start": state.tape_start,
        "tape": list(state.tape),
        "output": _decode_output(state.output),
        "program_length": state.program_length,
    }


def _error_to_dict(exc: BFLangError) -> dict:
    detail = {"error": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, ParseError):
        detail.update(offset=exc.offset, line=exc.line, column=exc.column)
    elif isinstance(exc, ExecutionError):
        detail.update(pc=exc.pc, pointer=exc.pointer)
    return detail


def _calculate_total_steps(
    program: Program,
    input_template: bytes,
    eof_policy: EofPolicy,
    tape_limit: Optional[int],
    cap: int = 10000,
) -> Tuple[int, bool]:
    runtime = Runtime(eof_policy=eof_policy, tape_limit=tape_limit, max_steps=cap)
    total = 0
    try:
        for state in runtime.step(program, input=input_template):
            if state.step > total:
                total = state.step
    except StepLimitExceeded:
        return cap, True
    except ExecutionError:
        return total, False
    return total, total >= cap


def _validate_dialect(value: str) -> str:
    normalized = value.lower()
    if normalized not in DIALECTS:
        raise ValueError("dialect must be one of: " + ", ".join(sorted(DIALECTS)))
    return normalized


class SessionConfiguration(BaseModel):
    code: str = ""
    input: str = ""
    dialect: str = "brainfuck"
    eof_policy: EofPolicy = EofPolicy.ZERO
    tape_window: int = Field(default=10, ge=0)
    max_steps: Optional[int] = Field(default=None, ge=1)
    tape_limit: Optional[int] = Field(default=None, ge=1)
    history_limit: int = Field(default=200, ge=1)

    @field_validator("dialect")
    @classmethod
    def validate_dialect(cls, value: str) -> str:
        return _validate_dialect(value)


class RunProgramRequest(BaseModel):
    code: str = ""
    input: str = ""
    dialect: str = "brainfuck"
    eof_policy: EofPolicy = EofPolicy.ZERO
    max_steps: int = Field(default=1_000_000, ge=1)
    tape_limit: Optional[int] = Field(default=None, ge=1)

    @field_validator("dialect")
    @classmethod
    def validate_dialect(cls, value: str) -> str:
        return _validate_dialect(value)


class ErrorDetail(BaseModel):
    error: str
    message: str
    pc: Optional[int] = None
    pointer: Optional[int] = None


class RunProgramResponse(BaseModel):
    dialect: str
    program_length: int
    output: str
    output_bytes: List[int]
    error: Optional[ErrorDetail] = None


class DialectInfo(BaseModel):
    name: str
    tokens: Dict[str, List[str]]


class SessionState(BaseModel):
    step: int
    pc: int
    instruction: Optional[str]
    symbol: Optional[str]
    pointer: int
    tape_start: int
    tape: List[int]
    output: str
    program_length: int


class SessionPayload(BaseModel):
    session_id: str
    dialect: str
    code: str
    original_source: Optional[str]
    state: SessionState
    history: List[SessionState]
    finished: bool
    history_size: int
    breakpoints: List[int]
    hit_breakpoint: Optional[int]
    total_steps: int
    total_steps_capped: bool


class StepRequest(BaseModel):
    count: int = Field(default=1, ge=1)


class StepResponse(BaseModel):
    session_id: str
    dialect: str
    code: str
    states: List[SessionState]
    history: List[SessionState]
    finished: bool
    history_size: int
    breakpoints: List[int]
    hit_breakpoint: Optional[int]
    total_steps: int
    total_steps_capped: bool


class RunRequest(BaseModel):
    limit: Optional[int] = Field(default=None, ge=1)
    ignore_breakpoints: bool = False


class BreakpointRequest(BaseModel):
    pc: int = Field(ge=0)


def _parse_or_422(code: str, dialect: str) -> Program:
    try:
        return Parser(get_dialect(dialect)).parse(code)
    except BFLangError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=_error_to_dict(exc),
        ) from exc


def create_app(store: Optional[SessionStore] = None) -> FastAPI:
    session_store = store or SessionStore()
    app = FastAPI(title="bflang API", version="0.1.0")

    def _get_record(session_id: str) -> SessionRecord:
        try:
            return session_store.get(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    def _history_states(session: VisualizerSession) -> List[SessionState]:
        return [SessionState(**_state_to_dict(state)) for state in session.history]

    def _serialize_states(states: List[ExecutionState]) -> List[SessionState]:
        return [SessionState(**_state_to_dict(state)) for state in states]

    def _code(record: SessionRecord) -> str:
        return record.session.program.render(get_dialect("brainfuck"))

    def _build_payload(record: SessionRecord) -> SessionPayload:
        session = record.session
        state = session.current_state()
        return SessionPayload(
            session_id=record.session_id,
            dialect=record.dialect,
            code=_code(record),
            original_source=record.original_source,
            state=SessionState(**_state_to_dict(state)),
            history=_history_states(session),
            finished=session.is_finished(),
            history_size=len(session.history),
            breakpoints=session.list_breakpoints(),
            hit_breakpoint=session.hit_breakpoint,
            total_steps=record.total_steps,
            total_steps_capped=record.total_steps_capped,
        )

    def _build_step_response(record: SessionRecord, states: List[ExecutionState]) -> StepResponse:
        session = record.session
        return StepResponse(
            session_id=record.session_id,
            dialect=record.dialect,
            code=_code(record),
            states=_serialize_states(states),
            history=_history_states(session),
            finished=session.is_finished(),
            history_size=len(session.history),
            breakpoints=session.list_breakpoints(),
            hit_breakpoint=session.hit_breakpoint,
            total_steps=record.total_steps,
            total_steps_capped=record.total_steps_capped,
        )

    @app.get("/api/dialects", response_model=List[DialectInfo])
    def list_dialects() -> List[DialectInfo]:
        return [
            DialectInfo(
                name=name,
                tokens={instruction.value: list(texts) for instruction, texts in spec.entries()},
            )
            for name, spec in sorted(DIALECTS.items())
        ]

    @app.post("/api/run", response_model=RunProgramResponse)
    def run_program(payload: RunProgramRequest) -> RunProgramResponse:
        program = _parse_or_422(payload.code, payload.dialect)
        runtime = Runtime(
            eof_policy=payload.eof_policy,
            tape_limit=payload.tape_limit,
            max_steps=payload.max_steps,
        )
        error: Optional[ErrorDetail] = None
        try:
            runtime.run(program, input=_string_to_input_bytes(payload.input))
        except ExecutionError as exc:
            logger.debug("Program failed: %s", exc)
            error = ErrorDetail(**_error_to_dict(exc))
        output = bytes(runtime.output_buffer)
        return RunProgramResponse(
            dialect=payload.dialect,
            program_length=len(program),
            output=_decode_output(output),
            output_bytes=list(output),
            error=error,
        )

    @app.post("/api/session", response_model=SessionPayload, status_code=status.HTTP_201_CREATED)
    def create_session(payload: SessionConfiguration) -> SessionPayload:
        program = _parse_or_422(payload.code, payload.dialect)
        input_bytes = _string_to_input_bytes(payload.input)
        total_steps, total_steps_capped = _calculate_total_steps(
            program,
            input_bytes,
            payload.eof_policy,
            payload.tape_limit,
        )

        session = VisualizerSession(
            program,
            input_template=input_bytes,
            tape_window=payload.tape_window,
            max_steps=payload.max_steps,
            history_limit=payload.history_limit,
            eof_policy=payload.eof_policy,
            tape_limit=payload.tape_limit,
        )
        record = session_store.create_session(
            session,
            dialect=payload.dialect,
            original_source=payload.code,
            total_steps=total_steps,
            total_steps_capped=total_steps_capped,
        )
        logger.debug("Created session %s (%d instructions)", record.session_id, len(program))
        return _build_payload(record)

    @app.get("/api/session/{session_id}", response_model=SessionPayload)
    def get_session(session_id: str) -> SessionPayload:
        return _build_payload(_get_record(session_id))

    @app.post("/api/session/{session_id}/reset", response_model=SessionPayload)
    def reset_session(session_id: str) -> SessionPayload:
        try:
            record = session_store.reset(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return _build_payload(record)

    @app.post("/api/session/{session_id}/step", response_model=StepResponse)
    def step_session(session_id: str, payload: StepRequest) -> StepResponse:
        record = _get_record(session_id)
        try:
            states = record.session.step_forward(payload.count)
        except ExecutionError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=_error_to_dict(exc),
            ) from exc
        return _build_step_response(record, list(states))

    @app.post("/api/session/{session_id}/run", response_model=StepResponse)
    def run_session(session_id: str, payload: RunRequest) -> StepResponse:
        record = _get_record(session_id)
        session = record.session
        original_breakpoints: Optional[set[int]] = None
        if payload.ignore_breakpoints:
            original_breakpoints = set(session.breakpoints)
            session.clear_breakpoints()
            session.hit_breakpoint = None

        try:
            states = list(session.run_until_break(payload.limit))
        except ExecutionError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=_error_to_dict(exc),
            ) from exc
        finally:
            if original_breakpoints is not None:
                session.breakpoints = set(original_breakpoints)
                session.hit_breakpoint = None

        return _build_step_response(record, states)

    @app.post("/api/session/{session_id}/breakpoints", response_model=SessionPayload)
    def add_breakpoint(session_id: str, payload: BreakpointRequest) -> SessionPayload:
        record = _get_record(session_id)
        record.session.add_breakpoint(payload.pc)
        return _build_payload(record)

    @app.delete("/api/session/{session_id}/breakpoints/{pc}", response_model=SessionPayload)
    def remove_breakpoint(session_id: str, pc: int) -> SessionPayload:
        record = _get_record(session_id)
        if not record.session.remove_breakpoint(pc):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Breakpoint not found at pc={pc}",
            )
        return _build_payload(record)

    @app.delete("/api/session/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_session(session_id: str) -> Response:
        if not session_store.remove(session_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown session id: {session_id}",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


__all__ = ["create_app"]
