from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional, Tuple

from .errors import (
    ConfigurationError,
    EndOfInput,
    InputOutputError,
    PointerOverflow,
    PointerUnderflow,
    StepLimitExceeded,
)
from .parser import Program
from .tokens import Instruction

logger = logging.getLogger(__name__)


class EofPolicy(str, Enum):
    """What the input instruction does once the input source is exhausted."""

    ZERO = "zero"
    UNCHANGED = "unchanged"
    ERROR = "error"


class Tape:
    """Zero-initialised byte cells, growing to the right on demand.

    ``limit`` caps the number of cells; ``None`` means unbounded.
    """

    def __init__(self, limit: Optional[int] = None) -> None:
        if limit is not None and limit < 1:
            raise ConfigurationError(f"Tape limit must be at least 1, got {limit}")
        self.limit = limit
        self.cells = bytearray(1)

    def __len__(self) -> int:
        return len(self.cells)

    def __getitem__(self, index: int) -> int:
        return self.cells[index]

    def __setitem__(self, index: int, value: int) -> None:
        self.cells[index] = value

    def grow_to(self, index: int) -> None:
        if index < len(self.cells):
            return
        if self.limit is not None and index >= self.limit:
            raise IndexError(f"Cell {index} is beyond the tape limit of {self.limit}")
        self.cells.extend(bytes(index + 1 - len(self.cells)))

    def window(self, start: int, end: int) -> List[int]:
        return list(self.cells[start:end])


@dataclass
class ExecutionState:
    step: int
    pc: int
    instruction: Optional[Instruction]
    pointer: int
    tape_start: int
    tape: List[int]
    output: bytes
    program_length: int


ByteReader = Callable[[], Optional[int]]


def _byte_reader(source: Any) -> ByteReader:
    if source is None:
        return lambda: None

    read = getattr(source, "read", None)
    if read is not None:

        def read_byte() -> Optional[int]:
            data = read(1)
            if not data:
                return None
            if isinstance(data, str):
                return ord(data) % 256
            return data[0]

        return read_byte

    if isinstance(source, str):
        source = source.encode("utf-8")
    values = iter(source)

    def next_byte() -> Optional[int]:
        try:
            return next(values) % 256
        except StopIteration:
            return None

    return next_byte


@dataclass
class Runtime:
    eof_policy: EofPolicy = EofPolicy.ZERO
    tape_limit: Optional[int] = None
    max_steps: Optional[int] = None

    tape: Tape = field(init=False, repr=False)
    pointer: int = field(init=False, repr=False)
    output_buffer: bytearray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.eof_policy = EofPolicy(self.eof_policy)
        self.reset()

    def reset(self) -> None:
        self.tape = Tape(self.tape_limit)
        self.pointer = 0
        self.output_buffer = bytearray()

    def run(self, program: Program, input: Any = None, output: Any = None) -> bytes:
        """Execute ``program`` to completion and return every byte written."""
        for _ in self._advance(program, input, output):
            pass
        return bytes(self.output_buffer)

    def step(
        self,
        program: Program,
        input: Any = None,
        output: Any = None,
        tape_window: int = 10,
    ) -> Iterator[ExecutionState]:
        length = len(program)
        steps = 0
        pc = 0
        for pc, instruction, steps in self._advance(program, input, output):
            yield self._snapshot(pc, instruction, steps, length, tape_window)

        # Emit final snapshot indicating completion
        yield self._snapshot(pc, None, steps, length, tape_window)

    def _advance(
        self, program: Program, input: Any, output: Any
    ) -> Iterator[Tuple[int, Instruction, int]]:
        self.reset()
        read_byte = _byte_reader(input)
        pc = 0
        steps = 0
        length = len(program)

        while pc < length:
            if self.max_steps is not None and steps >= self.max_steps:
                raise StepLimitExceeded("Program exceeded allowed step count", pc, self.pointer)

            node = program[pc]
            pc = self._execute_instruction(program, pc, read_byte, output)
            steps += 1
            yield pc, node.instruction, steps

        logger.debug(
            "Program finished after %d steps, %d bytes written, tape length %d",
            steps,
            len(self.output_buffer),
            len(self.tape),
        )

    def _execute_instruction(
        self,
        program: Program,
        pc: int,
        read_byte: ByteReader,
        output: Any,
    ) -> int:
        node = program[pc]
        command = node.instruction
        new_pc = pc + 1
        if command is Instruction.POINTER_INCREMENT:
            try:
                self.tape.grow_to(self.pointer + 1)
            except IndexError as exc:
                raise PointerOverflow(pc, self.pointer) from exc
            self.pointer += 1
        elif command is Instruction.POINTER_DECREMENT:
            if self.pointer == 0:
                raise PointerUnderflow(pc, self.pointer)
            self.pointer -= 1
        elif command is Instruction.DATA_INCREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] + 1) % 256
        elif command is Instruction.DATA_DECREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] - 1) % 256
        elif command is Instruction.OUTPUT:
            value = self.tape[self.pointer]
            if output is not None:
                try:
                    output.write(bytes((value,)))
                except OSError as exc:
                    raise InputOutputError(f"Output failed: {exc}", pc, self.pointer) from exc
            self.output_buffer.append(value)
        elif command is Instruction.INPUT:
            try:
                value = read_byte()
            except OSError as exc:
                raise InputOutputError(f"Input failed: {exc}", pc, self.pointer) from exc
            if value is not None:
                self.tape[self.pointer] = value
            elif self.eof_policy is EofPolicy.ZERO:
                self.tape[self.pointer] = 0
            elif self.eof_policy is EofPolicy.ERROR:
                raise EndOfInput(pc, self.pointer)
        elif command is Instruction.LOOP_START:
            if self.tape[self.pointer] == 0:
                new_pc = node.jump + 1
        elif command is Instruction.LOOP_END:
            if self.tape[self.pointer] != 0:
                new_pc = node.jump + 1
        return new_pc

    def _snapshot(
        self,
        pc: int,
        instruction: Optional[Instruction],
        step: int,
        program_length: int,
        tape_window: int,
    ) -> ExecutionState:
        start = max(0, self.pointer - tape_window)
        end = min(len(self.tape), self.pointer + tape_window + 1)
        return ExecutionState(
            step=step,
            pc=pc,
            instruction=instruction,
            pointer=self.pointer,
            tape_start=start,
            tape=self.tape.window(start, end),
            output=bytes(self.output_buffer),
            program_length=program_length,
        )


def run(program: Program, input: Any = None, output: Any = None, **options: Any) -> bytes:
    return Runtime(**options).run(program, input, output)


__all__ = [
    "EofPolicy",
    "ExecutionState",
    "Runtime",
    "Tape",
    "run",
]
