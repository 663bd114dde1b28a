from __future__ import annotations

from typing import Optional


class BFLangError(Exception):
    """Base class for every error raised by bflang."""


class ConfigurationError(BFLangError, ValueError):
    """Raised when a token specification is incomplete or ambiguous."""


class ParseError(BFLangError):
    def __init__(self, message: str, offset: int, line: int = 0, column: int = 0) -> None:
        self.offset = offset
        self.line = line
        self.column = column
        if line:
            location = f"line {line}, column {column}"
        else:
            location = f"offset {offset}"
        super().__init__(f"{location}: {message}")


class UnmatchedLoopStart(ParseError):
    def __init__(self, offset: int, line: int = 0, column: int = 0) -> None:
        super().__init__("Unmatched loop start", offset, line, column)


class UnmatchedLoopEnd(ParseError):
    def __init__(self, offset: int, line: int = 0, column: int = 0) -> None:
        super().__init__("Unmatched loop end", offset, line, column)


class ExecutionError(BFLangError, RuntimeError):
    """Raised when a running program cannot continue.

    ``pc`` and ``pointer`` describe the machine at the point of failure.
    """

    def __init__(self, message: str, pc: Optional[int] = None, pointer: Optional[int] = None) -> None:
        self.pc = pc
        self.pointer = pointer
        if pc is not None:
            message = f"{message} (pc={pc}, pointer={pointer})"
        super().__init__(message)


class PointerUnderflow(ExecutionError):
    def __init__(self, pc: Optional[int] = None, pointer: Optional[int] = None) -> None:
        super().__init__("Pointer moved before start of tape", pc, pointer)


class PointerOverflow(ExecutionError):
    def __init__(self, pc: Optional[int] = None, pointer: Optional[int] = None) -> None:
        super().__init__("Pointer moved beyond the tape limit", pc, pointer)


class EndOfInput(ExecutionError):
    def __init__(self, pc: Optional[int] = None, pointer: Optional[int] = None) -> None:
        super().__init__("Input exhausted", pc, pointer)


class InputOutputError(ExecutionError):
    pass


class StepLimitExceeded(ExecutionError):
    """Raised when execution exceeds the configured step budget."""


__all__ = [
    "BFLangError",
    "ConfigurationError",
    "EndOfInput",
    "ExecutionError",
    "InputOutputError",
    "ParseError",
    "PointerOverflow",
    "PointerUnderflow",
    "StepLimitExceeded",
    "UnmatchedLoopEnd",
    "UnmatchedLoopStart",
]
