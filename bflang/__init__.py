from .errors import (
    BFLangError,
    ConfigurationError,
    EndOfInput,
    ExecutionError,
    InputOutputError,
    ParseError,
    PointerOverflow,
    PointerUnderflow,
    StepLimitExceeded,
    UnmatchedLoopEnd,
    UnmatchedLoopStart,
)
from .parser import Node, Parser, Program, parse
from .presets import BRAINFUCK, OOK, get_dialect
from .runtime import EofPolicy, ExecutionState, Runtime, Tape, run
from .tokenizer import Tokenizer
from .tokens import Instruction, RegexTokenSpec, SimpleTokenSpec, Token, TokenMatch, TokenSpec
from .visualizer import VisualizerSession

__all__ = [
    "BFLangError",
    "BRAINFUCK",
    "ConfigurationError",
    "EndOfInput",
    "EofPolicy",
    "ExecutionError",
    "ExecutionState",
    "InputOutputError",
    "Instruction",
    "Node",
    "OOK",
    "ParseError",
    "Parser",
    "PointerOverflow",
    "PointerUnderflow",
    "Program",
    "RegexTokenSpec",
    "Runtime",
    "SimpleTokenSpec",
    "StepLimitExceeded",
    "Tape",
    "Token",
    "TokenMatch",
    "TokenSpec",
    "Tokenizer",
    "UnmatchedLoopEnd",
    "UnmatchedLoopStart",
    "VisualizerSession",
    "get_dialect",
    "parse",
    "run",
]
