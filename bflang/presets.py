from __future__ import annotations

from typing import Dict, List

from .errors import ConfigurationError
from .tokens import Instruction, RegexTokenSpec, SimpleTokenSpec, TokenSpec

BRAINFUCK = SimpleTokenSpec.from_tokens(
    pointer_increment=">",
    pointer_decrement="<",
    data_increment="+",
    data_decrement="-",
    output=".",
    input=",",
    loop_start="[",
    loop_end="]",
)

_OOK_PAIRS = {
    Instruction.POINTER_INCREMENT: (".", "?"),
    Instruction.POINTER_DECREMENT: ("?", "."),
    Instruction.DATA_INCREMENT: (".", "."),
    Instruction.DATA_DECREMENT: ("!", "!"),
    Instruction.OUTPUT: ("!", "."),
    Instruction.INPUT: (".", "!"),
    Instruction.LOOP_START: ("!", "?"),
    Instruction.LOOP_END: ("?", "!"),
}

# Words may be separated by any amount of whitespace, including line breaks.
OOK = RegexTokenSpec(
    {
        instruction: r"Ook\{}\s*Ook\{}".format(first, second)
        for instruction, (first, second) in _OOK_PAIRS.items()
    },
    canonical={
        instruction: f"Ook{first} Ook{second}"
        for instruction, (first, second) in _OOK_PAIRS.items()
    },
)

DIALECTS: Dict[str, TokenSpec] = {
    "brainfuck": BRAINFUCK,
    "ook": OOK,
}


def get_dialect(name: str) -> TokenSpec:
    try:
        return DIALECTS[name.lower()]
    except KeyError as exc:
        known = ", ".join(sorted(DIALECTS))
        raise ConfigurationError(f"Unknown dialect {name!r} (known: {known})") from exc


def dialect_names() -> List[str]:
    return sorted(DIALECTS)


__all__ = ["BRAINFUCK", "DIALECTS", "OOK", "dialect_names", "get_dialect"]
