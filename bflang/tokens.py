from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError


class Instruction(str, Enum):
    POINTER_INCREMENT = "pointer_increment"
    POINTER_DECREMENT = "pointer_decrement"
    DATA_INCREMENT = "data_increment"
    DATA_DECREMENT = "data_decrement"
    OUTPUT = "output"
    INPUT = "input"
    LOOP_START = "loop_start"
    LOOP_END = "loop_end"

    @property
    def symbol(self) -> str:
        """Classic Brainfuck character, used for display."""
        return _SYMBOLS[self]


_SYMBOLS = {
    Instruction.POINTER_INCREMENT: ">",
    Instruction.POINTER_DECREMENT: "<",
    Instruction.DATA_INCREMENT: "+",
    Instruction.DATA_DECREMENT: "-",
    Instruction.OUTPUT: ".",
    Instruction.INPUT: ",",
    Instruction.LOOP_START: "[",
    Instruction.LOOP_END: "]",
}

_ORDER = {instruction: index for index, instruction in enumerate(Instruction)}


@dataclass(frozen=True)
class Token:
    instruction: Instruction
    offset: int
    text: str
    line: int = 1
    column: int = 1


@dataclass(frozen=True)
class TokenMatch:
    instruction: Instruction
    length: int
    text: str


TokenTexts = Union[str, Sequence[str]]
SpecMapping = Mapping[Union[Instruction, str], TokenTexts]


class TokenSpec(ABC):
    """Maps each instruction to the literal texts that denote it in a dialect."""

    @abstractmethod
    def entries(self) -> Tuple[Tuple[Instruction, Tuple[str, ...]], ...]:
        ...

    @abstractmethod
    def match(self, source: str, position: int) -> Optional[TokenMatch]:
        """Return the longest token starting at ``position``, if any."""

    @abstractmethod
    def canonical(self, instruction: Instruction) -> str:
        ...

    def alternatives(self, instruction: Instruction) -> Tuple[str, ...]:
        for entry_instruction, texts in self.entries():
            if entry_instruction is instruction:
                return texts
        raise KeyError(instruction)


def _normalize(mapping: SpecMapping) -> Dict[Instruction, Tuple[str, ...]]:
    normalized: Dict[Instruction, Tuple[str, ...]] = {}
    for key, texts in mapping.items():
        try:
            instruction = Instruction(key)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown instruction: {key!r}") from exc
        if instruction in normalized:
            raise ConfigurationError(f"Instruction {instruction.value} configured twice")
        if isinstance(texts, str):
            texts = [texts]
        alternatives: List[str] = []
        for text in texts:
            if not isinstance(text, str) or not text:
                raise ConfigurationError(
                    f"Token for {instruction.value} must be a non-empty string, got {text!r}"
                )
            if text not in alternatives:
                alternatives.append(text)
        if not alternatives:
            raise ConfigurationError(f"No token configured for {instruction.value}")
        normalized[instruction] = tuple(alternatives)

    missing = [instruction.value for instruction in Instruction if instruction not in normalized]
    if missing:
        raise ConfigurationError("Missing tokens for: " + ", ".join(missing))
    return {instruction: normalized[instruction] for instruction in Instruction}


class SimpleTokenSpec(TokenSpec):
    """Token specification made of literal strings.

    Each instruction gets one text or a sequence of alternative texts::

        SimpleTokenSpec.from_tokens(
            pointer_increment=">",
            pointer_decrement="<",
            data_increment=["+", "inc"],
            ...
        )

    The same text may not denote two different instructions. Lookup tries
    longer texts first, so overlapping prefixes resolve to the longest token.
    """

    def __init__(self, mapping: SpecMapping) -> None:
        self._entries = _normalize(mapping)
        owners: Dict[str, Instruction] = {}
        for instruction, texts in self._entries.items():
            for text in texts:
                owner = owners.get(text)
                if owner is not None and owner is not instruction:
                    raise ConfigurationError(
                        f"Token {text!r} assigned to both {owner.value} and {instruction.value}"
                    )
                owners[text] = instruction
        self._table: Tuple[Tuple[str, Instruction], ...] = tuple(
            sorted(owners.items(), key=lambda item: (-len(item[0]), _ORDER[item[1]]))
        )

    @classmethod
    def from_tokens(cls, **tokens: TokenTexts) -> "SimpleTokenSpec":
        return cls(tokens)

    def entries(self) -> Tuple[Tuple[Instruction, Tuple[str, ...]], ...]:
        return tuple(self._entries.items())

    def match(self, source: str, position: int) -> Optional[TokenMatch]:
        for text, instruction in self._table:
            if source.startswith(text, position):
                return TokenMatch(instruction, len(text), text)
        return None

    def canonical(self, instruction: Instruction) -> str:
        return self._entries[Instruction(instruction)][0]

    def __repr__(self) -> str:
        pairs = ", ".join(f"{instruction.value}={texts!r}" for instruction, texts in self._entries.items())
        return f"SimpleTokenSpec({pairs})"


class RegexTokenSpec(TokenSpec):
    """Token specification whose alternatives are regular expressions.

    Ambiguity between patterns cannot be checked up front; an equal-length
    match for two instructions raises ``ConfigurationError`` when it is met.
    """

    def __init__(
        self,
        mapping: SpecMapping,
        canonical: Optional[Mapping[Union[Instruction, str], str]] = None,
        flags: int = 0,
    ) -> None:
        self._entries = _normalize(mapping)
        self._patterns: List[Tuple[re.Pattern[str], Instruction]] = []
        for instruction, patterns in self._entries.items():
            for pattern in patterns:
                try:
                    compiled = re.compile(pattern, flags)
                except re.error as exc:
                    raise ConfigurationError(
                        f"Invalid pattern for {instruction.value}: {pattern!r} ({exc})"
                    ) from exc
                if compiled.fullmatch("") is not None:
                    raise ConfigurationError(
                        f"Pattern for {instruction.value} matches the empty string: {pattern!r}"
                    )
                self._patterns.append((compiled, instruction))

        self._canonical: Dict[Instruction, str] = {}
        for key, text in (canonical or {}).items():
            try:
                self._canonical[Instruction(key)] = text
            except ValueError as exc:
                raise ConfigurationError(f"Unknown instruction: {key!r}") from exc

    def entries(self) -> Tuple[Tuple[Instruction, Tuple[str, ...]], ...]:
        return tuple(self._entries.items())

    def match(self, source: str, position: int) -> Optional[TokenMatch]:
        candidates: List[TokenMatch] = []
        for pattern, instruction in self._patterns:
            found = pattern.match(source, position)
            if found is not None and found.end() > position:
                candidates.append(TokenMatch(instruction, found.end() - position, found.group(0)))
        if not candidates:
            return None

        longest = max(candidate.length for candidate in candidates)
        best = [candidate for candidate in candidates if candidate.length == longest]
        for other in best[1:]:
            if other.instruction is not best[0].instruction:
                raise ConfigurationError(
                    f"Ambiguous token {other.text!r} at offset {position}: "
                    f"matches both {best[0].instruction.value} and {other.instruction.value}"
                )
        return best[0]

    def canonical(self, instruction: Instruction) -> str:
        try:
            return self._canonical[Instruction(instruction)]
        except KeyError as exc:
            raise ConfigurationError(
                f"No canonical text configured for {Instruction(instruction).value}"
            ) from exc


__all__ = [
    "Instruction",
    "RegexTokenSpec",
    "SimpleTokenSpec",
    "Token",
    "TokenMatch",
    "TokenSpec",
]
