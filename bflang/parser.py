from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from .errors import UnmatchedLoopEnd, UnmatchedLoopStart
from .tokenizer import Tokenizer
from .tokens import Instruction, Token, TokenSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Node:
    instruction: Instruction
    offset: int
    line: int = 1
    column: int = 1
    # Index of the partner bracket; only set on loop nodes.
    jump: Optional[int] = None


@dataclass(frozen=True)
class Program:
    """Flat, jump-annotated instruction sequence.

    Only :class:`Parser` builds programs, so every loop start is paired with a
    loop end at a greater index and the pairs are properly nested.
    """

    nodes: Tuple[Node, ...] = ()

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def instructions(self) -> List[Instruction]:
        return [node.instruction for node in self.nodes]

    def render(self, spec: TokenSpec, separator: str = "") -> str:
        """Write the program back out as source text of ``spec``'s dialect."""
        return separator.join(spec.canonical(node.instruction) for node in self.nodes)


class Parser:
    def __init__(self, spec: TokenSpec) -> None:
        self.spec = spec
        self.tokenizer = Tokenizer(spec)

    def parse(self, source: Union[str, bytes, bytearray]) -> Program:
        return self.parse_tokens(self.tokenizer.tokenize(source))

    def parse_tokens(self, tokens: Iterable[Token]) -> Program:
        nodes: List[Node] = []
        jumps: List[Optional[int]] = []
        stack: List[int] = []

        for token in tokens:
            index = len(nodes)
            nodes.append(Node(token.instruction, token.offset, token.line, token.column))
            jumps.append(None)
            if token.instruction is Instruction.LOOP_START:
                stack.append(index)
            elif token.instruction is Instruction.LOOP_END:
                if not stack:
                    raise UnmatchedLoopEnd(token.offset, token.line, token.column)
                start = stack.pop()
                jumps[start] = index
                jumps[index] = start

        if stack:
            oldest = nodes[stack[0]]
            raise UnmatchedLoopStart(oldest.offset, oldest.line, oldest.column)

        program = Program(
            tuple(
                Node(node.instruction, node.offset, node.line, node.column, jump)
                if jump is not None
                else node
                for node, jump in zip(nodes, jumps)
            )
        )
        logger.debug("Parsed program with %d instructions", len(program))
        return program


def parse(source: Union[str, bytes, bytearray], spec: TokenSpec) -> Program:
    return Parser(spec).parse(source)


__all__ = ["Node", "Parser", "Program", "parse"]
