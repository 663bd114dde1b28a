from __future__ import annotations

import logging
from typing import Iterator, Union

from .tokens import Token, TokenSpec

logger = logging.getLogger(__name__)


def _decode(source: Union[str, bytes, bytearray]) -> str:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source).decode("utf-8", errors="surrogateescape")
    return source


class Tokenizer:
    """Scans source text into tokens of a single dialect.

    Characters that do not start a configured token are skipped.
    """

    def __init__(self, spec: TokenSpec) -> None:
        self.spec = spec

    def tokenize(self, source: Union[str, bytes, bytearray]) -> Iterator[Token]:
        text = _decode(source)
        position = 0
        line = 1
        line_start = 0
        count = 0
        length = len(text)

        while position < length:
            found = self.spec.match(text, position)
            if found is None:
                if text[position] == "\n":
                    line += 1
                    line_start = position + 1
                position += 1
                continue

            yield Token(
                instruction=found.instruction,
                offset=position,
                text=found.text,
                line=line,
                column=position - line_start + 1,
            )
            count += 1
            newlines = found.text.count("\n")
            if newlines:
                line += newlines
                line_start = position + found.text.rindex("\n") + 1
            position += found.length

        logger.debug("Tokenized %d characters into %d tokens", length, count)


__all__ = ["Tokenizer"]
