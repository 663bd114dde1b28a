import re
import unittest

from bflang import (
    BRAINFUCK,
    OOK,
    ConfigurationError,
    Instruction,
    RegexTokenSpec,
    SimpleTokenSpec,
    Tokenizer,
)

BRAINFUCK_TOKENS = {
    "pointer_increment": ">",
    "pointer_decrement": "<",
    "data_increment": "+",
    "data_decrement": "-",
    "output": ".",
    "input": ",",
    "loop_start": "[",
    "loop_end": "]",
}


def _tokens(**overrides):
    tokens = dict(BRAINFUCK_TOKENS)
    tokens.update(overrides)
    return tokens


def _patterns(**overrides):
    patterns = {key: re.escape(text) for key, text in BRAINFUCK_TOKENS.items()}
    patterns.update(overrides)
    return patterns


class SimpleTokenSpecTests(unittest.TestCase):
    def test_entries_follow_instruction_order(self) -> None:
        entries = BRAINFUCK.entries()
        self.assertEqual([instruction for instruction, _ in entries], list(Instruction))
        self.assertEqual(BRAINFUCK.alternatives(Instruction.LOOP_END), ("]",))

    def test_accepts_instruction_keys_and_alternatives(self) -> None:
        mapping = {Instruction(key): text for key, text in BRAINFUCK_TOKENS.items()}
        mapping[Instruction.DATA_INCREMENT] = ["+", "inc"]
        spec = SimpleTokenSpec(mapping)
        self.assertEqual(spec.alternatives(Instruction.DATA_INCREMENT), ("+", "inc"))
        self.assertEqual(spec.canonical(Instruction.DATA_INCREMENT), "+")

    def test_duplicate_text_on_same_instruction_is_collapsed(self) -> None:
        spec = SimpleTokenSpec(_tokens(output=[".", "."]))
        self.assertEqual(spec.alternatives(Instruction.OUTPUT), (".",))

    def test_rejects_text_shared_by_two_instructions(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            SimpleTokenSpec(_tokens(output="+"))
        self.assertIn("'+'", str(ctx.exception))

    def test_rejects_missing_instruction(self) -> None:
        tokens = _tokens()
        del tokens["input"]
        with self.assertRaises(ConfigurationError):
            SimpleTokenSpec(tokens)

    def test_rejects_unknown_instruction(self) -> None:
        with self.assertRaises(ConfigurationError):
            SimpleTokenSpec(_tokens(jump="j"))

    def test_rejects_empty_token(self) -> None:
        with self.assertRaises(ConfigurationError):
            SimpleTokenSpec(_tokens(output=""))
        with self.assertRaises(ConfigurationError):
            SimpleTokenSpec(_tokens(output=[]))

    def test_configuration_error_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            SimpleTokenSpec(_tokens(output="+"))

    def test_longest_match_wins(self) -> None:
        spec = SimpleTokenSpec(_tokens(pointer_increment="a", data_increment="ab"))
        match = spec.match("xab", 1)
        self.assertIsNotNone(match)
        self.assertEqual(match.instruction, Instruction.DATA_INCREMENT)
        self.assertEqual(match.length, 2)
        self.assertIsNone(spec.match("xab", 0))


class RegexTokenSpecTests(unittest.TestCase):
    def test_rejects_invalid_pattern(self) -> None:
        with self.assertRaises(ConfigurationError):
            RegexTokenSpec(_patterns(output="("))

    def test_rejects_pattern_matching_empty_string(self) -> None:
        with self.assertRaises(ConfigurationError):
            RegexTokenSpec(_patterns(output="o*"))

    def test_equal_length_matches_are_ambiguous(self) -> None:
        spec = RegexTokenSpec(_patterns(pointer_increment="x+", pointer_decrement="x+"))
        with self.assertRaises(ConfigurationError):
            spec.match("xx", 0)

    def test_shorter_equal_length_matches_lose_to_longest(self) -> None:
        spec = RegexTokenSpec(_patterns(pointer_increment="x", pointer_decrement="x", loop_end="xxx"))
        match = spec.match("xxx", 0)
        self.assertEqual(match.instruction, Instruction.LOOP_END)
        self.assertEqual(match.length, 3)

        spec = RegexTokenSpec(_patterns(pointer_increment="xxx", loop_start="x", loop_end="x"))
        self.assertEqual(spec.match("xxx", 0).instruction, Instruction.POINTER_INCREMENT)

    def test_longest_pattern_wins(self) -> None:
        spec = RegexTokenSpec(_patterns(pointer_increment="x", pointer_decrement="xy+"))
        match = spec.match("xyyy", 0)
        self.assertEqual(match.instruction, Instruction.POINTER_DECREMENT)
        self.assertEqual(match.text, "xyyy")

    def test_canonical_requires_configuration(self) -> None:
        spec = RegexTokenSpec(_patterns(output=r"\."))
        with self.assertRaises(ConfigurationError):
            spec.canonical(Instruction.OUTPUT)
        self.assertEqual(OOK.canonical(Instruction.OUTPUT), "Ook! Ook.")


class TokenizerTests(unittest.TestCase):
    def test_skips_unrecognized_characters(self) -> None:
        tokens = list(Tokenizer(BRAINFUCK).tokenize("a+ b[-]\n>."))
        self.assertEqual(
            [token.instruction for token in tokens],
            [
                Instruction.DATA_INCREMENT,
                Instruction.LOOP_START,
                Instruction.DATA_DECREMENT,
                Instruction.LOOP_END,
                Instruction.POINTER_INCREMENT,
                Instruction.OUTPUT,
            ],
        )
        self.assertEqual([token.offset for token in tokens], [1, 4, 5, 6, 8, 9])
        self.assertEqual((tokens[4].line, tokens[4].column), (2, 1))

    def test_instruction_sequence_survives_rendering(self) -> None:
        spec = SimpleTokenSpec(_tokens(pointer_increment="right", pointer_decrement="left"))
        instructions = [
            Instruction.POINTER_INCREMENT,
            Instruction.LOOP_START,
            Instruction.POINTER_DECREMENT,
            Instruction.OUTPUT,
            Instruction.LOOP_END,
            Instruction.INPUT,
        ]
        source = " ; ".join(spec.canonical(instruction) for instruction in instructions)
        tokens = Tokenizer(spec).tokenize(source)
        self.assertEqual([token.instruction for token in tokens], instructions)

    def test_tokenize_is_lazy(self) -> None:
        stream = Tokenizer(BRAINFUCK).tokenize("+-")
        first = next(stream)
        self.assertEqual(first.instruction, Instruction.DATA_INCREMENT)
        self.assertEqual(next(stream).instruction, Instruction.DATA_DECREMENT)
        with self.assertRaises(StopIteration):
            next(stream)

    def test_accepts_bytes_source(self) -> None:
        tokens = list(Tokenizer(BRAINFUCK).tokenize(b"+ +"))
        self.assertEqual([token.offset for token in tokens], [0, 2])

    def test_undecodable_bytes_are_skipped(self) -> None:
        tokens = list(Tokenizer(BRAINFUCK).tokenize(b"+\xff+."))
        self.assertEqual(
            [token.instruction for token in tokens],
            [Instruction.DATA_INCREMENT, Instruction.DATA_INCREMENT, Instruction.OUTPUT],
        )
        self.assertEqual([token.offset for token in tokens], [0, 2, 3])

    def test_ook_tokens_span_whitespace(self) -> None:
        tokens = list(Tokenizer(OOK).tokenize("Ook.\nOok? Ook. Ook."))
        self.assertEqual(
            [token.instruction for token in tokens],
            [Instruction.POINTER_INCREMENT, Instruction.DATA_INCREMENT],
        )
        self.assertEqual(tokens[0].text, "Ook.\nOok?")
        self.assertEqual((tokens[1].offset, tokens[1].line, tokens[1].column), (10, 2, 6))


if __name__ == "__main__":
    unittest.main()
