import io
import unittest

from bflang import (
    BRAINFUCK,
    OOK,
    ConfigurationError,
    EndOfInput,
    EofPolicy,
    ExecutionError,
    InputOutputError,
    Instruction,
    PointerOverflow,
    PointerUnderflow,
    Runtime,
    StepLimitExceeded,
    Tape,
    parse,
    run,
)

HELLO_WORLD = (
    "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]>>.>---.+++++++..+++.>>.<-.<.+++."
    "------.--------.>>+.>++."
)


def _program(source: str):
    return parse(source, BRAINFUCK)


class _FailingWriter:
    def write(self, data: bytes) -> int:
        raise OSError("disk full")


class _FailingReader:
    def read(self, size: int = -1) -> bytes:
        raise OSError("connection reset")


class RuntimeTests(unittest.TestCase):
    def test_hello_world(self) -> None:
        output = run(_program(HELLO_WORLD), input=b"")
        self.assertEqual(output, b"Hello World!\n")

    def test_hello_world_in_ook(self) -> None:
        ook_source = _program(HELLO_WORLD).render(OOK, separator="\n")
        self.assertEqual(run(parse(ook_source, OOK)), b"Hello World!\n")

    def test_empty_program(self) -> None:
        self.assertEqual(Runtime().run(_program("")), b"")

    def test_cell_wraps_on_increment(self) -> None:
        self.assertEqual(run(_program("-+.")), b"\x00")
        self.assertEqual(run(_program("+" * 256 + ".")), b"\x00")

    def test_cell_wraps_on_decrement(self) -> None:
        self.assertEqual(run(_program("-.")), b"\xff")

    def test_loops(self) -> None:
        self.assertEqual(run(_program("++[>+<-]>.")), b"\x02")
        self.assertEqual(run(_program("[.]+.")), b"\x01")

    def test_pointer_underflow_halts(self) -> None:
        runtime = Runtime()
        with self.assertRaises(PointerUnderflow) as ctx:
            runtime.run(_program("+.<+"))
        self.assertEqual(ctx.exception.pc, 2)
        self.assertEqual(ctx.exception.pointer, 0)
        self.assertIn("pc=2", str(ctx.exception))
        self.assertEqual(bytes(runtime.output_buffer), b"\x01")
        self.assertEqual(runtime.tape[0], 1)

    def test_tape_grows_without_limit(self) -> None:
        runtime = Runtime()
        runtime.run(_program(">" * 40000 + "+"))
        self.assertEqual(runtime.pointer, 40000)
        self.assertEqual(len(runtime.tape), 40001)
        self.assertEqual(runtime.tape[40000], 1)

    def test_tape_limit(self) -> None:
        with self.assertRaises(PointerOverflow) as ctx:
            Runtime(tape_limit=3).run(_program(">>>"))
        self.assertEqual(ctx.exception.pc, 2)
        self.assertEqual(ctx.exception.pointer, 2)

    def test_eof_sets_zero_by_default(self) -> None:
        self.assertEqual(run(_program("+,.")), b"\x00")

    def test_eof_unchanged(self) -> None:
        self.assertEqual(run(_program("+,."), eof_policy=EofPolicy.UNCHANGED), b"\x01")

    def test_eof_error(self) -> None:
        with self.assertRaises(EndOfInput):
            run(_program(",."), eof_policy="error")

    def test_input_sources(self) -> None:
        program = _program(",.,.")
        self.assertEqual(run(program, input=b"AB"), b"AB")
        self.assertEqual(run(program, input=io.BytesIO(b"xy")), b"xy")
        self.assertEqual(run(program, input="hi"), b"hi")
        self.assertEqual(run(program, input=[300, 65]), b",A")

    def test_output_sink_receives_bytes(self) -> None:
        sink = io.BytesIO()
        returned = run(_program("+" * 65 + ".+."), output=sink)
        self.assertEqual(sink.getvalue(), b"AB")
        self.assertEqual(returned, b"AB")

    def test_output_failure(self) -> None:
        with self.assertRaises(InputOutputError) as ctx:
            run(_program("+."), output=_FailingWriter())
        self.assertIsInstance(ctx.exception.__cause__, OSError)
        self.assertEqual(ctx.exception.pc, 1)

    def test_failed_write_is_not_recorded_as_output(self) -> None:
        runtime = Runtime()
        with self.assertRaises(InputOutputError):
            runtime.run(_program("+."), output=_FailingWriter())
        self.assertEqual(bytes(runtime.output_buffer), b"")

    def test_input_failure(self) -> None:
        with self.assertRaises(InputOutputError):
            run(_program(","), input=_FailingReader())

    def test_step_limit_exceeded(self) -> None:
        with self.assertRaises(StepLimitExceeded):
            Runtime(max_steps=10).run(_program("+[]"))

    def test_runtime_errors_share_base_class(self) -> None:
        with self.assertRaises(ExecutionError):
            run(_program("<"))
        with self.assertRaises(RuntimeError):
            run(_program("<"))

    def test_program_is_reusable(self) -> None:
        program = _program("+++.>++.")
        runtime = Runtime()
        self.assertEqual(runtime.run(program), b"\x03\x02")
        self.assertEqual(runtime.run(program), b"\x03\x02")
        self.assertEqual(runtime.tape[0], 3)


class RuntimeStepTests(unittest.TestCase):
    def test_step_sequence_produces_states(self) -> None:
        program = _program("+++.")
        states = list(Runtime().step(program, tape_window=2))
        instructions = [state.instruction for state in states[:-1]]
        self.assertEqual(
            instructions,
            [Instruction.DATA_INCREMENT] * 3 + [Instruction.OUTPUT],
        )
        self.assertIsNone(states[-1].instruction)
        self.assertEqual(states[-1].output, b"\x03")
        self.assertEqual(states[-1].pc, len(program))
        self.assertEqual(states[-1].step, 4)

    def test_step_reports_loop_jumps(self) -> None:
        states = list(Runtime().step(_program("[+]+")))
        self.assertEqual(states[0].pc, 3)

    def test_step_limit(self) -> None:
        stepper = Runtime(max_steps=4).step(_program("+[]"))
        with self.assertRaises(StepLimitExceeded):
            while True:
                next(stepper)


class TapeTests(unittest.TestCase):
    def test_grow_to_extends_with_zeros(self) -> None:
        tape = Tape()
        tape.grow_to(4)
        self.assertEqual(len(tape), 5)
        self.assertEqual(tape.window(0, 10), [0, 0, 0, 0, 0])

    def test_limit(self) -> None:
        tape = Tape(limit=2)
        tape.grow_to(1)
        with self.assertRaises(IndexError):
            tape.grow_to(2)
        with self.assertRaises(ValueError):
            Tape(limit=0)
        with self.assertRaises(ConfigurationError):
            Tape(limit=-4)


if __name__ == "__main__":
    unittest.main()
