from __future__ import annotations

import argparse
import logging
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import BFLangError, ExecutionError
from .parser import Parser, Program
from .presets import dialect_names, get_dialect
from .runtime import EofPolicy, ExecutionState, Runtime


def _to_input_bytes(data: str) -> bytes:
    return data.encode("utf-8")


@dataclass
class VisualizerSession:
    program: Program
    input_template: bytes = b""
    tape_window: int = 10
    max_steps: Optional[int] = None
    history_limit: int = 200
    eof_policy: EofPolicy = EofPolicy.ZERO
    tape_limit: Optional[int] = None

    def __post_init__(self) -> None:
        self.breakpoints: set[int] = set()
        self.history: List[ExecutionState] = []
        self.hit_breakpoint: Optional[int] = None
        self.error: Optional[ExecutionError] = None
        self._init_runtime()

    def _init_runtime(self) -> None:
        self.runtime = Runtime(
            eof_policy=self.eof_policy,
            tape_limit=self.tape_limit,
            max_steps=self.max_steps,
        )
        self.step_iter = self.runtime.step(
            self.program,
            input=bytes(self.input_template),
            tape_window=self.tape_window,
        )
        self.finished = False
        self.error = None
        self.last_state: ExecutionState = self._initial_state()
        self._record_state(self.last_state)

    def restart(self) -> None:
        self._init_runtime()

    def _initial_state(self) -> ExecutionState:
        pointer = self.runtime.pointer
        start = max(0, pointer - self.tape_window)
        end = min(len(self.runtime.tape), pointer + self.tape_window + 1)
        return ExecutionState(
            step=0,
            pc=0,
            instruction=None,
            pointer=pointer,
            tape_start=start,
            tape=self.runtime.tape.window(start, end),
            output=b"",
            program_length=len(self.program),
        )

    def _record_state(self, state: ExecutionState) -> None:
        self.history.append(state)
        if len(self.history) > self.history_limit:
            self.history.pop(0)
        self.last_state = state

    def step_forward(self, count: int = 1) -> Sequence[ExecutionState]:
        """Advance up to ``count`` instructions, stopping early on a breakpoint.

        A runtime error finishes the session and is re-raised; it stays
        available as ``error`` until the next restart.
        """
        states: List[ExecutionState] = []
        if count <= 0:
            return states
        self.hit_breakpoint = None
        for _ in range(count):
            if self.finished:
                break
            try:
                state = next(self.step_iter)
            except StopIteration:
                self.finished = True
                break
            except ExecutionError as exc:
                self.finished = True
                self.error = exc
                raise
            self._record_state(state)
            states.append(state)
            if state.instruction is None and state.pc >= len(self.program):
                self.finished = True
                break
            if state.pc in self.breakpoints:
                self.hit_breakpoint = state.pc
                break
        return states

    def run_until_break(self, limit: Optional[int] = None) -> Sequence[ExecutionState]:
        states: List[ExecutionState] = []
        executed = 0
        while limit is None or executed < limit:
            step_states = self.step_forward(1)
            if not step_states:
                break
            states.extend(step_states)
            executed += 1
            if self.hit_breakpoint is not None:
                break
        return states

    def current_state(self) -> ExecutionState:
        return self.last_state

    def add_breakpoint(self, pc: int) -> None:
        self.breakpoints.add(pc)

    def remove_breakpoint(self, pc: int) -> bool:
        if pc in self.breakpoints:
            self.breakpoints.remove(pc)
            return True
        return False

    def clear_breakpoints(self) -> None:
        self.breakpoints.clear()

    def list_breakpoints(self) -> List[int]:
        return sorted(self.breakpoints)

    def is_finished(self) -> bool:
        return self.finished


def format_state(state: ExecutionState, program: Program) -> str:
    lines: List[str] = []
    cmd_display = state.instruction.symbol if state.instruction is not None else "(init)"
    lines.append(
        f"step={state.step} pc={state.pc}/{state.program_length} command={cmd_display!r} pointer={state.pointer}"
    )
    if state.output:
        lines.append(f"output={state.output!r}")
    tape_parts: List[str] = []
    for idx, value in enumerate(state.tape):
        absolute = state.tape_start + idx
        cell_repr = f"{absolute}:{value:03}"
        if absolute == state.pointer:
            tape_parts.append(f"[{cell_repr}]")
        else:
            tape_parts.append(f" {cell_repr} ")
    lines.append("tape=" + " ".join(tape_parts))
    lines.append(f"code={_format_code_window(program, state.pc)}")
    return "\n".join(lines)


def _format_code_window(program: Program, pc: int, window: int = 16) -> str:
    if not len(program):
        return "(empty)"
    start = max(0, pc - window)
    end = min(len(program), pc + window + 1)
    pieces: List[str] = []
    for index in range(start, end):
        symbol = program[index].instruction.symbol
        if index == pc:
            pieces.append(f"[{symbol}]")
        else:
            pieces.append(symbol)
    if pc >= len(program):
        pieces.append("[END]")
    return "".join(pieces)


def run_repl(session: VisualizerSession) -> None:
    print("bflang visualizer (type 'help' for commands)")
    _print_state(session.current_state(), session)
    while True:
        try:
            line = input("(viz) ").strip()
        except EOFError:
            print()
            break
        if not line:
            continue
        parts = shlex.split(line)
        command = parts[0].lower()
        args = parts[1:]
        try:
            if command in {"n", "next"}:
                count = max(1, int(args[0])) if args else 1
                states = session.step_forward(count)
                if states:
                    _print_state(states[-1], session)
                elif session.is_finished():
                    print("Program has finished.")
            elif command in {"r", "run"}:
                limit = int(args[0]) if args else None
                states = session.run_until_break(limit)
                if states:
                    _print_state(states[-1], session)
                    if session.hit_breakpoint is not None:
                        print(f"Hit breakpoint at pc={session.hit_breakpoint}.")
                        session.hit_breakpoint = None
                elif session.is_finished():
                    print("Program has finished.")
            elif command == "state":
                _print_state(session.current_state(), session)
            elif command == "history":
                count = int(args[0]) if args else 10
                for state in session.history[-count:]:
                    print("-" * 40)
                    print(format_state(state, session.program))
            elif command == "break":
                if not args:
                    print("Usage: break PC")
                    continue
                pc = int(args[0])
                session.add_breakpoint(pc)
                print(f"Breakpoint set at pc={pc}.")
            elif command == "breaks":
                points = session.list_breakpoints()
                if not points:
                    print("No breakpoints.")
                else:
                    print("Breakpoints:", ", ".join(map(str, points)))
            elif command == "clear":
                if not args:
                    session.clear_breakpoints()
                    print("All breakpoints cleared.")
                else:
                    pc = int(args[0])
                    if session.remove_breakpoint(pc):
                        print(f"Breakpoint at pc={pc} removed.")
                    else:
                        print(f"No breakpoint at pc={pc}.")
            elif command == "restart":
                session.restart()
                print("Session restarted.")
                _print_state(session.current_state(), session)
            elif command in {"quit", "exit"}:
                break
            elif command == "help":
                _print_help()
            else:
                print("Unknown command. See 'help'.")
        except ValueError:
            print("Invalid number.", file=sys.stderr)
        except ExecutionError as exc:
            print(f"Runtime error: {exc}", file=sys.stderr)


def _print_state(state: ExecutionState, session: VisualizerSession) -> None:
    print("-" * 40)
    print(format_state(state, session.program))


def _print_help() -> None:
    print(
        "Commands:\n"
        "  next [N]    : execute N instructions (default 1)\n"
        "  run [N]     : run until a breakpoint, the end, or N instructions\n"
        "  state       : show the current state\n"
        "  history [N] : show the last N states\n"
        "  break PC    : set a breakpoint at PC\n"
        "  breaks      : list breakpoints\n"
        "  clear [PC]  : remove a breakpoint (all when PC is omitted)\n"
        "  restart     : reset the session\n"
        "  quit/exit   : leave\n"
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="bflang step visualizer")
    parser.add_argument("source", help="Path to the program source file")
    parser.add_argument(
        "--dialect",
        default="brainfuck",
        choices=dialect_names(),
        help="Token dialect of the source (default: brainfuck)",
    )
    parser.add_argument("--input", default="", help="Input string supplied to the program")
    parser.add_argument(
        "--eof",
        default=EofPolicy.ZERO.value,
        choices=[policy.value for policy in EofPolicy],
        help="Behaviour of the input instruction at end of input",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=5_000_000,
        help="Step limit (default: 5,000,000)",
    )
    parser.add_argument("--tape-window", type=int, default=10, help="Tape cells shown around the pointer")
    parser.add_argument("--history-limit", type=int, default=200, help="Number of states kept in history")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING)

    try:
        source_bytes = Path(args.source).read_bytes()
    except OSError as exc:
        print(f"Cannot open source file: {exc}", file=sys.stderr)
        return 1

    try:
        program = Parser(get_dialect(args.dialect)).parse(source_bytes)
    except BFLangError as exc:
        print(f"Parse error: {exc}", file=sys.stderr)
        return 1

    session = VisualizerSession(
        program,
        input_template=_to_input_bytes(args.input),
        tape_window=args.tape_window,
        max_steps=args.max_steps,
        history_limit=args.history_limit,
        eof_policy=EofPolicy(args.eof),
    )
    run_repl(session)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
