from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .errors import BFLangError, ConfigurationError, ExecutionError, ParseError
from .parser import Parser, Program
from .presets import dialect_names, get_dialect
from .runtime import EofPolicy, Runtime

MAX_STEPS_ENV = "BFLANG_MAX_STEPS"

logger = logging.getLogger(__name__)


def _read_source(path: str) -> bytes:
    source_path = Path(path)
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    return source_path.read_bytes()


def _write_output(path: str, data: str) -> None:
    output_path = Path(path)
    output_path.write_text(data, encoding="utf-8")


def _default_max_steps() -> Optional[int]:
    value = os.environ.get(MAX_STEPS_ENV)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", MAX_STEPS_ENV, value)
        return None


def _parse_program(path: str, dialect: str) -> Program:
    return Parser(get_dialect(dialect)).parse(_read_source(path))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run programs written in Brainfuck-family dialects")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    def add_source(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("source", help="Path to the program source file")
        sub.add_argument(
            "--dialect",
            default="brainfuck",
            choices=dialect_names(),
            help="Token dialect of the source (default: brainfuck)",
        )

    run = commands.add_parser("run", help="Execute a program")
    add_source(run)
    run.add_argument(
        "--input",
        default=None,
        help="Input string supplied to the program (default: read standard input)",
    )
    run.add_argument(
        "--eof",
        default=EofPolicy.ZERO.value,
        choices=[policy.value for policy in EofPolicy],
        help="Behaviour of the input instruction at end of input (default: zero)",
    )
    run.add_argument(
        "--max-steps",
        type=int,
        default=_default_max_steps(),
        help=f"Abort after this many instructions (default: ${MAX_STEPS_ENV} or unlimited)",
    )
    run.add_argument(
        "--tape-limit",
        type=int,
        default=None,
        help="Maximum number of tape cells (default: unbounded)",
    )

    check = commands.add_parser("check", help="Parse a program and report its size")
    add_source(check)

    translate = commands.add_parser("translate", help="Rewrite a program in another dialect")
    add_source(translate)
    translate.add_argument("--to", required=True, choices=dialect_names(), help="Target dialect")
    translate.add_argument(
        "-o",
        "--emit",
        help="Destination file for the translated program (default: print to stdout)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        program = _parse_program(args.source, args.dialect)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except ParseError as exc:
        print(f"Parse error: {exc}", file=sys.stderr)
        return 1
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    if args.command == "check":
        print(f"{args.source}: {len(program)} instructions")
        return 0

    if args.command == "translate":
        separator = " " if args.to == "ook" else ""
        try:
            translated = program.render(get_dialect(args.to), separator=separator)
        except BFLangError as exc:
            print(f"Translation error: {exc}", file=sys.stderr)
            return 1
        if args.emit:
            _write_output(args.emit, translated + "\n")
        else:
            sys.stdout.write(translated + "\n")
        return 0

    try:
        runtime = Runtime(
            eof_policy=EofPolicy(args.eof),
            tape_limit=args.tape_limit,
            max_steps=args.max_steps,
        )
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    source = args.input.encode("utf-8") if args.input is not None else sys.stdin.buffer
    # Text-only streams (e.g. captured stdout) get the output once execution stops.
    sink = getattr(sys.stdout, "buffer", None)
    try:
        runtime.run(program, input=source, output=sink)
    except ExecutionError as exc:
        print(f"Runtime error: {exc}", file=sys.stderr)
        return 1
    finally:
        if sink is None:
            sys.stdout.write(bytes(runtime.output_buffer).decode("latin-1"))
        sys.stdout.flush()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
