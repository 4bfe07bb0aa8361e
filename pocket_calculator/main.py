"""
Command-line entrypoint.

Subcommands:
- ``eval EXPRESSION``: evaluate one expression and print the result
- ``batch FILE``: evaluate an operations file (or an exported history) into a results file
- ``repl``: interactive calculator session, optionally persisted to a JSON store
"""

import argparse
from pathlib import Path
import sys
from typing import Callable, List, Optional

from pydantic import BaseModel, Field, FilePath, ValidationError

from pocket_calculator.batch.runner import BatchEvaluator, build_output_path
from pocket_calculator.common.config import CalculatorSettings
from pocket_calculator.common.errors import CalculatorError
from pocket_calculator.common.functions import SCIENTIFIC_FUNCTIONS
from pocket_calculator.common.parser import evaluate_expression, format_number
from pocket_calculator.session.calculator import CalculatorSession
from pocket_calculator.session.notifier import RecordingNotifier
from pocket_calculator.session.storage import JsonFileStore

REPL_HELP = """\
Type an expression and press Enter (or end it with '=') to evaluate it.
Keys: digits . + - * x / % ( )
Commands:
  :history          show history          :clear        clear the expression
  :clear-history    clear history         :sign         toggle sign
  :mc :mr :m+ :m-   memory keys           :theme        toggle theme
  :sqrt :power :sin :cos :tan :log        apply to the displayed result
  :export PATH      export history        :import PATH  import history
  :sci              toggle scientific mode
  :help             this help             :quit         exit
"""

MEMORY_COMMANDS = {
    ":mc": "memory-clear",
    ":mr": "memory-recall",
    ":m+": "memory-add",
    ":m-": "memory-subtract",
}


class EvalArgs(BaseModel):
    """Validated arguments of the ``eval`` subcommand."""

    expression: str


class BatchArgs(BaseModel):
    """Validated arguments of the ``batch`` subcommand."""

    file_path: FilePath = Field(..., description="File containing one expression per line")
    output: Optional[Path] = Field(default=None, description="Results file, derived from file_path if omitted")


class ReplArgs(BaseModel):
    """Validated arguments of the ``repl`` subcommand."""

    store: Optional[Path] = Field(default=None, description="JSON file persisting the session")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pocket-calculator", description="Pocket calculator")
    subparsers = parser.add_subparsers(dest="command", required=True)

    eval_parser = subparsers.add_parser("eval", help="Evaluate a single expression")
    eval_parser.add_argument("expression", help="Expression, e.g. '2+3×4' or '50%%+10'")

    batch_parser = subparsers.add_parser("batch", help="Evaluate a file of expressions")
    batch_parser.add_argument("file_path", help="Text file with one expression per line, or an exported history .json")
    batch_parser.add_argument("-o", "--output", help="Results file path")

    repl_parser = subparsers.add_parser("repl", help="Start an interactive session")
    repl_parser.add_argument("--store", help="JSON file used to persist memory, history and preferences")
    return parser


def run_eval(args: EvalArgs, settings: CalculatorSettings, output: Callable[[str], None] = print) -> int:
    try:
        value = evaluate_expression(args.expression, settings)
    except CalculatorError as exc:
        output(f"error: {exc}")
        return 1
    output(format_number(value))
    return 0


def run_batch(args: BatchArgs, settings: CalculatorSettings, output: Callable[[str], None] = print) -> int:
    output_path = args.output or build_output_path(args.file_path)
    try:
        results = BatchEvaluator(settings=settings).evaluate_file(args.file_path, output_path)
    except ValueError as exc:
        output(f"error: {exc}")
        return 1
    failed = sum(1 for result in results if not result.ok)
    output(f"{len(results)} expressions evaluated, {failed} failed: {output_path}")
    return 0


def handle_command(session: CalculatorSession, line: str, output: Callable[[str], None]) -> bool:
    """
    Run a ``:command`` against the session.

    :return: False when the REPL should stop
    :rtype: bool
    """
    command, _, argument = line.partition(" ")
    argument = argument.strip()

    if command in (":quit", ":q", ":exit"):
        return False
    if command == ":help":
        output(REPL_HELP)
    elif command == ":history":
        if not len(session.history):
            output("No calculations yet")
        for index, entry in enumerate(session.history.items, start=1):
            output(f"{index}: {entry.expression} = {format_number(entry.result)}")
    elif command == ":clear":
        session.clear_all()
    elif command == ":clear-history":
        session.clear_history()
    elif command == ":sign":
        session.toggle_sign()
    elif command in MEMORY_COMMANDS:
        session.memory_function(MEMORY_COMMANDS[command])
    elif command[1:] in SCIENTIFIC_FUNCTIONS:
        session.scientific_function(command[1:])
    elif command == ":theme":
        output("Dark Mode" if session.toggle_theme() else "Light Mode")
    elif command == ":sci":
        output(f"Scientific mode {'ON' if session.toggle_scientific_mode() else 'OFF'}")
    elif command == ":export" and argument:
        output(f"History exported to {session.export_history(Path(argument))}")
    elif command == ":import" and argument:
        session.import_history(Path(argument))
    else:
        output(f"Unknown command: {line} (try :help)")
    return True


def feed_line(session: CalculatorSession, line: str) -> None:
    """
    Type a line into the session key by key; an empty line or '=' evaluates.

    An empty line right after a result leaves the session as it is.
    """
    if not line.strip() and session.is_new_expression:
        return
    for key in line:
        if key == " ":
            continue
        if not session.on_key(key):
            session.notifier.notify(f"Ignored key: {key!r}")
    if not line.rstrip().endswith("="):
        session.calculate()


def run_repl(
    session: CalculatorSession,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> int:
    """
    Drive a session from text input until EOF or ``:quit``.

    :param CalculatorSession session: Session to drive
    :param Callable input_fn: Prompt reader
    :param Callable output: Line writer

    :return: Exit code
    :rtype: int
    """
    notifier = session.notifier
    seen = 0
    while True:
        try:
            line = input_fn("calc> ").strip()
        except (EOFError, KeyboardInterrupt):
            output("")
            return 0

        if line.startswith(":"):
            if not handle_command(session, line, output):
                return 0
        else:
            feed_line(session, line)

        if isinstance(notifier, RecordingNotifier):
            for message in notifier.messages[seen:]:
                output(f"! {message}")
            seen = len(notifier.messages)
        output(f"{session.expression or ' '}\n= {session.result}")
        if session.memory != 0:
            output(f"M: {format_number(session.memory)}")


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, validate them and run the requested subcommand."""
    parser = build_parser()
    namespace = parser.parse_args(argv)

    try:
        settings = CalculatorSettings.from_env()
        if namespace.command == "eval":
            return run_eval(EvalArgs(expression=namespace.expression), settings)
        if namespace.command == "batch":
            return run_batch(BatchArgs(file_path=namespace.file_path, output=namespace.output), settings)
        args = ReplArgs(store=namespace.store)
    except ValidationError as exc:
        parser.error(str(exc))

    store = JsonFileStore(path=args.store) if args.store else None
    if store is not None:
        session = CalculatorSession.load(store, settings=settings, notifier=RecordingNotifier())
    else:
        session = CalculatorSession(settings=settings, notifier=RecordingNotifier())
    print(REPL_HELP, file=sys.stderr)
    return run_repl(session)


if __name__ == "__main__":
    sys.exit(main())
