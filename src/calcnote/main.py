"""
Command line entrypoint.

Subcommands:
- eval: evaluate a single expression and print the result
- batch: start the server, run a client against it with an operations file
- note-seal / note-open: encrypt a text note into a file, decrypt and print it
"""

import argparse
from multiprocessing import Process
from pathlib import Path
import sys
import time
from typing import List, Optional

from pydantic import BaseModel, FilePath, ValidationError

from calcnote.client.client import ExpressionClient
from calcnote.common.config import Settings
from calcnote.common.errors import EvalError
from calcnote.common.logger import logger, setup_logger
from calcnote.common.parser import ExpressionParser
from calcnote.notes.cipher import CipherError
from calcnote.notes.vault import NoteKind, NotePayload, NoteVault
from calcnote.server.server import ExpressionServer


class BatchArgs(BaseModel):
    """
    Pydantic model used to validate the batch subcommand arguments.

    Attributes
    ----------
    file_path : FilePath
        Path to the file containing arithmetic operations.
    """

    file_path: FilePath


class NoteOpenArgs(BaseModel):
    """Validated arguments of the note-open subcommand."""

    sealed_path: FilePath


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(prog="calcnote", description="Calculator and encrypted notes")
    subparsers = parser.add_subparsers(dest="command", required=True)

    eval_parser = subparsers.add_parser("eval", help="Evaluate one arithmetic expression")
    eval_parser.add_argument("expression", help="Expression, e.g. '2*(3+4)/5'")

    batch_parser = subparsers.add_parser("batch", help="Evaluate a file of expressions through the server")
    batch_parser.add_argument("file_path", help="Path to the file containing arithmetic operations")

    seal_parser = subparsers.add_parser("note-seal", help="Encrypt a text note into a file")
    seal_parser.add_argument("text", help="Note text")
    seal_parser.add_argument("output", help="Where to write the sealed note")

    open_parser = subparsers.add_parser("note-open", help="Decrypt a sealed note and print it")
    open_parser.add_argument("sealed_path", help="Path of a sealed note")

    return parser


def run_server(output_file: Path, settings: Settings) -> None:
    """
    Start the arithmetic server.

    The server runs in its own process and listens
    for incoming socket connections.
    """
    setup_logger(settings.log_level)
    server = ExpressionServer(
        host=settings.host,
        port=settings.port,
        output_file=output_file,
        max_workers=settings.max_workers,
    )
    server.start()


def build_output_path(input_path: Path) -> Path:
    """
    Construct a safe output file path based on the input file.

    - Preserves the original folder
    - Replaces dots in extensions with underscores
    - Appends '_results.txt' at the end

    Examples
    --------
    input: resources/operations_short.7z
    output: resources/operations_short_7z_results.txt

    :param input_path: Path to the input file
    :return: Path to the output file
    """
    stem = input_path.name
    for suffix in input_path.suffixes:
        stem = stem[: -len(suffix)]
    suffix_safe = "".join(input_path.suffixes).replace(".", "_")
    return input_path.with_name(f"{stem}{suffix_safe}_results.txt")


def run_eval(expression: str) -> int:
    """Print ``= <result>`` or the error message, return the exit code."""
    try:
        result = ExpressionParser.evaluate(expression)
    except EvalError as exc:
        print(f"Error: {exc}")
        return 1
    print(f"= {result}")
    return 0


def run_batch(file_path: Path, settings: Settings) -> int:
    """Run the server in a child process and send the operations file to it."""
    output_path: Path = build_output_path(file_path)

    server_process = Process(target=run_server, args=(output_path, settings))
    server_process.start()

    # Give the server time to start listening
    time.sleep(1)

    try:
        client = ExpressionClient(host=settings.host, port=settings.port)
        client.send_file(file_path, output_path)
    finally:
        # Ensure the server is always stopped
        server_process.terminate()
        server_process.join()

    print(output_path)
    return 0


def run_note_seal(text: str, output: Path, settings: Settings) -> int:
    vault = NoteVault(key=settings.encryption_key())
    output.write_bytes(vault.seal(NotePayload(kind=NoteKind.TEXT, text=text)))
    logger.info(f"🔐 Note sealed into {output}")
    return 0


def run_note_open(sealed_path: Path, settings: Settings) -> int:
    vault = NoteVault(key=settings.encryption_key())
    try:
        payload = vault.open(sealed_path.read_bytes())
    except CipherError as exc:
        logger.error(f"🔐❌ Could not open {sealed_path}: {exc}")
        return 1
    if payload.kind is NoteKind.TEXT:
        print(payload.text)
    else:
        # Media notes only hold a reference to the uploaded file
        print(f"[{payload.kind.value}] {payload.file_id} {payload.caption or ''}".rstrip())
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, load settings and dispatch to the subcommand.

    :param argv: Arguments without the program name, defaults to sys.argv
    :return: Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as exc:
        parser.error(f"invalid configuration: {exc}")
    setup_logger(settings.log_level)

    if args.command == "eval":
        return run_eval(args.expression)

    if args.command == "batch":
        try:
            batch_args = BatchArgs(file_path=args.file_path)
        except ValidationError as exc:
            parser.error(str(exc))
        return run_batch(Path(batch_args.file_path), settings)

    try:
        if args.command == "note-seal":
            return run_note_seal(args.text, Path(args.output), settings)
        try:
            open_args = NoteOpenArgs(sealed_path=args.sealed_path)
        except ValidationError as exc:
            parser.error(str(exc))
        return run_note_open(Path(open_args.sealed_path), settings)
    except ValueError as exc:
        # Missing or invalid encryption key
        parser.error(str(exc))


if __name__ == "__main__":
    sys.exit(main())
