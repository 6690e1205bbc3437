"""CLI for the ``bank_transactions`` package.

This module exposes callable command handlers (``cmd_convert``,
``cmd_compare``) and a Typer-based console interface. Environment variables
(``BANK_TX_MAX_BYTES``, ``BANK_TX_LOG_LEVEL``) are loaded from a local
``.env`` using ``python-dotenv`` before delegating to command logic. Business
logic lives in :mod:`bank_transactions.api`.

Exit codes: ``0`` when the command completed (for ``compare`` this includes a
DIFFERENT verdict), ``1`` on missing files, unsupported formats and any
parsing/encoding error.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console

from .errors import ParseError, UnsupportedFormatError
from .logging_setup import configure_logging, get_logger

logger = get_logger("bank_transactions.cli")

# Resolves sys.stdout at print time, so test runners can capture it.
console = Console(highlight=False)


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def cmd_convert(
    input_file: str,
    input_format: str,
    output_file: str,
    output_format: str,
    *,
    overwrite: bool = False,
) -> int:
    """Convert ``input_file`` to ``output_file`` and print a one-line summary.

    The output file is replaced atomically; an existing file is only
    overwritten when ``overwrite`` is set.
    """

    from .api import SupportedFormat, convert_file

    try:
        src_fmt = SupportedFormat.parse(input_format)
        dst_fmt = SupportedFormat.parse(output_format)
    except UnsupportedFormatError as e:
        return _error(str(e))

    src = Path(input_file)
    dst = Path(output_file)
    if not src.is_file():
        return _error(f"File not found: {src}")
    if dst.exists() and not overwrite:
        return _error(f"Output file already exists: {dst} (use --overwrite to replace it)")
    if dst.exists() and dst.resolve() == src.resolve():
        return _error("Input and output must be different files")

    try:
        count = convert_file(src, src_fmt, dst, dst_fmt)
    except ParseError as e:
        logger.error("conversion of %s failed: %s", src, e)
        return _error(f"conversion failed: {e}")
    except ValueError as e:
        return _error(f"invalid configuration: {e}")

    console.print(
        f"Converted {count} records: {src} ({src_fmt}) -> {dst} ({dst_fmt})",
        markup=False,
        soft_wrap=True,
    )
    return 0


def cmd_compare(first_file: str, first_format: str, second_file: str, second_format: str) -> int:
    """Compare two files index by index and print an IDENTICAL/DIFFERENT verdict."""

    from .api import SupportedFormat, compare

    try:
        first_fmt = SupportedFormat.parse(first_format)
        second_fmt = SupportedFormat.parse(second_format)
    except UnsupportedFormatError as e:
        return _error(str(e))

    first = Path(first_file)
    second = Path(second_file)
    for path in (first, second):
        if not path.is_file():
            return _error(f"File not found: {path}")

    try:
        with first.open("rb") as left, second.open("rb") as right:
            result = compare(left, first_fmt, right, second_fmt)
    except OSError as e:
        return _error(f"cannot open input: {e}")
    except ParseError as e:
        logger.error("comparison of %s and %s failed: %s", first, second, e)
        return _error(f"comparison failed: {e}")
    except ValueError as e:
        return _error(f"invalid configuration: {e}")

    console.print(
        f"The transaction records in '{first.name}' and '{second.name}' are {result.verdict}",
        style="bold green" if result.identical else "bold red",
        markup=False,
        soft_wrap=True,
    )
    if not result.identical:
        console.print(
            f"Mismatched records: {result.mismatches} "
            f"(left {result.left_count}, right {result.right_count}, "
            f"first difference at index {result.first_difference})",
            markup=False,
            soft_wrap=True,
        )
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Convert and compare bank transaction files in CSV, TXT and binary formats. "
        "Loads settings from a local .env before running."
    ),
)

FORMAT_HELP = "File format: csv, txt (text) or bin (binary)."


@app.command("convert")
def convert_cmd(
    input_file: Annotated[Path, typer.Option("--input-file", "-i", help="File to read.")],
    input_format: Annotated[str, typer.Option("--input-format", "-f", help=FORMAT_HELP)],
    output_file: Annotated[Path, typer.Option("--output-file", "-o", help="File to write.")],
    output_format: Annotated[str, typer.Option("--output-format", "-t", help=FORMAT_HELP)],
    overwrite: Annotated[
        bool, typer.Option("--overwrite", help="Replace the output file when it exists.")
    ] = False,
) -> None:
    """Convert a transaction file from one format to another."""

    code = cmd_convert(
        str(input_file), input_format, str(output_file), output_format, overwrite=overwrite
    )
    raise typer.Exit(code)


@app.command("compare")
def compare_cmd(
    first_file: Annotated[Path, typer.Option("--first-file", help="First file.")],
    first_format: Annotated[str, typer.Option("--first-format", help=FORMAT_HELP)],
    second_file: Annotated[Path, typer.Option("--second-file", help="Second file.")],
    second_format: Annotated[str, typer.Option("--second-format", help=FORMAT_HELP)],
) -> None:
    """Compare two transaction files record by record, in order."""

    code = cmd_compare(str(first_file), first_format, str(second_file), second_format)
    raise typer.Exit(code)


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Log level (falls back to BANK_TX_LOG_LEVEL)."),
    ] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    try:
        configure_logging(log_level)
    except ValueError as e:
        raise typer.Exit(_error(f"invalid configuration: {e}")) from e


if __name__ == "__main__":  # pragma: no cover - exercised via the console script
    app()
