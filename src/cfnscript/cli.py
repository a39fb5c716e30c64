"""
cfnscript command line interface.

    cfnscript compile [INPUT] [OUTPUT] [--json] [--format yaml|json]
    cfnscript decompile [INPUT] [OUTPUT]

INPUT and OUTPUT default to stdin and stdout. Errors go to stderr with exit
code 1, and no output file is written.
"""

from __future__ import annotations

import logging
import platform
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from cfnscript import __version__
from cfnscript.core.compiler import compile_to_text, decompile_text
from cfnscript.core.errors import (
    CfnScriptError,
    DecodeError,
    LexError,
    ParseError,
    RenderError,
)
from cfnscript.core.settings import OutputFormat, Settings, load_settings

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)

_ERROR_LABELS: dict[type[CfnScriptError], str] = {
    LexError: "Lex error",
    ParseError: "Parse error",
    RenderError: "Compile error",
    DecodeError: "Decompile error",
}


def configure_logging(level: str) -> None:
    """Route cfnscript logging to stderr through rich."""
    logging.basicConfig(
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )
    logging.getLogger("cfnscript").setLevel(level)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"cfnscript {__version__}")
        typer.echo(f"Python {platform.python_version()} ({platform.python_implementation()})")
        raise typer.Exit()


def _fail(error: CfnScriptError) -> typer.Exit:
    label = _ERROR_LABELS.get(type(error), "Error")
    typer.echo(f"{label}: {error}", err=True)
    return typer.Exit(code=1)


def _read_input(path: Path | None) -> str:
    if path is None or str(path) == "-":
        return sys.stdin.read()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        typer.echo(f"Error: cannot read {path}: {e.strerror}", err=True)
        raise typer.Exit(code=1) from e


def _write_output(path: Path | None, text: str) -> None:
    if path is None or str(path) == "-":
        typer.echo(text, nl=False)
        return
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        typer.echo(f"Error: cannot write {path}: {e.strerror}", err=True)
        raise typer.Exit(code=1) from e
    logger.info("Wrote %s", path)


def resolve_format(
    output: Path | None, json_output: bool, fmt: OutputFormat | None, settings: Settings
) -> OutputFormat:
    """--json, then --format, then the output extension, then the configured default."""
    if json_output:
        return OutputFormat.JSON
    if fmt is not None:
        return fmt
    if output is not None:
        suffix = output.suffix.lower()
        if suffix == ".json":
            return OutputFormat.JSON
        if suffix in (".yaml", ".yml"):
            return OutputFormat.YAML
    return settings.default_format


# =============================================================================
# Main Application
# =============================================================================

app = typer.Typer(
    help="cfnscript: compile scripts to CloudFormation templates and back.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version information",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """cfnscript CLI main callback for global options."""
    settings = load_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command("compile")
def compile_command(
    input: Path | None = typer.Argument(None, help="cfnscript source (default: stdin)"),
    output: Path | None = typer.Argument(None, help="Template file (default: stdout)"),
    json_output: bool = typer.Option(False, "--json", help="Emit JSON instead of YAML"),
    fmt: OutputFormat | None = typer.Option(
        None, "--format", "-f", case_sensitive=False, help="Output format: yaml or json"
    ),
) -> None:
    """
    Compile cfnscript source to a CloudFormation template.
    """
    settings = load_settings()
    source = _read_input(input)
    out_format = resolve_format(output, json_output, fmt, settings)

    try:
        text = compile_to_text(source, out_format, file=input, settings=settings)
    except CfnScriptError as e:
        raise _fail(e) from e

    _write_output(output, text)


@app.command("decompile")
def decompile_command(
    input: Path | None = typer.Argument(None, help="YAML or JSON template (default: stdin)"),
    output: Path | None = typer.Argument(None, help="cfnscript file (default: stdout)"),
) -> None:
    """
    Decompile a CloudFormation template (YAML or JSON) to cfnscript source.
    """
    settings = load_settings()
    document = _read_input(input)

    try:
        text = decompile_text(document, settings=settings)
    except CfnScriptError as e:
        raise _fail(e) from e

    _write_output(output, text)


def main(argv: list[str] | None = None) -> None:
    app(args=argv)


if __name__ == "__main__":
    main(sys.argv[1:])
