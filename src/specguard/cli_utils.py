"""CLI utility functions for specguard.

Provides helper functions for:
- Config wiring: Extracting Typer CLI options and passing to load_config
- Path resolution: Resolving the project directory argument
- Error formatting: Consistent user-friendly error messages with exit codes
- Logging: Routing library log records through rich
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler

from specguard.config import SpecguardConfig, load_config

# Exit code conventions
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # User error (bad input, missing file, etc.)
EXIT_SYSTEM_ERROR = 2  # System error (permissions, I/O, etc.)


# -----------------------------------------------------------------------------
# Error Formatting Helpers
# -----------------------------------------------------------------------------


def error(msg: str, *, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print an error message and exit with the given exit code.

    Args:
        msg: The error message to display.
        exit_code: Exit code to use (default: EXIT_USER_ERROR=1).

    Raises:
        typer.Exit: Always raises to exit the program.
    """
    styled_prefix = typer.style("Error:", fg=typer.colors.RED, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)
    raise typer.Exit(code=exit_code)


def warning(msg: str) -> None:
    """Print a warning message to stderr."""
    styled_prefix = typer.style("Warning:", fg=typer.colors.YELLOW, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)


def info(msg: str) -> None:
    typer.echo(msg)


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------


def configure_logging(verbose: bool = False) -> None:
    """Send specguard log records to stderr through rich.

    Args:
        verbose: Log at DEBUG instead of WARNING.
    """
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    logger = logging.getLogger("specguard")
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


# -----------------------------------------------------------------------------
# Path Resolution
# -----------------------------------------------------------------------------


def resolve_project_path(path: str | Path | None) -> Path:
    """Resolve the project directory argument.

    Args:
        path: Path given on the command line. Defaults to cwd.

    Returns:
        Resolved absolute directory.

    Raises:
        typer.Exit: If the path does not exist or is not a directory.
    """
    resolved = Path(path).resolve() if path is not None else Path.cwd().resolve()
    if not resolved.exists():
        error(f"Project path does not exist: {resolved}")
    if not resolved.is_dir():
        error(f"Project path is not a directory: {resolved}")
    return resolved


def split_keys(value: str | None) -> list[str]:
    """Split a comma-separated option value into trimmed, non-empty keys."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


# -----------------------------------------------------------------------------
# Config Wiring Helper
# -----------------------------------------------------------------------------


def wire_config(
    specs_dir: str | None = None,
    skip: list[str] | None = None,
    start_dir: Path | None = None,
) -> SpecguardConfig:
    """Wire CLI options to load_config with appropriate overrides.

    Args:
        specs_dir: Override for the spec directory location.
        skip: Override for the validator skip list.
        start_dir: Directory to start searching for config files.

    Returns:
        Fully resolved SpecguardConfig instance.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    cli_overrides: dict[str, Any] = {}

    if specs_dir is not None:
        cli_overrides["specs_dir"] = specs_dir
    if skip:
        cli_overrides["skip"] = skip

    try:
        return load_config(cli_overrides=cli_overrides, start_dir=start_dir)
    except ValueError as e:
        error(f"Invalid configuration: {e}", exit_code=EXIT_USER_ERROR)


# -----------------------------------------------------------------------------
# Typer Option Factory Functions
# -----------------------------------------------------------------------------
# Typer consumes Option objects when decorating commands, so each command
# needs a fresh instance.


def specs_dir_option() -> Any:
    """Create a Typer Option for --specs-dir / -s."""
    return typer.Option(
        None,
        "--specs-dir",
        "-s",
        help="Override spec directory location (default: .agent-os/specs).",
        envvar="SPECGUARD_SPECS_DIR",
    )


def skip_option() -> Any:
    """Create a Typer Option for --skip."""
    return typer.Option(
        None,
        "--skip",
        help="Comma-separated validator keys to skip.",
        envvar="SPECGUARD_SKIP",
    )


def json_option() -> Any:
    return typer.Option(False, "--json", help="Output as JSON.")


def output_option() -> Any:
    """Create a Typer Option for --output / -o."""
    return typer.Option(
        None,
        "--output",
        "-o",
        help="Write the JSON report to this file.",
    )


def quiet_option() -> Any:
    return typer.Option(False, "--quiet", "-q", help="Minimal output for CI.")


def verbose_option() -> Any:
    return typer.Option(False, "--verbose", help="Show debug logging on stderr.")


def project_path_argument() -> Any:
    return typer.Argument(
        None,
        help="Project directory to validate. Defaults to current directory.",
    )
