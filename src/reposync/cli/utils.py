"""
CLI Utilities - Shared helper functions for command line operations.

Formatted printing, logging setup and the bridge from click callbacks to
the asynchronous repository operations.
"""

import asyncio
import logging
import sys
from typing import Any, Callable, Coroutine, TypeVar

import click

from ..core.errors import ReposError

T = TypeVar("T")


def echo_success(message: str) -> None:
    """
    Print a success message with a green checkmark.

    Args:
        message (str): The message to display.
    """
    click.echo(click.style(f"✅ {message}", fg="green"))


def echo_error(message: str) -> None:
    """
    Print an error message with a red cross.

    Args:
        message (str): The error message to display.
    """
    click.echo(click.style(f"❌ {message}", fg="red"), err=True)


def echo_warning(message: str) -> None:
    """
    Print a warning message with a yellow alert symbol.

    Args:
        message (str): The warning message to display.
    """
    click.echo(click.style(f"⚠️  {message}", fg="yellow"))


def echo_info(message: str) -> None:
    """
    Print an informational message, dimmed.

    Args:
        message (str): The message to display.
    """
    click.echo(click.style(message, dim=True))


def setup_logging(verbose: bool) -> None:
    """Configure root logging once per invocation."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(message)s",
        force=True,
    )


def run_operation(label: str, start: Callable[[], Coroutine[Any, Any, T]]) -> T:
    """
    Run an operation, exiting with status 1 on failure.

    Args:
        label: Operation name used in the failure message.
        start: Builds the operation and returns its coroutine. Errors raised
            while building it (e.g. a missing manifest) are reported too.
    """
    try:
        return asyncio.run(start())
    except ReposError as e:
        echo_error(f"{label} failed: {e}")
        sys.exit(1)
