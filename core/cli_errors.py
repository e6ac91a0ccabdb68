"""Standardized CLI error codes and error handling.

Every failure the command layer can report is a ``CLIError``; the
framework prints ``Error: ...`` (plus an optional ``Hint: ...``) on stderr
and returns the carried exit code.
"""
from __future__ import annotations

import sys
import traceback
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    """Standard CLI exit codes."""
    SUCCESS = 0
    ERROR = 1
    USAGE = 2
    INTERRUPTED = 130  # Standard for Ctrl+C


@dataclass(eq=False)
class CLIError(Exception):
    """CLI error with exit code, message and an optional remediation hint."""
    message: str
    code: ExitCode = ExitCode.ERROR
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message


class UsageError(CLIError):
    """Usage/argument error."""
    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message, ExitCode.USAGE, hint)


def format_error(error: BaseException) -> str:
    """Render an error the way it is printed on stderr."""
    if isinstance(error, CLIError):
        text = f"Error: {error.message}"
        if error.hint:
            text += f"\nHint: {error.hint}"
        return text
    return f"Error: {error}"


def handle_error(error: BaseException, verbose: bool = False) -> int:
    """Print an exception to stderr and return the exit code to use.

    Unexpected (non-CLIError) exceptions print a traceback when verbose.
    """
    if isinstance(error, KeyboardInterrupt):
        print("\nInterrupted.", file=sys.stderr)
        return ExitCode.INTERRUPTED

    print(format_error(error), file=sys.stderr)
    if isinstance(error, CLIError):
        return int(error.code)
    if verbose:
        traceback.print_exception(type(error), error, error.__traceback__)
    return ExitCode.ERROR
