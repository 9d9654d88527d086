"""Fatal error types raised by the assembly pipeline.

Every fatal condition derives from FactoryError so the CLI can report it with a
single handler. Non-fatal conditions are not exceptions; they are collected as
BuildWarning values on the BuildResult.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from .models import BuildState


class FactoryError(Exception):
    """Base class for fatal build errors.

    Attributes:
        message: Human-readable error message.
        state: Pipeline state reached when the error was raised, if known.
    """

    def __init__(self, message: str):
        self.message = message
        self.state: BuildState | None = None
        super().__init__(message)


class NotFoundError(FactoryError):
    """A template, theme, or component directory does not exist."""

    def __init__(self, kind: str, name: str, path: Path):
        self.kind = kind
        self.name = name
        self.path = path
        super().__init__(f"{kind.capitalize()} '{name}' not found at {path}")


class BuildIOError(FactoryError):
    """The output directory is unusable or the template tree is unreadable.

    Attributes:
        path: Path that could not be read or written.
        original_error: The underlying OSError, if any.
    """

    def __init__(
        self, path: Path, message: str, original_error: Exception | None = None
    ):
        self.path = path
        self.original_error = original_error
        super().__init__(f"{path}: {message}")


class ValidationError(FactoryError):
    """Structural configuration problems, reported all at once.

    Attributes:
        source: File the issues were found in.
        issues: Every issue found, in discovery order.
    """

    def __init__(self, source: Path | str, issues: Iterable[str]):
        self.source = source
        self.issues = list(issues)
        count = len(self.issues)
        noun = "issue" if count == 1 else "issues"
        details = "; ".join(self.issues)
        super().__init__(f"{source}: {count} validation {noun}: {details}")


class ExternalToolError(FactoryError):
    """The external site generator failed, timed out, or was interrupted.

    Attributes:
        command: Command line that was executed.
        exit_code: Process exit status (None if it never started or was killed).
        stderr: Captured diagnostic output.
        timed_out: True when the timeout expired.
        aborted: True when the build was interrupted by the caller.
    """

    def __init__(
        self,
        command: list[str],
        message: str,
        exit_code: int | None = None,
        stderr: str = "",
        timed_out: bool = False,
        aborted: bool = False,
    ):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        self.timed_out = timed_out
        self.aborted = aborted
        super().__init__(message)
