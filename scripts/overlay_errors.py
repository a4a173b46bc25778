#!/usr/bin/env python3
"""
Error types raised while materializing an overlay.

Every error carries the exit code the CLI terminates with. Missing
per-component files are not errors; patchers skip them.
"""


class OverlayError(Exception):
    """Base class for fatal overlay generation errors."""

    exit_code = 1

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConflictingInput(OverlayError):
    """Mutually exclusive directives were supplied together."""


class MissingPrerequisite(OverlayError):
    """A directive or file required by the requested operation is absent."""


class PathConflict(OverlayError):
    """A target path exists but has the wrong type."""
