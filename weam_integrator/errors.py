"""Exception types raised by the scanner, generator, and mutation engine."""

from __future__ import annotations


class IntegratorError(Exception):
    """Base class for every error that aborts a top-level operation."""

    operation = "integrate"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.operation} failed: {self.message}"


class ScanError(IntegratorError):
    operation = "scan"


class GenerationError(IntegratorError):
    operation = "generate"


class MutationError(IntegratorError):
    operation = "mutate"


class BusyError(MutationError):
    """Another mutation already holds the lock on this app tree."""


class OracleUnavailableError(MutationError):
    """The code-transformation oracle could not be reached or rejected our credential."""


class OracleResponseError(IntegratorError):
    """The oracle answered, but not with the payload shape we expected."""

    operation = "oracle"
