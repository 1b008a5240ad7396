"""Run-level exceptions.

Per-operation failures are never raised; they are folded into metrics as
ordinary outcomes.
"""


class LoadbenchError(Exception):
    """Base class for loadbench errors."""


class ConfigurationError(LoadbenchError, ValueError):
    """A profile, mix, threshold or scenario definition is malformed."""


class SetupFailure(LoadbenchError):
    """The pre-run health gate failed; no load was generated."""

    def __init__(self, http_status: int, message: str | None = None) -> None:
        self.http_status = http_status
        super().__init__(message or f"Application health check failed: {http_status}")
