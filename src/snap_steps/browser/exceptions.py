"""
Exceptions raised by the step library.

Failures a scenario author should read (something missing, something that
never became visible) derive from ``ExpectationFailure`` and carry the page
URL at the moment they were built. ``ContractViolation`` marks a broken
internal assumption and is never caught by the library itself.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .session import BaseSession


class SnapStepsError(Exception):
    """Base exception for all step library errors."""

    pass


class ExpectationFailure(SnapStepsError):
    """An expectation about the page under test was not met."""

    def __init__(self, message: str, session: "BaseSession | None" = None):
        self.message = message
        self.url: str | None = None
        if session is not None:
            try:
                self.url = session.current_url()
            except Exception:
                self.url = None
        super().__init__(message)

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} (url: {self.url})"
        return self.message


class NotFoundError(ExpectationFailure):
    """A locator matched no node where at least one was required."""

    pass


class WaitTimeoutError(ExpectationFailure):
    """A visibility or readiness condition did not become true in time."""

    pass


class ContractViolation(SnapStepsError):
    """An internal assumption failed (e.g. an unrecognised xpath shape)."""

    pass


class StepSkipped(SnapStepsError):
    """The environment does not support the scenario being run."""

    pass


class ConfigurationError(SnapStepsError):
    """Error related to library configuration."""

    pass


class WindowNotFoundError(SnapStepsError):
    """No browser window carries the requested name."""

    pass
