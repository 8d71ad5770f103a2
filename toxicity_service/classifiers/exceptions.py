"""
Custom exceptions for the classifiers module.

All exception classes end with "Error" and do not shadow built-in
exception names. None of them escape ModerationOrchestrator.classify();
they only travel between an adapter and the orchestrator/governor.
"""

from __future__ import annotations

from toxicity_service.core.exceptions import ConfigurationError, ToxicityServiceError


class RemoteClassifierError(ToxicityServiceError):
    """
    Exception raised when a remote classifier call fails.

    This exception is raised in scenarios such as:
    - Timeout or connection error talking to the provider
    - Non-2xx status from the provider
    - Provider envelope missing the generated text

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status returned by the provider, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """
        Initialize RemoteClassifierError with a message.

        Args:
            message: Human-readable description of the error.
            status_code: HTTP status code when the provider answered.
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class RemoteResponseError(RemoteClassifierError):
    """
    Raised when the provider answered but the reply carries no verdict.

    Neither a JSON object nor a toxicity keyword could be found in the
    generated text. Treated as a transient failure.
    """


class LexiconConfigError(ConfigurationError):
    """Raised when the lexicon token file cannot be loaded."""

    pass
