"""Exception hierarchy for the CRPT client.

Every failure surfaces to the caller of ``CrptApiClient.submit``; nothing is
retried internally. Callers that want retries can catch the category they
care about (for example ``TransportError``) and resubmit.
"""

from __future__ import annotations

__all__ = [
    "CrptApiError",
    "ConfigurationError",
    "GateShutdownError",
    "AuthenticationError",
    "ValidationError",
    "DocumentSubmissionError",
    "TransportError",
]


class CrptApiError(RuntimeError):
    """Base exception for all client failures."""


class ConfigurationError(CrptApiError):
    """Raised when the client is constructed with invalid settings."""


class GateShutdownError(CrptApiError):
    """Raised to callers waiting for a permit when the admission gate closes."""


class AuthenticationError(CrptApiError):
    """Raised when the signing exchange fails to produce a bearer token."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(CrptApiError):
    """Raised when a document cannot be encoded for submission."""


class DocumentSubmissionError(CrptApiError):
    """Raised for non-success responses from the document creation endpoint."""

    def __init__(
        self,
        status_code: int,
        code: str | None = None,
        message: str | None = None,
        description: str | None = None,
    ) -> None:
        super().__init__(status_code, code, message, description)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.description = description

    def __str__(self) -> str:
        return (
            f"document creation failed (HTTP {self.status_code}): "
            f"code={self.code}, message={self.message}, description={self.description}"
        )


class TransportError(CrptApiError):
    """Raised when a request never produced an HTTP response."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(url, reason)
        self.url = url
        self.reason = reason

    def __str__(self) -> str:
        return f"request to {self.url} failed: {self.reason}"
