"""Error taxonomy shared by the pipeline and the HTTP boundary."""
from __future__ import annotations


class SummaryServiceError(Exception):
    """Base class for errors that reach the caller as an ``{"error": ...}`` body."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InputValidationError(SummaryServiceError):
    """App or niche is empty after normalization."""

    status_code = 400


class RateLimitedError(SummaryServiceError):
    """Admission denied for the current window."""

    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded. Try again in a minute.") -> None:
        super().__init__(message)


class BackendFailure(SummaryServiceError):
    """Non-timeout failure of the generative backend. Never retried."""

    status_code = 400


class BackendTimeout(Exception):
    """The backend did not answer within the bound.

    Recovered locally by the orchestrator, so it does not derive from
    SummaryServiceError.
    """
