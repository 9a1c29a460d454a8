"""Exception taxonomy for the scoring pipeline."""

from __future__ import annotations


class TrustScoreError(Exception):
    """Base class for all errors raised by ``serp_trust``."""


class UnsupportedCategoryError(TrustScoreError, ValueError):
    """Raised when a request names a category with no scoring policy."""

    def __init__(self, category: object) -> None:
        self.category = category
        super().__init__(f"Unsupported category {category!r}. Cannot generate score.")


class ScoringServiceError(TrustScoreError):
    """Base class for failures talking to an external service."""


class TransientServiceError(ScoringServiceError):
    """Retryable failure: HTTP 429, HTTP 5xx, or a transport-level error.

    Parameters
    ----------
    message : str
        Human-readable description.
    status_code : int | None
        HTTP status, or ``None`` for transport errors.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TerminalServiceError(ScoringServiceError):
    """Non-retryable failure, surfaced to the caller immediately.

    Parameters
    ----------
    message : str
        Human-readable description.
    status_code : int | None
        HTTP status, if the failure came from a response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RetriesExhaustedError(TerminalServiceError):
    """Raised once every attempt of a backoff loop has failed transiently."""

    def __init__(self, attempts: int, label: str = "") -> None:
        self.attempts = attempts
        target = f" ({label})" if label else ""
        super().__init__(f"API call failed after all retries{target}: {attempts} attempts")


class EmptyResponseError(ScoringServiceError):
    """Raised when the scoring service answers without any text."""


class FormatError(TrustScoreError, ValueError):
    """Raised when a scoring response does not follow the output contract.

    Parameters
    ----------
    raw_text : str
        The full response text, kept for diagnostics.
    """

    def __init__(self, raw_text: str) -> None:
        self.raw_text = raw_text
        super().__init__("Scoring response is not in the required 'SCORE:X SUMMARY:Y' format")


class NotificationDeliveryError(TrustScoreError):
    """Raised by notification transports when the caller is unreachable."""
