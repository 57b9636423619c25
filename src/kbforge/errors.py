"""
KBForge Error Classification System.

This module provides the hierarchy of exceptions raised while turning
uploaded documents and scraped websites into embedded knowledge-base chunks.

Error Categories:
-----------------
1. Retryable Errors: Transient failures that may succeed on retry
   - Rate limiting (HTTP 429)
   - Service unavailable (HTTP 503)
   - Other server-side errors (HTTP 5xx)

2. Permanent Errors: Failures that won't succeed on retry
   - Authentication errors (HTTP 401/403)
   - Invalid parameters (HTTP 400)
   - Not found (HTTP 404)
   - Configuration errors (missing bot embedding configuration)

3. Pipeline Errors: Failures of a specific ingestion stage
   - ContentError: chunking produced nothing
   - ExtractionError: an extractor could not produce text
   - GatewayError: embedding generation or storage failed

Usage:
------
    from kbforge.errors import ConfigurationError, GatewayError, is_retryable

    try:
        vectors = gateway.generate_embeddings(texts, "openai", 50)
    except GatewayError as e:
        if is_retryable(e):
            # Let the job queue re-attempt the job
            raise
"""

from typing import Any


class KBForgeError(Exception):
    """
    Base exception for all KBForge errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error (optional)
        original_error: The underlying exception that caused this error (optional)
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        if self.original_error:
            base += f" | Caused by: {type(self.original_error).__name__}: {self.original_error}"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "details": self.details,
            "original_error": str(self.original_error) if self.original_error else None
        }


# =============================================================================
# Retryable Errors - Transient failures that may succeed on retry
# =============================================================================

class RetryableError(KBForgeError):
    """
    Base class for errors that may succeed on retry.

    Attributes:
        retry_after: Suggested wait time before retry (seconds), if known
    """

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)
        self.retry_after = retry_after


class RateLimitError(RetryableError):
    """Raised when a provider rate limit is exceeded (HTTP 429)."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, retry_after, details, original_error)


class ServiceUnavailableError(RetryableError):
    """Raised when a provider is temporarily unavailable (HTTP 503)."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, retry_after, details, original_error)


class TransientError(RetryableError):
    """
    Generic retryable error for unclassified transient failures.

    Use this when the error is known to be transient but doesn't fit
    other specific categories.
    """
    pass


class TimeoutError(RetryableError):
    """
    Raised when a call to an external collaborator exceeded its time limit.

    Attributes:
        timeout: The timeout value that was exceeded (seconds)
    """

    def __init__(
        self,
        message: str = "Request timed out",
        timeout: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        details = details or {}
        details["timeout"] = timeout
        super().__init__(message, retry_after=None, details=details, original_error=original_error)
        self.timeout = timeout


# =============================================================================
# Permanent Errors - Failures that won't succeed on retry
# =============================================================================

class PermanentError(KBForgeError):
    """
    Base class for errors that will not succeed on retry.

    Retrying these errors is wasteful: they need a change of input or
    configuration before the operation can succeed.
    """
    pass


class AuthenticationError(PermanentError):
    """Raised when a provider rejects the credentials (HTTP 401/403)."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)


class InvalidRequestError(PermanentError):
    """Raised when request parameters are invalid (HTTP 400)."""

    def __init__(
        self,
        message: str = "Invalid request parameters",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)


class NotFoundError(PermanentError):
    """Raised when a requested resource is not found (HTTP 404)."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)


class ConfigurationError(PermanentError):
    """
    Raised when there's a configuration problem.

    Common causes:
    - Bot has no embedding configuration
    - Embedding provider name is not registered
    - Invalid settings values
    """

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)


class BotNotFoundError(NotFoundError):
    """Raised when a pipeline stage references a bot that does not exist."""

    def __init__(
        self,
        bot_id: str,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(f"Bot not found: {bot_id}", details, original_error)
        self.bot_id = bot_id


# =============================================================================
# Pipeline Errors
# =============================================================================

class ContentError(PermanentError):
    """Raised when chunking produced no output or a stored chunk set is missing."""
    pass


class ExtractionError(KBForgeError):
    """
    Raised when an extractor fails (bad file, unreachable URL, parse failure).

    Attributes:
        locator: The file path or URL that could not be extracted
    """

    def __init__(
        self,
        message: str,
        locator: str | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        details = details or {}
        if locator is not None:
            details["locator"] = locator
        super().__init__(message, details, original_error)
        self.locator = locator


class GatewayError(KBForgeError):
    """
    Raised when embedding generation or vector storage fails.

    A GatewayError is retryable when the provider error it wraps is.
    """

    @property
    def retryable(self) -> bool:
        return is_retryable(self.original_error) if self.original_error else False


# =============================================================================
# Helper Functions
# =============================================================================

def is_retryable(error: Exception | None) -> bool:
    """
    Check if an error is retryable.

    Args:
        error: The exception to check

    Returns:
        True for RetryableError instances and for GatewayErrors wrapping one
    """
    if isinstance(error, GatewayError):
        return error.retryable
    return isinstance(error, RetryableError)


def classify_http_error(status_code: int, message: str = "", headers: dict | None = None) -> KBForgeError:
    """
    Classify an HTTP error based on status code.

    Args:
        status_code: HTTP status code
        message: Error message from response
        headers: Response headers (used to extract Retry-After)

    Returns:
        Appropriate KBForgeError subclass instance

    Example:
        if response.status_code >= 400:
            raise classify_http_error(
                response.status_code,
                response.text,
                dict(response.headers)
            )
    """
    headers = headers or {}
    retry_after = None

    if "Retry-After" in headers:
        try:
            retry_after = float(headers["Retry-After"])
        except (ValueError, TypeError):
            retry_after = None

    details = {"status_code": status_code}

    if status_code == 429:
        return RateLimitError(
            message=message or "API rate limit exceeded",
            retry_after=retry_after,
            details=details
        )
    elif status_code in (401, 403):
        return AuthenticationError(
            message=message or "Authentication failed - invalid API key",
            details=details
        )
    elif status_code == 400:
        return InvalidRequestError(
            message=message or "Invalid request parameters",
            details=details
        )
    elif status_code == 404:
        return NotFoundError(
            message=message or "Resource not found",
            details=details
        )
    elif status_code == 503:
        return ServiceUnavailableError(
            message=message or "Service temporarily unavailable",
            retry_after=retry_after,
            details=details
        )
    elif status_code >= 500:
        return TransientError(
            message=message or f"Server error (HTTP {status_code})",
            details=details
        )
    else:
        return PermanentError(
            message=message or f"HTTP error {status_code}",
            details=details
        )
