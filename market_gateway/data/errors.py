"""Upstream provider error hierarchy.

Exception Hierarchy:
    ProviderError (base)
    ├── ProviderRateLimitError - provider returned a throttling signal
    ├── ProviderUnavailableError - network failure, timeout, non-2xx status
    └── ProviderDataError - response missing an expected field
"""

from typing import Any


class ProviderError(Exception):
    """Base exception for upstream provider failures.

    Attributes:
        provider: Provider name (e.g., "finnhub").
        message: Human-readable error message.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/API responses."""
        return {
            "error_type": self.__class__.__name__,
            "provider": self.provider,
            "message": self.message,
        }


class ProviderRateLimitError(ProviderError):
    """Raised when the provider throttles us (HTTP 429 or an in-body marker)."""

    DEFAULT_RETRY_AFTER = 60.0

    def __init__(
        self,
        provider: str,
        retry_after: float | None = None,
        message: str | None = None,
    ) -> None:
        self.retry_after = retry_after if retry_after is not None else self.DEFAULT_RETRY_AFTER
        super().__init__(
            provider,
            message or f"Rate limit exceeded. Retry after {self.retry_after}s",
        )


class ProviderUnavailableError(ProviderError):
    """Raised for transport failures, timeouts and non-2xx responses.

    Attributes:
        status: HTTP status, or 0 when no response was received.
    """

    def __init__(self, provider: str, message: str, status: int = 0) -> None:
        super().__init__(provider, message)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["status"] = self.status
        return base


class ProviderDataError(ProviderError):
    """Raised when a response lacks the fields we need."""
