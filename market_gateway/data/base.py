"""Shared HTTP plumbing for the upstream provider clients.

Every provider client sends its requests through ``_request``, which:
- takes a token from the provider's shared bucket, failing fast while
  the bucket is penalized and never waiting longer than the timeout
- bounds each attempt with a timeout
- retries transport failures with exponential backoff
- maps HTTP failures onto the ProviderError hierarchy
"""

import asyncio
from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from market_gateway.data.errors import (
    ProviderDataError,
    ProviderRateLimitError,
    ProviderUnavailableError,
)
from market_gateway.resilience.rate_limiter import TokenBucket

logger = structlog.get_logger(__name__)

_RETRYABLE = (httpx.TransportError, TimeoutError)


class BaseProviderClient:
    """Async HTTP client for one upstream provider.

    Subclasses set ``name`` and ``BASE_URL`` and may override
    ``_auth_params`` to attach credentials to every request.
    """

    name = "provider"
    BASE_URL = ""

    def __init__(
        self,
        limiter: TokenBucket | None = None,
        timeout: float = 10.0,
        retry_attempts: int = 2,
        retry_wait: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            limiter: Token bucket shared by all calls to this provider.
            timeout: Seconds allowed for each upstream attempt.
            retry_attempts: Total attempts for transport failures.
            retry_wait: Base backoff between attempts in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.limiter = limiter
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_wait = retry_wait
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._logger = logger.bind(component=f"{self.name}_client")

    def _auth_params(self) -> dict[str, str]:
        return {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _penalize(self, seconds: float) -> None:
        if self.limiter is not None:
            self.limiter.penalize(seconds)

    async def _take_token(self) -> None:
        """Take a token from the provider bucket without outliving the timeout.

        A penalized bucket fails at once, so callers can degrade instead of
        waiting out the provider's backoff.

        Raises:
            ProviderRateLimitError: The bucket is penalized, or no token
                arrives within ``timeout``.
        """
        if self.limiter is None:
            return

        blocked_for = self.limiter.blocked_for
        if blocked_for > 0:
            self._logger.info("provider_backing_off", retry_after=round(blocked_for, 1))
            raise ProviderRateLimitError(
                self.name,
                retry_after=blocked_for,
                message=f"Backing off for {blocked_for:.1f}s after throttling",
            )

        try:
            await asyncio.wait_for(self.limiter.acquire(), timeout=self.timeout)
        except TimeoutError as e:
            self._logger.warning("provider_token_timeout", timeout=self.timeout)
            raise ProviderRateLimitError(
                self.name,
                retry_after=max(self.limiter.blocked_for, self.limiter.seconds_until_token),
                message=f"No request token within {self.timeout}s",
            ) from e

    async def _send(self, path: str, params: dict[str, Any]) -> httpx.Response:
        await self._take_token()
        client = await self._get_client()
        return await asyncio.wait_for(client.get(path, params=params), timeout=self.timeout)

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Make a request to the provider and decode its JSON body.

        Args:
            path: Endpoint path relative to ``BASE_URL``.
            params: Query parameters (credentials are added here).

        Returns:
            Decoded JSON response.

        Raises:
            ProviderRateLimitError: If the provider answers 429, or its bucket
                is penalized or yields no token within the timeout.
            ProviderUnavailableError: On timeout, transport failure or non-2xx.
            ProviderDataError: If the body is not valid JSON.
        """
        query = {**(params or {}), **self._auth_params()}
        self._logger.debug("provider_request", path=path)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(multiplier=self.retry_wait, max=4),
                retry=retry_if_exception_type(_RETRYABLE),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        self._logger.info(
                            "provider_retry",
                            path=path,
                            attempt=attempt.retry_state.attempt_number,
                        )
                    response = await self._send(path, query)
        except TimeoutError as e:
            self._logger.warning("provider_timeout", path=path, timeout=self.timeout)
            raise ProviderUnavailableError(
                self.name, f"Timed out after {self.timeout}s"
            ) from e
        except httpx.TransportError as e:
            self._logger.warning("provider_transport_error", path=path, error=str(e))
            raise ProviderUnavailableError(self.name, str(e) or type(e).__name__) from e

        if response.status_code == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            error = ProviderRateLimitError(self.name, retry_after=retry_after)
            self._penalize(error.retry_after)
            raise error

        if response.status_code >= 400:
            raise ProviderUnavailableError(
                self.name,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderDataError(self.name, "Response body is not valid JSON") from e

        self._logger.debug("provider_response", path=path, status=response.status_code)
        return data

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None
