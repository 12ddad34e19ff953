"""httpx transport with bounded exponential-backoff retry."""

from __future__ import annotations

import asyncio

import httpx
import structlog

log = structlog.get_logger(__name__)

DEFAULT_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})

# Timeouts, DNS/connection failures and dropped connections (no response).
RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    httpx.ReadError,
)


class RetryTransport(httpx.AsyncBaseTransport):
    """Wraps an httpx transport and retries transient failures.

    Retries on retryable status codes (429 and 5xx gateway errors by default)
    and on transport errors that mean the request never got an answer.
    Waits ``backoff_base * 2 ** (attempt - 1)`` between attempts (no jitter,
    so callers can rely on the schedule).

    After the last attempt the final response is returned as-is, or the last
    transport error is re-raised; status-code interpretation stays with the
    caller.
    """

    def __init__(
        self,
        wrapped: httpx.AsyncBaseTransport,
        *,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        max_backoff: float = 30.0,
        retryable_status_codes: frozenset[int] = DEFAULT_RETRYABLE_STATUS,
    ) -> None:
        self._wrapped = wrapped
        self._max_attempts = max(1, max_attempts)
        self._backoff_base = backoff_base
        self._max_backoff = max_backoff
        self._retryable = retryable_status_codes

    def compute_delay(self, attempt: int) -> float:
        """Delay after failed *attempt* (1-based)."""
        return min(self._backoff_base * (2 ** (attempt - 1)), self._max_backoff)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Send *request* through the wrapped transport, retrying on failure."""
        for attempt in range(1, self._max_attempts + 1):
            try:
                response = await self._wrapped.handle_async_request(request)
            except RETRYABLE_EXCEPTIONS as exc:
                if attempt == self._max_attempts:
                    raise
                delay = self.compute_delay(attempt)
                log.info(
                    "http_retry",
                    url=str(request.url),
                    error=type(exc).__name__,
                    attempt=attempt,
                    delay=delay,
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code not in self._retryable:
                return response

            # Last attempt: hand the response back as-is
            if attempt == self._max_attempts:
                return response

            # Read + close the retryable response before retrying
            await response.aread()
            await response.aclose()

            delay = self.compute_delay(attempt)
            log.info(
                "http_retry",
                url=str(request.url),
                status=response.status_code,
                attempt=attempt,
                delay=delay,
            )
            await asyncio.sleep(delay)

        raise AssertionError("unreachable")  # pragma: no cover

    async def aclose(self) -> None:
        """Close the wrapped transport."""
        await self._wrapped.aclose()
