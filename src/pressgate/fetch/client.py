"""Resilient outbound HTTP for named backends.

Every call gets:
- a per-attempt timeout; a timed-out attempt is abandoned and counted as retryable
- bounded retries (default 2 after the first attempt)
- exponential backoff between attempts: backoff_base ** attempt seconds (1s, 2s, ...)
- error classification: timeouts, connection failures, 5xx and 429 are
  retried; other 4xx and unusable bodies fail immediately

Exhausting the retries raises the last error with the full attempt log.
The client never returns empty data in place of a failure.

Example:
    client = ResilientFetchClient(httpx.AsyncClient())
    response = await client.request("wordpress", "GET", url, params={"slug": "hello"})
    posts = response.data
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import httpx

from pressgate.errors import FetchError, TransientNetworkError, UpstreamError
from pressgate.observability.metrics import MetricsRegistry, get_metrics
from pressgate.observability.tracing import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class FetchOptions:
    """Per-call resilience policy."""

    timeout: float = 10.0
    max_retries: int = 2
    backoff_base: float = 2.0

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")

    def backoff(self, attempt: int) -> float:
        """Delay after the given zero-based attempt."""
        return float(self.backoff_base**attempt)

    def with_timeout(self, timeout: float) -> FetchOptions:
        return replace(self, timeout=timeout)


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass(frozen=True)
class FetchAttempt:
    """Record of one outbound call; drives retry decisions and metrics."""

    target: str
    attempt: int  # 1-based
    elapsed: float  # seconds
    outcome: AttemptOutcome
    status_code: int | None = None
    error: str | None = None


@dataclass
class FetchResponse:
    """Successful response with its parsed JSON body."""

    data: Any
    status_code: int
    headers: httpx.Headers
    attempts: list[FetchAttempt] = field(default_factory=list)


def _error_text(response: httpx.Response) -> str:
    """Pull a message out of an error response, falling back to the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message"):
            if isinstance(body.get(key), str):
                return body[key]
    return f"HTTP {response.status_code}: {response.reason_phrase}"


class ResilientFetchClient:
    """Wraps an httpx.AsyncClient with timeout, retry and backoff."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        options: FetchOptions | None = None,
        sleep: Sleep = asyncio.sleep,
        metrics: MetricsRegistry | None = None,
    ):
        self._http = http
        self.options = options or FetchOptions()
        self._sleep = sleep
        self._metrics = metrics

    @property
    def metrics(self) -> MetricsRegistry:
        if self._metrics is None:
            self._metrics = get_metrics()
        return self._metrics

    async def request(
        self,
        target: str,
        method: str,
        url: str,
        payload: Any = None,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        options: FetchOptions | None = None,
    ) -> FetchResponse:
        """Call a backend, retrying transient failures.

        Args:
            target: Backend name used in logs, metrics and errors
            method: HTTP method
            url: Absolute URL
            payload: JSON body, if any
            params: Query parameters
            headers: Extra request headers
            options: Override of the client's default policy

        Raises:
            TransientNetworkError: timeouts/connection failures after all retries
            UpstreamError: error status (after retries when 5xx/429) or unusable body
        """
        options = options or self.options
        attempts: list[FetchAttempt] = []
        last_error: FetchError | None = None

        for attempt in range(options.max_retries + 1):
            started = time.perf_counter()
            with tracer.start_as_current_span(f"fetch.{target}") as span:
                span.set_attribute("fetch.target", target)
                span.set_attribute("fetch.attempt", attempt + 1)
                span.set_attribute("http.method", method)
                try:
                    response = await asyncio.wait_for(
                        self._http.request(
                            method,
                            url,
                            params=params,
                            json=payload,
                            headers=headers,
                            timeout=options.timeout,
                        ),
                        timeout=options.timeout,
                    )
                except (TimeoutError, httpx.TimeoutException):
                    last_error = TransientNetworkError(
                        target, f"timed out after {options.timeout:.1f}s", timed_out=True
                    )
                except httpx.TransportError as e:
                    last_error = TransientNetworkError(target, f"connection failed: {e}")
                else:
                    result = self._handle_response(target, response)
                    if isinstance(result, FetchResponse):
                        elapsed = time.perf_counter() - started
                        attempts.append(
                            FetchAttempt(
                                target=target,
                                attempt=attempt + 1,
                                elapsed=elapsed,
                                outcome=AttemptOutcome.SUCCESS,
                                status_code=response.status_code,
                            )
                        )
                        span.set_attribute("fetch.outcome", AttemptOutcome.SUCCESS.value)
                        self._record(attempts[-1])
                        result.attempts = attempts
                        return result
                    last_error = result

                outcome = (
                    AttemptOutcome.TIMEOUT
                    if isinstance(last_error, TransientNetworkError) and last_error.timed_out
                    else AttemptOutcome.ERROR
                )
                span.set_attribute("fetch.outcome", outcome.value)

            attempts.append(
                FetchAttempt(
                    target=target,
                    attempt=attempt + 1,
                    elapsed=time.perf_counter() - started,
                    outcome=outcome,
                    status_code=getattr(last_error, "status_code", None),
                    error=last_error.message,
                )
            )
            self._record(attempts[-1])

            if not last_error.retryable:
                break
            if attempt < options.max_retries:
                delay = options.backoff(attempt)
                logger.warning(
                    f"{target} attempt {attempt + 1} failed ({last_error.message}), "
                    f"retrying in {delay:.1f}s"
                )
                await self._sleep(delay)

        if last_error is None:
            raise RuntimeError(f"{target}: no request attempt was made")
        last_error.attempts = attempts
        logger.error(f"{target} request failed after {len(attempts)} attempt(s): {last_error}")
        raise last_error

    async def get(self, target: str, url: str, **kwargs: Any) -> FetchResponse:
        return await self.request(target, "GET", url, **kwargs)

    async def post(self, target: str, url: str, payload: Any, **kwargs: Any) -> FetchResponse:
        return await self.request(target, "POST", url, payload, **kwargs)

    def _handle_response(
        self, target: str, response: httpx.Response
    ) -> FetchResponse | UpstreamError:
        if response.is_error:
            return UpstreamError(target, _error_text(response), status_code=response.status_code)

        if not response.content:
            data = None
        else:
            try:
                data = response.json()
            except ValueError:
                return UpstreamError(target, "response body is not valid JSON")

        return FetchResponse(data=data, status_code=response.status_code, headers=response.headers)

    def _record(self, attempt: FetchAttempt) -> None:
        self.metrics.fetch_attempts_total.labels(
            target=attempt.target, outcome=attempt.outcome.value
        ).inc()
        self.metrics.fetch_duration_seconds.labels(target=attempt.target).observe(attempt.elapsed)
