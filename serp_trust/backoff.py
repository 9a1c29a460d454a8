"""Resilient calls to external services with exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import httpx

from serp_trust.config import RetryConfig
from serp_trust.errors import (
    RetriesExhaustedError,
    ScoringServiceError,
    TerminalServiceError,
    TransientServiceError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

HttpClientFactory = Callable[[], AbstractAsyncContextManager[httpx.AsyncClient]]
SleepFunc = Callable[[float], Awaitable[Any]]


class RetryState(Enum):
    """States of a backoff loop."""

    ATTEMPTING = "attempting"
    SLEEPING = "sleeping"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and delay schedule.

    Parameters
    ----------
    max_attempts : int
        Total attempts, including the first one.
    base_delay : float
        Seconds to wait after the first failure; doubles after each one.
    """

    max_attempts: int = 5
    base_delay: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Return the delay after the failed attempt with 0-based index *attempt*."""
        return self.base_delay * (2**attempt)

    def schedule(self) -> list[float]:
        """Return every delay the policy can produce, in order."""
        return [self.delay_for(i) for i in range(self.max_attempts - 1)]

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(max_attempts=config.max_attempts, base_delay=config.base_delay)


def classify_status(status_code: int, detail: str = "") -> ScoringServiceError:
    """Map a failing HTTP status to a retryable or terminal error.

    Parameters
    ----------
    status_code : int
        HTTP status of the failed response.
    detail : str
        Response body or SDK message, for diagnostics.

    Returns
    -------
    ScoringServiceError
        :class:`TransientServiceError` for 429 and 5xx,
        :class:`TerminalServiceError` otherwise.
    """
    msg = f"HTTP Status: {status_code} | Detail: {detail}"
    if status_code == 429 or status_code >= 500:
        return TransientServiceError(msg, status_code=status_code)
    return TerminalServiceError(msg, status_code=status_code)


def default_http_client_factory(timeout: float = 60.0) -> HttpClientFactory:
    """Return a factory opening a fresh ``httpx.AsyncClient`` per use."""
    client_timeout = httpx.Timeout(timeout, connect=10.0)

    @asynccontextmanager
    async def factory() -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(timeout=client_timeout) as client:
            yield client

    return factory


class BackoffCaller:
    """Retry transient failures with exponential backoff.

    The loop moves through ``ATTEMPTING(n) -> SLEEPING(d) -> ATTEMPTING(n+1)``
    until an attempt succeeds, a terminal error stops it, or the attempt
    budget runs out (``EXHAUSTED``). There is no jitter and no overall
    deadline.

    Parameters
    ----------
    policy : RetryPolicy | None
        Attempt budget and delays. Defaults to 5 attempts from 2 seconds.
    sleep : Callable[[float], Awaitable]
        Awaitable sleep used between attempts.
    http_client_factory : HttpClientFactory | None
        Async context manager factory yielding an ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
        http_client_factory: HttpClientFactory | None = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._http_client_factory = http_client_factory or default_http_client_factory()

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        label: str = "",
        policy: RetryPolicy | None = None,
    ) -> T:
        """Await *operation* until it succeeds or fails terminally.

        Parameters
        ----------
        operation : Callable[[], Awaitable[T]]
            Zero-argument coroutine factory, invoked once per attempt.
        label : str
            Target description used in log messages.
        policy : RetryPolicy | None
            Override the caller's policy for this run.

        Returns
        -------
        T
            Whatever the successful attempt returned.

        Raises
        ------
        TerminalServiceError
            As soon as an attempt fails non-retryably.
        RetriesExhaustedError
            When every attempt failed transiently.
        """
        policy = policy or self.policy
        state = RetryState.ATTEMPTING
        attempt = 0
        last_error: TransientServiceError | None = None

        while True:
            if state is RetryState.ATTEMPTING:
                try:
                    result = await operation()
                except TransientServiceError as exc:
                    last_error = exc
                    logger.warning(
                        "Attempt %d/%d failed for %s: %s", attempt + 1, policy.max_attempts, label or "call", exc
                    )
                    state = RetryState.SLEEPING if attempt + 1 < policy.max_attempts else RetryState.EXHAUSTED
                    continue
                except TerminalServiceError as exc:
                    logger.error("Attempt %d failed terminally for %s: %s", attempt + 1, label or "call", exc)
                    raise
                if attempt:
                    logger.info("Call to %s succeeded on attempt %d", label or "call", attempt + 1)
                return result

            if state is RetryState.SLEEPING:
                delay = policy.delay_for(attempt)
                logger.debug("Sleeping %.1fs before attempt %d", delay, attempt + 2)
                await self._sleep(delay)
                attempt += 1
                state = RetryState.ATTEMPTING
                continue

            logger.error("Giving up on %s after %d attempts", label or "call", policy.max_attempts)
            raise RetriesExhaustedError(policy.max_attempts, label) from last_error

    async def call(
        self,
        payload: dict[str, Any],
        endpoint: str,
        *,
        max_attempts: int | None = None,
        base_delay: float | None = None,
    ) -> Any:
        """POST *payload* as JSON to *endpoint* with retries.

        Parameters
        ----------
        payload : dict
            JSON request body.
        endpoint : str
            Full endpoint URL.
        max_attempts : int | None
            Override the policy's attempt budget.
        base_delay : float | None
            Override the policy's base delay in seconds.

        Returns
        -------
        Any
            The decoded JSON body of the first successful response.

        Raises
        ------
        TerminalServiceError
            On a non-retryable HTTP status.
        RetriesExhaustedError
            When every attempt failed transiently.
        """
        policy = RetryPolicy(
            max_attempts=max_attempts if max_attempts is not None else self.policy.max_attempts,
            base_delay=base_delay if base_delay is not None else self.policy.base_delay,
        )
        label = str(httpx.URL(endpoint).copy_remove_param("key"))

        async with self._http_client_factory() as client:

            async def attempt() -> Any:
                return await _post_json(client, endpoint, payload)

            return await self.run(attempt, label=label, policy=policy)


async def _post_json(client: httpx.AsyncClient, endpoint: str, payload: dict[str, Any]) -> Any:
    """Issue one POST and classify its outcome."""
    try:
        response = await client.post(endpoint, json=payload)
    except httpx.TransportError as exc:
        msg = f"Network error: {exc!r}"
        raise TransientServiceError(msg) from exc

    if response.is_success:
        try:
            return response.json()
        except ValueError as exc:
            msg = f"Undecodable response body (HTTP {response.status_code})"
            raise TransientServiceError(msg, status_code=response.status_code) from exc

    raise classify_status(response.status_code, response.text[:500])
