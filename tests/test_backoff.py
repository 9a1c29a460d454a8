"""Tests for the exponential backoff caller."""

from contextlib import asynccontextmanager

import httpx
import pytest

from serp_trust.backoff import BackoffCaller, RetryPolicy, classify_status
from serp_trust.config import RetryConfig
from serp_trust.errors import RetriesExhaustedError, TerminalServiceError, TransientServiceError

ENDPOINT = "https://scoring.example/v1/models/m:generateContent?key=secret"


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def mock_client_factory(handler):
    @asynccontextmanager
    async def factory():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            yield client

    return factory


def scripted(*responses):
    """Handler replaying *responses*; exceptions are raised, the last item repeats."""
    queue = list(responses)
    seen = []

    def handler(request):
        seen.append(request)
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    handler.seen = seen
    return handler


class TestRetryPolicy:
    def test_default_schedule(self):
        assert RetryPolicy().schedule() == [2.0, 4.0, 8.0, 16.0]

    def test_delay_for(self):
        assert RetryPolicy(base_delay=0.5).delay_for(3) == 4.0

    def test_from_config(self):
        policy = RetryPolicy.from_config(RetryConfig(max_attempts=3, base_delay=1.0))
        assert policy.schedule() == [1.0, 2.0]


@pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
def test_classify_transient(status):
    error = classify_status(status, "busy")
    assert isinstance(error, TransientServiceError)
    assert error.status_code == status


@pytest.mark.parametrize("status", [400, 401, 403, 404])
def test_classify_terminal(status):
    error = classify_status(status, "bad")
    assert isinstance(error, TerminalServiceError)
    assert f"HTTP Status: {status}" in str(error)


class TestRun:
    @pytest.mark.asyncio
    async def test_exhausts_after_five_attempts(self):
        sleep = RecordingSleep()
        calls = []

        async def operation():
            calls.append(1)
            raise TransientServiceError("HTTP Status: 503", status_code=503)

        caller = BackoffCaller(sleep=sleep)
        with pytest.raises(RetriesExhaustedError, match="after all retries") as info:
            await caller.run(operation, label="svc")
        assert len(calls) == 5
        assert sleep.delays == [2.0, 4.0, 8.0, 16.0]
        assert info.value.attempts == 5
        assert isinstance(info.value.__cause__, TransientServiceError)

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self):
        sleep = RecordingSleep()
        outcomes = [TransientServiceError("429", status_code=429), TransientServiceError("net"), "ok"]

        async def operation():
            item = outcomes.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        assert await BackoffCaller(sleep=sleep).run(operation) == "ok"
        assert sleep.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_terminal_error_is_not_retried(self):
        sleep = RecordingSleep()
        calls = []

        async def operation():
            calls.append(1)
            raise TerminalServiceError("HTTP Status: 400", status_code=400)

        with pytest.raises(TerminalServiceError) as info:
            await BackoffCaller(sleep=sleep).run(operation)
        assert not isinstance(info.value, RetriesExhaustedError)
        assert len(calls) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_single_attempt_policy_never_sleeps(self):
        sleep = RecordingSleep()

        async def operation():
            raise TransientServiceError("down")

        with pytest.raises(RetriesExhaustedError):
            await BackoffCaller(RetryPolicy(max_attempts=1), sleep=sleep).run(operation)
        assert sleep.delays == []


class TestCall:
    @pytest.mark.asyncio
    async def test_posts_json_and_decodes(self):
        handler = scripted(httpx.Response(200, json={"candidates": []}))
        caller = BackoffCaller(sleep=RecordingSleep(), http_client_factory=mock_client_factory(handler))
        data = await caller.call({"contents": []}, ENDPOINT)
        assert data == {"candidates": []}
        assert handler.seen[0].method == "POST"
        assert handler.seen[0].url.params["key"] == "secret"

    @pytest.mark.asyncio
    async def test_retries_429_then_succeeds(self):
        sleep = RecordingSleep()
        handler = scripted(
            httpx.Response(429, text="slow down"),
            httpx.Response(500, text="oops"),
            httpx.Response(200, json={"ok": True}),
        )
        caller = BackoffCaller(sleep=sleep, http_client_factory=mock_client_factory(handler))
        assert await caller.call({}, ENDPOINT) == {"ok": True}
        assert len(handler.seen) == 3
        assert sleep.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_network_errors_are_retried(self):
        sleep = RecordingSleep()
        handler = scripted(httpx.ConnectError("refused"), httpx.Response(200, json={"ok": True}))
        caller = BackoffCaller(sleep=sleep, http_client_factory=mock_client_factory(handler))
        assert await caller.call({}, ENDPOINT) == {"ok": True}
        assert sleep.delays == [2.0]

    @pytest.mark.asyncio
    async def test_client_error_is_terminal(self):
        sleep = RecordingSleep()
        handler = scripted(httpx.Response(403, text="forbidden"))
        caller = BackoffCaller(sleep=sleep, http_client_factory=mock_client_factory(handler))
        with pytest.raises(TerminalServiceError, match="HTTP Status: 403") as info:
            await caller.call({}, ENDPOINT)
        assert info.value.status_code == 403
        assert len(handler.seen) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_overrides_attempts_and_delay(self):
        sleep = RecordingSleep()
        handler = scripted(httpx.Response(503, text="unavailable"))
        caller = BackoffCaller(sleep=sleep, http_client_factory=mock_client_factory(handler))
        with pytest.raises(RetriesExhaustedError) as info:
            await caller.call({}, ENDPOINT, max_attempts=3, base_delay=0.1)
        assert len(handler.seen) == 3
        assert sleep.delays == pytest.approx([0.1, 0.2])
        assert "secret" not in str(info.value)
