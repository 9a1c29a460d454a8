"""Shared fixtures for trust scoring tests."""

import pytest

from serp_trust.backends.base import Backend
from serp_trust.cache import MemoryCache
from serp_trust.evidence import EvidenceDigest, EvidenceSource, EvidenceStatus
from serp_trust.lifecycle import Notifier
from serp_trust.models import AnalysisRequest, Category, Delivery
from serp_trust.orchestrator import ScoringOrchestrator


class FakeBackend(Backend):
    """Backend returning canned responses and recording every call."""

    name = "fake"

    def __init__(self, responses=None, error=None):
        super().__init__()
        self._responses = list(responses or ["SCORE:80 SUMMARY:Looks reliable."])
        self._error = error
        self.calls = []

    async def complete(self, messages, *, model=None, temperature=0.0, max_tokens=4096, grounding=False):
        self.calls.append({"messages": messages, "model": model, "grounding": grounding})
        if self._error is not None:
            raise self._error
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]


class RecordingNotifier(Notifier):
    """Notifier collecting wire messages; can simulate a vanished caller."""

    def __init__(self, reachable=True, fail_on=()):
        self.reachable = reachable
        self.fail_on = set(fail_on)
        self.messages = []

    async def deliver(self, event):
        if not self.reachable or event.kind in self.fail_on:
            return Delivery.UNREACHABLE
        self.messages.append(event.to_message())
        return Delivery.DELIVERED

    def types(self):
        return [m["type"] for m in self.messages]


class StaticEvidence(EvidenceSource):
    """Evidence source returning a fixed digest."""

    name = "static"

    def __init__(self, digest=None):
        self.digest = digest or EvidenceDigest(status=EvidenceStatus.EMPTY)
        self.lookups = []

    async def lookup(self, url):
        self.lookups.append(url)
        return self.digest


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def news_request():
    return AnalysisRequest(
        id="r-1",
        title="Council approves new budget",
        url="https://example-news.com/budget",
        description="The city council approved the annual budget on Tuesday.",
        category=Category.NEWS,
    )


@pytest.fixture()
def academic_request():
    return AnalysisRequest(
        id="r-2",
        title="A randomized trial of vitamin D",
        url="https://www.nejm.org/doi/full/10.1056/example",
        description="Double-blind randomized controlled trial in 25,871 adults.",
        category=Category.ACADEMIC,
    )


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def fake_backend():
    return FakeBackend()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def evidence():
    return StaticEvidence()


@pytest.fixture()
def orchestrator(fake_backend, evidence, clock):
    return ScoringOrchestrator(fake_backend, cache=MemoryCache(clock=clock), evidence=evidence)
