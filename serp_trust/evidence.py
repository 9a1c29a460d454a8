"""Prior fact-check evidence for news subjects."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any
from urllib.parse import urlparse

import httpx

from serp_trust.backoff import HttpClientFactory, default_http_client_factory
from serp_trust.config import EvidenceConfig

logger = logging.getLogger(__name__)


class EvidenceStatus(Enum):
    """Outcome of an evidence lookup."""

    FOUND = "found"
    EMPTY = "empty"
    UNAVAILABLE = "unavailable"
    NOT_APPLICABLE = "not_applicable"


@dataclass(frozen=True)
class ClaimReview:
    """One published verdict on a claim.

    Parameters
    ----------
    text : str
        The claim as reviewed.
    claimant : str
        Who made the claim.
    verdict : str
        Textual rating given by the fact-checker (e.g. ``"False"``).
    publisher : str
        Fact-checking organisation.
    review_date : date | None
        When the review was published, if known.
    """

    text: str
    claimant: str
    verdict: str
    publisher: str
    review_date: date | None = None


@dataclass
class EvidenceDigest:
    """Summary of prior verification findings for a subject."""

    status: EvidenceStatus
    claims: list[ClaimReview] = field(default_factory=list)

    def render(self) -> str:
        """Format the digest as the marker block embedded in the NEWS prompt."""
        if self.status is EvidenceStatus.FOUND:
            lines = [
                f'- Claim: "{c.text}" (Source: {c.claimant}). Verdict: {c.verdict} (Source: {c.publisher})'
                for c in self.claims
            ]
            return "EXTERNAL_FACT_CHECK_DATA:\n" + "\n".join(lines)
        if self.status is EvidenceStatus.EMPTY:
            return "EXTERNAL_FACT_CHECK_DATA: No pre-existing fact-check claims were found for this URL/article."
        if self.status is EvidenceStatus.UNAVAILABLE:
            return (
                "EXTERNAL_FACT_CHECK_ERROR: Fact Check Tools API call failed or returned empty. "
                "Reliance on the scoring service's search grounding is increased."
            )
        return "EXTERNAL_FACT_CHECK_DATA: Not applicable for this content type or no specific tools integrated."


class EvidenceSource(ABC):
    """Query-by-URL lookup of prior verification claims."""

    name: str = ""

    @abstractmethod
    async def lookup(self, url: str) -> EvidenceDigest:
        """Return the evidence digest for *url*.

        Implementations degrade to an ``UNAVAILABLE`` digest rather than
        raising.
        """


class NullEvidenceSource(EvidenceSource):
    """Evidence source for categories or setups without a fact-check service."""

    name = "null"

    async def lookup(self, url: str) -> EvidenceDigest:
        return EvidenceDigest(status=EvidenceStatus.NOT_APPLICABLE)


class FactCheckClient(EvidenceSource):
    """Client for the Google Fact Check Tools claim search API.

    Parameters
    ----------
    api_key : str
        API key sent as the ``key`` query parameter.
    endpoint : str
        Claim search endpoint.
    http_client_factory : HttpClientFactory | None
        Async context manager factory yielding an ``httpx.AsyncClient``.
    timeout : float
        Timeout for the default client factory.
    """

    name = "factcheck"

    def __init__(
        self,
        api_key: str,
        *,
        endpoint: str = EvidenceConfig.endpoint,
        http_client_factory: HttpClientFactory | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._endpoint = endpoint
        self._http_client_factory = http_client_factory or default_http_client_factory(timeout)

    @classmethod
    def from_config(cls, config: EvidenceConfig) -> EvidenceSource:
        """Build the evidence source described by *config*.

        Returns a :class:`NullEvidenceSource` when lookups are disabled.
        """
        if not config.enabled:
            return NullEvidenceSource()
        if not config.api_key:
            logger.warning("No fact-check API key configured; lookups will report unavailable evidence")
        return cls(config.api_key, endpoint=config.endpoint, timeout=config.timeout)

    async def lookup(self, url: str) -> EvidenceDigest:
        """Search published fact-checks that mention *url*.

        Parameters
        ----------
        url : str
            Subject URL used as the search query.

        Returns
        -------
        EvidenceDigest
        """
        params = {"query": url, "key": self._api_key}
        try:
            async with self._http_client_factory() as client:
                response = await client.get(self._endpoint, params=params)
        except httpx.HTTPError as exc:
            logger.warning("Fact-check lookup failed for %s: %s", url, exc)
            return EvidenceDigest(status=EvidenceStatus.UNAVAILABLE)

        if not response.is_success:
            logger.warning("Fact-check lookup failed for %s. Status: %s", url, response.status_code)
            return EvidenceDigest(status=EvidenceStatus.UNAVAILABLE)

        try:
            data = response.json()
            claims = [_parse_claim(raw) for raw in data.get("claims", [])]
        except (ValueError, TypeError, AttributeError, KeyError, IndexError) as exc:
            logger.warning("Malformed fact-check response for %s: %s", url, exc)
            return EvidenceDigest(status=EvidenceStatus.UNAVAILABLE)

        if not claims:
            return EvidenceDigest(status=EvidenceStatus.EMPTY)
        logger.info("Found %d fact-check claims for %s", len(claims), url)
        return EvidenceDigest(status=EvidenceStatus.FOUND, claims=claims)


def _parse_claim(raw: dict[str, Any]) -> ClaimReview:
    review = raw["claimReview"][0]
    return ClaimReview(
        text=raw.get("text", ""),
        claimant=_claimant_label(raw.get("claimant", "")),
        verdict=review.get("textualRating", ""),
        publisher=review.get("publisher", {}).get("name", "Unknown Publisher"),
        review_date=_parse_date(review.get("reviewDate")),
    )


def _claimant_label(claimant: str) -> str:
    if not claimant:
        return "Unknown Claimant"
    host = urlparse(claimant).hostname
    return host or claimant


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None
