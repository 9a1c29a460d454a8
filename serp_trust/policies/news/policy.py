"""NEWS policy: external verification and journalism principles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable

from serp_trust.evidence import EvidenceDigest, EvidenceStatus
from serp_trust.models import AnalysisRequest, Category
from serp_trust.policies.base import FactorWeights, PolicySelector, ScoreBand, ScoringPolicy

logger = logging.getLogger(__name__)

RECENCY_MONTHS = 24
MIN_DEBUNKING_PUBLISHERS = 2

# Textual ratings that count as a definitive debunk; "mostly false" and
# "misleading" do not.
DEFINITIVE_DEBUNK_VERDICTS = frozenset(
    {"false", "pants on fire", "fake", "fabricated", "hoax", "incorrect", "wrong", "yanlış"}
)


@dataclass(frozen=True)
class NewsSignals:
    """Evidence features behind the NEWS weight overrides.

    Parameters
    ----------
    recent_reviews : int
        Fact-checks published within the recency window.
    debunking_publishers : int
        Distinct fact-checkers with a definitive debunk in the window.
    evidence_status : EvidenceStatus
        Outcome of the evidence lookup.
    """

    recent_reviews: int
    debunking_publishers: int
    evidence_status: EvidenceStatus

    @property
    def definitive_debunk(self) -> bool:
        return self.debunking_publishers >= MIN_DEBUNKING_PUBLISHERS

    @property
    def no_recent_evidence(self) -> bool:
        return self.recent_reviews == 0


@PolicySelector.register(Category.NEWS)
class NewsPolicy(ScoringPolicy):
    """Score news articles from fact-check evidence and journalistic quality.

    Parameters
    ----------
    today : Callable[[], date]
        Returns the current date; drives the recency window.
    """

    category = Category.NEWS
    name = "news"
    prompt_name = "news_trust"
    factor_a_label = "EXTERNAL VERIFICATION (fact-checks)"
    factor_b_label = "JOURNALISM PRINCIPLES COMPLIANCE (content quality)"
    default_weights = FactorWeights(50, 50)
    factor_a_bands = (
        ScoreBand("Strong independent verification + multiple sources", 86, 100),
        ScoreBand("Supported / confirmed", 61, 85),
        ScoreBand("No decisive fact-check (no evidence found)", 40, 60),
        ScoreBand("Mostly false/mixture against claim", 21, 39),
        ScoreBand("Definitive debunk", 5, 20),
    )
    requires_evidence = True
    summary_focus = "primary external verdict(s) and 1-2 key journalism principle findings"
    citation_roles = "fact-check/source"

    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self._today = today

    def assess(self, request: AnalysisRequest, evidence: EvidenceDigest) -> NewsSignals:
        """Count recent fact-checks and definitive debunks in *evidence*."""
        cutoff = _months_before(self._today(), RECENCY_MONTHS)
        recent = [c for c in evidence.claims if c.review_date is not None and c.review_date >= cutoff]
        debunkers = {c.publisher for c in recent if _is_definitive_debunk(c.verdict)}
        signals = NewsSignals(
            recent_reviews=len(recent),
            debunking_publishers=len(debunkers),
            evidence_status=evidence.status,
        )
        logger.debug("News signals for %s: %s", request.url, signals)
        return signals

    def weights(self, signals: NewsSignals) -> FactorWeights:
        """Apply the debunk and missing-evidence overrides."""
        if signals.definitive_debunk:
            return FactorWeights(70, 30, rule="definitive_debunk")
        if signals.no_recent_evidence:
            return FactorWeights(35, 65, rule="no_recent_verification")
        return self.default_weights


def _is_definitive_debunk(verdict: str) -> bool:
    return verdict.strip().lower().rstrip("!. ") in DEFINITIVE_DEBUNK_VERDICTS


def _months_before(day: date, months: int) -> date:
    year, month = divmod(day.year * 12 + day.month - 1 - months, 12)
    month += 1
    try:
        return day.replace(year=year, month=month)
    except ValueError:
        return date(year, month, 28)
