"""ACADEMIC policy: academic reputation and methodological rigor."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from serp_trust.evidence import EvidenceDigest
from serp_trust.models import AnalysisRequest, Category
from serp_trust.policies.base import FactorWeights, PolicySelector, ScoreBand, ScoringPolicy, host_matches

logger = logging.getLogger(__name__)

TOP_TIER_HOSTS = frozenset(
    {
        "nature.com",
        "science.org",
        "sciencemag.org",
        "thelancet.com",
        "nejm.org",
        "cell.com",
        "jamanetwork.com",
        "bmj.com",
        "pnas.org",
    }
)

PREPRINT_HOSTS = frozenset(
    {
        "arxiv.org",
        "biorxiv.org",
        "medrxiv.org",
        "ssrn.com",
        "preprints.org",
        "researchsquare.com",
        "osf.io",
    }
)

# Snippet phrases showing a preprint has a known published or accepted version.
PUBLISHED_VERSION_MARKERS = (
    "published in",
    "journal ref",
    "accepted in",
    "accepted at",
    "accepted for publication",
    "version of record",
)


@dataclass(frozen=True)
class AcademicSignals:
    """Provenance features behind the ACADEMIC weight overrides."""

    high_impact: bool = False
    low_credibility: bool = False
    preprint: bool = False
    published_version: bool = False

    @property
    def unknown_provenance_preprint(self) -> bool:
        return self.preprint and not self.published_version


@PolicySelector.register(Category.ACADEMIC)
class AcademicPolicy(ScoringPolicy):
    """Score academic articles from reputation and methodological rigor.

    Parameters
    ----------
    low_credibility_hosts : list[str] | None
        Publisher hosts treated as predatory or unverified. Empty by
        default, in which case the low-credibility override never fires.
    """

    category = Category.ACADEMIC
    name = "academic"
    prompt_name = "academic_trust"
    factor_a_label = "ACADEMIC REPUTATION (author, journal, citations, h-index)"
    factor_b_label = "METHODOLOGICAL RIGOR & PEER REVIEW (study design, data, peer review status)"
    default_weights = FactorWeights(60, 40)
    factor_a_bands = (
        ScoreBand("Highly reputable author/journal, high citations", 80, 100),
        ScoreBand("Solid reputation, good citations", 60, 79),
        ScoreBand("Established but not top-tier, moderate citations", 40, 59),
        ScoreBand("New/unknown author/journal, low/no citations", 20, 39),
        ScoreBand("Predatory journal/unverified source", 0, 19),
    )
    summary_focus = "primary findings on author/journal reputation, citation impact, and methodological inference"
    citation_roles = "author_profile/journal_info/citation_link"

    def __init__(self, low_credibility_hosts: list[str] | None = None) -> None:
        self._low_credibility_hosts = frozenset(h.lower() for h in low_credibility_hosts or [])

    def assess(self, request: AnalysisRequest, evidence: EvidenceDigest) -> AcademicSignals:
        """Classify the venue of *request* from its URL and snippet.

        Only configured hosts count as low-credibility; an unlisted
        unknown publisher keeps the default weights and is left to the
        model's own reputation check. A preprint loses its override once
        the snippet names a published or accepted version.
        """
        snippet = request.description.lower()
        return AcademicSignals(
            high_impact=host_matches(request.url, TOP_TIER_HOSTS),
            low_credibility=host_matches(request.url, self._low_credibility_hosts),
            preprint=host_matches(request.url, PREPRINT_HOSTS) or "preprint" in snippet,
            published_version=any(marker in snippet for marker in PUBLISHED_VERSION_MARKERS),
        )

    def weights(self, signals: AcademicSignals) -> FactorWeights:
        """Apply the low-credibility, high-impact and preprint overrides, in that order."""
        if signals.low_credibility:
            return FactorWeights(30, 70, rule="low_credibility_source")
        if signals.high_impact:
            return FactorWeights(75, 25, rule="high_impact_source")
        if signals.unknown_provenance_preprint:
            return FactorWeights(36, 64, rule="unknown_provenance_preprint")
        return self.default_weights
