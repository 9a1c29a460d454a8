"""Tests for the category policies and the selector."""

from datetime import date

import pytest

from serp_trust.errors import UnsupportedCategoryError
from serp_trust.evidence import ClaimReview, EvidenceDigest, EvidenceStatus
from serp_trust.models import AnalysisRequest, Category
from serp_trust.policies import FactorWeights, PolicySelector
from serp_trust.policies.academic import AcademicPolicy
from serp_trust.policies.base import host_matches
from serp_trust.policies.news import NewsPolicy

TODAY = date(2025, 6, 1)


def news_policy():
    return NewsPolicy(today=lambda: TODAY)


def claim(verdict, publisher, review_date=date(2025, 1, 10)):
    return ClaimReview(
        text="The budget doubled taxes",
        claimant="Unknown Claimant",
        verdict=verdict,
        publisher=publisher,
        review_date=review_date,
    )


def academic(url, description=""):
    return AnalysisRequest(id="a", title="Paper", url=url, description=description, category=Category.ACADEMIC)


class TestSelector:
    def test_select_news(self):
        assert isinstance(PolicySelector().select(Category.NEWS), NewsPolicy)

    def test_select_by_label(self):
        assert isinstance(PolicySelector().select("academic"), AcademicPolicy)

    def test_instances_reused(self):
        selector = PolicySelector()
        assert selector.select("news") is selector.select(Category.NEWS)

    def test_unsupported_category(self):
        with pytest.raises(UnsupportedCategoryError):
            PolicySelector().select("video")

    def test_available(self):
        assert PolicySelector.available() == ["academic", "news"]

    def test_policy_options_forwarded(self):
        selector = PolicySelector({Category.ACADEMIC: {"low_credibility_hosts": ["predatory.example"]}})
        policy = selector.select(Category.ACADEMIC)
        signals = policy.assess(academic("https://journals.predatory.example/p/1"), None)
        assert signals.low_credibility


class TestNewsPolicy:
    def test_default_weights_with_recent_support(self, news_request):
        policy = news_policy()
        digest = EvidenceDigest(EvidenceStatus.FOUND, [claim("True", "Reuters")])
        assert policy.weights(policy.assess(news_request, digest)) == FactorWeights(50, 50)

    def test_definitive_debunk_needs_two_publishers(self, news_request):
        policy = news_policy()
        digest = EvidenceDigest(EvidenceStatus.FOUND, [claim("False", "Snopes"), claim("Pants on Fire!", "PolitiFact")])
        weights = policy.weights(policy.assess(news_request, digest))
        assert (weights.factor_a, weights.factor_b) == (70, 30)
        assert weights.rule == "definitive_debunk"

    def test_same_publisher_twice_is_not_definitive(self, news_request):
        policy = news_policy()
        digest = EvidenceDigest(EvidenceStatus.FOUND, [claim("False", "Snopes"), claim("Fake", "Snopes")])
        assert policy.weights(policy.assess(news_request, digest)).rule == "default"

    def test_mostly_false_is_not_definitive(self, news_request):
        policy = news_policy()
        digest = EvidenceDigest(EvidenceStatus.FOUND, [claim("Mostly False", "A"), claim("Misleading", "B")])
        assert policy.weights(policy.assess(news_request, digest)).rule == "default"

    def test_old_reviews_count_as_no_recent_evidence(self, news_request):
        policy = news_policy()
        old = date(2022, 1, 1)
        digest = EvidenceDigest(EvidenceStatus.FOUND, [claim("False", "A", old), claim("False", "B", old)])
        weights = policy.weights(policy.assess(news_request, digest))
        assert (weights.factor_a, weights.factor_b) == (35, 65)

    @pytest.mark.parametrize("status", [EvidenceStatus.EMPTY, EvidenceStatus.UNAVAILABLE])
    def test_missing_evidence_shifts_weight(self, news_request, status):
        policy = news_policy()
        weights = policy.weights(policy.assess(news_request, EvidenceDigest(status)))
        assert weights.rule == "no_recent_verification"

    def test_bands(self):
        policy = news_policy()
        assert policy.band_for(12).label == "Definitive debunk"
        assert policy.band_for(50).low == 40
        assert policy.band_for(3) is None

    def test_requires_evidence(self):
        assert news_policy().requires_evidence

    def test_output_contract(self):
        contract = news_policy().output_contract
        assert "SCORE:X SUMMARY:Y" in contract
        assert '"factorA_score":A' in contract
        assert "fact-check/source" in contract


class TestAcademicPolicy:
    def test_default_weights(self):
        policy = AcademicPolicy()
        weights = policy.weights(policy.assess(academic("https://journal.example.edu/a"), None))
        assert weights == FactorWeights(60, 40)

    def test_high_impact_venue(self):
        policy = AcademicPolicy()
        weights = policy.weights(policy.assess(academic("https://www.nature.com/articles/x"), None))
        assert (weights.factor_a, weights.factor_b) == (75, 25)

    def test_preprint_host(self):
        policy = AcademicPolicy()
        weights = policy.weights(policy.assess(academic("https://arxiv.org/abs/2401.00001"), None))
        assert (weights.factor_a, weights.factor_b) == (36, 64)

    def test_preprint_marker_in_snippet(self):
        policy = AcademicPolicy()
        signals = policy.assess(academic("https://lab.example.org/p", "Preprint, not peer reviewed"), None)
        assert signals.preprint

    @pytest.mark.parametrize(
        "description",
        [
            "Journal ref: Phys. Rev. Lett. 132, 010101 (2024)",
            "Accepted for publication in Cell Reports.",
            "Now published in eLife.",
        ],
    )
    def test_preprint_with_published_version_keeps_default_weights(self, description):
        policy = AcademicPolicy()
        signals = policy.assess(academic("https://arxiv.org/abs/2401.00001", description), None)
        assert signals.preprint
        assert not signals.unknown_provenance_preprint
        assert policy.weights(signals) == FactorWeights(60, 40)

    def test_not_peer_reviewed_preprint_is_unknown_provenance(self):
        policy = AcademicPolicy()
        signals = policy.assess(academic("https://www.biorxiv.org/content/1", "Preprint, not peer reviewed"), None)
        assert policy.weights(signals).rule == "unknown_provenance_preprint"

    def test_unlisted_publisher_is_not_low_credibility(self):
        policy = AcademicPolicy()
        signals = policy.assess(academic("https://journals.predatory.example/p/1"), None)
        assert not signals.low_credibility
        assert policy.weights(signals) == FactorWeights(60, 40)

    def test_low_credibility_takes_precedence(self):
        policy = AcademicPolicy(low_credibility_hosts=["nature.com"])
        weights = policy.weights(policy.assess(academic("https://nature.com/x"), None))
        assert weights.rule == "low_credibility_source"
        assert (weights.factor_a, weights.factor_b) == (30, 70)

    def test_does_not_require_evidence(self):
        assert not AcademicPolicy().requires_evidence


def test_combine_weighted_and_clamped():
    policy = AcademicPolicy()
    assert policy.combine(80, 50, FactorWeights(60, 40)) == 68
    assert policy.combine(100, 100, FactorWeights(75, 25)) == 100


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://www.nature.com/a", True),
        ("https://news.nature.com/a", True),
        ("https://notnature.com/a", False),
        ("not a url", False),
    ],
)
def test_host_matches(url, expected):
    assert host_matches(url, {"nature.com"}) is expected


def test_prompt_variables(news_request):
    policy = news_policy()
    digest = EvidenceDigest(EvidenceStatus.EMPTY)
    variables = policy.prompt_variables(news_request, digest, FactorWeights(35, 65, "no_recent_verification"))
    assert variables["url"] == news_request.url
    assert variables["category"] == "news"
    assert variables["evidence"].startswith("EXTERNAL_FACT_CHECK_DATA: No pre-existing")
    assert variables["weights"].factor_a == 35
    assert "SCORE:X SUMMARY:Y" in variables["output_contract"]
