"""Tests for prompt loading and rendering."""

import pytest

from serp_trust.evidence import EvidenceDigest, EvidenceStatus
from serp_trust.policies import FactorWeights
from serp_trust.policies.academic import AcademicPolicy
from serp_trust.policies.news import NewsPolicy
from serp_trust.prompts import PromptSpec, load_prompt_spec, render


def test_load_prompt_spec(tmp_path):
    path = tmp_path / "p.yaml"
    path.write_text("name: p\nversion: 2\ndescription: d\nsystem: 'Sys {{ x }}'\nuser: 'Usr'\n", encoding="utf-8")
    spec = load_prompt_spec(path)
    assert spec.name == "p"
    assert spec.version == "2"
    assert spec.system_template == "Sys {{ x }}"


def test_load_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError, match="Prompt template not found"):
        load_prompt_spec(tmp_path / "missing.yaml")


def test_render_messages():
    spec = PromptSpec(
        name="t", version="1", description="", system_template="Rules for {{ x }}", user_template="{{ y }}"
    )
    messages = render(spec, {"x": "news", "y": "https://a.org"})
    assert messages == [
        {"role": "system", "content": "Rules for news"},
        {"role": "user", "content": "https://a.org"},
    ]


def test_render_skips_empty_parts():
    spec = PromptSpec(name="t", version="1", description="", user_template="only user")
    assert render(spec, {}) == [{"role": "user", "content": "only user"}]


def test_news_template_renders_evidence_and_weights(news_request):
    policy = NewsPolicy()
    digest = EvidenceDigest(EvidenceStatus.UNAVAILABLE)
    weights = FactorWeights(35, 65, "no_recent_verification")
    messages = render(load_prompt_spec(policy.template_path()), policy.prompt_variables(news_request, digest, weights))
    system, user = messages[0]["content"], messages[1]["content"]
    assert "FactorA 50% / FactorB 50%" in system
    assert "FactorA:35 FactorB:65 (rule: no_recent_verification)" in system
    assert "Definitive debunk -> 5-20" in system
    assert "SCORE:X SUMMARY:Y" in system
    assert news_request.url in user
    assert "EXTERNAL_FACT_CHECK_ERROR" in user


def test_academic_template_renders(academic_request):
    policy = AcademicPolicy()
    digest = EvidenceDigest(EvidenceStatus.NOT_APPLICABLE)
    weights = FactorWeights(75, 25, "high_impact_source")
    spec = load_prompt_spec(policy.template_path())
    messages = render(spec, policy.prompt_variables(academic_request, digest, weights))
    assert spec.name == "academic_trust"
    assert "75" in messages[0]["content"]
    assert academic_request.title in messages[1]["content"]
