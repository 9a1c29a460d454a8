"""Abstract scoring policy and the category-to-policy selector."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from serp_trust.errors import UnsupportedCategoryError
from serp_trust.evidence import EvidenceDigest
from serp_trust.models import AnalysisRequest, Category, clamp_score

logger = logging.getLogger(__name__)

OUTPUT_CONTRACT = """\
Primary (machine & UI friendly) plain text output EXACTLY as:
  SCORE:X SUMMARY:Y
  Where X is integer 0-100, Y is a concise summary (max 2 sentences) that mentions: {summary_focus}.
Additionally (for developer use), produce a JSON block AFTER the required plain text, on a single new line, with fields:
  {{"score":X,"factorA_score":A,"factorB_score":B,"confidence":C,"top_citations":[{{"url":"...","date":"YYYY-MM-DD","role":"{roles}"}}],"notes":"..."}}
  - Confidence = float between 0.0 and 1.0."""


@dataclass(frozen=True)
class FactorWeights:
    """Percent weights of factor A and factor B.

    Parameters
    ----------
    factor_a : int
        Weight of factor A in percent.
    factor_b : int
        Weight of factor B in percent.
    rule : str
        Name of the rule that produced these weights.
    """

    factor_a: int
    factor_b: int
    rule: str = "default"


@dataclass(frozen=True)
class ScoreBand:
    """Inclusive score range for one factor A verdict tier."""

    label: str
    low: int
    high: int

    def contains(self, score: int) -> bool:
        return self.low <= score <= self.high


class ScoringPolicy(ABC):
    """Category-specific scoring rules.

    A policy owns the two-factor weighting, the factor A score bands, the
    output contract and the prompt template sent to the scoring service.

    Attributes
    ----------
    category : Category
        Category this policy scores.
    name : str
        Registry key.
    prompt_name : str
        Filename stem of the policy's YAML prompt template.
    factor_a_label : str
        Human-readable name of factor A.
    factor_b_label : str
        Human-readable name of factor B.
    default_weights : FactorWeights
        Weights used when no override rule applies.
    factor_a_bands : tuple[ScoreBand, ...]
        Ordered factor A tiers, highest first.
    requires_evidence : bool
        Whether the policy consumes an external evidence digest.
    summary_focus : str
        What the one-line summary must mention.
    citation_roles : str
        Allowed ``role`` values for citations in the JSON block.
    """

    category: Category
    name: str = ""
    prompt_name: str = ""
    factor_a_label: str = ""
    factor_b_label: str = ""
    default_weights: FactorWeights = FactorWeights(50, 50)
    factor_a_bands: tuple[ScoreBand, ...] = ()
    requires_evidence: bool = False
    summary_focus: str = ""
    citation_roles: str = ""

    @abstractmethod
    def assess(self, request: AnalysisRequest, evidence: EvidenceDigest) -> Any:
        """Derive the signals that drive the weight override rules."""

    @abstractmethod
    def weights(self, signals: Any) -> FactorWeights:
        """Return the factor weights implied by *signals*."""

    @property
    def output_contract(self) -> str:
        """Exact textual format the scoring service must answer in."""
        return OUTPUT_CONTRACT.format(summary_focus=self.summary_focus, roles=self.citation_roles)

    def combine(self, factor_a: int, factor_b: int, weights: FactorWeights) -> int:
        """Combine factor scores into a trust score under *weights*."""
        total = factor_a * weights.factor_a + factor_b * weights.factor_b
        return clamp_score(round(total / (weights.factor_a + weights.factor_b)))

    def band_for(self, score: int) -> ScoreBand | None:
        """Return the factor A band containing *score*, if any."""
        return next((band for band in self.factor_a_bands if band.contains(score)), None)

    @classmethod
    def template_path(cls) -> Path:
        """Path of this policy's YAML prompt template."""
        return Path(__file__).parent / cls.name / "templates" / f"{cls.prompt_name}.yaml"

    def prompt_variables(
        self,
        request: AnalysisRequest,
        evidence: EvidenceDigest,
        weights: FactorWeights,
    ) -> dict[str, Any]:
        """Build the Jinja2 variables for this policy's prompt template.

        Parameters
        ----------
        request : AnalysisRequest
            Result being scored.
        evidence : EvidenceDigest
            External evidence (``NOT_APPLICABLE`` when unused).
        weights : FactorWeights
            Weights chosen by :meth:`weights`.

        Returns
        -------
        dict[str, Any]
        """
        return {
            "url": request.url,
            "title": request.title,
            "description": request.description,
            "category": request.category.value,
            "evidence": evidence.render(),
            "weights": weights,
            "default_weights": self.default_weights,
            "bands": self.factor_a_bands,
            "factor_a_label": self.factor_a_label,
            "factor_b_label": self.factor_b_label,
            "output_contract": self.output_contract,
        }


def host_matches(url: str, hosts: frozenset[str] | set[str] | list[str]) -> bool:
    """Return whether the host of *url* equals or is a subdomain of any of *hosts*."""
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return any(host == h or host.endswith("." + h) for h in hosts)


class PolicySelector:
    """Map categories to scoring policies.

    Policies register themselves with :meth:`register`. Instances are
    created lazily, once per selector.

    Parameters
    ----------
    policy_options : dict[Category, dict] | None
        Constructor kwargs per category.
    """

    _policies: dict[Category, type[ScoringPolicy]] = {}

    def __init__(self, policy_options: dict[Category, dict[str, Any]] | None = None) -> None:
        self._options = policy_options or {}
        self._instances: dict[Category, ScoringPolicy] = {}

    @classmethod
    def register(cls, category: Category):
        """Class decorator that registers a policy for *category*.

        Parameters
        ----------
        category : Category
            Category the policy scores.

        Returns
        -------
        Callable
            The original class, unmodified.
        """

        def decorator(klass: type[ScoringPolicy]) -> type[ScoringPolicy]:
            cls._policies[category] = klass
            return klass

        return decorator

    @classmethod
    def available(cls) -> list[str]:
        """Return sorted list of categories with a registered policy."""
        return sorted(category.value for category in cls._policies)

    @classmethod
    def policies(cls) -> dict[Category, type[ScoringPolicy]]:
        """Return a copy of the category to policy class mapping."""
        return dict(cls._policies)

    def select(self, category: Category | str) -> ScoringPolicy:
        """Return the policy for *category*.

        Parameters
        ----------
        category : Category | str
            Category member or label.

        Returns
        -------
        ScoringPolicy

        Raises
        ------
        UnsupportedCategoryError
            If *category* is unknown or has no registered policy.
        """
        resolved = Category.parse(category)
        if resolved not in self._policies:
            raise UnsupportedCategoryError(category)
        if resolved not in self._instances:
            self._instances[resolved] = self._policies[resolved](**self._options.get(resolved, {}))
            logger.debug("Instantiated %s policy", resolved.value)
        return self._instances[resolved]


PolicyRegistry = PolicySelector
