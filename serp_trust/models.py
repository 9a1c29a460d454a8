"""Data models for search-result trust scoring."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from serp_trust.errors import UnsupportedCategoryError

ANALYZE_RESULT = "ANALYZE_RESULT"
SHOW_LOADING = "SHOW_LOADING"
INJECT_BADGE = "INJECT_BADGE"

FORMAT_ERROR_SUMMARY = "Analysis format error. Detailed analysis could not be completed. (LLM Format)"

# Labels used by older item sources for the same categories.
_CATEGORY_ALIASES = {"article": "academic"}


def clamp_score(value: float) -> int:
    """Clamp *value* into the integer range ``[0, 100]``."""
    return max(0, min(100, int(value)))


class Category(Enum):
    """Kind of search result being scored."""

    NEWS = "news"
    ACADEMIC = "academic"

    @classmethod
    def parse(cls, value: Category | str) -> Category:
        """Resolve a category from an enum member or a label.

        Parameters
        ----------
        value : Category | str
            Enum member, canonical value (case-insensitive), or a legacy
            alias such as ``"article"``.

        Returns
        -------
        Category

        Raises
        ------
        UnsupportedCategoryError
            If *value* does not name a known category.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            label = value.strip().lower()
            label = _CATEGORY_ALIASES.get(label, label)
            for member in cls:
                if member.value == label:
                    return member
        raise UnsupportedCategoryError(value)


@dataclass(frozen=True)
class AnalysisRequest:
    """A single search result submitted for scoring.

    Parameters
    ----------
    id : str
        Caller-supplied identifier, unique for the lifetime of the request.
    title : str
        Result title as shown on the page.
    url : str
        Subject URL; also the cache key.
    description : str
        Snippet shown under the result.
    category : Category
        Scoring category.
    """

    id: str
    title: str
    url: str
    description: str
    category: Category

    @classmethod
    def from_message(cls, data: dict[str, Any]) -> AnalysisRequest:
        """Build a request from an ``ANALYZE_RESULT`` message payload.

        Parameters
        ----------
        data : dict
            Payload with ``id``, ``title``, ``url``, ``description`` and
            ``category`` (or the legacy ``resultType``) keys.

        Returns
        -------
        AnalysisRequest

        Raises
        ------
        ValueError
            If ``id`` or ``url`` is missing.
        UnsupportedCategoryError
            If the category is not recognised.
        """
        for key in ("id", "url"):
            if not data.get(key):
                msg = f"ANALYZE_RESULT payload missing required field: {key!r}"
                raise ValueError(msg)
        category = data.get("category", data.get("resultType", ""))
        return cls(
            id=str(data["id"]),
            title=data.get("title", "") or "",
            url=data["url"],
            description=data.get("description", "") or "",
            category=Category.parse(category),
        )


@dataclass(frozen=True)
class Citation:
    """A source the scoring service relied on."""

    url: str
    date: str = ""
    role: str = ""


@dataclass(frozen=True)
class ScoreResult:
    """Normalized trust score for one subject.

    Parameters
    ----------
    score : int
        Trust score, clamped to ``[0, 100]``.
    summary : str
        Short human-readable justification.
    factor_a : int
        Factor A sub-score (external verification or reputation).
    factor_b : int
        Factor B sub-score (journalism principles or methodological rigor).
    confidence : float
        Model-reported confidence, clamped to ``[0.0, 1.0]``.
    citations : tuple[Citation, ...]
        Ordered citations from the structured block.
    from_cache : bool
        Whether this result was served from the cache.
    """

    score: int
    summary: str
    factor_a: int = 0
    factor_b: int = 0
    confidence: float = 0.0
    citations: tuple[Citation, ...] = ()
    from_cache: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "score", clamp_score(self.score))
        object.__setattr__(self, "factor_a", clamp_score(self.factor_a))
        object.__setattr__(self, "factor_b", clamp_score(self.factor_b))
        object.__setattr__(self, "confidence", max(0.0, min(1.0, float(self.confidence))))
        object.__setattr__(self, "citations", tuple(self.citations))

    @property
    def is_cacheable(self) -> bool:
        """True for a positive score whose summary carries no error marker."""
        return self.score > 0 and "error" not in self.summary.lower()

    @classmethod
    def format_error(cls) -> ScoreResult:
        """Return the zero-score sentinel used when the response format is invalid."""
        return cls(score=0, summary=FORMAT_ERROR_SUMMARY)


@dataclass
class DeveloperReport:
    """Optional structured block emitted after the ``SCORE:/SUMMARY:`` line.

    Parameters
    ----------
    score : int | None
        Score repeated by the model.
    factor_a_score : int | None
        Factor A sub-score.
    factor_b_score : int | None
        Factor B sub-score.
    confidence : float | None
        Confidence between 0.0 and 1.0.
    top_citations : list[Citation]
        Citations in the order the model listed them.
    notes : str
        Free-text notes.
    """

    score: int | None = None
    factor_a_score: int | None = None
    factor_b_score: int | None = None
    confidence: float | None = None
    top_citations: list[Citation] = field(default_factory=list)
    notes: str = ""


@dataclass
class CacheEntry:
    """A persisted score, keyed by subject URL.

    Parameters
    ----------
    key : str
        Subject URL.
    score : int
        Cached trust score.
    summary : str
        Cached summary.
    timestamp : float
        Seconds since the epoch when the entry was written.
    schema_version : int
        Layout version of the persisted record.
    """

    key: str
    score: int
    summary: str
    timestamp: float
    schema_version: int

    def is_fresh(self, now: float, ttl: float) -> bool:
        """Return whether the entry is younger than *ttl* seconds at *now*."""
        return now - self.timestamp < ttl

    def to_result(self) -> ScoreResult:
        """Rebuild a score result flagged as served from the cache."""
        return ScoreResult(score=self.score, summary=self.summary, from_cache=True)


class Delivery(Enum):
    """Outcome of delivering a notification to the caller."""

    DELIVERED = "delivered"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class ShowLoading:
    """Tell the caller that scoring for *id* has started."""

    id: str
    kind = SHOW_LOADING

    def to_message(self) -> dict[str, Any]:
        """Render the wire message for the item source."""
        return {"type": self.kind, "data": {"id": self.id}}


@dataclass(frozen=True)
class InjectBadge:
    """Carry the final score for *id* back to the caller."""

    id: str
    score: int
    summary: str
    rendering_hint: str
    kind = INJECT_BADGE

    def to_message(self) -> dict[str, Any]:
        """Render the wire message for the item source."""
        return {
            "type": self.kind,
            "data": {
                "id": self.id,
                "score": self.score,
                "summary": self.summary,
                "renderingHint": self.rendering_hint,
            },
        }
