"""Parse the ``SCORE:/SUMMARY:`` contract out of scoring service responses."""

from __future__ import annotations

import json
import math
import logging
import re
from typing import Any

from serp_trust.errors import FormatError
from serp_trust.models import Citation, DeveloperReport, ScoreResult, clamp_score

logger = logging.getLogger(__name__)

_SCORE_RE = re.compile(r"SCORE\s*:\s*(\d+)", re.IGNORECASE)
_SUMMARY_RE = re.compile(r"SUMMARY\s*:\s*(.*)$", re.IGNORECASE)
_SUMMARY_LABEL = "summary:"
# Any score written with more digits than this is above the clamp ceiling.
_MAX_SCORE_DIGITS = 3


def parse_response(text: str) -> ScoreResult:
    """Extract a normalized score and summary from a scoring response.

    The first non-blank line must carry both ``SCORE:<int>`` and
    ``SUMMARY:<text>``. A later single-line JSON block, when present and
    valid, fills in factor scores, confidence and citations; the primary
    score always comes from the first line.

    Parameters
    ----------
    text : str
        Raw response text.

    Returns
    -------
    ScoreResult

    Raises
    ------
    FormatError
        If the first non-blank line does not follow the contract.
    """
    lines = [line for line in text.strip().splitlines() if line.strip()]
    first_line = lines[0] if lines else ""

    score_match = _SCORE_RE.search(first_line)
    summary_match = _SUMMARY_RE.search(first_line)
    if not score_match or not summary_match:
        logger.error("Scoring response was not in the required format. Raw output: %s", text)
        raise FormatError(text)

    summary = _strip_echoed_label(summary_match.group(1).strip())
    score = _primary_score(score_match.group(1))

    report = parse_developer_block(lines[1:])
    if report is None:
        return ScoreResult(score=score, summary=summary)

    return ScoreResult(
        score=score,
        summary=summary,
        factor_a=report.factor_a_score or 0,
        factor_b=report.factor_b_score or 0,
        confidence=report.confidence or 0.0,
        citations=tuple(report.top_citations),
    )


def parse_developer_block(lines: list[str]) -> DeveloperReport | None:
    """Decode the first line that looks like a JSON object.

    Parameters
    ----------
    lines : list[str]
        Response lines following the ``SCORE:/SUMMARY:`` line.

    Returns
    -------
    DeveloperReport | None
        ``None`` when no candidate line exists or it cannot be decoded.
    """
    stripped = (line.strip() for line in lines)
    candidate = next((line for line in stripped if line.startswith("{") and line.endswith("}")), None)
    if candidate is None:
        return None

    try:
        data = json.loads(candidate)
        if not isinstance(data, dict):
            msg = f"expected a JSON object, got {type(data).__name__}"
            raise TypeError(msg)
        report = DeveloperReport(
            score=_optional_int(data.get("score")),
            factor_a_score=_optional_int(data.get("factorA_score")),
            factor_b_score=_optional_int(data.get("factorB_score")),
            confidence=_optional_float(data.get("confidence")),
            top_citations=_citations(data.get("top_citations")),
            notes=str(data.get("notes", "")),
        )
    except (json.JSONDecodeError, TypeError, ValueError, OverflowError) as exc:
        logger.warning("Failed to parse developer JSON block: %s", exc)
        return None

    logger.debug("Parsed developer JSON data: %s", report)
    return report


def _strip_echoed_label(summary: str) -> str:
    """Drop everything up to the last ``summary:`` the model echoed mid-text."""
    index = summary.lower().rfind(_SUMMARY_LABEL)
    if index == -1:
        return summary
    return summary[index + len(_SUMMARY_LABEL) :].strip()


def _primary_score(digits: str) -> int:
    """Clamp the ``SCORE:`` digits without converting arbitrarily long numbers."""
    significant = digits.lstrip("0")
    if len(significant) > _MAX_SCORE_DIGITS:
        return 100
    return clamp_score(int(significant or "0"))


def _finite(value: Any) -> float:
    number = float(value)
    if not math.isfinite(number):
        msg = f"expected a finite number, got {value!r}"
        raise ValueError(msg)
    return number


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return clamp_score(_finite(value))


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return max(0.0, min(1.0, _finite(value)))


def _citations(value: Any) -> list[Citation]:
    if not isinstance(value, list):
        return []
    return [
        Citation(url=str(item.get("url", "")), date=str(item.get("date", "")), role=str(item.get("role", "")))
        for item in value
        if isinstance(item, dict) and item.get("url")
    ]
