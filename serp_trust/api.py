"""Package-level entry point: analyze_results()."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from serp_trust.config import TrustConfig
from serp_trust.lifecycle import Notifier
from serp_trust.models import AnalysisRequest, ScoreResult
from serp_trust.orchestrator import ScoringOrchestrator

logger = logging.getLogger(__name__)


async def analyze_results(
    requests: Iterable[AnalysisRequest | dict[str, Any]],
    notifier: Notifier,
    *,
    config: TrustConfig | dict | str | Path | None = None,
    orchestrator: ScoringOrchestrator | None = None,
) -> list[ScoreResult | None]:
    """Score a batch of search results concurrently.

    Each request runs as its own task, so notifications for different ids
    arrive in no particular order.

    Parameters
    ----------
    requests : Iterable[AnalysisRequest | dict]
        Requests, or ``ANALYZE_RESULT`` payloads to build them from.
    notifier : Notifier
        Channel that receives ``SHOW_LOADING`` and ``INJECT_BADGE``.
    config : TrustConfig | dict | str | Path | None
        Configuration used to build an orchestrator when none is given.
    orchestrator : ScoringOrchestrator | None
        Reuse an existing orchestrator (and its cache).

    Returns
    -------
    list[ScoreResult | None]
        One entry per request, in input order. ``None`` marks a request
        that was a duplicate, abandoned, or failed.

    Raises
    ------
    ValueError
        If a payload is missing ``id`` or ``url`` or names an unsupported
        category.
    """
    parsed = [r if isinstance(r, AnalysisRequest) else AnalysisRequest.from_message(r) for r in requests]
    if orchestrator is None:
        orchestrator = ScoringOrchestrator.from_config(config)

    tasks = [orchestrator.submit(request, notifier) for request in parsed]
    results = await asyncio.gather(*tasks)
    scored = sum(1 for r in results if r is not None)
    logger.info("Scored %d of %d results", scored, len(parsed))
    return list(results)
