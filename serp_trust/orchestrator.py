"""ScoringOrchestrator: cache-before-compute scoring of search results."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

from serp_trust.backends import BackendRegistry
from serp_trust.backends.base import Backend
from serp_trust.backoff import BackoffCaller, RetryPolicy
from serp_trust.badge import rendering_hint
from serp_trust.cache import Cache, MemoryCache, create_cache
from serp_trust.config import TrustConfig, load_config
from serp_trust.errors import EmptyResponseError, FormatError
from serp_trust.evidence import EvidenceDigest, EvidenceSource, EvidenceStatus, FactCheckClient, NullEvidenceSource
from serp_trust.lifecycle import Notifier, RequestLifecycleTracker
from serp_trust.models import ANALYZE_RESULT, AnalysisRequest, Category, InjectBadge, ScoreResult
from serp_trust.parser import parse_response
from serp_trust.policies import FactorWeights, PolicySelector, ScoringPolicy
from serp_trust.prompt_registry import load_prompt, prompt_name_for
from serp_trust.prompts import PromptSpec, render

logger = logging.getLogger(__name__)

# Largest tolerated gap between the reported score and the weighted factor scores.
MAX_FACTOR_DEVIATION = 15


class RequestState(Enum):
    """Stages a request passes through inside :meth:`ScoringOrchestrator.analyze`."""

    RECEIVED = "received"
    CACHE_CHECK = "cache_check"
    CACHED = "cached"
    FETCHING_EVIDENCE = "fetching_evidence"
    CALLING_SERVICE = "calling_service"
    PARSING = "parsing"
    CACHING = "caching"
    NOTIFIED_FINAL = "notified_final"
    ABANDONED = "abandoned"


class ScoringOrchestrator:
    """Score search results and notify their source in two phases.

    Each request is served from the cache when a fresh entry exists.
    Otherwise the caller is told scoring has started (``SHOW_LOADING``),
    the category policy builds a prompt, the scoring service is called
    through the backend's backoff caller, and the parsed score is sent back
    (``INJECT_BADGE``). Failures while computing are logged and leave the
    caller in its loading state.

    Parameters
    ----------
    backend : Backend
        Scoring service client.
    cache : Cache | None
        Score cache. Defaults to an in-memory cache.
    evidence : EvidenceSource | None
        Fact-check lookup used by policies that require evidence.
    selector : PolicySelector | None
        Category to policy mapping.
    tracker : RequestLifecycleTracker | None
        Notification state per request id.
    prompt_overrides : dict[Category, str] | None
        Registered prompt name per category, taking precedence over the
        category's prompt in the prompt registry.
    model : str | None
        Model override passed to the backend.
    temperature : float
        Sampling temperature.
    max_tokens : int
        Maximum tokens per completion.
    grounding : bool
        Ask the backend for search grounding.
    """

    def __init__(
        self,
        backend: Backend,
        *,
        cache: Cache | None = None,
        evidence: EvidenceSource | None = None,
        selector: PolicySelector | None = None,
        tracker: RequestLifecycleTracker | None = None,
        prompt_overrides: dict[Category, str] | None = None,
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        grounding: bool = True,
    ) -> None:
        self._backend = backend
        self._cache = cache if cache is not None else MemoryCache()
        self._evidence = evidence or NullEvidenceSource()
        self._selector = selector or PolicySelector()
        self._tracker = tracker or RequestLifecycleTracker()
        self._prompt_overrides = prompt_overrides or {}
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._grounding = grounding
        self._prompt_specs: dict[str, PromptSpec] = {}
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: TrustConfig | dict | str | None = None) -> ScoringOrchestrator:
        """Construct an orchestrator from a config object or raw source.

        Parameters
        ----------
        config : TrustConfig | dict | str | None
            A ``TrustConfig``, a dict, a YAML file path, or ``None``
            for defaults.

        Returns
        -------
        ScoringOrchestrator
        """
        if not isinstance(config, TrustConfig):
            config = load_config(config)

        caller = BackoffCaller(RetryPolicy.from_config(config.retry))
        backend_kwargs: dict[str, Any] = {**config.backend.extra, "model": config.backend.model, "caller": caller}
        if config.backend.api_key:
            backend_kwargs["api_key"] = config.backend.api_key
        backend = BackendRegistry.create(config.backend.type, **backend_kwargs)

        selector = PolicySelector({Category.ACADEMIC: {"low_credibility_hosts": config.low_credibility_hosts}})
        prompt_overrides = {
            Category.parse(name): category.prompt for name, category in config.categories.items() if category.prompt
        }

        return cls(
            backend,
            cache=create_cache(config.cache),
            evidence=FactCheckClient.from_config(config.evidence),
            selector=selector,
            prompt_overrides=prompt_overrides,
            model=config.backend.model,
            temperature=config.backend.temperature,
            max_tokens=config.backend.max_tokens,
            grounding=config.backend.grounding,
        )

    @property
    def tracker(self) -> RequestLifecycleTracker:
        return self._tracker

    async def analyze(self, request: AnalysisRequest, notifier: Notifier) -> ScoreResult | None:
        """Score *request* and notify *notifier*.

        Parameters
        ----------
        request : AnalysisRequest
            Result to score.
        notifier : Notifier
            Channel back to the item source.

        Returns
        -------
        ScoreResult | None
            The delivered result, or ``None`` when the request was a
            duplicate, was abandoned, or failed while computing.

        Raises
        ------
        UnsupportedCategoryError
            If no policy handles the request's category. Nothing is sent
            and the scoring service is not called.
        """
        if self._tracker.open(request.id) is None:
            return None

        try:
            cached = await self._cache.get(request.url)
            if cached is not None:
                logger.debug("%s: %s", request.id, RequestState.CACHED.value)
                await self._notify_final(notifier, request, cached)
                return cached

            policy = self._selector.select(request.category)
        except Exception:
            self._tracker.abandon(request.id)
            raise

        if not await self._tracker.send_loading(notifier, request.id):
            return None

        try:
            result = await self._compute(request, policy)
        except Exception:
            logger.exception("Scoring failed for %s (%s); leaving it in the loading state", request.id, request.url)
            self._tracker.abandon(request.id)
            return None

        await self._notify_final(notifier, request, result)
        logger.debug("%s: %s", request.id, RequestState.NOTIFIED_FINAL.value)
        return result

    async def _compute(self, request: AnalysisRequest, policy: ScoringPolicy) -> ScoreResult:
        """Run the evidence, service, parse and cache stages for a cache miss."""
        evidence = EvidenceDigest(status=EvidenceStatus.NOT_APPLICABLE)
        if policy.requires_evidence:
            logger.debug("%s: %s", request.id, RequestState.FETCHING_EVIDENCE.value)
            evidence = await self._evidence.lookup(request.url)

        weights = policy.weights(policy.assess(request, evidence))
        logger.debug("%s: weights %d/%d (%s)", request.id, weights.factor_a, weights.factor_b, weights.rule)
        messages = render(self._prompt_for(policy), policy.prompt_variables(request, evidence, weights))

        logger.debug("%s: %s", request.id, RequestState.CALLING_SERVICE.value)
        text = await self._backend.complete(
            messages,
            model=self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            grounding=self._grounding,
        )
        if not text.strip():
            msg = f"Scoring service returned no text for {request.url}"
            raise EmptyResponseError(msg)

        logger.debug("%s: %s", request.id, RequestState.PARSING.value)
        try:
            result = parse_response(text)
        except FormatError:
            return ScoreResult.format_error()
        self._check_factors(request, policy, weights, result)

        if result.is_cacheable:
            logger.debug("%s: %s", request.id, RequestState.CACHING.value)
            await self._cache.put(request.url, result)
        else:
            logger.info("Not caching result for %s (score %d)", request.url, result.score)
        return result

    def _prompt_for(self, policy: ScoringPolicy) -> PromptSpec:
        name = self._prompt_overrides.get(policy.category) or prompt_name_for(policy.category)
        if name not in self._prompt_specs:
            self._prompt_specs[name] = load_prompt(name)
        return self._prompt_specs[name]

    @staticmethod
    def _check_factors(
        request: AnalysisRequest,
        policy: ScoringPolicy,
        weights: FactorWeights,
        result: ScoreResult,
    ) -> None:
        """Warn when the reported score disagrees with its own factor scores."""
        if not (result.factor_a or result.factor_b):
            return
        expected = policy.combine(result.factor_a, result.factor_b, weights)
        if abs(expected - result.score) > MAX_FACTOR_DEVIATION:
            logger.warning(
                "Score %d for %s deviates from weighted factors (%d/%d at %d/%d => %d)",
                result.score,
                request.url,
                result.factor_a,
                result.factor_b,
                weights.factor_a,
                weights.factor_b,
                expected,
            )

    async def _notify_final(self, notifier: Notifier, request: AnalysisRequest, result: ScoreResult) -> None:
        event = InjectBadge(
            id=request.id,
            score=result.score,
            summary=result.summary,
            rendering_hint=rendering_hint(result.score),
        )
        await self._tracker.send_final(notifier, event)

    # ------------------------------------------------------------------
    # Message channel entry points
    # ------------------------------------------------------------------

    def handle_message(self, message: dict[str, Any], notifier: Notifier) -> bool:
        """Schedule analysis for an ``ANALYZE_RESULT`` message.

        Parameters
        ----------
        message : dict
            ``{"type": ..., "data": {...}}`` as sent by the item source.
        notifier : Notifier
            Channel back to the sender.

        Returns
        -------
        bool
            ``True`` if an analysis task was scheduled.
        """
        if not isinstance(message, dict) or message.get("type") != ANALYZE_RESULT:
            return False
        try:
            request = AnalysisRequest.from_message(message.get("data") or {})
        except ValueError as exc:
            logger.error("Rejected %s message: %s", ANALYZE_RESULT, exc)
            return False
        self.submit(request, notifier)
        return True

    def submit(self, request: AnalysisRequest, notifier: Notifier) -> asyncio.Task:
        """Run :meth:`analyze` for *request* as an independent task."""
        task = asyncio.create_task(self._guarded(request, notifier), name=f"analyze-{request.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait until every scheduled analysis has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _guarded(self, request: AnalysisRequest, notifier: Notifier) -> ScoreResult | None:
        try:
            return await self.analyze(request, notifier)
        except Exception:
            logger.exception("Analysis of %s (%s) failed", request.id, request.url)
            return None
