"""LiteLLM catch-all backend supporting 100+ providers."""

from __future__ import annotations

import logging
from typing import Any

from serp_trust.backends.base import Backend, BackendRegistry
from serp_trust.backoff import BackoffCaller, classify_status
from serp_trust.errors import TransientServiceError

logger = logging.getLogger(__name__)

try:
    import litellm
    import openai

    _HAS_LITELLM = True
except ImportError:  # pragma: no cover
    _HAS_LITELLM = False


@BackendRegistry.register("litellm")
class LiteLLMBackend(Backend):
    """Backend powered by LiteLLM's unified completion interface.

    Parameters
    ----------
    model : str
        Model identifier in LiteLLM format
        (e.g. ``"bedrock/anthropic.claude-3-5-sonnet-20241022-v2:0"``).
    api_key : str | None
        Provider API key. Falls back to the provider's env var.
    caller : BackoffCaller | None
        Retry driver used for every request.
    """

    name = "litellm"

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str | None = None,
        caller: BackoffCaller | None = None,
    ) -> None:
        if not _HAS_LITELLM:
            msg = "The 'litellm' package is required: pip install litellm"
            raise ImportError(msg)
        super().__init__(caller)
        self._model = model
        self._api_key = api_key

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        grounding: bool = False,
    ) -> str:
        """Call LiteLLM's async completion endpoint. ``grounding`` is ignored."""
        kwargs: dict[str, Any] = {
            "model": model or self._model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if self._api_key:
            kwargs["api_key"] = self._api_key

        async def attempt() -> str:
            # LiteLLM raises subclasses of the OpenAI SDK exceptions for every provider.
            try:
                response = await litellm.acompletion(**kwargs)
            except openai.APIStatusError as exc:
                raise classify_status(exc.status_code, str(exc)) from exc
            except openai.APIConnectionError as exc:
                msg = f"Connection error: {exc}"
                raise TransientServiceError(msg) from exc
            return response.choices[0].message.content or ""

        logger.debug("LiteLLM request model=%s messages=%d", kwargs["model"], len(messages))
        return await self._caller.run(attempt, label=f"litellm:{kwargs['model']}")
