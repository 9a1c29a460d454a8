"""OpenAI / Azure OpenAI backend."""

from __future__ import annotations

import logging
from typing import Any

from serp_trust.backends.base import Backend, BackendRegistry
from serp_trust.backoff import BackoffCaller, classify_status
from serp_trust.errors import TransientServiceError

logger = logging.getLogger(__name__)

try:
    import openai

    _HAS_OPENAI = True
except ImportError:  # pragma: no cover
    _HAS_OPENAI = False


@BackendRegistry.register("openai")
class OpenAIBackend(Backend):
    """Backend powered by the OpenAI Chat Completions API.

    The SDK's own retries are disabled; the backoff caller owns retrying.

    Parameters
    ----------
    model : str
        Default model identifier (e.g. ``"gpt-4o"``).
    api_key : str | None
        OpenAI API key.  Falls back to ``OPENAI_API_KEY`` env var.
    base_url : str | None
        Custom base URL (for Azure OpenAI or compatible APIs).
    caller : BackoffCaller | None
        Retry driver used for every request.
    """

    name = "openai"

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str | None = None,
        base_url: str | None = None,
        caller: BackoffCaller | None = None,
    ) -> None:
        if not _HAS_OPENAI:
            msg = "The 'openai' package is required: pip install openai"
            raise ImportError(msg)
        super().__init__(caller)
        self._model = model
        kwargs: dict[str, Any] = {"max_retries": 0}
        if api_key:
            kwargs["api_key"] = api_key
        if base_url:
            kwargs["base_url"] = base_url
        self._client = openai.AsyncOpenAI(**kwargs)

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        grounding: bool = False,
    ) -> str:
        """Call the OpenAI Chat Completions API.

        ``grounding`` is ignored; chat completions have no built-in search tool.
        """
        kwargs: dict[str, Any] = {
            "model": model or self._model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        async def attempt() -> str:
            try:
                response = await self._client.chat.completions.create(**kwargs)
            except openai.APIStatusError as exc:
                raise classify_status(exc.status_code, exc.message) from exc
            except openai.APIConnectionError as exc:
                msg = f"Connection error: {exc}"
                raise TransientServiceError(msg) from exc
            return response.choices[0].message.content or ""

        logger.debug("OpenAI request model=%s messages=%d", kwargs["model"], len(messages))
        return await self._caller.run(attempt, label=f"openai:{kwargs['model']}")
