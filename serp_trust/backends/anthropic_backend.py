"""Anthropic (Claude) backend."""

from __future__ import annotations

import logging
from typing import Any

from serp_trust.backends.base import Backend, BackendRegistry
from serp_trust.backoff import BackoffCaller, classify_status
from serp_trust.errors import TransientServiceError

logger = logging.getLogger(__name__)

try:
    import anthropic

    _HAS_ANTHROPIC = True
except ImportError:  # pragma: no cover
    _HAS_ANTHROPIC = False


@BackendRegistry.register("anthropic")
class AnthropicBackend(Backend):
    """Backend powered by the Anthropic Messages API.

    Parameters
    ----------
    model : str
        Default model identifier.
    api_key : str | None
        Anthropic API key.  Falls back to ``ANTHROPIC_API_KEY`` env var.
    caller : BackoffCaller | None
        Retry driver used for every request.
    """

    name = "anthropic"

    def __init__(
        self,
        model: str = "claude-sonnet-4-5-20250929",
        api_key: str | None = None,
        caller: BackoffCaller | None = None,
    ) -> None:
        if not _HAS_ANTHROPIC:
            msg = "The 'anthropic' package is required: pip install anthropic"
            raise ImportError(msg)
        super().__init__(caller)
        self._model = model
        self._client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        grounding: bool = False,
    ) -> str:
        """Call the Anthropic Messages API.

        With ``grounding`` the server-side web search tool is enabled.
        """
        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        chat_messages = [m for m in messages if m["role"] != "system"]

        kwargs: dict[str, Any] = {
            "model": model or self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": chat_messages,
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)
        if grounding:
            kwargs["tools"] = [{"type": "web_search_20250305", "name": "web_search", "max_uses": 5}]

        async def attempt() -> str:
            try:
                response = await self._client.messages.create(**kwargs)
            except anthropic.APIStatusError as exc:
                raise classify_status(exc.status_code, exc.message) from exc
            except anthropic.APIConnectionError as exc:
                msg = f"Connection error: {exc}"
                raise TransientServiceError(msg) from exc
            # Search tool use interleaves text blocks with tool blocks.
            return "".join(block.text for block in response.content if getattr(block, "type", "") == "text")

        logger.debug("Anthropic request model=%s messages=%d", kwargs["model"], len(chat_messages))
        return await self._caller.run(attempt, label=f"anthropic:{kwargs['model']}")
