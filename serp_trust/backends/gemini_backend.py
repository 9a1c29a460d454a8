"""Gemini ``generateContent`` backend with search grounding."""

from __future__ import annotations

import logging
import os
from typing import Any

from serp_trust.backends.base import Backend, BackendRegistry
from serp_trust.backoff import BackoffCaller
from serp_trust.errors import EmptyResponseError, TerminalServiceError

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


@BackendRegistry.register("gemini")
class GeminiBackend(Backend):
    """Backend calling the Gemini REST API directly over HTTP.

    Parameters
    ----------
    model : str
        Default model identifier.
    api_key : str | None
        API key. Falls back to ``GEMINI_API_KEY`` then ``GOOGLE_API_KEY``.
    base_url : str
        API root, overridable for proxies and tests.
    caller : BackoffCaller | None
        Retry driver used for every request.
    """

    name = "gemini"

    def __init__(
        self,
        model: str = "gemini-2.5-flash-preview-05-20",
        api_key: str | None = None,
        base_url: str = GEMINI_BASE_URL,
        caller: BackoffCaller | None = None,
    ) -> None:
        super().__init__(caller)
        self._model = model
        self._api_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY", "")
        self._base_url = base_url.rstrip("/")

    def build_payload(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        grounding: bool = False,
    ) -> dict[str, Any]:
        """Translate chat messages into a ``generateContent`` request body."""
        system_parts = [{"text": m["content"]} for m in messages if m["role"] == "system"]
        contents = [
            {"role": "model" if m["role"] == "assistant" else "user", "parts": [{"text": m["content"]}]}
            for m in messages
            if m["role"] != "system"
        ]
        payload: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }
        if grounding:
            payload["tools"] = [{"google_search": {}}]
        if system_parts:
            payload["systemInstruction"] = {"parts": system_parts}
        return payload

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        grounding: bool = False,
    ) -> str:
        """Call ``models/<model>:generateContent`` and return the first candidate's text."""
        used_model = model or self._model
        endpoint = f"{self._base_url}/models/{used_model}:generateContent?key={self._api_key}"
        payload = self.build_payload(messages, temperature=temperature, max_tokens=max_tokens, grounding=grounding)

        logger.debug("Gemini request model=%s messages=%d grounding=%s", used_model, len(messages), grounding)
        data = await self._caller.call(payload, endpoint)
        text = _candidate_text(data)
        if not text.strip():
            msg = "Empty response from the Gemini API"
            raise EmptyResponseError(msg)
        return text


def _candidate_text(data: Any) -> str:
    """Concatenate the text parts of the first candidate."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        if isinstance(data, dict) and data.get("promptFeedback"):
            msg = f"Request blocked by the scoring service: {data['promptFeedback']}"
            raise TerminalServiceError(msg) from None
        return ""
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
