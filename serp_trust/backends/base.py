"""Abstract backend protocol and registry for scoring services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from serp_trust.backoff import BackoffCaller


class Backend(ABC):
    """Scoring service that turns chat messages into a text answer.

    Subclasses must set ``name`` and implement ``complete``. Every call to
    the remote service goes through the backend's :class:`BackoffCaller`.

    Parameters
    ----------
    caller : BackoffCaller | None
        Retry driver; a default 5-attempt caller is used when omitted.
    """

    name: str = ""

    def __init__(self, caller: BackoffCaller | None = None) -> None:
        self._caller = caller or BackoffCaller()

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        grounding: bool = False,
    ) -> str:
        """Return the service's text response.

        Parameters
        ----------
        messages : list[dict[str, str]]
            Chat messages (``role`` / ``content`` dicts). The ``system``
            message carries the policy instructions.
        model : str | None
            Override the default model for this call.
        temperature : float
            Sampling temperature.
        max_tokens : int
            Maximum tokens in the response.
        grounding : bool
            Request web-search grounding where the service supports it.

        Returns
        -------
        str
            The text completion, possibly empty.

        Raises
        ------
        TerminalServiceError
            On a non-retryable failure or once retries are exhausted.
        """


class BackendRegistry:
    """Discover and instantiate registered scoring backends."""

    _backends: dict[str, type[Backend]] = {}

    @classmethod
    def register(cls, name: str):
        """Class decorator that registers a backend under *name*.

        Parameters
        ----------
        name : str
            Lookup key used in configuration files.

        Returns
        -------
        Callable
            The original class, unmodified.
        """

        def decorator(klass: type[Backend]) -> type[Backend]:
            cls._backends[name] = klass
            return klass

        return decorator

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> Backend:
        """Instantiate a registered backend.

        Parameters
        ----------
        name : str
            Registered backend name.
        **kwargs
            Forwarded to the backend constructor.

        Returns
        -------
        Backend

        Raises
        ------
        KeyError
            If *name* is not registered.
        """
        if name not in cls._backends:
            available = ", ".join(sorted(cls._backends)) or "(none)"
            msg = f"Unknown backend {name!r}. Available: {available}"
            raise KeyError(msg)
        return cls._backends[name](**kwargs)

    @classmethod
    def available(cls) -> list[str]:
        """Return sorted list of registered backend names."""
        return sorted(cls._backends)
