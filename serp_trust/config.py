"""Unified configuration for the scoring pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_MODEL = "gemini-2.5-flash-preview-05-20"
DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60

# Backend constructor arguments set from dedicated fields, never from ``extra``.
RESERVED_BACKEND_KWARGS = frozenset({"model", "api_key", "caller"})


@dataclass
class BackendConfig:
    """Scoring service backend configuration.

    Parameters
    ----------
    type : str
        Registered backend name (``"gemini"``, ``"openai"``, ``"anthropic"``,
        ``"litellm"``).
    model : str
        Model identifier passed to the backend.
    api_key : str
        API key for the backend. Empty string defers to the SDK's own
        environment lookup.
    temperature : float
        Sampling temperature.
    max_tokens : int
        Maximum tokens per completion.
    grounding : bool
        Ask the service to ground its answer with web search, where supported.
    extra : dict
        Additional kwargs forwarded to the backend constructor.
    """

    type: str = "gemini"
    model: str = DEFAULT_MODEL
    api_key: str = ""
    temperature: float = 0.0
    max_tokens: int = 4096
    grounding: bool = True
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.type:
            msg = "backend type must be a non-empty string"
            raise ValueError(msg)
        if not self.model:
            msg = "model must be a non-empty string"
            raise ValueError(msg)
        if self.temperature < 0:
            msg = f"temperature must be >= 0, got {self.temperature}"
            raise ValueError(msg)
        if self.max_tokens <= 0:
            msg = f"max_tokens must be > 0, got {self.max_tokens}"
            raise ValueError(msg)
        reserved = sorted(RESERVED_BACKEND_KWARGS.intersection(self.extra))
        if reserved:
            msg = f"backend extra must not set {', '.join(reserved)}; use the dedicated backend fields"
            raise ValueError(msg)


@dataclass
class RetryConfig:
    """Backoff settings for calls to the scoring service.

    Parameters
    ----------
    max_attempts : int
        Total attempts, including the first one.
    base_delay : float
        Delay in seconds before the second attempt; doubles after each failure.
    """

    max_attempts: int = 5
    base_delay: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {self.max_attempts}"
            raise ValueError(msg)
        if self.base_delay < 0:
            msg = f"base_delay must be >= 0, got {self.base_delay}"
            raise ValueError(msg)


@dataclass
class CacheConfig:
    """Score cache settings.

    Parameters
    ----------
    type : str
        ``"memory"`` or ``"file"``.
    directory : str
        Directory for the file cache. Ignored by the memory cache.
    ttl_seconds : float
        Entries at least this old are treated as absent.
    """

    type: str = "memory"
    directory: str = ".serp_trust_cache"
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS

    def __post_init__(self) -> None:
        if self.type not in {"memory", "file"}:
            msg = f"cache type must be 'memory' or 'file', got {self.type!r}"
            raise ValueError(msg)
        if self.ttl_seconds <= 0:
            msg = f"ttl_seconds must be > 0, got {self.ttl_seconds}"
            raise ValueError(msg)


@dataclass
class EvidenceConfig:
    """Fact-check lookup settings used by the NEWS policy.

    Parameters
    ----------
    enabled : bool
        Query the fact-check service at all.
    api_key : str
        Google Fact Check Tools API key.
    endpoint : str
        Claim search endpoint.
    timeout : float
        Per-request timeout in seconds.
    """

    enabled: bool = True
    api_key: str = ""
    endpoint: str = "https://factchecktools.googleapis.com/v1alpha1/claims:search"
    timeout: float = 10.0


@dataclass
class CategoryConfig:
    """Per-category prompt selection.

    Parameters
    ----------
    prompt : str
        Name of a registered prompt. Empty string uses the policy's own
        template.
    """

    prompt: str = ""


@dataclass
class TrustConfig:
    """Top-level configuration.

    Parameters
    ----------
    backend : BackendConfig
        Scoring service settings.
    retry : RetryConfig
        Backoff settings.
    cache : CacheConfig
        Cache settings.
    evidence : EvidenceConfig
        Fact-check settings.
    categories : dict[str, CategoryConfig]
        Prompt overrides keyed by category value (``"news"``, ``"academic"``).
    low_credibility_hosts : list[str]
        Hosts the ACADEMIC policy treats as low-credibility publishers.
    """

    backend: BackendConfig = field(default_factory=BackendConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    evidence: EvidenceConfig = field(default_factory=EvidenceConfig)
    categories: dict[str, CategoryConfig] = field(default_factory=dict)
    low_credibility_hosts: list[str] = field(default_factory=list)


def load_config(source: str | Path | dict[str, Any] | TrustConfig | None = None) -> TrustConfig:
    """Load a TrustConfig from a YAML file, dict, or environment variables.

    Environment variables (``TRUST_*``) take precedence over values from
    *source*.

    Parameters
    ----------
    source : str | Path | dict | TrustConfig | None
        A path to a YAML file, a raw dict, an existing config (returned
        unchanged), or ``None`` to use only environment variable overrides
        on defaults.

    Returns
    -------
    TrustConfig

    Raises
    ------
    ValueError
        If a value fails validation.
    """
    if isinstance(source, TrustConfig):
        return source

    raw: dict[str, Any] = {}

    if isinstance(source, dict):
        raw = source
    elif source is not None:
        path = Path(source)
        if path.is_file():
            raw = _load_yaml(path)

    backend_raw = raw.get("backend", {})
    backend_known = {"type", "model", "api_key", "temperature", "max_tokens", "grounding"}
    backend = BackendConfig(
        type=os.environ.get("TRUST_BACKEND_TYPE", backend_raw.get("type", "gemini")),
        model=os.environ.get("TRUST_BACKEND_MODEL", backend_raw.get("model", DEFAULT_MODEL)),
        api_key=os.environ.get("TRUST_BACKEND_API_KEY", backend_raw.get("api_key", "")),
        temperature=float(os.environ.get("TRUST_BACKEND_TEMPERATURE", backend_raw.get("temperature", 0.0))),
        max_tokens=int(os.environ.get("TRUST_BACKEND_MAX_TOKENS", backend_raw.get("max_tokens", 4096))),
        grounding=bool(backend_raw.get("grounding", True)),
        extra={k: v for k, v in backend_raw.items() if k not in backend_known},
    )

    retry_raw = raw.get("retry", {})
    retry = RetryConfig(
        max_attempts=int(os.environ.get("TRUST_RETRY_MAX_ATTEMPTS", retry_raw.get("max_attempts", 5))),
        base_delay=float(os.environ.get("TRUST_RETRY_BASE_DELAY", retry_raw.get("base_delay", 2.0))),
    )

    cache_raw = raw.get("cache", {})
    cache = CacheConfig(
        type=os.environ.get("TRUST_CACHE_TYPE", cache_raw.get("type", "memory")),
        directory=os.environ.get("TRUST_CACHE_DIRECTORY", cache_raw.get("directory", ".serp_trust_cache")),
        ttl_seconds=float(
            os.environ.get("TRUST_CACHE_TTL_SECONDS", cache_raw.get("ttl_seconds", DEFAULT_CACHE_TTL_SECONDS))
        ),
    )

    evidence_raw = raw.get("evidence", {})
    evidence = EvidenceConfig(
        enabled=bool(evidence_raw.get("enabled", True)),
        api_key=os.environ.get("TRUST_FACTCHECK_API_KEY", evidence_raw.get("api_key", "")),
        endpoint=evidence_raw.get("endpoint", EvidenceConfig.endpoint),
        timeout=float(evidence_raw.get("timeout", 10.0)),
    )

    categories_raw = raw.get("categories", {})
    categories = {name: CategoryConfig(prompt=cfg.get("prompt", "")) for name, cfg in categories_raw.items()}

    return TrustConfig(
        backend=backend,
        retry=retry,
        cache=cache,
        evidence=evidence,
        categories=categories,
        low_credibility_hosts=list(raw.get("low_credibility_hosts", [])),
    )


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file using PyYAML."""
    with open(path, encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}
