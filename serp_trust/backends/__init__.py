"""Scoring service backend abstraction and registry."""

from serp_trust.backends.base import Backend, BackendRegistry

__all__ = ["Backend", "BackendRegistry"]

# Auto-register concrete backends that are importable.
# Each module registers itself via @BackendRegistry.register on import.


def _auto_register() -> None:
    """Import concrete backends, skipping those whose SDK is missing."""
    import importlib

    for mod in ("gemini_backend", "anthropic_backend", "openai_backend", "litellm_backend"):
        try:
            importlib.import_module(f"serp_trust.backends.{mod}")
        except ImportError:
            pass


_auto_register()
