"""Scoring policies and the category selector."""

from serp_trust.policies.base import FactorWeights, PolicyRegistry, PolicySelector, ScoreBand, ScoringPolicy

__all__ = ["FactorWeights", "PolicyRegistry", "PolicySelector", "ScoreBand", "ScoringPolicy"]

# Built-in policies register themselves on import.


def _auto_register() -> None:
    """Import built-in policies, triggering their registration decorators."""
    import importlib

    for mod in ("news", "academic"):
        importlib.import_module(f"serp_trust.policies.{mod}")


_auto_register()
