"""Trust scoring for search-result listings."""

from serp_trust.api import analyze_results
from serp_trust.config import TrustConfig, load_config
from serp_trust.lifecycle import CallbackNotifier, ChannelNotifier, Notifier
from serp_trust.models import AnalysisRequest, Category, ScoreResult
from serp_trust.orchestrator import ScoringOrchestrator
from serp_trust.prompt_registry import category_prompts, list_prompts, register_prompt

__all__ = [
    "AnalysisRequest",
    "CallbackNotifier",
    "Category",
    "ChannelNotifier",
    "Notifier",
    "ScoreResult",
    "ScoringOrchestrator",
    "TrustConfig",
    "analyze_results",
    "category_prompts",
    "list_prompts",
    "load_config",
    "register_prompt",
]
