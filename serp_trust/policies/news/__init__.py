"""NEWS scoring policy."""

from serp_trust.policies.news.policy import NewsPolicy, NewsSignals

__all__ = ["NewsPolicy", "NewsSignals"]
