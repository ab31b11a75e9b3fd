"""Scraper utilities for price normalization, retries and user agents.

The browser manager is imported from its own module so that API-only
deployments do not load Playwright.
"""

from .normalizer import (
    PriceNormalizer,
    normalize_query,
    normalize_whitespace,
)
from .retry import http_retry
from .user_agents import USER_AGENTS, get_random_user_agent


__all__ = [
    # Normalization
    "PriceNormalizer",
    "normalize_query",
    "normalize_whitespace",
    # Retry decorators
    "http_retry",
    # User agents
    "USER_AGENTS",
    "get_random_user_agent",
]
