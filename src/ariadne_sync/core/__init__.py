"""Remote transport: Notion HTTP client and request pacing."""

from .client import NotionClient
from .rate_limit import FixedIntervalRateLimiter, RateLimiter

__all__ = ["FixedIntervalRateLimiter", "NotionClient", "RateLimiter"]
