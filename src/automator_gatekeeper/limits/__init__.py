"""Per-day action quotas."""
from __future__ import annotations

from automator_gatekeeper.limits.rate_limiter import DEFAULT_LIMIT, DEFAULT_LIMITS, RateLimiter

__all__ = ["DEFAULT_LIMIT", "DEFAULT_LIMITS", "RateLimiter"]
