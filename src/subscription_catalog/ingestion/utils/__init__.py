"""Ingestion utilities."""

from subscription_catalog.ingestion.utils.rate_limiter import RateLimiter, RateLimiterConfig

__all__ = ["RateLimiter", "RateLimiterConfig"]
