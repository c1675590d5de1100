"""
Shared helpers: JSON recovery, filesystem access, rate limiting, logging
"""

from .llm_parsing import LLMResponseParser, ExpectedShape
from .rate_limiter import RateLimiter, ProviderRateLimitManager
from .log_setup import setup_generation_logging

__all__ = [
    "LLMResponseParser",
    "ExpectedShape",
    "RateLimiter",
    "ProviderRateLimitManager",
    "setup_generation_logging",
]
