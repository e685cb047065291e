"""Document conversion (PDF -> markdown) with shared upload rate limiting."""

from ocw_pipeline.conversion.llamaparse import DocumentConverter
from ocw_pipeline.conversion.rate_limiter import SlidingWindowRateLimiter

__all__ = ["DocumentConverter", "SlidingWindowRateLimiter"]
