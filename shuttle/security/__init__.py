"""
Request Intake Security Module

Shared protection for every endpoint that accepts untrusted input:

- rate_limiter.py: in-process sliding window limiter and the per-endpoint limiter registry
- sanitization.py: total, side-effect free transforms from raw input to safe values
- validation.py: per-endpoint rule sets returning the full list of violated rules
- dependencies.py: FastAPI helpers (client identification, limiter lookup, throttling)
"""

from .rate_limiter import RateLimiter, RateLimiterRegistry
from .validation import ValidationResult

__all__ = [
    "RateLimiter",
    "RateLimiterRegistry",
    "ValidationResult",
]
