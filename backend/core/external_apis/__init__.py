"""
HTTP helpers for external services (image classifier).
"""
from .http_retry import post_with_retries

__all__ = [
    "post_with_retries",
]
