"""
POST to the model services with retries.
- Timeouts, connection errors and 502/503/504 (model still loading, gateway
  restarting) are retried with exponential backoff.
- A numeric Retry-After header replaces the computed delay, up to MAX_BACKOFF.
- Other statuses (4xx, 500) go straight back to the caller.
"""
import logging
import time
from typing import Any, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF = 1.0
MAX_BACKOFF = 30.0
RETRYABLE_STATUSES = frozenset({502, 503, 504})


def _retry_after(resp: requests.Response) -> Optional[float]:
    value = (resp.headers or {}).get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        # HTTP-date form; fall back to exponential backoff
        return None


def post_with_retries(
    url: str,
    json: Optional[Any] = None,
    timeout: int = 30,
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
) -> Tuple[Optional[requests.Response], Optional[str]]:
    """
    Returns (response, None) once a response is final: success, a non-retryable
    status, or a retryable status on the last attempt. Returns (None, error_message)
    when every attempt failed at the transport level.
    """
    last_error: Optional[str] = None
    for attempt in range(max_retries):
        last_attempt = attempt == max_retries - 1
        delay = initial_backoff * (2 ** attempt)
        try:
            resp = requests.post(url, json=json, timeout=timeout)
        except requests.Timeout as e:
            last_error = f"Read timed out: {e}"
        except requests.RequestException as e:
            last_error = f"{type(e).__name__}: {e}"
        else:
            if resp.status_code not in RETRYABLE_STATUSES or last_attempt:
                return (resp, None)
            last_error = f"HTTP {resp.status_code}"
            hinted = _retry_after(resp)
            if hinted is not None:
                delay = hinted
        logger.warning(
            "EXTERNAL_API retry attempt=%s/%s url=%s error=%s",
            attempt + 1, max_retries, url[:60], last_error,
        )
        if not last_attempt:
            delay = min(delay, MAX_BACKOFF)
            logger.info("EXTERNAL_API backoff %.1fs before retry", delay)
            time.sleep(delay)
    return (None, last_error)
