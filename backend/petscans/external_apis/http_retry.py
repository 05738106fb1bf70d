"""
HTTP GET/POST with retries and exponential backoff for external providers.
Only timeouts and connection errors are retried; any HTTP response is returned
to the caller, which maps status codes to provider errors.
"""
import logging
import time
from typing import Any, Callable, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF = 1.0


def _with_retries(
    send: Callable[[], requests.Response],
    url: str,
    max_retries: int,
    initial_backoff: float,
) -> Tuple[Optional[requests.Response], Optional[str]]:
    last_error: Optional[str] = None
    for attempt in range(max_retries):
        try:
            return (send(), None)
        except requests.Timeout as e:
            last_error = f"Read timed out: {e}"
        except requests.RequestException as e:
            last_error = f"{type(e).__name__}: {e}"
        logger.warning(
            "EXTERNAL_API retry attempt=%s/%s url=%s error=%s",
            attempt + 1, max_retries, url[:60], last_error,
        )
        if attempt < max_retries - 1:
            delay = initial_backoff * (2 ** attempt)
            logger.info("EXTERNAL_API backoff %.1fs before retry", delay)
            time.sleep(delay)
    return (None, last_error)


def get_with_retries(
    url: str,
    params: Optional[dict] = None,
    headers: Optional[dict] = None,
    timeout: int = 10,
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
) -> Tuple[Optional[requests.Response], Optional[str]]:
    """Returns (response, None) on any HTTP response, (None, error_message) when every attempt failed."""
    return _with_retries(
        lambda: requests.get(url, params=params or {}, headers=headers or {}, timeout=timeout),
        url, max_retries, initial_backoff,
    )


def post_with_retries(
    url: str,
    json_body: Any = None,
    headers: Optional[dict] = None,
    timeout: int = 10,
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
) -> Tuple[Optional[requests.Response], Optional[str]]:
    """POST counterpart of get_with_retries."""
    return _with_retries(
        lambda: requests.post(url, json=json_body, headers=headers or {}, timeout=timeout),
        url, max_retries, initial_backoff,
    )
