from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import requests

"""Published-CSV download with bounded retries.

Any response the network layer returns counts as success, whatever its HTTP
status; callers check for a 2xx status themselves. Only transport failures
(timeouts, connection errors, ...) are retried.
"""

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/csv,text/plain,*/*",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


class FetchError(Exception):
    """Raised after every attempt failed; ``__cause__`` is the last error."""

    def __init__(self, url: str, attempts: int, last_error: BaseException) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"download failed after {attempts} attempt(s): {last_error}")

    @property
    def timed_out(self) -> bool:
        return isinstance(self.last_error, requests.Timeout)


def fetch_with_retry(
    url: str,
    timeout: float = 30.0,
    max_attempts: int = 2,
    *,
    backoff_seconds: float = 2.0,
    session: Any = None,
    sleep: Callable[[float], None] = time.sleep,
    on_attempt_failed: Callable[[int, BaseException], None] | None = None,
) -> requests.Response:
    """GET ``url`` with up to ``max_attempts`` sequential attempts.

    Args:
        url: Published CSV URL
        timeout: Per-attempt timeout in seconds (connect + read)
        max_attempts: Total attempts before giving up
        backoff_seconds: Wait before attempt i+1 is ``backoff_seconds * i``
        session: Object with a requests-compatible ``get`` (defaults to ``requests``)
        sleep: Injected for tests
        on_attempt_failed: Called with (attempt, error) after each failed attempt

    Raises:
        ValueError: if ``max_attempts`` < 1
        FetchError: when all attempts failed
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    http = session if session is not None else requests
    last_error: requests.RequestException | None = None

    for attempt in range(1, max_attempts + 1):
        logger.info(f"fetch attempt {attempt}/{max_attempts}: {url}")
        started = time.monotonic()
        try:
            response = http.get(url, headers=DEFAULT_HEADERS, timeout=timeout, allow_redirects=True)
        except requests.RequestException as e:
            last_error = e
            kind = "timeout" if isinstance(e, requests.Timeout) else "error"
            logger.warning(f"fetch attempt {attempt}/{max_attempts} failed ({kind}): {e}")
            if on_attempt_failed is not None:
                on_attempt_failed(attempt, e)
            if attempt < max_attempts:
                delay = backoff_seconds * attempt
                logger.info(f"retrying in {delay:g}s")
                sleep(delay)
            continue

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"fetch attempt {attempt} returned status={response.status_code} in {elapsed_ms}ms")
        return response

    assert last_error is not None
    raise FetchError(url, max_attempts, last_error) from last_error
