"""Shared HTTP client utilities (requests + retry operator).

HTTP retries go through ``RetryOperator``: network errors are retried by
exception kind, retryable status codes through a result predicate.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Optional

import requests

from retryop.domain.config.http import HttpSettings
from retryop.domain.config.retry import RetrySettings
from retryop.infrastructure.retry import new_builder

logger = logging.getLogger(__name__)

# Error kinds are matched by exact class, so the concrete requests subclasses are listed
DEFAULT_RETRY_ON = (
    requests.exceptions.ConnectionError,
    requests.exceptions.ConnectTimeout,
    requests.exceptions.ReadTimeout,
    requests.exceptions.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


def should_retry_status(status_code: Optional[int], retry_statuses: Iterable[int]) -> bool:
    """Check if a response status should trigger another attempt."""
    if status_code is None:
        return False
    # Never retry on auth errors
    if status_code in (401, 403):
        return False
    return status_code in set(retry_statuses)


def get_with_retries(
    url: str,
    *,
    retry: RetrySettings,
    http: Optional[HttpSettings] = None,
    headers: Optional[Dict[str, str]] = None,
    listener: Optional[Callable[[int], None]] = None,
) -> requests.Response:
    """GET ``url``, retrying on network errors and retryable statuses.

    If every attempt yields a retryable status, the last response is returned;
    callers decide what to do with it.

    Args:
        url: Request URL
        retry: Retry policy (attempts, delay, retryable error kinds)
        http: HTTP settings (timeout, retryable statuses, default headers)
        headers: Headers merged over ``http.headers``
        listener: Optional attempt listener

    Returns:
        Final response

    Raises:
        RetryFailure: If the request keeps failing with network errors or
            raises a non-retryable error
    """
    http = http or HttpSettings()
    request_headers = {**http.headers, **(headers or {})}

    def _make_request() -> requests.Response:
        logger.debug(f"HTTP GET {url}")
        return requests.get(url, headers=request_headers, timeout=http.timeout)

    def _retry_condition(resp: requests.Response) -> bool:
        if should_retry_status(resp.status_code, http.retry_statuses):
            logger.warning(f"HTTP GET {url} returned {resp.status_code}")
            return True
        return False

    builder = (
        new_builder()
        .from_settings(retry)
        .operation(_make_request)
        .retry_predicate(_retry_condition)
    )
    if not retry.retry_on:
        builder.retry_on(*DEFAULT_RETRY_ON)
    if listener is not None:
        builder.on_attempt(listener)
    return builder.build().retry()
