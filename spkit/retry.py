"""Retry policies for error responses."""

from __future__ import annotations

import re
import time
from typing import Mapping, Optional

import requests

from spkit.request import NO_RETRY_HEADER, RETRY_HEADER, SPRequest

DEFAULT_RETRY_POLICIES = {
    401: 5,  # Unauthorized
    429: 5,  # Too many requests, throttling
    500: 1,  # Internal Server Error
    503: 10,  # Service Unavailable
    504: 5,  # Gateway Timeout
}

_INT = re.compile(r"[+-]?\d+")


def _to_int(value: Optional[str]) -> int:
    if value is None or not _INT.fullmatch(value):
        return 0
    return int(value)


def retry_policy(custom: Optional[Mapping[int, int]], status_code: int) -> int:
    """Return how many retries a status code allows; custom entries win over defaults."""
    if custom and status_code in custom:
        return custom[status_code]
    return DEFAULT_RETRY_POLICIES.get(status_code, 0)


def should_retry(
    request: SPRequest, response: Optional[requests.Response], retries: int
) -> bool:
    """Decide whether to retry; when so, bump the retry counter and wait first.

    Returns False without waiting further if the request is cancelled meanwhile.
    """
    if request.headers.get(NO_RETRY_HEADER) == "true":
        return False
    retry = _to_int(request.headers.get(RETRY_HEADER))
    if response is None:
        return False
    if retry >= retries:
        return False

    response.close()
    retry_after = 0
    if response.status_code == 429:
        retry_after = _to_int(response.headers.get("Retry-After"))
    request.headers[RETRY_HEADER] = str(retry + 1)

    delay = retry_after if retry_after != 0 else 0.1 * 2**retry
    delay = max(delay, 0)
    if request.cancel is None:
        time.sleep(delay)
        return True
    return not request.cancel.wait(delay)