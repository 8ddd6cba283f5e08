"""Fetching and caching the X-RequestDigest form digest value."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from spkit.request import SPRequest

if TYPE_CHECKING:
    from spkit.client import SPClient

_DEFAULT_TTL = 300.0

_cache: Dict[str, Tuple[str, Optional[float]]] = {}
_lock = threading.Lock()


class DigestError(ValueError):
    """Raised when a usable form digest cannot be obtained."""


def clear_digest_cache() -> None:
    """Forget every cached digest."""
    with _lock:
        _cache.clear()


def _cached(key: str) -> Optional[str]:
    with _lock:
        entry = _cache.get(key)
        if entry is None:
            return None
        value, expires = entry
        if expires is not None and expires <= time.monotonic():
            del _cache[key]
            return None
        return value


def _store(key: str, value: str, ttl: float) -> None:
    if ttl == 0:
        ttl = _DEFAULT_TTL
    expires = time.monotonic() + ttl if ttl > 0 else None
    with _lock:
        _cache[key] = (value, expires)


def get_digest(client: "SPClient", cancel: Optional[threading.Event] = None) -> str:
    """Return the site's form digest, requesting ContextInfo when not cached."""
    site_url = client.auth.site_url()
    key = f"{site_url}@digest@{client.auth!r}"
    cached = _cached(key)
    if cached is not None:
        return cached

    request = SPRequest(
        "POST",
        site_url + "/_api/ContextInfo",
        {"Accept": "application/json;odata=verbose"},
        cancel=cancel,
    )
    response = client.execute(request)
    try:
        payload = response.json()
    except ValueError as exc:
        raise DigestError(f"invalid context info response: {exc}") from exc

    info: dict = {}
    if isinstance(payload, dict):
        wrapper = payload.get("d")
        if isinstance(wrapper, dict) and isinstance(
            wrapper.get("GetContextWebInformation"), dict
        ):
            info = wrapper["GetContextWebInformation"]

    value = info.get("FormDigestValue") or ""
    if not value:
        raise DigestError("received empty FormDigestValue")

    try:
        timeout = int(info.get("FormDigestTimeoutSeconds") or 0)
    except (TypeError, ValueError) as exc:
        raise DigestError(f"invalid FormDigestTimeoutSeconds: {exc}") from exc

    _store(key, value, timeout - 60)
    return value