"""The request object sent through an SPClient."""

from __future__ import annotations

import threading
from typing import Mapping, Optional, Union
from urllib.parse import urlsplit

from requests.structures import CaseInsensitiveDict

RETRY_HEADER = "X-Spkit-Retry"
NO_RETRY_HEADER = "X-Spkit-NoRetry"
NO_HOOKS_HEADER = "X-Spkit-NoHooks"


class SPRequest:
    """An HTTP request with case-insensitive headers and an optional cancel event."""

    def __init__(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Union[bytes, str, None] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self.method = method
        self.url = url
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict(headers or {})
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.body: Optional[bytes] = body
        self.cancel = cancel

    def cancelled(self) -> bool:
        """Return True when the cancel event has been set."""
        return self.cancel is not None and self.cancel.is_set()

    def path(self) -> str:
        """Return the path component of the request URL."""
        return urlsplit(self.url).path

    def __repr__(self) -> str:
        return f"SPRequest({self.method!r}, {self.url!r})"