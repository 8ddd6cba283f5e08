"""Hook handlers invoked around client requests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from spkit.request import NO_HOOKS_HEADER, SPRequest

_NAMES = ("error", "retry", "request", "response")


@dataclass
class HookEvent:
    """Parameters passed to a hook handler."""

    request: SPRequest
    started_at: datetime
    status_code: int = 0
    error: Optional[BaseException] = None


Handler = Callable[[HookEvent], None]


@dataclass
class HookHandlers:
    """Optional callbacks for request lifecycle events."""

    on_error: Optional[Handler] = None
    on_retry: Optional[Handler] = None
    on_request: Optional[Handler] = None
    on_response: Optional[Handler] = None

    def emit(
        self,
        name: str,
        request: SPRequest,
        started_at: datetime,
        status_code: int = 0,
        error: Optional[BaseException] = None,
    ) -> None:
        """Call the handler for ``name`` unless the request opts out of hooks."""
        if name not in _NAMES:
            raise ValueError(f"unknown hook: {name}")
        if request.headers.get(NO_HOOKS_HEADER) == "true":
            return
        handler = getattr(self, f"on_{name}")
        if handler is not None:
            handler(HookEvent(request, started_at, status_code, error))