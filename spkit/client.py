"""SharePoint HTTP client: authentication, default headers, retries and hooks."""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Mapping, Optional, Tuple, Union

import requests

from spkit.digest import DigestError, get_digest
from spkit.hooks import HookHandlers
from spkit.request import NO_RETRY_HEADER, RETRY_HEADER, SPRequest
from spkit.retry import retry_policy, should_retry

VERSION = "1.0.0"

_DIGEST_METHODS = ("POST", "PATCH", "MERGE")
_INT = re.compile(r"[+-]?\d+")


class RequestError(Exception):
    """A request failed; carries the status code and the response, if any."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        response: Optional[requests.Response] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class AuthConfig(ABC):
    """An authentication strategy plugged into an SPClient."""

    @abstractmethod
    def get_auth(self) -> Tuple[str, int]:
        """Return the token, cookie or header value and its expiration."""

    @abstractmethod
    def set_auth(self, request: SPRequest, client: "SPClient") -> None:
        """Enrich a request with authentication; raise on failure."""

    @abstractmethod
    def parse_config(self, data: bytes) -> None:
        """Read credentials from JSON content."""

    @abstractmethod
    def read_config(self, path: str) -> None:
        """Read credentials from a file."""

    @abstractmethod
    def site_url(self) -> str:
        """Return the site URL the client targets."""

    @abstractmethod
    def strategy(self) -> str:
        """Return the strategy code."""


def _to_int(value: Optional[str]) -> int:
    if value is None or not _INT.fullmatch(value):
        return 0
    return int(value)


def _unescape(details: str) -> Optional[str]:
    try:
        return json.loads('"' + details.replace('"', '\\"') + '"')
    except ValueError:
        return None


class SPClient:
    """Sends requests to SharePoint with auth, default headers, retries and hooks."""

    def __init__(
        self,
        auth: AuthConfig,
        config_path: str = "",
        retry_policies: Optional[Mapping[int, int]] = None,
        hooks: Optional[HookHandlers] = None,
        timeout: Union[float, Tuple[float, float], None] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.auth = auth
        self.config_path = config_path
        self.retry_policies = retry_policies
        self.hooks = hooks
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def execute(self, request: SPRequest) -> requests.Response:
        """Send ``request``; raise RequestError for failures and non-2xx responses."""
        while True:
            self._prepare(request, datetime.now())
            started = datetime.now()
            response = self._send(request, started)
            status = response.status_code

            retries = retry_policy(self.retry_policies, status)
            if retries > 0:
                if (
                    status == 429
                    and _to_int(request.headers.get(RETRY_HEADER)) < retries
                    and request.headers.get(NO_RETRY_HEADER) != "true"
                ):
                    self._emit("error", request, started, status)
                if should_retry(request, response, retries):
                    self._emit("retry", request, started, status)
                    continue

            if not 200 <= status < 300:
                error = RequestError(self._error_message(response), status, response)
                self._emit("error", request, started, status, error)
                self._emit("response", request, started, status, error)
                raise error

            self._emit("response", request, started, status)
            return response

    def _prepare(self, request: SPRequest, started: datetime) -> None:
        try:
            self._apply_auth(request)
        except RequestError as exc:
            self._emit("error", request, started, 0, exc)
            raise
        try:
            self._apply_headers(request)
        except (DigestError, RequestError) as exc:
            error = RequestError(str(exc), 400)
            self._emit("error", request, started, 0, error)
            raise error from exc
        self._emit("request", request, started)

    def _send(self, request: SPRequest, started: datetime) -> requests.Response:
        if request.cancelled():
            error = RequestError("context canceled")
            self._emit("error", request, started, 0, error)
            raise error
        try:
            return self.session.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                data=request.body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            error = RequestError(str(exc))
            self._emit("error", request, started, 0, error)
            raise error from exc

    def _apply_auth(self, request: SPRequest) -> None:
        if self.config_path and not self.auth.site_url():
            try:
                self.auth.read_config(self.config_path)
            except Exception:
                pass
        if not self.auth.site_url():
            raise RequestError(
                "client initialization error, no siteUrl is provided", 400
            )
        try:
            self.auth.set_auth(request, self)
        except Exception as exc:
            raise RequestError(str(exc), 401) from exc

    def _apply_headers(self, request: SPRequest) -> None:
        headers = request.headers
        digest_required = (
            request.method in _DIGEST_METHODS
            and "/_api/contextinfo" not in request.path().lower()
            and not headers.get("X-RequestDigest")
        )
        if digest_required:
            headers["X-RequestDigest"] = get_digest(self, request.cancel)

        defaults = {
            "Accept": "application/json",
            "Content-Type": "application/json;odata=verbose;charset=utf-8",
            "X-ClientService-ClientTag": f"spkit:@{VERSION}",
            "User-Agent": f"NONISV|Python|spkit/@{VERSION}",
        }
        for name, value in defaults.items():
            if not headers.get(name):
                headers[name] = value

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        status = f"{response.status_code} {response.reason or ''}".rstrip()
        details = response.content.decode("utf-8", errors="replace")
        unescaped = _unescape(details)
        return f"{status} :: {unescaped if unescaped is not None else details}"

    def _emit(
        self,
        name: str,
        request: SPRequest,
        started: datetime,
        status_code: int = 0,
        error: Optional[BaseException] = None,
    ) -> None:
        if self.hooks is not None:
            self.hooks.emit(name, request, started, status_code, error)