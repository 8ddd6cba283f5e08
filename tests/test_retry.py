import io
import threading
import time

from spkit.request import NO_RETRY_HEADER, RETRY_HEADER, SPRequest
from spkit.retry import retry_policy, should_retry

import requests


def _response(status, headers=None):
    resp = requests.Response()
    resp.status_code = status
    resp.headers.update(headers or {})
    resp.raw = io.BytesIO(b"")
    return resp


def test_default_policies():
    assert retry_policy(None, 503) == 10
    assert retry_policy(None, 429) == 5
    assert retry_policy(None, 404) == 0


def test_custom_policy_overrides_and_falls_back():
    custom = {503: 3}
    assert retry_policy(custom, 503) == 3
    assert retry_policy(custom, 429) == retry_policy(None, 429)
    assert retry_policy({}, 503) == retry_policy(None, 503)


def test_no_retry_header_disables_retry():
    req = SPRequest("GET", "http://localhost/", {NO_RETRY_HEADER: "true"})
    assert should_retry(req, _response(503), 3) is False
    assert RETRY_HEADER not in req.headers


def test_missing_response_is_not_retried():
    req = SPRequest("GET", "http://localhost/")
    assert should_retry(req, None, 3) is False


def test_retry_bumps_counter():
    req = SPRequest("GET", "http://localhost/")
    assert should_retry(req, _response(503), 3) is True
    assert req.headers[RETRY_HEADER] == "1"


def test_retry_limit_reached():
    req = SPRequest("GET", "http://localhost/", {RETRY_HEADER: "3"})
    assert should_retry(req, _response(503), 3) is False
    assert req.headers[RETRY_HEADER] == "3"


def test_cancelled_request_is_not_retried():
    cancel = threading.Event()
    cancel.set()
    req = SPRequest("GET", "http://localhost/", cancel=cancel)
    assert should_retry(req, _response(429, {"Retry-After": "5"}), 3) is False


def test_cancel_interrupts_retry_after_wait():
    cancel = threading.Event()
    req = SPRequest("GET", "http://localhost/", cancel=cancel)
    timer = threading.Timer(0.2, cancel.set)
    timer.start()
    started = time.monotonic()
    try:
        result = should_retry(req, _response(429, {"Retry-After": "5"}), 3)
    finally:
        timer.cancel()
    assert result is False
    assert time.monotonic() - started < 2