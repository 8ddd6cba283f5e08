import threading

from spkit.request import SPRequest


def test_headers_are_case_insensitive():
    req = SPRequest("GET", "http://localhost/_api/web", {"Accept": "application/json"})
    assert req.headers.get("accept") == "application/json"
    req.headers["x-requestdigest"] = "digest"
    assert req.headers["X-RequestDigest"] == "digest"


def test_path_is_taken_from_url():
    req = SPRequest("GET", "http://localhost:8080/sites/a/_api/web?$select=Title")
    assert req.path() == "/sites/a/_api/web"


def test_cancelled_follows_event():
    cancel = threading.Event()
    req = SPRequest("GET", "http://localhost/", cancel=cancel)
    assert req.cancelled() is False
    cancel.set()
    assert req.cancelled() is True


def test_cancelled_without_event_is_false():
    assert SPRequest("GET", "http://localhost/").cancelled() is False


def test_str_body_is_encoded():
    req = SPRequest("POST", "http://localhost/", body="none-empty")
    assert req.body == b"none-empty"


def test_defaults_are_empty():
    req = SPRequest("GET", "http://localhost/")
    assert req.body is None
    assert len(req.headers) == 0
    assert req.method == "GET"