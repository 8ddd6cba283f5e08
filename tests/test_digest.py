import threading
from contextlib import contextmanager
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from spkit.client import AuthConfig, SPClient
from spkit.digest import DigestError, clear_digest_cache, get_digest
from spkit.request import SPRequest

FAKE_INFO = (
    '{"d":{"GetContextWebInformation":{"FormDigestValue":"FAKE",'
    '"FormDigestTimeoutSeconds":120,"LibraryVersion":"FAKE"}}}'
)


@dataclass
class AnonymousConfig(AuthConfig):
    url: str = ""

    def get_auth(self):
        return "", 0

    def set_auth(self, request, client):
        return None

    def parse_config(self, data):
        return None

    def read_config(self, path):
        return None

    def site_url(self):
        return self.url

    def strategy(self):
        return "anonymous"


@contextmanager
def _serve(handler):
    class _Handler(BaseHTTPRequestHandler):
        def _dispatch(self):
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            status, payload = handler(self.command, self.path, self.headers, body)
            data = payload.encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        do_GET = do_POST = _dispatch

        def log_message(self, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_port}"
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_digest_cache()
    yield
    clear_digest_cache()


def _digest_server(info=FAKE_INFO):
    hits = []
    received = {}

    def handler(method, path, headers, body):
        if path == "/_api/ContextInfo":
            hits.append(method)
            return 200, info
        received["digest"] = headers.get("X-RequestDigest")
        return 200, '{ "result": "Cool alfter some retries" }'

    return hits, received, handler


def test_post_triggers_digest():
    hits, received, handler = _digest_server()
    with _serve(handler) as url:
        client = SPClient(AnonymousConfig(url))
        response = client.execute(SPRequest("POST", url + "/_api/post"))
    assert response.status_code == 200
    assert hits == ["POST"]
    assert received["digest"] == "FAKE"


def test_digest_is_cached():
    hits, _, handler = _digest_server()
    with _serve(handler) as url:
        client = SPClient(AnonymousConfig(url))
        first = get_digest(client)
        second = get_digest(client)
    assert first == second == "FAKE"
    assert len(hits) == 1


def test_clear_cache_forces_refetch():
    hits, _, handler = _digest_server()
    with _serve(handler) as url:
        client = SPClient(AnonymousConfig(url))
        first = get_digest(client)
        clear_digest_cache()
        second = get_digest(client)
    assert first == "FAKE"
    assert second == "FAKE"
    assert len(hits) == 2


def test_empty_digest_raises():
    info = (
        '{"d":{"GetContextWebInformation":{"FormDigestValue":"",'
        '"FormDigestTimeoutSeconds":120,"LibraryVersion":"FAKE"}}}'
    )
    _, _, handler = _digest_server(info)
    with _serve(handler) as url:
        client = SPClient(AnonymousConfig(url))
        with pytest.raises(DigestError, match="empty FormDigestValue"):
            get_digest(client)


def test_invalid_json_raises():
    _, _, handler = _digest_server("not json")
    with _serve(handler) as url:
        client = SPClient(AnonymousConfig(url))
        with pytest.raises(DigestError):
            get_digest(client)