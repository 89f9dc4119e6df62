"""
Pytest configuration file.

Sets up the Python path so test files can import from the python/ directory,
and provides the stand-ins for cloud identity and the ACR exchange endpoint.
"""
import sys
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import parse_qs

import pytest

# Add python directory to path for all tests
_python_dir = Path(__file__).parent.parent / 'python'
_python_dir_abs = str(_python_dir.absolute())
if _python_dir_abs not in sys.path:
    sys.path.insert(0, _python_dir_abs)

from azure.core.credentials import AccessToken  # noqa: E402


class FakeTokenCredential:
    """Azure token credential returning a fixed token or raising an error"""

    def __init__(self, token="foo", error=None):
        self.token = token
        self.error = error
        self.scopes = []

    def get_token(self, *scopes, **kwargs):
        self.scopes.append(scopes)
        if self.error is not None:
            raise self.error
        return AccessToken(self.token, int(time.time()) + 3600)


class _ExchangeHandler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length).decode("utf-8")
        self.server.received.append(
            {
                "path": self.path,
                "content_type": self.headers.get("Content-Type"),
                "form": {key: values[0] for key, values in parse_qs(body).items()},
            }
        )
        payload = self.server.response_body.encode("utf-8")
        self.send_response(self.server.status_code)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def exchange_server():
    """Local HTTP server answering the ACR /oauth2/exchange endpoint.

    Set ``status_code`` and ``response_body`` on the returned server; requests
    it received are collected in ``received``.
    """
    server = ThreadingHTTPServer(("127.0.0.1", 0), _ExchangeHandler)
    server.status_code = 200
    server.response_body = ""
    server.received = []
    server.host = f"127.0.0.1:{server.server_port}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def fake_credential():
    return FakeTokenCredential(token="foo")
