# tests/conftest.py
"""Shared fixtures: identities and a local document server."""

import json
import tempfile
import threading
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from apbrowse.activitypub.keys import Identity, load_private_key

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="session")
def fixed_key():
    """The RSA key the signing test vector was produced with."""
    return load_private_key(FIXTURES / "signing_key.pem")


@pytest.fixture
def identity(fixed_key):
    """Identity backed by the fixed test key."""
    return Identity(private_key=fixed_key, owner="https://me.test/users/tester")


@dataclass
class Route:
    """Canned response for a path."""
    status: int = 200
    body: bytes = b"{}"
    content_type: str = "application/activity+json"
    headers: Dict[str, str] = field(default_factory=dict)
    delay: float = 0.0
    declared_length: int = None
    interval: float = 0.0


class DocumentServer:
    """
    Local HTTP server with canned responses that records every request.

    Usage:
        server.route("/actor", body=b'{"id": "x"}')
        url = server.url("/actor")
    """

    def __init__(self):
        self.routes: Dict[str, Route] = {}
        self.requests: List[Tuple[str, Dict[str, str]]] = []
        self._httpd = ThreadingHTTPServer(("127.0.0.1", 0), self._create_handler())
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)

    @property
    def port(self) -> int:
        return self._httpd.server_address[1]

    def url(self, path: str) -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    def route(self, path: str, **kwargs) -> Route:
        route = Route(**kwargs)
        self.routes[path] = route
        return route

    def route_json(self, path: str, data, status: int = 200) -> Route:
        return self.route(path, status=status, body=json.dumps(data).encode())

    def _create_handler(server_instance):
        class Handler(BaseHTTPRequestHandler):
            def log_message(self, format, *args):
                pass

            def do_GET(self):
                server_instance.requests.append((self.path, dict(self.headers.items())))
                route = server_instance.routes.get(self.path)
                if route is None:
                    route = Route(status=404, body=b'{"error": "Not found"}')
                if route.delay:
                    time.sleep(route.delay)

                self.send_response(route.status)
                self.send_header("Content-Type", route.content_type)
                length = route.declared_length if route.declared_length is not None else len(route.body)
                self.send_header("Content-Length", str(length))
                for name, value in route.headers.items():
                    self.send_header(name, value)
                self.end_headers()
                if not route.interval:
                    self.wfile.write(route.body)
                    return
                # Trickle the body out a byte at a time.
                for i in range(len(route.body)):
                    time.sleep(route.interval)
                    try:
                        self.wfile.write(route.body[i:i + 1])
                    except OSError:
                        return

        return Handler

    def start(self):
        self._thread.start()

    def stop(self):
        self._httpd.shutdown()
        self._httpd.server_close()


@pytest.fixture
def document_server():
    """Running DocumentServer, stopped after the test."""
    server = DocumentServer()
    server.start()
    yield server
    server.stop()
