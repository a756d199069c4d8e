# apbrowse/server.py
"""
HTTP server publishing the local actor.

Remote servers verifying our signatures fetch the keyId, so the actor
document (with its public key) has to be reachable at the root URI.

Endpoints:
    GET /            - Actor document
    GET /<actor path> - Actor document (path component of the root URI)
    GET /health      - Liveness check
"""

import json
import logging
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Optional, Tuple
from urllib.parse import urlparse

from .activitypub.actor import ACTIVITY_JSON, ActorDocument

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9004


class ActorServer:
    """
    Serves the actor document read-only.

    Usage:
        server = ActorServer(actor, port=9004)
        server.start_background()
    """

    def __init__(self, actor: ActorDocument, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        self.actor = actor
        self.host = host
        self.port = port
        self._body = json.dumps(actor.to_activitypub()).encode()
        self._httpd: Optional[HTTPServer] = None
        self._serving = False

    @property
    def actor_paths(self) -> set:
        """Request paths answered with the actor document."""
        paths = {"/"}
        actor_path = urlparse(self.actor.id).path.rstrip("/")
        if actor_path:
            paths.add(actor_path)
        return paths

    @property
    def server_address(self) -> Tuple[str, int]:
        """Bound (host, port); binds first if needed."""
        return self.bind().server_address[:2]

    def _create_handler(server_instance):
        """Create request handler with access to server instance."""

        class RequestHandler(BaseHTTPRequestHandler):
            server_ref = server_instance

            def log_message(self, format, *args):
                logger.debug(format % args)

            def _send_body(self, body: bytes, content_type: str, status: int = 200):
                self.send_response(status)
                self.send_header("Content-Type", content_type)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def _send_json(self, data: Any, status: int = 200):
                self._send_body(json.dumps(data).encode(), "application/json", status)

            def do_GET(self):
                path = urlparse(self.path).path
                if path != "/":
                    path = path.rstrip("/")
                logger.info(f"Profile request: {self.path}")

                if path in self.server_ref.actor_paths:
                    self._send_body(self.server_ref._body, ACTIVITY_JSON)
                elif path == "/health":
                    self._send_json({"status": "ok"})
                else:
                    self._send_json({"error": "Not found"}, 404)

        return RequestHandler

    def bind(self) -> HTTPServer:
        """Create the listening socket."""
        if self._httpd is None:
            self._httpd = HTTPServer((self.host, self.port), self._create_handler())
            logger.info(f"Actor server bound to {self.host}:{self._httpd.server_address[1]}")
        return self._httpd

    def start(self):
        """Serve until shutdown() (blocking)."""
        httpd = self.bind()
        self._serving = True
        try:
            httpd.serve_forever()
        finally:
            httpd.server_close()

    def start_background(self) -> threading.Thread:
        """Start the server in a background thread."""
        self.bind()
        self._serving = True
        thread = threading.Thread(target=self.start, name="actor-server")
        thread.daemon = True
        thread.start()
        return thread

    def shutdown(self):
        """Stop the server and release its socket."""
        if self._httpd is None:
            return
        if self._serving:
            self._httpd.shutdown()
        else:
            self._httpd.server_close()
