"""HTTP endpoints for Prometheus scrapes and health checks.

Handlers only read the metrics registry; they never wait on or start a poll.
"""

from __future__ import annotations

from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Tuple
from urllib.parse import urlparse

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from .logging import get_logger

logger = get_logger(__name__)

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

INDEX_BODY = (
    "UniFi Network Exporter\n\n"
    "Endpoints:\n"
    "  /metrics - Prometheus metrics\n"
    "  /health - Health check\n"
)

HEALTH_PATHS = {"/health", "/-/healthy"}


def handle_scrape(registry: CollectorRegistry) -> Tuple[int, bytes, str]:
    """Render the registry in the Prometheus text format.

    Returns:
        Tuple of (status, body, content_type)
    """
    return HTTPStatus.OK, generate_latest(registry), CONTENT_TYPE_LATEST


class MetricsRequestHandler(BaseHTTPRequestHandler):
    """Serves /metrics, /health, /-/healthy and an index page."""

    # Set by create_server
    registry: Optional[CollectorRegistry] = None

    server_version = "unifi-network-exporter"

    def do_GET(self):
        status, body, content_type = self._route(urlparse(self.path).path)
        self._respond(status, body, content_type)

    def do_HEAD(self):
        status, body, content_type = self._route(urlparse(self.path).path)
        self._respond(status, body, content_type, include_body=False)

    def _route(self, path: str) -> Tuple[int, bytes, str]:
        if path == "/metrics":
            return handle_scrape(self.registry)
        if path in HEALTH_PATHS:
            return HTTPStatus.OK, b"OK", TEXT_CONTENT_TYPE
        if path == "/":
            return HTTPStatus.OK, INDEX_BODY.encode("utf-8"), TEXT_CONTENT_TYPE
        return HTTPStatus.NOT_FOUND, b"Not Found\n", TEXT_CONTENT_TYPE

    def _respond(self, status: int, body: bytes, content_type: str, include_body: bool = True) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if include_body:
            self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


def create_server(host: str, port: int, registry: CollectorRegistry) -> ThreadingHTTPServer:
    """Bind a threading HTTP server serving ``registry``.

    Each request runs on its own thread, so a slow scrape never holds up
    another. Pass port 0 to bind an ephemeral port.
    """
    handler = type("BoundMetricsRequestHandler", (MetricsRequestHandler,), {"registry": registry})
    server = ThreadingHTTPServer((host, port), handler)
    server.daemon_threads = True
    logger.info(f"Metrics server listening on {host}:{server.server_address[1]}")
    return server
