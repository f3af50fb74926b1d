"""
UniFi Network Exporter - main entry point.

Starts the poll loop and the metrics server, and runs until SIGINT or SIGTERM.
"""

import signal
import sys
import threading
from typing import Optional, Sequence

from .client import ControllerClient
from .config import ExporterConfig, load_config
from .exceptions import UnifiConfigError
from .inventory import InventoryFetcher
from .logging import configure_logging, get_logger
from .metrics import MetricsSink, create_registry
from .poller import PollLoop
from .server import create_server
from .session import SessionStore

logger = get_logger(__name__)

SHUTDOWN_TIMEOUT = 5.0


def build_client(config: ExporterConfig) -> ControllerClient:
    """Create the controller client in the auth mode the configuration selects."""
    if config.uses_api_key:
        store = SessionStore.from_api_key(config.api_key)
        return ControllerClient(config.endpoint, store)
    return ControllerClient(
        config.endpoint,
        SessionStore.for_login(),
        username=config.username,
        password=config.password,
    )


def run(config: ExporterConfig) -> int:
    """Run the exporter until a shutdown signal arrives.

    Returns:
        Process exit status: 0 after a clean shutdown, 1 if the metrics
        port cannot be bound.
    """
    sink = MetricsSink()
    # the port is bound before any controller session exists
    try:
        server = create_server(config.listen_address, config.port, create_registry(sink))
    except OSError as e:
        logger.error(f"Cannot listen on {config.listen_address}:{config.port}: {e}")
        return 1
    client = build_client(config)
    poll_loop = PollLoop(InventoryFetcher(client), sink, interval=config.poll_interval)

    def shutdown(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        poll_loop.stop()
        # shutdown() blocks until serve_forever returns, so it cannot run on the serving thread
        threading.Thread(target=server.shutdown, name="unifi-shutdown", daemon=True).start()

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    poll_loop.start()
    try:
        server.serve_forever()
    finally:
        poll_loop.stop()
        server.server_close()
        poll_loop.join(timeout=SHUTDOWN_TIMEOUT)
        client.close()
        logger.info("UniFi Network Exporter stopped")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        config = load_config(argv)
    except UnifiConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(config.log_level)
    logger.info("Starting UniFi Network Exporter")
    return run(config)


if __name__ == "__main__":
    sys.exit(main())
