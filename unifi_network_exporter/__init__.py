"""
Prometheus exporter for the UniFi Network Controller.

This package polls a UniFi Controller's HTTP API for devices, clients and
sites, and serves the resulting metrics for Prometheus to scrape.
"""

__version__ = "0.1.4"

from .client import ControllerClient
from .config import ControllerEndpoint, ExporterConfig, load_config
from .inventory import FetchResult, InventoryFetcher
from .metrics import InventoryCollector, InventorySnapshot, MetricsSink, create_registry
from .models import SiteSummary, UnifiClient, UnifiDevice, UnifiSite
from .poller import PollLoop, PollState
from .server import create_server, handle_scrape
from .session import AuthMode, Credential, SessionStore
from .exceptions import (
    UnifiExporterError,
    UnifiAuthenticationError,
    UnifiAPIError,
    UnifiTransportError,
    UnifiDataError,
    UnifiConfigError,
)

__all__ = [
    "ControllerClient",
    "ControllerEndpoint",
    "ExporterConfig",
    "load_config",
    "FetchResult",
    "InventoryFetcher",
    "InventoryCollector",
    "InventorySnapshot",
    "MetricsSink",
    "create_registry",
    "SiteSummary",
    "UnifiClient",
    "UnifiDevice",
    "UnifiSite",
    "PollLoop",
    "PollState",
    "create_server",
    "handle_scrape",
    "AuthMode",
    "Credential",
    "SessionStore",
    "UnifiExporterError",
    "UnifiAuthenticationError",
    "UnifiAPIError",
    "UnifiTransportError",
    "UnifiDataError",
    "UnifiConfigError",
]
