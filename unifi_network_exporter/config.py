"""Configuration for the UniFi Network exporter.

Values come from command-line flags, each of which falls back to an
environment variable, so the exporter runs unchanged under Docker or
systemd.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Union
from urllib.parse import urlparse

from .exceptions import UnifiConfigError
from .logging import LOG_LEVELS

DEFAULT_SITE = "default"
DEFAULT_PORT = 9897
DEFAULT_POLL_INTERVAL = 30
DEFAULT_HTTP_TIMEOUT = 10
DEFAULT_LISTEN_ADDRESS = "0.0.0.0"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ControllerEndpoint:
    """Where and how to reach the controller.

    Attributes:
        base_url: Controller URL without a trailing slash.
        site: Short name of the site to poll.
        verify_ssl: True, False, or a path to a CA bundle (as accepted by requests).
        timeout: Per-request timeout in seconds.
        unifi_os: Whether the controller is a UniFi OS console (UDM, UDR, CloudKey Gen2+).
    """

    base_url: str
    site: str = DEFAULT_SITE
    verify_ssl: Union[bool, str] = True
    timeout: float = DEFAULT_HTTP_TIMEOUT
    unifi_os: bool = False

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"


@dataclass(frozen=True)
class ExporterConfig:
    """Immutable process configuration."""

    controller_url: str
    api_key: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    site: str = DEFAULT_SITE
    unifi_os: bool = False
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    port: int = DEFAULT_PORT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    verify_ssl: bool = True
    log_level: str = "info"

    @property
    def uses_api_key(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> ControllerEndpoint:
        return ControllerEndpoint(
            base_url=self.controller_url.rstrip("/"),
            site=self.site,
            verify_ssl=self.verify_ssl,
            timeout=self.http_timeout,
            unifi_os=self.unifi_os,
        )

    def validate(self) -> None:
        """Check the configuration before any loop starts.

        Raises:
            UnifiConfigError: Describing the first problem found.
        """
        if not self.api_key and not (self.username and self.password):
            raise UnifiConfigError(
                "Either UNIFI_API_KEY or both UNIFI_USERNAME and UNIFI_PASSWORD must be provided"
            )

        if not self.controller_url:
            raise UnifiConfigError("UNIFI_CONTROLLER_URL cannot be empty")

        if not self.controller_url.startswith(("http://", "https://")):
            raise UnifiConfigError("UNIFI_CONTROLLER_URL must start with http:// or https://")

        try:
            parsed = urlparse(self.controller_url)
            parsed.port  # raises ValueError on a malformed port
        except ValueError as e:
            raise UnifiConfigError(f"UNIFI_CONTROLLER_URL is not a valid URL: {e}") from e
        if not parsed.hostname:
            raise UnifiConfigError("UNIFI_CONTROLLER_URL must include a host")

        if not self.site:
            raise UnifiConfigError("UNIFI_SITE cannot be empty")

        if self.poll_interval <= 0:
            raise UnifiConfigError("POLL_INTERVAL must be greater than 0")

        if self.http_timeout <= 0:
            raise UnifiConfigError("HTTP_TIMEOUT must be greater than 0")

        if not 1 <= self.port <= 65535:
            raise UnifiConfigError("METRICS_PORT must be between 1 and 65535")

        if self.log_level.lower() not in LOG_LEVELS:
            raise UnifiConfigError(
                f"LOG_LEVEL must be one of: {', '.join(LOG_LEVELS)}"
            )


def parse_bool(value: str) -> bool:
    """Parse a boolean flag value such as 'true', '0' or 'off'."""
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {value!r}")


def _env_number(env: Mapping[str, str], name: str, default, kind):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return kind(raw)
    except ValueError as e:
        raise UnifiConfigError(f"{name} must be a number, got {raw!r}") from e


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return parse_bool(raw)
    except argparse.ArgumentTypeError as e:
        raise UnifiConfigError(f"{name}: {e}") from e


def build_parser(env: Optional[Mapping[str, str]] = None) -> argparse.ArgumentParser:
    """Build the argument parser, taking defaults from ``env``."""
    env = os.environ if env is None else env

    parser = argparse.ArgumentParser(
        prog="unifi-network-exporter",
        description="Prometheus exporter for UniFi Network Controller",
    )
    parser.add_argument(
        "--controller-url",
        default=env.get("UNIFI_CONTROLLER_URL", ""),
        help="UniFi Controller URL, e.g. https://192.168.1.1:8443 [UNIFI_CONTROLLER_URL]",
    )
    parser.add_argument(
        "--api-key",
        default=env.get("UNIFI_API_KEY") or None,
        help="UniFi API key; use either an API key or username/password [UNIFI_API_KEY]",
    )
    parser.add_argument(
        "--username",
        default=env.get("UNIFI_USERNAME") or None,
        help="Local controller account name [UNIFI_USERNAME]",
    )
    parser.add_argument(
        "--password",
        default=env.get("UNIFI_PASSWORD") or None,
        help="Local controller account password [UNIFI_PASSWORD]",
    )
    parser.add_argument(
        "--site",
        default=env.get("UNIFI_SITE") or DEFAULT_SITE,
        help="Site short name [UNIFI_SITE]",
    )
    parser.add_argument(
        "--unifi-os",
        type=parse_bool,
        nargs="?",
        const=True,
        default=_env_bool(env, "UNIFI_OS", False),
        help="Controller is a UniFi OS console (UDM, UDR, CloudKey Gen2+) [UNIFI_OS]",
    )
    parser.add_argument(
        "--listen-address",
        default=env.get("METRICS_ADDRESS") or DEFAULT_LISTEN_ADDRESS,
        help="Address to expose metrics on [METRICS_ADDRESS]",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=_env_number(env, "METRICS_PORT", DEFAULT_PORT, int),
        help="Port to expose metrics on [METRICS_PORT]",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=_env_number(env, "POLL_INTERVAL", DEFAULT_POLL_INTERVAL, float),
        help="Seconds between controller polls [POLL_INTERVAL]",
    )
    parser.add_argument(
        "--http-timeout",
        type=float,
        default=_env_number(env, "HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT, float),
        help="Timeout in seconds for each controller request [HTTP_TIMEOUT]",
    )
    parser.add_argument(
        "--verify-ssl",
        type=parse_bool,
        nargs="?",
        const=True,
        default=_env_bool(env, "VERIFY_SSL", True),
        help="Verify the controller's TLS certificate [VERIFY_SSL]",
    )
    parser.add_argument(
        "--no-verify-ssl",
        dest="verify_ssl",
        action="store_false",
        help="Do not verify the controller's TLS certificate",
    )
    parser.add_argument(
        "--log-level",
        default=env.get("LOG_LEVEL") or "info",
        help="trace, debug, info, warn or error [LOG_LEVEL]",
    )
    return parser


def load_config(
    argv: Optional[Sequence[str]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ExporterConfig:
    """Parse flags and environment into a validated ExporterConfig.

    Raises:
        UnifiConfigError: If the resulting configuration is invalid.
    """
    args = build_parser(env).parse_args(argv)
    config = ExporterConfig(
        controller_url=args.controller_url.strip(),
        api_key=args.api_key,
        username=args.username,
        password=args.password,
        site=args.site,
        unifi_os=args.unifi_os,
        listen_address=args.listen_address,
        port=args.port,
        poll_interval=args.poll_interval,
        http_timeout=args.http_timeout,
        verify_ssl=args.verify_ssl,
        log_level=args.log_level,
    )
    config.validate()
    return config
