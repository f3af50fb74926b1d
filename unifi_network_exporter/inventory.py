"""
Retrieval and normalization of the controller inventory.

Each fetch issues one controller request and turns the ``data`` list of the
response envelope into typed records. A malformed entry is skipped, logged
and counted; a malformed envelope aborts the fetch with UnifiDataError.
"""

from typing import Any, Callable, Iterable, List, Optional, TypeVar

import requests

from .client import ControllerClient
from .exceptions import UnifiAPIError, UnifiDataError
from .logging import get_logger, log_api_response, log_extra_fields
from .models import SiteSummary, UnifiClient, UnifiDevice, UnifiSite
from .session import AuthMode

logger = get_logger(__name__)

DEVICES_PATH = "/api/s/{site}/stat/device"
CLIENTS_PATH = "/api/s/{site}/stat/sta"
SITES_PATH = "/api/self/sites"
INTEGRATION_SITES_PATH = "/integration/v1/sites"

T = TypeVar("T")


class FetchResult(List[T]):
    """Records from one fetch, plus how many entries were dropped as malformed."""

    def __init__(self, records: Iterable[T] = (), skipped: int = 0):
        super().__init__(records)
        self.skipped = skipped


class InventoryFetcher:
    """
    Fetches devices, clients and sites for one site of the controller.

    Args:
        client: Authenticated controller client.
        site: Site to fetch from; defaults to the client's configured site.
    """

    def __init__(self, client: ControllerClient, site: Optional[str] = None):
        self.client = client
        self.site = site or client.endpoint.site

    def fetch_devices(self, site: Optional[str] = None) -> FetchResult[UnifiDevice]:
        """
        Get the devices adopted on a site.

        Raises:
            UnifiAuthenticationError, UnifiAPIError, UnifiTransportError: From the client.
            UnifiDataError: If the response envelope cannot be parsed.
        """
        site = site or self.site
        logger.info(f"Fetching devices for site '{site}'")
        entries = self._get_data(DEVICES_PATH, site)
        return self._build_records(entries, UnifiDevice.from_api, "Device")

    def fetch_clients(self, site: Optional[str] = None) -> FetchResult[UnifiClient]:
        """
        Get the active clients (stations) of a site.

        Raises:
            UnifiAuthenticationError, UnifiAPIError, UnifiTransportError: From the client.
            UnifiDataError: If the response envelope cannot be parsed.
        """
        site = site or self.site
        logger.info(f"Fetching active clients for site '{site}'")
        entries = self._get_data(CLIENTS_PATH, site)
        return self._build_records(entries, UnifiClient.from_api, "Client")

    def fetch_sites(self) -> SiteSummary:
        """
        Get the sites visible to the exporter's account.

        API keys are served by the integration API, which uses its own envelope
        and field names; session logins read ``/api/self/sites``.

        Raises:
            UnifiAuthenticationError, UnifiAPIError, UnifiTransportError: From the client.
            UnifiDataError: If the response envelope cannot be parsed.
        """
        logger.info("Fetching sites")
        if self.client.store.mode is AuthMode.API_KEY:
            entries = self._get_data(INTEGRATION_SITES_PATH)
            sites = self._build_records(entries, UnifiSite.from_integration_api, "Site")
        else:
            entries = self._get_data(SITES_PATH)
            sites = self._build_records(entries, UnifiSite.from_api, "Site")
        return SiteSummary.from_sites(sites, skipped=sites.skipped)

    def _get_data(self, path: str, site: Optional[str] = None) -> List[Any]:
        response = self.client.request("GET", path, site)
        return parse_envelope(response, path)

    def _build_records(
        self,
        entries: List[Any],
        factory: Callable[[Any], T],
        kind: str,
    ) -> FetchResult[T]:
        records = []
        skipped = 0
        for index, entry in enumerate(entries):
            try:
                record = factory(entry)
            except ValueError as e:
                skipped += 1
                ident = (entry.get("mac") or entry.get("_id")) if isinstance(entry, dict) else None
                logger.warning(
                    f"Skipping malformed {kind.lower()} entry #{index} ({ident or 'unknown'}): {e}"
                )
                continue
            log_extra_fields(logger, kind, getattr(record, "mac", record.id), record.extra_fields)
            records.append(record)

        logger.debug(f"Returning {len(records)} {kind} records ({skipped} skipped).")
        return FetchResult(records, skipped)


def parse_envelope(response: requests.Response, uri: str) -> List[Any]:
    """
    Extract the ``data`` list from a controller response.

    Args:
        response: A 2xx response from the controller.
        uri: Path that was called, for messages.

    Returns:
        The raw entries of the ``data`` list.

    Raises:
        UnifiAPIError: If the envelope's ``meta.rc`` reports an error.
        UnifiDataError: If the body is not JSON or has no ``data`` list.
    """
    try:
        raw_data = response.json()
    except ValueError as e:
        error_msg = f"Failed to parse API response from {uri}: {e}"
        logger.error(error_msg)
        raise UnifiDataError(error_msg) from e

    log_api_response(logger, uri, raw_data, response.status_code)

    if not isinstance(raw_data, dict):
        raise UnifiDataError(
            f"Unexpected API response format for {uri}: expected an object, got {type(raw_data).__name__}"
        )

    meta = raw_data.get("meta")
    if isinstance(meta, dict) and meta.get("rc") == "error":
        raise UnifiAPIError(response.status_code, str(meta.get("msg", "")))

    data = raw_data.get("data")
    if not isinstance(data, list):
        error_msg = f"Unexpected API response format for {uri}: missing 'data' list"
        logger.warning(error_msg)
        raise UnifiDataError(error_msg)
    return data
