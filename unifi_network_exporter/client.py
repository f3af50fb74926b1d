import functools
from typing import Dict, Optional

import requests
import urllib3

from .config import ControllerEndpoint
from .exceptions import (
    UnifiAuthenticationError,
    UnifiAPIError,
    UnifiTransportError,
)
from .logging import get_logger
from .session import AuthMode, SessionStore

logger = get_logger(__name__)

BODY_EXCERPT_LENGTH = 200

UNIFI_OS_PREFIX = "/proxy/network"


def renew_session_on_unauthorized(send):
    """
    Wrap a raw send so an expired session is renewed once.

    In session mode a 401 invalidates the stored cookie, logs in once and
    retries the original request once. A second 401 raises
    UnifiAuthenticationError. In API-key mode a 401 raises immediately since
    there is nothing to renew.

    The retry budget lives in this call's frame, so concurrent requests each
    get their own single retry.
    """

    @functools.wraps(send)
    def wrapper(self, method: str, url: str) -> requests.Response:
        response = send(self, method, url)
        if response.status_code != 401:
            return response

        if self.store.mode is AuthMode.API_KEY:
            raise UnifiAuthenticationError(
                f"API key rejected by controller (401 Unauthorized from {url})"
            )

        logger.warning(
            f"Received 401 Unauthorized from {url}. Attempting re-authentication..."
        )
        self.store.invalidate()
        self.store.authenticate(self.endpoint, self._username, self._password, self.http)
        logger.info("Re-authentication successful. Retrying original request.")

        response = send(self, method, url)
        if response.status_code == 401:
            raise UnifiAuthenticationError(
                f"Request to {url} still unauthorized after re-authentication. "
                "Session could not be renewed."
            )
        return response

    return wrapper


class ControllerClient:
    """
    Client for the UniFi Controller HTTP API.

    Issues one authenticated request at a time per call and maps every
    failure onto the exporter's error taxonomy. It does not retry beyond the
    single session renewal; polling cadence is the caller's concern.

    Note:
        The controller API is **undocumented**. Response structures may change
        between controller versions; parsing lives in ``inventory``.
    """

    def __init__(
        self,
        endpoint: ControllerEndpoint,
        store: SessionStore,
        username: Optional[str] = None,
        password: Optional[str] = None,
        http: Optional[requests.Session] = None,
    ):
        """
        Args:
            endpoint: Controller location, TLS policy and timeout.
            store: Credential store; its mode decides cookie or API-key auth.
            username: Login name, required in session mode.
            password: Login password, required in session mode.
            http: requests session to use. A new one is created if omitted.
        """
        if store.mode is AuthMode.SESSION and not (username and password):
            raise ValueError("username and password are required for session authentication")

        logger.debug(
            f"Initializing ControllerClient with URL: {endpoint.base_url}, "
            f"mode: {store.mode.value}, unifi_os: {endpoint.unifi_os}"
        )
        self.endpoint = endpoint
        self.store = store
        self._username = username
        self._password = password
        self.http = http if http is not None else requests.Session()

        if not endpoint.verify_ssl:
            logger.warning(
                "SSL certificate verification is disabled. This is not recommended for production use."
            )
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    @property
    def api_prefix(self) -> str:
        """Path prefix for Network application endpoints."""
        if self.endpoint.unifi_os or self.store.mode is AuthMode.API_KEY:
            return UNIFI_OS_PREFIX
        return ""

    def build_url(self, path: str, site: Optional[str] = None) -> str:
        path = path.format(site=site or self.endpoint.site)
        return self.endpoint.url(f"{self.api_prefix}/{path.lstrip('/')}")

    def request(self, method: str, path: str, site: Optional[str] = None) -> requests.Response:
        """
        Perform one authenticated request against the controller.

        Args:
            method: HTTP method, e.g. 'GET'.
            path: API path below the controller URL. ``{site}`` is replaced by
                ``site`` or the configured site.
            site: Optional site overriding the configured one.

        Returns:
            requests.Response: A response with a 2xx status.

        Raises:
            UnifiAuthenticationError: If logging in fails or the controller
                keeps answering 401.
            UnifiAPIError: For any other non-2xx status.
            UnifiTransportError: For network, TLS and timeout failures.
        """
        url = self.build_url(path, site)
        if self.store.mode is AuthMode.SESSION and self.store.current() is None:
            self.store.authenticate(self.endpoint, self._username, self._password, self.http)

        response = self._send(method.upper(), url)
        if not 200 <= response.status_code < 300:
            excerpt = (response.text or "")[:BODY_EXCERPT_LENGTH]
            logger.error(f"API {method} request to {url} failed with status {response.status_code}")
            raise UnifiAPIError(response.status_code, excerpt)

        logger.debug(
            f"API {method} request to {url} successful (Status: {response.status_code})"
        )
        return response

    @renew_session_on_unauthorized
    def _send(self, method: str, url: str) -> requests.Response:
        try:
            return self.http.request(
                method,
                url,
                headers=self._auth_headers(),
                verify=self.endpoint.verify_ssl,
                timeout=self.endpoint.timeout,
            )
        except requests.exceptions.RequestException as e:
            error_msg = f"API {method} request to {url} failed: {e}"
            logger.error(error_msg)
            raise UnifiTransportError(error_msg) from e

    def _auth_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        credential = self.store.current()
        if credential is None:
            return headers
        if credential.mode is AuthMode.API_KEY:
            headers["X-API-KEY"] = credential.value
        else:
            headers["Cookie"] = credential.value
        return headers

    def close(self) -> None:
        self.http.close()
