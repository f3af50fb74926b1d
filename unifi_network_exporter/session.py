"""
Credential storage for the UniFi Controller client.

A store runs in exactly one of two modes, chosen when it is created:

* ``AuthMode.API_KEY``: a constant key sent as ``X-API-KEY``. Logging in and
  invalidating are no-ops.
* ``AuthMode.SESSION``: a cookie obtained from the controller's login endpoint,
  replaced on every successful login and cleared when the controller answers
  401 Unauthorized.
"""

import enum
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

import requests

from .config import ControllerEndpoint
from .exceptions import UnifiAuthenticationError
from .logging import get_logger

logger = get_logger(__name__)


class AuthMode(enum.Enum):
    API_KEY = "api_key"
    SESSION = "session"


@dataclass(frozen=True)
class Credential:
    """
    A credential handed out by a SessionStore.

    Attributes:
        mode: Which kind of credential this is.
        value: The API key, or the value of the ``Cookie`` header to send.
        acquired_at: Epoch seconds when the credential was obtained.
        expires_at: Earliest cookie expiry announced by the controller, if any.
    """
    mode: AuthMode
    value: str = field(repr=False)
    acquired_at: float = field(default_factory=time.time)
    expires_at: Optional[float] = None


class SessionStore:
    """
    Holds the current credential and serializes changes to it.

    Reads and writes go through one lock. A login holds the lock for the
    duration of the HTTP exchange, so a concurrent reader either sees the old
    credential or waits for the new one.
    """

    def __init__(self, mode: AuthMode, credential: Optional[Credential] = None):
        self.mode = mode
        self._credential = credential
        self._lock = threading.Lock()

    @classmethod
    def from_api_key(cls, api_key: str) -> "SessionStore":
        """Create a constant store for a static API key."""
        if not api_key:
            raise ValueError("api_key must not be empty")
        return cls(AuthMode.API_KEY, Credential(AuthMode.API_KEY, api_key))

    @classmethod
    def for_login(cls) -> "SessionStore":
        """Create an empty cookie store; the first login fills it."""
        return cls(AuthMode.SESSION)

    def current(self) -> Optional[Credential]:
        with self._lock:
            return self._credential

    def authenticate(
        self,
        endpoint: ControllerEndpoint,
        username: str,
        password: str,
        http: Optional[requests.Session] = None,
    ) -> Credential:
        """
        Log in to the controller and store the resulting session cookie.

        For UniFi OS consoles the login endpoint is ``/api/auth/login``, for
        classic controllers ``/api/login``. On failure the previously stored
        credential is left as it was.

        Args:
            endpoint: Controller to log in to.
            username: Local controller account name.
            password: Password for the account.
            http: Session used for the login request. A throwaway session is
                used when omitted.

        Returns:
            The stored credential. In API-key mode, the key credential unchanged.

        Raises:
            UnifiAuthenticationError: If the login exchange fails.
        """
        if self.mode is AuthMode.API_KEY:
            return self._credential

        with self._lock:
            if http is None:
                with requests.Session() as temporary:
                    credential = _login(endpoint, username, password, temporary)
            else:
                credential = _login(endpoint, username, password, http)
            self._credential = credential
            return credential

    def invalidate(self) -> None:
        """Forget the session cookie so the next request logs in again."""
        if self.mode is AuthMode.API_KEY:
            return
        with self._lock:
            if self._credential is not None:
                logger.debug("Invalidating UniFi session cookie")
            self._credential = None


def _login(
    endpoint: ControllerEndpoint,
    username: str,
    password: str,
    http: requests.Session,
) -> Credential:
    login_uri = endpoint.url("/api/auth/login" if endpoint.unifi_os else "/api/login")
    logger.debug(f"Attempting authentication against {login_uri} as {username}")

    try:
        response = http.post(
            login_uri,
            json={"username": username, "password": password, "remember": False},
            verify=endpoint.verify_ssl,
            timeout=endpoint.timeout,
        )
    except requests.exceptions.RequestException as e:
        error_msg = f"Authentication failed: {e}"
        logger.error(error_msg)
        raise UnifiAuthenticationError(error_msg) from e

    if not 200 <= response.status_code < 300:
        error_msg = f"Login failed with status: {response.status_code}"
        logger.warning(error_msg)
        raise UnifiAuthenticationError(error_msg)

    try:
        body = response.json()
    except ValueError:
        body = None
    meta = body.get("meta") if isinstance(body, dict) else None
    if isinstance(meta, dict) and meta.get("rc") == "error":
        error_msg = f"Login rejected by controller: {meta.get('msg', 'unknown reason')}"
        logger.warning(error_msg)
        raise UnifiAuthenticationError(error_msg)

    cookies = list(response.cookies)
    if not cookies:
        raise UnifiAuthenticationError("No cookies received from login response")

    # The cookie header is attached explicitly; the jar must not become a second source.
    http.cookies.clear()

    expiries = [cookie.expires for cookie in cookies if cookie.expires]
    logger.info("Successfully authenticated with UniFi controller.")
    return Credential(
        mode=AuthMode.SESSION,
        value="; ".join(f"{cookie.name}={cookie.value}" for cookie in cookies),
        acquired_at=time.time(),
        expires_at=float(min(expiries)) if expiries else None,
    )
