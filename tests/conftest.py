"""Pytest configuration and shared fixtures."""

import pytest

from unifi_network_exporter.config import ControllerEndpoint
from unifi_network_exporter.session import AuthMode, Credential, SessionStore

from .fakes import FakeController, envelope, login_ok


@pytest.fixture
def endpoint():
    return ControllerEndpoint(base_url="https://unifi.test:8443", site="default", timeout=5)


@pytest.fixture
def fake_http():
    return FakeController()


@pytest.fixture
def session_store():
    return SessionStore.for_login()


@pytest.fixture
def stale_store():
    """A cookie store already holding a session the controller will reject."""
    return SessionStore(AuthMode.SESSION, Credential(AuthMode.SESSION, "unifises=stale"))


@pytest.fixture
def sample_devices():
    """Three devices from /stat/device; the switch reports a null CPU value."""
    return [
        {
            "_id": "dev-ap",
            "mac": "f0:9f:c2:00:00:01",
            "name": "Office AP",
            "type": "uap",
            "model": "U7PG2",
            "version": "6.5.55",
            "adopted": True,
            "state": 1,
            "uptime": 86400,
            "system-stats": {"cpu": "12.5", "mem": "40.1", "uptime": "86400"},
            "sys_stats": {
                "loadavg_1": "0.42",
                "loadavg_5": "0.30",
                "loadavg_15": "0.25",
                "mem_total": 262144000,
                "mem_used": 131072000,
            },
            "stat": {"rx_bytes": 1000, "tx_bytes": 2000, "rx_packets": 10, "tx_packets": 20},
            "serial": "ABC123",
        },
        {
            "_id": "dev-sw",
            "mac": "f0:9f:c2:00:00:02",
            "name": "Core Switch",
            "type": "usw",
            "model": "US24",
            "version": "6.5.59",
            "adopted": True,
            "state": 1,
            "uptime": 3600,
            "system-stats": {"cpu": None, "mem": "22.0"},
            "rx_bytes": 5000,
            "tx_bytes": 7000,
        },
        {
            "_id": "dev-gw",
            "mac": "f0:9f:c2:00:00:03",
            "type": "ugw",
            "adopted": False,
            "state": 0,
        },
    ]


@pytest.fixture
def sample_clients():
    return [
        {
            "_id": "cl-laptop",
            "mac": "aa:bb:cc:00:00:01",
            "hostname": "laptop",
            "name": "Alice Laptop",
            "ip": "192.168.1.20",
            "network": "LAN",
            "ap_mac": "f0:9f:c2:00:00:01",
            "is_wired": False,
            "is_guest": False,
            "signal": -55,
            "uptime": 1200,
            "rx_bytes": 300,
            "tx_bytes": 400,
        },
        {
            "_id": "cl-printer",
            "mac": "aa:bb:cc:00:00:02",
            "hostname": "printer",
            "ip": "192.168.1.30",
            "network": "LAN",
            "is_wired": True,
            "uptime": 99999,
        },
        {
            "_id": "cl-guest",
            "mac": "aa:bb:cc:00:00:03",
            "network": "Guest",
            "is_wired": False,
            "is_guest": True,
        },
    ]


@pytest.fixture
def sample_sites():
    return [
        {"_id": "site-1", "name": "default", "desc": "Default", "role": "admin"},
        {"_id": "site-2", "name": "branch", "desc": "Branch Office"},
    ]


@pytest.fixture
def controller(fake_http, sample_devices, sample_clients, sample_sites):
    """A fake classic controller answering every inventory endpoint."""
    fake_http.add("POST", "/api/login", login_ok())
    fake_http.add("GET", "/api/s/default/stat/device", envelope(sample_devices))
    fake_http.add("GET", "/api/s/default/stat/sta", envelope(sample_clients))
    fake_http.add("GET", "/api/self/sites", envelope(sample_sites))
    return fake_http
