"""Tests for the background poll loop."""

import logging
import threading
import time
from unittest.mock import MagicMock

import pytest
from prometheus_client import generate_latest

from unifi_network_exporter.client import ControllerClient
from unifi_network_exporter.exceptions import (
    UnifiAPIError,
    UnifiAuthenticationError,
    UnifiDataError,
    UnifiTransportError,
)
from unifi_network_exporter.inventory import FetchResult, InventoryFetcher
from unifi_network_exporter.metrics import MetricsSink, create_registry
from unifi_network_exporter.models import SiteSummary, UnifiClient, UnifiDevice
from unifi_network_exporter.poller import PollLoop, PollState

from .fakes import FakeResponse, envelope, login_ok


def make_fetcher(devices=None, clients=None, sites=None):
    fetcher = MagicMock(spec=InventoryFetcher)
    fetcher.fetch_devices.return_value = FetchResult(devices or [UnifiDevice(id="d1", mac="m1")])
    fetcher.fetch_clients.return_value = FetchResult(clients or [UnifiClient(id="c1", mac="m2")])
    fetcher.fetch_sites.return_value = sites or SiteSummary(count=1, names=("default",))
    return fetcher


class TestPollOnce:
    def test_success_publishes_snapshot(self):
        sink = MetricsSink()
        loop = PollLoop(make_fetcher(), sink, interval=30)

        assert loop.poll_once() is PollState.SUCCESS

        snapshot = sink.snapshot()
        assert [d.id for d in snapshot.devices] == ["d1"]
        assert [c.id for c in snapshot.clients] == ["c1"]
        assert snapshot.sites.count == 1
        assert loop.last_result is PollState.SUCCESS
        assert loop.last_success_at == snapshot.completed_at
        assert loop.state is PollState.IDLE

    @pytest.mark.parametrize(
        "error",
        [
            UnifiAuthenticationError("login failed"),
            UnifiAPIError(500, "boom"),
            UnifiTransportError("timed out"),
            UnifiDataError("not json"),
            RuntimeError("unexpected"),
        ],
    )
    def test_failure_leaves_metrics_unchanged(self, error):
        sink = MetricsSink()
        registry = create_registry(sink)
        fetcher = make_fetcher()
        loop = PollLoop(fetcher, sink, interval=30)
        loop.poll_once()
        before_snapshot = sink.snapshot()
        before_body = generate_latest(registry)

        fetcher.fetch_devices.return_value = FetchResult([UnifiDevice(id="d2", mac="m9")])
        fetcher.fetch_clients.side_effect = error

        assert loop.poll_once() is PollState.FAILED

        assert sink.snapshot() is before_snapshot
        assert generate_latest(registry) == before_body
        assert loop.consecutive_failures == 1
        assert type(error).__name__ in loop.last_error

    def test_failure_counter_resets_on_success(self):
        fetcher = make_fetcher()
        loop = PollLoop(fetcher, MetricsSink(), interval=30)
        fetcher.fetch_sites.side_effect = UnifiTransportError("down")
        loop.poll_once()
        loop.poll_once()
        assert loop.consecutive_failures == 2

        fetcher.fetch_sites.side_effect = None
        assert loop.poll_once() is PollState.SUCCESS
        assert loop.consecutive_failures == 0
        assert loop.last_error is None

    def test_overlapping_poll_is_skipped(self):
        started = threading.Event()
        release = threading.Event()
        fetcher = make_fetcher()
        devices = fetcher.fetch_devices.return_value

        def slow_fetch():
            started.set()
            release.wait(5)
            return devices

        fetcher.fetch_devices.side_effect = slow_fetch
        loop = PollLoop(fetcher, MetricsSink(), interval=30)

        results = []
        first = threading.Thread(target=lambda: results.append(loop.poll_once()))
        first.start()
        assert started.wait(5)
        assert loop.state is PollState.POLLING

        assert loop.poll_once() is None
        assert loop.skipped_ticks == 1

        release.set()
        first.join(5)
        assert results == [PollState.SUCCESS]
        assert fetcher.fetch_devices.call_count == 1

    def test_success_log_names_sites(self, caplog):
        sites = SiteSummary(count=2, names=("default", "branch"))
        loop = PollLoop(make_fetcher(sites=sites), MetricsSink(), interval=30)

        with caplog.at_level(logging.INFO):
            loop.poll_once()

        assert "2 sites (default, branch)" in caplog.text

    def test_contended_skips_are_all_counted(self):
        started = threading.Event()
        release = threading.Event()
        fetcher = make_fetcher()
        devices = fetcher.fetch_devices.return_value

        def slow_fetch():
            started.set()
            release.wait(10)
            return devices

        fetcher.fetch_devices.side_effect = slow_fetch
        loop = PollLoop(fetcher, MetricsSink(), interval=30)
        first = threading.Thread(target=loop.poll_once)
        first.start()
        assert started.wait(5)

        def contend():
            for _ in range(200):
                loop.poll_once()

        contenders = [threading.Thread(target=contend) for _ in range(8)]
        for thread in contenders:
            thread.start()
        for thread in contenders:
            thread.join(10)
        release.set()
        first.join(5)

        assert loop.skipped_ticks == 1600

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            PollLoop(make_fetcher(), MetricsSink(), interval=0)


class TestRun:
    def test_polls_repeatedly_until_stopped(self):
        fetcher = make_fetcher()
        polled = threading.Semaphore(0)
        devices = fetcher.fetch_devices.return_value

        def fetch():
            polled.release()
            return devices

        fetcher.fetch_devices.side_effect = fetch
        loop = PollLoop(fetcher, MetricsSink(), interval=0.05)
        loop.start()
        try:
            assert polled.acquire(timeout=5)
            assert polled.acquire(timeout=5)
        finally:
            loop.stop()
            loop.join(5)

        assert not loop.is_alive()
        assert loop.daemon

    def test_delayed_start_waits_one_interval(self):
        fetcher = make_fetcher()
        loop = PollLoop(fetcher, MetricsSink(), interval=10, run_immediately=False)
        loop.start()
        time.sleep(0.1)
        loop.stop()
        loop.join(5)

        assert not loop.is_alive()
        fetcher.fetch_devices.assert_not_called()

    def test_stop_interrupts_wait(self):
        loop = PollLoop(make_fetcher(), MetricsSink(), interval=3600)
        loop.start()
        time.sleep(0.05)
        started = time.monotonic()
        loop.stop()
        loop.join(5)

        assert not loop.is_alive()
        assert time.monotonic() - started < 5

    def test_overrun_skips_ticks(self):
        fetcher = make_fetcher()
        devices = fetcher.fetch_devices.return_value
        calls = []

        def slow_fetch():
            calls.append(time.monotonic())
            if len(calls) == 1:
                time.sleep(0.35)
            return devices

        fetcher.fetch_devices.side_effect = slow_fetch
        loop = PollLoop(fetcher, MetricsSink(), interval=0.1)
        loop.start()
        deadline = time.monotonic() + 5
        while len(calls) < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
        loop.stop()
        loop.join(5)

        assert len(calls) >= 2
        assert loop.skipped_ticks >= 3


class TestEndToEnd:
    def test_expired_session_recovers_within_one_poll(self, endpoint, controller, stale_store):
        controller.routes[("GET", "/api/s/default/stat/device")].insert(
            0, FakeResponse(401, text="unauthorized")
        )
        client = ControllerClient(endpoint, stale_store, username="admin", password="pw", http=controller)
        sink = MetricsSink()
        loop = PollLoop(InventoryFetcher(client), sink, interval=30)

        assert loop.poll_once() is PollState.SUCCESS

        assert controller.count("POST", "/api/login") == 1
        assert controller.count("GET", "/api/s/default/stat/device") == 2
        assert len(sink.snapshot().devices) == 3
        assert stale_store.current().value == "unifises=fresh"

    def test_first_poll_logs_in_then_renews_on_401(self, endpoint, fake_http, session_store, sample_devices):
        fake_http.add("POST", "/api/login", login_ok("unifises=first"), login_ok("unifises=second"))
        fake_http.add(
            "GET", "/api/s/default/stat/device",
            FakeResponse(401, text="unauthorized"), envelope(sample_devices),
        )
        fake_http.add("GET", "/api/s/default/stat/sta", envelope([]))
        fake_http.add("GET", "/api/self/sites", envelope([{"_id": "s", "name": "default"}]))
        client = ControllerClient(endpoint, session_store, username="admin", password="pw", http=fake_http)
        sink = MetricsSink()

        result = PollLoop(InventoryFetcher(client), sink, interval=30).poll_once()

        assert result is PollState.SUCCESS
        assert fake_http.count("POST", "/api/login") == 2
        assert session_store.current().value == "unifises=second"
        assert sink.snapshot().sites.count == 1
