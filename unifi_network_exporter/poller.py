"""Background polling of the controller inventory.

One cycle fetches devices, clients and sites and publishes them together.
A cycle that fails anywhere publishes nothing; the next tick is the retry.
"""

from __future__ import annotations

import enum
import threading
import time
from typing import Optional

from .exceptions import UnifiExporterError
from .inventory import InventoryFetcher
from .logging import get_logger
from .metrics import MetricsSink

logger = get_logger(__name__)


class PollState(enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    SUCCESS = "success"
    FAILED = "failed"


class PollLoop(threading.Thread):
    """Periodically polls the controller and publishes to a MetricsSink.

    Ticks are fixed-rate. A poll that runs past one or more ticks causes those
    ticks to be skipped rather than queued, and ``poll_once`` refuses to start
    while another poll is in flight, whoever calls it.
    """

    def __init__(
        self,
        fetcher: InventoryFetcher,
        sink: MetricsSink,
        interval: float,
        run_immediately: bool = True,
    ):
        super().__init__(name="unifi-poll-loop", daemon=True)
        if interval <= 0:
            raise ValueError("interval must be greater than 0")
        self.fetcher = fetcher
        self.sink = sink
        self.interval = interval
        self._run_immediately = run_immediately
        self._stop_event = threading.Event()
        self._poll_lock = threading.Lock()
        self._ticks_lock = threading.Lock()

        self.state = PollState.IDLE
        self.last_result: Optional[PollState] = None
        self.last_error: Optional[str] = None
        self.last_success_at: Optional[float] = None
        self.consecutive_failures = 0
        self.skipped_ticks = 0

    def poll_once(self) -> Optional[PollState]:
        """Run one poll cycle unless one is already running.

        Returns:
            SUCCESS or FAILED for a completed cycle, None if the tick was skipped.
        """
        if not self._poll_lock.acquire(blocking=False):
            self._count_skipped(1)
            logger.warning("Previous poll still in progress; skipping this tick")
            return None
        try:
            self.state = PollState.POLLING
            started = time.monotonic()
            result = self._poll()
            self.last_result = result
            logger.debug(f"Poll finished as {result.value} in {time.monotonic() - started:.2f}s")
            return result
        finally:
            self.state = PollState.IDLE
            self._poll_lock.release()

    def _poll(self) -> PollState:
        logger.info("Polling UniFi Controller")
        try:
            devices = self.fetcher.fetch_devices()
            clients = self.fetcher.fetch_clients()
            sites = self.fetcher.fetch_sites()
        except UnifiExporterError as exc:
            return self._record_failure(exc)
        except Exception as exc:
            logger.exception("Unexpected error while polling UniFi data")
            return self._record_failure(exc)

        snapshot = self.sink.replace(devices, clients, sites)
        self.last_error = None
        self.last_success_at = snapshot.completed_at
        self.consecutive_failures = 0
        logger.info(
            f"Successfully updated metrics: {len(devices)} devices, "
            f"{len(clients)} clients, {sites.count} sites ({', '.join(sites.names) or 'none'})"
        )
        return PollState.SUCCESS

    def _count_skipped(self, ticks: int) -> None:
        # both the loop thread and a contending poll_once caller count here
        with self._ticks_lock:
            self.skipped_ticks += ticks

    def _record_failure(self, exc: Exception) -> PollState:
        self.last_error = f"{type(exc).__name__}: {exc}"
        self.consecutive_failures += 1
        logger.error(
            f"Failed to poll UniFi data (failure {self.consecutive_failures}), "
            f"keeping previous metrics: {self.last_error}"
        )
        return PollState.FAILED

    def run(self) -> None:
        logger.info(f"Starting poll loop (interval={self.interval}s)")
        next_tick = time.monotonic()
        if not self._run_immediately:
            next_tick += self.interval
            if self._stop_event.wait(self.interval):
                return

        while not self._stop_event.is_set():
            self.poll_once()
            next_tick += self.interval
            now = time.monotonic()
            if now >= next_tick:
                missed = int((now - next_tick) // self.interval) + 1
                self._count_skipped(missed)
                next_tick += missed * self.interval
                logger.warning(f"Poll overran the interval; skipped {missed} tick(s)")
            if self._stop_event.wait(next_tick - now):
                break

        logger.info("Poll loop stopped")

    def stop(self) -> None:
        self._stop_event.set()
