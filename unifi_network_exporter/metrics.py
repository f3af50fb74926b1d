"""
Prometheus view of the controller inventory.

The poll loop hands complete record lists to ``MetricsSink.replace``, which
swaps in a new immutable ``InventorySnapshot`` under a lock. The
``InventoryCollector`` renders metric families from a single snapshot per
scrape, so a scrape always sees one whole poll and never a mix of two.
"""

import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Sequence, Tuple

from prometheus_client import CollectorRegistry
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from .logging import get_logger
from .models import SiteSummary, UnifiClient, UnifiDevice

logger = get_logger(__name__)

DEVICE_LABELS = ["id", "name", "mac"]
CLIENT_LABELS = ["id", "mac", "hostname"]


@dataclass(frozen=True)
class InventorySnapshot:
    """Everything one successful poll produced."""
    devices: Tuple[UnifiDevice, ...] = ()
    clients: Tuple[UnifiClient, ...] = ()
    sites: SiteSummary = SiteSummary()
    skipped: Dict[str, int] = field(default_factory=dict)
    completed_at: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        """True until the first poll has completed."""
        return self.completed_at is None


class MetricsSink:
    """Holds the current snapshot; written by the poll loop, read by scrapes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot = InventorySnapshot()

    def snapshot(self) -> InventorySnapshot:
        with self._lock:
            return self._snapshot

    def replace(
        self,
        devices: Sequence[UnifiDevice],
        clients: Sequence[UnifiClient],
        sites: SiteSummary,
        completed_at: Optional[float] = None,
    ) -> InventorySnapshot:
        """
        Publish a new snapshot built from one poll's results.

        The snapshot is assembled before the lock is taken; the swap itself is
        a single reference assignment.

        Args:
            devices: Device records; a ``skipped`` attribute is recorded if present.
            clients: Client records; a ``skipped`` attribute is recorded if present.
            sites: Site summary for the poll.
            completed_at: Epoch seconds the poll finished; defaults to now.

        Returns:
            The snapshot that is now current.
        """
        snapshot = InventorySnapshot(
            devices=tuple(devices),
            clients=tuple(clients),
            sites=sites,
            skipped={
                "device": getattr(devices, "skipped", 0),
                "client": getattr(clients, "skipped", 0),
                "site": sites.skipped,
            },
            completed_at=time.time() if completed_at is None else completed_at,
        )
        with self._lock:
            self._snapshot = snapshot
        logger.debug(
            f"Published snapshot: {len(snapshot.devices)} devices, "
            f"{len(snapshot.clients)} clients, {sites.count} sites"
        )
        return snapshot


class InventoryCollector:
    """prometheus_client collector reading from a MetricsSink."""

    def __init__(self, sink: MetricsSink):
        self.sink = sink

    def collect(self) -> Iterator[Metric]:
        snapshot = self.sink.snapshot()
        yield from device_metrics(snapshot.devices)
        yield from client_metrics(snapshot.clients, include_totals=not snapshot.is_empty)
        yield from exporter_metrics(snapshot)


def create_registry(sink: MetricsSink) -> CollectorRegistry:
    """Create a registry exposing only the inventory collector."""
    registry = CollectorRegistry(auto_describe=False)
    registry.register(InventoryCollector(sink))
    return registry


def device_metrics(devices: Iterable[UnifiDevice]) -> Iterator[Metric]:
    info = GaugeMetricFamily(
        "unifi_device_info", "UniFi device information",
        labels=["id", "name", "mac", "type", "model", "version"],
    )
    uptime = GaugeMetricFamily(
        "unifi_device_uptime_seconds", "Device uptime in seconds", labels=DEVICE_LABELS
    )
    adopted = GaugeMetricFamily(
        "unifi_device_adopted", "Device adoption status (1=adopted, 0=not adopted)",
        labels=DEVICE_LABELS,
    )
    state = GaugeMetricFamily("unifi_device_state", "Device state", labels=DEVICE_LABELS)
    cpu = GaugeMetricFamily(
        "unifi_device_cpu_usage_percent", "Device CPU utilization in percent",
        labels=DEVICE_LABELS,
    )
    memory = GaugeMetricFamily(
        "unifi_device_memory_usage_percent", "Device memory utilization in percent",
        labels=DEVICE_LABELS,
    )
    load = GaugeMetricFamily(
        "unifi_device_load_average", "Device load average",
        labels=DEVICE_LABELS + ["period"],
    )
    memory_total = GaugeMetricFamily(
        "unifi_device_memory_total_bytes", "Device total memory in bytes", labels=DEVICE_LABELS
    )
    memory_ratio = GaugeMetricFamily(
        "unifi_device_memory_usage_ratio", "Device memory usage ratio", labels=DEVICE_LABELS
    )
    traffic = CounterMetricFamily(
        "unifi_device_bytes", "Total bytes transferred", labels=DEVICE_LABELS + ["direction"]
    )
    packets = CounterMetricFamily(
        "unifi_device_packets", "Total packets transferred", labels=DEVICE_LABELS + ["direction"]
    )

    for device in devices:
        labels = [device.id, device.name, device.mac]
        info.add_metric(
            labels + [device.type, device.model, device.version], 1
        )
        uptime.add_metric(labels, device.uptime)
        adopted.add_metric(labels, 1 if device.adopted else 0)
        state.add_metric(labels, device.state)
        cpu.add_metric(labels, device.cpu_percent)
        memory.add_metric(labels, device.mem_percent)
        load.add_metric(labels + ["1m"], device.load_1)
        load.add_metric(labels + ["5m"], device.load_5)
        load.add_metric(labels + ["15m"], device.load_15)
        memory_total.add_metric(labels, device.mem_total)
        ratio = device.memory_usage_ratio
        if ratio is not None:
            memory_ratio.add_metric(labels, ratio)
        traffic.add_metric(labels + ["rx"], device.rx_bytes)
        traffic.add_metric(labels + ["tx"], device.tx_bytes)
        packets.add_metric(labels + ["rx"], device.rx_packets)
        packets.add_metric(labels + ["tx"], device.tx_packets)

    return iter([
        info, uptime, adopted, state, cpu, memory, load,
        memory_total, memory_ratio, traffic, packets,
    ])


def client_metrics(clients: Iterable[UnifiClient], include_totals: bool = True) -> Iterator[Metric]:
    info = GaugeMetricFamily(
        "unifi_client_info", "UniFi client information",
        labels=["id", "mac", "hostname", "name", "ip", "network", "ap_mac"],
    )
    traffic = CounterMetricFamily(
        "unifi_client_bytes", "Total bytes transferred by client",
        labels=CLIENT_LABELS + ["direction"],
    )
    signal = GaugeMetricFamily(
        "unifi_client_signal_strength_dbm", "Client WiFi signal strength in dBm",
        labels=CLIENT_LABELS,
    )
    uptime = GaugeMetricFamily(
        "unifi_client_uptime_seconds", "Client connection uptime in seconds",
        labels=CLIENT_LABELS,
    )
    totals = GaugeMetricFamily(
        "unifi_clients_total", "Total number of clients",
        labels=["type", "network", "is_guest"],
    )

    wired = wireless = guests = 0
    per_network: Counter = Counter()
    for client in clients:
        labels = [client.id, client.mac, client.hostname]
        info.add_metric(
            [client.id, client.mac, client.hostname, client.name, client.ip,
             client.network, client.ap_mac],
            1,
        )
        traffic.add_metric(labels + ["rx"], client.rx_bytes)
        traffic.add_metric(labels + ["tx"], client.tx_bytes)
        if not client.is_wired and client.signal is not None:
            signal.add_metric(labels, client.signal)
        uptime.add_metric(labels, client.uptime)

        if client.is_wired:
            wired += 1
        else:
            wireless += 1
        if client.is_guest:
            guests += 1
        per_network[client.network or "unknown"] += 1

    if include_totals:
        totals.add_metric(["wired", "all", "all"], wired)
        totals.add_metric(["wireless", "all", "all"], wireless)
        totals.add_metric(["all", "all", "true"], guests)
        totals.add_metric(["all", "all", "false"], wired + wireless - guests)
        for network, count in sorted(per_network.items()):
            totals.add_metric(["all", network, "all"], count)

    return iter([info, traffic, signal, uptime, totals])


def exporter_metrics(snapshot: InventorySnapshot) -> Iterator[Metric]:
    sites = GaugeMetricFamily("unifi_sites_total", "Total number of sites", labels=[])
    skipped = GaugeMetricFamily(
        "unifi_exporter_skipped_records",
        "Malformed controller records dropped by the last successful poll",
        labels=["kind"],
    )
    last_poll = GaugeMetricFamily(
        "unifi_exporter_last_poll_timestamp_seconds",
        "Completion time of the poll the current metrics come from",
        labels=[],
    )

    if not snapshot.is_empty:
        sites.add_metric([], snapshot.sites.count)
        for kind, count in sorted(snapshot.skipped.items()):
            skipped.add_metric([kind], count)
        last_poll.add_metric([], snapshot.completed_at)

    return iter([sites, skipped, last_poll])
