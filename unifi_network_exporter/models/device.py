"""
Models for UniFi devices.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..utils import (
    api_field,
    map_api_data_to_model,
    require_str,
    to_bool,
    to_float,
    to_int,
    to_str,
)


@dataclass
class UnifiDevice:
    """
    Represents a UniFi network device (access point, switch, gateway, ...).

    Built from one entry of ``/api/s/{site}/stat/device``. Each field names
    the payload key it is read from; missing or null values fall back to the
    field's default (empty string for labels, zero for numbers, False for
    flags). ``_id`` and ``mac`` are required.

    Traffic counters are read from the ``stat`` object when the controller
    puts them there, otherwise from the top level of the entry.
    """
    # Identification
    id: str = api_field("_id", require_str, default="")
    mac: str = api_field("mac", require_str, default="")
    name: str = api_field("name", to_str, default="")
    type: str = api_field("type", to_str, default="")
    model: str = api_field("model", to_str, default="")
    version: str = api_field("version", to_str, default="")

    # Status
    adopted: bool = api_field("adopted", to_bool, default=False)
    state: int = api_field("state", to_int, default=0)
    uptime: int = api_field("uptime", to_int, default=0)

    # Utilization
    cpu_percent: float = api_field("system-stats.cpu", to_float, default=0.0)
    mem_percent: float = api_field("system-stats.mem", to_float, default=0.0)
    load_1: float = api_field("sys_stats.loadavg_1", to_float, default=0.0)
    load_5: float = api_field("sys_stats.loadavg_5", to_float, default=0.0)
    load_15: float = api_field("sys_stats.loadavg_15", to_float, default=0.0)
    mem_used: int = api_field("sys_stats.mem_used", to_int, default=0)
    mem_total: int = api_field("sys_stats.mem_total", to_int, default=0)

    # Cumulative traffic
    rx_bytes: int = api_field(("stat.rx_bytes", "rx_bytes"), to_int, default=0)
    tx_bytes: int = api_field(("stat.tx_bytes", "tx_bytes"), to_int, default=0)
    rx_packets: int = api_field(("stat.rx_packets", "rx_packets"), to_int, default=0)
    tx_packets: int = api_field(("stat.tx_packets", "tx_packets"), to_int, default=0)

    # Store any additional fields that aren't explicitly defined
    extra_fields: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "UnifiDevice":
        """
        Build a device from a raw API entry.

        Raises:
            ValueError: If the entry is malformed.
        """
        model_fields, extra_fields = map_api_data_to_model(data, cls)
        return cls(**model_fields, extra_fields=extra_fields)

    @property
    def memory_usage_ratio(self) -> Optional[float]:
        """Used/total memory, or None when the total is unknown."""
        if self.mem_total <= 0:
            return None
        return self.mem_used / self.mem_total
