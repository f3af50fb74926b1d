from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..utils import (
    api_field,
    map_api_data_to_model,
    require_str,
    to_bool,
    to_int,
    to_optional_int,
    to_str,
)


@dataclass
class UnifiClient:
    """Represents a client (user device) connected to the UniFi network.

    Built from one entry of ``/api/s/{site}/stat/sta``.

    Attributes:
        id: Unique identifier for the client.
        mac: MAC address of the client.
        hostname: Hostname reported by the client, or empty.
        name: Alias assigned in the controller, or empty.
        ip: IP address assigned to the client, or empty.
        network: Name of the network the client is on, or empty.
        ap_mac: MAC of the access point a wireless client is associated with, or empty.
        is_guest: Indicates if the client is a guest.
        is_wired: Indicates if the client is connected via wired connection.
        signal: Signal strength in dBm; None when the controller reports none.
        uptime: Seconds since the client connected.
        rx_bytes: Bytes received, cumulative.
        tx_bytes: Bytes transmitted, cumulative.
    """
    id: str = api_field("_id", require_str, default="")
    mac: str = api_field("mac", require_str, default="")
    hostname: str = api_field("hostname", to_str, default="")
    name: str = api_field("name", to_str, default="")
    ip: str = api_field("ip", to_str, default="")
    network: str = api_field("network", to_str, default="")
    ap_mac: str = api_field("ap_mac", to_str, default="")
    is_guest: bool = api_field("is_guest", to_bool, default=False)
    is_wired: bool = api_field("is_wired", to_bool, default=False)
    signal: Optional[int] = api_field("signal", to_optional_int, default=None)
    uptime: int = api_field("uptime", to_int, default=0)
    rx_bytes: int = api_field("rx_bytes", to_int, default=0)
    tx_bytes: int = api_field("tx_bytes", to_int, default=0)

    extra_fields: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "UnifiClient":
        model_fields, extra_fields = map_api_data_to_model(data, cls)
        return cls(**model_fields, extra_fields=extra_fields)
