"""
Models for UniFi sites.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Tuple

from ..utils import api_field, map_api_data_to_model, require_str, to_str


@dataclass
class UnifiSite:
    """
    Represents a UniFi site.

    A site in UniFi represents a logical grouping of devices and network segments,
    typically representing a physical location or organization.
    """
    id: str = api_field("_id", require_str, default="")
    name: str = api_field("name", require_str, default="")
    desc: str = api_field("desc", to_str, default="")

    extra_fields: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "UnifiSite":
        """Build a site from an entry of ``/api/self/sites``."""
        model_fields, extra_fields = map_api_data_to_model(data, cls)
        return cls(**model_fields, extra_fields=extra_fields)

    @classmethod
    def from_integration_api(cls, data: Mapping[str, Any]) -> "UnifiSite":
        """
        Build a site from an entry of the integration API's ``/v1/sites``.

        The integration API calls the short name ``internalReference`` and
        uses ``name`` for the description.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        known = {"id", "internalReference", "name"}
        return cls(
            id=require_str(data.get("id"), "id"),
            name=require_str(data.get("internalReference"), "internalReference"),
            desc=to_str(data.get("name"), "name"),
            extra_fields={k: v for k, v in data.items() if k not in known},
        )


@dataclass(frozen=True)
class SiteSummary:
    """Site inventory reduced to what the exporter publishes."""
    count: int = 0
    names: Tuple[str, ...] = ()
    skipped: int = 0

    @classmethod
    def from_sites(cls, sites: Iterable[UnifiSite], skipped: int = 0) -> "SiteSummary":
        names = tuple(site.name for site in sites)
        return cls(count=len(names), names=names, skipped=skipped)
