"""
Data models for UniFi Controller API responses.

.. warning::
    The dataclasses defined in this module represent commonly observed fields in the
    UniFi Controller's **undocumented** private API responses. The actual data
    returned by the API varies with controller version, device model and firmware.

    Each model declares which payload key feeds each attribute and what the attribute
    defaults to when the key is missing or ``null``. A payload entry whose values have
    the wrong type is rejected as a whole (``ValueError``) rather than partially
    mapped. Keys the models do not read are kept in ``extra_fields``.
"""

from .device import UnifiDevice
from .client import UnifiClient
from .site import UnifiSite, SiteSummary

__all__ = [
    "UnifiDevice",
    "UnifiClient",
    "UnifiSite",
    "SiteSummary",
]
