"""
Utility functions for mapping UniFi API payloads onto record dataclasses.

Record dataclasses declare, per field, where the value lives in the API
payload (``unifi_api_field``: a key, a dotted path into nested objects, or a
tuple of fallbacks) and how to coerce it (``coerce``). The coercion helpers
implement the exporter's default policy: a missing or ``null`` value becomes
the documented default, while a value of the wrong type raises
``ValueError`` so the caller can drop the whole record instead of exporting
a guess.
"""

import dataclasses
import math
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type


def api_field(source, coerce: Callable[[Any, str], Any], default: Any = None):
    """
    Declare a record field sourced from the API payload.

    Args:
        source: API key, dotted path ('system-stats.cpu') or tuple of them,
            tried in order until one is not null.
        coerce: Callable ``(value, name) -> value`` applying the field's default.
        default: Value used when the record is built directly rather than from the API.
    """
    return dataclasses.field(
        default=default, metadata={"unifi_api_field": source, "coerce": coerce}
    )


def resolve_api_path(data: Mapping[str, Any], path: str) -> Any:
    """
    Follow a dotted path such as 'sys_stats.loadavg_1' through nested objects.

    Returns None when any step is missing or null.

    Raises:
        ValueError: If an intermediate step is present but not an object.
    """
    value: Any = data
    walked = []
    for part in path.split("."):
        if value is None:
            return None
        if not isinstance(value, Mapping):
            raise ValueError(f"field '{'.'.join(walked)}' expected an object, got {type(value).__name__}")
        value = value.get(part)
        walked.append(part)
    return value


def map_api_data_to_model(
    data: Any, model_class: Type
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Maps API data to coerced model fields, separating out extra fields.

    Every field declared with ``api_field`` is looked up through its source
    paths and passed through its coercer. Top-level keys that no field reads
    are returned as extra fields.

    Args:
        data: One entry of an API response's ``data`` list
        model_class: The dataclass model to map data to

    Returns:
        Tuple containing (model_fields, extra_fields)

    Raises:
        ValueError: If the entry is not an object, a required field is
            missing, or a field has the wrong type.
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"expected an object, got {type(data).__name__}")

    model_fields = {}
    consumed = set()

    for field in dataclasses.fields(model_class):
        if "unifi_api_field" not in field.metadata:
            continue
        source = field.metadata["unifi_api_field"]
        paths = (source,) if isinstance(source, str) else tuple(source)

        consumed.update(path.split(".", 1)[0] for path in paths)
        raw = None
        for path in paths:
            raw = resolve_api_path(data, path)
            if raw is not None:
                break

        model_fields[field.name] = field.metadata["coerce"](raw, paths[0])

    extra_fields = {k: v for k, v in data.items() if k not in consumed}
    return model_fields, extra_fields


def require_str(value: Any, name: str) -> str:
    """Return a non-empty string or raise ValueError."""
    if not isinstance(value, str) or not value:
        raise ValueError(f"required field '{name}' is missing or not a string")
    return value


def to_str(value: Any, name: str, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(f"field '{name}' expected a string, got a boolean")
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    raise ValueError(f"field '{name}' expected a string, got {type(value).__name__}")


def to_float(value: Any, name: str, default: float = 0.0) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(f"field '{name}' expected a number, got a boolean")
    if isinstance(value, (int, float)):
        try:
            result = float(value)
        except OverflowError:
            raise ValueError(f"field '{name}' is out of range") from None
    elif isinstance(value, str):
        # sys_stats values arrive as strings, e.g. "0.42"
        try:
            result = float(value.strip())
        except ValueError:
            raise ValueError(f"field '{name}' is not numeric: {value!r}") from None
    else:
        raise ValueError(f"field '{name}' expected a number, got {type(value).__name__}")
    if not math.isfinite(result):
        raise ValueError(f"field '{name}' is not finite: {value!r}")
    return result


def to_int(value: Any, name: str, default: int = 0) -> int:
    if value is None:
        return default
    return int(to_float(value, name))


def to_optional_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    return to_int(value, name)


def to_bool(value: Any, name: str, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValueError(f"field '{name}' expected a boolean, got {value!r}")
