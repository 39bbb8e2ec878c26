"""Encode/decode Python values to/from Firestore REST API 'fields' format.

Records are pydantic models encoded field by field from their declared
fields; plain mappings are encoded key by key. A record field holding None
is omitted from the document, so a merge write leaves it untouched, while
None inside a mapping or list is an explicit nullValue.
"""

import base64
import binascii
import math
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from firestore_rest.domain.exceptions import SerializationException
from firestore_rest.domain.values import GeoPoint, Reference
from firestore_rest.shared.utils.datetime import format_rfc3339, parse_rfc3339

RecordT = TypeVar("RecordT", bound=BaseModel)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_SIMPLE_SEGMENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _encode_double(v: float) -> float | str:
    if math.isnan(v):
        return "NaN"
    if math.isinf(v):
        return "Infinity" if v > 0 else "-Infinity"
    return v


def _encode_value(v: Any, path: str = "") -> dict:
    if v is None:
        return {"nullValue": None}
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        if not _INT64_MIN <= v <= _INT64_MAX:
            raise SerializationException(
                f"Integer {v} does not fit in 64 bits", field=path or None
            )
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": _encode_double(v)}
    if isinstance(v, datetime):
        return {"timestampValue": format_rfc3339(v)}
    if isinstance(v, str):
        return {"stringValue": v}
    if isinstance(v, (bytes, bytearray)):
        return {"bytesValue": base64.standard_b64encode(bytes(v)).decode("ascii")}
    if isinstance(v, Reference):
        return {"referenceValue": v.name}
    if isinstance(v, GeoPoint):
        return {"geoPointValue": {"latitude": v.latitude, "longitude": v.longitude}}
    if isinstance(v, BaseModel):
        return {"mapValue": {"fields": _encode_record_fields(v, path)}}
    if isinstance(v, Mapping):
        return {"mapValue": {"fields": _encode_mapping_fields(v, path)}}
    if isinstance(v, (list, tuple)):
        return {
            "arrayValue": {
                "values": [_encode_value(x, f"{path}[{i}]") for i, x in enumerate(v)]
            }
        }
    raise SerializationException(
        f"Unsupported Firestore value type: {type(v).__name__}", field=path or None
    )


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _encode_record_fields(record: BaseModel, path: str = "") -> dict[str, dict]:
    fields: dict[str, dict] = {}
    for name, info in type(record).model_fields.items():
        value = getattr(record, name)
        if value is None:
            continue
        key = info.serialization_alias or info.alias or name
        fields[key] = _encode_value(value, _join(path, key))
    return fields


def _encode_mapping_fields(data: Mapping, path: str = "") -> dict[str, dict]:
    fields: dict[str, dict] = {}
    for k, x in data.items():
        if not isinstance(k, str):
            raise SerializationException(
                f"Map keys must be strings, got {type(k).__name__}", field=path or None
            )
        fields[k] = _encode_value(x, _join(path, k))
    return fields


def encode_document(value: BaseModel | Mapping[str, Any]) -> dict[str, dict]:
    """Convert a record or mapping to Firestore REST Document.fields format.

    Raises:
        SerializationException: If the value is not a record/mapping or holds
            an unsupported type.
    """
    if isinstance(value, BaseModel):
        return _encode_record_fields(value)
    if isinstance(value, Mapping):
        return _encode_mapping_fields(value)
    raise SerializationException(
        f"Documents must be pydantic models or mappings, got {type(value).__name__}"
    )


def _decode_value(obj: dict, path: str = "") -> Any:
    if "nullValue" in obj:
        return None
    if "booleanValue" in obj:
        return obj["booleanValue"]
    try:
        if "integerValue" in obj:
            return int(obj["integerValue"])
        if "doubleValue" in obj:
            # JSON numbers arrive as int when they have no fractional part.
            return float(obj["doubleValue"])
        if "timestampValue" in obj:
            return parse_rfc3339(obj["timestampValue"])
        if "bytesValue" in obj:
            return base64.standard_b64decode(obj["bytesValue"])
        if "geoPointValue" in obj:
            point = obj["geoPointValue"] or {}
            return GeoPoint(
                float(point.get("latitude", 0.0)), float(point.get("longitude", 0.0))
            )
    except (TypeError, ValueError, binascii.Error) as e:
        raise SerializationException(
            f"Malformed value: {e}", field=path or None
        ) from e
    if "stringValue" in obj:
        return obj["stringValue"]
    if "referenceValue" in obj:
        return Reference(obj["referenceValue"])
    if "arrayValue" in obj:
        vals = (obj.get("arrayValue") or {}).get("values") or []
        return [_decode_value(x, f"{path}[{i}]") for i, x in enumerate(vals)]
    if "mapValue" in obj:
        fields = (obj.get("mapValue") or {}).get("fields") or {}
        return {k: _decode_value(x, _join(path, k)) for k, x in fields.items()}
    raise SerializationException(
        f"Unknown Firestore value: {sorted(obj)}", field=path or None
    )


def decode_fields(fields: Mapping[str, dict] | None) -> dict[str, Any]:
    """Convert Firestore REST Document.fields to a Python dict."""
    if not fields:
        return {}
    return {k: _decode_value(v, k) for k, v in fields.items()}


def decode_document(
    fields: Mapping[str, dict] | None, model: type[RecordT] | None = None
) -> RecordT | dict[str, Any]:
    """Convert Document.fields to a dict, or validate it into model.

    Unknown fields are ignored by the model (pydantic default); missing
    fields fall back to model defaults.

    Raises:
        SerializationException: If a required field is missing or a value
            does not match the model.
    """
    data = decode_fields(fields)
    if model is None:
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise SerializationException(
            f"Document does not match {model.__name__}",
            errors=e.errors(include_url=False),
        ) from e


def quote_field_path(path: str) -> str:
    """Quote each segment of a dotted field path that is not a simple identifier.

    Example: a_map.000 -> a_map.`000`; already quoted segments are kept.
    """
    segments: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False
    for ch in path:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\" and in_quotes:
            current.append(ch)
            escaped = True
        elif ch == "`":
            current.append(ch)
            in_quotes = not in_quotes
        elif ch == "." and not in_quotes:
            segments.append("".join(current))
            current = []
        else:
            current.append(ch)
    segments.append("".join(current))
    return ".".join(_quote_segment(s) for s in segments)


def quote_field_name(name: str) -> str:
    """Quote a single field name for use as one field path segment.

    Unlike quote_field_path, dots and backticks in name are literal.
    Example: a.b -> `a.b`
    """
    if _SIMPLE_SEGMENT_RE.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def _quote_segment(segment: str) -> str:
    if len(segment) >= 2 and segment.startswith("`") and segment.endswith("`"):
        return segment
    return quote_field_name(segment)
