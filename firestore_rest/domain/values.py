"""Domain value types for Firestore documents, writes and queries.

GeoPoint and Reference complete the closed set of Python values the codec
accepts (alongside None, bool, int, float, datetime, str, bytes, lists,
mappings and pydantic records). Document mirrors the REST Document resource.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from firestore_rest.shared.utils.datetime import parse_rfc3339


@dataclass(frozen=True)
class GeoPoint:
    """Latitude/longitude pair stored as a geoPointValue."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude must be within [-90, 90], got {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude must be within [-180, 180], got {self.longitude}")


@dataclass(frozen=True)
class Reference:
    """Reference to another document, by absolute resource name.

    Example: projects/p/databases/(default)/documents/users/alice
    """

    name: str


class FieldOperator(str, Enum):
    """Field filter operators of a structured query."""

    LESS_THAN = "LESS_THAN"
    LESS_THAN_OR_EQUAL = "LESS_THAN_OR_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_OR_EQUAL = "GREATER_THAN_OR_EQUAL"
    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"
    ARRAY_CONTAINS = "ARRAY_CONTAINS"
    IN = "IN"
    ARRAY_CONTAINS_ANY = "ARRAY_CONTAINS_ANY"
    NOT_IN = "NOT_IN"

    @classmethod
    def parse(cls, op: "FieldOperator | str") -> "FieldOperator":
        """Return the operator for an enum member, enum name or shorthand ('==', '<', ...).

        Raises:
            ValueError: If op is not a known operator.
        """
        if isinstance(op, cls):
            return op
        alias = _OP_MAP.get(op)
        if alias is not None:
            return alias
        try:
            return cls(op)
        except ValueError:
            raise ValueError(f"Unknown query operator: {op!r}") from None


_OP_MAP: dict[str, FieldOperator] = {
    "==": FieldOperator.EQUAL,
    "!=": FieldOperator.NOT_EQUAL,
    "<": FieldOperator.LESS_THAN,
    "<=": FieldOperator.LESS_THAN_OR_EQUAL,
    ">": FieldOperator.GREATER_THAN,
    ">=": FieldOperator.GREATER_THAN_OR_EQUAL,
    "in": FieldOperator.IN,
    "not-in": FieldOperator.NOT_IN,
    "not_in": FieldOperator.NOT_IN,
    "array_contains": FieldOperator.ARRAY_CONTAINS,
    "array-contains": FieldOperator.ARRAY_CONTAINS,
    "array_contains_any": FieldOperator.ARRAY_CONTAINS_ANY,
    "array-contains-any": FieldOperator.ARRAY_CONTAINS_ANY,
}


class QueryFilter(NamedTuple):
    """Single field filter: field_path <op> value."""

    field_path: str
    op: FieldOperator | str
    value: Any


@dataclass(frozen=True)
class WriteOptions:
    """Options for documents.write.

    merge: restrict the write to the fields present in the value (update mask).
    exists: optional precondition; None means unconditional.
    """

    merge: bool = False
    exists: bool | None = None


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a write: resolved id plus server timestamps."""

    document_id: str
    create_time: datetime | None = None
    update_time: datetime | None = None


class Document(BaseModel):
    """Firestore REST Document resource (fields kept in wire form)."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    fields: dict[str, Any] = Field(default_factory=dict)
    create_time: datetime | None = Field(default=None, alias="createTime")
    update_time: datetime | None = Field(default=None, alias="updateTime")

    @field_validator("create_time", "update_time", mode="before")
    @classmethod
    def _parse_timestamp(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_rfc3339(v)
        return v

    @property
    def document_id(self) -> str:
        """Last segment of the resource name."""
        return self.name.rsplit("/", 1)[-1] if self.name else ""
