"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Wire value codec.

Converts domain values to and from the discriminated ``TypedValue`` used by
the protobuf-based transport. ``to_wire``/``from_wire`` apply the proto3 JSON
mapping of the ``oneof`` (int64 as decimal strings, bytes as base64).
"""

from __future__ import annotations

import base64
import binascii
import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .types import DomainValue

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ValueKind(str, Enum):
    """Discriminant of ``TypedValue``; the value is the proto3 JSON field name."""

    NULL = "nullValue"
    BOOL = "boolValue"
    INT = "intValue"
    FLOAT = "floatValue"
    STRING = "stringValue"
    BYTES = "bytesValue"


@dataclass(frozen=True, slots=True)
class TypedValue:
    """Closed tagged variant: exactly one kind with its payload."""

    kind: ValueKind
    value: DomainValue = None


NULL = TypedValue(ValueKind.NULL)


def encode(value: Any) -> TypedValue:
    """Encode any value; unsupported types fall back to their string form."""
    if value is None:
        return NULL
    if isinstance(value, bool):
        return TypedValue(ValueKind.BOOL, value)
    if isinstance(value, int):
        if INT64_MIN <= value <= INT64_MAX:
            return TypedValue(ValueKind.INT, int(value))
        return TypedValue(ValueKind.STRING, str(value))
    if isinstance(value, float):
        return TypedValue(ValueKind.FLOAT, value)
    if isinstance(value, str):
        return TypedValue(ValueKind.STRING, value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return TypedValue(ValueKind.BYTES, bytes(value))
    return TypedValue(ValueKind.STRING, str(value))


def decode(typed: TypedValue | None) -> DomainValue:
    """Decode a typed value; absence or the null variant yields ``None``."""
    if typed is None or typed.kind is ValueKind.NULL:
        return None
    return typed.value


def _float_to_wire(value: float) -> float | str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return value


def to_wire(typed: TypedValue) -> dict[str, Any]:
    """Render a typed value as its proto3 JSON object."""
    kind = typed.kind
    if kind is ValueKind.NULL:
        return {kind.value: None}
    if kind is ValueKind.INT:
        return {kind.value: str(typed.value)}
    if kind is ValueKind.FLOAT:
        return {kind.value: _float_to_wire(float(typed.value))}  # type: ignore[arg-type]
    if kind is ValueKind.BYTES:
        return {kind.value: base64.b64encode(typed.value).decode("ascii")}  # type: ignore[arg-type]
    return {kind.value: typed.value}


def from_wire(obj: Any) -> TypedValue:
    """
    Parse a proto3 JSON typed value.

    The first recognized variant wins. Anything unrecognized or unparseable
    decodes to the null variant so a single bad cell never fails a call.
    """
    if not isinstance(obj, Mapping):
        return NULL
    # Some encoders wrap the oneof as {"value": {...}}.
    inner = obj.get("value")
    if isinstance(inner, Mapping) and not any(k.value in obj for k in ValueKind):
        obj = inner

    if ValueKind.NULL.value in obj:
        return NULL
    if ValueKind.BOOL.value in obj:
        raw = obj[ValueKind.BOOL.value]
        return TypedValue(ValueKind.BOOL, raw) if isinstance(raw, bool) else NULL
    if ValueKind.INT.value in obj:
        try:
            return TypedValue(ValueKind.INT, int(obj[ValueKind.INT.value]))
        except (TypeError, ValueError):
            return NULL
    if ValueKind.FLOAT.value in obj:
        try:
            return TypedValue(ValueKind.FLOAT, float(obj[ValueKind.FLOAT.value]))
        except (TypeError, ValueError):
            return NULL
    if ValueKind.STRING.value in obj:
        raw = obj[ValueKind.STRING.value]
        return TypedValue(ValueKind.STRING, raw if isinstance(raw, str) else str(raw))
    if ValueKind.BYTES.value in obj:
        raw = obj[ValueKind.BYTES.value] or ""
        if not isinstance(raw, str):
            return NULL
        try:
            # proto3 JSON parsers accept the URL-safe alphabet too.
            padded = raw.replace("-", "+").replace("_", "/") + "=" * (-len(raw) % 4)
            return TypedValue(ValueKind.BYTES, base64.b64decode(padded, validate=True))
        except (binascii.Error, ValueError):
            return NULL
    return NULL


def encode_wire(value: Any) -> dict[str, Any]:
    """Domain value straight to its proto3 JSON object."""
    return to_wire(encode(value))


def decode_wire(obj: Any) -> DomainValue:
    """Proto3 JSON object straight to a domain value."""
    return decode(from_wire(obj))
