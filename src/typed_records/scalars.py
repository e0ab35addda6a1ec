"""Read and write rules for scalar field kinds."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any

from typed_records.exceptions import FieldConversionError
from typed_records.record import RecordBuffer
from typed_records.types import TypeCode


class ScalarFamily(Enum):
    """Groups of scalar kinds that accept the same tree values."""

    BYTE = "byte"
    SIGNED = "signed"
    UNSIGNED = "unsigned"
    FLOAT = "float"
    BOOL = "bool"


@dataclass(frozen=True)
class ScalarRule:
    """How one scalar kind is stored in record memory."""

    kind: TypeCode
    format: str  # struct format character, without byte order
    family: ScalarFamily


SCALAR_RULES: dict[TypeCode, ScalarRule] = {
    # The char kinds are stored and encoded as unsigned bytes.
    TypeCode.INT8: ScalarRule(TypeCode.INT8, "B", ScalarFamily.BYTE),
    TypeCode.UINT8: ScalarRule(TypeCode.UINT8, "B", ScalarFamily.BYTE),
    TypeCode.INT16: ScalarRule(TypeCode.INT16, "h", ScalarFamily.SIGNED),
    TypeCode.INT32: ScalarRule(TypeCode.INT32, "i", ScalarFamily.SIGNED),
    TypeCode.INT64: ScalarRule(TypeCode.INT64, "q", ScalarFamily.SIGNED),
    TypeCode.UINT16: ScalarRule(TypeCode.UINT16, "H", ScalarFamily.UNSIGNED),
    TypeCode.UINT32: ScalarRule(TypeCode.UINT32, "I", ScalarFamily.UNSIGNED),
    TypeCode.UINT64: ScalarRule(TypeCode.UINT64, "Q", ScalarFamily.UNSIGNED),
    TypeCode.FLOAT32: ScalarRule(TypeCode.FLOAT32, "f", ScalarFamily.FLOAT),
    TypeCode.FLOAT64: ScalarRule(TypeCode.FLOAT64, "d", ScalarFamily.FLOAT),
    TypeCode.BOOL: ScalarRule(TypeCode.BOOL, "?", ScalarFamily.BOOL),
}


def read_scalar(record: RecordBuffer, kind: TypeCode, offset: int) -> int | float | bool:
    """Read the scalar of the given kind stored at ``offset``."""
    return record.unpack(SCALAR_RULES[kind].format, offset)


def write_scalar(
    record: RecordBuffer,
    kind: TypeCode,
    offset: int,
    value: Any,
    field_name: str = "<element>",
) -> None:
    """Validate a tree leaf and store it at ``offset`` with the kind's width.

    Raises FieldConversionError without touching memory if the leaf has the
    wrong type or does not fit.
    """
    rule = SCALAR_RULES[kind]
    stored = _coerce(rule, value, field_name)
    try:
        record.pack(rule.format, offset, stored)
    except (struct.error, OverflowError) as e:
        raise FieldConversionError(field_name, f"cannot store value as {kind.value}: {e}") from e


def accepts_element(kind: TypeCode, value: Any) -> bool:
    """Return whether an array element belongs to the value family of ``kind``."""
    family = SCALAR_RULES[kind].family
    if family is ScalarFamily.BOOL:
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if family is ScalarFamily.FLOAT:
        return isinstance(value, (int, float))
    if family is ScalarFamily.UNSIGNED:
        return isinstance(value, int) and value >= 0
    return isinstance(value, int)


def _coerce(rule: ScalarRule, value: Any, field_name: str) -> int | float | bool:
    if rule.family is ScalarFamily.BOOL:
        if not isinstance(value, bool):
            raise FieldConversionError(field_name, f"expected a boolean, got {type(value).__name__}")
        return value

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FieldConversionError(field_name, f"expected a number, got {type(value).__name__}")

    if rule.family is ScalarFamily.FLOAT:
        try:
            return float(value)
        except OverflowError as e:
            raise FieldConversionError(field_name, f"integer too large for {rule.kind.value}") from e

    if isinstance(value, float):
        if not value.is_integer():
            raise FieldConversionError(field_name, f"expected an integer, got {value!r}")
        value = int(value)

    if rule.family is ScalarFamily.BYTE:
        if not -128 <= value <= 255:
            raise FieldConversionError(field_name, "value does not fit in one byte")
        return value & 0xFF
    return value
