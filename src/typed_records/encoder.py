"""Descriptor-driven conversion of record memory into a JSON tree."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from typed_records.exceptions import NotRegisteredError, as_field_error
from typed_records.options import CodecOptions
from typed_records.record import RecordBuffer
from typed_records.registry import TypeRegistry
from typed_records.scalars import read_scalar
from typed_records.types import (
    ERROR_MARKER,
    FUNCTION_MARKER,
    POINTER_MARKER,
    STRUCT_MARKER,
    UNKNOWN_ARRAY_MARKER,
    UNKNOWN_ARRAY_TYPE_MARKER,
    UNKNOWN_TYPE_MARKER,
    FieldDescriptor,
    FieldFailure,
    TypeCode,
    infer_element_size,
)

logger = logging.getLogger(__name__)


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


class Encoder:
    """Builds a JSON tree from record memory by walking field descriptors.

    Encoding a record never fails as a whole. A field that cannot be read is
    logged, replaced by a marker value, and reported in the failure list;
    the remaining fields are still encoded.
    """

    def __init__(self, registry: TypeRegistry, options: CodecOptions | None = None) -> None:
        self.registry = registry
        self.options = options or CodecOptions()

    def encode(
        self,
        descriptors: Sequence[FieldDescriptor],
        record: RecordBuffer,
        failures: list[FieldFailure],
        path: str = "",
    ) -> dict[str, Any]:
        """Encode one record into an object node keyed by field name."""
        result: dict[str, Any] = {}
        for field in descriptors:
            if field.name in result:
                # First occurrence of a repeated name wins.
                logger.warning("Skipping repeated field '%s'", _join(path, field.name))
                continue
            field_path = _join(path, field.name)
            try:
                result[field.name] = self._encode_field(field, record, failures, field_path)
            except Exception as e:
                logger.warning("Error converting field '%s': %s", field_path, e)
                failures.append(FieldFailure(field_path, as_field_error(field_path, e)))
                result[field.name] = ERROR_MARKER
        return result

    def _encode_field(
        self,
        field: FieldDescriptor,
        record: RecordBuffer,
        failures: list[FieldFailure],
        path: str,
    ) -> Any:
        kind = field.kind
        if kind.is_scalar:
            return read_scalar(record, kind, field.offset)
        if kind is TypeCode.STRING:
            return self._encode_string(field, record)
        if kind is TypeCode.FUNCTION:
            return FUNCTION_MARKER
        if kind is TypeCode.POINTER:
            return POINTER_MARKER
        if kind is TypeCode.STRUCT:
            return self._encode_struct(field, record, failures, path)
        if kind is TypeCode.ARRAY:
            return self._encode_array(field, record, failures, path)
        return UNKNOWN_TYPE_MARKER

    def _encode_string(self, field: FieldDescriptor, record: RecordBuffer) -> str:
        """Decode a zero-terminated text buffer, keeping only 7-bit bytes."""
        capacity = field.size if field.size > 0 else self.options.default_string_capacity
        raw = record.read_bytes(field.offset, capacity)
        end = raw.find(b"\x00")
        if end >= 0:
            raw = raw[:end]
        return bytes(b for b in raw if b < 128).decode("ascii")

    def _encode_struct(
        self,
        field: FieldDescriptor,
        record: RecordBuffer,
        failures: list[FieldFailure],
        path: str,
    ) -> Any:
        nested = self.registry.lookup(field.nested_type)
        if nested is None:
            self._missing_type(field, failures, path)
            return STRUCT_MARKER
        return self.encode(nested, record.at(field.offset), failures, path)

    def _missing_type(
        self, field: FieldDescriptor, failures: list[FieldFailure], path: str
    ) -> None:
        """Report a nested type that is not registered."""
        error = as_field_error(path, NotRegisteredError(str(field.nested_type)))
        logger.warning("Error converting field '%s': %s", path, error.reason)
        failures.append(FieldFailure(path, error))

    def _encode_array(
        self,
        field: FieldDescriptor,
        record: RecordBuffer,
        failures: list[FieldFailure],
        path: str,
    ) -> list[Any]:
        base = record.at(field.offset)
        nested = self.registry.lookup(field.nested_type)

        if field.has_explicit_layout:
            if nested is not None:
                return self._encode_records(
                    nested, base, field.element_size, field.element_count, failures, path
                )
            if field.element_kind is TypeCode.UNKNOWN:
                if field.nested_type is not None:
                    self._missing_type(field, failures, path)
                return [UNKNOWN_ARRAY_TYPE_MARKER]
            if not field.element_kind.is_scalar:
                if field.nested_type is not None:
                    self._missing_type(field, failures, path)
                return [UNKNOWN_ARRAY_MARKER]
            return self._encode_scalars(
                field.element_kind, base, field.element_size, field.element_count
            )

        # No explicit element layout: infer it from the field size.
        if nested is not None:
            element_size = infer_element_size(nested, self.options.pointer_size)
            if element_size == 0:
                return [UNKNOWN_ARRAY_MARKER]
            count = field.size // element_size
            return self._encode_records(nested, base, element_size, count, failures, path)
        if not field.element_kind.is_scalar:
            if field.nested_type is not None:
                self._missing_type(field, failures, path)
            return [UNKNOWN_ARRAY_MARKER]
        element_size = field.element_kind.size_bytes
        return self._encode_scalars(
            field.element_kind, base, element_size, field.size // element_size
        )

    def _encode_records(
        self,
        descriptors: Sequence[FieldDescriptor],
        base: RecordBuffer,
        element_size: int,
        count: int,
        failures: list[FieldFailure],
        path: str,
    ) -> list[Any]:
        return [
            self.encode(descriptors, base.at(i * element_size), failures, f"{path}[{i}]")
            for i in range(count)
        ]

    def _encode_scalars(
        self, kind: TypeCode, base: RecordBuffer, element_size: int, count: int
    ) -> list[Any]:
        return [read_scalar(base, kind, i * element_size) for i in range(count)]
