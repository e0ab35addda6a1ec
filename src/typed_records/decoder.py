"""Descriptor-driven conversion of a JSON tree into record memory."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from typed_records.exceptions import (
    FieldConversionError,
    NotRegisteredError,
    TypeMismatchError,
    as_field_error,
)
from typed_records.options import CodecOptions
from typed_records.record import RecordBuffer
from typed_records.registry import TypeRegistry
from typed_records.scalars import accepts_element, write_scalar
from typed_records.types import FieldDescriptor, FieldFailure, TypeCode, infer_element_size

logger = logging.getLogger(__name__)


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


class Decoder:
    """Writes a JSON tree into record memory by walking field descriptors.

    Fields missing from the tree, or null in it, keep their current memory.
    A field whose value cannot be written is logged, reported in the failure
    list and skipped; the remaining fields are still decoded.
    """

    def __init__(self, registry: TypeRegistry, options: CodecOptions | None = None) -> None:
        self.registry = registry
        self.options = options or CodecOptions()

    def decode(
        self,
        descriptors: Sequence[FieldDescriptor],
        tree: Any,
        record: RecordBuffer,
        failures: list[FieldFailure],
        path: str = "",
    ) -> None:
        """Decode an object node into one record."""
        if not isinstance(tree, dict):
            where = f" for '{path}'" if path else ""
            raise TypeMismatchError(
                f"Expected a JSON object{where}, got {type(tree).__name__}"
            )

        for field in descriptors:
            value = tree.get(field.name)
            if value is None:
                continue
            field_path = _join(path, field.name)
            try:
                self._decode_field(field, value, record, failures, field_path)
            except Exception as e:
                logger.warning("Error parsing field '%s': %s", field_path, e)
                failures.append(FieldFailure(field_path, as_field_error(field_path, e)))

    def _decode_field(
        self,
        field: FieldDescriptor,
        value: Any,
        record: RecordBuffer,
        failures: list[FieldFailure],
        path: str,
    ) -> None:
        kind = field.kind
        if kind.is_scalar:
            write_scalar(record, kind, field.offset, value, path)
        elif kind is TypeCode.STRING:
            self._decode_string(field, value, record, path)
        elif kind is TypeCode.POINTER:
            if self.options.clear_pointers_on_decode:
                record.clear(field.offset, field.size or self.options.pointer_size)
        elif kind is TypeCode.STRUCT:
            nested = self.registry.lookup(field.nested_type)
            if nested is None:
                raise NotRegisteredError(str(field.nested_type))
            self.decode(nested, value, record.at(field.offset), failures, path)
        elif kind is TypeCode.ARRAY:
            self._decode_array(field, value, record, failures, path)
        # FUNCTION and UNKNOWN fields are never written.

    def _decode_string(
        self, field: FieldDescriptor, value: Any, record: RecordBuffer, path: str
    ) -> None:
        """Copy text into a fixed buffer, truncating and always zero-terminating it."""
        if field.size == 0:
            # No fixed buffer: the field refers to memory owned elsewhere.
            return
        if not isinstance(value, str):
            raise FieldConversionError(path, f"expected a string, got {type(value).__name__}")
        data = value.encode("utf-8").split(b"\x00", 1)[0][: field.size - 1]
        record.write_bytes(field.offset, data.ljust(field.size, b"\x00"))

    def _decode_array(
        self,
        field: FieldDescriptor,
        value: Any,
        record: RecordBuffer,
        failures: list[FieldFailure],
        path: str,
    ) -> None:
        if not isinstance(value, list):
            logger.debug("Skipping array field '%s': tree value is not an array", path)
            return

        base = record.at(field.offset)
        nested = self.registry.lookup(field.nested_type)

        if nested is not None:
            if field.has_explicit_layout:
                element_size, capacity = field.element_size, field.element_count
            else:
                element_size = infer_element_size(nested, self.options.pointer_size)
                if element_size == 0:
                    raise FieldConversionError(path, "cannot infer the size of empty record elements")
                capacity = field.size // element_size
            for i, item in enumerate(value[:capacity]):
                if not isinstance(item, dict):
                    logger.debug("Skipping element '%s[%d]': not an object", path, i)
                    continue
                self.decode(nested, item, base.at(i * element_size), failures, f"{path}[{i}]")
            return

        kind = field.element_kind
        if not kind.is_scalar:
            if field.nested_type is not None:
                raise NotRegisteredError(field.nested_type)
            raise FieldConversionError(path, f"unknown array element kind '{kind.value}'")

        if field.has_explicit_layout:
            element_size, capacity = field.element_size, field.element_count
        else:
            element_size = kind.size_bytes
            capacity = field.size // element_size
        for i, item in enumerate(value[:capacity]):
            if not accepts_element(kind, item):
                logger.debug("Skipping element '%s[%d]': expected %s", path, i, kind.value)
                continue
            try:
                write_scalar(base, kind, i * element_size, item, f"{path}[{i}]")
            except FieldConversionError as e:
                logger.debug("Skipping element '%s[%d]': %s", path, i, e.reason)
