"""Public entry points for converting records to and from JSON."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any

from typed_records.decoder import Decoder
from typed_records.encoder import Encoder
from typed_records.exceptions import (
    EmptyInputError,
    ParseError,
    ReadOnlyRecordError,
    TypeMismatchError,
)
from typed_records.options import CodecOptions
from typed_records.record import RecordBuffer
from typed_records.registry import TypeRegistry
from typed_records.types import FieldFailure


@dataclass
class ConversionReport:
    """Result of an encode call together with the fields that degraded."""

    value: dict[str, Any]
    failures: list[FieldFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return whether every field converted cleanly."""
        return not self.failures


def _reject_constant(name: str) -> Any:
    raise ParseError(f"Invalid JSON constant: {name}")


def _finite(value: Any) -> Any:
    """Replace non-finite floats, which JSON cannot represent, with None."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {k: _finite(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_finite(v) for v in value]
    return value


def dumps(tree: Any, indent: int | None = None) -> str:
    """Serialize a tree as JSON text; compact unless ``indent`` is given."""
    tree = _finite(tree)
    if indent is None:
        return json.dumps(tree, separators=(",", ":"))
    return json.dumps(tree, indent=indent)


class Codec:
    """Encodes and decodes records of the types held by a registry.

    Records are any object exposing the buffer protocol: ``bytearray``,
    ``memoryview``, ``mmap`` or a ``ctypes`` structure instance. Read-only
    buffers such as ``bytes`` can be encoded but not decoded into.
    """

    def __init__(self, registry: TypeRegistry, options: CodecOptions | None = None) -> None:
        self.registry = registry
        self.options = options or CodecOptions()
        self._encoder = Encoder(registry, self.options)
        self._decoder = Decoder(registry, self.options)

    def _buffer(self, record: Any) -> RecordBuffer:
        return RecordBuffer(record, self.options.byte_order)

    def encode(self, type_id: str, record: Any) -> dict[str, Any]:
        """Encode a record into a JSON tree.

        Raises NotRegisteredError if ``type_id`` has no descriptors.
        """
        return self.encode_report(type_id, record).value

    def encode_report(self, type_id: str, record: Any) -> ConversionReport:
        """Encode a record, also returning the fields that could not be converted."""
        descriptors = self.registry.get_or_raise(type_id)
        failures: list[FieldFailure] = []
        value = self._encoder.encode(descriptors, self._buffer(record), failures)
        return ConversionReport(value=value, failures=failures)

    def decode(self, type_id: str, tree: Any, record: Any) -> list[FieldFailure]:
        """Decode a JSON tree into a record in place.

        Raises TypeMismatchError if ``tree`` is not an object,
        NotRegisteredError if ``type_id`` has no descriptors and
        ReadOnlyRecordError if ``record`` cannot be written. Returns the
        fields that could not be written.
        """
        if not isinstance(tree, dict):
            raise TypeMismatchError(
                f"JSON value is not an object, cannot convert to '{type_id}'"
            )
        descriptors = self.registry.get_or_raise(type_id)
        buffer = self._buffer(record)
        if buffer.readonly:
            raise ReadOnlyRecordError(
                f"Cannot decode into a read-only record of type '{type_id}'"
            )
        failures: list[FieldFailure] = []
        self._decoder.decode(descriptors, tree, buffer, failures)
        return failures

    def encode_to_text(self, type_id: str, record: Any, indent: int | None = None) -> str:
        """Encode a record and serialize the tree as a JSON document."""
        return dumps(self.encode(type_id, record), indent=indent)

    def decode_from_text(self, type_id: str, text: str | bytes, record: Any) -> list[FieldFailure]:
        """Parse a JSON document and decode it into a record in place.

        Raises EmptyInputError for empty text and ParseError for text that is
        not well-formed JSON.
        """
        if not text:
            raise EmptyInputError("Empty JSON text provided")
        try:
            tree = json.loads(text, parse_constant=_reject_constant)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"JSON parsing error: {e}") from e
        return self.decode(type_id, tree, record)

    def new_record(self, type_id: str) -> bytearray:
        """Allocate a zeroed record of a registered type."""
        self.registry.get_or_raise(type_id)
        size = self.registry.size_of(type_id)
        if size is None:
            raise ValueError(f"Record size of type '{type_id}' is not known")
        return bytearray(size)
