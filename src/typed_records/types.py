"""Field descriptor model for the typed_records library."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence


class TypeCode(Enum):
    """Closed set of field kinds understood by the encoder and decoder."""

    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOL = "bool"
    STRING = "string"  # fixed-capacity byte buffer holding text
    FUNCTION = "function"
    STRUCT = "struct"
    ARRAY = "array"
    POINTER = "pointer"
    UNKNOWN = "unknown"

    @property
    def is_scalar(self) -> bool:
        """Return whether values of this kind are a single number or boolean."""
        return self in _SCALAR_SIZES

    @property
    def size_bytes(self) -> int:
        """Return the size in bytes of one scalar value of this kind."""
        try:
            return _SCALAR_SIZES[self]
        except KeyError:
            raise TypeError(f"Type code '{self.value}' has no fixed scalar size") from None


_SCALAR_SIZES: dict[TypeCode, int] = {
    TypeCode.INT8: 1,
    TypeCode.INT16: 2,
    TypeCode.INT32: 4,
    TypeCode.INT64: 8,
    TypeCode.UINT8: 1,
    TypeCode.UINT16: 2,
    TypeCode.UINT32: 4,
    TypeCode.UINT64: 8,
    TypeCode.FLOAT32: 4,
    TypeCode.FLOAT64: 8,
    TypeCode.BOOL: 1,
}


# Marker values emitted in place of data that is not serialized.
FUNCTION_MARKER = "[function_pointer]"
POINTER_MARKER = "[pointer]"
STRUCT_MARKER = "[struct]"
UNKNOWN_TYPE_MARKER = "[unknown_type]"
UNKNOWN_ARRAY_TYPE_MARKER = "[unknown_array_type]"
UNKNOWN_ARRAY_MARKER = "[unknown_array]"
ERROR_MARKER = "[error]"


@dataclass(frozen=True)
class FieldDescriptor:
    """Layout and kind of one field within a record type.

    ``offset`` and ``size`` locate the field in the owning record's memory.
    ``nested_type`` names the registered record type of a STRUCT field or of
    the elements of an ARRAY field. For scalar arrays ``element_kind`` gives
    the element kind. ``element_size`` and ``element_count`` describe the
    array layout explicitly; when either is 0 the layout is inferred from
    ``size`` and the element type.
    """

    name: str
    kind: TypeCode
    offset: int
    size: int = 0
    nested_type: str | None = None
    element_kind: TypeCode = TypeCode.UNKNOWN
    element_size: int = 0
    element_count: int = 0

    def __post_init__(self) -> None:
        if self.offset < 0 or self.size < 0:
            raise ValueError(f"Field '{self.name}': offset and size must be non-negative")
        if self.element_size < 0 or self.element_count < 0:
            raise ValueError(
                f"Field '{self.name}': element size and count must be non-negative"
            )

        if self.kind is TypeCode.STRUCT:
            if not self.nested_type:
                raise ValueError(f"Struct field '{self.name}' requires a nested type")
        elif self.kind is TypeCode.ARRAY:
            if not self.nested_type and self.element_kind is TypeCode.UNKNOWN:
                raise ValueError(
                    f"Array field '{self.name}' requires a nested type or an element kind"
                )
        elif self.nested_type is not None:
            raise ValueError(
                f"Field '{self.name}' of kind '{self.kind.value}' cannot have a nested type"
            )

        if self.kind is not TypeCode.ARRAY and (
            self.element_kind is not TypeCode.UNKNOWN
            or self.element_size
            or self.element_count
        ):
            raise ValueError(
                f"Field '{self.name}' of kind '{self.kind.value}' cannot have element metadata"
            )

    @property
    def has_explicit_layout(self) -> bool:
        """Return whether the array layout is given by element size and count."""
        return self.element_size > 0 and self.element_count > 0


@dataclass(frozen=True)
class FieldFailure:
    """A field that could not be converted, with its path from the root record."""

    path: str
    error: Exception


def infer_element_size(descriptors: Sequence[FieldDescriptor], pointer_size: int) -> int:
    """Infer the size of one record from its descriptors.

    Takes the furthest end of any field (fields without a size count as
    pointer-sized) and rounds up to pointer alignment. Returns 0 for a record
    without fields.
    """
    end = 0
    for field in descriptors:
        end = max(end, field.offset + (field.size if field.size > 0 else pointer_size))
    return (end + pointer_size - 1) // pointer_size * pointer_size
