"""Typed Records - descriptor-driven conversion between binary records and JSON."""

from typed_records.codec import Codec, ConversionReport
from typed_records.exceptions import (
    EmptyInputError,
    FieldConversionError,
    LayoutError,
    NotRegisteredError,
    ParseError,
    ReadOnlyRecordError,
    RegistryFrozenError,
    TypedRecordsError,
    TypeMismatchError,
)
from typed_records.layout import (
    FieldDeclaration,
    LayoutBuilder,
    RecordLayout,
    register_ctypes,
    type_id_of,
)
from typed_records.options import CodecOptions
from typed_records.parsing import SchemaParser
from typed_records.registry import TypeRegistry
from typed_records.types import FieldDescriptor, FieldFailure, TypeCode

__all__ = [
    # Main API
    "Codec",
    "CodecOptions",
    "ConversionReport",
    "TypeRegistry",
    # Descriptors
    "FieldDescriptor",
    "FieldFailure",
    "TypeCode",
    # Layouts
    "FieldDeclaration",
    "LayoutBuilder",
    "RecordLayout",
    "SchemaParser",
    "register_ctypes",
    "type_id_of",
    # Errors
    "TypedRecordsError",
    "NotRegisteredError",
    "TypeMismatchError",
    "ParseError",
    "EmptyInputError",
    "FieldConversionError",
    "ReadOnlyRecordError",
    "RegistryFrozenError",
    "LayoutError",
]

__version__ = "0.1.0"
