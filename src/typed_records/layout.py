"""Generation of field descriptors from record declarations.

Two sources are supported: lists of ``FieldDeclaration`` laid out with C
natural alignment by ``LayoutBuilder``, and ``ctypes.Structure`` subclasses,
whose offsets and sizes are taken from ctypes itself.
"""

from __future__ import annotations

import ctypes
from dataclasses import dataclass
from typing import Iterable

from typed_records.exceptions import LayoutError
from typed_records.options import CodecOptions
from typed_records.registry import TypeRegistry
from typed_records.types import FieldDescriptor, TypeCode

# Scalar type names accepted in declarations
SCALAR_TYPE_NAMES: dict[str, TypeCode] = {
    "int8": TypeCode.INT8,
    "int16": TypeCode.INT16,
    "int32": TypeCode.INT32,
    "int64": TypeCode.INT64,
    "uint8": TypeCode.UINT8,
    "uint16": TypeCode.UINT16,
    "uint32": TypeCode.UINT32,
    "uint64": TypeCode.UINT64,
    "float32": TypeCode.FLOAT32,
    "float64": TypeCode.FLOAT64,
    "bool": TypeCode.BOOL,
    "char": TypeCode.INT8,
}

# Opaque type names, stored as one pointer-sized slot
OPAQUE_TYPE_NAMES: dict[str, TypeCode] = {
    "pointer": TypeCode.POINTER,
    "function": TypeCode.FUNCTION,
}


@dataclass
class FieldDeclaration:
    """One member of a record declaration; ``count`` makes it a fixed array."""

    name: str
    type_name: str
    count: int | None = None


@dataclass
class RecordLayout:
    """Computed layout of a record type."""

    type_id: str
    size: int
    alignment: int
    descriptors: tuple[FieldDescriptor, ...]


def _align(offset: int, alignment: int) -> int:
    return (offset + alignment - 1) // alignment * alignment


class LayoutBuilder:
    """Lays out declared records and registers their descriptors."""

    def __init__(self, registry: TypeRegistry, options: CodecOptions | None = None) -> None:
        self.registry = registry
        self.options = options or CodecOptions()

    def build(self, type_id: str, declarations: Iterable[FieldDeclaration]) -> RecordLayout:
        """Compute field offsets for a record, register it and return its layout.

        Record types used as field types must already be registered with a size.
        """
        descriptors: list[FieldDescriptor] = []
        seen: set[str] = set()
        offset = 0
        max_alignment = 1

        for decl in declarations:
            if decl.name in seen:
                raise LayoutError(f"Type '{type_id}': duplicate field '{decl.name}'")
            seen.add(decl.name)
            if decl.count is not None and decl.count <= 0:
                raise LayoutError(
                    f"Type '{type_id}': array field '{decl.name}' must have a positive length"
                )

            element_size, alignment = self._measure(type_id, decl)
            offset = _align(offset, alignment)
            descriptors.append(self._describe(decl, offset, element_size))
            offset += element_size * (decl.count or 1)
            max_alignment = max(max_alignment, alignment)

        size = _align(offset, max_alignment)
        layout = RecordLayout(
            type_id=type_id,
            size=size,
            alignment=max_alignment,
            descriptors=tuple(descriptors),
        )
        self.registry.register(type_id, layout.descriptors, size=size)
        return layout

    def _measure(self, type_id: str, decl: FieldDeclaration) -> tuple[int, int]:
        """Return (element size, alignment) for a declared field type."""
        if decl.type_name in SCALAR_TYPE_NAMES:
            size = SCALAR_TYPE_NAMES[decl.type_name].size_bytes
            return size, size
        if decl.type_name in OPAQUE_TYPE_NAMES:
            return self.options.pointer_size, self.options.pointer_size

        if decl.type_name == type_id or decl.type_name not in self.registry:
            raise LayoutError(
                f"Type '{type_id}': field '{decl.name}' has unknown type '{decl.type_name}'"
            )
        size = self.registry.size_of(decl.type_name)
        if size is None:
            raise LayoutError(
                f"Type '{type_id}': size of record type '{decl.type_name}' is not known"
            )
        return size, self.alignment_of(decl.type_name)

    def _describe(self, decl: FieldDeclaration, offset: int, element_size: int) -> FieldDescriptor:
        count = decl.count
        kind = SCALAR_TYPE_NAMES.get(decl.type_name, OPAQUE_TYPE_NAMES.get(decl.type_name))
        if kind is not None:
            if count is None:
                return FieldDescriptor(decl.name, kind, offset, element_size)
            if decl.type_name == "char":
                return FieldDescriptor(decl.name, TypeCode.STRING, offset, count)
            return FieldDescriptor(
                decl.name,
                TypeCode.ARRAY,
                offset,
                element_size * count,
                element_kind=kind,
                element_size=element_size,
                element_count=count,
            )

        if count is None:
            return FieldDescriptor(
                decl.name, TypeCode.STRUCT, offset, element_size, nested_type=decl.type_name
            )
        return FieldDescriptor(
            decl.name,
            TypeCode.ARRAY,
            offset,
            element_size * count,
            nested_type=decl.type_name,
            element_size=element_size,
            element_count=count,
        )

    def alignment_of(self, type_id: str) -> int:
        """Return the natural alignment of a registered record type."""
        alignment = 1
        for field in self.registry.get_or_raise(type_id):
            alignment = max(alignment, self._field_alignment(field))
        return alignment

    def _field_alignment(self, field: FieldDescriptor) -> int:
        kind = field.kind
        if kind is TypeCode.ARRAY:
            if field.nested_type in self.registry:
                return self.alignment_of(field.nested_type)  # type: ignore[arg-type]
            kind = field.element_kind
        if kind.is_scalar:
            return kind.size_bytes
        if kind in (TypeCode.POINTER, TypeCode.FUNCTION):
            return self.options.pointer_size
        if kind is TypeCode.STRUCT and field.nested_type in self.registry:
            return self.alignment_of(field.nested_type)  # type: ignore[arg-type]
        return 1


# ---- ctypes structures ----

# ctypes simple type codes with a fixed kind
_CTYPES_CODES: dict[str, TypeCode] = {
    "b": TypeCode.INT8,
    "B": TypeCode.UINT8,
    "c": TypeCode.INT8,
    "?": TypeCode.BOOL,
    "f": TypeCode.FLOAT32,
    "d": TypeCode.FLOAT64,
    "P": TypeCode.POINTER,
    "z": TypeCode.POINTER,
    "Z": TypeCode.POINTER,
    "O": TypeCode.POINTER,
}

# Integer kinds by (signed, size in bytes)
_INTEGER_KINDS: dict[tuple[bool, int], TypeCode] = {
    (True, 2): TypeCode.INT16,
    (True, 4): TypeCode.INT32,
    (True, 8): TypeCode.INT64,
    (False, 2): TypeCode.UINT16,
    (False, 4): TypeCode.UINT32,
    (False, 8): TypeCode.UINT64,
}


def type_id_of(cls: type) -> str:
    """Return the type id under which a ctypes structure is registered."""
    return f"{cls.__module__}.{cls.__qualname__}"


def _ctype_kind(ctype: type) -> TypeCode:
    if issubclass(ctype, (ctypes.Structure, ctypes.Union)):
        return TypeCode.STRUCT
    if issubclass(ctype, ctypes.Array):
        return TypeCode.ARRAY
    if issubclass(ctype, ctypes._Pointer):
        return TypeCode.POINTER
    if issubclass(ctype, ctypes._CFuncPtr):
        return TypeCode.FUNCTION

    code = getattr(ctype, "_type_", None)
    if not isinstance(code, str):
        return TypeCode.UNKNOWN
    if code in _CTYPES_CODES:
        return _CTYPES_CODES[code]
    if code in "hilq":
        return _INTEGER_KINDS[(True, ctypes.sizeof(ctype))]
    if code in "HILQ":
        return _INTEGER_KINDS[(False, ctypes.sizeof(ctype))]
    return TypeCode.UNKNOWN


def descriptors_from_ctypes(cls: type) -> list[FieldDescriptor]:
    """Build the field descriptors of a ctypes structure or union."""
    descriptors: list[FieldDescriptor] = []
    for entry in getattr(cls, "_fields_", ()):
        name, ctype = entry[0], entry[1]
        if len(entry) > 2:
            raise LayoutError(f"Type '{cls.__name__}': bit field '{name}' is not supported")
        member = getattr(cls, name)
        offset, size = member.offset, member.size
        kind = _ctype_kind(ctype)

        if kind is TypeCode.STRUCT:
            descriptors.append(
                FieldDescriptor(name, kind, offset, size, nested_type=type_id_of(ctype))
            )
        elif kind is TypeCode.ARRAY:
            descriptors.append(_ctypes_array(cls, name, ctype, offset, size))
        else:
            descriptors.append(FieldDescriptor(name, kind, offset, size))
    return descriptors


def _ctypes_array(cls: type, name: str, ctype: type, offset: int, size: int) -> FieldDescriptor:
    element = ctype._type_  # type: ignore[attr-defined]
    if element is ctypes.c_char:
        return FieldDescriptor(name, TypeCode.STRING, offset, size)

    element_kind = _ctype_kind(element)
    nested_type = None
    if element_kind is TypeCode.STRUCT:
        nested_type = type_id_of(element)
        element_kind = TypeCode.UNKNOWN
    elif element_kind is TypeCode.UNKNOWN:
        raise LayoutError(
            f"Type '{cls.__name__}': array field '{name}' has unsupported elements"
        )
    return FieldDescriptor(
        name,
        TypeCode.ARRAY,
        offset,
        size,
        nested_type=nested_type,
        element_kind=element_kind,
        element_size=ctypes.sizeof(element),
        element_count=ctype._length_,  # type: ignore[attr-defined]
    )


def _nested_structures(cls: type) -> list[type]:
    nested: list[type] = []
    for entry in getattr(cls, "_fields_", ()):
        ctype = entry[1]
        while issubclass(ctype, ctypes.Array):
            ctype = ctype._type_
        if issubclass(ctype, (ctypes.Structure, ctypes.Union)) and ctype not in nested:
            nested.append(ctype)
    return nested


def register_ctypes(registry: TypeRegistry, cls: type) -> str:
    """Register a ctypes structure and, first, every structure it contains.

    Nested structures that are already registered are left as they are.
    Returns the type id of ``cls``.
    """
    for nested in _nested_structures(cls):
        if type_id_of(nested) not in registry:
            register_ctypes(registry, nested)
    type_id = type_id_of(cls)
    registry.register(type_id, descriptors_from_ctypes(cls), size=ctypes.sizeof(cls))
    return type_id
