"""Exceptions raised by the typed_records library."""

from __future__ import annotations


class TypedRecordsError(Exception):
    """Base exception for typed_records errors.

    Callers can catch this to handle every failure the library raises
    for a whole conversion call.
    """


class NotRegisteredError(TypedRecordsError, LookupError):
    """The requested record type has no registered descriptors."""

    def __init__(self, type_id: str) -> None:
        super().__init__(f"No descriptors registered for type '{type_id}'")
        self.type_id = type_id


class TypeMismatchError(TypedRecordsError, TypeError):
    """A tree value has the wrong shape for the record it is decoded into."""


class ParseError(TypedRecordsError, ValueError):
    """Text input is not a well-formed JSON document."""


class EmptyInputError(TypedRecordsError, ValueError):
    """Text input is empty."""


class RegistryFrozenError(TypedRecordsError, RuntimeError):
    """A registration was attempted after the registry was frozen."""


class LayoutError(TypedRecordsError, ValueError):
    """A record layout cannot be computed from its declaration."""


class ReadOnlyRecordError(TypedRecordsError, TypeError):
    """A decode target does not expose writable memory."""


class FieldConversionError(TypedRecordsError):
    """A single field could not be read or written per its declared kind.

    Never propagates out of a conversion call: the encoder and decoder catch
    it at the field boundary and report it as a ``FieldFailure``.
    """

    def __init__(self, field_name: str, reason: str) -> None:
        super().__init__(f"Field '{field_name}': {reason}")
        self.field_name = field_name
        self.reason = reason


def as_field_error(path: str, error: Exception) -> FieldConversionError:
    """Wrap any error raised while converting one field as a FieldConversionError."""
    if isinstance(error, FieldConversionError):
        return error
    wrapped = FieldConversionError(path, str(error) or type(error).__name__)
    wrapped.__cause__ = error
    return wrapped
