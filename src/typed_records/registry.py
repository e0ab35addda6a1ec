"""Registry of record types and their field descriptors."""

from __future__ import annotations

import logging
from typing import Iterable

from typed_records.exceptions import NotRegisteredError, RegistryFrozenError
from typed_records.types import FieldDescriptor

logger = logging.getLogger(__name__)


class TypeRegistry:
    """Mapping from type id to the ordered field descriptors of that record type.

    The registry has a write phase, during which types are registered, and a
    read phase after ``freeze()``. Reads are safe from any number of threads
    once the write phase is over. Registration is not synchronized: register
    all types from one thread, before encoding or decoding starts.
    """

    def __init__(self) -> None:
        self._descriptors: dict[str, tuple[FieldDescriptor, ...]] = {}
        self._sizes: dict[str, int] = {}
        self._frozen = False

    def register(
        self,
        type_id: str,
        descriptors: Iterable[FieldDescriptor],
        size: int | None = None,
    ) -> None:
        """Register the descriptors of a record type.

        A later registration of the same type id replaces the earlier one.
        ``size`` is the total size of one record in bytes, when known.
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register type '{type_id}': registry is frozen"
            )

        fields = tuple(descriptors)
        seen: set[str] = set()
        for field in fields:
            if field.name in seen:
                logger.warning(
                    "Type '%s' declares field '%s' more than once", type_id, field.name
                )
            seen.add(field.name)

        if type_id in self._descriptors:
            logger.debug("Replacing descriptors for type '%s'", type_id)
        self._descriptors[type_id] = fields
        if size is not None:
            self._sizes[type_id] = size
        else:
            self._sizes.pop(type_id, None)

    def lookup(self, type_id: str | None) -> tuple[FieldDescriptor, ...] | None:
        """Get the descriptors of a type, or None if it is not registered."""
        if type_id is None:
            return None
        return self._descriptors.get(type_id)

    def get_or_raise(self, type_id: str) -> tuple[FieldDescriptor, ...]:
        """Get the descriptors of a type, raising if it is not registered."""
        descriptors = self._descriptors.get(type_id)
        if descriptors is None:
            raise NotRegisteredError(type_id)
        return descriptors

    def size_of(self, type_id: str) -> int | None:
        """Get the registered record size of a type, if one was given."""
        return self._sizes.get(type_id)

    def freeze(self) -> None:
        """End the write phase; further registrations raise RegistryFrozenError."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        """Return whether the registry has been frozen."""
        return self._frozen

    def list_types(self) -> list[str]:
        """List all registered type ids in registration order."""
        return list(self._descriptors.keys())

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)
