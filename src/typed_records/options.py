"""Configuration for encoding and decoding."""

from __future__ import annotations

import ctypes
from dataclasses import dataclass

# struct byte-order prefixes accepted by CodecOptions, keyed by CLI name
BYTE_ORDERS: dict[str, str] = {
    "native": "=",
    "little": "<",
    "big": ">",
}

POINTER_SIZE = ctypes.sizeof(ctypes.c_void_p)

DEFAULT_STRING_CAPACITY = 256


@dataclass(frozen=True)
class CodecOptions:
    """Settings shared by the encoder, decoder and layout builder."""

    byte_order: str = "="
    pointer_size: int = POINTER_SIZE
    default_string_capacity: int = DEFAULT_STRING_CAPACITY
    # Pointer fields present in the tree are reset to null on decode.
    clear_pointers_on_decode: bool = True

    def __post_init__(self) -> None:
        if self.byte_order not in BYTE_ORDERS.values():
            raise ValueError(f"Unsupported byte order prefix: {self.byte_order!r}")
        if self.pointer_size not in (4, 8):
            raise ValueError(f"Unsupported pointer size: {self.pointer_size}")
        if self.default_string_capacity <= 0:
            raise ValueError("Default string capacity must be positive")
