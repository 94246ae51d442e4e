"""Concrete values: the exact leaves of every range bound.

A ``Concrete`` is one of the primitive value kinds of the contract language:

  uint<N>   unsigned integer, N in [8, 256] step 8
  int<N>    signed integer, two's complement
  bytes<N>  fixed byte block, 32-byte buffer plus a logical length
  bytes     dynamic byte sequence
  address   20 bytes
  bool
  string    UTF-8

For numeric values the width is the minimal 8-bit aligned width that holds
the magnitude when the value is built (``fit_size``). Casting between widths
and signedness wraps (two's complement); it never fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


MAX_BITS = 256
UINT_MAX = (1 << MAX_BITS) - 1
INT_MIN = -(1 << (MAX_BITS - 1))
INT_MAX = (1 << (MAX_BITS - 1)) - 1
ADDRESS_MAX = (1 << 160) - 1


class ConcreteKind(Enum):
    UINT = "uint"
    INT = "int"
    BYTES = "bytes"
    DYN_BYTES = "dyn_bytes"
    ADDRESS = "address"
    BOOL = "bool"
    STRING = "string"


def fit_width(value: int) -> int:
    """Minimal 8-bit aligned width (in bits) holding ``abs(value)``."""
    bits = abs(value).bit_length()
    return min(MAX_BITS, max(8, ((bits + 7) // 8) * 8))


def wrap(value: int, width: int, signed: bool) -> int:
    """Two's-complement truncation/extension of ``value`` to ``width`` bits."""
    mask = (1 << width) - 1
    value &= mask
    if signed and value >> (width - 1):
        value -= 1 << width
    return value


def numeric_bounds(width: int, signed: bool) -> tuple[int, int]:
    if signed:
        return -(1 << (width - 1)), (1 << (width - 1)) - 1
    return 0, (1 << width) - 1


@dataclass(frozen=True)
class Concrete:
    """An exact literal value.

    ``width`` is the bit width for UINT/INT and the logical byte length for
    BYTES; it is unused for the other kinds. ``value`` holds an ``int`` for
    UINT/INT, ``bytes`` for BYTES (always 32 long), DYN_BYTES and ADDRESS
    (20 long), ``bool`` for BOOL and ``str`` for STRING.
    """
    kind: ConcreteKind
    value: Any
    width: int = 0

    # -- constructors ------------------------------------------------------

    @staticmethod
    def uint(value: int, width: Optional[int] = None) -> Concrete:
        return Concrete(ConcreteKind.UINT, value, width or fit_width(value))

    @staticmethod
    def int_(value: int, width: Optional[int] = None) -> Concrete:
        return Concrete(ConcreteKind.INT, value, width or fit_width(value))

    @staticmethod
    def fixed_bytes(data: bytes, length: Optional[int] = None) -> Concrete:
        buf = bytes(data[:32]).ljust(32, b"\x00")
        return Concrete(ConcreteKind.BYTES, buf, len(data) if length is None else length)

    @staticmethod
    def dyn_bytes(data: bytes) -> Concrete:
        return Concrete(ConcreteKind.DYN_BYTES, bytes(data))

    @staticmethod
    def address(data: bytes) -> Concrete:
        return Concrete(ConcreteKind.ADDRESS, bytes(data).rjust(20, b"\x00")[-20:], 160)

    @staticmethod
    def bool_(value: bool) -> Concrete:
        return Concrete(ConcreteKind.BOOL, bool(value))

    @staticmethod
    def string(value: str) -> Concrete:
        return Concrete(ConcreteKind.STRING, value)

    # -- queries -----------------------------------------------------------

    def is_numeric(self) -> bool:
        return self.kind in (ConcreteKind.UINT, ConcreteKind.INT)

    def is_signed(self) -> bool:
        return self.kind == ConcreteKind.INT

    def is_int_like(self) -> bool:
        """True when the value has a total integer ordering."""
        return self.kind not in (ConcreteKind.STRING, ConcreteKind.DYN_BYTES)

    def bit_size(self) -> int:
        if self.is_numeric():
            return self.width
        if self.kind == ConcreteKind.ADDRESS:
            return 160
        if self.kind == ConcreteKind.BOOL:
            return 8
        if self.kind == ConcreteKind.BYTES:
            return 256
        return 0

    def int_val(self) -> Optional[int]:
        if self.is_numeric():
            return self.value
        if self.kind == ConcreteKind.BOOL:
            return int(self.value)
        if self.kind == ConcreteKind.ADDRESS:
            return int.from_bytes(self.value, "big")
        if self.kind == ConcreteKind.BYTES:
            return int.from_bytes(self.value, "big")
        return None

    def fit_size(self) -> Concrete:
        """Shrink a numeric value to its minimal width."""
        if self.is_numeric():
            return Concrete(self.kind, self.value, fit_width(self.value))
        return self

    # -- casting -----------------------------------------------------------

    def cast(self, width: int, signed: bool) -> Concrete:
        """Numeric cast with wraparound."""
        val = self.int_val()
        if val is None:
            return self
        kind = ConcreteKind.INT if signed else ConcreteKind.UINT
        return Concrete(kind, wrap(val, width, signed), width)

    def cast_from(self, other: Concrete) -> Concrete:
        """Reinterpret this value in ``other``'s kind and width."""
        if other.is_numeric():
            return self.cast(other.width, other.is_signed())
        val = self.int_val()
        if val is None:
            return self
        if other.kind == ConcreteKind.BOOL:
            return Concrete.bool_(val != 0)
        if other.kind == ConcreteKind.ADDRESS:
            return Concrete.address((val & ADDRESS_MAX).to_bytes(20, "big"))
        if other.kind == ConcreteKind.BYTES:
            size = other.width or 32
            if self.kind == ConcreteKind.BYTES:
                data = self.value[:size]
            else:
                data = wrap(val, size * 8, False).to_bytes(size, "big")
            return Concrete.fixed_bytes(data, size)
        return self

    def with_int(self, value: int) -> Concrete:
        """A value of this kind holding the integer ``value``.

        Numeric results keep exact magnitude: the width grows to fit, the kind
        becomes signed when the result is negative, and anything beyond 256
        bits wraps.
        """
        if self.kind == ConcreteKind.BOOL:
            return Concrete.bool_(value != 0)
        if self.kind == ConcreteKind.ADDRESS:
            return Concrete.address(wrap(value, 160, False).to_bytes(20, "big"))
        if self.kind == ConcreteKind.BYTES:
            return Concrete.fixed_bytes(wrap(value, 256, False).to_bytes(32, "big"), self.width)
        signed = self.is_signed() or value < 0
        if value > (UINT_MAX if not signed else INT_MAX) or value < INT_MIN:
            value = wrap(value, MAX_BITS, signed)
        width = max(self.width, fit_width(value))
        if signed:
            return Concrete.int_(value, width)
        return Concrete.uint(value, width)

    # -- display -----------------------------------------------------------

    def type_name(self) -> str:
        if self.is_numeric():
            return f"{self.kind.value}{self.width}"
        if self.kind == ConcreteKind.BYTES:
            return f"bytes{self.width}"
        if self.kind == ConcreteKind.DYN_BYTES:
            return "bytes"
        return self.kind.value

    def __str__(self) -> str:
        if self.is_numeric():
            return str(self.value)
        if self.kind == ConcreteKind.BOOL:
            return "true" if self.value else "false"
        if self.kind == ConcreteKind.ADDRESS:
            return "0x" + self.value.hex()
        if self.kind == ConcreteKind.BYTES:
            return "0x" + self.value[: max(self.width, 1)].hex()
        if self.kind == ConcreteKind.DYN_BYTES:
            return "0x" + self.value.hex()
        return f'"{self.value}"'
