"""Declared variable types and their default value domains."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from solrange.concrete import Concrete, ConcreteKind, numeric_bounds
from solrange.elem import ConcreteElem
from solrange.range import Range


class TypeKind(Enum):
    UINT = "uint"
    INT = "int"
    BYTES = "bytes"
    DYN_BYTES = "dyn_bytes"
    ADDRESS = "address"
    BOOL = "bool"
    STRING = "string"
    STRUCT = "struct"


_NUMERIC_RE = re.compile(r"^(u?int)(\d*)$")
_BYTES_RE = re.compile(r"^bytes(\d+)$")


@dataclass(frozen=True)
class VarType:
    """A declared type.

    ``width`` is in bits for UINT/INT and in bytes for BYTES. Struct types
    carry their ``(field name, field type)`` pairs.
    """
    kind: TypeKind
    width: int = 0
    name: str = ""
    fields: Tuple[Tuple[str, "VarType"], ...] = ()

    def __str__(self) -> str:
        if self.kind in (TypeKind.UINT, TypeKind.INT):
            return f"{self.kind.value}{self.width}"
        if self.kind == TypeKind.BYTES:
            return f"bytes{self.width}"
        if self.kind == TypeKind.DYN_BYTES:
            return "bytes"
        if self.kind == TypeKind.STRUCT:
            return f"struct {self.name}"
        return self.kind.value

    def is_numeric(self) -> bool:
        return self.kind in (TypeKind.UINT, TypeKind.INT)

    def is_signed(self) -> bool:
        return self.kind == TypeKind.INT

    def is_struct(self) -> bool:
        return self.kind == TypeKind.STRUCT

    def zero(self) -> Optional[Concrete]:
        """The zero value of the type, used as a cast target."""
        if self.kind == TypeKind.UINT:
            return Concrete.uint(0, self.width)
        if self.kind == TypeKind.INT:
            return Concrete.int_(0, self.width)
        if self.kind == TypeKind.BYTES:
            return Concrete.fixed_bytes(b"", self.width)
        if self.kind == TypeKind.ADDRESS:
            return Concrete.address(b"")
        if self.kind == TypeKind.BOOL:
            return Concrete.bool_(False)
        if self.kind == TypeKind.STRING:
            return Concrete.string("")
        if self.kind == TypeKind.DYN_BYTES:
            return Concrete.dyn_bytes(b"")
        return None

    def default_range(self) -> Optional[Range]:
        """The full domain of the type, or None when it has no total order."""
        if self.is_numeric():
            lo, hi = numeric_bounds(self.width, self.is_signed())
            if self.is_signed():
                return Range(ConcreteElem(Concrete.int_(lo, self.width)),
                             ConcreteElem(Concrete.int_(hi, self.width)))
            return Range(ConcreteElem(Concrete.uint(lo, self.width)),
                         ConcreteElem(Concrete.uint(hi, self.width)))
        if self.kind == TypeKind.BOOL:
            return Range(ConcreteElem(Concrete.bool_(False)),
                         ConcreteElem(Concrete.bool_(True)))
        if self.kind == TypeKind.ADDRESS:
            return Range(ConcreteElem(Concrete.address(b"")),
                         ConcreteElem(Concrete.address(b"\xff" * 20)))
        if self.kind == TypeKind.BYTES:
            return Range(ConcreteElem(Concrete.fixed_bytes(b"", self.width)),
                         ConcreteElem(Concrete.fixed_bytes(b"\xff" * self.width, self.width)))
        return None

    @staticmethod
    def uint(width: int = 256) -> VarType:
        return VarType(TypeKind.UINT, width)

    @staticmethod
    def int_(width: int = 256) -> VarType:
        return VarType(TypeKind.INT, width)

    @staticmethod
    def struct(name: str, fields: Tuple[Tuple[str, "VarType"], ...]) -> VarType:
        return VarType(TypeKind.STRUCT, name=name, fields=tuple(fields))

    @staticmethod
    def parse(name: str) -> VarType:
        """Parse an elementary type name such as ``uint8`` or ``bytes32``."""
        name = name.strip()
        m = _NUMERIC_RE.match(name)
        if m:
            width = int(m.group(2)) if m.group(2) else 256
            if width % 8 or not 8 <= width <= 256:
                raise ValueError(f"invalid integer width in type '{name}'")
            kind = TypeKind.UINT if m.group(1) == "uint" else TypeKind.INT
            return VarType(kind, width)
        m = _BYTES_RE.match(name)
        if m:
            size = int(m.group(1))
            if not 1 <= size <= 32:
                raise ValueError(f"invalid byte width in type '{name}'")
            return VarType(TypeKind.BYTES, size)
        simple = {
            "bytes": TypeKind.DYN_BYTES,
            "address": TypeKind.ADDRESS,
            "bool": TypeKind.BOOL,
            "string": TypeKind.STRING,
        }
        if name in simple:
            return VarType(simple[name])
        raise ValueError(f"unknown elementary type '{name}'")

    @staticmethod
    def from_concrete(c: Concrete) -> VarType:
        if c.kind == ConcreteKind.UINT:
            return VarType(TypeKind.UINT, c.width)
        if c.kind == ConcreteKind.INT:
            return VarType(TypeKind.INT, c.width)
        if c.kind == ConcreteKind.BYTES:
            return VarType(TypeKind.BYTES, max(c.width, 1))
        if c.kind == ConcreteKind.DYN_BYTES:
            return VarType(TypeKind.DYN_BYTES)
        if c.kind == ConcreteKind.ADDRESS:
            return VarType(TypeKind.ADDRESS)
        if c.kind == ConcreteKind.BOOL:
            return VarType(TypeKind.BOOL)
        return VarType(TypeKind.STRING)


BOOL = VarType(TypeKind.BOOL)
ADDRESS = VarType(TypeKind.ADDRESS)
STRING = VarType(TypeKind.STRING)
UINT256 = VarType.uint(256)
INT256 = VarType.int_(256)
