from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class IntegerType:
    width: int
    signed: bool

    def __post_init__(self):
        assert self.width > 0, self.width

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1

    def __str__(self) -> str:
        prefix = "int" if self.signed else "uint"
        if self.width == 32:
            return prefix
        return f"{prefix}{self.width}"


@dataclass(frozen=True)
class FloatType:
    width: int

    def __str__(self) -> str:
        return "float" if self.width == 32 else f"float{self.width}"


@dataclass(frozen=True)
class BoolType:
    def __str__(self) -> str:
        return "bool"


@dataclass(frozen=True)
class VoidType:
    def __str__(self) -> str:
        return "void"


ScalarType = Union[IntegerType, FloatType, BoolType]


@dataclass(frozen=True)
class VectorType:
    element: ScalarType
    count: int

    def __post_init__(self):
        assert self.count >= 2, self.count

    def __str__(self) -> str:
        return f"v{self.count}{self.element}"


@dataclass(frozen=True)
class OpaqueType:
    """
    Any type declaration this package does not interpret (pointers, function
    types, images, structs...). Kept so that lookups of such ids succeed
    and deduplication still works by structural equality of the operands.
    """

    opcode: str
    operands: tuple

    def __str__(self) -> str:
        return self.opcode.removeprefix("OpType").lower()


IRType = Union[IntegerType, FloatType, BoolType, VoidType, VectorType, OpaqueType]


def is_integer_or_integer_vector(typ: IRType) -> bool:
    match typ:
        case IntegerType():
            return True
        case VectorType(element=IntegerType()):
            return True
        case _:
            return False
