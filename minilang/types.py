from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from .ast import Located
from .errors import UnknownTypeError


@dataclass(frozen=True)
class IntType:
    name: str
    bit_width: int
    signed: bool

    @property
    def min_value(self) -> int:
        return -(1 << (self.bit_width - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        return (1 << (self.bit_width - 1)) - 1 if self.signed else (1 << self.bit_width) - 1

    def fits(self, value: int) -> bool:
        return self.min_value <= value <= self.max_value

    def __str__(self) -> str:  # pragma: no cover - trivial repr
        return self.name


I8 = IntType("i8", 8, True)
I16 = IntType("i16", 16, True)
I32 = IntType("i32", 32, True)
I64 = IntType("i64", 64, True)
U8 = IntType("u8", 8, False)
U16 = IntType("u16", 16, False)
U32 = IntType("u32", 32, False)
U64 = IntType("u64", 64, False)

# Result of a comparison; not a declarable tag.
BOOL = IntType("bool", 1, False)

_SIZED_INTS: Mapping[str, IntType] = MappingProxyType(
    {ty.name: ty for ty in (I8, I16, I32, I64, U8, U16, U32, U64)}
)


@dataclass(frozen=True, eq=False)
class TypeRegistry:
    """Immutable mapping from a sized-integer tag to its width and signedness."""

    entries: Mapping[str, IntType] = field(default_factory=lambda: _SIZED_INTS)

    def __post_init__(self) -> None:
        if not isinstance(self.entries, MappingProxyType):
            object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def resolve(self, type_name: str, loc: Optional[Located] = None) -> IntType:
        ty = self.entries.get(type_name)
        if ty is None:
            raise UnknownTypeError(type_name, loc)
        return ty

    def __contains__(self, type_name: object) -> bool:
        return type_name in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)


DEFAULT_REGISTRY = TypeRegistry()
