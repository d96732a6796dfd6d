"""Portable type registry and variant lookup indexes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class Primitive(Enum):
    """Primitive types known to the type registry."""

    BOOL = "bool"
    CHAR = "char"
    STR = "str"
    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"
    U128 = "u128"
    U256 = "u256"
    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    I128 = "i128"
    I256 = "i256"


@dataclass
class Field:
    """A field of a composite type or of a variant."""

    ty: int
    name: str | None = None
    type_name: str | None = None
    docs: list[str] = field(default_factory=list)


@dataclass
class Variant:
    """One variant of an enum type."""

    name: str
    index: int
    fields: list[Field] = field(default_factory=list)
    docs: list[str] = field(default_factory=list)


@dataclass
class TypeParameter:
    """A named generic parameter, bound to a type id if known."""

    name: str
    ty: int | None = None


@dataclass
class TypeDefComposite:
    fields: list[Field] = field(default_factory=list)


@dataclass
class TypeDefVariant:
    variants: list[Variant] = field(default_factory=list)


@dataclass
class TypeDefSequence:
    type_param: int


@dataclass
class TypeDefArray:
    len: int
    type_param: int


@dataclass
class TypeDefTuple:
    fields: list[int] = field(default_factory=list)


@dataclass
class TypeDefPrimitive:
    primitive: Primitive


@dataclass
class TypeDefCompact:
    type_param: int


_TypeDef = Union[
    TypeDefComposite,
    TypeDefVariant,
    TypeDefSequence,
    TypeDefArray,
    TypeDefTuple,
    TypeDefPrimitive,
    TypeDefCompact,
]


@dataclass
class Type:
    """A type description: its path, generic parameters and definition."""

    path: list[str] = field(default_factory=list)
    type_params: list[TypeParameter] = field(default_factory=list)
    type_def: _TypeDef = field(default_factory=TypeDefComposite)
    docs: list[str] = field(default_factory=list)

    def ident(self) -> str | None:
        """The last path segment, if the type has a path."""
        return self.path[-1] if self.path else None


@dataclass
class PortableType:
    """A type together with its id in the registry."""

    id: int
    ty: Type


@dataclass
class PortableRegistry:
    """Types addressed by their position in the registry."""

    types: list[PortableType] = field(default_factory=list)

    def resolve(self, type_id: int) -> Type | None:
        """The type with the given id, or ``None`` if there is none."""
        if isinstance(type_id, bool) or not isinstance(type_id, int):
            return None
        if 0 <= type_id < len(self.types):
            return self.types[type_id].ty
        return None

    def register(self, ty: Type) -> int:
        """Append a type and return its new id."""
        type_id = len(self.types)
        self.types.append(PortableType(type_id, ty))
        return type_id


@dataclass
class VariantIndex:
    """Positions of an enum's variants, by name and by encoded index."""

    by_name: dict[str, int] = field(default_factory=dict)
    by_index: dict[int, int] = field(default_factory=dict)

    @classmethod
    def build(cls, variant_id: int | None, types: PortableRegistry) -> VariantIndex:
        """Index the variants of ``variant_id``; empty if it is not a variant type."""
        variants = cls.get(variant_id, types)
        if variants is None:
            return cls.empty()
        return cls(
            by_name={variant.name: pos for pos, variant in enumerate(variants)},
            by_index={variant.index: pos for pos, variant in enumerate(variants)},
        )

    @classmethod
    def empty(cls) -> VariantIndex:
        return cls()

    @staticmethod
    def get(variant_id: int | None, types: PortableRegistry) -> list[Variant] | None:
        """The variants of the type, or ``None`` if it is missing or not an enum."""
        if variant_id is None:
            return None
        ty = types.resolve(variant_id)
        if ty is None or not isinstance(ty.type_def, TypeDefVariant):
            return None
        return ty.type_def.variants

    def _at(self, pos: int | None, variant_id: int | None, types: PortableRegistry) -> Variant | None:
        if pos is None:
            return None
        variants = self.get(variant_id, types)
        if variants is None or pos >= len(variants):
            return None
        return variants[pos]

    def lookup_by_name(self, name: str, variant_id: int | None, types: PortableRegistry) -> Variant | None:
        """The variant called ``name``, or ``None``."""
        return self._at(self.by_name.get(name), variant_id, types)

    def lookup_by_index(self, index: int, variant_id: int | None, types: PortableRegistry) -> Variant | None:
        """The variant with encoded index ``index``, or ``None``."""
        return self._at(self.by_index.get(index), variant_id, types)