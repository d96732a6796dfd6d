"""Dynamic decoding of SCALE encoded data into values, driven by a type registry."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from nodeapi.codec import ScaleReader
from nodeapi.errors import CodecError
from nodeapi.registry import (
    Field,
    PortableRegistry,
    Primitive,
    TypeDefArray,
    TypeDefCompact,
    TypeDefComposite,
    TypeDefPrimitive,
    TypeDefSequence,
    TypeDefTuple,
    TypeDefVariant,
)

_U128_MAX = (1 << 128) - 1

_UNSIGNED_WIDTHS = {
    Primitive.U8: 1,
    Primitive.U16: 2,
    Primitive.U32: 4,
    Primitive.U64: 8,
    Primitive.U128: 16,
}
_SIGNED_WIDTHS = {
    Primitive.I8: 1,
    Primitive.I16: 2,
    Primitive.I32: 4,
    Primitive.I64: 8,
    Primitive.I128: 16,
}


class ValueKind(Enum):
    """The shape of a decoded value."""

    BOOL = "bool"
    CHAR = "char"
    STRING = "string"
    U128 = "u128"
    I128 = "i128"
    U256 = "u256"
    I256 = "i256"
    COMPOSITE = "composite"
    VARIANT = "variant"


@dataclass(frozen=True)
class Composite:
    """An ordered group of values, optionally carrying a name for each."""

    items: tuple[Value, ...] = ()
    names: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        if self.names is not None:
            names = tuple(self.names)
            if len(names) != len(self.items):
                raise ValueError("a named composite needs one name per value")
            object.__setattr__(self, "names", names)

    def values(self) -> list[Value]:
        """The contained values, in order, without their names."""
        return list(self.items)


@dataclass(frozen=True)
class Value:
    """A decoded value.

    ``data`` holds a ``bool``, ``str`` or ``int`` for primitives, a
    :class:`Composite` for composites and a ``(name, Composite)`` pair for variants.
    """

    kind: ValueKind
    data: Any

    @classmethod
    def u128(cls, value: int) -> Value:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U128_MAX:
            raise ValueError(f"{value!r} is not a valid u128")
        return cls(ValueKind.U128, value)

    @classmethod
    def boolean(cls, value: bool) -> Value:
        if not isinstance(value, bool):
            raise TypeError(f"expected a bool, got {type(value).__name__}")
        return cls(ValueKind.BOOL, value)

    @classmethod
    def string(cls, value: str) -> Value:
        if not isinstance(value, str):
            raise TypeError(f"expected a str, got {type(value).__name__}")
        return cls(ValueKind.STRING, value)

    @classmethod
    def unnamed_composite(cls, values: Iterable[Value]) -> Value:
        return cls(ValueKind.COMPOSITE, Composite(tuple(values)))

    @classmethod
    def named_composite(cls, fields: Mapping[str, Value] | Iterable[tuple[str, Value]]) -> Value:
        pairs = list(fields.items()) if isinstance(fields, Mapping) else list(fields)
        return cls(
            ValueKind.COMPOSITE,
            Composite(tuple(value for _, value in pairs), tuple(name for name, _ in pairs)),
        )

    @classmethod
    def unnamed_variant(cls, name: str, values: Iterable[Value]) -> Value:
        return cls(ValueKind.VARIANT, (name, Composite(tuple(values))))


def _reader(reader: ScaleReader | bytes) -> ScaleReader:
    return reader if isinstance(reader, ScaleReader) else ScaleReader(reader)


def _resolve(type_id: int, types: PortableRegistry):
    ty = types.resolve(type_id)
    if ty is None:
        raise CodecError(f"type id {type_id} not found in the type registry")
    return ty


def _fields(reader: ScaleReader, fields: Iterable[Field], types: PortableRegistry) -> Composite:
    fields = list(fields)
    items = tuple(_decode(reader, f.ty, types) for f in fields)
    if fields and fields[0].name is not None:
        return Composite(items, tuple(f.name if f.name is not None else str(i) for i, f in enumerate(fields)))
    return Composite(items)


def _primitive(reader: ScaleReader, primitive: Primitive) -> Value:
    if primitive is Primitive.BOOL:
        byte = reader.read_u8()
        if byte not in (0, 1):
            raise CodecError(f"invalid boolean byte: {byte}")
        return Value(ValueKind.BOOL, byte == 1)
    if primitive is Primitive.CHAR:
        code = reader.read_u32()
        if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
            raise CodecError(f"invalid char code point: {code}")
        return Value(ValueKind.CHAR, chr(code))
    if primitive is Primitive.STR:
        length = reader.read_compact()
        try:
            return Value(ValueKind.STRING, reader.read(length).decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise CodecError(f"string is not valid UTF-8: {exc}") from exc
    if primitive in _UNSIGNED_WIDTHS:
        return Value(ValueKind.U128, int.from_bytes(reader.read(_UNSIGNED_WIDTHS[primitive]), "little"))
    if primitive in _SIGNED_WIDTHS:
        raw = reader.read(_SIGNED_WIDTHS[primitive])
        return Value(ValueKind.I128, int.from_bytes(raw, "little", signed=True))
    if primitive is Primitive.U256:
        return Value(ValueKind.U256, int.from_bytes(reader.read(32), "little"))
    if primitive is Primitive.I256:
        return Value(ValueKind.I256, int.from_bytes(reader.read(32), "little", signed=True))
    raise CodecError(f"unsupported primitive: {primitive}")


def _compact_shape(value: int, type_id: int, types: PortableRegistry) -> Value:
    td = _resolve(type_id, types).type_def
    if isinstance(td, TypeDefPrimitive):
        if td.primitive in _UNSIGNED_WIDTHS:
            if value >= 1 << (8 * _UNSIGNED_WIDTHS[td.primitive]):
                raise CodecError(f"compact value {value} does not fit into {td.primitive.value}")
            return Value(ValueKind.U128, value)
        if td.primitive is Primitive.U256:
            return Value(ValueKind.U256, value)
        raise CodecError(f"cannot decode a compact value into {td.primitive.value}")
    if isinstance(td, TypeDefComposite) and len(td.fields) == 1:
        inner = _compact_shape(value, td.fields[0].ty, types)
        name = td.fields[0].name
        return Value(ValueKind.COMPOSITE, Composite((inner,), None if name is None else (name,)))
    if isinstance(td, TypeDefTuple) and len(td.fields) == 1:
        return Value.unnamed_composite([_compact_shape(value, td.fields[0], types)])
    raise CodecError(f"type {type_id} cannot be compact encoded")


def _decode(reader: ScaleReader, type_id: int, types: PortableRegistry) -> Value:
    td = _resolve(type_id, types).type_def
    if isinstance(td, TypeDefComposite):
        return Value(ValueKind.COMPOSITE, _fields(reader, td.fields, types))
    if isinstance(td, TypeDefVariant):
        tag = reader.read_u8()
        variant = next((v for v in td.variants if v.index == tag), None)
        if variant is None:
            raise CodecError(f"variant index {tag} not found in type {type_id}")
        return Value(ValueKind.VARIANT, (variant.name, _fields(reader, variant.fields, types)))
    if isinstance(td, TypeDefSequence):
        length = reader.read_compact()
        return Value.unnamed_composite([_decode(reader, td.type_param, types) for _ in range(length)])
    if isinstance(td, TypeDefArray):
        return Value.unnamed_composite([_decode(reader, td.type_param, types) for _ in range(td.len)])
    if isinstance(td, TypeDefTuple):
        return Value.unnamed_composite([_decode(reader, item, types) for item in td.fields])
    if isinstance(td, TypeDefPrimitive):
        return _primitive(reader, td.primitive)
    if isinstance(td, TypeDefCompact):
        return _compact_shape(reader.read_compact(), td.type_param, types)
    raise CodecError(f"unsupported type definition for type {type_id}")


def decode_value(reader: ScaleReader | bytes, type_id: int, types: PortableRegistry) -> Value:
    """Decode one value of type ``type_id``; raises ``CodecError`` on bad input."""
    reader = _reader(reader)
    try:
        return _decode(reader, type_id, types)
    except CodecError:
        raise
    except ValueError as exc:
        raise CodecError(str(exc)) from exc


def skip_value(reader: ScaleReader | bytes, type_id: int, types: PortableRegistry) -> None:
    """Consume one value of type ``type_id`` without keeping it."""
    decode_value(reader, type_id, types)


def decode_fields(reader: ScaleReader | bytes, fields: Iterable[Field], types: PortableRegistry) -> Composite:
    """Decode a run of fields into a composite, named if the fields are named."""
    reader = _reader(reader)
    try:
        return _fields(reader, fields, types)
    except CodecError:
        raise
    except ValueError as exc:
        raise CodecError(str(exc)) from exc