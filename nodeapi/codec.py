"""SCALE building blocks: a byte reader, compact integers, block phases and event records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar

_SINGLE_BYTE_MAX = (1 << 6) - 1
_TWO_BYTE_MAX = (1 << 14) - 1
_FOUR_BYTE_MAX = (1 << 30) - 1
_MAX_BIG_INT_BYTES = 0b11_1111 + 4
_U32_MAX = (1 << 32) - 1


class ScaleReader:
    """Sequential reader over SCALE encoded bytes.

    Every read raises ``ValueError`` when the input runs out or is malformed.
    """

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._pos = 0

    def read(self, size: int) -> bytes:
        """Consume and return exactly ``size`` bytes."""
        if size < 0:
            raise ValueError(f"cannot read a negative number of bytes: {size}")
        end = self._pos + size
        if end > len(self._data):
            raise ValueError("Not enough data to fill buffer")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def read_u8(self) -> int:
        """Consume a single byte."""
        return self.read(1)[0]

    def read_u32(self) -> int:
        """Consume a little-endian unsigned 32-bit integer."""
        return int.from_bytes(self.read(4), "little")

    def read_compact(self) -> int:
        """Consume a compact encoded unsigned integer, rejecting non-canonical forms."""
        first = self.read_u8()
        mode = first & 0b11
        if mode == 0b00:
            return first >> 2
        if mode == 0b01:
            value = int.from_bytes(bytes([first]) + self.read(1), "little") >> 2
            if value <= _SINGLE_BYTE_MAX:
                raise ValueError("out of range decoding Compact<u32>")
            return value
        if mode == 0b10:
            value = int.from_bytes(bytes([first]) + self.read(3), "little") >> 2
            if value <= _TWO_BYTE_MAX:
                raise ValueError("out of range decoding Compact<u32>")
            return value
        length = (first >> 2) + 4
        raw = self.read(length)
        value = int.from_bytes(raw, "little")
        if raw[-1] == 0 or value <= _FOUR_BYTE_MAX:
            raise ValueError("out of range decoding compact integer")
        return value

    def remaining(self) -> int:
        """Number of bytes not consumed yet."""
        return len(self._data) - self._pos


def encode_compact(value: int) -> bytes:
    """Encode a non-negative integer in SCALE compact form."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"compact encoding needs an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError("compact encoding needs a non-negative integer")
    if value <= _SINGLE_BYTE_MAX:
        return bytes([value << 2])
    if value <= _TWO_BYTE_MAX:
        return ((value << 2) | 0b01).to_bytes(2, "little")
    if value <= _FOUR_BYTE_MAX:
        return ((value << 2) | 0b10).to_bytes(4, "little")
    length = (value.bit_length() + 7) // 8
    if length > _MAX_BIG_INT_BYTES:
        raise ValueError("integer too large for compact encoding")
    return bytes([((length - 4) << 2) | 0b11]) + value.to_bytes(length, "little")


def decode_compact(data: bytes | bytearray | memoryview) -> tuple[int, int]:
    """Decode a compact integer from the front of ``data``.

    Returns the value and the number of bytes it occupied.
    """
    reader = ScaleReader(data)
    value = reader.read_compact()
    return value, len(bytes(data)) - reader.remaining()


def _encode_item(item: Any) -> bytes:
    if isinstance(item, (bytes, bytearray, memoryview)):
        return bytes(item)
    if isinstance(item, str):
        raise TypeError("strings have no implicit SCALE encoding; pass bytes or an encodable object")
    encode = getattr(item, "encode", None)
    if encode is None:
        raise TypeError(f"{type(item).__name__} cannot be SCALE encoded")
    return bytes(encode())


@dataclass(frozen=True, order=True)
class Encoded:
    """Bytes that are already SCALE encoded and are emitted unchanged."""

    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))

    def encode(self) -> bytes:
        return self.data


class PhaseKind(IntEnum):
    """Variant index of a block execution phase."""

    APPLY_EXTRINSIC = 0
    FINALIZATION = 1
    INITIALIZATION = 2


@dataclass(frozen=True, order=True)
class Phase:
    """A phase of a block's execution."""

    kind: PhaseKind
    extrinsic_index: int | None = None

    def __post_init__(self) -> None:
        kind = PhaseKind(self.kind)
        object.__setattr__(self, "kind", kind)
        if kind is PhaseKind.APPLY_EXTRINSIC:
            index = self.extrinsic_index
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= _U32_MAX:
                raise ValueError("ApplyExtrinsic needs an extrinsic index in the u32 range")
        elif self.extrinsic_index is not None:
            raise ValueError(f"{kind.name} carries no extrinsic index")

    @classmethod
    def apply_extrinsic(cls, index: int) -> Phase:
        return cls(PhaseKind.APPLY_EXTRINSIC, index)

    @classmethod
    def finalization(cls) -> Phase:
        return cls(PhaseKind.FINALIZATION)

    @classmethod
    def initialization(cls) -> Phase:
        return cls(PhaseKind.INITIALIZATION)

    def encode(self) -> bytes:
        head = bytes([int(self.kind)])
        if self.kind is PhaseKind.APPLY_EXTRINSIC:
            return head + self.extrinsic_index.to_bytes(4, "little")
        return head

    @classmethod
    def decode(cls, reader: ScaleReader | bytes) -> Phase:
        """Read a phase from a reader (or from the front of raw bytes)."""
        if not isinstance(reader, ScaleReader):
            reader = ScaleReader(reader)
        tag = reader.read_u8()
        try:
            kind = PhaseKind(tag)
        except ValueError:
            raise ValueError(f"Could not decode `Phase`, variant doesn't exist: {tag}") from None
        if kind is PhaseKind.APPLY_EXTRINSIC:
            return cls(kind, reader.read_u32())
        return cls(kind)


@dataclass
class EventRecord:
    """Record of an event happening: its phase, the event and its topics."""

    phase: Phase
    event: Any
    topics: list[Any] = field(default_factory=list)

    def encode(self) -> bytes:
        parts = [self.phase.encode(), _encode_item(self.event), encode_compact(len(self.topics))]
        parts.extend(_encode_item(topic) for topic in self.topics)
        return b"".join(parts)


class StaticEvent:
    """Base for event types identified by pallet and event name.

    Subclasses set ``PALLET`` and ``EVENT`` and provide a ``decode(reader)``
    classmethod that builds the event from its field bytes.
    """

    PALLET: ClassVar[str] = ""
    EVENT: ClassVar[str] = ""

    @classmethod
    def is_event(cls, pallet: str, event: str) -> bool:
        """True if the given names match this event."""
        return cls.PALLET == pallet and cls.EVENT == event