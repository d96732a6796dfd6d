"""Storage key construction from runtime metadata storage entries."""

from __future__ import annotations

import hashlib
import logging
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Union

from nodeapi.errors import MetadataError, MetadataErrorKind

_log = logging.getLogger(__name__)

_MASK = (1 << 64) - 1
_P1 = 0x9E3779B185EBCA87
_P2 = 0xC2B2AE3D27D4EB4F
_P3 = 0x165667B19E3779F9
_P4 = 0x85EBCA77C2B2AE63
_P5 = 0x27D4EB2F165667C5


def _rotl(value: int, bits: int) -> int:
    return ((value << bits) | (value >> (64 - bits))) & _MASK


def _round(acc: int, lane: int) -> int:
    acc = (acc + lane * _P2) & _MASK
    return (_rotl(acc, 31) * _P1) & _MASK


def _merge(acc: int, value: int) -> int:
    acc ^= _round(0, value)
    return (acc * _P1 + _P4) & _MASK


def _xxh64(data: bytes, seed: int) -> int:
    length = len(data)
    stripes_end = length - length % 32
    if length >= 32:
        accs = [
            (seed + _P1 + _P2) & _MASK,
            (seed + _P2) & _MASK,
            seed & _MASK,
            (seed - _P1) & _MASK,
        ]
        for lanes in struct.iter_unpack("<4Q", data[:stripes_end]):
            accs = [_round(acc, lane) for acc, lane in zip(accs, lanes)]
        h = (_rotl(accs[0], 1) + _rotl(accs[1], 7) + _rotl(accs[2], 12) + _rotl(accs[3], 18)) & _MASK
        for acc in accs:
            h = _merge(h, acc)
    else:
        h = (seed + _P5) & _MASK
    h = (h + length) & _MASK

    tail = data[stripes_end:]
    words_end = len(tail) - len(tail) % 8
    for (word,) in struct.iter_unpack("<Q", tail[:words_end]):
        h ^= _round(0, word)
        h = (_rotl(h, 27) * _P1 + _P4) & _MASK
    rest = tail[words_end:]
    if len(rest) >= 4:
        h ^= (int.from_bytes(rest[:4], "little") * _P1) & _MASK
        h = (_rotl(h, 23) * _P2 + _P3) & _MASK
        rest = rest[4:]
    for byte in rest:
        h ^= (byte * _P5) & _MASK
        h = (_rotl(h, 11) * _P1) & _MASK

    h ^= h >> 33
    h = (h * _P2) & _MASK
    h ^= h >> 29
    h = (h * _P3) & _MASK
    h ^= h >> 32
    return h


def _twox(data: bytes, rounds: int) -> bytes:
    raw = bytes(data)
    return b"".join(_xxh64(raw, seed).to_bytes(8, "little") for seed in range(rounds))


def twox_64(data: bytes) -> bytes:
    """8-byte xxHash64 digest (seed 0), little endian."""
    return _twox(data, 1)


def twox_128(data: bytes) -> bytes:
    """16-byte digest made of xxHash64 with seeds 0 and 1."""
    return _twox(data, 2)


def twox_256(data: bytes) -> bytes:
    """32-byte digest made of xxHash64 with seeds 0 to 3."""
    return _twox(data, 4)


def blake2_128(data: bytes) -> bytes:
    """16-byte BLAKE2b digest."""
    return hashlib.blake2b(bytes(data), digest_size=16).digest()


def blake2_256(data: bytes) -> bytes:
    """32-byte BLAKE2b digest."""
    return hashlib.blake2b(bytes(data), digest_size=32).digest()


class StorageHasher(Enum):
    """Hasher applied to a storage map key."""

    BLAKE2_128 = "Blake2_128"
    BLAKE2_256 = "Blake2_256"
    BLAKE2_128_CONCAT = "Blake2_128Concat"
    TWOX128 = "Twox128"
    TWOX256 = "Twox256"
    TWOX64_CONCAT = "Twox64Concat"
    IDENTITY = "Identity"


class StorageEntryModifier(Enum):
    """Whether a missing storage value reads as absent or as the default."""

    OPTIONAL = "Optional"
    DEFAULT = "Default"


@dataclass
class StorageEntryTypePlain:
    """A single storage value of the given type."""

    ty: int


@dataclass
class StorageEntryTypeMap:
    """A storage map; ``hashers`` lists one hasher per key part."""

    hashers: list[StorageHasher]
    key: int
    value: int


StorageEntryType = Union[StorageEntryTypePlain, StorageEntryTypeMap]


def _encoded(key: Any) -> bytes:
    if isinstance(key, (bytes, bytearray, memoryview)):
        return bytes(key)
    if isinstance(key, str):
        raise TypeError("strings have no implicit SCALE encoding; pass bytes or an encodable object")
    encode = getattr(key, "encode", None)
    if encode is None:
        raise TypeError(f"{type(key).__name__} cannot be SCALE encoded")
    return bytes(encode())


_HASHERS: dict[StorageHasher, Callable[[bytes], bytes]] = {
    StorageHasher.IDENTITY: lambda k: k,
    StorageHasher.BLAKE2_128: blake2_128,
    StorageHasher.BLAKE2_128_CONCAT: lambda k: blake2_128(k) + k,
    StorageHasher.BLAKE2_256: blake2_256,
    StorageHasher.TWOX128: twox_128,
    StorageHasher.TWOX256: twox_256,
    StorageHasher.TWOX64_CONCAT: lambda k: twox_64(k) + k,
}


def key_hash(key: Any, hasher: StorageHasher) -> bytes:
    """Hash the SCALE encoding of ``key`` (bytes or an object with ``encode()``)."""
    return _HASHERS[StorageHasher(hasher)](_encoded(key))


def _prefix(module_prefix: bytes, storage_prefix: bytes) -> bytes:
    return twox_128(module_prefix) + twox_128(storage_prefix)


@dataclass(frozen=True, order=True)
class StorageValue:
    """Location of a plain storage value."""

    module_prefix: bytes
    storage_prefix: bytes

    def key(self) -> bytes:
        return _prefix(self.module_prefix, self.storage_prefix)


@dataclass(frozen=True)
class StorageMap:
    """Location of a storage map with one key."""

    module_prefix: bytes
    storage_prefix: bytes
    hasher: StorageHasher

    def key(self, key: Any) -> bytes:
        return _prefix(self.module_prefix, self.storage_prefix) + key_hash(key, self.hasher)


@dataclass(frozen=True)
class StorageDoubleMap:
    """Location of a storage map with two keys."""

    module_prefix: bytes
    storage_prefix: bytes
    hasher: StorageHasher
    key2_hasher: StorageHasher

    def key(self, key1: Any, key2: Any) -> bytes:
        return (
            _prefix(self.module_prefix, self.storage_prefix)
            + key_hash(key1, self.hasher)
            + key_hash(key2, self.key2_hasher)
        )


def _type_error() -> MetadataError:
    return MetadataError(MetadataErrorKind.STORAGE_TYPE_ERROR)


@dataclass
class StorageEntryMetadata:
    """Metadata of one storage entry of a pallet."""

    name: str
    ty: StorageEntryType
    modifier: StorageEntryModifier = StorageEntryModifier.DEFAULT
    default: bytes = b""
    docs: list[str] = field(default_factory=list)

    def _map_hashers(self) -> list[StorageHasher]:
        if not isinstance(self.ty, StorageEntryTypeMap):
            raise _type_error()
        return self.ty.hashers

    def get_double_map(self, pallet_prefix: str) -> StorageDoubleMap:
        hashers = self._map_hashers()
        if len(hashers) < 2:
            raise _type_error()
        _log.debug(
            "map for '%s' '%s' has hasher1 %s hasher2 %s",
            pallet_prefix, self.name, hashers[0], hashers[1],
        )
        return StorageDoubleMap(pallet_prefix.encode(), self.name.encode(), hashers[0], hashers[1])

    def get_map(self, pallet_prefix: str) -> StorageMap:
        hashers = self._map_hashers()
        if not hashers:
            raise _type_error()
        _log.debug("map for '%s' '%s' has hasher %s", pallet_prefix, self.name, hashers[0])
        return StorageMap(pallet_prefix.encode(), self.name.encode(), hashers[0])

    def get_map_prefix(self, pallet_prefix: str) -> bytes:
        self._map_hashers()
        return _prefix(pallet_prefix.encode(), self.name.encode())

    def get_double_map_prefix(self, pallet_prefix: str, key1: Any) -> bytes:
        hashers = self._map_hashers()
        if not hashers:
            raise _type_error()
        return _prefix(pallet_prefix.encode(), self.name.encode()) + key_hash(key1, hashers[0])

    def get_value(self, pallet_prefix: str) -> StorageValue:
        if not isinstance(self.ty, StorageEntryTypePlain):
            raise _type_error()
        return StorageValue(pallet_prefix.encode(), self.name.encode())