"""Errors raised while inspecting runtime metadata and decoding node data."""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class NodeApiError(Exception):
    """Base class of every error raised by this package."""


class CodecError(NodeApiError, ValueError):
    """SCALE encoded bytes could not be decoded."""


class UnknownBytesError(NodeApiError):
    """Error bytes whose shape is not understood."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self.data = bytes(data)
        super().__init__(f"unable to decode error bytes: 0x{self.data.hex()}")


class MetadataErrorKind(Enum):
    """What went wrong while looking something up in the metadata."""

    DISPATCH_ERROR_NOT_FOUND = ("DispatchErrorNotFound", 0)
    PALLET_NAME_NOT_FOUND = ("PalletNameNotFound", 1)
    PALLET_INDEX_NOT_FOUND = ("PalletIndexNotFound", 1)
    EVENT_TYPE_NOT_FOUND_IN_PALLET = ("EventTypeNotFoundInPallet", 1)
    CALL_NOT_FOUND = ("CallNotFound", 1)
    EVENT_NOT_FOUND = ("EventNotFound", 2)
    ERROR_NOT_FOUND = ("ErrorNotFound", 2)
    STORAGE_NOT_FOUND = ("StorageNotFound", 1)
    STORAGE_TYPE_ERROR = ("StorageTypeError", 0)
    CONSTANT_NOT_FOUND = ("ConstantNotFound", 1)
    VARIANT_INDEX_NOT_FOUND = ("VariantIndexNotFound", 1)
    RUNTIME_API_NOT_FOUND = ("RuntimeApiNotFound", 1)

    def __init__(self, label: str, arity: int) -> None:
        self.label = label
        self.arity = arity


class MetadataConversionErrorKind(Enum):
    """What went wrong while converting raw runtime metadata."""

    INVALID_PREFIX = ("InvalidPrefix", 0)
    INVALID_VERSION = ("InvalidVersion", 0)
    MISSING_TYPE = ("MissingType", 1)
    TYPE_DEF_NOT_VARIANT = ("TypeDefNotVariant", 1)
    TYPE_NOT_FOUND = ("TypeNotFound", 1)
    TYPE_NAME_NOT_FOUND = ("TypeNameNotFound", 1)
    INVALID_TYPE_PATH = ("InvalidTypePath", 1)

    def __init__(self, label: str, arity: int) -> None:
        self.label = label
        self.arity = arity


def _format_detail(detail: Any) -> str:
    if isinstance(detail, str):
        return f'"{detail}"'
    return str(detail)


class _KindError(NodeApiError):
    _kind_type: ClassVar[type[Enum]]

    def __init__(self, kind: Any, *details: Any) -> None:
        if not isinstance(kind, self._kind_type):
            raise TypeError(f"expected a {self._kind_type.__name__}, got {kind!r}")
        if len(details) != kind.arity:
            raise TypeError(f"{kind.label} takes {kind.arity} detail(s), got {len(details)}")
        self.kind = kind
        self.details = tuple(details)
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.details:
            return self.kind.label
        return f"{self.kind.label}({', '.join(_format_detail(d) for d in self.details)})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.kind is other.kind and self.details == other.details

    def __hash__(self) -> int:
        return hash((type(self), self.kind, self.details))


class MetadataError(_KindError):
    """A lookup in the runtime metadata failed."""

    _kind_type = MetadataErrorKind


class MetadataConversionError(_KindError):
    """Raw runtime metadata could not be turned into usable metadata."""

    _kind_type = MetadataConversionErrorKind