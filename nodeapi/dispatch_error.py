"""Runtime dispatch errors and their decoding from raw bytes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from nodeapi.codec import ScaleReader
from nodeapi.errors import (
    CodecError,
    MetadataError,
    MetadataErrorKind,
    NodeApiError,
    UnknownBytesError,
)
from nodeapi.registry import PortableRegistry, TypeDefVariant, Variant
from nodeapi.value import ValueKind, decode_value

if TYPE_CHECKING:
    from nodeapi.metadata import Metadata

_log = logging.getLogger(__name__)


class TokenError(Enum):
    """An error relating to tokens when dispatching a transaction."""

    FUNDS_UNAVAILABLE = "FundsUnavailable"
    ONLY_PROVIDER = "OnlyProvider"
    BELOW_MINIMUM = "BelowMinimum"
    CANNOT_CREATE = "CannotCreate"
    UNKNOWN_ASSET = "UnknownAsset"
    FROZEN = "Frozen"
    UNSUPPORTED = "Unsupported"
    CANNOT_CREATE_HOLD = "CannotCreateHold"
    NOT_EXPENDABLE = "NotExpendable"


class ArithmeticErrorKind(Enum):
    """An arithmetic error when dispatching a transaction."""

    UNDERFLOW = "Underflow"
    OVERFLOW = "Overflow"
    DIVISION_BY_ZERO = "DivisionByZero"


class TransactionalError(Enum):
    """An error relating to transactional layers."""

    LIMIT_REACHED = "LimitReached"
    NO_LAYER = "NoLayer"


@dataclass(frozen=True)
class RawModuleError:
    """Pallet index and the four raw error bytes of a module error."""

    pallet_index: int
    error: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "error", bytes(self.error))
        if not 0 <= self.pallet_index <= 0xFF:
            raise ValueError(f"pallet index {self.pallet_index} is not a u8")
        if len(self.error) != 4:
            raise ValueError("module error bytes must be exactly 4 bytes long")

    def error_index(self) -> int:
        """The error index, the first of the raw error bytes."""
        return self.error[0]


@dataclass(eq=False)
class ModuleError:
    """Details of an error raised by a pallet; equal when the raw bytes are equal."""

    pallet: str
    error: str
    description: list[str] = field(default_factory=list)
    raw: RawModuleError = field(default_factory=lambda: RawModuleError(0, b"\x00" * 4))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModuleError):
            return NotImplemented
        return self.raw == other.raw

    def __hash__(self) -> int:
        return hash(self.raw)


class DispatchErrorKind(Enum):
    """The variants of a dispatch error."""

    OTHER = "Other"
    CANNOT_LOOKUP = "CannotLookup"
    BAD_ORIGIN = "BadOrigin"
    MODULE = "Module"
    CONSUMER_REMAINING = "ConsumerRemaining"
    NO_PROVIDERS = "NoProviders"
    TOO_MANY_CONSUMERS = "TooManyConsumers"
    TOKEN = "Token"
    ARITHMETIC = "Arithmetic"
    TRANSACTIONAL = "Transactional"
    EXHAUSTED = "Exhausted"
    CORRUPTION = "Corruption"
    UNAVAILABLE = "Unavailable"


_Detail = Union[ModuleError, TokenError, ArithmeticErrorKind, TransactionalError, None]

_DETAIL_TYPES: dict[DispatchErrorKind, type] = {
    DispatchErrorKind.MODULE: ModuleError,
    DispatchErrorKind.TOKEN: TokenError,
    DispatchErrorKind.ARITHMETIC: ArithmeticErrorKind,
    DispatchErrorKind.TRANSACTIONAL: TransactionalError,
}


def _nested(reader: ScaleReader, variant: Variant, types: PortableRegistry, enum_type: type[Enum]) -> Any:
    if len(variant.fields) != 1:
        raise CodecError(f"variant {variant.name} should hold exactly one field")
    value = decode_value(reader, variant.fields[0].ty, types)
    if value.kind is not ValueKind.VARIANT:
        raise CodecError(f"variant {variant.name} does not hold an enum")
    name, inner = value.data
    if inner.values():
        raise CodecError(f"{enum_type.__name__}::{name} carries unexpected fields")
    try:
        return enum_type(name)
    except ValueError:
        raise CodecError(f"unknown {enum_type.__name__} variant: {name}") from None


class DispatchError(NodeApiError):
    """An error dispatching a transaction."""

    def __init__(self, kind: DispatchErrorKind, detail: _Detail = None) -> None:
        kind = DispatchErrorKind(kind)
        expected = _DETAIL_TYPES.get(kind)
        if expected is None and detail is not None:
            raise TypeError(f"{kind.value} carries no detail")
        if expected is not None and not isinstance(detail, expected):
            raise TypeError(f"{kind.value} needs a {expected.__name__}")
        self.kind = kind
        self.detail = detail
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.detail is None:
            return self.kind.value
        if isinstance(self.detail, ModuleError):
            return f"Module({self.detail.pallet}::{self.detail.error})"
        return f"{self.kind.value}({self.detail.value})"

    def __repr__(self) -> str:
        return f"DispatchError({self})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DispatchError):
            return NotImplemented
        return self.kind is other.kind and self.detail == other.detail

    def __hash__(self) -> int:
        return hash((self.kind, self.detail))

    @classmethod
    def decode_from(cls, data: bytes | bytearray | memoryview, metadata: Metadata) -> DispatchError:
        """Decode a runtime dispatch error using the metadata's type information.

        Raises ``MetadataError``, ``CodecError`` or ``UnknownBytesError`` on failure.
        """
        data = bytes(data)
        type_id = metadata.dispatch_error_ty()
        if type_id is None:
            raise MetadataError(MetadataErrorKind.DISPATCH_ERROR_NOT_FOUND)
        types = metadata.types()
        ty = metadata.resolve_type(type_id)
        if ty is None or not isinstance(ty.type_def, TypeDefVariant):
            raise CodecError(f"dispatch error type {type_id} is not a variant type")

        reader = ScaleReader(data)
        try:
            tag = reader.read_u8()
        except ValueError as exc:
            raise CodecError(str(exc)) from exc
        variant = next((v for v in ty.type_def.variants if v.index == tag), None)
        if variant is None:
            raise CodecError(f"variant index {tag} not found in the dispatch error type")
        try:
            kind = DispatchErrorKind(variant.name)
        except ValueError:
            raise CodecError(f"unknown dispatch error variant: {variant.name}") from None

        if kind is DispatchErrorKind.MODULE:
            return cls(kind, cls._module_error(reader.read(reader.remaining()), data, metadata))
        enum_type = _DETAIL_TYPES.get(kind)
        if enum_type is not None:
            return cls(kind, _nested(reader, variant, types, enum_type))
        if variant.fields:
            raise CodecError(f"dispatch error variant {variant.name} should hold no fields")
        return cls(kind)

    @staticmethod
    def _module_error(module_bytes: bytes, all_bytes: bytes, metadata: Metadata) -> ModuleError:
        # Legacy form: pallet and error index. Current form: pallet index and four error bytes.
        if len(module_bytes) == 2:
            raw = RawModuleError(module_bytes[0], bytes([module_bytes[1], 0, 0, 0]))
        elif len(module_bytes) == 5:
            raw = RawModuleError(module_bytes[0], module_bytes[1:5])
        else:
            _log.warning("Can't decode error sp_runtime::DispatchError: bytes do not match known shapes")
            raise UnknownBytesError(all_bytes)
        pallet = metadata.pallet_by_index_err(raw.pallet_index)
        details = pallet.error_variant_by_index(raw.error_index())
        if details is None:
            raise MetadataError(MetadataErrorKind.ERROR_NOT_FOUND, raw.pallet_index, raw.error_index())
        return ModuleError(
            pallet=pallet.name(),
            error=details.name,
            description=list(details.docs),
            raw=raw,
        )