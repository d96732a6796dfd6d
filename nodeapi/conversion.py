"""Runtime metadata layouts (v14 and v15) and the conversion from v14 to v15."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from nodeapi.errors import MetadataConversionError, MetadataConversionErrorKind
from nodeapi.registry import Field, PortableRegistry, Type, TypeDefVariant, Variant
from nodeapi.storage import StorageEntryMetadata

_EXTRINSIC_PARTS = ("Address", "Call", "Signature", "Extra")


@dataclass
class PalletStorageMetadata:
    """The storage entries of a pallet under a common prefix."""

    prefix: str
    entries: list[StorageEntryMetadata] = field(default_factory=list)


@dataclass
class PalletConstantMetadata:
    """A constant exposed by a pallet."""

    name: str
    ty: int
    value: bytes = b""
    docs: list[str] = field(default_factory=list)


@dataclass
class SignedExtensionMetadata:
    """A signed extension of the extrinsic format."""

    identifier: str
    ty: int
    additional_signed: int


@dataclass
class PalletMetadataV14:
    """Pallet metadata as found in v14; calls, event and error are type ids."""

    name: str
    index: int
    storage: PalletStorageMetadata | None = None
    calls: int | None = None
    event: int | None = None
    constants: list[PalletConstantMetadata] = field(default_factory=list)
    error: int | None = None


@dataclass
class PalletMetadataV15:
    """Pallet metadata as found in v15; adds documentation."""

    name: str
    index: int
    storage: PalletStorageMetadata | None = None
    calls: int | None = None
    event: int | None = None
    constants: list[PalletConstantMetadata] = field(default_factory=list)
    error: int | None = None
    docs: list[str] = field(default_factory=list)


@dataclass
class ExtrinsicMetadataV14:
    """Extrinsic format in v14: the extrinsic type itself."""

    ty: int
    version: int = 0
    signed_extensions: list[SignedExtensionMetadata] = field(default_factory=list)


@dataclass
class ExtrinsicMetadataV15:
    """Extrinsic format in v15: the types of its parts."""

    version: int
    address_ty: int
    call_ty: int
    signature_ty: int
    extra_ty: int
    signed_extensions: list[SignedExtensionMetadata] = field(default_factory=list)


@dataclass
class OuterEnums:
    """Type ids of the runtime's outer call, event and error enums."""

    call_enum_ty: int
    event_enum_ty: int
    error_enum_ty: int


@dataclass
class RuntimeApiMethodParam:
    name: str
    ty: int


@dataclass
class RuntimeApiMethodMetadata:
    name: str
    inputs: list[RuntimeApiMethodParam] = field(default_factory=list)
    output: int = 0
    docs: list[str] = field(default_factory=list)


@dataclass
class RuntimeApiTraitMetadata:
    name: str
    methods: list[RuntimeApiMethodMetadata] = field(default_factory=list)
    docs: list[str] = field(default_factory=list)


@dataclass
class RuntimeMetadataV14:
    types: PortableRegistry
    pallets: list[PalletMetadataV14]
    extrinsic: ExtrinsicMetadataV14
    ty: int


@dataclass
class RuntimeMetadataV15:
    types: PortableRegistry
    pallets: list[PalletMetadataV15]
    extrinsic: ExtrinsicMetadataV15
    ty: int
    apis: list[RuntimeApiTraitMetadata] = field(default_factory=list)
    outer_enums: OuterEnums = field(default_factory=lambda: OuterEnums(0, 0, 0))
    custom: dict[str, Any] = field(default_factory=dict)


def _name_not_found(name: str) -> MetadataConversionError:
    return MetadataConversionError(MetadataConversionErrorKind.TYPE_NAME_NOT_FOUND, name)


def _extrinsic_part_ids(metadata: RuntimeMetadataV14) -> dict[str, int]:
    extrinsic_id = metadata.extrinsic.ty
    extrinsic_ty = metadata.types.resolve(extrinsic_id)
    if extrinsic_ty is None:
        raise MetadataConversionError(MetadataConversionErrorKind.TYPE_NOT_FOUND, extrinsic_id)
    params: dict[str, int] = {}
    for param in extrinsic_ty.type_params:
        if param.ty is None:
            raise _name_not_found(param.name)
        params[param.name] = param.ty
    for part in _EXTRINSIC_PARTS:
        if part not in params:
            raise _name_not_found(part)
    return {part: params[part] for part in _EXTRINSIC_PARTS}


def _find_variant_type(types: PortableRegistry, name: str) -> tuple[int, list[str]] | None:
    return next(
        (
            (entry.id, list(entry.ty.path))
            for entry in types.types
            if entry.ty.ident() == name and isinstance(entry.ty.type_def, TypeDefVariant)
        ),
        None,
    )


def _generate_outer_error_enum(metadata: RuntimeMetadataV14, path: list[str]) -> int:
    variants = [
        Variant(
            name=pallet.name,
            index=pallet.index,
            fields=[Field(ty=pallet.error, name=None, type_name=f"{pallet.name}Error")],
        )
        for pallet in metadata.pallets
        if pallet.error is not None
    ]
    return metadata.types.register(Type(path=path, type_def=TypeDefVariant(variants)))


def _generate_outer_enums(metadata: RuntimeMetadataV14) -> OuterEnums:
    call = _find_variant_type(metadata.types, "RuntimeCall")
    if call is None:
        raise _name_not_found("RuntimeCall")
    call_enum, call_path = call
    event = _find_variant_type(metadata.types, "RuntimeEvent")
    if event is None:
        raise _name_not_found("RuntimeEvent")
    error = _find_variant_type(metadata.types, "RuntimeError")
    if error is not None:
        error_enum = error[0]
    else:
        if not call_path:
            raise MetadataConversionError(MetadataConversionErrorKind.INVALID_TYPE_PATH, "RuntimeCall")
        call_path[-1] = "RuntimeError"
        error_enum = _generate_outer_error_enum(metadata, call_path)
    return OuterEnums(call_enum_ty=call_enum, event_enum_ty=event[0], error_enum_ty=error_enum)


def v14_to_v15(metadata: RuntimeMetadataV14) -> RuntimeMetadataV15:
    """Convert v14 metadata to v15; the input is left unchanged.

    Raises ``MetadataConversionError`` when the extrinsic parts or the outer
    call and event enums cannot be found.
    """
    metadata = copy.deepcopy(metadata)
    parts = _extrinsic_part_ids(metadata)
    outer_enums = _generate_outer_enums(metadata)

    pallets = [
        PalletMetadataV15(
            name=pallet.name,
            index=pallet.index,
            storage=pallet.storage,
            calls=pallet.calls,
            event=pallet.event,
            constants=pallet.constants,
            error=pallet.error,
            docs=[],
        )
        for pallet in metadata.pallets
    ]
    extrinsic = ExtrinsicMetadataV15(
        version=metadata.extrinsic.version,
        address_ty=parts["Address"],
        call_ty=parts["Call"],
        signature_ty=parts["Signature"],
        extra_ty=parts["Extra"],
        signed_extensions=metadata.extrinsic.signed_extensions,
    )
    return RuntimeMetadataV15(
        types=metadata.types,
        pallets=pallets,
        extrinsic=extrinsic,
        ty=metadata.ty,
        apis=[],
        outer_enums=outer_enums,
        custom={},
    )