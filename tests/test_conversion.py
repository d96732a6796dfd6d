import pytest

from nodeapi.conversion import (
    ExtrinsicMetadataV14,
    PalletConstantMetadata,
    PalletMetadataV14,
    PalletStorageMetadata,
    RuntimeMetadataV14,
    SignedExtensionMetadata,
    v14_to_v15,
)
from nodeapi.errors import MetadataConversionError, MetadataConversionErrorKind
from nodeapi.registry import (
    PortableRegistry,
    Primitive,
    Type,
    TypeDefPrimitive,
    TypeDefTuple,
    TypeDefVariant,
    TypeParameter,
    Variant,
)
from nodeapi.storage import StorageEntryMetadata, StorageEntryTypePlain


def _name_error(name):
    return MetadataConversionError(MetadataConversionErrorKind.TYPE_NAME_NOT_FOUND, name)


def _metadata(param_names, enums=(), pallets=()):
    registry = PortableRegistry()
    runtime = registry.register(Type(path=["Runtime"]))
    unit = registry.register(Type(type_def=TypeDefTuple()))
    extrinsic = registry.register(
        Type(path=["Extrinsic"], type_params=[TypeParameter(name, unit) for name in param_names])
    )
    for name in enums:
        registry.register(Type(path=["runtime", name], type_def=TypeDefVariant()))
    return RuntimeMetadataV14(
        types=registry, pallets=list(pallets), extrinsic=ExtrinsicMetadataV14(ty=extrinsic), ty=runtime
    )


@pytest.mark.parametrize(
    "params,missing",
    [
        ([], "Address"),
        (["Address", "Signature", "Extra"], "Call"),
        (["Call", "Address", "Extra"], "Signature"),
        (["Call", "Address", "Signature"], "Extra"),
    ],
)
def test_missing_extrinsic_types(params, missing):
    with pytest.raises(MetadataConversionError) as info:
        v14_to_v15(_metadata(params))
    assert info.value == _name_error(missing)


ALL_PARTS = ["Address", "Call", "Signature", "Extra"]


def test_missing_runtime_call():
    with pytest.raises(MetadataConversionError) as info:
        v14_to_v15(_metadata(ALL_PARTS, enums=["RuntimeEvent"]))
    assert info.value == _name_error("RuntimeCall")


def test_missing_runtime_event():
    with pytest.raises(MetadataConversionError) as info:
        v14_to_v15(_metadata(ALL_PARTS, enums=["RuntimeCall"]))
    assert info.value == _name_error("RuntimeEvent")


def test_extrinsic_type_not_found():
    metadata = _metadata(ALL_PARTS, enums=["RuntimeCall", "RuntimeEvent"])
    metadata.extrinsic.ty = 99
    with pytest.raises(MetadataConversionError) as info:
        v14_to_v15(metadata)
    assert info.value == MetadataConversionError(MetadataConversionErrorKind.TYPE_NOT_FOUND, 99)


def test_unbound_type_parameter():
    metadata = _metadata(ALL_PARTS, enums=["RuntimeCall", "RuntimeEvent"])
    metadata.types.resolve(metadata.extrinsic.ty).type_params[1].ty = None
    with pytest.raises(MetadataConversionError) as info:
        v14_to_v15(metadata)
    assert info.value == _name_error("Call")


def test_extrinsic_id_generation():
    registry = PortableRegistry()
    runtime = registry.register(Type(path=["Runtime"]))
    ids = {
        name: registry.register(Type(path=[name], type_def=TypeDefPrimitive(Primitive.U32)))
        for name in ALL_PARTS
    }
    extrinsic = registry.register(
        Type(path=["UncheckedExtrinsic"], type_params=[TypeParameter(n, ids[n]) for n in ALL_PARTS])
    )
    call_enum = registry.register(Type(path=["rt", "RuntimeCall"], type_def=TypeDefVariant()))
    event_enum = registry.register(Type(path=["rt", "RuntimeEvent"], type_def=TypeDefVariant()))
    error_enum = registry.register(Type(path=["rt", "RuntimeError"], type_def=TypeDefVariant()))
    ext = SignedExtensionMetadata("CheckNonce", ids["Extra"], runtime)
    v14 = RuntimeMetadataV14(
        types=registry,
        pallets=[],
        extrinsic=ExtrinsicMetadataV14(ty=extrinsic, version=4, signed_extensions=[ext]),
        ty=runtime,
    )

    v15 = v14_to_v15(v14)

    assert v15.extrinsic.address_ty == ids["Address"]
    assert v15.extrinsic.call_ty == ids["Call"]
    assert v15.extrinsic.signature_ty == ids["Signature"]
    assert v15.extrinsic.extra_ty == ids["Extra"]
    assert v15.extrinsic.version == 4
    assert v15.extrinsic.signed_extensions == [ext]
    for name in ALL_PARTS:
        assert v15.types.resolve(ids[name]) == v14.types.resolve(ids[name])
    assert (v15.outer_enums.call_enum_ty, v15.outer_enums.event_enum_ty, v15.outer_enums.error_enum_ty) == (
        call_enum,
        event_enum,
        error_enum,
    )
    assert v15.ty == runtime
    assert v15.apis == []
    assert v15.custom == {}


def test_generates_outer_error_enum_without_touching_input():
    pallets = [
        PalletMetadataV14(name="Balances", index=5, error=0),
        PalletMetadataV14(name="Timestamp", index=3),
        PalletMetadataV14(name="System", index=0, error=1),
    ]
    v14 = _metadata(ALL_PARTS, enums=["RuntimeCall", "RuntimeEvent"], pallets=pallets)
    count = len(v14.types.types)

    v15 = v14_to_v15(v14)

    assert len(v14.types.types) == count
    assert v15.outer_enums.error_enum_ty == count
    generated = v15.types.resolve(count)
    assert generated.path == ["runtime", "RuntimeError"]
    variants = generated.type_def.variants
    assert [(v.name, v.index) for v in variants] == [("Balances", 5), ("System", 0)]
    assert variants[0].fields[0].ty == 0
    assert variants[0].fields[0].name is None
    assert variants[0].fields[0].type_name == "BalancesError"
    assert isinstance(variants[0], Variant)


def test_pallets_are_carried_over():
    entry = StorageEntryMetadata(name="Now", ty=StorageEntryTypePlain(0), docs=["now"])
    constant = PalletConstantMetadata(name="MinimumPeriod", ty=0, value=b"\x01", docs=["min"])
    pallet = PalletMetadataV14(
        name="Timestamp",
        index=3,
        storage=PalletStorageMetadata("Timestamp", [entry]),
        calls=1,
        event=2,
        constants=[constant],
        error=0,
    )
    v15 = v14_to_v15(_metadata(ALL_PARTS, enums=["RuntimeCall", "RuntimeEvent"], pallets=[pallet]))

    (converted,) = v15.pallets
    assert converted.name == "Timestamp"
    assert converted.index == 3
    assert converted.storage.prefix == "Timestamp"
    assert converted.storage.entries == [entry]
    assert (converted.calls, converted.event, converted.error) == (1, 2, 0)
    assert converted.constants == [constant]
    assert converted.docs == []