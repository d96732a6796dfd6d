import json

import pytest

from nodeapi.conversion import (
    ExtrinsicMetadataV14,
    ExtrinsicMetadataV15,
    PalletConstantMetadata,
    PalletMetadataV14,
    PalletMetadataV15,
    PalletStorageMetadata,
    RuntimeApiMethodMetadata,
    RuntimeApiTraitMetadata,
    RuntimeMetadataV14,
    RuntimeMetadataV15,
)
from nodeapi.errors import (
    MetadataConversionError,
    MetadataConversionErrorKind,
    MetadataError,
    MetadataErrorKind,
)
from nodeapi.metadata import META_RESERVED, Metadata, RuntimeMetadataPrefixed
from nodeapi.registry import (
    Field,
    Primitive,
    PortableRegistry,
    Type,
    TypeDefComposite,
    TypeDefPrimitive,
    TypeDefVariant,
    TypeParameter,
    Variant,
)
from nodeapi.storage import (
    StorageEntryMetadata,
    StorageEntryTypeMap,
    StorageEntryTypePlain,
    StorageHasher,
)

SYSTEM_NUMBER_KEY = bytes.fromhex("26aa394eea5630e07c48ae0c9558cef702a5c1b19ab7a04f536c519aca4983ac")
SYSTEM_ACCOUNT_PREFIX = bytes.fromhex("26aa394eea5630e07c48ae0c9558cef7b99d880ec681799c0cf30e8886371da9")


def _v15():
    types = PortableRegistry()
    u8 = types.register(Type(type_def=TypeDefPrimitive(Primitive.U8)))
    event_ty = types.register(
        Type(path=["frame_system", "Event"],
             type_def=TypeDefVariant([Variant("A", 0, [Field(u8)]), Variant("B", 1)]))
    )
    call_ty = types.register(
        Type(path=["frame_system", "Call"],
             type_def=TypeDefVariant([Variant("transfer", 0), Variant("remark", 3)]))
    )
    error_ty = types.register(
        Type(path=["frame_system", "Error"], type_def=TypeDefVariant([Variant("BadThing", 0)]))
    )
    dispatch_ty = types.register(
        Type(path=["sp_runtime", "DispatchError"], type_def=TypeDefVariant([Variant("Other", 0)]))
    )
    storage = PalletStorageMetadata(
        "System",
        [
            StorageEntryMetadata("Number", StorageEntryTypePlain(u8)),
            StorageEntryMetadata(
                "Account", StorageEntryTypeMap([StorageHasher.BLAKE2_128_CONCAT], u8, u8)
            ),
            StorageEntryMetadata(
                "Pair",
                StorageEntryTypeMap([StorageHasher.IDENTITY, StorageHasher.IDENTITY], u8, u8),
            ),
        ],
    )
    pallets = [
        PalletMetadataV15(
            "System", 0, storage=storage, calls=call_ty, event=event_ty,
            constants=[
                PalletConstantMetadata("Version", u8, b"\x01"),
                PalletConstantMetadata("BlockHashCount", u8, b"\x02"),
            ],
            error=error_ty, docs=["system pallet"],
        ),
        PalletMetadataV15("Balances", 5, event=event_ty),
    ]
    apis = [
        RuntimeApiTraitMetadata(
            "Core",
            [RuntimeApiMethodMetadata("version"), RuntimeApiMethodMetadata("execute_block")],
            docs=["core api"],
        )
    ]
    meta = RuntimeMetadataV15(
        types=types, pallets=pallets,
        extrinsic=ExtrinsicMetadataV15(4, u8, u8, u8, u8), ty=u8, apis=apis,
    )
    return meta, dispatch_ty


@pytest.fixture
def metadata():
    meta, _ = _v15()
    return Metadata.from_prefixed(RuntimeMetadataPrefixed(meta))


def _v14():
    types = PortableRegistry()
    unit = types.register(Type(type_def=TypeDefComposite([])))
    event_ty = types.register(
        Type(path=["Event"], type_def=TypeDefVariant([Variant("A", 0), Variant("B", 1)]))
    )
    ext = types.register(
        Type(
            path=["primitives", "runtime", "generic", "UncheckedExtrinsic"],
            type_params=[TypeParameter(n, unit) for n in ("Address", "Call", "Signature", "Extra")],
        )
    )
    error_id = types.register(Type(path=["RuntimeError"], type_def=TypeDefVariant([])))
    types.register(Type(path=["RuntimeCall"], type_def=TypeDefVariant([])))
    types.register(Type(path=["RuntimeEvent"], type_def=TypeDefVariant([])))
    pallets = [PalletMetadataV14("Test", 0, event=event_ty)]
    meta = RuntimeMetadataV14(types, pallets, ExtrinsicMetadataV14(ext), unit)
    return meta, unit, error_id


def test_invalid_prefix_is_rejected():
    meta, _ = _v15()
    with pytest.raises(MetadataConversionError) as excinfo:
        Metadata.from_prefixed(RuntimeMetadataPrefixed(meta, magic=META_RESERVED + 1))
    assert excinfo.value.kind is MetadataConversionErrorKind.INVALID_PREFIX


def test_unknown_version_is_rejected():
    with pytest.raises(MetadataConversionError) as excinfo:
        Metadata.from_prefixed(RuntimeMetadataPrefixed(object()))
    assert excinfo.value.kind is MetadataConversionErrorKind.INVALID_VERSION


def test_v14_metadata_is_converted():
    meta, unit, error_id = _v14()
    metadata = Metadata.from_prefixed(RuntimeMetadataPrefixed(meta))
    pallet = metadata.pallet_by_name("Test")
    assert pallet.index() == 0
    assert pallet.event_variant_by_index(1).name == "B"
    assert metadata.extrinsic().address_ty == unit
    assert metadata.runtime_metadata().outer_enums.error_enum_ty == error_id


def test_pallets_are_ordered_by_name(metadata):
    assert [p.name() for p in metadata.pallets()] == ["Balances", "System"]


def test_pallet_lookup_by_index_and_name(metadata):
    assert metadata.pallet_by_index(5).name() == "Balances"
    assert metadata.pallet_by_name("System").index() == 0
    assert metadata.pallet_by_index(9) is None
    assert metadata.pallet_by_name("Nope") is None
    assert metadata.pallet_by_name("System").docs() == ["system pallet"]


def test_pallet_lookup_errors(metadata):
    with pytest.raises(MetadataError) as excinfo:
        metadata.pallet_by_name_err("Nope")
    assert excinfo.value == MetadataError(MetadataErrorKind.PALLET_NAME_NOT_FOUND, "Nope")
    with pytest.raises(MetadataError) as excinfo:
        metadata.pallet_by_index_err(9)
    assert excinfo.value == MetadataError(MetadataErrorKind.PALLET_INDEX_NOT_FOUND, 9)


def test_dispatch_error_type_is_found():
    meta, dispatch_ty = _v15()
    metadata = Metadata.from_prefixed(RuntimeMetadataPrefixed(meta))
    assert metadata.dispatch_error_ty() == dispatch_ty
    assert metadata.resolve_type(dispatch_ty).path == ["sp_runtime", "DispatchError"]


def test_dispatch_error_type_missing():
    meta, _, _ = _v14()
    metadata = Metadata.from_prefixed(RuntimeMetadataPrefixed(meta))
    assert metadata.dispatch_error_ty() is None


def test_variant_lookups(metadata):
    system = metadata.pallet_by_name("System")
    assert system.call_variant_by_name("remark").index == 3
    assert system.call_variant_by_index(3).name == "remark"
    assert system.call_variant_by_index(1) is None
    assert system.error_variant_by_index(0).name == "BadThing"
    assert [v.name for v in system.event_variants()] == ["A", "B"]
    balances = metadata.pallet_by_name("Balances")
    assert balances.call_variants() is None
    assert balances.error_variant_by_index(0) is None
    assert balances.call_ty_id() is None
    assert balances.event_ty_id() == system.event_ty_id()


def test_constants_and_storage(metadata):
    system = metadata.pallet_by_name("System")
    assert system.constant_by_name("Version").value == b"\x01"
    assert system.constant_by_name("Missing") is None
    assert [c.name for c in system.constants()] == ["BlockHashCount", "Version"]
    assert [s.name for s in system.storage()] == ["Account", "Number", "Pair"]
    with pytest.raises(MetadataError) as excinfo:
        system.storage_entry("Missing")
    assert excinfo.value == MetadataError(MetadataErrorKind.STORAGE_NOT_FOUND, "Missing")


def test_storage_value_key(metadata):
    assert metadata.storage_value_key("System", "Number") == SYSTEM_NUMBER_KEY


def test_storage_map_key(metadata):
    key = metadata.storage_map_key("System", "Account", b"\x07")
    assert key.startswith(SYSTEM_ACCOUNT_PREFIX)
    assert key.endswith(b"\x07")
    assert len(key) == 32 + 16 + 1
    assert metadata.storage_map_key_prefix("System", "Account") == SYSTEM_ACCOUNT_PREFIX


def test_storage_type_mismatch(metadata):
    with pytest.raises(MetadataError) as excinfo:
        metadata.storage_map_key("System", "Number", b"\x01")
    assert excinfo.value.kind is MetadataErrorKind.STORAGE_TYPE_ERROR
    with pytest.raises(MetadataError) as excinfo:
        metadata.storage_value_key("System", "Account")
    assert excinfo.value.kind is MetadataErrorKind.STORAGE_TYPE_ERROR


def test_storage_double_map_keys(metadata):
    prefix = metadata.storage_map_key_prefix("System", "Pair")
    assert metadata.storage_double_map_key_prefix("System", "Pair", b"\x01") == prefix + b"\x01"
    full = metadata.storage_double_map_key("System", "Pair", b"\x01", b"\x02\x03")
    assert full == prefix + b"\x01\x02\x03"


def test_storage_key_unknown_pallet(metadata):
    with pytest.raises(MetadataError) as excinfo:
        metadata.storage_value_key("Nope", "Number")
    assert excinfo.value.kind is MetadataErrorKind.PALLET_NAME_NOT_FOUND


def test_runtime_api_lookup(metadata):
    api = metadata.runtime_api_trait_by_name("Core")
    assert api.name() == "Core"
    assert api.docs() == ["core api"]
    assert [m.name for m in api.methods()] == ["execute_block", "version"]
    assert api.method_by_name("version").name == "version"
    assert api.method_by_name("missing") is None
    assert api.types() is metadata.types()
    assert [a.name() for a in metadata.runtime_api_traits()] == ["Core"]
    with pytest.raises(MetadataError) as excinfo:
        metadata.runtime_api_trait_by_name_err("Missing")
    assert excinfo.value == MetadataError(MetadataErrorKind.RUNTIME_API_NOT_FOUND, "Missing")


def test_pretty_format_is_json(metadata):
    parsed = json.loads(metadata.pretty_format())
    assert [p["name"] for p in parsed["pallets"]] == ["System", "Balances"]
    assert parsed["pallets"][0]["constants"][0]["value"] == [1]


def test_overview(metadata):
    lines = metadata.overview().splitlines()
    assert lines[:3] == ["Balances", " e  A", " e  B"]
    system = lines[3:]
    assert system[0] == "System"
    assert " s  Account" in system
    assert " c  remark" in system
    assert " cst  Version" in system
    assert " err  BadThing" in system
    assert system.index(" s  Pair") < system.index(" c  transfer") < system.index(" cst  BlockHashCount")


def test_print_pallets(metadata, capsys):
    metadata.print_pallets()
    out = capsys.readouterr().out
    assert "----------------- Pallet: 'Balances' -----------------" in out
    assert "Pallet id: 5" in out
    assert out.index("Balances") < out.index("System")


def test_print_calls_and_errors(metadata, capsys):
    metadata.print_pallets_with_calls()
    metadata.print_pallets_with_errors()
    out = capsys.readouterr().out
    assert "Name: remark, index 3" in out
    assert "Name: BadThing" in out
    assert "----------------- Calls for Pallet: System -----------------" in out


def test_print_overview_matches_overview(metadata, capsys):
    metadata.print_overview()
    assert capsys.readouterr().out == metadata.overview() + "\n"