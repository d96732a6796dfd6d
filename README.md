# nodeapi

`nodeapi` is a pure-Python library for working with the runtime metadata of
Substrate-style blockchain nodes. It uses only the standard library.

## What it covers

- **SCALE basics** (`nodeapi.codec`): `ScaleReader` reads bytes, u8, u32 and
  compact integers. `encode_compact` / `decode_compact` handle compact
  integers. `Phase` is a block execution phase with `encode()` / `decode()`.
  `EventRecord` encodes a phase, an event and its topics. `Encoded` wraps bytes
  that are already encoded. `StaticEvent` is a base class for typed events that
  are identified by `PALLET` and `EVENT`.
- **Type registry** (`nodeapi.registry`): `PortableRegistry`, `Type` and the
  `TypeDef*` classes describe types. `VariantIndex` looks up enum variants by
  name or by encoded index.
- **Metadata** (`nodeapi.conversion`, `nodeapi.metadata`):
  - `RuntimeMetadataV14` / `RuntimeMetadataV15` describe the two layouts.
  - `v14_to_v15` converts the first into the second. It raises
    `MetadataConversionError` when the extrinsic parts or the `RuntimeCall` /
    `RuntimeEvent` enums are missing.
  - `Metadata.from_prefixed(RuntimeMetadataPrefixed(...))` wraps either layout.
  - Pallets can be found with `pallet_by_name` and `pallet_by_index`, plus the
    `*_err` variants that raise `MetadataError`. Each pallet gives access to its
    calls, events, errors, constants and storage entries.
  - Runtime API traits are available, along with the `DispatchError` type id.
  - `pretty_format()` returns JSON. `overview()` and the `print_*` methods give
    text listings.
- **Storage keys** (`nodeapi.storage`):
  - `StorageEntryMetadata.get_value` / `get_map` / `get_double_map` /
    `get_map_prefix` / `get_double_map_prefix` build keys.
  - The same keys are available directly from `Metadata.storage_value_key`,
    `storage_map_key`, `storage_map_key_prefix`, `storage_double_map_key` and
    `storage_double_map_key_prefix`.
  - Every hasher is supported: Identity, Blake2_128, Blake2_128Concat,
    Blake2_256, Twox128, Twox256 and Twox64Concat.
  - `twox_64`, `twox_128`, `twox_256`, `blake2_128` and `blake2_256` are public.
  - Map keys are bytes, or any object with an `encode()` method returning bytes.
- **Dynamic values** (`nodeapi.value`): `decode_value`, `skip_value` and
  `decode_fields` decode bytes into `Value` / `Composite` objects, driven by the
  type registry.
- **Events** (`nodeapi.events`): `Events` takes the raw `System.Events` bytes of
  a block, starting with the compact event count. It yields one `EventDetails`
  per event, which provides:
  - the phase, the pallet and variant names and indexes;
  - the raw bytes and the field bytes;
  - `field_values()` and the 32-byte topics;
  - `as_event(SomeStaticEvent)`;
  - `check_if_failed()`, which raises the `DispatchError` of a
    `System.ExtrinsicFailed` event;
  - `is_code_update()`.

  `Events.find`, `find_first`, `find_last` and `has` search for a typed event.
  A decoding error is raised from the iterator and ends the iteration.
- **Dispatch errors** (`nodeapi.dispatch_error`): `DispatchError.decode_from(bytes, metadata)`
  decodes a runtime dispatch error. Module errors are accepted in both the
  2-byte and the 5-byte form and are resolved to pallet and error names.
- **RPC helpers**:
  - `nodeapi.rpc_params.RpcParams` builds positional JSON parameters.
  - `nodeapi.rpc_numbers.NumberOrHex` is a u64 number or a U256 hex string.
    Its `to_u32` / `to_u64` / `to_u128` raise `TryFromIntError` when the value
    does not fit.
- **Runtime types** (`nodeapi.types`): `AccountInfo`, `AccountData`,
  `ExtraFlags`, `InclusionFee`, `FeeDetails`, `DispatchClass`,
  `RuntimeDispatchInfo`, `RewardDestination`, `Health` and `ChainType`. Fees are
  summed with saturation at the u128 maximum. Several of these types have
  `to_json` / `from_json` in the node's camelCase JSON form.

All errors derive from `nodeapi.errors.NodeApiError`. `CodecError` is raised
for malformed bytes, `MetadataError` for failed lookups,
`MetadataConversionError` for unusable metadata and `UnknownBytesError` for
error bytes of unknown shape.

## Installation

```
pip install nodeapi
```

## Examples

RPC parameters:

```python
from nodeapi.rpc_params import RpcParams

params = RpcParams()
params.insert(0)
params.insert("abc")
assert params.build() == '[0,"abc"]'
assert RpcParams().build() is None
```

Compact integers and phases:

```python
from nodeapi.codec import Phase, encode_compact, decode_compact

assert encode_compact(1) == b"\x04"
assert decode_compact(b"\x04") == (1, 1)
phase = Phase.apply_extrinsic(123)
assert Phase.decode(phase.encode()) == phase
```

A storage key from a storage entry:

```python
from nodeapi.storage import StorageEntryMetadata, StorageEntryTypePlain

entry = StorageEntryMetadata("Number", StorageEntryTypePlain(ty=4))
key = entry.get_value("System").key()   # twox_128(b"System") + twox_128(b"Number")
```

Walking the events of a block:

```python
from nodeapi.events import Events
from nodeapi.metadata import Metadata, RuntimeMetadataPrefixed

metadata = Metadata.from_prefixed(RuntimeMetadataPrefixed(runtime_metadata_v15))
events = Events(metadata, block_hash, raw_event_bytes)
for details in events.iter():
    print(details.pallet_name(), details.variant_name(), details.field_values().values())
```

## What it does not do

- It does not connect to a node. There is no RPC client, no subscription and no
  network code. `RpcParams` only builds the parameter text.
- It does not build, sign or submit extrinsics.
- It does not decode metadata from its binary wire form, and it does not encode
  it back. `Metadata` is built from `RuntimeMetadataV14` / `RuntimeMetadataV15`
  objects that are assembled in Python.
- Event topics are read as 32-byte hashes.

## Running the tests

```
pip install -e .[test]
pytest
```