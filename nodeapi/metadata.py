"""Runtime metadata wrapper with direct access to pallets, events, errors and storage keys."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from nodeapi.conversion import (
    ExtrinsicMetadataV15,
    PalletConstantMetadata,
    RuntimeApiMethodMetadata,
    RuntimeMetadataV14,
    RuntimeMetadataV15,
    v14_to_v15,
)
from nodeapi.errors import (
    MetadataConversionError,
    MetadataConversionErrorKind,
    MetadataError,
    MetadataErrorKind,
)
from nodeapi.registry import PortableRegistry, Type, Variant, VariantIndex
from nodeapi.storage import StorageEntryMetadata

META_RESERVED = 0x6174656D  # b"meta" read as a little-endian u32

_DISPATCH_ERROR_PATH = ["sp_runtime", "DispatchError"]


@dataclass
class RuntimeMetadataPrefixed:
    """Runtime metadata of some version, preceded by the ``meta`` magic number."""

    metadata: Any
    magic: int = META_RESERVED


@dataclass
class _PalletInner:
    name: str
    index: int
    storage: dict[str, StorageEntryMetadata]
    call_ty: int | None
    call_variant_index: VariantIndex
    event_ty: int | None
    event_variant_index: VariantIndex
    error_ty: int | None
    error_variant_index: VariantIndex
    constants: dict[str, PalletConstantMetadata]
    docs: list[str] = field(default_factory=list)


@dataclass
class _RuntimeApiInner:
    name: str
    methods: dict[str, RuntimeApiMethodMetadata]
    docs: list[str] = field(default_factory=list)


def _sorted_values(mapping: dict[str, Any]) -> list[Any]:
    return [mapping[key] for key in sorted(mapping)]


class PalletMetadata:
    """Metadata for a specific pallet."""

    def __init__(self, inner: _PalletInner, types: PortableRegistry) -> None:
        self._inner = inner
        self._types = types

    def __repr__(self) -> str:
        return f"PalletMetadata(name={self._inner.name!r}, index={self._inner.index})"

    def name(self) -> str:
        return self._inner.name

    def index(self) -> int:
        return self._inner.index

    def docs(self) -> list[str]:
        return self._inner.docs

    def call_ty_id(self) -> int | None:
        return self._inner.call_ty

    def event_ty_id(self) -> int | None:
        return self._inner.event_ty

    def error_ty_id(self) -> int | None:
        return self._inner.error_ty

    def storage(self) -> Iterator[StorageEntryMetadata]:
        """The storage entries, ordered by name."""
        return iter(_sorted_values(self._inner.storage))

    def storage_entry(self, key: str) -> StorageEntryMetadata:
        """The storage entry called ``key``; raises ``MetadataError`` if there is none."""
        try:
            return self._inner.storage[key]
        except KeyError:
            raise MetadataError(MetadataErrorKind.STORAGE_NOT_FOUND, key) from None

    def event_variants(self) -> list[Variant] | None:
        return VariantIndex.get(self._inner.event_ty, self._types)

    def event_variant_by_index(self, variant_index: int) -> Variant | None:
        return self._inner.event_variant_index.lookup_by_index(
            variant_index, self._inner.event_ty, self._types
        )

    def call_variants(self) -> list[Variant] | None:
        return VariantIndex.get(self._inner.call_ty, self._types)

    def call_variant_by_index(self, variant_index: int) -> Variant | None:
        return self._inner.call_variant_index.lookup_by_index(
            variant_index, self._inner.call_ty, self._types
        )

    def call_variant_by_name(self, call_name: str) -> Variant | None:
        return self._inner.call_variant_index.lookup_by_name(
            call_name, self._inner.call_ty, self._types
        )

    def error_variants(self) -> list[Variant] | None:
        return VariantIndex.get(self._inner.error_ty, self._types)

    def error_variant_by_index(self, variant_index: int) -> Variant | None:
        return self._inner.error_variant_index.lookup_by_index(
            variant_index, self._inner.error_ty, self._types
        )

    def constant_by_name(self, name: str) -> PalletConstantMetadata | None:
        return self._inner.constants.get(name)

    def constants(self) -> Iterator[PalletConstantMetadata]:
        """The constants, ordered by name."""
        return iter(_sorted_values(self._inner.constants))

    def print(self) -> None:
        print(f"----------------- Pallet: '{self.name()}' -----------------\n")
        print(f"Pallet id: {self.index()}")

    def print_calls(self) -> None:
        print(f"----------------- Calls for Pallet: {self.name()} -----------------\n")
        for variant in self.call_variants() or []:
            print(f"Name: {variant.name}, index {variant.index}")
        print()

    def print_constants(self) -> None:
        print(f"----------------- Constants for Pallet: {self.name()} -----------------\n")
        for constant in self.constants():
            print(f"Name: {constant.name}, Type {constant.ty!r}, Value {list(constant.value)!r}")
        print()

    def print_storages(self) -> None:
        print(f"----------------- Storages for Pallet: {self.name()} -----------------\n")
        for storage in self.storage():
            print(
                f"Name: {storage.name}, Modifier: {storage.modifier.value}, "
                f"Type {storage.ty!r}, Default {list(storage.default)!r}"
            )
        print()

    def print_events(self) -> None:
        print(f"----------------- Events for Pallet: {self.name()} -----------------\n")
        for variant in self.event_variants() or []:
            print(f"Name: {variant.name}")
            print(f"Field: {variant.fields!r}")
            print(f"Docs: {variant.docs!r}")
            print()
        print()

    def print_errors(self) -> None:
        print(f"----------------- Errors for Pallet: {self.name()} -----------------\n")
        for variant in self.error_variants() or []:
            print(f"Name: {variant.name}")
            print(f"Docs: {variant.docs!r}")
            print()
        print()


class RuntimeApiMetadata:
    """Metadata for one runtime API trait."""

    def __init__(self, inner: _RuntimeApiInner, types: PortableRegistry) -> None:
        self._inner = inner
        self._types = types

    def __repr__(self) -> str:
        return f"RuntimeApiMetadata(name={self._inner.name!r})"

    def name(self) -> str:
        return self._inner.name

    def docs(self) -> list[str]:
        return self._inner.docs

    def types(self) -> PortableRegistry:
        return self._types

    def methods(self) -> Iterator[RuntimeApiMethodMetadata]:
        """The trait methods, ordered by name."""
        return iter(_sorted_values(self._inner.methods))

    def method_by_name(self, name: str) -> RuntimeApiMethodMetadata | None:
        return self._inner.methods.get(name)


def _to_jsonable(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return list(bytes(obj))
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(item) for item in obj]
    if isinstance(obj, dict):
        return {str(key): _to_jsonable(value) for key, value in obj.items()}
    return obj


class Metadata:
    """Runtime metadata (v15 layout) with indexes over pallets and runtime APIs."""

    def __init__(self, runtime_metadata: RuntimeMetadataV15) -> None:
        self._runtime_metadata = runtime_metadata
        types = runtime_metadata.types
        self._pallets: dict[str, _PalletInner] = {}
        self._pallets_by_index: dict[int, str] = {}
        for pallet in runtime_metadata.pallets:
            storage = (
                {entry.name: entry for entry in pallet.storage.entries}
                if pallet.storage is not None
                else {}
            )
            self._pallets_by_index[pallet.index] = pallet.name
            self._pallets[pallet.name] = _PalletInner(
                name=pallet.name,
                index=pallet.index,
                storage=storage,
                call_ty=pallet.calls,
                call_variant_index=VariantIndex.build(pallet.calls, types),
                event_ty=pallet.event,
                event_variant_index=VariantIndex.build(pallet.event, types),
                error_ty=pallet.error,
                error_variant_index=VariantIndex.build(pallet.error, types),
                constants={constant.name: constant for constant in pallet.constants},
                docs=list(pallet.docs),
            )
        self._apis = {
            api.name: _RuntimeApiInner(
                name=api.name,
                methods={method.name: method for method in api.methods},
                docs=list(api.docs),
            )
            for api in runtime_metadata.apis
        }
        self._dispatch_error_ty = next(
            (entry.id for entry in types.types if entry.ty.path == _DISPATCH_ERROR_PATH),
            None,
        )

    def __repr__(self) -> str:
        return f"Metadata(pallets={sorted(self._pallets)!r})"

    @classmethod
    def from_prefixed(cls, prefixed: RuntimeMetadataPrefixed) -> Metadata:
        """Build from prefixed v14 or v15 metadata; raises ``MetadataConversionError``."""
        if prefixed.magic != META_RESERVED:
            raise MetadataConversionError(MetadataConversionErrorKind.INVALID_PREFIX)
        inner = prefixed.metadata
        if isinstance(inner, RuntimeMetadataV14):
            inner = v14_to_v15(inner)
        elif not isinstance(inner, RuntimeMetadataV15):
            raise MetadataConversionError(MetadataConversionErrorKind.INVALID_VERSION)
        return cls(inner)

    def pallets(self) -> Iterator[PalletMetadata]:
        """All pallets, ordered by name."""
        types = self.types()
        return (PalletMetadata(inner, types) for inner in _sorted_values(self._pallets))

    def pallet_by_index(self, variant_index: int) -> PalletMetadata | None:
        name = self._pallets_by_index.get(variant_index)
        if name is None:
            return None
        return self.pallet_by_name(name)

    def pallet_by_name(self, pallet_name: str) -> PalletMetadata | None:
        inner = self._pallets.get(pallet_name)
        if inner is None:
            return None
        return PalletMetadata(inner, self.types())

    def dispatch_error_ty(self) -> int | None:
        return self._dispatch_error_ty

    def types(self) -> PortableRegistry:
        return self._runtime_metadata.types

    def resolve_type(self, type_id: int) -> Type | None:
        return self._runtime_metadata.types.resolve(type_id)

    def runtime_metadata(self) -> RuntimeMetadataV15:
        return self._runtime_metadata

    def extrinsic(self) -> ExtrinsicMetadataV15:
        return self._runtime_metadata.extrinsic

    def runtime_api_traits(self) -> Iterator[RuntimeApiMetadata]:
        """All runtime API traits, ordered by name."""
        types = self.types()
        return (RuntimeApiMetadata(inner, types) for inner in _sorted_values(self._apis))

    def runtime_api_trait_by_name(self, name: str) -> RuntimeApiMetadata | None:
        inner = self._apis.get(name)
        if inner is None:
            return None
        return RuntimeApiMetadata(inner, self.types())

    def pretty_format(self) -> str:
        """The runtime metadata as JSON, indented by one space."""
        return json.dumps(_to_jsonable(self._runtime_metadata), indent=1, ensure_ascii=False)

    def pallet_by_name_err(self, name: str) -> PalletMetadata:
        pallet = self.pallet_by_name(name)
        if pallet is None:
            raise MetadataError(MetadataErrorKind.PALLET_NAME_NOT_FOUND, name)
        return pallet

    def pallet_by_index_err(self, index: int) -> PalletMetadata:
        pallet = self.pallet_by_index(index)
        if pallet is None:
            raise MetadataError(MetadataErrorKind.PALLET_INDEX_NOT_FOUND, index)
        return pallet

    def runtime_api_trait_by_name_err(self, name: str) -> RuntimeApiMetadata:
        api = self.runtime_api_trait_by_name(name)
        if api is None:
            raise MetadataError(MetadataErrorKind.RUNTIME_API_NOT_FOUND, name)
        return api

    def storage_value_key(self, pallet: str, storage_item: str) -> bytes:
        entry = self.pallet_by_name_err(pallet).storage_entry(storage_item)
        return entry.get_value(pallet).key()

    def storage_map_key(self, pallet: str, storage_item: str, map_key: Any) -> bytes:
        entry = self.pallet_by_name_err(pallet).storage_entry(storage_item)
        return entry.get_map(pallet).key(map_key)

    def storage_map_key_prefix(self, pallet: str, storage_item: str) -> bytes:
        entry = self.pallet_by_name_err(pallet).storage_entry(storage_item)
        return entry.get_map_prefix(pallet)

    def storage_double_map_key_prefix(
        self, storage_prefix: str, storage_key_name: str, first: Any
    ) -> bytes:
        entry = self.pallet_by_name_err(storage_prefix).storage_entry(storage_key_name)
        return entry.get_double_map_prefix(storage_prefix, first)

    def storage_double_map_key(
        self,
        pallet: str,
        storage_item: str,
        first_double_map_key: Any,
        second_double_map_key: Any,
    ) -> bytes:
        entry = self.pallet_by_name_err(pallet).storage_entry(storage_item)
        return entry.get_double_map(pallet).key(first_double_map_key, second_double_map_key)

    def overview(self) -> str:
        """A listing of every pallet with its storages, calls, constants, events and errors."""
        lines: list[str] = []
        for pallet in self.pallets():
            lines.append(pallet.name())
            lines.extend(f" s  {storage.name}" for storage in pallet.storage())
            lines.extend(f" c  {call.name}" for call in pallet.call_variants() or [])
            lines.extend(f" cst  {constant.name}" for constant in pallet.constants())
            lines.extend(f" e  {event.name}" for event in pallet.event_variants() or [])
            lines.extend(f" err  {error.name}" for error in pallet.error_variants() or [])
        return "".join(f"{line}\n" for line in lines)

    def print_overview(self) -> None:
        print(self.overview())

    def print_pallets(self) -> None:
        for pallet in self.pallets():
            pallet.print()

    def print_pallets_with_calls(self) -> None:
        for pallet in self.pallets():
            pallet.print_calls()

    def print_pallets_with_constants(self) -> None:
        for pallet in self.pallets():
            pallet.print_constants()

    def print_pallet_with_storages(self) -> None:
        for pallet in self.pallets():
            pallet.print_storages()

    def print_pallets_with_events(self) -> None:
        for pallet in self.pallets():
            pallet.print_events()

    def print_pallets_with_errors(self) -> None:
        for pallet in self.pallets():
            pallet.print_errors()