"""The events emitted in a block, decoded dynamically with runtime metadata."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator

from nodeapi.codec import Phase, ScaleReader
from nodeapi.dispatch_error import DispatchError, DispatchErrorKind
from nodeapi.errors import CodecError, MetadataError, MetadataErrorKind, NodeApiError
from nodeapi.metadata import Metadata, PalletMetadata
from nodeapi.registry import Variant
from nodeapi.value import Composite, decode_fields, skip_value

_log = logging.getLogger(__name__)

_HASH_LEN = 32
_U32_MAX = 0xFFFFFFFF


@dataclass(frozen=True)
class EventMetadataDetails:
    """The pallet and variant metadata that describe one event."""

    pallet: PalletMetadata
    variant: Variant


class EventDetails:
    """One event of a block, with the byte ranges of its parts."""

    def __init__(
        self,
        *,
        phase: Phase,
        index: int,
        all_bytes: bytes,
        start_idx: int,
        event_start_idx: int,
        event_fields_start_idx: int,
        event_fields_end_idx: int,
        end_idx: int,
        metadata: Metadata,
        topics: list[bytes],
    ) -> None:
        self._phase = phase
        self._index = index
        self._all_bytes = all_bytes
        self._start_idx = start_idx
        self._event_start_idx = event_start_idx
        self._event_fields_start_idx = event_fields_start_idx
        self._event_fields_end_idx = event_fields_end_idx
        self._end_idx = end_idx
        self._metadata = metadata
        self._topics = topics

    def __repr__(self) -> str:
        return (
            f"EventDetails(index={self._index}, phase={self._phase!r}, "
            f"pallet_index={self.pallet_index()}, variant_index={self.variant_index()})"
        )

    @classmethod
    def decode_from(
        cls, metadata: Metadata, all_bytes: bytes, start_idx: int, index: int
    ) -> EventDetails:
        """Decode the event starting at ``start_idx``.

        Raises ``CodecError`` on malformed bytes and ``MetadataError`` when the
        pallet or event variant is unknown.
        """
        all_bytes = bytes(all_bytes)
        tail = all_bytes[start_idx:]
        reader = ScaleReader(tail)

        def position() -> int:
            return start_idx + len(tail) - reader.remaining()

        try:
            phase = Phase.decode(reader)
            event_start_idx = position()
            pallet_index = reader.read_u8()
            variant_index = reader.read_u8()
            event_fields_start_idx = position()

            pallet = metadata.pallet_by_index_err(pallet_index)
            variant = pallet.event_variant_by_index(variant_index)
            if variant is None:
                raise MetadataError(MetadataErrorKind.VARIANT_INDEX_NOT_FOUND, variant_index)
            _log.debug("Decoding Event '%s::%s'", pallet.name(), variant.name)

            types = metadata.types()
            for field_metadata in variant.fields:
                skip_value(reader, field_metadata.ty, types)
            event_fields_end_idx = position()

            topic_count = reader.read_compact()
            topics = [reader.read(_HASH_LEN) for _ in range(topic_count)]
            end_idx = position()
        except NodeApiError:
            raise
        except ValueError as exc:
            raise CodecError(str(exc)) from exc

        return cls(
            phase=phase,
            index=index,
            all_bytes=all_bytes,
            start_idx=start_idx,
            event_start_idx=event_start_idx,
            event_fields_start_idx=event_fields_start_idx,
            event_fields_end_idx=event_fields_end_idx,
            end_idx=end_idx,
            metadata=metadata,
            topics=topics,
        )

    def phase(self) -> Phase:
        """When the event was produced."""
        return self._phase

    def index(self) -> int:
        """Position of the event among the block's events."""
        return self._index

    def pallet_index(self) -> int:
        return self._all_bytes[self._event_fields_start_idx - 2]

    def variant_index(self) -> int:
        return self._all_bytes[self._event_fields_start_idx - 1]

    def pallet_name(self) -> str:
        return self.event_metadata().pallet.name()

    def variant_name(self) -> str:
        return self.event_metadata().variant.name

    def event_metadata(self) -> EventMetadataDetails:
        """The metadata of this event's pallet and variant."""
        pallet = self._metadata.pallet_by_index(self.pallet_index())
        if pallet is None:
            raise RuntimeError("event pallet vanished from the metadata after decoding")
        variant = pallet.event_variant_by_index(self.variant_index())
        if variant is None:
            raise RuntimeError("event variant vanished from the metadata after decoding")
        return EventMetadataDetails(pallet, variant)

    def bytes(self) -> bytes:
        """Phase, pallet and variant index, fields and topics of this event."""
        return self._all_bytes[self._start_idx:self._end_idx]

    def field_bytes(self) -> bytes:
        """The encoded fields of this event."""
        return self._all_bytes[self._event_fields_start_idx:self._event_fields_end_idx]

    def field_values(self) -> Composite:
        """Decode the event fields into a composite value."""
        variant = self.event_metadata().variant
        return decode_fields(self.field_bytes(), variant.fields, self._metadata.types())

    def as_event(self, event_type: Any) -> Any:
        """Decode into ``event_type`` if its ``PALLET`` and ``EVENT`` match, else ``None``.

        ``event_type`` decodes its fields through ``event_type.decode(reader)``.
        """
        details = self.event_metadata()
        if details.pallet.name() != event_type.PALLET or details.variant.name != event_type.EVENT:
            return None
        try:
            return event_type.decode(ScaleReader(self.field_bytes()))
        except NodeApiError:
            raise
        except ValueError as exc:
            raise CodecError(str(exc)) from exc

    def topics(self) -> list[bytes]:
        return list(self._topics)

    def check_if_failed(self) -> None:
        """Raise the ``DispatchError`` if this event reports a failed extrinsic."""
        if self.pallet_name() == "System" and self.variant_name() == "ExtrinsicFailed":
            try:
                error = DispatchError.decode_from(self.field_bytes(), self._metadata)
            except (NodeApiError, ValueError):
                raise DispatchError(DispatchErrorKind.CANNOT_LOOKUP) from None
            raise error

    def is_code_update(self) -> bool:
        """Whether the event announces a runtime code update."""
        return self.pallet_name() == "System" and self.variant_name() == "CodeUpdated"


class Events:
    """The events of one block together with the metadata to decode them."""

    def __init__(self, metadata: Metadata, block_hash: Any, event_bytes: bytes) -> None:
        event_bytes = bytes(event_bytes)
        reader = ScaleReader(event_bytes)
        try:
            num_events = reader.read_compact()
        except ValueError:
            num_events = 0
        if num_events > _U32_MAX:
            num_events = 0
        self._metadata = metadata
        self._block_hash = block_hash
        self._event_bytes = event_bytes
        self._start_idx = len(event_bytes) - reader.remaining()
        self._num_events = num_events

    def __repr__(self) -> str:
        return (
            f"Events(block_hash={self._block_hash!r}, event_bytes={self._event_bytes!r}, "
            f"start_idx={self._start_idx}, num_events={self._num_events})"
        )

    def __len__(self) -> int:
        return self._num_events

    def __iter__(self) -> Iterator[EventDetails]:
        return self.iter()

    def is_empty(self) -> bool:
        return self._num_events == 0

    def block_hash(self) -> Any:
        return self._block_hash

    def event_bytes(self) -> bytes:
        """The encoded events, including the leading event count."""
        return self._event_bytes

    def iter(self) -> Iterator[EventDetails]:
        """Decode the events one by one; a decoding error ends the iteration by raising."""
        pos = self._start_idx
        index = 0
        while pos < len(self._event_bytes) and index != self._num_events:
            details = EventDetails.decode_from(self._metadata, self._event_bytes, pos, index)
            pos += len(details.bytes())
            index += 1
            yield details

    def find(self, event_type: Any) -> Iterator[Any]:
        """Yield every event that decodes into ``event_type``."""
        for details in self.iter():
            event = details.as_event(event_type)
            if event is not None:
                yield event

    def find_first(self, event_type: Any) -> Any:
        return next(self.find(event_type), None)

    def find_last(self, event_type: Any) -> Any:
        last = None
        for event in self.find(event_type):
            last = event
        return last

    def has(self, event_type: Any) -> bool:
        return self.find_first(event_type) is not None