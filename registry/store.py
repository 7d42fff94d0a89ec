"""
Layered Asset Registry - Metadata Store

In-memory arena of asset records keyed by identifier. The store performs no
authorization, existence or content checks; those belong to the registry
facade. Records are immutable models, so each write replaces a record as a
whole and readers never observe a partially written one.
"""

from threading import RLock
from typing import Dict, Iterable, Iterator

from .schema import AssetRecord


class MetadataStore:
    """Record store keyed by asset identifier."""

    def __init__(self, records: Iterable[AssetRecord] = ()):
        self._records: Dict[int, AssetRecord] = {}
        self._lock = RLock()
        self.load(records)

    def create(
        self,
        asset_id: int,
        base_reference: str,
        name: str,
        description: str,
        static_attributes: str,
        dynamic_attributes: str
    ) -> AssetRecord:
        """Write all fields of a new record in one step."""
        record = AssetRecord(
            asset_id=asset_id,
            base_reference=base_reference,
            name=name,
            description=description,
            static_attributes=static_attributes,
            dynamic_attributes=dynamic_attributes,
        )
        with self._lock:
            self._records[asset_id] = record
        return record

    def set_overlay(self, asset_id: int, overlay_reference: str) -> AssetRecord:
        """Replace only the overlay reference."""
        return self._replace(asset_id, overlay_reference=overlay_reference)

    def set_dynamic_attributes(self, asset_id: int, dynamic_attributes: str) -> AssetRecord:
        """Replace only the dynamic attribute fragment."""
        return self._replace(asset_id, dynamic_attributes=dynamic_attributes)

    def _replace(self, asset_id: int, **changes) -> AssetRecord:
        with self._lock:
            record = self.read(asset_id).model_copy(update=changes)
            self._records[asset_id] = record
            return record

    def read(self, asset_id: int) -> AssetRecord:
        """
        Return the record for asset_id.

        An identifier that was never written reads as a record of empty
        fields, matching the empty-string default of every stored field.
        """
        with self._lock:
            record = self._records.get(asset_id)
        if record is None:
            return AssetRecord(asset_id=asset_id)
        return record

    def records(self) -> Iterator[AssetRecord]:
        """All stored records in identifier order."""
        with self._lock:
            ordered = [self._records[key] for key in sorted(self._records)]
        return iter(ordered)

    def load(self, records: Iterable[AssetRecord]) -> None:
        """Replace the store contents, e.g. from a persisted snapshot."""
        with self._lock:
            self._records = {record.asset_id: record for record in records}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, asset_id: int) -> bool:
        with self._lock:
            return asset_id in self._records
