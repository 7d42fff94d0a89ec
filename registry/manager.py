"""
Layered Asset Registry - Registry Manager

This module provides AssetRegistry, the public facade over identifier
allocation, the metadata store, administrator gating, event emission,
metadata rendering and optional snapshot persistence.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from nft.metadata import (
    MetadataValidationError, render, token_uri,
    validate_attribute_fragment, validate_text
)

from .access import AdminPredicate, AdministratorGate
from .asset_id import IdentifierAllocator, validate_asset_id
from .concurrency import AssetLockManager
from .events import (
    BaseEvent, DynamicAttributesUpdatedEvent, MintedEvent,
    NotificationChannel, OverlayUpdatedEvent, Subscriber
)
from .exceptions import (
    AssetNotFoundError, IntegrityError, InvalidArgumentError, UnauthorizedError
)
from .schema import AssetRecord, RegistrySnapshot
from .storage import RegistryStorage
from .store import MetadataStore


PreparedChange = Tuple[AssetRecord, BaseEvent]


class AssetRegistry:
    """Registry of minted assets and their layered metadata."""

    def __init__(
        self,
        is_admin: Union[AdminPredicate, str],
        storage: Optional[RegistryStorage] = None,
        strict: bool = False,
        snapshot: Optional[RegistrySnapshot] = None
    ):
        """
        Initialize registry.

        Args:
            is_admin: Authorization predicate, or the administrator principal
                for which an AdministratorGate is built
            storage: Snapshot storage; every mutation is persisted before it
                is applied in memory
            strict: Reject values that would produce invalid metadata JSON
            snapshot: Previously persisted state to restore
        """
        if isinstance(is_admin, str):
            is_admin = AdministratorGate(is_admin)
        if not callable(is_admin):
            raise InvalidArgumentError("is_admin must be a callable or an administrator principal")

        self.logger = logging.getLogger("registry.manager")
        self.is_admin = is_admin
        self.storage = storage
        self.strict = strict
        self._locks = AssetLockManager()

        if storage is not None and self.administrator is None:
            raise InvalidArgumentError(
                "A persisted registry needs an administrator principal, not only a predicate"
            )

        if snapshot is None:
            snapshot = RegistrySnapshot(administrator=self.administrator)

        self.allocator = IdentifierAllocator(snapshot.counter)
        self.store = MetadataStore(snapshot.records)
        self.channel = NotificationChannel(snapshot.events)

    @classmethod
    def open(
        cls,
        storage_dir: Union[str, Path],
        administrator: Optional[str] = None,
        strict: bool = False,
        backup_count: int = 5
    ) -> "AssetRegistry":
        """
        Open a persisted registry, creating it when the directory is empty.

        The administrator is fixed when the registry is first created. Opening
        an existing registry with a different administrator is rejected.

        Raises:
            InvalidArgumentError: If a new registry is opened without administrator
            UnauthorizedError: If administrator differs from the stored one
            IntegrityError: If the stored snapshot is inconsistent
        """
        storage = RegistryStorage(storage_dir, backup_count=backup_count)
        snapshot = storage.load_snapshot()

        if snapshot is None:
            if not administrator:
                raise InvalidArgumentError("An administrator is required to create a registry")
            registry = cls(administrator, storage=storage, strict=strict)

            def initialize(stored: Optional[RegistrySnapshot]) -> RegistrySnapshot:
                # Another process may have created it since load_snapshot()
                if stored is None:
                    return registry.snapshot()
                registry._catch_up(stored)
                return stored

            storage.update_snapshot(initialize)
            registry.logger.info(f"Created registry in {storage_dir} administered by {administrator}")
            return registry

        if not snapshot.administrator:
            raise IntegrityError("Stored registry has no administrator")
        if administrator and administrator != snapshot.administrator:
            raise UnauthorizedError(administrator, "administer this registry")

        registry = cls(snapshot.administrator, storage=storage, strict=strict, snapshot=snapshot)
        registry.logger.debug(f"Opened registry in {storage_dir} with {snapshot.counter} assets")
        return registry

    @property
    def administrator(self) -> Optional[str]:
        return getattr(self.is_admin, "administrator", None)

    # Guards

    def _authorize(self, caller: str, operation: str) -> None:
        if not self.is_admin(caller):
            self.logger.warning(f"Rejected {operation} by non-administrator {caller!r}")
            raise UnauthorizedError(caller, operation)

    def _require_exists(self, asset_id) -> int:
        validate_asset_id(asset_id)
        if not self.allocator.exists(asset_id):
            raise AssetNotFoundError(asset_id)
        return asset_id

    def _check_strings(self, **values: Any) -> None:
        for field_name, value in values.items():
            if not isinstance(value, str):
                raise InvalidArgumentError(
                    f"{field_name} must be a string, got {type(value).__name__}"
                )

        if not self.strict:
            return

        try:
            for field_name, value in values.items():
                if field_name == "to":
                    continue  # recipient is not part of the metadata document
                if field_name.endswith("attributes"):
                    validate_attribute_fragment(value, field_name)
                else:
                    validate_text(value, field_name)
        except MetadataValidationError as e:
            raise InvalidArgumentError(str(e))

    # Persistence

    def snapshot(self, pending: Optional[AssetRecord] = None, event: Optional[BaseEvent] = None) -> RegistrySnapshot:
        """Current state, optionally with one not yet applied record and event."""
        records = {record.asset_id: record for record in self.store.records()}
        events = self.channel.events()
        counter = self.allocator.counter

        if pending is not None:
            records[pending.asset_id] = pending
            counter = max(counter, pending.asset_id)
        if event is not None:
            events.append(event)

        return RegistrySnapshot(
            administrator=self.administrator,
            counter=counter,
            records=[records[key] for key in sorted(records)],
            events=events,
        )

    def _catch_up(self, stored: RegistrySnapshot) -> None:
        """Adopt a stored snapshot written by another handle on the same directory."""
        if stored.administrator != self.administrator:
            raise UnauthorizedError(self.administrator, "administer this registry")
        if stored.counter == self.allocator.counter and len(stored.events) == len(self.channel):
            return

        self.logger.info(
            f"Reloading stored state: {stored.counter} assets and {len(stored.events)} events "
            f"(had {self.allocator.counter} and {len(self.channel)})"
        )
        self.allocator.reset(stored.counter)
        self.store.load(stored.records)
        self.channel.load(stored.events)

    def _commit(self, prepare: Callable[[], PreparedChange]) -> PreparedChange:
        """
        Build a change with prepare() and persist it before it is applied.

        prepare() returns the pending record and its stamped event. With
        storage attached it runs while the storage lock is held, after this
        handle caught up with the stored snapshot, so identifiers and event
        sequences stay unique across handles. Nothing is written if it raises.
        """
        if self.storage is None:
            return prepare()

        prepared: List[PreparedChange] = []

        def updater(stored: Optional[RegistrySnapshot]) -> RegistrySnapshot:
            if stored is not None:
                self._catch_up(stored)
            prepared.append(prepare())
            return self.snapshot(*prepared[0])

        self.storage.update_snapshot(updater)
        return prepared[0]

    # Mutations
    #
    # The commit lock is always taken first. Subscribers run while it is held,
    # so a subscriber may call back into the registry from the same thread.

    def mint(
        self,
        caller: str,
        to: str,
        base_uri: str,
        name: str,
        description: str,
        static_attributes: str = "",
        dynamic_attributes: str = ""
    ) -> int:
        """
        Mint a new asset and return its identifier.

        Raises:
            UnauthorizedError: If caller is not the administrator
            InvalidArgumentError: If a field is malformed
        """
        self._authorize(caller, "mint")
        self._check_strings(
            to=to, base_uri=base_uri, name=name, description=description,
            static_attributes=static_attributes, dynamic_attributes=dynamic_attributes
        )

        def prepare() -> PreparedChange:
            pending_id = self.allocator.peek()
            pending = AssetRecord(
                asset_id=pending_id,
                base_reference=base_uri,
                name=name,
                description=description,
                static_attributes=static_attributes,
                dynamic_attributes=dynamic_attributes,
            )
            return pending, self.channel.stamp(MintedEvent(asset_id=pending_id, to=to, base_uri=base_uri))

        with self._locks.commit(), self._locks.allocation():
            _, event = self._commit(prepare)

            asset_id = self.allocator.next_id()
            self.store.create(
                asset_id, base_uri, name, description, static_attributes, dynamic_attributes
            )
            self.channel.emit(event)

        self.logger.info(f"Minted asset {asset_id} to {to} with base {base_uri}")
        return asset_id

    def set_overlay(self, caller: str, asset_id: int, overlay_uri: str) -> None:
        """
        Replace the overlay reference of an asset. An empty string clears it.

        Raises:
            UnauthorizedError: If caller is not the administrator
            AssetNotFoundError: If asset_id has not been minted
        """
        self._authorize(caller, "set overlay")
        validate_asset_id(asset_id)

        def prepare() -> PreparedChange:
            self._require_exists(asset_id)
            self._check_strings(overlay_uri=overlay_uri)
            pending = self.store.read(asset_id).model_copy(update={"overlay_reference": overlay_uri})
            return pending, self.channel.stamp(OverlayUpdatedEvent(asset_id=asset_id, overlay_uri=overlay_uri))

        with self._locks.commit(), self._locks.asset(asset_id):
            _, event = self._commit(prepare)

            self.store.set_overlay(asset_id, overlay_uri)
            self.channel.emit(event)

        self.logger.info(f"Set overlay of asset {asset_id} to {overlay_uri!r}")

    def set_dynamic_attributes(self, caller: str, asset_id: int, dynamic_attributes: str) -> None:
        """
        Replace the dynamic attribute fragment of an asset.

        Raises:
            UnauthorizedError: If caller is not the administrator
            AssetNotFoundError: If asset_id has not been minted
        """
        self._authorize(caller, "set dynamic attributes")
        validate_asset_id(asset_id)

        def prepare() -> PreparedChange:
            self._require_exists(asset_id)
            self._check_strings(dynamic_attributes=dynamic_attributes)
            pending = self.store.read(asset_id).model_copy(
                update={"dynamic_attributes": dynamic_attributes}
            )
            return pending, self.channel.stamp(
                DynamicAttributesUpdatedEvent(asset_id=asset_id, dynamic_attributes=dynamic_attributes)
            )

        with self._locks.commit(), self._locks.asset(asset_id):
            _, event = self._commit(prepare)

            self.store.set_dynamic_attributes(asset_id, dynamic_attributes)
            self.channel.emit(event)

        self.logger.info(f"Set dynamic attributes of asset {asset_id}")

    # Reads

    def get_base_uri(self, asset_id: int) -> str:
        return self.store.read(self._require_exists(asset_id)).base_reference

    def get_overlay_uri(self, asset_id: int) -> str:
        return self.store.read(self._require_exists(asset_id)).overlay_reference

    def get_record(self, asset_id: int) -> AssetRecord:
        return self.store.read(self._require_exists(asset_id))

    def get_metadata(self, asset_id: int) -> str:
        """Canonical metadata JSON document of an asset."""
        record = self.store.read(self._require_exists(asset_id))
        self.logger.debug(f"Rendering metadata for asset {asset_id}")
        return render(record)

    def token_uri(self, asset_id: int) -> str:
        """Metadata document as a base64 data URI."""
        return token_uri(self.get_metadata(asset_id))

    def total_supply(self) -> int:
        return self.allocator.counter

    def exists(self, asset_id: int) -> bool:
        validate_asset_id(asset_id)
        return self.allocator.exists(asset_id)

    # Events

    def events(self, since: int = 0) -> List[BaseEvent]:
        return self.channel.events(since)

    def subscribe(self, callback: Subscriber):
        return self.channel.subscribe(callback)

    def stats(self) -> Dict[str, Any]:
        """Registry statistics."""
        stats = {
            'total_supply': self.total_supply(),
            'event_count': len(self.channel),
            'administrator': self.administrator,
            'strict': self.strict,
            'lock_metrics': self._locks.get_metrics(),
        }
        if self.storage is not None:
            stats['storage_info'] = self.storage.get_storage_info()
        return stats
