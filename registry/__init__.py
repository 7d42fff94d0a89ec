"""
Layered Asset Registry - Registry Package

Identifier allocation, record storage, administrator gating, event emission
and persistence for minted assets with layered metadata.
"""

from .exceptions import (
    RegistryError,
    UnauthorizedError,
    AssetNotFoundError,
    InvalidArgumentError,
    StorageError,
    IntegrityError,
    LockTimeoutError
)
from .schema import AssetRecord, RegistrySnapshot
from .events import (
    MintedEvent,
    OverlayUpdatedEvent,
    DynamicAttributesUpdatedEvent,
    NotificationChannel
)
from .access import AdministratorGate
from .asset_id import IdentifierAllocator
from .store import MetadataStore
from .storage import RegistryStorage
from .manager import AssetRegistry

__all__ = [
    # Errors
    "RegistryError",
    "UnauthorizedError",
    "AssetNotFoundError",
    "InvalidArgumentError",
    "StorageError",
    "IntegrityError",
    "LockTimeoutError",

    # Models and events
    "AssetRecord",
    "RegistrySnapshot",
    "MintedEvent",
    "OverlayUpdatedEvent",
    "DynamicAttributesUpdatedEvent",
    "NotificationChannel",

    # Components
    "AdministratorGate",
    "IdentifierAllocator",
    "MetadataStore",
    "RegistryStorage",
    "AssetRegistry",
]
