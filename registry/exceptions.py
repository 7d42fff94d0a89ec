"""
Layered Asset Registry - Exceptions

This module defines the exception hierarchy raised by the registry facade,
the metadata store and the persistence layer.
"""


class RegistryError(Exception):
    """Base exception for all registry errors."""
    pass


class UnauthorizedError(RegistryError):
    """Raised when the caller is not the registry administrator."""

    def __init__(self, caller: str, operation: str):
        self.caller = caller
        self.operation = operation
        super().__init__(f"Caller {caller!r} is not authorized to {operation}")


class AssetNotFoundError(RegistryError):
    """Raised when an identifier has not been allocated."""

    def __init__(self, asset_id: int):
        self.asset_id = asset_id
        super().__init__(f"Asset {asset_id} not found")


class InvalidArgumentError(RegistryError):
    """Raised when an argument is malformed."""
    pass


class StorageError(RegistryError):
    """Base storage exception."""
    pass


class LockTimeoutError(StorageError):
    """Lock acquisition timeout exception."""
    pass


class IntegrityError(StorageError):
    """Stored registry data is inconsistent or unreadable."""
    pass
