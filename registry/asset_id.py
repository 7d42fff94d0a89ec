"""
Layered Asset Registry - Identifier Allocation

This module issues the sequential integer identifiers assigned to minted
assets and answers whether a given identifier has been allocated.
"""

from threading import Lock

from .exceptions import InvalidArgumentError


def validate_asset_id(asset_id) -> int:
    """
    Check that an identifier is an integer.

    Booleans are rejected even though they are int subclasses. Range is not
    checked here; out-of-range integers are simply not allocated.

    Raises:
        InvalidArgumentError: If asset_id is not an integer
    """
    if isinstance(asset_id, bool) or not isinstance(asset_id, int):
        raise InvalidArgumentError(
            f"Asset ID must be an integer, got {type(asset_id).__name__}"
        )
    return asset_id


class IdentifierAllocator:
    """Monotonic identifier counter starting at 1."""

    def __init__(self, counter: int = 0):
        """
        Initialize allocator.

        Args:
            counter: Last issued identifier, 0 for a fresh registry
        """
        if counter < 0:
            raise InvalidArgumentError(f"Allocator counter cannot be negative: {counter}")
        self._counter = counter
        self._lock = Lock()

    @property
    def counter(self) -> int:
        return self._counter

    def peek(self) -> int:
        """Identifier the next call to next_id() will return."""
        return self._counter + 1

    def next_id(self) -> int:
        """Increment the counter and return the new identifier."""
        with self._lock:
            self._counter += 1
            return self._counter

    def reset(self, counter: int) -> None:
        """Jump to a counter read back from storage."""
        with self._lock:
            self._counter = counter

    def exists(self, asset_id: int) -> bool:
        """True iff asset_id has been allocated."""
        return 1 <= asset_id <= self._counter
