"""
Pytest configuration and fixtures for registry tests.
"""

import pytest

from registry.manager import AssetRegistry


ADMIN = "admin-principal"
OUTSIDER = "outsider-principal"


@pytest.fixture
def admin():
    """Administrator principal."""
    return ADMIN


@pytest.fixture
def outsider():
    """Principal without administrator rights."""
    return OUTSIDER


@pytest.fixture
def registry(admin):
    """In-memory registry administered by the admin fixture."""
    return AssetRegistry(admin)


@pytest.fixture
def strict_registry(admin):
    """In-memory registry that rejects values producing invalid JSON."""
    return AssetRegistry(admin, strict=True)


@pytest.fixture
def storage_dir(tmp_path):
    """Temporary registry storage directory."""
    return tmp_path / "registry_data"


@pytest.fixture
def persistent_registry(storage_dir, admin):
    """Registry persisted under storage_dir."""
    return AssetRegistry.open(storage_dir, administrator=admin, backup_count=2)


@pytest.fixture
def minted(registry, admin):
    """Registry with one minted asset, returned as (registry, asset_id)."""
    asset_id = registry.mint(admin, "collector", "ipfs://base", "Name", "Desc", "", "")
    return registry, asset_id
