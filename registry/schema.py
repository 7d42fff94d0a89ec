"""
Layered Asset Registry - Registry Schema Models

This module defines the Pydantic models for asset records and for the
persisted registry snapshot.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .events import RegistryEvent


SNAPSHOT_VERSION = "1.0.0"


class AssetRecord(BaseModel):
    """Six stored metadata fields of one minted asset."""

    model_config = ConfigDict(frozen=True)

    asset_id: int = Field(..., ge=1, description="Allocated identifier")
    base_reference: str = Field(default="", description="Immutable base image URI")
    overlay_reference: str = Field(default="", description="Replaceable overlay URI, empty when absent")
    name: str = Field(default="")
    description: str = Field(default="")
    static_attributes: str = Field(default="", description="Attribute fragment fixed at mint")
    dynamic_attributes: str = Field(default="", description="Replaceable attribute fragment")

    @property
    def has_overlay(self) -> bool:
        return self.overlay_reference != ""


class RegistrySnapshot(BaseModel):
    """Persisted image of a registry."""

    version: str = Field(default=SNAPSHOT_VERSION, description="Snapshot schema version")
    administrator: Optional[str] = Field(None, description="Administrator principal")
    counter: int = Field(default=0, ge=0, description="Identifier allocator counter")
    records: List[AssetRecord] = Field(default_factory=list)
    events: List[RegistryEvent] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode='after')
    def validate_counter(self):
        """Every identifier up to the counter has exactly one record."""
        ids = sorted(record.asset_id for record in self.records)
        if ids != list(range(1, self.counter + 1)):
            raise ValueError(
                f"Snapshot counter {self.counter} does not match record identifiers"
            )
        return self
