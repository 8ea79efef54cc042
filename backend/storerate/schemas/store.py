"""Pydantic schemas for stores and their rating aggregates."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from storerate.schemas.common import Address, Email, StoreName


class StoreWrite(BaseModel):
    """Create/update body. ``ownerId`` must reference a store owner."""
    model_config = ConfigDict(populate_by_name=True)

    name: StoreName
    email: Email
    address: Optional[Address] = None
    owner_id: Optional[int] = Field(None, alias="ownerId", ge=1)


class StoreRecord(BaseModel):
    """Plain store row as returned after a write."""
    id: int
    name: str
    email: str
    address: Optional[str] = None
    owner_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class StoreMutationResponse(BaseModel):
    message: str
    store: StoreRecord


class StoreSummary(BaseModel):
    """Store with its rating aggregates."""
    id: int
    name: str
    email: str
    address: Optional[str] = None
    created_at: Optional[datetime] = None
    average_rating: str  # one decimal place, "0.0" when unrated
    total_ratings: int
    user_rating: Optional[int] = None


class AdminStoreSummary(StoreSummary):
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None


class StoreEnvelope(BaseModel):
    store: StoreSummary


class StoreListResponse(BaseModel):
    stores: list[StoreSummary]


class AdminStoreListResponse(BaseModel):
    stores: list[AdminStoreSummary]
