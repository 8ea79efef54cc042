"""Pydantic schemas for ratings."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from storerate.schemas.store import StoreSummary


class RatingSubmit(BaseModel):
    rating: int = Field(..., ge=1, le=5, strict=True)


class RatingRecord(BaseModel):
    id: int
    rating: int
    store_id: int
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RatingMutationResponse(BaseModel):
    message: str
    rating: RatingRecord


class RatingEnvelope(BaseModel):
    rating: RatingRecord


class StoreRatingEntry(BaseModel):
    """A rating of one store together with who left it."""
    id: int
    rating: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_id: int
    user_name: str
    user_email: str


class RecentRatingEntry(StoreRatingEntry):
    store_id: int
    store_name: str


class StoreRatingListResponse(BaseModel):
    ratings: list[StoreRatingEntry]


class AverageRatingResponse(BaseModel):
    average_rating: str
    total_ratings: int


class OwnerDashboardResponse(BaseModel):
    stores: list[StoreSummary]
    recentRatings: list[RecentRatingEntry]
