"""
Store owner API endpoints.

GET /users/dashboard                  — Owned stores + 10 most recent ratings
GET /users/store/{store_id}/ratings   — Ratings of one owned store
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.core.database import get_db
from storerate.core.security import require_store_owner
from storerate.models.store import Store
from storerate.models.user import User
from storerate.schemas.rating import (
    OwnerDashboardResponse,
    RecentRatingEntry,
    StoreRatingEntry,
    StoreRatingListResponse,
)
from storerate.schemas.store import StoreSummary
from storerate.services.ratings import (
    recent_owner_ratings_query,
    store_ratings_query,
    store_summary_query,
    summary_to_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["store owner"])

RECENT_RATINGS_LIMIT = 10


@router.get("/dashboard", response_model=OwnerDashboardResponse)
async def owner_dashboard(
    current_user: User = Depends(require_store_owner),
    db: AsyncSession = Depends(get_db),
):
    """Stores owned by the caller with aggregates, plus recent ratings across them."""
    stores_stmt = (
        store_summary_query()
        .where(Store.owner_id == current_user.id)
        .order_by(Store.name.asc())
    )
    try:
        store_rows = (await db.execute(stores_stmt)).all()
        rating_rows = (
            await db.execute(recent_owner_ratings_query(current_user.id, RECENT_RATINGS_LIMIT))
        ).all()
    except SQLAlchemyError:
        logger.exception("Store owner dashboard error for user %s", current_user.id)
        raise HTTPException(status_code=500, detail="Failed to fetch dashboard data")

    return OwnerDashboardResponse(
        stores=[StoreSummary(**summary_to_dict(r)) for r in store_rows],
        recentRatings=[RecentRatingEntry(**dict(r._mapping)) for r in rating_rows],
    )


@router.get("/store/{store_id}/ratings", response_model=StoreRatingListResponse)
async def owned_store_ratings(
    store_id: int,
    current_user: User = Depends(require_store_owner),
    db: AsyncSession = Depends(get_db),
):
    """All ratings of one of the caller's stores."""
    owned = await db.scalar(
        select(Store.id).where(Store.id == store_id, Store.owner_id == current_user.id)
    )
    if owned is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Store not found or access denied",
        )

    try:
        rows = (await db.execute(store_ratings_query(store_id))).all()
    except SQLAlchemyError:
        logger.exception("Get store %s ratings error", store_id)
        raise HTTPException(status_code=500, detail="Failed to fetch store ratings")

    return StoreRatingListResponse(
        ratings=[StoreRatingEntry(**dict(r._mapping)) for r in rows]
    )
