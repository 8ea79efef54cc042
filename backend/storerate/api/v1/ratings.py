"""
Rating API endpoints.

POST   /ratings/{store_id}                — Submit or update own rating (normal user)
GET    /ratings/{store_id}                — Own rating for a store (normal user)
DELETE /ratings/{store_id}                — Remove own rating (normal user)
GET    /ratings/store/{store_id}          — All ratings of a store (owner / admin)
GET    /ratings/store/{store_id}/average  — Average + count (public)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.core.database import get_db
from storerate.core.security import get_current_user, require_normal_user
from storerate.models.rating import Rating
from storerate.models.store import Store
from storerate.models.user import Role, User
from storerate.schemas.auth import MessageResponse
from storerate.schemas.rating import (
    AverageRatingResponse,
    RatingEnvelope,
    RatingMutationResponse,
    RatingRecord,
    RatingSubmit,
    StoreRatingEntry,
    StoreRatingListResponse,
)
from storerate.services.ratings import store_average, store_ratings_query, upsert_rating

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.post(
    "/{store_id}",
    response_model=RatingMutationResponse,
    responses={201: {"model": RatingMutationResponse}},
)
async def submit_rating(
    store_id: int,
    body: RatingSubmit,
    response: Response,
    current_user: User = Depends(require_normal_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Submit a rating, or overwrite the caller's existing one for this store.

    201 when a new rating row was created, 200 when an existing one changed.
    """
    store_exists = await db.scalar(select(Store.id).where(Store.id == store_id))
    if store_exists is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Store not found")

    try:
        row, created = await upsert_rating(db, current_user.id, store_id, body.rating)
    except SQLAlchemyError:
        logger.exception("Submit rating error (user %s, store %s)", current_user.id, store_id)
        raise HTTPException(status_code=500, detail="Failed to submit rating")

    if created:
        response.status_code = status.HTTP_201_CREATED
        message = "Rating submitted successfully"
    else:
        message = "Rating updated successfully"

    return RatingMutationResponse(message=message, rating=RatingRecord(**row))


@router.get("/{store_id}", response_model=RatingEnvelope)
async def get_own_rating(
    store_id: int,
    current_user: User = Depends(require_normal_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the caller's rating for a store."""
    rating = await db.scalar(
        select(Rating).where(Rating.user_id == current_user.id, Rating.store_id == store_id)
    )
    if rating is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rating not found")
    return RatingEnvelope(rating=RatingRecord.model_validate(rating))


@router.delete("/{store_id}", response_model=MessageResponse)
async def delete_own_rating(
    store_id: int,
    current_user: User = Depends(require_normal_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete the caller's rating for a store."""
    try:
        deleted = await db.scalar(
            delete(Rating)
            .where(Rating.user_id == current_user.id, Rating.store_id == store_id)
            .returning(Rating.id)
        )
    except SQLAlchemyError:
        logger.exception("Delete rating error (user %s, store %s)", current_user.id, store_id)
        raise HTTPException(status_code=500, detail="Failed to delete rating")

    if deleted is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rating not found")

    logger.info("Rating %d deleted by user %s", deleted, current_user.id)
    return MessageResponse(message="Rating deleted successfully")


@router.get("/store/{store_id}", response_model=StoreRatingListResponse)
async def list_store_ratings(
    store_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    All ratings of a store, newest first.

    Store owners see only their own stores (others come back empty);
    administrators see any store.
    """
    stmt = store_ratings_query(store_id)
    if current_user.role is Role.STORE_OWNER:
        stmt = stmt.join(Store, Rating.store_id == Store.id).where(
            Store.owner_id == current_user.id
        )
    elif current_user.role is Role.SYSTEM_ADMIN:
        pass
    else:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    try:
        rows = (await db.execute(stmt)).all()
    except SQLAlchemyError:
        logger.exception("Get store %s ratings error", store_id)
        raise HTTPException(status_code=500, detail="Failed to fetch store ratings")

    return StoreRatingListResponse(
        ratings=[StoreRatingEntry(**dict(r._mapping)) for r in rows]
    )


@router.get("/store/{store_id}/average", response_model=AverageRatingResponse)
async def get_store_average(store_id: int, db: AsyncSession = Depends(get_db)):
    """Average rating (one decimal) and rating count for a store."""
    try:
        result = await store_average(db, store_id)
    except SQLAlchemyError:
        logger.exception("Get average rating error for store %s", store_id)
        raise HTTPException(status_code=500, detail="Failed to fetch average rating")
    return AverageRatingResponse(**result)
