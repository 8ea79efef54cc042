"""
Store API endpoints.

GET    /stores       — List stores with rating aggregates (public)
GET    /stores/{id}  — Single store with rating aggregates (public)
POST   /stores       — Create a store (admin)
PUT    /stores/{id}  — Update a store (admin)
DELETE /stores/{id}  — Delete a store and its ratings (admin)
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, literal_column, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.core.database import get_db
from storerate.core.security import get_optional_user, require_admin
from storerate.models.store import Store
from storerate.models.user import Role, User
from storerate.schemas.auth import MessageResponse
from storerate.schemas.store import (
    StoreEnvelope,
    StoreListResponse,
    StoreMutationResponse,
    StoreRecord,
    StoreSummary,
    StoreWrite,
)
from storerate.services.query import apply_search, resolve_sort
from storerate.services.ratings import store_summary_query, summary_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stores", tags=["stores"])

STORE_SORT_FIELDS = {
    "name": Store.name,
    "email": Store.email,
    "address": Store.address,
    "average_rating": literal_column("average_rating"),
    "created_at": Store.created_at,
}


# ── Helpers ───────────────────────────────────────────────────────

async def check_store_owner(db: AsyncSession, owner_id: Optional[int]) -> None:
    """Reject an ``ownerId`` that is unknown or not a store owner."""
    if owner_id is None:
        return
    role = await db.scalar(select(User.role).where(User.id == owner_id))
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Owner user not found",
        )
    if role is not Role.STORE_OWNER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Owner must be a store owner",
        )


async def check_store_email(
    db: AsyncSession, email: str, exclude_id: Optional[int] = None
) -> None:
    stmt = select(Store.id).where(Store.email == email)
    if exclude_id is not None:
        stmt = stmt.where(Store.id != exclude_id)
    if await db.scalar(stmt) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Store with this email already exists",
        )


# ── Endpoints ─────────────────────────────────────────────────────

@router.get("", response_model=StoreListResponse)
async def list_stores(
    search: Optional[str] = Query(None),
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List all stores with average rating and rating count.

    ``search`` terms must all match name or address. Authenticated callers
    also get their own rating per store in ``user_rating``.
    """
    stmt = store_summary_query(current_user.id if current_user else None)
    stmt = apply_search(stmt, search, [Store.name, Store.address])
    stmt = stmt.order_by(resolve_sort(sort_by, sort_order, STORE_SORT_FIELDS))

    try:
        rows = (await db.execute(stmt)).all()
    except SQLAlchemyError:
        logger.exception("Get stores error")
        raise HTTPException(status_code=500, detail="Failed to fetch stores")

    return StoreListResponse(stores=[StoreSummary(**summary_to_dict(r)) for r in rows])


@router.get("/{store_id}", response_model=StoreEnvelope)
async def get_store(
    store_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Get one store with its aggregates."""
    stmt = store_summary_query(current_user.id if current_user else None).where(
        Store.id == store_id
    )
    try:
        row = (await db.execute(stmt)).first()
    except SQLAlchemyError:
        logger.exception("Get store %s error", store_id)
        raise HTTPException(status_code=500, detail="Failed to fetch store")

    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Store not found")

    return StoreEnvelope(store=StoreSummary(**summary_to_dict(row)))


@router.post("", response_model=StoreMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_store(
    body: StoreWrite,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a new store, optionally assigned to a store owner."""
    await check_store_email(db, body.email)
    await check_store_owner(db, body.owner_id)

    store = Store(
        name=body.name,
        email=body.email,
        address=body.address,
        owner_id=body.owner_id,
    )
    try:
        db.add(store)
        await db.flush()
        await db.refresh(store)
    except SQLAlchemyError:
        logger.exception("Create store error")
        raise HTTPException(status_code=500, detail="Failed to create store")

    logger.info("Store %d (%s) created by admin %s", store.id, store.name, current_user.id)
    return StoreMutationResponse(
        message="Store created successfully",
        store=StoreRecord.model_validate(store),
    )


@router.put("/{store_id}", response_model=StoreMutationResponse)
async def update_store(
    store_id: int,
    body: StoreWrite,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Replace a store's name, email, address and owner."""
    store = await db.scalar(select(Store).where(Store.id == store_id))
    if store is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Store not found")

    await check_store_email(db, body.email, exclude_id=store_id)
    await check_store_owner(db, body.owner_id)

    store.name = body.name
    store.email = body.email
    store.address = body.address
    store.owner_id = body.owner_id
    try:
        await db.flush()
        await db.refresh(store)
    except SQLAlchemyError:
        logger.exception("Update store %s error", store_id)
        raise HTTPException(status_code=500, detail="Failed to update store")

    logger.info("Store %d updated by admin %s", store_id, current_user.id)
    return StoreMutationResponse(
        message="Store updated successfully",
        store=StoreRecord.model_validate(store),
    )


@router.delete("/{store_id}", response_model=MessageResponse)
async def delete_store(
    store_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a store; its ratings go with it."""
    try:
        deleted = await db.scalar(
            delete(Store).where(Store.id == store_id).returning(Store.id)
        )
    except SQLAlchemyError:
        logger.exception("Delete store %s error", store_id)
        raise HTTPException(status_code=500, detail="Failed to delete store")

    if deleted is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Store not found")

    logger.info("Store %d deleted by admin %s", store_id, current_user.id)
    return MessageResponse(message="Store deleted successfully")
