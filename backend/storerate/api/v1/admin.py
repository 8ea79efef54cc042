"""
Administrator API endpoints (system_admin only).

GET    /admin/dashboard          — Totals of users, stores, ratings
GET    /admin/users              — List users (search, role filter, sort)
GET    /admin/users/{id}         — User detail (+ overall store rating for owners)
POST   /admin/users              — Create a user with any role
PUT    /admin/users/{id}         — Update a user
PATCH  /admin/users/{id}/role    — Change a user's role
DELETE /admin/users/{id}         — Delete a user
GET    /admin/stores             — List stores with owner names
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, func, literal_column, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.core.database import get_db
from storerate.core.security import hash_password, require_admin
from storerate.models.rating import Rating
from storerate.models.store import Store
from storerate.models.user import Role, User
from storerate.schemas.auth import MessageResponse, UserResponse
from storerate.schemas.store import AdminStoreListResponse, AdminStoreSummary
from storerate.schemas.user import (
    AdminDashboardResponse,
    AdminUserCreate,
    AdminUserUpdate,
    DashboardStatistics,
    RoleUpdate,
    UserDetail,
    UserDetailEnvelope,
    UserListItem,
    UserListResponse,
    UserMutationResponse,
    parse_role,
)
from storerate.services.query import apply_search, resolve_sort
from storerate.services.ratings import (
    average_column,
    count_column,
    owner_average,
    summary_to_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

USER_SORT_FIELDS = {
    "name": User.name,
    "email": User.email,
    "role": User.role,
    "address": User.address,
    "created_at": User.created_at,
}

ADMIN_STORE_SORT_FIELDS = {
    "name": Store.name,
    "email": Store.email,
    "address": Store.address,
    "average_rating": literal_column("average_rating"),
    "created_at": Store.created_at,
}


# ── Helpers ───────────────────────────────────────────────────────

async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def _check_user_email(
    db: AsyncSession, email: str, exclude_id: Optional[int] = None
) -> None:
    stmt = select(User.id).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if await db.scalar(stmt) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists",
        )


def _check_own_role_change(user: User, new_role: Role, current_user: User) -> None:
    if user.id == current_user.id and new_role is not user.role:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change your own role",
        )


async def _release_owned_stores(db: AsyncSession, user: User, new_role: Role) -> None:
    """Stores of a user who stops being a store owner lose their owner."""
    if user.role is not Role.STORE_OWNER or new_role is Role.STORE_OWNER:
        return
    try:
        released = (
            await db.scalars(
                update(Store)
                .where(Store.owner_id == user.id)
                .values(owner_id=None)
                .returning(Store.id)
            )
        ).all()
    except SQLAlchemyError:
        logger.exception("Release stores of user %s error", user.id)
        raise HTTPException(status_code=500, detail="Failed to update user")
    if released:
        logger.info("Stores %s released by former owner %s", released, user.id)


async def _flush_and_refresh(db: AsyncSession, user: User, action: str) -> None:
    try:
        await db.flush()
        await db.refresh(user)
    except SQLAlchemyError:
        logger.exception("%s user error", action)
        raise HTTPException(status_code=500, detail=f"Failed to {action.lower()} user")


# ── Dashboard ─────────────────────────────────────────────────────

@router.get("/dashboard", response_model=AdminDashboardResponse)
async def admin_dashboard(db: AsyncSession = Depends(get_db)):
    """Platform totals."""
    try:
        total_users = await db.scalar(select(func.count(User.id)))
        total_stores = await db.scalar(select(func.count(Store.id)))
        total_ratings = await db.scalar(select(func.count(Rating.id)))
    except SQLAlchemyError:
        logger.exception("Dashboard error")
        raise HTTPException(status_code=500, detail="Failed to fetch dashboard data")

    return AdminDashboardResponse(
        statistics=DashboardStatistics(
            totalUsers=total_users or 0,
            totalStores=total_stores or 0,
            totalRatings=total_ratings or 0,
        )
    )


# ── Users ─────────────────────────────────────────────────────────

@router.get("/users", response_model=UserListResponse)
async def list_users(
    search: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    """
    List users.

    Every ``search`` term must match name, email or address of the same user;
    ``role`` narrows to one role.
    """
    stmt = select(User)
    stmt = apply_search(stmt, search, [User.name, User.email, User.address])

    if role:
        try:
            stmt = stmt.where(User.role == parse_role(role))
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    stmt = stmt.order_by(resolve_sort(sort_by, sort_order, USER_SORT_FIELDS))

    try:
        users = (await db.scalars(stmt)).all()
    except SQLAlchemyError:
        logger.exception("Get users error")
        raise HTTPException(status_code=500, detail="Failed to fetch users")

    return UserListResponse(users=[UserListItem.model_validate(u) for u in users])


@router.get("/users/{user_id}", response_model=UserDetailEnvelope)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    """User detail; store owners also carry the average over all their stores."""
    user = await _get_user_or_404(db, user_id)

    detail = UserDetail.model_validate(user)
    if user.role is Role.STORE_OWNER:
        try:
            detail.store_rating = await owner_average(db, user.id)
        except SQLAlchemyError:
            logger.exception("Get user %s store rating error", user_id)
            raise HTTPException(status_code=500, detail="Failed to fetch user")

    return UserDetailEnvelope(user=detail)


@router.post("/users", response_model=UserMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: AdminUserCreate, db: AsyncSession = Depends(get_db)):
    """Create a user with any role (defaults to normal user)."""
    await _check_user_email(db, body.email)

    user = User(
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
        address=body.address,
        role=body.role,
    )
    db.add(user)
    await _flush_and_refresh(db, user, "Create")

    logger.info("User %s (%s) created with role %s", user.id, user.email, user.role.value)
    return UserMutationResponse(
        message="User created successfully",
        user=UserResponse.model_validate(user),
    )


@router.put("/users/{user_id}", response_model=UserMutationResponse)
async def update_user(
    user_id: int,
    body: AdminUserUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a user; the password only changes when a new one is supplied.

    Moving a store owner to another role leaves their stores without an owner.
    """
    user = await _get_user_or_404(db, user_id)
    _check_own_role_change(user, body.role, current_user)
    await _check_user_email(db, body.email, exclude_id=user_id)
    await _release_owned_stores(db, user, body.role)

    user.name = body.name
    user.email = body.email
    user.address = body.address
    user.role = body.role
    if body.password:
        user.password_hash = hash_password(body.password)

    await _flush_and_refresh(db, user, "Update")

    logger.info("User %s updated", user_id)
    return UserMutationResponse(
        message="User updated successfully",
        user=UserResponse.model_validate(user),
    )


@router.patch("/users/{user_id}/role", response_model=UserMutationResponse)
async def update_user_role(
    user_id: int,
    body: RoleUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Change only the role of a user."""
    user = await _get_user_or_404(db, user_id)
    _check_own_role_change(user, body.role, current_user)
    await _release_owned_stores(db, user, body.role)

    old_role = user.role
    user.role = body.role
    await _flush_and_refresh(db, user, "Update")

    logger.info("User %s role changed %s -> %s", user_id, old_role.value, user.role.value)
    return UserMutationResponse(
        message="User role updated successfully",
        user=UserResponse.model_validate(user),
    )


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a user.

    Their ratings are removed; stores they owned stay but lose their owner.
    """
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )

    try:
        deleted = await db.scalar(delete(User).where(User.id == user_id).returning(User.id))
    except SQLAlchemyError:
        logger.exception("Delete user %s error", user_id)
        raise HTTPException(status_code=500, detail="Failed to delete user")

    if deleted is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    logger.info("User %s deleted by admin %s", user_id, current_user.id)
    return MessageResponse(message="User deleted successfully")


# ── Stores ────────────────────────────────────────────────────────

@router.get("/stores", response_model=AdminStoreListResponse)
async def list_stores_admin(
    search: Optional[str] = Query(None),
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    """Stores with aggregates and owner names; search covers name, email, address."""
    stmt = (
        select(
            Store.id,
            Store.name,
            Store.email,
            Store.address,
            Store.created_at,
            average_column(),
            count_column(),
            Store.owner_id,
            User.name.label("owner_name"),
        )
        .outerjoin(Rating, Rating.store_id == Store.id)
        .outerjoin(User, Store.owner_id == User.id)
        .group_by(Store.id, User.name)
    )
    stmt = apply_search(stmt, search, [Store.name, Store.email, Store.address])
    stmt = stmt.order_by(resolve_sort(sort_by, sort_order, ADMIN_STORE_SORT_FIELDS))

    try:
        rows = (await db.execute(stmt)).all()
    except SQLAlchemyError:
        logger.exception("Get admin stores error")
        raise HTTPException(status_code=500, detail="Failed to fetch stores")

    return AdminStoreListResponse(
        stores=[AdminStoreSummary(**summary_to_dict(r)) for r in rows]
    )
