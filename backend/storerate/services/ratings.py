"""
Rating aggregation and the atomic rating upsert.

Averages are computed at read time with ``LEFT JOIN`` + ``COALESCE(AVG, 0)``
so an unrated store reports ``"0.0"`` / ``0`` instead of null.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import Integer, Select, cast, func, null, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from storerate.core.database import dialect_insert
from storerate.models.rating import Rating
from storerate.models.store import Store
from storerate.models.user import User

logger = logging.getLogger(__name__)


def format_average(value: Optional[Union[Decimal, float, int]]) -> str:
    """Render an average with exactly one decimal place."""
    if value is None:
        return "0.0"
    return f"{float(value):.1f}"


def average_column():
    return func.coalesce(func.avg(Rating.rating), 0).label("average_rating")


def count_column():
    return func.count(Rating.id).label("total_ratings")


def store_summary_query(user_id: Optional[int] = None) -> Select:
    """
    Stores with ``average_rating`` and ``total_ratings`` columns.

    When ``user_id`` is given, ``user_rating`` carries that user's own rating
    (or NULL); otherwise the column is always NULL.
    """
    columns = [
        Store.id,
        Store.name,
        Store.email,
        Store.address,
        Store.created_at,
        average_column(),
        count_column(),
    ]
    if user_id is None:
        stmt = select(*columns, cast(null(), Integer).label("user_rating"))
        return stmt.outerjoin(Rating, Rating.store_id == Store.id).group_by(Store.id)

    own = aliased(Rating, name="own_rating")
    stmt = (
        select(*columns, own.rating.label("user_rating"))
        .outerjoin(Rating, Rating.store_id == Store.id)
        .outerjoin(own, (own.store_id == Store.id) & (own.user_id == user_id))
        .group_by(Store.id, own.rating)
    )
    return stmt


def summary_to_dict(row) -> dict:
    """Map an aggregate row to the response shape."""
    data = dict(row._mapping)
    data["average_rating"] = format_average(data["average_rating"])
    data["total_ratings"] = int(data["total_ratings"] or 0)
    return data


async def store_average(db: AsyncSession, store_id: int) -> dict:
    """Average and count for a single store."""
    row = (
        await db.execute(
            select(
                func.coalesce(func.avg(Rating.rating), 0).label("average_rating"),
                func.count(Rating.id).label("total_ratings"),
            ).where(Rating.store_id == store_id)
        )
    ).one()
    return {
        "average_rating": format_average(row.average_rating),
        "total_ratings": int(row.total_ratings or 0),
    }


async def owner_average(db: AsyncSession, owner_id: int) -> str:
    """Average over every rating of every store the owner holds."""
    value = await db.scalar(
        select(func.coalesce(func.avg(Rating.rating), 0))
        .select_from(Store)
        .outerjoin(Rating, Rating.store_id == Store.id)
        .where(Store.owner_id == owner_id)
    )
    return format_average(value)


def store_ratings_query(store_id: int) -> Select:
    """Ratings of one store with rater details, newest first."""
    return (
        select(
            Rating.id,
            Rating.rating,
            Rating.created_at,
            Rating.updated_at,
            User.id.label("user_id"),
            User.name.label("user_name"),
            User.email.label("user_email"),
        )
        .join(User, Rating.user_id == User.id)
        .where(Rating.store_id == store_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
    )


def recent_owner_ratings_query(owner_id: int, limit: int = 10) -> Select:
    """Most recent ratings across every store the owner holds."""
    return (
        select(
            Rating.id,
            Rating.rating,
            Rating.created_at,
            Rating.updated_at,
            User.id.label("user_id"),
            User.name.label("user_name"),
            User.email.label("user_email"),
            Store.id.label("store_id"),
            Store.name.label("store_name"),
        )
        .join(Store, Rating.store_id == Store.id)
        .join(User, Rating.user_id == User.id)
        .where(Store.owner_id == owner_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
        .limit(limit)
    )


async def upsert_rating(
    db: AsyncSession, user_id: int, store_id: int, value: int
) -> tuple[dict, bool]:
    """
    Insert the user's rating of a store or overwrite the existing one.

    Runs as a single ``INSERT ... ON CONFLICT (user_id, store_id) DO UPDATE``.
    Both timestamps get the same value on insert; an update only moves
    ``updated_at``, so differing timestamps in the returned row mean the row
    already existed.

    Returns: (rating row as dict, created flag)
    """
    insert = dialect_insert(db)
    stamp = datetime.now(timezone.utc)
    stmt = insert(Rating).values(
        user_id=user_id,
        store_id=store_id,
        rating=value,
        created_at=stamp,
        updated_at=stamp,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Rating.user_id, Rating.store_id],
        set_={"rating": stmt.excluded.rating, "updated_at": stmt.excluded.updated_at},
    ).returning(
        Rating.id,
        Rating.rating,
        Rating.store_id,
        Rating.user_id,
        Rating.created_at,
        Rating.updated_at,
    )

    row = (await db.execute(stmt)).one()
    created = row.created_at == row.updated_at
    logger.info(
        "Rating %s by user %s for store %s: %s",
        "created" if created else "updated",
        user_id,
        store_id,
        value,
    )
    return dict(row._mapping), created
