"""
Create tables and the bootstrap administrator.

    python -m storerate.scripts.init_db [--skip-tables]

The administrator is upserted on email, so re-running resets its name,
address, role and password to the configured values.
"""
import argparse
import asyncio
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.config import Settings, get_settings
from storerate.core.database import Database, dialect_insert
from storerate.core.logs import configure_logging
from storerate.core.security import hash_password
from storerate.models.user import Role, User

logger = logging.getLogger(__name__)


async def ensure_admin(db: AsyncSession, settings: Settings) -> int:
    """Insert or refresh the administrator account. Returns its id."""
    insert = dialect_insert(db)
    values = {
        "name": settings.admin_name,
        "email": settings.admin_email.lower(),
        "password_hash": hash_password(settings.admin_password),
        "address": settings.admin_address,
        "role": Role.SYSTEM_ADMIN,
    }
    stmt = insert(User).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[User.email],
        set_={
            "name": stmt.excluded.name,
            "password_hash": stmt.excluded.password_hash,
            "address": stmt.excluded.address,
            "role": stmt.excluded.role,
            "updated_at": func.now(),
        },
    ).returning(User.id)
    admin_id = (await db.execute(stmt)).scalar_one()
    logger.info("Admin user created/updated: %s (id=%s)", settings.admin_email, admin_id)
    return admin_id


async def init_db(settings: Settings, create_tables: bool = True) -> None:
    database = Database(settings.database_url)
    try:
        if create_tables:
            await database.create_all()
            logger.info("Database schema created")
        async with database.session() as db:
            await ensure_admin(db, settings)
            users = await db.scalar(select(func.count(User.id)))
            logger.info("Database ready: %d users", users)
    finally:
        await database.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Initialize the store rating database")
    parser.add_argument(
        "--skip-tables",
        action="store_true",
        help="only upsert the administrator (schema managed by Alembic)",
    )
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings)
    asyncio.run(init_db(settings, create_tables=not args.skip_tables))


if __name__ == "__main__":
    main()
