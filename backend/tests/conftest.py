"""
Shared fixtures: a fresh in-memory SQLite database per test, the app wired to
it, an httpx client, and factories for users, stores and ratings.
"""
import itertools
import os

# Cheap hashing and a fixed key; must be set before storerate reads settings.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.pool import StaticPool

from storerate.config import get_settings
from storerate.core.database import Database
from storerate.core.security import create_access_token, hash_password
from storerate.main import create_app
from storerate.models import Rating, Role, Store, User

API = "/api/v1"
DEFAULT_PASSWORD = "Secret@123"

_seq = itertools.count(1)


@pytest.fixture
async def database():
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def app(database):
    return create_app(settings=get_settings(), database=database)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def make_user(database):
    async def _make(
        role: Role = Role.NORMAL_USER,
        name: str = None,
        email: str = None,
        address: str = "42 Test Avenue, Springfield",
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        n = next(_seq)
        user = User(
            name=name or f"Test Account Number {n:04d}",
            email=email or f"user{n}@shopmail.com",
            password_hash=hash_password(password),
            address=address,
            role=role,
        )
        async with database.session() as db:
            db.add(user)
            await db.flush()
            await db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_store(database):
    async def _make(
        name: str = None,
        email: str = None,
        address: str = "1 Market Square",
        owner: User = None,
    ) -> Store:
        n = next(_seq)
        store = Store(
            name=name or f"Store {n}",
            email=email or f"store{n}@shopmail.com",
            address=address,
            owner_id=owner.id if owner else None,
        )
        async with database.session() as db:
            db.add(store)
            await db.flush()
            await db.refresh(store)
        return store

    return _make


@pytest.fixture
def make_rating(database):
    async def _make(user: User, store: Store, value: int) -> Rating:
        rating = Rating(user_id=user.id, store_id=store.id, rating=value)
        async with database.session() as db:
            db.add(rating)
            await db.flush()
            await db.refresh(rating)
        return rating

    return _make


@pytest.fixture
def count_rows(database):
    async def _count(model) -> int:
        async with database.session() as db:
            return await db.scalar(select(func.count()).select_from(model))

    return _count


@pytest.fixture
async def admin(make_user):
    return await make_user(role=Role.SYSTEM_ADMIN, name="Platform Administrator Account")


@pytest.fixture
async def owner(make_user):
    return await make_user(role=Role.STORE_OWNER, name="Store Owner Account Person")


@pytest.fixture
async def shopper(make_user):
    return await make_user(role=Role.NORMAL_USER, name="Regular Shopper Account Name")
