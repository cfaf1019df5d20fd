"""Pytest configuration and shared fixtures.

Every test gets a fresh in-memory MongoDB (mongomock-motor) with Beanie
initialised on it, and an httpx client bound to the ASGI app.
"""

import itertools
import os
import tempfile

import pytest

# Settings are read at import time
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="campushire-uploads-")

from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from campushire.core.database import init_database
from campushire.core.rate_limiter import get_rate_limiter
from campushire.core.security import create_access_token, get_password_hash
from campushire.main import app
from campushire.models.mongodb_models import Job, User, UserRole

TEST_PASSWORD = "Password123"
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

_sequence = itertools.count(1)


@pytest.fixture
async def test_database():
    """Fresh mock database with every document model registered"""
    database = await init_database(client=AsyncMongoMockClient(), db_name="test_campushire")
    await get_rate_limiter().clear_all()
    yield database
    await get_rate_limiter().clear_all()


@pytest.fixture
async def client(test_database):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(test_database):
    """Factory inserting a user of the given role"""
    async def _make_user(role: UserRole = UserRole.STUDENT, is_verified: bool = True, **fields) -> User:
        n = next(_sequence)
        fields.setdefault("name", f"{role.value} {n}")
        fields.setdefault("email", f"{role.value.lower()}{n}@campus.edu")
        user = User(password_hash=TEST_PASSWORD_HASH, role=role, is_verified=is_verified, **fields)
        return await user.insert()
    return _make_user


@pytest.fixture
async def student(make_user):
    return await make_user(UserRole.STUDENT)


@pytest.fixture
async def alumni(make_user):
    return await make_user(UserRole.ALUMNI)


@pytest.fixture
async def recruiter(make_user):
    return await make_user(UserRole.RECRUITER)


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN)


@pytest.fixture
async def job(recruiter):
    return await Job(
        title="Backend Engineer",
        description="Build and run our APIs",
        company="Acme",
        location="Dhaka",
        posted_by=recruiter.id,
    ).insert()


@pytest.fixture
def auth_headers():
    """Bearer header builder for a user"""
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _headers
