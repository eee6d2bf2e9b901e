"""
DeskBook Backend - Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied before any deskbook import; the
       database is an in-memory SQLite (aiosqlite + StaticPool) created per
       test and injected into the app through a dependency override.

Fixture Hierarchy:
    Function-scoped:
    ├── db_engine:        Fresh in-memory database with all tables
    ├── db_session:       AsyncSession bound to db_engine (service tests)
    ├── session_context:  SessionContext for SESSION_SUBJECT
    ├── auth_headers:     Bearer header carrying a valid session JWT
    ├── seed_user:        Factory inserting a completed user
    ├── seed_place:       Factory inserting a place
    ├── temp_storage:     Temporary directory for photo storage
    ├── sample_png_b64:   Small valid PNG, base64-encoded
    ├── oversized_png_b64: PNG header declaring 40000x40000 pixels, no pixel data
    └── test_client:      HTTPX AsyncClient wired to the app and db_engine
"""

import base64
import io
import os
import struct
import tempfile
import zlib
from typing import Optional

# Override settings for testing BEFORE any deskbook imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["API_SECRET"] = "test-api-secret"
os.environ["FIELD_CIPHER_SALT"] = "test-field-cipher-salt"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="deskbook_test_")
os.environ["MAIL_BACKEND"] = "log"
os.environ["IMAGE_HOST_BACKEND"] = "local"
os.environ["RETRY_MAX_ATTEMPTS"] = "2"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "1"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["LOG_LEVEL"] = "WARNING"

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from deskbook.config import settings
from deskbook.database import Base, get_db_session
from deskbook.models.api_credential import ApiCredential  # noqa: F401
from deskbook.models.place import Place
from deskbook.models.user import User
from deskbook.security.session import SessionContext, build_session

SESSION_SUBJECT = "tenant-42"


def make_session_token(subject: str = SESSION_SUBJECT, claim: str = "sub", **extra) -> str:
    """Session JWT as the auth provider would issue it."""
    payload = {claim: subject, **extra}
    return jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Sessions & Seed Data
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def session_context() -> SessionContext:
    return build_session(SESSION_SUBJECT)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_session_token()}"}


@pytest.fixture
def seed_user(session_factory, session_context):
    """
    Factory inserting a completed user, protected with `session_context`.

    Usage:
        user = await seed_user("jdoe", name="Doe", fname="John")
    """

    async def _seed(
        id_user: str,
        name: str = "Doe",
        fname: str = "John",
        email: Optional[str] = None,
        **columns,
    ) -> User:
        fields = session_context.fields
        protected_id = fields.protect(id_user)
        protected_email = fields.protect(email or f"{id_user}@example.com")
        protected_name = fields.protect(name)
        protected_fname = fields.protect(fname)
        user = User(
            id_user=protected_id.stored,
            id_index=protected_id.index,
            email=protected_email.stored,
            email_index=protected_email.index,
            name=protected_name.stored,
            name_index=protected_name.index,
            fname=protected_fname.stored,
            fname_index=protected_fname.index,
            historical=columns.pop("historical", []),
            friend=columns.pop("friend", []),
            **columns,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _seed


@pytest.fixture
def seed_place(session_factory):
    async def _seed(id_place: str, **columns) -> Place:
        place = Place(id_place=id_place, **columns)
        async with session_factory() as session:
            session.add(place)
            await session.commit()
        return place

    return _seed


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_png_bytes() -> bytes:
    """A real 4x4 PNG produced by Pillow."""
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sample_png_b64(sample_png_bytes) -> str:
    return base64.b64encode(sample_png_bytes).decode("ascii")


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(kind + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)


@pytest.fixture
def oversized_png_b64() -> str:
    """A few dozen bytes that Pillow refuses as a decompression bomb."""
    header = struct.pack(">IIBBBBB", 40000, 40000, 8, 2, 0, 0, 0)
    png = (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", b"")
        + _png_chunk(b"IEND", b"")
    )
    return base64.b64encode(png).decode("ascii")


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the app over ASGI.

    get_db_session is overridden so requests use the test database with the
    same commit/rollback behaviour as production.
    """
    from deskbook.main import app

    async def _override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
