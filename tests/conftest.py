import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("APP_TIMEZONE", "Asia/Seoul")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import minglz.models  # noqa: F401
from minglz.core.db import Base, get_db
from minglz.core.security import create_access_token, hash_password
from minglz.integrations.resend_client import get_email_client
from minglz.integrations.storage_client import get_storage_client
from minglz.main import app
from minglz.models.location import Location
from minglz.models.store import Store
from minglz.models.user import User


class FakeMailer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    async def send_verification_code(self, *, to: str, code: str) -> str:
        if self.fail:
            raise RuntimeError("mail provider down")
        self.sent.append((to, code))
        return "msg_test"


class FakeStorage:
    base_url = "https://storage.test"
    bucket = "event-images"

    def __init__(self):
        self.uploaded: dict[str, bytes] = {}
        self.removed: list[str] = []

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def extract_path(self, url):
        prefix = f"{self.base_url}/storage/v1/object/public/{self.bucket}/"
        if url and url.startswith(prefix):
            return url[len(prefix):]
        if url and url.startswith("landing-pages/"):
            return url
        return None

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        self.uploaded[path] = content
        return path

    async def remove(self, paths: list[str]) -> None:
        self.removed.extend(paths)


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest_asyncio.fixture
async def client(session_factory, mailer, storage):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_client] = lambda: mailer
    app.dependency_overrides[get_storage_client] = lambda: storage

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


async def make_user(db, email="owner@example.com", password="secret123", role="user") -> User:
    user = User(email=email, password_hash=hash_password(password), name="Owner Co", role=role, is_active=True)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = create_access_token(user_id=str(user.id), role=user.role)
    return {"Authorization": f"Bearer {token}"}


async def make_location(db, slug="shop", name="Shop Location", expiry_days=None) -> Location:
    location = Location(slug=slug, name=name, coupon_expiry_days=expiry_days, is_active=True)
    db.add(location)
    await db.commit()
    await db.refresh(location)
    return location


async def make_store(db, location, slug, name=None, description=None, is_active=True) -> Store:
    store = Store(
        location_id=location.id,
        slug=slug,
        name=name or slug,
        description=description,
        is_active=is_active,
    )
    db.add(store)
    await db.commit()
    await db.refresh(store)
    return store


@pytest_asyncio.fixture
async def owner(db):
    return await make_user(db)
