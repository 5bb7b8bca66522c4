from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base, get_db, get_session_maker
from main import app
from models.admin import Admin
from models.user import User
from models.video import Video
from routers import rate_limit
from services.blob_store import LocalBlobStore, get_blob_store
from services.passwords import hash_password
from services.session_token import create_session_token


TEST_PASSWORD = "correct-horse-battery"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)
BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_local_rate_limit_counters():
    """Keep in-memory rate-limit state isolated between tests."""
    previous = getattr(app.state, "disable_rate_limits", False)
    app.state.disable_rate_limits = True
    rate_limit._local_counters.clear()
    yield
    rate_limit._local_counters.clear()
    app.state.disable_rate_limits = previous


@pytest_asyncio.fixture
async def integration_client(tmp_path):
    db_path = tmp_path / "streamstore.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async def override_get_db():
        async with session_maker() as session:
            yield session

    blob_store = LocalBlobStore(str(tmp_path / "uploads"), "/media")

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        setattr(client, "_session_maker", session_maker)
        setattr(client, "_blob_root", tmp_path / "uploads")
        yield client

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_session_maker, None)
    app.dependency_overrides.pop(get_blob_store, None)
    await engine.dispose()


def user_headers(user_id: str, role: str = "user") -> dict:
    return {"Authorization": f"Bearer {create_session_token(user_id, kind='user', role=role)['token']}"}


def admin_headers(admin_id: str, role: str = "admin") -> dict:
    return {"Authorization": f"Bearer {create_session_token(admin_id, kind='admin', role=role)['token']}"}


async def seed_user(session_maker, username: str, **fields) -> User:
    async with session_maker() as session:
        user = User(
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            password_hash=TEST_PASSWORD_HASH,
            **fields,
        )
        session.add(user)
        await session.commit()
        return user


async def seed_admin(session_maker, name: str = "Root", role: str = "admin", **fields) -> Admin:
    async with session_maker() as session:
        admin = Admin(
            name=name,
            email=fields.pop("email", f"{name.lower()}@example.com"),
            password_hash=TEST_PASSWORD_HASH,
            role=role,
            **fields,
        )
        session.add(admin)
        await session.commit()
        return admin


async def seed_video(session_maker, creator_id: str, title: str, minutes: int = 0, **fields) -> Video:
    """Insert a video created ``minutes`` after a fixed base time."""
    async with session_maker() as session:
        video = Video(
            title=title,
            description=fields.pop("description", ""),
            video_url=fields.pop("video_url", "https://cdn.example.com/v.mp4"),
            thumbnail_url=fields.pop("thumbnail_url", "https://cdn.example.com/t.jpg"),
            creator_id=creator_id,
            creator_kind=fields.pop("creator_kind", "User"),
            status=fields.pop("status", "approved"),
            created_at=BASE_TIME + timedelta(minutes=minutes),
            **fields,
        )
        session.add(video)
        await session.commit()
        return video


async def fetch(session_maker, model, entity_id: str):
    async with session_maker() as session:
        return await session.get(model, entity_id)
