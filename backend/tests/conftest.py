import os
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test env vars before importing app modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["PRIVACY"] = "anonymous"
os.environ["INCLUDE_BOTS"] = "false"
os.environ["BASE_PATH"] = ""

# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

# A generous busy timeout lets concurrent writers queue on the sqlite lock.
engine = create_async_engine(TEST_DATABASE_URL, echo=False, connect_args={"timeout": 30})
TestingSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
async def setup_database():
    from hitstats.core.limiter import limiter
    from hitstats.db.base import Base
    from hitstats.models import Hit, Stat  # noqa: F401

    # Disable rate limiting in tests
    limiter.enabled = False

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def db_engine():
    return engine


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """Independent sessions, one per simulated request."""
    return TestingSessionLocal


@pytest.fixture
def settings():
    """Settings for service tests; build another ``Settings`` to override fields."""
    from hitstats.core.config import Settings

    return Settings(PRIVACY="anonymous", INCLUDE_BOTS=False, BASE_PATH="")


@pytest.fixture
def hit_service(db_session: AsyncSession, settings):
    from hitstats.services.hit_service import HitService

    return HitService(db_session, settings)


@pytest.fixture
def ranking_service(db_session: AsyncSession):
    from hitstats.services.ranking_service import RankingService

    return RankingService(db_session)


@pytest.fixture
def make_context():
    """Build a request context with browser-like defaults."""
    from hitstats.schemas.common import BySubject
    from hitstats.schemas.hit import RequestContext

    def _make(url: str = "/", subject: tuple[str, int] | None = None, **kwargs) -> RequestContext:
        kwargs.setdefault("user_agent", "Mozilla/5.0 (Windows NT 10.0; Win64; x64)")
        kwargs.setdefault("ip", "203.0.113.9")
        return RequestContext(
            url=url,
            subject=BySubject(kind=subject[0], id=subject[1]) if subject else None,
            **kwargs,
        )

    return _make


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    from hitstats.db.session import get_db
    from hitstats.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
