from typing import AsyncGenerator, Callable, Optional
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from redis.exceptions import ConnectionError as RedisConnectionError

from app.main import app
from app.database import Base, get_db, get_session_factory
from app.core.redis import get_redis
from app.core.security import create_access_token
from app.models import Relationship, RelationshipType, User, Visibility

# Test database URL (use SQLite for simplicity or PostgreSQL)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=NullPool,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory() -> async_sessionmaker:
    return TestSessionLocal


class MockRedisClient:
    """Mock Redis client for testing.

    Keeps the TTL passed with every write so tests can assert on it, and
    lets a test expire keys explicitly instead of sleeping.
    """

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.reads = 0
        self.reachable = True

    async def ping(self):
        if not self.reachable:
            raise RedisConnectionError("Connection refused")
        return True

    async def get(self, key: str):
        self.reads += 1
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl: int = None):
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    def expire_all(self):
        self.data.clear()
        self.ttls.clear()


@pytest.fixture
def mock_redis() -> MockRedisClient:
    """Create a mock Redis client."""
    return MockRedisClient()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Factory for committed accounts.

    Returned objects are detached so a rollback inside the code under test
    does not expire them.
    """

    async def _make_user(username: str, visibility: Visibility = Visibility.PUBLIC, **kwargs) -> User:
        user = User(username=username, display_name=username, visibility=visibility, **kwargs)
        db_session.add(user)
        await db_session.commit()
        db_session.expunge(user)
        return user

    return _make_user


@pytest.fixture
def add_edge(db_session: AsyncSession) -> Callable:
    """Insert an edge directly, bypassing the mutator."""

    async def _add_edge(from_user: User, to_user: User, rel_type: RelationshipType,
                        reason: Optional[str] = None) -> Relationship:
        edge = Relationship(from_id=from_user.id, to_id=to_user.id, type=rel_type, reason=reason)
        db_session.add(edge)
        await db_session.commit()
        db_session.expunge(edge)
        return edge

    return _add_edge


@pytest.fixture
async def client(db_session: AsyncSession, mock_redis: MockRedisClient) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with overridden dependencies."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    async def override_get_redis():
        return mock_redis

    async def override_get_session_factory():
        return TestSessionLocal

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_session_factory] = override_get_session_factory

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable:
    """Bearer header factory for a user."""

    def _auth_headers(user: User) -> dict:
        token = create_access_token(data={"sub": user.id})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
