"""
Test infrastructure for the lireddit GraphQL API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
  Pool reset on check-in is off: a session finishing must not roll back
  another session that is mid-transaction on the same connection.
- The app's get_session_factory dependency is overridden so every resolver
  opens its sessions against the test engine.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
- The key-value store gets a fresh fakeredis client per test, so sessions
  and reset tokens behave like Redis without any Redis infrastructure.
- bcrypt runs with the minimum cost factor to keep registration cheap.
"""
import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

import fakeredis  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from lireddit import mailer  # noqa: E402
from lireddit.database import Base, get_session_factory  # noqa: E402
from lireddit.kv import kv  # noqa: E402
from lireddit.main import app  # noqa: E402
from lireddit.middleware import install_query_counter  # noqa: E402

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    # Sessions share the one connection; a reset on check-in would roll back
    # a sibling session that is still mid-transaction.
    pool_reset_on_return=None,
)

# Register the per-request SQL query counter on the test engine.
install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency override: resolvers open sessions from the test factory
# ---------------------------------------------------------------------------

def override_get_session_factory():
    return async_session_test


app.dependency_overrides[get_session_factory] = override_get_session_factory


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(autouse=True)
async def fake_kv():
    """Point the key-value store singleton at an empty fakeredis instance."""
    kv._redis = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield kv
    await kv.disconnect()


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. seeding data, asserting ORM state).
    """
    async with async_session_test() as session:
        yield session


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """The factory the app's resolvers and loaders open sessions from."""
    return async_session_test


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport.

    The client keeps cookies between requests, so a ``register`` or
    ``login`` call leaves it signed in for the calls that follow.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def other_client() -> AsyncClient:
    """A second, independent browser: its own cookie jar and session."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sent_emails(monkeypatch) -> list[dict]:
    """Capture outgoing mail instead of logging or sending it."""
    outbox: list[dict] = []

    async def fake_send_email(to: str, html: str, subject: str = "Change password") -> None:
        outbox.append({"to": to, "html": html, "subject": subject})

    monkeypatch.setattr(mailer, "send_email", fake_send_email)
    return outbox


@pytest.fixture
def sql_statements() -> list[str]:
    """Record every SQL statement the test engine executes while active."""
    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine_test.sync_engine, "before_cursor_execute", _record)
    yield statements
    event.remove(engine_test.sync_engine, "before_cursor_execute", _record)


# ---------------------------------------------------------------------------
# GraphQL helper
# ---------------------------------------------------------------------------

@pytest.fixture
def gql():
    """Return a coroutine that POSTs a GraphQL document and decodes the reply."""

    async def _gql(client: AsyncClient, query: str, **variables) -> dict:
        resp = await client.post("/graphql", json={"query": query, "variables": variables})
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _gql
