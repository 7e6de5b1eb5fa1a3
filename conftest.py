import os
import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# Optional overrides for local runs (e.g. TEST_DATABASE_URL pointing at Postgres)
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

# Settings require a DATABASE_URL at import time; tests build their own engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./loyalty-test.db")
os.environ.setdefault("ENVIRONMENT", "development")

from libs.auth.dependencies import get_current_user  # noqa: E402
from libs.auth.models import AuthUser  # noqa: E402
from libs.common.config import get_settings  # noqa: E402
from libs.db.base import Base  # noqa: E402
from libs.db.config import build_engine, build_sessionmaker  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402

# Register every table on the metadata
from services.loyalty_service import models as _loyalty_models  # noqa: E402,F401

get_settings.cache_clear()


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Engine for one test. Uses TEST_DATABASE_URL when set, otherwise a fresh
    SQLite file so every test starts from an empty schema.
    """
    db_url = os.environ.get("TEST_DATABASE_URL") or (
        f"sqlite+aiosqlite:///{tmp_path / 'loyalty.db'}"
    )
    engine = build_engine(db_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session = build_sessionmaker(test_engine)()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def auth_state() -> dict:
    """Mutable holder for the user returned by the auth dependency."""
    return {
        "user": AuthUser(
            user_id=str(uuid.uuid4()), email="member@test.com", role="authenticated"
        )
    }


@pytest.fixture
def act_as(auth_state):
    """Switch the authenticated identity used by ``loyalty_client``."""

    def _act_as(user_id, role: str = "authenticated") -> AuthUser:
        auth_state["user"] = AuthUser(user_id=str(user_id), role=role)
        return auth_state["user"]

    return _act_as


@pytest_asyncio.fixture
async def loyalty_client(db_session, auth_state) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient bound to the loyalty app with DB and auth dependencies overridden.
    """
    from services.loyalty_service.app.main import app

    async def _db_override():
        yield db_session

    app.dependency_overrides[get_async_db] = _db_override
    app.dependency_overrides[get_current_user] = lambda: auth_state["user"]

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def webhook_headers() -> dict:
    return {"asaas-access-token": get_settings().PAYMENT_WEBHOOK_TOKEN}
