"""
Shared fixtures for Content Orchestrator integration tests.

Tests run against a throwaway SQLite database (aiosqlite) so no server is
needed. Each test function gets its own session; tables are created before
the test and dropped after it, so each test starts with a clean slate.

The AI gateway is replaced by FakeAIClient, which returns scripted replies
instead of calling the network.
"""
from __future__ import annotations

import json
import os
import tempfile
from typing import Any, AsyncGenerator, Dict, List

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Override settings *before* any app module is imported, so that
# settings.DATABASE_URL and the global engine point at the test DB.
_TEST_DIR = tempfile.mkdtemp(prefix="orchestrator-tests-")
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["LOVABLE_API_KEY"] = ""

from app.database import Base, get_db  # noqa: E402
from app.dependencies.ai import get_ai_client  # noqa: E402
from app.main import app  # noqa: E402
from app.models import database_models  # noqa: E402,F401
from app.services.ai_gateway import AIGatewayClient, AIGatewayError  # noqa: E402


# ---------------------------------------------------------------------------
# Fake AI gateway
# ---------------------------------------------------------------------------

class FakeAIClient(AIGatewayClient):
    """
    Gateway client that answers from a queue instead of the network.

    Queue strings (returned as message content), dicts/lists (JSON-encoded),
    or AIGatewayError instances (raised). An empty queue yields an empty reply.
    """

    def __init__(self) -> None:
        super().__init__(api_key="test-key", gateway_url="http://gateway.test")
        self.replies: List[Any] = []
        self.requests: List[Dict[str, Any]] = []
        self.image_url = "data:image/png;base64,iVBORw0KGgo="

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.requests.append(payload)
        if "modalities" in payload:
            return {"choices": [{"message": {"content": "", "images": [{"image_url": {"url": self.image_url}}]}}]}
        if not self.replies:
            return {"choices": [{"message": {"content": ""}}]}
        reply = self.replies.pop(0)
        if isinstance(reply, AIGatewayError):
            raise reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return {"choices": [{"message": {"content": reply}}]}


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. After the test, all tables are dropped
    so each test starts with a clean slate.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def ai_client() -> FakeAIClient:
    return FakeAIClient()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, ai_client: FakeAIClient) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB and AI gateway
    dependencies overridden to use the per-test session and fake client.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_ai_client] = lambda: ai_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AUTH_HEADERS = {
    "X-User-Id": "test-user-1",
    "X-User-Email": "test1@example.com",
    "X-User-Name": "Test User 1",
}

AUTH_HEADERS_USER2 = {
    "X-User-Id": "test-user-2",
    "X-User-Email": "test2@example.com",
    "X-User-Name": "Test User 2",
}

BRAND_PAYLOAD = {
    "brand_name": "Cardiolex",
    "company": "Acme Pharma",
    "therapeutic_area": "Cardiology",
    "indication": "Heart failure",
    "fda_indication": "treatment of chronic heart failure in adults",
    "guidelines": {
        "forbidden_terms": ["miracle"],
        "caution_terms": ["proven"],
    },
}


async def create_brand(client: AsyncClient, headers: Dict[str, str] = None, **overrides) -> int:
    resp = await client.post("/api/brands", json={**BRAND_PAYLOAD, **overrides}, headers=headers or AUTH_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]
