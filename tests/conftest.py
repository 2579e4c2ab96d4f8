import os
import sys
from datetime import date
from pathlib import Path
from typing import Callable, List

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Ensure project root is on sys.path so `import app` works when running pytest from root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Force test configuration before any app imports
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["PORT"] = "8000"
os.environ["STS_API_BASE_URL"] = "https://sts.test"
os.environ["STS_USER_IDS"] = "acct-1,acct-2,acct-3"
os.environ["STS_USER_PASSWORD"] = "s3cret"

from app.db import base as db_base  # noqa: E402
from app.vending.config import StsConfig  # noqa: E402
from app.vending.issuer import TokenIssuerGateway  # noqa: E402

TODAY = date(2026, 10, 17)


@pytest_asyncio.fixture
async def session_factory(monkeypatch):
    """
    Provide a fresh in-memory database per test.

    StaticPool keeps the single in-memory connection alive across sessions,
    and the factory is patched into app.db.base so UnitOfWork picks it up.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(db_base.Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(db_base, "engine", engine)
    monkeypatch.setattr(db_base, "AsyncSessionLocal", factory)

    yield factory

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Get a database session for a test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def today() -> Callable[[], date]:
    """Fixed clock so daily-limit tests do not depend on the wall clock."""
    return lambda: TODAY


@pytest.fixture
def sts_config() -> StsConfig:
    return StsConfig(
        base_url="https://sts.test",
        user_ids=["acct-1", "acct-2", "acct-3"],
        password="s3cret",
        timeout=5.0,
    )


class FakeSts:
    """Scripted stand-in for the STS API, served through httpx.MockTransport.

    ``outcomes`` maps an account id to either a response body dict, an
    ``httpx.Response`` or an exception to raise for that account.
    """

    def __init__(self, outcomes=None, default=None):
        self.outcomes = dict(outcomes or {})
        self.default = default
        self.requests: List[httpx.Request] = []

    @property
    def user_ids_called(self) -> List[str]:
        return [r.url.params["UserId"] for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        user_id = request.url.params["UserId"]
        outcome = self.outcomes.get(user_id, self.default)
        if outcome is None:
            outcome = {"Code": 0, "Message": "OK", "Data": {"Token": f"TOKEN-{user_id}"}}
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, httpx.Response):
            # Fresh copy per call; a Response is consumed once it is read.
            return httpx.Response(
                outcome.status_code, content=outcome.content, headers=outcome.headers
            )
        return httpx.Response(200, json=outcome)

    def gateway(self, config: StsConfig) -> TokenIssuerGateway:
        return TokenIssuerGateway(config, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_sts() -> FakeSts:
    return FakeSts()


@pytest.fixture
def make_payload():
    """Build a valid vend request body, with optional top-level overrides."""

    def _make(**overrides):
        vend_data = {
            "amount": 5000,
            "units": 0,
            "transactionId": "TXN-001",
            "tanescoNumber": "54100012345",
            "customerName": "Asha",
        }
        vend_data.update(overrides.pop("vend_data", {}))
        payload = {
            "clientId": "client-abc",
            "submeterNumber": "0123456789",
            "vendData": vend_data,
            "vendType": "upload",
        }
        payload.update(overrides)
        return payload

    return _make
