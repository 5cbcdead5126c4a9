from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.dependencies import get_current_user
from libs.auth.models import ADMIN, CUSTOMER, SELLER, AuthUser
from libs.db.base import Base
from libs.db.session import get_async_db
from services.store_service import models as _store_models  # noqa: F401
from services.store_service.app.main import app
from services.store_service.services.notifications import get_order_notifier
from services.store_service.services.payment_verifier import get_payment_gateway
from tests.fakes import FakeRazorpay, RecordingNotifier


@pytest_asyncio.fixture
async def test_engine():
    """
    A fresh in-memory database per test.

    StaticPool keeps the single SQLite connection alive for the whole test,
    otherwise every checkout would see an empty database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        future=True,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield the session shared by the test body and the app under test.

    Mirrors the production session factory (no expiry on commit, no
    autoflush). Objects are expired after a rollback, so refresh them
    before reading attributes again.
    """
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------


@pytest.fixture
def customer() -> AuthUser:
    return AuthUser(user_id="user-buyer-1", email="buyer@kashmirattar.in", role=CUSTOMER)


@pytest.fixture
def other_customer() -> AuthUser:
    return AuthUser(user_id="user-buyer-2", email="other@kashmirattar.in", role=CUSTOMER)


@pytest.fixture
def admin() -> AuthUser:
    return AuthUser(user_id="user-admin", email="admin@kashmirattar.in", role=ADMIN)


@pytest.fixture
def seller() -> AuthUser:
    return AuthUser(user_id="seller-1", email="seller@kashmirattar.in", role=SELLER)


# ---------------------------------------------------------------------------
# App wiring
# ---------------------------------------------------------------------------


@pytest.fixture
def gateway() -> FakeRazorpay:
    return FakeRazorpay()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def act_as():
    """
    Switch the authenticated principal for subsequent requests.

    require_admin / require_staff depend on get_current_user, so one
    override covers every role check.
    """

    def _act_as(user: AuthUser) -> AuthUser:
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _act_as


@pytest_asyncio.fixture
async def client(
    db_session, gateway, notifier, customer, act_as
) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient bound to the store app, signed in as ``customer``.
    """
    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_order_notifier] = lambda: notifier
    act_as(customer)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """
    Bearer header for requests; auth itself is resolved by the override.
    """
    return {"Authorization": "Bearer mock-token"}
