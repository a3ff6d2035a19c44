import datetime as dt
import os
import uuid

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL

from taxassist.core import db as db_module
from taxassist.core.security import JWT_ALG, JWT_SECRET, create_session_token, hash_password, token_replay_ledger
from taxassist.main import app
from taxassist.models.subscription import Subscription
from taxassist.models.user import User

db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest_asyncio.fixture
async def db():
    """Fresh database for tests that use the ORM without HTTP."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client(db):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest.fixture(autouse=True)
def reset_replay_ledger():
    token_replay_ledger.clear()
    yield
    token_replay_ledger.clear()


@pytest_asyncio.fixture
async def create_user(db):
    """
    Factory fixture to create users directly via ORM.
    `call_seconds` creates a Subscription with that balance; None leaves the
    user without any quota configured.
    """

    async def _create_user(
        password: str = "UserPass!23",
        call_seconds: int | None = None,
        email: str | None = None,
    ) -> tuple[User, str]:
        user = await User.create(
            name=f"user_{uuid.uuid4().hex[:6]}",
            email=email or f"{uuid.uuid4().hex[:6]}@example.com",
            job_title="Tax Consultant",
            password_hash=hash_password(password),
        )
        if call_seconds is not None:
            await Subscription.create(user=user, call_seconds=call_seconds)
        return user, password

    return _create_user


@pytest.fixture
def auth_headers():
    """Authorization headers carrying a fresh session credential for `user`."""

    def _headers(user: User) -> dict[str, str]:
        token = create_session_token(str(user.id), user.email, user.name, user.language)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def one_time_token():
    """Mint a dashboard-style one-time login token."""

    def _mint(email: str | None, minutes: float = 5, secret: str = JWT_SECRET, **extra) -> str:
        payload = dict(extra)
        if email is not None:
            payload["email"] = email
        payload["exp"] = dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=minutes)
        return jwt.encode(payload, secret, algorithm=JWT_ALG)

    return _mint
