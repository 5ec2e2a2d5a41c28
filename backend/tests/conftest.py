"""Shared fixtures: test environment, temporary SQLite database, users and tokens."""

import os
import tempfile
from pathlib import Path

# Settings are read at import time. Set the test environment before any
# liar_game module is imported.
_TEST_DIR = Path(tempfile.mkdtemp(prefix="liar_game_tests_"))
os.environ["DEBUG"] = "true"
os.environ["JWT_SECRET"] = "test-jwt-secret-that-is-long-enough-0123456789"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'test.db'}"
os.environ["RATE_LIMIT_USE_REDIS"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "true"
os.environ["LOG_DIR"] = str(_TEST_DIR / "logs")
os.environ["AUTH_HOOK_SECRET"] = ""
os.environ["ADMIN_EMAIL"] = ""

import httpx  # noqa: E402
import pytest  # noqa: E402

from liar_game.database import Base, async_session, engine  # noqa: E402
from liar_game.main import app  # noqa: E402
from liar_game.models import GameRoom, RoomPlayer, Role, Tier, User  # noqa: E402, F401
from liar_game.utils.rate_limit import limiter  # noqa: E402
from liar_game.utils.security import create_access_token  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Prevent counters leaking between tests."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session(db):
    async with async_session() as s:
        yield s


@pytest.fixture
def make_user(db):
    """Factory: insert a local user and return it."""
    counter = {"n": 0}

    async def _make_user(
        tier: Tier = Tier.MEMBER,
        role: Role = Role.USER,
        email: str | None = None,
        username: str | None = None,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        async with async_session() as s:
            user = User(
                email=email or f"player{n}@example.com",
                username=username or f"player{n}",
                tier=tier,
                role=role,
            )
            s.add(user)
            await s.commit()
            return user

    return _make_user


def token_for(user: User, **extra) -> str:
    claims = {
        "sub": f"external-{user.id}",
        "email": user.email,
        "user_id": user.id,
        "user_tier": user.tier.value,
        "user_role": user.role.value,
        "role": "authenticated",
    }
    claims.update(extra)
    return create_access_token(claims)


def _auth_headers(user: User, **extra) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user, **extra)}"}


@pytest.fixture
def auth_headers():
    return _auth_headers


@pytest.fixture
async def client(db):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
