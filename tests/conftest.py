"""Shared fixtures for the Paper & Ink API tests.

Every test runs against a fresh SQLite database file; tables are rebuilt
before each test. External services (Stripe API, S3, OpenAI, Resend) are
patched in the individual test modules.
"""

import hashlib
import hmac
import os
import tempfile
import time

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Environment must be in place BEFORE importing application modules:
# config and the engine are built at import time.
_TMP_DIR = tempfile.mkdtemp(prefix="paperink-tests-")
TEST_JWT_SECRET = "test-secret-key-for-paperink-tests"
TEST_WEBHOOK_SECRET = "whsec_test_paperink"
TEST_CRON_SECRET = "cron-test-secret"

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["AUTH_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["STRIPE_WEBHOOK_SECRET"] = TEST_WEBHOOK_SECRET
os.environ["STRIPE_SECRET_KEY"] = "sk_test_paperink"
os.environ["STRIPE_SUBSCRIPTION_PRICE_ID"] = "price_monthly_test"
os.environ["CRON_SECRET"] = TEST_CRON_SECRET
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ.pop("AUTH_JWT_AUDIENCE", None)
os.environ.pop("RESEND_API_KEY", None)

import paperink.models  # noqa: E402,F401
from paperink.core.database import Base, SessionLocal, engine  # noqa: E402
from paperink.models.character import Character  # noqa: E402
from paperink.server import app  # noqa: E402
from paperink.services.reminder_service import disable_link_limiter  # noqa: E402


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_token(user_id: str = "user-1", email: str = "parent@example.com", expires_in: int = 3600) -> str:
    """Sign a token the way the auth provider does (HS256, user id in `sub`)."""
    payload = {
        "sub": user_id,
        "email": email,
        "role": "authenticated",
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(user_id: str = "user-1", email: str = "parent@example.com") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, email)}"}


def stripe_signature(payload: str, secret: str = TEST_WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a `Stripe-Signature` header for a raw payload."""
    ts = timestamp or int(time.time())
    signed = f"{ts}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(autouse=True)
async def _fresh_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    disable_link_limiter.reset()
    yield
    # Pooled aiosqlite connections must not outlive the test's event loop
    await engine.dispose()


@pytest_asyncio.fixture()
async def db():
    async with SessionLocal() as session:
        yield session


@pytest_asyncio.fixture()
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture()
def make_character(db):
    """Factory for a character owned by `user_id`."""

    async def _make(user_id: str = "user-1", name: str = "Mila", age_band: str = "6-8") -> Character:
        character = Character(
            user_id=user_id,
            name=name,
            archetype="explorer",
            age_band=age_band,
            traits=["brave", "curious"],
            icon="explorer",
            preferred_language="en",
        )
        db.add(character)
        await db.commit()
        return character

    return _make
