import os
import tempfile

# Settings are read at import time, so the test environment goes in first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DEFAULT_BALANCE"] = "1000"
os.environ["MAIL_API_URL"] = ""
os.environ["REQUIRE_EMAIL_VERIFICATION"] = "false"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="pointsbank-logs-"))

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pointsbank.api import deps
from pointsbank.app import app
from pointsbank.db.models import User
from pointsbank.db.session import init_db
from pointsbank.manage import create_admin
from pointsbank.services.otp import OtpManager
from pointsbank.services.security import hash_password
from pointsbank.services.signer import EthAccountSigner

PASSWORD = "correct-horse-battery"


class RecordingEmailProvider:
    def __init__(self):
        self.sent = []

    async def send(self, to, subject, text):
        self.sent.append({"to": to, "subject": subject, "text": text})


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def signer():
    return EthAccountSigner()


@pytest.fixture
def otp_manager():
    return OtpManager(ttl_seconds=60, max_attempts=3)


@pytest.fixture
def email_provider():
    return RecordingEmailProvider()


@pytest.fixture
async def client(session_factory, signer, otp_manager, email_provider):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_signer] = lambda: signer
    app.dependency_overrides[deps.get_otp_manager] = lambda: otp_manager
    app.dependency_overrides[deps.get_email_provider] = lambda: email_provider
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    async def _register(name, email, password=PASSWORD):
        resp = await client.post("/api/register", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        body = resp.json()
        body["headers"] = {"Authorization": f"Bearer {body['token']}"}
        return body

    return _register


@pytest.fixture
async def admin_headers(client, session_factory):
    async with session_factory() as session:
        await create_admin(session, "Root Admin", "admin@example.com", PASSWORD)
    resp = await client.post("/api/login", json={"email": "admin@example.com", "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def make_user(db, signer):
    async def _make_user(name, email, balance=1000):
        wallet = signer.create_wallet()
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(PASSWORD),
            wallet_address=wallet.address,
            balance=balance,
            shared_points=0,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user, wallet.private_key

    return _make_user
