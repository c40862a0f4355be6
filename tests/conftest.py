"""Test fixtures — isolated databases, fake storage, fake Google keys.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine + schema (in-memory SQLite by default,
   or INKWELL_TEST_DATABASE_URL), created fresh and dropped afterwards.
2. The app is built with create_app() and handed fakes: a MemoryStorage
   image backend and a GoogleTokenVerifier whose JWKS endpoint is an
   httpx.MockTransport serving a key pair generated per test session.
3. get_db is overridden so the app and the test share one session.

Nothing talks to the network, and no real Postgres is needed.
"""

import os
import time
import uuid

import httpx
import jwt
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from inkwell.auth.google import GoogleTokenVerifier
from inkwell.config import Settings
from inkwell.db.engine import get_db
from inkwell.db.models import Base
from inkwell.main import create_app
from inkwell.storage.base import ImageStorage, StorageError

TEST_DB_URL = os.environ.get(
    "INKWELL_TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"
)
GOOGLE_CLIENT_ID = "inkwell-test.apps.googleusercontent.com"
GOOGLE_CERTS_URL = "https://google.test/oauth2/v3/certs"
GOOGLE_KID = "test-key-1"


class MemoryStorage(ImageStorage):
    """Image backend that keeps objects in a dict.

    Set `fail_uploads` to make every upload raise StorageError.
    """

    def __init__(self):
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.deleted: list[str] = []
        self.fail_uploads = False

    @property
    def name(self) -> str:
        return "memory"

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        if self.fail_uploads:
            raise StorageError("bucket unavailable")
        if key in self.objects:
            raise StorageError("object exists")
        self.objects[key] = (data, content_type)
        return f"https://cdn.test/{key}"

    async def delete(self, key: str) -> None:
        self.objects.pop(key, None)
        self.deleted.append(key)


# ─── Google keys ─────────────────────────────────────────


@pytest.fixture(scope="session")
def google_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def google_jwks(google_private_key):
    jwk = jwt.algorithms.RSAAlgorithm.to_jwk(
        google_private_key.public_key(), as_dict=True
    )
    jwk.update({"kid": GOOGLE_KID, "alg": "RS256", "use": "sig"})
    return {"keys": [jwk]}


@pytest.fixture()
def make_google_token(google_private_key):
    """Build a Google-style ID token. Keyword args override claims."""

    def _make(email: str, key=None, kid: str = GOOGLE_KID, **overrides) -> str:
        now = int(time.time())
        claims = {
            "iss": "https://accounts.google.com",
            "aud": GOOGLE_CLIENT_ID,
            "sub": f"g-{uuid.uuid4().hex[:12]}",
            "email": email,
            "email_verified": True,
            "name": "Google User",
            "picture": "https://lh3.googleusercontent.test/a/photo.jpg",
            "iat": now,
            "exp": now + 3600,
        }
        claims.update(overrides)
        return jwt.encode(
            claims,
            key or google_private_key,
            algorithm="RS256",
            headers={"kid": kid},
        )

    return _make


@pytest.fixture()
def google_verifier(google_jwks):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=google_jwks)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleTokenVerifier(
        client_id=GOOGLE_CLIENT_ID, certs_url=GOOGLE_CERTS_URL, http=http
    )


# ─── App + DB ────────────────────────────────────────────


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        database_url=TEST_DB_URL,
        jwt_secret="test-secret-do-not-use",
        bcrypt_rounds=10,
        google_client_id=GOOGLE_CLIENT_ID,
        google_certs_url=GOOGLE_CERTS_URL,
        storage_backend="local",
        upload_dir=str(tmp_path / "uploads"),
        max_image_bytes=1024,
        environment="development",
    )


@pytest.fixture()
def storage():
    return MemoryStorage()


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a freshly created schema."""
    kwargs = {}
    if TEST_DB_URL.startswith("sqlite"):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_async_engine(TEST_DB_URL, echo=False, **kwargs)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture()
def app(settings, storage, google_verifier, db_session):
    app = create_app(settings, storage=storage, google_verifier=google_verifier)

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client talking to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def signup(client):
    """Register a fresh user. Returns (auth_headers, email, password)."""

    async def _signup(
        email: str | None = None, password: str = "password_123", name: str = "Writer"
    ):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        r = await client.post(
            "/api/auth/signup",
            json={"name": name, "email": email, "password": password},
        )
        assert r.status_code == 201, r.text
        headers = {"Authorization": f"Bearer {r.json()['token']}"}
        return headers, email, password

    return _signup
