import os
import tempfile
import time
from types import SimpleNamespace
from urllib.parse import urlencode

import httpx
import jwt
import pytest

_TMP = tempfile.mkdtemp(prefix="alumninet-tests-")

SUPABASE_URL = "https://example.supabase.co"
JWT_SECRET = "test-jwt-secret-for-alumninet-suite-0123456789"

os.environ.update(
    {
        "APP_ENV": "dev",
        "APP_ENV_FILE": os.path.join(_TMP, "missing.env"),
        "DATA_DIR": _TMP,
        "SQLITE_PATH": os.path.join(_TMP, "app.db"),
        "SUPABASE_URL": SUPABASE_URL,
        "SUPABASE_ANON_KEY": "anon-test-key",
        "SUPABASE_JWT_SECRET": JWT_SECRET,
        "SESSION_SECRET": "test-session-secret",
        "OAUTH_PROVIDERS": "google",
    }
)
os.environ.pop("DATABASE_URL", None)

from fastapi.testclient import TestClient  # noqa: E402
from supabase import AuthError  # noqa: E402

from alumninet.core.database import Base, SessionLocal, engine  # noqa: E402
from alumninet.core.session import ACCESS_COOKIE, REFRESH_COOKIE  # noqa: E402
from alumninet.main import app  # noqa: E402
from alumninet.models import Profile  # noqa: E402
from alumninet.services import directory, supabase_client  # noqa: E402


def make_token(user_id: str = "user-1", email: str | None = "ada@example.com", ttl: int = 3600) -> str:
    now = int(time.time())
    claims = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "iss": f"{SUPABASE_URL}/auth/v1",
        "role": "authenticated",
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(claims, JWT_SECRET, algorithm="HS256")


def set_cookies(response: httpx.Response) -> list[str]:
    return response.headers.get_list("set-cookie")


def cookie_cleared(response: httpx.Response, name: str) -> bool:
    return any(header.startswith(f"{name}=") and "Max-Age=0" in header for header in set_cookies(response))


class SdkAuthError(AuthError):
    """AuthError with a stable constructor across SDK releases."""

    def __init__(self, message: str, status: int = 400) -> None:
        Exception.__init__(self, message)
        self.message = message
        self.status = status


def auth_response(user_id: str = "user-1", email: str = "ada@example.com", refresh_token: str = "refresh-2"):
    user = SimpleNamespace(id=user_id, email=email)
    session = SimpleNamespace(
        access_token=make_token(user_id, email),
        refresh_token=refresh_token,
        expires_in=3600,
        user=user,
    )
    return SimpleNamespace(user=user, session=session)


def pending_signup(user_id: str = "user-9", email: str = "new@example.com"):
    return SimpleNamespace(user=SimpleNamespace(id=user_id, email=email), session=None)


class FakeSupabase:
    """Stands in for ``supabase.create_client``; records every SDK call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple, dict]] = []
        self.results: dict[str, object] = {}

    def on(self, name: str, result=None, error: Exception | None = None) -> None:
        self.results[name] = error if error is not None else result

    def names(self) -> list[str]:
        return [name for name, _, _ in self.calls]

    def call(self, name: str, *args, headers: dict | None = None):
        self.calls.append((name, args, dict(headers or {})))
        result = self.results.get(name)
        if isinstance(result, Exception):
            raise result
        return result

    def create_client(self, url: str, key: str, options=None):
        return FakeClient(self, url, options)


class FakeClient:
    def __init__(self, fake: FakeSupabase, url: str, options) -> None:
        self.auth = FakeAuth(fake, url, options)
        self.storage = FakeStorage(fake, url, options)


class FakeAuth:
    def __init__(self, fake: FakeSupabase, url: str, options) -> None:
        self.fake = fake
        self.url = url
        self.options = options
        self.admin = SimpleNamespace(sign_out=lambda jwt: fake.call("sign_out", jwt))

    def sign_in_with_password(self, credentials):
        return self.fake.call("sign_in_with_password", credentials)

    def sign_up(self, credentials):
        return self.fake.call("sign_up", credentials)

    def refresh_session(self, refresh_token):
        return self.fake.call("refresh_session", refresh_token)

    def exchange_code_for_session(self, params):
        return self.fake.call("exchange_code_for_session", params)

    def sign_in_with_oauth(self, credentials):
        self.fake.call("sign_in_with_oauth", credentials)
        self.options.storage.set_item("supabase.auth.token-code-verifier", "sdk-verifier-123")
        query = urlencode(
            {"provider": credentials["provider"], "redirect_to": credentials["options"]["redirect_to"]}
        )
        return SimpleNamespace(provider=credentials["provider"], url=f"{self.url}/auth/v1/authorize?{query}")


class FakeStorage:
    def __init__(self, fake: FakeSupabase, url: str, options) -> None:
        self.fake = fake
        self.url = url
        self.headers = options.headers if options else {}

    def from_(self, bucket: str):
        fake, url, headers = self.fake, self.url, self.headers

        class Bucket:
            def upload(self, path, content, file_options=None):
                return fake.call("upload", bucket, path, content, file_options, headers=headers)

            def get_public_url(self, path):
                return f"{url}/storage/v1/object/public/{bucket}/{path}"

        return Bucket()


@pytest.fixture(autouse=True)
def fresh_state():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    directory.LAST_GOOD_RESULTS.clear()
    yield
    directory.LAST_GOOD_RESULTS.clear()


@pytest.fixture
def supabase(monkeypatch) -> FakeSupabase:
    fake = FakeSupabase()
    monkeypatch.setattr(supabase_client, "create_client", fake.create_client)
    return fake


@pytest.fixture
def client(supabase):
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_profile(db):
    def _add(user_id: str = "user-1", **fields) -> Profile:
        values = {
            "email": f"{user_id}@example.com",
            "full_name": "Ada Lovelace",
            "degree": "B.Tech",
            "branch": "CSE",
            "graduation_year": 2020,
            "onboarded": True,
            "moderation_status": "pending",
        }
        values.update(fields)
        row = Profile(id=user_id, **values)
        db.add(row)
        db.commit()
        return row

    return _add


@pytest.fixture
def sign_in(client):
    def _sign_in(user_id: str = "user-1", email: str = "ada@example.com", refresh_token: str | None = None) -> str:
        token = make_token(user_id, email)
        client.cookies.set(ACCESS_COOKIE, token)
        if refresh_token:
            client.cookies.set(REFRESH_COOKIE, refresh_token)
        return token

    return _sign_in


ONBOARDING_FORM = {
    "full_name": "Ada Lovelace",
    "degree": "B.Tech",
    "branch": "CSE",
    "graduation_year": "2023",
    "company": "Analytical Engines",
    "job_role": "Engineer",
    "location": "London",
    "linkedin": "https://linkedin.com/in/ada",
    "consent_terms": "true",
    "consent_privacy": "true",
}
