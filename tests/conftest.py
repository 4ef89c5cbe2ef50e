import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("COOKIE_SECURE", "false")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from hyrepro.core.database import Base, SessionLocal, init_db
from hyrepro.core.session import AuthSession, AuthUser, SessionBridge
from hyrepro.main import app
from hyrepro.models.school import AdminUserInfo, School
from hyrepro.services.analytics_service import analytics_service
from hyrepro.services.procedures import ProcedureError, procedures

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
SessionLocal.configure(bind=engine)

ADMIN_TOKEN = "admin-token"
NEWCOMER_TOKEN = "newcomer-token"


class FakeBucket:
    def __init__(self, name, uploads):
        self.name = name
        self.uploads = uploads

    def upload(self, path, content, file_options=None):
        self.uploads.append((self.name, path, content, file_options))
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"


class FakeStorageClient:
    def __init__(self):
        self.uploads = []
        self.storage = self

    def from_(self, bucket):
        return FakeBucket(bucket, self.uploads)


class FakeBridge(SessionBridge):
    """Session bridge backed by dictionaries instead of the auth server"""

    def __init__(self):
        super().__init__(url="http://supabase.test", anon_key="anon", service_key="service")
        self.users = {}
        self.refresh_tokens = {}
        self.codes = {}
        self.otps = {}
        self.storage_client = FakeStorageClient()

    @property
    def admin(self):
        return self.storage_client

    def get_user(self, access_token):
        return self.users.get(access_token)

    def refresh(self, refresh_token):
        if refresh_token not in self.refresh_tokens:
            return AuthSession(cookies_to_set=self.expired_cookies())
        user, new_access = self.refresh_tokens[refresh_token]
        self.users[new_access] = user
        tokens = SimpleNamespace(access_token=new_access, refresh_token=f"{refresh_token}-next")
        return AuthSession(user=user, access_token=new_access, cookies_to_set=self.session_cookies(tokens))

    def exchange_code(self, code, code_verifier=None):
        user = self.codes[code]
        tokens = SimpleNamespace(access_token=f"access-{code}", refresh_token=f"refresh-{code}")
        return AuthSession(user=user, access_token=tokens.access_token, cookies_to_set=self.session_cookies(tokens))

    def verify_otp(self, token_hash, otp_type):
        user = self.otps[token_hash]
        tokens = SimpleNamespace(access_token=f"access-{token_hash}", refresh_token=f"refresh-{token_hash}")
        return AuthSession(user=user, access_token=tokens.access_token, cookies_to_set=self.session_cookies(tokens))


class FakeProcedures:
    """Stands in for the database functions; results keyed by procedure name"""

    def __init__(self):
        self.results = {}
        self.calls = []

    def returns(self, name, result):
        self.results[name] = result

    def fails(self, name, message="boom"):
        self.results[name] = ProcedureError(name, message)

    def called(self, name):
        return [params for called, params in self.calls if called == name]

    def __call__(self, db, name, params=None):
        self.calls.append((name, params or {}))
        result = self.results.get(name)
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(params or {})
        return result


@pytest.fixture(autouse=True)
def database():
    init_db(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clear_analytics_cache():
    analytics_service.cache.clear()
    yield
    analytics_service.cache.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def rpc(monkeypatch):
    fake = FakeProcedures()
    monkeypatch.setattr(procedures, "call", fake)
    return fake


@pytest.fixture
def admin_user():
    return AuthUser(
        id="user-admin",
        email="principal@school.test",
        email_confirmed_at="2024-01-01T00:00:00",
        user_metadata={"name": "Asha", "last_name": "Rao", "contact_number": "9999999999"},
    )


@pytest.fixture
def newcomer():
    return AuthUser(id="user-new", email="new@school.test", email_confirmed_at="2024-01-01T00:00:00")


@pytest.fixture
def bridge(admin_user, newcomer):
    fake = FakeBridge()
    fake.users[ADMIN_TOKEN] = admin_user
    fake.users[NEWCOMER_TOKEN] = newcomer
    previous = app.state.session_bridge
    app.state.session_bridge = fake
    yield fake
    app.state.session_bridge = previous


@pytest.fixture
def school(db, admin_user):
    row = School(id="school-1", name="Green Valley", location="Pune", board="CBSE",
                 address="1 Hill Rd", school_type="K-12", created_by=admin_user.id)
    db.add(row)
    db.add(AdminUserInfo(id=admin_user.id, email=admin_user.email, first_name="Asha",
                         last_name="Rao", school_id=row.id, role="admin"))
    db.commit()
    return row


@pytest.fixture
def client(bridge):
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def newcomer_headers():
    return {"Authorization": f"Bearer {NEWCOMER_TOKEN}"}
