import os
os.environ["TESTING"] = "1"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("FILE_KEY_MASTER_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import shutil
import uuid

from filegate.main import app
from filegate.database import Base, get_db, enable_sqlite_foreign_keys
from filegate import auth, models, notify, pubsub

SQLALCHEMY_DATABASE_URL = os.environ["DATABASE_URL"]
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def upload_dir(tmp_path):
    d = tmp_path / "uploads"
    d.mkdir()
    os.environ["UPLOAD_DIR"] = str(d)
    notify.EMAIL_OUTBOX.clear()
    yield
    shutil.rmtree(d, ignore_errors=True)

@pytest.fixture
def client():
    # the fake redis connection is bound to the event loop that created it
    pubsub._redis = None
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def create_user(
    *,
    email: str | None = None,
    full_name: str | None = None,
    with_settings: bool = True,
    **settings,
):
    """Insert a user (and optionally a settings row) directly; returns (user_id, headers)."""

    email = email or f"user-{uuid.uuid4()}@example.com"
    session = TestingSessionLocal()
    try:
        user = models.User(
            email=email,
            hashed_password=auth.get_password_hash("secret"),
            full_name=full_name,
        )
        session.add(user)
        session.flush()
        if with_settings:
            row = models.UserSettings(
                id=user.id,
                notification_types=dict(models.DEFAULT_NOTIFICATION_TYPES),
            )
            for field, value in settings.items():
                setattr(row, field, value)
            session.add(row)
        session.commit()
        user_id = user.id
    finally:
        session.close()
    token = auth.create_access_token({"sub": email})
    return user_id, {"Authorization": f"Bearer {token}"}


def upload(client, headers, name="notes.txt", content=b"hello", **form):
    """Upload a file through the API and return the decoded response body."""

    data = {key: str(value).lower() if isinstance(value, bool) else value for key, value in form.items()}
    resp = client.post(
        "/api/files/upload",
        data=data,
        files={"upload": (name, content, "text/plain")},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def ensure_auth_headers(client, *, email: str | None = None, password: str = "secret"):
    """Register through the API (or log in when the account exists) and return bearer headers."""

    normalized_email = email or f"user-{uuid.uuid4()}@example.com"
    payload = {"email": normalized_email, "password": password}
    resp = client.post("/api/auth/register", json=payload)
    if resp.status_code != 200:
        resp = client.post("/api/auth/login", json=payload)
        assert resp.status_code == 200, resp.text
    token = resp.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}, normalized_email
