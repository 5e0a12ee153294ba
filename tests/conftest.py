import os
import tempfile

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["RATE_LIMIT"] = "10000/minute"
os.environ["ADLC_WEBHOOK_SECRET"] = "adlc-test-secret"
os.environ["ADLC_USE_SIGNATURE"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="apsar-uploads-")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.auth.security import create_access_token, get_password_hash
from app.db import Base, SessionLocal, engine
from app.main import app
from app.models.models import User


@pytest.fixture(autouse=True)
def clean_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """Insert a user directly and return its id, username and auth headers."""
    def _make(role: str = "member", username: str = None, password: str = "secret123", active: bool = True):
        username = username or f"{role}{db.query(User).count() + 1}"
        user = User(
            first_name=role.capitalize(),
            last_name=username.capitalize(),
            username=username,
            password_hash=get_password_hash(password),
            role=role,
            is_active=active,
            push_tokens=[],
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        token = create_access_token(str(user.id))
        return SimpleNamespace(
            id=str(user.id),
            username=username,
            full_name=user.full_name,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def officer(make_user):
    return make_user("officer")


@pytest.fixture
def member(make_user):
    return make_user("member")


@pytest.fixture
def other_member(make_user):
    return make_user("member")
