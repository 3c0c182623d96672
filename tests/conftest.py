import os
import tempfile
import uuid

import pytest
from fastapi.testclient import TestClient


# Point the app at a throwaway database and a known secret before any app
# module (engine, security) is imported.
_db_dir = tempfile.mkdtemp(prefix="novaera_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["OPENAI_API_KEY"] = ""

from app.main import app  # noqa: E402
from app.db.base import Base, engine, SessionLocal  # noqa: E402
from app.auth.models import User, ROLE_ADMIN, ROLE_STUDENT, ACCESS_FULL  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.gamification.ranking import invalidate_ranking_cache  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    invalidate_ranking_cache()
    yield
    invalidate_ranking_cache()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(
        name: str = "Aluno",
        email: str | None = None,
        role: str = ROLE_STUDENT,
        access_level: str = ACCESS_FULL,
        xp: int = 0,
        xp_mensal: int = 0,
        level: int = 1,
        user_id: str | None = None,
    ) -> User:
        user = User(
            id=user_id or str(uuid.uuid4()),
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            name=name,
            role=role,
            access_level=access_level,
            xp=xp,
            xp_mensal=xp_mensal,
            level=level,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(name="Admin", email="admin@example.com", role=ROLE_ADMIN)


def _auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def auth():
    return _auth_headers


@pytest.fixture
def reload(db):
    """Re-read an object after a request changed it in another session."""
    def _reload(obj):
        db.expire_all()
        db.refresh(obj)
        return obj

    return _reload
