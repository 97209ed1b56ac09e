import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_DEMO", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pcm.core.deps import get_db
from pcm.core.security import create_access_token
from pcm.crud.permissions import assign_role, create_role
from pcm.crud.users import create_user
from pcm.db.base import Base
from pcm.db.models.project import Project
from pcm.schemas.admin import UserCreateIn
from pcm.services.wbs.engine import WBSEngine
import pcm.db.models  # noqa: F401


@pytest.fixture
def db_engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def project(db):
    p = Project(id=100, code="PRJ-100", name="Plant upgrade")
    db.add(p)
    db.commit()
    return p


@pytest.fixture
def other_project(db):
    p = Project(id=101, code="PRJ-101", name="Warehouse")
    db.add(p)
    db.commit()
    return p


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(permissions: list[str] = (), project_id: int | None = None, login: str | None = None, password: str = "secret123"):
        counter["n"] += 1
        login = login or f"user{counter['n']}"
        user = create_user(db, UserCreateIn(login=login, password=password, full_name=login.title()))
        if permissions:
            role = create_role(db, f"role-{login}", permissions=list(permissions))
            assign_role(db, user.id, role.id, project_id)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def wbs(db):
    return WBSEngine(db)


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {create_access_token(sub=user.login, user_id=user.id)}"}

    return _headers


@pytest.fixture
def app():
    from pcm.main import app as fastapi_app
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app, session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    return TestClient(app)
