import os

# settings are read at import time by app.db.session and app.main
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# FORCE model registration
import app.models  # noqa

from app.db.base import Base
from app.db.session import get_db
from app.models.enums import ActorRole
from app.policies.rbac import Principal


@pytest.fixture(scope="function")
def engine(tmp_path):
    # file-backed so several sessions (and threads) see the same database
    eng = create_engine(
        f"sqlite:///{tmp_path / 'procurement.db'}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ---------------------------
# actors
# ---------------------------


@pytest.fixture
def municipality():
    return Principal(participant_id="muni-user-1", role=ActorRole.MUNICIPALITY, municipality_id="MUN-1")


@pytest.fixture
def other_municipality():
    return Principal(participant_id="muni-user-9", role=ActorRole.MUNICIPALITY, municipality_id="MUN-9")


@pytest.fixture
def dev_a():
    return Principal(participant_id="dev-a", role=ActorRole.DEVELOPER)


@pytest.fixture
def dev_b():
    return Principal(participant_id="dev-b", role=ActorRole.DEVELOPER)


@pytest.fixture
def dev_c():
    return Principal(participant_id="dev-c", role=ActorRole.DEVELOPER)


@pytest.fixture
def integrator():
    return Principal(participant_id="int-1", role=ActorRole.INTEGRATOR)


# ---------------------------
# HTTP
# ---------------------------


@pytest.fixture
def client(session_factory):
    from app.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
