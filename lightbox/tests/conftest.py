import os
import tempfile
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Settings are read at import time, so the environment goes first
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TESTING"] = "true"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="lightbox-uploads-")

from lightbox.main import app
from lightbox.database import Base, install_sqlite_pragmas
from lightbox.dependencies import get_storage
from lightbox.models.user import User
from lightbox.services.auth_service import create_access_token
from lightbox.storage import LocalFileStorage
import lightbox.dependencies as dependencies_module
import lightbox.database as db_module


@pytest.fixture(scope="session")
def test_engine():
    # One connection for every session, or each would see its own empty :memory: database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    install_sqlite_pragmas(engine)
    return engine


@pytest.fixture(scope="session")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture()
def db_session(test_engine, session_factory):
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def use_test_database(monkeypatch, test_engine, session_factory, db_session):
    monkeypatch.setattr(db_module, "engine", test_engine)
    monkeypatch.setattr(db_module, "SessionLocal", session_factory)
    # get_db() resolves SessionLocal from its own module
    monkeypatch.setattr(dependencies_module, "SessionLocal", session_factory)
    monkeypatch.setattr(app.state.limiter, "enabled", False)
    yield


@pytest.fixture()
def storage(tmp_path):
    local = LocalFileStorage(tmp_path / "uploads")
    local.ensure_layout([200, 500, 1000])
    return local


@pytest.fixture()
def client(storage):
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_storage, None)


@pytest.fixture()
def user(db_session):
    editor = User(email="editor@example.com", password_hash="x", display_name="Editor")
    db_session.add(editor)
    db_session.commit()
    db_session.refresh(editor)
    return editor


@pytest.fixture()
def auth_headers(user):
    token = create_access_token(user.email, user.id, timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}
