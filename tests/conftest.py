from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401
from app import create_app
from auth import limiter
from config import Settings
from database import Base, get_db

from .helpers import sign_in


@pytest.fixture()
def settings() -> Settings:
    """Settings for a TestClient host, with a fixed secret and one admin address."""
    return Settings(
        secret_key="test-secret",
        allowed_hosts=["testserver"],
        admin_emails=["admin@example.com"],
    )


@pytest.fixture()
def session_factory(tmp_path: Path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def app(settings: Settings, session_factory):
    app = create_app(settings)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()
    return app


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def alice(app):
    """A TestClient signed in as alice."""
    with TestClient(app) as c:
        sign_in(c, "alice")
        yield c


@pytest.fixture()
def bob(app):
    """A second signed-in user, for isolation checks."""
    with TestClient(app) as c:
        sign_in(c, "bob")
        yield c
