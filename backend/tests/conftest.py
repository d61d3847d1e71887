from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.db import Base, create_db_engine, create_session_factory
from app.main import create_app

BASE_URL = "http://localhost:8080"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'users.db'}",
        UPLOAD_DIR=tmp_path / "uploads",
        PUBLIC_BASE_URL=BASE_URL,
    )


@pytest.fixture
def upload_dir(settings):
    return settings.UPLOAD_DIR


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def db(settings):
    engine = create_db_engine(settings)
    Base.metadata.create_all(bind=engine)
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def png_file():
    def _make(name: str = "avatar.png"):
        return {"image": (name, PNG_BYTES, "image/png")}

    return _make
