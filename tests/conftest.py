"""Shared fixtures: an in-memory database, a configured app, and data factories."""

from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from filehub import deps
from filehub.core import config
from filehub.core.database import init_db, make_engine
from filehub.core.security import create_jwt, hash_password
from filehub.domain import storage
from filehub.domain.db_models import (
    ImageModel,
    ModelFileModel,
    ModelHashModel,
    ModelModel,
    ModelVersionModel,
    UserModel,
)
from filehub.domain.enums import (
    ModelFileFormat,
    ModelFileType,
    ModelHashType,
    ModelStatus,
    ModelType,
)
from filehub.main import create_app

UPLOAD_BUCKET = "model-files"


@pytest.fixture
def settings(monkeypatch, tmp_path):
    """Fresh settings pointing at temp storage; tweak attributes per test."""
    monkeypatch.setenv("DB_URL", "sqlite://")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("BLOB_ROOT", str(tmp_path / "blobs"))
    monkeypatch.setenv("S3_UPLOAD_BUCKET", UPLOAD_BUCKET)
    monkeypatch.setenv("BASE_URL", "http://testserver")
    monkeypatch.setenv("WEBHOOK_TOKEN", "")
    monkeypatch.setenv("UNAUTHENTICATED_DOWNLOAD", "true")
    monkeypatch.setenv("ENV", "test")
    config.reset_settings()
    storage.reset_blob_store()
    yield config.get_settings()
    config.reset_settings()
    storage.reset_blob_store()


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fresh(session_factory):
    """Open a new session for asserting on what a request committed."""
    opened = []

    def _open():
        session = session_factory()
        opened.append(session)
        return session

    yield _open
    for session in opened:
        session.close()


@pytest.fixture
def app(settings, session_factory):
    application = create_app(init_database=False)

    def override_get_session() -> Iterator:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[deps.get_session] = override_get_session
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(username="alice", role="viewer", password="password123", **prefs):
        user = UserModel(username=username, hashed=hash_password(password), role=role, **prefs)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def auth_header():
    def _header(user: UserModel) -> dict:
        return {"Authorization": f"Bearer {create_jwt(sub=user.username, role=user.role)}"}

    return _header


@pytest.fixture
def make_model(db):
    """
    Create a model with versions and files.

    `versions` is a list of dicts: {"name", "status", "trained_words", "files": [...],
    "images": [...]}; each file dict needs "type" and "format" and may set
    "name", "url", "hashes".
    """

    def _make(name="My Model", type=ModelType.Checkpoint, status=ModelStatus.Published, versions=None, user=None):
        model = ModelModel(name=name, type=type, status=status, user_id=user.id if user else None)
        for v in versions or [{}]:
            version = ModelVersionModel(
                name=v.get("name", "v1"),
                status=v.get("status", ModelStatus.Published),
                trained_words=v.get("trained_words", []),
                base_model=v.get("base_model", "SD 1.5"),
            )
            for f in v.get("files", [{"type": ModelFileType.Model, "format": ModelFileFormat.SafeTensor}]):
                file = ModelFileModel(
                    name=f.get("name", "model.safetensors"),
                    url=f.get("url", "https://uploads.example.com/tmp/model.safetensors"),
                    size_kb=f.get("size_kb", 1024),
                    type=f["type"],
                    format=f["format"],
                )
                for hash_type, value in f.get("hashes", {}).items():
                    file.hashes.append(ModelHashModel(type=ModelHashType(hash_type), hash=value))
                version.files.append(file)
            for index, url in enumerate(v.get("images", [])):
                version.images.append(ImageModel(index=index, url=url, width=512, height=768))
            model.versions.append(version)
        db.add(model)
        db.commit()
        return model

    return _make
