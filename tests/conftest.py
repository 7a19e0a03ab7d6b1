"""pytest 공용 fixture.

모든 API 테스트는 in-memory SQLite DB + tmp_path 아티팩트 디렉토리를 사용하여 격리된다.
- session: in-memory DB 세션
- store: tmp_path 아래의 ArtifactStore
- client: 위 두 개로 의존성을 교체한 TestClient (Janitor 비활성화)
- make_image_bytes: 메모리에서 테스트 이미지를 만드는 헬퍼
"""

import io
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# src/ 디렉토리를 import path에 추가
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from core.config import settings
from core.dependencies import get_store
from main import app
from model.database import get_session
from service.artifact_store import ArtifactStore


@pytest.fixture()
def session():
    """테스트마다 새 in-memory SQLite DB를 생성한다.

    StaticPool을 사용해야 모든 커넥션이 같은 in-memory DB를 공유한다.
    (기본값은 커넥션마다 별도 DB가 생성되어 테이블이 안 보임)
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


@pytest.fixture()
def store(tmp_path):
    return ArtifactStore(str(tmp_path / "storage"))


@pytest.fixture()
def client(session, store, monkeypatch):
    """get_session / get_store를 테스트용으로 오버라이드한 TestClient."""
    monkeypatch.setattr(settings, "STORAGE_DIR", store.root)
    monkeypatch.setattr(settings, "JANITOR_ENABLED", False)

    def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _image_bytes(width: int, height: int, fmt: str = "PNG", color="blue", mode: str = "RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, (width, height), color=color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def make_image_bytes():
    """make_image_bytes(300, 200, "PNG") → 단색 이미지 바이트."""
    return _image_bytes
