"""pytest 공용 fixture.

- sqlite_store / redis_store: in-memory SQLite, fakeredis로 격리된 저장소
- store: 두 구현에 같은 테스트를 돌리기 위한 parametrize fixture
- generator: 실제 API 대신 쓰는 가짜 생성 클라이언트
- client: lifespan의 저장소/생성기 팩토리를 가짜로 바꾼 TestClient
"""

import asyncio
import base64
import io
import sys
import threading
from pathlib import Path

import fakeredis
import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlmodel import Session, select

# src/ 디렉토리를 import path에 추가
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

import core.lifespan as lifespan_module
from core.config import settings
from main import app
from model.database import build_engine, create_db_and_tables
from model.image import StoredImage
from service.generation_client import GenerationResult, to_data_url
from store.redis_store import RedisImageStore
from store.sqlite_store import SqliteImageStore


def make_png(width: int = 100, height: int = 100, color: str = "blue") -> bytes:
    """테스트용 PNG 이미지를 메모리에서 생성한다."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buf, format="PNG")
    return buf.getvalue()


GENERATED_PNG = make_png(8, 8, "green")


class FakeGenerator:
    """process_image_and_prompt 호출을 기록하고 정해진 결과를 돌려준다.

    gate를 주면 테스트 스레드가 gate.set()할 때까지 결과를 붙잡아 둔다.
    """

    def __init__(self, result=None, error: Exception | None = None, gate: threading.Event | None = None):
        self.result = result
        self.error = error
        self.gate = gate
        self.calls: list[tuple] = []

    async def process_image_and_prompt(self, prompt, image, mask=None):
        self.calls.append((prompt, image, mask))
        if self.gate is not None:
            await asyncio.to_thread(self.gate.wait, 5)
        if self.error is not None:
            raise self.error
        return self.result


def success_result() -> GenerationResult:
    return GenerationResult(image=to_data_url(base64.b64encode(GENERATED_PNG).decode()))


def stored_ids(store: SqliteImageStore) -> list[str]:
    """SQLite 저장소에 남아 있는 모든 레코드 id."""
    with Session(store.engine) as session:
        return sorted(session.exec(select(StoredImage.id)).all())


def fail_writes(store, when, error: Exception | None = None):
    """when(image_id, metadata)이 참인 store() 호출만 실패시키는 대체 함수를 만든다."""
    real_store = store.store

    def _store(image_id, data, metadata=None):
        if when(image_id, metadata or {}):
            raise error or OSError("disk I/O error")
        return real_store(image_id, data, metadata)

    return _store


@pytest.fixture()
def sqlite_store():
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    store = SqliteImageStore(engine)
    yield store
    store.close()


@pytest.fixture()
def redis_store():
    store = RedisImageStore(fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True))
    yield store
    store.close()


@pytest.fixture(params=["sqlite", "redis"])
def store(request):
    """같은 계약 테스트를 두 저장소 구현에 모두 돌린다."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture()
def generator():
    return FakeGenerator(result=success_result())


@pytest.fixture()
def app_store(tmp_path):
    """앱용 저장소. 요청 스레드와 큐 워커가 동시에 쓰므로 파일 DB를 쓴다."""
    store = SqliteImageStore.from_url(f"sqlite:///{tmp_path / 'test.db'}")
    yield store
    store.close()


@pytest.fixture()
def client(app_store, generator, monkeypatch):
    monkeypatch.setattr(lifespan_module, "create_store", lambda _settings: app_store)
    monkeypatch.setattr(lifespan_module, "create_generator", lambda _settings: generator)
    monkeypatch.setattr(settings, "GENERATION_WORKERS", 1)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def upload_files():
    def _make(filename: str = "room.png", content_type: str = "image/png", width: int = 160, height: int = 90):
        return {"image": (filename, io.BytesIO(make_png(width, height)), content_type)}

    return _make
