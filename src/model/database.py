import os

from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

import model.image  # noqa: F401  테이블 등록


def build_engine(database_url: str) -> Engine:
    """SQLite 엔진을 만든다.

    - 여러 요청 스레드가 엔진 하나를 공유하므로 check_same_thread=False
    - in-memory DB는 StaticPool을 써야 모든 커넥션이 같은 DB를 본다
    - 파일 DB면 상위 디렉토리를 미리 만들어 둔다
    """
    url = make_url(database_url)
    kwargs: dict = {}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            db_dir = os.path.dirname(os.path.abspath(url.database))
            os.makedirs(db_dir, exist_ok=True)
    return create_engine(database_url, **kwargs)


def create_db_and_tables(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
