from datetime import UTC, datetime
from typing import Any

from loguru import logger
from sqlalchemy import delete, text
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from model.database import build_engine, create_db_and_tables
from model.image import DIRECT_FIELDS, ImageMetadata, ImageRecord, StoredImage, record_key
from store.base import (
    ImageStore,
    decode_value,
    encode_data,
    encode_value,
    preview,
    split_metadata,
)


class SqliteImageStore(ImageStore):
    """images 테이블 + metadata 테이블로 레코드를 저장한다.

    직접 필드는 images 행에, 나머지 메타데이터는 (image_id, key) 단위로
    metadata 행에 JSON 문자열로 들어간다. 만료는 없다.
    """

    backend = "sqlite"

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> "SqliteImageStore":
        engine = build_engine(database_url)
        create_db_and_tables(engine)
        return cls(engine)

    def store(
        self,
        image_id: str,
        data: str | bytes | None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        image_str = encode_data(data)
        direct, extra = split_metadata(metadata or {})

        logger.debug(f"storing image in SQLite with id: {image_id}, {preview(image_str)}")

        # 세션 하나 = 트랜잭션 하나. 커밋 전에 예외가 나면 세션 종료 시 롤백된다
        with Session(self.engine) as session:
            row = session.get(StoredImage, image_id)
            if row is None:
                if image_str is None and not direct and not extra:
                    return record_key(image_id)
                row = StoredImage(id=image_id)
                session.add(row)
                session.flush()
            else:
                row.updated_at = datetime.now(UTC)
                session.exec(delete(ImageMetadata).where(ImageMetadata.image_id == image_id))

            if image_str is not None:
                row.data = image_str
            for key, value in direct.items():
                setattr(row, DIRECT_FIELDS[key], value)

            for key, value in extra.items():
                session.add(ImageMetadata(image_id=image_id, key=key, value=encode_value(value)))

            session.commit()

        return record_key(image_id)

    def get(self, image_id: str) -> ImageRecord | None:
        with Session(self.engine) as session:
            row = session.get(StoredImage, image_id)
            if row is None:
                return None

            rows = session.exec(
                select(ImageMetadata).where(ImageMetadata.image_id == image_id)
            ).all()
            return ImageRecord(
                id=row.id,
                data=row.data,
                status=row.status,
                file_name=row.file_name,
                timestamp=row.timestamp,
                metadata={m.key: decode_value(m.value) for m in rows},
            )

    def get_field(self, image_id: str, field: str) -> Any:
        with Session(self.engine) as session:
            if field in DIRECT_FIELDS:
                column = getattr(StoredImage, DIRECT_FIELDS[field])
                return session.exec(select(column).where(StoredImage.id == image_id)).first()

            value = session.exec(
                select(ImageMetadata.value).where(
                    ImageMetadata.image_id == image_id,
                    ImageMetadata.key == field,
                )
            ).first()
            return None if value is None else decode_value(value)

    def delete(self, image_id: str) -> int:
        with Session(self.engine) as session:
            session.exec(delete(ImageMetadata).where(ImageMetadata.image_id == image_id))
            result = session.exec(delete(StoredImage).where(StoredImage.id == image_id))
            session.commit()
            return result.rowcount

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()
