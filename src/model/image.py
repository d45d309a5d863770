from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class ImageStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not ImageStatus.PENDING


# 레코드에 직접 저장되는 필드: 저장 키 -> 속성 이름 (나머지는 모두 JSON 메타데이터)
DIRECT_FIELDS = {
    "data": "data",
    "status": "status",
    "fileName": "file_name",
    "timestamp": "timestamp",
}


def record_key(image_id: str) -> str:
    return f"image:{image_id}"


def original_id(image_id: str) -> str:
    """업로드 원본을 저장하는 형제 레코드의 id."""
    return f"{image_id}:original"


@dataclass
class ImageRecord:
    """저장소에서 읽어 온 이미지 레코드 한 건.

    data/status/fileName/timestamp는 그대로, 나머지 키는 JSON 디코딩된 값으로
    metadata에 들어간다.
    """

    id: str
    data: str | None = None
    status: str | None = None
    file_name: str | None = None
    timestamp: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        if name in DIRECT_FIELDS:
            value = getattr(self, DIRECT_FIELDS[name])
            return default if value is None else value
        return self.metadata.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            key: getattr(self, attr) for key, attr in DIRECT_FIELDS.items()
        }
        result.update(self.metadata)
        return result


# --- SQLite 테이블 ---


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StoredImage(SQLModel, table=True):
    __tablename__ = "images"

    id: str = Field(primary_key=True)
    data: str | None = None
    status: str | None = None
    file_name: str | None = None
    timestamp: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ImageMetadata(SQLModel, table=True):
    __tablename__ = "metadata"
    __table_args__ = (UniqueConstraint("image_id", "key", name="idx_metadata_image_key"),)

    id: int | None = Field(default=None, primary_key=True)
    image_id: str = Field(foreign_key="images.id", index=True)
    key: str
    value: str
