"""이미지 레코드 저장소 인터페이스.

Redis와 SQLite 구현이 같은 계약을 따른다.

- store: 넘긴 직접 필드만 덮어쓰고, 나머지 메타데이터는 통째로 교체한다
- get / get_field: 없으면 None (예외 아님)
- delete: 삭제된 레코드 수
- 하부 I/O 오류는 그대로 호출자에게 올라간다
"""

import base64
import json
from abc import ABC, abstractmethod
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from model.image import DIRECT_FIELDS, ImageRecord, ImageStatus

LOG_PREVIEW_CHARS = 100

# 저장소 구현이 올리는 I/O 오류
STORAGE_ERRORS = (RedisError, SQLAlchemyError, OSError)


class ImageStore(ABC):
    backend: str = ""

    @abstractmethod
    def store(
        self,
        image_id: str,
        data: str | bytes | None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """레코드를 저장하고 저장 키("image:{id}")를 반환한다."""

    @abstractmethod
    def get(self, image_id: str) -> ImageRecord | None: ...

    @abstractmethod
    def get_field(self, image_id: str, field: str) -> Any: ...

    @abstractmethod
    def delete(self, image_id: str) -> int: ...

    @abstractmethod
    def ping(self) -> bool: ...

    def close(self) -> None:
        pass


# --- 구현 공용 헬퍼 ---


def encode_data(data: str | bytes | None) -> str | None:
    """bytes는 base64 문자열로 바꿔 저장한다."""
    if isinstance(data, bytes):
        return base64.b64encode(data).decode("ascii")
    return data


def split_metadata(metadata: dict[str, Any]) -> tuple[dict[str, str], dict[str, Any]]:
    """메타데이터를 직접 필드(status, fileName, timestamp)와 나머지로 나눈다.

    data는 별도 인자로만 받는다. status는 ImageStatus 값만 허용한다.
    """
    direct: dict[str, str] = {}
    extra: dict[str, Any] = {}
    for key, value in metadata.items():
        if key == "data":
            raise ValueError("data must be passed as the data argument, not metadata")
        if key in DIRECT_FIELDS:
            if value is None:
                continue
            if key == "status":
                value = ImageStatus(value).value
            direct[key] = str(value)
        else:
            extra[key] = value
    return direct, extra


def encode_value(value: Any) -> str:
    return json.dumps(value)


def decode_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def build_record(image_id: str, fields: dict[str, str]) -> ImageRecord:
    """저장소에서 읽은 문자열 필드 묶음을 ImageRecord로 만든다."""
    record = ImageRecord(id=image_id)
    for key, raw in fields.items():
        if key in DIRECT_FIELDS:
            setattr(record, DIRECT_FIELDS[key], raw)
        else:
            record.metadata[key] = decode_value(raw)
    return record


def preview(value: str | None) -> str:
    return value[:LOG_PREVIEW_CHARS] if value else "[empty]"
