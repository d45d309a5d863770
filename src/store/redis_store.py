from typing import Any

import redis
from loguru import logger
from redis.client import Pipeline

from model.image import DIRECT_FIELDS, ImageRecord, record_key
from store.base import (
    ImageStore,
    build_record,
    decode_value,
    encode_data,
    encode_value,
    preview,
    split_metadata,
)

EXPIRY_SECONDS = 60 * 60 * 24 * 7


class RedisImageStore(ImageStore):
    """레코드 하나를 image:{id} 해시 하나로 저장한다.

    클라이언트는 앱 시작 시 한 번 만들어 주입한다. redis-py 커넥션 풀이
    여러 요청 스레드에서 같이 쓰인다.
    """

    backend = "redis"

    def __init__(self, client: redis.Redis, ttl_seconds: int = EXPIRY_SECONDS):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int = EXPIRY_SECONDS) -> "RedisImageStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), ttl_seconds)

    def store(
        self,
        image_id: str,
        data: str | bytes | None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        image_str = encode_data(data)
        direct, extra = split_metadata(metadata or {})
        key = record_key(image_id)

        logger.debug(f"storing image in Redis with key: {key}, {preview(image_str)}")

        mapping: dict[str, str] = {}
        if image_str is not None:
            mapping["data"] = image_str
        mapping.update(direct)
        mapping.update({k: encode_value(v) for k, v in extra.items()})

        def _write(pipe: Pipeline) -> None:
            # WATCH 상태에서는 즉시 실행된다
            existing = pipe.hkeys(key)
            stale = [k for k in existing if k not in DIRECT_FIELDS and k not in extra]
            if not existing and not mapping:
                return

            pipe.multi()
            if stale:
                pipe.hdel(key, *stale)
            if mapping:
                pipe.hset(key, mapping=mapping)
            if self.ttl_seconds > 0:
                pipe.expire(key, self.ttl_seconds)

        self.client.transaction(_write, key)
        return key

    def get(self, image_id: str) -> ImageRecord | None:
        fields = self.client.hgetall(record_key(image_id))
        if not fields:
            return None
        return build_record(image_id, fields)

    def get_field(self, image_id: str, field: str) -> Any:
        value = self.client.hget(record_key(image_id), field)
        if value is None:
            return None
        if field in DIRECT_FIELDS:
            return value
        return decode_value(value)

    def delete(self, image_id: str) -> int:
        return self.client.delete(record_key(image_id))

    def ping(self) -> bool:
        return bool(self.client.ping())

    def close(self) -> None:
        self.client.close()
