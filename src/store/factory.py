from core.config import Settings
from store.base import ImageStore
from store.redis_store import RedisImageStore
from store.sqlite_store import SqliteImageStore


def create_store(settings: Settings) -> ImageStore:
    """설정(STORE_BACKEND)에 맞는 저장소를 만든다. 앱 시작 시 한 번만 호출."""
    if settings.STORE_BACKEND == "redis":
        return RedisImageStore.from_url(settings.REDIS_URL, ttl_seconds=settings.RECORD_TTL_SECONDS)
    return SqliteImageStore.from_url(settings.SQLITE_URL)
