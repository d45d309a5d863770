from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # 앱 설정
    APP_NAME: str = "wall-repaint"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 서버 설정
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # 저장소 설정 (sqlite | redis)
    STORE_BACKEND: Literal["sqlite", "redis"] = "sqlite"
    REDIS_URL: str = "redis://localhost:6379"
    SQLITE_URL: str = "sqlite:///./data.db"
    # Redis 전용. 0이면 만료 없음
    RECORD_TTL_SECONDS: int = 60 * 60 * 24 * 7

    # 이미지 생성 API
    OPENAI_API_KEY: str = ""
    OPENAI_IMAGE_MODEL: str = "gpt-image-1"
    IMAGE_SIZE: int = 1024
    GENERATION_WORKERS: int = 2

    # 업로드 검증
    ENFORCE_CONTENT_TYPE: bool = True
    ALLOWED_CONTENT_TYPES: list[str] = ["image/png", "image/jpeg", "image/webp"]

    # 브라우저 폴링 주기
    POLL_INTERVAL_SECONDS: float = 2.0

    @property
    def image_size_param(self) -> str:
        return f"{self.IMAGE_SIZE}x{self.IMAGE_SIZE}"

    @property
    def generation_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY)

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
