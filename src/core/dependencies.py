"""라우터 의존성.

저장소와 작업 큐는 lifespan에서 한 번 만들어 app.state에 올려 두고,
핸들러는 Depends로 같은 인스턴스를 받아 쓴다 (요청마다 새로 만들지 않음).
"""

from fastapi import Request

from core.config import Settings
from service.generation_queue import GenerationQueue
from store.base import ImageStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ImageStore:
    return request.app.state.store


def get_queue(request: Request) -> GenerationQueue:
    return request.app.state.queue
