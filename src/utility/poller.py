"""상태 폴링 클라이언트.

브라우저(static/app.js)가 하는 것과 같은 루프를 파이썬에서 돌린다.
POLL_INTERVAL_SECONDS(기본 2초)마다 /api/image/{id}/status를 조회하고, completed/error가 나오면 멈춘다.
"""

import time
from collections.abc import Callable

import httpx
from loguru import logger

from core.config import settings
from model.image import ImageStatus

DEFAULT_INTERVAL = settings.POLL_INTERVAL_SECONDS


def _is_terminal(status: str | None) -> bool:
    try:
        return ImageStatus(status).is_terminal
    except ValueError:
        return False


class PollingTimeout(Exception):
    def __init__(self, image_id: str, last_status: str | None):
        self.image_id = image_id
        self.last_status = last_status
        super().__init__(f"Image {image_id} still {last_status or 'unknown'} after timeout")


def wait_for_terminal_status(
    http: httpx.Client,
    image_id: str,
    interval: float = DEFAULT_INTERVAL,
    timeout: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """최종 상태 payload({"status": ...} 또는 error 포함)를 반환한다.

    - 404는 httpx.HTTPStatusError로 올라간다
    - 일시적인 상태 조회 실패(5xx, 연결 오류)는 로그만 남기고 다음 주기에 다시 본다
    - timeout을 넘기면 PollingTimeout
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    last_status: str | None = None

    while True:
        try:
            resp = http.get(f"/api/image/{image_id}/status")
            if resp.status_code == 404:
                resp.raise_for_status()
            if resp.is_success:
                payload = resp.json()
                last_status = payload.get("status")
                if _is_terminal(last_status):
                    return payload
            else:
                logger.warning(f"Status check for {image_id} returned {resp.status_code}")
        except httpx.TransportError as e:
            logger.warning(f"Status check for {image_id} failed: {e}")

        if deadline is not None and time.monotonic() >= deadline:
            raise PollingTimeout(image_id, last_status)
        sleep(interval)


def fetch_image(http: httpx.Client, image_id: str) -> tuple[bytes, str]:
    """최종 이미지 바이트와 content type."""
    resp = http.get(f"/api/image/{image_id}")
    resp.raise_for_status()
    return resp.content, resp.headers.get("content-type", "application/octet-stream")
