"""처리 시간 측정 유틸리티."""

import time
from contextlib import contextmanager

from loguru import logger

SLOW_GENERATION_SECONDS = 60.0


@contextmanager
def timer(label: str = "", slow_after: float = SLOW_GENERATION_SECONDS):
    """컨텍스트 매니저: 블록 실행 시간을 측정한다.

    사용법:
        with timer("generation abc") as t:
            await client.process_image_and_prompt(...)
        print(t.elapsed)

    slow_after초를 넘기면 WARNING으로 기록한다.
    """
    t = _TimerResult()
    start = time.perf_counter()
    try:
        yield t
    finally:
        t.elapsed = time.perf_counter() - start
        if label:
            level = "WARNING" if t.elapsed > slow_after else "INFO"
            logger.log(level, f"[{label}] {t.elapsed:.3f}s")


class _TimerResult:
    elapsed: float = 0.0
