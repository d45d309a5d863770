"""이미지 생성 작업 큐.

업로드 핸들러는 pending 레코드를 쓰고 작업을 큐에 넣은 뒤 바로 응답한다.
실제 생성은 앱 lifespan이 띄운 asyncio 워커들이 처리한다.

- 요청 핸들러에서 떼어 낸 코루틴(create_task 후 방치)과 달리 워커의 수명은
  start()/stop()으로 앱과 함께 관리된다
- 작업 안에서 난 예외는 로그로 남기고 failed로 센다 (재시도 없음)
- stats로 대기/처리 중/완료/실패 수를 볼 수 있다 (/health에 노출)
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field

from loguru import logger

from core.exceptions import QueueUnavailable
from service.generation_client import FileTuple


@dataclass
class GenerationJob:
    image_id: str
    prompt: str
    image: FileTuple
    mask: FileTuple | None = None
    # 최종 상태를 쓸 때 다시 넣어야 하는 메타데이터 (prompt, colorHex)
    metadata: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.monotonic)

    @property
    def waited(self) -> float:
        return time.monotonic() - self.submitted_at


@dataclass
class QueueStats:
    workers: int = 0
    queued: int = 0
    in_flight: int = 0
    processed: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


JobHandler = Callable[[GenerationJob], Awaitable[None]]


class GenerationQueue:
    def __init__(self, handler: JobHandler, workers: int = 2):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.handler = handler
        self.worker_count = workers
        self._queue: asyncio.Queue[GenerationJob] | None = None
        self._tasks: list[asyncio.Task] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._in_flight = 0
        self._processed = 0
        self._failed = 0

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def stats(self) -> QueueStats:
        return QueueStats(
            workers=len(self._tasks),
            queued=self._queue.qsize() if self._queue else 0,
            in_flight=self._in_flight,
            processed=self._processed,
            failed=self._failed,
        )

    async def start(self) -> None:
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"generation-worker-{i}")
            for i in range(self.worker_count)
        ]
        logger.info(f"Generation queue started ({self.worker_count} workers)")

    def submit(self, job: GenerationJob) -> None:
        """작업을 넣는다. 이벤트 루프 스레드가 아니어도 호출할 수 있다."""
        if not self.running or self._queue is None or self._loop is None:
            raise QueueUnavailable

        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is self._loop:
            self._queue.put_nowait(job)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, job)
        logger.debug(f"Queued generation job {job.image_id}")

    async def join(self) -> None:
        """지금까지 넣은 작업이 모두 끝날 때까지 기다린다."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, drain_timeout: float | None = 30.0) -> None:
        """남은 작업을 drain_timeout 동안 마저 처리한 뒤 워커를 멈춘다."""
        if not self.running:
            return

        if drain_timeout:
            try:
                await asyncio.wait_for(self.join(), timeout=drain_timeout)
            except TimeoutError:
                logger.warning(
                    f"Generation queue stopped with {self.stats.queued} job(s) still queued"
                )

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info(
            f"Generation queue stopped (processed={self._processed}, failed={self._failed})"
        )

    async def _worker(self, index: int) -> None:
        assert self._queue is not None
        while True:
            job = await self._queue.get()
            self._in_flight += 1
            logger.debug(f"[worker {index}] job {job.image_id} picked up after {job.waited:.2f}s")
            try:
                await self.handler(job)
                self._processed += 1
            except Exception:
                self._failed += 1
                logger.exception(f"[worker {index}] generation job {job.image_id} failed")
            finally:
                self._in_flight -= 1
                self._queue.task_done()
