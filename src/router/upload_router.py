from datetime import UTC, datetime
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool

from core.config import Settings
from core.dependencies import get_queue, get_settings, get_store
from service import image_service
from service.generation_queue import GenerationQueue
from service.image_service import UploadedFile
from service.prompts import PAINT_COLORS
from store.base import ImageStore

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

router = APIRouter(tags=["upload"])


async def _read_upload(file: UploadFile | None, last_modified_ms: int | None = None) -> UploadedFile | None:
    if file is None:
        return None
    data = await file.read()
    last_modified = (
        datetime.fromtimestamp(last_modified_ms / 1000, tz=UTC) if last_modified_ms else None
    )
    return UploadedFile(
        file_name=file.filename or "image",
        content_type=file.content_type or "application/octet-stream",
        data=data,
        last_modified=last_modified,
    )


@router.get("/", include_in_schema=False)
def index():
    return FileResponse(STATIC_DIR / "index.html")


@router.post("/")
async def upload_image(
    prompt: str | None = Form(None),
    color_hex: str | None = Form(None, alias="colorHex"),
    last_modified: int | None = Form(None, alias="lastModified"),
    image: UploadFile | None = File(None),
    mask: UploadFile | None = File(None),
    store: ImageStore = Depends(get_store),
    queue: GenerationQueue = Depends(get_queue),
    settings: Settings = Depends(get_settings),
):
    """업로드 → pending 레코드 저장 → 생성 작업 큐잉 → imageId 즉시 반환.

    생성 결과는 /api/image/{imageId}/status를 폴링해서 확인한다.
    """
    upload = await _read_upload(image, last_modified)
    mask_upload = await _read_upload(mask)

    # 정규화와 저장소 쓰기는 블로킹이므로 스레드풀에서
    job = await run_in_threadpool(
        image_service.create_submission,
        store,
        settings,
        upload,
        prompt,
        color_hex,
        mask_upload,
    )
    try:
        queue.submit(job)
    except Exception:
        # 큐에 못 넣은 pending은 처리할 워커가 없으므로 지운다
        await run_in_threadpool(image_service.abandon_submission, store, job.image_id)
        raise
    return {"response": {"imageId": job.image_id}}


@router.get("/api/colors")
def list_colors():
    """색상 선택기용 페인트 팔레트."""
    return PAINT_COLORS


@router.get("/api/client-config")
def client_config(settings: Settings = Depends(get_settings)):
    """브라우저 페이지가 쓰는 설정값."""
    return {"pollIntervalMs": int(settings.POLL_INTERVAL_SECONDS * 1000)}
