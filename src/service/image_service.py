import asyncio
import base64
import io
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger
from PIL import Image

from core.config import Settings
from core.exceptions import (
    GenerationErrorKind,
    GenerationNotConfigured,
    ImageNotFound,
    ImageRequired,
    InvalidColor,
    PromptRequired,
    StorageFailure,
    UnsupportedMediaType,
)
from model.image import ImageStatus, original_id
from processor.comparison import compose_comparison
from processor.normalizer import normalize_or_original
from service.generation_client import ImageGenerator, split_data_url
from service.generation_queue import GenerationJob
from service.prompts import build_wall_prompt, is_valid_hex
from store.base import STORAGE_ERRORS, ImageStore
from utility.timer import timer

DEFAULT_CONTENT_TYPE = "image/jpeg"
GENERIC_ERROR_MESSAGE = "이미지 생성 중 알 수 없는 오류가 발생했습니다"
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"
RESULT_NOT_SAVED_MESSAGE = "생성된 이미지를 저장하지 못했습니다"


@dataclass
class UploadedFile:
    file_name: str
    content_type: str
    data: bytes
    last_modified: datetime | None = None


def _now() -> str:
    return datetime.now(UTC).isoformat()


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """저장소 I/O 오류를 로그로 남기고 StorageFailure(500)로 바꾼다."""
    try:
        yield
    except STORAGE_ERRORS as e:
        logger.exception(f"Storage error while {action}")
        raise StorageFailure from e


# --- 업로드 ---


def resolve_prompt(prompt: str | None, color_hex: str | None) -> str:
    """colorHex가 있으면 벽 페인트 프롬프트를 만들고, 자유 프롬프트는 뒤에 덧붙인다."""
    prompt = (prompt or "").strip()
    color_hex = (color_hex or "").strip()

    if color_hex:
        if not is_valid_hex(color_hex):
            raise InvalidColor
        wall_prompt = build_wall_prompt(color_hex)
        return f"{wall_prompt} {prompt}" if prompt else wall_prompt

    if not prompt:
        raise PromptRequired
    return prompt


def validate_upload(upload: UploadedFile | None, settings: Settings) -> UploadedFile:
    if upload is None or not upload.data:
        raise ImageRequired
    if settings.ENFORCE_CONTENT_TYPE and upload.content_type not in settings.ALLOWED_CONTENT_TYPES:
        raise UnsupportedMediaType(f"지원하지 않는 이미지 형식입니다: {upload.content_type}")
    return upload


def create_submission(
    store: ImageStore,
    settings: Settings,
    image: UploadedFile | None,
    prompt: str | None = None,
    color_hex: str | None = None,
    mask: UploadedFile | None = None,
) -> GenerationJob:
    """입력을 검증하고 원본과 pending 레코드를 저장한 뒤 생성 작업을 만든다.

    1. 이미지/프롬프트 검증 (실패 시 4xx)
    2. 정사각형 1024 PNG로 정규화 (실패하면 원본 그대로)
    3. 원본 형제 레코드 → pending 레코드 순서로 저장. pending 쓰기가 실패하면
       원본을 지운다 (pending은 항상 마지막에 생긴다)
    """
    image = validate_upload(image, settings)
    final_prompt = resolve_prompt(prompt, color_hex)

    normalized = normalize_or_original(
        image.data, image.file_name, image.content_type, image.last_modified, settings.IMAGE_SIZE
    )
    mask_file = None
    if mask is not None and mask.data:
        # 이미지가 변환되지 않았으면 크기가 달라지므로 마스크도 그대로 보낸다
        if normalized.converted:
            normalized_mask = normalize_or_original(
                mask.data, mask.file_name, mask.content_type, mask.last_modified, settings.IMAGE_SIZE
            )
            mask_file = (normalized_mask.file_name, normalized_mask.data, normalized_mask.media_type)
        else:
            mask_file = (mask.file_name, mask.data, mask.content_type)

    image_id = str(uuid.uuid4())
    timestamp = _now()
    extra = {"prompt": final_prompt}
    if color_hex:
        extra["colorHex"] = color_hex.upper()

    original_meta = {
        "status": ImageStatus.COMPLETED,
        "fileName": normalized.file_name,
        "timestamp": timestamp,
        "fileType": normalized.media_type,
    }
    if normalized.last_modified is not None:
        original_meta["lastModified"] = normalized.last_modified.isoformat()

    with storage_errors("storing pending image"):
        store.store(original_id(image_id), normalized.data, original_meta)
        try:
            store.store(
                image_id,
                None,
                {"status": ImageStatus.PENDING, "fileName": image.file_name, "timestamp": timestamp, **extra},
            )
        except STORAGE_ERRORS:
            abandon_submission(store, image_id)
            raise
    logger.info(f"Image {image_id} stored as pending ({image.file_name})")

    return GenerationJob(
        image_id=image_id,
        prompt=final_prompt,
        image=(normalized.file_name, normalized.data, normalized.media_type),
        mask=mask_file,
        metadata=extra,
    )


def abandon_submission(store: ImageStore, image_id: str) -> None:
    """접수를 끝내지 못한 업로드의 레코드를 지운다. 워커가 받지 않은 pending이 남지 않게 한다.

    정리 중 오류는 로그만 남긴다. 호출자는 원래 예외를 다시 올린다.
    """
    for record_id in (image_id, original_id(image_id)):
        try:
            store.delete(record_id)
        except STORAGE_ERRORS:
            logger.exception(f"Failed to clean up record {record_id}")
    logger.warning(f"Submission {image_id} abandoned")


# --- 생성 작업 (큐 워커에서 실행) ---


def _store_error(
    store: ImageStore, job: GenerationJob, message: str, kind: GenerationErrorKind
) -> None:
    store.store(
        job.image_id,
        None,
        {
            "status": ImageStatus.ERROR,
            "fileName": job.image[0],
            "timestamp": _now(),
            "errorMessage": message,
            "errorKind": kind,
            **job.metadata,
        },
    )
    logger.warning(f"Image {job.image_id} failed ({kind}): {message}")


def _store_completed(store: ImageStore, job: GenerationJob, data_url: str) -> None:
    media_type, b64 = split_data_url(data_url)
    store.store(
        job.image_id,
        b64,
        {
            "status": ImageStatus.COMPLETED,
            "fileName": job.image[0],
            "timestamp": _now(),
            "fileType": media_type,
            **job.metadata,
        },
    )
    logger.info(f"Image {job.image_id} completed")


async def run_generation(store: ImageStore, generator: ImageGenerator, job: GenerationJob) -> None:
    """생성 API를 호출하고 결과를 레코드의 최종 상태(completed | error)로 한 번 저장한다."""
    with timer(f"generation {job.image_id}"):
        try:
            result = await generator.process_image_and_prompt(job.prompt, job.image, job.mask)
        except Exception:
            await asyncio.to_thread(
                _store_error, store, job, GENERIC_ERROR_MESSAGE, GenerationErrorKind.INTERNAL
            )
            raise

    if result is None:
        await asyncio.to_thread(
            _store_error,
            store,
            job,
            GenerationNotConfigured.message,
            GenerationErrorKind.CONFIGURATION,
        )
    elif not result.ok:
        await asyncio.to_thread(
            _store_error,
            store,
            job,
            result.error or GENERIC_ERROR_MESSAGE,
            GenerationErrorKind.PROVIDER,
        )
    else:
        try:
            await asyncio.to_thread(_store_completed, store, job, result.image)
        except STORAGE_ERRORS:
            # 결과를 못 쓰면 최소한 error로 끝낸다. 이것도 실패하면 워커 로그로 남는다
            await asyncio.to_thread(
                _store_error, store, job, RESULT_NOT_SAVED_MESSAGE, GenerationErrorKind.INTERNAL
            )
            raise


# --- 조회 ---


def get_status(store: ImageStore, image_id: str) -> dict:
    with storage_errors("fetching image status"):
        status = store.get_field(image_id, "status")
        if status is None:
            raise ImageNotFound

        if status == ImageStatus.ERROR:
            message = store.get_field(image_id, "errorMessage")
            kind = store.get_field(image_id, "errorKind")
            return {
                "status": status,
                "errorMessage": message or UNKNOWN_ERROR_MESSAGE,
                "errorKind": kind or GenerationErrorKind.INTERNAL.value,
            }
    return {"status": status}


def load_image(store: ImageStore, image_id: str) -> tuple[bytes, str] | None:
    """저장된 이미지 바이트와 content type. 없거나 아직 생성 전이면 None."""
    with storage_errors("retrieving image"):
        record = store.get(image_id)
    if record is None or not record.data:
        return None
    return base64.b64decode(record.data), record.get("fileType", DEFAULT_CONTENT_TYPE)


def build_comparison(store: ImageStore, image_id: str, position: float) -> bytes | None:
    """원본(before)과 결과(after)를 position(%)에서 나눈 PNG. 한쪽이라도 없으면 None."""
    after = load_image(store, image_id)
    before = load_image(store, original_id(image_id))
    if after is None or before is None:
        return None

    with Image.open(io.BytesIO(before[0])) as before_img, Image.open(io.BytesIO(after[0])) as after_img:
        composite = compose_comparison(before_img, after_img, position)

    buf = io.BytesIO()
    composite.save(buf, format="PNG")
    return buf.getvalue()


def delete_image(store: ImageStore, image_id: str) -> int:
    """결과 레코드와 원본 형제 레코드를 함께 지운다."""
    with storage_errors("deleting image"):
        return store.delete(image_id) + store.delete(original_id(image_id))
