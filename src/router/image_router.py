from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import PlainTextResponse

from core.dependencies import get_store
from core.exceptions import ImageNotFound
from model.image import original_id
from processor.comparison import DEFAULT_POSITION, clamp_position, divider_position
from service import image_service
from store.base import ImageStore

router = APIRouter(prefix="/api/image", tags=["image"])

CACHE_CONTROL = "public, max-age=31536000"


def _is_internal_id(image_id: str) -> bool:
    """{id}:original 같은 내부 형제 레코드 id. 공개 경로로는 조회할 수 없다."""
    return ":" in image_id


def public_image_id(image_id: str) -> str:
    if _is_internal_id(image_id):
        raise ImageNotFound
    return image_id


def _not_found() -> PlainTextResponse:
    return PlainTextResponse("Image not found", status_code=404)


def _image_response(store: ImageStore, record_id: str) -> Response:
    loaded = image_service.load_image(store, record_id)
    if loaded is None:
        return _not_found()
    data, content_type = loaded
    return Response(content=data, media_type=content_type, headers={"Cache-Control": CACHE_CONTROL})


@router.get("/{image_id}/status")
def image_status(image_id: str = Depends(public_image_id), store: ImageStore = Depends(get_store)):
    """처리 상태. error면 errorMessage, errorKind도 같이 준다."""
    return image_service.get_status(store, image_id)


@router.get("/{image_id}/original")
def get_original(image_id: str, store: ImageStore = Depends(get_store)):
    if _is_internal_id(image_id):
        return _not_found()
    return _image_response(store, original_id(image_id))


@router.get("/{image_id}/compare")
def compare_image(
    image_id: str = Depends(public_image_id),
    position: float | None = None,
    pointer_x: float | None = Query(None, alias="pointerX"),
    container_left: float = Query(0.0, alias="containerLeft"),
    container_width: float | None = Query(None, alias="containerWidth"),
    store: ImageStore = Depends(get_store),
):
    """전/후 합성 PNG.

    position(%)을 직접 주거나, 위젯처럼 pointerX + containerWidth(+ containerLeft)를 준다.
    """
    if position is not None:
        position = clamp_position(position)
    elif pointer_x is not None and container_width:
        position = divider_position(pointer_x, container_left, container_width)
    else:
        position = DEFAULT_POSITION

    png = image_service.build_comparison(store, image_id, position)
    if png is None:
        raise ImageNotFound
    return Response(content=png, media_type="image/png")


@router.get("/{image_id}")
def get_image(image_id: str, store: ImageStore = Depends(get_store)):
    """생성된 이미지 바이트. 저장된 fileType을 content type으로 쓴다."""
    if _is_internal_id(image_id):
        return _not_found()
    return _image_response(store, image_id)


@router.delete("/{image_id}")
def delete_image(image_id: str = Depends(public_image_id), store: ImageStore = Depends(get_store)):
    deleted = image_service.delete_image(store, image_id)
    if not deleted:
        raise ImageNotFound
    return {"deleted": deleted}
