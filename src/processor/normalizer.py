"""
업로드 이미지 정규화.

아무 래스터 이미지를 받아 가운데 정사각형으로 자르고 1024x1024 PNG로 다시 인코딩한다.
브라우저(static/app.js)도 제출 전에 canvas로 같은 작업을 하므로, 이미 정규화된
입력이면 여기서는 크기만 확인하고 지나간다.
"""

import io
import os
from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from PIL import Image

TARGET_SIZE = 1024
PNG_MEDIA_TYPE = "image/png"


@dataclass(frozen=True)
class CropBox:
    source_x: int
    source_y: int
    source_width: int
    source_height: int

    @property
    def box(self) -> tuple[int, int, int, int]:
        """PIL crop()용 (left, upper, right, lower)."""
        return (
            self.source_x,
            self.source_y,
            self.source_x + self.source_width,
            self.source_y + self.source_height,
        )


@dataclass
class NormalizedImage:
    data: bytes
    file_name: str
    media_type: str
    last_modified: datetime | None = None
    crop: CropBox | None = None

    @property
    def converted(self) -> bool:
        return self.crop is not None


def square_crop_box(width: int, height: int) -> CropBox:
    """가운데 정사각형 영역을 계산한다.

    가로가 길면 좌우를, 세로가 길면 위아래를 대칭으로 잘라낸다.
    1600x900 → CropBox(350, 0, 900, 900)
    """
    if width > height:
        return CropBox((width - height) // 2, 0, height, height)
    if height > width:
        return CropBox(0, (height - width) // 2, width, width)
    return CropBox(0, 0, width, height)


def png_file_name(file_name: str) -> str:
    stem, _ = os.path.splitext(file_name or "image")
    return f"{stem}.png"


def normalize_image(
    data: bytes,
    file_name: str,
    last_modified: datetime | None = None,
    size: int = TARGET_SIZE,
) -> NormalizedImage:
    """정사각형 크롭 + size x size 리사이즈 + PNG 인코딩.

    원본보다 작아도 업스케일한다. 디코딩에 실패하면 PIL 예외가 그대로 올라간다.
    """
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        crop = square_crop_box(img.width, img.height)
        # 마스크의 알파 채널을 보존해야 하므로 RGBA로 통일
        square = img.convert("RGBA").crop(crop.box)
        result = square.resize((size, size), Image.LANCZOS)

    buf = io.BytesIO()
    result.save(buf, format="PNG")
    return NormalizedImage(
        data=buf.getvalue(),
        file_name=png_file_name(file_name),
        media_type=PNG_MEDIA_TYPE,
        last_modified=last_modified,
        crop=crop,
    )


def normalize_or_original(
    data: bytes,
    file_name: str,
    media_type: str,
    last_modified: datetime | None = None,
    size: int = TARGET_SIZE,
) -> NormalizedImage:
    """정규화에 실패하면 원본 파일을 그대로 돌려준다. 예외를 올리지 않는다."""
    try:
        return normalize_image(data, file_name, last_modified, size)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning(f"Image normalization failed for {file_name!r}, using original: {e}")
        return NormalizedImage(
            data=data,
            file_name=file_name,
            media_type=media_type,
            last_modified=last_modified,
        )
