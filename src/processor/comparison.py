"""
전/후 비교 위젯.

브라우저 위젯(static/app.js)과 같은 규칙으로 구분선 위치를 계산하고,
서버에서 바로 볼 수 있는 비교 이미지를 합성한다.
"""

from PIL import Image, ImageDraw

DEFAULT_POSITION = 50.0
DIVIDER_WIDTH = 4


def clamp_position(position: float) -> float:
    return max(0.0, min(100.0, position))


def divider_position(pointer_x: float, container_left: float, container_width: float) -> float:
    """포인터 x좌표를 컨테이너 폭 기준 백분율로 바꾼다. [0, 100]으로 잘린다.

    폭 400, 왼쪽 끝 0, 포인터 300 → 75.0
    """
    if container_width <= 0:
        return DEFAULT_POSITION
    return clamp_position((pointer_x - container_left) / container_width * 100)


def compose_comparison(
    before: Image.Image, after: Image.Image, position: float = DEFAULT_POSITION
) -> Image.Image:
    """구분선 왼쪽은 after, 오른쪽은 before를 보여주는 이미지를 만든다.

    after는 before 크기에 맞춰 리사이즈한다.
    """
    base = before.convert("RGB")
    overlay = after.convert("RGB")
    if overlay.size != base.size:
        overlay = overlay.resize(base.size, Image.LANCZOS)

    split_x = round(base.width * clamp_position(position) / 100)
    result = base.copy()
    if split_x > 0:
        result.paste(overlay.crop((0, 0, split_x, base.height)), (0, 0))

    draw = ImageDraw.Draw(result)
    left = max(0, split_x - DIVIDER_WIDTH // 2)
    right = min(base.width - 1, left + DIVIDER_WIDTH - 1)
    draw.rectangle((left, 0, right, base.height - 1), fill=(255, 255, 255))
    return result
