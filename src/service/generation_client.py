"""OpenAI 이미지 편집(edit) API 클라이언트."""

from dataclasses import dataclass
from typing import Protocol

import openai
from loguru import logger
from openai import AsyncOpenAI

# (파일 이름, 바이트, 미디어 타입): openai SDK가 그대로 받는 업로드 튜플
FileTuple = tuple[str, bytes, str]

OUTPUT_MEDIA_TYPE = "image/png"


@dataclass
class GenerationResult:
    """성공이면 image(data URL), 실패면 error(제공자 메시지)만 채워진다."""

    image: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.image is not None


class ImageGenerator(Protocol):
    async def process_image_and_prompt(
        self, prompt: str, image: FileTuple, mask: FileTuple | None = None
    ) -> GenerationResult | None: ...


def to_data_url(b64: str, media_type: str = OUTPUT_MEDIA_TYPE) -> str:
    return f"data:{media_type};base64,{b64}"


def split_data_url(data_url: str) -> tuple[str, str]:
    """data URL → (미디어 타입, base64 본문)."""
    header, _, body = data_url.partition(";base64,")
    media_type = header.removeprefix("data:") or OUTPUT_MEDIA_TYPE
    return media_type, body


class OpenAIImageEditClient:
    """프롬프트 + 원본(+마스크)을 edit 엔드포인트로 보내 정사각형 이미지 1장을 받는다.

    API 키가 없으면 None을 반환하고, API 오류는 예외 대신 GenerationResult(error=...)로
    돌려준다. 결과를 레코드에 저장하는 것은 호출자 몫이다.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-image-1",
        size: str = "1024x1024",
        client: AsyncOpenAI | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.size = size
        self._client = client

    @property
    def client(self) -> AsyncOpenAI | None:
        if self._client is None and self.api_key:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def process_image_and_prompt(
        self, prompt: str, image: FileTuple, mask: FileTuple | None = None
    ) -> GenerationResult | None:
        client = self.client
        if client is None:
            logger.error("OPENAI_API_KEY is not set; skipping image generation")
            return None

        request: dict = {
            "model": self.model,
            "image": image,
            "prompt": prompt,
            "n": 1,
            "size": self.size,
        }
        if mask is not None:
            request["mask"] = mask

        logger.info(f"Requesting image edit ({self.model}, {self.size}, mask={mask is not None})")
        try:
            response = await client.images.edit(**request)
        except openai.APIError as e:
            logger.warning(f"Image edit failed: {e.message}")
            return GenerationResult(error=e.message)

        b64 = response.data[0].b64_json if response.data else None
        if not b64:
            return GenerationResult(error="Image generation returned no image data")
        return GenerationResult(image=to_data_url(b64))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
