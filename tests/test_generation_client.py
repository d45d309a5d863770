"""OpenAI 이미지 편집 클라이언트 테스트 (실제 API 호출 없음)."""

import asyncio
from types import SimpleNamespace

import httpx
import openai

from service.generation_client import (
    GenerationResult,
    OpenAIImageEditClient,
    split_data_url,
    to_data_url,
)

IMAGE = ("room.png", b"png-bytes", "image/png")
MASK = ("mask.png", b"mask-bytes", "image/png")


class _FakeImages:
    def __init__(self, response=None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.kwargs: dict | None = None

    async def edit(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def _client(images: _FakeImages) -> OpenAIImageEditClient:
    fake = SimpleNamespace(images=images)
    return OpenAIImageEditClient(api_key="sk-test", client=fake)


def _response(b64: str | None):
    return SimpleNamespace(data=[SimpleNamespace(b64_json=b64)])


def test_missing_api_key_returns_none():
    """API 키가 없으면 호출하지 않고 None."""
    client = OpenAIImageEditClient(api_key="")

    assert client.client is None
    assert asyncio.run(client.process_image_and_prompt("paint", IMAGE)) is None


def test_success_returns_data_url():
    images = _FakeImages(response=_response("aGVsbG8="))

    result = asyncio.run(_client(images).process_image_and_prompt("paint it", IMAGE))

    assert result == GenerationResult(image="data:image/png;base64,aGVsbG8=")
    assert result.ok
    assert images.kwargs == {
        "model": "gpt-image-1",
        "image": IMAGE,
        "prompt": "paint it",
        "n": 1,
        "size": "1024x1024",
    }


def test_mask_is_forwarded():
    images = _FakeImages(response=_response("aGVsbG8="))

    asyncio.run(_client(images).process_image_and_prompt("paint it", IMAGE, MASK))

    assert images.kwargs["mask"] == MASK


def test_api_error_returns_provider_message():
    """API 오류는 예외 대신 메시지를 그대로 담아 돌려준다."""
    request = httpx.Request("POST", "https://api.openai.com/v1/images/edits")
    error = openai.BadRequestError(
        "Your request was rejected as a result of our safety system.",
        response=httpx.Response(400, request=request),
        body=None,
    )
    images = _FakeImages(error=error)

    result = asyncio.run(_client(images).process_image_and_prompt("paint", IMAGE))

    assert not result.ok
    assert result.error == "Your request was rejected as a result of our safety system."


def test_empty_payload_is_an_error():
    images = _FakeImages(response=_response(None))

    result = asyncio.run(_client(images).process_image_and_prompt("paint", IMAGE))

    assert result.image is None
    assert result.error


def test_data_url_helpers():
    url = to_data_url("QUJD", "image/webp")

    assert url == "data:image/webp;base64,QUJD"
    assert split_data_url(url) == ("image/webp", "QUJD")
