"""앱 전역 커스텀 예외 클래스.

AppException을 상속하면 전역 핸들러(error_handlers.py)가 자동으로
{"error": "...", "error_code": "..."} 형식의 JSON 응답을 생성한다.
"""

from enum import StrEnum


class AppException(Exception):
    """앱 전역 베이스 예외.

    서브클래스에서 status_code, error_code, message를 클래스 변수로 정의하면
    전역 핸들러가 해당 값을 읽어 HTTP 응답을 생성한다.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    message: str = "서버 내부 오류가 발생했습니다"

    def __init__(self, message: str | None = None):
        if message:
            self.message = message
        super().__init__(self.message)


# --- 업로드 입력 관련 ---


class ImageRequired(AppException):
    status_code = 400
    error_code = "IMAGE_REQUIRED"
    message = "이미지 파일이 필요합니다"


class PromptRequired(AppException):
    status_code = 400
    error_code = "PROMPT_REQUIRED"
    message = "프롬프트 또는 색상을 입력해야 합니다"


class InvalidColor(AppException):
    status_code = 400
    error_code = "INVALID_COLOR"
    message = "색상은 #RRGGBB 형식이어야 합니다"


class UnsupportedMediaType(AppException):
    status_code = 415
    error_code = "UNSUPPORTED_MEDIA_TYPE"
    message = "지원하지 않는 이미지 형식입니다"


class RequestInvalid(AppException):
    status_code = 422
    error_code = "VALIDATION_ERROR"
    message = "요청 값이 올바르지 않습니다"


# --- 이미지 조회 관련 ---


class ImageNotFound(AppException):
    status_code = 404
    error_code = "IMAGE_NOT_FOUND"
    message = "이미지를 찾을 수 없습니다"


# --- 인프라 관련 ---


class StorageFailure(AppException):
    status_code = 500
    error_code = "STORAGE_ERROR"
    message = "이미지와 프롬프트를 처리하지 못했습니다"


class QueueUnavailable(AppException):
    status_code = 503
    error_code = "QUEUE_UNAVAILABLE"
    message = "이미지 생성 작업을 받을 수 없는 상태입니다"


# --- 생성 작업 실패 분류 ---
# HTTP로 올라가지 않고 레코드의 errorKind로 저장된다.


class GenerationErrorKind(StrEnum):
    PROVIDER = "provider"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


class GenerationNotConfigured(AppException):
    status_code = 500
    error_code = "GENERATION_NOT_CONFIGURED"
    message = "이미지 생성 API 키가 설정되지 않았습니다"
