"""전역 예외 핸들러.

AppException 계열 예외와 요청 검증 오류를 잡아 일관된 JSON 응답으로 변환한다.
main.py에서 app.add_exception_handler()로 등록한다.
"""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from core.exceptions import AppException, RequestInvalid


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} | {exc.error_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "error_code": exc.error_code,
        },
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """FastAPI 요청 검증 실패(422)도 같은 {"error", "error_code"} 형식으로 바꾼다."""
    errors = exc.errors()
    message = RequestInvalid.message
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{message}: {field} ({first.get('msg', '')})" if field else message
    logger.debug(f"{request.method} {request.url.path} | validation failed: {errors}")
    return JSONResponse(
        status_code=RequestInvalid.status_code,
        content={
            "error": message,
            "error_code": RequestInvalid.error_code,
        },
    )
