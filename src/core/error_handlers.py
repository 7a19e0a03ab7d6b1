"""전역 예외 핸들러.

AppException 계열 예외와 FastAPI 요청 검증 예외를 잡아 일관된 JSON 응답으로 변환한다.
main.py에서 app.add_exception_handler()로 등록한다.
스택 트레이스나 내부 경로는 응답에 절대 포함하지 않는다.
"""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.exceptions import AppException, ValidationFailed


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
        },
    )


def _describe(error: dict) -> str:
    # loc 예: ("body", "params", "resize", "width") → "params.resize.width"
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    msg = error.get("msg", "invalid value")
    return f"{field}: {msg}" if field else msg


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """pydantic 검증 실패(기본 422)를 400 VALIDATION_ERROR 형식으로 바꾼다."""
    errors = exc.errors()
    message = _describe(errors[0]) if errors else ValidationFailed.message
    return JSONResponse(
        status_code=ValidationFailed.status_code,
        content={
            "error_code": ValidationFailed.error_code,
            "message": message,
        },
    )
