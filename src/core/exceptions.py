"""앱 전역 커스텀 예외 클래스.

AppException을 상속하면 전역 핸들러(error_handlers.py)가 자동으로
{"error_code": "...", "message": "..."} 형식의 JSON 응답을 생성한다.
파이프라인/저장소 계층도 같은 예외를 던지므로 라우터에서 따로 변환하지 않는다.
"""


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


# --- 요청 관련 ---


class ValidationFailed(AppException):
    status_code = 400
    error_code = "VALIDATION_ERROR"
    message = "요청 파라미터가 올바르지 않습니다"


# --- 레지스트리 / 저장소 관련 ---


class ImageNotFound(AppException):
    status_code = 404
    error_code = "IMAGE_NOT_FOUND"
    message = "이미지를 찾을 수 없습니다"


class ArtifactNotFound(AppException):
    """아티팩트 파일이 없음 (Janitor가 이미 삭제했거나 생성된 적 없음)."""

    status_code = 404
    error_code = "ARTIFACT_NOT_FOUND"
    message = "파일을 찾을 수 없습니다. 다시 업로드해 주세요"


class TransientStorageError(AppException):
    """디스크 I/O 실패. 한 번 재시도해도 안전하다."""

    status_code = 500
    error_code = "STORAGE_ERROR"
    message = "파일 저장 중 오류가 발생했습니다"


# --- 변환 파이프라인 관련 ---


class DecodeFailed(AppException):
    status_code = 400
    error_code = "DECODE_ERROR"
    message = "지원하지 않거나 손상된 이미지입니다"


class EncodeFailed(AppException):
    status_code = 500
    error_code = "ENCODE_ERROR"
    message = "이미지 인코딩에 실패했습니다"


class TransformTimeout(AppException):
    status_code = 500
    error_code = "TRANSFORM_TIMEOUT"
    message = "이미지 처리 시간이 초과되었습니다"
