# app/core/exceptions.py
"""
댓글 도메인 전반에서 사용하는 예외 계층.

모든 예외는 BlogError를 상속하며, app/__init__.py의 전역 에러 핸들러가
status_code / error_code를 읽어 {"error_code", "message"} 형태로 응답합니다.
"""
from typing import Optional


class BlogError(Exception):
    """도메인 예외의 공통 부모 클래스."""
    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"
    default_message = "서버 내부 오류가 발생했습니다."

    def __init__(self, message: Optional[str] = None, error_code: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if error_code:
            self.error_code = error_code


class ValidationError(BlogError):
    """필수 필드 누락, 길이 초과, 잘못된 action/ID 형식 등 입력 오류."""
    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "요청 데이터가 유효하지 않습니다."


class NotFoundError(BlogError):
    """부모 댓글이나 좋아요 대상이 존재하지 않는 경우."""
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "요청한 리소스를 찾을 수 없습니다."


class AuthError(BlogError):
    """인증이 필요한 작업에 토큰이 없거나 유효하지 않은 경우."""
    status_code = 401
    error_code = "AUTH_REQUIRED"
    default_message = "로그인이 필요합니다."


class ConflictError(BlogError):
    """좋아요 상태 전이의 사전 조건 위반."""
    status_code = 409
    error_code = "CONFLICT"
    default_message = "현재 상태에서 수행할 수 없는 요청입니다."


class AlreadyLikedError(ConflictError):
    error_code = "ALREADY_LIKED"
    default_message = "이미 좋아요를 누른 대상입니다."


class NotLikedError(ConflictError):
    error_code = "NOT_LIKED"
    default_message = "좋아요를 누르지 않은 대상입니다."


class StoreUnavailableError(BlogError):
    """
    저장소 타임아웃/연결 실패.
    입력 검증과 무관하므로 클라이언트는 백오프 후 그대로 재시도할 수 있습니다.
    """
    status_code = 503
    error_code = "STORE_UNAVAILABLE"
    default_message = "저장소에 일시적으로 연결할 수 없습니다. 잠시 후 다시 시도해주세요."
    retry_after_seconds = 5
