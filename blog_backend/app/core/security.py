# app/core/security.py
"""
외부 인증 서비스가 발급한 Bearer 토큰을 검증해 사용자 ID를 얻는 모듈.

토큰 발급/로그인은 이 서버의 책임이 아니며, 여기서는 '토큰 → 사용자 ID' 검증만 수행합니다.
검증 결과는 주입된 TTLCache에 보관하여 같은 토큰의 반복 디코딩을 피합니다.
"""
import logging
import time
from typing import Callable, Mapping, Optional

from flask import current_app, request
from flask_jwt_extended import decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from app.core.exceptions import AuthError
from app.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


def get_bearer_token(headers: Mapping[str, str]) -> Optional[str]:
    """Authorization 헤더에서 'Bearer <token>' 형식의 토큰을 추출합니다."""
    auth_header = headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


class IdentityProvider:
    """토큰 검증 결과(사용자 ID)를 제공하는 서비스."""

    def __init__(self, cache: TTLCache, clock: Callable[[], float] = time.time):
        self.cache = cache
        self._clock = clock

    def resolve_user_id(self, token: Optional[str]) -> Optional[str]:
        """
        토큰을 검증하여 사용자 ID를 반환합니다.
        토큰이 없거나, 만료되었거나, 서명이 잘못된 경우 예외 없이 None(익명)을 반환합니다.
        """
        if not token:
            return None

        cached_user_id = self.cache.get(token)
        if cached_user_id is not None:
            return cached_user_id

        try:
            payload = decode_token(token)
        except (JWTExtendedException, PyJWTError) as e:
            logger.warning(f"토큰 검증 실패: {e}")
            return None

        user_id = payload.get(current_app.config['JWT_IDENTITY_CLAIM'])
        if user_id is None or user_id == "":
            logger.warning("토큰에 사용자 식별 클레임이 없습니다.")
            return None
        user_id = str(user_id)

        # 토큰 만료 시각보다 오래 캐시하지 않음
        exp = payload.get('exp')
        ttl = exp - self._clock() if exp else None
        self.cache.set(token, user_id, ttl=ttl)
        return user_id

    def resolve_request(self) -> Optional[str]:
        """현재 요청의 Authorization 헤더로 사용자 ID를 조회합니다."""
        return self.resolve_user_id(get_bearer_token(request.headers))

    def require_request_user(self) -> str:
        """인증이 필수인 요청에서 사용. 익명이면 AuthError를 발생시킵니다."""
        token = get_bearer_token(request.headers)
        if not token:
            raise AuthError("로그인이 필요합니다.")
        user_id = self.resolve_user_id(token)
        if not user_id:
            raise AuthError("로그인이 만료되었습니다. 다시 로그인해주세요.", error_code="TOKEN_INVALID")
        return user_id

    def invalidate(self, token: str) -> None:
        """캐시된 검증 결과를 즉시 폐기합니다 (토큰 폐기/사용자 변경 시 호출)."""
        self.cache.invalidate(token)
