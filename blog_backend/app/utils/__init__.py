# app/utils/__init__.py
"""
유틸리티 모듈 패키지

시간 처리(datetime_utils)와 토큰 검증 결과 캐시(ttl_cache)를 포함합니다.
"""

from .datetime_utils import DateTimeUtils
from .ttl_cache import TTLCache

__all__ = [
    'DateTimeUtils',
    'TTLCache',
]
