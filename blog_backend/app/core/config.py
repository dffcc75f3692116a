# app/core/config.py

import os # 'os' 모듈: 환경 변수를 읽기 위해 사용합니다.


def _env_int(key: str, default: int) -> int:
    """정수형 환경 변수를 읽습니다. 값이 없거나 잘못되면 기본값을 사용합니다."""
    try:
        return int(os.getenv(key, default))
    except (TypeError, ValueError):
        return default


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 검증에 사용되는 키. 토큰 발급은 외부 인증 서비스가 담당하고, 이 서버는 검증만 합니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    # 토큰 payload에서 사용자 ID를 담고 있는 클레임 이름
    JWT_IDENTITY_CLAIM = os.getenv('JWT_IDENTITY_CLAIM', 'sub')

    # 댓글 저장소 백엔드: 'firestore' (운영) 또는 'memory' (테스트/로컬)
    COMMENT_STORE_BACKEND = os.getenv('COMMENT_STORE_BACKEND', 'firestore')
    COMMENTS_COLLECTION = os.getenv('COMMENTS_COLLECTION', 'comments')
    FIRESTORE_TIMEOUT_SECONDS = _env_int('FIRESTORE_TIMEOUT_SECONDS', 10)

    # 캐시 정책 (초 단위)
    FEED_CACHE_MAX_AGE = _env_int('FEED_CACHE_MAX_AGE', 300)
    FEED_CACHE_S_MAXAGE = _env_int('FEED_CACHE_S_MAXAGE', 600)
    COUNT_CACHE_MAX_AGE = _env_int('COUNT_CACHE_MAX_AGE', 300)
    TOKEN_CACHE_TTL_SECONDS = _env_int('TOKEN_CACHE_TTL_SECONDS', 300)

    # 아바타를 지정하지 않은 댓글에 저장되는 기본 경로
    DEFAULT_AVATAR = os.getenv('DEFAULT_AVATAR', './images/avatar.svg')


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다. Config 클래스를 상속받아 공통 설정을 그대로 사용합니다."""
    DEBUG = True
    # 개발용 Firebase 프로젝트의 서비스 계정 키 파일 경로
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False # 테스트 환경에서는 보통 디버그 모드를 끕니다.
    # 테스트는 외부 DB 없이 메모리 저장소로 실행합니다.
    COMMENT_STORE_BACKEND = 'memory'
    JWT_SECRET_KEY = 'testing-secret-key-that-is-long-enough-for-hs256'
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')


class ProductionConfig(Config):
    """운영 환경 설정. 디버그 정보는 절대 응답에 포함하지 않습니다."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')


# config_by_name: FLASK_ENV 값(또는 create_app 인자)에 따라 적절한 설정 클래스를 선택하는 데 사용됩니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
