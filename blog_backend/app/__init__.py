# app/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import atexit
import logging
from typing import Optional
from flask import Flask, jsonify
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager
from werkzeug.exceptions import HTTPException

# - 설정 / 공통
from app.core.config import config_by_name
from app.core.exceptions import BlogError, StoreUnavailableError
from app.core.security import IdentityProvider
from app.utils.ttl_cache import TTLCache
from app.cli import register_commands

# - API 블루프린트
from app.api.auth.routes import auth_bp
from app.api.comments.routes import comments_bp
from app.api.likes.routes import likes_bp

# - 서비스 모듈
from app.services.comment_store import CommentStore, InMemoryCommentStore
from app.services.firestore_service import FirestoreClientPool, FirestoreCommentStore
from app.api.comments.services import CommentService
from app.api.comments.feed import CommentFeedBuilder
from app.api.likes.services import LikeService


def _create_comment_store(app: Flask) -> CommentStore:
    """설정된 백엔드에 맞는 댓글 저장소를 생성합니다."""
    backend = app.config['COMMENT_STORE_BACKEND']
    default_avatar = app.config['DEFAULT_AVATAR']

    if backend == 'memory':
        logging.warning("메모리 댓글 저장소를 사용합니다. 프로세스가 종료되면 데이터가 사라집니다.")
        return InMemoryCommentStore(default_avatar=default_avatar)

    if backend == 'firestore':
        # 클라이언트는 첫 요청 시점에 생성되어 프로세스 전체에서 재사용됩니다.
        pool = FirestoreClientPool(credentials_path=app.config.get('FIREBASE_CREDENTIALS_PATH'))
        store = FirestoreCommentStore(
            pool,
            collection_name=app.config['COMMENTS_COLLECTION'],
            timeout=app.config['FIRESTORE_TIMEOUT_SECONDS'],
            default_avatar=default_avatar
        )
        # 저장소의 조회용 스레드 풀도 클라이언트와 마찬가지로 프로세스 종료 시 정리
        atexit.register(store.close)
        return store

    raise ValueError(f"지원하지 않는 COMMENT_STORE_BACKEND 값입니다: {backend}")


def create_app(config_name: Optional[str] = None, comment_store: Optional[CommentStore] = None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' / 'testing' / 'production'. 없으면 FLASK_ENV를 사용합니다.
    :param comment_store: 외부에서 만든 저장소를 주입할 때 사용 (테스트 등)
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 초기화
    # =====================================================================================
    JWTManager(app)

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 다른 서비스의 기반이 되는 저장소/인증 서비스 먼저 생성
    store = comment_store or _create_comment_store(app)
    app.services['comment_store'] = store
    app.services['identity'] = IdentityProvider(
        cache=TTLCache(default_ttl=app.config['TOKEN_CACHE_TTL_SECONDS'])
    )

    # 5-2. 저장소를 주입받는 도메인 서비스 생성
    app.services['comments'] = CommentService(store)
    app.services['likes'] = LikeService(store)
    app.services['feed'] = CommentFeedBuilder(
        store,
        max_age=app.config['FEED_CACHE_MAX_AGE'],
        s_maxage=app.config['FEED_CACHE_S_MAXAGE']
    )
    logging.info(f"Comment services initialized with '{type(store).__name__}'")

    # =====================================================================================
    # 6. 블루프린트 및 CLI 명령 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(comments_bp, url_prefix='/api/comments')
    app.register_blueprint(likes_bp, url_prefix='/api/likes')
    register_commands(app)

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "message": "요청 데이터가 유효하지 않습니다.", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(BlogError)
    def handle_blog_error(err):
        # 도메인 예외는 status_code / error_code를 그대로 사용
        response = jsonify({"error_code": err.error_code, "message": err.message})
        response.status_code = err.status_code
        if isinstance(err, StoreUnavailableError):
            response.headers['Retry-After'] = str(err.retry_after_seconds)
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        response = {"error_code": err.name.upper().replace(' ', '_'), "message": err.description}
        return jsonify(response), err.code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        if app.debug:
            response["debug"] = repr(err)
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
