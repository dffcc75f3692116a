# app/services/firestore_service.py
import atexit
import functools
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions

from app.core.exceptions import NotFoundError, StoreUnavailableError, ValidationError
from app.models.comment import Comment, CommentDraft, Reply, validate_draft
from app.services.comment_store import (
    DEFAULT_AVATAR,
    LIKE_ACTIONS,
    CommentStore,
    LikeOutcome,
    LikeTarget,
    build_comment_record,
    build_reply_record,
    clamp_page_size,
    new_record_id,
    next_reply_id,
    normalize_page_number,
)
from app.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)

# 재시도하면 성공할 수 있는 저장소 오류들 (타임아웃, 연결 실패, 트랜잭션 경합)
RETRYABLE_STORE_ERRORS = (
    google_exceptions.DeadlineExceeded,
    google_exceptions.ServiceUnavailable,
    google_exceptions.GatewayTimeout,
    google_exceptions.RetryError,
    google_exceptions.Aborted,
)

TRANSACTION_MAX_ATTEMPTS = 5


class FirestoreClientPool:
    """
    프로세스 전체에서 공유하는 Firestore 클라이언트.
    - 최초 사용 시점에 Firebase 앱을 초기화하고 클라이언트를 생성합니다.
    - 이후 호출에서는 같은 클라이언트를 재사용합니다.
    - 프로세스 종료 시(atexit) 한 번만 닫습니다.
    """
    def __init__(self, credentials_path: Optional[str] = None):
        self.credentials_path = credentials_path
        self._client = None
        self._lock = threading.Lock()

    def acquire(self):
        with self._lock:
            if self._client is None:
                if not firebase_admin._apps:
                    if not self.credentials_path or not os.path.exists(self.credentials_path):
                        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {self.credentials_path}")
                    firebase_admin.initialize_app(credentials.Certificate(self.credentials_path))
                self._client = firestore.client()
                atexit.register(self.close)
                logging.info("Firestore client initialized successfully")
            return self._client

    def close(self) -> None:
        with self._lock:
            if self._client is None:
                return
            close = getattr(self._client, 'close', None)
            if close:
                close()
            self._client = None


def _translate_store_errors(func):
    """Firestore 타임아웃/연결 오류를 StoreUnavailableError로 변환합니다."""
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except RETRYABLE_STORE_ERRORS as e:
            logger.error(f"Firestore 호출 실패 ({func.__name__}): {e}", exc_info=True)
            raise StoreUnavailableError() from e
        except ValueError as e:
            # 트랜잭션 재시도를 모두 소진하면 Aborted를 원인으로 하는 ValueError가 발생함
            if not isinstance(e.__cause__, google_exceptions.Aborted):
                raise
            logger.error(f"Firestore 트랜잭션 경합으로 실패 ({func.__name__}): {e}", exc_info=True)
            raise StoreUnavailableError() from e
    return wrapper


class FirestoreCommentStore(CommentStore):
    """
    Firestore 'comments' 컬렉션 기반 댓글 저장소.
    답글은 각 댓글 문서의 'replies' 배열에 포함되며, 답글 추가와 좋아요 변경은 모두 트랜잭션으로 처리합니다.
    """
    def __init__(self, pool: FirestoreClientPool, collection_name: str = 'comments',
                 timeout: float = 10, default_avatar: str = DEFAULT_AVATAR):
        super().__init__(default_avatar)
        self.pool = pool
        self.collection_name = collection_name
        self.timeout = timeout
        # 페이지 조회와 개수 집계를 동시에 실행하기 위한 작은 스레드 풀
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='comment-store')

    @property
    def db(self):
        return self.pool.acquire()

    @property
    def comments_ref(self):
        return self.db.collection(self.collection_name)

    @_translate_store_errors
    def insert_comment(self, draft: CommentDraft) -> Comment:
        draft = validate_draft(draft)
        comment_id = new_record_id()
        record = build_comment_record(draft, comment_id, DateTimeUtils.now(), self.default_avatar)
        self.comments_ref.document(comment_id).set(DateTimeUtils.for_firestore(record), timeout=self.timeout)
        logger.info(f"Firestore 댓글 저장 성공 (comment_id: {comment_id})")
        return Comment.from_dict(record)

    @_translate_store_errors
    def append_reply(self, parent_id: str, draft: CommentDraft) -> Reply:
        draft = validate_draft(draft)
        parent_ref = self.comments_ref.document(parent_id)
        now = DateTimeUtils.now()

        @firestore.transactional
        def _append_in_transaction(transaction):
            snapshot = parent_ref.get(transaction=transaction, timeout=self.timeout)
            if not snapshot.exists:
                raise NotFoundError("답글을 달 댓글이 존재하지 않습니다.", error_code="COMMENT_NOT_FOUND")

            replies = list(snapshot.to_dict().get('replies') or [])
            reply = build_reply_record(draft, next_reply_id(replies), now, self.default_avatar)
            replies.append(DateTimeUtils.for_firestore(reply))
            transaction.update(parent_ref, {'replies': replies, 'reply_count': len(replies)})
            return reply

        reply = _append_in_transaction(self.db.transaction(max_attempts=TRANSACTION_MAX_ATTEMPTS))
        logger.info(f"Firestore 답글 저장 성공 (parent_id: {parent_id}, reply_id: {reply['reply_id']})")
        return Reply.from_dict(reply)

    @_translate_store_errors
    def get_page(self, page_number: int, page_size: int) -> Tuple[List[Comment], int]:
        page_number = normalize_page_number(page_number)
        page_size = clamp_page_size(page_size)

        # 두 조회는 서로 독립적인 읽기이므로 동시에 실행합니다.
        count_future = self._executor.submit(self.count_total)
        query = (
            self.comments_ref
            .order_by('created_at', direction=firestore.Query.DESCENDING)
            .order_by('inserted_at', direction=firestore.Query.ASCENDING)
            .offset((page_number - 1) * page_size)
            .limit(page_size)
        )
        comments = [
            Comment.from_dict(DateTimeUtils.from_firestore(doc.to_dict()))
            for doc in query.stream(timeout=self.timeout)
        ]
        return comments, count_future.result()

    @_translate_store_errors
    def count_total(self) -> int:
        # count()는 문서를 가져오지 않고 서버에서 개수만 집계합니다.
        result = self.comments_ref.count(alias='comments').get(timeout=self.timeout)
        return int(result[0][0].value)

    @_translate_store_errors
    def count_all(self) -> int:
        aggregation = self.comments_ref.count(alias='comments').sum('reply_count', alias='replies')
        result = aggregation.get(timeout=self.timeout)
        values = {item.alias: item.value for item in result[0]}
        return int(values.get('comments') or 0) + int(values.get('replies') or 0)

    @_translate_store_errors
    def apply_like(self, target: LikeTarget, user_id: str, action: str) -> LikeOutcome:
        if action not in LIKE_ACTIONS:
            raise ValidationError("잘못된 작업 유형입니다. ('like' 또는 'unlike')")
        comment_ref = self.comments_ref.document(target.comment_id)

        @firestore.transactional
        def _like_in_transaction(transaction):
            # 트랜잭션 안에서 읽은 상태를 기준으로 검사하고 기록합니다.
            # 동시에 다른 요청이 문서를 바꾸면 Firestore가 이 함수를 다시 실행합니다.
            snapshot = comment_ref.get(transaction=transaction, timeout=self.timeout)
            if not snapshot.exists:
                raise NotFoundError("댓글이 존재하지 않습니다.", error_code="COMMENT_NOT_FOUND")
            outcome, updates = self._apply_like_to_document(snapshot.to_dict(), target, user_id, action)
            transaction.update(comment_ref, updates)
            return outcome

        return _like_in_transaction(self.db.transaction(max_attempts=TRANSACTION_MAX_ATTEMPTS))

    @_translate_store_errors
    def reconcile_likes(self) -> int:
        fixed = 0
        for doc in self.comments_ref.stream(timeout=self.timeout):
            fixed += self._reconcile_in_transaction(doc.reference)
        return fixed

    def _reconcile_in_transaction(self, doc_ref) -> int:
        @firestore.transactional
        def _reconcile(transaction):
            snapshot = doc_ref.get(transaction=transaction, timeout=self.timeout)
            if not snapshot.exists:
                return 0
            fixed, updates = self._reconcile_document(snapshot.to_dict())
            if updates:
                transaction.update(doc_ref, updates)
            return fixed

        fixed = _reconcile(self.db.transaction(max_attempts=TRANSACTION_MAX_ATTEMPTS))
        if fixed:
            logger.warning(f"좋아요 수 보정 (comment_id: {doc_ref.id}, 보정 대상: {fixed})")
        return fixed

    def close(self) -> None:
        self._executor.shutdown(wait=False)
