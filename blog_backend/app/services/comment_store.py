# app/services/comment_store.py
"""
댓글 저장소(Comment Store) 추상화와 메모리 구현.

- CommentStore: 모든 저장소 백엔드가 지켜야 하는 연산과 불변식을 정의합니다.
- InMemoryCommentStore: 테스트/로컬 실행용 구현. 프로세스 내 락으로 원자성을 보장합니다.
- Firestore 구현은 app/services/firestore_service.py에 있습니다.

좋아요 처리 전략: '원자적 조건부 갱신'.
멤버십 검사와 쓰기를 하나의 원자 단위(Firestore 트랜잭션 / 락) 안에서 수행하고,
likes 값은 항상 liked_by 집합의 크기로부터 다시 계산합니다. 별도의 무조건 증감은 사용하지 않습니다.
"""
import abc
import copy
import logging
import threading
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.core.exceptions import (
    AlreadyLikedError,
    NotFoundError,
    NotLikedError,
    ValidationError,
)
from app.models.comment import Comment, CommentDraft, Reply, validate_draft
from app.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)

LIKE = 'like'
UNLIKE = 'unlike'
LIKE_ACTIONS = (LIKE, UNLIKE)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
DEFAULT_AVATAR = './images/avatar.svg'


@dataclass(frozen=True)
class LikeTarget:
    """
    좋아요 대상. reply_id/reply_index가 모두 없으면 댓글 자체가 대상입니다.
    reply_index는 구버전 클라이언트 호환용이며, 가능하면 reply_id를 사용해야 합니다.
    """
    comment_id: str
    reply_id: Optional[str] = None
    reply_index: Optional[int] = None

    @property
    def is_reply(self) -> bool:
        return self.reply_id is not None or self.reply_index is not None


@dataclass(frozen=True)
class LikeOutcome:
    subject_id: str
    likes: int
    has_liked: bool


def new_record_id() -> str:
    return uuid.uuid4().hex


def normalize_page_number(page_number: Optional[int]) -> int:
    if not page_number or page_number < 1:
        return 1
    return int(page_number)


def clamp_page_size(page_size: Optional[int]) -> int:
    if page_size is None:
        return DEFAULT_PAGE_SIZE
    return max(1, min(MAX_PAGE_SIZE, int(page_size)))


def next_reply_id(existing_replies: List[Dict[str, Any]]) -> str:
    """부모 댓글 안에서 기존 답글 ID와 겹치지 않는 새 ID를 생성합니다."""
    taken = {r.get('reply_id') for r in existing_replies}
    reply_id = new_record_id()
    while reply_id in taken:
        reply_id = new_record_id()
    return reply_id


def build_comment_record(draft: CommentDraft, comment_id: str, now: datetime, default_avatar: str) -> Dict[str, Any]:
    comment = Comment(
        comment_id=comment_id,
        username=draft.username,
        avatar=draft.avatar or default_avatar,
        content=draft.content,
        created_at=draft.created_at or now,
        inserted_at=now,
    )
    return asdict(comment)


def build_reply_record(draft: CommentDraft, reply_id: str, now: datetime, default_avatar: str) -> Dict[str, Any]:
    reply = Reply(
        reply_id=reply_id,
        username=draft.username,
        avatar=draft.avatar or default_avatar,
        content=draft.content,
        created_at=draft.created_at or now,
        reply_to_user=draft.reply_to_user,
    )
    return asdict(reply)


def locate_reply(replies: List[Dict[str, Any]], target: LikeTarget) -> int:
    """답글 ID(우선) 또는 위치 인덱스로 답글의 현재 위치를 찾습니다."""
    if target.reply_id is not None:
        for index, reply in enumerate(replies):
            if reply.get('reply_id') == target.reply_id:
                return index
        raise NotFoundError("답글을 찾을 수 없습니다.", error_code="REPLY_NOT_FOUND")

    if target.reply_index is None or not 0 <= target.reply_index < len(replies):
        raise NotFoundError("답글을 찾을 수 없습니다.", error_code="REPLY_NOT_FOUND")
    return target.reply_index


def apply_like_action(subject: Dict[str, Any], user_id: str, action: str) -> Tuple[int, bool]:
    """
    댓글/답글 dict에 좋아요 상태 전이를 적용합니다 (subject를 직접 수정).

    - like: NotLiked 상태에서만 허용, 아니면 AlreadyLikedError
    - unlike: Liked 상태에서만 허용, 아니면 NotLikedError
    likes는 liked_by 크기로 다시 계산하므로 두 값이 어긋나지 않습니다.
    """
    liked_by = list(dict.fromkeys(subject.get('liked_by') or []))

    if action == LIKE:
        if user_id in liked_by:
            raise AlreadyLikedError()
        liked_by.append(user_id)
    elif action == UNLIKE:
        if user_id not in liked_by:
            raise NotLikedError()
        liked_by.remove(user_id)
    else:
        raise ValidationError("잘못된 작업 유형입니다. ('like' 또는 'unlike')")

    subject['liked_by'] = liked_by
    subject['likes'] = len(liked_by)
    return subject['likes'], action == LIKE


def reconcile_subject(subject: Dict[str, Any]) -> bool:
    """liked_by 중복을 제거하고 likes := |liked_by|로 맞춥니다. 수정이 있었으면 True."""
    liked_by = list(dict.fromkeys(subject.get('liked_by') or []))
    if liked_by == subject.get('liked_by') and subject.get('likes') == len(liked_by):
        return False
    subject['liked_by'] = liked_by
    subject['likes'] = len(liked_by)
    return True


class CommentStore(abc.ABC):
    """댓글/답글의 영속화를 담당하는 저장소 인터페이스."""

    def __init__(self, default_avatar: str = DEFAULT_AVATAR):
        self.default_avatar = default_avatar

    @abc.abstractmethod
    def insert_comment(self, draft: CommentDraft) -> Comment:
        """검증 후 새 최상위 댓글을 저장하고, 부여된 ID를 포함한 레코드를 반환합니다."""

    @abc.abstractmethod
    def append_reply(self, parent_id: str, draft: CommentDraft) -> Reply:
        """부모 댓글의 replies 끝에 답글을 원자적으로 추가합니다."""

    @abc.abstractmethod
    def get_page(self, page_number: int, page_size: int) -> Tuple[List[Comment], int]:
        """created_at 내림차순(동일 시각은 삽입 순) 페이지와 최상위 댓글 총 개수를 반환합니다."""

    @abc.abstractmethod
    def count_total(self) -> int:
        """최상위 댓글 개수 (답글 제외)."""

    @abc.abstractmethod
    def count_all(self) -> int:
        """최상위 댓글 + 모든 답글 개수."""

    @abc.abstractmethod
    def apply_like(self, target: LikeTarget, user_id: str, action: str) -> LikeOutcome:
        """좋아요/좋아요 취소를 하나의 원자적 조건부 갱신으로 적용합니다."""

    @abc.abstractmethod
    def reconcile_likes(self) -> int:
        """모든 댓글/답글의 likes를 |liked_by|로 보정하고, 보정된 대상 수를 반환합니다."""

    def close(self) -> None:
        """저장소가 보유한 자원을 해제합니다."""

    def _apply_like_to_document(self, data: Dict[str, Any], target: LikeTarget,
                                user_id: str, action: str) -> Tuple[LikeOutcome, Dict[str, Any]]:
        """
        댓글 문서 dict에 좋아요를 적용하고 (결과, 문서에 기록할 필드) 튜플을 반환합니다.
        백엔드는 반환된 필드를 같은 원자 단위 안에서 기록해야 합니다.
        """
        if not target.is_reply:
            likes, has_liked = apply_like_action(data, user_id, action)
            updates = {'likes': data['likes'], 'liked_by': data['liked_by']}
            return LikeOutcome(target.comment_id, likes, has_liked), updates

        replies = [dict(r) for r in data.get('replies') or []]
        index = locate_reply(replies, target)
        likes, has_liked = apply_like_action(replies[index], user_id, action)
        return LikeOutcome(replies[index]['reply_id'], likes, has_liked), {'replies': replies}

    @staticmethod
    def _reconcile_document(data: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        """문서 하나를 보정합니다. (보정된 대상 수, 기록할 필드)를 반환합니다."""
        fixed = 0
        updates: Dict[str, Any] = {}
        if reconcile_subject(data):
            fixed += 1
            updates.update({'likes': data['likes'], 'liked_by': data['liked_by']})

        replies = [dict(r) for r in data.get('replies') or []]
        replies_fixed = sum(1 for reply in replies if reconcile_subject(reply))
        if replies_fixed:
            fixed += replies_fixed
            updates['replies'] = replies
        if data.get('reply_count') != len(replies):
            updates['reply_count'] = len(replies)
        return fixed, updates


class InMemoryCommentStore(CommentStore):
    """
    프로세스 메모리에 문서를 보관하는 저장소.
    Firestore 문서와 같은 dict 구조를 사용하며, 모든 변경은 하나의 락 안에서 수행됩니다.
    """
    def __init__(self, default_avatar: str = DEFAULT_AVATAR,
                 clock: Callable[[], datetime] = DateTimeUtils.now):
        super().__init__(default_avatar)
        self._clock = clock
        self._documents: List[Dict[str, Any]] = []  # 삽입 순서 유지
        self._by_id: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def insert_comment(self, draft: CommentDraft) -> Comment:
        draft = validate_draft(draft)
        with self._lock:
            comment_id = new_record_id()
            while comment_id in self._by_id:
                comment_id = new_record_id()
            record = build_comment_record(draft, comment_id, self._clock(), self.default_avatar)
            self._documents.append(record)
            self._by_id[comment_id] = record
            logger.info(f"댓글 저장 완료 (comment_id: {comment_id})")
            return Comment.from_dict(copy.deepcopy(record))

    def append_reply(self, parent_id: str, draft: CommentDraft) -> Reply:
        draft = validate_draft(draft)
        with self._lock:
            parent = self._get_document(parent_id)
            replies = parent.setdefault('replies', [])
            reply = build_reply_record(draft, next_reply_id(replies), self._clock(), self.default_avatar)
            replies.append(reply)
            parent['reply_count'] = len(replies)
            logger.info(f"답글 저장 완료 (parent_id: {parent_id}, reply_id: {reply['reply_id']})")
            return Reply.from_dict(copy.deepcopy(reply))

    def get_page(self, page_number: int, page_size: int) -> Tuple[List[Comment], int]:
        page_number = normalize_page_number(page_number)
        page_size = clamp_page_size(page_size)
        skip = (page_number - 1) * page_size
        with self._lock:
            # sorted()는 안정 정렬이므로 reverse=True여도 같은 시각의 문서는 삽입 순서를 유지합니다.
            ordered = sorted(self._documents, key=lambda d: d['created_at'], reverse=True)
            page = [Comment.from_dict(copy.deepcopy(d)) for d in ordered[skip:skip + page_size]]
            return page, len(self._documents)

    def count_total(self) -> int:
        with self._lock:
            return len(self._documents)

    def count_all(self) -> int:
        with self._lock:
            return sum(1 + len(d.get('replies') or []) for d in self._documents)

    def apply_like(self, target: LikeTarget, user_id: str, action: str) -> LikeOutcome:
        with self._lock:
            document = self._get_document(target.comment_id)
            working = copy.deepcopy(document)
            outcome, updates = self._apply_like_to_document(working, target, user_id, action)
            document.update(updates)
            return outcome

    def reconcile_likes(self) -> int:
        fixed = 0
        with self._lock:
            for document in self._documents:
                count, updates = self._reconcile_document(copy.deepcopy(document))
                document.update(updates)
                fixed += count
        return fixed

    def _get_document(self, comment_id: str) -> Dict[str, Any]:
        document = self._by_id.get(comment_id)
        if document is None:
            raise NotFoundError("댓글이 존재하지 않습니다.", error_code="COMMENT_NOT_FOUND")
        return document
