# app/models/comment.py
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.exceptions import ValidationError
from app.utils.datetime_utils import DateTimeUtils

MAX_CONTENT_LENGTH = 1000


@dataclass
class CommentDraft:
    """
    댓글/답글 생성 요청 데이터. 저장소에 들어가기 전 validate_draft()로 정규화됩니다.
    """
    username: str
    content: str
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None
    reply_to_user: Optional[str] = None


def validate_draft(draft: CommentDraft) -> CommentDraft:
    """
    공백을 제거한 뒤 필수 필드와 길이를 검사합니다.
    내용이 너무 길면 잘라내지 않고 ValidationError를 발생시킵니다.
    """
    username = (draft.username or "").strip()
    content = (draft.content or "").strip()

    if not username or not content:
        raise ValidationError("사용자 이름과 댓글 내용은 필수입니다.")
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(f"댓글은 {MAX_CONTENT_LENGTH}자 이하여야 합니다.")

    created_at = draft.created_at
    if created_at is not None:
        try:
            created_at = DateTimeUtils.validate_datetime_field(created_at, "createdAt")
        except ValueError as e:
            raise ValidationError(str(e))

    reply_to_user = (draft.reply_to_user or "").strip() or None
    avatar = draft.avatar or None

    return replace(draft, username=username, content=content, created_at=created_at,
                   reply_to_user=reply_to_user, avatar=avatar)


@dataclass
class Reply:
    """
    댓글 문서의 'replies' 배열에 포함되는 답글 구조.
    부모 댓글 없이 독립적으로 존재하지 않습니다.
    """
    reply_id: str
    username: str
    avatar: str
    content: str
    created_at: datetime
    likes: int = 0
    liked_by: List[str] = field(default_factory=list)
    reply_to_user: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reply":
        return cls(
            reply_id=data['reply_id'],
            username=data['username'],
            avatar=data.get('avatar'),
            content=data['content'],
            created_at=data['created_at'],
            likes=data.get('likes', 0),
            liked_by=list(data.get('liked_by') or []),
            reply_to_user=data.get('reply_to_user'),
        )


@dataclass
class Comment:
    """
    'comments' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    - likes는 항상 len(liked_by)와 같아야 합니다.
    - inserted_at, reply_count는 저장소 내부 관리용 필드로 응답에 포함되지 않습니다.
    """
    comment_id: str
    username: str
    avatar: str
    content: str
    created_at: datetime
    inserted_at: datetime
    likes: int = 0
    liked_by: List[str] = field(default_factory=list)
    replies: List[Reply] = field(default_factory=list)
    reply_count: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        """저장소 문서(dict)로부터 Comment 인스턴스를 생성합니다."""
        replies = [Reply.from_dict(r) for r in data.get('replies') or []]
        return cls(
            comment_id=data['comment_id'],
            username=data['username'],
            avatar=data.get('avatar'),
            content=data['content'],
            created_at=data['created_at'],
            inserted_at=data.get('inserted_at') or data['created_at'],
            likes=data.get('likes', 0),
            liked_by=list(data.get('liked_by') or []),
            replies=replies,
            reply_count=data.get('reply_count', len(replies)),
        )
