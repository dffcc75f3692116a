# app/api/comments/services.py

import logging
from typing import Any, Dict

from app.core.exceptions import NotFoundError
from app.models.comment import Comment, CommentDraft, Reply
from app.services.comment_store import CommentStore

logger = logging.getLogger(__name__)


class CommentService:
    """
    댓글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 최상위 댓글 생성, 답글 추가(Reply Attachment), 전체 댓글 수 집계를 포함합니다.
    - 저장소는 app/__init__.py에서 생성되어 주입됩니다.
    """
    def __init__(self, store: CommentStore):
        self.store = store

    @staticmethod
    def draft_from_payload(data: Dict[str, Any]) -> CommentDraft:
        """CommentCreateSchema로 검증된 데이터를 저장소용 초안으로 변환합니다."""
        return CommentDraft(
            username=data['username'],
            content=data['content'],
            avatar=data.get('avatar'),
            created_at=data.get('created_at'),
            reply_to_user=data.get('reply_to_user'),
        )

    def create_comment(self, draft: CommentDraft) -> Comment:
        """새로운 최상위 댓글을 생성합니다."""
        comment = self.store.insert_comment(draft)
        logger.info(f"댓글 생성 완료 (comment_id: {comment.comment_id}, username: {comment.username})")
        return comment

    def create_reply(self, parent_id: str, draft: CommentDraft) -> Reply:
        """
        부모 댓글의 답글 목록 끝에 새 답글을 추가합니다.
        부모가 없으면 NotFoundError가 그대로 전파됩니다 (아무것도 기록되지 않음).
        """
        try:
            reply = self.store.append_reply(parent_id, draft)
        except NotFoundError:
            logger.warning(f"존재하지 않는 댓글에 답글 시도 (parent_id: {parent_id})")
            raise
        logger.info(f"답글 생성 완료 (parent_id: {parent_id}, reply_id: {reply.reply_id})")
        return reply

    def count_comments(self) -> int:
        """최상위 댓글과 모든 답글을 합한 개수를 반환합니다."""
        return self.store.count_all()
