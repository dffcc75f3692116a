# app/api/likes/services.py

import logging
from typing import Optional

from app.core.exceptions import AuthError, ConflictError, ValidationError
from app.services.comment_store import LIKE, LIKE_ACTIONS, CommentStore, LikeOutcome, LikeTarget

logger = logging.getLogger(__name__)


class LikeService:
    """
    댓글/답글 좋아요 상태 전이(Like Toggle)를 담당하는 서비스.

    (대상, 사용자) 쌍마다 NotLiked / Liked 두 상태를 가집니다.
    - like: NotLiked → Liked, 이미 Liked면 AlreadyLikedError
    - unlike: Liked → NotLiked, NotLiked면 NotLikedError
    상태 검사와 갱신은 저장소의 apply_like 한 번으로 원자적으로 처리됩니다.
    """
    def __init__(self, store: CommentStore):
        self.store = store

    def toggle(self, target: LikeTarget, action: str, user_id: Optional[str]) -> LikeOutcome:
        if not user_id:
            raise AuthError("좋아요를 누르려면 로그인이 필요합니다.")
        if action not in LIKE_ACTIONS:
            raise ValidationError("잘못된 작업 유형입니다. ('like' 또는 'unlike')")

        try:
            outcome = self.store.apply_like(target, user_id, action)
        except ConflictError as e:
            logger.warning(f"좋아요 상태 전이 거부 ({action}, user_id: {user_id}, target: {target}): {e.error_code}")
            raise

        logger.info(f"{action} 처리 완료 (user_id: {user_id}, subject: {outcome.subject_id}, likes: {outcome.likes})")
        return outcome

    @staticmethod
    def result_message(action: str) -> str:
        return "좋아요를 눌렀습니다." if action == LIKE else "좋아요를 취소했습니다."
