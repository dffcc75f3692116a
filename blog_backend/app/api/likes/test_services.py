# app/api/likes/test_services.py
import logging

import pytest

from app.api.likes.services import LikeService
from app.core.exceptions import AlreadyLikedError, AuthError, ValidationError
from app.models.comment import CommentDraft
from app.services.comment_store import LikeTarget


@pytest.fixture
def like_service(store):
    return LikeService(store)


@pytest.fixture
def target(store):
    comment = store.insert_comment(CommentDraft(username="kim", content="hello"))
    return LikeTarget(comment.comment_id)


def test_anonymous_user_cannot_like(like_service, target):
    for user_id in (None, ""):
        with pytest.raises(AuthError):
            like_service.toggle(target, "like", user_id)


def test_invalid_action(like_service, target):
    with pytest.raises(ValidationError):
        like_service.toggle(target, "toggle", "user-1")


def test_conflict_is_logged_and_raised(like_service, target, caplog):
    like_service.toggle(target, "like", "user-1")

    with caplog.at_level(logging.WARNING, logger="app.api.likes.services"):
        with pytest.raises(AlreadyLikedError):
            like_service.toggle(target, "like", "user-1")
    assert "ALREADY_LIKED" in caplog.text


def test_toggle_round_trip(like_service, target):
    liked = like_service.toggle(target, "like", "user-1")
    unliked = like_service.toggle(target, "unlike", "user-1")

    assert (liked.likes, liked.has_liked) == (1, True)
    assert (unliked.likes, unliked.has_liked) == (0, False)


def test_result_message():
    assert LikeService.result_message("like") == "좋아요를 눌렀습니다."
    assert LikeService.result_message("unlike") == "좋아요를 취소했습니다."
