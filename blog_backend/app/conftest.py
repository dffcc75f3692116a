# app/conftest.py
"""
공용 pytest 픽스처.

사용법: python -m pytest -v (저장소 루트에서 실행)
테스트는 외부 Firebase 없이 메모리 저장소로 실행됩니다.
"""
from datetime import datetime, timedelta, timezone

import pytest
from flask_jwt_extended import create_access_token

from app import create_app
from app.models.comment import CommentDraft
from app.services.comment_store import InMemoryCommentStore

BASE_TIME = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryCommentStore()


@pytest.fixture
def app(store):
    return create_app('testing', comment_store=store)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """user_id로 서명된 액세스 토큰의 Authorization 헤더를 만들어주는 팩토리."""
    def _make(user_id: str = "user-1"):
        with app.app_context():
            token = create_access_token(identity=user_id)
        return {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture
def seed_comments(store):
    """분 단위로 시간이 증가하는 댓글 n개를 저장합니다. (가장 나중 것이 가장 최신)"""
    def _seed(n: int):
        return [
            store.insert_comment(CommentDraft(
                username=f"user{i}",
                content=f"comment {i}",
                created_at=BASE_TIME + timedelta(minutes=i),
            ))
            for i in range(n)
        ]
    return _seed
