# app/services/test_firestore_service.py
"""
Firestore 댓글 저장소 테스트.
실제 Firestore 대신 MagicMock 클라이언트를 사용하고, firestore.transactional은 그대로 함수를 실행하도록 바꿉니다.
"""
import copy
from unittest.mock import MagicMock

import firebase_admin
import pytest
from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from app.conftest import BASE_TIME
from app.core.exceptions import AlreadyLikedError, NotFoundError, StoreUnavailableError
from app.models.comment import CommentDraft
from app.services import firestore_service
from app.services.comment_store import LikeTarget
from app.services.firestore_service import FirestoreClientPool, FirestoreCommentStore


def _comment_doc(comment_id="c1", liked_by=None, replies=None):
    liked_by = liked_by or []
    replies = replies or []
    return {
        'comment_id': comment_id,
        'username': 'kim',
        'avatar': './images/avatar.svg',
        'content': 'hello',
        'created_at': BASE_TIME,
        'inserted_at': BASE_TIME,
        'likes': len(liked_by),
        'liked_by': liked_by,
        'replies': replies,
        'reply_count': len(replies),
    }


def _reply_doc(reply_id, liked_by=None):
    liked_by = liked_by or []
    return {
        'reply_id': reply_id,
        'username': 'lee',
        'avatar': './images/avatar.svg',
        'content': 'reply',
        'created_at': BASE_TIME,
        'likes': len(liked_by),
        'liked_by': liked_by,
        'reply_to_user': None,
    }


def _snapshot(data):
    snapshot = MagicMock()
    snapshot.exists = data is not None
    snapshot.to_dict.return_value = copy.deepcopy(data)
    return snapshot


@pytest.fixture(autouse=True)
def passthrough_transactional(monkeypatch):
    monkeypatch.setattr(firestore, "transactional", lambda func: func)


@pytest.fixture
def db():
    return MagicMock(name="firestore_client")


@pytest.fixture
def comments_ref(db):
    return db.collection.return_value


@pytest.fixture
def doc_ref(comments_ref):
    return comments_ref.document.return_value


@pytest.fixture
def transaction(db):
    return db.transaction.return_value


@pytest.fixture
def fs_store(db):
    pool = MagicMock(spec=FirestoreClientPool)
    pool.acquire.return_value = db
    store = FirestoreCommentStore(pool, collection_name='comments', timeout=3)
    yield store
    store.close()


def test_insert_comment_writes_document(fs_store, db, doc_ref):
    comment = fs_store.insert_comment(CommentDraft(username=" kim ", content="hello"))

    db.collection.assert_called_with('comments')
    args, kwargs = doc_ref.set.call_args
    assert args[0]['comment_id'] == comment.comment_id
    assert args[0]['username'] == 'kim'
    assert args[0]['likes'] == 0
    assert args[0]['liked_by'] == []
    assert args[0]['replies'] == []
    assert kwargs['timeout'] == 3


def test_append_reply_to_missing_parent(fs_store, doc_ref, transaction):
    doc_ref.get.return_value = _snapshot(None)

    with pytest.raises(NotFoundError):
        fs_store.append_reply("missing", CommentDraft(username="kim", content="hi"))
    transaction.update.assert_not_called()


def test_append_reply_appends_to_end(fs_store, doc_ref, transaction):
    doc_ref.get.return_value = _snapshot(_comment_doc(replies=[_reply_doc("r0")]))

    reply = fs_store.append_reply("c1", CommentDraft(username="kim", content="new", reply_to_user="lee"))

    ref, updates = transaction.update.call_args[0]
    assert ref is doc_ref
    assert [r['reply_id'] for r in updates['replies']] == ["r0", reply.reply_id]
    assert updates['replies'][-1]['reply_to_user'] == "lee"
    assert updates['reply_count'] == 2


def test_like_comment_updates_count_from_set(fs_store, doc_ref, transaction):
    doc_ref.get.return_value = _snapshot(_comment_doc(liked_by=["user-2"]))

    outcome = fs_store.apply_like(LikeTarget("c1"), "user-1", "like")

    assert (outcome.likes, outcome.has_liked) == (2, True)
    transaction.update.assert_called_once_with(doc_ref, {'likes': 2, 'liked_by': ["user-2", "user-1"]})


def test_duplicate_like_is_rejected_without_write(fs_store, doc_ref, transaction):
    doc_ref.get.return_value = _snapshot(_comment_doc(liked_by=["user-1"]))

    with pytest.raises(AlreadyLikedError):
        fs_store.apply_like(LikeTarget("c1"), "user-1", "like")
    transaction.update.assert_not_called()


def test_unlike_reply_by_id(fs_store, doc_ref, transaction):
    doc_ref.get.return_value = _snapshot(_comment_doc(replies=[
        _reply_doc("r0", liked_by=["user-1"]),
        _reply_doc("r1", liked_by=["user-1", "user-2"]),
    ]))

    outcome = fs_store.apply_like(LikeTarget("c1", reply_id="r1"), "user-1", "unlike")

    assert (outcome.subject_id, outcome.likes, outcome.has_liked) == ("r1", 1, False)
    _, updates = transaction.update.call_args[0]
    assert updates['replies'][0]['liked_by'] == ["user-1"]
    assert updates['replies'][1]['liked_by'] == ["user-2"]
    assert updates['replies'][1]['likes'] == 1


def test_get_page_orders_and_skips(fs_store, comments_ref):
    page_query = comments_ref.order_by.return_value.order_by.return_value.offset.return_value.limit.return_value
    doc = MagicMock()
    doc.to_dict.return_value = _comment_doc()
    page_query.stream.return_value = [doc]
    comments_ref.count.return_value.get.return_value = [[MagicMock(value=11)]]

    comments, total = fs_store.get_page(2, 10)

    assert total == 11
    assert [c.comment_id for c in comments] == ["c1"]
    comments_ref.order_by.assert_called_once_with('created_at', direction=firestore.Query.DESCENDING)
    comments_ref.order_by.return_value.order_by.assert_called_once_with(
        'inserted_at', direction=firestore.Query.ASCENDING)
    comments_ref.order_by.return_value.order_by.return_value.offset.assert_called_once_with(10)
    comments_ref.order_by.return_value.order_by.return_value.offset.return_value.limit.assert_called_once_with(10)


def test_count_all_sums_comments_and_replies(fs_store, comments_ref):
    aggregation = comments_ref.count.return_value.sum.return_value
    aggregation.get.return_value = [[MagicMock(alias='comments', value=2), MagicMock(alias='replies', value=3)]]

    assert fs_store.count_all() == 5
    comments_ref.count.return_value.sum.assert_called_once_with('reply_count', alias='replies')


def test_timeout_surfaces_as_store_unavailable(fs_store, doc_ref):
    doc_ref.set.side_effect = google_exceptions.DeadlineExceeded("deadline exceeded")

    with pytest.raises(StoreUnavailableError):
        fs_store.insert_comment(CommentDraft(username="kim", content="hello"))


def test_exhausted_transaction_retries_surface_as_store_unavailable(fs_store, doc_ref, transaction):
    doc_ref.get.return_value = _snapshot(_comment_doc())

    def _exhausted(ref, updates):
        try:
            raise google_exceptions.Aborted("contention")
        except google_exceptions.Aborted as exc:
            raise ValueError("Failed to commit transaction in 5 attempts.") from exc
    transaction.update.side_effect = _exhausted

    with pytest.raises(StoreUnavailableError):
        fs_store.apply_like(LikeTarget("c1"), "user-1", "like")


def test_count_failure_during_page_fetch(fs_store, comments_ref):
    comments_ref.order_by.return_value.order_by.return_value.offset.return_value.limit.return_value \
        .stream.return_value = []
    comments_ref.count.return_value.get.side_effect = google_exceptions.ServiceUnavailable("down")

    with pytest.raises(StoreUnavailableError):
        fs_store.get_page(1, 10)


def test_reconcile_likes_rewrites_drifted_documents(fs_store, comments_ref, transaction):
    drifted = _comment_doc(liked_by=["user-1"])
    drifted['likes'] = 4
    doc = MagicMock()
    doc.reference.get.return_value = _snapshot(drifted)
    clean = MagicMock()
    clean.reference.get.return_value = _snapshot(_comment_doc(comment_id="c2"))
    comments_ref.stream.return_value = [doc, clean]

    assert fs_store.reconcile_likes() == 1
    transaction.update.assert_called_once_with(doc.reference, {'likes': 1, 'liked_by': ["user-1"]})


# --- FirestoreClientPool ---

def test_pool_reuses_client_and_closes_once(monkeypatch):
    client = MagicMock(name="client")
    client_factory = MagicMock(return_value=client)
    monkeypatch.setattr(firebase_admin, "_apps", {"[DEFAULT]": object()})
    monkeypatch.setattr(firestore, "client", client_factory)
    monkeypatch.setattr(firestore_service.atexit, "register", lambda func: None)

    pool = FirestoreClientPool()
    assert pool.acquire() is client
    assert pool.acquire() is client
    client_factory.assert_called_once()

    pool.close()
    pool.close()
    client.close.assert_called_once()


def test_pool_requires_credentials_file(monkeypatch, tmp_path):
    monkeypatch.setattr(firebase_admin, "_apps", {})

    pool = FirestoreClientPool(credentials_path=str(tmp_path / "missing.json"))
    with pytest.raises(FileNotFoundError):
        pool.acquire()
