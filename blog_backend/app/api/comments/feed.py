# app/api/comments/feed.py
"""
댓글 피드(페이지) 생성기.

페이지 조회 → hasLiked 투영 → 페이지네이션 메타데이터 → 캐시 태그(ETag) 계산까지 담당합니다.
캐시 태그는 직렬화된 응답 본문(총 개수 포함)의 SHA-256이므로,
내용이 같으면 항상 같은 태그가 나오고 좋아요 수 하나만 바뀌어도 태그가 달라집니다.
"""
import hashlib
import json
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from app.api.comments.schemas import CommentFeedSchema
from app.models.comment import Comment
from app.services.comment_store import CommentStore, clamp_page_size, normalize_page_number
from app.utils.datetime_utils import DateTimeUtils

NO_STORE_CACHE_CONTROL = 'no-cache, no-store, must-revalidate'


@dataclass
class FeedPage:
    etag: str
    last_modified: datetime
    headers: Dict[str, str]
    body: Optional[Dict[str, Any]] = None
    not_modified: bool = False


@dataclass
class CommentFeedBuilder:
    store: CommentStore
    max_age: int = 300
    s_maxage: int = 600
    _schema: CommentFeedSchema = field(default_factory=CommentFeedSchema, repr=False)

    def build(self, page: Optional[int] = 1, limit: Optional[int] = 10, user_id: Optional[str] = None,
              force_refresh: bool = False, validators: Iterable[str] = ()) -> FeedPage:
        """
        한 페이지 분량의 피드를 생성합니다.

        :param validators: 클라이언트가 If-None-Match로 보낸 캐시 태그들 ('*'는 모든 태그와 일치)
        :param force_refresh: True면 태그 비교를 건너뛰고 캐시 금지 헤더를 붙입니다.
        """
        page = normalize_page_number(page)
        limit = clamp_page_size(limit)

        comments, total = self.store.get_page(page, limit)
        # 총 페이지 수와 이전/다음 여부는 같은 total 값에서 계산합니다.
        total_pages = math.ceil(total / limit)
        body = self._schema.dump({
            'comments': [self.project(comment, user_id) for comment in comments],
            'pagination': {
                'current_page': page,
                'total_pages': total_pages,
                'total_comments': total,
                'has_next_page': page < total_pages,
                'has_prev_page': page > 1,
            },
        })

        etag = self.compute_etag(body)
        last_modified = comments[0].created_at if comments else DateTimeUtils.now()
        headers = self._cache_headers(user_id, force_refresh)

        validators = set(validators or ())
        if not force_refresh and ('*' in validators or etag in validators):
            return FeedPage(etag=etag, last_modified=last_modified, headers=headers, not_modified=True)
        return FeedPage(etag=etag, last_modified=last_modified, headers=headers, body=body)

    @staticmethod
    def project(comment: Comment, user_id: Optional[str]) -> Dict[str, Any]:
        """
        저장된 댓글로부터 응답용 dict를 새로 만듭니다 (원본은 수정하지 않음).
        liked_by는 제거하고, 현재 사용자 기준 has_liked를 채웁니다. 익명이면 항상 False.
        """
        data = asdict(comment)
        for key in ('inserted_at', 'reply_count'):
            data.pop(key, None)
        data['has_liked'] = bool(user_id) and user_id in data.pop('liked_by')
        for reply in data['replies']:
            reply['has_liked'] = bool(user_id) and user_id in reply.pop('liked_by')
        return data

    @staticmethod
    def compute_etag(body: Dict[str, Any]) -> str:
        canonical = json.dumps(body, sort_keys=True, separators=(',', ':'), ensure_ascii=False, default=str)
        return hashlib.sha256(canonical.encode('utf-8')).hexdigest()

    def _cache_headers(self, user_id: Optional[str], force_refresh: bool) -> Dict[str, str]:
        if force_refresh:
            return {'Cache-Control': NO_STORE_CACHE_CONTROL, 'Pragma': 'no-cache', 'Expires': '0'}
        if user_id:
            # hasLiked가 사용자별로 달라지므로 공유 캐시에 저장되면 안 됨
            return {'Cache-Control': f'private, max-age={self.max_age}', 'Vary': 'Authorization'}
        return {'Cache-Control': f'public, max-age={self.max_age}, s-maxage={self.s_maxage}',
                'Vary': 'Authorization'}
