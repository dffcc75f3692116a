# app/api/comments/schemas.py
from marshmallow import EXCLUDE, Schema, fields, pre_load, validate

from app.models.comment import MAX_CONTENT_LENGTH

# 저장소가 부여하는 문서 ID 형식 (Firestore 문서 ID에 '/'는 허용되지 않음)
RECORD_ID_PATTERN = r'^[A-Za-z0-9_-]{1,128}$'
record_id_validator = validate.Regexp(RECORD_ID_PATTERN, error="잘못된 ID 형식입니다.")

_OPTIONAL_KEYS = ('avatar', 'createdAt', 'parentId', 'replyToUser')


class CommentCreateSchema(Schema):
    """
    POST /api/comments
    댓글(또는 parentId가 있으면 답글) 생성 요청의 데이터 형식을 정의하고 유효성을 검사합니다.
    """
    class Meta:
        unknown = EXCLUDE

    username = fields.Str(required=True, validate=validate.Length(min=1, error="사용자 이름은 필수입니다."))
    content = fields.Str(required=True, validate=validate.Length(
        min=1, max=MAX_CONTENT_LENGTH, error=f"댓글은 1~{MAX_CONTENT_LENGTH}자 사이여야 합니다."))
    avatar = fields.Str(load_default=None, allow_none=True)
    created_at = fields.DateTime(data_key='createdAt', load_default=None, allow_none=True)
    parent_id = fields.Str(data_key='parentId', load_default=None, allow_none=True, validate=record_id_validator)
    reply_to_user = fields.Str(data_key='replyToUser', load_default=None, allow_none=True)

    @pre_load
    def strip_strings(self, data, **kwargs):
        """앞뒤 공백을 제거하고, 선택 필드의 빈 문자열은 값이 없는 것으로 처리합니다."""
        if not isinstance(data, dict):
            return data
        cleaned = {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}
        for key in _OPTIONAL_KEYS:
            if cleaned.get(key) == "":
                cleaned[key] = None
        return cleaned


class ReplyResponseSchema(Schema):
    """답글 응답 형식. liked_by 대신 현재 사용자 기준 hasLiked만 노출합니다."""
    id = fields.Str(attribute='reply_id', required=True)
    username = fields.Str(required=True)
    avatar = fields.Str(allow_none=True)
    content = fields.Str(required=True)
    created_at = fields.DateTime(data_key='createdAt', required=True)
    likes = fields.Int(required=True)
    reply_to_user = fields.Str(data_key='replyToUser', allow_none=True)
    has_liked = fields.Bool(data_key='hasLiked', dump_only=True, dump_default=False)


class CommentResponseSchema(Schema):
    """
    댓글 정보 응답을 위한 최종 JSON 형식을 정의합니다.
    """
    id = fields.Str(attribute='comment_id', required=True)
    username = fields.Str(required=True)
    avatar = fields.Str(allow_none=True)
    content = fields.Str(required=True)
    created_at = fields.DateTime(data_key='createdAt', required=True)
    likes = fields.Int(required=True)
    replies = fields.List(fields.Nested(ReplyResponseSchema), dump_default=list)

    # 피드 빌더에서 채워주는 응답 전용 필드
    has_liked = fields.Bool(data_key='hasLiked', dump_only=True, dump_default=False)


class PaginationSchema(Schema):
    current_page = fields.Int(data_key='currentPage')
    total_pages = fields.Int(data_key='totalPages')
    total_comments = fields.Int(data_key='totalComments')
    has_next_page = fields.Bool(data_key='hasNextPage')
    has_prev_page = fields.Bool(data_key='hasPrevPage')


class CommentFeedSchema(Schema):
    """GET /api/comments 응답 본문."""
    comments = fields.List(fields.Nested(CommentResponseSchema))
    pagination = fields.Nested(PaginationSchema)
