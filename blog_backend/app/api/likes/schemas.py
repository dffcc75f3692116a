# app/api/likes/schemas.py
from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates_schema

from app.api.comments.schemas import record_id_validator
from app.services.comment_store import LIKE_ACTIONS


def _action_field():
    return fields.Str(required=True, validate=validate.OneOf(
        LIKE_ACTIONS, error="잘못된 작업 유형입니다. ('like' 또는 'unlike')"))


class CommentLikeSchema(Schema):
    """POST /api/likes/comment 요청 본문."""
    class Meta:
        unknown = EXCLUDE

    comment_id = fields.Str(required=True, data_key='commentId', validate=record_id_validator)
    action = _action_field()


class ReplyLikeSchema(Schema):
    """
    POST /api/likes/reply 요청 본문.
    답글은 replyId로 지정하는 것이 기본이며, replyIndex는 구버전 클라이언트 호환용입니다.
    """
    class Meta:
        unknown = EXCLUDE

    parent_id = fields.Str(required=True, data_key='parentId', validate=record_id_validator)
    reply_id = fields.Str(data_key='replyId', load_default=None, allow_none=True, validate=record_id_validator)
    reply_index = fields.Int(data_key='replyIndex', load_default=None, allow_none=True, strict=True,
                             validate=validate.Range(min=0, error="잘못된 답글 인덱스입니다."))
    action = _action_field()

    @validates_schema
    def validate_reply_reference(self, data, **kwargs):
        if (data.get('reply_id') is None) == (data.get('reply_index') is None):
            raise ValidationError("replyId 또는 replyIndex 중 하나만 지정해야 합니다.", "replyId")


class LikeResponseSchema(Schema):
    message = fields.Str()
    likes = fields.Int()
    has_liked = fields.Bool(data_key='hasLiked')
