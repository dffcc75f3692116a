# app/api/likes/routes.py
from flask import Blueprint, current_app, jsonify, request
from marshmallow import ValidationError

from app.api.likes.schemas import CommentLikeSchema, LikeResponseSchema, ReplyLikeSchema
from app.services.comment_store import LikeTarget

likes_bp = Blueprint('likes_bp', __name__)


def _like_response(action: str, outcome):
    like_service = current_app.services['likes']
    return jsonify(LikeResponseSchema().dump({
        "message": like_service.result_message(action),
        "likes": outcome.likes,
        "has_liked": outcome.has_liked,
    })), 200


@likes_bp.route('/comment', methods=['POST'])
def toggle_comment_like():
    """
    댓글에 좋아요를 누르거나 취소합니다. (로그인 필수)
    - 이미 누른 댓글에 다시 like하면 409 ALREADY_LIKED
    """
    user_id = current_app.services['identity'].require_request_user()
    like_service = current_app.services['likes']
    try:
        data = CommentLikeSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "message": "요청 데이터가 유효하지 않습니다.",
                        "details": err.messages}), 400

    outcome = like_service.toggle(LikeTarget(comment_id=data['comment_id']), data['action'], user_id)
    return _like_response(data['action'], outcome)


@likes_bp.route('/reply', methods=['POST'])
def toggle_reply_like():
    """답글에 좋아요를 누르거나 취소합니다. (로그인 필수)"""
    user_id = current_app.services['identity'].require_request_user()
    like_service = current_app.services['likes']
    try:
        data = ReplyLikeSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "message": "요청 데이터가 유효하지 않습니다.",
                        "details": err.messages}), 400

    target = LikeTarget(comment_id=data['parent_id'], reply_id=data['reply_id'], reply_index=data['reply_index'])
    outcome = like_service.toggle(target, data['action'], user_id)
    return _like_response(data['action'], outcome)
