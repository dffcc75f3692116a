# app/api/comments/routes.py
from flask import Blueprint, Response, current_app, jsonify, request
from marshmallow import ValidationError

from app.api.comments.schemas import CommentCreateSchema, CommentResponseSchema, ReplyResponseSchema

comments_bp = Blueprint('comments_bp', __name__)

_TRUTHY = ('1', 'true', 'yes')


def _is_force_refresh(args) -> bool:
    """forceRefresh=true 또는 캐시 무효화용 '_t' 파라미터가 있으면 강제 새로고침으로 봅니다."""
    if args.get('_t'):
        return True
    return args.get('forceRefresh', '').lower() in _TRUTHY


def _request_validators() -> set:
    if_none_match = request.if_none_match
    if if_none_match.star_tag:
        return {'*'}
    return if_none_match.as_set(include_weak=True)


@comments_bp.route('', methods=['POST'])
def create_comment():
    """
    새 댓글을 작성합니다. 본문에 parentId가 있으면 해당 댓글의 답글로 추가합니다.
    - 성공 시 생성된 댓글/답글을 201 Created와 함께 반환합니다.
    - 부모 댓글이 없으면 404를 반환합니다 (전역 에러 핸들러).
    """
    comment_service = current_app.services['comments']
    try:
        data = CommentCreateSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "message": "요청 데이터가 유효하지 않습니다.",
                        "details": err.messages}), 400

    draft = comment_service.draft_from_payload(data)
    parent_id = data.get('parent_id')
    if parent_id:
        reply = comment_service.create_reply(parent_id, draft)
        return jsonify({
            "message": "답글이 저장되었습니다.",
            "parentId": parent_id,
            "reply": ReplyResponseSchema().dump(reply)
        }), 201

    comment = comment_service.create_comment(draft)
    return jsonify({
        "message": "댓글이 저장되었습니다.",
        "comment": CommentResponseSchema().dump(comment)
    }), 201


@comments_bp.route('', methods=['GET'])
def list_comments():
    """
    댓글 목록을 페이지 단위로 조회합니다 (최신순).
    - If-None-Match의 태그가 현재 페이지와 같으면 본문 없이 304를 반환합니다.
    - 로그인 상태면 각 댓글/답글에 hasLiked가 채워집니다.
    """
    feed_builder = current_app.services['feed']
    identity = current_app.services['identity']

    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 10, type=int)
    feed = feed_builder.build(
        page, limit,
        user_id=identity.resolve_request(),
        force_refresh=_is_force_refresh(request.args),
        validators=_request_validators(),
    )

    response = Response(status=304) if feed.not_modified else jsonify(feed.body)
    response.set_etag(feed.etag)
    response.last_modified = feed.last_modified
    response.headers.update(feed.headers)
    return response


@comments_bp.route('/count', methods=['GET'])
def count_comments():
    """최상위 댓글과 답글을 모두 합한 개수를 조회합니다."""
    comment_service = current_app.services['comments']
    response = jsonify({"totalCount": comment_service.count_comments()})
    response.headers['Cache-Control'] = f"public, max-age={current_app.config['COUNT_CACHE_MAX_AGE']}"
    return response
