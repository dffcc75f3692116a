# app/api/auth/routes.py

from flask import Blueprint, current_app, jsonify

auth_bp = Blueprint('auth_bp', __name__)


@auth_bp.route('/verify', methods=['GET'])
def verify_token():
    """
    Authorization 헤더의 토큰이 유효한지 확인합니다.
    토큰 발급은 외부 인증 서비스가 담당하며, 이 엔드포인트는 프론트엔드의 로그인 상태 확인용입니다.
    - 토큰이 없거나 유효하지 않으면 401 (AUTH_REQUIRED / TOKEN_INVALID)
    """
    user_id = current_app.services['identity'].require_request_user()
    return jsonify({"message": "유효한 토큰입니다.", "user": {"id": user_id}}), 200
