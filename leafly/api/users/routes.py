# leafly/api/users/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from leafly.api.users.schemas import (
    UserPublicResponseSchema, UserPrivateResponseSchema, UserSummarySchema, ProfileUpdateSchema
)
from leafly.api.users.services import UsernameTakenError

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/me', methods=['GET'])
@jwt_required()
def get_my_profile():
    """로그인한 사용자 본인의 프로필 (메뉴 화면용, email 포함)."""
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        return jsonify(UserPrivateResponseSchema().dump(user_service.get_me(user_id))), 200
    except LookupError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404


@users_bp.route('/me', methods=['PATCH'])
@jwt_required()
def update_my_profile():
    """username 변경 또는 업로드된 프로필 이미지 적용."""
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        data = ProfileUpdateSchema().load(request.get_json() or {})
        updated = user_service.update_profile(user_id, data.get('username'), data.get('file_path'))
        return jsonify(UserPrivateResponseSchema().dump(updated)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except UsernameTakenError as e:
        return jsonify({"error_code": "USERNAME_TAKEN", "message": str(e)}), 409
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except FileNotFoundError as e:
        return jsonify({"error_code": "FILE_NOT_FOUND", "message": str(e)}), 404
    except LookupError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"프로필 업데이트 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Profile update failed due to a server error."}), 500


@users_bp.route('/me', methods=['DELETE'])
@jwt_required()
def delete_my_account():
    """현재 로그인된 사용자 본인의 계정을 영구적으로 삭제합니다."""
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        user_service.delete_user_account(user_id)
        return Response(status=204)
    except Exception as e:
        logging.error(f"회원 탈퇴 처리 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "ACCOUNT_DELETION_FAILED", "message": "Account deletion failed due to a server error."}), 500


@users_bp.route('/<string:user_id>', methods=['GET'])
@jwt_required(optional=True)
def get_user_profile(user_id: str):
    """특정 사용자의 공개 프로필 (레벨, 팔로워/팔로잉 수, 게시물 수)."""
    user_service = current_app.services['users']
    viewer_id = get_jwt_identity()
    try:
        profile = user_service.get_user_profile(user_id, viewer_id)
        return jsonify(UserPublicResponseSchema().dump(profile)), 200
    except LookupError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"사용자 프로필 조회 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "PROFILE_FETCH_FAILED", "message": "Could not load the profile."}), 500


@users_bp.route('/<string:user_id>/followers', methods=['GET'])
@jwt_required(optional=True)
def get_followers(user_id: str):
    user_service = current_app.services['users']
    try:
        users = user_service.list_followers(user_id)
        return jsonify({"users": UserSummarySchema(many=True).dump(users)}), 200
    except LookupError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404


@users_bp.route('/<string:user_id>/following', methods=['GET'])
@jwt_required(optional=True)
def get_following(user_id: str):
    user_service = current_app.services['users']
    try:
        users = user_service.list_following(user_id)
        return jsonify({"users": UserSummarySchema(many=True).dump(users)}), 200
    except LookupError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
