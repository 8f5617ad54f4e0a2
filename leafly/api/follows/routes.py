# leafly/api/follows/routes.py
import logging
from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

follows_bp = Blueprint('follows_bp', __name__)


@follows_bp.route('/<string:target_id>/follow', methods=['POST'])
@jwt_required()
def toggle_follow(target_id: str):
    """대상 사용자를 팔로우하거나, 이미 팔로우 중이면 언팔로우합니다."""
    follow_service = current_app.services['follows']
    user_id = get_jwt_identity()
    try:
        result = follow_service.toggle_follow(user_id, target_id)
        return jsonify(result), 200
    except ValueError as e:
        return jsonify({"error_code": "INVALID_FOLLOW", "message": str(e)}), 400
    except LookupError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"팔로우 처리 중 오류 발생 ({user_id} -> {target_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FOLLOW_TOGGLE_FAILED", "message": "Could not update the follow state."}), 500


@follows_bp.route('/<string:target_id>/follow', methods=['GET'])
@jwt_required()
def get_follow_status(target_id: str):
    """로그인한 사용자가 대상 사용자를 팔로우 중인지 조회합니다."""
    follow_service = current_app.services['follows']
    user_id = get_jwt_identity()
    return jsonify({
        "user_id": target_id,
        "is_following": follow_service.is_following(user_id, target_id)
    }), 200
