# leafly/api/leaderboard/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from leafly.api.leaderboard.schemas import LeaderboardEntrySchema

leaderboard_bp = Blueprint('leaderboard_bp', __name__)


@leaderboard_bp.route('/', methods=['GET'])
@jwt_required(optional=True)
def get_leaderboard():
    """
    포인트 상위 사용자 목록을 조회합니다.
    로그인한 경우 본인의 순위(me)도 함께 반환합니다.
    """
    leaderboard_service = current_app.services['leaderboard']
    user_id = get_jwt_identity()
    limit = request.args.get('limit', current_app.config['LEADERBOARD_SIZE'], type=int)

    response = {"entries": LeaderboardEntrySchema(many=True).dump(leaderboard_service.get_top_users(limit))}
    if user_id:
        try:
            response["me"] = LeaderboardEntrySchema().dump(leaderboard_service.get_user_rank(user_id))
        except LookupError:
            response["me"] = None
    return jsonify(response), 200


@leaderboard_bp.route('/users/<string:user_id>', methods=['GET'])
def get_user_rank(user_id: str):
    """특정 사용자의 순위를 조회합니다."""
    leaderboard_service = current_app.services['leaderboard']
    try:
        return jsonify(LeaderboardEntrySchema().dump(leaderboard_service.get_user_rank(user_id))), 200
    except LookupError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
