# leafly/api/comments/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from leafly.api.comments.schemas import CommentCreateSchema, CommentResponseSchema


comments_bp = Blueprint('comments_bp', __name__)


@comments_bp.route('/posts/<string:post_id>/comments', methods=['POST'])
@jwt_required()
def create_comment(post_id: str):
    """
    특정 게시글에 새로운 댓글을 작성합니다.
    - 성공 시 게시글의 commentsCount가 1 증가합니다.
    """
    comment_service = current_app.services['comments']
    user_id = get_jwt_identity()
    try:
        data = CommentCreateSchema().load(request.get_json() or {})
        new_comment = comment_service.create_comment(post_id, user_id, data['text'])
        return jsonify(CommentResponseSchema().dump(new_comment)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except LookupError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"댓글 생성 중 오류 발생 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "COMMENT_CREATION_FAILED", "message": "Could not create the comment."}), 500


@comments_bp.route('/posts/<string:post_id>/comments', methods=['GET'])
@jwt_required(optional=True)
def get_comments(post_id: str):
    """특정 게시글의 댓글 목록을 작성 순으로 조회합니다."""
    comment_service = current_app.services['comments']
    try:
        comments = comment_service.get_comments_for_post(post_id)
        return jsonify({"comments": CommentResponseSchema(many=True).dump(comments)}), 200
    except LookupError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404


@comments_bp.route('/posts/<string:post_id>/comments/<string:comment_id>', methods=['DELETE'])
@jwt_required()
def delete_comment(post_id: str, comment_id: str):
    """
    댓글을 삭제합니다. (댓글 작성자 또는 게시글 작성자만 가능)
    - 성공 시 게시글의 commentsCount가 1 감소합니다.
    """
    comment_service = current_app.services['comments']
    user_id = get_jwt_identity()
    try:
        comment_service.delete_comment(post_id, comment_id, user_id)
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except LookupError as e:
        return jsonify({"error_code": "NOT_FOUND", "message": str(e)}), 404
