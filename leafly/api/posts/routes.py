# leafly/api/posts/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from leafly.api.posts.schemas import PostCreateSchema, PostUpdateSchema, PostResponseSchema, LikeResponseSchema
from leafly.utils.datetime_utils import DateTimeUtils


posts_bp = Blueprint('posts_bp', __name__)


def _page_args():
    limit = request.args.get('limit', current_app.config['DEFAULT_PAGE_SIZE'], type=int)
    # cursor는 이전 응답의 next_cursor(epoch 밀리초) 또는 마지막 게시글의 created_at(ISO 문자열)
    raw_cursor = request.args.get('cursor')
    if not raw_cursor:
        return limit, None
    if raw_cursor.isdigit():
        return limit, int(raw_cursor)
    return limit, DateTimeUtils.to_timestamp_ms(DateTimeUtils.parse_iso_datetime(raw_cursor))


def _invalid_cursor():
    return jsonify({"error_code": "INVALID_CURSOR", "message": "cursor must be epoch milliseconds or an ISO datetime."}), 400


@posts_bp.route('/', methods=['POST'])
@jwt_required()
def create_post():
    """
    새로운 친환경 활동 게시글을 생성합니다.
    - 카테고리에 해당하는 포인트가 작성자에게 지급됩니다.
    - 성공 시, 생성된 게시글 정보를 201 Created 상태 코드와 함께 반환합니다.
    """
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        data = PostCreateSchema().load(request.get_json() or {})
        new_post = post_service.create_post(user_id, data['text'], data['category'], data.get('file_path'))
        return jsonify(PostResponseSchema().dump(new_post)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "INVALID_CATEGORY", "message": str(e)}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except FileNotFoundError as e:
        return jsonify({"error_code": "FILE_NOT_FOUND", "message": str(e)}), 404
    except LookupError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"게시글 생성 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "POST_CREATION_FAILED", "message": "Could not create the post."}), 500


@posts_bp.route('/', methods=['GET'])
@jwt_required(optional=True)
def get_posts():
    """
    게시글 피드를 최신순으로 조회합니다.
    - scope=following 이면 팔로우 중인 사용자와 본인의 게시글만 조회합니다. (로그인 필요)
    """
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        limit, cursor = _page_args()
    except ValueError:
        return _invalid_cursor()
    scope = request.args.get('scope', 'all')
    if scope not in ('all', 'following'):
        return jsonify({"error_code": "INVALID_SCOPE", "message": "scope must be 'all' or 'following'."}), 400
    if scope == 'following' and not user_id:
        return jsonify({"error_code": "LOGIN_REQUIRED", "message": "Log in to see posts from people you follow."}), 401

    try:
        if scope == 'following':
            posts, next_cursor = post_service.get_following_posts(user_id, limit, cursor)
        else:
            posts, next_cursor = post_service.get_posts(user_id, limit, cursor)
        return jsonify({
            "posts": PostResponseSchema(many=True).dump(posts),
            "next_cursor": next_cursor
        }), 200
    except Exception as e:
        logging.error(f"게시글 목록 조회 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not load the feed."}), 500


@posts_bp.route('/<string:post_id>', methods=['GET'])
@jwt_required(optional=True)
def get_post(post_id: str):
    """특정 게시글의 상세 정보를 조회합니다."""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    post = post_service.get_post_by_id(post_id, user_id)
    if not post:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": "Post not found."}), 404
    return jsonify(PostResponseSchema().dump(post)), 200


@posts_bp.route('/<string:post_id>', methods=['PATCH'])
@jwt_required()
def update_post(post_id: str):
    """특정 게시글의 내용을 수정합니다. (작성자 본인만 가능)"""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        data = PostUpdateSchema().load(request.get_json() or {})
        updated_post = post_service.update_post(post_id, user_id, data['text'])
        return jsonify(PostResponseSchema().dump(updated_post)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except LookupError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404


@posts_bp.route('/<string:post_id>', methods=['DELETE'])
@jwt_required()
def delete_post(post_id: str):
    """특정 게시글을 삭제하고 지급된 포인트를 회수합니다. (작성자 본인만 가능)"""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        post_service.delete_post(post_id, user_id)
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except LookupError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404


@posts_bp.route('/<string:post_id>/like', methods=['POST'])
@jwt_required()
def toggle_post_like(post_id: str):
    """게시글의 좋아요를 누르거나 취소합니다."""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        result = post_service.toggle_post_like(user_id, post_id)
        return jsonify(LikeResponseSchema().dump(result)), 200
    except LookupError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"좋아요 처리 중 오류 발생 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "LIKE_TOGGLE_FAILED", "message": "Could not update the like."}), 500


@posts_bp.route('/users/<string:author_id>/posts', methods=['GET'])
@jwt_required(optional=True)
def get_user_posts(author_id: str):
    """특정 사용자가 작성한 게시물 목록을 페이지네이션으로 조회합니다. (프로필 화면)"""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        limit, cursor = _page_args()
    except ValueError:
        return _invalid_cursor()
    try:
        posts, next_cursor = post_service.get_posts_by_user_id(author_id, user_id, limit, cursor)
        return jsonify({
            "posts": PostResponseSchema(many=True).dump(posts),
            "next_cursor": next_cursor
        }), 200
    except Exception as e:
        logging.error(f"사용자 게시물 목록 조회 중 오류 발생 (author_id: {author_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not load the posts."}), 500
