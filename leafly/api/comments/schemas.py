# leafly/api/comments/schemas.py
from marshmallow import Schema, fields, validate


class CommentCreateSchema(Schema):
    """
    POST /api/posts/{post_id}/comments
    댓글 생성을 요청할 때의 데이터 형식을 정의하고 유효성을 검사합니다.
    """
    text = fields.Str(required=True, validate=validate.Length(min=1, max=1000, error="Comments must be 1-1000 characters."))


class CommentResponseSchema(Schema):
    """댓글 정보 응답을 위한 최종 JSON 형식을 정의합니다."""
    comment_id = fields.Str(required=True)
    post_id = fields.Str(required=True)
    user_id = fields.Str(required=True)
    username = fields.Str(required=True)
    text = fields.Str(required=True)
    timestamp = fields.Int(required=True)
    created_at = fields.Str(allow_none=True)
