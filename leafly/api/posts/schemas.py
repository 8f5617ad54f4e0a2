# leafly/api/posts/schemas.py
from marshmallow import Schema, fields, validate

from leafly.models.eco_action import EcoCategory


class PostCreateSchema(Schema):
    """POST /api/posts 요청 본문의 유효성을 검사합니다."""
    text = fields.Str(required=True, validate=validate.Length(min=1, max=2000))
    category = fields.Str(required=True, validate=validate.OneOf([c.value for c in EcoCategory]))
    # /api/uploads/url 로 업로드한 이미지 경로 (선택)
    file_path = fields.Str(load_default=None)


class PostUpdateSchema(Schema):
    """PATCH /api/posts/{post_id}"""
    text = fields.Str(required=True, validate=validate.Length(min=1, max=2000))


class PostResponseSchema(Schema):
    """게시글 정보 응답을 위한 최종 JSON 형식을 정의합니다."""
    post_id = fields.Str(dump_only=True)
    user_id = fields.Str(required=True)
    username = fields.Str(required=True)
    profile_image_url = fields.Str(allow_none=True)
    text = fields.Str(required=True)
    image_url = fields.Str(allow_none=True)
    category = fields.Str(required=True)
    points = fields.Int(required=True)
    likes = fields.Int(required=True)
    comments_count = fields.Int(required=True)
    is_liked = fields.Bool(dump_only=True, dump_default=False)
    timestamp = fields.Int(required=True)
    created_at = fields.Str(allow_none=True)
    updated_at = fields.Str(allow_none=True)


class LikeResponseSchema(Schema):
    post_id = fields.Str(required=True)
    is_liked = fields.Bool(required=True)
    likes = fields.Int(required=True)
