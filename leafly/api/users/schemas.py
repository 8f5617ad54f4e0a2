# leafly/api/users/schemas.py
from marshmallow import Schema, fields, validates_schema, ValidationError

from leafly.api.auth.schemas import USERNAME_VALIDATOR


class UserSummarySchema(Schema):
    """팔로워/팔로잉 목록 등에 쓰이는 최소 사용자 정보"""
    user_id = fields.Str(required=True)
    username = fields.Str(required=True)
    profile_image_url = fields.Str(allow_none=True)


class UserPublicResponseSchema(Schema):
    """
    GET /api/users/{user_id}
    다른 사용자의 프로필을 응답할 때 사용하는 스키마. email은 포함하지 않습니다.
    """
    user_id = fields.Str(required=True, dump_only=True)
    username = fields.Str(required=True)
    profile_image_url = fields.Str(allow_none=True)
    points = fields.Int(required=True)
    level = fields.Int(required=True)
    level_progress = fields.Float(required=True)
    followers_count = fields.Int(required=True)
    following_count = fields.Int(required=True)
    post_count = fields.Int(required=True)
    is_following = fields.Bool(dump_default=False)
    created_at = fields.Str(allow_none=True)


class UserPrivateResponseSchema(UserPublicResponseSchema):
    """GET /api/users/me: 본인에게만 email을 보여줍니다."""
    email = fields.Str(required=True)


class ProfileUpdateSchema(Schema):
    """PATCH /api/users/me"""
    username = fields.Str(validate=USERNAME_VALIDATOR)
    file_path = fields.Str()

    @validates_schema
    def validate_not_empty(self, data, **kwargs):
        if not data:
            raise ValidationError("Provide at least one of 'username' or 'file_path'.")
