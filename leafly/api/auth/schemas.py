# leafly/api/auth/schemas.py
from marshmallow import Schema, fields, validate

# 영문/숫자/밑줄만 허용 (Realtime Database 키로도 사용되므로 '.', '/', '#' 등은 불가)
USERNAME_VALIDATOR = validate.Regexp(
    r'^[A-Za-z0-9_]{3,20}$',
    error="Username must be 3-20 characters of letters, numbers or underscores."
)


class SignupSchema(Schema):
    """POST /api/auth/signup 요청 본문의 유효성을 검사합니다."""
    email = fields.Email(required=True)
    # Firebase Auth의 최소 비밀번호 길이는 6자입니다.
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=6, max=128))
    username = fields.Str(required=True, validate=USERNAME_VALIDATOR)


class LoginSchema(Schema):
    """POST /api/auth/login"""
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=1))


class PasswordResetSchema(Schema):
    """POST /api/auth/password-reset"""
    email = fields.Email(required=True)


class LogoutRequestSchema(Schema):
    """로그아웃 요청의 유효성을 검사하는 스키마"""
    access_token = fields.Str(required=True)
    refresh_token = fields.Str(required=True)


class UserInfoSchema(Schema):
    """로그인/회원가입 응답에 포함되는 사용자 정보"""
    user_id = fields.Str(required=True)
    email = fields.Email(required=True)
    username = fields.Str(required=True)
    profile_image_url = fields.Str(allow_none=True)
    points = fields.Int(required=True)
