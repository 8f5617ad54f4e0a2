# leafly/api/auth/routes.py

import logging
import jwt
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity
)
from marshmallow import ValidationError

from leafly.api.auth.schemas import (
    SignupSchema, LoginSchema, PasswordResetSchema, LogoutRequestSchema, UserInfoSchema
)
from leafly.api.auth.services import EmailTakenError
from leafly.api.users.services import UsernameTakenError
from leafly.services.identity_service import InvalidCredentialsError, IdentityToolkitError

auth_bp = Blueprint('auth_bp', __name__)


def _token_response(user, status_code: int, is_new_user: bool):
    identity = user.user_id
    return jsonify({
        "access_token": create_access_token(identity=identity),
        "refresh_token": create_refresh_token(identity=identity),
        "user_id": identity,
        "is_new_user": is_new_user,
        "user_info": UserInfoSchema().dump({
            "user_id": user.user_id,
            "email": user.email,
            "username": user.username,
            "profile_image_url": user.profile_image_url,
            "points": user.points
        })
    }), status_code


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """이메일/비밀번호로 회원가입하고 바로 로그인 토큰을 발급합니다."""
    auth_service = current_app.services['auth']
    try:
        data = SignupSchema().load(request.get_json() or {})
        user = auth_service.signup(data['email'], data['password'], data['username'])
        return _token_response(user, 201, is_new_user=True)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except UsernameTakenError as e:
        return jsonify({"error_code": "USERNAME_TAKEN", "message": str(e)}), 409
    except EmailTakenError as e:
        return jsonify({"error_code": "EMAIL_TAKEN", "message": str(e)}), 409
    except ValueError as e:
        # Firebase Auth가 거부한 입력값 (예: 비밀번호 정책)
        return jsonify({"error_code": "INVALID_SIGNUP", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"회원가입 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "SIGNUP_FAILED", "message": "Sign-up failed due to a server error."}), 500


@auth_bp.route('/login', methods=['POST'])
def login():
    """이메일/비밀번호 로그인."""
    auth_service = current_app.services['auth']
    try:
        data = LoginSchema().load(request.get_json() or {})
        user = auth_service.login(data['email'], data['password'])
        return _token_response(user, 200, is_new_user=False)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except InvalidCredentialsError as e:
        return jsonify({"error_code": "INVALID_CREDENTIALS", "message": str(e)}), 401
    except IdentityToolkitError as e:
        logging.error(f"로그인 처리 중 인증 서버 오류: {e}")
        return jsonify({"error_code": "AUTH_SERVICE_UNAVAILABLE", "message": "Sign-in is temporarily unavailable."}), 503
    except Exception as e:
        logging.error(f"로그인 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Sign-in failed due to a server error."}), 500


@auth_bp.route('/password-reset', methods=['POST'])
def request_password_reset():
    """비밀번호 재설정 메일을 요청합니다. 가입 여부와 관계없이 같은 응답을 돌려줍니다."""
    auth_service = current_app.services['auth']
    try:
        data = PasswordResetSchema().load(request.get_json() or {})
        auth_service.request_password_reset(data['email'])
        return jsonify({"message": "If an account exists for this email, a reset link has been sent."}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except IdentityToolkitError as e:
        logging.error(f"비밀번호 재설정 요청 실패: {e}")
        return jsonify({"error_code": "AUTH_SERVICE_UNAVAILABLE", "message": "Password reset is temporarily unavailable."}), 503


# --- 토큰 재발급 엔드포인트 ---
@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """유효한 Refresh Token으로 새로운 Access Token을 발급합니다."""
    current_user_id = get_jwt_identity()
    new_access_token = create_access_token(identity=current_user_id)
    return jsonify(access_token=new_access_token), 200


# --- 로그아웃 엔드포인트 ---
@auth_bp.route('/logout', methods=['POST'])
def logout():
    """로그아웃. 전달받은 Access/Refresh 토큰을 무효화 목록에 추가합니다."""
    auth_service = current_app.services['auth']
    try:
        data = LogoutRequestSchema().load(request.get_json() or {})

        secret_key = current_app.config['JWT_SECRET_KEY']
        algorithm = current_app.config.get('JWT_ALGORITHM', 'HS256')

        # 만료된 토큰도 무효화할 수 있도록 만료 검사는 생략합니다.
        decoded_access = jwt.decode(data['access_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})
        decoded_refresh = jwt.decode(data['refresh_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})

        auth_service.logout_user(
            decoded_access['jti'], decoded_access['exp'],
            decoded_refresh['jti'], decoded_refresh['exp']
        )
        return jsonify({"message": "Logged out."}), 200

    except ValidationError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.messages}), 400
    except (jwt.PyJWTError, KeyError) as e:
        logging.error(f"JWT 해독 오류 발생: {e}")
        return jsonify({"error_code": "INVALID_TOKEN", "message": "Invalid token."}), 422
    except Exception as e:
        logging.error(f"로그아웃 처리 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "LOGOUT_FAILED", "message": "Logout failed due to a server error."}), 500
