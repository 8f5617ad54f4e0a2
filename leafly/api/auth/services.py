# leafly/api/auth/services.py
import logging
from datetime import datetime, timezone
from typing import Optional

from firebase_admin import auth as firebase_auth

from leafly.models.user import User
from leafly.api.users.services import UserService, UsernameTakenError
from leafly.services.identity_service import IdentityService
from leafly.utils.datetime_utils import DateTimeUtils


class EmailTakenError(Exception):
    """이미 가입된 이메일입니다."""


class AuthService:
    """
    Firebase Authentication 이메일/비밀번호 계정 관리와 JWT 무효화 목록을 담당합니다.
    API 토큰 자체는 라우트에서 flask_jwt_extended로 발급합니다.
    """
    def __init__(self, database, user_service: UserService, identity_service: IdentityService):
        self.revoked_tokens_ref = database.child('revoked_tokens')
        self.user_service = user_service
        self.identity_service = identity_service

    def signup(self, email: str, password: str, username: str) -> User:
        """
        Firebase Auth 계정과 users/{uid} 레코드를 생성합니다.

        :raises UsernameTakenError: username이 이미 사용 중인 경우
        :raises EmailTakenError: 이미 가입된 이메일인 경우
        """
        # 계정을 만들기 전에 먼저 확인해서 불필요한 Auth 계정 생성을 줄입니다.
        if not self.user_service.is_username_available(username):
            raise UsernameTakenError(f"The username '{username}' is already taken.")

        try:
            record = firebase_auth.create_user(email=email, password=password, display_name=username)
        except firebase_auth.EmailAlreadyExistsError:
            raise EmailTakenError("An account with this email already exists.")

        user_id = record.uid
        new_user = User(user_id=user_id, username=username, email=email)
        try:
            self.user_service.claim_username(username, user_id)
        except UsernameTakenError:
            # 확인 이후 다른 사용자가 먼저 점유한 경우: 방금 만든 Auth 계정을 되돌립니다.
            firebase_auth.delete_user(user_id)
            raise

        try:
            self.user_service.create_user_record(new_user)
        except Exception as e:
            logging.error(f"사용자 레코드 생성 실패, 가입을 되돌립니다 (user_id: {user_id}): {e}", exc_info=True)
            self.user_service.release_username(username, user_id)
            firebase_auth.delete_user(user_id)
            raise

        logging.info(f"회원가입 완료 (user_id: {user_id})")
        return new_user

    def login(self, email: str, password: str) -> User:
        """
        비밀번호를 검증하고 사용자 레코드를 반환합니다.
        레코드 없이 Auth 계정만 있는 경우(구버전 앱 가입자) 기본 레코드를 만들어 줍니다.

        :raises InvalidCredentialsError: 이메일/비밀번호 불일치
        """
        user_id = self.identity_service.sign_in_with_password(email, password)
        user = self.user_service.get_user(user_id)
        if user is not None:
            return user

        username = f"user_{user_id[:8]}"
        self.user_service.claim_username(username, user_id)
        logging.warning(f"사용자 레코드가 없어 기본 레코드를 생성합니다 (user_id: {user_id})")
        return self.user_service.create_user_record(User(user_id=user_id, username=username, email=email))

    def request_password_reset(self, email: str) -> None:
        self.identity_service.send_password_reset_email(email)

    # --- Blocklist 관련 로직 ---
    def add_token_to_blocklist(self, jti: str, expires: datetime) -> None:
        """토큰의 jti를 만료 시간과 함께 revoked_tokens/{jti}에 저장합니다."""
        self.revoked_tokens_ref.child(jti).set({
            'revokedAt': DateTimeUtils.now_ms(),
            'expiresAt': DateTimeUtils.to_timestamp_ms(expires),
        })

    def is_token_revoked(self, jwt_payload: dict) -> bool:
        """jti로 해당 토큰이 무효화 목록에 있는지 확인합니다."""
        jti: Optional[str] = jwt_payload.get('jti')
        if not jti:
            return True
        return self.revoked_tokens_ref.child(jti).get() is not None

    def logout_user(self, access_jti: str, access_exp: int, refresh_jti: str, refresh_exp: int) -> None:
        """Access 토큰과 Refresh 토큰을 모두 Blocklist에 추가합니다."""
        self.add_token_to_blocklist(access_jti, datetime.fromtimestamp(access_exp, tz=timezone.utc))
        self.add_token_to_blocklist(refresh_jti, datetime.fromtimestamp(refresh_exp, tz=timezone.utc))
        logging.info(f"사용자 로그아웃 처리 완료. JTI: {access_jti[:8]}..., {refresh_jti[:8]}...")
