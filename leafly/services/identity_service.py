# leafly/services/identity_service.py

import logging
import requests


class InvalidCredentialsError(Exception):
    """이메일/비밀번호가 일치하지 않거나 로그인할 수 없는 계정입니다."""


class IdentityToolkitError(Exception):
    """Identity Toolkit 호출 자체가 실패했습니다 (설정 오류, 네트워크 오류 등)."""


class IdentityService:
    """
    Firebase Authentication의 이메일/비밀번호 로그인을 담당하는 서비스 클래스입니다.
    Admin SDK에는 비밀번호 검증 기능이 없으므로 Identity Toolkit REST API를 직접 호출합니다.
    """
    _base_url = "https://identitytoolkit.googleapis.com/v1"

    # 로그인 실패로 취급하는 Identity Toolkit 오류 코드
    _credential_errors = {
        "EMAIL_NOT_FOUND",
        "INVALID_PASSWORD",
        "INVALID_LOGIN_CREDENTIALS",
        "INVALID_EMAIL",
        "USER_DISABLED",
    }

    def __init__(self, api_key: str = None, timeout: float = 10.0):
        self.api_key = api_key
        self.timeout = timeout

    def _post(self, endpoint: str, payload: dict) -> requests.Response:
        if not self.api_key:
            raise IdentityToolkitError("FIREBASE_WEB_API_KEY is not configured.")
        return requests.post(
            f"{self._base_url}/{endpoint}",
            params={"key": self.api_key},
            json=payload,
            timeout=self.timeout
        )

    @staticmethod
    def _error_code(response: requests.Response) -> str:
        try:
            message = response.json().get("error", {}).get("message", "")
        except ValueError:
            return ""
        # "TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account..." 형식 대응
        return message.split(" ")[0].strip()

    def sign_in_with_password(self, email: str, password: str) -> str:
        """
        이메일/비밀번호를 검증하고 Firebase uid(localId)를 반환합니다.

        :raises InvalidCredentialsError: 계정이 없거나 비밀번호가 틀린 경우
        :raises IdentityToolkitError: 그 밖의 호출 실패
        """
        try:
            response = self._post("accounts:signInWithPassword", {
                "email": email,
                "password": password,
                "returnSecureToken": True
            })
        except requests.RequestException as e:
            logging.error(f"Identity Toolkit 로그인 요청 실패: {e}", exc_info=True)
            raise IdentityToolkitError("Could not reach the authentication server.") from e

        if response.status_code == 200:
            return response.json()["localId"]

        error_code = self._error_code(response)
        if error_code in self._credential_errors:
            raise InvalidCredentialsError("Invalid email or password.")

        logging.error(f"Identity Toolkit 로그인 실패 (status: {response.status_code}, code: {error_code})")
        raise IdentityToolkitError(error_code or "Sign-in failed.")

    def send_password_reset_email(self, email: str) -> None:
        """
        비밀번호 재설정 메일을 발송합니다.
        가입되지 않은 이메일이어도 계정 존재 여부를 노출하지 않도록 조용히 성공 처리합니다.
        """
        try:
            response = self._post("accounts:sendOobCode", {
                "requestType": "PASSWORD_RESET",
                "email": email
            })
        except requests.RequestException as e:
            logging.error(f"비밀번호 재설정 메일 요청 실패: {e}", exc_info=True)
            raise IdentityToolkitError("Could not reach the authentication server.") from e

        if response.status_code == 200:
            logging.info("비밀번호 재설정 메일 발송 요청 완료")
            return

        error_code = self._error_code(response)
        if error_code == "EMAIL_NOT_FOUND":
            logging.info("비밀번호 재설정 요청: 가입되지 않은 이메일 (무시됨)")
            return

        logging.error(f"비밀번호 재설정 메일 발송 실패 (status: {response.status_code}, code: {error_code})")
        raise IdentityToolkitError(error_code or "Password reset failed.")
