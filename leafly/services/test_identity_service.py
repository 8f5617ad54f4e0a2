# leafly/services/test_identity_service.py
from unittest import mock

import pytest
import requests

from leafly.services.identity_service import IdentityService, InvalidCredentialsError, IdentityToolkitError


def _response(status_code, payload):
    response = mock.MagicMock(status_code=status_code)
    response.json.return_value = payload
    return response


@mock.patch('leafly.services.identity_service.requests.post')
def test_sign_in_returns_local_id(mock_post):
    mock_post.return_value = _response(200, {"localId": "uid-123", "idToken": "x"})

    assert IdentityService(api_key="key").sign_in_with_password("a@b.com", "secret1") == "uid-123"
    _, kwargs = mock_post.call_args
    assert kwargs["params"] == {"key": "key"}
    assert kwargs["json"]["returnSecureToken"] is True


@mock.patch('leafly.services.identity_service.requests.post')
def test_sign_in_with_wrong_password(mock_post):
    mock_post.return_value = _response(400, {"error": {"message": "INVALID_LOGIN_CREDENTIALS"}})

    with pytest.raises(InvalidCredentialsError):
        IdentityService(api_key="key").sign_in_with_password("a@b.com", "nope")


@mock.patch('leafly.services.identity_service.requests.post')
def test_sign_in_rate_limited_is_service_error(mock_post):
    mock_post.return_value = _response(400, {"error": {"message": "TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled"}})

    with pytest.raises(IdentityToolkitError, match="TOO_MANY_ATTEMPTS_TRY_LATER"):
        IdentityService(api_key="key").sign_in_with_password("a@b.com", "secret1")


@mock.patch('leafly.services.identity_service.requests.post')
def test_network_failure_is_service_error(mock_post):
    mock_post.side_effect = requests.ConnectionError("down")

    with pytest.raises(IdentityToolkitError):
        IdentityService(api_key="key").sign_in_with_password("a@b.com", "secret1")


def test_missing_api_key():
    with pytest.raises(IdentityToolkitError):
        IdentityService(api_key=None).sign_in_with_password("a@b.com", "secret1")


@mock.patch('leafly.services.identity_service.requests.post')
def test_password_reset_hides_unknown_email(mock_post):
    mock_post.return_value = _response(400, {"error": {"message": "EMAIL_NOT_FOUND"}})

    IdentityService(api_key="key").send_password_reset_email("nobody@leafly.test")

    _, kwargs = mock_post.call_args
    assert kwargs["json"] == {"requestType": "PASSWORD_RESET", "email": "nobody@leafly.test"}
