"""Tests for the auth port and its providers."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from cloud_backup.auth import (
    DEFAULT_REQUEST_CODE,
    RESULT_CANCELED,
    RESULT_OK,
    Authenticated,
    Authenticating,
    CurrentUser,
    JwtAuth,
    MemoryAuth,
    NotAuthenticated,
    user_of,
)

SECRET = "test-secret-key-for-cloud-backup-auth"


def make_token(secret=SECRET, **claims):
    payload = {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


class TestAuthState:
    """Tests for the session model helpers."""

    def test_user_of(self, user):
        assert user_of(Authenticated(user)) == user
        assert user_of(Authenticating()) is None
        assert user_of(NotAuthenticated()) is None
        assert user_of(None) is None


class TestMemoryAuth:
    """Tests for MemoryAuth."""

    def test_starts_not_authenticated(self, auth):
        assert auth.current_state == NotAuthenticated()
        assert auth.current_user is None

    def test_state_replayed_to_subscribers(self, auth):
        received = []
        auth.state.subscribe(received.append)
        assert received == [NotAuthenticated()]

    def test_sign_in_and_logout(self, auth, user):
        received = []
        auth.state.subscribe(received.append, replay=False)

        auth.sign_in(user)
        auth.logout()

        assert received == [Authenticated(user), NotAuthenticated()]
        assert auth.current_user is None

    def test_repeated_state_not_reemitted(self, auth, user):
        received = []
        auth.state.subscribe(received.append, replay=False)

        auth.sign_in(user)
        auth.sign_in(user)

        assert received == [Authenticated(user)]

    def test_start_authentication(self, auth):
        auth.start_authentication(None)
        assert auth.current_state == Authenticating()

    def test_external_result_with_mapping(self, auth):
        auth.start_authentication(None)

        handled = auth.handle_external_result(None, RESULT_OK, {"id": "user-9", "email": "x@y.z"})

        assert handled is True
        assert auth.current_user == CurrentUser(id="user-9", email="x@y.z")

    def test_external_result_canceled(self, auth):
        auth.start_authentication(None)

        assert auth.handle_external_result(None, RESULT_CANCELED, None) is True
        assert auth.current_state == NotAuthenticated()

    def test_foreign_request_code_ignored(self, user):
        auth = MemoryAuth(request_code=1)
        auth.start_authentication(None)

        assert auth.handle_external_result(2, RESULT_OK, user) is False
        assert auth.current_state == Authenticating()


class TestJwtAuth:
    """Tests for JwtAuth token validation."""

    @pytest.fixture
    def jwt_auth(self):
        return JwtAuth(secret_key=SECRET)

    def test_start_authentication_launches_flow(self, jwt_auth):
        launched = []

        jwt_auth.start_authentication(launched.append)

        assert launched == [DEFAULT_REQUEST_CODE]
        assert jwt_auth.current_state == Authenticating()

    def test_valid_token_authenticates(self, jwt_auth):
        token = make_token(sub="user-42", email="u@example.com", name="User 42")

        handled = jwt_auth.handle_external_result(DEFAULT_REQUEST_CODE, RESULT_OK, token)

        assert handled is True
        assert jwt_auth.current_user == CurrentUser(
            id="user-42", email="u@example.com", display_name="User 42"
        )

    def test_wrong_signature_rejected(self, jwt_auth):
        token = make_token(secret="another-secret-key-that-does-not-match", sub="user-42")

        jwt_auth.handle_external_result(DEFAULT_REQUEST_CODE, RESULT_OK, token)

        assert jwt_auth.current_state == NotAuthenticated()

    def test_expired_token_rejected(self, jwt_auth):
        token = make_token(sub="user-42", exp=datetime.now(timezone.utc) - timedelta(minutes=1))

        jwt_auth.handle_external_result(DEFAULT_REQUEST_CODE, RESULT_OK, token)

        assert jwt_auth.current_user is None

    def test_missing_subject_rejected(self, jwt_auth):
        jwt_auth.handle_external_result(DEFAULT_REQUEST_CODE, RESULT_OK, make_token())

        assert jwt_auth.current_user is None

    def test_audience_verified_when_configured(self):
        auth = JwtAuth(secret_key=SECRET, audience="cloud-backup")

        auth.handle_external_result(DEFAULT_REQUEST_CODE, RESULT_OK, make_token(sub="u", aud="other"))
        assert auth.current_user is None

        auth.handle_external_result(
            DEFAULT_REQUEST_CODE, RESULT_OK, make_token(sub="u", aud="cloud-backup")
        )
        assert auth.current_user == CurrentUser(id="u")

    def test_canceled_flow(self, jwt_auth):
        jwt_auth.start_authentication(None)

        jwt_auth.handle_external_result(DEFAULT_REQUEST_CODE, RESULT_CANCELED, None)

        assert jwt_auth.current_state == NotAuthenticated()

    def test_foreign_request_code_ignored(self, jwt_auth):
        assert jwt_auth.handle_external_result(1, RESULT_OK, make_token(sub="u")) is False
        assert jwt_auth.current_user is None

    def test_logout(self, jwt_auth):
        jwt_auth.handle_external_result(DEFAULT_REQUEST_CODE, RESULT_OK, make_token(sub="u"))

        jwt_auth.logout()

        assert jwt_auth.current_state == NotAuthenticated()
