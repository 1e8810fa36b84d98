"""
Unit Tests for Authentication

Password hashing, local JWTs and the Firebase token fallback.
"""

from datetime import datetime, timedelta

import jwt
import pytest

from voiceverse.api.auth import (
    APIAuthenticator,
    AuthMethod,
    JWTConfig,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from voiceverse.api.base import AuthenticationError, ErrorCode


def firebase_token(**claims) -> str:
    payload = {"user_id": "fb-uid-1", "email": "fan@example.com", "name": "Fan"}
    payload.update(claims)
    return jwt.encode(payload, "firebase-signing-key", algorithm="HS512")


class TestPasswords:
    """Tests for password hashing."""

    def test_hash_and_verify(self):
        hashed = hash_password("s3cret!")
        assert hashed != "s3cret!"
        assert verify_password("s3cret!", hashed)
        assert not verify_password("wrong", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_missing_hash_never_verifies(self):
        assert not verify_password("anything", None)
        assert not verify_password("anything", "no-separator")

    def test_reset_token_is_stored_hashed(self):
        token, token_hash = generate_reset_token()
        assert token != token_hash
        assert hash_reset_token(token) == token_hash


class TestAPIAuthenticator:
    """Tests for bearer token authentication."""

    @pytest.fixture
    def authenticator(self):
        return APIAuthenticator(JWTConfig(secret_key="unit-secret", allow_unverified_firebase=True))

    def test_round_trip(self, authenticator):
        token = authenticator.create_jwt("user-1")
        context = authenticator.authenticate_jwt(token)
        assert context.method == AuthMethod.JWT
        assert context.user_id == "user-1"

    def test_wrong_secret_rejected(self, authenticator):
        other = APIAuthenticator(JWTConfig(secret_key="other-secret"))
        with pytest.raises(AuthenticationError) as exc:
            authenticator.authenticate_jwt(other.create_jwt("user-1"))
        assert exc.value.code == ErrorCode.INVALID_TOKEN

    def test_expired_token(self, authenticator):
        token = jwt.encode(
            {"id": "user-1", "exp": datetime.utcnow() - timedelta(minutes=5)},
            "unit-secret",
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError) as exc:
            authenticator.authenticate_jwt(token)
        assert exc.value.message == "Token expired"

    def test_garbage_token(self, authenticator):
        with pytest.raises(AuthenticationError):
            authenticator.authenticate_jwt("not-a-jwt")

    def test_firebase_fallback(self, authenticator):
        context = authenticator.authenticate_jwt(firebase_token())
        assert context.method == AuthMethod.FIREBASE
        assert context.firebase.uid == "fb-uid-1"
        assert context.firebase.email == "fan@example.com"
        assert context.firebase.display_name == "Fan"

    def test_firebase_fallback_disabled(self):
        strict = APIAuthenticator(JWTConfig(secret_key="unit-secret", allow_unverified_firebase=False))
        with pytest.raises(AuthenticationError):
            strict.authenticate_jwt(firebase_token())

    def test_firebase_token_without_uid(self, authenticator):
        token = jwt.encode({"email": "x@example.com"}, "k", algorithm="HS512")
        with pytest.raises(AuthenticationError):
            authenticator.decode_firebase_token(token)
