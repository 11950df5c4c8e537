"""
Unit tests for core.security module.
Tests password hashing, JWT access/refresh token creation and validation.
"""
import pytest
import datetime as dt
import jwt
from identity_service.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    REFRESH_TOKEN_EXPIRE_DAYS,
)


def _ts(value) -> float:
    return value.timestamp() if isinstance(value, dt.datetime) else value


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password_returns_different_hash_each_time(self):
        """Password hashing should produce different hashes (salt included)."""
        password = "TestPassword123"
        assert hash_password(password) != hash_password(password)

    def test_hash_password_produces_argon2_hash(self):
        password = "TestPassword123"
        hashed = hash_password(password)
        assert hashed.startswith("$argon2")
        assert hashed != password  # Should not be plain text

    def test_verify_password_correct_password(self):
        hashed = hash_password("TestPassword123")
        assert verify_password("TestPassword123", hashed) is True

    def test_verify_password_incorrect_password(self):
        hashed = hash_password("TestPassword123")
        assert verify_password("WrongPassword456", hashed) is False

    def test_verify_password_unknown_hash_raises(self):
        """Unreadable hashes raise; credentials.is_password_correct turns that into False."""
        with pytest.raises(ValueError):
            verify_password("anything", "not-a-hash")


class TestAccessTokens:
    """Tests for access token creation and validation."""

    def test_access_token_contains_subject_and_claims(self):
        token = create_access_token("user-123", {"username": "ann_k", "email": "ann@example.com"})
        payload = decode_access_token(token)
        assert payload["sub"] == "user-123"
        assert payload["username"] == "ann_k"
        assert payload["email"] == "ann@example.com"
        assert "jti" in payload

    def test_access_token_expiration_time(self):
        payload = decode_access_token(create_access_token("user-exp"))
        diff_minutes = (_ts(payload["exp"]) - _ts(payload["iat"])) / 60
        assert abs(diff_minutes - ACCESS_TOKEN_EXPIRE_MINUTES) < 1
        assert _ts(payload["exp"]) > dt.datetime.now(dt.timezone.utc).timestamp()

    def test_tokens_for_same_user_differ(self):
        """Unique jti keeps tokens distinct even when minted in the same second."""
        assert create_access_token("same-user") != create_access_token("same-user")

    def test_decode_access_token_invalid_token(self):
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token("invalid.token.here")

    def test_decode_access_token_expired(self):
        from identity_service.config import settings
        now = dt.datetime.now(dt.timezone.utc)
        expired = jwt.encode(
            {"sub": "u", "iat": now - dt.timedelta(hours=2), "exp": now - dt.timedelta(hours=1)},
            settings.access_token_secret,
            algorithm="HS256",
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(expired)


class TestRefreshTokens:
    """Tests for refresh token creation and validation."""

    def test_refresh_token_carries_only_subject(self):
        payload = decode_refresh_token(create_refresh_token("user-456"))
        assert payload["sub"] == "user-456"
        assert set(payload) == {"sub", "jti", "iat", "exp"}

    def test_refresh_token_lifetime(self):
        payload = decode_refresh_token(create_refresh_token("user-456"))
        diff_days = (_ts(payload["exp"]) - _ts(payload["iat"])) / 86400
        assert abs(diff_days - REFRESH_TOKEN_EXPIRE_DAYS) < 0.01

    def test_access_and_refresh_secrets_are_not_interchangeable(self):
        with pytest.raises(jwt.InvalidSignatureError):
            decode_access_token(create_refresh_token("user-789"))
        with pytest.raises(jwt.InvalidSignatureError):
            decode_refresh_token(create_access_token("user-789"))
