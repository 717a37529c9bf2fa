# =============================================================================
# tests/test_security.py - Password and Token Primitive Tests
# =============================================================================
# Run with: pytest tests/test_security.py -v
# =============================================================================

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.config import settings
from app.exceptions import AuthenticationError, BusinessRuleError
from lib.security import (
    create_access_token,
    decode_access_token,
    generate_opaque_token,
    hash_opaque_token,
    hash_password,
    validate_password_strength,
    verify_password,
)


class TestPasswords:
    """Tests for bcrypt hashing and the password policy."""

    def test_hash_and_verify(self):
        hashed = hash_password("correct-horse-42")

        assert hashed != "correct-horse-42"
        assert verify_password("correct-horse-42", hashed)
        assert not verify_password("wrong-horse-42", hashed)

    def test_missing_hash_never_verifies(self):
        assert not verify_password("anything1", None)
        assert not verify_password("anything1", "")

    def test_garbage_hash_does_not_raise(self):
        assert not verify_password("anything1", "not-a-bcrypt-hash")

    @pytest.mark.parametrize("password", ["short1", "lettersonly", "12345678", "a1" * 65])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(BusinessRuleError) as exc_info:
            validate_password_strength(password)

        assert exc_info.value.code == "WEAK_PASSWORD"

    def test_strong_password_accepted(self):
        assert validate_password_strength("correct-horse-42") == "correct-horse-42"


class TestAccessTokens:
    """Tests for JWT issuing and verification."""

    def test_round_trip_claims(self):
        token, expires_at = create_access_token("user-1", "ada@example.com", "member", "session-1")

        payload = decode_access_token(token)

        assert payload.sub == "user-1"
        assert payload.sid == "session-1"
        assert payload.role == "member"
        assert payload.iss == settings.JWT_ISSUER
        assert payload.exp == int(expires_at.timestamp())

    def test_expired_token(self):
        issued = datetime.now(timezone.utc) - timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES + 5)
        token, _ = create_access_token("user-1", "ada@example.com", "member", "session-1", now=issued)

        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)

        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_wrong_signature(self):
        token = jwt.encode(
            {"sub": "user-1", "type": "access", "iss": settings.JWT_ISSUER},
            "some-other-secret-key",
            algorithm="HS256",
        )

        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)

        assert exc_info.value.code == "INVALID_TOKEN"

    def test_wrong_token_type(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "user-1", "email": "a@b.co", "role": "member", "sid": "s",
                "type": "refresh", "iss": settings.JWT_ISSUER,
                "iat": int(now.timestamp()), "exp": int((now + timedelta(minutes=5)).timestamp()),
            },
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )

        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_garbage_token(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.jwt")


class TestOpaqueTokens:

    def test_tokens_are_unique_and_hash_stably(self):
        first, second = generate_opaque_token(), generate_opaque_token()

        assert first != second
        assert hash_opaque_token(first) == hash_opaque_token(first)
        assert hash_opaque_token(first) != hash_opaque_token(second)
        assert len(hash_opaque_token(first)) == 64
