"""Unit tests for bookloan.core.security: tokens, password hashing and one-time codes."""

import os
import unittest
from datetime import timedelta
from unittest.mock import patch

import jwt
from pydantic import ValidationError

from bookloan.core.config import Settings, settings
from bookloan.core.security import (
    CODE_ALPHABET,
    CODE_LENGTH,
    ExpiredTokenError,
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    generate_code,
    hash_password,
    verify_password,
    verify_token,
)


class TestAccessToken(unittest.TestCase):
    """Issued tokens verify and carry the account id and access level."""

    def test_roundtrip_claims(self) -> None:
        token = create_access_token(42, 3)
        claims = verify_token(token)
        self.assertEqual(claims.account_id, 42)
        self.assertEqual(claims.access_level, 3)

    def test_one_hour_token_valid_immediately(self) -> None:
        token = create_access_token(1, 0, ttl=timedelta(hours=1))
        self.assertEqual(verify_token(token).account_id, 1)

    def test_expired_token_raises_expired(self) -> None:
        token = create_access_token(1, 0, ttl=timedelta(seconds=-5))
        with self.assertRaises(ExpiredTokenError):
            verify_token(token)

    def test_expired_is_a_kind_of_invalid(self) -> None:
        self.assertTrue(issubclass(ExpiredTokenError, InvalidTokenError))

    def test_tampered_signature_is_invalid_not_expired(self) -> None:
        token = create_access_token(1, 0)
        head, payload, signature = token.split(".")
        tampered = ".".join([head, payload, signature[::-1]])
        with self.assertRaises(InvalidTokenError) as ctx:
            verify_token(tampered)
        self.assertNotIsInstance(ctx.exception, ExpiredTokenError)

    def test_other_secret_is_invalid(self) -> None:
        token = jwt.encode(
            {"sub": "1", "level": 0, "type": "access", "exp": 9999999999},
            "another-signing-secret-of-reasonable-length-0123",
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError):
            verify_token(token)

    def test_garbage_is_invalid(self) -> None:
        with self.assertRaises(InvalidTokenError):
            verify_token("not-a-jwt")

    def test_non_numeric_subject_is_invalid(self) -> None:
        token = jwt.encode(
            {"sub": "abc", "level": 0, "type": "access", "exp": 9999999999},
            settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
        )
        with self.assertRaises(InvalidTokenError):
            verify_token(token)


class TestRefreshToken(unittest.TestCase):
    def test_refresh_token_verifies_as_refresh(self) -> None:
        claims = verify_token(create_refresh_token(7, 2), expected_type="refresh")
        self.assertEqual((claims.account_id, claims.access_level), (7, 2))

    def test_refresh_token_rejected_as_access(self) -> None:
        with self.assertRaises(InvalidTokenError):
            verify_token(create_refresh_token(7, 2))

    def test_access_token_rejected_as_refresh(self) -> None:
        with self.assertRaises(InvalidTokenError):
            verify_token(create_access_token(7, 2), expected_type="refresh")

    def test_refresh_outlives_access(self) -> None:
        secret = settings.JWT_SECRET.get_secret_value()
        access = jwt.decode(create_access_token(1, 0), secret, algorithms=[settings.JWT_ALGORITHM])
        refresh = jwt.decode(create_refresh_token(1, 0), secret, algorithms=[settings.JWT_ALGORITHM])
        self.assertGreater(refresh["exp"], access["exp"])


class TestPasswords(unittest.TestCase):
    def test_hash_is_not_plaintext_and_verifies(self) -> None:
        hashed = hash_password("Str0ng!Pass")
        self.assertNotEqual(hashed, "Str0ng!Pass")
        self.assertTrue(verify_password("Str0ng!Pass", hashed))
        self.assertFalse(verify_password("wrong", hashed))

    def test_same_password_gets_different_salt(self) -> None:
        self.assertNotEqual(hash_password("Str0ng!Pass"), hash_password("Str0ng!Pass"))

    def test_missing_or_malformed_hash_never_verifies(self) -> None:
        self.assertFalse(verify_password("x", None))
        self.assertFalse(verify_password("x", "not-a-bcrypt-hash"))


class TestGenerateCode(unittest.TestCase):
    def test_code_shape(self) -> None:
        code = generate_code()
        self.assertEqual(len(code), CODE_LENGTH)
        self.assertTrue(all(c in CODE_ALPHABET for c in code))


class TestSigningSecretRequired(unittest.TestCase):
    """No insecure default: settings fail to load without JWT_SECRET."""

    def test_missing_secret_fails(self) -> None:
        env = {k: v for k, v in os.environ.items() if k != "JWT_SECRET"}
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(ValidationError):
                Settings(_env_file=None)

    def test_blank_secret_fails(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(_env_file=None, JWT_SECRET="   ")

    def test_database_url_must_be_supported(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(_env_file=None, JWT_SECRET="x", DATABASE_URL="mysql://localhost/db")


if __name__ == "__main__":
    unittest.main()
