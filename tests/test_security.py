"""Unit tests for shareai.core.security: bcrypt hashing and JWT encode/decode."""

import unittest
from datetime import UTC, datetime, timedelta

import jwt

from shareai.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    token_remaining_seconds,
    verify_password,
)
from tests.helpers import make_settings


class TestPasswordHashing(unittest.TestCase):
    """hash_password never returns the plaintext; verify_password accepts only the original."""

    def test_hash_is_not_plaintext_and_verifies(self) -> None:
        hashed = hash_password("secret1", rounds=4)
        self.assertNotEqual(hashed, "secret1")
        self.assertNotIn("secret1", hashed)
        self.assertTrue(verify_password("secret1", hashed))

    def test_wrong_password_rejected(self) -> None:
        hashed = hash_password("secret1", rounds=4)
        self.assertFalse(verify_password("secret2", hashed))

    def test_same_password_gets_different_salts(self) -> None:
        self.assertNotEqual(hash_password("secret1", rounds=4), hash_password("secret1", rounds=4))

    def test_garbage_hash_returns_false(self) -> None:
        self.assertFalse(verify_password("secret1", "not-a-bcrypt-hash"))

    def test_cost_comes_from_rounds_argument(self) -> None:
        self.assertTrue(hash_password("secret1", rounds=4).startswith("$2b$04$"))
        self.assertEqual(make_settings(BCRYPT_ROUNDS=12).BCRYPT_ROUNDS, 12)


class TestAccessToken(unittest.TestCase):
    """create_access_token / decode_access_token round trip and failure modes."""

    def setUp(self) -> None:
        self.settings = make_settings()

    def test_round_trip_carries_subject_and_timestamps(self) -> None:
        token = create_access_token("user-123", self.settings)
        payload = decode_access_token(token, self.settings)
        self.assertEqual(payload["sub"], "user-123")
        self.assertIn("iat", payload)
        self.assertGreater(payload["exp"], payload["iat"])
        self.assertEqual(payload["exp"] - payload["iat"], 60 * 60)

    def test_wrong_secret_rejected(self) -> None:
        token = create_access_token("user-123", self.settings)
        other = make_settings(JWT_SECRET="another-secret")
        with self.assertRaises(jwt.InvalidSignatureError):
            decode_access_token(token, other)

    def test_expired_token_rejected(self) -> None:
        past = datetime.now(UTC) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "user-123", "iat": past, "exp": past + timedelta(minutes=5)},
            "test-secret",
            algorithm="HS256",
        )
        with self.assertRaises(jwt.ExpiredSignatureError):
            decode_access_token(token, self.settings)

    def test_missing_subject_rejected(self) -> None:
        token = jwt.encode(
            {"exp": datetime.now(UTC) + timedelta(minutes=5)}, "test-secret", algorithm="HS256"
        )
        with self.assertRaises(jwt.MissingRequiredClaimError):
            decode_access_token(token, self.settings)


class TestTokenRemainingSeconds(unittest.TestCase):
    def test_counts_down_to_exp(self) -> None:
        exp = int(datetime.now(UTC).timestamp()) + 120
        remaining = token_remaining_seconds({"exp": exp})
        self.assertTrue(118 <= remaining <= 120)

    def test_never_below_one(self) -> None:
        self.assertEqual(token_remaining_seconds({"exp": 0}), 1)
        self.assertEqual(token_remaining_seconds({}), 1)


if __name__ == "__main__":
    unittest.main()
