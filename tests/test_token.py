"""Tests for token models and issuance-time normalization."""

import base64
import dataclasses
import json
import unittest

import jwt

from appcheck._token import (
    AppCheckToken,
    CustomToken,
    decode_jwt_claims,
    issued_at_time,
    normalize_issued_at_millis,
)

NOW_MILLIS = 1_700_000_000_000
NOW_SECONDS = NOW_MILLIS // 1000


def make_jwt(claims: dict | str) -> str:
    """Build an unsigned JWT-shaped string with the given claims."""
    def encode(raw: bytes) -> str:
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    header = encode(json.dumps({"alg": "none", "typ": "JWT"}).encode())
    payload = encode(claims.encode() if isinstance(claims, str) else json.dumps(claims).encode())
    signature = encode(b"signature")
    return f"{header}.{payload}.{signature}"


class TestAppCheckToken(unittest.TestCase):
    """Tests for AppCheckToken dataclass."""

    def test_creation(self):
        token = AppCheckToken(token="abc", expire_time_millis=2000, issued_at_time_millis=1000)
        self.assertEqual(token.token, "abc")
        self.assertEqual(token.expire_time_millis, 2000)
        self.assertEqual(token.issued_at_time_millis, 1000)

    def test_is_immutable(self):
        token = AppCheckToken(token="abc", expire_time_millis=2000, issued_at_time_millis=1000)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            token.token = "other"  # type: ignore[misc]

    def test_repr_does_not_leak_full_token(self):
        token = AppCheckToken(token="a-very-secret-token-value", expire_time_millis=2000, issued_at_time_millis=1000)
        self.assertNotIn("a-very-secret-token-value", repr(token))

    def test_custom_token_is_immutable(self):
        token = CustomToken(token="abc", expire_time_millis=2000)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            token.expire_time_millis = 0  # type: ignore[misc]


class TestDecodeJwtClaims(unittest.TestCase):
    """Tests for decode_jwt_claims()."""

    def test_signed_token_is_decoded_without_key(self):
        token = jwt.encode({"iat": 1_600_000_000, "sub": "app"}, "backend-signing-key-of-at-least-32-bytes", algorithm="HS256")
        self.assertEqual(decode_jwt_claims(token), {"iat": 1_600_000_000, "sub": "app"})

    def test_expired_token_is_still_decoded(self):
        token = jwt.encode({"iat": 1_600_000_000, "exp": 1_600_000_060}, "backend-signing-key-of-at-least-32-bytes", algorithm="HS256")
        self.assertEqual(decode_jwt_claims(token)["iat"], 1_600_000_000)

    def test_invalid_signature_segment(self):
        header, payload, _ = make_jwt({"iat": 1_600_000_000}).split(".")
        # Five base64 characters can never be a complete encoding
        self.assertIsNone(decode_jwt_claims(f"{header}.{payload}.abcde"))

    def test_logs_debug_on_failure(self):
        with self.assertLogs("appcheck._token", level="DEBUG") as logs:
            self.assertIsNone(decode_jwt_claims("opaque-token"))
        self.assertIn("Unable to decode token claims", logs.output[0])


class TestIssuedAtTime(unittest.TestCase):
    """Tests for issued_at_time()."""

    def test_extracts_iat(self):
        self.assertEqual(issued_at_time(make_jwt({"iat": 1_600_000_000})), 1_600_000_000)

    def test_extracts_float_iat(self):
        self.assertEqual(issued_at_time(make_jwt({"iat": 1_600_000_000.5})), 1_600_000_000.5)

    def test_missing_iat(self):
        self.assertIsNone(issued_at_time(make_jwt({"sub": "app"})))

    def test_non_numeric_iat(self):
        self.assertIsNone(issued_at_time(make_jwt({"iat": "yesterday"})))
        self.assertIsNone(issued_at_time(make_jwt({"iat": True})))

    def test_not_a_jwt(self):
        self.assertIsNone(issued_at_time("opaque-token"))
        self.assertIsNone(issued_at_time("only.two"))
        self.assertIsNone(issued_at_time(""))

    def test_payload_not_json(self):
        self.assertIsNone(issued_at_time(make_jwt("not json at all")))

    def test_payload_not_base64(self):
        self.assertIsNone(issued_at_time("header.!!!%%%.signature"))

    def test_payload_not_an_object(self):
        self.assertIsNone(decode_jwt_claims(make_jwt("[1, 2, 3]")))


class TestNormalizeIssuedAtMillis(unittest.TestCase):
    """Tests for normalize_issued_at_millis()."""

    def test_past_iat_is_trusted(self):
        iat = NOW_SECONDS - 3600
        self.assertEqual(normalize_issued_at_millis(make_jwt({"iat": iat}), NOW_MILLIS), iat * 1000)

    def test_iat_of_one_second_is_trusted(self):
        self.assertEqual(normalize_issued_at_millis(make_jwt({"iat": 1}), NOW_MILLIS), 1000)

    def test_zero_iat_uses_now(self):
        self.assertEqual(normalize_issued_at_millis(make_jwt({"iat": 0}), NOW_MILLIS), NOW_MILLIS)

    def test_negative_iat_uses_now(self):
        self.assertEqual(normalize_issued_at_millis(make_jwt({"iat": -5}), NOW_MILLIS), NOW_MILLIS)

    def test_iat_equal_to_now_uses_now(self):
        self.assertEqual(normalize_issued_at_millis(make_jwt({"iat": NOW_SECONDS}), NOW_MILLIS), NOW_MILLIS)

    def test_future_iat_uses_now(self):
        self.assertEqual(normalize_issued_at_millis(make_jwt({"iat": NOW_SECONDS + 60}), NOW_MILLIS), NOW_MILLIS)

    def test_iat_in_milliseconds_uses_now(self):
        """An iat mistakenly expressed in milliseconds is in the future, so it is not trusted."""
        self.assertEqual(normalize_issued_at_millis(make_jwt({"iat": NOW_MILLIS - 1}), NOW_MILLIS), NOW_MILLIS)

    def test_missing_iat_uses_now(self):
        self.assertEqual(normalize_issued_at_millis(make_jwt({"sub": "app"}), NOW_MILLIS), NOW_MILLIS)

    def test_opaque_token_uses_now(self):
        self.assertEqual(normalize_issued_at_millis("opaque", NOW_MILLIS), NOW_MILLIS)


if __name__ == "__main__":
    unittest.main()
