"""
Token models and issuance-time normalization.

Tokens coming from a custom provider are issued by the caller's own backend.
They may be freshly issued, or reused from an earlier issuance, so the
issuance time is taken from the token's ``iat`` claim when it is plausible,
and from the local clock otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import jwt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppCheckToken:
    """
    A signed App Check token.

    Attributes:
        token: The opaque signed token string.
        expire_time_millis: Epoch milliseconds when the token expires.
        issued_at_time_millis: Trusted epoch milliseconds when the token was issued.
    """

    token: str
    expire_time_millis: int
    issued_at_time_millis: int

    def __repr__(self) -> str:
        # Never leak the token itself into logs
        return (
            f"AppCheckToken(token='{self.token[:8]}...', "
            f"expire_time_millis={self.expire_time_millis}, "
            f"issued_at_time_millis={self.issued_at_time_millis})"
        )


@dataclass(frozen=True)
class CustomToken:
    """
    A token returned by a custom provider callback.

    Attributes:
        token: The token string issued by the caller's backend (usually a JWT).
        expire_time_millis: Epoch milliseconds when the token expires.
    """

    token: str
    expire_time_millis: int


def decode_jwt_claims(token: str) -> dict | None:
    """
    Decode the claims of a JWT without verifying its signature.

    Returns:
        The claims dict, or None if the token is not a decodable JWT.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        logger.debug(f"Unable to decode token claims: {e}")
        return None

    return claims if isinstance(claims, dict) else None


def issued_at_time(token: str) -> int | float | None:
    """
    Extract the ``iat`` claim (seconds since epoch) from a JWT.

    Returns:
        The ``iat`` value, or None if absent, not numeric, or the token is not a JWT.

    Example:
        >>> issued_at_time("eyJhbGciOiJub25lIn0.eyJpYXQiOjE3MDAwMDAwMDB9.")
        1700000000
        >>> issued_at_time("not-a-jwt") is None
        True
    """
    claims = decode_jwt_claims(token)
    if claims is None:
        return None

    iat = claims.get("iat")
    if isinstance(iat, bool) or not isinstance(iat, int | float):
        return None
    return iat


def normalize_issued_at_millis(token: str, now_millis: int) -> int:
    """
    Derive a trustworthy issuance time for a caller-issued token.

    The ``iat`` claim is trusted only when it is present, strictly greater
    than zero and strictly less than the current time (both in seconds);
    otherwise the current time is used.

    Args:
        token: The token string.
        now_millis: Current epoch milliseconds.

    Returns:
        The issuance time in epoch milliseconds.
    """
    iat_seconds = issued_at_time(token)
    if iat_seconds is not None and 0 < iat_seconds < now_millis / 1000:
        return int(iat_seconds * 1000)
    return now_millis
