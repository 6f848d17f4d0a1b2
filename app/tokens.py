"""
Stateless signing and verification of session tokens (JWT).

Verification pins the algorithm: a token whose header names any algorithm
other than the configured one, including ``none``, is rejected.
"""
from typing import Any

import jwt

from app.errors import BadTokenError, TokenSigningError


def encode_token(claims: dict[str, Any], secret: str, algorithm: str) -> str:
    try:
        return jwt.encode(claims, secret, algorithm=algorithm)
    except (jwt.PyJWTError, NotImplementedError, TypeError) as exc:
        raise TokenSigningError(f"fail to sign token: {exc}") from exc


def decode_token(token: str, secret: str, algorithm: str) -> dict[str, Any]:
    """
    Return the verified claims of *token* or raise ``BadTokenError``.

    Expiry is not enforced here: the session record is the source of truth
    for expiration, and an expired session is an authentication failure
    rather than a malformed token. The ``exp`` claim must still be present
    and numeric.
    """
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp"], "verify_exp": False},
        )
    except jwt.PyJWTError as exc:
        raise BadTokenError() from exc

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise BadTokenError()
    return claims
