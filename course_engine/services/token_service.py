"""JWT access token creation and validation (ES256).

The identity provider issues the bearer tokens this service accepts; the
key pair here stands in for its signing key in dev and tests.  Claims:
``sub`` (numeric user id as a string), ``role`` (STUDENT|TEACHER), ``email``
and ``name``.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

from course_engine.models.principal import Principal
from course_engine.models.user import Role

# Dev/test: ephemeral EC key pair generated on import.
# Production: load the identity provider's public key (not implemented yet).
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "course-engine"
AUDIENCE = "course-engine"
ACCESS_TOKEN_TTL_MIN = 15


def create_access_token(
    *,
    user_id: int,
    role: Role | str,
    email: str = "",
    name: str = "",
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    """Build and sign a JWT access token."""
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "role": str(role),
        "email": email,
        "name": name,
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.
    Validates exp, iss, and aud automatically via PyJWT options.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti", "role"]},
    )


def principal_from_claims(claims: dict) -> Principal:
    """Turn verified claims into a Principal.

    Raises jwt.InvalidTokenError when ``sub`` is not numeric or ``role`` is
    not a known role.
    """
    try:
        user_id = int(claims["sub"])
        role = Role(claims["role"])
    except (KeyError, TypeError, ValueError):
        raise jwt.InvalidTokenError("malformed sub or role claim") from None
    return Principal(
        user_id=user_id,
        role=role,
        email=claims.get("email") or "",
        name=claims.get("name") or "",
    )
