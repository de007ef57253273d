"""App session tokens: HS256 JWTs carrying the account e-mail and role."""
from datetime import datetime, timedelta, timezone

import jwt

from entaneer_mind.core import config

REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss"]


def create_access_token(subject: str, role: str | None = None, expires_minutes: int | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "iss": config.JWT_ISSUER,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expires_minutes or config.JWT_EXPIRES_MINUTES),
    }
    if role:
        payload["role"] = role
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Raises ``jwt.PyJWTError`` for bad signatures, expiry, foreign issuers or missing claims."""
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        issuer=config.JWT_ISSUER,
        options={"require": REQUIRED_CLAIMS},
    )
