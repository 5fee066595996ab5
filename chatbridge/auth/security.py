from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from chatbridge.config.settings import get_settings


def create_access_token(subject: str, email: str | None = None, ttl_minutes: int = 60) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes)
    payload = {"sub": subject, "exp": expire, "type": "access"}
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc


def read_token_claims(token: str, allow_unverified: bool = False) -> dict:
    """Verified claims, or (outside production) the claims of a token signed elsewhere, e.g. by Auth0."""
    try:
        return decode_access_token(token)
    except ValueError:
        if not allow_unverified:
            raise
    try:
        return jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise ValueError("Malformed token") from exc
