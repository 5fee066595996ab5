"""
Request identity resolution.

A user id is taken from the first source that yields one:

  1. ``?userId=`` query parameter (development/test only)
  2. ``auth0_id`` cookie
  3. ``user_id`` cookie
  4. Bearer JWT ``sub`` claim
  5. ``default-user`` when ALLOW_DEFAULT_USER is set outside production
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from chatbridge.auth.security import read_token_claims
from chatbridge.config.settings import get_settings
from chatbridge.errors import AuthError
from chatbridge.persistence.database import get_db
from chatbridge.services.account_service import AccountService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

DEFAULT_USER_ID = "default-user"


@dataclass
class Identity:
    user_id: str
    source: str
    email: str | None = None


def resolve_identity(request: Request, credentials: HTTPAuthorizationCredentials | None) -> Identity | None:
    settings = get_settings()

    if not settings.is_production:
        query_user = request.query_params.get("userId")
        if query_user:
            return Identity(user_id=query_user, source="query")

    for cookie in ("auth0_id", "user_id"):
        value = request.cookies.get(cookie)
        if value:
            return Identity(user_id=value, source=cookie)

    if credentials is not None:
        try:
            claims = read_token_claims(credentials.credentials, allow_unverified=not settings.is_production)
        except ValueError:
            raise AuthError("Invalid token") from None
        subject = claims.get("sub")
        if not subject:
            raise AuthError("Token has no subject")
        return Identity(user_id=str(subject), source="bearer", email=claims.get("email"))

    if settings.allow_default_user and not settings.is_production:
        return Identity(user_id=DEFAULT_USER_ID, source="default")
    return None


def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> str:
    identity = resolve_identity(request, credentials)
    if identity is None:
        raise AuthError("Authentication required")

    if AccountService.get_by_user_id(db, identity.user_id) is None:
        email = identity.email
        # A linked identity may claim an email another account already holds
        if email and AccountService.get_by_email(db, email) is not None:
            email = None
        AccountService.record_login(db, identity.user_id, email=email)
        logger.info("Auto-created account on first request", extra={"user_id": identity.user_id})
    return identity.user_id
