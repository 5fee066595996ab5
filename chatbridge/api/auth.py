from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials

from chatbridge.api.deps import get_auth0_client
from chatbridge.auth.deps import bearer_scheme
from chatbridge.errors import AuthError
from chatbridge.services.auth0_client import Auth0Client

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/userinfo")
def userinfo(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth0: Auth0Client = Depends(get_auth0_client),
) -> dict:
    """Profile for the caller's Auth0 access token (bearer header or ``auth0.access_token`` cookie)."""
    token = credentials.credentials if credentials is not None else request.cookies.get("auth0.access_token")
    if not token:
        raise AuthError("No access token found")
    return auth0.get_user_info(token)
