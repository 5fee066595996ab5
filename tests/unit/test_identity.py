from dataclasses import replace

import pytest
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt
from starlette.requests import Request

import chatbridge.auth.deps as auth_deps
from chatbridge.auth.deps import DEFAULT_USER_ID, resolve_identity
from chatbridge.auth.security import create_access_token, decode_access_token, read_token_claims
from chatbridge.config.settings import get_settings
from chatbridge.errors import AuthError


def _request(query: str = "", cookies: str = "") -> Request:
    headers = [(b"cookie", cookies.encode())] if cookies else []
    return Request({"type": "http", "method": "GET", "path": "/", "query_string": query.encode(), "headers": headers})


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.fixture()
def use_settings(monkeypatch):
    def apply(**overrides):
        settings = replace(get_settings(), **overrides)
        monkeypatch.setattr(auth_deps, "get_settings", lambda: settings)
        return settings

    return apply


def test_query_user_id_wins_outside_production():
    identity = resolve_identity(_request("userId=alice", cookies="user_id=bob"), None)
    assert (identity.user_id, identity.source) == ("alice", "query")


def test_query_user_id_ignored_in_production(use_settings):
    use_settings(app_env="prod")
    identity = resolve_identity(_request("userId=alice", cookies="user_id=bob"), None)
    assert identity.user_id == "bob"


def test_auth0_cookie_beats_user_id_cookie():
    identity = resolve_identity(_request(cookies="user_id=bob; auth0_id=auth0|carol"), None)
    assert (identity.user_id, identity.source) == ("auth0|carol", "auth0_id")


def test_bearer_subject_is_used():
    token = create_access_token("dave", email="dave@example.com")
    identity = resolve_identity(_request(), _bearer(token))
    assert (identity.user_id, identity.email, identity.source) == ("dave", "dave@example.com", "bearer")


def test_foreign_token_rejected_in_production(use_settings):
    use_settings(app_env="prod")
    foreign = jwt.encode({"sub": "eve"}, "someone-elses-secret", algorithm="HS256")
    with pytest.raises(AuthError):
        resolve_identity(_request(), _bearer(foreign))


def test_foreign_token_claims_read_in_development():
    foreign = jwt.encode({"sub": "eve"}, "someone-elses-secret", algorithm="HS256")
    assert resolve_identity(_request(), _bearer(foreign)).user_id == "eve"


def test_default_user_only_when_allowed(use_settings):
    assert resolve_identity(_request(), None) is None
    use_settings(allow_default_user=True)
    assert resolve_identity(_request(), None).user_id == DEFAULT_USER_ID


def test_token_round_trip_and_garbage():
    claims = decode_access_token(create_access_token("frank"))
    assert claims["sub"] == "frank"
    with pytest.raises(ValueError):
        read_token_claims("not-a-jwt", allow_unverified=True)
