from chatbridge.auth.security import create_access_token


def test_login_creates_then_updates(api_client):
    first = api_client.post("/api/account", json={"userId": "auth0|1", "email": "ann@example.com", "name": "Ann"})
    assert first.status_code == 200
    assert first.json()["created"] is True
    account = first.json()["account"]
    assert account["accountId"].startswith("acc_")
    assert first.cookies.get("user_id") == "auth0|1"
    assert first.cookies.get("account_id") == account["accountId"]

    second = api_client.post("/api/account", json={"userId": "auth0|1", "name": "Ann Lee"})
    assert second.json()["created"] is False
    assert second.json()["account"]["accountId"] == account["accountId"]
    assert second.json()["account"]["name"] == "Ann Lee"


def test_login_requires_user_id(api_client):
    assert api_client.post("/api/account", json={"email": "x@example.com"}).status_code == 400


def test_lookup_by_user_id_and_email(api_client):
    api_client.post("/api/account", json={"userId": "auth0|2", "email": "bo@example.com"})
    assert api_client.get("/api/account", params={"userId": "auth0|2"}).json()["account"]["email"] == "bo@example.com"
    assert api_client.get("/api/account", params={"email": "bo@example.com"}).json()["account"]["userId"] == "auth0|2"
    assert api_client.get("/api/account", params={"userId": "nobody"}).status_code == 404
    assert api_client.get("/api/account").status_code == 400


def test_list_all_with_totals(api_client):
    for n in range(3):
        api_client.post("/api/account", json={"userId": f"user-{n}"})
    resp = api_client.get("/api/account", params={"all": "true", "limit": 2, "include_totals": "true"})
    body = resp.json()
    assert body["total"] == 3
    assert body["length"] == 2
    assert len(api_client.get("/api/account", params={"all": "true"}).json()["accounts"]) == 3


def test_linked_identity_with_taken_email_still_authenticates(api_client):
    api_client.post("/api/account", json={"userId": "auth0|a", "email": "x@example.com"})
    api_client.cookies.clear()

    token = create_access_token("google-oauth2|b", email="x@example.com")
    headers = {"Authorization": f"Bearer {token}"}
    for _ in range(2):
        assert api_client.get("/api/agents", headers=headers).status_code == 200

    linked = api_client.get("/api/account", params={"userId": "google-oauth2|b"}).json()["account"]
    assert linked["email"] != "x@example.com"
    original = api_client.get("/api/account", params={"email": "x@example.com"}).json()["account"]
    assert original["userId"] == "auth0|a"


def test_login_cookies_are_http_only(api_client):
    resp = api_client.post("/api/account", json={"userId": "auth0|c"})
    cookies = resp.headers.get_list("set-cookie")
    assert len(cookies) == 2
    assert all("httponly" in c.lower() for c in cookies)
