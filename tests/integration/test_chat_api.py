"""Chat endpoints answer in fallback mode when no LLM provider key is configured."""

HTML_CSS = {"allowedDomains": "example.com", "chatbotTitle": "Ask us", "primaryColor": "#0084ff"}


def test_chat_falls_back_without_provider(api_client):
    resp = api_client.post(
        "/api/chat",
        params={"userId": "alice"},
        json={"messages": [{"role": "user", "content": "hello there"}]},
    )
    assert resp.status_code == 200
    assert resp.json()["model"] == "fallback-model"
    assert "Hello!" in resp.json()["response"]


def test_chat_rejects_empty_messages(api_client):
    resp = api_client.post("/api/chat", params={"userId": "alice"}, json={"messages": []})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request"


def test_embed_chat_requires_widget_config(api_client):
    agent = api_client.post("/api/agents", params={"userId": "alice"}, json={"name": "Helper"}).json()["agent"]
    body = {"agentId": agent["id"], "userId": "alice", "message": "hi"}

    assert api_client.post("/api/embed/chat", json={"agentId": agent["id"]}).status_code == 400
    assert api_client.post("/api/embed/chat", json={**body, "agentId": 999}).status_code == 404
    assert api_client.post("/api/embed/chat", json=body).status_code == 403

    api_client.post(
        "/api/plugins",
        params={"userId": "alice"},
        json={"pluginId": "html-css", "agentId": agent["id"], "config": HTML_CSS, "enabled": True},
    )
    resp = api_client.post("/api/embed/chat", json=body)
    assert resp.status_code == 200
    assert resp.json()["agentName"] == "Helper"
    assert resp.json()["model"] == "fallback-model"
