import json

from app.config import settings
from app.models.models import ChatGroup
from app.services import adlc

SECRET = "adlc-test-secret"


def _post(client, body, headers=None):
    raw = json.dumps(body).encode("utf-8")
    return client.post(
        "/api/integration/webhook",
        content=raw,
        headers={"Content-Type": "application/json", **(headers or {})},
    )


def test_webhook_with_api_key_posts_to_main(client, member):
    resp = _post(
        client,
        {"message": "Hiker overdue near Lynn Peak", "senderName": "Dispatch Desk", "source": "ems"},
        headers={"X-API-Key": SECRET},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["group"] == "main"
    assert body["messageId"]

    messages = client.get("/api/chat/group/main", headers=member.headers).json()
    assert len(messages) == 1
    msg = messages[0]
    assert msg["content"] == "[Dispatch Desk] Hiker overdue near Lynn Peak"
    assert msg["is_external"] is True
    assert msg["external_source"] == "ems"
    assert msg["sender"] is None


def test_bearer_token_is_accepted(client):
    resp = _post(client, {"text": "Standby"}, headers={"Authorization": f"Bearer {SECRET}"})
    assert resp.status_code == 201


def test_bad_or_missing_key_is_rejected(client):
    assert _post(client, {"message": "x"}).status_code == 401
    resp = _post(client, {"message": "x"}, headers={"X-API-Key": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid API key"


def test_missing_content_is_rejected(client):
    resp = _post(client, {"senderName": "Dispatch"}, headers={"X-API-Key": SECRET})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Message content is required"


def test_target_group_is_created_once(client, db):
    for text in ("first", "second"):
        assert _post(client, {"message": text}, headers={"X-API-Key": SECRET}).status_code == 201
    assert db.query(ChatGroup).filter(ChatGroup.name == "main").count() == 1


def test_custom_target_group(client, db, member, monkeypatch):
    monkeypatch.setattr(settings, "adlc_target_group", "dispatch-feed")
    assert _post(client, {"message": "Road closed"}, headers={"X-API-Key": SECRET}).status_code == 201
    group = db.query(ChatGroup).filter(ChatGroup.name == "dispatch-feed").one()
    assert group.type == "custom"
    messages = client.get("/api/chat/group/custom/dispatch-feed", headers=member.headers).json()
    assert [m["content"] for m in messages] == ["[ADLC Emergency] Road closed"]


def test_signature_mode(client, monkeypatch):
    monkeypatch.setattr(settings, "adlc_use_signature", True)
    body = {"message": "Signed alert", "department": "fire"}
    raw = json.dumps(body).encode("utf-8")

    good = client.post(
        "/api/integration/webhook",
        content=raw,
        headers={"Content-Type": "application/json", "X-ADLC-Signature": adlc.sign(raw, SECRET)},
    )
    assert good.status_code == 201

    bad = client.post(
        "/api/integration/webhook",
        content=raw,
        headers={"Content-Type": "application/json", "X-ADLC-Signature": "0" * 64},
    )
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid webhook signature"

    # an API key alone is not enough once signatures are required
    assert _post(client, body, headers={"X-API-Key": SECRET}).status_code == 401


def test_disabled_integration(client, monkeypatch):
    monkeypatch.setattr(settings, "adlc_enabled", False)
    assert _post(client, {"message": "x"}, headers={"X-API-Key": SECRET}).status_code == 503


def test_normalize_falls_back_to_department_and_defaults():
    fields = adlc.normalize({"content": "Smoke reported", "department": "Fire", "metadata": {"incident": "F-12"}})
    assert fields["external_source"] == "fire"
    assert fields["external_sender_name"] == "Fire"
    assert fields["external_metadata"]["incident"] == "F-12"

    plain = adlc.normalize({"message": "Hello", "attachments": [{"url": "https://x/map.png"}, "junk"]})
    assert plain["external_source"] == "adlc"
    assert plain["external_sender_id"] == "adlc-system"
    assert [a["path"] for a in plain["attachments"]] == ["https://x/map.png"]


def test_status_and_test_message(client, officer, admin, member):
    assert client.get("/api/integration/status", headers=member.headers).status_code == 403
    assert client.post("/api/integration/test", json={}, headers=officer.headers).status_code == 403

    injected = client.post("/api/integration/test", json={"source": "police"}, headers=admin.headers)
    assert injected.status_code == 201
    assert injected.json()["message"] == "Test message created"

    status = client.get("/api/integration/status", headers=officer.headers).json()
    assert status["enabled"] is True
    assert status["target_group_exists"] is True
    assert status["webhook_secret_configured"] is True
    assert status["signature_mode"] is False
    recent = status["recent_messages"]
    assert len(recent) == 1
    assert recent[0]["external_source"] == "police"
    assert recent[0]["external_metadata"]["test"] is True


def test_non_ascii_signature_is_rejected(client, monkeypatch):
    monkeypatch.setattr(settings, "adlc_use_signature", True)
    raw = json.dumps({"message": "Signed alert"}).encode("utf-8")
    resp = client.post(
        "/api/integration/webhook",
        content=raw,
        headers={"Content-Type": "application/json", "X-Signature": "éabc".encode("latin-1")},
    )
    assert resp.status_code == 401
    assert not adlc.verify_signature(raw, "éabc", SECRET)


def test_webhook_lands_in_predefined_group(client, member):
    assert client.post("/api/chat/groups", json={"name": "main"}, headers=member.headers).status_code == 400
    assert _post(client, {"content": "test"}, headers={"X-API-Key": SECRET}).status_code == 201
    messages = client.get("/api/chat/group/main", headers=member.headers).json()
    assert [m["content"] for m in messages] == ["[ADLC Emergency] test"]
