import uuid
from datetime import datetime, timedelta, timezone

from app.models.models import User


def _notify(client, headers, title="Heads up", **extra):
    payload = {"title": title, "message": "Something happened"}
    payload.update(extra)
    return client.post("/api/notifications", json=payload, headers=headers)


def test_list_and_unread_counts(client, member):
    first = _notify(client, member.headers, title="One").json()
    _notify(client, member.headers, title="Two", type="maintenance_due")

    listed = client.get("/api/notifications", headers=member.headers).json()
    assert listed["total"] == 2
    assert listed["unread_count"] == 2

    read = client.patch(f"/api/notifications/{first['id']}/read", headers=member.headers)
    assert read.status_code == 200
    assert read.json()["read"] is True
    assert read.json()["read_at"] is not None

    assert client.get("/api/notifications/unread-count", headers=member.headers).json() == {"unread_count": 1}
    unread = client.get("/api/notifications", params={"unread_only": True}, headers=member.headers).json()
    assert [n["title"] for n in unread["notifications"]] == ["Two"]

    by_type = client.get("/api/notifications", params={"type": "maintenance_due"}, headers=member.headers).json()
    assert by_type["total"] == 1


def test_mark_all_read_and_delete_read(client, member):
    for title in ("A", "B", "C"):
        _notify(client, member.headers, title=title)
    assert client.patch("/api/notifications/read-all", headers=member.headers).json()["message"] == "3 notifications marked as read"
    assert client.delete("/api/notifications/read/all", headers=member.headers).json()["message"] == "3 read notifications deleted"
    assert client.get("/api/notifications", headers=member.headers).json()["total"] == 0


def test_other_users_notifications_look_missing(client, member, other_member):
    mine = _notify(client, member.headers).json()
    url = f"/api/notifications/{mine['id']}"
    assert client.get(url, headers=other_member.headers).status_code == 404
    assert client.patch(f"{url}/read", headers=other_member.headers).status_code == 404
    assert client.delete(url, headers=other_member.headers).status_code == 404
    assert client.delete(url, headers=member.headers).status_code == 200


def test_only_elevated_users_notify_others(client, member, other_member, officer):
    ignored = _notify(client, member.headers, user_id=other_member.id).json()
    assert ignored["user_id"] == member.id

    sent = _notify(client, officer.headers, user_id=other_member.id, priority="high").json()
    assert sent["user_id"] == other_member.id
    assert sent["priority"] == "high"


def test_expired_notifications_are_hidden(client, member):
    past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    _notify(client, member.headers, title="Stale", expiry_date=past)
    _notify(client, member.headers, title="Fresh")
    titles = [n["title"] for n in client.get("/api/notifications", headers=member.headers).json()["notifications"]]
    assert titles == ["Fresh"]


def test_push_tokens(client, db, member):
    for _ in range(2):
        resp = client.post("/api/notifications/register-token", json={"token": "device-1"}, headers=member.headers)
        assert resp.status_code == 200
    db.expire_all()
    assert db.get(User, uuid.UUID(member.id)).push_tokens == ["device-1"]

    client.post("/api/notifications/unregister-token", json={"token": "device-1"}, headers=member.headers)
    db.expire_all()
    assert db.get(User, uuid.UUID(member.id)).push_tokens == []
