import os
from datetime import datetime, timedelta, timezone

from app.config import settings


def _in_days(days):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def _certificate(client, headers, name="Wilderness First Aid", expiry_days=None, **extra):
    payload = {"name": name, "issuing_authority": "Red Cross"}
    if expiry_days is not None:
        payload["expiry_date"] = _in_days(expiry_days)
    payload.update(extra)
    return client.post("/api/certificates", json=payload, headers=headers)


def test_certificate_status_follows_expiry(client, member):
    assert _certificate(client, member.headers).json()["status"] == "active"
    soon = _certificate(client, member.headers, name="Swiftwater", expiry_days=10).json()
    assert soon["status"] == "expiring_soon"
    assert soon["days_until_expiry"] in (10, 11)
    assert _certificate(client, member.headers, name="Avalanche", expiry_days=-3).json()["status"] == "expired"

    renewed = client.put(f"/api/certificates/{soon['id']}", json={"expiry_date": _in_days(400)}, headers=member.headers)
    assert renewed.status_code == 200
    assert renewed.json()["status"] == "active"


def test_certificates_are_private_to_owner(client, member, other_member, officer):
    cert = _certificate(client, member.headers).json()
    url = f"/api/certificates/{cert['id']}"

    assert client.get(url, headers=other_member.headers).status_code == 403
    assert client.put(url, json={"notes": "mine now"}, headers=other_member.headers).status_code == 403
    assert client.delete(url, headers=other_member.headers).status_code == 403
    assert client.get(url, headers=officer.headers).status_code == 200

    assert client.get("/api/certificates", headers=other_member.headers).json() == []
    assert len(client.get("/api/certificates", headers=officer.headers).json()) == 1
    assert client.delete(url, headers=member.headers).status_code == 200


def test_members_cannot_create_for_others(client, member, other_member, officer):
    own = _certificate(client, member.headers, user_id=other_member.id).json()
    assert own["user_id"] == member.id

    assigned = _certificate(client, officer.headers, user_id=other_member.id).json()
    assert assigned["user_id"] == other_member.id
    assert assigned["created_by"]["id"] == officer.id

    missing = _certificate(client, officer.headers, user_id="00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404


def test_expiring_stats(client, member, officer):
    _certificate(client, member.headers, name="Expired", expiry_days=-1)
    _certificate(client, member.headers, name="Soon", expiry_days=5)
    _certificate(client, member.headers, name="Later", expiry_days=90)

    stats = client.get("/api/certificates/stats/expiring", headers=member.headers).json()
    assert stats["expired"] == 1
    assert stats["expiring_soon"] == 1
    assert [c["name"] for c in stats["certificates"]] == ["Soon"]

    expiring = client.get("/api/certificates", params={"expiring_soon": True}, headers=officer.headers).json()
    assert [c["name"] for c in expiring] == ["Soon"]


def test_self_reported_training_needs_approval(client, member, officer):
    completed = client.post("/api/training", json={"title": "Map and compass"}, headers=member.headers)
    assert completed.status_code == 201
    assert completed.json()["status"] == "completed"

    pending = client.post(
        "/api/training",
        json={"title": "Ice rescue", "requires_approval": True, "hours": 6},
        headers=member.headers,
    ).json()
    assert pending["status"] == "pending_approval"

    url = f"/api/training/{pending['id']}/approve"
    assert client.patch(url, json={"approved": True}, headers=member.headers).status_code == 403
    decided = client.patch(url, json={"approved": False, "notes": "No sign-off sheet"}, headers=officer.headers)
    assert decided.status_code == 200
    assert decided.json()["status"] == "rejected"
    assert decided.json()["approval_notes"] == "No sign-off sheet"

    notes = client.get("/api/notifications", headers=member.headers).json()["notifications"]
    assert [n["type"] for n in notes] == ["training_rejected"]


def test_officer_assigns_training(client, member, other_member, officer):
    resp = client.post(
        "/api/training",
        json={"title": "Helicopter safety", "user_id": member.id},
        headers=officer.headers,
    )
    assert resp.status_code == 201
    record = resp.json()
    assert record["status"] == "scheduled"
    assert record["user_id"] == member.id
    assert record["assigned_by"]["id"] == officer.id

    assert len(client.get(f"/api/training/user/{member.id}", headers=member.headers).json()) == 1
    assert client.get(f"/api/training/user/{member.id}", headers=other_member.headers).status_code == 403
    assert client.get("/api/training", headers=other_member.headers).json() == []


def test_certificate_file_must_be_an_upload(client, member, tmp_path):
    victim = tmp_path / "victim.txt"
    victim.write_text("keep me")
    forged = {"filename": ".." + str(victim), "path": "/uploads/x"}

    assert _certificate(client, member.headers, file=forged).status_code == 400
    cert = _certificate(client, member.headers).json()
    url = f"/api/certificates/{cert['id']}"
    assert client.put(url, json={"file": forged}, headers=member.headers).status_code == 400

    upload = client.post(
        "/api/uploads",
        files={"file": ("WFA card.png", b"\x89PNG", "image/png")},
        headers=member.headers,
    ).json()
    assert client.put(url, json={"file": upload}, headers=member.headers).status_code == 200
    assert client.delete(url, headers=member.headers).status_code == 200

    assert victim.exists()
    assert not os.path.exists(os.path.join(settings.upload_dir, upload["filename"]))
