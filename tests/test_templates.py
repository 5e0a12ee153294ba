import os

from app.config import settings


def _maintenance_template(client, headers, name="Oil change", **extra):
    payload = {
        "name": name,
        "type": "preventive",
        "category": "vehicle",
        "frequency": {"type": "months", "interval": 6},
        "required_parts": [{"name": "Oil filter", "quantity": 1}],
    }
    payload.update(extra)
    return client.post("/api/maintenance-templates", json=payload, headers=headers)


def test_use_counter_increments(client, officer, member):
    created = _maintenance_template(client, officer.headers)
    assert created.status_code == 201
    template = created.json()
    assert template["usage_count"] == 0
    assert template["last_used_at"] is None

    url = f"/api/maintenance-templates/{template['id']}/use"
    for expected in (1, 2, 3):
        resp = client.post(url, headers=member.headers)
        assert resp.status_code == 200
        assert resp.json()["usage_count"] == expected
    assert resp.json()["last_used_at"] is not None


def test_use_of_missing_template(client, member):
    assert client.post("/api/maintenance-templates/not-an-id/use", headers=member.headers).status_code == 404
    missing = "/api/workorder-templates/00000000-0000-0000-0000-000000000000/use"
    assert client.post(missing, headers=member.headers).status_code == 404


def test_template_filters_and_soft_delete(client, officer, admin, member):
    _maintenance_template(client, officer.headers, name="Rope inspection", type="inspection", category="rope")
    oil = _maintenance_template(client, officer.headers).json()

    inspections = client.get("/api/maintenance-templates", params={"type": "inspection"}, headers=member.headers)
    assert [t["name"] for t in inspections.json()] == ["Rope inspection"]
    assert _maintenance_template(client, member.headers).status_code == 403

    assert client.delete(f"/api/maintenance-templates/{oil['id']}", headers=officer.headers).status_code == 403
    assert client.delete(f"/api/maintenance-templates/{oil['id']}", headers=admin.headers).status_code == 200
    names = [t["name"] for t in client.get("/api/maintenance-templates", headers=member.headers).json()]
    assert names == ["Rope inspection"]
    assert client.get(f"/api/maintenance-templates/{oil['id']}", headers=member.headers).json()["is_active"] is False


def test_work_order_templates(client, officer, member):
    created = client.post(
        "/api/workorder-templates",
        json={"name": "Radio repair", "category": "comms", "priority": "high", "required_skills": ["soldering"]},
        headers=officer.headers,
    )
    assert created.status_code == 201
    template = created.json()
    assert template["required_skills"] == ["soldering"]

    updated = client.put(
        f"/api/workorder-templates/{template['id']}",
        json={"estimated_duration": 2.5},
        headers=officer.headers,
    )
    assert updated.json()["estimated_duration"] == 2.5
    assert updated.json()["priority"] == "high"

    used = client.post(f"/api/workorder-templates/{template['id']}/use", headers=member.headers)
    assert used.json()["usage_count"] == 1
    listed = client.get("/api/workorder-templates", params={"category": "comms"}, headers=member.headers).json()
    assert [t["name"] for t in listed] == ["Radio repair"]


def test_upload_returns_attachment(client, member):
    resp = client.post(
        "/api/uploads",
        files={"file": ("Trail Map (v2).PDF", b"%PDF-1.4 map", "application/pdf")},
        headers=member.headers,
    )
    assert resp.status_code == 201
    attachment = resp.json()
    assert attachment["original_name"] == "Trail Map (v2).PDF"
    assert attachment["filename"].startswith("trail-map-v2-")
    assert attachment["filename"].endswith(".pdf")
    assert attachment["path"] == f"/uploads/{attachment['filename']}"
    assert attachment["size"] == len(b"%PDF-1.4 map")
    assert os.path.exists(os.path.join(settings.upload_dir, attachment["filename"]))


def test_oversized_upload_is_rejected(client, member, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", 4)
    before = set(os.listdir(settings.upload_dir))
    resp = client.post(
        "/api/uploads",
        files={"file": ("big.bin", b"0123456789", "application/octet-stream")},
        headers=member.headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "File too large"
    assert set(os.listdir(settings.upload_dir)) == before


def test_upload_key_without_usable_extension(client, member):
    resp = client.post(
        "/api/uploads",
        files={"file": ("notes.@@", b"hello", "text/plain")},
        headers=member.headers,
    )
    assert resp.status_code == 201
    assert "." not in resp.json()["filename"]
