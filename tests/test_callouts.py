import os
from datetime import datetime, timezone

from app.config import settings


def _callout(client, headers, title="Missing hiker"):
    resp = client.post(
        "/api/callouts",
        json={"title": title, "type": "search", "location": {"address": "Mount Seymour"}},
        headers=headers,
    )
    assert resp.status_code == 201
    return resp.json()


def _report(client, headers, callout_id, **overrides):
    payload = {"callout_id": callout_id, "title": "Incident report", "content": "Subject located at 14:05"}
    payload.update(overrides)
    return client.post("/api/callout-reports", json=payload, headers=headers)


def test_callout_numbers_and_permissions(client, officer, member):
    year = datetime.now(timezone.utc).year
    first = _callout(client, officer.headers)
    second = _callout(client, officer.headers, title="Overdue kayaker")
    assert first["callout_number"] == f"CO-{year}-0001"
    assert second["callout_number"] == f"CO-{year}-0002"
    assert first["start_date"] is not None

    resp = client.post("/api/callouts", json={"title": "Nope"}, headers=member.headers)
    assert resp.status_code == 403


def test_check_in_and_out(client, officer, member):
    callout = _callout(client, officer.headers)
    url = f"/api/callouts/{callout['id']}"

    checked_in = client.post(f"{url}/checkin", json={"role": "team lead"}, headers=member.headers)
    assert checked_in.status_code == 200
    members = checked_in.json()["responding_members"]
    assert len(members) == 1
    assert members[0]["user_id"] == member.id
    assert members[0]["role"] == "team lead"
    assert members[0]["check_out_time"] is None

    again = client.post(f"{url}/checkin", headers=member.headers)
    assert again.status_code == 400
    assert again.json()["detail"] == "Member already checked in"

    checked_out = client.post(f"{url}/checkout", headers=member.headers)
    assert checked_out.status_code == 200
    assert checked_out.json()["responding_members"][0]["check_out_time"] is not None
    assert client.post(f"{url}/checkout", headers=member.headers).status_code == 400

    # a second shift after checking out is allowed
    assert client.post(f"{url}/checkin", headers=member.headers).status_code == 200


def test_report_workflow(client, officer, member, other_member):
    callout = _callout(client, officer.headers)
    created = _report(client, member.headers, callout["id"])
    assert created.status_code == 201
    report = created.json()
    assert report["status"] == "draft"
    assert report["report_number"].startswith("RPT-")
    url = f"/api/callout-reports/{report['id']}"

    assert client.get(url, headers=other_member.headers).status_code == 403
    assert client.patch(f"{url}/submit", headers=officer.headers).status_code == 403

    edited = client.put(url, json={"summary": "Found safe", "title": "Incident report"}, headers=member.headers)
    assert edited.status_code == 200
    history = edited.json()["modification_history"]
    assert history[-1]["changes"] == "Updated summary"
    assert history[-1]["modified_by"] == member.id

    assert client.patch(f"{url}/submit", headers=member.headers).json()["status"] == "submitted"
    assert client.patch(f"{url}/review", headers=member.headers).status_code == 403
    reviewed = client.patch(f"{url}/review", headers=officer.headers).json()
    assert reviewed["status"] == "reviewed"
    assert reviewed["reviewed_by"]["id"] == officer.id

    approved = client.patch(f"{url}/approve", headers=officer.headers)
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"

    linked = client.get(f"/api/callouts/{callout['id']}", headers=officer.headers).json()
    assert [r["id"] for r in linked["reports"]] == [report["id"]]

    notifications = client.get("/api/notifications", headers=member.headers).json()
    assert [n["type"] for n in notifications["notifications"]] == ["report_approved"]

    locked = client.put(url, json={"summary": "Changed after approval"}, headers=member.headers)
    assert locked.status_code == 403


def test_members_only_list_their_own_reports(client, officer, member, other_member):
    callout = _callout(client, officer.headers)
    _report(client, member.headers, callout["id"], title="Mine")
    _report(client, other_member.headers, callout["id"], title="Theirs")

    mine = client.get("/api/callout-reports", headers=member.headers).json()
    assert [r["title"] for r in mine] == ["Mine"]
    everything = client.get("/api/callout-reports", params={"callout_id": callout["id"]}, headers=officer.headers)
    assert len(everything.json()) == 2


def test_report_for_missing_callout(client, member):
    resp = _report(client, member.headers, "00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404


def test_attaching_foreign_report_is_rejected(client, officer, member):
    first = _callout(client, officer.headers)
    second = _callout(client, officer.headers, title="Second")
    report = _report(client, member.headers, first["id"]).json()

    resp = client.post(f"/api/callouts/{second['id']}/reports/{report['id']}", headers=officer.headers)
    assert resp.status_code == 400

    ok = client.post(f"/api/callouts/{first['id']}/reports/{report['id']}", headers=officer.headers)
    assert ok.status_code == 200
    again = client.post(f"/api/callouts/{first['id']}/reports/{report['id']}", headers=officer.headers)
    assert len(again.json()["reports"]) == 1


def test_deleting_callout_removes_reports_and_files(client, officer, admin, member):
    stored = os.path.join(settings.upload_dir, "map-0123456789ab.pdf")
    with open(stored, "wb") as f:
        f.write(b"%PDF")
    callout = _callout(client, officer.headers)
    report = _report(
        client,
        member.headers,
        callout["id"],
        attachments=[{"filename": "map-0123456789ab.pdf", "path": "/uploads/map-0123456789ab.pdf"}],
    ).json()
    client.patch(f"/api/callout-reports/{report['id']}/approve", headers=officer.headers)

    assert client.delete(f"/api/callouts/{callout['id']}", headers=officer.headers).status_code == 403
    resp = client.delete(f"/api/callouts/{callout['id']}", headers=admin.headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Callout deleted successfully"

    assert client.get(f"/api/callouts/{callout['id']}", headers=admin.headers).status_code == 404
    assert client.get(f"/api/callout-reports/{report['id']}", headers=admin.headers).status_code == 404
    assert not os.path.exists(stored)


def test_deleting_linked_report(client, officer, member):
    callout = _callout(client, officer.headers)
    report = _report(client, member.headers, callout["id"]).json()
    client.patch(f"/api/callout-reports/{report['id']}/approve", headers=officer.headers)

    resp = client.delete(f"/api/callout-reports/{report['id']}", headers=officer.headers)
    assert resp.status_code == 200
    remaining = client.get(f"/api/callouts/{callout['id']}", headers=officer.headers).json()
    assert remaining["reports"] == []


def test_null_on_required_field_is_rejected(client, officer, member):
    callout = _callout(client, officer.headers)
    report = _report(client, member.headers, callout["id"]).json()
    url = f"/api/callout-reports/{report['id']}"

    for field in ("title", "content"):
        resp = client.put(url, json={field: None}, headers=member.headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == f"{field} cannot be null"

    kept = client.get(url, headers=member.headers).json()
    assert kept["title"] == "Incident report"
    assert kept["modification_history"] == []

    resp = client.put(f"/api/callouts/{callout['id']}", json={"title": None}, headers=officer.headers)
    assert resp.status_code == 400
    # a null start date is ignored rather than rejected
    resp = client.put(f"/api/callouts/{callout['id']}", json={"start_date": None, "notes": "n"}, headers=officer.headers)
    assert resp.status_code == 200
    assert resp.json()["start_date"] == callout["start_date"]
