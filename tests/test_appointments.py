def _create(client, headers, **overrides):
    payload = {"title": "Rope rescue refresher", "start_date": "2025-03-10T18:00:00Z", "type": "training"}
    payload.update(overrides)
    return client.post("/api/appointments", json=payload, headers=headers)


def test_timed_appointment_defaults_to_one_hour(client, member):
    resp = _create(client, member.headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["end_date"].startswith("2025-03-10T19:00:00")
    assert body["duration_minutes"] == 60
    assert body["reminders"] == [{"type": "system", "minutes_before": 15}]
    assert body["created_by"]["id"] == member.id


def test_all_day_appointment_runs_to_end_of_day(client, member):
    body = _create(client, member.headers, all_day=True).json()
    assert body["end_date"].startswith("2025-03-10T23:59:59.999")


def test_end_before_start_is_rejected(client, member):
    resp = _create(client, member.headers, end_date="2025-03-10T17:00:00Z")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "End date must be after start date"


def test_update_checks_stored_end(client, member):
    appointment = _create(client, member.headers, end_date="2025-03-10T20:00:00Z").json()
    resp = client.put(
        f"/api/appointments/{appointment['id']}",
        json={"start_date": "2025-03-10T21:00:00Z"},
        headers=member.headers,
    )
    assert resp.status_code == 400

    moved = client.put(
        f"/api/appointments/{appointment['id']}",
        json={"start_date": "2025-03-10T19:00:00Z"},
        headers=member.headers,
    )
    assert moved.status_code == 200
    assert moved.json()["duration_minutes"] == 60


def test_only_creator_or_elevated_may_edit(client, member, other_member, officer):
    appointment = _create(client, member.headers).json()
    url = f"/api/appointments/{appointment['id']}"
    assert client.put(url, json={"title": "Hijacked"}, headers=other_member.headers).status_code == 403
    assert client.put(url, json={"title": "Renamed"}, headers=officer.headers).status_code == 200
    assert client.delete(url, headers=other_member.headers).status_code == 403
    assert client.delete(url, headers=member.headers).status_code == 200


def test_rsvp(client, member, other_member, officer):
    appointment = _create(
        client,
        officer.headers,
        attendees=[{"user_id": member.id}],
    ).json()
    url = f"/api/appointments/{appointment['id']}/rsvp"

    resp = client.patch(url, json={"status": "accepted"}, headers=member.headers)
    assert resp.status_code == 200
    assert resp.json()["attendees"] == [{"user_id": member.id, "status": "accepted"}]

    denied = client.patch(url, json={"status": "accepted"}, headers=other_member.headers)
    assert denied.status_code == 403
    assert denied.json()["detail"] == "You are not invited to this appointment"


def test_participant_filter(client, member, other_member, officer):
    _create(client, member.headers, title="Mine")
    _create(client, officer.headers, title="Invited", attendees=[{"user_id": member.id}])
    _create(client, other_member.headers, title="Unrelated")

    listed = client.get("/api/appointments", params={"user_id": member.id}, headers=member.headers).json()
    assert sorted(a["title"] for a in listed) == ["Invited", "Mine"]


def test_calendar_month_includes_overlapping(client, member):
    _create(client, member.headers, title="Spans months", start_date="2025-02-28T22:00:00Z", end_date="2025-03-01T02:00:00Z")
    _create(client, member.headers, title="In March", start_date="2025-03-15T10:00:00Z")
    _create(client, member.headers, title="In April", start_date="2025-04-02T10:00:00Z")

    march = client.get("/api/appointments/calendar/2025/3", headers=member.headers).json()
    assert [a["title"] for a in march] == ["Spans months", "In March"]
    assert client.get("/api/appointments/calendar/2025/13", headers=member.headers).status_code == 400
