from datetime import datetime, timedelta, timezone


def _asset(client, headers, number="VEH-001", status="operational"):
    resp = client.post(
        "/api/assets",
        json={"asset_number": number, "name": f"Truck {number}", "category": "vehicle_ground", "status": status},
        headers=headers,
    )
    assert resp.status_code == 201
    return resp.json()


def _iso(dt):
    return dt.isoformat()


def test_costs_are_rolled_up(client, officer):
    asset = _asset(client, officer.headers)
    resp = client.post(
        "/api/maintenance",
        json={
            "asset_id": asset["id"],
            "type": "preventive",
            "title": "Annual service",
            "labor_cost": 100,
            "parts_used": [
                {"name": "Filter", "quantity": 2, "unit_cost": 12.5},
                {"name": "Oil", "quantity": 5, "unit_cost": 8},
            ],
        },
        headers=officer.headers,
    )
    assert resp.status_code == 201
    record = resp.json()
    assert [p["total_cost"] for p in record["parts_used"]] == [25.0, 40.0]
    assert record["total_cost"] == 165.0


def test_completion_updates_asset(client, officer):
    asset = _asset(client, officer.headers, status="maintenance")
    next_due = datetime.now(timezone.utc) + timedelta(days=180)
    record = client.post(
        "/api/maintenance",
        json={"asset_id": asset["id"], "type": "inspection", "title": "Brake check"},
        headers=officer.headers,
    ).json()

    done = client.patch(
        f"/api/maintenance/{record['id']}/complete",
        json={"labor_hours": 1.5, "labor_cost": 60},
        headers=officer.headers,
    )
    assert done.status_code == 200
    body = done.json()
    assert body["status"] == "completed"
    assert body["total_cost"] == 60.0
    assert body["performed_by"]["id"] == officer.id

    refreshed = client.get(f"/api/assets/{asset['id']}", headers=officer.headers).json()
    assert refreshed["status"] == "operational"
    assert refreshed["last_maintenance_date"] is not None

    rescheduled = client.put(
        f"/api/maintenance/{record['id']}",
        json={"next_maintenance_date": _iso(next_due)},
        headers=officer.headers,
    )
    assert rescheduled.status_code == 200
    assert rescheduled.json()["next_maintenance_date"] is not None


def test_overdue_and_upcoming(client, officer):
    asset = _asset(client, officer.headers)
    now = datetime.now(timezone.utc)
    for title, due in (("Late", now - timedelta(days=2)), ("Soon", now + timedelta(days=3))):
        client.post(
            "/api/maintenance",
            json={"asset_id": asset["id"], "type": "inspection", "title": title, "due_date": _iso(due)},
            headers=officer.headers,
        )

    overdue = client.get("/api/maintenance/overdue", headers=officer.headers).json()
    assert [r["title"] for r in overdue] == ["Late"]
    assert overdue[0]["is_overdue"] is True

    upcoming = client.get("/api/maintenance/upcoming", params={"days": 7}, headers=officer.headers).json()
    assert [r["title"] for r in upcoming] == ["Soon"]

    stats = client.get("/api/dashboard/stats", headers=officer.headers).json()
    assert stats["maintenance"]["overdue"] == 1
    assert stats["maintenance"]["upcoming_week"] == 1
    assert stats["assets"]["total"] == 1


def test_quote_decision_is_admin_only(client, officer, admin):
    asset = _asset(client, officer.headers)
    quote = client.post(
        "/api/quotes",
        json={"asset_id": asset["id"], "vendor_name": "Valley Garage", "description": "New tyres", "total_cost": 900},
        headers=officer.headers,
    )
    assert quote.status_code == 201
    quote_id = quote.json()["id"]
    assert quote.json()["status"] == "pending"

    decision = {"approved": False, "notes": "Too expensive"}
    assert client.patch(f"/api/quotes/{quote_id}/approve", json=decision, headers=officer.headers).status_code == 403
    resp = client.patch(f"/api/quotes/{quote_id}/approve", json=decision, headers=admin.headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"
    assert resp.json()["approved_by"]["id"] == admin.id
    assert resp.json()["notes"] == "Too expensive"


def test_maintenance_cost_report(client, officer):
    first = _asset(client, officer.headers, number="A-1")
    second = _asset(client, officer.headers, number="A-2")
    for asset, cost in ((first, 50), (second, 200), (second, 100)):
        record = client.post(
            "/api/maintenance",
            json={"asset_id": asset["id"], "type": "corrective", "title": "Fix"},
            headers=officer.headers,
        ).json()
        client.patch(
            f"/api/maintenance/{record['id']}/complete",
            json={"labor_cost": cost, "labor_hours": 1},
            headers=officer.headers,
        )

    report = client.get("/api/reports/maintenance-cost", headers=officer.headers).json()
    assert report["summary"]["total_records"] == 3
    assert report["summary"]["total_cost"] == 350
    assert report["summary"]["average_cost"] == 116.67
    assert [e["asset"]["asset_number"] for e in report["cost_by_asset"]] == ["A-2", "A-1"]
    assert [(e["count"], e["total_cost"], e["total_hours"]) for e in report["cost_by_asset"]] == [(2, 300, 2), (1, 50, 1)]
    assert report["summary"]["total_labor_hours"] == 3

    only_first = client.get(
        "/api/reports/maintenance-cost", params={"asset_id": first["id"]}, headers=officer.headers
    ).json()
    assert only_first["summary"]["total_cost"] == 50
    assert [e["asset"]["asset_number"] for e in only_first["cost_by_asset"]] == ["A-1"]

    empty = client.get(
        "/api/reports/maintenance-cost", params={"start_date": "2999-01-01T00:00:00Z"}, headers=officer.headers
    ).json()
    assert empty["summary"] == {"total_records": 0, "total_cost": 0, "total_labor_hours": 0, "average_cost": 0}
    assert empty["cost_by_asset"] == []


def test_categories(client, officer, admin, member):
    payload = {"name": "Rope", "type": "asset"}
    created = client.post("/api/categories", json=payload, headers=officer.headers)
    assert created.status_code == 201
    assert client.post("/api/categories", json=payload, headers=officer.headers).status_code == 409
    assert client.post("/api/categories", json=payload, headers=member.headers).status_code == 403

    listed = client.get("/api/categories", params={"type": "asset"}, headers=member.headers).json()
    assert [c["name"] for c in listed] == ["Rope"]
    assert client.delete(f"/api/categories/{created.json()['id']}", headers=admin.headers).status_code == 200
