ITEMS = [
    {"title": "Pack radio", "required": True, "order": 2, "category": "communication"},
    {"title": "Sign in", "required": True, "order": 1, "category": "documentation"},
    {"title": "Grab snacks", "order": 3},
]


def _template(client, headers, name="Callout kit", type="callout"):
    resp = client.post(
        "/api/checklists",
        json={"name": name, "type": type, "category": "deployment", "items": ITEMS},
        headers=headers,
    )
    assert resp.status_code == 201
    return resp.json()


def _complete(client, headers, template_id, done=(True, True, False), **extra):
    items = [
        {"item": item["title"], "required": item.get("required", False), "completed": flag, "order": item["order"]}
        for item, flag in zip(ITEMS, done)
    ]
    payload = {"template_id": template_id, "items": items}
    payload.update(extra)
    return client.post("/api/completed-checklists", json=payload, headers=headers)


def test_template_items_are_ordered(client, officer, member):
    template = _template(client, officer.headers)
    assert [i["title"] for i in template["items"]] == ["Sign in", "Pack radio", "Grab snacks"]
    assert client.post("/api/checklists", json={"name": "x", "type": "general"}, headers=member.headers).status_code == 403

    types = client.get("/api/checklists/types", headers=member.headers).json()
    assert "vehicle_inspection" in types["types"]
    assert "safety" in types["item_categories"]


def test_soft_delete_hides_template(client, officer, admin):
    template = _template(client, officer.headers)
    assert client.delete(f"/api/checklists/{template['id']}", headers=officer.headers).status_code == 403
    assert client.delete(f"/api/checklists/{template['id']}", headers=admin.headers).status_code == 200
    assert client.get("/api/checklists", headers=officer.headers).json() == []
    kept = client.get(f"/api/checklists/{template['id']}", headers=officer.headers).json()
    assert kept["is_active"] is False


def test_completion_copies_template_and_computes_stats(client, officer, member):
    template = _template(client, officer.headers)
    resp = _complete(client, member.headers, template["id"], done=(True, False, True))
    assert resp.status_code == 201
    record = resp.json()
    assert record["template_name"] == "Callout kit"
    assert record["template_type"] == "callout"
    assert record["completed_by"] == member.full_name
    assert record["completion_percentage"] == 67
    assert record["required_items"] == 2
    assert record["completed_required_items"] == 1
    assert record["status"] == "partial"

    items = [dict(i, completed=True) for i in record["items"]]
    updated = client.put(f"/api/completed-checklists/{record['id']}", json={"items": items}, headers=member.headers)
    assert updated.status_code == 200
    assert updated.json()["status"] == "completed"
    assert updated.json()["completion_percentage"] == 100


def test_completion_needs_existing_template(client, member):
    resp = _complete(client, member.headers, "00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404


def test_members_see_only_their_completions(client, officer, member, other_member):
    template = _template(client, officer.headers)
    mine = _complete(client, member.headers, template["id"]).json()
    _complete(client, other_member.headers, template["id"])

    page = client.get("/api/completed-checklists", headers=member.headers).json()
    assert page["total"] == 1
    assert page["total_pages"] == 1
    assert page["current_page"] == 1
    assert client.get(f"/api/completed-checklists/{mine['id']}", headers=other_member.headers).status_code == 403

    everyone = client.get("/api/completed-checklists", params={"limit": 1}, headers=officer.headers).json()
    assert everyone["total"] == 2
    assert everyone["total_pages"] == 2
    assert len(everyone["completed_checklists"]) == 1

    filtered = client.get("/api/completed-checklists", params={"completed_by": member.id}, headers=officer.headers).json()
    assert [c["id"] for c in filtered["completed_checklists"]] == [mine["id"]]


def test_completion_stats(client, officer, member, other_member):
    kit = _template(client, officer.headers)
    truck = _template(client, officer.headers, name="Truck check", type="vehicle_inspection")
    _complete(client, member.headers, kit["id"])
    _complete(client, member.headers, truck["id"], done=(True, True, True))
    _complete(client, other_member.headers, kit["id"], done=(False, False, False))

    stats = client.get("/api/completed-checklists/stats", headers=member.headers).json()
    assert stats["total_completed"] == 3
    assert stats["completed_today"] == 3
    assert stats["by_type"] == {"callout": 2, "vehicle_inspection": 1}
    assert stats["by_status"] == {"completed": 2, "partial": 1}
    assert stats["top_users"][0] == {"name": member.full_name, "count": 2}
    assert stats["top_templates"][0] == {"name": "Callout kit", "count": 2}


def test_only_admin_deletes_completions(client, officer, admin, member):
    template = _template(client, officer.headers)
    record = _complete(client, member.headers, template["id"]).json()
    url = f"/api/completed-checklists/{record['id']}"
    assert client.delete(url, headers=officer.headers).status_code == 403
    assert client.delete(url, headers=admin.headers).status_code == 200
