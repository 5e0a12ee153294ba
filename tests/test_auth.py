import uuid
from dataclasses import replace
from types import SimpleNamespace

import pytest

from app.auth.security import (
    auth_config,
    create_access_token,
    ensure_owner_or_elevated,
    is_elevated,
    owns_or_elevated,
    require_roles,
)
from app.errors import Unauthorized


def _register(client, username, role="member", headers=None):
    return client.post(
        "/api/auth/register",
        json={
            "first_name": "Alex",
            "last_name": "Rivera",
            "username": username,
            "password": "secret123",
            "role": role,
        },
        headers=headers or {},
    )


def test_register_and_login(client):
    resp = _register(client, "  ARivera ")
    assert resp.status_code == 201
    body = resp.json()
    assert body["token"]
    assert body["user"]["username"] == "arivera"
    assert body["user"]["role"] == "member"

    login = client.post("/api/auth/login", json={"username": "ARIVERA", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["username"] == "arivera"


def test_login_rejects_bad_password(client, member):
    resp = client.post("/api/auth/login", json={"username": member.username, "password": "wrong-pass"})
    assert resp.status_code == 401


def test_inactive_user_cannot_login_or_use_token(client, make_user):
    inactive = make_user("member", username="dormant", active=False)
    resp = client.post("/api/auth/login", json={"username": "dormant", "password": "secret123"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Account is inactive"
    assert client.get("/api/auth/me", headers=inactive.headers).status_code == 401


def test_first_account_may_be_admin(client):
    resp = _register(client, "founder", role="admin")
    assert resp.status_code == 201
    assert resp.json()["user"]["role"] == "admin"


def test_elevated_registration_needs_admin(client, member, admin):
    assert _register(client, "wannabe", role="officer").status_code == 403
    assert _register(client, "wannabe", role="officer", headers=member.headers).status_code == 403
    resp = _register(client, "newofficer", role="officer", headers=admin.headers)
    assert resp.status_code == 201
    assert resp.json()["user"]["role"] == "officer"


def test_duplicate_username_conflicts(client):
    assert _register(client, "twin").status_code == 201
    resp = _register(client, "TWIN")
    assert resp.status_code == 409


def test_short_password_is_rejected(client):
    resp = client.post(
        "/api/auth/register",
        json={"first_name": "A", "last_name": "B", "username": "shorty", "password": "123"},
    )
    assert resp.status_code == 400


def test_protected_route_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


def test_user_administration_is_admin_only(client, admin, member):
    assert client.get("/api/auth/users", headers=member.headers).status_code == 403
    users = client.get("/api/auth/users", headers=admin.headers)
    assert users.status_code == 200
    assert {u["username"] for u in users.json()} == {admin.username, member.username}

    promoted = client.put(f"/api/auth/users/{member.id}", json={"role": "officer"}, headers=admin.headers)
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "officer"

    assert client.delete(f"/api/auth/users/{admin.id}", headers=admin.headers).status_code == 400
    assert client.delete(f"/api/auth/users/{member.id}", headers=admin.headers).status_code == 200


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "OK"


def test_unknown_user_and_wrong_password_look_the_same(client, member):
    wrong = client.post("/api/auth/login", json={"username": member.username, "password": "wrong-pass"})
    unknown = client.post("/api/auth/login", json={"username": "nobody-here", "password": "wrong-pass"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json() == {"detail": "Invalid credentials"}


def test_expired_and_tampered_tokens_are_rejected(client, member):
    expired = create_access_token(member.id, replace(auth_config, ttl_seconds=-60))
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"

    forged = create_access_token(member.id, replace(auth_config, secret="someone-else"))
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"

    token = member.headers["Authorization"].split(" ", 1)[1]
    head, body, signature = token.split(".")
    flipped = signature[:-2] + ("AA" if signature[-2:] != "AA" else "BB")
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {head}.{body}.{flipped}"})
    assert resp.status_code == 401

    assert client.get("/api/auth/me").status_code == 401


def test_owns_or_elevated():
    owner_id = uuid.uuid4()
    owner = SimpleNamespace(id=owner_id, role="member")
    stranger = SimpleNamespace(id=uuid.uuid4(), role="member")
    officer = SimpleNamespace(id=uuid.uuid4(), role="officer")

    assert owns_or_elevated(owner, owner_id)
    assert owns_or_elevated(owner, str(owner_id))
    assert not owns_or_elevated(stranger, owner_id)
    assert not owns_or_elevated(stranger, None)
    assert owns_or_elevated(officer, owner_id)
    assert owns_or_elevated(officer, None)

    with pytest.raises(Unauthorized):
        ensure_owner_or_elevated(stranger, owner_id)
    ensure_owner_or_elevated(owner, owner_id)


def test_require_roles():
    admin_only = require_roles("admin")
    admin = SimpleNamespace(id=uuid.uuid4(), role="admin")
    assert admin_only(user=admin) is admin
    for role in ("officer", "member", "viewer"):
        with pytest.raises(Unauthorized):
            admin_only(user=SimpleNamespace(id=uuid.uuid4(), role=role))

    assert is_elevated("officer") and is_elevated("admin")
    assert not is_elevated("member") and not is_elevated(None)
