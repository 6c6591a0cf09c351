from datetime import datetime, timedelta

from conftest import PROVIDER_PAYLOAD, make_account

from servicepro.core.rbac import check_user_permission
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.rbac import Permission, Role
from servicepro.services.rbac import (
    assign_role,
    cleanup_expired_roles,
    get_user_roles,
    seed_default_rbac,
    user_has_role,
)


def make_role(db, name, grants, max_users=None):
    role = Role(name=name, display_name=name.title(), description="custom role", level=3, max_users=max_users)
    db.add(role)
    for perm_name, conditions in grants:
        role.grant(db.query(Permission).filter(Permission.name == perm_name).one(), **conditions)
    db.commit()
    db.refresh(role)
    return role


def test_seed_is_idempotent(db):
    seed_default_rbac(db)
    seed_default_rbac(db)
    assert db.query(Role).filter(Role.is_system.is_(True)).count() == 4
    admin_role = db.query(Role).filter(Role.name == "admin").one()
    assert admin_role.permission_count == db.query(Permission).count() == 13 * 11


def test_seed_assigns_roles_to_existing_accounts(db):
    user, _ = make_account(db, "late@example.com", "provider", assign_role=False)
    assert not user_has_role(db, user.id, "provider")
    seed_default_rbac(db)
    assert user_has_role(db, user.id, "provider")


def test_own_data_only_condition(db, listing, provider_account, customer):
    provider_user, _ = provider_account
    assert check_user_permission(db, provider_user, "providers", "update", listing.id)
    assert not check_user_permission(db, customer[0], "providers", "update", listing.id)
    # a missing resource id never satisfies an ownership condition
    assert not check_user_permission(db, provider_user, "providers", "update")


def test_same_category_condition(db, listing, other_customer):
    user, _ = other_customer
    rival, _ = make_account(db, "beauty@example.com", "provider")
    salon = ServiceProvider(user_id=rival.id, approval_status="approved", **dict(PROVIDER_PAYLOAD, category="beauty"))
    db.add(salon)
    db.commit()

    role = make_role(db, "category_manager", [("providers:update", {"same_category": True})])
    assign_role(db, user.id, role, role_data={"categories": ["healthcare"]})

    assert check_user_permission(db, user, "providers", "update", listing.id)
    assert not check_user_permission(db, user, "providers", "update", salon.id)


def test_same_organization_condition(db, other_customer, customer):
    role = make_role(db, "org_analyst", [("analytics:read", {"same_organization": True})])
    assign_role(db, other_customer[0].id, role, role_data={"organization": "Clinic A"})
    assign_role(db, customer[0].id, role)

    assert check_user_permission(db, other_customer[0], "analytics", "read")
    assert not check_user_permission(db, customer[0], "analytics", "read")


def test_expired_assignment_grants_nothing(db, customer):
    user, _ = customer
    role = make_role(db, "temp_mod", [("reviews:moderate", {})])
    assign_role(db, user.id, role, expires_at=datetime.utcnow() - timedelta(minutes=5))

    assert not user_has_role(db, user.id, "temp_mod")
    assert not check_user_permission(db, user, "reviews", "moderate")
    assert cleanup_expired_roles(db) == 1
    assert [ur.role.name for ur in get_user_roles(db, user.id)] == ["user"]


def test_inactive_role_grants_nothing(db, customer):
    user, _ = customer
    role = make_role(db, "paused", [("reviews:moderate", {})])
    assign_role(db, user.id, role)
    assert check_user_permission(db, user, "reviews", "moderate")

    role.is_active = False
    db.commit()
    assert not check_user_permission(db, user, "reviews", "moderate")


def test_my_permissions(client, customer):
    body = client.get("/api/rbac/me/permissions", headers=customer[1]).json()
    assert body["roles"] == ["user"]
    granted = {(p["resource"], p["action"]) for p in body["permissions"]}
    assert ("appointments", "create") in granted
    assert all(p["conditions"]["own_data_only"] for p in body["permissions"] if p["resource"] == "appointments")


def test_role_lifecycle(client, admin, customer):
    headers = admin[1]
    r = client.post("/api/rbac/roles", json={
        "name": "support_agent",
        "display_name": "Support Agent",
        "description": "Handles tickets",
        "level": 4,
        "permissions": [{"permission": "complaints:read"}, {"permission": "complaints:update"}],
    }, headers=headers)
    assert r.status_code == 201
    role = r.json()
    assert role["permission_count"] == 2

    dup = client.post("/api/rbac/roles", json={
        "name": "support_agent", "display_name": "Support Agent Two", "description": "dup", "level": 1,
    }, headers=headers)
    assert dup.status_code == 400

    bad = client.put(f"/api/rbac/roles/{role['id']}", json={"permissions": [{"permission": "nope:read"}]},
                     headers=headers)
    assert bad.status_code == 400

    r = client.put(f"/api/rbac/roles/{role['id']}", json={"permissions": [{"permission": "complaints:read"}]},
                   headers=headers)
    assert r.json()["permission_count"] == 1

    assert client.post("/api/rbac/roles", json={
        "name": "sneaky", "display_name": "Sneaky", "description": "nope", "level": 1,
    }, headers=customer[1]).status_code == 403


def test_assign_and_revoke(client, admin, customer):
    headers = admin[1]
    role = client.post("/api/rbac/roles", json={
        "name": "reviewer", "display_name": "Reviewer", "description": "Moderates reviews", "level": 3,
        "permissions": [{"permission": "reviews:moderate"}], "max_users": 1,
    }, headers=headers).json()
    url = f"/api/rbac/users/{customer[0].id}/roles"

    r = client.post(url, json={"role_id": role["id"], "role_data": {"organization": "Clinic A"}}, headers=headers)
    assert r.status_code == 201
    assert r.json()["status"] == "active"
    assert r.json()["role_data"]["organization"] == "Clinic A"

    assert client.post(url, json={"role_id": role["id"]}, headers=headers).status_code == 400
    other = client.post(f"/api/rbac/users/{admin[0].id}/roles", json={"role_id": role["id"]}, headers=headers)
    assert other.status_code == 400
    assert "limited" in other.json()["detail"]

    in_use = client.delete(f"/api/rbac/roles/{role['id']}", headers=headers)
    assert in_use.status_code == 400

    assert client.delete(f"{url}/{role['id']}", headers=headers).status_code == 200
    assert client.delete(f"{url}/{role['id']}", headers=headers).status_code == 404
    names = [ur["role_name"] for ur in client.get(url, headers=headers).json()]
    assert names == ["user"]

    assert client.delete(f"/api/rbac/roles/{role['id']}", headers=headers).status_code == 200


def test_system_roles_cannot_be_deleted(client, db, admin):
    role_id = db.query(Role).filter(Role.name == "user").one().id
    r = client.delete(f"/api/rbac/roles/{role_id}", headers=admin[1])
    assert r.status_code == 400
    assert r.json()["detail"] == "System roles cannot be deleted"


def test_update_assignment(client, db, admin, customer):
    user_role_id = db.query(Role).filter(Role.name == "user").one().id
    url = f"/api/rbac/users/{customer[0].id}/roles/{user_role_id}"
    expires = (datetime.utcnow() + timedelta(days=10)).isoformat()

    r = client.put(url, json={"expires_at": expires, "role_data": {"region": "north"}}, headers=admin[1]).json()
    assert r["days_until_expiration"] == 10
    assert r["role_data"]["region"] == "north"

    r = client.put(url, json={"is_active": False, "reason": "suspended"}, headers=admin[1]).json()
    assert r["status"] == "inactive"
    assert client.get(f"/api/rbac/users/{customer[0].id}/roles", headers=admin[1]).json() == []
    inactive = client.get(f"/api/rbac/users/{customer[0].id}/roles", params={"include_inactive": True},
                          headers=admin[1]).json()
    assert len(inactive) == 1


def test_permission_catalog(client, admin):
    body = client.get("/api/rbac/permissions", params={"resource": "reviews"}, headers=admin[1]).json()
    assert len(body) == 11
    dup = client.post("/api/rbac/permissions", json={
        "resource": "reviews", "action": "read", "description": "again",
    }, headers=admin[1])
    assert dup.status_code == 400


def test_statistics_and_cleanup(client, admin, customer):
    stats = client.get("/api/rbac/statistics", headers=admin[1]).json()
    assert stats["total_roles"] == 4
    by_role = {s["role"]: s for s in stats["roles"]}
    assert by_role["user"]["active_assignments"] == 1

    assert client.post("/api/rbac/cleanup", headers=admin[1]).json()["count"] == 0
    assert client.post("/api/rbac/initialize", headers=admin[1]).json()["permissions"] == 143
