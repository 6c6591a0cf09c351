import pytest
from fastapi import APIRouter, Depends, FastAPI
from fastapi.testclient import TestClient

from conftest import make_appointment

from servicepro.core.rbac import (
    require_all_permissions,
    require_any_permission,
    require_any_role,
    require_permission,
    require_role,
)
from servicepro.core.security import require_roles
from servicepro.db.base import get_db

router = APIRouter(prefix="/guarded")


@router.get("/appointments/{appointment_id}")
def read_appointment(appointment_id: int, user=Depends(require_permission("appointments", "read", id_param="appointment_id"))):
    return {"user_id": user.id}


@router.get("/any")
def any_permission(user=Depends(require_any_permission("quality_scores:create", "providers:approve"))):
    return {"user_id": user.id}


@router.get("/all")
def all_permissions(user=Depends(require_all_permissions("providers:read", "quality_scores:create"))):
    return {"user_id": user.id}


@router.get("/evaluators")
def evaluators_only(user=Depends(require_role("evaluator"))):
    return {"user_id": user.id}


@router.get("/staff")
def staff_only(user=Depends(require_any_role("admin", "evaluator"))):
    return {"user_id": user.id}


@router.get("/providers")
def provider_tag_only(user=Depends(require_roles("provider"))):
    return {"user_id": user.id}


@pytest.fixture()
def guarded(session_factory):
    app = FastAPI()
    app.include_router(router)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def test_permission_with_ownership(guarded, db, listing, customer, other_customer):
    appt = make_appointment(db, customer[0].id, listing.id)
    assert guarded.get(f"/guarded/appointments/{appt.id}", headers=customer[1]).status_code == 200

    r = guarded.get(f"/guarded/appointments/{appt.id}", headers=other_customer[1])
    assert r.status_code == 403
    assert r.json()["detail"] == "Insufficient permissions. Required: appointments:read"


def test_any_permission(guarded, evaluator, customer):
    assert guarded.get("/guarded/any", headers=evaluator[1]).status_code == 200
    r = guarded.get("/guarded/any", headers=customer[1])
    assert r.status_code == 403
    assert r.json()["detail"] == "Insufficient permissions"


def test_all_permissions_names_the_missing_one(guarded, evaluator, customer):
    assert guarded.get("/guarded/all", headers=evaluator[1]).status_code == 200
    r = guarded.get("/guarded/all", headers=customer[1])
    assert r.status_code == 403
    assert r.json()["detail"] == "Missing required permission: quality_scores:create"


def test_role_guards(guarded, evaluator, admin, customer):
    assert guarded.get("/guarded/evaluators", headers=evaluator[1]).status_code == 200
    r = guarded.get("/guarded/evaluators", headers=admin[1])
    assert r.status_code == 403
    assert r.json()["detail"] == "Required role: evaluator"

    assert guarded.get("/guarded/staff", headers=admin[1]).status_code == 200
    r = guarded.get("/guarded/staff", headers=customer[1])
    assert r.json()["detail"] == "Required roles: admin, evaluator"


def test_role_tag_guard(guarded, provider_account, customer):
    assert guarded.get("/guarded/providers", headers=provider_account[1]).status_code == 200
    r = guarded.get("/guarded/providers", headers=customer[1])
    assert r.status_code == 403
    assert r.json()["detail"] == "Requires role: provider"


def test_guards_require_a_token(guarded):
    for path in ("/guarded/any", "/guarded/all", "/guarded/evaluators", "/guarded/staff", "/guarded/providers"):
        assert guarded.get(path).status_code == 401
