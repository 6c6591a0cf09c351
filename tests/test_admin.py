from conftest import PROVIDER_PAYLOAD, make_appointment

from servicepro.db.models.category import ServiceCategory
from servicepro.db.models.notification import Notification
from servicepro.db.models.review import Review


def test_admin_only(client, customer, provider_account):
    for _, headers in (customer, provider_account):
        assert client.get("/api/admin/dashboard", headers=headers).status_code == 403
    assert client.get("/api/admin/dashboard").status_code == 401


def test_dashboard_counts(client, db, admin, listing, customer):
    make_appointment(db, customer[0].id, listing.id)
    body = client.get("/api/admin/dashboard", headers=admin[1]).json()
    assert body["counts"]["users"] == 3
    assert body["counts"]["providers"] == 1
    assert body["counts"]["appointments"] == 1
    assert body["pending_providers"] == 0
    assert body["sqi"]["scored_providers"] == 0


def test_approve_provider(client, db, admin, provider_account):
    db.add(ServiceCategory(key="healthcare", name="Healthcare", name_ar="صحة", name_de="Gesundheit", icon="h"))
    db.commit()
    created = client.post("/api/service-providers/", json=PROVIDER_PAYLOAD, headers=provider_account[1]).json()

    pending = client.get("/api/admin/providers", params={"approval_status": "pending"}, headers=admin[1]).json()
    assert [p["id"] for p in pending] == [created["id"]]

    r = client.put(f"/api/admin/providers/{created['id']}/approval", json={"approval_status": "approved"},
                   headers=admin[1])
    assert r.json()["approval_status"] == "approved"
    assert r.json()["is_verified"] is True

    category = db.query(ServiceCategory).filter(ServiceCategory.key == "healthcare").one()
    assert category.provider_count == 1
    note = db.query(Notification).one()
    assert note.notification_type == "provider_approved"
    assert client.get("/api/service-providers/").json()["total"] == 1


def test_reject_provider(client, db, admin, listing, provider_account):
    r = client.put(f"/api/admin/providers/{listing.id}/approval",
                   json={"approval_status": "rejected", "reason": "Missing licence"}, headers=admin[1])
    assert r.json()["approval_status"] == "rejected"
    note = db.query(Notification).one()
    assert note.notification_type == "provider_rejected"
    assert note.message.endswith("Missing licence")


def test_user_status(client, admin, customer):
    r = client.put(f"/api/admin/users/{customer[0].id}/status", json={"is_active": False}, headers=admin[1])
    assert r.json()["is_active"] is False
    assert client.get("/api/auth/me", headers=customer[1]).status_code == 403

    r = client.put(f"/api/admin/users/{admin[0].id}/status", json={"is_active": False}, headers=admin[1])
    assert r.status_code == 400


def test_list_users(client, admin, customer, provider_account):
    assert len(client.get("/api/admin/users", params={"role": "provider"}, headers=admin[1]).json()) == 1
    found = client.get("/api/admin/users", params={"search": "customer one"}, headers=admin[1]).json()
    assert [u["id"] for u in found] == [customer[0].id]


def test_moderate_review_updates_rating(client, db, admin, listing, customer):
    appt = make_appointment(db, customer[0].id, listing.id, status="completed")
    review = Review(appointment_id=appt.id, user_id=customer[0].id, provider_id=listing.id,
                    rating=2, comment="Not great at all", is_reported=True, report_count=1)
    db.add(review)
    listing.rating, listing.review_count = 2.0, 1
    db.commit()

    reported = client.get("/api/admin/reviews", params={"reported": True}, headers=admin[1]).json()
    assert [r["id"] for r in reported] == [review.id]

    r = client.put(f"/api/admin/reviews/{review.id}/moderate", json={"action": "hide"}, headers=admin[1])
    assert r.json()["is_visible"] is False
    db.refresh(listing)
    assert listing.review_count == 0
    assert client.get(f"/api/reviews/{review.id}").status_code == 404

    r = client.put(f"/api/admin/reviews/{review.id}/moderate", json={"action": "show"}, headers=admin[1])
    assert r.json()["is_reported"] is False
    db.refresh(listing)
    assert listing.rating == 2.0


def test_analytics(client, db, admin, listing, customer):
    make_appointment(db, customer[0].id, listing.id, status="completed")
    body = client.get("/api/admin/analytics", params={"period": "yearly"}, headers=admin[1]).json()
    assert body["appointments"]["total"] == 1
    assert body["revenue"] == 50.0
    assert body["appointments_by_category"] == {"healthcare": 1}
    assert client.get("/api/admin/analytics", params={"period": "never"}, headers=admin[1]).status_code == 400
