from conftest import PROVIDER_PAYLOAD, make_account, make_appointment

from servicepro.db.models.provider import ServiceProvider
from servicepro.services.notifications import create_notification


def add_provider(db, email, **overrides):
    user, _ = make_account(db, email, "provider")
    provider = ServiceProvider(user_id=user.id, approval_status="approved", **dict(PROVIDER_PAYLOAD, **overrides))
    db.add(provider)
    db.commit()
    db.refresh(provider)
    return provider


def test_dashboard_overview(client, db, listing, customer):
    user, headers = customer
    make_appointment(db, user.id, listing.id, days_ahead=2)
    make_appointment(db, user.id, listing.id, days_ahead=-3, status="completed")
    make_appointment(db, user.id, listing.id, days_ahead=-10, status="cancelled")
    create_notification(db, recipient_id=user.id, notification_type="system_announcement",
                        title="Hi", message="Welcome")

    body = client.get("/api/dashboard/user", headers=headers).json()
    assert body["overview"] == {
        "total": 3, "pending": 0, "confirmed": 1, "completed": 1, "cancelled": 1, "total_spent": 50.0,
    }
    assert len(body["upcoming"]) == 1
    assert [a["status"] for a in body["past"]] == ["completed", "cancelled"]
    assert body["unread_notifications"] == 1
    assert body["reward_points"] == 0


def test_recommends_unbooked_providers_in_booked_categories(client, db, listing, customer):
    user, headers = customer
    make_appointment(db, user.id, listing.id)
    dentist = add_provider(db, "dentist2@example.com", rating=4.8)
    add_provider(db, "chef@example.com", category="restaurants", rating=5.0)

    body = client.get("/api/dashboard/user", headers=headers).json()
    assert [p["id"] for p in body["recommended_providers"]] == [dentist.id]


def test_new_user_gets_top_rated(client, db, listing, customer):
    chef = add_provider(db, "chef@example.com", category="restaurants", rating=5.0)
    body = client.get("/api/dashboard/user", headers=customer[1]).json()
    assert [p["id"] for p in body["recommended_providers"]] == [chef.id, listing.id]
