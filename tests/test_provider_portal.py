from datetime import date, datetime, timedelta

from conftest import PROVIDER_PAYLOAD, make_account, make_appointment

from servicepro.db.models.notification import Notification
from servicepro.db.models.provider import ServiceProvider


def test_profile_created_on_first_read(client, listing, provider_account):
    _, headers = provider_account
    r = client.get("/api/provider-portal/profile", headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["specialty"] == "Dentist"
    assert body["city"] == "Beirut"
    assert body["default_meeting_platform"] == "zoom"

    r = client.put("/api/provider-portal/profile", json={"auto_confirm": True, "street": "Hamra 12"}, headers=headers)
    assert r.json()["auto_confirm"] is True
    assert r.json()["full_address"] == "Hamra 12, Beirut, Lebanon"


def test_portal_is_for_providers(client, customer):
    assert client.get("/api/provider-portal/profile", headers=customer[1]).status_code == 403


def test_replace_availability(client, listing, provider_account):
    _, headers = provider_account
    windows = [
        {"weekday": 1, "start_time": "09:00:00", "end_time": "12:00:00"},
        {"weekday": 3, "start_time": "14:00:00", "end_time": "18:00:00"},
    ]
    r = client.put("/api/provider-portal/availability", json={"windows": windows}, headers=headers)
    assert r.status_code == 200
    assert [w["weekday"] for w in r.json()] == [1, 3]

    r = client.put("/api/provider-portal/availability", json={"windows": windows[:1]}, headers=headers)
    assert len(r.json()) == 1

    bad = [{"weekday": 2, "start_time": "10:00:00", "end_time": "09:00:00"}]
    assert client.put("/api/provider-portal/availability", json={"windows": bad}, headers=headers).status_code == 400


def test_confirm_pending(client, db, listing, customer, provider_account):
    appt = make_appointment(db, customer[0].id, listing.id, status="pending")
    r = client.put(f"/api/provider-portal/appointments/{appt.id}/confirm", headers=provider_account[1])
    assert r.status_code == 200
    assert r.json()["status"] == "confirmed"

    note = db.query(Notification).filter(Notification.recipient_id == customer[0].id).one()
    assert note.notification_type == "appointment_confirmed"

    again = client.put(f"/api/provider-portal/appointments/{appt.id}/confirm", headers=provider_account[1])
    assert again.status_code == 400
    assert again.json()["detail"] == "Only pending appointments can be confirmed"


def test_reject_pending(client, db, listing, customer, provider_account):
    appt = make_appointment(db, customer[0].id, listing.id, status="pending")
    r = client.put(f"/api/provider-portal/appointments/{appt.id}/reject", json={"reason": "Fully booked"},
                   headers=provider_account[1])
    body = r.json()
    assert body["status"] == "cancelled"
    assert body["cancelled_by"] == "provider"
    assert body["cancellation_reason"] == "Fully booked"


def test_cannot_manage_another_listing(client, db, listing, customer):
    appt = make_appointment(db, customer[0].id, listing.id, status="pending")
    user, headers = make_account(db, "rival@example.com", "provider")
    db.add(ServiceProvider(user_id=user.id, approval_status="approved", **PROVIDER_PAYLOAD))
    db.commit()

    r = client.put(f"/api/provider-portal/appointments/{appt.id}/confirm", headers=headers)
    assert r.status_code == 403


def test_reschedule(client, db, listing, customer, other_customer, provider_account):
    appt = make_appointment(db, customer[0].id, listing.id, days_ahead=3, time="10:00")
    make_appointment(db, other_customer[0].id, listing.id, days_ahead=6, time="09:00")
    new_day = (date.today() + timedelta(days=6)).isoformat()

    r = client.put(f"/api/provider-portal/appointments/{appt.id}/reschedule",
                   json={"date": new_day, "time": "09:30"}, headers=provider_account[1])
    assert r.status_code == 400

    r = client.put(f"/api/provider-portal/appointments/{appt.id}/reschedule",
                   json={"date": new_day, "time": "11:00", "reason": "Clinic closed"}, headers=provider_account[1])
    assert r.status_code == 200
    assert r.json()["date"] == new_day
    assert r.json()["status"] == "pending"


def test_reschedule_completed_rejected(client, db, listing, customer, provider_account):
    appt = make_appointment(db, customer[0].id, listing.id, status="completed")
    r = client.put(f"/api/provider-portal/appointments/{appt.id}/reschedule",
                   json={"date": (date.today() + timedelta(days=9)).isoformat(), "time": "10:00"},
                   headers=provider_account[1])
    assert r.status_code == 400


def test_notes_visibility(client, db, listing, customer, other_customer, provider_account):
    appt = make_appointment(db, customer[0].id, listing.id)
    base = {"content": "Patient reports mild pain.", "note_type": "consultation"}
    r = client.post(f"/api/provider-portal/appointments/{appt.id}/notes",
                    json={**base, "title": "Shared"}, headers=provider_account[1])
    assert r.status_code == 201
    client.post(f"/api/provider-portal/appointments/{appt.id}/notes",
                json={**base, "title": "Internal", "is_private": True}, headers=provider_account[1])

    url = f"/api/provider-portal/appointments/{appt.id}/notes"
    assert len(client.get(url, headers=provider_account[1]).json()) == 2
    assert [n["title"] for n in client.get(url, headers=customer[1]).json()] == ["Shared"]
    assert client.get(url, headers=other_customer[1]).status_code == 403


def test_meeting_uses_profile_platform(client, db, listing, customer, provider_account):
    _, headers = provider_account
    client.put("/api/provider-portal/profile", json={"default_meeting_platform": "google_meet"}, headers=headers)
    appt = make_appointment(db, customer[0].id, listing.id)

    r = client.post(f"/api/provider-portal/appointments/{appt.id}/meeting", json={}, headers=headers)
    assert r.status_code == 201
    body = r.json()
    assert body["platform"] == "google_meet"
    assert body["meeting_url"] == f"https://meet.google.com/{body['meeting_id']}"

    again = client.post(f"/api/provider-portal/appointments/{appt.id}/meeting", json={}, headers=headers)
    assert again.status_code == 400


def test_analytics_and_dashboard(client, db, listing, customer, provider_account):
    _, headers = provider_account
    make_appointment(db, customer[0].id, listing.id, status="completed")
    make_appointment(db, customer[0].id, listing.id, time="12:00", status="pending")

    stats = client.get("/api/provider-portal/analytics", params={"period": "yearly"}, headers=headers).json()
    assert stats["appointments"]["total"] == 2
    assert stats["revenue"] == 50.0
    assert stats["completion_rate"] == 50.0
    assert stats["sqi"] is None

    assert client.get("/api/provider-portal/analytics", params={"period": "hourly"}, headers=headers).status_code == 400

    dash = client.get("/api/provider-portal/dashboard", headers=headers).json()
    assert dash["pending_count"] == 1
    assert len(dash["upcoming"]) == 1


def test_reschedule_into_the_past_rejected(client, db, listing, customer, provider_account):
    appt = make_appointment(db, customer[0].id, listing.id, days_ahead=3)
    r = client.put(f"/api/provider-portal/appointments/{appt.id}/reschedule",
                   json={"date": datetime.utcnow().date().isoformat(), "time": "00:00"},
                   headers=provider_account[1])
    assert r.status_code == 400
    assert r.json()["detail"] == "New time must be in the future"
