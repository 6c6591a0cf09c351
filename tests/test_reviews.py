from conftest import make_appointment

from servicepro.db.models.notification import Notification


def post_review(client, headers, appointment, rating=5, comment="Great care and on time."):
    return client.post("/api/reviews/", json={
        "appointment_id": appointment.id,
        "provider_id": appointment.provider_id,
        "rating": rating,
        "comment": comment,
        "tags": ["professional"],
    }, headers=headers)


def test_review_completed_appointment(client, db, listing, customer, provider_account):
    user, headers = customer
    appt = make_appointment(db, user.id, listing.id, status="completed")

    r = post_review(client, headers, appt, rating=4)
    assert r.status_code == 201
    assert r.json()["is_verified"] is True

    db.refresh(listing)
    db.refresh(user)
    db.refresh(appt)
    assert listing.rating == 4.0
    assert listing.review_count == 1
    assert user.reward_points == 10
    assert appt.has_review is True

    types = {n.notification_type for n in db.query(Notification).all()}
    assert types == {"review_received", "reward_earned"}


def test_rating_is_average_of_visible_reviews(client, db, listing, customer):
    user, headers = customer
    for rating, time in ((5, "09:00"), (4, "11:00"), (4, "13:00")):
        appt = make_appointment(db, user.id, listing.id, time=time, status="completed")
        assert post_review(client, headers, appt, rating=rating).status_code == 201

    db.refresh(listing)
    assert listing.rating == 4.3
    assert listing.review_count == 3


def test_review_rules(client, db, listing, customer, other_customer):
    user, headers = customer
    confirmed = make_appointment(db, user.id, listing.id)
    r = post_review(client, headers, confirmed)
    assert r.status_code == 400
    assert r.json()["detail"] == "Can only review completed appointments"

    done = make_appointment(db, user.id, listing.id, time="14:00", status="completed")
    assert post_review(client, other_customer[1], done).status_code == 403

    r = client.post("/api/reviews/", json={
        "appointment_id": done.id, "provider_id": listing.id + 1, "rating": 5, "comment": "Great care and on time.",
    }, headers=headers)
    assert r.status_code == 400

    assert post_review(client, headers, done).status_code == 201
    r = post_review(client, headers, done)
    assert r.status_code == 400
    assert r.json()["detail"] == "Appointment already reviewed"


def test_short_comment_rejected(client, db, listing, customer):
    appt = make_appointment(db, customer[0].id, listing.id, status="completed")
    assert post_review(client, customer[1], appt, comment="ok").status_code == 422


def test_list_and_detail(client, db, listing, customer):
    appt = make_appointment(db, customer[0].id, listing.id, status="completed")
    review_id = post_review(client, customer[1], appt).json()["id"]

    body = client.get("/api/reviews/", params={"provider_id": listing.id}).json()
    assert body["total"] == 1
    assert client.get(f"/api/reviews/{review_id}").status_code == 200

    detail = client.get(f"/api/service-providers/{listing.id}").json()
    assert [r["id"] for r in detail["recent_reviews"]] == [review_id]


def test_update_and_delete(client, db, listing, customer, other_customer):
    appt = make_appointment(db, customer[0].id, listing.id, status="completed")
    review_id = post_review(client, customer[1], appt, rating=5).json()["id"]

    assert client.put(f"/api/reviews/{review_id}", json={"rating": 2}, headers=other_customer[1]).status_code == 403
    r = client.put(f"/api/reviews/{review_id}", json={"rating": 2}, headers=customer[1])
    assert r.json()["rating"] == 2
    db.refresh(listing)
    assert listing.rating == 2.0

    assert client.delete(f"/api/reviews/{review_id}", headers=customer[1]).status_code == 200
    db.refresh(listing)
    db.refresh(appt)
    assert listing.review_count == 0
    assert appt.has_review is False


def test_report_once(client, db, listing, customer, other_customer):
    appt = make_appointment(db, customer[0].id, listing.id, status="completed")
    review_id = post_review(client, customer[1], appt).json()["id"]

    r = client.post(f"/api/reviews/{review_id}/report", json={"reason": "spam"}, headers=other_customer[1])
    assert r.json()["is_reported"] is True
    assert r.json()["report_count"] == 1

    r = client.post(f"/api/reviews/{review_id}/report", json={"reason": "spam"}, headers=other_customer[1])
    assert r.status_code == 400


def test_provider_responds(client, db, listing, customer, provider_account):
    appt = make_appointment(db, customer[0].id, listing.id, status="completed")
    review_id = post_review(client, customer[1], appt).json()["id"]

    assert client.post(f"/api/reviews/{review_id}/respond", json={"text": "Thanks!"},
                       headers=customer[1]).status_code == 403
    r = client.post(f"/api/reviews/{review_id}/respond", json={"text": "Thanks!"}, headers=provider_account[1])
    assert r.json()["response_text"] == "Thanks!"

    r = client.post(f"/api/reviews/{review_id}/helpful", headers=customer[1])
    assert r.json()["helpful_count"] == 1


def test_rating_rounds_half_up(client, db, listing, customer):
    user, headers = customer
    for rating, time in ((4, "09:00"), (4, "11:00"), (4, "13:00"), (5, "15:00")):
        appt = make_appointment(db, user.id, listing.id, time=time, status="completed")
        assert post_review(client, headers, appt, rating=rating).status_code == 201

    db.refresh(listing)
    assert listing.rating == 4.3
    assert listing.review_count == 4
