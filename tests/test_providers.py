from datetime import date, time, timedelta

from conftest import PROVIDER_PAYLOAD, make_account

from servicepro.db.models.availability import ProviderAvailability
from servicepro.db.models.provider import ServiceProvider


def add_listing(db, email, **overrides):
    user, headers = make_account(db, email, "provider")
    data = dict(PROVIDER_PAYLOAD, approval_status="approved")
    data.update(overrides)
    provider = ServiceProvider(user_id=user.id, **data)
    db.add(provider)
    db.commit()
    db.refresh(provider)
    return provider, headers


def test_provider_creates_pending_listing(client, provider_account):
    _, headers = provider_account
    r = client.post("/api/service-providers/", json=PROVIDER_PAYLOAD, headers=headers)
    assert r.status_code == 201
    body = r.json()
    assert body["approval_status"] == "pending"
    assert body["average_rating"] == 0

    again = client.post("/api/service-providers/", json=PROVIDER_PAYLOAD, headers=headers)
    assert again.status_code == 400
    assert again.json()["detail"] == "Service provider profile already exists"


def test_customer_cannot_create_listing(client, customer):
    _, headers = customer
    r = client.post("/api/service-providers/", json=PROVIDER_PAYLOAD, headers=headers)
    assert r.status_code == 403


def test_search_hides_pending_and_inactive(client, db, listing):
    add_listing(db, "pending@example.com", approval_status="pending")
    add_listing(db, "gone@example.com", is_active=False)

    body = client.get("/api/service-providers/").json()
    assert body["total"] == 1
    assert [p["id"] for p in body["results"]] == [listing.id]


def test_search_filters_and_sorting(client, db, listing):
    cheap, _ = add_listing(db, "cheap@example.com", name="Budget Barber", category="beauty", price=10.0, rating=3.0)
    add_listing(db, "top@example.com", name="Top Chef", category="restaurants", price=90.0, rating=4.9)

    r = client.get("/api/service-providers/", params={"category": "beauty"}).json()
    assert [p["id"] for p in r["results"]] == [cheap.id]

    r = client.get("/api/service-providers/", params={"q": "barber"}).json()
    assert r["total"] == 1

    r = client.get("/api/service-providers/", params={"max_price": 60}).json()
    assert r["total"] == 2

    prices = [p["price"] for p in client.get("/api/service-providers/", params={"sort": "price_asc"}).json()["results"]]
    assert prices == sorted(prices)

    ratings = [p["rating"] for p in client.get("/api/service-providers/").json()["results"]]
    assert ratings == sorted(ratings, reverse=True)


def test_search_pagination(client, db, listing):
    for i in range(4):
        add_listing(db, f"p{i}@example.com")
    body = client.get("/api/service-providers/", params={"limit": 2, "page": 3}).json()
    assert body["total"] == 5
    assert body["pages"] == 3
    assert len(body["results"]) == 1


def test_search_by_availability_date(client, db, listing):
    add_listing(db, "other@example.com")
    target = date.today() + timedelta(days=7)
    db.add(ProviderAvailability(
        provider_id=listing.id,
        weekday=target.isoweekday(),
        start_time=time(9, 0),
        end_time=time(17, 0),
    ))
    db.commit()

    body = client.get("/api/service-providers/", params={"availability_date": target.isoformat()}).json()
    assert [p["id"] for p in body["results"]] == [listing.id]

    bad = client.get("/api/service-providers/", params={"availability_date": "next week"})
    assert bad.status_code == 400


def test_provider_detail(client, listing):
    r = client.get(f"/api/service-providers/{listing.id}")
    assert r.status_code == 200
    assert r.json()["recent_reviews"] == []
    assert client.get("/api/service-providers/999").status_code == 404


def test_owner_updates_listing_but_not_admin_fields(client, listing, provider_account):
    _, headers = provider_account
    r = client.put(f"/api/service-providers/{listing.id}", json={"price": 65.0}, headers=headers)
    assert r.status_code == 200
    assert r.json()["price"] == 65.0

    r = client.put(f"/api/service-providers/{listing.id}", json={"is_verified": True}, headers=headers)
    assert r.status_code == 403


def test_stranger_cannot_update_listing(client, listing, customer):
    _, headers = customer
    r = client.put(f"/api/service-providers/{listing.id}", json={"price": 1.0}, headers=headers)
    assert r.status_code == 403


def test_admin_can_change_admin_fields(client, listing, admin):
    _, headers = admin
    r = client.put(f"/api/service-providers/{listing.id}", json={"badges": ["top-rated"]}, headers=headers)
    assert r.json()["badges"] == ["top-rated"]


def test_delete_deactivates(client, db, listing, provider_account):
    _, headers = provider_account
    r = client.delete(f"/api/service-providers/{listing.id}", headers=headers)
    assert r.status_code == 200
    db.refresh(listing)
    assert listing.is_active is False
    assert client.get("/api/service-providers/").json()["total"] == 0
