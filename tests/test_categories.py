from conftest import PROVIDER_PAYLOAD

from servicepro.db.models.provider import ServiceProvider

HEALTHCARE = {
    "key": "healthcare",
    "name": "Healthcare",
    "name_ar": "الرعاية الصحية",
    "name_de": "Gesundheit",
    "icon": "stethoscope",
    "description": "Doctors and clinics",
    "subcategories": [{"name": "Dentist", "name_ar": "طبيب أسنان", "name_de": "Zahnarzt"}],
}


def test_admin_creates_category(client, admin):
    _, headers = admin
    r = client.post("/api/categories/", json=HEALTHCARE, headers=headers)
    assert r.status_code == 201
    assert r.json()["provider_count"] == 0

    dup = client.post("/api/categories/", json=HEALTHCARE, headers=headers)
    assert dup.status_code == 400


def test_customer_cannot_create_category(client, customer):
    _, headers = customer
    assert client.post("/api/categories/", json=HEALTHCARE, headers=headers).status_code == 403


def test_list_is_localized(client, admin):
    _, headers = admin
    client.post("/api/categories/", json=HEALTHCARE, headers=headers)

    de = client.get("/api/categories/", params={"lang": "de"}).json()
    assert de[0]["name"] == "Gesundheit"
    # no German description, falls back to English
    assert de[0]["description"] == "Doctors and clinics"
    assert de[0]["subcategories"] == [{"name": "Zahnarzt", "original_name": "Dentist"}]

    ar = client.get("/api/categories/healthcare").json()
    assert ar["name"] == "الرعاية الصحية"


def test_toggle_hides_category(client, admin):
    _, headers = admin
    client.post("/api/categories/", json=HEALTHCARE, headers=headers)
    r = client.put("/api/categories/healthcare/toggle", headers=headers)
    assert r.json()["is_active"] is False
    assert client.get("/api/categories/healthcare").status_code == 404
    assert client.get("/api/categories/").json() == []


def test_cannot_delete_category_in_use(client, admin, listing):
    _, headers = admin
    client.post("/api/categories/", json=HEALTHCARE, headers=headers)
    r = client.delete("/api/categories/healthcare", headers=headers)
    assert r.status_code == 400
    assert "1 service providers" in r.json()["detail"]


def test_provider_count_counts_only_listed(client, db, admin, listing, other_customer):
    _, headers = admin
    client.post("/api/categories/", json=HEALTHCARE, headers=headers)
    user, _ = other_customer
    db.add(ServiceProvider(user_id=user.id, approval_status="pending", **PROVIDER_PAYLOAD))
    db.commit()

    r = client.put("/api/categories/healthcare/provider-count", headers=headers)
    assert r.json()["provider_count"] == 1
