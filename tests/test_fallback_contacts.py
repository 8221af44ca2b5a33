import pytest
from fastapi.testclient import TestClient

PRIMARY = (24.7136, 46.6753)
# Offsets north of the primary pin, in degrees of latitude
ONE_KM = 0.009
FOUR_KM = 0.036
FIVE_KM = 0.045


def _register(client: TestClient, email: str, phone: str):
    response = client.post(
        "/api/v1/auth/register",
        json={
            "email": email,
            "name": "Fallback Owner",
            "phone": phone,
            "password": "StrongPass1",
            "address": {"text_address": "King Fahd Road, Riyadh", "lat": PRIMARY[0], "lng": PRIMARY[1]},
        },
    )
    assert response.status_code == 201
    return response.json()["data"]["address"]


def _contact_payload(address_id: int, offset: float, **extra) -> dict:
    payload = {
        "address_id": address_id,
        "name": "Abu Khalid",
        "phone": "966512345678",
        "relationship": "neighbor",
        "lat": PRIMARY[0] + offset,
        "lng": PRIMARY[1],
    }
    payload.update(extra)
    return payload


def test_assess_previews_without_saving(client: TestClient):
    address = _register(client, "assess@example.com", "966520000001")

    response = client.post(
        "/api/v1/fallback-contacts/assess",
        json={"address_id": address["id"], "lat": PRIMARY[0] + FIVE_KM, "lng": PRIMARY[1]},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["distance_km"] == pytest.approx(5.004, abs=0.01)
    assert data["requires_extra_fee"] is True
    assert data["extra_fee_amount"] == 15.0

    listed = client.get(f"/api/v1/fallback-contacts/address/{address['id']}").json()["data"]
    assert listed == []


def test_near_contact_needs_no_scheduling(client: TestClient):
    address = _register(client, "near@example.com", "966520000002")

    response = client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], ONE_KM))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["distance_km"] == pytest.approx(1.0, abs=0.01)
    assert data["requires_extra_fee"] is False
    assert data["extra_fee_acknowledged"] is False
    assert data["relationship"] == "neighbor"


def test_far_contact_without_requirements_is_rejected(client: TestClient):
    address = _register(client, "far@example.com", "966520000003")

    response = client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], FIVE_KM))

    assert response.status_code == 400
    payload = response.json()
    assert payload["success"] is False
    assert [e["field"] for e in payload["errors"]] == [
        "scheduled_date",
        "scheduled_time_slot",
        "extra_fee_acknowledged",
    ]

    listed = client.get(f"/api/v1/fallback-contacts/address/{address['id']}").json()["data"]
    assert listed == []


def test_far_contact_with_requirements_is_created(client: TestClient):
    address = _register(client, "farok@example.com", "966520000004")

    response = client.post(
        "/api/v1/fallback-contacts/",
        json=_contact_payload(
            address["id"],
            FIVE_KM,
            scheduled_date="2026-11-02",
            scheduled_time_slot="evening",
            extra_fee_acknowledged=True,
        ),
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["requires_extra_fee"] is True
    assert data["scheduled_date"] == "2026-11-02"


def test_client_cannot_bypass_gate_with_its_own_distance(client: TestClient):
    address = _register(client, "bypass@example.com", "966520000005")

    response = client.post(
        "/api/v1/fallback-contacts/",
        json=_contact_payload(address["id"], FIVE_KM, distance_km=0.5, requires_extra_fee=False),
    )
    assert response.status_code == 400


def test_moving_the_primary_pin_recomputes_distances(client: TestClient):
    address = _register(client, "move@example.com", "966520000006")
    created = client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], ONE_KM))
    assert created.status_code == 201
    contact_id = created.json()["data"]["id"]

    # Move the primary 3km south; the contact is now about 4km away
    response = client.patch(
        f"/api/v1/addresses/{address['id']}",
        json={"lat": PRIMARY[0] + ONE_KM - FOUR_KM, "lng": PRIMARY[1]},
    )
    assert response.status_code == 200

    contact = client.get(f"/api/v1/fallback-contacts/{contact_id}").json()["data"]
    assert contact["distance_km"] == pytest.approx(4.0, abs=0.01)
    assert contact["requires_extra_fee"] is True

    # The next edit must satisfy the extended-distance requirements
    response = client.put(f"/api/v1/fallback-contacts/{contact_id}", json={"special_note": "Blue door"})
    assert response.status_code == 400

    response = client.put(
        f"/api/v1/fallback-contacts/{contact_id}",
        json={"scheduled_date": "2026-11-03", "scheduled_time_slot": "morning", "extra_fee_acknowledged": True},
    )
    assert response.status_code == 200
    assert response.json()["data"]["extra_fee_acknowledged"] is True


def test_contact_brought_within_range_keeps_its_schedule(client: TestClient):
    address = _register(client, "relax@example.com", "966520000015")
    created = client.post(
        "/api/v1/fallback-contacts/",
        json=_contact_payload(
            address["id"],
            FIVE_KM,
            scheduled_date="2026-11-02",
            scheduled_time_slot="evening",
            extra_fee_acknowledged=True,
        ),
    )
    assert created.status_code == 201
    contact_id = created.json()["data"]["id"]

    # Move the primary 4km north; the contact is now about 1km away
    response = client.patch(
        f"/api/v1/addresses/{address['id']}",
        json={"lat": PRIMARY[0] + FOUR_KM, "lng": PRIMARY[1]},
    )
    assert response.status_code == 200

    response = client.put(f"/api/v1/fallback-contacts/{contact_id}", json={"special_note": "Gate code 12"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["distance_km"] == pytest.approx(1.0, abs=0.01)
    assert data["requires_extra_fee"] is False
    assert data["scheduled_date"] == "2026-11-02"
    assert data["scheduled_time_slot"] == "evening"
    assert data["extra_fee_acknowledged"] is True
    assert data["special_note"] == "Gate code 12"


def test_contact_moved_within_range_keeps_its_schedule(client: TestClient):
    address = _register(client, "relax-move@example.com", "966520000017")
    created = client.post(
        "/api/v1/fallback-contacts/",
        json=_contact_payload(
            address["id"],
            FIVE_KM,
            scheduled_date="2026-11-04",
            scheduled_time_slot="afternoon",
            extra_fee_acknowledged=True,
        ),
    )
    assert created.status_code == 201
    contact_id = created.json()["data"]["id"]

    response = client.put(
        f"/api/v1/fallback-contacts/{contact_id}",
        json={"lat": PRIMARY[0] + ONE_KM, "lng": PRIMARY[1]},
    )
    assert response.status_code == 200
    assert response.json()["data"]["requires_extra_fee"] is False

    response = client.put(f"/api/v1/fallback-contacts/{contact_id}", json={"relationship": "relative"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["distance_km"] == pytest.approx(1.0, abs=0.01)
    assert data["scheduled_date"] == "2026-11-04"
    assert data["scheduled_time_slot"] == "afternoon"
    assert data["extra_fee_acknowledged"] is True
    assert data["relationship"] == "relative"


def test_update_rejects_blank_name(client: TestClient):
    address = _register(client, "blankname@example.com", "966520000016")
    created = client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], ONE_KM))
    contact_id = created.json()["data"]["id"]

    for name in ("", "   ", "A"):
        response = client.put(f"/api/v1/fallback-contacts/{contact_id}", json={"name": name})
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "name"

    response = client.put(f"/api/v1/fallback-contacts/{contact_id}", json={"name": "  Umm Saad  "})
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Umm Saad"


def test_update_moving_contact_far_is_gated(client: TestClient):
    address = _register(client, "update@example.com", "966520000007")
    created = client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], ONE_KM))
    contact_id = created.json()["data"]["id"]

    response = client.put(
        f"/api/v1/fallback-contacts/{contact_id}",
        json={"lat": PRIMARY[0] + FIVE_KM, "lng": PRIMARY[1], "scheduled_time_slot": "evening"},
    )
    assert response.status_code == 400
    assert [e["field"] for e in response.json()["errors"]] == ["scheduled_date", "extra_fee_acknowledged"]

    # The rejected update left the stored contact untouched
    contact = client.get(f"/api/v1/fallback-contacts/{contact_id}").json()["data"]
    assert contact["requires_extra_fee"] is False
    assert contact["scheduled_time_slot"] is None


def test_contact_without_pin_has_no_distance(client: TestClient):
    address = _register(client, "nopin@example.com", "966520000008")

    payload = _contact_payload(address["id"], 0.0)
    del payload["lat"], payload["lng"]
    response = client.post("/api/v1/fallback-contacts/", json=payload)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["distance_km"] is None
    assert data["requires_extra_fee"] is False


def test_set_default_is_exclusive(client: TestClient):
    address = _register(client, "default@example.com", "966520000009")
    first = client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], ONE_KM)).json()["data"]
    second = client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], 0.001)).json()["data"]

    assert client.post(f"/api/v1/fallback-contacts/{first['id']}/set-default").status_code == 200
    assert client.post(f"/api/v1/fallback-contacts/{second['id']}/set-default").status_code == 200

    listed = client.get(f"/api/v1/fallback-contacts/address/{address['id']}").json()["data"]
    assert [c["is_default"] for c in listed] == [False, True]


def test_contacts_of_other_users_are_forbidden(client: TestClient):
    address = _register(client, "mine@example.com", "966520000010")
    contact = client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], ONE_KM)).json()["data"]

    _register(client, "theirs@example.com", "966520000011")

    assert client.get(f"/api/v1/fallback-contacts/{contact['id']}").status_code == 403
    assert client.get(f"/api/v1/fallback-contacts/address/{address['id']}").status_code == 403
    response = client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], ONE_KM))
    assert response.status_code == 403


def test_delete_contact(client: TestClient):
    address = _register(client, "delete@example.com", "966520000012")
    contact = client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], ONE_KM)).json()["data"]

    assert client.delete(f"/api/v1/fallback-contacts/{contact['id']}").status_code == 200
    assert client.get(f"/api/v1/fallback-contacts/{contact['id']}").status_code == 404


def test_public_lookup_includes_fallback_contacts(client: TestClient):
    address = _register(client, "public@example.com", "966520000013")
    client.post("/api/v1/fallback-contacts/", json=_contact_payload(address["id"], ONE_KM))
    client.cookies.clear()

    response = client.get(f"/api/v1/addresses/lookup/{address['digital_id']}")
    assert response.status_code == 200
    contacts = response.json()["data"]["fallback_contacts"]
    assert len(contacts) == 1
    assert contacts[0]["name"] == "Abu Khalid"


def test_moving_contact_across_riyadh_requires_scheduling(client: TestClient):
    address = _register(client, "riyadh@example.com", "966520000014")

    created = client.post(
        "/api/v1/fallback-contacts/",
        json={"address_id": address["id"], "name": "Office", "phone": "966512345679", "lat": 24.72, "lng": 46.69},
    )
    assert created.status_code == 201
    contact = created.json()["data"]
    assert contact["distance_km"] == pytest.approx(1.65, abs=0.01)
    assert contact["requires_extra_fee"] is False

    response = client.put(
        f"/api/v1/fallback-contacts/{contact['id']}",
        json={"lat": 24.85, "lng": 46.9, "scheduled_time_slot": "afternoon", "extra_fee_acknowledged": True},
    )
    assert response.status_code == 400
    assert [e["field"] for e in response.json()["errors"]] == ["scheduled_date"]

    response = client.put(
        f"/api/v1/fallback-contacts/{contact['id']}",
        json={
            "lat": 24.85,
            "lng": 46.9,
            "scheduled_date": "2026-11-04",
            "scheduled_time_slot": "afternoon",
            "extra_fee_acknowledged": True,
        },
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["distance_km"] == pytest.approx(27.29, abs=0.1)
    assert data["requires_extra_fee"] is True
