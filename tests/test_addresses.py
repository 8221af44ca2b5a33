from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.address import Address
from app.models.fallback_contact import FallbackContact
from app.services.address_service import DIGITAL_ID_ALPHABET, generate_digital_id

RIYADH = (24.7136, 46.6753)


def _register(client: TestClient, email: str, phone: str, name: str = "Address Owner"):
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "name": name, "phone": phone, "password": "StrongPass1"},
    )
    assert response.status_code == 201
    return response.json()["data"]["user"]


def _create_address(client: TestClient, text: str = "King Fahd Road, Riyadh", coordinates=RIYADH) -> dict:
    payload = {"text_address": text}
    if coordinates is not None:
        payload["lat"], payload["lng"] = coordinates
    response = client.post("/api/v1/addresses/", json=payload)
    assert response.status_code == 201
    return response.json()["data"]


def test_generate_digital_id_uses_unambiguous_alphabet():
    for _ in range(50):
        digital_id = generate_digital_id()
        assert len(digital_id) == 8
        assert set(digital_id) <= set(DIGITAL_ID_ALPHABET)
        assert not set(digital_id) & set("IO01")


def test_first_address_becomes_primary(client: TestClient):
    _register(client, "primary@example.com", "966500000001")

    first = _create_address(client)
    second = _create_address(client, "Olaya Street, Riyadh")

    assert first["is_primary"] is True
    assert second["is_primary"] is False
    assert first["digital_id"] != second["digital_id"]

    response = client.post(f"/api/v1/addresses/{second['id']}/set-primary")
    assert response.status_code == 200

    listed = client.get("/api/v1/addresses/").json()["data"]
    assert [a["is_primary"] for a in listed] == [False, True]


def test_address_without_pin(client: TestClient):
    _register(client, "nopin@example.com", "966500000002")

    address = _create_address(client, coordinates=None)
    assert address["lat"] is None
    assert address["lng"] is None


def test_lat_without_lng_is_rejected(client: TestClient):
    _register(client, "halfpin@example.com", "966500000003")

    response = client.post("/api/v1/addresses/", json={"text_address": "Half pinned street", "lat": 24.7})
    assert response.status_code == 422


def test_out_of_range_coordinates_are_rejected(client: TestClient):
    _register(client, "range@example.com", "966500000004")

    response = client.post(
        "/api/v1/addresses/",
        json={"text_address": "Nowhere street", "lat": 95.0, "lng": 46.6},
    )
    assert response.status_code == 422


def test_update_keeps_digital_id(client: TestClient):
    _register(client, "update@example.com", "966500000005")
    address = _create_address(client)

    response = client.patch(
        f"/api/v1/addresses/{address['id']}",
        json={"special_note": "Ring twice", "fallback_option": "neighbor", "digital_id": "ZZZZZZZZ"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["special_note"] == "Ring twice"
    assert data["fallback_option"] == "neighbor"
    assert data["digital_id"] == address["digital_id"]


def test_null_preferences_keep_stored_values(client: TestClient):
    _register(client, "nullprefs@example.com", "966500000011")
    address = _create_address(client)

    response = client.patch(
        f"/api/v1/addresses/{address['id']}",
        json={"preferred_time": None, "fallback_option": None, "text_address": None},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["preferred_time"] == "morning"
    assert data["fallback_option"] == "door"
    assert data["text_address"] == "King Fahd Road, Riyadh"

    assert client.get("/api/v1/addresses/").status_code == 200
    assert client.get("/api/v1/users/me").status_code == 200
    assert client.get(f"/api/v1/addresses/lookup/{address['digital_id']}").status_code == 200


def test_unknown_fallback_option_is_rejected(client: TestClient):
    _register(client, "option@example.com", "966500000006")
    address = _create_address(client)

    response = client.patch(f"/api/v1/addresses/{address['id']}", json={"fallback_option": "roof"})
    assert response.status_code == 422


def test_public_lookup_by_digital_id(client: TestClient):
    _register(client, "lookup@example.com", "966500000007", name="Lookup Owner")
    address = _create_address(client)
    client.cookies.clear()

    response = client.get(f"/api/v1/addresses/lookup/{address['digital_id'].lower()}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["address"]["id"] == address["id"]
    assert data["user"] == {"name": "Lookup Owner", "phone": "966500000007", "email": "lookup@example.com"}
    assert data["fallback_contacts"] == []


def test_public_lookup_unknown_id(client: TestClient):
    response = client.get("/api/v1/addresses/lookup/ZZZZZZZZ")
    assert response.status_code == 404
    assert response.json()["message"] == "Address not found"


def test_other_users_address_is_forbidden(client: TestClient):
    _register(client, "owner@example.com", "966500000008")
    address = _create_address(client)

    _register(client, "intruder@example.com", "966500000009")
    response = client.get(f"/api/v1/addresses/{address['id']}")
    assert response.status_code == 403

    response = client.delete(f"/api/v1/addresses/{address['id']}")
    assert response.status_code == 403


def test_delete_cascades_and_promotes_next_primary(client: TestClient, db_session: Session):
    _register(client, "cascade@example.com", "966500000010")
    first = _create_address(client)
    second = _create_address(client, "Olaya Street, Riyadh")

    response = client.post(
        "/api/v1/fallback-contacts/",
        json={
            "address_id": first["id"],
            "name": "Neighbour",
            "phone": "966511111111",
            "lat": RIYADH[0] + 0.009,
            "lng": RIYADH[1],
        },
    )
    assert response.status_code == 201

    response = client.delete(f"/api/v1/addresses/{first['id']}")
    assert response.status_code == 200

    db_session.expire_all()
    assert db_session.query(FallbackContact).filter(FallbackContact.address_id == first["id"]).count() == 0
    assert db_session.get(Address, second["id"]).is_primary is True
