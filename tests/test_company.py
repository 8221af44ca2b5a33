from fastapi.testclient import TestClient

COMPANY = {
    "company_name": "Najm Express",
    "unified_number": "7001234567",
    "company_type": "Courier",
    "email": "ops@najm.example.com",
    "phone": "966540000001",
    "password": "StrongPass1",
}


def _register_company(client: TestClient, **overrides) -> dict:
    payload = {**COMPANY, **overrides}
    response = client.post("/api/v1/auth/register/company", json=payload)
    assert response.status_code == 201
    return response.json()["data"]


def test_register_company_creates_profile_and_session(client: TestClient):
    data = _register_company(client)

    assert data["user"]["account_type"] == "company"
    assert data["user"]["name"] == "Najm Express"
    assert data["company"]["unified_number"] == "7001234567"
    assert data["company"]["company_type"] == "Courier"
    assert "access_token" in client.cookies

    profile = client.get("/api/v1/company/profile")
    assert profile.status_code == 200
    assert profile.json()["data"]["company_name"] == "Najm Express"


def test_register_company_rejects_duplicate_unified_number(client: TestClient):
    _register_company(client)
    client.cookies.clear()

    response = client.post(
        "/api/v1/auth/register/company",
        json={**COMPANY, "email": "other@najm.example.com", "phone": "966540000002"},
    )
    assert response.status_code == 409
    assert response.json()["message"] == "Unified number already registered"


def test_register_company_validates_fields(client: TestClient):
    response = client.post(
        "/api/v1/auth/register/company",
        json={**COMPANY, "company_type": "Airline", "unified_number": "12"},
    )

    assert response.status_code == 422
    fields = {e["field"] for e in response.json()["errors"]}
    assert {"company_type", "unified_number"} <= fields


def test_individual_accounts_cannot_manage_drivers(client: TestClient):
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "person@example.com", "name": "Person", "phone": "966540000003", "password": "StrongPass1"},
    )
    assert response.status_code == 201

    response = client.get("/api/v1/company/drivers")
    assert response.status_code == 403
    assert response.json()["message"] == "Company account required"


def test_driver_management(client: TestClient):
    _register_company(client)

    created = client.post(
        "/api/v1/company/drivers",
        json={"driver_id": " DRV-001 ", "name": "Faisal", "phone": "966551112222"},
    )
    assert created.status_code == 201
    driver = created.json()["data"]
    assert driver["driver_id"] == "DRV-001"
    assert driver["status"] == "active"

    duplicate = client.post("/api/v1/company/drivers", json={"driver_id": "drv-001", "name": "Other"})
    assert duplicate.status_code == 409

    updated = client.patch(
        f"/api/v1/company/drivers/{driver['id']}",
        json={"status": "inactive", "name": None},
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["status"] == "inactive"
    assert updated.json()["data"]["name"] == "Faisal"

    listed = client.get("/api/v1/company/drivers").json()["data"]
    assert [d["driver_id"] for d in listed] == ["DRV-001"]

    response = client.delete(f"/api/v1/company/drivers/{driver['id']}")
    assert response.status_code == 200
    assert client.get("/api/v1/company/drivers").json()["data"] == []


def test_drivers_of_other_companies_are_hidden(client: TestClient):
    _register_company(client)
    driver = client.post("/api/v1/company/drivers", json={"driver_id": "DRV-100", "name": "Faisal"}).json()["data"]

    client.cookies.clear()
    _register_company(
        client,
        company_name="Rival Logistics",
        unified_number="7009999999",
        email="ops@rival.example.com",
        phone="966540000009",
    )

    response = client.patch(f"/api/v1/company/drivers/{driver['id']}", json={"name": "Hijacked"})
    assert response.status_code == 404
    assert response.json()["message"] == "Driver not found"
