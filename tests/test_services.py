import pytest

def _service(**overrides):
    data = {
        "name": "Cardiac Screening",
        "category": "Cardiology",
        "description": "Full heart health check",
        "detailed_description": "ECG, echocardiogram and a consultant review.",
        "duration": "2 hours",
        "price": "KES 15,000",
        "features": ["ECG", "Echo"],
        "procedures": [{"step": 1, "title": "Registration"}],
    }
    data.update(overrides)
    return data

@pytest.fixture
def catalogue(client, admin_headers):
    created = []
    for payload in (
        _service(),
        _service(name="Antenatal Care", category="Maternity", description="Care through pregnancy"),
        _service(name="Echo Review", category="Cardiology", description="Follow-up echocardiogram"),
        _service(name="Retired Service", category="Archive", active=False),
    ):
        response = client.post("/api/v1/services", json=payload, headers=admin_headers)
        assert response.status_code == 201
        created.append(response.json())
    return created

class TestServiceCatalogue:

    def test_empty_catalogue(self, client):
        response = client.get("/api/v1/services")
        assert response.status_code == 200
        assert response.json() == {"count": 0, "services": []}

    def test_create_service(self, client, admin_headers):
        response = client.post("/api/v1/services", json=_service(), headers=admin_headers)
        assert response.status_code == 201

        data = response.json()
        assert data["name"] == "Cardiac Screening"
        assert data["insurance_covered"] is True
        assert data["procedures"][0]["title"] == "Registration"

    def test_create_requires_admin(self, client, patient_headers):
        response = client.post("/api/v1/services", json=_service(), headers=patient_headers)
        assert response.status_code == 403

    def test_list_sorted_and_active_only(self, client, catalogue):
        data = client.get("/api/v1/services").json()
        assert data["count"] == 3
        assert [item["name"] for item in data["services"]] == ["Antenatal Care", "Cardiac Screening", "Echo Review"]

    def test_filter_by_category(self, client, catalogue):
        data = client.get("/api/v1/services", params={"category": "cardiology"}).json()
        assert [item["name"] for item in data["services"]] == ["Cardiac Screening", "Echo Review"]

        data = client.get("/api/v1/services", params={"category": "all"}).json()
        assert data["count"] == 3

    def test_search(self, client, catalogue):
        data = client.get("/api/v1/services", params={"search": "pregnancy"}).json()
        assert [item["name"] for item in data["services"]] == ["Antenatal Care"]

    def test_categories(self, client, catalogue):
        response = client.get("/api/v1/services/categories")
        assert response.json()["categories"] == ["Cardiology", "Maternity"]

    def test_get_service(self, client, catalogue):
        service_id = catalogue[0]["id"]
        response = client.get(f"/api/v1/services/{service_id}")
        assert response.status_code == 200
        assert response.json()["name"] == "Cardiac Screening"

    def test_inactive_service_hidden(self, client, catalogue):
        response = client.get(f"/api/v1/services/{catalogue[3]['id']}")
        assert response.status_code == 404
        assert response.json()["message"] == "Service not found"
