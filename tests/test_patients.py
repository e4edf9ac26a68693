from datetime import date, timedelta

from tests.utils import appointment_payload, patient_payload

def _walk_in(**overrides):
    data = patient_payload(email="walkin@example.com", id_number="55555555", **overrides)
    del data["password"]
    return data

class TestPatientAdministration:

    def test_create_patient(self, client, admin_headers):
        response = client.post(
            "/api/v1/patients",
            json=_walk_in(
                allergies_text="Penicillin, Peanuts",
                conditions_text="Asthma",
                medications_text="Salbutamol"
            ),
            headers=admin_headers
        )
        assert response.status_code == 201

        data = response.json()
        assert data["patient_code"].startswith("PAT")
        assert data["blood_type"] == "O+"
        assert data["status"] == "active"
        assert [item["allergen"] for item in data["allergies"]] == ["Penicillin", "Peanuts"]
        assert data["active_conditions"][0]["condition"] == "Asthma"
        assert data["current_medications"][0]["name"] == "Salbutamol"
        assert data["emergency_contact_name"] == "Not provided"

    def test_create_patient_unknown_blood_type(self, client, admin_headers):
        response = client.post("/api/v1/patients", json=_walk_in(blood_type="Z"), headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["blood_type"] == "Unknown"

    def test_create_patient_future_birth_date(self, client, admin_headers):
        tomorrow = (date.today() + timedelta(days=1)).isoformat()
        response = client.post("/api/v1/patients", json=_walk_in(date_of_birth=tomorrow), headers=admin_headers)
        assert response.status_code == 422

    def test_create_patient_duplicate(self, client, admin_headers):
        client.post("/api/v1/patients", json=_walk_in(), headers=admin_headers)
        response = client.post("/api/v1/patients", json=_walk_in(), headers=admin_headers)
        assert response.status_code == 400

    def test_create_patient_requires_staff(self, client, patient_headers):
        response = client.post("/api/v1/patients", json=_walk_in(), headers=patient_headers)
        assert response.status_code == 403

    def test_list_patients(self, client, admin_headers, registered_patient, other_patient):
        response = client.get("/api/v1/patients", headers=admin_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["pagination"]["total"] == 2
        assert len(data["patients"]) == 2

    def test_list_patients_search(self, client, admin_headers, registered_patient, other_patient):
        response = client.get("/api/v1/patients", params={"search": "kamau"}, headers=admin_headers)
        assert response.status_code == 200
        assert [item["last_name"] for item in response.json()["patients"]] == ["Kamau"]

    def test_list_patients_pagination(self, client, admin_headers, registered_patient, other_patient):
        response = client.get("/api/v1/patients", params={"page": 2, "limit": 1}, headers=admin_headers)
        data = response.json()
        assert len(data["patients"]) == 1
        assert data["pagination"]["pages"] == 2

    def test_list_patients_forbidden_for_patients(self, client, patient_headers):
        response = client.get("/api/v1/patients", headers=patient_headers)
        assert response.status_code == 403

    def test_delete_patient(self, client, admin_headers, patient_code):
        response = client.delete(f"/api/v1/patients/{patient_code}", headers=admin_headers)
        assert response.status_code == 200

        response = client.get(f"/api/v1/patients/{patient_code}", headers=admin_headers)
        assert response.status_code == 404

    def test_delete_patient_requires_admin(self, client, staff_headers, patient_code):
        nurse = staff_headers("nurse")
        response = client.delete(f"/api/v1/patients/{patient_code}", headers=nurse)
        assert response.status_code == 403

    def test_unknown_patient(self, client, admin_headers):
        response = client.get("/api/v1/patients/PAT000000000", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Patient not found"

class TestPatientAccess:

    def test_patient_reads_own_record(self, client, patient_headers, patient_code):
        response = client.get(f"/api/v1/patients/{patient_code}", headers=patient_headers)
        assert response.status_code == 200
        assert response.json()["age"] >= 18
        assert response.json()["is_minor"] is False

    def test_patient_cannot_read_other_record(self, client, patient_headers, other_patient):
        other_code = other_patient["patient"]["patient_code"]
        response = client.get(f"/api/v1/patients/{other_code}", headers=patient_headers)
        assert response.status_code == 403

    def test_patient_cannot_change_own_status(self, client, patient_headers, patient_code):
        response = client.put(
            f"/api/v1/patients/{patient_code}",
            json={"status": "suspended", "occupation": "Engineer"},
            headers=patient_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "active"
        assert response.json()["occupation"] == "Engineer"

    def test_staff_changes_status(self, client, staff_headers, patient_code):
        receptionist = staff_headers("receptionist")
        response = client.put(
            f"/api/v1/patients/{patient_code}",
            json={"status": "suspended"},
            headers=receptionist
        )
        assert response.status_code == 200
        assert response.json()["status"] == "suspended"

    def test_null_fields_are_ignored(self, client, admin_headers, patient_code):
        response = client.put(
            f"/api/v1/patients/{patient_code}",
            json={"first_name": None, "date_of_birth": None, "city": "Nakuru"},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["first_name"] == "Jane"
        assert response.json()["date_of_birth"] is not None
        assert response.json()["city"] == "Nakuru"

class TestPatientDashboard:

    def test_profile_update(self, client, patient_headers, patient_code):
        response = client.put(
            f"/api/v1/patients/{patient_code}/profile",
            json={"city": "Mombasa", "emergency_contact_name": "John Wanjiru"},
            headers=patient_headers
        )
        assert response.status_code == 200
        assert response.json()["city"] == "Mombasa"
        assert response.json()["emergency_contact_name"] == "John Wanjiru"

        profile = client.get(f"/api/v1/patients/{patient_code}/profile", headers=patient_headers)
        assert profile.json()["city"] == "Mombasa"

    def test_overview_empty(self, client, patient_headers, patient_code):
        response = client.get(f"/api/v1/patients/{patient_code}/overview", headers=patient_headers)
        assert response.status_code == 200
        assert response.json() == {
            "upcoming_appointments": 0,
            "pending_results": 0,
            "active_prescriptions": 0,
            "recent_appointments": []
        }

    def test_overview_counts(self, client, patient_headers, patient_code, doctor, monday):
        booking = appointment_payload(patient_code, doctor["id"], monday)
        del booking["patient_code"]
        client.post(f"/api/v1/patients/{patient_code}/appointments/book", json=booking, headers=patient_headers)
        client.post(f"/api/v1/patients/{patient_code}/lab-requests", json={"test_type": "Full blood count"}, headers=patient_headers)

        data = client.get(f"/api/v1/patients/{patient_code}/overview", headers=patient_headers).json()
        assert data["upcoming_appointments"] == 1
        assert data["pending_results"] == 1
        assert data["recent_appointments"][0]["doctor"]["name"] == "Dr. Amina Otieno"
        assert data["recent_appointments"][0]["doctor"]["specialization"] == "Cardiology"

    def test_health_metrics_placeholders(self, client, patient_headers, patient_code):
        response = client.get(f"/api/v1/patients/{patient_code}/health-metrics", headers=patient_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["blood_pressure"] == "--/--"
        assert data["heart_rate"] == "--"
        assert data["bmi"] == "--"
        assert data["recorded_on"] is None

    def test_book_appointment(self, client, patient_headers, patient_code, doctor, monday):
        booking = appointment_payload(patient_code, doctor["id"], monday, time="11:00")
        del booking["patient_code"]

        response = client.post(f"/api/v1/patients/{patient_code}/appointments/book", json=booking, headers=patient_headers)
        assert response.status_code == 201
        assert response.json()["status"] == "scheduled"
        assert response.json()["patient"]["patient_code"] == patient_code

        response = client.post(f"/api/v1/patients/{patient_code}/appointments/book", json=booking, headers=patient_headers)
        assert response.status_code == 409

    def test_appointments_status_filter(self, client, patient_headers, patient_code, doctor, monday):
        booking = appointment_payload(patient_code, doctor["id"], monday)
        del booking["patient_code"]
        client.post(f"/api/v1/patients/{patient_code}/appointments/book", json=booking, headers=patient_headers)

        response = client.get(
            f"/api/v1/patients/{patient_code}/appointments",
            params={"status": "scheduled,confirmed"},
            headers=patient_headers
        )
        assert len(response.json()["appointments"]) == 1

        response = client.get(
            f"/api/v1/patients/{patient_code}/appointments",
            params={"status": "completed"},
            headers=patient_headers
        )
        assert response.json()["appointments"] == []

    def test_appointments_unknown_status(self, client, patient_headers, patient_code):
        response = client.get(
            f"/api/v1/patients/{patient_code}/appointments",
            params={"status": "scheduled,sleeping"},
            headers=patient_headers
        )
        assert response.status_code == 400

    def test_lab_request(self, client, patient_headers, patient_code):
        response = client.post(
            f"/api/v1/patients/{patient_code}/lab-requests",
            json={"test_type": "Lipid panel", "urgency": "urgent"},
            headers=patient_headers
        )
        assert response.status_code == 201
        assert response.json()["status"] == "requested"
        assert response.json()["urgency"] == "urgent"

        results = client.get(f"/api/v1/patients/{patient_code}/lab-results", headers=patient_headers)
        assert [item["test_type"] for item in results.json()["results"]] == ["Lipid panel"]

    def test_prescription_request(self, client, patient_headers, patient_code):
        response = client.post(
            f"/api/v1/patients/{patient_code}/prescriptions/request",
            json={"medication": "Metformin", "dosage": "500mg"},
            headers=patient_headers
        )
        assert response.status_code == 201
        assert response.json()["status"] == "requested"

        listing = client.get(f"/api/v1/patients/{patient_code}/prescriptions", headers=patient_headers)
        assert listing.json()["prescriptions"][0]["medication"] == "Metformin"

    def test_download_records(self, client, patient_headers, patient_code):
        response = client.get(f"/api/v1/patients/{patient_code}/records/download", headers=patient_headers)
        assert response.status_code == 200

        bundle = response.json()["data"]
        assert bundle["patient"]["patient_code"] == patient_code
        assert bundle["patient"]["name"] == "Jane Wanjiru"
        assert bundle["medical_records"] == []
        assert bundle["appointments"] == []

class TestRefills:

    def _issue(self, client, doctor_headers, patient_code, refills):
        response = client.post(
            "/api/v1/prescriptions",
            json={"patient_code": patient_code, "medication": "Amlodipine", "refills_remaining": refills},
            headers=doctor_headers
        )
        assert response.status_code == 201
        return response.json()

    def test_refill_by_medication_name(self, client, doctor_headers, patient_headers, patient_code):
        self._issue(client, doctor_headers, patient_code, refills=2)

        response = client.post(
            f"/api/v1/patients/{patient_code}/prescriptions/refill",
            json={"medication": "amlodipine"},
            headers=patient_headers
        )
        assert response.status_code == 200

        data = response.json()
        assert data["refills_remaining"] == 1
        assert data["refills_requested"] == 1
        assert data["status"] == "refill-requested"
        assert data["last_refill_date"] is not None

    def test_refill_by_id(self, client, doctor_headers, patient_headers, patient_code):
        prescription = self._issue(client, doctor_headers, patient_code, refills=1)

        response = client.post(
            f"/api/v1/patients/{patient_code}/prescriptions/refill",
            json={"prescription_id": prescription["id"]},
            headers=patient_headers
        )
        assert response.status_code == 200
        assert response.json()["refills_remaining"] == 0

    def test_refill_none_remaining(self, client, doctor_headers, patient_headers, patient_code):
        self._issue(client, doctor_headers, patient_code, refills=0)

        response = client.post(
            f"/api/v1/patients/{patient_code}/prescriptions/refill",
            json={"medication": "Amlodipine"},
            headers=patient_headers
        )
        assert response.status_code == 400

    def test_refill_unknown_prescription(self, client, patient_headers, patient_code):
        response = client.post(
            f"/api/v1/patients/{patient_code}/prescriptions/refill",
            json={"medication": "Aspirin"},
            headers=patient_headers
        )
        assert response.status_code == 404

    def test_refill_needs_identifier(self, client, patient_headers, patient_code):
        response = client.post(
            f"/api/v1/patients/{patient_code}/prescriptions/refill",
            json={},
            headers=patient_headers
        )
        assert response.status_code == 422
