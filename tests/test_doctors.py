from tests.conftest import login
from tests.utils import appointment_payload, doctor_payload, next_weekday

def _second_doctor(client, admin_headers, department_id, **overrides):
    payload = doctor_payload(
        department_id,
        name="Dr. Brian Mwangi",
        specialization="pediatrics",
        license_number="KMD99999",
        email="brian@jijuehospital.com",
        bio="Child health and development.",
        years_of_experience=3,
        consultation_fee=0,
        **overrides
    )
    response = client.post("/api/v1/doctors", json=payload, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()

class TestDoctorManagement:

    def test_create_doctor(self, client, doctor):
        assert doctor["doctor_code"].startswith("DOC")
        assert doctor["user_id"] is not None
        assert doctor["specialty_display"] == "Cardiology"
        assert doctor["experience_level"] == "Consultant"
        assert doctor["formatted_fee"] == "KES 2,500"
        assert doctor["working_days"] == ["monday", "tuesday", "wednesday", "thursday", "friday"]
        assert doctor["start_time"] == "09:00"
        assert doctor["slot_duration"] == 30
        assert doctor["rating_breakdown"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}

    def test_create_doctor_without_login(self, client, admin_headers, department):
        payload = doctor_payload(department["id"], email="nologin@jijuehospital.com", license_number="NOLOG123")
        del payload["password"]
        response = client.post("/api/v1/doctors", json=payload, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["user_id"] is None

    def test_duplicate_license(self, client, admin_headers, department, doctor):
        payload = doctor_payload(department["id"], email="other@jijuehospital.com")
        response = client.post("/api/v1/doctors", json=payload, headers=admin_headers)
        assert response.status_code == 400

    def test_invalid_license_format(self, client, admin_headers, department):
        payload = doctor_payload(department["id"], license_number="ab-1")
        response = client.post("/api/v1/doctors", json=payload, headers=admin_headers)
        assert response.status_code == 422

    def test_license_is_uppercased(self, client, admin_headers, department):
        payload = doctor_payload(department["id"], license_number="kmd54321")
        response = client.post("/api/v1/doctors", json=payload, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["license_number"] == "KMD54321"

    def test_unknown_department(self, client, admin_headers):
        response = client.post("/api/v1/doctors", json=doctor_payload(9999), headers=admin_headers)
        assert response.status_code == 404

    def test_invalid_working_day(self, client, admin_headers, department):
        payload = doctor_payload(department["id"], working_days=["monday", "funday"])
        response = client.post("/api/v1/doctors", json=payload, headers=admin_headers)
        assert response.status_code == 422

    def test_create_requires_admin(self, client, patient_headers, department):
        response = client.post("/api/v1/doctors", json=doctor_payload(department["id"]), headers=patient_headers)
        assert response.status_code == 403

    def test_deactivate_doctor(self, client, admin_headers, doctor):
        response = client.delete(f"/api/v1/doctors/{doctor['id']}", headers=admin_headers)
        assert response.status_code == 200

        detail = client.get(f"/api/v1/doctors/{doctor['id']}").json()["doctor"]
        assert detail["status"] == "inactive"
        assert detail["is_available"] is False

        listing = client.get("/api/v1/doctors").json()
        assert listing["doctors"] == []

class TestDoctorUpdates:

    def test_doctor_updates_own_profile(self, client, doctor, doctor_headers):
        response = client.put(
            f"/api/v1/doctors/{doctor['id']}",
            json={"bio": "Interventional cardiologist.", "consultation_fee": 3000},
            headers=doctor_headers
        )
        assert response.status_code == 200
        assert response.json()["bio"] == "Interventional cardiologist."
        assert response.json()["formatted_fee"] == "KES 3,000"

    def test_doctor_cannot_verify_self(self, client, doctor, doctor_headers):
        response = client.put(f"/api/v1/doctors/{doctor['id']}", json={"verified": False}, headers=doctor_headers)
        assert response.status_code == 403

    def test_doctor_cannot_edit_colleague(self, client, admin_headers, department, doctor):
        colleague = _second_doctor(client, admin_headers, department["id"])
        headers = login(client, "brian@jijuehospital.com", "Doctor123")

        response = client.put(f"/api/v1/doctors/{doctor['id']}", json={"bio": "Hacked"}, headers=headers)
        assert response.status_code == 403

        response = client.put(f"/api/v1/doctors/{colleague['id']}", json={"bio": "Paediatrician"}, headers=headers)
        assert response.status_code == 200

    def test_admin_changes_status(self, client, admin_headers, doctor):
        response = client.put(f"/api/v1/doctors/{doctor['id']}", json={"status": "on-leave"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "on-leave"

    def test_null_fields_are_ignored(self, client, admin_headers, doctor):
        response = client.put(
            f"/api/v1/doctors/{doctor['id']}",
            json={"is_available": None, "verified": None, "name": None, "consultation_fee": 3000},
            headers=admin_headers
        )
        assert response.status_code == 200

        data = response.json()
        assert data["is_available"] is True
        assert data["verified"] is True
        assert data["name"] == doctor["name"]
        assert data["consultation_fee"] == 3000

        listed = client.get("/api/v1/doctors")
        assert listed.status_code == 200
        assert [item["id"] for item in listed.json()["doctors"]] == [doctor["id"]]

    def test_update_checks_end_against_stored_start(self, client, admin_headers, doctor):
        response = client.put(
            f"/api/v1/doctors/{doctor['id']}",
            json={"end_time": "08:00"},
            headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "End time must be after start time"

        stored = client.get(f"/api/v1/doctors/{doctor['id']}").json()["doctor"]
        assert stored["end_time"] == "17:00"

    def test_update_keeps_break_inside_hours(self, client, admin_headers, doctor):
        response = client.put(
            f"/api/v1/doctors/{doctor['id']}",
            json={"end_time": "12:00"},
            headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Break must fall within working hours"

        response = client.put(
            f"/api/v1/doctors/{doctor['id']}",
            json={"end_time": "12:00", "break_start": "10:00", "break_end": "10:30"},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["end_time"] == "12:00"

    def test_add_qualification(self, client, doctor, doctor_headers):
        response = client.post(
            f"/api/v1/doctors/{doctor['id']}/qualifications",
            json={"degree": "MBChB", "institution": "University of Nairobi", "year": 2008},
            headers=doctor_headers
        )
        assert response.status_code == 200
        assert response.json()["qualifications"][-1]["degree"] == "MBChB"

    def test_qualification_year_in_future(self, client, doctor, doctor_headers):
        response = client.post(
            f"/api/v1/doctors/{doctor['id']}/qualifications",
            json={"degree": "MMed", "institution": "Aga Khan University", "year": 3000},
            headers=doctor_headers
        )
        assert response.status_code == 422

    def test_update_availability(self, client, doctor, doctor_headers):
        response = client.patch(
            f"/api/v1/doctors/{doctor['id']}/availability",
            json={"working_days": ["Monday", "Saturday"], "start_time": "08:00", "slot_duration": 60},
            headers=doctor_headers
        )
        assert response.status_code == 200

        data = response.json()
        assert data["working_days"] == ["monday", "saturday"]
        assert data["start_time"] == "08:00"
        assert data["slot_duration"] == 60

    def test_availability_end_before_start(self, client, doctor, doctor_headers):
        response = client.patch(
            f"/api/v1/doctors/{doctor['id']}/availability",
            json={"start_time": "17:00", "end_time": "09:00"},
            headers=doctor_headers
        )
        assert response.status_code == 422

        # Only one bound supplied; checked against the stored start time
        response = client.patch(
            f"/api/v1/doctors/{doctor['id']}/availability",
            json={"end_time": "08:00"},
            headers=doctor_headers
        )
        assert response.status_code == 400

    def test_availability_bad_slot_duration(self, client, doctor, doctor_headers):
        response = client.patch(
            f"/api/v1/doctors/{doctor['id']}/availability",
            json={"slot_duration": 25},
            headers=doctor_headers
        )
        assert response.status_code == 422

    def test_availability_null_times_keep_stored_hours(self, client, doctor, doctor_headers):
        response = client.patch(
            f"/api/v1/doctors/{doctor['id']}/availability",
            json={"start_time": None, "end_time": "16:00"},
            headers=doctor_headers
        )
        assert response.status_code == 200
        assert response.json()["start_time"] == "09:00"
        assert response.json()["end_time"] == "16:00"

    def test_availability_break_outside_hours(self, client, doctor, doctor_headers):
        response = client.patch(
            f"/api/v1/doctors/{doctor['id']}/availability",
            json={"break_start": "17:30", "break_end": "18:00"},
            headers=doctor_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Break must fall within working hours"

class TestDoctorQueries:

    def test_list_filters(self, client, admin_headers, department, doctor):
        _second_doctor(client, admin_headers, department["id"])

        response = client.get("/api/v1/doctors", params={"specialization": "pediatrics"})
        assert [item["name"] for item in response.json()["doctors"]] == ["Dr. Brian Mwangi"]

        response = client.get("/api/v1/doctors", params={"min_experience": 10})
        assert [item["name"] for item in response.json()["doctors"]] == ["Dr. Amina Otieno"]

        response = client.get("/api/v1/doctors", params={"search": "cardio"})
        assert [item["name"] for item in response.json()["doctors"]] == ["Dr. Amina Otieno"]

        response = client.get("/api/v1/doctors", params={"sort_by": "name", "order": "asc"})
        assert [item["name"] for item in response.json()["doctors"]] == ["Dr. Amina Otieno", "Dr. Brian Mwangi"]
        assert response.json()["pagination"]["total"] == 2

    def test_available_doctors_requires_verified(self, client, admin_headers, department, doctor):
        _second_doctor(client, admin_headers, department["id"], verified=False)

        response = client.get("/api/v1/doctors/available")
        assert [item["id"] for item in response.json()["doctors"]] == [doctor["id"]]

    def test_specialties(self, client, admin_headers, department, doctor):
        _second_doctor(client, admin_headers, department["id"])

        specialties = client.get("/api/v1/doctors/meta/specialties").json()["specialties"]
        assert {item["value"] for item in specialties} == {"cardiology", "pediatrics"}
        assert all(item["count"] == 1 for item in specialties)

    def test_stats_requires_admin(self, client, admin_headers, doctor, doctor_headers):
        assert client.get("/api/v1/doctors/meta/stats", headers=doctor_headers).status_code == 403

        stats = client.get("/api/v1/doctors/meta/stats", headers=admin_headers).json()
        assert stats["total"] == 1
        assert stats["verified"] == 1
        assert stats["by_specialization"] == {"cardiology": 1}

    def test_get_doctor(self, client, doctor):
        response = client.get(f"/api/v1/doctors/{doctor['id']}")
        assert response.status_code == 200
        assert response.json()["doctor"]["name"] == "Dr. Amina Otieno"
        assert response.json()["next_available"]

    def test_get_by_doctor_code(self, client, doctor):
        response = client.get(f"/api/v1/doctors/by-doctor-id/{doctor['doctor_code']}")
        assert response.status_code == 200
        assert response.json()["id"] == doctor["id"]

    def test_get_unknown_doctor(self, client):
        assert client.get("/api/v1/doctors/9999").status_code == 404
        assert client.get("/api/v1/doctors/by-doctor-id/DOC0000").status_code == 404

    def test_by_department(self, client, department, doctor):
        response = client.get(f"/api/v1/doctors/department/{department['id']}")
        assert [item["id"] for item in response.json()["doctors"]] == [doctor["id"]]

class TestDoctorAvailability:

    def test_slots_skip_break(self, client, doctor, monday):
        response = client.get(f"/api/v1/doctors/{doctor['id']}/availability", params={"date": monday.isoformat()})
        assert response.status_code == 200

        data = response.json()
        times = [slot["time"] for slot in data["slots"]]
        assert data["available"] is True
        assert times[0] == "09:00"
        assert times[-1] == "16:30"
        assert "13:00" not in times
        assert "13:30" not in times
        assert len(times) == 14
        assert data["slots"][0]["display"] == "9:00 AM"
        assert data["break_time"] == {"start": "13:00", "end": "14:00"}

    def test_booked_slot_removed(self, client, admin_headers, doctor, patient_code, monday):
        client.post(
            "/api/v1/appointments",
            json=appointment_payload(patient_code, doctor["id"], monday, time="09:00"),
            headers=admin_headers
        )

        data = client.get(f"/api/v1/doctors/{doctor['id']}/availability", params={"date": monday.isoformat()}).json()
        times = [slot["time"] for slot in data["slots"]]
        assert "09:00" not in times
        assert "09:30" in times
        assert len(times) == 13

    def test_no_slots_on_weekend(self, client, doctor):
        sunday = next_weekday(6)
        data = client.get(f"/api/v1/doctors/{doctor['id']}/availability", params={"date": sunday.isoformat()}).json()
        assert data["available"] is False
        assert data["slots"] == []

    def test_check_slot(self, client, admin_headers, doctor, patient_code, monday):
        url = f"/api/v1/doctors/{doctor['id']}/availability/check"

        response = client.get(url, params={"date": monday.isoformat(), "time": "10:00"})
        assert response.json()["available"] is True
        assert response.json()["display"] == "10:00 AM"

        response = client.get(url, params={"date": monday.isoformat(), "time": "13:15"})
        assert response.json()["available"] is False
        assert response.json()["reason"] == "During break time"

        client.post(
            "/api/v1/appointments",
            json=appointment_payload(patient_code, doctor["id"], monday, time="10:00"),
            headers=admin_headers
        )
        response = client.get(url, params={"date": monday.isoformat(), "time": "10:00"})
        assert response.json()["available"] is False
        assert response.json()["reason"] == "Time slot already booked"

    def test_check_slot_bad_time(self, client, doctor, monday):
        response = client.get(
            f"/api/v1/doctors/{doctor['id']}/availability/check",
            params={"date": monday.isoformat(), "time": "25:00"}
        )
        assert response.status_code == 422

class TestDoctorRating:

    def test_rating_average(self, client, doctor, patient_headers):
        url = f"/api/v1/doctors/{doctor['id']}/rating"
        client.post(url, json={"rating": 5}, headers=patient_headers)
        response = client.post(url, json={"rating": 4}, headers=patient_headers)
        assert response.status_code == 200

        rating = response.json()["rating"]
        assert rating["average"] == 4.5
        assert rating["total_reviews"] == 2
        assert rating["breakdown"]["5"] == 1
        assert rating["breakdown"]["4"] == 1

    def test_rating_out_of_range(self, client, doctor, patient_headers):
        response = client.post(f"/api/v1/doctors/{doctor['id']}/rating", json={"rating": 6}, headers=patient_headers)
        assert response.status_code == 400

    def test_rating_requires_login(self, client, doctor):
        response = client.post(f"/api/v1/doctors/{doctor['id']}/rating", json={"rating": 5})
        assert response.status_code == 401
