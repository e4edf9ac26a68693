from datetime import datetime

from hospital.core.config import settings
from hospital.schemas.contact import ContactInfoData
from hospital.services.contact_service import chat_available, chat_reply, default_contact_info

def _form(**overrides):
    data = {
        "name": "Mary Achieng",
        "email": "mary@example.com",
        "subject": "Visiting hours",
        "message": "When can I visit the maternity ward?",
    }
    data.update(overrides)
    return data

class TestContactInfo:

    def test_defaults_when_nothing_stored(self, client):
        response = client.get("/api/v1/contact/info")
        assert response.status_code == 200

        data = response.json()
        assert data["phone"] == settings.HOSPITAL_PHONE
        assert data["email"] == settings.HOSPITAL_EMAIL
        assert data["operating_hours"] == settings.HOSPITAL_HOURS

    def test_admin_updates_info(self, client, admin_headers):
        response = client.put(
            "/api/v1/contact/info",
            json={"phone": "+254711111111"},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["phone"] == "+254711111111"
        assert response.json()["email"] == settings.HOSPITAL_EMAIL

        response = client.put(
            "/api/v1/contact/info",
            json={"address": "1 Hospital Road, Kisumu"},
            headers=admin_headers
        )
        assert response.json()["phone"] == "+254711111111"

        stored = client.get("/api/v1/contact/info").json()
        assert stored["address"] == "1 Hospital Road, Kisumu"

    def test_update_requires_admin(self, client, staff_headers):
        receptionist = staff_headers("receptionist")
        response = client.put("/api/v1/contact/info", json={"phone": "1"}, headers=receptionist)
        assert response.status_code == 403

class TestSubmissions:

    def test_submit(self, client):
        response = client.post("/api/v1/contact/submit", json=_form())
        assert response.status_code == 201
        assert response.json()["submission_id"] > 0

    def test_submit_missing_subject(self, client):
        data = _form()
        del data["subject"]
        response = client.post("/api/v1/contact/submit", json=data)
        assert response.status_code == 422

    def test_submit_invalid_email(self, client):
        response = client.post("/api/v1/contact/submit", json=_form(email="not-an-email"))
        assert response.status_code == 422

    def test_staff_reads_submissions(self, client, staff_headers):
        client.post("/api/v1/contact/submit", json=_form())
        receptionist = staff_headers("receptionist")

        response = client.get("/api/v1/contact/submissions", headers=receptionist)
        assert response.status_code == 200

        submission = response.json()["submissions"][0]
        assert submission["status"] == "new"
        assert submission["source"] == "website"
        assert submission["ip_address"] == "testclient"

    def test_submissions_require_staff(self, client, patient_headers):
        assert client.get("/api/v1/contact/submissions").status_code == 401
        assert client.get("/api/v1/contact/submissions", headers=patient_headers).status_code == 403

    def test_mark_submission(self, client, admin_headers):
        submission_id = client.post("/api/v1/contact/submit", json=_form()).json()["submission_id"]

        response = client.patch(
            f"/api/v1/contact/submissions/{submission_id}",
            json={"status": "replied"},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "replied"

        new = client.get("/api/v1/contact/submissions", params={"status": "new"}, headers=admin_headers)
        assert new.json()["submissions"] == []

    def test_mark_unknown_submission(self, client, admin_headers):
        response = client.patch(
            "/api/v1/contact/submissions/9999",
            json={"status": "read"},
            headers=admin_headers
        )
        assert response.status_code == 404

class TestChat:

    def test_chat_status_endpoint(self, client):
        response = client.get("/api/v1/contact/chat/status")
        assert response.status_code == 200
        assert response.json()["chat_available"] == chat_available(datetime.now())

    def test_chat_window(self):
        assert chat_available(datetime(2024, 1, 1, 8, 0)) is True
        assert chat_available(datetime(2024, 1, 1, 17, 59)) is True
        assert chat_available(datetime(2024, 1, 1, 18, 0)) is False
        assert chat_available(datetime(2024, 1, 1, 7, 59)) is False

    def test_chat_message(self, client):
        response = client.post("/api/v1/contact/chat/message", json={"message": "Where is your address?"})
        assert response.status_code == 200
        assert settings.HOSPITAL_ADDRESS in response.json()["response"]

    def test_chat_rules_in_order(self):
        info = default_contact_info()

        urgent_booking = chat_reply("I need to BOOK an appointment, it's urgent", info)
        assert info.emergency_phone in urgent_booking
        assert "emergencies" in urgent_booking

        assert "book an appointment" in chat_reply("How do I book?", info)
        assert info.operating_hours in chat_reply("When are you open?", info)
        assert info.address in chat_reply("What is your location?", info)
        assert chat_reply("Hello there", info) == (
            "Thank you for your message. Our support team will get back to you soon."
        )

    def test_chat_uses_stored_info(self):
        info = ContactInfoData(
            phone="+254722000000",
            email="desk@example.com",
            address="Kisumu",
            operating_hours="24/7",
            emergency_phone="999"
        )
        assert "999" in chat_reply("emergency!", info)
