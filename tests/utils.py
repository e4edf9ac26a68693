from datetime import date, timedelta

def next_weekday(weekday: int) -> date:
    """Next date strictly after today falling on `weekday` (0 = Monday)."""
    today = date.today()
    days_ahead = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead)

def patient_payload(**overrides) -> dict:
    data = {
        "first_name": "Jane",
        "last_name": "Wanjiru",
        "date_of_birth": "1990-05-15",
        "gender": "female",
        "id_number": "12345678",
        "email": "jane@example.com",
        "phone": "+254700000001",
        "address": "12 Moi Avenue",
        "city": "Nairobi",
        "blood_type": "o+",
        "password": "Secret123",
    }
    data.update(overrides)
    return data

def doctor_payload(department_id: int, **overrides) -> dict:
    data = {
        "name": "Dr. Amina Otieno",
        "specialization": "cardiology",
        "department_id": department_id,
        "license_number": "KMD12345",
        "years_of_experience": 12,
        "bio": "Consultant cardiologist.",
        "consultation_fee": 2500,
        "email": "amina@jijuehospital.com",
        "phone": "+254700000100",
        "verified": True,
        "password": "Doctor123",
    }
    data.update(overrides)
    return data

def department_payload(**overrides) -> dict:
    data = {
        "name": "Cardiology",
        "description": "Heart and blood vessel care",
        "floor": "First Floor",
        "emergency": True,
    }
    data.update(overrides)
    return data

def appointment_payload(patient_code: str, doctor_id: int, on_date: date, time: str = "10:00", **overrides) -> dict:
    data = {
        "patient_code": patient_code,
        "doctor_id": doctor_id,
        "appointment_date": on_date.isoformat(),
        "appointment_time": time,
        "duration": 30,
        "reason": "Chest pain",
    }
    data.update(overrides)
    return data

def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
