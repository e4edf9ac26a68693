import os

os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hospital.main import app
from hospital.core.database import Base, get_db, get_redis
from hospital.core.security import UserRole, get_password_hash
from hospital.models.user import User

from tests.utils import bearer, department_payload, doctor_payload, next_weekday, patient_payload

# One in-memory database shared by every connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

class FakeRedis:
    """The handful of redis commands the rate limiter uses, kept in a dict."""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = str(value)

    def incr(self, key):
        self.store[key] = str(int(self.store.get(key, 0)) + 1)
        return int(self.store[key])

ADMIN_EMAIL = "admin@jijuehospital.com"
ADMIN_PASSWORD = "Admin12345"

def create_user(email: str, password: str, role: UserRole) -> User:
    db = TestingSessionLocal()
    try:
        user = User(
            email=email,
            password_hash=get_password_hash(password),
            role=role,
            first_name="Test",
            last_name=role.value.title(),
            is_active=True
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    finally:
        db.close()

def login(client, email: str, password: str) -> dict:
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return bearer(response.json()["access_token"])

@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(test_db):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def fake_redis():
    return FakeRedis()

@pytest.fixture
def client(test_db, fake_redis):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()

@pytest.fixture
def admin_headers(client):
    create_user(ADMIN_EMAIL, ADMIN_PASSWORD, UserRole.ADMIN)
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)

@pytest.fixture
def staff_headers(client, admin_headers):
    """Factory: create a staff account with the given role and log it in."""
    def make(role: str, email: str = None, password: str = "Staff12345"):
        email = email or f"{role}@jijuehospital.com"
        response = client.post(
            "/api/v1/auth/register",
            json={"email": email, "password": password, "role": role},
            headers=admin_headers
        )
        assert response.status_code == 201, response.text
        return login(client, email, password)
    return make

@pytest.fixture
def department(client, admin_headers):
    response = client.post("/api/v1/departments", json=department_payload(), headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()

@pytest.fixture
def doctor(client, admin_headers, department):
    response = client.post("/api/v1/doctors", json=doctor_payload(department["id"]), headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()

@pytest.fixture
def doctor_headers(client, doctor):
    return login(client, "amina@jijuehospital.com", "Doctor123")

@pytest.fixture
def registered_patient(client):
    response = client.post("/api/v1/auth/patient/register", json=patient_payload())
    assert response.status_code == 201, response.text
    return response.json()

@pytest.fixture
def patient_code(registered_patient):
    return registered_patient["patient"]["patient_code"]

@pytest.fixture
def patient_headers(registered_patient):
    return bearer(registered_patient["access_token"])

@pytest.fixture
def other_patient(client):
    response = client.post(
        "/api/v1/auth/patient/register",
        json=patient_payload(
            first_name="Peter",
            last_name="Kamau",
            email="peter@example.com",
            id_number="87654321",
            gender="male"
        )
    )
    assert response.status_code == 201, response.text
    return response.json()

@pytest.fixture
def monday():
    return next_weekday(0)
