"""
Test suite for the Hospital Management API.

Integration tests drive the routers through FastAPI's TestClient against an
in-memory SQLite database; unit tests cover the scheduling arithmetic and the
derived model fields.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite://")
