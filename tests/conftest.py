import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import create_access_token
from database import Database
from main import create_app


class FakeGateway:
    def __init__(self):
        self.prices = []

    def create_card_intent(self, price) -> str:
        self.prices.append(price)
        return "pi_test_secret_123"


@pytest.fixture
def database():
    db = Database(mongomock.MongoClient(), "sportsDb")
    db.ensure_indexes()
    return db


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(database, gateway):
    # No context manager: the startup hook would try to ping a real server.
    return TestClient(create_app(database=database, gateway=gateway))


@pytest.fixture
def auth_header():
    def _header(email: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token({'email': email})}"}

    return _header


@pytest.fixture
def admin(database, auth_header):
    database.users.insert({"email": "admin@sportsplus.com", "role": "admin"})
    return auth_header("admin@sportsplus.com")


@pytest.fixture
def make_class(database):
    def _make(**overrides) -> str:
        doc = {
            "name": "Junior Football",
            "email": "coach@sportsplus.com",
            "instructor": "Coach Carter",
            "price": 50.0,
            "seats": 10,
            "student": 5,
            "status": "approved",
            "feedback": [],
        }
        doc.update(overrides)
        return database.classes.insert(doc)

    return _make
