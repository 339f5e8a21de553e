import pytest
from fastapi.testclient import TestClient

from app.db import dynamo
from app.main import app

USER_ID = "user-1"
HEADERS = {"X-User-Id": USER_ID}

vehicles = [
    {"user_id": USER_ID, "_id": "car1", "name": "Taxi", "brand": "Toyota", "model": "Prius", "year": 2019},
    {"user_id": USER_ID, "id": "car2", "name": "Van"},
]
fuel_entries = [
    {"user_id": USER_ID, "id": "f1", "carId": "car1", "cost": 45, "mileage": 1000, "volume": 30, "volumeUnit": "liters", "currency": "USD", "date": "2023-01-05"},
    {"user_id": USER_ID, "id": "f2", "carId": "car1", "cost": 50, "mileage": 1500, "volume": 32, "volumeUnit": "liters", "currency": "USD", "date": "2023-02-05"},
    {"user_id": USER_ID, "id": "f3", "carId": "car2", "cost": 45, "mileage": 300, "volume": 18, "volumeUnit": "liters", "currency": "EUR", "date": "2023-02-07"},
]
expense_entries = [
    {"user_id": USER_ID, "id": "e1", "carId": "car1", "amount": 120, "currency": "USD", "date": "2023-01-15"},
]
income_entries = [
    {"user_id": USER_ID, "id": "i1", "carId": "car1", "amount": 400, "currency": "USD", "date": "2023-01-31"},
]


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def stored_records(monkeypatch):
    """Serve the sample collections instead of querying DynamoDB."""
    monkeypatch.setattr(dynamo, "get_vehicles", lambda user_id: list(vehicles))
    monkeypatch.setattr(dynamo, "get_fuel_entries", lambda user_id: list(fuel_entries))
    monkeypatch.setattr(dynamo, "get_expense_entries", lambda user_id: list(expense_entries))
    monkeypatch.setattr(dynamo, "get_income_entries", lambda user_id: list(income_entries))
