import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app

ADMIN = {"name": "Admin", "email": "admin@closetcater.com", "password": "admin123"}
CUSTOMER = {"name": "Jane", "email": "jane@closetcater.com", "password": "jane1234"}


@pytest.fixture
def db(monkeypatch):
    mock_db = mongomock.MongoClient()["closet_cater_test"]
    database.ensure_indexes(mock_db)
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin(client):
    response = client.post("/api/auth/register", json=ADMIN)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def customer(client):
    response = client.post("/api/users", json=CUSTOMER)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {admin['token']}"}


@pytest.fixture
def customer_headers(customer):
    return {"Authorization": f"Bearer {customer['token']}"}


@pytest.fixture
def product(client, admin_headers):
    body = {
        "name": "Linen Blazer",
        "price": 89.5,
        "description": "Unlined summer blazer",
        "image": "/images/blazer.jpg",
        "brand": "Closet",
        "category": "Outerwear",
        "countInStock": 4,
    }
    response = client.post("/api/products", json=body, headers=admin_headers)
    assert response.status_code == 201
    return response.json()
