"""tests/conftest.py – shared fixtures: in-memory store, services, HTTP client."""
import os

# Keep bcrypt cheap under test; read by config at import time
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import generate_tokens
from database import Store
from main import build_services, create_app
from schemas import FoodCreate, MenuCreate, OrderCreate, TableCreate


def as_utc(value) -> datetime:
    """Parse/normalize a stored or serialized timestamp to an aware UTC datetime."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@pytest.fixture
def store() -> Store:
    return Store(mongomock.MongoClient(), "restaurant_test")


@pytest.fixture
def services(store):
    return build_services(store)


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


@pytest.fixture
def auth_headers() -> dict:
    token, _ = generate_tokens("chef@example.com", "Gordon", "Ramsay", "uid-1")
    return {"token": token}


@pytest.fixture
def menu(services):
    return services.menus.create(MenuCreate(name="Lunch", category="Main"))


@pytest.fixture
def food(services, menu):
    return services.foods.create(
        FoodCreate(name="Burger", price=9.5, food_image="burger.png", menu_id=menu["menu_id"])
    )


@pytest.fixture
def table(services):
    return services.tables.create(TableCreate(number_of_guests=4, table_number=7))


@pytest.fixture
def order(services, table):
    return services.orders.create(OrderCreate(table_id=table["table_id"]))
