"""Pytest fixtures: an in-memory catalog for one catering event."""
import os
from datetime import datetime, timedelta

import pytest

# Settings are required at import time by app.main
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB", "catering_test")

from app.domain.services.stock_svc import StockController  # noqa: E402
from tests.fakes import EVENT, NOW, FakeClient, FakeDatabase, FakeRedis  # noqa: E402


def _window(days_before: int = 1, days_after: int = 1):
    return {"startDate": NOW - timedelta(days=days_before), "endDate": NOW + timedelta(days=days_after)}


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def db() -> FakeDatabase:
    db = FakeDatabase()

    db["consumptiontypes"].seed(
        {"_id": "ct-table", "name": "En mesa", "eventId": EVENT, "isActive": True},
        {"_id": "ct-takeaway", "name": "Para llevar", "eventId": EVENT, "isActive": True},
    )

    db["products"].seed(
        {
            "_id": "p-paella", "name": "Paella", "eventId": EVENT, "isActive": True,
            "stock": 20, "nominalPrice": "10.00",
            "supplement": {"ct-table": 200},
            "promotions": ["promo-3x2"],
        },
        {
            "_id": "p-sangria", "name": "Sangria", "eventId": EVENT, "isActive": True,
            "stock": 10, "nominalPrice": "4.50",
            "supplement": {"ct-table": 50, "ct-takeaway": -25},
            "promotions": ["promo-expired"],
        },
        {
            "_id": "p-cake", "name": "Tarta", "eventId": EVENT, "isActive": True,
            "stock": 5, "nominalPrice": "3.00",
            "promotions": ["promo-combo"],
        },
        {
            "_id": "p-foreign", "name": "Horchata", "eventId": "ev-other", "isActive": True,
            "stock": 50, "nominalPrice": "2.00",
        },
    )

    db["promotions"].seed(
        {
            "_id": "promo-3x2", "name": "3x2 paella", "eventId": EVENT, "isActive": True,
            "rule": "XForY", "conditions": {"_rule": "XForY", "buyQty": 3, "payQty": 2},
            "priority": 1, "isCumulative": False, **_window(),
        },
        {
            "_id": "promo-expired", "name": "Sangria half price", "eventId": EVENT, "isActive": True,
            "rule": "PercentageDiscount", "conditions": {"_rule": "PercentageDiscount", "percent": 50},
            "priority": 5, "isCumulative": False,
            "startDate": NOW - timedelta(days=10), "endDate": NOW - timedelta(days=1),
        },
        {
            "_id": "promo-combo", "name": "Paella + tarta", "eventId": EVENT, "isActive": True,
            "rule": "ComboDiscount",
            "conditions": {"_rule": "ComboDiscount", "requiredProductIds": ["p-paella", "p-cake"], "percent": 10},
            "priority": 0, "isCumulative": True, **_window(),
        },
    )

    # created up front so transaction rollback covers them
    db["reservations"]
    return db


@pytest.fixture
def client(db) -> FakeClient:
    return FakeClient(db, supports_transactions=True)


@pytest.fixture
def stock(db, client) -> StockController:
    return StockController(db, client, supports_transactions=True)


@pytest.fixture
def standalone_stock(db) -> StockController:
    return StockController(db, FakeClient(db, supports_transactions=False), supports_transactions=False)


@pytest.fixture
def redis() -> FakeRedis:
    return FakeRedis()