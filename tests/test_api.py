from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.main import app
from tests.fakes import EVENT, stock_of


@pytest.fixture
def api(db, stock):
    # lifespan is not entered: state is wired to the in-memory store instead
    app.state.mongo = SimpleNamespace(db=db, client=stock.client, supports_transactions=True)
    app.state.stock = stock
    app.state.redis = None
    yield TestClient(app)
    for name in ("mongo", "stock", "redis"):
        delattr(app.state, name)


def reservation_body(**overrides):
    body = {
        "eventId": EVENT,
        "reserver": "Falla Na Jordana",
        "order": {"p-cake": 2},
        "consumptionTypeId": "ct-table",
        "paymentMethodId": "pm-cash",
    }
    body.update(overrides)
    return body


def test_health(api):
    r = api.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["checks"]["mongodb"] == "ok"
    assert body["checks"]["redis"] == "skipped"
    assert body["checks"]["transactions"] is True


def test_expense_vat_from_base(api):
    r = api.post("/expenses/vat", json={"basePrice": "100.00", "vatPct": 21})
    assert r.status_code == 200
    assert r.json() == {"basePrice": "100.00", "vatPct": 21, "vatAmount": "21.00", "netPrice": "121.00"}


def test_expense_vat_errors(api):
    r = api.post("/expenses/vat", json={"basePrice": "100.00", "vatPct": 7})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_VAT_RATE"

    r = api.post("/expenses/vat", json={"basePrice": "100.00", "vatAmount": "20.00", "netPrice": "120.00", "vatPct": 21})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "INCOHERENT_VAT"
    assert err["expected"]["netPrice"] == "121.00"

    r = api.post("/expenses/vat", json={"vatAmount": "2.10", "vatPct": 21})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_VAT_INPUT"

    r = api.post("/expenses/vat", json={"basePrice": "1,50", "vatPct": 21})
    assert r.status_code == 422


def test_quote(api, db):
    r = api.post("/reservations/quote", json={"order": {"p-cake": 2}, "consumptionTypeId": "ct-table"})
    assert r.status_code == 200
    body = r.json()
    assert body["totalAmount"] == "6.00"
    assert body["hasPromoApplied"] is False
    assert body["appliedPromotionsSnapshot"][0]["productId"] == "p-cake"
    assert stock_of(db, "p-cake") == 5

    r = api.post("/reservations/quote", json={"order": {"p-cake": 2}, "consumptionTypeId": "ct-vip"})
    assert r.status_code == 404


def test_reservation_lifecycle(api, db):
    r = api.post("/reservations", json=reservation_body(totalAmount="0.01"))
    assert r.status_code == 201
    created = r.json()
    rid = created["id"]
    assert created["totalAmount"] == "6.00"
    assert stock_of(db, "p-cake") == 3

    r = api.patch(f"/reservations/{rid}", json={"isPaid": True})
    assert r.status_code == 200
    assert r.json()["isPaid"] is True
    assert r.json()["appliedPromotionsSnapshot"][0]["subtotal"] == "6.00"

    r = api.patch(f"/reservations/{rid}", json={"order": {"p-cake": 1}})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "PRICE_FROZEN"

    r = api.get(f"/reservations/{rid}/invoice", params={"vat_pct": 10})
    assert r.status_code == 200
    invoice = r.json()
    assert invoice["totalFinal"] == "6.00"
    assert invoice["vat"] == {"basePrice": "5.45", "vatPct": 10, "vatAmount": "0.55", "netPrice": "6.00"}

    r = api.delete(f"/reservations/{rid}")
    assert r.status_code == 204
    assert stock_of(db, "p-cake") == 5

    r = api.delete(f"/reservations/{rid}")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


def test_reservation_errors(api):
    r = api.post("/reservations", json=reservation_body(order={"p-cake": 50}))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "INSUFFICIENT_STOCK"

    r = api.post("/reservations", json=reservation_body(order={"p-foreign": 1}))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"

    r = api.post("/reservations", json=reservation_body(order={"p-ghost": 1}))
    assert r.status_code == 404

    r = api.post("/reservations", json=reservation_body(order={}))
    assert r.status_code == 422

    r = api.get("/reservations/64b7f0c2a1b2c3d4e5f60718/invoice")
    assert r.status_code == 404
