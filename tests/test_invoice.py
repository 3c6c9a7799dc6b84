import json

import pytest

from app.core.errors import MissingReferencedEntity
from app.domain.models.reservation import ReservationCreate, ReservationPatch
from app.domain.services import reservation_svc
from app.domain.services.invoice_svc import generate_invoice_data, invoice_cache_key
from tests.fakes import EVENT


def new(**overrides):
    data = dict(
        event_id=EVENT,
        reserver="Falla Na Jordana",
        order={"p-paella": 3, "p-sangria": 2},
        consumption_type_id="ct-table",
        payment_method_id="pm-cash",
    )
    data.update(overrides)
    return ReservationCreate(**data)


@pytest.mark.asyncio
async def test_invoice_from_snapshot(db, stock, now):
    r = await reservation_svc.create_reservation(db, stock, new(is_paid=True), now=now)
    # catalog changes after the freeze do not leak into the breakdown
    db["products"].raw("p-paella")["nominalPrice"] = "50.00"

    invoice = await generate_invoice_data(db, r.id)
    assert invoice.reservation.id == r.id
    assert invoice.total_final == r.total_amount == "36.01"
    assert invoice.vat is None
    assert invoice.linked_reservations is None

    paella, sangria = invoice.products
    assert paella.unit_price_original == "10.00"
    assert paella.unit_price_final == "8.67"
    assert paella.promotions_applied[0].promotion_name == "3x2 paella"
    assert [(s.concept, s.amount) for s in paella.supplements_applied] == [("Suplemento En mesa", "2.00")]
    assert sangria.subtotal == "10.00"
    assert sangria.promotions_applied == []


@pytest.mark.asyncio
async def test_invoice_recomputes_without_snapshot(db, stock, now):
    r = await reservation_svc.create_reservation(db, stock, new(order={"p-cake": 1}), now=now)
    invoice = await generate_invoice_data(db, r.id)
    [line] = invoice.products
    assert line.product_name == "Tarta"
    assert line.subtotal == "3.00"
    assert line.supplements_applied == []
    assert invoice.total_final == "3.00"


@pytest.mark.asyncio
async def test_invoice_recomputes_with_deactivated_product(db, stock, now):
    r = await reservation_svc.create_reservation(db, stock, new(order={"p-cake": 1}), now=now)
    db["products"].raw("p-cake")["isActive"] = False

    invoice = await generate_invoice_data(db, r.id)
    [line] = invoice.products
    assert line.product_name == "Tarta"
    assert invoice.total_final == "3.00"


@pytest.mark.asyncio
async def test_invoice_vat_breakdown_of_total(db, stock, now):
    r = await reservation_svc.create_reservation(db, stock, new(order={"p-paella": 3}, is_paid=True), now=now)
    invoice = await generate_invoice_data(db, r.id, vat_pct=10)
    assert invoice.vat.net_price == "26.01"
    assert invoice.vat.base_price == "23.65"
    assert invoice.vat.vat_amount == "2.36"


@pytest.mark.asyncio
async def test_invoice_lists_linked_reservations(db, stock, now):
    first = await reservation_svc.create_reservation(db, stock, new(order={"p-cake": 1}), now=now)
    second = await reservation_svc.create_reservation(
        db, stock, new(order={"p-sangria": 1}, linked_reservations=[first.id]), now=now
    )
    invoice = await generate_invoice_data(db, second.id)
    [linked] = invoice.linked_reservations
    assert linked.id == first.id
    assert linked.total_amount == "3.00"


@pytest.mark.asyncio
async def test_invoice_unknown_reservation(db):
    with pytest.raises(MissingReferencedEntity):
        await generate_invoice_data(db, "64b7f0c2a1b2c3d4e5f60718")


@pytest.mark.asyncio
async def test_frozen_invoice_is_cached(db, stock, now, redis):
    r = await reservation_svc.create_reservation(db, stock, new(is_paid=True), now=now)
    key = invoice_cache_key(r.id, 21)

    first = await generate_invoice_data(db, r.id, redis=redis, vat_pct=21)
    assert json.loads(redis.store[key])["totalFinal"] == "36.01"
    assert redis.ttls[key] == 24 * 3600

    # served from the cache: the stored header is not re-read
    db["reservations"].docs[0]["reserver"] = "Otra falla"
    cached = await generate_invoice_data(db, r.id, redis=redis, vat_pct=21)
    assert cached == first
    assert cached.reservation.reserver == "Falla Na Jordana"


@pytest.mark.asyncio
async def test_unfrozen_invoice_is_not_cached(db, stock, now, redis):
    r = await reservation_svc.create_reservation(db, stock, new(), now=now)
    await generate_invoice_data(db, r.id, redis=redis)
    assert redis.store == {}


@pytest.mark.asyncio
async def test_update_invalidates_cached_invoice(db, stock, now, redis):
    r = await reservation_svc.create_reservation(db, stock, new(is_paid=True), now=now)
    await generate_invoice_data(db, r.id, redis=redis)
    assert invoice_cache_key(r.id, None) in redis.store

    await reservation_svc.update_reservation(db, stock, r.id, ReservationPatch(notes="factura"), now=now, redis=redis)
    assert redis.store == {}
