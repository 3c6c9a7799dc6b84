from datetime import timedelta

import pytest

from app.core.errors import MissingReferencedEntity, PriceFrozen
from app.domain.models.reservation import Reservation
from app.domain.services.pricing_svc import calculate_reservation_total, recalculate_if_needed
from tests.fakes import EVENT


@pytest.mark.asyncio
async def test_three_for_two_with_supplement(db, now):
    # 10.00 x3 with 3x2: 10.00 off -> 3.33/unit -> 6.67 + 2.00 supplement = 8.67
    result = await calculate_reservation_total(db, {"p-paella": 3}, "ct-table", now=now)
    assert result.total_amount == "26.01"
    assert result.has_promo_applied is True
    assert result.applied_promotions_snapshot is None


@pytest.mark.asyncio
async def test_promotion_below_threshold_applies_nothing(db, now):
    result = await calculate_reservation_total(db, {"p-paella": 2}, "ct-takeaway", now=now)
    assert result.total_amount == "20.00"
    assert result.has_promo_applied is False


@pytest.mark.asyncio
async def test_negative_supplement_and_expired_promotion(db, now):
    result = await calculate_reservation_total(db, {"p-sangria": 2}, "ct-takeaway", now=now)
    assert result.total_amount == "8.50"
    assert result.has_promo_applied is False


@pytest.mark.asyncio
async def test_combo_across_lines(db, now):
    result = await calculate_reservation_total(
        db, {"p-paella": 3, "p-cake": 2}, "ct-takeaway", now=now, want_snapshot=True
    )
    # paella 6.67 x3 + cake (3.00 - 10%) x2
    assert result.total_amount == "25.41"
    cake = next(ln for ln in result.applied_promotions_snapshot if ln.product_id == "p-cake")
    assert cake.unit_price_final == "2.70"
    assert [p.promotion_id for p in cake.promotions_applied] == ["promo-combo"]


@pytest.mark.asyncio
async def test_combo_without_partner_product(db, now):
    result = await calculate_reservation_total(db, {"p-cake": 2}, "ct-table", now=now)
    assert result.total_amount == "6.00"
    assert result.has_promo_applied is False


@pytest.mark.asyncio
async def test_snapshot_lines(db, now):
    result = await calculate_reservation_total(db, {"p-paella": 3}, "ct-table", now=now, want_snapshot=True)
    [line] = result.applied_promotions_snapshot
    assert line.product_name == "Paella"
    assert line.quantity == 3
    assert line.unit_price_original == "10.00"
    assert line.unit_price_final == "8.67"
    assert line.subtotal == "26.01"
    [applied] = line.promotions_applied
    assert applied.promotion_id == "promo-3x2"
    assert applied.rule == "XForY"
    assert applied.discount_per_unit == "3.33"


@pytest.mark.asyncio
async def test_total_is_sum_of_line_subtotals(db, now):
    result = await calculate_reservation_total(
        db, {"p-paella": 4, "p-sangria": 3, "p-cake": 1}, "ct-table", now=now, want_snapshot=True
    )
    lines_sum = sum(int(ln.subtotal.replace(".", "")) for ln in result.applied_promotions_snapshot)
    assert int(result.total_amount.replace(".", "")) == lines_sum


@pytest.mark.asyncio
async def test_promotion_outside_window_is_ignored(db, now):
    later = now + timedelta(days=2)
    result = await calculate_reservation_total(db, {"p-paella": 3}, "ct-table", now=later)
    assert result.total_amount == "36.00"
    assert result.has_promo_applied is False


@pytest.mark.asyncio
async def test_unit_price_never_negative(db, now):
    db["products"].seed(
        {"_id": "p-water", "name": "Agua", "eventId": EVENT, "isActive": True, "stock": 99,
         "nominalPrice": "1.00", "promotions": ["promo-huge"]},
    )
    db["promotions"].seed(
        {"_id": "promo-huge", "name": "Huge", "eventId": EVENT, "isActive": True,
         "rule": "DiscountPerUnit", "conditions": {"_rule": "DiscountPerUnit", "amountOff": "5.00"},
         "startDate": now - timedelta(days=1), "endDate": now + timedelta(days=1)},
    )
    result = await calculate_reservation_total(db, {"p-water": 4}, "ct-takeaway", now=now)
    assert result.total_amount == "0.00"


@pytest.mark.asyncio
async def test_malformed_promotion_is_skipped(db, now):
    db["promotions"].raw("promo-3x2")["conditions"] = {"_rule": "XForY", "buyQty": 0}
    result = await calculate_reservation_total(db, {"p-paella": 3}, "ct-takeaway", now=now)
    assert result.total_amount == "30.00"


@pytest.mark.asyncio
async def test_frozen_price_is_refused(db, now):
    with pytest.raises(PriceFrozen):
        await calculate_reservation_total(db, {"p-paella": 1}, "ct-table", now=now, is_paid=True)
    with pytest.raises(PriceFrozen):
        await calculate_reservation_total(db, {"p-paella": 1}, "ct-table", now=now, is_delivered=True)

    result = await calculate_reservation_total(
        db, {"p-paella": 1}, "ct-table", now=now, is_paid=True, skip_freeze_check=True
    )
    assert result.total_amount == "12.00"


@pytest.mark.asyncio
async def test_missing_or_inactive_product(db, now):
    with pytest.raises(MissingReferencedEntity):
        await calculate_reservation_total(db, {"p-ghost": 1}, "ct-table", now=now)

    db["products"].raw("p-cake")["isActive"] = False
    with pytest.raises(MissingReferencedEntity):
        await calculate_reservation_total(db, {"p-cake": 1}, "ct-table", now=now)


@pytest.mark.asyncio
async def test_product_from_other_event_when_scoped(db, now):
    with pytest.raises(MissingReferencedEntity):
        await calculate_reservation_total(db, {"p-foreign": 1}, "ct-table", now=now, event_id=EVENT)


# ----- recalculation policy -----


def _reservation(**overrides):
    data = {
        "_id": "r-1",
        "eventId": EVENT,
        "reserver": "Falla Na Jordana",
        "order": {"p-paella": 3},
        "consumptionTypeId": "ct-table",
        "totalAmount": "26.01",
        "hasPromoApplied": True,
    }
    data.update(overrides)
    return Reservation.model_validate(data)


@pytest.mark.asyncio
async def test_recalc_skips_frozen(db, now):
    frozen = _reservation(isPaid=True)
    assert await recalculate_if_needed(db, frozen, {"order": {"p-paella": 9}}, now=now) is None


@pytest.mark.asyncio
async def test_recalc_noop_when_pricing_inputs_unchanged(db, now):
    r = _reservation()
    assert await recalculate_if_needed(db, r, {"notes": "sin gluten"}, now=now) is None
    assert await recalculate_if_needed(db, r, {"order": {"p-paella": 3}}, now=now) is None


@pytest.mark.asyncio
async def test_recalc_on_order_or_consumption_type_change(db, now):
    r = _reservation()
    result = await recalculate_if_needed(db, r, {"order": {"p-paella": 6}}, now=now)
    assert result.total_amount == "52.02"
    assert result.applied_promotions_snapshot is None

    result = await recalculate_if_needed(db, r, {"consumption_type_id": "ct-takeaway"}, now=now)
    assert result.total_amount == "20.01"


@pytest.mark.asyncio
async def test_recalc_at_freeze_takes_snapshot(db, now):
    r = _reservation()
    result = await recalculate_if_needed(db, r, {"is_delivered": True}, now=now)
    assert result.total_amount == "26.01"
    assert len(result.applied_promotions_snapshot) == 1
