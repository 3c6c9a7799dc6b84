"""
Which of a product's valid promotions apply to an order line.

- non-cumulative promotions are mutually exclusive: highest priority wins;
  on a priority tie the strictly larger line discount wins; on a discount tie
  the first one (input order) is kept
- cumulative promotions always stack on top
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import AbstractSet, List, Sequence, Tuple

from app.domain.models.promotion import Promotion
from app.domain.services.promotion_rules import evaluate_discount
from app.utils.money import from_minor, round_half_up


@dataclass(frozen=True, slots=True)
class AppliedPromotion:
    promotion_id: str
    promotion_name: str
    rule: str
    discount_cents: int
    discount_per_unit_cents: int

    @property
    def discount_per_unit(self) -> str:
        return from_minor(self.discount_per_unit_cents)

    @property
    def total_discount(self) -> str:
        return from_minor(self.discount_cents)


def _dedupe(promotions: Sequence[Promotion]) -> List[Promotion]:
    seen: set[str] = set()
    out: List[Promotion] = []
    for p in promotions:
        if p.id not in seen:
            seen.add(p.id)
            out.append(p)
    return out


def select_promotions(
    promotions: Sequence[Promotion],
    unit_price: int,
    qty: int,
    order_product_ids: AbstractSet[str] = frozenset(),
) -> List[Promotion]:
    """Applied set: the winning non-cumulative promotion (if any) followed by every cumulative one."""
    candidates = _dedupe(promotions)
    if not candidates:
        return []

    cumulative = [p for p in candidates if p.is_cumulative]
    exclusive = [p for p in candidates if not p.is_cumulative]

    selected: List[Promotion] = []
    if exclusive:
        top = max(p.priority for p in exclusive)
        tied = [p for p in exclusive if p.priority == top]
        best = tied[0]
        if len(tied) > 1:
            best_discount = evaluate_discount(best.conditions, unit_price, qty, order_product_ids)
            for p in tied[1:]:
                d = evaluate_discount(p.conditions, unit_price, qty, order_product_ids)
                if d > best_discount:
                    best, best_discount = p, d
        selected.append(best)

    selected.extend(cumulative)
    return selected


def total_discount(
    promotions: Sequence[Promotion],
    unit_price: int,
    qty: int,
    order_product_ids: AbstractSet[str] = frozenset(),
) -> Tuple[int, List[AppliedPromotion]]:
    """Sum the discounts of an applied set. Only strictly positive discounts count."""
    total = 0
    applied: List[AppliedPromotion] = []
    for p in promotions:
        discount = evaluate_discount(p.conditions, unit_price, qty, order_product_ids)
        if discount <= 0:
            continue
        total += discount
        applied.append(
            AppliedPromotion(
                promotion_id=p.id,
                promotion_name=p.name,
                rule=p.rule.value,
                discount_cents=discount,
                discount_per_unit_cents=round_half_up(Decimal(discount) / qty),
            )
        )
    return total, applied
