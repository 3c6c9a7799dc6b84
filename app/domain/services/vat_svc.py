"""
VAT engine.

Any two of (base, net, vat amount) determine the third for a given rate:
- from base:  net = round(base * (1 + pct/100)), vat = net - base
- from net:   base = round(net / (1 + pct/100)), vat = net - base
A fully specified triple is accepted when it matches the base-derived values
within one cent per field.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
import logging

from app.core.errors import IncoherentVatTriple, InvalidVatInput, InvalidVatRate
from app.domain.models.billing import VATInput, VATResult
from app.domain.services.constants import VAT_RATES, VAT_TOLERANCE_CENTS
from app.utils.money import from_minor, round_half_up, to_minor

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VatBreakdown:
    base_cents: int
    vat_pct: int
    vat_cents: int
    net_cents: int

    def to_result(self) -> VATResult:
        return VATResult(
            base_price=from_minor(self.base_cents),
            vat_pct=self.vat_pct,
            vat_amount=from_minor(self.vat_cents),
            net_price=from_minor(self.net_cents),
        )


def _check_rate(vat_pct: int) -> None:
    if vat_pct not in VAT_RATES:
        allowed = ", ".join(str(r) for r in sorted(VAT_RATES))
        raise InvalidVatRate(f"vatPct must be one of {allowed}. Received: {vat_pct}")


def from_base(base_cents: int, vat_pct: int) -> VatBreakdown:
    _check_rate(vat_pct)
    net = round_half_up(Decimal(base_cents) * (100 + vat_pct) / 100)
    return VatBreakdown(base_cents, vat_pct, net - base_cents, net)


def from_net(net_cents: int, vat_pct: int) -> VatBreakdown:
    _check_rate(vat_pct)
    base = round_half_up(Decimal(net_cents) * 100 / (100 + vat_pct))
    return VatBreakdown(base, vat_pct, net_cents - base, net_cents)


def coherence(base_cents: int, vat_pct: int, vat_cents: int, net_cents: int) -> VatBreakdown:
    """Return the triple as given if coherent, else raise with the expected values."""
    expected = from_base(base_cents, vat_pct)
    ok = (
        abs(base_cents - expected.base_cents) <= VAT_TOLERANCE_CENTS
        and abs(vat_cents - expected.vat_cents) <= VAT_TOLERANCE_CENTS
        and abs(net_cents - expected.net_cents) <= VAT_TOLERANCE_CENTS
    )
    if not ok:
        exp = expected.to_result()
        raise IncoherentVatTriple(
            "Incoherent VAT values. "
            f"Expected: basePrice={exp.base_price}, vatAmount={exp.vat_amount}, netPrice={exp.net_price}. "
            f"Received: basePrice={from_minor(base_cents)}, vatAmount={from_minor(vat_cents)}, "
            f"netPrice={from_minor(net_cents)}",
            expected=exp,
        )
    return VatBreakdown(base_cents, vat_pct, vat_cents, net_cents)


def process(data: VATInput) -> VATResult:
    """
    Compute or validate VAT depending on which amounts are present:
    base only, net only, or all three. Anything else is rejected.
    """
    has_base = data.base_price is not None
    has_vat = data.vat_amount is not None
    has_net = data.net_price is not None

    if has_base and not has_vat and not has_net:
        return from_base(to_minor(data.base_price), data.vat_pct).to_result()
    if has_net and not has_base and not has_vat:
        return from_net(to_minor(data.net_price), data.vat_pct).to_result()
    if has_base and has_vat and has_net:
        return coherence(
            to_minor(data.base_price), data.vat_pct, to_minor(data.vat_amount), to_minor(data.net_price)
        ).to_result()

    logger.debug("vat rejected base=%s vat=%s net=%s", has_base, has_vat, has_net)
    raise InvalidVatInput(
        "Provide (1) basePrice + vatPct, (2) netPrice + vatPct, "
        "or (3) basePrice, vatAmount and netPrice together."
    )
