# app/api/v1/routers/expenses.py
from fastapi import APIRouter

from app.domain.models.billing import VATInput, VATResult
from app.domain.services import vat_svc

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.post("/vat", response_model=VATResult, summary="Complete or validate the VAT amounts of an expense")
async def expense_vat(body: VATInput) -> VATResult:
    """
    - basePrice + vatPct: computes vatAmount and netPrice
    - netPrice + vatPct: computes basePrice and vatAmount
    - all three amounts: validated within one cent
    """
    return vat_svc.process(body)
