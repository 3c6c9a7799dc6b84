# app/api/v1/routers/reservations.py
from fastapi import APIRouter, Depends, Query, Response
from typing import Optional
import logging

from app.api.deps import mongo_db, redis_dep, stock_dep
from app.domain.models.billing import InvoiceData
from app.domain.models.reservation import (
    PricingResult,
    QuoteRequest,
    Reservation,
    ReservationCreate,
    ReservationPatch,
)
from app.domain.services import reservation_svc
from app.domain.services.invoice_svc import generate_invoice_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("/quote", response_model=PricingResult, summary="Price an order without reserving it")
async def quote(body: QuoteRequest, db = Depends(mongo_db)) -> PricingResult:
    return await reservation_svc.quote(db, body)


@router.post("", response_model=Reservation, status_code=201, summary="Create a reservation and reserve its stock")
async def create_reservation(
    body: ReservationCreate,
    db = Depends(mongo_db),
    stock = Depends(stock_dep),
) -> Reservation:
    return await reservation_svc.create_reservation(db, stock, body)


@router.patch("/{reservation_id}", response_model=Reservation)
async def patch_reservation(
    reservation_id: str,
    body: ReservationPatch,
    db = Depends(mongo_db),
    stock = Depends(stock_dep),
    redis = Depends(redis_dep),
) -> Reservation:
    return await reservation_svc.update_reservation(db, stock, reservation_id, body, redis=redis)


@router.delete("/{reservation_id}", status_code=204, summary="Soft-delete a reservation and restore its stock")
async def delete_reservation(
    reservation_id: str,
    stock = Depends(stock_dep),
    redis = Depends(redis_dep),
) -> Response:
    await reservation_svc.delete_reservation(stock, reservation_id, redis=redis)
    return Response(status_code=204)


@router.get("/{reservation_id}/invoice", response_model=InvoiceData)
async def invoice(
    reservation_id: str,
    vat_pct: Optional[int] = Query(None, description="Add a VAT breakdown of the total (0, 4, 10 or 21)"),
    db = Depends(mongo_db),
    redis = Depends(redis_dep),
) -> InvoiceData:
    return await generate_invoice_data(db, reservation_id, redis=redis, vat_pct=vat_pct)
