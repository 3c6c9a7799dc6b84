# app/core/errors.py
from __future__ import annotations
from typing import Any, Optional


class AppError(Exception):
    """
    Base error for the reservation domain.
    Carries a stable machine code and the HTTP status the API layer maps it to.
    """
    code: str = "APP_ERROR"
    status_code: int = 400

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class InvalidMoney(AppError, ValueError):
    code = "INVALID_MONEY"


class InvalidVatRate(AppError):
    code = "INVALID_VAT_RATE"


class InvalidVatInput(AppError):
    code = "INVALID_VAT_INPUT"


class IncoherentVatTriple(AppError):
    code = "INCOHERENT_VAT"

    def __init__(self, message: str, *, expected: Any):
        super().__init__(message)
        self.expected = expected

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["expected"] = self.expected.model_dump(by_alias=True)
        return out


class PriceFrozen(AppError):
    code = "PRICE_FROZEN"


class MissingReferencedEntity(AppError):
    code = "NOT_FOUND"
    status_code = 404


class InvalidReservation(AppError):
    code = "VALIDATION_ERROR"


class InsufficientStock(AppError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409


class StockTransactionUnavailable(AppError):
    """Internal: the store refused a multi-document transaction. Never reaches the API."""
    code = "TRANSACTIONS_UNAVAILABLE"
    status_code = 500
