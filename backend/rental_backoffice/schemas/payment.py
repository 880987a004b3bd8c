from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from rental_backoffice.models.enums import PaymentMethod
from rental_backoffice.schemas.common import ApiModel, ClientRef


class PaymentCreate(BaseModel):
    rental_id: int
    client_id: int
    amount: Decimal = Field(ge=Decimal("0.01"), max_digits=12, decimal_places=2)
    method: PaymentMethod = PaymentMethod.CASH
    reference: str | None = Field(default=None, max_length=255)
    note: str | None = None


class PaymentOut(ApiModel):
    id: int
    rental_id: int
    client_id: int
    amount: Decimal
    method: PaymentMethod
    reference: str | None
    date: dt.date
    note: str | None


class PaymentRecorded(BaseModel):
    payment: PaymentOut
    total_paid: Decimal
    remaining_amount: Decimal
    completed_payment: bool  # remaining reached zero with this payment


class RentalPayments(BaseModel):
    rental_id: int
    client: ClientRef
    total_amount: Decimal
    total_paid: Decimal
    remaining_amount: Decimal
    payments: list[PaymentOut]
