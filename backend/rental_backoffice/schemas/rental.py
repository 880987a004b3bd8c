from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from rental_backoffice.models.enums import PaymentStatus, RentalStatus
from rental_backoffice.schemas.common import ClientRef


class RentalOut(BaseModel):
    """Rental in the shape the completion flow consumes (see settlement.records.RentalRecord)."""

    id: int
    status: RentalStatus
    start_date: dt.date
    end_date: dt.date
    days: int
    client_id: int
    client: ClientRef
    total_amount: Decimal
    paid_amount: Decimal
    reste_a_payer: Decimal
    payment_status: PaymentStatus
    has_payment_due: bool


class RentalStatusUpdate(BaseModel):
    status: RentalStatus
    client_rating: int | None = Field(default=None, ge=1, le=5)
    client_note: str | None = None
