from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from rental_backoffice.models.client import Client
from rental_backoffice.models.payment import Payment
from rental_backoffice.models.rental import Rental
from rental_backoffice.services.activity_log import log_activity
from rental_backoffice.settlement.summary import q_money, remaining_after

logger = logging.getLogger(__name__)


class PaymentRejected(Exception):
    """Request was well-formed but refers to data that does not allow the payment."""

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


@dataclass(frozen=True)
class PaymentOutcome:
    payment: Payment
    total_amount: Decimal
    total_paid: Decimal
    remaining_amount: Decimal

    @property
    def completed_payment(self) -> bool:
        return self.remaining_amount <= 0

    def as_dict(self) -> dict:
        return {
            "payment_id": self.payment.id,
            "total_paid": str(self.total_paid),
            "remaining_amount": str(self.remaining_amount),
            "completed_payment": self.completed_payment,
        }


def rental_paid_total(db: Session, rental_id: int) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.rental_id == rental_id)
        .scalar()
    )
    return q_money(Decimal(str(total)))


def rental_balance(db: Session, rental: Rental) -> tuple[Decimal, Decimal, Decimal]:
    """Returns (effective_total, paid, remaining)."""
    total = q_money(Decimal(str(rental.effective_total or 0)))
    paid = rental_paid_total(db, rental.id)
    return total, paid, remaining_after(total, paid)


def record_payment(db: Session, *, payload, today: dt.date | None = None) -> PaymentOutcome:
    """
    Stores one payment against a rental, dated today.

    The amount is not capped at the remaining balance here; the completion flow validates it against
    the balance it displays.
    """
    errors: dict[str, list[str]] = {}
    rental = db.query(Rental).filter(Rental.id == payload.rental_id).first()
    if not rental:
        errors["rental_id"] = ["The selected rental does not exist."]
    client = db.query(Client).filter(Client.id == payload.client_id).first()
    if not client:
        errors["client_id"] = ["The selected client does not exist."]
    elif rental and rental.client_id != client.id:
        errors["client_id"] = ["The client does not match the rental."]
    if errors:
        raise PaymentRejected("The given data was invalid.", errors)

    p = Payment(
        rental_id=rental.id,
        client_id=client.id,
        amount=q_money(Decimal(str(payload.amount))),
        method=payload.method,
        reference=(payload.reference or "").strip() or None,
        date=today or dt.date.today(),
        note=payload.note,
    )
    db.add(p)
    db.commit()
    db.refresh(p)

    total, paid, remaining = rental_balance(db, rental)
    log_activity(
        db,
        action="payment_add",
        entity_type="payment",
        entity_id=p.id,
        details={"rental_id": rental.id, "amount": str(p.amount), "remaining": str(remaining)},
    )
    logger.info(
        "payment recorded: rental_id=%d payment_id=%d amount=%s remaining=%s",
        rental.id,
        p.id,
        p.amount,
        remaining,
    )
    return PaymentOutcome(payment=p, total_amount=total, total_paid=paid, remaining_amount=remaining)


def list_payments(db: Session, *, rental_id: int | None = None, client_id: int | None = None) -> list[Payment]:
    q = db.query(Payment)
    if rental_id is not None:
        q = q.filter(Payment.rental_id == rental_id)
    if client_id is not None:
        q = q.filter(Payment.client_id == client_id)
    return q.order_by(Payment.date.desc(), Payment.id.desc()).all()


def rental_payments(db: Session, rental_id: int) -> dict:
    rental = db.query(Rental).filter(Rental.id == rental_id).first()
    if not rental:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rental not found")
    total, paid, remaining = rental_balance(db, rental)
    return {
        "rental_id": rental.id,
        "client": rental.client,
        "total_amount": total,
        "total_paid": paid,
        "remaining_amount": remaining,
        "payments": list_payments(db, rental_id=rental.id),
    }
