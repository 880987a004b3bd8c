from __future__ import annotations

import logging
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from rental_backoffice.core.config import settings
from rental_backoffice.models.client import Client
from rental_backoffice.models.enums import PaymentStatus, RentalStatus
from rental_backoffice.models.rental import Rental
from rental_backoffice.services.activity_log import log_activity
from rental_backoffice.services.payments import rental_balance
from rental_backoffice.settlement.records import RentalRecord

logger = logging.getLogger(__name__)


def payment_status_for(total: Decimal, paid: Decimal) -> PaymentStatus:
    if paid >= total:
        return PaymentStatus.PAID
    if paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def list_rentals(db: Session, *, status_value: RentalStatus | None = None) -> list[Rental]:
    q = db.query(Rental)
    if status_value is not None:
        q = q.filter(Rental.status == status_value)
    return q.order_by(Rental.end_date.asc(), Rental.id.asc()).all()


def get_rental(db: Session, rental_id: int) -> Rental:
    rental = db.query(Rental).filter(Rental.id == rental_id).first()
    if not rental:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rental not found")
    return rental


def to_rental_out(db: Session, rental: Rental) -> dict:
    total, paid, remaining = rental_balance(db, rental)
    return {
        "id": rental.id,
        "status": rental.status,
        "start_date": rental.start_date,
        "end_date": rental.end_date,
        "days": rental.days,
        "client_id": rental.client_id,
        "client": {"id": rental.client.id, "name": rental.client.name},
        "total_amount": total,
        "paid_amount": paid,
        "reste_a_payer": remaining,
        "payment_status": payment_status_for(total, paid),
        "has_payment_due": remaining > 0,
    }


def to_record(db: Session, rental: Rental) -> RentalRecord:
    out = to_rental_out(db, rental)
    out["status"] = out["status"].value
    out["payment_status"] = out["payment_status"].value
    return RentalRecord.from_mapping(out)


def update_status(db: Session, *, rental_id: int, payload) -> Rental:
    rental = get_rental(db, rental_id)
    previous = rental.status

    if payload.status == RentalStatus.COMPLETED:
        _, _, remaining = rental_balance(db, rental)
        if settings.block_completion_with_balance and remaining > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Rental has an outstanding balance of {remaining}",
            )

        client_updates: dict = {}
        if payload.client_rating is not None:
            client_updates["rating"] = payload.client_rating
        note = (payload.client_note or "").strip()
        if note:
            client_updates["note"] = note
        if client_updates:
            client = db.query(Client).filter(Client.id == rental.client_id).first()
            if client:
                for key, value in client_updates.items():
                    setattr(client, key, value)

    rental.status = payload.status
    db.commit()
    db.refresh(rental)

    log_activity(
        db,
        action="rental_status",
        entity_type="rental",
        entity_id=rental.id,
        details={
            "from": previous.value if previous else None,
            "to": rental.status.value,
            "client_rating": payload.client_rating,
        },
    )
    logger.info(
        "rental status changed: rental_id=%d from=%s to=%s",
        rental.id,
        previous.value if previous else None,
        rental.status.value,
    )
    return rental
