from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from rental_backoffice.db.session import get_db
from rental_backoffice.schemas.common import ClientRef, FieldErrors
from rental_backoffice.schemas.payment import PaymentCreate, PaymentOut, PaymentRecorded, RentalPayments
from rental_backoffice.services import payments as payment_service

router = APIRouter()


@router.post("", response_model=PaymentRecorded, responses={422: {"model": FieldErrors}})
def add_payment(payload: PaymentCreate, db: Session = Depends(get_db)):
    try:
        outcome = payment_service.record_payment(db, payload=payload)
    except payment_service.PaymentRejected as e:
        body = FieldErrors(message=e.message, errors=e.errors)
        return JSONResponse(status_code=422, content=body.model_dump())
    return PaymentRecorded(
        payment=PaymentOut.model_validate(outcome.payment),
        total_paid=outcome.total_paid,
        remaining_amount=outcome.remaining_amount,
        completed_payment=outcome.completed_payment,
    )


@router.get("", response_model=list[PaymentOut])
def list_payments(rental_id: int | None = None, client_id: int | None = None, db: Session = Depends(get_db)):
    items = payment_service.list_payments(db, rental_id=rental_id, client_id=client_id)
    return [PaymentOut.model_validate(p) for p in items]


@router.get("/manage/{rental_id}", response_model=RentalPayments)
def manage(rental_id: int, db: Session = Depends(get_db)):
    data = payment_service.rental_payments(db, rental_id)
    return RentalPayments(
        rental_id=data["rental_id"],
        client=ClientRef.model_validate(data["client"]),
        total_amount=data["total_amount"],
        total_paid=data["total_paid"],
        remaining_amount=data["remaining_amount"],
        payments=[PaymentOut.model_validate(p) for p in data["payments"]],
    )
