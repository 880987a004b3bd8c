from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rental_backoffice.db.session import get_db
from rental_backoffice.models.enums import RentalStatus
from rental_backoffice.schemas.rental import RentalOut, RentalStatusUpdate
from rental_backoffice.services import rentals as rental_service

router = APIRouter()


@router.get("", response_model=list[RentalOut])
def list_rentals(status: RentalStatus | None = None, db: Session = Depends(get_db)):
    items = rental_service.list_rentals(db, status_value=status)
    return [RentalOut.model_validate(rental_service.to_rental_out(db, r)) for r in items]


@router.get("/{rental_id}", response_model=RentalOut)
def get_rental(rental_id: int, db: Session = Depends(get_db)):
    r = rental_service.get_rental(db, rental_id)
    return RentalOut.model_validate(rental_service.to_rental_out(db, r))


@router.patch("/{rental_id}/status", response_model=RentalOut)
def update_rental_status(rental_id: int, payload: RentalStatusUpdate, db: Session = Depends(get_db)):
    r = rental_service.update_status(db, rental_id=rental_id, payload=payload)
    return RentalOut.model_validate(rental_service.to_rental_out(db, r))
