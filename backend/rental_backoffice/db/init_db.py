from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy.orm import Session

from rental_backoffice.models.client import Client
from rental_backoffice.models.enums import PaymentMethod, RentalStatus
from rental_backoffice.models.payment import Payment
from rental_backoffice.models.rental import Rental


def seed_demo_rentals(db: Session, *, today: dt.date | None = None) -> None:
    """
    Dev seed:
    - an active rental with nothing paid
    - an active rental paid in part
    - an active rental already settled (goes straight to rating)
    """
    today = today or dt.date.today()

    amine = Client(name="Amine Alaoui", phone="0600000001")
    sara = Client(name="Sara Bennani", phone="0600000002")
    youssef = Client(name="Youssef Idrissi", phone="0600000003")
    db.add_all([amine, sara, youssef])
    db.flush()

    def _rental(client: Client, days: int, price: str) -> Rental:
        per_day = Decimal(price)
        return Rental(
            client_id=client.id,
            start_date=today - dt.timedelta(days=days),
            end_date=today,
            days=days,
            price_per_day=per_day,
            total_price=per_day * days,
            status=RentalStatus.ACTIVE,
        )

    unpaid = _rental(amine, 3, "300.00")
    partial = _rental(sara, 5, "250.00")
    settled = _rental(youssef, 2, "400.00")
    db.add_all([unpaid, partial, settled])
    db.flush()

    db.add_all(
        [
            Payment(rental_id=partial.id, client_id=sara.id, amount=Decimal("500.00"), method=PaymentMethod.CASH, date=today),
            Payment(rental_id=settled.id, client_id=youssef.id, amount=Decimal("800.00"), method=PaymentMethod.VIREMENT, date=today),
        ]
    )
    db.commit()


def ensure_seeded(db: Session) -> None:
    exists = db.query(Rental).first()
    if exists:
        return
    seed_demo_rentals(db)


if __name__ == "__main__":
    from rental_backoffice.db.session import Base, SessionLocal, engine

    import rental_backoffice.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ensure_seeded(db)
        print("Seeded demo rentals.")
    finally:
        db.close()
