from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, Numeric, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_backoffice.db.session import Base
from rental_backoffice.models.enums import RentalStatus


class Rental(Base):
    """
    A client's booking of a vehicle over a date range.

    The total is computed upstream (pricing, discounts, extensions); this model only stores it.
    """

    __tablename__ = "rentals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), index=True)

    start_date: Mapped[dt.date] = mapped_column(Date, index=True)
    end_date: Mapped[dt.date] = mapped_column(Date, index=True)
    days: Mapped[int] = mapped_column(Integer, default=1)

    price_per_day: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    manual_total: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)  # overrides total_price

    status: Mapped[RentalStatus] = mapped_column(Enum(RentalStatus), default=RentalStatus.PENDING, index=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    client = relationship("Client", back_populates="rentals")
    payments = relationship("Payment", back_populates="rental", cascade="all, delete-orphan")

    @property
    def effective_total(self) -> Decimal:
        if self.manual_total is not None:
            return self.manual_total
        return self.total_price or Decimal("0.00")
