from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, Integer, SmallInteger, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_backoffice.db.session import Base


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(160), index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Set when a rental is completed with a rating/note.
    rating: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)  # 1-5
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    rentals = relationship("Rental", back_populates="client")
    payments = relationship("Payment", back_populates="client")
