"""Booking ORM model (owner or renter stay in an apartment)."""

from datetime import date

from sqlalchemy import Date, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from villa_billing.models import Base, BaseModel, value_enum
from villa_billing.services.records import UserType


class Booking(Base, BaseModel):
    __tablename__ = "bookings"

    apartment_id: Mapped[int] = mapped_column(
        ForeignKey("apartments.id"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    user_type: Mapped[UserType] = mapped_column(
        value_enum(UserType, "booking_user_type"),
        nullable=False,
    )

    arrival_date: Mapped[date] = mapped_column(Date, nullable=False)
    leaving_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        Index("idx_booking_apartment_type", "apartment_id", "user_type"),
        Index("idx_booking_dates", "arrival_date", "leaving_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, apartment_id={self.apartment_id}, "
            f"user_type={self.user_type}, arrival={self.arrival_date}, leaving={self.leaving_date})>"
        )


__all__ = ["Booking"]
