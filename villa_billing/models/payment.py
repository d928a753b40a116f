"""Payment ORM model: money actually paid for an apartment."""

import datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from villa_billing.models import Base, BaseModel, value_enum
from villa_billing.services.records import Currency, UserType


class Payment(Base, BaseModel):
    __tablename__ = "payments"

    apartment_id: Mapped[int] = mapped_column(
        ForeignKey("apartments.id"),
        nullable=False,
        index=True,
    )

    booking_id: Mapped[int | None] = mapped_column(
        ForeignKey("bookings.id"),
        nullable=True,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    currency: Mapped[Currency] = mapped_column(
        value_enum(Currency, "payment_currency"),
        nullable=False,
    )

    user_type: Mapped[UserType | None] = mapped_column(
        value_enum(UserType, "payment_user_type"),
        nullable=True,
        comment="Who paid; NULL is treated as owner",
    )

    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("idx_payment_apartment_date", "apartment_id", "date"),)

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, apartment_id={self.apartment_id}, "
            f"amount={self.amount}, currency={self.currency})>"
        )


__all__ = ["Payment"]
