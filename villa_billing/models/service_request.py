"""Service request ORM model: money owed for a service."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from villa_billing.models import Base, BaseModel, value_enum
from villa_billing.services.records import Currency, Party


class ServiceRequest(Base, BaseModel):
    __tablename__ = "service_requests"

    type_id: Mapped[int | None] = mapped_column(
        ForeignKey("service_types.id"),
        nullable=True,
        index=True,
    )

    apartment_id: Mapped[int] = mapped_column(
        ForeignKey("apartments.id"),
        nullable=False,
        index=True,
    )

    booking_id: Mapped[int | None] = mapped_column(
        ForeignKey("bookings.id"),
        nullable=True,
    )

    who_pays: Mapped[Party] = mapped_column(
        value_enum(Party, "service_request_who_pays"),
        nullable=False,
    )

    # Explicit price for this request; NULL means price from the service type
    cost: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)

    currency: Mapped[Currency | None] = mapped_column(
        value_enum(Currency, "service_request_currency"),
        nullable=True,
    )

    date_created: Mapped[date] = mapped_column(Date, nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("idx_service_request_apartment_date", "apartment_id", "date_created"),)


__all__ = ["ServiceRequest"]
