"""Utility reading ORM model: water/electricity meter pairs for an apartment."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from villa_billing.models import Base, BaseModel, value_enum
from villa_billing.services.records import Party


class UtilityReading(Base, BaseModel):
    """Meter readings taken at start_date and end_date.

    A reading pair is billed once both values exist and the end value is
    greater than the start value; the bill is recognised on end_date.
    """

    __tablename__ = "utility_readings"

    apartment_id: Mapped[int] = mapped_column(
        ForeignKey("apartments.id"),
        nullable=False,
        index=True,
    )

    booking_id: Mapped[int | None] = mapped_column(
        ForeignKey("bookings.id"),
        nullable=True,
    )

    water_start_reading: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    water_end_reading: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    electricity_start_reading: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    electricity_end_reading: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    who_pays: Mapped[Party] = mapped_column(
        value_enum(Party, "utility_reading_who_pays"),
        nullable=False,
    )

    __table_args__ = (Index("idx_utility_reading_apartment_end", "apartment_id", "end_date"),)


__all__ = ["UtilityReading"]
