"""Village ORM model holding utility unit prices."""

from decimal import Decimal

from sqlalchemy import Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from villa_billing.models import Base, BaseModel, value_enum
from villa_billing.services.records import Currency


class Village(Base, BaseModel):
    """A village groups apartments and configures per-unit water/electricity prices.

    Utility prices are single-currency per village (utility_currency).
    """

    __tablename__ = "villages"

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    water_price: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 4),
        nullable=True,
        comment="Price per water unit",
    )

    electricity_price: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 4),
        nullable=True,
        comment="Price per electricity unit (kWh)",
    )

    phases: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    utility_currency: Mapped[Currency] = mapped_column(
        value_enum(Currency, "utility_currency"),
        nullable=False,
        default=Currency.EGP,
    )

    def __repr__(self) -> str:
        return f"<Village(id={self.id}, name={self.name!r})>"


__all__ = ["Village"]
