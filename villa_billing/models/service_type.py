"""Service type ORM models with per-village pricing."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from villa_billing.models import Base, BaseModel, value_enum
from villa_billing.services.records import Currency


class ServiceType(Base, BaseModel):
    """A billable service (cleaning, pool maintenance, ...).

    The flat cost/currency columns predate per-village pricing and are kept
    as the last fallback while data migrates to service_type_village_prices.
    """

    __tablename__ = "service_types"

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    cost: Mapped[Decimal | None] = mapped_column(
        Numeric(15, 2),
        nullable=True,
        comment="Legacy flat price",
    )

    currency: Mapped[Currency | None] = mapped_column(
        value_enum(Currency, "service_type_currency"),
        nullable=True,
    )

    village_prices: Mapped[list["ServiceTypeVillagePrice"]] = relationship(
        "ServiceTypeVillagePrice",
        back_populates="service_type",
        order_by="ServiceTypeVillagePrice.id",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ServiceType(id={self.id}, name={self.name!r})>"


class ServiceTypeVillagePrice(Base, BaseModel):
    __tablename__ = "service_type_village_prices"

    service_type_id: Mapped[int] = mapped_column(
        ForeignKey("service_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    village_id: Mapped[int] = mapped_column(
        ForeignKey("villages.id", ondelete="CASCADE"),
        nullable=False,
    )

    cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    currency: Mapped[Currency] = mapped_column(
        value_enum(Currency, "village_price_currency"),
        nullable=False,
    )

    service_type: Mapped["ServiceType"] = relationship(
        "ServiceType",
        back_populates="village_prices",
    )

    __table_args__ = (
        UniqueConstraint("service_type_id", "village_id", name="uq_service_type_village"),
    )


__all__ = ["ServiceType", "ServiceTypeVillagePrice"]
