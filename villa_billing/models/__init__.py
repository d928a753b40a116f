"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Enum
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


def value_enum(enum_cls: type[PyEnum], name: str) -> Enum:
    """Enum column type persisting member values ('owner'), not names ('OWNER')."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        validate_strings=True,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from villa_billing.models.village import Village  # noqa: E402
from villa_billing.models.apartment import Apartment  # noqa: E402
from villa_billing.models.booking import Booking  # noqa: E402
from villa_billing.models.payment import Payment  # noqa: E402
from villa_billing.models.service_type import ServiceType, ServiceTypeVillagePrice  # noqa: E402
from villa_billing.models.service_request import ServiceRequest  # noqa: E402
from villa_billing.models.utility_reading import UtilityReading  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "value_enum",
    "Village",
    "Apartment",
    "Booking",
    "Payment",
    "ServiceType",
    "ServiceTypeVillagePrice",
    "ServiceRequest",
    "UtilityReading",
]
