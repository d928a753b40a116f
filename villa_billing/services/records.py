"""Immutable value records consumed and produced by the billing engine.

All inputs are snapshots fetched by the data layer; the engine never mutates
them. Money is always keyed by both currencies so arithmetic stays total.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Mapping

ZERO = Decimal("0")


class BillingValidationError(ValueError):
    """Raised for malformed input (negative amounts, costs or readings)."""


class Currency(str, Enum):
    """Currencies tracked by the ledger. Never converted into each other."""

    EGP = "EGP"
    GBP = "GBP"


class Party(str, Enum):
    """Who is financially responsible for a charge or made a payment."""

    OWNER = "owner"
    RENTER = "renter"
    COMPANY = "company"


class UserType(str, Enum):
    """Booking/payment user type."""

    OWNER = "owner"
    RENTER = "renter"


class SourceKind(str, Enum):
    """Origin of a ledger entry."""

    PAYMENT = "payment"
    SERVICE_REQUEST = "service_request"
    UTILITY_WATER = "utility_water"
    UTILITY_ELECTRICITY = "utility_electricity"


class UtilityType(str, Enum):
    WATER = "water"
    ELECTRICITY = "electricity"


@dataclass(frozen=True)
class Money:
    """Currency-keyed bucket: one Decimal per currency, zero when absent."""

    egp: Decimal = ZERO
    gbp: Decimal = ZERO

    @classmethod
    def of(cls, currency: Currency, amount: Decimal) -> "Money":
        return cls().add(currency, amount)

    def get(self, currency: Currency) -> Decimal:
        return self.egp if Currency(currency) is Currency.EGP else self.gbp

    def add(self, currency: Currency, amount: Decimal) -> "Money":
        if Currency(currency) is Currency.EGP:
            return Money(self.egp + amount, self.gbp)
        return Money(self.egp, self.gbp + amount)

    def __add__(self, other: "Money") -> "Money":
        return Money(self.egp + other.egp, self.gbp + other.gbp)

    def __sub__(self, other: "Money") -> "Money":
        return Money(self.egp - other.egp, self.gbp - other.gbp)

    def __neg__(self) -> "Money":
        return Money(-self.egp, -self.gbp)

    def is_zero(self) -> bool:
        return self.egp == ZERO and self.gbp == ZERO

    def to_dict(self) -> dict[str, Decimal]:
        return {Currency.EGP.value: self.egp, Currency.GBP.value: self.gbp}


def party_for_user_type(user_type: UserType | str | None) -> Party:
    """Map a payment/booking user type to a ledger party (unset means owner)."""
    if user_type is None:
        return Party.OWNER
    return Party(UserType(user_type).value)


@dataclass(frozen=True)
class Village:
    id: int
    water_unit_price: Decimal | None
    electricity_unit_price: Decimal | None
    phase_count: int = 1
    name: str = ""
    utility_currency: Currency = Currency.EGP

    def unit_price(self, utility_type: UtilityType) -> Decimal | None:
        if UtilityType(utility_type) is UtilityType.WATER:
            return self.water_unit_price
        return self.electricity_unit_price


@dataclass(frozen=True)
class Apartment:
    id: int
    village_id: int | None
    owner_id: int | None
    name: str = ""
    phase: int | None = None


@dataclass(frozen=True)
class Booking:
    id: int
    apartment_id: int
    user_id: int
    user_type: UserType
    arrival_date: date
    leaving_date: date

    def overlaps(self, day: date) -> bool:
        return self.arrival_date <= day <= self.leaving_date


@dataclass(frozen=True)
class Payment:
    id: int
    apartment_id: int
    amount: Decimal
    currency: Currency
    date: date
    user_type: UserType | None = None
    booking_id: int | None = None
    description: str | None = None


@dataclass(frozen=True)
class VillagePrice:
    village_id: int
    cost: Decimal
    currency: Currency


@dataclass(frozen=True)
class ServiceType:
    """Service type with per-village prices and the legacy flat price."""

    id: int
    name: str = ""
    village_prices: tuple[VillagePrice, ...] = ()
    cost: Decimal | None = None
    currency: Currency | None = None

    def __post_init__(self):
        seen = set()
        for price in self.village_prices:
            if price.village_id in seen:
                raise BillingValidationError(
                    f"Service type {self.id} has more than one price for village {price.village_id}"
                )
            seen.add(price.village_id)


@dataclass(frozen=True)
class ServiceRequest:
    id: int
    type_id: int | None
    apartment_id: int
    who_pays: Party
    date_created: date
    cost: Decimal | None = None
    currency: Currency | None = None
    booking_id: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class UtilityReading:
    id: int
    apartment_id: int
    who_pays: Party
    start_date: date
    end_date: date
    water_start: Decimal | None = None
    water_end: Decimal | None = None
    electricity_start: Decimal | None = None
    electricity_end: Decimal | None = None
    booking_id: int | None = None

    def pair(self, utility_type: UtilityType) -> tuple[Decimal | None, Decimal | None]:
        if UtilityType(utility_type) is UtilityType.WATER:
            return self.water_start, self.water_end
        return self.electricity_start, self.electricity_end


@dataclass(frozen=True)
class LedgerEntry:
    """One line item of an apartment ledger, with provenance for audit."""

    apartment_id: int
    source_kind: SourceKind
    source_id: int
    responsible_party: Party
    amount: Decimal
    currency: Currency
    date: date
    booking_id: int | None = None
    description: str = ""
    consumption: Decimal | None = None

    @property
    def is_spent(self) -> bool:
        return self.source_kind is SourceKind.PAYMENT

    @property
    def entry_id(self) -> str:
        prefix = "service" if self.source_kind is SourceKind.SERVICE_REQUEST else self.source_kind.value
        return f"{prefix}_{self.source_id}"


@dataclass(frozen=True)
class PartyTotals:
    requested: Money = Money()
    spent: Money = Money()

    @property
    def net(self) -> Money:
        return self.requested - self.spent


@dataclass(frozen=True)
class ApartmentLedgerTotals:
    """Requested/spent/net for one apartment, or a grand total when apartment_id is None."""

    apartment_id: int | None
    total_requested: Money = Money()
    total_spent: Money = Money()
    by_party: Mapping[Party, PartyTotals] = field(default_factory=dict)

    @property
    def net(self) -> Money:
        return self.total_requested - self.total_spent

    def party(self, party: Party) -> PartyTotals:
        return self.by_party.get(Party(party), PartyTotals())


@dataclass(frozen=True)
class BillingSnapshot:
    """All collections fetched for the same point in time."""

    apartments: tuple[Apartment, ...] = ()
    villages: tuple[Village, ...] = ()
    bookings: tuple[Booking, ...] = ()
    payments: tuple[Payment, ...] = ()
    service_types: tuple[ServiceType, ...] = ()
    service_requests: tuple[ServiceRequest, ...] = ()
    utility_readings: tuple[UtilityReading, ...] = ()

    @property
    def villages_by_id(self) -> dict[int, Village]:
        return {v.id: v for v in self.villages}

    @property
    def service_types_by_id(self) -> dict[int, ServiceType]:
        return {st.id: st for st in self.service_types}

    def apartment(self, apartment_id: int) -> Apartment | None:
        return next((a for a in self.apartments if a.id == apartment_id), None)


__all__ = [
    "ZERO",
    "BillingValidationError",
    "Currency",
    "Party",
    "UserType",
    "SourceKind",
    "UtilityType",
    "Money",
    "party_for_user_type",
    "Village",
    "Apartment",
    "Booking",
    "Payment",
    "VillagePrice",
    "ServiceType",
    "ServiceRequest",
    "UtilityReading",
    "LedgerEntry",
    "PartyTotals",
    "ApartmentLedgerTotals",
    "BillingSnapshot",
]
