"""Pydantic response schemas for the invoices API."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from villa_billing.services.ledger_service import BillingWarning
from villa_billing.services.records import (
    Apartment,
    ApartmentLedgerTotals,
    Booking,
    LedgerEntry,
    Money,
    UserType,
)

ENTRY_TYPE_LABELS = {
    "payment": "Payment",
    "service_request": "Service Request",
    "utility_water": "Utility Reading",
    "utility_electricity": "Utility Reading",
}


class MoneySchema(BaseModel):
    """Amounts per currency; currencies are never summed together."""

    EGP: Decimal
    GBP: Decimal

    @classmethod
    def from_money(cls, money: Money) -> "MoneySchema":
        return cls(EGP=money.egp, GBP=money.gbp)


class PartyTotalsSchema(BaseModel):
    total_money_requested: MoneySchema
    total_money_spent: MoneySchema
    net_money: MoneySchema


class TotalsSchema(PartyTotalsSchema):
    by_party: dict[str, PartyTotalsSchema] = Field(
        default_factory=dict, description="Sub-totals per responsible party"
    )

    @classmethod
    def from_totals(cls, totals: ApartmentLedgerTotals) -> "TotalsSchema":
        return cls(
            total_money_requested=MoneySchema.from_money(totals.total_requested),
            total_money_spent=MoneySchema.from_money(totals.total_spent),
            net_money=MoneySchema.from_money(totals.net),
            by_party={
                party.value: PartyTotalsSchema(
                    total_money_requested=MoneySchema.from_money(sub.requested),
                    total_money_spent=MoneySchema.from_money(sub.spent),
                    net_money=MoneySchema.from_money(sub.net),
                )
                for party, sub in totals.by_party.items()
            },
        )


class ApartmentSchema(BaseModel):
    id: int
    name: str
    village_id: int | None
    owner_id: int | None
    phase: int | None

    model_config = ConfigDict(from_attributes=True)


class SummaryRowSchema(TotalsSchema):
    apartment: ApartmentSchema


class WarningSchema(BaseModel):
    """A line item excluded from totals."""

    kind: str
    source_kind: str
    source_id: int
    apartment_id: int
    message: str
    pending: bool

    @classmethod
    def from_warning(cls, warning: BillingWarning) -> "WarningSchema":
        return cls(
            kind=warning.kind.value,
            source_kind=warning.source_kind.value,
            source_id=warning.source_id,
            apartment_id=warning.apartment_id,
            message=warning.message,
            pending=warning.is_pending,
        )


class LedgerEntrySchema(BaseModel):
    id: str
    type: str
    source_kind: str
    source_id: int
    apartment_id: int
    description: str
    amount: Decimal
    currency: str
    date: date
    responsible_party: str
    booking_id: int | None = None
    consumption: Decimal | None = None

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "LedgerEntrySchema":
        return cls(
            id=entry.entry_id,
            type=ENTRY_TYPE_LABELS[entry.source_kind.value],
            source_kind=entry.source_kind.value,
            source_id=entry.source_id,
            apartment_id=entry.apartment_id,
            description=entry.description,
            amount=entry.amount,
            currency=entry.currency.value,
            date=entry.date,
            responsible_party=entry.responsible_party.value,
            booking_id=entry.booking_id,
            consumption=entry.consumption,
        )


class PaginationSchema(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class InvoiceSummaryResponse(BaseModel):
    summary: list[SummaryRowSchema]
    totals: TotalsSchema
    pagination: PaginationSchema
    warnings: list[WarningSchema]


class ApartmentInvoicesResponse(BaseModel):
    apartment: ApartmentSchema
    entries: list[LedgerEntrySchema]
    totals: TotalsSchema
    warnings: list[WarningSchema]


class OwnerInvoicesResponse(BaseModel):
    owner_id: int
    apartments: list[ApartmentSchema]
    entries: list[LedgerEntrySchema]
    totals: TotalsSchema
    warnings: list[WarningSchema]


class BookingSchema(BaseModel):
    id: int
    apartment_id: int
    user_id: int
    user_type: str
    arrival_date: date
    leaving_date: date

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingSchema":
        return cls(
            id=booking.id,
            apartment_id=booking.apartment_id,
            user_id=booking.user_id,
            user_type=UserType(booking.user_type).value,
            arrival_date=booking.arrival_date,
            leaving_date=booking.leaving_date,
        )


class RenterSummaryResponse(PartyTotalsSchema):
    apartment_id: int
    booking: BookingSchema
    entries: list[LedgerEntrySchema]


class BookingInvoicesResponse(BaseModel):
    """All line items linked to one booking, newest first."""

    booking: BookingSchema
    apartment: ApartmentSchema | None
    entries: list[LedgerEntrySchema]
    totals: TotalsSchema
    warnings: list[WarningSchema]


class PreviousYearsResponse(PartyTotalsSchema):
    before_year: int


class YearTotalsSchema(TotalsSchema):
    year: int


class ByYearResponse(BaseModel):
    years: list[YearTotalsSchema]


class ServicePriceResponse(BaseModel):
    """Resolved price; available=False means no pricing (not a zero price)."""

    service_type_id: int
    village_id: int | None
    available: bool
    cost: Decimal | None = None
    currency: str | None = None
    source: str | None = None
    is_fallback: bool = False


def apartment_schema(apartment: Apartment) -> ApartmentSchema:
    return ApartmentSchema.model_validate(apartment)
