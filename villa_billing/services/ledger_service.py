"""Ledger aggregation: payments, service requests and utility readings to per-apartment totals.

Money requested = service request charges + utility bills.
Money spent     = payments.
Net             = requested - spent, per currency (EGP and GBP never combined).

Charges that cannot be priced are excluded from totals and reported in a
parallel warnings list instead of being counted as zero.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping

from villa_billing.services.pricing_service import (
    PriceOverride,
    PriceUnavailable,
    PricingResolver,
)
from villa_billing.services.records import (
    ZERO,
    Apartment,
    ApartmentLedgerTotals,
    BillingSnapshot,
    BillingValidationError,
    Currency,
    LedgerEntry,
    Money,
    Party,
    PartyTotals,
    Payment,
    ServiceRequest,
    ServiceType,
    SourceKind,
    UserType,
    UtilityReading,
    UtilityType,
    Village,
    party_for_user_type,
)
from villa_billing.services.utility_bill_service import (
    INCOMPLETE,
    UtilityBill,
    UtilityBillCalculator,
)

logger = logging.getLogger(__name__)

UTILITY_SOURCE_KINDS = {
    UtilityType.WATER: SourceKind.UTILITY_WATER,
    UtilityType.ELECTRICITY: SourceKind.UTILITY_ELECTRICITY,
}


class WarningKind(str, Enum):
    PRICING_UNAVAILABLE = "pricing_unavailable"
    INCOMPLETE_READING = "incomplete_reading"
    MISSING_VILLAGE_CONTEXT = "missing_village_context"


@dataclass(frozen=True)
class BillingWarning:
    """A line item left out of totals, with the reason."""

    kind: WarningKind
    source_kind: SourceKind
    source_id: int
    apartment_id: int
    message: str

    @property
    def is_pending(self) -> bool:
        return self.kind is WarningKind.INCOMPLETE_READING


@dataclass(frozen=True)
class LedgerFilters:
    """Filters applied to inputs before aggregation.

    Date filters use each record's recognition date: payment date, service
    request creation date, utility reading end date. ``year`` takes precedence
    over ``date_from``/``date_to`` (both inclusive); ``before`` is an extra
    exclusive upper bound.
    """

    village_id: int | None = None
    user_type: UserType | None = None
    year: int | None = None
    date_from: date | None = None
    date_to: date | None = None
    before: date | None = None
    phase: int | None = None
    owner_id: int | None = None
    apartment_ids: frozenset[int] | None = None

    def replace(self, **changes) -> "LedgerFilters":
        return dataclasses.replace(self, **changes)

    def includes_apartment(self, apartment: Apartment) -> bool:
        if self.village_id is not None and apartment.village_id != self.village_id:
            return False
        if self.phase is not None and apartment.phase != self.phase:
            return False
        if self.owner_id is not None and apartment.owner_id != self.owner_id:
            return False
        if self.apartment_ids is not None and apartment.id not in self.apartment_ids:
            return False
        return True

    def includes_date(self, day: date) -> bool:
        if self.before is not None and day >= self.before:
            return False
        if self.year is not None:
            return day.year == self.year
        if self.date_from is not None and day < self.date_from:
            return False
        if self.date_to is not None and day > self.date_to:
            return False
        return True

    def includes_party(self, party: Party) -> bool:
        if self.user_type is None:
            return True
        return Party(party).value == UserType(self.user_type).value


@dataclass(frozen=True)
class LedgerReport:
    """Result of one aggregation call."""

    totals_by_apartment: Mapping[int, ApartmentLedgerTotals]
    grand_total: ApartmentLedgerTotals
    entries: tuple[LedgerEntry, ...] = ()
    warnings: tuple[BillingWarning, ...] = ()
    apartments: tuple[Apartment, ...] = field(default=())

    def entries_for(self, apartment_id: int) -> list[LedgerEntry]:
        return [e for e in self.entries if e.apartment_id == apartment_id]

    def warnings_for(self, apartment_id: int) -> list[BillingWarning]:
        return [w for w in self.warnings if w.apartment_id == apartment_id]


def entry_sort_key(entry: LedgerEntry):
    return (entry.date, entry.apartment_id, entry.source_kind.value, entry.source_id)


def summarize_entries(
    entries: Iterable[LedgerEntry], apartment_id: int | None = None
) -> ApartmentLedgerTotals:
    """Sum entries into requested/spent per responsible party and overall.

    Args:
        entries: Ledger entries (any order)
        apartment_id: Apartment the totals belong to (None for a grand total)

    Returns:
        ApartmentLedgerTotals with by_party sub-totals for every party
    """
    requested = {party: Money() for party in Party}
    spent = {party: Money() for party in Party}

    for entry in entries:
        bucket = spent if entry.is_spent else requested
        bucket[entry.responsible_party] = bucket[entry.responsible_party].add(
            entry.currency, entry.amount
        )

    return ApartmentLedgerTotals(
        apartment_id=apartment_id,
        total_requested=sum(requested.values(), Money()),
        total_spent=sum(spent.values(), Money()),
        by_party={party: PartyTotals(requested[party], spent[party]) for party in Party},
    )


class LedgerAggregator:
    """Build per-apartment, per-currency ledgers from raw billing events."""

    def __init__(
        self,
        resolver: PricingResolver | None = None,
        calculator: UtilityBillCalculator | None = None,
    ):
        self.resolver = resolver or PricingResolver()
        self.calculator = calculator or UtilityBillCalculator()

    def aggregate_snapshot(
        self, snapshot: BillingSnapshot, filters: LedgerFilters | None = None
    ) -> LedgerReport:
        """Aggregate a consistent snapshot (see aggregate)."""
        return self.aggregate(
            snapshot.apartments,
            snapshot.payments,
            snapshot.service_requests,
            snapshot.utility_readings,
            snapshot.villages_by_id,
            filters=filters,
            service_types_by_id=snapshot.service_types_by_id,
        )

    def aggregate(
        self,
        apartments: Iterable[Apartment],
        payments: Iterable[Payment],
        service_requests: Iterable[ServiceRequest],
        utility_readings: Iterable[UtilityReading],
        villages_by_id: Mapping[int, Village],
        filters: LedgerFilters | None = None,
        service_types_by_id: Mapping[int, ServiceType] | None = None,
    ) -> LedgerReport:
        """Aggregate raw events into per-apartment totals plus a grand total.

        Every apartment that passes the filters is present in the result, even
        with zero totals. Events of other apartments are ignored.

        Raises:
            BillingValidationError: On negative amounts, costs or readings
        """
        filters = filters or LedgerFilters()
        selected = sorted(
            (a for a in apartments if filters.includes_apartment(a)), key=lambda a: a.id
        )
        entries, warnings = self.build_entries(
            selected,
            payments,
            service_requests,
            utility_readings,
            villages_by_id,
            filters,
            service_types_by_id or {},
        )

        by_apartment: dict[int, list[LedgerEntry]] = {a.id: [] for a in selected}
        for entry in entries:
            by_apartment[entry.apartment_id].append(entry)

        totals = {
            apartment_id: summarize_entries(apartment_entries, apartment_id)
            for apartment_id, apartment_entries in by_apartment.items()
        }

        logger.debug(
            "Aggregated ledger: apartments=%d entries=%d warnings=%d",
            len(selected),
            len(entries),
            len(warnings),
        )

        return LedgerReport(
            totals_by_apartment=totals,
            grand_total=summarize_entries(entries),
            entries=tuple(entries),
            warnings=tuple(warnings),
            apartments=tuple(selected),
        )

    def build_entries(
        self,
        apartments: list[Apartment],
        payments: Iterable[Payment],
        service_requests: Iterable[ServiceRequest],
        utility_readings: Iterable[UtilityReading],
        villages_by_id: Mapping[int, Village],
        filters: LedgerFilters,
        service_types_by_id: Mapping[int, ServiceType],
    ) -> tuple[list[LedgerEntry], list[BillingWarning]]:
        """Turn filtered raw events into ledger entries and warnings (both sorted)."""
        apartments_by_id = {a.id: a for a in apartments}
        entries: list[LedgerEntry] = []
        warnings: list[BillingWarning] = []

        for payment in payments:
            if payment.apartment_id not in apartments_by_id:
                continue
            party = party_for_user_type(payment.user_type)
            if not (filters.includes_date(payment.date) and filters.includes_party(party)):
                continue
            entries.append(self._payment_entry(payment, party))

        for request in service_requests:
            apartment = apartments_by_id.get(request.apartment_id)
            if apartment is None:
                continue
            if not (
                filters.includes_date(request.date_created)
                and filters.includes_party(request.who_pays)
            ):
                continue
            village = self._village_for(apartment, villages_by_id)
            if village is None:
                warnings.append(
                    self._missing_village(apartment, SourceKind.SERVICE_REQUEST, request.id)
                )
                continue
            entry = self._service_request_entry(
                request, village, service_types_by_id.get(request.type_id), warnings
            )
            if entry is not None:
                entries.append(entry)

        for reading in utility_readings:
            apartment = apartments_by_id.get(reading.apartment_id)
            if apartment is None:
                continue
            if not (
                filters.includes_date(reading.end_date)
                and filters.includes_party(reading.who_pays)
            ):
                continue
            village = self._village_for(apartment, villages_by_id)
            if village is None:
                warnings.extend(
                    self._missing_village(apartment, source_kind, reading.id)
                    for source_kind in UTILITY_SOURCE_KINDS.values()
                )
                continue
            entries.extend(self._utility_entries(reading, village, warnings))

        entries.sort(key=entry_sort_key)
        warnings.sort(key=lambda w: (w.apartment_id, w.source_kind.value, w.source_id, w.kind.value))
        return entries, warnings

    @staticmethod
    def _village_for(apartment: Apartment, villages_by_id: Mapping[int, Village]) -> Village | None:
        if apartment.village_id is None:
            return None
        return villages_by_id.get(apartment.village_id)

    @staticmethod
    def _missing_village(apartment: Apartment, source_kind: SourceKind, source_id: int) -> BillingWarning:
        logger.warning(
            "Apartment %d references unknown village %s; %s %d excluded from totals",
            apartment.id,
            apartment.village_id,
            source_kind.value,
            source_id,
        )
        return BillingWarning(
            kind=WarningKind.MISSING_VILLAGE_CONTEXT,
            source_kind=source_kind,
            source_id=source_id,
            apartment_id=apartment.id,
            message=f"Village {apartment.village_id} not found for apartment {apartment.id}",
        )

    @staticmethod
    def _payment_entry(payment: Payment, party: Party) -> LedgerEntry:
        if payment.amount < ZERO:
            raise BillingValidationError(f"Payment {payment.id} has a negative amount")
        currency = Currency(payment.currency)
        return LedgerEntry(
            apartment_id=payment.apartment_id,
            source_kind=SourceKind.PAYMENT,
            source_id=payment.id,
            responsible_party=party,
            amount=Decimal(payment.amount),
            currency=currency,
            date=payment.date,
            booking_id=payment.booking_id,
            description=payment.description or f"Payment of {payment.amount} {currency.value}",
        )

    def _service_request_entry(
        self,
        request: ServiceRequest,
        village: Village,
        service_type: ServiceType | None,
        warnings: list[BillingWarning],
    ) -> LedgerEntry | None:
        if request.cost is not None and request.cost < ZERO:
            raise BillingValidationError(f"Service request {request.id} has a negative cost")
        if request.cost is not None and request.currency is None:
            logger.warning(
                "Service request %d has cost %s without a currency; excluded from totals",
                request.id,
                request.cost,
            )
            warnings.append(
                BillingWarning(
                    kind=WarningKind.PRICING_UNAVAILABLE,
                    source_kind=SourceKind.SERVICE_REQUEST,
                    source_id=request.id,
                    apartment_id=request.apartment_id,
                    message=f"Recorded cost {request.cost} has no currency",
                )
            )
            return None

        price = self.resolver.resolve(
            service_type, village.id, PriceOverride(request.cost, request.currency)
        )
        if isinstance(price, PriceUnavailable):
            logger.warning(
                "No price for service request %d (type %s, village %d)",
                request.id,
                request.type_id,
                village.id,
            )
            warnings.append(
                BillingWarning(
                    kind=WarningKind.PRICING_UNAVAILABLE,
                    source_kind=SourceKind.SERVICE_REQUEST,
                    source_id=request.id,
                    apartment_id=request.apartment_id,
                    message=f"No price available for service type {request.type_id}",
                )
            )
            return None
        if price.cost < ZERO:
            raise BillingValidationError(f"Service type {request.type_id} has a negative price")

        name = service_type.name if service_type and service_type.name else ""
        if name and request.notes:
            description = f"{name} - {request.notes}"
        elif name:
            description = name
        else:
            description = f"Service Request of {price.cost} {price.currency.value}"
        if price.is_fallback:
            description += " (fallback price)"

        return LedgerEntry(
            apartment_id=request.apartment_id,
            source_kind=SourceKind.SERVICE_REQUEST,
            source_id=request.id,
            responsible_party=Party(request.who_pays),
            amount=price.cost,
            currency=price.currency,
            date=request.date_created,
            booking_id=request.booking_id,
            description=description,
        )

    def _utility_entries(
        self, reading: UtilityReading, village: Village, warnings: list[BillingWarning]
    ) -> list[LedgerEntry]:
        entries = []
        for utility_type in (UtilityType.WATER, UtilityType.ELECTRICITY):
            source_kind = UTILITY_SOURCE_KINDS[utility_type]
            start, end = reading.pair(utility_type)
            result = self.calculator.calculate(utility_type, start, end, village)

            if isinstance(result, UtilityBill):
                entries.append(
                    LedgerEntry(
                        apartment_id=reading.apartment_id,
                        source_kind=source_kind,
                        source_id=reading.id,
                        responsible_party=Party(reading.who_pays),
                        amount=result.cost,
                        currency=result.currency,
                        date=reading.end_date,
                        booking_id=reading.booking_id,
                        description=(
                            f"{utility_type.value.capitalize()} {result.consumption} units"
                            f" ({Party(reading.who_pays).value})"
                        ),
                        consumption=result.consumption,
                    )
                )
            elif result is INCOMPLETE:
                logger.debug(
                    "Utility reading %d: %s pending (start=%s end=%s)",
                    reading.id,
                    utility_type.value,
                    start,
                    end,
                )
                warnings.append(
                    BillingWarning(
                        kind=WarningKind.INCOMPLETE_READING,
                        source_kind=source_kind,
                        source_id=reading.id,
                        apartment_id=reading.apartment_id,
                        message=f"{utility_type.value.capitalize()} reading incomplete",
                    )
                )
            else:
                logger.warning(
                    "Village %d has no %s unit price; utility reading %d excluded",
                    village.id,
                    utility_type.value,
                    reading.id,
                )
                warnings.append(
                    BillingWarning(
                        kind=WarningKind.PRICING_UNAVAILABLE,
                        source_kind=source_kind,
                        source_id=reading.id,
                        apartment_id=reading.apartment_id,
                        message=f"Village {village.id} has no {utility_type.value} unit price",
                    )
                )
        return entries


__all__ = [
    "WarningKind",
    "BillingWarning",
    "LedgerFilters",
    "LedgerReport",
    "LedgerAggregator",
    "summarize_entries",
    "entry_sort_key",
]
