"""Invoice views built on the billing engine: overview, drill-down, rollups."""

import logging
import math
from datetime import date
from typing import NamedTuple

from sqlalchemy.orm import Session

from villa_billing.services.ledger_service import (
    BillingWarning,
    LedgerAggregator,
    LedgerFilters,
    entry_sort_key,
)
from villa_billing.services.period_service import PeriodRollup, PeriodTotals
from villa_billing.services.pricing_service import (
    PriceOverride,
    PriceUnavailable,
    PricingResolver,
    ResolvedPrice,
)
from villa_billing.services.records import (
    Apartment,
    ApartmentLedgerTotals,
    BillingSnapshot,
    Booking,
    LedgerEntry,
)
from villa_billing.services.renter_service import RenterAttributionResolver, RenterSummary
from villa_billing.services.snapshot_service import SnapshotService

logger = logging.getLogger(__name__)


class Pagination(NamedTuple):
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class SummaryRow(NamedTuple):
    apartment: Apartment
    totals: ApartmentLedgerTotals


class InvoiceSummary(NamedTuple):
    """Overview: one page of apartment rows, totals over the full filtered set."""

    rows: list[SummaryRow]
    totals: ApartmentLedgerTotals
    pagination: Pagination
    warnings: list[BillingWarning]


class ApartmentInvoices(NamedTuple):
    """Single-apartment drill-down, newest entries first."""

    apartment: Apartment
    entries: list[LedgerEntry]
    totals: ApartmentLedgerTotals
    warnings: list[BillingWarning]


class BookingInvoices(NamedTuple):
    """Everything charged or paid under one booking, newest first."""

    booking: Booking
    apartment: Apartment | None
    entries: list[LedgerEntry]
    totals: ApartmentLedgerTotals
    warnings: list[BillingWarning]


class OwnerInvoices(NamedTuple):
    owner_id: int
    apartments: list[Apartment]
    entries: list[LedgerEntry]
    totals: ApartmentLedgerTotals
    warnings: list[BillingWarning]


def newest_first(entries) -> list[LedgerEntry]:
    return sorted(entries, key=entry_sort_key, reverse=True)


class InvoiceService:
    """Serve invoice views from a snapshot loaded through the given session.

    Each call loads its own snapshot, so a view is always computed from
    collections fetched together.
    """

    def __init__(
        self,
        db_session: Session,
        aggregator: LedgerAggregator | None = None,
        renter_resolver: RenterAttributionResolver | None = None,
    ):
        self.db = db_session
        self.aggregator = aggregator or LedgerAggregator()
        self.rollup = PeriodRollup(self.aggregator)
        self.renter_resolver = renter_resolver or RenterAttributionResolver()

    def _snapshot(self, apartment_ids: set[int] | None = None) -> BillingSnapshot:
        return SnapshotService(self.db).load(apartment_ids)

    def summary(
        self, filters: LedgerFilters | None = None, page: int = 1, limit: int = 50
    ) -> InvoiceSummary:
        """Per-apartment totals for one page plus totals over every filtered apartment.

        Args:
            filters: Ledger filters
            page: 1-based page number
            limit: Rows per page

        Returns:
            InvoiceSummary
        """
        page = max(page, 1)
        limit = max(limit, 1)
        report = self.aggregator.aggregate_snapshot(self._snapshot(), filters)

        offset = (page - 1) * limit
        page_apartments = report.apartments[offset : offset + limit]
        rows = [SummaryRow(a, report.totals_by_apartment[a.id]) for a in page_apartments]

        logger.info(
            "Invoices summary: apartments=%d page=%d limit=%d warnings=%d",
            len(report.apartments),
            page,
            limit,
            len(report.warnings),
        )

        return InvoiceSummary(
            rows=rows,
            totals=report.grand_total,
            pagination=Pagination(page=page, limit=limit, total=len(report.apartments)),
            warnings=list(report.warnings),
        )

    def apartment_invoices(
        self, apartment_id: int, filters: LedgerFilters | None = None
    ) -> ApartmentInvoices | None:
        """Line items and totals for one apartment (None if it does not exist)."""
        snapshot = self._snapshot({apartment_id})
        apartment = snapshot.apartment(apartment_id)
        if apartment is None:
            return None

        filters = (filters or LedgerFilters()).replace(
            village_id=None, phase=None, owner_id=None, apartment_ids=frozenset({apartment_id})
        )
        report = self.aggregator.aggregate_snapshot(snapshot, filters)

        return ApartmentInvoices(
            apartment=apartment,
            entries=newest_first(report.entries),
            totals=report.totals_by_apartment[apartment_id],
            warnings=list(report.warnings),
        )

    def owner_invoices(self, owner_id: int, filters: LedgerFilters | None = None) -> OwnerInvoices:
        """Line items and totals across every apartment of one owner."""
        filters = (filters or LedgerFilters()).replace(owner_id=owner_id)
        report = self.aggregator.aggregate_snapshot(self._snapshot(), filters)

        return OwnerInvoices(
            owner_id=owner_id,
            apartments=list(report.apartments),
            entries=newest_first(report.entries),
            totals=report.grand_total,
            warnings=list(report.warnings),
        )

    def booking_invoices(
        self, booking_id: int, filters: LedgerFilters | None = None
    ) -> BookingInvoices | None:
        """Payments, service requests and utility bills linked to one booking.

        Apartment-level filters are ignored; date and user_type filters apply.

        Returns:
            BookingInvoices, or None if the booking does not exist
        """
        snapshot_service = SnapshotService(self.db)
        booking = snapshot_service.booking(booking_id)
        if booking is None:
            return None

        snapshot = snapshot_service.load({booking.apartment_id})
        filters = (filters or LedgerFilters()).replace(
            village_id=None,
            phase=None,
            owner_id=None,
            apartment_ids=frozenset({booking.apartment_id}),
        )
        report = self.aggregator.aggregate(
            snapshot.apartments,
            [p for p in snapshot.payments if p.booking_id == booking_id],
            [sr for sr in snapshot.service_requests if sr.booking_id == booking_id],
            [ur for ur in snapshot.utility_readings if ur.booking_id == booking_id],
            snapshot.villages_by_id,
            filters=filters,
            service_types_by_id=snapshot.service_types_by_id,
        )

        logger.debug(
            "Booking invoices: booking_id=%d entries=%d warnings=%d",
            booking_id,
            len(report.entries),
            len(report.warnings),
        )

        return BookingInvoices(
            booking=booking,
            apartment=snapshot.apartment(booking.apartment_id),
            entries=newest_first(report.entries),
            totals=report.totals_by_apartment.get(booking.apartment_id, report.grand_total),
            warnings=list(report.warnings),
        )

    def renter_summary(
        self, apartment_id: int, filters: LedgerFilters | None = None, today: date | None = None
    ) -> tuple[Apartment | None, RenterSummary | None]:
        """Current renter's share of an apartment ledger.

        Returns:
            (apartment, summary); apartment is None when unknown, summary is
            None when the apartment has no renter booking
        """
        snapshot = self._snapshot({apartment_id})
        apartment = snapshot.apartment(apartment_id)
        if apartment is None:
            return None, None

        filters = (filters or LedgerFilters()).replace(
            user_type=None,
            village_id=None,
            phase=None,
            owner_id=None,
            apartment_ids=frozenset({apartment_id}),
        )
        report = self.aggregator.aggregate_snapshot(snapshot, filters)
        summary = self.renter_resolver.renter_summary(
            apartment_id, snapshot.bookings, report.entries, today
        )
        return apartment, summary

    def previous_years(self, before_year: int, filters: LedgerFilters | None = None) -> PeriodTotals:
        return self.rollup.previous_years_total(before_year, self._snapshot(), filters)

    def by_year(self, filters: LedgerFilters | None = None) -> dict[int, ApartmentLedgerTotals]:
        return self.rollup.by_year(self._snapshot(), filters)

    def resolve_service_price(
        self,
        service_type_id: int,
        village_id: int | None,
        override: PriceOverride | None = None,
        resolver: PricingResolver | None = None,
    ) -> tuple[bool, ResolvedPrice | PriceUnavailable]:
        """Resolve a service type price for a village.

        Returns:
            (found, price); found is False when the service type does not exist
        """
        snapshot = self._snapshot(set())
        service_type = snapshot.service_types_by_id.get(service_type_id)
        if service_type is None:
            return False, PriceUnavailable()
        return True, (resolver or PricingResolver()).resolve(service_type, village_id, override)


__all__ = [
    "Pagination",
    "SummaryRow",
    "InvoiceSummary",
    "ApartmentInvoices",
    "OwnerInvoices",
    "BookingInvoices",
    "InvoiceService",
]
