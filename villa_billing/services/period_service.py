"""Period rollups: ledger totals by recognition year and carry-forward from earlier years."""

import logging
from datetime import date
from typing import NamedTuple

from villa_billing.services.ledger_service import (
    LedgerAggregator,
    LedgerFilters,
    summarize_entries,
)
from villa_billing.services.records import ApartmentLedgerTotals, BillingSnapshot, Money

logger = logging.getLogger(__name__)


class PeriodTotals(NamedTuple):
    requested: Money
    spent: Money
    net: Money


class PeriodRollup:
    """Partition ledgers by year and compute "everything before year Y".

    Both operations run the same aggregation, so previous_years_total(Y)
    always equals the sum of by_year(y) for every y < Y.
    """

    def __init__(self, aggregator: LedgerAggregator | None = None):
        self.aggregator = aggregator or LedgerAggregator()

    def by_year(
        self, snapshot: BillingSnapshot, filters: LedgerFilters | None = None
    ) -> dict[int, ApartmentLedgerTotals]:
        """Grand totals per recognition year, ordered by year.

        A ``year`` filter is honoured, so the result then has at most one key.
        """
        report = self.aggregator.aggregate_snapshot(snapshot, filters)

        grouped: dict[int, list] = {}
        for entry in report.entries:
            grouped.setdefault(entry.date.year, []).append(entry)

        return {year: summarize_entries(grouped[year]) for year in sorted(grouped)}

    def apartment_by_year(
        self,
        apartment_id: int,
        snapshot: BillingSnapshot,
        filters: LedgerFilters | None = None,
    ) -> dict[int, ApartmentLedgerTotals]:
        """Per-year totals for a single apartment."""
        filters = (filters or LedgerFilters()).replace(apartment_ids=frozenset({apartment_id}))
        return {
            year: ApartmentLedgerTotals(
                apartment_id=apartment_id,
                total_requested=totals.total_requested,
                total_spent=totals.total_spent,
                by_party=totals.by_party,
            )
            for year, totals in self.by_year(snapshot, filters).items()
        }

    def previous_years_total(
        self,
        before_year: int,
        snapshot: BillingSnapshot,
        filters: LedgerFilters | None = None,
    ) -> PeriodTotals:
        """Totals for all entries dated strictly before Jan 1 of before_year.

        Year and date-range filters are dropped; the other filters still apply.
        """
        filters = (filters or LedgerFilters()).replace(
            year=None, date_from=None, date_to=None, before=date(before_year, 1, 1)
        )
        grand = self.aggregator.aggregate_snapshot(snapshot, filters).grand_total

        logger.debug(
            "Previous years total before %d: requested=%s spent=%s",
            before_year,
            grand.total_requested,
            grand.total_spent,
        )

        return PeriodTotals(
            requested=grand.total_requested,
            spent=grand.total_spent,
            net=grand.net,
        )


__all__ = ["PeriodTotals", "PeriodRollup"]
