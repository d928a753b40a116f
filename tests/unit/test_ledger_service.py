"""Unit tests for ledger aggregation."""

import random
from datetime import date
from decimal import Decimal

import pytest

from villa_billing.services.ledger_service import (
    LedgerAggregator,
    LedgerFilters,
    WarningKind,
    summarize_entries,
)
from villa_billing.services.records import (
    Apartment,
    BillingValidationError,
    Currency,
    Money,
    Party,
    Payment,
    ServiceRequest,
    ServiceType,
    SourceKind,
    UserType,
    UtilityReading,
    VillagePrice,
)

D = Decimal


@pytest.fixture
def aggregator():
    return LedgerAggregator()


class TestAggregateTotals:
    """Totals over the shared sample snapshot."""

    def test_apartment_totals(self, aggregator, sample_snapshot):
        report = aggregator.aggregate_snapshot(sample_snapshot)
        totals = report.totals_by_apartment

        assert totals[10].total_requested == Money(D("592.00"), D("0"))
        assert totals[10].total_spent == Money(D("1000"), D("50"))
        assert totals[10].net == Money(D("-408.00"), D("-50"))

        assert totals[11].total_requested == Money(D("50"), D("0"))
        assert totals[11].net == Money(D("-250"), D("0"))

        assert totals[20].total_requested == Money(D("241.00"), D("20"))
        assert totals[20].total_spent.is_zero()

    def test_missing_village_keeps_payments(self, aggregator, sample_snapshot):
        report = aggregator.aggregate_snapshot(sample_snapshot)

        assert report.totals_by_apartment[30].total_requested.is_zero()
        assert report.totals_by_apartment[30].total_spent == Money(D("0"), D("80"))

        missing = [w for w in report.warnings if w.kind is WarningKind.MISSING_VILLAGE_CONTEXT]
        assert [(w.apartment_id, w.source_id) for w in missing] == [(30, 8)]

    def test_grand_total_is_sum_of_apartments(self, aggregator, sample_snapshot):
        report = aggregator.aggregate_snapshot(sample_snapshot)
        summed = sum((t.total_requested for t in report.totals_by_apartment.values()), Money())

        assert report.grand_total.apartment_id is None
        assert report.grand_total.total_requested == summed == Money(D("883.00"), D("20"))
        assert report.grand_total.total_spent == Money(D("1300"), D("130"))
        assert report.grand_total.net == Money(D("-417.00"), D("-110"))

    def test_party_sub_totals(self, aggregator, sample_snapshot):
        totals = aggregator.aggregate_snapshot(sample_snapshot).totals_by_apartment

        assert totals[10].party(Party.OWNER).requested == Money(D("327.50"), D("0"))
        assert totals[10].party(Party.RENTER).requested == Money(D("264.50"), D("0"))
        assert totals[10].party(Party.RENTER).spent == Money(D("0"), D("50"))
        assert totals[20].party(Party.COMPANY).requested == Money(D("0"), D("20"))

        # Sub-totals add back up to the apartment total
        for apartment_totals in totals.values():
            combined = sum((p.requested for p in apartment_totals.by_party.values()), Money())
            assert combined == apartment_totals.total_requested

    def test_warnings(self, aggregator, sample_snapshot):
        report = aggregator.aggregate_snapshot(sample_snapshot)
        found = {(w.kind, w.source_kind, w.source_id) for w in report.warnings}

        assert found == {
            (WarningKind.PRICING_UNAVAILABLE, SourceKind.SERVICE_REQUEST, 6),
            (WarningKind.INCOMPLETE_READING, SourceKind.UTILITY_ELECTRICITY, 2),
            (WarningKind.INCOMPLETE_READING, SourceKind.UTILITY_WATER, 3),
            (WarningKind.MISSING_VILLAGE_CONTEXT, SourceKind.SERVICE_REQUEST, 8),
        }
        assert sum(w.is_pending for w in report.warnings) == 2

    def test_every_filtered_apartment_present(self, aggregator, sample_snapshot):
        report = aggregator.aggregate_snapshot(sample_snapshot)

        assert list(report.totals_by_apartment) == [10, 11, 20, 30]

    def test_order_independent(self, aggregator, sample_snapshot, villages):
        expected = aggregator.aggregate_snapshot(sample_snapshot)
        service_types = {st.id: st for st in sample_snapshot.service_types}

        rng = random.Random(42)
        for _ in range(5):
            payments = list(sample_snapshot.payments)
            requests = list(sample_snapshot.service_requests)
            readings = list(sample_snapshot.utility_readings)
            apartments = list(sample_snapshot.apartments)
            for items in (payments, requests, readings, apartments):
                rng.shuffle(items)

            report = aggregator.aggregate(
                apartments, payments, requests, readings, villages, service_types_by_id=service_types
            )

            assert report.totals_by_apartment == expected.totals_by_apartment
            assert report.grand_total == expected.grand_total
            assert report.entries == expected.entries
            assert report.warnings == expected.warnings


class TestEntries:
    def test_service_request_descriptions(self, aggregator, sample_snapshot):
        entries = {
            e.source_id: e
            for e in aggregator.aggregate_snapshot(sample_snapshot).entries
            if e.source_kind is SourceKind.SERVICE_REQUEST
        }

        assert entries[1].description == "Pool Cleaning"
        assert entries[2].description == "Pool Cleaning (fallback price)"
        assert entries[2].amount == D("200")
        assert entries[7].amount == D("99.50")

    def test_utility_entries_split_by_type(self, aggregator, sample_snapshot):
        entries = [
            e for e in aggregator.aggregate_snapshot(sample_snapshot).entries if e.source_id == 1
            and e.source_kind in (SourceKind.UTILITY_WATER, SourceKind.UTILITY_ELECTRICITY)
        ]

        assert [(e.source_kind, e.amount, e.consumption) for e in entries] == [
            (SourceKind.UTILITY_ELECTRICITY, D("90.00"), D("60")),
            (SourceKind.UTILITY_WATER, D("37.50"), D("50")),
        ]
        assert all(e.date == date(2023, 12, 31) for e in entries)
        assert entries[1].entry_id == "utility_water_1"

    def test_payment_without_user_type_is_owner(self, aggregator, sample_snapshot):
        payment = next(
            e
            for e in aggregator.aggregate_snapshot(sample_snapshot).entries
            if e.source_kind is SourceKind.PAYMENT and e.source_id == 3
        )

        assert payment.responsible_party is Party.OWNER
        assert payment.is_spent
        assert payment.entry_id == "payment_3"


class TestIncompleteInputs:
    def test_cost_without_currency_is_not_repriced(self, aggregator, villages):
        apartments = [Apartment(id=1, village_id=1, owner_id=5)]
        service_types = {
            1: ServiceType(
                id=1,
                name="Pool Cleaning",
                village_prices=(VillagePrice(village_id=1, cost=D("200"), currency=Currency.EGP),),
            )
        }
        requests = [ServiceRequest(1, 1, 1, Party.OWNER, date(2024, 1, 3), cost=D("75"))]

        report = aggregator.aggregate(
            apartments, [], requests, [], villages, service_types_by_id=service_types
        )

        assert report.entries == ()
        assert report.totals_by_apartment[1].total_requested.is_zero()
        assert [(w.kind, w.source_id) for w in report.warnings] == [
            (WarningKind.PRICING_UNAVAILABLE, 1)
        ]

    def test_currency_without_cost_uses_service_price(self, aggregator, villages):
        apartments = [Apartment(id=1, village_id=1, owner_id=5)]
        service_types = {1: ServiceType(id=1, name="Gardening", cost=D("50"), currency=Currency.EGP)}
        requests = [
            ServiceRequest(1, 1, 1, Party.OWNER, date(2024, 1, 3), currency=Currency.GBP)
        ]

        report = aggregator.aggregate(
            apartments, [], requests, [], villages, service_types_by_id=service_types
        )

        assert report.totals_by_apartment[1].total_requested == Money(D("50"), D("0"))

    def test_missing_village_warns_per_utility(self, aggregator, villages):
        apartments = [Apartment(id=1, village_id=42, owner_id=5)]
        readings = [
            UtilityReading(1, 1, Party.OWNER, date(2024, 1, 1), date(2024, 1, 31),
                           water_start=D("1"), water_end=D("4"),
                           electricity_start=D("10"), electricity_end=D("20"))
        ]

        report = aggregator.aggregate(apartments, [], [], readings, villages)

        assert {(w.kind, w.source_kind) for w in report.warnings} == {
            (WarningKind.MISSING_VILLAGE_CONTEXT, SourceKind.UTILITY_WATER),
            (WarningKind.MISSING_VILLAGE_CONTEXT, SourceKind.UTILITY_ELECTRICITY),
        }
        assert report.entries == ()


class TestFilters:
    def test_village_filter(self, aggregator, sample_snapshot):
        report = aggregator.aggregate_snapshot(sample_snapshot, LedgerFilters(village_id=1))

        assert set(report.totals_by_apartment) == {10, 11}
        assert report.grand_total.total_requested == Money(D("642.00"), D("0"))
        assert report.grand_total.total_spent == Money(D("1300"), D("50"))

    def test_phase_and_owner_filters(self, aggregator, sample_snapshot):
        by_phase = aggregator.aggregate_snapshot(sample_snapshot, LedgerFilters(phase=2))
        by_owner = aggregator.aggregate_snapshot(sample_snapshot, LedgerFilters(owner_id=100))

        assert list(by_phase.totals_by_apartment) == [11]
        assert list(by_owner.totals_by_apartment) == [10, 20]

    def test_user_type_renter(self, aggregator, sample_snapshot):
        report = aggregator.aggregate_snapshot(
            sample_snapshot, LedgerFilters(user_type=UserType.RENTER)
        )
        totals = report.totals_by_apartment

        assert totals[10].total_requested == Money(D("264.50"), D("0"))
        assert totals[10].total_spent == Money(D("0"), D("50"))
        # company and owner charges drop out
        assert totals[20].total_requested.is_zero()
        assert totals[11].total_spent.is_zero()

    def test_year_filter(self, aggregator, sample_snapshot):
        report = aggregator.aggregate_snapshot(sample_snapshot, LedgerFilters(year=2023))

        assert report.grand_total.total_requested == Money(D("327.50"), D("0"))
        assert report.grand_total.total_spent == Money(D("1000"), D("0"))

    def test_year_wins_over_date_range(self, aggregator, sample_snapshot):
        filters = LedgerFilters(year=2023, date_from=date(2024, 1, 1), date_to=date(2024, 12, 31))
        report = aggregator.aggregate_snapshot(sample_snapshot, filters)

        assert report.grand_total.total_spent == Money(D("1000"), D("0"))

    def test_date_range_is_inclusive_and_uses_reading_end_date(self, aggregator, sample_snapshot):
        filters = LedgerFilters(date_from=date(2024, 2, 10), date_to=date(2024, 2, 28))
        report = aggregator.aggregate_snapshot(sample_snapshot, filters)

        assert report.totals_by_apartment[10].total_requested == Money(D("165.00"), D("0"))
        assert report.totals_by_apartment[10].total_spent == Money(D("0"), D("50"))

    def test_before_is_exclusive(self, aggregator, sample_snapshot):
        report = aggregator.aggregate_snapshot(sample_snapshot, LedgerFilters(before=date(2023, 12, 31)))

        assert report.grand_total.total_requested == Money(D("200"), D("0"))


class TestCurrencyIsolation:
    def test_gbp_payments_and_egp_requests_never_mix(self, aggregator, villages):
        apartments = [Apartment(id=1, village_id=1, owner_id=5)]
        payments = [
            Payment(1, 1, D("70"), Currency.GBP, date(2024, 1, 1), UserType.OWNER),
            Payment(2, 1, D("30"), Currency.GBP, date(2024, 1, 2), UserType.OWNER),
        ]
        requests = [
            ServiceRequest(1, None, 1, Party.OWNER, date(2024, 1, 3), cost=D("500"), currency=Currency.EGP)
        ]

        totals = aggregator.aggregate(apartments, payments, requests, [], villages).totals_by_apartment[1]

        assert totals.net.egp == totals.total_requested.egp == D("500")
        assert totals.net.gbp == -totals.total_spent.gbp == D("-100")
        assert totals.total_requested.gbp == D("0")
        assert totals.total_spent.egp == D("0")


class TestValidation:
    def test_negative_payment_rejected(self, aggregator, villages):
        apartments = [Apartment(id=1, village_id=1, owner_id=5)]
        payments = [Payment(1, 1, D("-1"), Currency.EGP, date(2024, 1, 1))]

        with pytest.raises(BillingValidationError):
            aggregator.aggregate(apartments, payments, [], [], villages)

    def test_negative_service_cost_rejected(self, aggregator, villages):
        apartments = [Apartment(id=1, village_id=1, owner_id=5)]
        requests = [
            ServiceRequest(1, None, 1, Party.OWNER, date(2024, 1, 3), cost=D("-5"), currency=Currency.EGP)
        ]

        with pytest.raises(BillingValidationError):
            aggregator.aggregate(apartments, [], requests, [], villages)

    def test_negative_reading_rejected(self, aggregator, villages):
        apartments = [Apartment(id=1, village_id=1, owner_id=5)]
        readings = [
            UtilityReading(1, 1, Party.OWNER, date(2024, 1, 1), date(2024, 1, 31),
                           water_start=D("-3"), water_end=D("4"))
        ]

        with pytest.raises(BillingValidationError):
            aggregator.aggregate(apartments, [], [], readings, villages)


def test_summarize_empty():
    totals = summarize_entries([])

    assert totals.total_requested.is_zero()
    assert totals.total_spent.is_zero()
    assert set(totals.by_party) == set(Party)
