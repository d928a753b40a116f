"""Renter attribution: the part of an apartment ledger belonging to its current renter."""

import logging
from datetime import date
from typing import Callable, Iterable, NamedTuple

from villa_billing.services.ledger_service import summarize_entries
from villa_billing.services.records import (
    Booking,
    LedgerEntry,
    Money,
    Party,
    UserType,
)

logger = logging.getLogger(__name__)

BookingPolicy = Callable[[list[Booking], date], Booking | None]


class RenterSummary(NamedTuple):
    """Totals restricted to one renter booking."""

    booking: Booking
    total_requested: Money
    total_spent: Money
    net: Money
    entries: list[LedgerEntry]


def latest_overlapping_else_most_recent(bookings: list[Booking], today: date) -> Booking | None:
    """Pick the renter booking that counts as "current".

    1. Bookings overlapping today: latest arrival_date wins.
    2. Otherwise past bookings: latest leaving_date, then latest arrival_date.
    3. Otherwise (only future bookings): the earliest upcoming arrival.

    Remaining ties go to the highest booking id so the choice never depends
    on input order.
    """
    if not bookings:
        return None

    current = [b for b in bookings if b.overlaps(today)]
    if current:
        return max(current, key=lambda b: (b.arrival_date, b.id))

    past = [b for b in bookings if b.leaving_date < today]
    if past:
        return max(past, key=lambda b: (b.leaving_date, b.arrival_date, b.id))

    return min(bookings, key=lambda b: (b.arrival_date, -b.id))


class RenterAttributionResolver:
    """Isolate renter totals for an apartment, separate from owner/company totals."""

    def __init__(self, policy: BookingPolicy = latest_overlapping_else_most_recent):
        self.policy = policy

    def current_booking(
        self, apartment_id: int, bookings: Iterable[Booking], today: date | None = None
    ) -> Booking | None:
        renter_bookings = [
            b
            for b in bookings
            if b.apartment_id == apartment_id and UserType(b.user_type) is UserType.RENTER
        ]
        return self.policy(renter_bookings, today or date.today())

    def renter_summary(
        self,
        apartment_id: int,
        bookings: Iterable[Booking],
        ledger_entries: Iterable[LedgerEntry],
        today: date | None = None,
    ) -> RenterSummary | None:
        """Recompute totals for the current renter booking of an apartment.

        Entries count when their booking_id matches the selected booking, or
        when they carry no booking but the renter is the responsible party.

        Returns:
            RenterSummary, or None if the apartment has no renter booking
        """
        booking = self.current_booking(apartment_id, bookings, today)
        if booking is None:
            return None

        entries = [
            e
            for e in ledger_entries
            if e.apartment_id == apartment_id
            and (
                e.booking_id == booking.id
                or (e.booking_id is None and e.responsible_party is Party.RENTER)
            )
        ]
        totals = summarize_entries(entries, apartment_id)

        logger.debug(
            "Renter summary: apartment_id=%d booking_id=%d entries=%d",
            apartment_id,
            booking.id,
            len(entries),
        )

        return RenterSummary(
            booking=booking,
            total_requested=totals.total_requested,
            total_spent=totals.total_spent,
            net=totals.net,
            entries=entries,
        )


__all__ = [
    "RenterSummary",
    "RenterAttributionResolver",
    "latest_overlapping_else_most_recent",
]
