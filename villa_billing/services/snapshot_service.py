"""Load a consistent billing snapshot from the database."""

import logging
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from villa_billing.models.apartment import Apartment
from villa_billing.models.booking import Booking
from villa_billing.models.payment import Payment
from villa_billing.models.service_request import ServiceRequest
from villa_billing.models.service_type import ServiceType
from villa_billing.models.utility_reading import UtilityReading
from villa_billing.models.village import Village
from villa_billing.services import records

logger = logging.getLogger(__name__)


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


class SnapshotService:
    """Read every collection the billing engine needs in one session.

    All queries run inside the same session so the engine never mixes rows
    fetched at different points in time.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def load(self, apartment_ids: set[int] | None = None) -> records.BillingSnapshot:
        """Build a BillingSnapshot.

        Args:
            apartment_ids: Restrict event collections to these apartments
                (villages and service types are always loaded in full)

        Returns:
            Immutable BillingSnapshot
        """
        villages = self.db.execute(select(Village).order_by(Village.id)).scalars().all()
        service_types = (
            self.db.execute(
                select(ServiceType)
                .options(selectinload(ServiceType.village_prices))
                .order_by(ServiceType.id)
            )
            .scalars()
            .all()
        )

        def scoped(model):
            stmt = select(model).order_by(model.id)
            if apartment_ids is not None:
                column = model.id if model is Apartment else model.apartment_id
                stmt = stmt.where(column.in_(apartment_ids))
            return self.db.execute(stmt).scalars().all()

        apartments = scoped(Apartment)
        bookings = scoped(Booking)
        payments = scoped(Payment)
        service_requests = scoped(ServiceRequest)
        utility_readings = scoped(UtilityReading)

        logger.debug(
            "Loaded snapshot: apartments=%d payments=%d service_requests=%d utility_readings=%d",
            len(apartments),
            len(payments),
            len(service_requests),
            len(utility_readings),
        )

        return records.BillingSnapshot(
            apartments=tuple(self._apartment(a) for a in apartments),
            villages=tuple(self._village(v) for v in villages),
            bookings=tuple(self._booking(b) for b in bookings),
            payments=tuple(self._payment(p) for p in payments),
            service_types=tuple(self._service_type(st) for st in service_types),
            service_requests=tuple(self._service_request(sr) for sr in service_requests),
            utility_readings=tuple(self._utility_reading(ur) for ur in utility_readings),
        )

    def booking(self, booking_id: int) -> records.Booking | None:
        row = self.db.get(Booking, booking_id)
        return self._booking(row) if row is not None else None

    @staticmethod
    def _village(row: Village) -> records.Village:
        return records.Village(
            id=row.id,
            water_unit_price=row.water_price,
            electricity_unit_price=row.electricity_price,
            phase_count=row.phases,
            name=row.name,
            utility_currency=row.utility_currency or records.Currency.EGP,
        )

    @staticmethod
    def _apartment(row: Apartment) -> records.Apartment:
        return records.Apartment(
            id=row.id,
            village_id=row.village_id,
            owner_id=row.owner_id,
            name=row.name,
            phase=row.phase,
        )

    @staticmethod
    def _booking(row: Booking) -> records.Booking:
        return records.Booking(
            id=row.id,
            apartment_id=row.apartment_id,
            user_id=row.user_id,
            user_type=row.user_type,
            arrival_date=_as_date(row.arrival_date),
            leaving_date=_as_date(row.leaving_date),
        )

    @staticmethod
    def _payment(row: Payment) -> records.Payment:
        return records.Payment(
            id=row.id,
            apartment_id=row.apartment_id,
            amount=row.amount,
            currency=row.currency,
            date=_as_date(row.date),
            user_type=row.user_type,
            booking_id=row.booking_id,
            description=row.description,
        )

    @staticmethod
    def _service_type(row: ServiceType) -> records.ServiceType:
        return records.ServiceType(
            id=row.id,
            name=row.name,
            village_prices=tuple(
                records.VillagePrice(village_id=vp.village_id, cost=vp.cost, currency=vp.currency)
                for vp in row.village_prices
            ),
            cost=row.cost,
            currency=row.currency,
        )

    @staticmethod
    def _service_request(row: ServiceRequest) -> records.ServiceRequest:
        return records.ServiceRequest(
            id=row.id,
            type_id=row.type_id,
            apartment_id=row.apartment_id,
            who_pays=row.who_pays,
            date_created=_as_date(row.date_created),
            cost=row.cost,
            currency=row.currency,
            booking_id=row.booking_id,
            notes=row.notes,
        )

    @staticmethod
    def _utility_reading(row: UtilityReading) -> records.UtilityReading:
        return records.UtilityReading(
            id=row.id,
            apartment_id=row.apartment_id,
            who_pays=row.who_pays,
            start_date=_as_date(row.start_date),
            end_date=_as_date(row.end_date),
            water_start=row.water_start_reading,
            water_end=row.water_end_reading,
            electricity_start=row.electricity_start_reading,
            electricity_end=row.electricity_end_reading,
            booking_id=row.booking_id,
        )


__all__ = ["SnapshotService"]
