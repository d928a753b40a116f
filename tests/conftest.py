"""Pytest configuration and shared fixtures."""

import os

# Set test database URL BEFORE any imports from villa_billing
# This ensures the SessionLocal and engine use an in-memory database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from villa_billing.services.records import (  # noqa: E402
    Apartment,
    BillingSnapshot,
    Booking,
    Currency,
    Party,
    Payment,
    ServiceRequest,
    ServiceType,
    UserType,
    UtilityReading,
    Village,
    VillagePrice,
)

D = Decimal

SEA_VIEW = Village(
    id=1, name="Sea View", water_unit_price=D("0.75"), electricity_unit_price=D("1.5"), phase_count=2
)
PALM = Village(
    id=2, name="Palm", water_unit_price=D("1.00"), electricity_unit_price=D("2.00"), phase_count=1
)


@pytest.fixture
def villages():
    return {SEA_VIEW.id: SEA_VIEW, PALM.id: PALM}


@pytest.fixture
def sample_snapshot() -> BillingSnapshot:
    """Four apartments across two villages plus one pointing at a missing village.

    Expected totals (no filters):
      apt 10: requested 592.00 EGP, spent 1000 EGP + 50 GBP
      apt 11: requested 50.00 EGP, spent 300 EGP
      apt 20: requested 241.00 EGP + 20 GBP, spent nothing
      apt 30: requested nothing (unknown village), spent 80 GBP
    """
    apartments = (
        Apartment(id=10, village_id=1, owner_id=100, name="A-10", phase=1),
        Apartment(id=11, village_id=1, owner_id=101, name="A-11", phase=2),
        Apartment(id=20, village_id=2, owner_id=100, name="B-20", phase=1),
        Apartment(id=30, village_id=99, owner_id=102, name="X-30", phase=1),
    )
    service_types = (
        ServiceType(
            id=1,
            name="Pool Cleaning",
            village_prices=(VillagePrice(village_id=1, cost=D("200"), currency=Currency.EGP),),
        ),
        ServiceType(
            id=2,
            name="Cleaning",
            village_prices=(
                VillagePrice(village_id=1, cost=D("150"), currency=Currency.EGP),
                VillagePrice(village_id=2, cost=D("20"), currency=Currency.GBP),
            ),
        ),
        ServiceType(id=3, name="Gardening", cost=D("50"), currency=Currency.EGP),
        ServiceType(id=4, name="Unpriced"),
    )
    bookings = (
        Booking(501, 10, 900, UserType.RENTER, date(2024, 2, 1), date(2024, 2, 29)),
        Booking(502, 10, 901, UserType.RENTER, date(2023, 7, 1), date(2023, 7, 15)),
        Booking(503, 10, 100, UserType.OWNER, date(2024, 8, 1), date(2024, 8, 10)),
        Booking(504, 20, 100, UserType.OWNER, date(2024, 1, 1), date(2024, 1, 20)),
    )
    payments = (
        Payment(1, 10, D("1000"), Currency.EGP, date(2023, 3, 1), UserType.OWNER),
        Payment(2, 10, D("50"), Currency.GBP, date(2024, 2, 10), UserType.RENTER, booking_id=501),
        Payment(3, 11, D("300"), Currency.EGP, date(2024, 5, 5), None),
        Payment(4, 30, D("80"), Currency.GBP, date(2024, 6, 1), UserType.OWNER),
    )
    service_requests = (
        ServiceRequest(1, 1, 10, Party.OWNER, date(2023, 4, 1)),
        ServiceRequest(2, 1, 20, Party.OWNER, date(2024, 1, 15)),
        ServiceRequest(3, 2, 10, Party.RENTER, date(2024, 2, 12), booking_id=501),
        ServiceRequest(4, 2, 20, Party.COMPANY, date(2024, 3, 1)),
        ServiceRequest(5, 3, 11, Party.OWNER, date(2024, 6, 1)),
        ServiceRequest(6, 4, 11, Party.OWNER, date(2024, 6, 2)),
        ServiceRequest(7, 4, 10, Party.RENTER, date(2024, 7, 1), cost=D("99.50"), currency=Currency.EGP),
        ServiceRequest(8, 1, 30, Party.OWNER, date(2024, 1, 1)),
    )
    utility_readings = (
        UtilityReading(
            1, 10, Party.OWNER, date(2023, 12, 1), date(2023, 12, 31),
            water_start=D("100"), water_end=D("150"),
            electricity_start=D("200"), electricity_end=D("260"),
        ),
        UtilityReading(
            2, 10, Party.RENTER, date(2024, 2, 1), date(2024, 2, 28),
            water_start=D("150"), water_end=D("170"), booking_id=501,
        ),
        UtilityReading(
            3, 20, Party.OWNER, date(2024, 3, 1), date(2024, 3, 31),
            water_start=D("10"), water_end=D("10"),
            electricity_start=D("5"), electricity_end=D("25.5"),
        ),
    )
    return BillingSnapshot(
        apartments=apartments,
        villages=(SEA_VIEW, PALM),
        bookings=bookings,
        payments=payments,
        service_types=service_types,
        service_requests=service_requests,
        utility_readings=utility_readings,
    )


@pytest.fixture
def db_session():
    """Fresh in-memory database per test with all tables created."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool

    from villa_billing.models import Base

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def seeded_session(db_session, sample_snapshot):
    """db_session holding the same rows as sample_snapshot."""
    from villa_billing import models

    for v in sample_snapshot.villages:
        db_session.add(
            models.Village(
                id=v.id,
                name=v.name,
                water_price=v.water_unit_price,
                electricity_price=v.electricity_unit_price,
                phases=v.phase_count,
                utility_currency=v.utility_currency,
            )
        )
    for a in sample_snapshot.apartments:
        db_session.add(
            models.Apartment(
                id=a.id, name=a.name, village_id=a.village_id, owner_id=a.owner_id, phase=a.phase
            )
        )
    for st in sample_snapshot.service_types:
        db_session.add(
            models.ServiceType(
                id=st.id,
                name=st.name,
                cost=st.cost,
                currency=st.currency,
                village_prices=[
                    models.ServiceTypeVillagePrice(
                        village_id=vp.village_id, cost=vp.cost, currency=vp.currency
                    )
                    for vp in st.village_prices
                ],
            )
        )
    db_session.flush()

    for b in sample_snapshot.bookings:
        db_session.add(
            models.Booking(
                id=b.id,
                apartment_id=b.apartment_id,
                user_id=b.user_id,
                user_type=b.user_type,
                arrival_date=b.arrival_date,
                leaving_date=b.leaving_date,
            )
        )
    db_session.flush()

    for p in sample_snapshot.payments:
        db_session.add(
            models.Payment(
                id=p.id,
                apartment_id=p.apartment_id,
                amount=p.amount,
                currency=p.currency,
                date=p.date,
                user_type=p.user_type,
                booking_id=p.booking_id,
            )
        )
    for sr in sample_snapshot.service_requests:
        db_session.add(
            models.ServiceRequest(
                id=sr.id,
                type_id=sr.type_id,
                apartment_id=sr.apartment_id,
                who_pays=sr.who_pays,
                date_created=sr.date_created,
                cost=sr.cost,
                currency=sr.currency,
                booking_id=sr.booking_id,
            )
        )
    for ur in sample_snapshot.utility_readings:
        db_session.add(
            models.UtilityReading(
                id=ur.id,
                apartment_id=ur.apartment_id,
                who_pays=ur.who_pays,
                start_date=ur.start_date,
                end_date=ur.end_date,
                water_start_reading=ur.water_start,
                water_end_reading=ur.water_end,
                electricity_start_reading=ur.electricity_start,
                electricity_end_reading=ur.electricity_end,
                booking_id=ur.booking_id,
            )
        )
    db_session.commit()
    return db_session
