"""Invoices API endpoints."""

import logging
import time
from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from villa_billing.api.errors import (
    ApartmentNotFoundError,
    BookingNotFoundError,
    InvalidQueryError,
    ServiceTypeNotFoundError,
    raise_app_error,
)
from villa_billing.api.schemas import (
    ApartmentInvoicesResponse,
    BookingInvoicesResponse,
    BookingSchema,
    ByYearResponse,
    InvoiceSummaryResponse,
    LedgerEntrySchema,
    MoneySchema,
    OwnerInvoicesResponse,
    PaginationSchema,
    PreviousYearsResponse,
    RenterSummaryResponse,
    ServicePriceResponse,
    SummaryRowSchema,
    TotalsSchema,
    WarningSchema,
    YearTotalsSchema,
    apartment_schema,
)
from villa_billing.config import settings
from villa_billing.services import get_db
from villa_billing.services.invoice_service import InvoiceService
from villa_billing.services.ledger_service import LedgerFilters
from villa_billing.services.pricing_service import PriceOverride, ResolvedPrice
from villa_billing.services.records import Currency, UserType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    """Invoice service bound to the request session."""
    return InvoiceService(db)


def get_filters(
    village_id: int | None = Query(None),
    user_type: UserType | None = Query(None),
    year: int | None = Query(None, ge=1900, le=9999),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    phase: int | None = Query(None),
) -> LedgerFilters:
    """Common ledger filters from query parameters."""
    if year is None and date_from and date_to and date_from > date_to:
        raise_app_error(InvalidQueryError("date_from must not be after date_to"))
    return LedgerFilters(
        village_id=village_id,
        user_type=user_type,
        year=year,
        date_from=date_from,
        date_to=date_to,
        phase=phase,
    )


def _log_debug(endpoint: str, start_time: float, **kwargs) -> None:
    duration_ms = int((time.time() - start_time) * 1000)
    extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
    logger.debug("invoices.%s: %s duration_ms=%d", endpoint, extra, duration_ms)


@router.get("/summary", response_model=InvoiceSummaryResponse)
def get_summary(
    filters: LedgerFilters = Depends(get_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceSummaryResponse:
    """Per-apartment financial summary with totals across the filtered set."""
    start_time = time.time()
    result = service.summary(filters, page=page, limit=limit)
    _log_debug("summary", start_time, rows=len(result.rows), total=result.pagination.total)

    return InvoiceSummaryResponse(
        summary=[
            SummaryRowSchema(
                apartment=apartment_schema(row.apartment),
                **TotalsSchema.from_totals(row.totals).model_dump(),
            )
            for row in result.rows
        ],
        totals=TotalsSchema.from_totals(result.totals),
        pagination=PaginationSchema(
            page=result.pagination.page,
            limit=result.pagination.limit,
            total=result.pagination.total,
            total_pages=result.pagination.total_pages,
        ),
        warnings=[WarningSchema.from_warning(w) for w in result.warnings],
    )


@router.get("/apartment/{apartment_id}", response_model=ApartmentInvoicesResponse)
def get_apartment_invoices(
    apartment_id: int,
    filters: LedgerFilters = Depends(get_filters),
    service: InvoiceService = Depends(get_invoice_service),
) -> ApartmentInvoicesResponse:
    """Line-item audit trail and totals for one apartment."""
    start_time = time.time()
    result = service.apartment_invoices(apartment_id, filters)
    if result is None:
        raise_app_error(ApartmentNotFoundError(apartment_id))
    _log_debug("apartment", start_time, apartment_id=apartment_id, entries=len(result.entries))

    return ApartmentInvoicesResponse(
        apartment=apartment_schema(result.apartment),
        entries=[LedgerEntrySchema.from_entry(e) for e in result.entries],
        totals=TotalsSchema.from_totals(result.totals),
        warnings=[WarningSchema.from_warning(w) for w in result.warnings],
    )


@router.get("/apartment/{apartment_id}/renter", response_model=RenterSummaryResponse | None)
def get_renter_summary(
    apartment_id: int,
    filters: LedgerFilters = Depends(get_filters),
    service: InvoiceService = Depends(get_invoice_service),
) -> RenterSummaryResponse | None:
    """Totals for the apartment's current renter booking (null if it has none)."""
    apartment, summary = service.renter_summary(apartment_id, filters)
    if apartment is None:
        raise_app_error(ApartmentNotFoundError(apartment_id))
    if summary is None:
        return None

    return RenterSummaryResponse(
        apartment_id=apartment_id,
        booking=BookingSchema.from_booking(summary.booking),
        entries=[LedgerEntrySchema.from_entry(e) for e in summary.entries],
        total_money_requested=MoneySchema.from_money(summary.total_requested),
        total_money_spent=MoneySchema.from_money(summary.total_spent),
        net_money=MoneySchema.from_money(summary.net),
    )


@router.get("/booking/{booking_id}", response_model=BookingInvoicesResponse)
def get_booking_invoices(
    booking_id: int,
    filters: LedgerFilters = Depends(get_filters),
    service: InvoiceService = Depends(get_invoice_service),
) -> BookingInvoicesResponse:
    """Line items and totals linked to one booking, newest first."""
    start_time = time.time()
    result = service.booking_invoices(booking_id, filters)
    if result is None:
        raise_app_error(BookingNotFoundError(booking_id))
    _log_debug("booking", start_time, booking_id=booking_id, entries=len(result.entries))

    return BookingInvoicesResponse(
        booking=BookingSchema.from_booking(result.booking),
        apartment=apartment_schema(result.apartment) if result.apartment else None,
        entries=[LedgerEntrySchema.from_entry(e) for e in result.entries],
        totals=TotalsSchema.from_totals(result.totals),
        warnings=[WarningSchema.from_warning(w) for w in result.warnings],
    )


@router.get("/owner/{owner_id}", response_model=OwnerInvoicesResponse)
def get_owner_invoices(
    owner_id: int,
    filters: LedgerFilters = Depends(get_filters),
    service: InvoiceService = Depends(get_invoice_service),
) -> OwnerInvoicesResponse:
    """Line items and totals across all apartments of one owner."""
    result = service.owner_invoices(owner_id, filters)

    return OwnerInvoicesResponse(
        owner_id=owner_id,
        apartments=[apartment_schema(a) for a in result.apartments],
        entries=[LedgerEntrySchema.from_entry(e) for e in result.entries],
        totals=TotalsSchema.from_totals(result.totals),
        warnings=[WarningSchema.from_warning(w) for w in result.warnings],
    )


@router.get("/previous-years", response_model=PreviousYearsResponse)
def get_previous_years(
    before_year: int = Query(..., ge=1900, le=9999),
    filters: LedgerFilters = Depends(get_filters),
    service: InvoiceService = Depends(get_invoice_service),
) -> PreviousYearsResponse:
    """Carry-forward totals for everything dated before Jan 1 of before_year."""
    totals = service.previous_years(before_year, filters)

    return PreviousYearsResponse(
        before_year=before_year,
        total_money_requested=MoneySchema.from_money(totals.requested),
        total_money_spent=MoneySchema.from_money(totals.spent),
        net_money=MoneySchema.from_money(totals.net),
    )


@router.get("/by-year", response_model=ByYearResponse)
def get_by_year(
    filters: LedgerFilters = Depends(get_filters),
    service: InvoiceService = Depends(get_invoice_service),
) -> ByYearResponse:
    """Grand totals per recognition year."""
    years = service.by_year(filters)

    return ByYearResponse(
        years=[
            YearTotalsSchema(year=year, **TotalsSchema.from_totals(totals).model_dump())
            for year, totals in years.items()
        ]
    )


@router.get("/service-types/{service_type_id}/price", response_model=ServicePriceResponse)
def get_service_price(
    service_type_id: int,
    village_id: int | None = Query(None),
    cost: Decimal | None = Query(None, ge=0),
    currency: Currency | None = Query(None),
    service: InvoiceService = Depends(get_invoice_service),
) -> ServicePriceResponse:
    """Resolve the price a service type would be charged at in a village."""
    found, price = service.resolve_service_price(
        service_type_id, village_id, PriceOverride(cost, currency)
    )
    if not found:
        raise_app_error(ServiceTypeNotFoundError(service_type_id))

    if not isinstance(price, ResolvedPrice):
        return ServicePriceResponse(
            service_type_id=service_type_id, village_id=village_id, available=False
        )

    return ServicePriceResponse(
        service_type_id=service_type_id,
        village_id=village_id,
        available=True,
        cost=price.cost,
        currency=price.currency.value,
        source=price.source.value,
        is_fallback=price.is_fallback,
    )
