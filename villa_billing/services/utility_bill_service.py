"""Service for consumption-based utility bill calculations."""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple

from villa_billing.services.records import (
    ZERO,
    BillingValidationError,
    Currency,
    UtilityType,
    Village,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class UtilityBill(NamedTuple):
    """Bill for one utility type of one reading pair."""

    utility_type: UtilityType
    consumption: Decimal
    unit_price: Decimal
    cost: Decimal
    currency: Currency


class _Marker:
    def __init__(self, name: str):
        self.name = name

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return self.name


INCOMPLETE = _Marker("INCOMPLETE")
"""Reading pair is missing a value or is not increasing (pending, not a fault)."""

PRICING_UNAVAILABLE = _Marker("PRICING_UNAVAILABLE")
"""Village has no unit price configured for this utility."""


def round_money(amount: Decimal) -> Decimal:
    """Round to minor-unit precision (2 dp, half up)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class UtilityBillCalculator:
    """Convert a pair of meter readings into consumption and money."""

    def calculate(
        self,
        utility_type: UtilityType,
        start_reading: Decimal | None,
        end_reading: Decimal | None,
        village: Village,
    ) -> UtilityBill | _Marker:
        """Calculate a utility bill.

        Formula: (end - start) × village unit price, rounded once at the end.

        Args:
            utility_type: WATER or ELECTRICITY
            start_reading: Starting meter value (None if not taken yet)
            end_reading: Ending meter value (None if not taken yet)
            village: Village providing the unit price

        Returns:
            UtilityBill, INCOMPLETE or PRICING_UNAVAILABLE

        Raises:
            BillingValidationError: If a reading or the unit price is negative
        """
        utility_type = UtilityType(utility_type)
        for value in (start_reading, end_reading):
            if value is not None and value < 0:
                raise BillingValidationError(f"{utility_type.value} readings cannot be negative")

        if start_reading is None or end_reading is None or end_reading <= start_reading:
            return INCOMPLETE

        unit_price = village.unit_price(utility_type)
        if unit_price is None:
            return PRICING_UNAVAILABLE
        if unit_price < ZERO:
            raise BillingValidationError(
                f"Village {village.id} has a negative {utility_type.value} unit price"
            )

        consumption = Decimal(end_reading) - Decimal(start_reading)
        cost = round_money(consumption * Decimal(unit_price))

        return UtilityBill(
            utility_type=utility_type,
            consumption=consumption,
            unit_price=Decimal(unit_price),
            cost=cost,
            currency=Currency(village.utility_currency),
        )


__all__ = [
    "UtilityBill",
    "UtilityBillCalculator",
    "INCOMPLETE",
    "PRICING_UNAVAILABLE",
    "round_money",
]
