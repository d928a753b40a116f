"""Service price resolution for a village context.

Resolution is an ordered chain of independent steps; the first step that
yields a price wins:

1. Explicit override (both cost and currency given)
2. Price configured for the apartment's village
3. First listed village price (fallback, flagged as such)
4. Legacy flat cost/currency on the service type
5. NOT_AVAILABLE (never silently zero)
"""

import logging
from decimal import Decimal
from enum import Enum
from typing import Callable, NamedTuple

from villa_billing.services.records import Currency, ServiceType

logger = logging.getLogger(__name__)


class PriceSource(str, Enum):
    """Which step of the chain produced a price."""

    OVERRIDE = "override"
    VILLAGE = "village"
    FALLBACK = "fallback"
    LEGACY = "legacy"


class PriceOverride(NamedTuple):
    """Caller-forced price; only applied when both fields are present."""

    cost: Decimal | None = None
    currency: Currency | None = None


class ResolvedPrice(NamedTuple):
    cost: Decimal
    currency: Currency
    source: PriceSource

    @property
    def is_fallback(self) -> bool:
        return self.source is PriceSource.FALLBACK


class PriceUnavailable:
    """Marker for "no pricing" so callers can tell it apart from a zero price."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_AVAILABLE"


NOT_AVAILABLE = PriceUnavailable()

PriceStep = Callable[[ServiceType | None, int | None, PriceOverride | None], ResolvedPrice | None]


def price_from_override(
    service_type: ServiceType | None, village_id: int | None, override: PriceOverride | None
) -> ResolvedPrice | None:
    if override is None or override.cost is None or override.currency is None:
        return None
    return ResolvedPrice(Decimal(override.cost), Currency(override.currency), PriceSource.OVERRIDE)


def price_from_village(
    service_type: ServiceType | None, village_id: int | None, override: PriceOverride | None
) -> ResolvedPrice | None:
    if service_type is None or village_id is None:
        return None
    for price in service_type.village_prices:
        if price.village_id == village_id:
            return ResolvedPrice(price.cost, Currency(price.currency), PriceSource.VILLAGE)
    return None


def price_from_first_listed(
    service_type: ServiceType | None, village_id: int | None, override: PriceOverride | None
) -> ResolvedPrice | None:
    if service_type is None or not service_type.village_prices:
        return None
    first = service_type.village_prices[0]
    return ResolvedPrice(first.cost, Currency(first.currency), PriceSource.FALLBACK)


def price_from_legacy(
    service_type: ServiceType | None, village_id: int | None, override: PriceOverride | None
) -> ResolvedPrice | None:
    if service_type is None or service_type.cost is None or service_type.currency is None:
        return None
    return ResolvedPrice(service_type.cost, Currency(service_type.currency), PriceSource.LEGACY)


RESOLUTION_CHAIN: tuple[PriceStep, ...] = (
    price_from_override,
    price_from_village,
    price_from_first_listed,
    price_from_legacy,
)


class PricingResolver:
    """Resolve the applicable unit cost of a service type for a village."""

    def __init__(self, chain: tuple[PriceStep, ...] = RESOLUTION_CHAIN):
        self.chain = chain

    def resolve(
        self,
        service_type: ServiceType | None,
        village_id: int | None,
        override: PriceOverride | None = None,
    ) -> ResolvedPrice | PriceUnavailable:
        """Walk the chain and return the first price found.

        Args:
            service_type: Service type to price (None when unknown)
            village_id: Village of the apartment the service is for
            override: Optional caller-forced cost/currency

        Returns:
            ResolvedPrice tagged with its source, or NOT_AVAILABLE
        """
        for step in self.chain:
            price = step(service_type, village_id, override)
            if price is not None:
                if price.is_fallback:
                    logger.debug(
                        "Service type %s has no price for village %s, using first listed price",
                        service_type.id if service_type else None,
                        village_id,
                    )
                return price
        return NOT_AVAILABLE


__all__ = [
    "PriceSource",
    "PriceOverride",
    "ResolvedPrice",
    "PriceUnavailable",
    "NOT_AVAILABLE",
    "RESOLUTION_CHAIN",
    "PricingResolver",
    "price_from_override",
    "price_from_village",
    "price_from_first_listed",
    "price_from_legacy",
]
