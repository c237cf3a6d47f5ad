"""Pool directory: which pools have liquidity, and a rough value summary."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

import structlog

from sagadex.models.state import PoolState
from sagadex.models.tokens import Catalogue, TokenPair
from sagadex.state import StateCache

logger = structlog.get_logger()

# Display-only prices used for the total value estimate. Not market data.
APPROXIMATE_PRICES_USD: dict[str, Decimal] = {
    "USD": Decimal(1),
    "TEST": Decimal("0.1"),
    "SAGA1": Decimal("0.1"),
    "SAGA2": Decimal("0.1"),
}
DEFAULT_APPROXIMATE_PRICE_USD = Decimal("0.1")


@dataclass(frozen=True)
class PoolListing:
    """A pool with liquidity, plus the caller's stake in it."""

    pair: TokenPair
    pool: PoolState
    user_liquidity: Decimal = Decimal(0)

    @property
    def share(self) -> Decimal:
        """Fraction of the pool owned by the caller (0..1)."""
        return self.pool.share_of(self.user_liquidity)

    @property
    def is_owned(self) -> bool:
        return self.user_liquidity > 0


@dataclass(frozen=True)
class PoolSummary:
    """Aggregate figures over listed pools.

    estimated_total_value comes from APPROXIMATE_PRICES_USD and is an
    estimate for display only.
    """

    count: int
    estimated_total_value: Decimal
    owned_count: int
    is_estimate: bool = True


def approximate_price(symbol: str) -> Decimal:
    return APPROXIMATE_PRICES_USD.get(symbol, DEFAULT_APPROXIMATE_PRICE_USD)


def aggregate(pools: Sequence[PoolListing]) -> PoolSummary:
    """Count pools and estimate their combined value in USD."""
    total = Decimal(0)
    for listing in pools:
        total += listing.pool.reserve_a * approximate_price(listing.pair.token_a)
        total += listing.pool.reserve_b * approximate_price(listing.pair.token_b)
    return PoolSummary(
        count=len(pools),
        estimated_total_value=total,
        owned_count=sum(1 for listing in pools if listing.is_owned),
    )


class PoolDirectory:
    """Lists the catalogue's pools that currently hold liquidity.

    Args:
        cache: State cache used for pool and user-liquidity reads
    """

    def __init__(self, cache: StateCache) -> None:
        self.cache = cache

    @property
    def catalogue(self) -> Catalogue:
        return self.cache.catalogue

    async def _listing(self, pair: TokenPair, account: str | None) -> PoolListing | None:
        pool, owned = await asyncio.gather(
            self.cache.refresh_pool(pair),
            self.cache.refresh_user_liquidity(pair, account),
        )
        if pool is None or not pool.has_liquidity:
            return None
        return PoolListing(pair=pair, pool=pool, user_liquidity=owned)

    async def list_pools(self, account: str | None = None) -> list[PoolListing]:
        """Pools with total liquidity above zero, in catalogue order.

        Pairs with an undeployed token are skipped without a lookup. A pair
        whose lookup fails is left out; the rest are still listed.
        """
        pairs = [
            pair
            for pair in self.catalogue.pairs
            if all(self.catalogue.token(s).is_configured for s in pair.symbols)
        ]
        results = await asyncio.gather(
            *(self._listing(pair, account) for pair in pairs),
            return_exceptions=True,
        )

        listings = []
        for pair, result in zip(pairs, results, strict=True):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning("pool_listing_failed", pair=pair.label, error=str(result))
                continue
            if result is not None:
                listings.append(result)
        logger.debug("pools_listed", account=account, pairs=len(pairs), listed=len(listings))
        return listings

    async def summary(self, account: str | None = None) -> tuple[list[PoolListing], PoolSummary]:
        listings = await self.list_pools(account)
        return listings, aggregate(listings)


__all__ = [
    "APPROXIMATE_PRICES_USD",
    "PoolListing",
    "PoolSummary",
    "PoolDirectory",
    "aggregate",
    "approximate_price",
]
