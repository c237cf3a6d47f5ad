"""Immutable projections of ledger state.

A StateSnapshot is rebuilt wholesale on every refresh and never patched in
place; consumers hold a reference to the latest snapshot and treat it as
read-only.
"""

from __future__ import annotations

import decimal
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from types import MappingProxyType

from sagadex.amounts import DECIMAL_HIGH_PREC_CONTEXT
from sagadex.models.tokens import TokenPair

_EMPTY: Mapping = MappingProxyType({})


@dataclass(frozen=True)
class PoolState:
    """Reserves and liquidity accounting of one pool.

    Attributes:
        pair: The token pair; reserve_a belongs to pair.token_a
        reserve_a: Reserve of token_a (decimal token units)
        reserve_b: Reserve of token_b
        total_liquidity: Total liquidity shares issued by the pool
    """

    pair: TokenPair
    reserve_a: Decimal
    reserve_b: Decimal
    total_liquidity: Decimal

    def __post_init__(self) -> None:
        for name in ("reserve_a", "reserve_b", "total_liquidity"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative: {getattr(self, name)}")

    @property
    def has_liquidity(self) -> bool:
        return self.total_liquidity > 0

    @property
    def is_empty(self) -> bool:
        """Both reserves zero: the pool exists structurally but holds nothing."""
        return self.reserve_a == 0 and self.reserve_b == 0

    def share_of(self, liquidity: Decimal) -> Decimal:
        """Fraction of the pool owned by a liquidity amount (0 when empty)."""
        if self.total_liquidity <= 0:
            return Decimal(0)
        with decimal.localcontext(DECIMAL_HIGH_PREC_CONTEXT):
            return min(liquidity / self.total_liquidity, Decimal(1))

    @property
    def price_a_in_b(self) -> Decimal | None:
        """Reserve ratio reserve_b / reserve_a, for display only.

        Not used to price trades; the AMM contract quotes those.
        """
        if self.reserve_a <= 0:
            return None
        with decimal.localcontext(DECIMAL_HIGH_PREC_CONTEXT):
            return self.reserve_b / self.reserve_a


@dataclass(frozen=True)
class StateSnapshot:
    """Point-in-time view of balances, pools and the user's liquidity.

    Individual reads behind a snapshot are not taken atomically; values may
    be a few seconds apart, but each value is complete and non-negative.

    Attributes:
        account: Account the balances and liquidity belong to (None if
            no account was connected)
        balances: symbol -> balance; None marks a balance whose read failed
        pools: pair -> pool state; None marks "no pool"
        user_liquidity: pair -> liquidity owned by the account
        fetched_at: When the refresh that produced this snapshot finished
    """

    account: str | None = None
    balances: Mapping[str, Decimal | None] = field(default_factory=lambda: _EMPTY)
    pools: Mapping[TokenPair, PoolState | None] = field(default_factory=lambda: _EMPTY)
    user_liquidity: Mapping[TokenPair, Decimal] = field(default_factory=lambda: _EMPTY)
    fetched_at: datetime | None = None

    def __post_init__(self) -> None:
        # Freeze the mappings so consumers cannot patch a shared snapshot
        for name in ("balances", "pools", "user_liquidity"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))

    @classmethod
    def empty(cls, account: str | None = None) -> StateSnapshot:
        return cls(account=account)

    def balance(self, symbol: str) -> Decimal | None:
        """Balance for a token; None if unknown or never fetched."""
        return self.balances.get(symbol)

    def is_balance_known(self, symbol: str) -> bool:
        return self.balances.get(symbol) is not None

    def pool(self, pair: TokenPair) -> PoolState | None:
        return self.pools.get(pair)

    def liquidity(self, pair: TokenPair) -> Decimal:
        return self.user_liquidity.get(pair, Decimal(0))

    def replace(
        self,
        *,
        account: str | None,
        balances: Mapping[str, Decimal | None] | None = None,
        pools: Mapping[TokenPair, PoolState | None] | None = None,
        user_liquidity: Mapping[TokenPair, Decimal] | None = None,
    ) -> StateSnapshot:
        """Build a new snapshot carrying over entities not re-read.

        Values for a different account are never carried over.
        """
        same_account = account == self.account
        merged_balances = dict(self.balances) if same_account else {}
        merged_liquidity = dict(self.user_liquidity) if same_account else {}
        merged_pools = dict(self.pools)

        merged_balances.update(balances or {})
        merged_pools.update(pools or {})
        merged_liquidity.update(user_liquidity or {})

        return StateSnapshot(
            account=account,
            balances=merged_balances,
            pools=merged_pools,
            user_liquidity=merged_liquidity,
            fetched_at=datetime.now(UTC),
        )


__all__ = ["PoolState", "StateSnapshot"]
