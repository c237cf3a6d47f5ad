"""Response models for the status API.

Amounts are canonical decimal strings so no precision is lost in JSON.
"""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    chain_id: int
    amm_configured: bool
    configured_tokens: list[str]


class PoolEntry(BaseModel):
    pair: str
    token_a: str
    token_b: str
    reserve_a: str
    reserve_b: str
    total_liquidity: str
    user_liquidity: str
    share: str


class PoolsSummary(BaseModel):
    """Aggregate over listed pools.

    estimated_total_value_usd uses fixed approximate prices and is for
    display only.
    """

    count: int
    owned_count: int
    estimated_total_value_usd: str
    is_estimate: bool = True


class PoolsResponse(BaseModel):
    account: str | None = None
    pools: list[PoolEntry]
    summary: PoolsSummary


class QuoteResponse(BaseModel):
    """Display quote. The bound used on submission comes from a fresh quote."""

    token_in: str
    token_out: str
    amount_in: str
    amount_out: str | None = None
    min_amount_out: str | None = None
    slippage_bps: int
    reason: str | None = None
    display_only: bool = True


class BalancesResponse(BaseModel):
    account: str
    # None marks a balance that could not be read
    balances: dict[str, str | None]


__all__ = [
    "HealthResponse",
    "PoolEntry",
    "PoolsSummary",
    "PoolsResponse",
    "QuoteResponse",
    "BalancesResponse",
]
