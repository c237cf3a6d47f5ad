"""API endpoints for the Saga DEX status service.

Every endpoint is read-only: nothing here signs or submits.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from sagadex.amounts import format_decimal, from_ledger_units, to_ledger_units
from sagadex.api.schemas import (
    BalancesResponse,
    HealthResponse,
    PoolEntry,
    PoolsResponse,
    PoolsSummary,
    QuoteResponse,
)
from sagadex.errors import InvalidAmount
from sagadex.models.types import is_valid_address, normalize_address
from sagadex.pools import aggregate
from sagadex.quotes import min_acceptable_output
from sagadex.service import DexService, get_default_service

logger = structlog.get_logger()

router = APIRouter()


def get_service() -> DexService:
    """Dependency provider for the service.

    Override this in tests to inject fakes:
        app.dependency_overrides[get_service] = lambda: service
    """
    return get_default_service()


def _account_or_400(account: str) -> str:
    if not is_valid_address(account):
        raise HTTPException(status_code=400, detail=f"Invalid account address: {account}")
    return normalize_address(account)


@router.get("/health")
async def health(service: DexService = Depends(get_service)) -> HealthResponse:
    """Health check with the configured network and deployment status."""
    catalogue = service.catalogue
    return HealthResponse(
        chain_id=catalogue.network.chain_id,
        amm_configured=catalogue.amm_configured,
        configured_tokens=[t.symbol for t in catalogue.configured_tokens()],
    )


@router.get("/pools")
async def list_pools(
    account: str | None = Query(default=None),
    service: DexService = Depends(get_service),
) -> PoolsResponse:
    """Pools holding liquidity, with the account's share when given."""
    owner = _account_or_400(account) if account is not None else None
    listings = await service.pools.list_pools(owner)
    summary = aggregate(listings)
    return PoolsResponse(
        account=owner,
        pools=[
            PoolEntry(
                pair=listing.pair.label,
                token_a=listing.pair.token_a,
                token_b=listing.pair.token_b,
                reserve_a=format_decimal(listing.pool.reserve_a),
                reserve_b=format_decimal(listing.pool.reserve_b),
                total_liquidity=format_decimal(listing.pool.total_liquidity),
                user_liquidity=format_decimal(listing.user_liquidity),
                share=format_decimal(listing.share),
            )
            for listing in listings
        ],
        summary=PoolsSummary(
            count=summary.count,
            owned_count=summary.owned_count,
            estimated_total_value_usd=format_decimal(summary.estimated_total_value),
            is_estimate=summary.is_estimate,
        ),
    )


@router.get("/quote")
async def quote(
    token_in: str,
    token_out: str,
    amount_in: str,
    service: DexService = Depends(get_service),
) -> QuoteResponse:
    """Display quote for an exact-input swap.

    Error Handling:
        - Malformed amount: 400
        - No quote (unknown token, lookup failure, no liquidity): 200 with
          amount_out null and a reason
    """
    token = service.catalogue.get_token(token_in)
    decimals = token.decimals if token is not None else 18
    try:
        units = to_ledger_units(amount_in, decimals)
    except InvalidAmount as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    bps = service.quotes.slippage_bps
    result = await service.quotes.quote(token_in, token_out, units)
    if not result.is_valid:
        logger.info(
            "quote_unavailable",
            token_in=token_in,
            token_out=token_out,
            reason=result.reason.value if result.reason else None,
        )
        return QuoteResponse(
            token_in=token_in,
            token_out=token_out,
            amount_in=from_ledger_units(units, decimals),
            slippage_bps=bps,
            reason=result.reason.value if result.reason else None,
        )

    out_token = service.catalogue.get_token(token_out)
    out_decimals = out_token.decimals if out_token is not None else 18
    return QuoteResponse(
        token_in=token_in,
        token_out=token_out,
        amount_in=from_ledger_units(units, decimals),
        amount_out=from_ledger_units(result.amount_out, out_decimals),
        min_amount_out=from_ledger_units(min_acceptable_output(result.amount_out, bps), out_decimals),
        slippage_bps=bps,
    )


@router.get("/balances/{account}")
async def balances(account: str, service: DexService = Depends(get_service)) -> BalancesResponse:
    """Balances of every deployed token; null where the read failed."""
    owner = _account_or_400(account)
    values = await service.cache.refresh_balances(owner)
    return BalancesResponse(
        account=owner,
        balances={symbol: format_decimal(v) if v is not None else None for symbol, v in values.items()},
    )
