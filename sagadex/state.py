"""State cache: a disposable projection of balances, pools and user liquidity.

Every refresh reads the ledger and replaces the current StateSnapshot as a
whole. Reads are independent and run concurrently; a failed read degrades
only the value it was fetching and is never raised to the caller:

- a failed balance read becomes "unknown" (None), never zero
- a failed or structurally empty pool read becomes "no pool" (None)
- a failed user-liquidity read becomes zero
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from decimal import Decimal

import structlog

from sagadex.amounts import to_decimal
from sagadex.ledger.client import LedgerClient
from sagadex.models.state import PoolState, StateSnapshot
from sagadex.models.tokens import Catalogue, Token, TokenPair

logger = structlog.get_logger()


class StateCache:
    """Read-side cache of ledger state for the token catalogue.

    Args:
        ledger: Ledger client used for all reads
        catalogue: Token catalogue (tokens, pairs, network)
    """

    def __init__(self, ledger: LedgerClient, catalogue: Catalogue) -> None:
        self.ledger = ledger
        self.catalogue = catalogue
        self._snapshot = StateSnapshot.empty()

    @property
    def snapshot(self) -> StateSnapshot:
        """Latest snapshot. Treat as read-only; it is replaced, never patched."""
        return self._snapshot

    def invalidate(self) -> None:
        """Discard everything; the next refresh rebuilds from the ledger."""
        self._snapshot = StateSnapshot.empty()

    async def _read_balance(self, token: Token, account: str) -> Decimal | None:
        try:
            units = await self.ledger.balance_of(token.address, account)
            return to_decimal(units, token.decimals)
        except Exception as e:
            logger.warning(
                "balance_read_failed",
                token=token.symbol,
                account=account,
                error=str(e),
            )
            return None

    async def refresh_balances(
        self, account: str, tokens: Iterable[Token] | None = None
    ) -> dict[str, Decimal | None]:
        """Read balances for tokens, one independent read per token.

        Unconfigured tokens are skipped (absent from the result); a token
        whose read failed maps to None.
        """
        wanted = [t for t in (tokens if tokens is not None else self.catalogue.tokens) if t.is_configured]
        values = await asyncio.gather(*(self._read_balance(t, account) for t in wanted))
        return {token.symbol: value for token, value in zip(wanted, values, strict=True)}

    def _pair_tokens(self, pair: TokenPair) -> tuple[Token, Token] | None:
        token_a = self.catalogue.get_token(pair.token_a)
        token_b = self.catalogue.get_token(pair.token_b)
        if token_a is None or token_b is None:
            return None
        if not (token_a.is_configured and token_b.is_configured):
            return None
        return token_a, token_b

    async def refresh_pool(self, pair: TokenPair) -> PoolState | None:
        """Read the pool for a pair.

        Returns None ("no pool") for unconfigured tokens, lookup failures and
        pools whose reserves are both zero. Callers treat all three alike.
        """
        tokens = self._pair_tokens(pair)
        if tokens is None or not self.catalogue.amm_configured:
            return None
        token_a, token_b = tokens
        try:
            reserve_a, reserve_b, total = await self.ledger.get_pool_info(token_a.address, token_b.address)
        except Exception as e:
            logger.debug("pool_read_failed", pair=pair.label, error=str(e))
            return None

        if reserve_a == 0 and reserve_b == 0:
            return None
        try:
            return PoolState(
                pair=pair,
                reserve_a=to_decimal(reserve_a, token_a.decimals),
                reserve_b=to_decimal(reserve_b, token_b.decimals),
                total_liquidity=to_decimal(total),
            )
        except (ValueError, ArithmeticError) as e:
            logger.warning("pool_state_invalid", pair=pair.label, error=str(e))
            return None

    async def refresh_user_liquidity(self, pair: TokenPair, account: str | None) -> Decimal:
        """Liquidity the account owns in a pair's pool; zero if none or unknown."""
        if not account:
            return Decimal(0)
        tokens = self._pair_tokens(pair)
        if tokens is None or not self.catalogue.amm_configured:
            return Decimal(0)
        token_a, token_b = tokens
        try:
            units = await self.ledger.get_user_liquidity(token_a.address, token_b.address, account)
            return to_decimal(units)
        except Exception as e:
            logger.debug("user_liquidity_read_failed", pair=pair.label, error=str(e))
            return Decimal(0)

    async def user_liquidity_units(self, pair: TokenPair, account: str) -> int:
        """Raw liquidity units owned by account; raises if the read fails.

        Used for orchestrator preconditions, where a guessed zero would be
        wrong in either direction.
        """
        tokens = self._pair_tokens(pair)
        if tokens is None:
            return 0
        token_a, token_b = tokens
        return await self.ledger.get_user_liquidity(token_a.address, token_b.address, account)

    async def refresh(
        self,
        account: str | None,
        *,
        tokens: Iterable[str] | None = None,
        pairs: Iterable[TokenPair] | None = None,
    ) -> StateSnapshot:
        """Refresh balances, pools and user liquidity and publish a new snapshot.

        Args:
            account: Connected account, or None (balances and liquidity skipped)
            tokens: Symbols whose balances to read (default: all)
            pairs: Pairs whose pool state and liquidity to read (default: all)

        Returns:
            The new snapshot. Entities not named carry over from the previous
            snapshot when the account is unchanged.
        """
        token_list = (
            [self.catalogue.token(s) for s in tokens] if tokens is not None else list(self.catalogue.tokens)
        )
        pair_list = list(pairs) if pairs is not None else list(self.catalogue.pairs)

        async def no_balances() -> dict[str, Decimal | None]:
            return {}

        balances_task = self.refresh_balances(account, token_list) if account else no_balances()
        pool_values, liquidity_values, balances = await asyncio.gather(
            asyncio.gather(*(self.refresh_pool(p) for p in pair_list)),
            asyncio.gather(*(self.refresh_user_liquidity(p, account) for p in pair_list)),
            balances_task,
        )

        self._snapshot = self._snapshot.replace(
            account=account,
            balances=balances,
            pools=dict(zip(pair_list, pool_values, strict=True)),
            user_liquidity=dict(zip(pair_list, liquidity_values, strict=True)) if account else {},
        )
        logger.debug(
            "state_refreshed",
            account=account,
            tokens=len(balances),
            pairs=len(pair_list),
            unknown_balances=[s for s, v in balances.items() if v is None],
        )
        return self._snapshot


__all__ = ["StateCache"]
