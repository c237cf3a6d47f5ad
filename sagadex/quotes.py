"""Quote engine: expected swap output and slippage-bounded minimum.

The AMM contract is the only source of output amounts; nothing here
reimplements its pricing curve. Quotes fail closed: when the contract cannot
be asked, or the request is meaningless, the result is an explicit "no
quote" rather than a stale or guessed number.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from sagadex.amounts import from_ledger_units
from sagadex.constants import BPS_DENOMINATOR, DEFAULT_SLIPPAGE_BPS
from sagadex.errors import InvalidRequest, TransportError
from sagadex.ledger.client import LedgerClient
from sagadex.models.tokens import Catalogue, Token

logger = structlog.get_logger()


class NoQuoteReason(Enum):
    """Why a quote could not be produced."""

    UNKNOWN_TOKEN = "unknown_token"
    UNCONFIGURED_TOKEN = "unconfigured_token"
    SAME_TOKEN = "same_token"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    LOOKUP_FAILED = "lookup_failed"
    NO_LIQUIDITY = "no_liquidity"


@dataclass(frozen=True)
class Quote:
    """Result of asking the AMM for an output amount.

    Attributes:
        token_in: Input token symbol
        token_out: Output token symbol
        amount_in: Input amount in ledger units
        amount_out: Quoted output in ledger units (0 when there is no quote)
        reason: Why there is no quote, or None for a valid quote
        detail: Optional human-readable detail about the failure

    Examples:
        quote = await engine.quote(test, usd, 100 * 10**18)
        if quote.is_valid:
            bound = min_acceptable_output(quote.amount_out, 500)
    """

    token_in: str
    token_out: str
    amount_in: int
    amount_out: int = 0
    reason: NoQuoteReason | None = None
    detail: str | None = None

    @property
    def is_valid(self) -> bool:
        """True if the AMM returned a positive output amount."""
        return self.reason is None and self.amount_out > 0

    @property
    def amount_out_display(self) -> str:
        return from_ledger_units(self.amount_out)

    @classmethod
    def none(
        cls,
        token_in: str,
        token_out: str,
        amount_in: int,
        reason: NoQuoteReason,
        detail: str | None = None,
    ) -> Quote:
        """Create a "no quote" result."""
        return cls(
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            amount_out=0,
            reason=reason,
            detail=detail,
        )


def min_acceptable_output(amount_out: int, slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> int:
    """Lowest output accepted for a quoted amount under a slippage tolerance.

    min_out = amount_out * (1 - slippage), computed on integer ledger units
    and rounded down, so it never exceeds amount_out and is strictly below
    it whenever slippage_bps > 0 and amount_out > 0.

    Args:
        amount_out: Quoted output in ledger units
        slippage_bps: Tolerance in basis points, 0..10000

    Raises:
        InvalidRequest: If amount_out is negative or slippage_bps out of range
    """
    if amount_out < 0:
        raise InvalidRequest(f"Quoted output cannot be negative: {amount_out}")
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise InvalidRequest(f"Slippage must be between 0 and {BPS_DENOMINATOR} bps, got {slippage_bps}")
    return amount_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


@dataclass(frozen=True)
class SubmissionQuote:
    """Quote taken at submission time together with its slippage bound."""

    quote: Quote
    slippage_bps: int
    min_amount_out: int


class QuoteEngine:
    """Asks the AMM for quotes and derives slippage bounds.

    Args:
        ledger: Ledger client for getAmountOut calls
        catalogue: Token catalogue
        slippage_bps: Default tolerance for submission quotes
    """

    def __init__(
        self,
        ledger: LedgerClient,
        catalogue: Catalogue,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
    ) -> None:
        if not 0 <= slippage_bps <= BPS_DENOMINATOR:
            raise ValueError(f"slippage_bps must be in [0, {BPS_DENOMINATOR}], got {slippage_bps}")
        self.ledger = ledger
        self.catalogue = catalogue
        self.slippage_bps = slippage_bps

    def _resolve(self, symbol: str) -> Token | None:
        return self.catalogue.get_token(symbol)

    async def quote(self, token_in: str, token_out: str, amount_in: int) -> Quote:
        """Ask the AMM how much token_out an exact amount_in would buy.

        Args:
            token_in: Input token symbol
            token_out: Output token symbol
            amount_in: Input amount in ledger units

        Returns:
            A valid Quote, or a "no quote" result with amount_out == 0
        """
        src = self._resolve(token_in)
        dst = self._resolve(token_out)
        if src is None or dst is None:
            return Quote.none(token_in, token_out, amount_in, NoQuoteReason.UNKNOWN_TOKEN)
        if token_in == token_out:
            return Quote.none(token_in, token_out, amount_in, NoQuoteReason.SAME_TOKEN)
        if not (src.is_configured and dst.is_configured and self.catalogue.amm_configured):
            return Quote.none(token_in, token_out, amount_in, NoQuoteReason.UNCONFIGURED_TOKEN)
        if amount_in <= 0:
            return Quote.none(token_in, token_out, amount_in, NoQuoteReason.NON_POSITIVE_AMOUNT)

        try:
            amount_out = await self.ledger.get_amount_out(src.address, dst.address, amount_in)
        except Exception as e:
            logger.warning(
                "quote_failed",
                token_in=token_in,
                token_out=token_out,
                amount_in=amount_in,
                error=str(e),
            )
            return Quote.none(token_in, token_out, amount_in, NoQuoteReason.LOOKUP_FAILED, str(e))

        if amount_out <= 0:
            return Quote.none(
                token_in, token_out, amount_in, NoQuoteReason.NO_LIQUIDITY, "AMM quoted zero output"
            )
        return Quote(token_in=token_in, token_out=token_out, amount_in=amount_in, amount_out=amount_out)

    async def quote_for_submission(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        slippage_bps: int | None = None,
    ) -> SubmissionQuote:
        """Fresh quote and minimum output, taken right before submitting a swap.

        Never reuse a quote shown earlier for display as the on-ledger bound.

        Raises:
            InvalidRequest: If the request cannot be quoted (unknown token, no liquidity)
            TransportError: If the AMM could not be reached
        """
        bps = self.slippage_bps if slippage_bps is None else slippage_bps
        quote = await self.quote(token_in, token_out, amount_in)
        if not quote.is_valid:
            detail = f": {quote.detail}" if quote.detail else ""
            reason = quote.reason.value if quote.reason else "no_output"
            if quote.reason is NoQuoteReason.LOOKUP_FAILED:
                raise TransportError(f"Quote lookup failed for {token_in} -> {token_out}{detail}")
            raise InvalidRequest(f"No quote for {token_in} -> {token_out} ({reason}){detail}")
        return SubmissionQuote(
            quote=quote,
            slippage_bps=bps,
            min_amount_out=min_acceptable_output(quote.amount_out, bps),
        )


__all__ = [
    "NoQuoteReason",
    "Quote",
    "SubmissionQuote",
    "QuoteEngine",
    "min_acceptable_output",
]
