"""User actions as explicit command objects.

Each command holds the amounts exactly as the user entered them (decimal
strings). The orchestrator validates and converts them; presentation code
only builds commands and reads outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SwapCommand:
    """Swap an exact input amount of one token for another."""

    token_in: str
    token_out: str
    amount_in: str

    def flipped(self, amount_out: str = "") -> SwapCommand:
        """Reverse the direction, using the previously quoted output as the new input."""
        return SwapCommand(token_in=self.token_out, token_out=self.token_in, amount_in=amount_out)


@dataclass(frozen=True)
class AddLiquidityCommand:
    """Deposit both tokens of a pair."""

    token_a: str
    token_b: str
    amount_a: str
    amount_b: str


@dataclass(frozen=True)
class RemoveLiquidityCommand:
    """Withdraw liquidity from a pair.

    When `liquidity` is None the caller's whole share is removed.
    """

    token_a: str
    token_b: str
    liquidity: str | None = None


Command = SwapCommand | AddLiquidityCommand | RemoveLiquidityCommand

__all__ = ["SwapCommand", "AddLiquidityCommand", "RemoveLiquidityCommand", "Command"]
