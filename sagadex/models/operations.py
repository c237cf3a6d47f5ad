"""Ledger operations built by the orchestrator and their lifecycle records.

Amounts on operations are integer ledger units; they are exactly what is
sent to the contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from sagadex.models.tokens import Token, TokenPair


class OperationKind(str, Enum):
    """Which contract call an operation maps to."""

    APPROVE = "approve"
    SWAP = "swap"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"


class OperationStatus(str, Enum):
    """Lifecycle of a pending operation.

    BUILT -> SUBMITTED -> CONFIRMED | FAILED | UNRESOLVED. A BUILT operation
    can also go straight to FAILED when it was never handed to the wallet or
    the wallet refused it, or to UNTRACKED.
    UNRESOLVED means the transaction was sent but its outcome was never
    observed; it is neither success nor failure and can still be looked up
    by hash. UNTRACKED means it may have been broadcast but no hash came
    back, so only the wallet can tell what happened.
    """

    BUILT = "built"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    UNRESOLVED = "unresolved"
    UNTRACKED = "untracked"

    @property
    def is_final(self) -> bool:
        """True once the record can no longer change."""
        return self in (OperationStatus.CONFIRMED, OperationStatus.FAILED, OperationStatus.UNTRACKED)


@dataclass(frozen=True)
class ApproveOperation:
    """Grant the spender permission to move exactly `amount` of token."""

    token: Token
    spender: str
    amount: int

    kind = OperationKind.APPROVE

    def describe(self) -> str:
        return f"approve {self.amount} {self.token.symbol} for {self.spender}"


@dataclass(frozen=True)
class SwapOperation:
    """Exact-input swap that reverts if output falls below min_amount_out."""

    token_in: Token
    token_out: Token
    amount_in: int
    min_amount_out: int

    kind = OperationKind.SWAP

    def describe(self) -> str:
        return (
            f"swap {self.amount_in} {self.token_in.symbol} -> "
            f">= {self.min_amount_out} {self.token_out.symbol}"
        )


@dataclass(frozen=True)
class AddLiquidityOperation:
    """Deposit both tokens of a pair into its pool."""

    token_a: Token
    token_b: Token
    amount_a: int
    amount_b: int

    kind = OperationKind.ADD_LIQUIDITY

    def describe(self) -> str:
        return (
            f"add liquidity {self.amount_a} {self.token_a.symbol} + "
            f"{self.amount_b} {self.token_b.symbol}"
        )


@dataclass(frozen=True)
class RemoveLiquidityOperation:
    """Burn part of the caller's liquidity share of a pool."""

    token_a: Token
    token_b: Token
    liquidity: int

    kind = OperationKind.REMOVE_LIQUIDITY

    def describe(self) -> str:
        return f"remove {self.liquidity} liquidity from {self.token_a.symbol}/{self.token_b.symbol}"


PendingOperation = ApproveOperation | SwapOperation | AddLiquidityOperation | RemoveLiquidityOperation


@dataclass(frozen=True)
class AllowanceRequirement:
    """Spending permission an operation needs before it can be submitted."""

    token: Token
    spender: str
    amount: int


@dataclass(frozen=True)
class OperationPlan:
    """A primary operation plus everything the orchestrator needs around it.

    Attributes:
        operation: The mutating call to submit once allowances are in place
        requirements: Allowances to check (and grant if short) beforehand
        tokens: Symbols whose balances change when the operation confirms
        pair: Pool touched by the operation (refreshed with user liquidity)
    """

    operation: PendingOperation
    requirements: tuple[AllowanceRequirement, ...] = ()
    tokens: tuple[str, ...] = ()
    pair: TokenPair | None = None


@dataclass
class OperationRecord:
    """Mutable lifecycle record of one operation, owned by the orchestrator."""

    operation: PendingOperation
    account: str
    status: OperationStatus = OperationStatus.BUILT
    tx_hash: str | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None

    @property
    def kind(self) -> OperationKind:
        return self.operation.kind

    def mark(self, status: OperationStatus, *, tx_hash: str | None = None, error: str | None = None) -> None:
        self.status = status
        if tx_hash is not None:
            self.tx_hash = tx_hash
        if error is not None:
            self.error = error
        self.updated_at = datetime.now(UTC)


__all__ = [
    "OperationKind",
    "OperationStatus",
    "ApproveOperation",
    "SwapOperation",
    "AddLiquidityOperation",
    "RemoveLiquidityOperation",
    "PendingOperation",
    "AllowanceRequirement",
    "OperationPlan",
    "OperationRecord",
]
