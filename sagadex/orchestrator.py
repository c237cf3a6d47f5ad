"""Allowance-gated transaction orchestrator.

Drives swap, add-liquidity and remove-liquidity flows through one protocol:

1. Preconditions - connected account, known deployed tokens, positive
   amounts, distinct tokens. A violation raises InvalidRequest before any
   network call. Then, still before the wallet is asked for anything, a
   removal reads the current liquidity share from the ledger and a swap
   checks that the exchange can quote it.
2. Allowance check - for each token the operation spends, read the current
   allowance; if short, approve exactly the required amount and wait for
   the approval to confirm.
3. Primary submission - for swaps, re-quote now and derive the minimum
   output from that fresh quote; submit and wait for confirmation.
4. Reconciliation - refresh balances, pool state and user liquidity for
   everything the operation touched.

Any failure aborts the remaining steps of that operation. Confirmed
approvals are kept (they are valid state on their own). Nothing is retried
automatically: a retry is a new invocation that re-reads allowances and
re-quotes.

At most one flow runs per account at a time; a concurrent request for the
same account is refused rather than queued, since its allowance reads would
race the in-flight approval.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

import structlog

from sagadex.amounts import from_ledger_units, to_ledger_units
from sagadex.config import Settings
from sagadex.errors import (
    InsufficientAllowance,
    InvalidRequest,
    RemoteRejected,
    SagaDexError,
    UnknownOutcome,
    classify_error,
)
from sagadex.ledger.client import LedgerClient, TxReceipt
from sagadex.ledger.wallet import Signer
from sagadex.models.commands import (
    AddLiquidityCommand,
    Command,
    RemoveLiquidityCommand,
    SwapCommand,
)
from sagadex.models.operations import (
    AddLiquidityOperation,
    AllowanceRequirement,
    ApproveOperation,
    OperationPlan,
    OperationRecord,
    OperationStatus,
    PendingOperation,
    RemoveLiquidityOperation,
    SwapOperation,
)
from sagadex.models.state import StateSnapshot
from sagadex.models.tokens import Catalogue, Token, TokenPair
from sagadex.quotes import QuoteEngine
from sagadex.session import SessionManager
from sagadex.state import StateCache

logger = structlog.get_logger()


class OutcomeStatus(str, Enum):
    """Overall result of one user action."""

    CONFIRMED = "confirmed"
    FAILED = "failed"
    # Submitted (or possibly submitted), outcome never observed: show as
    # "pending, check later"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class OperationOutcome:
    """Result of running one command through the orchestrator.

    Attributes:
        command: The command that was executed
        status: Confirmed, failed or unresolved
        approvals: Approval records submitted for this command (if any)
        primary: Record of the primary operation, if it was built
        min_amount_out: Slippage bound used for a swap (ledger units)
        snapshot: State snapshot after reconciliation (confirmed only)
        error: The classified error for failed/unresolved outcomes
    """

    command: Command
    status: OutcomeStatus
    approvals: tuple[OperationRecord, ...] = ()
    primary: OperationRecord | None = None
    min_amount_out: int | None = None
    snapshot: StateSnapshot | None = None
    error: SagaDexError | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.CONFIRMED

    @property
    def clear_inputs(self) -> bool:
        """True when the caller should clear the amounts the user entered."""
        return self.status == OutcomeStatus.CONFIRMED

    @property
    def retry_safe(self) -> bool:
        """True if invoking the action again cannot duplicate a sent operation."""
        return self.error.retry_safe if self.error is not None else True


@dataclass
class _Flow:
    """Per-invocation bookkeeping."""

    account: str
    approvals: list[OperationRecord] = field(default_factory=list)
    primary: OperationRecord | None = None
    min_amount_out: int | None = None


class Orchestrator:
    """Runs user commands through the allowance-gated protocol.

    Args:
        session: Session manager providing the account and signer
        ledger: Ledger client for reads and submissions
        cache: State cache refreshed after each confirmed operation
        quotes: Quote engine used for submission-time swap quotes
        settings: Runtime settings (confirmation timeout, poll interval)
    """

    def __init__(
        self,
        session: SessionManager,
        ledger: LedgerClient,
        cache: StateCache,
        quotes: QuoteEngine,
        settings: Settings | None = None,
    ) -> None:
        self.session = session
        self.ledger = ledger
        self.cache = cache
        self.quotes = quotes
        self.settings = settings or Settings()
        self._locks: dict[str, asyncio.Lock] = {}
        self._history: list[OperationRecord] = []

    @property
    def catalogue(self) -> Catalogue:
        return self.cache.catalogue

    @property
    def history(self) -> list[OperationRecord]:
        """Every operation record created so far, oldest first."""
        return list(self._history)

    def unresolved_operations(self) -> list[OperationRecord]:
        return [r for r in self._history if r.status == OperationStatus.UNRESOLVED]

    def untracked_operations(self) -> list[OperationRecord]:
        """Operations that may have been broadcast without a hash to look them up by."""
        return [r for r in self._history if r.status == OperationStatus.UNTRACKED]

    def is_busy(self, account: str) -> bool:
        lock = self._locks.get(account)
        return lock is not None and lock.locked()

    # =========================================================================
    # Entry points
    # =========================================================================

    async def execute(self, command: Command) -> OperationOutcome:
        """Run one command to completion.

        Returns:
            The confirmed outcome

        Raises:
            InvalidRequest: Precondition violated (nothing was submitted)
            UserRejected: The user declined to sign
            RemoteRejected: The ledger rejected an approval or the operation
            TransportError: A call could not complete before submission
            InsufficientAllowance: Allowance still short after approval
            UnknownOutcome: Possibly submitted, but confirmation was never observed
        """
        outcome = await self._run(command)
        if outcome.error is not None:
            raise outcome.error
        return outcome

    async def swap(self, token_in: str, token_out: str, amount_in: str) -> OperationOutcome:
        return await self.execute(SwapCommand(token_in=token_in, token_out=token_out, amount_in=amount_in))

    async def add_liquidity(self, token_a: str, token_b: str, amount_a: str, amount_b: str) -> OperationOutcome:
        return await self.execute(
            AddLiquidityCommand(token_a=token_a, token_b=token_b, amount_a=amount_a, amount_b=amount_b)
        )

    async def remove_liquidity(
        self, token_a: str, token_b: str, liquidity: str | None = None
    ) -> OperationOutcome:
        return await self.execute(RemoveLiquidityCommand(token_a=token_a, token_b=token_b, liquidity=liquidity))

    async def execute_batch(self, commands: Iterable[Command]) -> list[OperationOutcome]:
        """Run commands one after another, each independently.

        A failing command does not stop the batch, and each confirmed
        command is reconciled regardless of what happens after it.
        """
        outcomes = []
        for command in commands:
            outcomes.append(await self._run(command))
        return outcomes

    # =========================================================================
    # Flow
    # =========================================================================

    async def _run(self, command: Command) -> OperationOutcome:
        account = self.session.account
        if account is None:
            return self._failed(command, None, InvalidRequest("Connect a wallet first"))

        lock = self._locks.setdefault(account, asyncio.Lock())
        if lock.locked():
            return self._failed(
                command, None, InvalidRequest("Another operation is already in progress for this account")
            )

        async with lock:
            flow = _Flow(account=account)
            log = logger.bind(account=account, command=type(command).__name__)
            try:
                plan = self._prepare(command)
                if isinstance(plan.operation, RemoveLiquidityOperation):
                    plan = await self._prepare_removal(plan, account)
                elif isinstance(plan.operation, SwapOperation):
                    await self._check_quotable(plan.operation)
                signer = await self.session.signer()

                for requirement in plan.requirements:
                    await self._ensure_allowance(signer, requirement, flow)

                operation = plan.operation
                if isinstance(operation, SwapOperation):
                    operation = await self._requote(operation)
                    flow.min_amount_out = operation.min_amount_out

                flow.primary = self._new_record(account, operation)
                await self._submit_and_confirm(signer, flow.primary)
            except SagaDexError as e:
                log.warning(
                    "operation_failed",
                    error_type=type(e).__name__,
                    error=str(e),
                    tx_hash=e.tx_hash,
                )
                return self._failed(command, flow, e)

            snapshot = await self._reconcile(account, plan)
            log.info(
                "operation_confirmed",
                tx_hash=flow.primary.tx_hash,
                approvals=len(flow.approvals),
            )
            return OperationOutcome(
                command=command,
                status=OutcomeStatus.CONFIRMED,
                approvals=tuple(flow.approvals),
                primary=flow.primary,
                min_amount_out=flow.min_amount_out,
                snapshot=snapshot,
            )

    @staticmethod
    def _failed(command: Command, flow: _Flow | None, error: SagaDexError) -> OperationOutcome:
        status = OutcomeStatus.UNRESOLVED if isinstance(error, UnknownOutcome) else OutcomeStatus.FAILED
        return OperationOutcome(
            command=command,
            status=status,
            approvals=tuple(flow.approvals) if flow else (),
            primary=flow.primary if flow else None,
            min_amount_out=flow.min_amount_out if flow else None,
            error=error,
        )

    # =========================================================================
    # Preconditions
    # =========================================================================

    def _token(self, symbol: str) -> Token:
        token = self.catalogue.get_token(symbol)
        if token is None:
            raise InvalidRequest(f"Unknown token: {symbol}")
        if not token.is_configured:
            raise InvalidRequest(f"Token {symbol} is not deployed yet")
        return token

    @staticmethod
    def _positive_units(value: str, token: Token, label: str) -> int:
        units = to_ledger_units(value, token.decimals)
        if units <= 0:
            raise InvalidRequest(f"{label} must be greater than zero")
        return units

    def _prepare(self, command: Command) -> OperationPlan:
        """Validate a command locally and build its plan (no network calls)."""
        if not self.catalogue.amm_configured:
            raise InvalidRequest("The exchange contract is not deployed yet")
        spender = self.catalogue.amm_address

        if isinstance(command, SwapCommand):
            if command.token_in == command.token_out:
                raise InvalidRequest("Cannot swap a token for itself")
            token_in = self._token(command.token_in)
            token_out = self._token(command.token_out)
            amount_in = self._positive_units(command.amount_in, token_in, "Swap amount")
            return OperationPlan(
                # min_amount_out is filled in from a fresh quote at submission
                operation=SwapOperation(token_in, token_out, amount_in, 0),
                requirements=(AllowanceRequirement(token_in, spender, amount_in),),
                tokens=(token_in.symbol, token_out.symbol),
                pair=self.catalogue.find_pair(token_in.symbol, token_out.symbol),
            )

        if isinstance(command, AddLiquidityCommand):
            pair = self._pair(command.token_a, command.token_b)
            token_a = self._token(command.token_a)
            token_b = self._token(command.token_b)
            amount_a = self._positive_units(command.amount_a, token_a, f"{token_a.symbol} amount")
            amount_b = self._positive_units(command.amount_b, token_b, f"{token_b.symbol} amount")
            return OperationPlan(
                operation=AddLiquidityOperation(token_a, token_b, amount_a, amount_b),
                requirements=(
                    AllowanceRequirement(token_a, spender, amount_a),
                    AllowanceRequirement(token_b, spender, amount_b),
                ),
                tokens=(token_a.symbol, token_b.symbol),
                pair=pair,
            )

        if isinstance(command, RemoveLiquidityCommand):
            pair = self._pair(command.token_a, command.token_b)
            token_a = self._token(command.token_a)
            token_b = self._token(command.token_b)
            liquidity = 0
            if command.liquidity is not None:
                liquidity = to_ledger_units(command.liquidity)
                if liquidity <= 0:
                    raise InvalidRequest("Liquidity to remove must be greater than zero")
            return OperationPlan(
                operation=RemoveLiquidityOperation(token_a, token_b, liquidity),
                tokens=(token_a.symbol, token_b.symbol),
                pair=pair,
            )

        raise InvalidRequest(f"Unsupported command: {type(command).__name__}")

    def _pair(self, token_a: str, token_b: str) -> TokenPair:
        if token_a == token_b:
            raise InvalidRequest("A pool needs two different tokens")
        pair = self.catalogue.find_pair(token_a, token_b)
        if pair is None:
            raise InvalidRequest(f"{token_a}/{token_b} is not a supported pair")
        return pair

    async def _prepare_removal(self, plan: OperationPlan, account: str) -> OperationPlan:
        """Settle the amount to remove from a fresh read of the current share.

        The amount is never based on a stale snapshot; with no explicit
        amount the whole share is removed.
        """
        operation = plan.operation
        if plan.pair is None or not isinstance(operation, RemoveLiquidityOperation):
            raise InvalidRequest(f"Not a liquidity removal: {operation.describe()}")

        try:
            owned = await self.cache.user_liquidity_units(plan.pair, account)
        except Exception as e:
            raise classify_error(e, submitted=False) from e
        if owned <= 0:
            raise InvalidRequest(f"No liquidity to remove from {plan.pair.label}")

        amount = operation.liquidity or owned
        if amount > owned:
            raise InvalidRequest(
                f"Cannot remove {from_ledger_units(amount)} liquidity; "
                f"only {from_ledger_units(owned)} is owned in {plan.pair.label}"
            )
        return OperationPlan(
            operation=RemoveLiquidityOperation(operation.token_a, operation.token_b, amount),
            requirements=plan.requirements,
            tokens=plan.tokens,
            pair=plan.pair,
        )

    # =========================================================================
    # Allowance, quote, submission
    # =========================================================================

    async def _ensure_allowance(self, signer: Signer, requirement: AllowanceRequirement, flow: _Flow) -> None:
        """Approve exactly the required amount if the current allowance is short.

        The approval record is added to flow.approvals before it is submitted.

        Raises:
            InsufficientAllowance: If the allowance is still short after the
                approval confirmed
        """
        token = requirement.token
        current = await self._read_allowance(signer.account, requirement)
        if current >= requirement.amount:
            logger.debug(
                "allowance_sufficient",
                token=token.symbol,
                allowance=current,
                required=requirement.amount,
            )
            return

        logger.info(
            "approval_required",
            token=token.symbol,
            allowance=current,
            required=requirement.amount,
        )
        record = self._new_record(signer.account, ApproveOperation(token, requirement.spender, requirement.amount))
        flow.approvals.append(record)
        await self._submit_and_confirm(signer, record)

        after = await self._read_allowance(signer.account, requirement)
        if after < requirement.amount:
            raise InsufficientAllowance(
                f"{token.symbol} allowance is {from_ledger_units(after, token.decimals)} after approval, "
                f"need {from_ledger_units(requirement.amount, token.decimals)}",
                tx_hash=record.tx_hash,
            )

    async def _read_allowance(self, owner: str, requirement: AllowanceRequirement) -> int:
        try:
            return await self.ledger.allowance(requirement.token.address, owner, requirement.spender)
        except Exception as e:
            raise classify_error(e, submitted=False) from e

    async def _check_quotable(self, operation: SwapOperation) -> None:
        """Refuse a swap the exchange cannot quote before anything is approved.

        The bound used on submission still comes from _requote.
        """
        await self.quotes.quote_for_submission(
            operation.token_in.symbol,
            operation.token_out.symbol,
            operation.amount_in,
            self.settings.slippage_bps,
        )

    async def _requote(self, operation: SwapOperation) -> SwapOperation:
        """Re-quote a swap right before submission and set its minimum output."""
        fresh = await self.quotes.quote_for_submission(
            operation.token_in.symbol,
            operation.token_out.symbol,
            operation.amount_in,
            self.settings.slippage_bps,
        )
        logger.debug(
            "swap_requoted",
            token_in=operation.token_in.symbol,
            token_out=operation.token_out.symbol,
            amount_out=fresh.quote.amount_out,
            min_amount_out=fresh.min_amount_out,
        )
        return SwapOperation(operation.token_in, operation.token_out, operation.amount_in, fresh.min_amount_out)

    def _new_record(self, account: str, operation: PendingOperation) -> OperationRecord:
        record = OperationRecord(operation=operation, account=account)
        self._history.append(record)
        return record

    async def _submit_and_confirm(self, signer: Signer, record: OperationRecord) -> None:
        """Submit one operation and wait until the ledger accepts or rejects it.

        Cancellation while waiting leaves the record UNRESOLVED and is
        re-raised; the operation is neither reconciled nor assumed failed.
        When the send itself may have gone out without a hash coming back
        (cancelled or lost mid-send) the record becomes UNTRACKED.
        """
        operation = record.operation

        try:
            tx_hash = await self.ledger.submit(signer, operation)
        except asyncio.CancelledError:
            record.mark(OperationStatus.UNTRACKED, error="abandoned before the wallet returned a hash")
            logger.warning("operation_abandoned", kind=operation.kind.value, stage="submit")
            raise
        except Exception as e:
            error = classify_error(e, submitted=False)
            status = OperationStatus.UNTRACKED if isinstance(error, UnknownOutcome) else OperationStatus.FAILED
            record.mark(status, error=str(error))
            raise error from e

        record.mark(OperationStatus.SUBMITTED, tx_hash=tx_hash)

        try:
            receipt = await self._wait_for_receipt(tx_hash)
        except asyncio.CancelledError:
            record.mark(OperationStatus.UNRESOLVED, error="abandoned while awaiting confirmation")
            logger.warning("operation_abandoned", kind=operation.kind.value, stage="confirm", tx_hash=tx_hash)
            raise
        except Exception as e:
            error = classify_error(e, submitted=True, tx_hash=tx_hash)
            status = OperationStatus.UNRESOLVED if isinstance(error, UnknownOutcome) else OperationStatus.FAILED
            record.mark(status, error=str(error))
            raise error from e

        if not receipt.succeeded:
            record.mark(OperationStatus.FAILED, error="transaction reverted")
            raise RemoteRejected(f"{operation.describe()} was reverted by the ledger", tx_hash=tx_hash)

        record.mark(OperationStatus.CONFIRMED)
        logger.info(
            "operation_mined",
            kind=operation.kind.value,
            tx_hash=tx_hash,
            block=receipt.block_number,
        )

    async def _wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """Poll for a receipt until it appears or the confirmation timeout passes.

        Raises:
            UnknownOutcome: If no receipt appeared in time
        """

        async def poll() -> TxReceipt:
            while True:
                try:
                    receipt = await self.ledger.get_receipt(tx_hash)
                except Exception as e:
                    # A failed poll says nothing about the transaction itself
                    logger.debug("receipt_poll_failed", tx_hash=tx_hash, error=str(e))
                    receipt = None
                if receipt is not None:
                    return receipt
                await asyncio.sleep(self.settings.poll_interval)

        try:
            return await asyncio.wait_for(poll(), timeout=self.settings.confirmation_timeout)
        except TimeoutError as e:
            raise UnknownOutcome(
                f"No confirmation for {tx_hash} after {self.settings.confirmation_timeout:g}s; "
                "it may still be mined",
                tx_hash=tx_hash,
            ) from e

    # =========================================================================
    # Reconciliation
    # =========================================================================

    async def _reconcile(self, account: str, plan: OperationPlan) -> StateSnapshot:
        """Refresh every entity the confirmed operation touched."""
        pairs = [plan.pair] if plan.pair is not None else []
        try:
            return await self.cache.refresh(account, tokens=plan.tokens, pairs=pairs)
        except Exception as e:
            # The operation is confirmed; a failed refresh does not change that
            logger.warning("reconcile_failed", account=account, error=str(e))
            return self.cache.snapshot

    async def check_unresolved(self) -> list[OperationRecord]:
        """Look up receipts for unresolved operations once.

        Records whose receipt has appeared are moved to CONFIRMED or FAILED;
        confirmed ones trigger a refresh of the state they touched.

        Returns:
            Records resolved by this call
        """
        resolved = []
        for record in self.unresolved_operations():
            if record.tx_hash is None:
                continue
            try:
                receipt = await self.ledger.get_receipt(record.tx_hash)
            except Exception as e:
                logger.debug("receipt_poll_failed", tx_hash=record.tx_hash, error=str(e))
                continue
            if receipt is None:
                continue
            if receipt.succeeded:
                record.mark(OperationStatus.CONFIRMED)
                await self._reconcile(record.account, self._touched(record.operation))
            else:
                record.mark(OperationStatus.FAILED, error="transaction reverted")
            logger.info(
                "unresolved_operation_settled",
                tx_hash=record.tx_hash,
                status=record.status.value,
            )
            resolved.append(record)
        return resolved

    def _touched(self, operation: PendingOperation) -> OperationPlan:
        if isinstance(operation, ApproveOperation):
            return OperationPlan(operation=operation, tokens=(operation.token.symbol,))
        if isinstance(operation, SwapOperation):
            a, b = operation.token_in.symbol, operation.token_out.symbol
        else:
            a, b = operation.token_a.symbol, operation.token_b.symbol
        return OperationPlan(operation=operation, tokens=(a, b), pair=self.catalogue.find_pair(a, b))


__all__ = ["OutcomeStatus", "OperationOutcome", "Orchestrator"]
