"""Tests for the allowance-gated orchestrator."""

import asyncio
from decimal import Decimal

import pytest

from sagadex.errors import (
    InsufficientAllowance,
    InvalidRequest,
    NetworkMismatch,
    ProviderRpcError,
    RemoteRejected,
    TransportError,
    UnknownOutcome,
    UserRejected,
)
from sagadex.models import (
    AddLiquidityCommand,
    ApproveOperation,
    OperationKind,
    OperationStatus,
    RemoveLiquidityCommand,
    RemoveLiquidityOperation,
    SwapCommand,
    SwapOperation,
    TokenPair,
)
from sagadex.orchestrator import OutcomeStatus
from tests.helpers import (
    ACCOUNT,
    AMM,
    ONE,
    OTHER_CHAIN_ID,
    SAGA1_TOKEN,
    TEST_TOKEN,
    USD_TOKEN,
    FakeLedger,
    FakeWallet,
    make_catalogue,
    make_service,
    make_settings,
)

TEST_USD = TokenPair.of("TEST", "USD")
MIN_OUT_98 = 93_100_000_000_000_000_000


async def connected(ledger: FakeLedger, wallet: FakeWallet | None = None, **settings):
    """Service with a connected session."""
    service = make_service(ledger, wallet or FakeWallet(), settings=make_settings(**settings))
    await service.session.connect()
    return service


def prime_swap(ledger: FakeLedger, allowance: int = 0) -> None:
    """500 TEST in the wallet and an AMM quoting 98 USD for 100 TEST."""
    ledger.set_balance(TEST_TOKEN, ACCOUNT, 500 * ONE)
    ledger.set_amount_out(TEST_TOKEN, USD_TOKEN, 98 * ONE)
    ledger.set_pool(TEST_TOKEN, USD_TOKEN, 1000 * ONE, 1000 * ONE, 1000 * ONE)
    if allowance:
        ledger.set_allowance(TEST_TOKEN, ACCOUNT, AMM, allowance)


class TestSwap:
    """Swap flows."""

    @pytest.mark.asyncio
    async def test_swap_with_sufficient_allowance(self, ledger):
        """No approval when the allowance covers the input; bound is 95% of the quote."""
        prime_swap(ledger, allowance=100 * ONE)
        service = await connected(ledger)

        outcome = await service.orchestrator.swap("TEST", "USD", "100")

        assert outcome.status == OutcomeStatus.CONFIRMED
        assert outcome.approvals == ()
        assert outcome.min_amount_out == MIN_OUT_98
        assert ledger.submitted == [
            SwapOperation(
                service.catalogue.token("TEST"),
                service.catalogue.token("USD"),
                100 * ONE,
                MIN_OUT_98,
            )
        ]

    @pytest.mark.asyncio
    async def test_swap_approves_exact_amount_first(self, ledger):
        """Approval of exactly the input amount confirms before the swap is sent."""
        prime_swap(ledger)
        service = await connected(ledger)

        outcome = await service.orchestrator.swap("TEST", "USD", "100")

        assert outcome.succeeded
        approve, swap = ledger.submitted
        assert isinstance(approve, ApproveOperation)
        assert approve.amount == 100 * ONE
        assert approve.spender == AMM
        assert isinstance(swap, SwapOperation)
        assert swap.min_amount_out == MIN_OUT_98

        names = ledger.call_names()
        first_receipt = names.index("get_receipt")
        second_submit = [i for i, name in enumerate(names) if name == "submit"][1]
        assert first_receipt < second_submit
        assert [r.status for r in outcome.approvals] == [OperationStatus.CONFIRMED]

    @pytest.mark.asyncio
    async def test_swap_reconciles_state(self, ledger):
        """After confirmation the snapshot shows the new balances."""
        prime_swap(ledger, allowance=100 * ONE)
        service = await connected(ledger)

        outcome = await service.orchestrator.swap("TEST", "USD", "100")

        assert outcome.clear_inputs
        assert outcome.snapshot is service.cache.snapshot
        assert outcome.snapshot.balance("TEST") == Decimal(400)
        assert outcome.snapshot.balance("USD") == Decimal(98)
        assert outcome.snapshot.pool(TEST_USD) is not None

    @pytest.mark.asyncio
    async def test_bound_uses_fresh_quote(self, ledger):
        """A quote displayed earlier is not the bound; the submission-time quote is."""
        prime_swap(ledger, allowance=100 * ONE)
        service = await connected(ledger)
        displayed = await service.quotes.quote("TEST", "USD", 100 * ONE)
        ledger.set_amount_out(TEST_TOKEN, USD_TOKEN, 90 * ONE)

        outcome = await service.orchestrator.swap("TEST", "USD", "100")

        assert displayed.amount_out == 98 * ONE
        assert outcome.min_amount_out == 85_500_000_000_000_000_000

    @pytest.mark.asyncio
    async def test_configured_slippage(self, ledger):
        prime_swap(ledger, allowance=100 * ONE)
        service = await connected(ledger, slippage_bps=100)

        outcome = await service.orchestrator.swap("TEST", "USD", "100")

        assert outcome.min_amount_out == 97_020_000_000_000_000_000

    @pytest.mark.asyncio
    async def test_quote_failure_after_approval(self):
        """The submission quote fails after approving: the approval stays, the swap is never sent."""

        class QuoteOnce(FakeLedger):
            async def get_amount_out(self, token_in, token_out, amount_in):
                if "get_amount_out" in self.call_names():
                    raise ConnectionError("down")
                return await super().get_amount_out(token_in, token_out, amount_in)

        ledger = QuoteOnce()
        prime_swap(ledger)
        service = await connected(ledger)

        with pytest.raises(TransportError):
            await service.orchestrator.swap("TEST", "USD", "100")

        assert [op.kind for op in ledger.submitted] == [OperationKind.APPROVE]

    @pytest.mark.asyncio
    async def test_unquotable_swap_approves_nothing(self, ledger):
        """A swap the exchange cannot quote is refused before any approval."""
        ledger.set_balance(TEST_TOKEN, ACCOUNT, 500 * ONE)
        wallet = FakeWallet()
        service = await connected(ledger, wallet)
        requests_before = len(wallet.requests)

        with pytest.raises(InvalidRequest, match="no_liquidity"):
            await service.orchestrator.swap("TEST", "USD", "100")

        assert ledger.submitted == []
        assert "allowance" not in ledger.call_names()
        assert len(wallet.requests) == requests_before

    @pytest.mark.asyncio
    async def test_send_lost_is_not_retry_safe(self, ledger):
        """A send that may have reached the ledger without a hash is untracked, never a plain failure."""
        prime_swap(ledger, allowance=100 * ONE)
        ledger.submit_errors[OperationKind.SWAP] = UnknownOutcome("No response from the wallet")
        service = await connected(ledger)

        (outcome,) = await service.orchestrator.execute_batch([SwapCommand("TEST", "USD", "100")])

        assert outcome.status == OutcomeStatus.UNRESOLVED
        assert not outcome.retry_safe
        assert outcome.primary.status == OperationStatus.UNTRACKED
        assert outcome.primary.tx_hash is None
        assert service.orchestrator.untracked_operations() == [outcome.primary]
        assert service.orchestrator.unresolved_operations() == []

    @pytest.mark.asyncio
    async def test_swap_reverted(self, ledger):
        """A reverted swap is a remote rejection; the confirmed approval is kept."""
        prime_swap(ledger)
        ledger.receipt_status[OperationKind.SWAP] = 0
        service = await connected(ledger)

        (outcome,) = await service.orchestrator.execute_batch([SwapCommand("TEST", "USD", "100")])

        assert outcome.status == OutcomeStatus.FAILED
        assert isinstance(outcome.error, RemoteRejected)
        assert outcome.error.tx_hash == outcome.primary.tx_hash
        assert outcome.retry_safe
        assert not outcome.clear_inputs
        assert outcome.approvals[0].status == OperationStatus.CONFIRMED
        assert outcome.primary.status == OperationStatus.FAILED
        assert ledger.allowances[(TEST_TOKEN, ACCOUNT, AMM)] == 100 * ONE

    @pytest.mark.asyncio
    async def test_user_rejects_swap_signature(self, ledger):
        prime_swap(ledger, allowance=100 * ONE)
        ledger.submit_errors[OperationKind.SWAP] = ProviderRpcError(4001, "User denied transaction signature")
        service = await connected(ledger)

        with pytest.raises(UserRejected):
            await service.orchestrator.swap("TEST", "USD", "100")

        assert ledger.submitted == []
        assert service.orchestrator.history[-1].status == OperationStatus.FAILED


class TestApprovalFailures:
    """Failures during the allowance step abort the operation."""

    @pytest.mark.asyncio
    async def test_approval_rejected_by_user(self, ledger):
        prime_swap(ledger)
        ledger.submit_errors[OperationKind.APPROVE] = ProviderRpcError(4001, "User rejected")
        service = await connected(ledger)

        with pytest.raises(UserRejected) as exc_info:
            await service.orchestrator.swap("TEST", "USD", "100")

        assert exc_info.value.retry_safe
        assert ledger.submitted == []
        # Only the check before approving; the submission quote is never taken
        assert ledger.call_names().count("get_amount_out") == 1

    @pytest.mark.asyncio
    async def test_approval_reverted(self, ledger):
        prime_swap(ledger)
        ledger.receipt_status[OperationKind.APPROVE] = 0
        service = await connected(ledger)

        with pytest.raises(RemoteRejected):
            await service.orchestrator.swap("TEST", "USD", "100")

        assert [op.kind for op in ledger.submitted] == [OperationKind.APPROVE]

    @pytest.mark.asyncio
    async def test_allowance_still_short(self, ledger):
        """A token that grants less than approved never reaches the swap."""
        prime_swap(ledger)
        ledger.approve_grants = ONE
        service = await connected(ledger)

        with pytest.raises(InsufficientAllowance) as exc_info:
            await service.orchestrator.swap("TEST", "USD", "100")

        assert exc_info.value.tx_hash is not None
        assert [op.kind for op in ledger.submitted] == [OperationKind.APPROVE]

    @pytest.mark.asyncio
    async def test_allowance_read_failure(self, ledger):
        prime_swap(ledger)
        ledger.failures["allowance"] = ConnectionError("down")
        service = await connected(ledger)

        with pytest.raises(TransportError):
            await service.orchestrator.swap("TEST", "USD", "100")

        assert ledger.submitted == []


class TestPreconditions:
    """Local validation fails before any network call."""

    @pytest.mark.asyncio
    async def test_not_connected(self, ledger):
        service = make_service(ledger, FakeWallet(), settings=make_settings())

        with pytest.raises(InvalidRequest, match="Connect a wallet"):
            await service.orchestrator.swap("TEST", "USD", "100")

        assert ledger.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5", "abc", "", "NaN"])
    async def test_bad_swap_amount(self, ledger, amount):
        wallet = FakeWallet()
        service = await connected(ledger, wallet)
        requests_before = len(wallet.requests)

        with pytest.raises(InvalidRequest):
            await service.orchestrator.swap("TEST", "USD", amount)

        assert ledger.calls == []
        assert len(wallet.requests) == requests_before

    @pytest.mark.asyncio
    async def test_same_token(self, ledger):
        service = await connected(ledger)
        with pytest.raises(InvalidRequest, match="itself"):
            await service.orchestrator.swap("TEST", "TEST", "1")
        assert ledger.calls == []

    @pytest.mark.asyncio
    async def test_unknown_token(self, ledger):
        service = await connected(ledger)
        with pytest.raises(InvalidRequest, match="Unknown token"):
            await service.orchestrator.swap("TEST", "DOGE", "1")

    @pytest.mark.asyncio
    async def test_undeployed_token(self, ledger):
        service = make_service(
            ledger, FakeWallet(), catalogue=make_catalogue(deployed={"TEST"}), settings=make_settings()
        )
        await service.session.connect()

        with pytest.raises(InvalidRequest, match="not deployed"):
            await service.orchestrator.swap("TEST", "USD", "1")

        assert ledger.calls == []

    @pytest.mark.asyncio
    async def test_undeployed_exchange(self, ledger):
        service = make_service(ledger, FakeWallet(), catalogue=make_catalogue(amm=False), settings=make_settings())
        await service.session.connect()

        with pytest.raises(InvalidRequest, match="exchange"):
            await service.orchestrator.swap("TEST", "USD", "1")

    @pytest.mark.asyncio
    async def test_wallet_moved_chain(self, ledger):
        """The signer is re-derived per operation, so a chain change is caught."""
        prime_swap(ledger, allowance=100 * ONE)
        wallet = FakeWallet()
        service = await connected(ledger, wallet)
        wallet.chain_id = OTHER_CHAIN_ID

        with pytest.raises(NetworkMismatch):
            await service.orchestrator.swap("TEST", "USD", "100")

        assert ledger.submitted == []


class TestLiquidity:
    """Add and remove liquidity flows."""

    @pytest.mark.asyncio
    async def test_add_liquidity_approves_both(self, ledger):
        service = await connected(ledger)

        outcome = await service.orchestrator.add_liquidity("TEST", "USD", "10", "20")

        kinds = [op.kind for op in ledger.submitted]
        assert kinds == [OperationKind.APPROVE, OperationKind.APPROVE, OperationKind.ADD_LIQUIDITY]
        assert [op.amount for op in ledger.submitted[:2]] == [10 * ONE, 20 * ONE]
        assert outcome.snapshot.liquidity(TEST_USD) == Decimal(10)

    @pytest.mark.asyncio
    async def test_add_liquidity_skips_covered_allowance(self, ledger):
        ledger.set_allowance(TEST_TOKEN, ACCOUNT, AMM, 10 * ONE)
        service = await connected(ledger)

        await service.orchestrator.add_liquidity("TEST", "USD", "10", "20")

        approvals = [op for op in ledger.submitted if isinstance(op, ApproveOperation)]
        assert [op.token.symbol for op in approvals] == ["USD"]

    @pytest.mark.asyncio
    async def test_add_liquidity_zero_amount(self, ledger):
        service = await connected(ledger)
        with pytest.raises(InvalidRequest):
            await service.orchestrator.add_liquidity("TEST", "USD", "10", "0")
        assert ledger.calls == []

    @pytest.mark.asyncio
    async def test_add_liquidity_second_approval_rejected(self, ledger):
        """The first approval is kept, the deposit is not sent."""

        class SecondApprovalRejected(FakeLedger):
            async def submit(self, signer, operation):
                if isinstance(operation, ApproveOperation) and operation.token.symbol == "USD":
                    self.calls.append(("submit", (operation.kind,)))
                    raise ProviderRpcError(4001, "User rejected")
                return await super().submit(signer, operation)

        ledger = SecondApprovalRejected()
        service = await connected(ledger)

        with pytest.raises(UserRejected):
            await service.orchestrator.add_liquidity("TEST", "USD", "10", "20")

        assert [op.kind for op in ledger.submitted] == [OperationKind.APPROVE]
        assert ledger.allowances[(TEST_TOKEN, ACCOUNT, AMM)] == 10 * ONE

    @pytest.mark.asyncio
    async def test_remove_full_share_by_default(self, ledger):
        """Without an amount the whole share is removed, with no approval."""
        ledger.set_user_liquidity(TEST_TOKEN, USD_TOKEN, ACCOUNT, 7 * ONE)
        service = await connected(ledger)

        outcome = await service.orchestrator.remove_liquidity("TEST", "USD")

        assert ledger.submitted == [
            RemoveLiquidityOperation(service.catalogue.token("TEST"), service.catalogue.token("USD"), 7 * ONE)
        ]
        assert outcome.snapshot.liquidity(TEST_USD) == Decimal(0)

    @pytest.mark.asyncio
    async def test_remove_partial(self, ledger):
        ledger.set_user_liquidity(TEST_TOKEN, USD_TOKEN, ACCOUNT, 7 * ONE)
        service = await connected(ledger)

        await service.orchestrator.remove_liquidity("USD", "TEST", "2.5")

        assert ledger.submitted[0].liquidity == 2_500_000_000_000_000_000

    @pytest.mark.asyncio
    async def test_remove_more_than_owned(self, ledger):
        ledger.set_user_liquidity(TEST_TOKEN, USD_TOKEN, ACCOUNT, 7 * ONE)
        service = await connected(ledger)

        with pytest.raises(InvalidRequest, match="only 7 is owned"):
            await service.orchestrator.remove_liquidity("TEST", "USD", "8")

        assert ledger.submitted == []

    @pytest.mark.asyncio
    async def test_remove_with_no_share(self, ledger):
        service = await connected(ledger)

        with pytest.raises(InvalidRequest, match="No liquidity"):
            await service.orchestrator.remove_liquidity("TEST", "USD")

        assert "submit" not in ledger.call_names()

    @pytest.mark.asyncio
    async def test_remove_with_no_share_never_prompts_wallet(self, ledger):
        """A zero share fails before the wallet is asked for anything."""
        wallet = FakeWallet()
        service = await connected(ledger, wallet)
        wallet_requests = len(wallet.requests)
        ledger_calls = len(ledger.calls)

        with pytest.raises(InvalidRequest, match="No liquidity"):
            await service.orchestrator.remove_liquidity("TEST", "USD")

        assert len(wallet.requests) == wallet_requests
        assert ledger.call_names()[ledger_calls:] == ["get_user_liquidity"]

    @pytest.mark.asyncio
    async def test_remove_ignores_cached_zero_share(self, ledger):
        """A zero in the snapshot (here from a failed read) does not block a removal."""
        service = await connected(ledger)
        ledger.failures["get_user_liquidity"] = ConnectionError("down")
        await service.cache.refresh(ACCOUNT)
        assert service.cache.snapshot.liquidity(TEST_USD) == Decimal(0)

        del ledger.failures["get_user_liquidity"]
        ledger.set_user_liquidity(TEST_TOKEN, USD_TOKEN, ACCOUNT, 5 * ONE)

        outcome = await service.orchestrator.remove_liquidity("TEST", "USD")

        assert outcome.succeeded
        assert ledger.submitted[0].liquidity == 5 * ONE

    @pytest.mark.asyncio
    async def test_removal_step_rejects_other_plans(self, ledger):
        """The removal step raises a client error, not an assertion, on a foreign plan."""
        service = await connected(ledger)
        plan = service.orchestrator._prepare(SwapCommand("TEST", "USD", "1"))

        with pytest.raises(InvalidRequest, match="Not a liquidity removal"):
            await service.orchestrator._prepare_removal(plan, ACCOUNT)

    @pytest.mark.asyncio
    async def test_remove_liquidity_read_failure(self, ledger):
        service = await connected(ledger)
        ledger.failures["get_user_liquidity"] = ConnectionError("down")

        with pytest.raises(TransportError):
            await service.orchestrator.remove_liquidity("TEST", "USD")

    @pytest.mark.asyncio
    async def test_remove_zero_amount(self, ledger):
        service = await connected(ledger)
        with pytest.raises(InvalidRequest):
            await service.orchestrator.execute(RemoveLiquidityCommand("TEST", "USD", "0"))


class TestConfirmation:
    """Confirmation waits, timeouts and cancellation."""

    @pytest.mark.asyncio
    async def test_waits_through_pending_polls(self, ledger):
        prime_swap(ledger, allowance=100 * ONE)
        ledger.pending_polls = 3
        service = await connected(ledger)

        outcome = await service.orchestrator.swap("TEST", "USD", "100")

        assert outcome.succeeded
        assert ledger.call_names().count("get_receipt") == 4

    @pytest.mark.asyncio
    async def test_receipt_poll_errors_tolerated(self, ledger):
        """A failed receipt lookup says nothing about the transaction."""

        class FlakyReceipts(FakeLedger):
            failed_once = False

            async def get_receipt(self, tx_hash):
                if not self.failed_once:
                    self.failed_once = True
                    raise ConnectionError("blip")
                return await super().get_receipt(tx_hash)

        ledger = FlakyReceipts()
        prime_swap(ledger, allowance=100 * ONE)
        service = await connected(ledger)

        outcome = await service.orchestrator.swap("TEST", "USD", "100")

        assert outcome.succeeded

    @pytest.mark.asyncio
    async def test_timeout_is_unknown_outcome(self, ledger):
        """No receipt in time: unresolved, not failed, and not safe to blindly retry."""
        prime_swap(ledger, allowance=100 * ONE)
        ledger.never_confirm = True
        service = await connected(ledger, confirmation_timeout=0.05)

        with pytest.raises(UnknownOutcome) as exc_info:
            await service.orchestrator.swap("TEST", "USD", "100")

        assert exc_info.value.retry_safe is False
        assert exc_info.value.tx_hash is not None
        (record,) = service.orchestrator.unresolved_operations()
        assert record.kind == OperationKind.SWAP
        assert record.tx_hash == exc_info.value.tx_hash

    @pytest.mark.asyncio
    async def test_unresolved_outcome_status(self, ledger):
        prime_swap(ledger, allowance=100 * ONE)
        ledger.never_confirm = True
        service = await connected(ledger, confirmation_timeout=0.05)

        (outcome,) = await service.orchestrator.execute_batch([SwapCommand("TEST", "USD", "100")])

        assert outcome.status == OutcomeStatus.UNRESOLVED
        assert not outcome.retry_safe
        assert outcome.snapshot is None

    @pytest.mark.asyncio
    async def test_check_unresolved_settles_later(self, ledger):
        """Once the receipt appears, the record is confirmed and state refreshed."""
        prime_swap(ledger, allowance=100 * ONE)
        ledger.never_confirm = True
        service = await connected(ledger, confirmation_timeout=0.05)
        with pytest.raises(UnknownOutcome):
            await service.orchestrator.swap("TEST", "USD", "100")

        ledger.never_confirm = False
        (record,) = await service.orchestrator.check_unresolved()

        assert record.status == OperationStatus.CONFIRMED
        assert service.orchestrator.unresolved_operations() == []
        assert service.cache.snapshot.balance("TEST") == Decimal(400)

    @pytest.mark.asyncio
    async def test_check_unresolved_still_pending(self, ledger):
        prime_swap(ledger, allowance=100 * ONE)
        ledger.never_confirm = True
        service = await connected(ledger, confirmation_timeout=0.05)
        with pytest.raises(UnknownOutcome):
            await service.orchestrator.swap("TEST", "USD", "100")

        assert await service.orchestrator.check_unresolved() == []
        assert len(service.orchestrator.unresolved_operations()) == 1

    @pytest.mark.asyncio
    async def test_cancel_while_waiting(self, ledger):
        """Cancellation after submission leaves the operation unresolved."""
        prime_swap(ledger, allowance=100 * ONE)
        ledger.never_confirm = True
        service = await connected(ledger, confirmation_timeout=30)

        task = asyncio.create_task(service.orchestrator.swap("TEST", "USD", "100"))
        while not ledger.submitted:
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        (record,) = service.orchestrator.unresolved_operations()
        assert record.kind == OperationKind.SWAP
        assert not service.orchestrator.is_busy(ACCOUNT)

    @pytest.mark.asyncio
    async def test_cancel_before_hash(self, ledger):
        """Cancelled mid-send: untracked, and never polled since there is no hash."""
        prime_swap(ledger, allowance=100 * ONE)
        ledger.gate = asyncio.Event()
        service = await connected(ledger)

        task = asyncio.create_task(service.orchestrator.swap("TEST", "USD", "100"))
        await ledger.submit_started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        (record,) = service.orchestrator.untracked_operations()
        assert record.status == OperationStatus.UNTRACKED
        assert record.status.is_final
        assert record.tx_hash is None
        assert service.orchestrator.unresolved_operations() == []
        assert await service.orchestrator.check_unresolved() == []
        assert "get_receipt" not in ledger.call_names()


class TestConcurrency:
    """At most one flow per account."""

    @pytest.mark.asyncio
    async def test_second_flow_refused(self, ledger):
        prime_swap(ledger, allowance=200 * ONE)
        ledger.gate = asyncio.Event()
        service = await connected(ledger)

        first = asyncio.create_task(service.orchestrator.swap("TEST", "USD", "100"))
        await ledger.submit_started.wait()
        assert service.orchestrator.is_busy(ACCOUNT)

        with pytest.raises(InvalidRequest, match="in progress"):
            await service.orchestrator.swap("TEST", "USD", "100")

        ledger.gate.set()
        outcome = await first
        assert outcome.succeeded
        assert len(ledger.submitted) == 1


class TestBatch:
    """Tests for execute_batch()."""

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_batch(self, ledger):
        prime_swap(ledger, allowance=100 * ONE)
        ledger.set_user_liquidity(TEST_TOKEN, USD_TOKEN, ACCOUNT, ONE)
        ledger.set_balance(SAGA1_TOKEN, ACCOUNT, ONE)
        service = await connected(ledger)

        outcomes = await service.orchestrator.execute_batch(
            [
                SwapCommand("TEST", "USD", "100"),
                AddLiquidityCommand("TEST", "SAGA1", "0", "1"),
                RemoveLiquidityCommand("TEST", "USD"),
            ]
        )

        assert [o.status for o in outcomes] == [
            OutcomeStatus.CONFIRMED,
            OutcomeStatus.FAILED,
            OutcomeStatus.CONFIRMED,
        ]
        assert isinstance(outcomes[1].error, InvalidRequest)
