"""Tests for the state cache."""

from decimal import Decimal

import pytest

from sagadex.models.tokens import TokenPair
from sagadex.state import StateCache
from tests.helpers import (
    ACCOUNT,
    ONE,
    OTHER_ACCOUNT,
    SAGA1_TOKEN,
    TEST_TOKEN,
    USD_TOKEN,
    FakeLedger,
    make_catalogue,
)

TEST_USD = TokenPair.of("TEST", "USD")


class TestBalances:
    """Tests for balance refreshes."""

    @pytest.mark.asyncio
    async def test_reads_every_deployed_token(self, ledger, catalogue):
        ledger.set_balance(TEST_TOKEN, ACCOUNT, 5 * ONE)
        cache = StateCache(ledger, catalogue)

        balances = await cache.refresh_balances(ACCOUNT)

        assert balances == {
            "TEST": Decimal(5),
            "USD": Decimal(0),
            "SAGA1": Decimal(0),
            "SAGA2": Decimal(0),
        }

    @pytest.mark.asyncio
    async def test_failed_read_is_unknown_not_zero(self, ledger, catalogue):
        """A failed balance read becomes None; other balances still load."""
        ledger.set_balance(USD_TOKEN, ACCOUNT, 2 * ONE)
        ledger.failures["balance_of"] = ConnectionError("node down")
        cache = StateCache(ledger, catalogue)

        balances = await cache.refresh_balances(ACCOUNT)

        assert balances["TEST"] is None
        assert balances["USD"] is None

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(self, catalogue):
        """Only the failing token degrades."""

        class FlakyLedger(FakeLedger):
            async def balance_of(self, token, account):
                if token == SAGA1_TOKEN:
                    raise TimeoutError()
                return await super().balance_of(token, account)

        ledger = FlakyLedger()
        ledger.set_balance(TEST_TOKEN, ACCOUNT, ONE)
        cache = StateCache(ledger, catalogue)

        balances = await cache.refresh_balances(ACCOUNT)

        assert balances["TEST"] == Decimal(1)
        assert balances["SAGA1"] is None

    @pytest.mark.asyncio
    async def test_unconfigured_tokens_skipped(self, ledger):
        """Tokens with placeholder addresses are never queried."""
        cache = StateCache(ledger, make_catalogue(deployed={"TEST"}))

        balances = await cache.refresh_balances(ACCOUNT)

        assert list(balances) == ["TEST"]
        assert ledger.call_names() == ["balance_of"]


class TestPools:
    """Tests for pool refreshes."""

    @pytest.mark.asyncio
    async def test_reads_pool(self, ledger, catalogue):
        ledger.set_pool(TEST_TOKEN, USD_TOKEN, 100 * ONE, 98 * ONE, 99 * ONE)
        cache = StateCache(ledger, catalogue)

        pool = await cache.refresh_pool(TEST_USD)

        assert pool is not None
        assert pool.reserve_a == Decimal(100)
        assert pool.reserve_b == Decimal(98)
        assert pool.total_liquidity == Decimal(99)

    @pytest.mark.asyncio
    async def test_empty_reserves_is_no_pool(self, ledger, catalogue):
        cache = StateCache(ledger, catalogue)
        assert await cache.refresh_pool(TEST_USD) is None

    @pytest.mark.asyncio
    async def test_failed_read_is_no_pool(self, ledger, catalogue):
        ledger.failures["get_pool_info"] = ConnectionError("down")
        cache = StateCache(ledger, catalogue)
        assert await cache.refresh_pool(TEST_USD) is None

    @pytest.mark.asyncio
    async def test_unconfigured_amm_is_no_pool(self, ledger):
        cache = StateCache(ledger, make_catalogue(amm=False))
        assert await cache.refresh_pool(TEST_USD) is None
        assert ledger.calls == []

    @pytest.mark.asyncio
    async def test_user_liquidity_failure_is_zero(self, ledger, catalogue):
        ledger.failures["get_user_liquidity"] = ConnectionError("down")
        cache = StateCache(ledger, catalogue)
        assert await cache.refresh_user_liquidity(TEST_USD, ACCOUNT) == Decimal(0)

    @pytest.mark.asyncio
    async def test_user_liquidity_units_raises(self, ledger, catalogue):
        """The precondition read never guesses a value."""
        ledger.failures["get_user_liquidity"] = ConnectionError("down")
        cache = StateCache(ledger, catalogue)
        with pytest.raises(ConnectionError):
            await cache.user_liquidity_units(TEST_USD, ACCOUNT)


class TestRefresh:
    """Tests for full refreshes and snapshot replacement."""

    @pytest.mark.asyncio
    async def test_refresh_publishes_new_snapshot(self, ledger, catalogue):
        ledger.set_balance(TEST_TOKEN, ACCOUNT, 3 * ONE)
        ledger.set_pool(TEST_TOKEN, USD_TOKEN, 10 * ONE, 20 * ONE, 5 * ONE)
        ledger.set_user_liquidity(TEST_TOKEN, USD_TOKEN, ACCOUNT, ONE)
        cache = StateCache(ledger, catalogue)
        before = cache.snapshot

        after = await cache.refresh(ACCOUNT)

        assert after is cache.snapshot
        assert after is not before
        assert before.balances == {}
        assert after.account == ACCOUNT
        assert after.balance("TEST") == Decimal(3)
        assert after.pool(TEST_USD).reserve_b == Decimal(20)
        assert after.liquidity(TEST_USD) == Decimal(1)
        assert after.fetched_at is not None

    @pytest.mark.asyncio
    async def test_partial_refresh_keeps_other_values(self, ledger, catalogue):
        ledger.set_balance(TEST_TOKEN, ACCOUNT, 3 * ONE)
        ledger.set_balance(USD_TOKEN, ACCOUNT, 4 * ONE)
        cache = StateCache(ledger, catalogue)
        await cache.refresh(ACCOUNT)

        ledger.set_balance(TEST_TOKEN, ACCOUNT, ONE)
        snapshot = await cache.refresh(ACCOUNT, tokens=["TEST"], pairs=[])

        assert snapshot.balance("TEST") == Decimal(1)
        assert snapshot.balance("USD") == Decimal(4)

    @pytest.mark.asyncio
    async def test_account_switch_discards_old_balances(self, ledger, catalogue):
        ledger.set_balance(USD_TOKEN, ACCOUNT, 4 * ONE)
        cache = StateCache(ledger, catalogue)
        await cache.refresh(ACCOUNT)

        snapshot = await cache.refresh(OTHER_ACCOUNT, tokens=["TEST"], pairs=[])

        assert snapshot.balance("USD") is None

    @pytest.mark.asyncio
    async def test_no_account_reads_pools_only(self, ledger, catalogue):
        cache = StateCache(ledger, catalogue)
        snapshot = await cache.refresh(None)
        assert snapshot.balances == {}
        assert "balance_of" not in ledger.call_names()
        assert "get_user_liquidity" not in ledger.call_names()

    def test_invalidate(self, ledger, catalogue):
        cache = StateCache(ledger, catalogue)
        cache.invalidate()
        assert cache.snapshot.account is None
