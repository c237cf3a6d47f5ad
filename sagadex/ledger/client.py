"""Ledger client: reads from and submits to the AMM and token contracts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TransactionNotFound

from sagadex.errors import ProviderRpcError, UnknownOutcome
from sagadex.ledger.abi import DEX_ABI, ERC20_ABI
from sagadex.ledger.wallet import Signer
from sagadex.models.operations import (
    AddLiquidityOperation,
    ApproveOperation,
    PendingOperation,
    RemoveLiquidityOperation,
    SwapOperation,
)
from sagadex.models.types import validate_uint256

logger = structlog.get_logger()


@dataclass(frozen=True)
class TxReceipt:
    """Mined transaction receipt (only what the orchestrator needs)."""

    tx_hash: str
    status: int
    block_number: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class LedgerClient(Protocol):
    """Protocol for ledger access.

    All amounts are integer ledger units and all token arguments are
    contract addresses. Read methods raise on failure; callers decide how
    to degrade.
    """

    async def balance_of(self, token: str, account: str) -> int: ...

    async def allowance(self, token: str, owner: str, spender: str) -> int: ...

    async def get_amount_out(self, token_in: str, token_out: str, amount_in: int) -> int: ...

    async def get_pool_info(self, token_a: str, token_b: str) -> tuple[int, int, int]: ...

    async def get_user_liquidity(self, token_a: str, token_b: str, account: str) -> int: ...

    async def submit(self, signer: Signer, operation: PendingOperation) -> str:
        """Build, sign and broadcast an operation; return its tx hash.

        Raises:
            UnknownOutcome: If the send failed in a way that leaves open
                whether the wallet broadcast the transaction
        """
        ...

    async def get_receipt(self, tx_hash: str) -> TxReceipt | None:
        """Receipt for a mined transaction, or None while still pending."""
        ...


class Web3LedgerClient:
    """LedgerClient backed by web3.py's asynchronous API.

    Reads go to the ledger RPC endpoint. Writes are built against the same
    endpoint (which also simulates them, surfacing reverts before anything
    is signed) and handed to the signer's wallet for signing and broadcast.
    """

    def __init__(self, rpc_url: str, amm_address: str, w3: AsyncWeb3 | None = None) -> None:
        """Initialize the client.

        Args:
            rpc_url: HTTP RPC URL of the ledger
            amm_address: Address of the DEX exchange contract
            w3: Pre-built AsyncWeb3 instance (overrides rpc_url)
        """
        self.w3 = w3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.amm_address = AsyncWeb3.to_checksum_address(amm_address)
        self.dex = self.w3.eth.contract(address=self.amm_address, abi=DEX_ABI)

    def _erc20(self, token: str) -> Any:
        return self.w3.eth.contract(address=AsyncWeb3.to_checksum_address(token), abi=ERC20_ABI)

    @staticmethod
    def _addr(address: str) -> str:
        return AsyncWeb3.to_checksum_address(address)

    async def balance_of(self, token: str, account: str) -> int:
        return validate_uint256(await self._erc20(token).functions.balanceOf(self._addr(account)).call())

    async def allowance(self, token: str, owner: str, spender: str) -> int:
        result = await self._erc20(token).functions.allowance(self._addr(owner), self._addr(spender)).call()
        return validate_uint256(result)

    async def get_amount_out(self, token_in: str, token_out: str, amount_in: int) -> int:
        result = await self.dex.functions.getAmountOut(
            self._addr(token_in), self._addr(token_out), amount_in
        ).call()
        return validate_uint256(result)

    async def get_pool_info(self, token_a: str, token_b: str) -> tuple[int, int, int]:
        reserve_a, reserve_b, total = await self.dex.functions.getPoolInfo(
            self._addr(token_a), self._addr(token_b)
        ).call()
        return validate_uint256(reserve_a), validate_uint256(reserve_b), validate_uint256(total)

    async def get_user_liquidity(self, token_a: str, token_b: str, account: str) -> int:
        result = await self.dex.functions.getUserLiquidity(
            self._addr(token_a), self._addr(token_b), self._addr(account)
        ).call()
        return validate_uint256(result)

    def _contract_call(self, operation: PendingOperation) -> Any:
        """Map an operation onto the contract function that performs it."""
        if isinstance(operation, ApproveOperation):
            return self._erc20(operation.token.address).functions.approve(
                self._addr(operation.spender), operation.amount
            )
        if isinstance(operation, SwapOperation):
            return self.dex.functions.swapTokens(
                self._addr(operation.token_in.address),
                self._addr(operation.token_out.address),
                operation.amount_in,
                operation.min_amount_out,
            )
        if isinstance(operation, AddLiquidityOperation):
            return self.dex.functions.addLiquidity(
                self._addr(operation.token_a.address),
                self._addr(operation.token_b.address),
                operation.amount_a,
                operation.amount_b,
            )
        if isinstance(operation, RemoveLiquidityOperation):
            return self.dex.functions.removeLiquidity(
                self._addr(operation.token_a.address),
                self._addr(operation.token_b.address),
                operation.liquidity,
            )
        raise TypeError(f"Unknown operation type: {type(operation)}")

    async def submit(self, signer: Signer, operation: PendingOperation) -> str:
        # build_transaction estimates gas, so a call that would revert raises
        # ContractLogicError here, before the wallet is asked to sign
        tx = await self._contract_call(operation).build_transaction(
            {"from": self._addr(signer.account), "chainId": signer.chain_id}
        )
        try:
            tx_hash = await signer.send_transaction(dict(tx))
        except ProviderRpcError:
            # The wallet answered with an error object: nothing was broadcast
            raise
        except Exception as e:
            # Lost between the wallet and us; it may already be on the ledger
            logger.warning("operation_send_unconfirmed", kind=operation.kind.value, error=str(e))
            raise UnknownOutcome(
                f"No response from the wallet while sending {operation.describe()}; it may have been broadcast"
            ) from e
        logger.info(
            "operation_submitted",
            kind=operation.kind.value,
            account=signer.account,
            tx_hash=tx_hash,
        )
        return tx_hash

    async def get_receipt(self, tx_hash: str) -> TxReceipt | None:
        try:
            receipt = await self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        return TxReceipt(
            tx_hash=tx_hash,
            status=int(receipt["status"]),
            block_number=receipt.get("blockNumber"),
        )

    async def chain_id(self) -> int:
        return int(await self.w3.eth.chain_id)


__all__ = ["TxReceipt", "LedgerClient", "Web3LedgerClient"]
