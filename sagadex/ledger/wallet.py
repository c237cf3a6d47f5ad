"""Wallet provider boundary and the signing capability derived from it.

A wallet provider speaks the EIP-1193 request interface: every call is
`request(method, params)` and failures come back as error objects with a
numeric code (4001 user rejected, 4902 unknown chain).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from web3 import AsyncHTTPProvider

from sagadex.errors import ProviderRpcError

logger = structlog.get_logger()


class WalletProvider(Protocol):
    """Protocol for wallet providers.

    This allows swapping between an RPC-backed wallet and an in-memory fake
    for testing.
    """

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        """Send one EIP-1193 request.

        Raises:
            ProviderRpcError: If the wallet returns an error object
        """
        ...


class RpcWalletProvider:
    """Wallet reached over JSON-RPC (e.g. a desktop wallet's local endpoint).

    Requests are forwarded verbatim; JSON-RPC error objects are raised as
    ProviderRpcError so callers can branch on the EIP-1193 code.
    """

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        self._provider = AsyncHTTPProvider(endpoint)

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        response = await self._provider.make_request(method, params or [])
        error = response.get("error")
        if error:
            if isinstance(error, dict):
                raise ProviderRpcError(
                    int(error.get("code", -32603)),
                    str(error.get("message", "")),
                    error.get("data"),
                )
            raise ProviderRpcError(-32603, str(error))
        return response.get("result")


@dataclass(frozen=True)
class Signer:
    """Capability to sign and submit transactions as one account.

    Obtained from SessionManager.signer(); it is re-derived for every
    operation rather than held across idle periods.
    """

    account: str
    chain_id: int
    provider: WalletProvider

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        """Ask the wallet to sign and broadcast a transaction.

        Returns:
            Transaction hash as 0x-prefixed hex string

        Raises:
            ProviderRpcError: If the wallet rejects the request
        """
        payload = to_rpc_transaction({**tx, "from": self.account})
        tx_hash = await self.provider.request("eth_sendTransaction", [payload])
        if isinstance(tx_hash, bytes):
            tx_hash = "0x" + tx_hash.hex()
        logger.debug("transaction_sent", account=self.account, tx_hash=tx_hash)
        return str(tx_hash)


# Fields that JSON-RPC expects as hex quantities
_QUANTITY_FIELDS = ("gas", "gasPrice", "maxFeePerGas", "maxPriorityFeePerGas", "value", "nonce", "chainId")


def to_rpc_transaction(tx: dict[str, Any]) -> dict[str, Any]:
    """Convert a built transaction into eth_sendTransaction parameters."""
    payload: dict[str, Any] = {}
    for key, value in tx.items():
        if key in _QUANTITY_FIELDS and isinstance(value, int):
            payload[key] = hex(value)
        elif isinstance(value, bytes):
            payload[key] = "0x" + value.hex()
        else:
            payload[key] = value
    return payload


__all__ = ["WalletProvider", "RpcWalletProvider", "Signer", "to_rpc_transaction"]
