"""Error taxonomy for wallet, ledger and orchestration failures.

Every failure the orchestrator surfaces is one of these classes, so callers
can tell "user declined signing" from "ledger rejected the operation" from
"the call never completed" and decide whether a fresh invocation is safe.
"""

from __future__ import annotations

from web3.exceptions import ContractLogicError

from sagadex.constants import USER_REJECTED_CODE


class SagaDexError(Exception):
    """Base class for all client errors.

    Attributes:
        tx_hash: Hash of the submitted transaction, if one was sent
        retry_safe: True if re-invoking the action from scratch cannot
            duplicate an operation that may already be on the ledger
    """

    retry_safe: bool = True

    def __init__(self, message: str = "", *, tx_hash: str | None = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class WalletUnavailable(SagaDexError):
    """No wallet provider is present."""


class UserRejected(SagaDexError):
    """The user declined an access or signing prompt."""


class NetworkMismatch(SagaDexError):
    """The wallet is on another chain and could not be switched."""


class InvalidRequest(SagaDexError):
    """Local precondition violation; no network call was made."""


class InvalidAmount(InvalidRequest):
    """A token amount is not a representable non-negative decimal."""


class InsufficientAllowance(SagaDexError):
    """Spending permission is still below the required amount after approval."""


class RemoteRejected(SagaDexError):
    """The ledger declined the operation (revert, slippage, reserves)."""


class TransportError(SagaDexError):
    """The call could not complete (timeout, connectivity)."""


class UnknownOutcome(SagaDexError):
    """Submitted, but confirmation was never observed.

    The operation may still be mined; resubmitting could duplicate it.
    """

    retry_safe = False


class ProviderRpcError(SagaDexError):
    """Error object returned by a wallet provider (EIP-1193)."""

    def __init__(self, code: int, message: str = "", data: object = None) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.data = data


def classify_error(exc: BaseException, *, submitted: bool, tx_hash: str | None = None) -> SagaDexError:
    """Map a raw wallet/web3 exception onto the error taxonomy.

    Args:
        exc: The exception raised while signing, sending or awaiting a tx
        submitted: True once the transaction hash has been returned, i.e.
            the operation may exist on the ledger
        tx_hash: Hash of the submitted transaction, if any

    Returns:
        A SagaDexError subclass carrying the original message
    """
    if isinstance(exc, SagaDexError) and not isinstance(exc, ProviderRpcError):
        if tx_hash and exc.tx_hash is None:
            exc.tx_hash = tx_hash
        return exc

    message = str(exc) or type(exc).__name__

    if isinstance(exc, ProviderRpcError):
        if exc.code == USER_REJECTED_CODE:
            return UserRejected(message, tx_hash=tx_hash)
        if submitted:
            return UnknownOutcome(message, tx_hash=tx_hash)
        return RemoteRejected(message, tx_hash=tx_hash)

    if isinstance(exc, ContractLogicError):
        return RemoteRejected(message, tx_hash=tx_hash)

    # Timeouts, dropped connections and node errors: once the hash is out
    # the transaction may still be mined
    if submitted:
        return UnknownOutcome(message, tx_hash=tx_hash)
    return TransportError(message, tx_hash=tx_hash)


__all__ = [
    "SagaDexError",
    "WalletUnavailable",
    "UserRejected",
    "NetworkMismatch",
    "InvalidRequest",
    "InvalidAmount",
    "InsufficientAllowance",
    "RemoteRejected",
    "TransportError",
    "UnknownOutcome",
    "ProviderRpcError",
    "classify_error",
]
