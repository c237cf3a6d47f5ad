"""Wallet session management.

SessionManager owns the connection to the wallet provider:

    DISCONNECTED -> CONNECTING -> CONNECTED(account, chain) -> DISCONNECTED

It restores an already-authorised session without prompting, connects
interactively (switching or registering the expected network when the wallet
is elsewhere), and hands out a freshly checked Signer for every operation.
Any account or chain change reported by the wallet tears the session down.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from sagadex.constants import UNRECOGNIZED_CHAIN_CODE, USER_REJECTED_CODE
from sagadex.errors import (
    InvalidRequest,
    NetworkMismatch,
    ProviderRpcError,
    UserRejected,
    WalletUnavailable,
)
from sagadex.ledger.wallet import Signer, WalletProvider
from sagadex.models.tokens import NetworkDescriptor
from sagadex.models.types import normalize_address

logger = structlog.get_logger()


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class Session:
    """An authorised account on a known chain."""

    account: str
    chain_id: int
    expected_chain_id: int

    @property
    def on_expected_chain(self) -> bool:
        return self.chain_id == self.expected_chain_id


SessionListener = Callable[[SessionState, Session | None], None]


def parse_chain_id(value: Any) -> int:
    """Parse a chain id reported as int, hex string or decimal string."""
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if text.startswith("0x"):
        return int(text, 16)
    return int(text)


def short_address(account: str | None) -> str:
    """Abbreviate an address for display: 0x1234...abcd."""
    if not account:
        return ""
    return f"{account[:6]}...{account[-4:]}"


class SessionManager:
    """Tracks the wallet session and derives signing capabilities.

    Args:
        provider: Wallet provider, or None when no wallet is installed
        network: The network the client expects to operate on
    """

    def __init__(self, provider: WalletProvider | None, network: NetworkDescriptor) -> None:
        self.provider = provider
        self.network = network
        self._state = SessionState.DISCONNECTED
        self._session: Session | None = None
        self._listeners: list[SessionListener] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def account(self) -> str | None:
        return self._session.account if self._session else None

    @property
    def is_connected(self) -> bool:
        return self._state == SessionState.CONNECTED and self._session is not None

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def _set(self, state: SessionState, session: Session | None) -> None:
        changed = state != self._state or session != self._session
        self._state = state
        self._session = session
        if not changed:
            return
        for listener in self._listeners:
            try:
                listener(state, session)
            except Exception as e:
                logger.warning("session_listener_failed", error=str(e))

    def _require_provider(self) -> WalletProvider:
        if self.provider is None:
            raise WalletUnavailable("No wallet provider found. Install or start a wallet.")
        return self.provider

    async def _chain_id(self, provider: WalletProvider) -> int:
        return parse_chain_id(await provider.request("eth_chainId"))

    async def try_restore_session(self) -> Session | None:
        """Restore an already-authorised session without prompting the user.

        Returns:
            The restored session, or None if the wallet is missing, has no
            authorised account, or cannot be reached. A session on the wrong
            chain is still returned; signer() refuses to use it until
            connect() has switched networks.
        """
        if self.provider is None:
            return None
        try:
            accounts = await self.provider.request("eth_accounts")
            if not accounts:
                return None
            chain_id = await self._chain_id(self.provider)
        except Exception as e:
            logger.warning("session_restore_failed", error=str(e))
            return None

        session = Session(
            account=normalize_address(accounts[0]),
            chain_id=chain_id,
            expected_chain_id=self.network.chain_id,
        )
        self._set(SessionState.CONNECTED, session)
        logger.info(
            "session_restored",
            account=session.account,
            chain_id=chain_id,
            on_expected_chain=session.on_expected_chain,
        )
        return session

    async def connect(self) -> Session:
        """Request account access and make sure the wallet is on our network.

        Raises:
            WalletUnavailable: No wallet provider, or it cannot be reached
            UserRejected: The user declined the access prompt
            NetworkMismatch: The wallet could not be switched to the network
        """
        provider = self._require_provider()
        self._set(SessionState.CONNECTING, None)
        try:
            session = await self._connect(provider)
        except BaseException:
            self._set(SessionState.DISCONNECTED, None)
            raise
        self._set(SessionState.CONNECTED, session)
        logger.info("session_connected", account=session.account, chain_id=session.chain_id)
        return session

    async def _connect(self, provider: WalletProvider) -> Session:
        try:
            accounts = await provider.request("eth_requestAccounts")
        except ProviderRpcError as e:
            if e.code == USER_REJECTED_CODE:
                raise UserRejected("Account access was declined") from e
            raise WalletUnavailable(f"Wallet refused account access: {e}") from e
        except Exception as e:
            raise WalletUnavailable(f"Wallet is unreachable: {e}") from e

        if not accounts:
            raise UserRejected("Wallet returned no accounts")
        account = normalize_address(accounts[0])

        try:
            chain_id = await self._chain_id(provider)
        except Exception as e:
            raise WalletUnavailable(f"Could not read wallet network: {e}") from e

        if chain_id != self.network.chain_id:
            chain_id = await self._switch_network(provider, chain_id)

        return Session(account=account, chain_id=chain_id, expected_chain_id=self.network.chain_id)

    async def _switch_network(self, provider: WalletProvider, current: int) -> int:
        """Switch the wallet to the expected network, registering it if unknown.

        Returns:
            The wallet's chain id after switching

        Raises:
            NetworkMismatch: If switching (and registering) failed
        """
        expected = self.network.chain_id_hex
        logger.info("network_switch_requested", current=current, expected=self.network.chain_id)
        try:
            await provider.request("wallet_switchEthereumChain", [{"chainId": expected}])
        except ProviderRpcError as switch_error:
            if switch_error.code != UNRECOGNIZED_CHAIN_CODE:
                raise NetworkMismatch(
                    f"Could not switch wallet to {self.network.chain_name}: {switch_error}"
                ) from switch_error
            logger.info("network_registration_requested", chain_id=self.network.chain_id)
            try:
                await provider.request("wallet_addEthereumChain", [self.network.to_wallet_params()])
            except Exception as add_error:
                raise NetworkMismatch(
                    f"Could not register {self.network.chain_name} with the wallet: {add_error}"
                ) from add_error
        except Exception as e:
            raise NetworkMismatch(f"Could not switch wallet to {self.network.chain_name}: {e}") from e

        try:
            chain_id = await self._chain_id(provider)
        except Exception as e:
            raise NetworkMismatch(f"Could not confirm network switch: {e}") from e
        if chain_id != self.network.chain_id:
            raise NetworkMismatch(
                f"Wallet is on chain {chain_id}, expected {self.network.chain_id} ({self.network.chain_name})"
            )
        return chain_id

    async def signer(self) -> Signer:
        """Derive a signing capability for the connected account.

        The wallet is asked again which accounts are authorised and which
        chain is active, so a session that went stale while idle is never
        used to sign.

        Raises:
            InvalidRequest: No account is connected, or it was de-authorised
            NetworkMismatch: The wallet moved to another chain
            WalletUnavailable: The wallet cannot be reached
        """
        if not self.is_connected or self._session is None:
            raise InvalidRequest("Connect a wallet first")
        provider = self._require_provider()
        session = self._session

        try:
            accounts = [normalize_address(a) for a in await provider.request("eth_accounts") or []]
            chain_id = await self._chain_id(provider)
        except Exception as e:
            raise WalletUnavailable(f"Wallet is unreachable: {e}") from e

        if session.account not in accounts:
            self.handle_accounts_changed(accounts)
            raise InvalidRequest("The connected account is no longer authorised")
        if chain_id != self.network.chain_id:
            self.handle_chain_changed(chain_id)
            raise NetworkMismatch(f"Wallet is on chain {chain_id}, expected {self.network.chain_id}")

        return Signer(account=session.account, chain_id=chain_id, provider=provider)

    def disconnect(self) -> None:
        if self._session is not None:
            logger.info("session_disconnected", account=self._session.account)
        self._set(SessionState.DISCONNECTED, None)

    def handle_accounts_changed(self, accounts: list[str]) -> None:
        """Wallet reported a new account list; any change ends the session."""
        if self._session is None:
            return
        current = normalize_address(accounts[0]) if accounts else None
        if current != self._session.account:
            logger.info("session_account_changed", old=self._session.account, new=current)
            self._set(SessionState.DISCONNECTED, None)

    def handle_chain_changed(self, chain_id: int | str) -> None:
        """Wallet reported a chain change; any change ends the session."""
        if self._session is None:
            return
        new_chain = parse_chain_id(chain_id)
        if new_chain != self._session.chain_id:
            logger.info("session_chain_changed", old=self._session.chain_id, new=new_chain)
            self._set(SessionState.DISCONNECTED, None)

    async def sync(self) -> Session | None:
        """Poll the wallet for account/chain changes.

        For providers that cannot push events (plain JSON-RPC wallets).
        """
        if self._session is None or self.provider is None:
            return self._session
        try:
            accounts = await self.provider.request("eth_accounts")
            chain_id = await self._chain_id(self.provider)
        except Exception as e:
            logger.warning("session_sync_failed", error=str(e))
            return self._session
        self.handle_accounts_changed(accounts or [])
        self.handle_chain_changed(chain_id)
        return self._session


__all__ = [
    "SessionState",
    "Session",
    "SessionListener",
    "SessionManager",
    "parse_chain_id",
    "short_address",
]
