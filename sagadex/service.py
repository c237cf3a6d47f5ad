"""Wiring: builds the components from settings and a catalogue."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from sagadex.config import Settings, load_configuration
from sagadex.ledger.client import LedgerClient, Web3LedgerClient
from sagadex.ledger.wallet import RpcWalletProvider, WalletProvider
from sagadex.models.tokens import Catalogue
from sagadex.orchestrator import Orchestrator
from sagadex.pools import PoolDirectory
from sagadex.quotes import QuoteEngine
from sagadex.session import SessionManager
from sagadex.state import StateCache

logger = structlog.get_logger()


@dataclass
class DexService:
    """All client components sharing one ledger client and catalogue."""

    settings: Settings
    catalogue: Catalogue
    ledger: LedgerClient
    session: SessionManager
    cache: StateCache
    quotes: QuoteEngine
    orchestrator: Orchestrator
    pools: PoolDirectory


def build_service(
    settings: Settings,
    catalogue: Catalogue,
    ledger: LedgerClient | None = None,
    provider: WalletProvider | None = None,
) -> DexService:
    """Assemble the components.

    Args:
        settings: Runtime settings
        catalogue: Validated token catalogue
        ledger: Ledger client (default: web3 client on settings.rpc_url or
            the network's RPC URL)
        provider: Wallet provider (default: RPC wallet at settings.wallet_url,
            or none)
    """
    if ledger is None:
        ledger = Web3LedgerClient(settings.rpc_url or catalogue.network.rpc_url, catalogue.amm_address)
    if provider is None and settings.wallet_url:
        provider = RpcWalletProvider(settings.wallet_url)

    session = SessionManager(provider, catalogue.network)
    cache = StateCache(ledger, catalogue)
    quotes = QuoteEngine(ledger, catalogue, settings.slippage_bps)
    return DexService(
        settings=settings,
        catalogue=catalogue,
        ledger=ledger,
        session=session,
        cache=cache,
        quotes=quotes,
        orchestrator=Orchestrator(session, ledger, cache, quotes, settings),
        pools=PoolDirectory(cache),
    )


_default_service: DexService | None = None


def get_default_service(catalogue_path: Path | None = None) -> DexService:
    """Process-wide service built from the environment (created on first use)."""
    global _default_service
    if _default_service is None:
        settings = Settings.from_env()
        catalogue = load_configuration(settings, catalogue_path)
        _default_service = build_service(settings, catalogue)
        logger.info(
            "service_created",
            chain_id=catalogue.network.chain_id,
            amm_configured=catalogue.amm_configured,
            configured_tokens=[t.symbol for t in catalogue.configured_tokens()],
            wallet=settings.wallet_url is not None,
        )
    return _default_service


__all__ = ["DexService", "build_service", "get_default_service"]
