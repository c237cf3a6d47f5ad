"""Configuration for the client: settings, token catalogue, deployment overlay."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import structlog

from sagadex.constants import (
    AMM_DEPLOYMENT_KEY,
    BPS_DENOMINATOR,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_SLIPPAGE_BPS,
    DEPLOYMENT_KEYS,
    RECEIPT_POLL_INTERVAL,
    SAGA_CHAIN_ID,
    SAGA_CHAIN_NAME,
    SAGA_RPC_URL,
    ZERO_ADDRESS,
)
from sagadex.models.tokens import Catalogue, NativeCurrency, NetworkDescriptor, Token, TokenPair
from sagadex.models.types import is_valid_address

logger = structlog.get_logger()


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the client.

    Attributes:
        rpc_url: Read-only JSON-RPC endpoint for ledger queries (defaults to
            the network's first RPC URL)
        wallet_url: JSON-RPC endpoint of the wallet that holds the signing
            account (None when no wallet is available)
        slippage_bps: Slippage tolerance applied to swap quotes, in basis points
        confirmation_timeout: Seconds to wait for a receipt before the
            outcome is reported as unknown
        poll_interval: Seconds between receipt polls
        deployment_file: JSON file with contract addresses from deployment
        api_host: Bind host for the status API
        api_port: Bind port for the status API
    """

    rpc_url: str | None = None
    wallet_url: str | None = None
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    poll_interval: float = RECEIPT_POLL_INTERVAL
    deployment_file: Path | None = None
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    def __post_init__(self) -> None:
        if not 0 <= self.slippage_bps <= BPS_DENOMINATOR:
            raise ValueError(f"slippage_bps must be in [0, {BPS_DENOMINATOR}], got {self.slippage_bps}")
        if self.confirmation_timeout <= 0:
            raise ValueError(f"confirmation_timeout must be positive, got {self.confirmation_timeout}")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Load settings from SAGADEX_* environment variables.

        - SAGADEX_RPC_URL: Ledger RPC endpoint (default: network RPC)
        - SAGADEX_WALLET_URL: Wallet JSON-RPC endpoint (default: none)
        - SAGADEX_SLIPPAGE_BPS: Slippage tolerance (default: 500)
        - SAGADEX_CONFIRMATION_TIMEOUT: Receipt wait in seconds (default: 120)
        - SAGADEX_DEPLOYMENT_FILE: Deployment address file (default: none)
        - SAGADEX_API_HOST / SAGADEX_API_PORT: Status API bind address
        """
        env = os.environ if environ is None else environ
        deployment = env.get("SAGADEX_DEPLOYMENT_FILE")
        return cls(
            rpc_url=env.get("SAGADEX_RPC_URL") or None,
            wallet_url=env.get("SAGADEX_WALLET_URL") or None,
            slippage_bps=int(env.get("SAGADEX_SLIPPAGE_BPS", DEFAULT_SLIPPAGE_BPS)),
            confirmation_timeout=float(env.get("SAGADEX_CONFIRMATION_TIMEOUT", DEFAULT_CONFIRMATION_TIMEOUT)),
            deployment_file=Path(deployment) if deployment else None,
            api_host=env.get("SAGADEX_API_HOST", "127.0.0.1"),
            api_port=int(env.get("SAGADEX_API_PORT", "8000")),
        )


SAGA_NETWORK = NetworkDescriptor(
    chain_id=SAGA_CHAIN_ID,
    chain_name=SAGA_CHAIN_NAME,
    native_currency=NativeCurrency(name="ETH", symbol="ETH", decimals=18),
    rpc_urls=[SAGA_RPC_URL],
)


def default_catalogue() -> Catalogue:
    """The built-in catalogue: four tokens, six pairs, placeholder addresses."""
    return Catalogue(
        network=SAGA_NETWORK,
        amm_address=ZERO_ADDRESS,
        tokens=(
            Token(symbol="TEST", name="Test Token"),
            Token(symbol="USD", name="USD Token"),
            Token(symbol="SAGA1", name="Saga Token 1"),
            Token(symbol="SAGA2", name="Saga Token 2"),
        ),
        pairs=(
            TokenPair.of("TEST", "USD"),
            TokenPair.of("TEST", "SAGA1"),
            TokenPair.of("TEST", "SAGA2"),
            TokenPair.of("USD", "SAGA1"),
            TokenPair.of("USD", "SAGA2"),
            TokenPair.of("SAGA1", "SAGA2"),
        ),
    )


def load_catalogue(path: Path) -> Catalogue:
    """Load and validate a catalogue from a JSON file.

    Raises:
        pydantic.ValidationError: If the catalogue is inconsistent
    """
    with open(path) as f:
        data = json.load(f)
    return Catalogue.model_validate(data)


def apply_deployment(catalogue: Catalogue, path: Path) -> Catalogue:
    """Overlay contract addresses written by the deployment step.

    The file maps deployment keys (TEST_TOKEN, USD_TOKEN, SAGA_TOKEN1,
    SAGA_TOKEN2, DEX_EXCHANGE) or plain token symbols to addresses.
    Unknown keys are ignored.

    Raises:
        ValueError: If an address in the file is malformed
    """
    with open(path) as f:
        data = json.load(f)

    addresses: dict[str, str] = {}
    for symbol in catalogue.symbols:
        key = DEPLOYMENT_KEYS.get(symbol, symbol)
        address = data.get(key, data.get(symbol))
        if address is None:
            continue
        if not is_valid_address(address):
            raise ValueError(f"Invalid address for {symbol} in {path}: {address}")
        addresses[symbol] = address

    amm_address = data.get(AMM_DEPLOYMENT_KEY)
    if amm_address is not None and not is_valid_address(amm_address):
        raise ValueError(f"Invalid AMM address in {path}: {amm_address}")

    known_keys = {DEPLOYMENT_KEYS.get(s, s) for s in catalogue.symbols} | set(catalogue.symbols) | {AMM_DEPLOYMENT_KEY}
    ignored = sorted(set(data) - known_keys)
    logger.info(
        "deployment_applied",
        path=str(path),
        tokens=sorted(addresses),
        amm_configured=amm_address is not None,
        ignored_keys=ignored,
    )
    return catalogue.with_addresses(addresses, amm_address=amm_address)


def load_configuration(settings: Settings, catalogue_path: Path | None = None) -> Catalogue:
    """Build the catalogue used at startup.

    Starts from the JSON catalogue (or the built-in one) and applies the
    deployment file named in settings, if any.
    """
    catalogue = load_catalogue(catalogue_path) if catalogue_path else default_catalogue()
    if settings.deployment_file is not None:
        catalogue = apply_deployment(catalogue, settings.deployment_file)
    return catalogue


__all__ = [
    "Settings",
    "SAGA_NETWORK",
    "default_catalogue",
    "load_catalogue",
    "apply_deployment",
    "load_configuration",
]
