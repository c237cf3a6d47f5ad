"""Test helpers module for shared test utilities.

- constants: Contract addresses, accounts and chain ids
- fakes: In-memory ledger and wallet provider
- factories: Catalogue, settings and service factories
"""

from tests.helpers.constants import (
    ACCOUNT,
    ADDRESSES,
    AMM,
    CHAIN_ID,
    ONE,
    OTHER_ACCOUNT,
    OTHER_CHAIN_ID,
    SAGA1_TOKEN,
    SAGA2_TOKEN,
    TEST_TOKEN,
    USD_TOKEN,
)
from tests.helpers.factories import make_catalogue, make_service, make_settings
from tests.helpers.fakes import FakeLedger, FakeWallet

__all__ = [
    # Constants
    "ACCOUNT",
    "ADDRESSES",
    "AMM",
    "CHAIN_ID",
    "ONE",
    "OTHER_ACCOUNT",
    "OTHER_CHAIN_ID",
    "SAGA1_TOKEN",
    "SAGA2_TOKEN",
    "TEST_TOKEN",
    "USD_TOKEN",
    # Fakes
    "FakeLedger",
    "FakeWallet",
    # Factories
    "make_catalogue",
    "make_settings",
    "make_service",
]
