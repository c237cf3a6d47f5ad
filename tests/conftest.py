"""Pytest configuration and fixtures."""

import pytest

from sagadex.models.tokens import Catalogue
from sagadex.service import DexService
from tests.helpers import FakeLedger, FakeWallet, make_catalogue, make_service


@pytest.fixture
def catalogue() -> Catalogue:
    """Catalogue with every token and the exchange deployed."""
    return make_catalogue()


@pytest.fixture
def ledger() -> FakeLedger:
    """An empty in-memory ledger."""
    return FakeLedger()


@pytest.fixture
def wallet() -> FakeWallet:
    """A wallet on the expected chain that has not yet granted access."""
    return FakeWallet()


@pytest.fixture
def service(ledger: FakeLedger, wallet: FakeWallet, catalogue: Catalogue) -> DexService:
    """Components wired to the fake ledger and wallet."""
    return make_service(ledger, wallet, catalogue)
