"""Saga DEX client: swaps and liquidity on an AMM through a user's wallet."""

__version__ = "0.1.0"
