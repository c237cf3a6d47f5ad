"""Pydantic models for the token catalogue and network descriptor.

The catalogue is fixed at configuration time: tokens and pairs are never
discovered from the ledger. It is validated once when loaded.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from sagadex.constants import TOKEN_DECIMALS
from sagadex.models.types import ZERO_ADDRESS, Address, is_null_address, normalize_address


class Token(BaseModel):
    """A fungible token the client can trade."""

    symbol: str = Field(min_length=1, max_length=16)
    name: str
    # Placeholder until the deployment step fills it in
    address: Address = ZERO_ADDRESS
    decimals: int = Field(default=TOKEN_DECIMALS, ge=0, le=77)

    model_config = {"frozen": True}

    @property
    def is_configured(self) -> bool:
        """False while the token still has the placeholder address."""
        return not is_null_address(self.address)


class TokenPair(BaseModel):
    """Unordered combination of two distinct token symbols.

    (TEST, USD) and (USD, TEST) compare and hash equal; token_a/token_b keep
    the catalogue's display order, which is also the argument order used
    for pool queries.
    """

    token_a: str
    token_b: str

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_distinct(self) -> TokenPair:
        if self.token_a == self.token_b:
            raise ValueError(f"Pair tokens must differ: {self.token_a}/{self.token_b}")
        return self

    @classmethod
    def of(cls, token_a: str, token_b: str) -> TokenPair:
        return cls(token_a=token_a, token_b=token_b)

    @property
    def key(self) -> frozenset[str]:
        return frozenset((self.token_a, self.token_b))

    @property
    def label(self) -> str:
        return f"{self.token_a}/{self.token_b}"

    @property
    def symbols(self) -> tuple[str, str]:
        return (self.token_a, self.token_b)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenPair):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.label


class NativeCurrency(BaseModel):
    """Native gas currency of a network."""

    name: str
    symbol: str
    decimals: int = 18


class NetworkDescriptor(BaseModel):
    """Everything a wallet needs to switch to (or register) the network."""

    chain_id: int = Field(alias="chainId", gt=0)
    chain_name: str = Field(alias="chainName")
    native_currency: NativeCurrency = Field(alias="nativeCurrency")
    rpc_urls: list[str] = Field(alias="rpcUrls", min_length=1)
    block_explorer_urls: list[str] = Field(default_factory=list, alias="blockExplorerUrls")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)

    @property
    def rpc_url(self) -> str:
        return self.rpc_urls[0]

    def to_wallet_params(self) -> dict[str, object]:
        """Parameters for wallet_addEthereumChain (EIP-3085)."""
        params = self.model_dump(by_alias=True)
        params["chainId"] = self.chain_id_hex
        return params


class Catalogue(BaseModel):
    """The fixed set of tokens and pairs the client works with.

    Validation rejects duplicate symbols, duplicate pairs (in either order)
    and pairs that reference a symbol missing from the token list.
    """

    network: NetworkDescriptor
    amm_address: Address = Field(default=ZERO_ADDRESS, alias="ammAddress")
    tokens: tuple[Token, ...]
    pairs: tuple[TokenPair, ...]

    model_config = {"populate_by_name": True, "frozen": True}

    @model_validator(mode="after")
    def check_consistency(self) -> Catalogue:
        symbols = [token.symbol for token in self.tokens]
        duplicates = sorted({s for s in symbols if symbols.count(s) > 1})
        if duplicates:
            raise ValueError(f"Duplicate token symbols: {', '.join(duplicates)}")

        seen: set[TokenPair] = set()
        known = set(symbols)
        for pair in self.pairs:
            if pair in seen:
                raise ValueError(f"Duplicate pair: {pair.label}")
            seen.add(pair)
            missing = [s for s in pair.symbols if s not in known]
            if missing:
                raise ValueError(f"Pair {pair.label} references unknown token(s): {missing}")
        return self

    @property
    def amm_configured(self) -> bool:
        return not is_null_address(self.amm_address)

    @property
    def symbols(self) -> list[str]:
        return [token.symbol for token in self.tokens]

    def get_token(self, symbol: str) -> Token | None:
        for token in self.tokens:
            if token.symbol == symbol:
                return token
        return None

    def token(self, symbol: str) -> Token:
        """Look up a token by symbol.

        Raises:
            KeyError: If the symbol is not in the catalogue
        """
        token = self.get_token(symbol)
        if token is None:
            raise KeyError(symbol)
        return token

    def token_by_address(self, address: str) -> Token | None:
        wanted = normalize_address(address)
        for token in self.tokens:
            if token.is_configured and normalize_address(token.address) == wanted:
                return token
        return None

    def configured_tokens(self) -> list[Token]:
        return [token for token in self.tokens if token.is_configured]

    def is_pair_configured(self, pair: TokenPair) -> bool:
        return all(self.token(symbol).is_configured for symbol in pair.symbols)

    def find_pair(self, token_a: str, token_b: str) -> TokenPair | None:
        """Return the catalogue's pair for two symbols (either order)."""
        if token_a == token_b:
            return None
        wanted = frozenset((token_a, token_b))
        for pair in self.pairs:
            if pair.key == wanted:
                return pair
        return None

    def with_addresses(self, addresses: dict[str, str], amm_address: str | None = None) -> Catalogue:
        """Return a copy with token (and optionally AMM) addresses replaced."""
        data = self.model_dump(by_alias=False)
        for token in data["tokens"]:
            if token["symbol"] in addresses:
                token["address"] = addresses[token["symbol"]]
        if amm_address is not None:
            data["amm_address"] = amm_address
        return Catalogue.model_validate(data)


__all__ = ["Token", "TokenPair", "NativeCurrency", "NetworkDescriptor", "Catalogue"]
