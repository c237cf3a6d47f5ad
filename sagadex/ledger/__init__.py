"""Ledger boundary: contract ABIs, ledger client and wallet provider."""

from sagadex.ledger.abi import DEX_ABI, ERC20_ABI
from sagadex.ledger.client import LedgerClient, TxReceipt, Web3LedgerClient
from sagadex.ledger.wallet import RpcWalletProvider, Signer, WalletProvider, to_rpc_transaction

__all__ = [
    "DEX_ABI",
    "ERC20_ABI",
    "LedgerClient",
    "TxReceipt",
    "Web3LedgerClient",
    "RpcWalletProvider",
    "Signer",
    "WalletProvider",
    "to_rpc_transaction",
]
