"""Protocol constants for the Saga DEX client.

Centralizes network parameters, unit scaling and trading defaults.
"""

# Placeholder address for contracts that have not been deployed yet
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Largest value a uint256 ledger quantity can hold
UINT256_MAX = 2**256 - 1

# Every token in the catalogue uses 18 fractional digits on the ledger
TOKEN_DECIMALS = 18

# Basis points in 100%
BPS_DENOMINATOR = 10_000

# Default slippage tolerance for swaps (5%)
DEFAULT_SLIPPAGE_BPS = 500

# Seconds to wait for a transaction receipt before the outcome is unknown
DEFAULT_CONFIRMATION_TIMEOUT = 120.0

# Interval between receipt polls while waiting for confirmation
RECEIPT_POLL_INTERVAL = 1.0

# Saga Qubit chain (2755378989728000 == 0x9ca00a9e78100)
SAGA_CHAIN_ID = 2_755_378_989_728_000
SAGA_CHAIN_NAME = "Saga Qubit"
SAGA_RPC_URL = "https://qubit-2755378989728000-1.jsonrpc.sagarpc.io"

# EIP-1193 / EIP-3085 provider error codes
USER_REJECTED_CODE = 4001
UNRECOGNIZED_CHAIN_CODE = 4902

# Keys written by the deployment script for each contract address
DEPLOYMENT_KEYS = {
    "TEST": "TEST_TOKEN",
    "USD": "USD_TOKEN",
    "SAGA1": "SAGA_TOKEN1",
    "SAGA2": "SAGA_TOKEN2",
}
AMM_DEPLOYMENT_KEY = "DEX_EXCHANGE"

__all__ = [
    "ZERO_ADDRESS",
    "UINT256_MAX",
    "TOKEN_DECIMALS",
    "BPS_DENOMINATOR",
    "DEFAULT_SLIPPAGE_BPS",
    "DEFAULT_CONFIRMATION_TIMEOUT",
    "RECEIPT_POLL_INTERVAL",
    "SAGA_CHAIN_ID",
    "SAGA_CHAIN_NAME",
    "SAGA_RPC_URL",
    "USER_REJECTED_CODE",
    "UNRECOGNIZED_CHAIN_CODE",
    "DEPLOYMENT_KEYS",
    "AMM_DEPLOYMENT_KEY",
]
