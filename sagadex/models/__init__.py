"""Domain models for the Saga DEX client."""

from sagadex.models.types import (
    UINT256_MAX,
    ZERO_ADDRESS,
    Address,
    is_null_address,
    is_valid_address,
    normalize_address,
)
from sagadex.models.tokens import Catalogue, NativeCurrency, NetworkDescriptor, Token, TokenPair
from sagadex.models.state import PoolState, StateSnapshot
from sagadex.models.commands import (
    AddLiquidityCommand,
    Command,
    RemoveLiquidityCommand,
    SwapCommand,
)
from sagadex.models.operations import (
    AddLiquidityOperation,
    AllowanceRequirement,
    ApproveOperation,
    OperationKind,
    OperationPlan,
    OperationRecord,
    OperationStatus,
    PendingOperation,
    RemoveLiquidityOperation,
    SwapOperation,
)

__all__ = [
    # Types
    "UINT256_MAX",
    "ZERO_ADDRESS",
    "Address",
    "is_null_address",
    "is_valid_address",
    "normalize_address",
    # Catalogue
    "Catalogue",
    "NativeCurrency",
    "NetworkDescriptor",
    "Token",
    "TokenPair",
    # State
    "PoolState",
    "StateSnapshot",
    # Commands
    "AddLiquidityCommand",
    "Command",
    "RemoveLiquidityCommand",
    "SwapCommand",
    # Operations
    "AddLiquidityOperation",
    "AllowanceRequirement",
    "ApproveOperation",
    "OperationKind",
    "OperationPlan",
    "OperationRecord",
    "OperationStatus",
    "PendingOperation",
    "RemoveLiquidityOperation",
    "SwapOperation",
]
