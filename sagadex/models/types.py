"""Shared type definitions for ledger-facing models.

These types are used across the token catalogue, state and operation models.
"""

import re
from typing import Annotated, Any

from pydantic import Field

from sagadex.constants import UINT256_MAX, ZERO_ADDRESS


def validate_uint256(value: Any) -> int:
    """Check a raw ledger value and return it as an int.

    Accepts ints from contract reads and decimal integer strings.
    """
    if isinstance(value, bool) or not isinstance(value, int | str):
        raise ValueError(f"Expected an integer ledger value, got {type(value).__name__}")
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError as err:
            raise ValueError(f"Ledger value is not a decimal integer: '{value}'") from err
    if not 0 <= value <= UINT256_MAX:
        kind = "negative" if value < 0 else "above 2^256-1"
        raise ValueError(f"Ledger value is {kind}: {value}")
    return value


ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"
_ADDRESS_RE = re.compile(ADDRESS_PATTERN)

# Contract or account address, any hex case
Address = Annotated[str, Field(pattern=ADDRESS_PATTERN)]


def normalize_address(address: str) -> str:
    """Lowercase an address and make sure it carries the 0x prefix.

    Wallets report checksummed addresses while the catalogue may hold either
    case; comparisons always go through this.
    """
    addr = address.lower()
    return addr if addr.startswith("0x") else "0x" + addr


def is_valid_address(address: object) -> bool:
    return isinstance(address, str) and _ADDRESS_RE.match(address) is not None


def is_null_address(address: str | None) -> bool:
    """True if the address is missing or the all-zero placeholder.

    Every component that reads a contract address treats the placeholder as
    "not deployed" rather than as a real contract.
    """
    if not address:
        return True
    return normalize_address(address) == ZERO_ADDRESS
