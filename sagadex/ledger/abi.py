"""Minimal contract ABIs for the AMM exchange and ERC-20 tokens."""


def _fn(name: str, inputs: list[tuple[str, str]], outputs: list[tuple[str, str]], mutability: str) -> dict:
    return {
        "name": name,
        "type": "function",
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


# ERC-20 ABI - only the calls the client makes
ERC20_ABI = [
    _fn("balanceOf", [("account", "address")], [("", "uint256")], "view"),
    _fn("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")], "view"),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"),
]

# DEX exchange ABI
DEX_ABI = [
    _fn(
        "addLiquidity",
        [("tokenA", "address"), ("tokenB", "address"), ("amountA", "uint256"), ("amountB", "uint256")],
        [],
        "nonpayable",
    ),
    _fn(
        "removeLiquidity",
        [("tokenA", "address"), ("tokenB", "address"), ("liquidity", "uint256")],
        [],
        "nonpayable",
    ),
    _fn(
        "swapTokens",
        [
            ("tokenIn", "address"),
            ("tokenOut", "address"),
            ("amountIn", "uint256"),
            ("minAmountOut", "uint256"),
        ],
        [],
        "nonpayable",
    ),
    _fn(
        "getAmountOut",
        [("tokenIn", "address"), ("tokenOut", "address"), ("amountIn", "uint256")],
        [("", "uint256")],
        "view",
    ),
    _fn(
        "getPoolInfo",
        [("tokenA", "address"), ("tokenB", "address")],
        [("reserveA", "uint256"), ("reserveB", "uint256"), ("totalLiquidity", "uint256")],
        "view",
    ),
    _fn(
        "getUserLiquidity",
        [("tokenA", "address"), ("tokenB", "address"), ("user", "address")],
        [("", "uint256")],
        "view",
    ),
]

__all__ = ["ERC20_ABI", "DEX_ABI"]
