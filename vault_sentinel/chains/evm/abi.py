"""Minimal ABIs for the vault, its router, strategies and the deposit asset."""
from __future__ import annotations

from typing import Any


def _fn(
    name: str,
    inputs: tuple[tuple[str, str], ...] = (),
    outputs: tuple[tuple[str, str], ...] = (),
    mutability: str = "view",
) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t, "internalType": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t, "internalType": t} for n, t in outputs],
    }


_U256 = (("", "uint256"),)

VAULT_ABI: list[dict[str, Any]] = [
    _fn("totalAssets", outputs=_U256),
    _fn("totalSupply", outputs=_U256),
    _fn("totalManagedAssets", outputs=_U256),
    _fn("balanceOf", (("account", "address"),), _U256),
    _fn("convertToAssets", (("shares", "uint256"),), _U256),
    _fn("convertToShares", (("assets", "uint256"),), _U256),
    _fn("deposit", (("amount", "uint256"),), _U256, "nonpayable"),
    _fn("withdraw", (("shares", "uint256"),), (("assetsOut", "uint256"),), "nonpayable"),
]

ROUTER_ABI: list[dict[str, Any]] = [
    _fn("rebalance", mutability="nonpayable"),
    _fn("harvestAll", mutability="nonpayable"),
    _fn(
        "triggerDeleverage",
        (("strategy", "address"), ("maxLoops", "uint256")),
        mutability="nonpayable",
    ),
    _fn(
        "setStrategies",
        (("strategies", "address[]"), ("bps", "uint256[]")),
        mutability="nonpayable",
    ),
    _fn("getStrategies", outputs=(("", "address[]"),)),
    _fn(
        "getPortfolioState",
        outputs=(("strats", "address[]"), ("balances", "uint256[]"), ("targets", "uint256[]")),
    ),
]

LEVERAGE_STRATEGY_ABI: list[dict[str, Any]] = [
    _fn("deposited", outputs=_U256),
    _fn("borrowedWETH", outputs=_U256),
    _fn(
        "getLeverageState",
        outputs=(
            ("deposited_", "uint256"),
            ("borrowed_", "uint256"),
            ("netExposure", "uint256"),
            ("loops", "uint256"),
            ("maxDepth_", "uint256"),
        ),
    ),
    _fn("getLTV", outputs=_U256),
    _fn("paused", outputs=(("", "bool"),)),
    _fn("maxDepth", outputs=_U256),
    _fn("borrowFactor", outputs=_U256),
    _fn("togglePause", mutability="nonpayable"),
    _fn(
        "setLeverageParams",
        (("maxDepth_", "uint256"), ("borrowFactor_", "uint256")),
        mutability="nonpayable",
    ),
]


ERC20_ABI: list[dict[str, Any]] = [
    _fn("balanceOf", (("account", "address"),), _U256),
    _fn("allowance", (("owner", "address"), ("spender", "address")), _U256),
    _fn("approve", (("spender", "address"), ("amount", "uint256")), (("", "bool"),), "nonpayable"),
]
