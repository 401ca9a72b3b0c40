"""State readers: fetch vault, strategy, leverage and wallet state, normalized once."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from ..analysis.risk import calc_ltv
from ..chains.evm.abi import ERC20_ABI, LEVERAGE_STRATEGY_ABI, ROUTER_ABI, VAULT_ABI
from ..config import BPS_TOTAL, ContractsConfig
from ..errors import ChainReadError
from ..interfaces.chain import ChainClient
from ..models import ChainAmount, LeverageState, StrategyState, UserBalances, VaultState

logger = logging.getLogger(__name__)


def _uint(value: Any, label: str) -> int:
    """Accept only plain integers from the chain; anything else is a contract mismatch."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ChainReadError(f"{label}: expected an integer, got {type(value).__name__}")
    return value


def _amount(value: Any, label: str) -> ChainAmount:
    return ChainAmount.from_raw(_uint(value, label))


class StateReader:
    """All reads are fresh; nothing is cached between calls.

    Composite reads run concurrently and fail as a whole: a single failing
    call never yields a partially populated state object.
    """

    def __init__(self, chain: ChainClient, contracts: ContractsConfig) -> None:
        self._chain = chain
        self._contracts = contracts

    async def _gather(self, *reads: tuple[str, list[dict[str, Any]], str, Sequence[Any]]) -> list[Any]:
        return list(
            await asyncio.gather(
                *(self._chain.read(addr, abi, method, args) for addr, abi, method, args in reads)
            )
        )

    # ------------------------------------------------------------------
    # Vault / strategies
    # ------------------------------------------------------------------

    async def read_vault_state(self) -> VaultState:
        vault = self._contracts.vault
        total_assets, total_supply, total_managed = await self._gather(
            (vault, VAULT_ABI, "totalAssets", ()),
            (vault, VAULT_ABI, "totalSupply", ()),
            (vault, VAULT_ABI, "totalManagedAssets", ()),
        )
        state = VaultState(
            total_assets=_amount(total_assets, "totalAssets"),
            total_supply=_amount(total_supply, "totalSupply"),
            total_managed_assets=_amount(total_managed, "totalManagedAssets"),
        )
        if state.total_managed_assets.raw < state.total_assets.raw:
            logger.warning(
                "totalManagedAssets (%s) below totalAssets (%s)",
                state.total_managed_assets.human, state.total_assets.human,
            )
        return state

    async def read_strategy_states(self) -> list[StrategyState]:
        """Per-strategy balance with target and actual weights in bps."""
        result = await self._chain.read(
            self._contracts.router, ROUTER_ABI, "getPortfolioState", ()
        )
        try:
            strategies, balances, targets = result
        except (TypeError, ValueError) as e:
            raise ChainReadError(f"getPortfolioState: unexpected shape {result!r}") from e

        if not len(strategies) == len(balances) == len(targets):
            raise ChainReadError("getPortfolioState: array lengths differ")

        raw_balances = [_uint(b, "getPortfolioState.balance") for b in balances]
        raw_targets = [_uint(t, "getPortfolioState.target") for t in targets]
        total = sum(raw_balances)

        if raw_targets and sum(raw_targets) != BPS_TOTAL:
            logger.warning("Router target weights sum to %d bps, expected %d", sum(raw_targets), BPS_TOTAL)

        return [
            StrategyState(
                address=str(address),
                balance=ChainAmount.from_raw(balance),
                target_weight_bps=target,
                actual_weight_bps=(balance * BPS_TOTAL // total) if total > 0 else 0,
            )
            for address, balance, target in zip(strategies, raw_balances, raw_targets)
        ]

    async def read_target_weight_sum(self) -> int:
        strategies = await self.read_strategy_states()
        return sum(s.target_weight_bps for s in strategies)

    # ------------------------------------------------------------------
    # Leverage strategy
    # ------------------------------------------------------------------

    async def read_leverage_state(self) -> LeverageState:
        lev = self._contracts.strategy_leverage
        state, paused, max_depth, borrow_factor = await self._gather(
            (lev, LEVERAGE_STRATEGY_ABI, "getLeverageState", ()),
            (lev, LEVERAGE_STRATEGY_ABI, "paused", ()),
            (lev, LEVERAGE_STRATEGY_ABI, "maxDepth", ()),
            (lev, LEVERAGE_STRATEGY_ABI, "borrowFactor", ()),
        )
        if not isinstance(state, (list, tuple)) or len(state) < 3:
            raise ChainReadError(f"getLeverageState: unexpected shape {state!r}")
        if not isinstance(paused, bool):
            raise ChainReadError(f"paused: expected bool, got {type(paused).__name__}")

        deposited = _amount(state[0], "getLeverageState.deposited")
        borrowed = _amount(state[1], "getLeverageState.borrowed")
        return LeverageState(
            deposited=deposited,
            borrowed_weth=borrowed,
            net_exposure=_amount(state[2], "getLeverageState.netExposure"),
            ltv=calc_ltv(deposited.as_float(), borrowed.as_float()),
            paused=paused,
            max_depth=_uint(max_depth, "maxDepth"),
            borrow_factor_bps=_uint(borrow_factor, "borrowFactor"),
        )

    async def read_paused(self) -> bool:
        paused = await self._chain.read(
            self._contracts.strategy_leverage, LEVERAGE_STRATEGY_ABI, "paused", ()
        )
        if not isinstance(paused, bool):
            raise ChainReadError(f"paused: expected bool, got {type(paused).__name__}")
        return paused

    async def read_exposure(self) -> tuple[ChainAmount, ChainAmount]:
        """(deposited, borrowedWETH) read directly from the leverage strategy."""
        lev = self._contracts.strategy_leverage
        deposited, borrowed = await self._gather(
            (lev, LEVERAGE_STRATEGY_ABI, "deposited", ()),
            (lev, LEVERAGE_STRATEGY_ABI, "borrowedWETH", ()),
        )
        return _amount(deposited, "deposited"), _amount(borrowed, "borrowedWETH")

    # ------------------------------------------------------------------
    # Wallet-scoped reads
    # ------------------------------------------------------------------

    async def read_user_balances(self, wallet: str) -> UserBalances:
        vault = self._contracts.vault
        shares = _uint(await self._chain.read(vault, VAULT_ABI, "balanceOf", (wallet,)), "balanceOf")
        assets = await self._chain.read(vault, VAULT_ABI, "convertToAssets", (shares,))
        return UserBalances(
            wallet=wallet,
            shares=ChainAmount.from_raw(shares),
            withdrawable=_amount(assets, "convertToAssets"),
        )

    async def read_wallet_asset_balance(self, wallet: str) -> ChainAmount:
        value = await self._chain.read(
            self._contracts.asset_token, ERC20_ABI, "balanceOf", (wallet,)
        )
        return _amount(value, "asset.balanceOf")

    async def read_allowance(self, wallet: str) -> ChainAmount:
        """Allowance granted by ``wallet`` to the vault."""
        value = await self._chain.read(
            self._contracts.asset_token, ERC20_ABI, "allowance", (wallet, self._contracts.vault)
        )
        return _amount(value, "allowance")

    async def convert_to_shares(self, assets_raw: int) -> ChainAmount:
        value = await self._chain.read(
            self._contracts.vault, VAULT_ABI, "convertToShares", (assets_raw,)
        )
        return _amount(value, "convertToShares")

    async def convert_to_assets(self, shares_raw: int) -> ChainAmount:
        value = await self._chain.read(
            self._contracts.vault, VAULT_ABI, "convertToAssets", (shares_raw,)
        )
        return _amount(value, "convertToAssets")
