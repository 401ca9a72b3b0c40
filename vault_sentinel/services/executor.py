"""Action executor: one guarded operator write per corrective action."""
from __future__ import annotations

import logging
from typing import Sequence

from ..chains.evm.abi import LEVERAGE_STRATEGY_ABI, ROUTER_ABI
from ..config import BPS_TOTAL, ContractsConfig
from ..errors import ValidationError
from ..interfaces.chain import ChainClient
from ..models import (
    BORROW_FACTOR_RANGE,
    MAX_DEPTH_RANGE,
    Action,
    ActionResult,
    Deleverage,
    Harvest,
    Rebalance,
    TogglePause,
    UpdateLeverageParams,
    UpdateWeights,
)
from .state_reader import StateReader

logger = logging.getLogger(__name__)


def validate_weights(weights: Sequence[tuple[str, int]]) -> None:
    """Weights must be non-empty, unique per strategy, and sum to exactly 10000 bps."""
    if not weights:
        raise ValidationError("At least one strategy weight is required")

    seen: set[str] = set()
    for address, bps in weights:
        if not address:
            raise ValidationError("Strategy address is empty")
        if address.lower() in seen:
            raise ValidationError(f"Duplicate strategy {address}")
        seen.add(address.lower())
        if isinstance(bps, bool) or not isinstance(bps, int) or not 0 <= bps <= BPS_TOTAL:
            raise ValidationError(f"Weight for {address} must be an integer in [0, {BPS_TOTAL}]")

    total = sum(bps for _, bps in weights)
    if total != BPS_TOTAL:
        raise ValidationError(f"Target weights must sum to {BPS_TOTAL} bps (got {total})")


def validate_leverage_params(max_depth: int, borrow_factor_bps: int) -> None:
    lo, hi = MAX_DEPTH_RANGE
    if isinstance(max_depth, bool) or not isinstance(max_depth, int) or not lo <= max_depth <= hi:
        raise ValidationError(f"maxDepth must be within [{lo}, {hi}] (got {max_depth})")
    lo, hi = BORROW_FACTOR_RANGE
    if (
        isinstance(borrow_factor_bps, bool)
        or not isinstance(borrow_factor_bps, int)
        or not lo <= borrow_factor_bps <= hi
    ):
        raise ValidationError(f"borrowFactor must be within [{lo}, {hi}] bps (got {borrow_factor_bps})")


class ActionExecutor:
    """Validates, submits and confirms operator transactions.

    Validation failures raise before anything is sent. Reverted transactions
    are returned with their status, not raised.
    """

    def __init__(
        self, chain: ChainClient, reader: StateReader, contracts: ContractsConfig
    ) -> None:
        self._chain = chain
        self._reader = reader
        self._contracts = contracts

    async def rebalance(self) -> ActionResult:
        total = await self._reader.read_target_weight_sum()
        if total != BPS_TOTAL:
            raise ValidationError(
                f"Router target weights sum to {total} bps; set weights before rebalancing"
            )
        receipt = await self._chain.write(self._contracts.router, ROUTER_ABI, "rebalance")
        return ActionResult(action=Rebalance(), receipt=receipt)

    async def harvest(self) -> ActionResult:
        receipt = await self._chain.write(self._contracts.router, ROUTER_ABI, "harvestAll")
        return ActionResult(action=Harvest(), receipt=receipt)

    async def deleverage(self, strategy: str | None = None, max_steps: int = 10) -> ActionResult:
        if max_steps <= 0:
            raise ValidationError("Deleverage step bound must be positive")
        target = strategy or self._contracts.strategy_leverage
        receipt = await self._chain.write(
            self._contracts.router, ROUTER_ABI, "triggerDeleverage", (target, max_steps)
        )
        return ActionResult(action=Deleverage(strategy=target, max_steps=max_steps), receipt=receipt)

    async def update_weights(self, weights: Sequence[tuple[str, int]]) -> ActionResult:
        weights = tuple(weights)
        validate_weights(weights)
        receipt = await self._chain.write(
            self._contracts.router,
            ROUTER_ABI,
            "setStrategies",
            ([addr for addr, _ in weights], [bps for _, bps in weights]),
        )
        return ActionResult(action=UpdateWeights(weights=weights), receipt=receipt)

    async def toggle_pause(self) -> ActionResult:
        receipt = await self._chain.write(
            self._contracts.strategy_leverage, LEVERAGE_STRATEGY_ABI, "togglePause"
        )
        paused = await self._reader.read_paused()
        return ActionResult(
            action=TogglePause(),
            receipt=receipt,
            note="paused" if paused else "active",
        )

    async def update_leverage_params(self, max_depth: int, borrow_factor_bps: int) -> ActionResult:
        validate_leverage_params(max_depth, borrow_factor_bps)
        receipt = await self._chain.write(
            self._contracts.strategy_leverage,
            LEVERAGE_STRATEGY_ABI,
            "setLeverageParams",
            (max_depth, borrow_factor_bps),
        )
        return ActionResult(
            action=UpdateLeverageParams(max_depth=max_depth, borrow_factor_bps=borrow_factor_bps),
            receipt=receipt,
        )

    async def execute(self, action: Action) -> ActionResult:
        if isinstance(action, Deleverage):
            return await self.deleverage(action.strategy, action.max_steps)
        if isinstance(action, TogglePause):
            return await self.toggle_pause()
        if isinstance(action, UpdateLeverageParams):
            return await self.update_leverage_params(action.max_depth, action.borrow_factor_bps)
        if isinstance(action, UpdateWeights):
            return await self.update_weights(action.weights)
        if isinstance(action, Rebalance):
            return await self.rebalance()
        if isinstance(action, Harvest):
            return await self.harvest()
        raise ValidationError(f"Unknown action {action!r}")

    async def execute_all(self, actions: Sequence[Action]) -> list[ActionResult]:
        """Run actions strictly in order; stop after the first non-successful receipt."""
        results: list[ActionResult] = []
        for action in actions:
            result = await self.execute(action)
            results.append(result)
            logger.info(
                "%s → %s (%s, gas %d)",
                type(action).__name__, result.receipt.hash,
                result.receipt.status, result.receipt.gas_used,
            )
            if not result.receipt.succeeded:
                logger.error("Stopping after %s: %s", type(action).__name__, result.receipt.status)
                break
        return results
