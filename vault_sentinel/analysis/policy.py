"""Decision policy: maps risk, volatility and allocation drift to actions. Pure, no I/O.

Rules are evaluated in priority order and the first match wins, so a cycle
never stacks two categories of corrective action:

1. CRITICAL risk → deleverage.
2. WARNING risk with high volatility → pause leverage, or tighten the leverage
   parameters when the strategy is already paused.
3. Allocation drift beyond tolerance → (update target weights) + rebalance.
4. Harvestable yield → harvest.
5. Otherwise nothing.
"""
from __future__ import annotations

from typing import Mapping, Sequence

from ..config import ThresholdsConfig
from ..models import (
    BORROW_FACTOR_RANGE,
    MAX_DEPTH_RANGE,
    Action,
    Decision,
    Deleverage,
    Harvest,
    LeverageState,
    Rebalance,
    RiskAssessment,
    RiskCategory,
    StrategyState,
    TogglePause,
    UpdateLeverageParams,
    UpdateWeights,
)

BORROW_FACTOR_STEP_BPS = 1000


def is_volatile(cross_rate_change: float | None, threshold: float) -> bool:
    """Unknown change is never treated as volatile."""
    return cross_rate_change is not None and abs(cross_rate_change) > threshold


def drifted_strategies(
    strategies: Sequence[StrategyState], tolerance_bps: int
) -> list[StrategyState]:
    return [s for s in strategies if s.drift_bps > tolerance_bps]


def tightened_params(max_depth: int, borrow_factor_bps: int) -> tuple[int, int] | None:
    """One step down in both parameters, clamped into the accepted ranges.

    None when the result would not change anything.
    """
    depth_lo, depth_hi = MAX_DEPTH_RANGE
    factor_lo, factor_hi = BORROW_FACTOR_RANGE
    new_depth = min(depth_hi, max(depth_lo, max_depth - 1))
    new_factor = min(factor_hi, max(factor_lo, borrow_factor_bps - BORROW_FACTOR_STEP_BPS))
    if (new_depth, new_factor) == (max_depth, borrow_factor_bps):
        return None
    return new_depth, new_factor


def _weights_differ(
    strategies: Sequence[StrategyState], target_weights_bps: Mapping[str, int]
) -> bool:
    on_chain = {s.address.lower(): s.target_weight_bps for s in strategies}
    configured = {addr.lower(): bps for addr, bps in target_weights_bps.items()}
    return on_chain != configured


def decide(
    risk: RiskAssessment,
    leverage: LeverageState | None,
    strategies: Sequence[StrategyState],
    cross_rate_change: float | None,
    harvestable: bool,
    thresholds: ThresholdsConfig,
    leverage_strategy: str,
    deleverage_max_steps: int = 10,
    target_weights_bps: Mapping[str, int] | None = None,
) -> Decision:
    """Return the recommended actions for this cycle, in execution order."""
    if risk.category is RiskCategory.CRITICAL:
        return Decision(
            actions=(Deleverage(strategy=leverage_strategy, max_steps=deleverage_max_steps),),
            reason=f"LTV {risk.ltv:.2%} is CRITICAL: repay debt",
        )

    volatile = is_volatile(cross_rate_change, thresholds.volatility)
    if risk.category is RiskCategory.WARNING and volatile:
        if leverage is None or not leverage.paused:
            return Decision(
                actions=(TogglePause(),),
                reason=(
                    f"LTV {risk.ltv:.2%} is WARNING and cross rate moved "
                    f"{cross_rate_change:+.2%}: pause leverage"
                ),
            )
        tightened = tightened_params(leverage.max_depth, leverage.borrow_factor_bps)
        if tightened is not None:
            depth, factor = tightened
            return Decision(
                actions=(UpdateLeverageParams(max_depth=depth, borrow_factor_bps=factor),),
                reason=(
                    f"LTV {risk.ltv:.2%} is WARNING under volatility and leverage is "
                    f"paused: reduce maxDepth to {depth}, borrowFactor to {factor} bps"
                ),
            )
        return Decision(
            actions=(),
            reason="WARNING under volatility, leverage already paused at minimum parameters",
        )

    drifted = drifted_strategies(strategies, thresholds.drift_tolerance_bps)
    if drifted:
        actions: list[Action] = []
        if target_weights_bps and _weights_differ(strategies, target_weights_bps):
            actions.append(UpdateWeights(weights=tuple(target_weights_bps.items())))
        actions.append(Rebalance())
        worst = max(drifted, key=lambda s: s.drift_bps)
        return Decision(
            actions=tuple(actions),
            reason=(
                f"Allocation drift {worst.drift_bps} bps on {worst.address} exceeds "
                f"{thresholds.drift_tolerance_bps} bps: rebalance"
            ),
        )

    if harvestable:
        return Decision(actions=(Harvest(),), reason="Harvestable yield present")

    return Decision(actions=(), reason="No action necessary")
