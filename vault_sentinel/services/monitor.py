"""Risk-control monitoring: comprehensive and yield cycles with report delivery."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Sequence

from ..analysis.apy import ApyTracker
from ..analysis.policy import decide, is_volatile
from ..analysis.risk import classify_risk
from ..config import AppConfig
from ..interfaces.notifier import Notifier
from ..models import ActionResult, ApyObservation, RiskCategory
from .executor import ActionExecutor
from .price_service import PriceService
from .state_reader import StateReader

logger = logging.getLogger(__name__)

COMPREHENSIVE_CONTEXT = "comprehensive"
YIELD_CONTEXT = "yield"

Step = Callable[[dict[str, Any]], Awaitable[str]]


@dataclass
class CycleReport:
    """Outcome of one cycle: the step outputs plus, on failure, which step broke."""

    title: str
    sections: list[str] = field(default_factory=list)
    failed_step: str | None = None
    error: str | None = None
    escalate: bool = False

    @property
    def ok(self) -> bool:
        return self.failed_step is None

    def render(self, timestamp: str) -> str:
        parts = [self.title]
        if not self.ok:
            parts.append(f"❌ Step failed: {self.failed_step}\n{self.error}")
            if self.sections:
                parts.append("Completed before failure:")
        parts.extend(self.sections)
        parts.append(f"{timestamp} UTC")
        return "\n\n".join(parts)


class Monitor:
    """Runs the risk-control loop against injected readers, feeds and sinks."""

    def __init__(
        self,
        config: AppConfig,
        reader: StateReader,
        prices: PriceService,
        executor: ActionExecutor,
        notifiers: Sequence[Notifier],
        apy: ApyTracker | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._thresholds = config.monitor.thresholds
        self._reader = reader
        self._prices = prices
        self._executor = executor
        self._notifiers = list(notifiers)
        self._apy = apy or ApyTracker()
        self._clock = clock

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _format_address(address: str) -> str:
        if len(address) > 16:
            return f"{address[:10]}...{address[-6:]}"
        return address

    @staticmethod
    def _get_status(category: RiskCategory) -> str:
        if category is RiskCategory.CRITICAL:
            return "🚨 CRITICAL"
        if category is RiskCategory.WARNING:
            return "⚠️ WARNING"
        return "✅ Healthy"

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    @staticmethod
    def _format_apy(obs: ApyObservation) -> str:
        if obs.baseline:
            return "APY: baseline recorded (0.00%)"
        return f"APY: {obs.readable} (growth {obs.growth:+.6%} over {obs.elapsed_seconds:.0f}s)"

    def _format_result(self, result: ActionResult) -> str:
        line = (
            f"  {type(result.action).__name__}: {result.receipt.status} "
            f"· tx {result.receipt.hash} · gas {result.receipt.gas_used:,}"
        )
        if result.note:
            line += f" · now {result.note}"
        return line

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _send_log(self, message: str, silent: bool = False) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=silent)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    async def _deliver(self, report: CycleReport) -> None:
        message = report.render(self._now_str())
        if not report.ok:
            await self._send_alert(message, subject=f"❌ {report.title}: {report.failed_step} failed")
        elif report.escalate:
            await self._send_alert(message, subject=report.title)
        else:
            await self._send_log(message, silent=True)

    # ------------------------------------------------------------------
    # Step runner
    # ------------------------------------------------------------------

    async def _run_steps(
        self, report: CycleReport, steps: Sequence[tuple[str, Step]], ctx: dict[str, Any]
    ) -> CycleReport:
        """Run steps in order; the first failure aborts the rest and is attributed."""
        for name, step in steps:
            try:
                report.sections.append(await step(ctx))
            except Exception as e:
                logger.exception("%s: step '%s' failed", report.title, name)
                report.failed_step = name
                report.error = f"{type(e).__name__}: {e}"
                break
        return report

    # ------------------------------------------------------------------
    # Comprehensive cycle steps
    # ------------------------------------------------------------------

    async def _step_prices(self, ctx: dict[str, Any]) -> str:
        snapshot = await self._prices.get_prices()
        ctx["prices"] = snapshot
        change = snapshot.cross_rate_change
        change_str = f"{change:+.2%}" if change is not None else "unknown"
        volatile = " · ⚠️ volatile" if is_volatile(change, self._thresholds.volatility) else ""
        return (
            f"💱 Prices ({snapshot.source})\n"
            f"{snapshot.asset_a}: ${snapshot.asset_a_usd:,.4f} · "
            f"{snapshot.asset_b}: ${snapshot.asset_b_usd:,.2f}\n"
            f"{snapshot.asset_b}/{snapshot.asset_a}: {snapshot.cross_rate:,.4f} "
            f"(24h {change_str}){volatile}"
        )

    async def _step_leverage(self, ctx: dict[str, Any]) -> str:
        leverage = await self._reader.read_leverage_state()
        ctx["leverage"] = leverage
        return (
            f"⚙️ Leverage strategy{' (paused)' if leverage.paused else ''}\n"
            f"Deposited: {leverage.deposited.human}\n"
            f"Borrowed WETH: {leverage.borrowed_weth.human}\n"
            f"Net exposure: {leverage.net_exposure.human}\n"
            f"maxDepth: {leverage.max_depth} · borrowFactor: {leverage.borrow_factor_bps} bps"
        )

    async def _step_risk(self, ctx: dict[str, Any]) -> str:
        deposited, borrowed = await self._reader.read_exposure()
        risk = classify_risk(
            deposited.as_float(),
            borrowed.as_float(),
            self._thresholds.ltv_warning,
            self._thresholds.ltv_critical,
        )
        ctx["risk"] = risk
        if not risk.has_exposure:
            return "🛡️ Liquidation risk\n✅ No leveraged exposure"
        return (
            f"🛡️ Liquidation risk\n"
            f"{self._get_status(risk.category)} · LTV {risk.ltv:.2%} "
            f"(warn {self._thresholds.ltv_warning:.0%} · crit {self._thresholds.ltv_critical:.0%})"
        )

    async def _step_vault(self, ctx: dict[str, Any]) -> str:
        vault = await self._reader.read_vault_state()
        strategies = await self._reader.read_strategy_states()
        obs = self._apy.observe(
            COMPREHENSIVE_CONTEXT, vault.total_managed_assets.as_float(), self._clock()
        )
        ctx["strategies"] = strategies
        ctx["harvestable"] = obs.growth is not None and obs.growth > 0

        lines = [
            "🏦 Vault",
            f"Total assets: {vault.total_assets.human}",
            f"Managed assets: {vault.total_managed_assets.human}",
            f"Shares: {vault.total_supply.human}",
            self._format_apy(obs),
        ]
        for s in strategies:
            lines.append(
                f"  {self._format_address(s.address)}: {s.balance.human} · "
                f"{s.actual_weight_bps} / {s.target_weight_bps} bps (drift {s.drift_bps})"
            )
        return "\n".join(lines)

    async def _step_decision(self, ctx: dict[str, Any]) -> str:
        decision = decide(
            risk=ctx["risk"],
            leverage=ctx.get("leverage"),
            strategies=ctx.get("strategies", ()),
            cross_rate_change=ctx["prices"].cross_rate_change,
            harvestable=ctx.get("harvestable", False),
            thresholds=self._thresholds,
            leverage_strategy=self._config.contracts.strategy_leverage,
            deleverage_max_steps=self._config.monitor.deleverage_max_steps,
            target_weights_bps=self._config.monitor.target_weights_bps,
        )
        ctx["decision"] = decision
        lines = [f"🧭 Decision\n{decision.reason}"]
        if decision.is_noop:
            return lines[0]

        names = ", ".join(type(a).__name__ for a in decision.actions)
        if not self._config.monitor.auto_execute:
            lines.append(f"Recommended: {names} (auto-execute off)")
            return "\n".join(lines)

        results = await self._executor.execute_all(decision.actions)
        ctx["results"] = results
        lines.append(f"Executed: {names}")
        lines.extend(self._format_result(r) for r in results)
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    async def run_comprehensive_cycle(self) -> CycleReport:
        """Prices → leverage → liquidation risk → vault/strategies → decision, then deliver."""
        ctx: dict[str, Any] = {}
        report = await self._run_steps(
            CycleReport(title="📋 Vault Risk Report"),
            (
                ("prices", self._step_prices),
                ("leverage state", self._step_leverage),
                ("liquidation risk", self._step_risk),
                ("vault state", self._step_vault),
                ("decision", self._step_decision),
            ),
            ctx,
        )
        risk = ctx.get("risk")
        report.escalate = risk is not None and risk.category is not RiskCategory.SAFE
        if any(not r.receipt.succeeded for r in ctx.get("results", ())):
            report.escalate = True

        logger.info(
            "Comprehensive cycle %s",
            "completed" if report.ok else f"failed at '{report.failed_step}'",
        )
        await self._deliver(report)
        return report

    async def _step_harvest(self, ctx: dict[str, Any]) -> str:
        result = await self._executor.harvest()
        ctx["harvest"] = result
        return f"🌾 Harvest\n{self._format_result(result)}"

    async def _step_yield_apy(self, ctx: dict[str, Any]) -> str:
        vault = await self._reader.read_vault_state()
        obs = self._apy.observe(YIELD_CONTEXT, vault.total_managed_assets.as_float(), self._clock())
        return f"📈 Yield\nManaged assets: {vault.total_managed_assets.human}\n{self._format_apy(obs)}"

    async def run_yield_cycle(self) -> CycleReport:
        steps: list[tuple[str, Step]] = []
        if self._config.monitor.harvest_on_yield_cycle:
            steps.append(("harvest", self._step_harvest))
        steps.append(("apy", self._step_yield_apy))

        ctx: dict[str, Any] = {}
        report = await self._run_steps(CycleReport(title="🌾 Yield Cycle"), steps, ctx)
        harvest = ctx.get("harvest")
        report.escalate = harvest is not None and not harvest.receipt.succeeded

        logger.info("Yield cycle %s", "completed" if report.ok else f"failed at '{report.failed_step}'")
        await self._deliver(report)
        return report
