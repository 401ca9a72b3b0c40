"""Two independent periodic cycles over asyncio tasks."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from ..config import MonitorConfig
from .monitor import CycleReport, Monitor

logger = logging.getLogger(__name__)

Cycle = Callable[[], Awaitable[CycleReport]]


class Scheduler:
    """Runs the comprehensive and yield cycles on their own timers.

    Each cycle runs once as soon as it is started, then waits its interval
    after finishing. A cycle never overlaps itself; the two cycles may
    overlap each other. ``stop()`` lets an in-flight cycle finish.
    """

    def __init__(
        self,
        monitor: Monitor,
        comprehensive_interval: float = 3600.0,
        yield_interval: float = 300.0,
    ) -> None:
        self._monitor = monitor
        self._intervals = {"comprehensive": comprehensive_interval, "yield": yield_interval}
        self._cycles: dict[str, Cycle] = {
            "comprehensive": monitor.run_comprehensive_cycle,
            "yield": monitor.run_yield_cycle,
        }
        self._locks = {name: asyncio.Lock() for name in self._cycles}
        self._stop = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    @classmethod
    def from_config(cls, monitor: Monitor, config: MonitorConfig) -> Scheduler:
        return cls(
            monitor,
            comprehensive_interval=config.comprehensive_interval_minutes * 60,
            yield_interval=config.yield_interval_minutes * 60,
        )

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def _run_once(self, name: str) -> CycleReport | None:
        async with self._locks[name]:
            try:
                return await self._cycles[name]()
            except Exception as e:
                # Monitor already reports step failures; this only catches delivery/report bugs.
                logger.error("Error in %s cycle: %s", name, e, exc_info=True)
                return None

    async def _loop(self, name: str) -> None:
        interval = self._intervals[name]
        logger.info("Starting %s cycle (every %.0f seconds)", name, interval)
        while not self._stop.is_set():
            await self._run_once(name)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        logger.info("%s cycle stopped", name.capitalize())

    def start(self) -> None:
        if self.running:
            logger.warning("Scheduler already running")
            return
        self._stop.clear()
        self._tasks = [
            asyncio.create_task(self._loop(name), name=f"vault-sentinel-{name}")
            for name in self._cycles
        ]

    async def stop(self) -> None:
        self._stop.set()
        if self._tasks:
            await asyncio.gather(*self._tasks)
        self._tasks = []

    async def trigger_comprehensive(self) -> CycleReport | None:
        """Run one comprehensive cycle now, waiting for any in-flight one first."""
        return await self._run_once("comprehensive")
