"""APY tracking: annualized growth between the two latest observations per context."""
from __future__ import annotations

import logging

from ..models import ApyObservation, ApyTrackingState

logger = logging.getLogger(__name__)

SECONDS_PER_YEAR = 365 * 24 * 3600


def annualize(last_tvl: float, tvl: float, elapsed_seconds: float) -> tuple[float, float]:
    """Return (growth, apy) where apy = growth / elapsed * seconds_per_year."""
    growth = (tvl - last_tvl) / last_tvl
    return growth, (growth / elapsed_seconds) * SECONDS_PER_YEAR


class ApyTracker:
    """Rolling baselines keyed by context (monitor cycle or chat session).

    Each observation overwrites the stored baseline, so the reported APY
    extrapolates the most recent inter-observation change only.
    """

    def __init__(self) -> None:
        self._states: dict[str, ApyTrackingState] = {}

    def state(self, context: str) -> ApyTrackingState | None:
        return self._states.get(context)

    def discard(self, context: str) -> None:
        self._states.pop(context, None)

    def observe(self, context: str, tvl: float, now: float) -> ApyObservation:
        previous = self._states.get(context)
        self._states[context] = ApyTrackingState(last_tvl=tvl, last_timestamp=now)

        if previous is None or previous.last_tvl <= 0:
            logger.info("APY baseline set for %s (tvl=%.6f)", context, tvl)
            return ApyObservation(apy=0.0, tvl=tvl, baseline=True)

        elapsed = now - previous.last_timestamp
        if elapsed <= 0:
            elapsed = 1.0

        growth, apy = annualize(previous.last_tvl, tvl, elapsed)
        return ApyObservation(
            apy=apy, tvl=tvl, growth=growth, elapsed_seconds=elapsed
        )
