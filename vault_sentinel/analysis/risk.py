"""Leverage risk classification. Pure, no I/O.

Band thresholds come from ``ThresholdsConfig``; nothing here has defaults.
"""
from __future__ import annotations

from decimal import Decimal

from ..models import RiskAssessment, RiskCategory


def calc_ltv(deposited: float | Decimal, borrowed: float | Decimal) -> float:
    """Loan-to-value as a ratio; 0.0 when nothing is deposited."""
    deposited = float(deposited)
    if deposited <= 0:
        return 0.0
    return max(float(borrowed), 0.0) / deposited


def categorize(ltv: float, warning: float, critical: float) -> RiskCategory:
    """Thresholds are inclusive on the lower bound of each band."""
    if ltv >= critical:
        return RiskCategory.CRITICAL
    if ltv >= warning:
        return RiskCategory.WARNING
    return RiskCategory.SAFE


def classify_risk(
    deposited: float | Decimal,
    borrowed: float | Decimal,
    warning: float,
    critical: float,
) -> RiskAssessment:
    """Map deposited/borrowed amounts to LTV and a risk category.

    No deposit means no exposure: the result is SAFE with an LTV of zero.
    """
    if float(deposited) <= 0:
        return RiskAssessment(ltv=0.0, category=RiskCategory.SAFE, has_exposure=False)

    ltv = calc_ltv(deposited, borrowed)
    return RiskAssessment(ltv=ltv, category=categorize(ltv, warning, critical))
