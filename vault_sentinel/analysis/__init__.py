"""Pure computations: risk classification, decision policy, APY."""
from .apy import ApyTracker
from .policy import decide
from .risk import classify_risk

__all__ = ["ApyTracker", "classify_risk", "decide"]
