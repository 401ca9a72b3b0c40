"""Exception hierarchy for the vault sentinel."""
from __future__ import annotations


class VaultSentinelError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(VaultSentinelError, ValueError):
    """Malformed parameters, rejected before anything is sent on-chain."""


class ChainReadError(VaultSentinelError):
    """A chain read failed or returned an unexpected shape."""


class GasEstimationError(VaultSentinelError):
    """Gas estimation failed; the write was aborted without submission."""


class PriceFeedError(VaultSentinelError):
    """A price source failed (or every configured source failed)."""


class ChatRequestError(VaultSentinelError):
    """The chat caller sent an incomplete or invalid request."""
