"""Vault sentinel: automated risk control and guarded transaction preparation for a yield vault."""

__version__ = "0.1.0"
