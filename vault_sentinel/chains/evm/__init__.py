"""EVM chain client and contract ABIs."""
from .client import EvmClient

__all__ = ["EvmClient"]
