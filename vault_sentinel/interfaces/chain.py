"""Chain client protocol: EVM read/write abstraction."""
from typing import Any, Protocol, Sequence

from ..models import TxReceipt, UnsignedTransaction


class ChainClient(Protocol):
    """Abstract interface for contract reads, operator writes and unsigned txs."""

    async def read(
        self, address: str, abi: list[dict[str, Any]], method: str, args: Sequence[Any] = ()
    ) -> Any: ...

    async def write(
        self, address: str, abi: list[dict[str, Any]], method: str, args: Sequence[Any] = ()
    ) -> TxReceipt: ...

    def build_unsigned(
        self,
        address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: Sequence[Any],
        sender: str,
    ) -> UnsignedTransaction: ...
