"""EVM JSON-RPC client: contract reads, operator-signed writes, unsigned transactions."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.contract import AsyncContract

from ...config import ChainConfig
from ...errors import ChainReadError, GasEstimationError
from ...models import TxReceipt, UnsignedTransaction

logger = logging.getLogger(__name__)


def _checksum_args(args: Sequence[Any]) -> list[Any]:
    """Checksum every address argument, including inside arrays."""
    out: list[Any] = []
    for arg in args:
        if isinstance(arg, str) and AsyncWeb3.is_address(arg):
            out.append(AsyncWeb3.to_checksum_address(arg))
        elif isinstance(arg, (list, tuple)):
            out.append(_checksum_args(arg))
        else:
            out.append(arg)
    return out


class EvmClient:
    """Shared chain connection. Constructed once at startup and injected."""

    GAS_MARGIN_PERCENT = 20

    def __init__(
        self,
        config: ChainConfig,
        w3: AsyncWeb3 | None = None,
        account: LocalAccount | None = None,
    ) -> None:
        self.timeout = config.rpc_timeout
        self.receipt_timeout = config.receipt_timeout
        self.chain_id = config.chain_id
        self._w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.rpc_url))
        if account is None and config.private_key:
            account = Account.from_key(config.private_key)
        self._account = account

    @property
    def operator_address(self) -> str | None:
        return self._account.address if self._account else None

    def _contract(self, address: str, abi: list[dict[str, Any]]) -> AsyncContract:
        return self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address), abi=abi
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read(
        self,
        address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: Sequence[Any] = (),
    ) -> Any:
        """Call a view method. Any failure surfaces as ChainReadError."""
        try:
            fn = getattr(self._contract(address, abi).functions, method)(*_checksum_args(args))
            return await asyncio.wait_for(fn.call(), timeout=self.timeout)
        except Exception as e:
            raise ChainReadError(f"{method}() on {address} failed: {e}") from e

    # ------------------------------------------------------------------
    # Operator writes
    # ------------------------------------------------------------------

    async def _fee_params(self) -> dict[str, int]:
        """EIP-1559 fees from the latest base fee; legacy gas price otherwise."""
        block = await asyncio.wait_for(self._w3.eth.get_block("latest"), timeout=self.timeout)
        base_fee = block.get("baseFeePerGas")
        if base_fee is None:
            gas_price = await asyncio.wait_for(self._w3.eth.gas_price, timeout=self.timeout)
            return {"gasPrice": int(gas_price)}

        priority = await asyncio.wait_for(self._w3.eth.max_priority_fee, timeout=self.timeout)
        return {
            "maxPriorityFeePerGas": int(priority),
            "maxFeePerGas": int(base_fee) * 2 + int(priority),
        }

    async def write(
        self,
        address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: Sequence[Any] = (),
    ) -> TxReceipt:
        """Sign with the operator key, submit and wait for one confirmation.

        Raises:
            GasEstimationError: estimation failed; nothing was submitted.
        """
        if self._account is None:
            raise RuntimeError("No operator key configured (chain.private_key)")
        sender = self._account.address

        contract = self._contract(address, abi)
        fn = getattr(contract.functions, method)(*_checksum_args(args))

        try:
            estimated = await asyncio.wait_for(
                fn.estimate_gas({"from": sender}), timeout=self.timeout
            )
        except Exception as e:
            raise GasEstimationError(f"Gas estimation for {method}() failed: {e}") from e

        gas_limit = int(estimated) * (100 + self.GAS_MARGIN_PERCENT) // 100
        fees = await self._fee_params()
        nonce = await asyncio.wait_for(
            self._w3.eth.get_transaction_count(sender, "pending"), timeout=self.timeout
        )

        tx_params: dict[str, Any] = {"from": sender, "nonce": nonce, "gas": gas_limit, **fees}
        if self.chain_id is not None:
            tx_params["chainId"] = self.chain_id

        tx = await asyncio.wait_for(fn.build_transaction(tx_params), timeout=self.timeout)
        signed = self._account.sign_transaction(tx)
        tx_hash = await asyncio.wait_for(
            self._w3.eth.send_raw_transaction(signed.raw_transaction), timeout=self.timeout
        )
        hash_hex = AsyncWeb3.to_hex(tx_hash)
        logger.info("Submitted %s() to %s: %s (gas limit %d)", method, address, hash_hex, gas_limit)

        receipt = await self._w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.receipt_timeout
        )
        status = "success" if receipt["status"] == 1 else "reverted"
        if status != "success":
            logger.error("Transaction %s for %s() reverted", hash_hex, method)

        return TxReceipt(
            hash=hash_hex,
            from_address=sender,
            to_address=contract.address,
            nonce=int(nonce),
            status=status,
            gas_used=int(receipt["gasUsed"]),
        )

    # ------------------------------------------------------------------
    # User-signed transactions
    # ------------------------------------------------------------------

    def build_unsigned(
        self,
        address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: Sequence[Any],
        sender: str,
    ) -> UnsignedTransaction:
        """Encode calldata for a wallet to sign. No key is involved."""
        contract = self._contract(address, abi)
        data = contract.encode_abi(method, args=_checksum_args(args))
        return UnsignedTransaction(
            to=contract.address,
            data=data,
            from_address=AsyncWeb3.to_checksum_address(sender),
            chain_id=self.chain_id,
        )

    async def close(self) -> None:
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
