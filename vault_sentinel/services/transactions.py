"""Unsigned transaction preparation for user wallets: allowance → approval → deposit / withdraw."""
from __future__ import annotations

import logging

from ..chains.evm.abi import ERC20_ABI, VAULT_ABI
from ..config import ContractsConfig
from ..errors import ValidationError
from ..interfaces.chain import ChainClient
from ..models import PreparedTurn, TxStep, UnsignedTransaction
from ..units import format18, parse_units
from .state_reader import StateReader

logger = logging.getLogger(__name__)


def _positive_units(amount: str) -> int:
    raw = parse_units(amount)
    if raw == 0:
        raise ValidationError("Amount must be greater than zero")
    return raw


class TransactionPreparer:
    """Builds unsigned transactions for the requesting wallet only.

    Every read is parameterized by the wallet passed in and fetched fresh,
    so an allowance granted after a previous turn is always seen.
    """

    def __init__(
        self, chain: ChainClient, reader: StateReader, contracts: ContractsConfig
    ) -> None:
        self._chain = chain
        self._reader = reader
        self._contracts = contracts

    def _approve_tx(self, wallet: str, raw: int) -> UnsignedTransaction:
        return self._chain.build_unsigned(
            self._contracts.asset_token, ERC20_ABI, "approve", (self._contracts.vault, raw), wallet
        )

    async def prepare_approval(self, wallet: str, amount: str) -> PreparedTurn:
        raw = _positive_units(amount)
        return PreparedTurn(
            reply=f"Sign this transaction to let the vault spend {format18(raw)} of your deposit asset.",
            step=TxStep.APPROVAL,
            unsigned_tx=self._approve_tx(wallet, raw),
            needs_approval=True,
        )

    async def prepare_deposit(self, wallet: str, amount: str) -> PreparedTurn:
        raw = _positive_units(amount)
        human = format18(raw)

        balance = await self._reader.read_wallet_asset_balance(wallet)
        if balance.raw < raw:
            return PreparedTurn(
                reply=f"Your wallet holds {balance.human} of the deposit asset, "
                      f"not enough to deposit {human}."
            )

        allowance = await self._reader.read_allowance(wallet)
        if allowance.raw < raw:
            logger.info("Deposit needs approval: allowance %s < %s", allowance.human, human)
            return PreparedTurn(
                reply=(
                    f"The vault may currently spend {allowance.human} of your deposit asset. "
                    f"Sign this approval for {human} first, then request the deposit again."
                ),
                step=TxStep.APPROVAL,
                unsigned_tx=self._approve_tx(wallet, raw),
                needs_approval=True,
            )

        tx = self._chain.build_unsigned(self._contracts.vault, VAULT_ABI, "deposit", (raw,), wallet)
        return PreparedTurn(
            reply=f"Sign this transaction to deposit {human} into the vault.",
            step=TxStep.DEPOSIT,
            unsigned_tx=tx,
            needs_approval=False,
        )

    async def prepare_withdraw(self, wallet: str, shares: str) -> PreparedTurn:
        raw = _positive_units(shares)
        human = format18(raw)

        balances = await self._reader.read_user_balances(wallet)
        if balances.shares.raw < raw:
            return PreparedTurn(
                reply=f"You hold {balances.shares.human} vault shares, not enough to withdraw {human}."
            )

        tx = self._chain.build_unsigned(self._contracts.vault, VAULT_ABI, "withdraw", (raw,), wallet)
        return PreparedTurn(
            reply=f"Sign this transaction to redeem {human} vault shares.",
            step=TxStep.WITHDRAWAL,
            unsigned_tx=tx,
            needs_approval=False,
        )
