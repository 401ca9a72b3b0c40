"""Chat service: structured user actions answered for the requesting wallet only."""
from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable, Mapping

from web3 import AsyncWeb3

from ..analysis.apy import ApyTracker
from ..errors import ChatRequestError, ValidationError
from ..models import PreparedTurn
from ..units import parse_units
from .price_service import PriceService
from .sessions import SessionStore
from .state_reader import StateReader
from .transactions import TransactionPreparer

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Sorry, something went wrong while processing your request. Please try again."

ADMIN_RESTRICTED = (
    "I can help with deposits, withdrawals, balances, and public data. "
    "Strategy management is restricted to vault administrators."
)

HELP_TEXT = (
    "Available actions: deposit, withdraw, approve (with an amount), balance, "
    "wallet_balance, vault_info, apy, prices, convert_to_shares, convert_to_assets."
)

ADMIN_ACTIONS = frozenset({
    "rebalance",
    "harvest",
    "deleverage",
    "pause",
    "toggle_pause",
    "update_weights",
    "set_weights",
    "update_leverage_params",
    "set_leverage_params",
    "risk",
})

AMOUNT_ACTIONS = frozenset({"deposit", "withdraw", "approve", "convert_to_shares", "convert_to_assets"})

# action name → handler method
_READ_ACTIONS = {
    "balance": "_balance",
    "wallet_balance": "_wallet_balance",
    "vault_info": "_vault_info",
    "apy": "_apy_turn",
    "prices": "_prices_turn",
    "convert_to_shares": "_convert_to_shares",
    "convert_to_assets": "_convert_to_assets",
}


def _apy_context(session_id: str) -> str:
    return f"session:{session_id}"


class ChatService:
    """Validates chat requests, dispatches the action and records the turn.

    Client errors raise ``ChatRequestError`` before any session is touched.
    I/O failures produce ``success: False`` with a generic message.
    """

    def __init__(
        self,
        reader: StateReader,
        preparer: TransactionPreparer,
        prices: PriceService,
        sessions: SessionStore,
        apy: ApyTracker | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._reader = reader
        self._preparer = preparer
        self._prices = prices
        self._sessions = sessions
        self._apy = apy or ApyTracker()
        self._clock = clock

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    # ------------------------------------------------------------------
    # Request validation
    # ------------------------------------------------------------------

    @staticmethod
    def _require_str(request: Mapping[str, Any], key: str) -> str:
        value = request.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ChatRequestError(f"'{key}' is required")
        return value.strip()

    @staticmethod
    def _parse_request(request: Mapping[str, Any]) -> tuple[str, str, str | None, str, str | None]:
        message = ChatService._require_str(request, "message")
        wallet = ChatService._require_str(request, "wallet")
        if not AsyncWeb3.is_address(wallet):
            raise ChatRequestError(f"'{wallet}' is not a valid wallet address")

        session_id = request.get("sessionId") or request.get("session_id")
        if session_id is not None and not isinstance(session_id, str):
            raise ChatRequestError("'sessionId' must be a string")

        action = request.get("action") or ""
        if not isinstance(action, str):
            raise ChatRequestError("'action' must be a string")
        action = action.strip().lower()

        amount = request.get("amount")
        if amount is not None:
            amount = str(amount).strip()
        if action in AMOUNT_ACTIONS:
            if not amount:
                raise ChatRequestError(f"'{action}' requires an amount")
            try:
                parse_units(amount)
            except ValidationError as e:
                raise ChatRequestError(str(e)) from e
        elif action and action not in ADMIN_ACTIONS and action not in _READ_ACTIONS:
            raise ChatRequestError(f"Unknown action '{action}'")

        return message, wallet, session_id or None, action, amount

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _balance(self, wallet: str, session_id: str, amount: str | None) -> PreparedTurn:
        balances = await self._reader.read_user_balances(wallet)
        return PreparedTurn(
            reply=f"You hold {balances.shares.human} vault shares, "
                  f"currently worth {balances.withdrawable.human} of the deposit asset."
        )

    async def _wallet_balance(self, wallet: str, session_id: str, amount: str | None) -> PreparedTurn:
        balance = await self._reader.read_wallet_asset_balance(wallet)
        return PreparedTurn(reply=f"Your wallet holds {balance.human} of the deposit asset.")

    async def _vault_info(self, wallet: str, session_id: str, amount: str | None) -> PreparedTurn:
        vault = await self._reader.read_vault_state()
        return PreparedTurn(
            reply=(
                f"Vault total assets: {vault.total_assets.human}. "
                f"Managed assets: {vault.total_managed_assets.human}. "
                f"Shares outstanding: {vault.total_supply.human}."
            )
        )

    async def _apy_turn(self, wallet: str, session_id: str, amount: str | None) -> PreparedTurn:
        vault = await self._reader.read_vault_state()
        obs = self._apy.observe(
            _apy_context(session_id), vault.total_managed_assets.as_float(), self._clock()
        )
        if obs.baseline:
            return PreparedTurn(
                reply="APY tracking started for this session (0.00%). Ask again later for an estimate."
            )
        return PreparedTurn(reply=f"Estimated APY since your last check: {obs.readable}.")

    async def _prices_turn(self, wallet: str, session_id: str, amount: str | None) -> PreparedTurn:
        snap = await self._prices.get_prices()
        return PreparedTurn(
            reply=(
                f"{snap.asset_a}: ${snap.asset_a_usd:,.4f}, {snap.asset_b}: ${snap.asset_b_usd:,.2f} "
                f"({snap.asset_b}/{snap.asset_a} {snap.cross_rate:,.4f}, source {snap.source})."
            )
        )

    async def _convert_to_shares(self, wallet: str, session_id: str, amount: str | None) -> PreparedTurn:
        shares = await self._reader.convert_to_shares(parse_units(amount or "0"))
        return PreparedTurn(reply=f"{amount} of the deposit asset converts to {shares.human} vault shares.")

    async def _convert_to_assets(self, wallet: str, session_id: str, amount: str | None) -> PreparedTurn:
        assets = await self._reader.convert_to_assets(parse_units(amount or "0"))
        return PreparedTurn(reply=f"{amount} vault shares convert to {assets.human} of the deposit asset.")

    async def _dispatch(
        self, action: str, wallet: str, session_id: str, amount: str | None
    ) -> PreparedTurn:
        if not action:
            return PreparedTurn(reply=HELP_TEXT)
        if action in ADMIN_ACTIONS:
            logger.info("Refused admin action '%s' from %s", action, wallet)
            return PreparedTurn(reply=ADMIN_RESTRICTED)
        if action == "deposit":
            return await self._preparer.prepare_deposit(wallet, amount or "")
        if action == "withdraw":
            return await self._preparer.prepare_withdraw(wallet, amount or "")
        if action == "approve":
            return await self._preparer.prepare_approval(wallet, amount or "")
        handler = getattr(self, _READ_ACTIONS[action])
        return await handler(wallet, session_id, amount)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def handle(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Process one chat request.

        Raises:
            ChatRequestError: missing or malformed fields; no session is modified.
        """
        message, wallet, session_id, action, amount = self._parse_request(request)
        session_id = session_id or uuid.uuid4().hex

        try:
            turn = await self._dispatch(action, wallet, session_id, amount)
        except ValidationError as e:
            raise ChatRequestError(str(e)) from e
        except Exception as e:
            logger.error("Chat action '%s' failed for session %s: %s", action or "help", session_id, e)
            return {"success": False, "sessionId": session_id, "error": GENERIC_FAILURE}

        self._sessions.append(session_id, "user", message)
        session = self._sessions.append(session_id, "assistant", turn.reply)
        return {
            "success": True,
            "sessionId": session_id,
            "history": [t.to_dict() for t in session.history],
            **turn.to_dict(),
        }

    def reset(self, session_id: str) -> dict[str, Any]:
        session = self._sessions.reset(session_id)
        self._apy.discard(_apy_context(session_id))
        return {"success": True, "sessionId": session_id, "data": session.to_dict()}

