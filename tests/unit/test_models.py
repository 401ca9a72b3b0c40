"""Unit tests for data models."""
from __future__ import annotations

import pytest

from vault_sentinel.models import (
    ApyObservation,
    ChainAmount,
    ChatSession,
    ChatTurn,
    Decision,
    PreparedTurn,
    PriceSnapshot,
    Rebalance,
    StrategyState,
    TxReceipt,
    TxStep,
    UnsignedTransaction,
)


class TestChainAmount:
    def test_from_raw(self) -> None:
        amount = ChainAmount.from_raw(2500000000000000000)
        assert amount.raw == 2500000000000000000
        assert amount.human == "2.500000000000000000"
        assert amount.as_float() == 2.5

    def test_from_raw_string(self) -> None:
        assert ChainAmount.from_raw("7").human == "0.000000000000000007"

    def test_to_dict(self) -> None:
        assert ChainAmount.from_raw(1).to_dict() == {"raw": "1", "human": "0.000000000000000001"}

    def test_frozen(self) -> None:
        amount = ChainAmount.from_raw(1)
        with pytest.raises(AttributeError):
            amount.raw = 2  # type: ignore[misc]


class TestStrategyState:
    def test_drift_is_absolute(self) -> None:
        s = StrategyState(
            address="0x1", balance=ChainAmount.from_raw(0), target_weight_bps=6000, actual_weight_bps=5200
        )
        assert s.drift_bps == 800


class TestPriceSnapshot:
    def test_cross_rate_change(self) -> None:
        snap = PriceSnapshot(
            asset_a_usd=10, asset_b_usd=2000, cross_rate=200, source="t",
            change_24h_a=0.0, change_24h_b=10.0,
        )
        assert snap.cross_rate_change == pytest.approx(0.10)

    def test_cross_rate_change_opposite_moves(self) -> None:
        snap = PriceSnapshot(
            asset_a_usd=10, asset_b_usd=2000, cross_rate=200, source="t",
            change_24h_a=-10.0, change_24h_b=8.0,
        )
        assert snap.cross_rate_change == pytest.approx(1.08 / 0.9 - 1)

    def test_unknown_change(self) -> None:
        snap = PriceSnapshot(asset_a_usd=10, asset_b_usd=2000, cross_rate=200, source="t")
        assert snap.cross_rate_change is None


class TestApyObservation:
    def test_readable(self) -> None:
        assert ApyObservation(apy=0.0525, tvl=1.0).readable == "5.25%"


class TestDecision:
    def test_noop(self) -> None:
        assert Decision(actions=(), reason="none").is_noop
        assert not Decision(actions=(Rebalance(),), reason="drift").is_noop


class TestTxReceipt:
    def test_succeeded(self) -> None:
        ok = TxReceipt(hash="0x1", from_address="a", to_address="b", nonce=0, status="success", gas_used=1)
        bad = TxReceipt(hash="0x2", from_address="a", to_address="b", nonce=1, status="reverted", gas_used=1)
        assert ok.succeeded
        assert not bad.succeeded


class TestUnsignedTransaction:
    def test_to_dict_minimal(self) -> None:
        tx = UnsignedTransaction(to="0xto", data="0xabcd", from_address="0xfrom")
        assert tx.to_dict() == {"to": "0xto", "from": "0xfrom", "data": "0xabcd", "value": "0x0"}

    def test_to_dict_with_chain_and_gas(self) -> None:
        tx = UnsignedTransaction(to="0xto", data="0x", from_address="0xf", chain_id=1, gas=21000)
        d = tx.to_dict()
        assert d["chainId"] == 1
        assert d["gas"] == "0x5208"


class TestPreparedTurn:
    def test_info_turn(self) -> None:
        assert PreparedTurn(reply="hi").to_dict() == {
            "reply": "hi",
            "unsignedTx": None,
            "needsApproval": None,
            "step": "info",
        }

    def test_transaction_turn(self) -> None:
        tx = UnsignedTransaction(to="0xto", data="0x", from_address="0xf")
        d = PreparedTurn(reply="sign", step=TxStep.APPROVAL, unsigned_tx=tx, needs_approval=True).to_dict()
        assert d["step"] == "approval"
        assert d["needsApproval"] is True
        assert d["unsignedTx"]["to"] == "0xto"


class TestChatSession:
    def test_to_dict(self) -> None:
        session = ChatSession(id="s1", created_at="t0", updated_at="t1")
        session.history.append(ChatTurn(role="user", content="hello"))
        assert session.to_dict() == {
            "history": [{"role": "user", "content": "hello"}],
            "createdAt": "t0",
            "updatedAt": "t1",
        }
