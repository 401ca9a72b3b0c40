"""Data models. Chain-derived state is frozen; chat sessions are the one mutable record."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .units import format18


# ---------------------------------------------------------------------------
# On-chain state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainAmount:
    """Raw 18-decimal integer paired with its exact decimal-string form."""

    raw: int
    human: str

    @classmethod
    def from_raw(cls, raw: int | str) -> ChainAmount:
        value = int(raw)
        return cls(raw=value, human=format18(value))

    def as_float(self) -> float:
        return float(self.human)

    def to_dict(self) -> dict[str, str]:
        return {"raw": str(self.raw), "human": self.human}


@dataclass(frozen=True)
class VaultState:
    total_assets: ChainAmount
    total_supply: ChainAmount
    total_managed_assets: ChainAmount


@dataclass(frozen=True)
class StrategyState:
    """One router strategy. Weights are basis points of the routed total."""

    address: str
    balance: ChainAmount
    target_weight_bps: int
    actual_weight_bps: int

    @property
    def drift_bps(self) -> int:
        return abs(self.actual_weight_bps - self.target_weight_bps)


@dataclass(frozen=True)
class LeverageState:
    deposited: ChainAmount
    borrowed_weth: ChainAmount
    net_exposure: ChainAmount
    ltv: float
    paused: bool
    max_depth: int
    borrow_factor_bps: int


@dataclass(frozen=True)
class UserBalances:
    wallet: str
    shares: ChainAmount
    withdrawable: ChainAmount


# ---------------------------------------------------------------------------
# Risk, prices, yield
# ---------------------------------------------------------------------------


class RiskCategory(str, Enum):
    SAFE = "SAFE"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class RiskAssessment:
    ltv: float
    category: RiskCategory
    has_exposure: bool = True


@dataclass(frozen=True)
class PriceSnapshot:
    """USD prices for the deposit asset (A) and the borrowed asset (B)."""

    asset_a_usd: float
    asset_b_usd: float
    cross_rate: float
    source: str
    change_24h_a: float | None = None
    change_24h_b: float | None = None
    asset_a: str = "LINK"
    asset_b: str = "WETH"

    @property
    def cross_rate_change(self) -> float | None:
        """Relative change of B/A implied by the two 24h changes (percent inputs)."""
        if self.change_24h_a is None or self.change_24h_b is None:
            return None
        base = 1 + self.change_24h_a / 100
        if base <= 0:
            return None
        return (1 + self.change_24h_b / 100) / base - 1


@dataclass(frozen=True)
class ApyTrackingState:
    last_tvl: float
    last_timestamp: float


@dataclass(frozen=True)
class ApyObservation:
    apy: float
    tvl: float
    baseline: bool = False
    growth: float | None = None
    elapsed_seconds: float | None = None

    @property
    def readable(self) -> str:
        return f"{self.apy * 100:.2f}%"


# ---------------------------------------------------------------------------
# Actions and transactions
# ---------------------------------------------------------------------------

MAX_DEPTH_RANGE = (1, 6)
BORROW_FACTOR_RANGE = (0, 8000)


@dataclass(frozen=True)
class Deleverage:
    strategy: str
    max_steps: int

    category = "deleverage"


@dataclass(frozen=True)
class TogglePause:
    category = "leverage"


@dataclass(frozen=True)
class UpdateLeverageParams:
    max_depth: int
    borrow_factor_bps: int

    category = "leverage"


@dataclass(frozen=True)
class UpdateWeights:
    weights: tuple[tuple[str, int], ...]

    category = "allocation"


@dataclass(frozen=True)
class Rebalance:
    category = "allocation"


@dataclass(frozen=True)
class Harvest:
    category = "harvest"


Action = Union[Deleverage, TogglePause, UpdateLeverageParams, UpdateWeights, Rebalance, Harvest]


@dataclass(frozen=True)
class Decision:
    """Recommended actions for one cycle, in execution order."""

    actions: tuple[Action, ...]
    reason: str

    @property
    def is_noop(self) -> bool:
        return not self.actions


@dataclass(frozen=True)
class TxReceipt:
    hash: str
    from_address: str
    to_address: str
    nonce: int
    status: str
    gas_used: int

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True)
class ActionResult:
    action: Action
    receipt: TxReceipt
    note: str = ""


@dataclass(frozen=True)
class UnsignedTransaction:
    """Transaction payload handed to an external wallet for signing."""

    to: str
    data: str
    from_address: str
    value: int = 0
    chain_id: int | None = None
    gas: int | None = None

    def to_dict(self) -> dict[str, Any]:
        tx: dict[str, Any] = {
            "to": self.to,
            "from": self.from_address,
            "data": self.data,
            "value": hex(self.value),
        }
        if self.chain_id is not None:
            tx["chainId"] = self.chain_id
        if self.gas is not None:
            tx["gas"] = hex(self.gas)
        return tx


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class TxStep(str, Enum):
    INFO = "info"
    APPROVAL = "approval"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


@dataclass(frozen=True)
class PreparedTurn:
    """Structured result of one chat turn."""

    reply: str
    step: TxStep = TxStep.INFO
    unsigned_tx: UnsignedTransaction | None = None
    needs_approval: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "reply": self.reply,
            "unsignedTx": self.unsigned_tx.to_dict() if self.unsigned_tx else None,
            "needsApproval": self.needs_approval,
            "step": self.step.value,
        }


@dataclass(frozen=True)
class ChatTurn:
    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatSession:
    id: str
    created_at: str
    updated_at: str
    history: list[ChatTurn] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "history": [t.to_dict() for t in self.history],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
