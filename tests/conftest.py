"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

from vault_sentinel.config import (
    AppConfig,
    ChainConfig,
    ContractsConfig,
    MonitorConfig,
    NotificationsConfig,
    TelegramConfig,
    ThresholdsConfig,
)
from vault_sentinel.errors import ChainReadError
from vault_sentinel.models import PriceSnapshot, TxReceipt, UnsignedTransaction
from vault_sentinel.units import WAD

VAULT = "0x" + "a1" * 20
ROUTER = "0x" + "b2" * 20
STRATEGY_LEVERAGE = "0x" + "c3" * 20
STRATEGY_LENDING = "0x" + "d4" * 20
ASSET = "0x" + "e5" * 20
WALLET_A = "0x" + "01" * 20
WALLET_B = "0x" + "02" * 20


# ---------------------------------------------------------------------------
# Chain stub
# ---------------------------------------------------------------------------


class ChainStub:
    """Chain client double answering reads from a table keyed by (address, method, args)."""

    def __init__(self) -> None:
        self.responses: dict[tuple[Any, ...], Any] = {}
        self.read = AsyncMock(side_effect=self._read)
        self.write = AsyncMock(side_effect=self._write)
        self.build_unsigned = MagicMock(side_effect=self._build_unsigned)
        self.write_status = "success"

    def set(self, address: str, method: str, value: Any, *args: Any) -> None:
        self.responses[(address, method, tuple(args))] = value

    async def _read(
        self, address: str, abi: list[dict[str, Any]], method: str, args: Sequence[Any] = ()
    ) -> Any:
        key = (address, method, tuple(args))
        if key not in self.responses:
            raise ChainReadError(f"no stubbed response for {method}{tuple(args)} on {address}")
        value = self.responses[key]
        if isinstance(value, Exception):
            raise value
        return value

    async def _write(
        self, address: str, abi: list[dict[str, Any]], method: str, args: Sequence[Any] = ()
    ) -> TxReceipt:
        return TxReceipt(
            hash=f"0x{self.write.await_count:064x}",
            from_address="0x" + "99" * 20,
            to_address=address,
            nonce=self.write.await_count,
            status=self.write_status,
            gas_used=50_000,
        )

    def _build_unsigned(
        self,
        address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: Sequence[Any],
        sender: str,
    ) -> UnsignedTransaction:
        return UnsignedTransaction(to=address, data=f"{method}{tuple(args)}", from_address=sender)

    def written_methods(self) -> list[str]:
        return [c.args[2] for c in self.write.await_args_list]


@pytest.fixture()
def chain() -> ChainStub:
    return ChainStub()


@pytest.fixture()
def healthy_chain(chain: ChainStub) -> ChainStub:
    """A vault at LTV 0.5, on-target allocation, and two funded wallets."""
    chain.set(VAULT, "totalAssets", 1000 * WAD)
    chain.set(VAULT, "totalSupply", 950 * WAD)
    chain.set(VAULT, "totalManagedAssets", 1000 * WAD)
    chain.set(
        ROUTER,
        "getPortfolioState",
        ([STRATEGY_LEVERAGE, STRATEGY_LENDING], [600 * WAD, 400 * WAD], [6000, 4000]),
    )
    chain.set(STRATEGY_LEVERAGE, "getLeverageState", (100 * WAD, 50 * WAD, 50 * WAD, 2, 3))
    chain.set(STRATEGY_LEVERAGE, "paused", False)
    chain.set(STRATEGY_LEVERAGE, "maxDepth", 3)
    chain.set(STRATEGY_LEVERAGE, "borrowFactor", 6000)
    chain.set(STRATEGY_LEVERAGE, "deposited", 100 * WAD)
    chain.set(STRATEGY_LEVERAGE, "borrowedWETH", 50 * WAD)

    chain.set(VAULT, "balanceOf", 10 * WAD, WALLET_A)
    chain.set(VAULT, "convertToAssets", 11 * WAD, 10 * WAD)
    chain.set(ASSET, "balanceOf", 25 * WAD, WALLET_A)
    chain.set(ASSET, "allowance", 0, WALLET_A, VAULT)

    chain.set(VAULT, "balanceOf", 3 * WAD, WALLET_B)
    chain.set(VAULT, "convertToAssets", 4 * WAD, 3 * WAD)
    chain.set(ASSET, "balanceOf", 7 * WAD, WALLET_B)
    chain.set(ASSET, "allowance", 100 * WAD, WALLET_B, VAULT)
    return chain


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_thresholds() -> ThresholdsConfig:
    return ThresholdsConfig(ltv_warning=0.70, ltv_critical=0.80, volatility=0.10, drift_tolerance_bps=500)


@pytest.fixture()
def sample_contracts() -> ContractsConfig:
    return ContractsConfig(
        vault=VAULT,
        router=ROUTER,
        strategy_leverage=STRATEGY_LEVERAGE,
        asset_token=ASSET,
    )


@pytest.fixture()
def sample_app_config(
    sample_thresholds: ThresholdsConfig, sample_contracts: ContractsConfig
) -> AppConfig:
    return AppConfig(
        monitor=MonitorConfig(
            comprehensive_interval_minutes=60,
            yield_interval_minutes=5,
            auto_execute=False,
            thresholds=sample_thresholds,
        ),
        chain=ChainConfig(rpc_url="https://rpc.example.com", rpc_timeout=10),
        contracts=sample_contracts,
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
        ),
    )


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_prices() -> PriceSnapshot:
    return PriceSnapshot(
        asset_a_usd=15.0,
        asset_b_usd=3000.0,
        cross_rate=200.0,
        source="CoinGecko",
        change_24h_a=1.0,
        change_24h_b=2.0,
    )


@pytest.fixture()
def volatile_prices() -> PriceSnapshot:
    return PriceSnapshot(
        asset_a_usd=12.0,
        asset_b_usd=3600.0,
        cross_rate=300.0,
        source="CoinGecko",
        change_24h_a=-10.0,
        change_24h_b=8.0,
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    monitor:
      comprehensive_interval_minutes: 30
      yield_interval_minutes: 2
      auto_execute: true
      target_weights_bps:
        "{STRATEGY_LEVERAGE}": 6000
        "{STRATEGY_LENDING}": 4000
      thresholds:
        ltv_warning: 0.65
        ltv_critical: 0.75
    chain:
      rpc_url: "https://rpc.example.com"
      chain_id: 11155111
    contracts:
      vault: "{VAULT}"
      router: "{ROUTER}"
      strategy_leverage: "{STRATEGY_LEVERAGE}"
      asset_token: "{ASSET}"
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: 999
    server:
      port: 9090
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
