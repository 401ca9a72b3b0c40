"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from web3 import AsyncWeb3

logger = logging.getLogger(__name__)

BPS_TOTAL = 10_000

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ThresholdsConfig:
    ltv_warning: float = 0.70
    ltv_critical: float = 0.80
    volatility: float = 0.10
    drift_tolerance_bps: int = 500


@dataclass(frozen=True)
class MonitorConfig:
    comprehensive_interval_minutes: int = 60
    yield_interval_minutes: int = 5
    auto_execute: bool = False
    harvest_on_yield_cycle: bool = True
    deleverage_max_steps: int = 10
    target_weights_bps: dict[str, int] = field(default_factory=dict)
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)


@dataclass(frozen=True)
class ChainConfig:
    rpc_url: str = ""
    rpc_timeout: int = 30
    receipt_timeout: int = 120
    chain_id: int | None = None
    private_key: str = ""


@dataclass(frozen=True)
class ContractsConfig:
    vault: str = ""
    router: str = ""
    strategy_leverage: str = ""
    asset_token: str = ""


@dataclass(frozen=True)
class CoinGeckoConfig:
    url: str = "https://api.coingecko.com/api/v3/simple/price"
    asset_a_id: str = "chainlink"
    asset_b_id: str = "weth"


@dataclass(frozen=True)
class CoinCapConfig:
    url: str = "https://api.coincap.io/v2/assets"
    asset_a_id: str = "chainlink"
    asset_b_id: str = "ethereum"


@dataclass(frozen=True)
class PriceFeedConfig:
    timeout: int = 10
    coingecko: CoinGeckoConfig = field(default_factory=CoinGeckoConfig)
    coincap: CoinCapConfig = field(default_factory=CoinCapConfig)


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""
    timeout: int = 15


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass(frozen=True)
class AppConfig:
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    contracts: ContractsConfig = field(default_factory=ContractsConfig)
    price_feed: PriceFeedConfig = field(default_factory=PriceFeedConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {_interpolate_env(k): _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _build_thresholds(raw: dict[str, Any]) -> ThresholdsConfig:
    return ThresholdsConfig(
        ltv_warning=float(raw.get("ltv_warning", 0.70)),
        ltv_critical=float(raw.get("ltv_critical", 0.80)),
        volatility=float(raw.get("volatility", 0.10)),
        drift_tolerance_bps=int(raw.get("drift_tolerance_bps", 500)),
    )


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    weights = raw.get("target_weights_bps") or {}
    return MonitorConfig(
        comprehensive_interval_minutes=int(raw.get("comprehensive_interval_minutes", 60)),
        yield_interval_minutes=int(raw.get("yield_interval_minutes", 5)),
        auto_execute=_as_bool(raw.get("auto_execute", False)),
        harvest_on_yield_cycle=_as_bool(raw.get("harvest_on_yield_cycle", True)),
        deleverage_max_steps=int(raw.get("deleverage_max_steps", 10)),
        target_weights_bps={str(k): int(v) for k, v in weights.items()},
        thresholds=_build_thresholds(raw.get("thresholds", {})),
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    chain_id = raw.get("chain_id")
    return ChainConfig(
        rpc_url=raw.get("rpc_url", ""),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        receipt_timeout=int(raw.get("receipt_timeout", 120)),
        chain_id=int(chain_id) if chain_id not in (None, "") else None,
        private_key=raw.get("private_key", ""),
    )


def _build_contracts(raw: dict[str, Any]) -> ContractsConfig:
    return ContractsConfig(
        vault=raw.get("vault", ""),
        router=raw.get("router", ""),
        strategy_leverage=raw.get("strategy_leverage", ""),
        asset_token=raw.get("asset_token", ""),
    )


def _build_price_feed(raw: dict[str, Any]) -> PriceFeedConfig:
    cg = raw.get("coingecko", {})
    cc = raw.get("coincap", {})
    return PriceFeedConfig(
        timeout=int(raw.get("timeout", 10)),
        coingecko=CoinGeckoConfig(
            url=cg.get("url", CoinGeckoConfig.url),
            asset_a_id=cg.get("asset_a_id", CoinGeckoConfig.asset_a_id),
            asset_b_id=cg.get("asset_b_id", CoinGeckoConfig.asset_b_id),
        ),
        coincap=CoinCapConfig(
            url=cc.get("url", CoinCapConfig.url),
            asset_a_id=cc.get("asset_a_id", CoinCapConfig.asset_a_id),
            asset_b_id=cc.get("asset_b_id", CoinCapConfig.asset_b_id),
        ),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=_as_bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
            timeout=int(tg.get("timeout", 15)),
        ),
    )


def _build_server(raw: dict[str, Any]) -> ServerConfig:
    return ServerConfig(
        host=raw.get("host", "0.0.0.0"),
        port=int(raw.get("port", 8080)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        monitor=_build_monitor(raw.get("monitor", {})),
        chain=_build_chain(raw.get("chain", {})),
        contracts=_build_contracts(raw.get("contracts", {})),
        price_feed=_build_price_feed(raw.get("price_feed", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
        server=_build_server(raw.get("server", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.chain.rpc_url:
        raise ValueError("chain.rpc_url must be set")

    for name in ("vault", "router", "strategy_leverage", "asset_token"):
        if not getattr(cfg.contracts, name):
            raise ValueError(f"contracts.{name} has no address")

    t = cfg.monitor.thresholds
    if not 0 < t.ltv_warning < t.ltv_critical <= 1:
        raise ValueError(
            "thresholds must satisfy 0 < ltv_warning < ltv_critical <= 1 "
            f"(got {t.ltv_warning}, {t.ltv_critical})"
        )
    if t.volatility <= 0:
        raise ValueError("thresholds.volatility must be positive")
    if not 0 <= t.drift_tolerance_bps <= BPS_TOTAL:
        raise ValueError("thresholds.drift_tolerance_bps must be within [0, 10000]")

    weights = cfg.monitor.target_weights_bps
    for address in weights:
        if not AsyncWeb3.is_address(address):
            raise ValueError(
                f"monitor.target_weights_bps key {address!r} is not a strategy address"
            )
    if weights and sum(weights.values()) != BPS_TOTAL:
        raise ValueError(
            f"monitor.target_weights_bps must sum to {BPS_TOTAL} "
            f"(got {sum(weights.values())})"
        )

    if cfg.monitor.comprehensive_interval_minutes <= 0 or cfg.monitor.yield_interval_minutes <= 0:
        raise ValueError("monitor intervals must be positive")
    if cfg.monitor.deleverage_max_steps <= 0:
        raise ValueError("monitor.deleverage_max_steps must be positive")
