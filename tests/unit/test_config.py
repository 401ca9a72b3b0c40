"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from vault_sentinel.config import (
    AppConfig,
    MonitorConfig,
    ThresholdsConfig,
    _as_bool,
    _interpolate_env,
    _validate,
    load_config,
)

from conftest import ROUTER, SAMPLE_YAML, STRATEGY_LENDING, STRATEGY_LEVERAGE, VAULT


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_dict_and_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        result = _interpolate_env({"key": "${TOK}", "items": ["${TOK}", "plain"]})
        assert result == {"key": "secret", "items": ["secret", "plain"]}

    def test_dict_keys_interpolated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ADDR", "0xabc")
        assert _interpolate_env({"${ADDR}": 6000}) == {"0xabc": 6000}

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestAsBool:
    @pytest.mark.parametrize("value", [True, "true", "YES", "1", "on"])
    def test_truthy(self, value: object) -> None:
        assert _as_bool(value) is True

    @pytest.mark.parametrize("value", [False, "false", "0", "", "off"])
    def test_falsy(self, value: object) -> None:
        assert _as_bool(value) is False


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.monitor.comprehensive_interval_minutes == 30
        assert cfg.monitor.yield_interval_minutes == 2
        assert cfg.monitor.auto_execute is True
        assert cfg.monitor.thresholds.ltv_warning == 0.65
        assert cfg.monitor.thresholds.ltv_critical == 0.75
        assert cfg.monitor.target_weights_bps == {STRATEGY_LEVERAGE: 6000, STRATEGY_LENDING: 4000}
        assert cfg.chain.chain_id == 11155111
        assert cfg.contracts.vault == VAULT
        assert cfg.contracts.router == ROUTER
        assert cfg.notifications.telegram.chat_id == "999"
        assert cfg.server.port == 9090

    def test_defaults(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert cfg.monitor.thresholds.volatility == 0.10
        assert cfg.monitor.thresholds.drift_tolerance_bps == 500
        assert cfg.monitor.deleverage_max_steps == 10
        assert cfg.chain.rpc_timeout == 30
        assert cfg.price_feed.coingecko.asset_a_id == "chainlink"
        assert cfg.price_feed.coincap.asset_b_id == "ethereum"
        assert cfg.server.host == "0.0.0.0"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_env_interpolation_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_RPC_URL", "https://from-env.example.com")
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            SAMPLE_YAML.replace('rpc_url: "https://rpc.example.com"', 'rpc_url: "${TEST_RPC_URL}"')
        )
        assert load_config(cfg_file).chain.rpc_url == "https://from-env.example.com"

    def test_env_interpolation_in_weight_keys(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LEV_ADDR", STRATEGY_LEVERAGE)
        monkeypatch.setenv("LEND_ADDR", STRATEGY_LENDING)
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            SAMPLE_YAML.replace(f'"{STRATEGY_LEVERAGE}": 6000', '"${LEV_ADDR}": 6000')
            .replace(f'"{STRATEGY_LENDING}": 4000', '"${LEND_ADDR}": 4000')
        )
        assert load_config(cfg_file).monitor.target_weights_bps == {
            STRATEGY_LEVERAGE: 6000,
            STRATEGY_LENDING: 4000,
        }

    def test_unset_weight_key_rejected(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("UNSET_STRATEGY_ADDR", raising=False)
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            SAMPLE_YAML.replace(f'"{STRATEGY_LEVERAGE}": 6000', '"${UNSET_STRATEGY_ADDR}": 6000')
        )
        with pytest.raises(ValueError, match="not a strategy address"):
            load_config(cfg_file)

    def test_missing_rpc_url_rejected(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(SAMPLE_YAML.replace('rpc_url: "https://rpc.example.com"', 'rpc_url: ""'))
        with pytest.raises(ValueError, match="rpc_url"):
            load_config(cfg_file)

    def test_missing_contract_rejected(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(SAMPLE_YAML.replace(f'router: "{ROUTER}"', 'router: ""'))
        with pytest.raises(ValueError, match="contracts.router"):
            load_config(cfg_file)


class TestValidate:
    def _with_monitor(self, base: AppConfig, **changes: object) -> AppConfig:
        return dataclasses.replace(base, monitor=dataclasses.replace(base.monitor, **changes))

    def test_sample_config_is_valid(self, sample_app_config: AppConfig) -> None:
        _validate(sample_app_config)

    @pytest.mark.parametrize(
        "warning, critical",
        [(0.8, 0.7), (0.0, 0.8), (0.7, 0.7), (0.7, 1.2)],
    )
    def test_threshold_ordering(
        self, sample_app_config: AppConfig, warning: float, critical: float
    ) -> None:
        cfg = self._with_monitor(
            sample_app_config,
            thresholds=ThresholdsConfig(ltv_warning=warning, ltv_critical=critical),
        )
        with pytest.raises(ValueError, match="thresholds"):
            _validate(cfg)

    def test_volatility_must_be_positive(self, sample_app_config: AppConfig) -> None:
        cfg = self._with_monitor(sample_app_config, thresholds=ThresholdsConfig(volatility=0.0))
        with pytest.raises(ValueError, match="volatility"):
            _validate(cfg)

    def test_drift_tolerance_range(self, sample_app_config: AppConfig) -> None:
        cfg = self._with_monitor(
            sample_app_config, thresholds=ThresholdsConfig(drift_tolerance_bps=10_001)
        )
        with pytest.raises(ValueError, match="drift_tolerance_bps"):
            _validate(cfg)

    def test_target_weights_must_sum_to_10000(self, sample_app_config: AppConfig) -> None:
        cfg = self._with_monitor(
            sample_app_config,
            target_weights_bps={STRATEGY_LEVERAGE: 8000, STRATEGY_LENDING: 1999},
        )
        with pytest.raises(ValueError, match="must sum to 10000"):
            _validate(cfg)

    def test_intervals_must_be_positive(self, sample_app_config: AppConfig) -> None:
        cfg = self._with_monitor(sample_app_config, yield_interval_minutes=0)
        with pytest.raises(ValueError, match="intervals"):
            _validate(cfg)

    def test_deleverage_steps_must_be_positive(self, sample_app_config: AppConfig) -> None:
        cfg = self._with_monitor(sample_app_config, deleverage_max_steps=0)
        with pytest.raises(ValueError, match="deleverage_max_steps"):
            _validate(cfg)

    def test_monitor_defaults(self) -> None:
        cfg = MonitorConfig()
        assert cfg.comprehensive_interval_minutes == 60
        assert cfg.yield_interval_minutes == 5
        assert cfg.auto_execute is False
