"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from streamscout.domain.entities.run import ProxyConfig, RunOverrides
from streamscout.infrastructure.config import load_config

pytestmark = pytest.mark.integration


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a sectioned YAML config and return its path."""
    config = {
        "app_name": "streamscout-test",
        "environment": "test",
        "target": "browser",
        "providers": {
            "provider_dir": str(tmp_path / "providers"),
            "external_sources": ["partner"],
        },
        "http": {"timeout_seconds": 12.0, "user_agent": "TestAgent/1.0"},
        "proxy": {"base_url": "https://proxy.test/"},
        "runner": {"source_order": ["b", "a"], "timeout_ms": 20000},
        "validation": {"skip_ids": "trusted, other"},
        "logging": {"level": "DEBUG", "format": "console"},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    """Load with no YAML, no ENV, no CLI: pure defaults."""

    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "streamscout"
        assert config.environment == "dev"
        assert config.target == "native"
        assert config.http_timeout_seconds == 15.0
        assert config.log_format == "console"
        assert config.proxy.to_proxy_config() == ProxyConfig()
        assert config.runner.to_overrides() == RunOverrides()
        assert config.validation.enabled is True

    def test_prod_derives_json_logs(self) -> None:
        config = load_config(cli_overrides={"environment": "prod"})
        assert config.log_format == "json"


class TestYamlOverrides:
    def test_yaml_overrides_defaults(self, yaml_config: Path, tmp_path: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "streamscout-test"
        assert config.target == "browser"
        assert config.provider_dir == tmp_path / "providers"
        assert config.external_sources == ["partner"]
        assert config.http_user_agent == "TestAgent/1.0"
        assert config.proxy.base_url == "https://proxy.test/"
        assert config.runner.to_overrides() == RunOverrides(
            source_order=("b", "a"), timeout_ms=20000
        )
        assert config.validation.skip_ids == ["trusted", "other"]
        assert config.log_level == "DEBUG"

    def test_partial_yaml_keeps_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.dump({"http": {"timeout_seconds": 99.0}}), encoding="utf-8")
        config = load_config(config_path=path)
        assert config.http_timeout_seconds == 99.0
        assert config.http_follow_redirects is True

    def test_missing_yaml_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_non_mapping_yaml_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)


class TestEnvOverrides:
    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STREAMSCOUT_TARGET", "native")
        monkeypatch.setenv("STREAMSCOUT_RUNNER_SOURCE_ORDER", "x, y")
        monkeypatch.setenv("STREAMSCOUT_PROXY_BASE_URL", "https://env-proxy.test/")
        monkeypatch.setenv("STREAMSCOUT_EXTERNAL_SOURCES", "all")

        config = load_config(config_path=yaml_config)
        assert config.target == "native"
        assert config.runner.source_order == ["x", "y"]
        assert config.runner.timeout_ms == 20000
        assert config.proxy.base_url == "https://env-proxy.test/"
        assert config.external_sources == "all"

    def test_dotenv_file_feeds_env_layer(self, tmp_path: Path) -> None:
        dotenv = tmp_path / ".env"
        dotenv.write_text("STREAMSCOUT_LOG_LEVEL=WARNING\n", encoding="utf-8")
        try:
            config = load_config(dotenv_path=dotenv)
        finally:
            os.environ.pop("STREAMSCOUT_LOG_LEVEL", None)
        assert config.log_level == "WARNING"

    def test_missing_dotenv_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / ".env")


class TestCliOverrides:
    def test_cli_beats_env_and_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STREAMSCOUT_LOG_LEVEL", "WARNING")
        config = load_config(
            config_path=yaml_config,
            cli_overrides={"log_level": "ERROR", "runner_timeout_ms": 500},
        )
        assert config.log_level == "ERROR"
        assert config.runner.timeout_ms == 500

    def test_sectioned_cli_overrides(self, yaml_config: Path) -> None:
        config = load_config(
            config_path=yaml_config,
            cli_overrides={"validation": {"enabled": False}},
        )
        assert config.validation.enabled is False
        assert config.validation.skip_ids == ["trusted", "other"]


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"target": "toaster"},
            {"runner_timeout_ms": -1},
            {"runner_provider_timeout_seconds": 0},
            {"http_timeout_seconds": 0},
            {"validation_timeout_seconds": -5},
        ],
    )
    def test_invalid_values_rejected(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            load_config(cli_overrides=overrides)

    def test_sectioned_dump_roundtrips(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        dumped = config.to_sectioned_dict()
        assert dumped["runner"]["source_order"] == ["b", "a"]
        assert load_config(cli_overrides=dumped) == config
