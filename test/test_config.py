"""Configuration loading and validation testing."""

from decimal import Decimal

import pytest
import yaml

from oracle_network.core.settings import NetworkSettings
from oracle_network.utils.config_utils import (
    load_config,
    load_network_settings,
    merge_configs,
    load_transactions,
    resolve_placeholder,
)
from oracle_network.validators import ConfigValidator

VALID_CONFIG = {
    "Network": {"min_stake_amount": 100, "min_quorum": 3, "round_duration": 60000},
    "Runner": {"verbosity": "DEBUG"},
    "database": {"url": "sqlite+aiosqlite:///oracle.db"},
    "alerts": {
        "notifications": [
            {"type": "slack", "config": {"webhook_url": "T000/B000/XXXX"}},
            {"type": "telegram", "config": {"bot_token": "123", "chat_id": "456"}},
        ]
    },
}


def write_yaml(path, data):
    """Dump data to a YAML file"""
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestConfigUtils:
    """Tests loading the YAML configuration"""

    def test_include_and_placeholders(self, tmp_path):
        """the main file wins over the included one and placeholders resolve"""
        dynamic = write_yaml(
            tmp_path / "dynamic.yml",
            {
                "db_url": "sqlite+aiosqlite:///dynamic.db",
                "Network": {"min_quorum": 5, "round_duration": 1000},
            },
        )
        main = write_yaml(
            tmp_path / "config.yml",
            {
                "include": str(dynamic),
                "Network": {"min_quorum": 3},
                "database": {"url": "<%= @db_url %>"},
            },
        )

        config = load_config(str(main))

        assert "include" not in config
        assert config["Network"] == {"min_quorum": 3, "round_duration": 1000}
        assert config["database"]["url"] == "sqlite+aiosqlite:///dynamic.db"

    def test_merge_configs(self):
        """nested dictionaries merge, scalars are overridden"""
        merged = merge_configs({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"b": 3}, "d": 2})
        assert merged == {"a": {"b": 3, "c": 2}, "d": 2}

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("<%= @name %>", "resolved"),
            ("<%=@name%>", "resolved"),
            ("<%= @missing %>", "<%= @missing %>"),
            ("plain", "plain"),
            ("url-<%= @name %>-x", "url-resolved-x"),
        ],
    )
    def test_resolve_placeholder(self, value, expected):
        """unknown placeholders are left as they are"""
        assert resolve_placeholder(value, {"name": "resolved"}) == expected

    def test_whole_placeholder_keeps_type(self):
        """a lone placeholder takes the referenced value unchanged"""
        assert resolve_placeholder("<%= @quorum %>", {"quorum": 5}) == 5

    def test_load_transactions(self, tmp_path):
        """a script is a list of operations, bare or under `transactions`"""
        ops = [{"op": "getMedian", "asset": "ETH/USD"}]
        assert load_transactions(write_yaml(tmp_path / "a.yml", ops)) == ops
        wrapped = write_yaml(tmp_path / "b.yml", {"transactions": ops})
        assert load_transactions(wrapped) == ops

    @pytest.mark.parametrize("data", [[{"asset": "ETH/USD"}], "getMedian", [1]])
    def test_invalid_transactions(self, tmp_path, data):
        """every entry needs an op"""
        with pytest.raises(ValueError):
            load_transactions(write_yaml(tmp_path / "bad.yml", data))

    def test_load_network_settings(self):
        """the Network section maps onto the settings, unknown keys ignored"""
        settings = load_network_settings(
            {"Network": {"min_quorum": 4, "max_commission": 0.2, "unknown": 1}}
        )
        assert settings.min_quorum == 4
        assert settings.max_commission == Decimal("0.2")
        assert load_network_settings({}) == NetworkSettings()

    @pytest.mark.parametrize(
        "values",
        [
            {"max_commission": 1.5},
            {"min_quorum": 0},
            {"min_stake_amount": 0},
            {"round_duration": -1},
            {"min_quorum": 4, "close_on_reports": 3},
            {"round_retention": 0},
            {"event_retention": -1},
        ],
    )
    def test_invalid_settings(self, values):
        """out of range parameters are refused"""
        with pytest.raises(ValueError):
            NetworkSettings.from_dict(values)


class TestConfigValidator:
    """Tests the configuration checks"""

    def test_valid_config(self):
        """a complete configuration passes"""
        assert ConfigValidator(VALID_CONFIG).run_config_validation()

    def test_missing_network_keys(self):
        """required Network keys must be present"""
        config = {**VALID_CONFIG, "Network": {"min_quorum": 3}}
        validator = ConfigValidator(config)
        assert not validator.validate_network_keys()
        assert not validator.run_config_validation()

    def test_invalid_network_values(self):
        """Network values are range checked"""
        config = {**VALID_CONFIG, "Network": {**VALID_CONFIG["Network"], "min_quorum": 0}}
        assert not ConfigValidator(config).validate_network_values()

    @pytest.mark.parametrize(
        "database,expected",
        [
            ({}, True),
            ({"url": "sqlite+aiosqlite:///oracle.db"}, True),
            ({"url": "postgresql+asyncpg://user@host/db"}, True),
            ({"url": "sqlite:///oracle.db"}, False),
        ],
    )
    def test_database(self, database, expected):
        """the database url must use an async driver"""
        config = {**VALID_CONFIG, "database": database}
        assert ConfigValidator(config).validate_database() is expected

    @pytest.mark.parametrize(
        "notification",
        [
            {"type": "email", "config": {}},
            {"type": "slack", "config": {}},
            {"type": "telegram", "config": {"bot_token": "123"}},
        ],
    )
    def test_invalid_alerts(self, notification):
        """notification entries need a supported type and its keys"""
        config = {**VALID_CONFIG, "alerts": {"notifications": [notification]}}
        assert not ConfigValidator(config).validate_alerts()
