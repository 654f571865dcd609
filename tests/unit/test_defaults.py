"""Unit tests for built-in defaults loading and merging."""

from pathlib import Path

import pytest

from rabbit_topology.config.defaults import DEFAULTS_DIR, load_defaults, merge_configs
from rabbit_topology.errors import ConfigNotFoundError, ConfigParseError


class TestLoadDefaults:
    def test_loads_broker_defaults(self):
        defaults = load_defaults("broker")
        assert defaults["url"].startswith("${RABBITMQ_URL:-amqp://")
        assert defaults["client_name"] == "rabbit-topology"
        assert defaults["retry"]["max_attempts"] == 3

    def test_defaults_ship_with_package(self):
        assert (DEFAULTS_DIR / "broker.yaml").is_file()

    def test_missing_defaults_raises(self):
        with pytest.raises(ConfigNotFoundError, match="nonexistent") as info:
            load_defaults("nonexistent")
        assert isinstance(info.value, FileNotFoundError)

    def test_non_mapping_defaults_rejected(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        (tmp_path / "broker.yaml").write_text("- just\n- a list\n")
        monkeypatch.setattr("rabbit_topology.config.defaults.DEFAULTS_DIR", tmp_path)
        with pytest.raises(ConfigParseError, match="mapping"):
            load_defaults("broker")


class TestMergeConfigs:
    def test_shallow_override(self):
        result = merge_configs({"a": 1, "b": 2}, {"b": 99})
        assert result == {"a": 1, "b": 99}

    def test_deep_merge(self):
        base = {"retry": {"max_attempts": 3, "multiplier": 2.0}}
        result = merge_configs(base, {"retry": {"max_attempts": 10}})
        assert result["retry"] == {"max_attempts": 10, "multiplier": 2.0}

    def test_non_mutating(self):
        base = {"a": {"x": 1}}
        merge_configs(base, {"a": {"y": 2}})
        assert "y" not in base["a"]

    def test_non_dict_replaces_dict(self):
        result = merge_configs({"retry": {"max_attempts": 3}}, {"retry": None})
        assert result["retry"] is None
