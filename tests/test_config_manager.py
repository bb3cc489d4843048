"""Tests for ConfigManager."""

import threading

import yaml
import pytest
from pathlib import Path
from unittest.mock import patch

from src.core.comment_tree import OrphanPolicy
from src.core.config_manager import ConfigManager, DEFAULT_CONFIG
from src.core.exceptions import ConfigError
from src.core.types import RetryPolicy


class TestConfigManagerInit:
    """Test configuration loading and creation."""

    def test_creates_default_config_when_missing(self, tmp_dir):
        """When no settings.yaml exists, should create one with defaults."""
        config_path = tmp_dir / "config" / "settings.yaml"

        cm = ConfigManager(config_path)

        assert config_path.exists()
        with open(config_path, 'r') as f:
            saved = yaml.safe_load(f)
        assert saved["retry"]["max_retries"] == 10
        assert cm.get("api.base_url") == "http://localhost:8080"

    def test_loads_existing_config(self, tmp_dir):
        """Should load values from existing settings.yaml."""
        config_path = tmp_dir / "config" / "settings.yaml"
        config_path.parent.mkdir(parents=True)

        custom_config = {"api": {"base_url": "https://forum.example.com", "timeout": 10}}
        with open(config_path, 'w') as f:
            yaml.safe_dump(custom_config, f)

        cm = ConfigManager(config_path)

        assert cm.get("api.base_url") == "https://forum.example.com"
        assert cm.get("api.timeout") == 10

    def test_uses_defaults_on_invalid_yaml(self, tmp_dir):
        """Should fall back to defaults when YAML is invalid."""
        config_path = tmp_dir / "config" / "settings.yaml"
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{{invalid yaml: [")

        cm = ConfigManager(config_path)

        assert cm.get("retry.max_retries") == 10

    def test_singleton_returns_same_instance(self, config_file):
        a = ConfigManager(config_file)
        b = ConfigManager()
        assert a is b


class TestConfigManagerGetSet:
    """Test get/set with dot notation."""

    def _make_cm(self):
        ConfigManager.reset()
        cm = ConfigManager.__new__(ConfigManager)
        cm._initialized = True
        cm._config = ConfigManager._deep_copy(DEFAULT_CONFIG)
        cm._instance_lock = threading.RLock()
        cm.PROJECT_ROOT = Path(".")
        cm.CONFIG_PATH = Path("./config/settings.yaml")
        ConfigManager._instance = cm
        return cm

    def test_get_nested_key(self):
        cm = self._make_cm()
        assert cm.get("retry.rate_limit_default_wait_sec") == 60

    def test_get_missing_key_returns_default(self):
        cm = self._make_cm()
        assert cm.get("nonexistent.key") is None
        assert cm.get("nonexistent.key", "fallback") == "fallback"

    def test_set_updates_value(self):
        cm = self._make_cm()
        cm.set("api.base_url", "http://other")
        assert cm.get("api.base_url") == "http://other"

    def test_set_creates_nested_path(self):
        cm = self._make_cm()
        cm.set("new.nested.key", "value")
        assert cm.get("new.nested.key") == "value"

    def test_deep_copy_does_not_share_defaults(self):
        cm = self._make_cm()
        cm.set("retry.max_retries", 1)
        assert DEFAULT_CONFIG["retry"]["max_retries"] == 10


class TestConfigManagerValidation:
    """Test validation rules in update()."""

    @pytest.fixture
    def cm(self, config_file):
        return ConfigManager(config_file)

    def test_invalid_log_level_ignored(self, cm):
        cm.update({"app.log_level": "LOUD"})
        assert cm.get("app.log_level") == "INFO"

    def test_log_level_upper_cased(self, cm):
        cm.update({"app.log_level": "debug"})
        assert cm.get("app.log_level") == "DEBUG"

    def test_timeout_below_min_forced_to_1(self, cm):
        cm.update({"api.timeout": 0})
        assert cm.get("api.timeout") == 1

    def test_max_retries_clamped(self, cm):
        cm.update({"retry.max_retries": 500})
        assert cm.get("retry.max_retries") == 50
        cm.update({"retry.max_retries": -1})
        assert cm.get("retry.max_retries") == 0

    def test_max_retries_not_int_ignored(self, cm):
        cm.update({"retry.max_retries": "lots"})
        assert cm.get("retry.max_retries") == 10

    def test_max_delay_can_be_disabled(self, cm):
        cm.update({"retry.max_delay_sec": None})
        assert cm.get("retry.max_delay_sec") is None
        assert cm.get_retry_policy().max_delay is None

    def test_negative_max_delay_ignored(self, cm):
        cm.update({"retry.max_delay_sec": -5})
        assert cm.get("retry.max_delay_sec") == 30

    @pytest.mark.parametrize("key", ["retry.retry_non_idempotent", "security.mask_logs"])
    def test_bool_keys_reject_strings(self, cm, key):
        cm.update({key: "false"})
        assert cm.get(key) is True
        cm.update({key: False})
        assert cm.get(key) is False

    def test_invalid_orphan_policy_ignored(self, cm):
        cm.update({"comments.orphan_policy": "adopt"})
        assert cm.get("comments.orphan_policy") == "promote"

    def test_update_persists_to_disk(self, cm, config_file):
        cm.update({"comments.orphan_policy": "drop"})
        with open(config_file, 'r') as f:
            saved = yaml.safe_load(f)
        assert saved["comments"]["orphan_policy"] == "drop"


class TestTypedAccessors:
    def test_default_retry_policy(self, config_file):
        cm = ConfigManager(config_file)
        assert cm.get_retry_policy() == RetryPolicy()

    def test_custom_retry_policy(self, config_file):
        cm = ConfigManager(config_file)
        cm.set("retry.max_retries", 3)
        cm.set("retry.retry_non_idempotent", False)

        policy = cm.get_retry_policy()

        assert policy.max_retries == 3
        assert policy.retry_non_idempotent is False

    def test_broken_retry_settings_raise(self, config_file):
        cm = ConfigManager(config_file)
        cm.set("retry.base_delay_sec", "soon")
        with pytest.raises(ConfigError):
            cm.get_retry_policy()

    def test_string_retry_non_idempotent_raises(self, config_file):
        cm = ConfigManager(config_file)
        cm.set("retry.retry_non_idempotent", "false")
        with pytest.raises(ConfigError):
            cm.get_retry_policy()

    def test_orphan_policy(self, config_file):
        cm = ConfigManager(config_file)
        assert cm.get_orphan_policy() is OrphanPolicy.PROMOTE
        cm.set("comments.orphan_policy", "drop")
        assert cm.get_orphan_policy() is OrphanPolicy.DROP

    def test_bad_orphan_policy_raises(self, config_file):
        cm = ConfigManager(config_file)
        cm.set("comments.orphan_policy", "adopt")
        with pytest.raises(ConfigError):
            cm.get_orphan_policy()


class TestSave:
    def test_save_failure_raises_config_error(self, config_file):
        cm = ConfigManager(config_file)
        with patch("builtins.open", side_effect=OSError("disk full")):
            with pytest.raises(ConfigError):
                cm.save()
