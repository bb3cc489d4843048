"""Thread-safe singleton configuration manager for the forum client."""

import logging
import threading
from pathlib import Path
from typing import Any, Optional

import yaml

from src.core.comment_tree import OrphanPolicy
from src.core.exceptions import ConfigError
from src.core.types import RetryPolicy

logger = logging.getLogger(__name__)


# Default configuration template
DEFAULT_CONFIG = {
    "app": {
        "version": "1.0.0",
        "log_level": "INFO",
    },
    "api": {
        "base_url": "http://localhost:8080",
        "timeout": 30,
    },
    "retry": {
        "max_retries": 10,
        "base_delay_sec": 1,
        "multiplier": 2,
        "max_delay_sec": 30,
        "rate_limit_default_wait_sec": 60,
        "retry_non_idempotent": True,
    },
    "comments": {
        "orphan_policy": "promote",
    },
    "security": {
        "mask_logs": True,
    },
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigManager:
    """Thread-safe singleton configuration manager.

    Manages application configuration with:
    - Singleton pattern ensuring only one instance exists
    - Thread-safe operations using RLock
    - Automatic settings.yaml creation if missing
    - Dot-notation key access (e.g., "api.base_url")
    - Validation rules for critical settings
    """

    _instance = None
    _lock = threading.RLock()

    def __new__(cls, config_path: Optional[Path] = None):
        """Ensure singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: settings.yaml location. Only used on first
                         initialization; defaults to PROJECT_ROOT/config.
        """
        # Prevent re-initialization
        if hasattr(self, '_initialized'):
            return

        with self._lock:
            if hasattr(self, '_initialized'):
                return

            self.PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
            self.CONFIG_PATH = config_path or self.PROJECT_ROOT / "config" / "settings.yaml"

            self._config = {}
            self._instance_lock = threading.RLock()

            self._load_or_create_config()

            self._initialized = True

    def _load_or_create_config(self):
        """Load settings.yaml or create it from defaults."""
        if self.CONFIG_PATH.exists():
            try:
                with open(self.CONFIG_PATH, 'r', encoding='utf-8') as f:
                    self._config = yaml.safe_load(f) or {}
                logger.info(f"Loaded configuration from {self.CONFIG_PATH}")
            except (yaml.YAMLError, OSError) as e:
                logger.error(f"Failed to load {self.CONFIG_PATH}: {e}")
                logger.warning("Using DEFAULT_CONFIG")
                self._config = self._deep_copy(DEFAULT_CONFIG)
        else:
            logger.info(f"Config file not found at {self.CONFIG_PATH}")
            self._config = self._deep_copy(DEFAULT_CONFIG)
            self.save()
            logger.info(f"Created default configuration at {self.CONFIG_PATH}")

    def get(self, key: str, default=None) -> Any:
        """Get configuration value using dot-notation key.

        Example:
            >>> config.get("retry.max_retries")
            10
        """
        with self._instance_lock:
            value = self._config
            for part in key.split('.'):
                if isinstance(value, dict) and part in value:
                    value = value[part]
                else:
                    return default
            return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot-notation key.

        Note: This does NOT save to disk. Use save() to persist changes.
        """
        with self._instance_lock:
            parts = key.split('.')
            target = self._config

            for part in parts[:-1]:
                if not isinstance(target.get(part), dict):
                    target[part] = {}
                target = target[part]

            target[parts[-1]] = value

    def update(self, changes: dict) -> None:
        """Batch update configuration from flat dict of dot-notation keys.

        Applies validation rules and saves to disk once after all updates.

        Validation Rules:
            - app.log_level: one of DEBUG/INFO/WARNING/ERROR/CRITICAL
            - api.timeout: minimum 1
            - retry.max_retries: 0-50
            - retry.max_delay_sec: positive number or null (uncapped)
            - retry.retry_non_idempotent, security.mask_logs: true or false
            - comments.orphan_policy: "promote" or "drop"
        """
        with self._instance_lock:
            validated_changes = {}

            for key, value in changes.items():
                validated_value = self._validate_key_value(key, value)
                if validated_value is not None:
                    validated_changes[key] = validated_value
                elif key == "retry.max_delay_sec" and value is None:
                    validated_changes[key] = None

            for key, value in validated_changes.items():
                self.set(key, value)

            self.save()

    def _validate_key_value(self, key: str, value: Any) -> Any:
        """Apply validation rules to key-value pair.

        Returns:
            Validated value or None if invalid (will be ignored)
        """
        if key == "app.log_level":
            level = str(value).upper()
            if level not in _LOG_LEVELS:
                logger.warning(f"Invalid log_level '{value}'. Ignoring.")
                return None
            return level

        if key == "api.timeout":
            try:
                timeout = float(value)
            except (TypeError, ValueError):
                logger.warning(f"Invalid api.timeout '{value}'. Must be a number. Ignoring.")
                return None
            if timeout < 1:
                logger.warning(f"api.timeout {timeout} < 1. Forcing to 1.")
                return 1
            return timeout

        if key == "retry.max_retries":
            try:
                retries = int(value)
            except (TypeError, ValueError):
                logger.warning(f"Invalid max_retries '{value}'. Must be int. Ignoring.")
                return None
            if retries < 0:
                logger.warning(f"max_retries {retries} < 0. Forcing to 0.")
                return 0
            if retries > 50:
                logger.warning(f"max_retries {retries} > 50. Forcing to 50.")
                return 50
            return retries

        if key == "retry.max_delay_sec":
            if value is None:
                return None
            try:
                max_delay = float(value)
            except (TypeError, ValueError):
                logger.warning(f"Invalid max_delay_sec '{value}'. Ignoring.")
                return None
            if max_delay <= 0:
                logger.warning(f"max_delay_sec {max_delay} <= 0. Ignoring.")
                return None
            return max_delay

        if key in ("retry.retry_non_idempotent", "security.mask_logs"):
            if not isinstance(value, bool):
                logger.warning(f"Invalid {key} '{value}'. Must be true or false. Ignoring.")
                return None
            return value

        if key == "comments.orphan_policy":
            if value not in [p.value for p in OrphanPolicy]:
                logger.warning(f"Invalid orphan_policy '{value}'. Must be 'promote' or 'drop'. Ignoring.")
                return None
            return value

        return value

    def save(self) -> None:
        """Write current configuration to settings.yaml."""
        with self._instance_lock:
            try:
                self.CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
                with open(self.CONFIG_PATH, 'w', encoding='utf-8') as f:
                    yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
                logger.debug(f"Saved configuration to {self.CONFIG_PATH}")
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Failed to save configuration: {e}")
                raise ConfigError(f"Failed to save configuration: {e}")

    def get_retry_policy(self) -> RetryPolicy:
        """Build the executor's RetryPolicy from the retry.* keys."""
        with self._instance_lock:
            defaults = RetryPolicy()
            max_delay = self.get("retry.max_delay_sec", defaults.max_delay)
            retry_non_idempotent = self.get("retry.retry_non_idempotent", defaults.retry_non_idempotent)
            if not isinstance(retry_non_idempotent, bool):
                raise ConfigError(f"Invalid retry.retry_non_idempotent: {retry_non_idempotent!r}")
            try:
                return RetryPolicy(
                    max_retries=int(self.get("retry.max_retries", defaults.max_retries)),
                    base_delay=float(self.get("retry.base_delay_sec", defaults.base_delay)),
                    multiplier=float(self.get("retry.multiplier", defaults.multiplier)),
                    max_delay=float(max_delay) if max_delay is not None else None,
                    rate_limit_default_wait=float(
                        self.get("retry.rate_limit_default_wait_sec", defaults.rate_limit_default_wait)
                    ),
                    retry_non_idempotent=retry_non_idempotent,
                )
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid retry settings: {e}")

    def get_orphan_policy(self) -> OrphanPolicy:
        value = self.get("comments.orphan_policy", OrphanPolicy.PROMOTE.value)
        try:
            return OrphanPolicy(value)
        except ValueError:
            raise ConfigError(f"Invalid comments.orphan_policy: {value!r}")

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance (for testing)."""
        with cls._lock:
            cls._instance = None

    @staticmethod
    def _deep_copy(obj):
        """Create a deep copy of nested dict/list structures."""
        if isinstance(obj, dict):
            return {k: ConfigManager._deep_copy(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [ConfigManager._deep_copy(item) for item in obj]
        else:
            return obj
