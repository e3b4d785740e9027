# src/replica_top/core/managers/config_manager.py
import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from replica_top.core.utils.path_utils import PathUtils
from replica_top.model import ReplicaSettings

logger = logging.getLogger(__name__)

REPLICA_SECTION = "replica"


class ConfigManager:
    """
    A singleton holding the replica_top configuration.
    Settings are read from settings.json and may be changed in memory for the
    duration of a run.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._config: Dict[str, Any] = {}
        self.reset()
        logger.debug("ConfigManager initialized.")

    def get_all(self) -> Dict[str, Any]:
        """Returns the entire current configuration dictionary."""
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Safely retrieves a nested value, e.g. 'replica.refresh_interval'.
        """
        value = self._config
        for key in key_path.split('.'):
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
        return value if value is not None else default

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a nested value in memory, e.g. ('replica.port', '8080').
        The new value is cast to the type of the value it replaces. Values in
        the `replica` section must also pass ReplicaSettings validation, or
        nothing is stored and False is returned.
        """
        keys = key_path.split('.')
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
            if not isinstance(d, dict):
                logger.error("Cannot set value: '%s' is not a dictionary.", key)
                return False

        original_value = d.get(keys[-1])
        if original_value is not None:
            try:
                if isinstance(original_value, bool) and isinstance(value, str):
                    value = value.strip().lower() in ("1", "true", "yes", "on")
                else:
                    value = type(original_value)(value)
            except (ValueError, TypeError):
                logger.warning(
                    "Could not cast new value for '%s' to type %s. Storing as string.",
                    key_path, type(original_value).__name__
                )

        if keys[0] == REPLICA_SECTION and not self._is_valid_replica_update(keys[1:], value):
            return False

        d[keys[-1]] = value
        logger.info("Configuration updated: %s = %s", key_path, value)
        return True

    def _is_valid_replica_update(self, keys: List[str], value: Any) -> bool:
        if len(keys) != 1:
            logger.error("Cannot set 'replica.%s': replica settings are not nested.", ".".join(keys))
            return False
        candidate = {**self.get_nested(REPLICA_SECTION, {}), keys[0]: value}
        try:
            ReplicaSettings.model_validate(candidate)
        except ValidationError as e:
            logger.error("Invalid value for 'replica.%s': %s", keys[0], e.errors()[0]["msg"])
            return False
        return True

    def get_replica_settings(self) -> ReplicaSettings:
        """
        Returns the `replica` section as ReplicaSettings. A section that does
        not validate (a hand-edited settings.json) falls back to the defaults.
        """
        try:
            return ReplicaSettings.model_validate(self.get_nested(REPLICA_SECTION, {}))
        except ValidationError as e:
            logger.error("Invalid replica settings, using defaults: %s", e)
            return ReplicaSettings()

    def reset(self):
        """Reloads the in-memory configuration from settings.json."""
        config_path = PathUtils.get_settings_file()
        try:
            if not config_path.exists():
                logger.warning("settings.json not found at %s. Using empty config.", config_path)
                self._config = {}
                return
            with open(config_path, "r", encoding="utf-8") as f:
                self._config = json.load(f)
            logger.info("Configuration has been (re)loaded from settings.json.")
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load settings.json: %s", e, exc_info=True)
            self._config = {}


config_manager = ConfigManager()
