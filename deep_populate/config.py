"""Configuration management for deep population."""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from . import constants
from .error_handling import ConfigurationError, ErrorContext
from .interfaces import DocumentStore
from .logging_config import setup_logging
from .memory_store import InMemoryStore
from .models import PopulateOptions
from .populate import DeepPopulator
from .schema import SchemaRegistry


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: str = constants.DEFAULT_LOG_FORMAT
    level: str = constants.DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None


class StoreConfig(BaseModel):
    """Reference store configuration."""

    id_field: str = constants.DEFAULT_ID_FIELD
    latency: float = 0.0


class PopulateConfig(BaseModel):
    """Complete configuration."""

    defaults: Dict[str, PopulateOptions] = Field(default_factory=dict)
    schemas: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    lean: bool = False
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    def defaults_for(self, type_name: str) -> PopulateOptions:
        """Type-level options, with the global lean flag applied when the type sets none."""
        options = self.defaults.get(type_name, PopulateOptions())
        if self.lean and options.lean is None:
            options = options.model_copy(update={"lean": True})
        return options

    def configure_logging(self) -> None:
        """Install the configured handlers and level on the package logger."""
        setup_logging(**self.logging.model_dump())

    def build_registry(self) -> SchemaRegistry:
        return SchemaRegistry.from_definitions(self.schemas)

    def build_store(self) -> InMemoryStore:
        return InMemoryStore(id_field=self.store.id_field, latency=self.store.latency)

    def build_populator(
        self,
        root_type: str,
        store: Optional[DocumentStore] = None,
        registry: Optional[SchemaRegistry] = None
    ) -> DeepPopulator:
        """Populator for ``root_type`` using the configured schemas and defaults."""
        return DeepPopulator(
            root_type,
            registry if registry is not None else self.build_registry(),
            store=store,
            default_options=self.defaults_for(root_type),
        )


class ConfigManager:
    """Loads configuration from defaults, a JSON file and the environment."""

    DEFAULT_CONFIG: Dict[str, Any] = {
        "defaults": {},
        "schemas": {},
        "lean": False,
        "logging": {
            "format": constants.DEFAULT_LOG_FORMAT,
            "level": constants.DEFAULT_LOG_LEVEL,
        },
        "store": {
            "id_field": constants.DEFAULT_ID_FIELD,
            "latency": 0.0,
        },
    }

    def __init__(self, config_path: Optional[str] = None):
        """Initialize config manager.

        Args:
            config_path: Path to a JSON config file. If None, uses defaults + env vars
        """
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[PopulateConfig] = None

    def load(self) -> PopulateConfig:
        """Load configuration from file and environment.

        The logging settings are applied to the ``deep_populate`` logger.

        Raises:
            ConfigurationError: If the file is unreadable or invalid
        """
        if self._config:
            return self._config

        config_dict = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigurationError(
                    f"Config file not found: {self.config_path}",
                    config_key="config_path"
                )
            with ErrorContext("load_config", convert_to=ConfigurationError, path=str(self.config_path)):
                with open(self.config_path, "r") as f:
                    file_config = json.load(f)
            config_dict = self._deep_merge(config_dict, file_config)

        config_dict = self._apply_env_overrides(config_dict)

        with ErrorContext("validate_config", convert_to=ConfigurationError):
            self._config = PopulateConfig(**config_dict)
        self._config.configure_logging()
        return self._config

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides."""
        log_level = os.getenv(constants.ENV_LOG_LEVEL)
        if log_level:
            config.setdefault("logging", {})["level"] = log_level.upper()

        log_format = os.getenv(constants.ENV_LOG_FORMAT)
        if log_format:
            config.setdefault("logging", {})["format"] = log_format.lower()

        if os.getenv(constants.ENV_LEAN, "").lower() in constants.ENV_TRUE_VALUES:
            config["lean"] = True

        return config

    def save_template(self, path: str):
        """Save a configuration template file."""
        template = {
            "defaults": {
                "Post": {
                    "rewrite": {"author": "user"},
                    "whitelist": ["author", "comments.user"],
                    "populate": {
                        "comments": {"select": "user", "options": {"limit": 10}},
                    },
                },
            },
            "schemas": {
                "Post": {
                    "user": {"ref": "User"},
                    "comments": [{"ref": "Comment"}],
                },
                "Comment": {"user": {"ref": "User"}},
                "User": {"manager": {"ref": "User"}},
            },
            "lean": False,
            "logging": {
                "format": constants.DEFAULT_LOG_FORMAT,
                "level": constants.DEFAULT_LOG_LEVEL,
            },
        }

        with open(path, "w") as f:
            json.dump(template, f, indent=2)
