"""
Configuration Management for the console state core

Settings are resolved with a 4-tier precedence hierarchy:
environment → project → user → system defaults.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class ValidationLevel(Enum):
    """Configuration validation strictness levels"""
    STRICT = "strict"      # Fail fast on validation errors
    LENIENT = "lenient"    # Log warnings, use defaults


class StoreConfig(BaseModel):
    """State tree and dispatcher settings"""
    model_config = ConfigDict(extra='forbid')

    log_dispatches: bool = Field(default=False, description="Log every dispatched action at DEBUG level")
    max_notifications: int = Field(default=50, ge=1, le=1000, description="Notifications kept by the shell segment")


class ApiConfig(BaseModel):
    """Request collaborator settings"""
    model_config = ConfigDict(extra='forbid')

    base_url: str = Field(default="http://localhost:3009", description="Base URL for console API requests")
    timeout: float = Field(default=30.0, ge=0.1, le=600.0, description="Per-request timeout (seconds)")
    fallback_error_message: str = Field(
        default="Something went wrong, please try again",
        min_length=1,
        description="Message shown when an error cannot be interpreted",
    )


class LoggingConfig(BaseModel):
    """Logging settings"""
    model_config = ConfigDict(extra='forbid')

    level: str = Field(default="INFO", description="Root log level")
    console_level: str = Field(default="WARNING", description="Terminal handler log level")
    log_file: Optional[str] = Field(default=None, description="Rotating log file path, disabled when unset")


class ConsoleConfig(BaseModel):
    """Complete console configuration"""
    model_config = ConfigDict(extra='forbid')

    store: StoreConfig = Field(default_factory=StoreConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Metadata
    schema_version: int = Field(default=1, description="Configuration schema version")


# Environment variable → (section, key)
ENV_MAP: Dict[str, tuple] = {
    'CONSOLE_LOG_DISPATCHES': ('store', 'log_dispatches'),
    'CONSOLE_MAX_NOTIFICATIONS': ('store', 'max_notifications'),
    'CONSOLE_API_BASE_URL': ('api', 'base_url'),
    'CONSOLE_API_TIMEOUT': ('api', 'timeout'),
    'CONSOLE_FALLBACK_ERROR_MESSAGE': ('api', 'fallback_error_message'),
    'CONSOLE_LOG_LEVEL': ('logging', 'level'),
    'CONSOLE_CONSOLE_LOG_LEVEL': ('logging', 'console_level'),
    'CONSOLE_LOG_FILE': ('logging', 'log_file'),
}


class ConfigManager:
    """Configuration manager with 4-tier precedence hierarchy"""

    def __init__(self, config_dir: Optional[Path] = None, env_file: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir is not None else Path.cwd() / "settings"
        self.env_file = env_file
        self._defaults: Optional[Dict[str, Any]] = None
        self._user_config: Optional[Dict[str, Any]] = None
        self._project_config: Optional[Dict[str, Any]] = None

        if self.env_file is not None:
            load_dotenv(dotenv_path=self.env_file)

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load YAML configuration file"""
        if not file_path.exists():
            return {}

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Failed to load {file_path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring {file_path}: top level must be a mapping")
            return {}
        return data

    def _save_yaml_file(self, file_path: Path, data: Dict[str, Any]) -> bool:
        """Save configuration to YAML file"""
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
            return True
        except OSError as e:
            logger.error(f"Failed to save {file_path}: {e}")
            return False

    def _load_defaults(self) -> Dict[str, Any]:
        if self._defaults is None:
            self._defaults = self._load_yaml_file(self.config_dir / "defaults.yaml")
        return self._defaults

    def _load_user_config(self) -> Dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml_file(self.config_dir / "user.yaml")
        return self._user_config

    def _load_project_config(self) -> Dict[str, Any]:
        if self._project_config is None:
            self._project_config = self._load_yaml_file(self.config_dir / "project.yaml")
        return self._project_config

    def _merge_configs(self) -> Dict[str, Any]:
        """Merge configurations with precedence: env → project → user → system"""
        merged = ConsoleConfig().model_dump()

        self._deep_merge(merged, self._load_defaults())
        self._deep_merge(merged, self._load_user_config())
        self._deep_merge(merged, self._load_project_config())
        self._deep_merge(merged, self._get_env_overrides())

        return merged

    def _deep_merge(self, base: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Deep merge configuration dictionaries"""
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _get_env_overrides(self) -> Dict[str, Any]:
        """Extract configuration overrides from environment variables"""
        overrides: Dict[str, Any] = {}
        for env_key, (section, config_key) in ENV_MAP.items():
            value = os.getenv(env_key)
            if value is None:
                continue
            # pydantic coerces "true"/"30"/"1.5" for the typed fields
            overrides.setdefault(section, {})[config_key] = value
        return overrides

    def get_config(self, validation_level: ValidationLevel = ValidationLevel.STRICT) -> ConsoleConfig:
        """Get merged configuration with validation"""
        merged_config = self._merge_configs()

        try:
            return ConsoleConfig(**merged_config)
        except ValidationError as e:
            if validation_level == ValidationLevel.STRICT:
                raise ValueError(f"Configuration validation failed: {e}") from e
            logger.warning(f"Configuration validation failed, using defaults: {e}")
            return ConsoleConfig()

    def save_project_config(self, config_updates: Dict[str, Any]) -> bool:
        """Save project-specific configuration updates"""
        project_path = self.config_dir / "project.yaml"

        existing_config = self._load_yaml_file(project_path)
        self._deep_merge(existing_config, config_updates)

        success = self._save_yaml_file(project_path, existing_config)
        if success:
            # Force reload on next get_config
            self._project_config = None

        return success

    def reload_config(self) -> None:
        """Clear cached configurations and reload from files"""
        self._defaults = None
        self._user_config = None
        self._project_config = None
