"""Configuration manager for loading and validating .retryop.yml"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from retryop.domain.config import AppConfig, HttpSettings, RetrySettings
from retryop.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".retryop.yml"


class ConfigManager:
    """Manages configuration from .retryop.yml and environment variables
    
    Loads configuration with validation using Pydantic models. Configuration priority:
    1. Default values (defined in Pydantic models)
    2. .retryop.yml file (searched from current directory upwards)
    3. Environment variables (RETRYOP_*)
    4. CLI arguments (handled by CLI layer)
    """

    DEFAULT_CONFIG = {
        "retry": {
            "max_attempts": 3,
            "delay": 0,
            "unit": "milliseconds",
            "retry_on": [],
        },
        "http": {
            "timeout": 10.0,
            "retry_statuses": [429, 500, 502, 503, 504],
            "headers": {},
        },
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager
        
        Args:
            config_path: Path to .retryop.yml (searches from current dir if None)
            
        Raises:
            ConfigurationError: If configuration validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.config_path = config_path or self._find_config_file()
        try:
            self.config: AppConfig = self._load_config()
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                msg = error["msg"]
                errors.append(f"  - {field}: {msg}")
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(errors)
            ) from e

    def _find_config_file(self) -> Optional[Path]:
        """Find .retryop.yml starting from current directory
        
        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILE_NAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return None

    def _load_config(self) -> AppConfig:
        """Load configuration from file and validate with Pydantic
        
        Raises:
            ValidationError: If configuration is invalid
        """
        config_dict = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
                config_dict = self._merge_config(config_dict, file_config)
                logger.info(f"Loaded configuration from {self.config_path}")
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config from {self.config_path}: {e}")
                logger.info("Using default configuration")

        config_dict = self._apply_env_overrides(config_dict)

        return AppConfig(**config_dict)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries"""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides
        
        Values are passed through as strings; Pydantic coerces and validates them.
        """
        if os.getenv("RETRYOP_MAX_ATTEMPTS"):
            config["retry"]["max_attempts"] = os.getenv("RETRYOP_MAX_ATTEMPTS")

        if os.getenv("RETRYOP_DELAY"):
            config["retry"]["delay"] = os.getenv("RETRYOP_DELAY")

        if os.getenv("RETRYOP_UNIT"):
            config["retry"]["unit"] = os.getenv("RETRYOP_UNIT").lower()

        # Comma-separated exception names
        if os.getenv("RETRYOP_RETRY_ON"):
            config["retry"]["retry_on"] = [
                name.strip() for name in os.getenv("RETRYOP_RETRY_ON").split(",") if name.strip()
            ]

        if os.getenv("RETRYOP_HTTP_TIMEOUT"):
            config["http"]["timeout"] = os.getenv("RETRYOP_HTTP_TIMEOUT")

        return config

    def get_retry_settings(self) -> RetrySettings:
        """Get retry configuration"""
        return self.config.retry

    def get_http_settings(self) -> HttpSettings:
        """Get HTTP configuration"""
        return self.config.http

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (supports dot notation)
        
        Args:
            key: Configuration key (e.g., "retry.max_attempts" or "retry")
            default: Default value if key not found
            
        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.config.model_dump()
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value
