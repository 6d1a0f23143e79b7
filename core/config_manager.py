"""
Configuration Management System for Hearth
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from enum import Enum

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ValidationError, field_validator

logger = logging.getLogger('core.config_manager')

class Environment(Enum):
    """Supported deployment environments"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"

class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing"""
    pass

class HearthConfiguration(BaseModel):
    """Main bot configuration model with Pydantic validation"""

    # Discord Configuration
    bot_token: str
    command_prefix: str = "!"

    # Logging Configuration
    log_level: str = "INFO"
    log_file_path: str = "./log.txt"
    log_max_bytes: int = 32 * 1024 * 1024  # 32MB
    log_backup_count: int = 5
    log_webhook_url: Optional[str] = None

    # Ticket Configuration
    ticket_limit: int = 5
    ticket_close_delay: float = 5.0
    ticket_channel_prefix: str = "ticket-"

    # Suggestion Configuration
    suggestion_thread_archive_minutes: int = 10080  # 7 days

    # Chatbot Configuration
    chatbot_api_url: str = "https://text.pollinations.ai/"
    chatbot_model: str = "openai"
    chatbot_history_limit: int = 15
    chatbot_system_prompt: str = "You are a friendly chatbot."

    # Stock Configuration
    stock_api_url: str = "https://api.joshlei.com/v2/growagarden/stock"
    stock_cooldown_seconds: float = 5.0

    # HTTP Configuration
    http_timeout: int = 10

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of {valid_levels}')
        return v.upper()

    @field_validator('ticket_limit')
    @classmethod
    def validate_ticket_limit(cls, v):
        if v < 1:
            raise ValueError('ticket_limit must be at least 1')
        return v

    @field_validator('ticket_close_delay')
    @classmethod
    def validate_close_delay(cls, v):
        if v < 0:
            raise ValueError('ticket_close_delay cannot be negative')
        return v

    @field_validator('chatbot_history_limit')
    @classmethod
    def validate_history_limit(cls, v):
        if not 1 <= v <= 100:
            raise ValueError('chatbot_history_limit must be between 1 and 100')
        return v

    @field_validator('bot_token')
    @classmethod
    def validate_bot_token(cls, v):
        if not v or len(v) < 50:  # Discord bot tokens are typically much longer
            raise ValueError('bot_token must be a valid Discord bot token')
        return v

class ConfigurationManager:
    """
    Centralized configuration management system.

    Handles loading, validation, and management of application configuration
    from multiple sources with environment-specific overrides.
    """

    # Environment variable -> configuration key
    ENV_MAPPINGS = {
        'BOT_TOKEN': 'bot_token',
        'COMMAND_PREFIX': 'command_prefix',
        'LOG_LEVEL': 'log_level',
        'LOG_FILE_PATH': 'log_file_path',
        'LOG_WEBHOOK_URL': 'log_webhook_url',
        'TICKET_LIMIT': 'ticket_limit',
        'TICKET_CLOSE_DELAY': 'ticket_close_delay',
        'CHATBOT_API_URL': 'chatbot_api_url',
        'CHATBOT_MODEL': 'chatbot_model',
        'STOCK_API_URL': 'stock_api_url',
        'HTTP_TIMEOUT': 'http_timeout',
    }

    def __init__(self, base_path: Optional[Path] = None):
        self.base_path = base_path or Path.cwd()
        self.config_dir = self.base_path / "config"
        self.environment = self._detect_environment()
        self._configuration: Optional[HearthConfiguration] = None

        logger.info(f"ConfigurationManager initialized for environment: {self.environment.value}")

    def load_configuration(self) -> HearthConfiguration:
        """
        Load and validate configuration from all sources.

        Returns:
            Validated configuration object

        Raises:
            ConfigurationError: If configuration is invalid or missing
        """
        try:
            config_data = self._load_base_configuration()
            config_data = self._apply_environment_overrides(config_data)
            config_data = self._apply_environment_variables(config_data)

            self._configuration = HearthConfiguration(**config_data)

            logger.info("Configuration loaded successfully")
            return self._configuration

        except ValidationError as e:
            logger.error(f"Failed to load configuration: {e}")
            raise ConfigurationError(f"Configuration loading failed: {e}")

    def get_configuration(self) -> HearthConfiguration:
        """Get current configuration, loading if necessary"""
        if self._configuration is None:
            return self.load_configuration()
        return self._configuration

    def reload_configuration(self) -> HearthConfiguration:
        self._configuration = None
        return self.load_configuration()

    def get_config_value(self, key: str, default: Any = None) -> Any:
        """
        Get a specific configuration value with dot notation support.

        Args:
            key: Configuration key (supports dot notation like 'a.b')
            default: Default value if key not found
        """
        value: Any = self.get_configuration()

        for k in key.split('.'):
            if isinstance(value, dict):
                if k not in value:
                    return default
                value = value[k]
            elif hasattr(value, k):
                value = getattr(value, k)
            else:
                return default
        return value

    def validate_configuration(self, config_data: Dict[str, Any]) -> bool:
        try:
            HearthConfiguration(**config_data)
            return True
        except ValidationError:
            return False

    def _detect_environment(self) -> Environment:
        env_var = os.getenv('HEARTH_ENVIRONMENT', '').lower()
        if env_var:
            try:
                return Environment(env_var)
            except ValueError:
                logger.warning(f"Unknown HEARTH_ENVIRONMENT '{env_var}', using development")

        if os.getenv('PRODUCTION'):
            return Environment.PRODUCTION

        return Environment.DEVELOPMENT

    def _load_base_configuration(self) -> Dict[str, Any]:
        config_data: Dict[str, Any] = {}

        default_config_path = self.config_dir / "default.yaml"
        if default_config_path.exists():
            config_data.update(self._load_yaml_file(default_config_path))
            logger.debug(f"Loaded base configuration from {default_config_path}")

        self._load_from_env_file(config_data)
        return config_data

    def _apply_environment_overrides(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        env_config_path = self.config_dir / f"{self.environment.value}.yaml"
        if env_config_path.exists():
            config_data = self._deep_merge(config_data, self._load_yaml_file(env_config_path))
            logger.debug(f"Applied environment overrides from {env_config_path}")
        return config_data

    def _apply_environment_variables(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        for env_var, config_key in self.ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                # Pydantic coerces numeric strings
                config_data[config_key] = env_value
                logger.debug(f"Applied environment variable {env_var} -> {config_key}")
        return config_data

    def _load_yaml_file(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load YAML file {path}: {e}")
            return {}

    def _load_from_env_file(self, config_data: Dict[str, Any]):
        """Load mapped keys from a .env file next to the config directory"""
        env_file = self.base_path / '.env'
        if not env_file.exists():
            return

        for key, value in dotenv_values(env_file).items():
            config_key = self.ENV_MAPPINGS.get(key)
            if config_key and value is not None:
                config_data[config_key] = value
        logger.debug("Loaded configuration from .env file")

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
