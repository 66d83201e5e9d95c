"""
Token Vesting Configuration Manager

Centralized configuration management supporting:
- Environment-based configs (development/testnet/production)
- Config file loading (YAML/JSON)
- Command-line override support
- Environment variable support (VESTING_*)
- Config validation

The compiler itself never reads configuration; callers build a
CompilerConfig or EngineConfig here and pass it in explicitly.
"""

import json
import os
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from token_vesting.core.schedule_compiler import CompilerConfig

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

ENV_PREFIX = "VESTING_"

# Env values for these keys are kept verbatim, even when they look numeric
STRING_KEYS = {
    "engine": {"connection_endpoint", "program_id", "token_mint", "sender_secret_key", "commitment"},
    "logging": {"level", "log_file"},
}


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


class Environment(Enum):
    """Environment types"""
    DEVELOPMENT = "development"
    TESTNET = "testnet"
    PRODUCTION = "production"


@dataclass
class EngineConfig:
    """
    Connection settings for the execution engine adapter.

    Passed explicitly to whatever submits compiled schedules; the compiler
    never sees it.
    """
    connection_endpoint: str = "http://127.0.0.1:8899"
    program_id: str = ""
    token_mint: str = ""
    sender_secret_key: str = ""
    commitment: str = "confirmed"

    def validate(self):
        """Validate engine configuration"""
        if not self.connection_endpoint:
            raise ValueError("connection_endpoint cannot be empty")
        if self.commitment not in ("processed", "confirmed", "finalized"):
            raise ValueError(
                f"Invalid commitment: {self.commitment}. Must be processed, confirmed or finalized"
            )


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "WARNING"
    json_format: bool = False
    log_file: Optional[str] = None

    def validate(self):
        """Validate logging configuration"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")


class ConfigManager:
    """
    Configuration Manager for token vesting tools

    Sources, highest priority first:
    1. Command-line overrides
    2. Environment variables (VESTING_SECTION_KEY)
    3. Environment-specific config file
    4. Default config file
    5. Built-in defaults
    """

    def __init__(self,
                 environment: Optional[str] = None,
                 config_dir: Optional[str] = None,
                 cli_overrides: Optional[Dict[str, Any]] = None,
                 load_env_file: bool = True):
        """
        Initialize Configuration Manager

        Args:
            environment: Environment name (development/testnet/production)
            config_dir: Directory containing config files
            cli_overrides: Overrides keyed by "section.key"
            load_env_file: Load a .env file into the process environment first
        """
        if load_env_file:
            load_dotenv()

        self.environment = self._determine_environment(environment)
        self.config_dir = Path(config_dir).resolve() if config_dir else DEFAULT_CONFIG_DIR
        self.cli_overrides = cli_overrides or {}

        self.compiler: CompilerConfig = CompilerConfig()
        self.engine: EngineConfig = EngineConfig()
        self.logging: LoggingConfig = LoggingConfig()

        self._raw_config: Dict[str, Any] = {}

        self._load_configuration()

    def _determine_environment(self, environment: Optional[str]) -> Environment:
        """
        Determine the environment to use

        Priority:
        1. Passed environment parameter
        2. VESTING_ENVIRONMENT environment variable
        3. Default to DEVELOPMENT
        """
        env_str = (environment or os.getenv("VESTING_ENVIRONMENT", "development")).lower()

        env_mapping = {
            "dev": Environment.DEVELOPMENT,
            "development": Environment.DEVELOPMENT,
            "test": Environment.TESTNET,
            "testnet": Environment.TESTNET,
            "prod": Environment.PRODUCTION,
            "production": Environment.PRODUCTION,
        }

        if env_str not in env_mapping:
            raise ConfigurationError(f"Unknown environment: {env_str}")
        return env_mapping[env_str]

    def _load_configuration(self):
        """Load configuration from all sources with proper precedence"""
        default_config = self._load_config_file("default")
        env_config = self._load_config_file(self.environment.value)
        merged_config = self._merge_configs(default_config, env_config)
        merged_config = self._apply_env_variables(merged_config)
        merged_config = self._apply_cli_overrides(merged_config)

        self._raw_config = merged_config
        self._parse_configuration(merged_config)
        self._validate_configuration()

    def _load_config_file(self, filename: str) -> Dict[str, Any]:
        """
        Load configuration from YAML or JSON file

        Args:
            filename: Config filename (without extension)

        Returns:
            Configuration dictionary, empty if no file exists
        """
        yaml_path = self.config_dir / f"{filename}.yaml"
        json_path = self.config_dir / f"{filename}.json"
        try:
            if yaml_path.exists():
                with open(yaml_path, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            elif json_path.exists():
                with open(json_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            else:
                return {}
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Could not parse config file {filename}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {filename} must contain a mapping")
        return data

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_variables(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides (VESTING_*)

        Example:
        VESTING_COMPILER_MAX_EVENTS=16
        VESTING_ENGINE_PROGRAM_ID=<program id>
        """
        result = {key: dict(value) if isinstance(value, dict) else value for key, value in config.items()}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX) or key == "VESTING_ENVIRONMENT":
                continue

            parts = key[len(ENV_PREFIX):].lower().split("_", 1)
            if len(parts) < 2:
                continue

            section, config_key = parts
            if section not in ("compiler", "engine", "logging"):
                continue
            if not isinstance(result.get(section), dict):
                result[section] = {}
            if config_key in STRING_KEYS.get(section, ()):
                result[section][config_key] = value
            else:
                result[section][config_key] = self._parse_env_value(value)

        return result

    def _parse_env_value(self, value: str) -> Union[str, int, bool, None]:
        """Parse environment variable value to appropriate type"""
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False
        if value.lower() in ("none", "null"):
            return None

        try:
            return int(value)
        except ValueError:
            pass

        return value

    def _apply_cli_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply command-line overrides keyed by "section.key" """
        result = {key: dict(value) if isinstance(value, dict) else value for key, value in config.items()}

        for key, value in self.cli_overrides.items():
            parts = key.split(".")

            if len(parts) == 1:
                result[key] = value
            elif len(parts) == 2:
                section, config_key = parts
                if not isinstance(result.get(section), dict):
                    result[section] = {}
                result[section][config_key] = value

        return result

    def _parse_configuration(self, config: Dict[str, Any]):
        """Parse configuration into typed objects"""
        try:
            self.compiler = CompilerConfig(**(config.get("compiler") or {}))
            self.engine = EngineConfig(**(config.get("engine") or {}))
            self.logging = LoggingConfig(**(config.get("logging") or {}))
        except TypeError as exc:
            raise ConfigurationError(f"Unknown configuration key: {exc}") from exc

    def _validate_configuration(self):
        """Validate all configuration sections"""
        try:
            self.compiler.validate()
            self.engine.validate()
            self.logging.validate()
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(str(exc)) from exc

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key

        Args:
            key: Configuration key (e.g., "compiler.max_events")
            default: Default value if key not found
        """
        value: Any = self._raw_config
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration to dictionary"""
        return {
            "environment": self.environment.value,
            "compiler": asdict(self.compiler),
            "engine": asdict(self.engine),
            "logging": asdict(self.logging),
        }

    def get_public_config(self) -> Dict[str, Any]:
        """Configuration with the engine secret key redacted"""
        config = self.to_dict()
        if config["engine"]["sender_secret_key"]:
            config["engine"]["sender_secret_key"] = "***"
        return config

    def reload(self):
        """Reload configuration from files"""
        self._load_configuration()

    def __repr__(self) -> str:
        return f"ConfigManager(environment={self.environment.value})"
