"""
Configuration loader with YAML + environment variable support.

Loads and validates configuration files from the config/ directory.
Supports:
- Loading from YAML files
- ${VAR} / ${VAR:default} placeholders
- Environment variable overrides
- Pydantic validation
- Hot reload and caching
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from decision.errors import ConfigurationError
from .settings import AppConfig, DecisionEngineConfig


logger = logging.getLogger(__name__)

# Get the project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file
load_dotenv(PROJECT_ROOT / ".env")


# ============================================================================
# ConfigLoader - Main Configuration Loader
# ============================================================================

class ConfigLoader:
    """
    Configuration loader with YAML + environment variable support.

    Features:
    - Loads config/decision.yaml
    - Overrides with environment variables
    - Validates using Pydantic models
    - Supports hot reload
    - Caches loaded configurations
    """

    CONFIG_NAME = "decision"

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration loader.

        Args:
            config_dir: Configuration directory (defaults to PROJECT_ROOT/config)
        """
        self.config_dir = Path(config_dir) if config_dir else (PROJECT_ROOT / "config")
        self._cache: Dict[str, Any] = {}
        logger.info(f"ConfigLoader initialized with config_dir: {self.config_dir}")

    def load_yaml(self, config_name: str) -> Dict[str, Any]:
        """
        Load a YAML configuration file.

        Args:
            config_name: Name of the config file (without .yaml extension)

        Returns:
            Dictionary containing configuration data

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If the file is not valid YAML
        """
        config_path = self.config_dir / f"{config_name}.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        logger.debug(f"Loading YAML config from: {config_path}")

        try:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigurationError(f"Top level of {config_path} must be a mapping")

        return self._replace_env_vars(config)

    def _replace_env_vars(self, config: Any) -> Any:
        """
        Recursively replace environment variable placeholders in config.

        Placeholders format: ${ENV_VAR_NAME} or ${ENV_VAR_NAME:default_value}
        """
        if isinstance(config, dict):
            return {k: self._replace_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._replace_env_vars(item) for item in config]
        elif isinstance(config, str):
            if config.startswith("${") and config.endswith("}"):
                env_expr = config[2:-1]

                if ":" in env_expr:
                    var_name, default_value = env_expr.split(":", 1)
                    return os.getenv(var_name.strip(), default_value.strip())
                else:
                    var_name = env_expr.strip()
                    value = os.getenv(var_name)
                    if value is None:
                        logger.warning(f"Environment variable {var_name} not set, using empty string")
                        return ""
                    return value

        return config

    def load_app_config(self, use_cache: bool = True) -> AppConfig:
        """
        Load complete application configuration.

        Args:
            use_cache: Use cached config if available

        Returns:
            Validated AppConfig instance

        Raises:
            ConfigurationError: If validation fails
        """
        cache_key = "app_config"

        if use_cache and cache_key in self._cache:
            logger.debug("Returning cached app config")
            return self._cache[cache_key]

        logger.info("Loading decision engine configuration")

        config_data: Dict[str, Any] = {}
        try:
            config_data.update(self.load_yaml(self.CONFIG_NAME))
        except FileNotFoundError:
            logger.warning(f"{self.CONFIG_NAME}.yaml not found, using defaults")

        config_data = self._apply_env_overrides(config_data)

        try:
            app_config = AppConfig(**config_data)
            logger.info("Configuration loaded and validated successfully")
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        if use_cache:
            self._cache[cache_key] = app_config

        return app_config

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides to configuration.

        Recognised variables: ENVIRONMENT, LOG_LEVEL, DECISION_MIN_SIGNAL_COUNT,
        DECISION_IDEAL_CONFLUENCE_COUNT, DECISION_OTC_LOADING,
        DECISION_PERTURBATION (none / seeded / fixed_table).
        """
        system = config.setdefault("system", {}) or {}
        config["system"] = system
        decision = config.setdefault("decision", {}) or {}
        config["decision"] = decision

        if env_val := os.getenv("ENVIRONMENT"):
            system["environment"] = env_val

        if env_val := os.getenv("LOG_LEVEL"):
            system["log_level"] = env_val.upper()

        if env_val := os.getenv("DECISION_MIN_SIGNAL_COUNT"):
            decision.setdefault("orchestrator", {})["min_signal_count"] = env_val

        if env_val := os.getenv("DECISION_IDEAL_CONFLUENCE_COUNT"):
            decision.setdefault("grading", {})["ideal_confluence_count"] = env_val

        if env_val := os.getenv("DECISION_OTC_LOADING"):
            decision.setdefault("manipulation", {})["otc_loading"] = env_val

        if env_val := os.getenv("DECISION_PERTURBATION"):
            bias = decision.setdefault("bias", {})
            bias.setdefault("perturbation", {})["kind"] = env_val.lower()

        return config

    def reload(self) -> AppConfig:
        """
        Reload configuration from disk (hot reload).

        Returns:
            Fresh AppConfig instance
        """
        logger.info("Reloading configuration from disk")
        self._cache.clear()
        return self.load_app_config(use_cache=True)

    def clear_cache(self):
        """Clear the configuration cache."""
        logger.info("Clearing configuration cache")
        self._cache.clear()


# ============================================================================
# Global ConfigLoader Instance
# ============================================================================

_global_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """
    Get or create global ConfigLoader instance.

    Returns:
        Global ConfigLoader instance
    """
    global _global_loader
    if _global_loader is None:
        _global_loader = ConfigLoader()
    return _global_loader


def get_app_config(use_cache: bool = True) -> AppConfig:
    """Get complete application configuration."""
    return get_config_loader().load_app_config(use_cache=use_cache)


def get_decision_config(use_cache: bool = True) -> DecisionEngineConfig:
    """Get the decision engine section of the application configuration."""
    return get_app_config(use_cache=use_cache).decision


def reload_config() -> AppConfig:
    """
    Reload configuration from disk (hot reload).

    Returns:
        Fresh AppConfig instance
    """
    return get_config_loader().reload()
