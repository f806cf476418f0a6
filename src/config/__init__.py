"""
Configuration management module.

Loads configuration from YAML files and provides easy access.
"""

from .loader import ConfigLoader, get_app_config, get_decision_config, reload_config
from .settings import AppConfig, DecisionEngineConfig, SystemConfig

__all__ = [
    'ConfigLoader',
    'get_app_config',
    'get_decision_config',
    'reload_config',
    'AppConfig',
    'DecisionEngineConfig',
    'SystemConfig',
]
