"""Core app services for settings, logging and the scaler session loop."""

from .config import AppConfig, ConfigError, load_config, save_config, validate_config
from .session import SessionController, SessionStatus

__all__ = [
    "AppConfig",
    "ConfigError",
    "SessionController",
    "SessionStatus",
    "load_config",
    "save_config",
    "validate_config",
]
