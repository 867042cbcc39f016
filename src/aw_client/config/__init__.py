"""Configuration module for the aw-client."""

from .logger_config import setup_logging
from .settings import DEFAULT_PORT, TESTING_PORT, ClientConfig

__all__ = ["ClientConfig", "DEFAULT_PORT", "TESTING_PORT", "setup_logging"]
