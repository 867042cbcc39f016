"""Configuration management for the aw-client.

This module provides the client configuration and resolves the server base
URL from explicit arguments, environment variable overrides and the
testing/production default ports.
"""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from .logger_config import setup_logging

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5600
TESTING_PORT = 5666
DEFAULT_TIMEOUT_SECONDS = 10.0

_TRUTHY = {"1", "true", "yes"}


@dataclass
class ClientConfig:
    """Complete aw-client configuration."""

    # Client identification
    client_name: str = ""
    hostname: str = field(default_factory=socket.gethostname)

    # Server settings
    testing: Optional[bool] = None  # None = take AW_TESTING, else production
    base_url: Optional[str] = None  # None = derive from testing flag
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def __post_init__(self):
        """Apply environment variable overrides."""
        self._apply_env_overrides()

    def _apply_env_overrides(self):
        """Apply configuration overrides from environment variables."""
        # Explicit base URL wins over the environment
        if self.base_url is None and (server_url := os.getenv("AW_SERVER_URL")):
            self.base_url = server_url

        if self.testing is None:
            testing = os.getenv("AW_TESTING", "")
            self.testing = testing.strip().lower() in _TRUTHY

        if timeout := os.getenv("AW_CLIENT_TIMEOUT"):
            try:
                self.timeout_seconds = float(timeout)
            except ValueError:
                logger.warning(f"Invalid client timeout: {timeout}")

        if log_level := os.getenv("AW_LOG_LEVEL"):
            self.log_level = log_level.upper()

        if log_file := os.getenv("AW_LOG_FILE"):
            self.log_file = Path(log_file)

    @property
    def resolved_base_url(self) -> str:
        """Server base URL, without the trailing ``/api``."""
        if self.base_url:
            return self.base_url.rstrip("/")
        port = TESTING_PORT if self.testing else DEFAULT_PORT
        return f"http://{DEFAULT_HOST}:{port}"

    def configure_logging(self) -> None:
        """Install the log sinks described by this configuration."""
        setup_logging(level=self.log_level, log_file=self.log_file)

    def get_transport_config(self) -> Dict[str, Any]:
        """Get configuration for the HTTP transport."""
        return {
            "base_url": self.resolved_base_url,
            "timeout_seconds": self.timeout_seconds,
            "client_name": self.client_name,
        }

    def validate(self) -> tuple[bool, list[str]]:
        """Validate the configuration.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        if not self.client_name:
            errors.append("Client name is required")

        if self.timeout_seconds <= 0:
            errors.append("Timeout must be positive")

        if self.base_url is not None and not self.base_url.startswith(("http://", "https://")):
            errors.append(f"Base URL must be http(s): {self.base_url}")

        return len(errors) == 0, errors
