"""Application configuration management using Pydantic Settings.

This module provides a centralized configuration class that loads settings
from environment variables (.env file), plus the loader for the portal's
URL and CSS selector file.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SELECTORS_PATH = Path(__file__).parent / "selectors.yaml"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Portal credentials are deliberately absent: they arrive with each
    authenticate call and are never stored.
    """

    # MCP / HTTP Server Configuration
    mcp_host: str = Field(default="0.0.0.0", description="Server host to bind to")
    mcp_port: int = Field(default=3001, description="Server port")

    # Cache Configuration
    cache_path: str = Field(
        default="grades_cache.json",
        description="JSON file holding previously resolved grades",
    )

    # Browser Configuration
    browser_headless: bool = Field(
        default=True, description="Run browser in headless mode"
    )
    auth_timeout_ms: int = Field(
        default=10000,
        description="Deadline for each login step to show a field or an alert",
    )
    navigation_timeout_ms: int = Field(
        default=30000, description="Timeout for one grade report navigation attempt"
    )
    navigation_max_attempts: int = Field(
        default=3, description="Total attempts to reach the grade report page"
    )
    navigation_retry_delay_seconds: float = Field(
        default=2.0, description="Fixed delay between navigation attempts"
    )

    # Notification Configuration
    notifications_enabled: bool = Field(
        default=True, description="Send a desktop notification for each new grade"
    )
    notification_app_name: str = Field(
        default="Grade Watch", description="Application name shown on notifications"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="json", description="Log output format (json or console)"
    )

    # Selector Configuration
    selectors_path: str = Field(
        default=str(DEFAULT_SELECTORS_PATH),
        description="Path to portal URL and CSS selector YAML file",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def load_selectors(config_path: str | None = None) -> dict[str, Any]:
    """Load portal URLs and selectors from selectors.yaml.

    Args:
        config_path: Path to selectors YAML file. If None, uses settings default.

    Returns:
        Dictionary with "auth" and "grades" sections.

    Raises:
        FileNotFoundError: If the selectors file does not exist.
        ValueError: If a required section is missing.
    """
    path = Path(config_path) if config_path else Path(settings.selectors_path)
    if not path.exists():
        raise FileNotFoundError(f"Selectors config not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    for section in ("auth", "grades"):
        if section not in data:
            raise ValueError(f"Selectors config {path} is missing '{section}' section")

    return data


# Singleton instance - import this to access settings throughout the application
settings = Settings()
