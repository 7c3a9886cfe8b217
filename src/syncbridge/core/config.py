"""Configuration management for SyncBridge."""

import os
import logging
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


def setup_logging(level: str = "INFO") -> None:
    """Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def load_environment(env_file: Optional[str] = None) -> None:
    """Load environment variables from .env file.

    Args:
        env_file: Path to .env file. If None, looks for .env in current directory.
    """
    env_path = Path(env_file) if env_file else Path('.env')

    if env_path.exists():
        load_dotenv(env_path)
        logging.info(f"Loaded environment from {env_path}")
    else:
        logging.warning(f"No .env file found at {env_path}")


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Raises:
        ValueError: If the environment variable is not set
    """
    value = os.getenv(key)
    if not value:
        raise ValueError(f"Required environment variable {key} is not set")
    return value


def get_optional_env(key: str, default: str = "") -> str:
    """Get an optional environment variable, falling back to ``default``."""
    return os.getenv(key, default)


class Settings(BaseModel):
    """Runtime settings shared by the engine, connectors and API."""
    log_level: str = Field("INFO", description="Root logging level")
    connector_timeout_seconds: float = Field(10.0, gt=0, description="Per-call timeout applied by connectors")
    max_sync_retries: int = Field(3, ge=0, description="HTTP retry budget for connector sessions")
    sync_page_size: int = Field(100, gt=0, description="Records fetched per source query page")
    google_cloud_project: Optional[str] = Field(None, description="Project for Firestore, Scheduler and Secret Manager")
    google_cloud_region: str = Field("us-central1", description="Cloud Scheduler location")
    service_url: str = Field("http://localhost:8000", description="Public URL of the trigger API")
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (call load_environment first)."""
        origins = [o.strip() for o in get_optional_env("ALLOWED_ORIGINS").split(",") if o.strip()]
        return cls(
            log_level=get_optional_env("LOG_LEVEL", "INFO"),
            connector_timeout_seconds=float(get_optional_env("CONNECTOR_TIMEOUT_SECONDS", "10")),
            max_sync_retries=int(get_optional_env("MAX_SYNC_RETRIES", "3")),
            sync_page_size=int(get_optional_env("SYNC_PAGE_SIZE", "100")),
            google_cloud_project=os.getenv("GOOGLE_CLOUD_PROJECT") or None,
            google_cloud_region=get_optional_env("GOOGLE_CLOUD_REGION", "us-central1"),
            service_url=get_optional_env("SERVICE_URL", "http://localhost:8000"),
            allowed_origins=origins or ["*"],
        )
