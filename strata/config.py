import os
import re
from functools import lru_cache
from pathlib import Path
from uuid import UUID

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from strata.core.version import FILE_NOT_FOUND_KIND

# Load .env early so env vars are available for YAML interpolation
load_dotenv(Path.cwd() / ".env")

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def get_config_path() -> Path:
    """Location of app.yaml, overridable with STRATA_CONFIG."""
    override = os.environ.get("STRATA_CONFIG")
    return Path(override) if override else Path.cwd() / "app.yaml"


def load_app_config() -> dict:
    """Load and parse app.yaml with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"app.yaml not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///./strata.db"
    pool_size: int = 5
    pool_overflow: int = 10
    pool_timeout: int = 30
    pool_pre_ping: bool = False
    echo: bool = False


class PagesConfig(BaseModel):
    """Which tree to serve and how its "not found" page is located."""

    root_id: UUID | None = None
    fallback_kind: str = FILE_NOT_FOUND_KIND


class LogfireConfig(BaseModel):
    enabled: bool = False
    service_name: str = "strata"
    environment: str | None = None
    sample_rate: float = 1.0
    console: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STRATA_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    debug: bool = False

    # Sections below may also come from app.yaml
    db: DatabaseConfig = DatabaseConfig()
    pages: PagesConfig = PagesConfig()
    logfire: LogfireConfig = LogfireConfig()


SECTIONS = {"db": DatabaseConfig, "pages": PagesConfig, "logfire": LogfireConfig}


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment, .env and app.yaml."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {
        name: model(**app_config[name])
        for name, model in SECTIONS.items()
        if isinstance(app_config.get(name), dict)
    }
    if "debug" in app_config:
        updates["debug"] = bool(app_config["debug"])

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
