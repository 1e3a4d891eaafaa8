"""
Runtime settings, read from the environment and an optional .env file.

Only things that differ between deployments live here (credentials, table
names, server and logging knobs). Tuning constants of the parser and
aggregator live in config.constants.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from config.constants import DEFAULT_FACET_CONFIG


ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """
    Facet engine settings.

    SUPABASE_URL and SUPABASE_SERVICE_KEY are required. List-valued settings
    (CORS_ORIGINS, FACET_PRIORITY_KEYS) accept a comma-separated string.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Runtime
    # ==========================================================================
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO", description="Root log level name")

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # HTTP
    # ==========================================================================
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Origins allowed to call the catalog API from a browser",
    )
    slow_request_ms: float = Field(
        default=2000.0,
        gt=0,
        description="Requests slower than this are logged at WARNING",
    )

    # ==========================================================================
    # Supabase
    # ==========================================================================
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_service_key: str = Field(..., description="Supabase service role key")

    inventory_table: str = Field(default="inventory_items", description="Items and raw attribute payloads")
    item_attributes_table: str = Field(default="item_attributes", description="Body-shape and color-tone tags")
    brands_table: str = Field(default="brands", description="Brand id to display name")
    catalog_page_size: int = Field(default=1000, ge=1, description="Rows per page when reading in-stock items")

    # ==========================================================================
    # Facet Engine
    # ==========================================================================
    facet_priority_keys: Annotated[List[str], NoDecode] = Field(
        default=list(DEFAULT_FACET_CONFIG.PRIORITY_KEYS),
        description="Facet keys listed first, in this order",
    )
    memoize_parsing: bool = Field(
        default=True,
        description="Parse each (item id, payload) pair once per query",
    )

    @field_validator("cors_origins", "facet_priority_keys", mode="before")
    @classmethod
    def split_comma_separated(cls, v):
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Process-wide settings, read once.

    Raises:
        ValidationError: If SUPABASE_URL or SUPABASE_SERVICE_KEY is missing
    """
    return Settings(_env_file=ENV_FILE if ENV_FILE.exists() else None)


def get_settings_for_testing(**overrides) -> Settings:
    """Uncached settings with test credentials; ``overrides`` win."""
    values = {
        "supabase_url": "https://test.supabase.co",
        "supabase_service_key": "test-key",
        "environment": "testing",
        "debug": True,
    }
    values.update(overrides)
    return Settings(**values)
