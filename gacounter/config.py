"""
Google Analytics Counter — Configuration via environment variables.
"""

from datetime import date

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """All settings read from env / .env file."""

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./gacounter.db",
        description="Async SQLAlchemy DB URL",
    )

    # Google Analytics source
    ga_profile_id: str = Field(default="", description="GA view (profile) id, without the 'ga:' prefix")
    ga_client_id: str = Field(default="", description="OAuth2 client id")
    ga_client_secret: str = Field(default="", description="OAuth2 client secret")
    ga_redirect_uri: str = Field(
        default="http://localhost:8000/api/v1/auth/callback",
        description="Where Google sends the user back after consent",
    )

    # Import
    chunk_to_fetch: int = Field(default=1000, description="Rows requested per chunk")
    start_date: date = Field(default=date(2005, 1, 1), description="First day of the report range")
    cache_length: int = Field(default=86400, description="Seconds a fetched chunk stays cached")

    # Aggregation
    overwrite_statistics: bool = Field(
        default=False,
        description="Mirror resource totals into the legacy_totals table",
    )
    resource_type: str = Field(default="node")
    languages: list[str] = Field(default_factory=list, description="Ordered locale ids")
    language_prefixes: dict[str, str] = Field(
        default_factory=dict, description="Locale id → URL prefix, e.g. {'de': 'de'}"
    )
    path_aliases: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Locale id → {canonical path → alias}",
    )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
