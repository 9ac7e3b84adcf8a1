"""Application configuration.

Configuration is loaded from environment variables. For local development, you can provide a
`.env` file and set `LEXGROUND_ENV_FILE` to point to it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """lexground settings.

    All fields are environment-configurable. Prefix is `LEXGROUND_`.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXGROUND_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    app_env: Literal["dev", "prod"] = Field(default="dev")
    log_level: str = Field(default="INFO")
    default_jurisdiction: str = Field(default="Kenya")

    # LLM (candidate proposer and passage extractor)
    openai_api_key: str | None = Field(default=None)
    openai_base_url: str | None = Field(default=None)
    retrieval_model: str = Field(default="gpt-4o-mini")
    extraction_model: str = Field(default="gpt-4o-mini")
    openai_timeout_s: float = Field(default=60.0, ge=1.0, le=600.0)

    # Networking
    http_timeout_s: float = Field(default=15.0, ge=1.0, le=120.0)
    http_user_agent: str = Field(default="LexGround/0.1 (Legal Research Bot)")
    max_response_bytes: int = Field(default=5_000_000, ge=10_000)

    # Storage
    database_path: Path = Field(default=Path("artifacts") / "authorities.sqlite3")
    max_stored_text_chars: int = Field(default=50_000, ge=1_000)

    # Retrieval
    max_candidates: int = Field(default=3, ge=1, le=10)
    candidate_timeout_s: float = Field(default=90.0, ge=1.0, le=600.0)
    extraction_excerpt_chars: int = Field(default=30_000, ge=1_000, le=200_000)
    max_passages: int = Field(default=3, ge=1, le=10)
    passage_min_chars: int = Field(default=50, ge=1)
    passage_max_chars: int = Field(default=500, ge=10)

    # Existing-record cache lookup
    cache_max_keywords: int = Field(default=3, ge=1, le=10)
    cache_min_keyword_overlap: int = Field(default=2, ge=1, le=10)
    cache_result_limit: int = Field(default=5, ge=1, le=50)


def load_settings() -> Settings:
    """Load settings from env.

    Returns:
        Settings: Parsed settings.
    """

    env_file_override = os.getenv("LEXGROUND_ENV_FILE")
    if env_file_override:
        env_path = Path(env_file_override)
        return Settings(_env_file=env_path)

    default_env = Path.cwd() / ".env"
    if default_env.exists():
        return Settings(_env_file=default_env)

    return Settings()
