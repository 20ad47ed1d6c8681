from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from taxgateway.services.submission_schema import EnvelopeFlags


def repo_root() -> Path:
    """
    Description: Resolve repository root from within src/ package.
    Layer: L0
    Input: None
    Output: Absolute Path to repo root
    """
    # src/taxgateway/config.py -> src/taxgateway -> src -> repo root
    return Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """
    Description: Central configuration loader for the submission gateway.
    Layer: L0
    Input: .env in repo root + TAXGATEWAY_* environment variables
    Output: Strongly typed settings object
    """

    model_config = SettingsConfigDict(
        env_file=str(repo_root() / ".env"),
        env_file_encoding="utf-8",
        env_prefix="TAXGATEWAY_",
        extra="ignore",
    )

    # Envelope builder feature flags
    chris_enable_missing_mandatory: bool = False
    chris_enable_irmark_bad: bool = False

    # API
    api_title: str = "CIS Submission Gateway"
    api_version: str = "1.0.0"

    # Runtime
    environment: str = "local"
    log_level: str = "INFO"

    def envelope_flags(self) -> EnvelopeFlags:
        return EnvelopeFlags(
            enable_missing_mandatory=self.chris_enable_missing_mandatory,
            enable_irmark_bad=self.chris_enable_irmark_bad,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Description: Cached settings accessor for the FastAPI app factory.
    Layer: L0
    Input: None
    Output: Settings
    """
    return Settings()
