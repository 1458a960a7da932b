"""
Configuration - Arsenal Module
Typed configuration management using Pydantic
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _env_int(name: str, default: int) -> int:
    """Parse integer env values with explicit validation errors."""
    raw = os.getenv(name)
    if raw is None:
        return default

    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer.") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default

    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number.") from exc


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_default=True)

    # App Identity
    APP_NAME: str = "Lease Analyzer"
    VERSION: str = "1.0.0"
    APP_BASE_URL: Optional[str] = Field(default_factory=lambda: os.getenv("APP_BASE_URL"))

    # Model Config
    GEMINI_API_KEY: Optional[str] = Field(default_factory=lambda: os.getenv("GEMINI_API_KEY"))
    GEMINI_BASE_URL: str = Field(
        default_factory=lambda: os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/"
        )
    )
    ANALYSIS_MODEL: str = Field(
        default_factory=lambda: os.getenv("ANALYSIS_MODEL", "gemini-1.5-flash-latest")
    )
    MODEL_TEMPERATURE: float = Field(
        default_factory=lambda: _env_float("MODEL_TEMPERATURE", 0.1),
        ge=0,
        le=2,
    )
    MODEL_MAX_OUTPUT_TOKENS: int = Field(
        default_factory=lambda: _env_int("MODEL_MAX_OUTPUT_TOKENS", 4096),
        ge=1,
    )
    MODEL_TIMEOUT_SECONDS: float = Field(
        default_factory=lambda: _env_float("MODEL_TIMEOUT_SECONDS", 60.0),
        gt=0,
    )

    # Limits
    MIN_LEASE_TEXT_LENGTH: int = Field(
        default_factory=lambda: _env_int("MIN_LEASE_TEXT_LENGTH", 50),
        ge=1,
    )

    # Storage
    DATA_DIR: Optional[str] = Field(default_factory=lambda: os.getenv("DATA_DIR"))

    # Identity provider
    SUPABASE_URL: Optional[str] = Field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    SUPABASE_ANON_KEY: Optional[str] = Field(default_factory=lambda: os.getenv("SUPABASE_ANON_KEY"))
    AUTH_TIMEOUT_SECONDS: float = Field(
        default_factory=lambda: _env_float("AUTH_TIMEOUT_SECONDS", 10.0),
        gt=0,
    )

    def validate_secrets(self) -> None:
        """Validate that required environment variables are present."""
        if not self.SUPABASE_URL:
            raise ValueError(
                "SUPABASE_URL not found in environment. "
                "Please add to .env: SUPABASE_URL=https://<project>.supabase.co"
            )

        if not self.SUPABASE_ANON_KEY:
            raise ValueError(
                "SUPABASE_ANON_KEY not found in environment. "
                "Please add to .env: SUPABASE_ANON_KEY=<project anon key>"
            )

    @property
    def data_path(self) -> Path:
        if self.DATA_DIR:
            return Path(self.DATA_DIR)
        return Path(__file__).parent.parent / "data"

    @classmethod
    def load(cls) -> "AppConfig":
        """Load configuration from environment."""
        return cls()
