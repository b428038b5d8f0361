"""
Configuration loader for the background-removal service.

Environment variables are centralized here to keep the rest of the code
focused on request handling and to make operational tuning clear. The
resolved `Settings` object is handed to the app factory, so nothing else
reads the environment.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

FALLBACK_MODES = {"modulate", "identity"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # remove.bg provider
    remove_bg_api_key: Optional[str] = None
    remove_bg_api_url: str = "https://api.remove.bg/v1.0/removebg"
    remove_bg_size: str = "regular"
    remove_bg_type: str = "auto"
    request_timeout_seconds: int = 30

    # Local fallback transform
    fallback_mode: str = "modulate"
    fallback_brightness: float = 1.1
    fallback_saturation: float = 1.2

    # Artificial latency for the demo path; 0 disables it.
    fallback_delay_seconds: float = 2.5
    echo_delay_seconds: float = 2.0

    # API
    max_payload_bytes: int = Field(10 * 1024 * 1024, gt=0)
    log_level: str = "INFO"

    @field_validator("remove_bg_api_key")
    @classmethod
    def blank_key_is_missing(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("fallback_mode")
    @classmethod
    def validate_fallback_mode(cls, v: str) -> str:
        v = v.lower()
        if v not in FALLBACK_MODES:
            raise ValueError("FALLBACK_MODE must be one of modulate|identity")
        return v

    @field_validator("fallback_brightness", "fallback_saturation")
    @classmethod
    def validate_factor(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("fallback multipliers must be positive")
        return v

    @field_validator("fallback_delay_seconds", "echo_delay_seconds")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("artificial delays cannot be negative")
        return v

    @property
    def has_api_key(self) -> bool:
        return self.remove_bg_api_key is not None


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every call."""
    return Settings()
