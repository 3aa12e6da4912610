"""
Engine configuration.

Uses Pydantic Settings so the safety ceilings can be tuned through
environment variables (``CALRECUR_MAX_YEARS_BETWEEN_INSTANCES``,
``CALRECUR_MAX_PRIMING_STEPS``) or a ``.env`` file.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from calrecur.util import MAX_PRIMING_STEPS, MAX_YEARS_BETWEEN_INSTANCES


class EngineSettings(BaseSettings):
    """Limits applied to every recurrence iterator built by the factory."""

    max_years_between_instances: int = Field(
        default=MAX_YEARS_BETWEEN_INSTANCES,
        ge=1,
        description="Candidate years generated without an instance before giving up",
    )
    max_priming_steps: int = Field(
        default=MAX_PRIMING_STEPS,
        ge=1,
        description="Generator steps allowed while finding the first instance",
    )

    model_config = SettingsConfigDict(
        env_prefix="CALRECUR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> EngineSettings:
    """
    Get cached settings instance.

    Returns:
        EngineSettings loaded from the environment

    Example:
        >>> from calrecur.config import get_settings
        >>> get_settings().max_priming_steps
        1000
    """
    return EngineSettings()
