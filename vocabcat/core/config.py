"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Self


class Settings(BaseSettings):
    """Settings loaded from ``VOCABCAT_``-prefixed environment variables."""

    # Application
    APP_NAME: str = "vocabcat"
    ENV: Literal["development", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    # Adaptive test defaults. The calibrator derives the remaining operating
    # parameters (prior, grid bounds, target SE, item-count bounds) from the
    # loaded item bank.
    CAT_TARGET_ITEMS: int = Field(
        default=30,
        description="Nominal test length used to calibrate the stopping rules",
    )
    CAT_GRID_STEP: float = Field(
        default=0.01,
        description="Spacing of the ability grid used for EAP estimation",
    )
    CAT_HIGH_LEVEL_THRESHOLD: int = Field(
        default=7,
        description="Items at or above this level count as high-level items",
    )
    CAT_REQUIRED_HIGH_LEVEL_ITEMS: int = Field(
        default=2,
        description="High-level items that must be administered before stopping",
    )

    # Simulation
    SIMULATION_SEED: int = 42

    model_config = SettingsConfigDict(
        env_prefix="VOCABCAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_cat_defaults(self) -> Self:
        """Reject adaptive test defaults that cannot produce a valid session."""
        if self.CAT_TARGET_ITEMS <= 0:
            raise ValueError(
                f"CAT_TARGET_ITEMS must be positive, got {self.CAT_TARGET_ITEMS}"
            )
        if self.CAT_GRID_STEP <= 0:
            raise ValueError(f"CAT_GRID_STEP must be positive, got {self.CAT_GRID_STEP}")
        if self.CAT_REQUIRED_HIGH_LEVEL_ITEMS < 0:
            raise ValueError(
                "CAT_REQUIRED_HIGH_LEVEL_ITEMS must be non-negative, "
                f"got {self.CAT_REQUIRED_HIGH_LEVEL_ITEMS}"
            )
        return self


settings = Settings()
