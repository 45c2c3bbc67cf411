"""
Centralized Configuration System for the sheet context engine

Type-safe configuration using Pydantic Settings. Every tunable of the
detection pipeline and the context cache lives here so tests can build an
isolated settings object instead of patching module constants.
"""

import os
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.utils.app_logger import set_context_log_level


class Environment(str, Enum):
    """Application environment types"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class ContextSettings(BaseSettings):
    """Detection heuristics and context cache settings"""

    model_config = SettingsConfigDict(
        env_prefix="SHEET_CONTEXT_",
        env_file=".env" if not os.getenv("DOCKER_CONTAINER") else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Cache
    cache_ttl_seconds: float = Field(
        default=5.0,
        description="Seconds a built context stays valid without an explicit invalidation"
    )

    # Table detection
    sparse_gap_lookahead: int = Field(
        default=3,
        description="Rows to look ahead after an empty row before ending a table"
    )
    summary_min_data_rows: int = Field(
        default=3,
        description="Data rows that must be counted before a total/summary row ends a table"
    )
    emergency_scan_rows: int = Field(
        default=20,
        description="Last row index scanned by emergency detection"
    )
    emergency_min_data_rows: int = Field(
        default=2,
        description="Emergency detection stops on an empty row only after more than this many data rows"
    )
    fallback_header_scan_rows: int = Field(
        default=10,
        description="Last row index scanned for a header row by the desperate fallback"
    )

    # Column profiling
    type_sample_rows: int = Field(
        default=10,
        description="Data rows sampled per column for the data type vote"
    )
    formula_sample_rows: int = Field(
        default=5,
        description="Data rows checked per column for formulas"
    )
    sample_value_limit: int = Field(
        default=3,
        description="Sample values kept per column descriptor"
    )

    # Spatial analysis
    empty_right_lookahead: int = Field(
        default=5,
        description="Columns scanned right of a table for contiguous empty space"
    )
    empty_below_lookahead: int = Field(
        default=10,
        description="Rows scanned below a table for contiguous empty space"
    )
    default_placement_row: int = Field(
        default=0,
        description="0-based row of the placement used when no table exists"
    )
    default_placement_col: int = Field(
        default=8,
        description="0-based column of the placement used when no table exists (I)"
    )

    log_level: str = Field(
        default="INFO",
        description="Log level for sheet_context loggers"
    )

    @field_validator(
        "sparse_gap_lookahead",
        "summary_min_data_rows",
        "emergency_scan_rows",
        "emergency_min_data_rows",
        "fallback_header_scan_rows",
        "type_sample_rows",
        "formula_sample_rows",
        "sample_value_limit",
        "empty_right_lookahead",
        "empty_below_lookahead",
        "default_placement_row",
        "default_placement_col",
    )
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("cache_ttl_seconds")
    @classmethod
    def non_negative_ttl(cls, v: float) -> float:
        if v < 0:
            raise ValueError("cache_ttl_seconds must be >= 0")
        return v


class ApplicationSettings(BaseSettings):
    """Main application settings - aggregates all other settings"""

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("DOCKER_CONTAINER") else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Nested settings
    context: ContextSettings = Field(default_factory=ContextSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.environment == Environment.PRODUCTION

    @property
    def is_test(self) -> bool:
        """Check if running in test mode"""
        return self.environment == Environment.TEST


settings = ApplicationSettings()


def get_settings() -> ApplicationSettings:
    """
    Get the global settings instance

    Returns:
        ApplicationSettings: The global settings instance
    """
    return settings


def reload_settings() -> ApplicationSettings:
    """
    Reload settings from environment (useful for testing) and apply the
    reloaded context log level to existing sheet_context loggers.

    Returns:
        ApplicationSettings: New settings instance with reloaded values
    """
    global settings
    settings = ApplicationSettings()
    set_context_log_level(settings.context.log_level)
    return settings
