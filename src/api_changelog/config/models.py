"""Pydantic configuration models.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (API_CHANGELOG__SECTION__KEY)
3. YAML file passed to load_config() / --config
4. Built-in defaults (this file)

Examples:
    API_CHANGELOG__LOGGING__LEVEL=DEBUG
    API_CHANGELOG__STABILITY__IDEAL_BREAKING_GAP_DAYS=45
    API_CHANGELOG__DEBT__ACCEPTABLE_SCORE=20

The risk score formula of the changelog assembler is deliberately absent:
it is fixed so scores stay comparable across installations.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        API_CHANGELOG__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        API_CHANGELOG__LOGGING__FORMAT: console or json
    """

    model_config = ConfigDict(frozen=True)

    level: LogLevel = "WARNING"
    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class StabilityConfig(BaseModel):
    """Stability score weights and policy windows."""

    model_config = ConfigDict(frozen=True)

    breaking_ratio_weight: float = Field(default=0.40, ge=0)
    time_gap_weight: float = Field(default=0.30, ge=0)
    deprecation_weight: float = Field(default=0.15, ge=0)
    semver_weight: float = Field(default=0.15, ge=0)
    ideal_breaking_gap_days: int = Field(default=30, gt=0)
    min_deprecation_notice_days: int = Field(default=30, ge=0)

    @model_validator(mode="after")
    def _weights_sum_to_one(self) -> "StabilityConfig":
        total = self.breaking_ratio_weight + self.time_gap_weight + self.deprecation_weight + self.semver_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"stability weights must sum to 1.0, got {total:.4f}")
        return self


class TrendConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    slope_threshold: float = Field(default=0.05, ge=0)
    min_data_points: int = Field(default=3, ge=2)
    projection_step: float = 10.0


class VelocityConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    acceleration_ratio: float = Field(default=1.2, gt=0)


class DebtConfig(BaseModel):
    """Technical debt thresholds (ages in days, score 0-100)."""

    model_config = ConfigDict(frozen=True)

    warning_age_days: int = 90
    critical_age_days: int = 180
    acceptable_score: int = 30
    naming_pattern: str = r"^[a-z0-9/{}_.-]*$"

    @model_validator(mode="after")
    def _ordered_ages(self) -> "DebtConfig":
        if self.critical_age_days < self.warning_age_days:
            raise ValueError("critical_age_days must not be lower than warning_age_days")
        return self


class InsightConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_insights: int = Field(default=10, ge=0)
    max_recommendations: int = Field(default=5, ge=0)
    significant_change_threshold: float = Field(default=0.20, gt=0, le=1)
    high_breaking_per_release: float = 2.0
    rapid_acceleration_rate: float = 0.5
    complex_api_score: int = 70
    min_documentation_coverage: float = 0.8


class AnalyticsConfig(BaseModel):
    """Immutable configuration passed explicitly into every analytics computation."""

    model_config = ConfigDict(frozen=True)

    logging: LoggingConfig = LoggingConfig()
    stability: StabilityConfig = StabilityConfig()
    trend: TrendConfig = TrendConfig()
    velocity: VelocityConfig = VelocityConfig()
    debt: DebtConfig = DebtConfig()
    insights: InsightConfig = InsightConfig()
