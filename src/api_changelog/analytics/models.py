"""Analytics result models.

All results are frozen value objects; none of them is ever updated after
the calculator that produced it returns.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from api_changelog.model.base import RiskLevel


class StabilityGrade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"

    @classmethod
    def from_score(cls, score: float) -> "StabilityGrade":
        score = max(0, min(100, score))
        if score >= 90:
            return cls.A
        if score >= 80:
            return cls.B
        if score >= 70:
            return cls.C
        if score >= 60:
            return cls.D
        return cls.F

    @property
    def label(self) -> str:
        return _GRADE_LABELS[self.value][0]

    @property
    def description(self) -> str:
        return _GRADE_LABELS[self.value][1]

    @property
    def is_acceptable(self) -> bool:
        return self in (StabilityGrade.A, StabilityGrade.B, StabilityGrade.C)

    @property
    def is_poor(self) -> bool:
        return self in (StabilityGrade.D, StabilityGrade.F)


_GRADE_LABELS = {
    "A": ("Excellent", "Highly stable API with minimal breaking changes"),
    "B": ("Good", "Stable API with occasional breaking changes"),
    "C": ("Fair", "Moderately stable API, breaking changes need attention"),
    "D": ("Poor", "Unstable API with frequent breaking changes"),
    "F": ("Failing", "Highly unstable API, consumers are at risk"),
}


class TrendDirection(str, Enum):
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    DEGRADING = "DEGRADING"

    @classmethod
    def from_slope(cls, slope: float, threshold: float) -> "TrendDirection":
        if slope > threshold:
            return cls.IMPROVING
        if slope < -threshold:
            return cls.DEGRADING
        return cls.STABLE

    def inverted(self) -> "TrendDirection":
        """Direction for a lower-is-better series (risk)."""
        if self is TrendDirection.IMPROVING:
            return TrendDirection.DEGRADING
        if self is TrendDirection.DEGRADING:
            return TrendDirection.IMPROVING
        return TrendDirection.STABLE


class StabilityFactor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    weight: float
    score: float  # 0-100
    contribution: float  # weight * score


class StabilityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = 100
    grade: StabilityGrade = StabilityGrade.A
    breaking_change_ratio: float = 0.0
    breaking_ratio_score: float = 100.0
    time_gap_score: float = 100.0
    deprecation_score: float = 100.0
    semver_score: float = 100.0
    average_days_between_breaking: float | None = None
    total_changes: int = 0
    breaking_changes: int = 0
    transitions_analyzed: int = 0
    factors: list[StabilityFactor] = []

    @property
    def is_poor(self) -> bool:
        return self.grade.is_poor

    @property
    def is_acceptable(self) -> bool:
        return self.grade.is_acceptable


class TrendAnalysis(BaseModel):
    """Statistics of a plain numeric series, oldest value first."""

    model_config = ConfigDict(frozen=True)

    direction: TrendDirection = TrendDirection.STABLE
    slope: float = 0.0
    average: float = 0.0
    standard_deviation: float = 0.0
    data_points: int = 0
    significant_recent_change: bool = False


class RiskDataPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    score: int
    level: RiskLevel
    version: str | None = None
    breaking_changes: int = 0


class RiskTrend(BaseModel):
    model_config = ConfigDict(frozen=True)

    direction: TrendDirection = TrendDirection.STABLE
    slope: float = 0.0
    current_score: int = 0
    previous_score: int = 0
    change_percentage: float = 0.0
    projected_score: int = 0
    current_level: RiskLevel = RiskLevel.LOW
    projected_level: RiskLevel = RiskLevel.LOW
    cumulative_score: int = 0
    data_points: list[RiskDataPoint] = []

    @property
    def is_improving(self) -> bool:
        return self.direction is TrendDirection.IMPROVING

    @property
    def is_degrading(self) -> bool:
        return self.direction is TrendDirection.DEGRADING


class ChangeVelocity(BaseModel):
    model_config = ConfigDict(frozen=True)

    span_days: int = 0
    total_releases: int = 0
    total_changes: int = 0
    total_breaking_changes: int = 0
    changes_per_day: float = 0.0
    changes_per_week: float = 0.0
    changes_per_month: float = 0.0
    changes_per_quarter: float = 0.0
    breaking_changes_per_release: float = 0.0
    average_days_between_releases: float = 0.0
    accelerating: bool = False
    acceleration_rate: float = 0.0
    period_start: datetime | None = None
    period_end: datetime | None = None


class DebtType(str, Enum):
    DEPRECATED_ENDPOINT = "DEPRECATED_ENDPOINT"
    MISSING_DOCUMENTATION = "MISSING_DOCUMENTATION"
    UNDOCUMENTED_PARAMETER = "UNDOCUMENTED_PARAMETER"
    INCONSISTENT_NAMING = "INCONSISTENT_NAMING"


class DebtSeverity(str, Enum):
    LOW = "LOW"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class DebtItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: DebtType
    path: str
    severity: DebtSeverity = DebtSeverity.LOW
    description: str = ""
    since: date | None = None
    age_days: int | None = None


class TechnicalDebt(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_name: str = ""
    version: str = ""
    total_endpoints: int = 0
    deprecated_endpoints_count: int = 0
    warning_debt_count: int = 0
    critical_debt_count: int = 0
    missing_documentation_count: int = 0
    undocumented_parameters_count: int = 0
    inconsistent_naming_count: int = 0
    complexity_score: int = 0
    debt_score: int = 0
    acceptable: bool = True
    items: list[DebtItem] = []


class ApiMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_name: str = ""
    version: str = ""
    total_endpoints: int = 0
    deprecated_endpoints: int = 0
    total_parameters: int = 0
    total_responses: int = 0
    nested_schemas: int = 0
    average_parameters_per_endpoint: float = 0.0
    average_response_codes_per_endpoint: float = 0.0
    documentation_coverage: float = 0.0
    complexity_score: int = 0


class ChangeMetrics(BaseModel):
    """Change counts over a set of transitions (a whole history or one period)."""

    model_config = ConfigDict(frozen=True)

    api_name: str = ""
    period_start: date | None = None
    transitions: int = 0
    total_changes: int = 0
    breaking_changes: int = 0
    affected_endpoints: int = 0


class VersionSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str | None = None
    release_date: date | None = None
    endpoint_count: int | None = None
    total_changes: int = 0
    breaking_changes: int = 0
    risk_score: int = 0
    added_endpoints: int = 0
    removed_endpoints: int = 0
    modified_endpoints: int = 0
    deprecated_endpoints: int = 0


class ApiEvolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_name: str = ""
    start_date: date | None = None
    end_date: date | None = None
    versions: list[VersionSummary] = []
    total_versions: int = 0
    total_changes: int = 0
    total_breaking_changes: int = 0
    average_changes_per_version: float = 0.0
    breaking_change_rate: float = 0.0
    endpoint_growth: int | None = None


class InsightType(str, Enum):
    POSITIVE_TREND = "POSITIVE_TREND"
    BREAKING_CHANGE_TREND = "BREAKING_CHANGE_TREND"
    STABILITY_ALERT = "STABILITY_ALERT"
    VELOCITY_CHANGE = "VELOCITY_CHANGE"
    RISK_INCREASE = "RISK_INCREASE"
    RISK_DECREASE = "RISK_DECREASE"
    DEPRECATION_REMINDER = "DEPRECATION_REMINDER"
    SIGNIFICANT_CHANGE = "SIGNIFICANT_CHANGE"
    PATTERN_DETECTED = "PATTERN_DETECTED"


class Insight(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: InsightType
    title: str
    description: str
    priority: int = Field(default=5, ge=1, le=10)
    confidence: float = Field(default=1.0, ge=0, le=1)


class RecommendationType(str, Enum):
    STABILITY_IMPROVEMENT = "STABILITY_IMPROVEMENT"
    DEBT_REDUCTION = "DEBT_REDUCTION"
    DOCUMENTATION = "DOCUMENTATION"
    DEPRECATION = "DEPRECATION"
    VERSIONING = "VERSIONING"
    PERFORMANCE = "PERFORMANCE"
    COMPLIANCE = "COMPLIANCE"


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: RecommendationType
    title: str
    description: str
    action: str = ""
    priority: int = 5
    effort: int = 5  # 1 (trivial) - 10 (major project)
    impact: int = 5
    target_path: str | None = None

    @property
    def efficiency_score(self) -> float:
        if self.effort == 0:
            return float(self.impact)
        return self.impact / self.effort


class PatternType(str, Enum):
    FREQUENT_BREAKING_CHANGES = "FREQUENT_BREAKING_CHANGES"
    SEASONAL_RELEASES = "SEASONAL_RELEASES"
    WEEKLY_PATTERN = "WEEKLY_PATTERN"
    BURST_RELEASES = "BURST_RELEASES"


class Pattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: PatternType
    description: str
    confidence: float
    details: dict[str, Any] = {}
