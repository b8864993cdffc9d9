"""Trend analysis of numeric series and of per-transition risk."""

import math

import structlog

from api_changelog.config.models import AnalyticsConfig
from api_changelog.core.errors import AnalyticsError
from api_changelog.generator.changelog import risk_level
from api_changelog.model.base import Changelog
from .history import breaking_count, prepare_history, risk_score_of
from .models import RiskDataPoint, RiskTrend, TrendAnalysis, TrendDirection

log = structlog.get_logger()


class TrendAnalyzer:
    """Least-squares trend of a series over its index, "higher is better"."""

    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()

    def calculate_slope(self, values: list[float]) -> float:
        n = len(values)
        if n < 2:
            return 0.0
        sum_x = sum(range(n))
        sum_y = sum(values)
        sum_xy = sum(i * y for i, y in enumerate(values))
        sum_x2 = sum(i * i for i in range(n))
        denominator = n * sum_x2 - sum_x * sum_x
        if denominator == 0:
            return 0.0
        return (n * sum_xy - sum_x * sum_y) / denominator

    def direction(self, values: list[float]) -> TrendDirection:
        if len(values) < self.config.trend.min_data_points:
            return TrendDirection.STABLE
        return TrendDirection.from_slope(self.calculate_slope(values), self.config.trend.slope_threshold)

    def average(self, values: list[float]) -> float:
        if not values:
            return 0.0
        return sum(values) / len(values)

    def standard_deviation(self, values: list[float]) -> float:
        """Population standard deviation."""
        if len(values) < 2:
            return 0.0
        mean = self.average(values)
        return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))

    def has_significant_recent_change(self, values: list[float]) -> bool:
        if len(values) < 2:
            return False
        current, previous = values[-1], values[-2]
        if previous == 0:
            return current > 0
        return abs((current - previous) / previous) >= self.config.insights.significant_change_threshold

    def analyze(self, values: list[float]) -> TrendAnalysis:
        return TrendAnalysis(
            direction=self.direction(values),
            slope=self.calculate_slope(values),
            average=self.average(values),
            standard_deviation=self.standard_deviation(values),
            data_points=len(values),
            significant_recent_change=self.has_significant_recent_change(values),
        )


class RiskCalculator:
    """Risk over a history. Rising risk is DEGRADING, falling risk IMPROVING."""

    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()
        self.trend_analyzer = TrendAnalyzer(self.config)

    def calculate_risk(self, changelog: Changelog | None) -> int:
        if changelog is None:
            return 0
        return risk_score_of(changelog)

    def cumulative_risk(self, history: list[Changelog] | None) -> int:
        """Blend of the overall average (40%) and the last three transitions (60%)."""
        ordered = prepare_history(history)
        if not ordered:
            return 0
        scores = [self.calculate_risk(c) for c in ordered]
        recent = scores[-3:]
        overall_avg = sum(scores) / len(scores)
        recent_avg = sum(recent) / len(recent)
        return math.floor(recent_avg * 0.6 + overall_avg * 0.4 + 0.5)

    def analyze_trend(self, history: list[Changelog] | None, strict: bool = False) -> RiskTrend:
        ordered = prepare_history(history)
        minimum = self.config.trend.min_data_points
        if strict and len(ordered) < minimum:
            raise AnalyticsError.insufficient_data("risk trend", minimum, len(ordered))
        if not ordered:
            return RiskTrend()

        scores = [self.calculate_risk(c) for c in ordered]
        points = [
            RiskDataPoint(
                timestamp=c.generated_at,
                score=score,
                level=risk_level(score),
                version=c.to_version,
                breaking_changes=breaking_count(c),
            )
            for c, score in zip(ordered, scores)
        ]

        slope = self.trend_analyzer.calculate_slope(scores)
        direction = self.trend_analyzer.direction(scores).inverted()

        current = scores[-1]
        previous = scores[-2] if len(scores) >= 2 else current
        change_percentage = (current - previous) / previous * 100 if previous else 0.0
        projected = self._project(current, direction)

        trend = RiskTrend(
            direction=direction,
            slope=slope,
            current_score=current,
            previous_score=previous,
            change_percentage=change_percentage,
            projected_score=projected,
            current_level=risk_level(current),
            projected_level=risk_level(projected),
            cumulative_score=self.cumulative_risk(ordered),
            data_points=points,
        )
        log.debug("risk.trend", direction=direction.value, slope=round(slope, 4), points=len(points))
        return trend

    def _project(self, current: int, direction: TrendDirection) -> int:
        step = int(self.config.trend.projection_step)
        if direction is TrendDirection.IMPROVING:
            return max(0, current - step)
        if direction is TrendDirection.DEGRADING:
            return min(100, current + step)
        return current
