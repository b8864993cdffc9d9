from datetime import datetime, timedelta, timezone

import pytest

from api_changelog.analytics.models import TrendDirection
from api_changelog.analytics.trend import RiskCalculator, TrendAnalyzer
from api_changelog.config.models import AnalyticsConfig, TrendConfig
from api_changelog.core.errors import AnalyticsError, ErrorCode
from api_changelog.model.base import Change, ChangeCategory, ChangeType, Changelog, RiskLevel

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _breaking(n: int) -> Change:
    return Change(
        type=ChangeType.ADDED,
        category=ChangeCategory.PARAMETER,
        path=f"endpoint:/pets[GET].parameters.p{n}",
        endpoint="GET /pets",
        new_value={"required": True},
    )


def _warning(n: int) -> Change:
    return Change(type=ChangeType.DEPRECATED, category=ChangeCategory.ENDPOINT, path=f"endpoint:/r{n}[GET]")


def _changelog(day: int, breaking: int = 0, warnings: int = 0) -> Changelog:
    """Risk score of the result is 30 * breaking + 5 * warnings (capped at 100)."""
    changes = [_breaking(i) for i in range(breaking)] + [_warning(i) for i in range(warnings)]
    return Changelog(api_name="pets", to_version=f"1.{day}.0", generated_at=BASE + timedelta(days=day), changes=changes)


class TestTrendAnalyzer:
    def test_slope_of_line(self):
        assert TrendAnalyzer().calculate_slope([1, 2, 3, 4]) == pytest.approx(1.0)
        assert TrendAnalyzer().calculate_slope([10, 8, 6]) == pytest.approx(-2.0)

    def test_slope_needs_two_points(self):
        assert TrendAnalyzer().calculate_slope([5]) == 0.0
        assert TrendAnalyzer().calculate_slope([]) == 0.0

    def test_direction_needs_minimum_points(self):
        assert TrendAnalyzer().direction([1, 100]) == TrendDirection.STABLE
        assert TrendAnalyzer().direction([1, 50, 100]) == TrendDirection.IMPROVING

    def test_flat_series_is_stable(self):
        assert TrendAnalyzer().direction([5, 5, 5, 5]) == TrendDirection.STABLE

    def test_statistics(self):
        analysis = TrendAnalyzer().analyze([2, 4, 4, 4, 5, 5, 7, 9])
        assert analysis.average == pytest.approx(5.0)
        assert analysis.standard_deviation == pytest.approx(2.0)
        assert analysis.data_points == 8

    def test_significant_recent_change(self):
        analyzer = TrendAnalyzer()
        assert analyzer.has_significant_recent_change([10, 13]) is True
        assert analyzer.has_significant_recent_change([10, 11]) is False
        assert analyzer.has_significant_recent_change([0, 1]) is True
        assert analyzer.has_significant_recent_change([1]) is False


class TestRiskCalculator:
    def test_short_history_is_stable(self):
        trend = RiskCalculator().analyze_trend([_changelog(0, breaking=3), _changelog(1)])
        assert trend.direction == TrendDirection.STABLE
        assert len(trend.data_points) == 2

    def test_empty_history(self):
        trend = RiskCalculator().analyze_trend([])
        assert trend.direction == TrendDirection.STABLE
        assert trend.data_points == []

    def test_strict_mode_raises_on_short_history(self):
        with pytest.raises(AnalyticsError) as exc:
            RiskCalculator().analyze_trend([_changelog(0)], strict=True)
        assert exc.value.code == ErrorCode.INSUFFICIENT_DATA
        assert exc.value.details == {"operation": "risk trend", "required": 3, "actual": 1}

    def test_rising_risk_is_degrading(self):
        history = [_changelog(0, warnings=1), _changelog(10, breaking=1), _changelog(20, breaking=2)]
        trend = RiskCalculator().analyze_trend(history)

        assert [p.score for p in trend.data_points] == [5, 30, 60]
        assert trend.direction == TrendDirection.DEGRADING
        assert trend.is_degrading
        assert trend.current_score == 60
        assert trend.previous_score == 30
        assert trend.change_percentage == pytest.approx(100.0)
        assert trend.projected_score == 70
        assert trend.current_level == RiskLevel.HIGH

    def test_falling_risk_is_improving(self):
        history = [_changelog(0, breaking=3), _changelog(10, breaking=1), _changelog(20)]
        trend = RiskCalculator().analyze_trend(history)
        assert trend.direction == TrendDirection.IMPROVING
        assert trend.projected_score == 0
        assert trend.current_level == RiskLevel.LOW

    def test_data_points_oldest_first(self):
        history = [_changelog(20, breaking=1), _changelog(0), _changelog(10, warnings=2)]
        trend = RiskCalculator().analyze_trend(history)
        assert [p.version for p in trend.data_points] == ["1.0.0", "1.10.0", "1.20.0"]
        assert [p.breaking_changes for p in trend.data_points] == [0, 0, 1]

    def test_cumulative_risk(self):
        # scores 0, 10, 30, 60: recent avg 33.33 * 0.6 + overall avg 25 * 0.4 = 30
        history = [_changelog(0), _changelog(1, warnings=2), _changelog(2, breaking=1), _changelog(3, breaking=2)]
        assert RiskCalculator().cumulative_risk(history) == 30

    def test_calculate_risk_of_nothing(self):
        assert RiskCalculator().calculate_risk(None) == 0

    def test_min_data_points_from_config(self):
        config = AnalyticsConfig(trend=TrendConfig(min_data_points=4))
        history = [_changelog(0), _changelog(10, breaking=1), _changelog(20, breaking=2)]
        assert RiskCalculator(config).analyze_trend(history).direction == TrendDirection.STABLE
